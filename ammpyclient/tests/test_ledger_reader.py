import asyncio
from types import SimpleNamespace
import pytest
from solders.pubkey import Pubkey
from ammpyclient.configuration.configuration import RetryConfig
from ammpyclient.utilities.amm.addresses import DepositorAccounts
from ammpyclient.utilities.amm.ledger_reader import LedgerReader, BalanceSnapshot
from ammpyclient.utilities.exceptions import BalanceUnavailableException

NO_DELAY = RetryConfig(balance_read_delay_sec=0)

class FlakyBalanceClient:
    """Fails a fixed number of balance reads before answering"""

    def __init__(self, failures, amount=1_234):
        self.failures = failures
        self.amount = amount
        self.calls = 0

    async def get_token_account_balance(self, pubkey, commitment=None):
        self.calls += 1
        if self.failures is None or self.calls <= self.failures:
            raise ConnectionError("connection reset by peer")
        return SimpleNamespace(
            value=SimpleNamespace(amount=str(self.amount)),
            context=SimpleNamespace(slot=42),
        )

def test_read_balance_retries_until_success():
    client = FlakyBalanceClient(failures=2)
    reader = LedgerReader(client, NO_DELAY)

    snapshot = asyncio.run(reader.read_balance(Pubkey.new_unique()))

    assert client.calls == 3
    assert snapshot.is_observed
    assert snapshot.amount == 1_234
    assert snapshot.slot == 42
    assert snapshot.attempts == 3

def test_read_balance_or_zero_falls_back_after_three_attempts():
    client = FlakyBalanceClient(failures=None)
    reader = LedgerReader(client, NO_DELAY)

    amount = asyncio.run(reader.read_balance_or_zero(Pubkey.new_unique()))

    assert amount == 0
    assert client.calls == 3

def test_read_balance_reports_unavailable_instead_of_zero():
    client = FlakyBalanceClient(failures=None)
    account = Pubkey.new_unique()
    reader = LedgerReader(client, NO_DELAY)

    snapshot = asyncio.run(reader.read_balance(account))

    assert not snapshot.is_observed
    assert snapshot.amount is None
    assert "ConnectionError" in snapshot.reason
    assert snapshot.attempts == 3
    with pytest.raises(BalanceUnavailableException) as exc_info:
        snapshot.require()
    assert exc_info.value.account == account

def test_read_balance_success_on_first_attempt_does_not_retry():
    client = FlakyBalanceClient(failures=0, amount=0)
    reader = LedgerReader(client, NO_DELAY)

    snapshot = asyncio.run(reader.read_balance(Pubkey.new_unique()))

    assert client.calls == 1
    assert snapshot.is_observed
    assert snapshot.amount == 0

def test_attempt_count_follows_configuration():
    client = FlakyBalanceClient(failures=None)
    reader = LedgerReader(client, RetryConfig(balance_read_attempts=5, balance_read_delay_sec=0))

    asyncio.run(reader.read_balance(Pubkey.new_unique()))

    assert client.calls == 5

def test_read_balances_reads_all_three_accounts():
    client = FlakyBalanceClient(failures=0, amount=10)
    reader = LedgerReader(client, NO_DELAY)
    accounts = DepositorAccounts(
        owner=Pubkey.new_unique(),
        token_a=Pubkey.new_unique(), token_b=Pubkey.new_unique(), share=Pubkey.new_unique(),
    )

    balances = asyncio.run(reader.read_balances(accounts))

    assert balances.all_observed
    assert balances.token_a.account == accounts.token_a
    assert balances.share.account == accounts.share
    assert client.calls == 3

def test_snapshot_string_forms():
    account = Pubkey.new_unique()
    assert str(BalanceSnapshot.observed(account, 5, slot=9)) == "5 (slot 9)"
    assert str(BalanceSnapshot.unavailable(account, "timeout", 3)) == "unavailable (timeout)"
