import asyncio
from types import SimpleNamespace
import pytest
from solders.keypair import Keypair
from ammpyclient.tests.fake_ledger import FakeLedgerClient, make_config, rpc_error
from ammpyclient.utilities.amm.amm_utilities import AMMUtilities, extract_program_logs
from ammpyclient.utilities.amm.instruction import encode_deposit
from ammpyclient.utilities.exceptions import (
    TransactionRejectedException,
    SubmissionFailedException,
    ConfirmationTimeoutException,
)

def funded_setup(amount_a=1_000_000_000, amount_b=1_000_000_000, **retry_overrides):
    config = make_config(**retry_overrides)
    client = FakeLedgerClient(config)
    keypair = Keypair()
    amm_utils = AMMUtilities(config, client=client)
    pool_addresses, depositor_accounts = amm_utils.derive_addresses(keypair.pubkey())
    client.balances[depositor_accounts.token_a] = amount_a
    client.balances[depositor_accounts.token_b] = amount_b
    client.balances[depositor_accounts.share] = 0
    return config, client, keypair, amm_utils, pool_addresses, depositor_accounts

def test_submit_deposit_returns_confirmed_receipt():
    config, client, keypair, amm_utils, pool_addresses, accounts = funded_setup()

    receipt = asyncio.run(amm_utils.submit_deposit(pool_addresses, accounts, keypair, encode_deposit(100, 100)))

    assert len(client.sent) == 1
    transaction = client.sent[0]
    assert str(transaction.signatures[0]) == receipt.signature
    assert transaction.message.account_keys[0] == keypair.pubkey()
    assert receipt.slot == client.slot
    assert receipt.explorer_url == f"https://explorer.local/tx/{receipt.signature}"
    assert client.balances[accounts.token_a] == 1_000_000_000 - 100

def test_preflight_rejection_surfaces_program_logs():
    config, client, keypair, amm_utils, pool_addresses, accounts = funded_setup(amount_a=10)

    with pytest.raises(TransactionRejectedException) as exc_info:
        asyncio.run(amm_utils.submit_deposit(pool_addresses, accounts, keypair, encode_deposit(11, 1)))

    rejection = exc_info.value
    assert rejection.logs
    assert "Program log: Error: insufficient funds" in rejection.logs
    assert rejection.signature == str(client.sent[0].signatures[0])

def test_rpc_error_without_logs_is_a_submission_failure():
    config, client, keypair, amm_utils, pool_addresses, accounts = funded_setup()

    async def send_raw_transaction(txn, opts=None):
        raise rpc_error("Node is unhealthy")
    client.send_raw_transaction = send_raw_transaction

    with pytest.raises(SubmissionFailedException) as exc_info:
        asyncio.run(amm_utils.submit_deposit(pool_addresses, accounts, keypair, encode_deposit(1, 1)))
    assert "Node is unhealthy" in str(exc_info.value)

def test_transport_error_on_blockhash_is_a_submission_failure():
    config, client, keypair, amm_utils, pool_addresses, accounts = funded_setup()

    async def get_latest_blockhash(commitment=None):
        raise ConnectionError("connection refused")
    client.get_latest_blockhash = get_latest_blockhash

    with pytest.raises(SubmissionFailedException):
        asyncio.run(amm_utils.submit_deposit(pool_addresses, accounts, keypair, encode_deposit(1, 1)))
    assert client.sent == []

def test_confirmation_wait_is_bounded():
    config, client, keypair, amm_utils, pool_addresses, accounts = funded_setup(confirmation_timeout_sec=0.05)

    async def confirm_transaction(tx_sig, commitment=None, sleep_seconds=0.5, last_valid_block_height=None):
        await asyncio.sleep(10)
    client.confirm_transaction = confirm_transaction

    with pytest.raises(ConfirmationTimeoutException) as exc_info:
        asyncio.run(amm_utils.submit_deposit(pool_addresses, accounts, keypair, encode_deposit(1, 1)))
    assert exc_info.value.timeout == 0.05

def test_landed_transaction_error_fetches_logs():
    config, client, keypair, amm_utils, pool_addresses, accounts = funded_setup()
    landed_logs = ["Program log: Instruction: AddLiquidity", "Program log: Error: math overflow"]

    async def confirm_transaction(tx_sig, commitment=None, sleep_seconds=0.5, last_valid_block_height=None):
        return SimpleNamespace(value=[SimpleNamespace(slot=7, err="InstructionError(0, Custom(6))")])

    async def get_transaction(tx_sig, commitment=None, max_supported_transaction_version=None):
        meta = SimpleNamespace(log_messages=landed_logs)
        return SimpleNamespace(value=SimpleNamespace(transaction=SimpleNamespace(meta=meta)))

    client.confirm_transaction = confirm_transaction
    client.get_transaction = get_transaction

    with pytest.raises(TransactionRejectedException) as exc_info:
        asyncio.run(amm_utils.submit_deposit(pool_addresses, accounts, keypair, encode_deposit(1, 1)))
    assert exc_info.value.logs == landed_logs

def test_accounts_for_another_owner_are_refused():
    config, client, keypair, amm_utils, pool_addresses, accounts = funded_setup()

    with pytest.raises(SubmissionFailedException):
        asyncio.run(amm_utils.submit_deposit(pool_addresses, accounts, Keypair(), encode_deposit(1, 1)))
    assert client.sent == []

def test_extract_program_logs():
    assert extract_program_logs(rpc_error("boom", ["a", "b"])) == ["a", "b"]
    assert extract_program_logs(rpc_error("boom")) is None
    assert extract_program_logs(RuntimeError()) is None

def test_context_manager_closes_client():
    config = make_config()
    client = FakeLedgerClient(config)

    async def use():
        async with AMMUtilities(config, client=client):
            pass

    asyncio.run(use())
    assert client.closed
