import asyncio
import datetime
from dataclasses import dataclass, field
from typing import Optional
from loguru import logger
from solders.pubkey import Pubkey
from ammpyclient.configuration.configuration import RetryConfig
from ammpyclient.configuration.constants import Commitment
from ammpyclient.utilities.amm.addresses import DepositorAccounts
from ammpyclient.utilities.exceptions import BalanceUnavailableException

def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc)

@dataclass(frozen=True)
class BalanceSnapshot:
    """
    A single observation of a token account balance.

    Either Observed (amount is set) or Unavailable (reason is set). A snapshot
    never uses zero to stand in for a failed read.
    """
    account: Pubkey
    amount: Optional[int] = None
    slot: Optional[int] = None
    reason: Optional[str] = None
    attempts: int = 1
    observed_at: datetime.datetime = field(default_factory=_utcnow)

    @classmethod
    def observed(cls, account: Pubkey, amount: int, slot: Optional[int] = None, attempts: int = 1) -> "BalanceSnapshot":
        return cls(account=account, amount=amount, slot=slot, attempts=attempts)

    @classmethod
    def unavailable(cls, account: Pubkey, reason: str, attempts: int) -> "BalanceSnapshot":
        return cls(account=account, reason=reason, attempts=attempts)

    @property
    def is_observed(self) -> bool:
        return self.amount is not None

    def require(self) -> int:
        """Return the observed amount or raise BalanceUnavailableException"""
        if self.amount is None:
            raise BalanceUnavailableException(self.account, self.attempts, self.reason)
        return self.amount

    def __str__(self):
        if self.is_observed:
            return f"{self.amount} (slot {self.slot})"
        return f"unavailable ({self.reason})"

@dataclass(frozen=True)
class DepositorBalances:
    token_a: BalanceSnapshot
    token_b: BalanceSnapshot
    share: BalanceSnapshot

    @property
    def all_observed(self) -> bool:
        return self.token_a.is_observed and self.token_b.is_observed and self.share.is_observed

class LedgerReader:
    """Reads SPL token balances with a fixed number of attempts and a fixed delay between them"""

    def __init__(self, client, retry: RetryConfig = RetryConfig(), commitment: Commitment = Commitment.CONFIRMED):
        self.client = client
        self.attempts = retry.balance_read_attempts
        self.delay_sec = retry.balance_read_delay_sec
        self.commitment = commitment

    async def _fetch_balance(self, account: Pubkey):
        response = await self.client.get_token_account_balance(account, commitment=self.commitment.value)
        amount = int(response.value.amount)
        if amount < 0:
            raise ValueError(f"negative token amount reported: {amount}")
        return amount, response.context.slot

    async def read_balance(self, account: Pubkey) -> BalanceSnapshot:
        """
        Read the raw token balance of `account`.

        Returns:
            BalanceSnapshot: Observed on success, Unavailable once every attempt has failed
        """
        last_error = None
        for attempt in range(1, self.attempts + 1):
            try:
                amount, slot = await self._fetch_balance(account)
                return BalanceSnapshot.observed(account, amount, slot=slot, attempts=attempt)
            except Exception as e:
                last_error = e
                logger.warning(f"Balance check attempt {attempt} for {account} failed: {e}")
                if attempt < self.attempts:
                    await asyncio.sleep(self.delay_sec)

        logger.error(f"Failed to get balance for {account} after {self.attempts} attempts")
        reason = f"{type(last_error).__name__}: {last_error}"
        return BalanceSnapshot.unavailable(account, reason, self.attempts)

    async def read_balance_or_zero(self, account: Pubkey) -> int:
        """
        Read a balance, falling back to 0 when every attempt fails.

        A zero from this method means "unknown or absent", not a verified
        empty account. Prefer read_balance where the difference matters.
        """
        snapshot = await self.read_balance(account)
        return snapshot.amount if snapshot.is_observed else 0

    async def read_balances(self, accounts: DepositorAccounts) -> DepositorBalances:
        """Read the depositor's three balances one after another"""
        token_a = await self.read_balance(accounts.token_a)
        token_b = await self.read_balance(accounts.token_b)
        share = await self.read_balance(accounts.share)
        return DepositorBalances(token_a=token_a, token_b=token_b, share=share)
