from dataclasses import dataclass
from typing import List, Optional
import pandas as pd
from loguru import logger
from ammpyclient.configuration.constants import DEFAULT_TOKEN_DECIMALS
from ammpyclient.utilities.amm.instruction import to_ui_amount
from ammpyclient.utilities.amm.ledger_reader import BalanceSnapshot, DepositorBalances

def format_token_amount(raw_amount: Optional[int], decimals: int = DEFAULT_TOKEN_DECIMALS) -> str:
    """Render a raw amount as '<ui amount> (<raw> raw)', or 'unknown' for missing reads"""
    if raw_amount is None:
        return "unknown"
    return f"{to_ui_amount(raw_amount, decimals):.6f} ({raw_amount} raw)"

@dataclass(frozen=True)
class BalanceDelta:
    label: str
    before: BalanceSnapshot
    after: BalanceSnapshot

    @property
    def is_known(self) -> bool:
        return self.before.is_observed and self.after.is_observed

    @property
    def delta(self) -> Optional[int]:
        if not self.is_known:
            return None
        return self.after.amount - self.before.amount

@dataclass(frozen=True)
class DepositReconciliation:
    """Before/after comparison of the depositor's balances around one deposit"""
    token_a: BalanceDelta
    token_b: BalanceDelta
    share: BalanceDelta
    decimals: int = DEFAULT_TOKEN_DECIMALS

    @property
    def deltas(self) -> List[BalanceDelta]:
        return [self.token_a, self.token_b, self.share]

    @property
    def is_complete(self) -> bool:
        return all(d.is_known for d in self.deltas)

    @property
    def unavailable(self) -> List[str]:
        return [d.label for d in self.deltas if not d.is_known]

    @property
    def consumed_a(self) -> Optional[int]:
        delta = self.token_a.delta
        return None if delta is None else -delta

    @property
    def consumed_b(self) -> Optional[int]:
        delta = self.token_b.delta
        return None if delta is None else -delta

    @property
    def shares_received(self) -> Optional[int]:
        return self.share.delta

    @property
    def total_provided(self) -> Optional[int]:
        if self.consumed_a is None or self.consumed_b is None:
            return None
        return self.consumed_a + self.consumed_b

    def is_consistent_with(self, amount_a: int, amount_b: int) -> bool:
        """True when exactly the requested amounts left the depositor and shares came back"""
        return (
            self.is_complete
            and self.consumed_a == amount_a
            and self.consumed_b == amount_b
            and self.shares_received > 0
        )

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {
                "token": d.label,
                "account": str(d.before.account),
                "before": d.before.amount,
                "after": d.after.amount,
                "change": d.delta,
            }
            for d in self.deltas
        ]
        return pd.DataFrame(rows).set_index("token")

def reconcile(pre: DepositorBalances, post: DepositorBalances, decimals: int = DEFAULT_TOKEN_DECIMALS) -> DepositReconciliation:
    return DepositReconciliation(
        token_a=BalanceDelta("Token A", pre.token_a, post.token_a),
        token_b=BalanceDelta("Token B", pre.token_b, post.token_b),
        share=BalanceDelta("LP Tokens", pre.share, post.share),
        decimals=decimals,
    )

def format_balances(title: str, balances: DepositorBalances, decimals: int = DEFAULT_TOKEN_DECIMALS) -> List[str]:
    lines = [title]
    for label, snapshot in (("Token A", balances.token_a), ("Token B", balances.token_b), ("LP Tokens", balances.share)):
        if snapshot.is_observed:
            lines.append(f"{label}: {format_token_amount(snapshot.amount, decimals)}")
        else:
            lines.append(f"{label}: unavailable ({snapshot.reason})")
    return lines

def format_report(reconciliation: DepositReconciliation, pool_name: str = "pool") -> List[str]:
    """Human readable summary lines for a finished deposit"""
    decimals = reconciliation.decimals
    lines = [f"Liquidity Addition Results for {pool_name}:"]
    for d in reconciliation.deltas:
        lines.append(f"{d.label} Change: {format_token_amount(d.delta, decimals)}")

    lines.append(f"{pool_name} Liquidity Summary:")
    lines.append("Tokens Provided:")
    lines.append(f"  - Token A: {format_token_amount(reconciliation.consumed_a, decimals)}")
    lines.append(f"  - Token B: {format_token_amount(reconciliation.consumed_b, decimals)}")
    lines.append(f"LP Tokens Received: {format_token_amount(reconciliation.shares_received, decimals)}")

    total = reconciliation.total_provided
    if total is not None:
        lines.append(f"Total Value Locked in {pool_name}: {to_ui_amount(total, decimals):.6f} tokens")

    if not reconciliation.is_complete:
        lines.append(
            f"WARNING: balances unavailable for {', '.join(reconciliation.unavailable)}; "
            f"their changes could not be determined"
        )
    return lines

def log_report(reconciliation: DepositReconciliation, pool_name: str = "pool"):
    for line in format_report(reconciliation, pool_name):
        logger.info(line)
    logger.debug(f"Balance table:\n{reconciliation.to_dataframe().to_string()}")
