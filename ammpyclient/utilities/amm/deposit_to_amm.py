import argparse
import asyncio
import sys
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import List, Optional
from loguru import logger
from solders.keypair import Keypair
from ammpyclient.basic_utilities.configure_logger import configure_logger
from ammpyclient.configuration.configuration import DepositConfig, PoolConfig, get_deposit_config
from ammpyclient.user_login.credentials import load_keypair
from ammpyclient.utilities.amm.addresses import PoolAddresses, DepositorAccounts
from ammpyclient.utilities.amm.amm_utilities import AMMUtilities, DepositReceipt, PendingDeposit
from ammpyclient.utilities.amm.instruction import encode_deposit, validate_amount, to_raw_amount, to_ui_amount
from ammpyclient.utilities.amm.ledger_reader import LedgerReader, DepositorBalances
from ammpyclient.utilities.amm.reconciliation import (
    DepositReconciliation,
    reconcile,
    format_balances,
    log_report,
)
from ammpyclient.utilities.deposit_state import DepositState, DepositStateMachine, advances_to
from ammpyclient.utilities.exceptions import BalanceUnavailableException, TransactionRejectedException

@dataclass(frozen=True)
class DepositRequest:
    """One deposit of raw amounts of both pool assets, consumed by a single AMMDeposit run"""
    pool: PoolConfig
    amount_a: int
    amount_b: int
    keypair: Keypair

    def __post_init__(self):
        validate_amount(self.amount_a)
        validate_amount(self.amount_b)

@dataclass(frozen=True)
class DepositResult:
    receipt: DepositReceipt
    pre_balances: DepositorBalances
    post_balances: DepositorBalances
    reconciliation: DepositReconciliation
    states: List[DepositState]

class AMMDeposit:
    """Runs one deposit: derive, read, encode, submit, confirm, re-read, report"""

    def __init__(
        self,
        config: DepositConfig,
        request: DepositRequest,
        amm_utils: AMMUtilities,
        reader: Optional[LedgerReader] = None,
        require_pre_balances: bool = True,
    ):
        self.config = config
        self.request = request
        self.amm_utils = amm_utils
        self.reader = reader or LedgerReader(amm_utils.client, config.retry, config.network.commitment)
        self.require_pre_balances = require_pre_balances
        self.state_machine = DepositStateMachine()

        self.pool_addresses: Optional[PoolAddresses] = None
        self.depositor_accounts: Optional[DepositorAccounts] = None

    @property
    def state(self) -> DepositState:
        return self.state_machine.state

    @advances_to(DepositState.ADDRESSES_DERIVED)
    async def derive_addresses(self):
        owner = self.request.keypair.pubkey()
        self.pool_addresses, self.depositor_accounts = self.amm_utils.derive_addresses(owner)
        logger.info(f"Pool PDA: {self.pool_addresses.pool}")
        logger.info(f"User Token A ATA: {self.depositor_accounts.token_a}")
        logger.info(f"User Token B ATA: {self.depositor_accounts.token_b}")
        logger.info(f"User LP ATA: {self.depositor_accounts.share}")
        return self.pool_addresses, self.depositor_accounts

    @advances_to(DepositState.PRE_BALANCES_READ)
    async def read_pre_balances(self) -> DepositorBalances:
        balances = await self.reader.read_balances(self.depositor_accounts)
        for line in format_balances(f"Balances BEFORE adding liquidity to {self.request.pool.name}:", balances, self.request.pool.decimals):
            logger.info(line)

        if self.require_pre_balances:
            # Nothing has been sent yet, so stopping here leaves the ledger untouched
            for snapshot in (balances.token_a, balances.token_b, balances.share):
                snapshot.require()
        return balances

    @advances_to(DepositState.INSTRUCTION_BUILT)
    async def build_instruction(self) -> bytes:
        decimals = self.request.pool.decimals
        logger.info(f"Liquidity parameters for {self.request.pool.name}:")
        logger.info(f"Amount A: {to_ui_amount(self.request.amount_a, decimals):.6f} Token A")
        logger.info(f"Amount B: {to_ui_amount(self.request.amount_b, decimals):.6f} Token B")
        data = encode_deposit(self.request.amount_a, self.request.amount_b)
        logger.info(f"Instruction data: {data.hex()}")
        return data

    @advances_to(DepositState.SUBMITTED)
    async def send(self, instruction_data: bytes) -> PendingDeposit:
        return await self.amm_utils.send_deposit(
            self.pool_addresses,
            self.depositor_accounts,
            self.request.keypair,
            instruction_data,
        )

    @advances_to(DepositState.CONFIRMED)
    async def confirm(self, pending: PendingDeposit) -> DepositReceipt:
        receipt = await self.amm_utils.confirm_deposit(pending)
        logger.info(f"AddLiquidity to {self.request.pool.name} successful!")
        logger.info(f"Transaction signature: {receipt.signature}")
        logger.info(f"View on explorer: {receipt.explorer_url}")
        return receipt

    @advances_to(DepositState.POST_BALANCES_READ)
    async def read_post_balances(self) -> DepositorBalances:
        settle_delay = self.config.retry.settle_delay_sec
        if settle_delay > 0:
            logger.info(f"Waiting {settle_delay} seconds for transaction to settle...")
            await asyncio.sleep(settle_delay)
        balances = await self.reader.read_balances(self.depositor_accounts)
        for line in format_balances(f"Balances AFTER adding liquidity to {self.request.pool.name}:", balances, self.request.pool.decimals):
            logger.info(line)
        return balances

    @advances_to(DepositState.REPORTED)
    async def report(self, pre: DepositorBalances, post: DepositorBalances) -> DepositReconciliation:
        reconciliation = reconcile(pre, post, self.request.pool.decimals)
        log_report(reconciliation, self.request.pool.name)
        if reconciliation.is_complete and not reconciliation.is_consistent_with(self.request.amount_a, self.request.amount_b):
            logger.warning("Observed balance changes differ from the requested deposit amounts")
        return reconciliation

    async def run(self) -> DepositResult:
        logger.info(f"Starting AddLiquidity to {self.request.pool.name}...")
        logger.info(f"Token A: {self.request.pool.mint_a}")
        logger.info(f"Token B: {self.request.pool.mint_b}")
        logger.info(f"LP Mint: {self.request.pool.share_mint}")

        try:
            await self.derive_addresses()
            pre_balances = await self.read_pre_balances()
            instruction_data = await self.build_instruction()
            pending = await self.send(instruction_data)
            receipt = await self.confirm(pending)
            post_balances = await self.read_post_balances()
            reconciliation = await self.report(pre_balances, post_balances)
        except TransactionRejectedException as e:
            logger.error(f"Error in AddLiquidity to {self.request.pool.name}: {e}")
            if e.logs:
                logger.error("Transaction logs:")
                for index, line in enumerate(e.logs, start=1):
                    logger.error(f"  {index}: {line}")
            raise
        except Exception as e:
            logger.error(f"Error in AddLiquidity to {self.request.pool.name} (after {self.state_machine.history[-2].value}): {e}")
            raise

        return DepositResult(
            receipt=receipt,
            pre_balances=pre_balances,
            post_balances=post_balances,
            reconciliation=reconciliation,
            states=list(self.state_machine.history),
        )

async def deposit_to_amm(config: DepositConfig, amount_a: int, amount_b: int, keypair: Optional[Keypair] = None) -> DepositResult:
    """Load the depositor keypair if needed and run one deposit against the configured pool"""
    if keypair is None:
        keypair = load_keypair(config.keypair_path)
    request = DepositRequest(pool=config.pool, amount_a=amount_a, amount_b=amount_b, keypair=keypair)
    async with AMMUtilities(config) as amm_utils:
        return await AMMDeposit(config, request, amm_utils).run()

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Deposit two assets into an AMM pool and report the balance changes")
    parser.add_argument("--amount-a", default="0.5", help="Amount of asset A in UI units (default: 0.5)")
    parser.add_argument("--amount-b", default="0.5", help="Amount of asset B in UI units (default: 0.5)")
    parser.add_argument("--raw", action="store_true", help="Treat amounts as raw token units instead of UI units")
    parser.add_argument("--config", type=Path, default=None, help="Path to a TOML deposit config")
    parser.add_argument("--keypair", type=Path, default=None, help="Override the keypair path from the config")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-to-file", action="store_true")
    return parser.parse_args(argv)

def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logger(log_to_file=args.log_to_file, level=args.log_level.upper())

    try:
        config = get_deposit_config(args.config)
        decimals = config.pool.decimals
        if args.raw:
            amount_a, amount_b = validate_amount(int(args.amount_a)), validate_amount(int(args.amount_b))
        else:
            amount_a, amount_b = to_raw_amount(Decimal(args.amount_a), decimals), to_raw_amount(Decimal(args.amount_b), decimals)
        keypair = load_keypair(args.keypair or config.keypair_path)
        asyncio.run(deposit_to_amm(config, amount_a, amount_b, keypair))
    except BalanceUnavailableException as e:
        logger.error(f"Aborting before submission: {e}")
        return 1
    except Exception as e:
        logger.error(f"Deposit failed: {e}")
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
