import asyncio
from dataclasses import dataclass
from typing import List, Optional, Tuple
from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction
from ammpyclient.configuration.configuration import DepositConfig
from ammpyclient.utilities.amm.addresses import (
    PoolAddresses,
    DepositorAccounts,
    derive_pool_addresses,
    derive_depositor_accounts,
)
from ammpyclient.utilities.amm.instruction import build_deposit_instruction
from ammpyclient.utilities.exceptions import (
    TransactionRejectedException,
    SubmissionFailedException,
    ConfirmationTimeoutException,
)

@dataclass(frozen=True)
class DepositReceipt:
    signature: str
    slot: Optional[int]
    explorer_url: str

@dataclass(frozen=True)
class PendingDeposit:
    """A sent deposit transaction that has not been confirmed yet"""
    signature: Signature
    last_valid_block_height: Optional[int] = None

def extract_program_logs(error: Exception) -> Optional[List[str]]:
    """
    Pull the program log lines out of an RPC error raised by a failed preflight.

    Returns None when the error carries no simulation result, i.e. it is a
    transport or node problem rather than a program rejection.
    """
    payload = error.args[0] if error.args else None
    data = getattr(payload, "data", None)
    logs = getattr(data, "logs", None)
    if logs is None:
        return None
    return list(logs)

def _rpc_error_message(error: Exception) -> str:
    payload = error.args[0] if error.args else None
    return getattr(payload, "message", None) or str(error)

class AMMUtilities:
    """Builds, signs, submits and confirms deposits into an AMM pool"""

    def __init__(self, config: DepositConfig, client=None):
        self.config = config
        self.network_config = config.network
        self.network_url = config.network.rpc_url
        self.commitment = config.network.commitment.value
        self.retry = config.retry
        self.client = client if client is not None else AsyncClient(self.network_url, commitment=self.commitment)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()

    def derive_addresses(self, owner: Pubkey) -> Tuple[PoolAddresses, DepositorAccounts]:
        """Derive the pool account and the owner's three associated token accounts"""
        pool_addresses = derive_pool_addresses(self.config.pool, self.config.programs)
        depositor_accounts = derive_depositor_accounts(owner, self.config.pool, self.config.programs)
        return pool_addresses, depositor_accounts

    def build_deposit_transaction(self, keypair: Keypair, instruction: Instruction, blockhash: Hash) -> Transaction:
        """Wrap a single instruction in a transaction paid for and signed by the depositor"""
        message = Message.new_with_blockhash([instruction], keypair.pubkey(), blockhash)
        return Transaction([keypair], message, blockhash)

    async def get_transaction_logs(self, signature: Signature) -> List[str]:
        """Fetch program log lines for a landed transaction, empty if they cannot be read"""
        try:
            response = await self.client.get_transaction(
                signature,
                commitment=self.commitment,
                max_supported_transaction_version=0,
            )
        except Exception as e:
            logger.warning(f"Could not fetch logs for {signature}: {e}")
            return []

        if response.value is None or response.value.transaction.meta is None:
            return []
        return list(response.value.transaction.meta.log_messages or [])

    async def send_deposit(
        self,
        pool_addresses: PoolAddresses,
        depositor_accounts: DepositorAccounts,
        keypair: Keypair,
        instruction_data: bytes,
    ) -> PendingDeposit:
        """
        Sign and send the deposit without waiting for confirmation.

        Preflight runs at the configured commitment, so most program rejections
        surface here with their simulation logs.

        Raises:
            TransactionRejectedException: Preflight simulation failed; program logs attached
            SubmissionFailedException: The transaction could not be sent
        """
        if depositor_accounts.owner != keypair.pubkey():
            raise SubmissionFailedException("depositor accounts were derived for a different owner")

        instruction = build_deposit_instruction(
            self.config.programs.amm_program_id,
            self.config.programs.token_program_id,
            pool_addresses,
            depositor_accounts,
            instruction_data,
        )

        try:
            blockhash_response = await self.client.get_latest_blockhash(commitment=self.commitment)
        except Exception as e:
            raise SubmissionFailedException(f"could not fetch latest blockhash: {e}") from e
        blockhash = blockhash_response.value.blockhash

        transaction = self.build_deposit_transaction(keypair, instruction, blockhash)
        signature = transaction.signatures[0]

        logger.info("Sending transaction...")
        try:
            await self.client.send_raw_transaction(
                bytes(transaction),
                opts=TxOpts(skip_confirmation=True, preflight_commitment=self.commitment),
            )
        except RPCException as e:
            logs = extract_program_logs(e)
            if logs is None:
                raise SubmissionFailedException(_rpc_error_message(e), str(signature)) from e
            raise TransactionRejectedException(_rpc_error_message(e), logs, str(signature)) from e
        except Exception as e:
            raise SubmissionFailedException(str(e), str(signature)) from e

        logger.debug(f"Transaction {signature} submitted")
        return PendingDeposit(
            signature=signature,
            last_valid_block_height=blockhash_response.value.last_valid_block_height,
        )

    async def confirm_deposit(self, pending: PendingDeposit) -> DepositReceipt:
        """
        Wait until the network reports the configured commitment for a sent deposit.

        Raises:
            TransactionRejectedException: The transaction landed with an error; program logs attached
            ConfirmationTimeoutException: No confirmation within retry.confirmation_timeout_sec
            SubmissionFailedException: The status could not be read or the blockhash expired
        """
        signature = pending.signature
        timeout = self.retry.confirmation_timeout_sec
        logger.debug(f"Waiting up to {timeout}s for {self.commitment} commitment on {signature}")
        try:
            confirmation = await asyncio.wait_for(
                self.client.confirm_transaction(
                    signature,
                    commitment=self.commitment,
                    sleep_seconds=self.retry.confirmation_poll_interval_sec,
                    last_valid_block_height=pending.last_valid_block_height,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise ConfirmationTimeoutException(str(signature), timeout) from e
        except Exception as e:
            raise SubmissionFailedException(f"confirmation failed: {e}", str(signature)) from e

        status = confirmation.value[0] if confirmation.value else None
        if status is None:
            raise SubmissionFailedException("no status reported for confirmed transaction", str(signature))
        if status.err is not None:
            logs = await self.get_transaction_logs(signature)
            raise TransactionRejectedException(str(status.err), logs, str(signature))

        return DepositReceipt(
            signature=str(signature),
            slot=status.slot,
            explorer_url=self.network_config.explorer_tx_url(str(signature)),
        )

    async def submit_deposit(
        self,
        pool_addresses: PoolAddresses,
        depositor_accounts: DepositorAccounts,
        keypair: Keypair,
        instruction_data: bytes,
    ) -> DepositReceipt:
        """
        Submit the deposit as one atomic transaction and wait for confirmation.

        Args:
            pool_addresses: Pool account, mints, vaults and share-mint
            depositor_accounts: Depositor's token accounts for both assets and the share token
            keypair: Depositor's signing keypair
            instruction_data: Encoded deposit payload

        Returns:
            DepositReceipt: Signature and slot of the confirmed transaction
        """
        pending = await self.send_deposit(pool_addresses, depositor_accounts, keypair, instruction_data)
        return await self.confirm_deposit(pending)
