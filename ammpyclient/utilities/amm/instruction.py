import struct
from dataclasses import dataclass
from decimal import Decimal
from solders.instruction import Instruction, AccountMeta
from solders.pubkey import Pubkey
from ammpyclient.configuration.constants import (
    DEPOSIT_DISCRIMINATOR,
    DEPOSIT_INSTRUCTION_FORMAT,
    DEPOSIT_INSTRUCTION_LENGTH,
    DEFAULT_TOKEN_DECIMALS,
    MAX_U64,
)
from ammpyclient.utilities.amm.addresses import PoolAddresses, DepositorAccounts
from ammpyclient.utilities.exceptions import InvalidAmountException, InstructionDecodeException

@dataclass(frozen=True)
class DepositInstructionData:
    discriminator: int
    amount_a: int
    amount_b: int

def validate_amount(amount) -> int:
    """Return amount unchanged if it is a u64, raise InvalidAmountException otherwise"""
    if isinstance(amount, bool) or not isinstance(amount, int) or not 0 <= amount <= MAX_U64:
        raise InvalidAmountException(amount)
    return amount

def encode_deposit(amount_a: int, amount_b: int) -> bytes:
    """
    Serialize the AddLiquidity payload: one discriminator byte followed by
    two little-endian u64 amounts in the pool's raw token units.
    """
    return struct.pack(
        DEPOSIT_INSTRUCTION_FORMAT,
        DEPOSIT_DISCRIMINATOR,
        validate_amount(amount_a),
        validate_amount(amount_b),
    )

def decode_deposit(data: bytes) -> DepositInstructionData:
    if len(data) != DEPOSIT_INSTRUCTION_LENGTH:
        raise InstructionDecodeException(f"expected {DEPOSIT_INSTRUCTION_LENGTH} bytes, got {len(data)}")
    discriminator, amount_a, amount_b = struct.unpack(DEPOSIT_INSTRUCTION_FORMAT, data)
    if discriminator != DEPOSIT_DISCRIMINATOR:
        raise InstructionDecodeException(f"unexpected discriminator {discriminator}")
    return DepositInstructionData(discriminator, amount_a, amount_b)

def build_deposit_instruction(
    amm_program_id: Pubkey,
    token_program_id: Pubkey,
    pool_addresses: PoolAddresses,
    depositor_accounts: DepositorAccounts,
    data: bytes,
) -> Instruction:
    """
    Attach the deposit payload to the account list the AMM program expects.
    Order and mutability flags are part of the program's ABI.
    """
    accounts = [
        AccountMeta(pool_addresses.pool, is_signer=False, is_writable=True),
        AccountMeta(pool_addresses.mint_a, is_signer=False, is_writable=False),
        AccountMeta(pool_addresses.mint_b, is_signer=False, is_writable=False),
        AccountMeta(pool_addresses.vault_a, is_signer=False, is_writable=True),
        AccountMeta(pool_addresses.vault_b, is_signer=False, is_writable=True),
        AccountMeta(pool_addresses.share_mint, is_signer=False, is_writable=True),
        AccountMeta(depositor_accounts.token_a, is_signer=False, is_writable=True),
        AccountMeta(depositor_accounts.token_b, is_signer=False, is_writable=True),
        AccountMeta(depositor_accounts.share, is_signer=False, is_writable=True),
        AccountMeta(depositor_accounts.owner, is_signer=True, is_writable=False),
        AccountMeta(token_program_id, is_signer=False, is_writable=False),
    ]
    return Instruction(amm_program_id, data, accounts)

def to_ui_amount(raw_amount: int, decimals: int = DEFAULT_TOKEN_DECIMALS) -> Decimal:
    """Convert raw token units to a human readable Decimal"""
    return Decimal(raw_amount).scaleb(-decimals)

def to_raw_amount(ui_amount, decimals: int = DEFAULT_TOKEN_DECIMALS) -> int:
    """Convert a human readable amount to raw token units, rejecting fractional remainders"""
    scaled = Decimal(str(ui_amount)).scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmountException(ui_amount)
    return validate_amount(int(scaled))
