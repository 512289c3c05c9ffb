from decimal import Decimal
import pytest
from solders.pubkey import Pubkey
from ammpyclient.utilities.amm.addresses import PoolAddresses, DepositorAccounts
from ammpyclient.utilities.amm.instruction import (
    encode_deposit,
    decode_deposit,
    build_deposit_instruction,
    to_ui_amount,
    to_raw_amount,
)
from ammpyclient.utilities.exceptions import InvalidAmountException, InstructionDecodeException

def test_encode_deposit_literal_payload():
    data = encode_deposit(500_000_000, 500_000_000)
    assert len(data) == 17
    assert data.hex() == "01" + (500_000_000).to_bytes(8, "little").hex() * 2
    assert data.hex() == "010065cd1d000000000065cd1d00000000"

@pytest.mark.parametrize("amount_a,amount_b", [(0, 0), (1, 2**64 - 1), (2**64 - 1, 1)])
def test_decode_recovers_discriminator_and_amounts(amount_a, amount_b):
    decoded = decode_deposit(encode_deposit(amount_a, amount_b))
    assert decoded.discriminator == 1
    assert decoded.amount_a == amount_a
    assert decoded.amount_b == amount_b

@pytest.mark.parametrize("bad_amount", [-1, 2**64, 1.5, "10", True])
def test_encode_rejects_amounts_outside_u64(bad_amount):
    with pytest.raises(InvalidAmountException):
        encode_deposit(bad_amount, 1)

def test_decode_rejects_wrong_length_and_discriminator():
    with pytest.raises(InstructionDecodeException):
        decode_deposit(b"\x01" * 16)
    with pytest.raises(InstructionDecodeException):
        decode_deposit(b"\x02" + bytes(16))

def test_deposit_instruction_account_order_and_flags():
    program_id, token_program = Pubkey.new_unique(), Pubkey.new_unique()
    pool = PoolAddresses(
        pool=Pubkey.new_unique(), bump=255,
        mint_a=Pubkey.new_unique(), mint_b=Pubkey.new_unique(),
        vault_a=Pubkey.new_unique(), vault_b=Pubkey.new_unique(),
        share_mint=Pubkey.new_unique(),
    )
    depositor = DepositorAccounts(
        owner=Pubkey.new_unique(),
        token_a=Pubkey.new_unique(), token_b=Pubkey.new_unique(), share=Pubkey.new_unique(),
    )
    data = encode_deposit(7, 9)

    instruction = build_deposit_instruction(program_id, token_program, pool, depositor, data)

    assert instruction.program_id == program_id
    assert bytes(instruction.data) == data
    expected = [
        (pool.pool, False, True),
        (pool.mint_a, False, False),
        (pool.mint_b, False, False),
        (pool.vault_a, False, True),
        (pool.vault_b, False, True),
        (pool.share_mint, False, True),
        (depositor.token_a, False, True),
        (depositor.token_b, False, True),
        (depositor.share, False, True),
        (depositor.owner, True, False),
        (token_program, False, False),
    ]
    assert [(m.pubkey, m.is_signer, m.is_writable) for m in instruction.accounts] == expected

def test_ui_amount_conversions():
    assert to_ui_amount(500_000_000) == Decimal("0.5")
    assert to_ui_amount(1, 6) == Decimal("0.000001")
    assert to_raw_amount("0.5") == 500_000_000
    assert to_raw_amount(Decimal("1.25"), 2) == 125
    with pytest.raises(InvalidAmountException):
        to_raw_amount("0.0000000001")
    with pytest.raises(InvalidAmountException):
        to_raw_amount("-1")
