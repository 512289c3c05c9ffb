"""Deterministic program-derived addresses for an AMM pool and its depositors."""
from dataclasses import dataclass
from typing import Tuple
from solders.pubkey import Pubkey
from ammpyclient.configuration.configuration import PoolConfig, ProgramConfig
from ammpyclient.configuration.constants import POOL_SEED

@dataclass(frozen=True)
class PoolAddresses:
    pool: Pubkey
    bump: int
    mint_a: Pubkey
    mint_b: Pubkey
    vault_a: Pubkey
    vault_b: Pubkey
    share_mint: Pubkey

@dataclass(frozen=True)
class DepositorAccounts:
    """Associated token accounts of one depositor for a pool"""
    owner: Pubkey
    token_a: Pubkey
    token_b: Pubkey
    share: Pubkey

def derive_pool_address(amm_program_id: Pubkey, mint_a: Pubkey, mint_b: Pubkey) -> Tuple[Pubkey, int]:
    """
    Derive the pool account address for an ordered mint pair.

    The pair is used in the order given. pool(A, B) and pool(B, A) are
    different addresses unless the AMM program itself sorts the mints.

    Returns:
        Tuple of (pool address, bump seed)
    """
    return Pubkey.find_program_address(
        [POOL_SEED, bytes(mint_a), bytes(mint_b)],
        amm_program_id,
    )

def derive_associated_token_address(
    owner: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey,
    ata_program_id: Pubkey,
) -> Pubkey:
    """Canonical holding account of `owner` for `mint` under the given token and ATA programs"""
    address, _ = Pubkey.find_program_address(
        [bytes(owner), bytes(token_program_id), bytes(mint)],
        ata_program_id,
    )
    return address

def derive_pool_addresses(pool: PoolConfig, programs: ProgramConfig) -> PoolAddresses:
    pool_address, bump = derive_pool_address(programs.amm_program_id, pool.mint_a, pool.mint_b)
    return PoolAddresses(
        pool=pool_address,
        bump=bump,
        mint_a=pool.mint_a,
        mint_b=pool.mint_b,
        vault_a=pool.vault_a,
        vault_b=pool.vault_b,
        share_mint=pool.share_mint,
    )

def derive_depositor_accounts(owner: Pubkey, pool: PoolConfig, programs: ProgramConfig) -> DepositorAccounts:
    def ata(mint: Pubkey) -> Pubkey:
        return derive_associated_token_address(owner, mint, programs.token_program_id, programs.ata_program_id)

    return DepositorAccounts(
        owner=owner,
        token_a=ata(pool.mint_a),
        token_b=ata(pool.mint_b),
        share=ata(pool.share_mint),
    )
