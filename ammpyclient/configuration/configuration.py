from pathlib import Path
import math
import os
import toml
from loguru import logger
from typing import Optional, Dict, Any
from dataclasses import dataclass, field, replace
from solders.pubkey import Pubkey
from ammpyclient.configuration.constants import (
    Commitment,
    DEFAULT_TOKEN_DECIMALS,
    BALANCE_READ_ATTEMPTS,
    BALANCE_READ_DELAY_SEC,
    SETTLE_DELAY_SEC,
    CONFIRMATION_TIMEOUT_SEC,
    CONFIRMATION_POLL_INTERVAL_SEC,
    CONFIG_PATH_ENV_VAR,
)
from ammpyclient.utilities.exceptions import InvalidConfigurationException

DEFAULT_KEYPAIR_PATH = Path.home().joinpath(".config", "solana", "id.json")

@dataclass(frozen=True)
class NetworkConfig:
    """Configuration for a ledger network endpoint"""
    name: str
    rpc_url: str
    explorer_tx_url_mask: str
    commitment: Commitment = Commitment.CONFIRMED

    def explorer_tx_url(self, signature: str) -> str:
        return self.explorer_tx_url_mask.format(signature=signature)

@dataclass(frozen=True)
class ProgramConfig:
    """On-chain programs the deposit instruction touches"""
    amm_program_id: Pubkey
    token_program_id: Pubkey
    ata_program_id: Pubkey

@dataclass(frozen=True)
class PoolConfig:
    """An already-initialized two-asset pool. Mint order matters for the pool address."""
    name: str
    mint_a: Pubkey
    mint_b: Pubkey
    share_mint: Pubkey
    vault_a: Pubkey
    vault_b: Pubkey
    decimals: int = DEFAULT_TOKEN_DECIMALS

@dataclass(frozen=True)
class RetryConfig:
    balance_read_attempts: int = BALANCE_READ_ATTEMPTS
    balance_read_delay_sec: float = BALANCE_READ_DELAY_SEC
    settle_delay_sec: float = SETTLE_DELAY_SEC
    confirmation_timeout_sec: float = CONFIRMATION_TIMEOUT_SEC
    confirmation_poll_interval_sec: float = CONFIRMATION_POLL_INTERVAL_SEC

@dataclass(frozen=True)
class DepositConfig:
    """Everything a deposit needs, validated once and immutable afterwards"""
    network: NetworkConfig
    programs: ProgramConfig
    pool: PoolConfig
    retry: RetryConfig = field(default_factory=RetryConfig)
    keypair_path: Path = DEFAULT_KEYPAIR_PATH

GORBCHAIN = NetworkConfig(
    name="gorbchain",
    rpc_url="https://rpc.gorbchain.xyz",
    explorer_tx_url_mask="https://gorbscan.com/tx/{signature}",
)

GORBCHAIN_PROGRAMS = ProgramConfig(
    amm_program_id=Pubkey.from_string("8qhCTESZN9xDCHvtXFdCHfsgcctudbYdzdCFzUkTTMMe"),
    token_program_id=Pubkey.from_string("G22oYgZ6LnVcy7v8eSNi2xpNk1NcZiPD8CVKSTut7oZ6"),
    ata_program_id=Pubkey.from_string("GoATGVNeSXerFerPqTJ8hcED1msPWHHLxao2vwBYqowm"),
)

# Pool 2 (B-C), values recorded when the pool was initialized
GORBCHAIN_POOL_B_C = PoolConfig(
    name="Pool 2 (B-C)",
    mint_a=Pubkey.from_string("AtZBwYcxgP2c9KYL1iezZrf8t7bbXTssSt6Aoz3h9wbH"),
    mint_b=Pubkey.from_string("EnpmunfM7kxxgLSJXd3ZG5jaJShMqJF9so95NcXJv1UW"),
    share_mint=Pubkey.from_string("Brqgz5Lvq6St3WVLsAYvupZRiuZtzqsZHJi1FvM4YXuY"),
    vault_a=Pubkey.from_string("FTMqVxLRMpCpSPaUAHNKgSFmq6BoEULbb6QfYkPNhMCE"),
    vault_b=Pubkey.from_string("Ei2eeRY1X8hG9VJ6PVyT7mcLUPcXUEa4uJqoA5LACW85"),
)

DEFAULT_DEPOSIT_CONFIG = DepositConfig(
    network=GORBCHAIN,
    programs=GORBCHAIN_PROGRAMS,
    pool=GORBCHAIN_POOL_B_C,
)

def _parse_pubkey(section: str, key: str, value: Any) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    try:
        return Pubkey.from_string(str(value))
    except ValueError as e:
        raise InvalidConfigurationException(f"{section}.{key}", f"not a valid address: {value!r}") from e

def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)

def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)

def validate_config(config: DepositConfig) -> DepositConfig:
    """Check a DepositConfig for values the deposit cannot work with.

    Returns the same config so it can be used inline.
    """
    network = config.network
    if not network.rpc_url or not network.rpc_url.startswith(("http://", "https://")):
        raise InvalidConfigurationException("network.rpc_url", f"expected an http(s) url, got {network.rpc_url!r}")
    if "{signature}" not in network.explorer_tx_url_mask:
        raise InvalidConfigurationException("network.explorer_tx_url_mask", "must contain '{signature}'")
    # deposits are only reported once the network has voted on them
    if network.commitment not in (Commitment.CONFIRMED, Commitment.FINALIZED):
        raise InvalidConfigurationException(
            "network.commitment",
            f"must be 'confirmed' or 'finalized', got {network.commitment.value!r}",
        )

    pool = config.pool
    if not _is_int(pool.decimals):
        raise InvalidConfigurationException("pool.decimals", f"expected an integer, got {pool.decimals!r}")
    if pool.mint_a == pool.mint_b:
        raise InvalidConfigurationException("pool.mint_b", "pool assets must be distinct mints")
    if pool.share_mint in (pool.mint_a, pool.mint_b):
        raise InvalidConfigurationException("pool.share_mint", "share mint cannot be one of the pooled mints")
    if pool.vault_a == pool.vault_b:
        raise InvalidConfigurationException("pool.vault_b", "vaults must be distinct accounts")
    if not 0 <= pool.decimals <= 19:
        raise InvalidConfigurationException("pool.decimals", f"out of range: {pool.decimals}")

    retry = config.retry
    if not _is_int(retry.balance_read_attempts):
        raise InvalidConfigurationException(
            "retry.balance_read_attempts", f"expected an integer, got {retry.balance_read_attempts!r}"
        )
    if retry.balance_read_attempts < 1:
        raise InvalidConfigurationException("retry.balance_read_attempts", "must be at least 1")
    durations = ("balance_read_delay_sec", "settle_delay_sec", "confirmation_timeout_sec", "confirmation_poll_interval_sec")
    for name in durations:
        value = getattr(retry, name)
        if not _is_number(value):
            raise InvalidConfigurationException(f"retry.{name}", f"expected a number of seconds, got {value!r}")
    for name in ("balance_read_delay_sec", "settle_delay_sec"):
        if getattr(retry, name) < 0:
            raise InvalidConfigurationException(f"retry.{name}", "must not be negative")
    for name in ("confirmation_timeout_sec", "confirmation_poll_interval_sec"):
        if getattr(retry, name) <= 0:
            raise InvalidConfigurationException(f"retry.{name}", "must be positive")

    return config

class ConfigurationManager:
    """Loads a deposit configuration from a TOML file layered over the built-in defaults.

    Example file:

        keypair_path = "~/.config/solana/id.json"

        [network]
        rpc_url = "https://rpc.gorbchain.xyz"

        [pool]
        mint_a = "..."
        mint_b = "..."
    """

    def __init__(self, config_file: Optional[Path] = None, defaults: DepositConfig = DEFAULT_DEPOSIT_CONFIG):
        if config_file is None and os.environ.get(CONFIG_PATH_ENV_VAR):
            config_file = Path(os.environ[CONFIG_PATH_ENV_VAR])
        self.config_file = Path(config_file).expanduser() if config_file else None
        self.defaults = defaults

    def _load_raw(self) -> Dict[str, Any]:
        """Load the raw TOML mapping, or an empty mapping when no file is configured"""
        if self.config_file is None:
            logger.debug("No deposit config file given, using defaults")
            return {}

        if not self.config_file.exists():
            raise InvalidConfigurationException("config_file", f"{self.config_file} does not exist")

        try:
            with open(self.config_file, 'r') as f:
                return toml.load(f)
        except toml.TomlDecodeError as e:
            raise InvalidConfigurationException("config_file", f"{self.config_file} is not valid TOML: {e}") from e

    def load(self) -> DepositConfig:
        """Build and validate the DepositConfig"""
        raw = self._load_raw()
        defaults = self.defaults

        network_raw = raw.get('network', {})
        try:
            commitment = Commitment(network_raw.get('commitment', defaults.network.commitment.value))
        except ValueError as e:
            raise InvalidConfigurationException("network.commitment", str(e)) from e
        network = replace(
            defaults.network,
            name=network_raw.get('name', defaults.network.name),
            rpc_url=network_raw.get('rpc_url', defaults.network.rpc_url),
            explorer_tx_url_mask=network_raw.get('explorer_tx_url_mask', defaults.network.explorer_tx_url_mask),
            commitment=commitment,
        )

        programs_raw = raw.get('programs', {})
        programs = ProgramConfig(**{
            key: _parse_pubkey('programs', key, programs_raw.get(key, getattr(defaults.programs, key)))
            for key in ('amm_program_id', 'token_program_id', 'ata_program_id')
        })

        pool_raw = raw.get('pool', {})
        pool_keys = {
            key: _parse_pubkey('pool', key, pool_raw.get(key, getattr(defaults.pool, key)))
            for key in ('mint_a', 'mint_b', 'share_mint', 'vault_a', 'vault_b')
        }
        pool = PoolConfig(
            name=pool_raw.get('name', defaults.pool.name),
            decimals=pool_raw.get('decimals', defaults.pool.decimals),
            **pool_keys,
        )

        retry_raw = raw.get('retry', {})
        unknown = set(retry_raw) - set(RetryConfig.__dataclass_fields__)
        if unknown:
            raise InvalidConfigurationException("retry", f"unknown keys: {sorted(unknown)}")
        retry = replace(defaults.retry, **retry_raw)

        keypair_path = Path(raw.get('keypair_path', defaults.keypair_path)).expanduser()

        config = DepositConfig(
            network=network,
            programs=programs,
            pool=pool,
            retry=retry,
            keypair_path=keypair_path,
        )
        logger.debug(f"Loaded deposit config for {pool.name} on {network.name} ({network.rpc_url})")
        return validate_config(config)

def get_deposit_config(config_file: Optional[Path] = None) -> DepositConfig:
    """Helper to load the deposit configuration once at startup"""
    return ConfigurationManager(config_file).load()
