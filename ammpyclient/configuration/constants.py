from enum import Enum

# Receiving program instruction ABI
DEPOSIT_DISCRIMINATOR = 1  # AddLiquidity
DEPOSIT_INSTRUCTION_FORMAT = "<BQQ"  # discriminator, amount_a, amount_b
DEPOSIT_INSTRUCTION_LENGTH = 17
DEPOSIT_ACCOUNT_COUNT = 11

# Seed prefix for the pool program-derived address
POOL_SEED = b"pool"

# Token constants
DEFAULT_TOKEN_DECIMALS = 9
MAX_U64 = 2**64 - 1

# Ledger reader defaults
BALANCE_READ_ATTEMPTS = 3
BALANCE_READ_DELAY_SEC = 1.0
SETTLE_DELAY_SEC = 2.0  # wait after confirmation before re-reading balances

# Transaction submitter defaults
CONFIRMATION_TIMEOUT_SEC = 60.0
CONFIRMATION_POLL_INTERVAL_SEC = 0.5

# Environment variable pointing at a deposit config file
CONFIG_PATH_ENV_VAR = "AMM_DEPOSIT_CONFIG"

class Commitment(Enum):
    """Ledger commitment levels accepted by the RPC node"""
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"
