import json
from pathlib import Path
from loguru import logger
from solders.keypair import Keypair
from ammpyclient.utilities.exceptions import KeypairLoadException

KEYPAIR_LENGTH = 64  # 32 byte secret followed by 32 byte public key

def load_keypair(path) -> Keypair:
    """Load a signing keypair from a Solana CLI style key file.

    The file holds a JSON array of 64 integers in the range 0-255.

    Args:
        path: Location of the key file

    Returns:
        Keypair: The depositor's signing identity

    Raises:
        KeypairLoadException: If the file is missing or malformed
    """
    path = Path(path).expanduser()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise KeypairLoadException(path, f"cannot read file ({e.strerror or e})") from e

    try:
        values = json.loads(raw)
    except json.JSONDecodeError as e:
        raise KeypairLoadException(path, f"not valid JSON: {e.msg}") from e

    if not isinstance(values, list) or len(values) != KEYPAIR_LENGTH:
        raise KeypairLoadException(path, f"expected a list of {KEYPAIR_LENGTH} byte values")
    if not all(isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 255 for v in values):
        raise KeypairLoadException(path, "every entry must be an integer between 0 and 255")

    raw_bytes = bytes(values)
    try:
        keypair = Keypair.from_bytes(raw_bytes)
        derived = Keypair.from_seed(raw_bytes[:32]).pubkey()
    except Exception as e:
        raise KeypairLoadException(path, f"bytes do not form a valid keypair: {e}") from e
    if bytes(derived) != raw_bytes[32:]:
        raise KeypairLoadException(path, "public key does not match the secret key")

    logger.debug(f"Loaded keypair for {keypair.pubkey()} from {path}")
    return keypair

def save_keypair(keypair: Keypair, path) -> Path:
    """Write a keypair in the same JSON byte array format load_keypair reads"""
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(list(bytes(keypair))), encoding="utf-8")
    return path
