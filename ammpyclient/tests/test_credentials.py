import json
import pytest
from solders.keypair import Keypair
from ammpyclient.user_login.credentials import load_keypair, save_keypair
from ammpyclient.utilities.exceptions import KeypairLoadException

def test_keypair_round_trips_through_cli_file_format(tmp_path):
    keypair = Keypair()
    path = save_keypair(keypair, tmp_path / "id.json")

    values = json.loads(path.read_text())
    assert len(values) == 64
    assert load_keypair(path).pubkey() == keypair.pubkey()

def test_missing_file_is_fatal(tmp_path):
    with pytest.raises(KeypairLoadException) as exc_info:
        load_keypair(tmp_path / "nope.json")
    assert exc_info.value.path == tmp_path / "nope.json"

@pytest.mark.parametrize("content", [
    "not json",
    "{}",
    "[1, 2, 3]",
    json.dumps([256] * 64),
    json.dumps([True] * 64),
])
def test_malformed_file_is_fatal(tmp_path, content):
    path = tmp_path / "id.json"
    path.write_text(content)
    with pytest.raises(KeypairLoadException):
        load_keypair(path)

def test_mismatched_public_half_is_fatal(tmp_path):
    secret = list(bytes(Keypair()))[:32]
    other_public = list(bytes(Keypair()))[32:]
    path = tmp_path / "id.json"
    path.write_text(json.dumps(secret + other_public))
    with pytest.raises(KeypairLoadException):
        load_keypair(path)
