import os
import sqlite3
import tempfile
from pathlib import Path

import pytest

# config.conf is loaded (and written) at import time; keep it out of the checkout.
_CONFIG_DIR = tempfile.mkdtemp(prefix="blacksmith-tools-tests-")
os.environ["BLACKSMITH_CONFIG"] = os.path.join(_CONFIG_DIR, "config.conf")
os.environ.pop("BLACKSMITH_SESSION_COOKIE", None)
os.environ.pop("BLACKSMITH_ORG", None)

from Crypto.Cipher import AES  # noqa: E402
from Crypto.Util.Padding import pad  # noqa: E402

from blacksmith_tools.utils.cookie_crypto import IV, derive_key  # noqa: E402

COOKIE_COLUMNS = (
    "host_key TEXT, name TEXT, value TEXT, encrypted_value BLOB, path TEXT, "
    "expires_utc INTEGER, is_httponly INTEGER, is_secure INTEGER"
)


def encrypt_value(plaintext: bytes, key_material: bytes, marker: bytes = b"v10") -> bytes:
    """Encrypt the way Chromium does on macOS/Linux: marker + AES-128-CBC(pkcs7)."""
    cipher = AES.new(bytes(key_material), AES.MODE_CBC, iv=IV)
    return marker + cipher.encrypt(pad(plaintext, AES.block_size))


def encrypt_unpadded(block_aligned: bytes, key_material: bytes, marker: bytes = b"v10") -> bytes:
    cipher = AES.new(bytes(key_material), AES.MODE_CBC, iv=IV)
    return marker + cipher.encrypt(block_aligned)


def create_cookie_db(path: Path, rows=(), columns: str = COOKIE_COLUMNS) -> Path:
    """Write a cookies table; rows are dicts keyed by column name."""
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(path)
    try:
        connection.execute(f"CREATE TABLE cookies ({columns})")
        for row in rows:
            names = list(row)
            placeholders = ", ".join("?" for _ in names)
            connection.execute(
                f"INSERT INTO cookies ({', '.join(names)}) VALUES ({placeholders})",
                [row[name] for name in names],
            )
        connection.commit()
    finally:
        connection.close()
    return path


@pytest.fixture
def mac_key():
    key = derive_key(b"keychain-password", 1003)
    yield key
    key.wipe()


@pytest.fixture
def peanuts_key_material():
    return bytes(derive_key(b"peanuts", 1).material)
