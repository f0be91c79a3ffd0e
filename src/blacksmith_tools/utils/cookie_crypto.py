# src/blacksmith_tools/utils/cookie_crypto.py
"""
Chromium cookie value decryption (macOS / Linux "v10"/"v11" format).

Values are AES-128-CBC encrypted with a PBKDF2-HMAC-SHA1 key derived from the
platform master secret, a fixed salt and a fixed IV of 16 spaces.
"""
import logging
from typing import Callable, Optional, Tuple

from Crypto.Cipher import AES
from Crypto.Hash import SHA1
from Crypto.Protocol.KDF import PBKDF2

logger = logging.getLogger(__name__)

SALT = b"saltysalt"
KEY_LENGTH = 16
IV = b" " * 16
MAC_ITERATIONS = 1003
LINUX_ITERATIONS = 1

# Encryption version markers written by Chromium in front of the ciphertext.
VERSION_MARKERS: Tuple[bytes, ...] = (b"v10", b"v11")

# Laravel encrypted sessions are base64 JSON, which always starts with "eyJ".
SESSION_MARKER = b"eyJ"
# Newer stores prepend a SHA-256 of the host to the plaintext.
METADATA_BLOCK_SIZE = 32


class EncryptionKey:
    """Derived AES key held in a mutable buffer so it can be zeroed after use."""

    def __init__(self, material: bytes):
        self._buffer = bytearray(material)

    @property
    def material(self) -> bytearray:
        return self._buffer

    def wipe(self) -> None:
        for index in range(len(self._buffer)):
            self._buffer[index] = 0

    def __len__(self) -> int:
        return len(self._buffer)

    def __enter__(self) -> "EncryptionKey":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"<EncryptionKey len={len(self._buffer)}>"


def derive_key(master_secret: bytes, iterations: int = MAC_ITERATIONS) -> EncryptionKey:
    """PBKDF2-HMAC-SHA1 over the master secret with Chromium's fixed salt."""
    material = PBKDF2(master_secret, SALT, dkLen=KEY_LENGTH, count=iterations, hmac_hash_module=SHA1)
    return EncryptionKey(material)


def split_version_marker(encrypted_value: bytes) -> Tuple[Optional[bytes], bytes]:
    """Return (marker, remainder); marker is None for legacy unencrypted values."""
    prefix = bytes(encrypted_value[:3])
    if prefix in VERSION_MARKERS:
        return prefix, encrypted_value[3:]
    return None, encrypted_value


def strip_padding(decrypted: bytearray) -> Optional[bytearray]:
    """Remove PKCS#7 padding, None when the trailing length byte is out of range."""
    if not decrypted:
        return None
    padding = decrypted[-1]
    if padding < 1 or padding > AES.block_size:
        return None
    return decrypted[:-padding]


def decrypt_ciphertext(ciphertext: bytes, key: EncryptionKey) -> Optional[bytearray]:
    """AES-128-CBC decrypt and unpad. None when the buffer is corrupt."""
    try:
        cipher = AES.new(key.material, AES.MODE_CBC, iv=IV)
        decrypted = bytearray(cipher.decrypt(ciphertext))
    except ValueError as exc:
        logger.debug(f"Cookie ciphertext rejected by AES-CBC: {exc}")
        return None

    unpadded = strip_padding(decrypted)
    if unpadded is None:
        logger.debug("Cookie padding byte out of range; discarding candidate")
    wipe_buffer(decrypted)
    return unpadded


def wipe_buffer(buffer: bytearray) -> None:
    for index in range(len(buffer)):
        buffer[index] = 0


def _is_printable(byte: int) -> bool:
    return 0x20 <= byte < 0x7F


def _decode(data) -> Optional[str]:
    try:
        text = bytes(data).decode("utf-8")
    except UnicodeDecodeError:
        return None
    return text or None


def find_session_marker(decrypted: bytearray) -> Optional[str]:
    """Payload starts at the first occurrence of the session marker."""
    start = decrypted.find(SESSION_MARKER)
    if start < 0:
        return None
    return _decode(decrypted[start:])


def skip_metadata_block(decrypted: bytearray) -> Optional[str]:
    """Drop a leading opaque metadata block when the buffer starts with binary."""
    if len(decrypted) <= METADATA_BLOCK_SIZE or _is_printable(decrypted[0]):
        return None
    remainder = decrypted[METADATA_BLOCK_SIZE:]
    if not _is_printable(remainder[0]):
        return None
    return _decode(remainder)


def raw_payload(decrypted: bytearray) -> Optional[str]:
    return _decode(decrypted)


RECOVERY_STRATEGIES: Tuple[Callable[[bytearray], Optional[str]], ...] = (
    find_session_marker,
    skip_metadata_block,
    raw_payload,
)


def recover_payload(decrypted: bytearray) -> Optional[str]:
    """Try each recovery strategy in order and return the first usable token."""
    for strategy in RECOVERY_STRATEGIES:
        token = strategy(decrypted)
        if token:
            return token
    return None


def decrypt_cookie_value(plain_value: bytes, encrypted_value: bytes, key: Optional[EncryptionKey]) -> Optional[str]:
    """
    Turn one stored cookie into a usable token, or None when it has to be discarded.

    Plain values win; values without a version marker are legacy plaintext;
    everything else is decrypted with the derived key and unwrapped.
    """
    if plain_value:
        return _decode(plain_value)
    if not encrypted_value:
        return None

    marker, ciphertext = split_version_marker(encrypted_value)
    if marker is None:
        return _decode(encrypted_value)

    if key is None:
        logger.debug(f"Cookie is {marker.decode()} encrypted but no decryption key is available")
        return None

    decrypted = decrypt_ciphertext(ciphertext, key)
    if decrypted is None:
        return None
    try:
        return recover_payload(decrypted)
    finally:
        wipe_buffer(decrypted)
