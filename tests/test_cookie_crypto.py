import pytest

from blacksmith_tools.utils.cookie_crypto import (
    EncryptionKey,
    decrypt_cookie_value,
    derive_key,
    find_session_marker,
    raw_payload,
    recover_payload,
    skip_metadata_block,
    split_version_marker,
    strip_padding,
)

from conftest import encrypt_unpadded, encrypt_value

METADATA = bytes(range(0x80, 0xA0))


class TestDeriveKey:
    def test_is_deterministic(self):
        first = derive_key(b"secret", 1003)
        second = derive_key(b"secret", 1003)
        assert first.material == second.material
        assert len(first) == 16

    def test_iterations_change_the_key(self):
        assert derive_key(b"secret", 1003).material != derive_key(b"secret", 1).material

    def test_known_chromium_linux_key(self):
        # PBKDF2-HMAC-SHA1("peanuts", "saltysalt", 1 iteration, 16 bytes)
        assert bytes(derive_key(b"peanuts", 1).material).hex() == "fd621fe5a2b402539dfa147ca9272778"

    def test_wipe_zeroes_material(self):
        key = derive_key(b"secret")
        with key:
            assert any(key.material)
        assert not any(key.material)
        assert "secret" not in repr(key)


class TestDecryptCookieValue:
    @pytest.mark.parametrize(
        "plaintext",
        [b"a", b"0123456789abcdef", b"plain-session-token%3D%3D", b"eyJpdiI6IjEyMyJ9"],
    )
    def test_round_trip(self, mac_key, plaintext):
        encrypted = encrypt_value(plaintext, mac_key.material)
        assert decrypt_cookie_value(b"", encrypted, mac_key) == plaintext.decode()

    def test_v11_marker_is_accepted(self, mac_key):
        encrypted = encrypt_value(b"linux-token", mac_key.material, marker=b"v11")
        assert decrypt_cookie_value(b"", encrypted, mac_key) == "linux-token"

    def test_plain_value_short_circuits(self, mac_key):
        assert decrypt_cookie_value(b"already-plain", b"v10garbage", mac_key) == "already-plain"

    def test_value_without_marker_is_plaintext(self):
        assert decrypt_cookie_value(b"", b"legacy-token", None) == "legacy-token"

    def test_encrypted_value_without_key_is_discarded(self, mac_key):
        encrypted = encrypt_value(b"token", mac_key.material)
        assert decrypt_cookie_value(b"", encrypted, None) is None

    def test_empty_cookie_is_discarded(self, mac_key):
        assert decrypt_cookie_value(b"", b"", mac_key) is None

    @pytest.mark.parametrize("padding_byte", [0, 17, 255])
    def test_out_of_range_padding_is_discarded(self, mac_key, padding_byte):
        block = b"A" * 15 + bytes([padding_byte])
        encrypted = encrypt_unpadded(block, mac_key.material)
        assert decrypt_cookie_value(b"", encrypted, mac_key) is None

    def test_truncated_ciphertext_is_discarded(self, mac_key):
        encrypted = encrypt_value(b"token-value", mac_key.material)
        assert decrypt_cookie_value(b"", encrypted[:-3], mac_key) is None

    def test_metadata_block_is_skipped(self, mac_key):
        encrypted = encrypt_value(METADATA + b"token-body", mac_key.material)
        assert decrypt_cookie_value(b"", encrypted, mac_key) == "token-body"

    def test_session_marker_found_after_prefix(self, mac_key):
        encrypted = encrypt_value(METADATA + b"eyJpdiI6Ik1hYyJ9", mac_key.material)
        assert decrypt_cookie_value(b"", encrypted, mac_key) == "eyJpdiI6Ik1hYyJ9"


class TestRecovery:
    def test_metadata_block_then_token(self):
        assert recover_payload(bytearray(METADATA + b"token-body")) == "token-body"

    def test_marker_at_offset_five(self):
        assert recover_payload(bytearray(b"xx\x01yzeyJ0b2tlbiI6MX0=")) == "eyJ0b2tlbiI6MX0="

    def test_marker_search_ignores_prefix_content(self):
        assert find_session_marker(bytearray(b"abcdeeyJtail")) == "eyJtail"
        assert find_session_marker(bytearray(b"no marker here")) is None

    def test_metadata_skip_needs_binary_first_byte(self):
        assert skip_metadata_block(bytearray(b"p" * 32 + b"token")) is None

    def test_metadata_skip_needs_printable_remainder(self):
        assert skip_metadata_block(bytearray(METADATA + b"\x01token")) is None

    def test_metadata_skip_needs_more_than_block(self):
        assert skip_metadata_block(bytearray(METADATA)) is None

    def test_raw_fallback(self):
        assert recover_payload(bytearray(b"plain-token")) == "plain-token"

    def test_undecodable_buffer_is_discarded(self):
        assert raw_payload(bytearray(b"\xff\xfe\xfd")) is None
        assert recover_payload(bytearray(b"\xff\xfe\xfd")) is None


class TestHelpers:
    def test_split_version_marker(self):
        assert split_version_marker(b"v10abc") == (b"v10", b"abc")
        assert split_version_marker(b"v20abc") == (None, b"v20abc")

    def test_strip_padding(self):
        assert strip_padding(bytearray(b"abc" + bytes([13]) * 13)) == bytearray(b"abc")
        assert strip_padding(bytearray(b"abc\x00")) is None
        assert strip_padding(bytearray()) is None

    def test_encryption_key_len(self):
        assert len(EncryptionKey(b"\x01" * 16)) == 16
