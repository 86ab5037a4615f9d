"""
Tests for the vault crypto primitives.

Tests cover:
- PBKDF2 key derivation determinism and salt separation
- Empty password rejection
- AES-GCM seal/open, wrong key and truncation failures
- Auth hash computation and verification
"""
import pytest
from cryptography.exceptions import InvalidTag

from hera_journal.vault.crypto import (
    AUTH_HASH_SIZE,
    KEY_LENGTH,
    NONCE_SIZE,
    PBKDF2_ITERATIONS,
    SALT_SIZE,
    TAG_SIZE,
    auth_hash,
    derive_key,
    generate_nonce,
    generate_salt,
    open_sealed,
    seal,
    verify_auth_hash,
)
from hera_journal.vault.exceptions import EmptyPassword, VaultError

# Low work factor keeps the primitive tests fast; the service tests use the real one.
FAST_ITERATIONS = 1_000


@pytest.fixture
def salt():
    return bytes(range(SALT_SIZE))


@pytest.fixture
def key(salt):
    return derive_key("sesame123", salt, FAST_ITERATIONS)


class TestKeyDerivation:
    """Tests for derive_key."""

    def test_reference_work_factor(self):
        assert PBKDF2_ITERATIONS >= 500_000

    def test_key_length(self, key):
        assert len(key) == KEY_LENGTH

    def test_deterministic(self, salt, key):
        assert derive_key("sesame123", salt, FAST_ITERATIONS) == key

    def test_salt_changes_key(self, key):
        other = derive_key("sesame123", b"\xff" * SALT_SIZE, FAST_ITERATIONS)
        assert other != key

    def test_password_changes_key(self, salt, key):
        assert derive_key("sesame124", salt, FAST_ITERATIONS) != key

    def test_iterations_change_key(self, salt, key):
        assert derive_key("sesame123", salt, FAST_ITERATIONS + 1) != key

    def test_custom_length(self, salt):
        assert len(derive_key("pw", salt, FAST_ITERATIONS, length=16)) == 16

    def test_unicode_password(self, salt):
        assert len(derive_key("contraseña-🔒", salt, FAST_ITERATIONS)) == KEY_LENGTH

    @pytest.mark.parametrize("password", ["", None])
    def test_empty_password_rejected(self, salt, password):
        with pytest.raises(EmptyPassword):
            derive_key(password, salt, FAST_ITERATIONS)

    def test_empty_password_is_value_error(self, salt):
        with pytest.raises(ValueError):
            derive_key("", salt, FAST_ITERATIONS)
        assert issubclass(EmptyPassword, VaultError)


class TestRandomness:
    """Tests for salt and nonce generation."""

    def test_sizes(self):
        assert len(generate_salt()) == SALT_SIZE
        assert len(generate_nonce()) == NONCE_SIZE

    def test_fresh_values(self):
        assert generate_salt() != generate_salt()
        assert generate_nonce() != generate_nonce()


class TestAuthenticatedCipher:
    """Tests for seal / open_sealed."""

    def test_seal_open(self, key):
        nonce = generate_nonce()
        ct = seal(key, nonce, b"journal")
        assert ct != b"journal"
        assert len(ct) == len(b"journal") + TAG_SIZE
        assert open_sealed(key, nonce, ct) == b"journal"

    def test_empty_plaintext(self, key):
        nonce = generate_nonce()
        ct = seal(key, nonce, b"")
        assert len(ct) == TAG_SIZE
        assert open_sealed(key, nonce, ct) == b""

    def test_wrong_key_fails(self, salt, key):
        nonce = generate_nonce()
        ct = seal(key, nonce, b"journal")
        other = derive_key("wrong", salt, FAST_ITERATIONS)
        with pytest.raises(InvalidTag):
            open_sealed(other, nonce, ct)

    def test_wrong_nonce_fails(self, key):
        ct = seal(key, b"\x00" * NONCE_SIZE, b"journal")
        with pytest.raises(InvalidTag):
            open_sealed(key, b"\x01" * NONCE_SIZE, ct)

    def test_bit_flip_fails(self, key):
        nonce = generate_nonce()
        ct = bytearray(seal(key, nonce, b"journal"))
        ct[0] ^= 0x01
        with pytest.raises(InvalidTag):
            open_sealed(key, nonce, bytes(ct))

    def test_truncation_fails(self, key):
        nonce = generate_nonce()
        ct = seal(key, nonce, b"journal")
        with pytest.raises(InvalidTag):
            open_sealed(key, nonce, ct[:-1])

    def test_shorter_than_tag_fails(self, key):
        with pytest.raises(InvalidTag):
            open_sealed(key, generate_nonce(), b"short")


class TestAuthHash:
    """Tests for the key verification hash."""

    def test_size(self, key):
        assert len(auth_hash(key)) == AUTH_HASH_SIZE

    def test_hash_is_not_key(self, key):
        assert auth_hash(key) != key

    def test_verify(self, salt, key):
        stored = auth_hash(key)
        assert verify_auth_hash(key, stored) is True
        other = derive_key("wrong", salt, FAST_ITERATIONS)
        assert verify_auth_hash(other, stored) is False
