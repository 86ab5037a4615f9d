"""
Vault Crypto Core — Key derivation, authenticated encryption and key hashing.

Implements the primitives used by the journal vault:
- Key layer: PBKDF2-HMAC-SHA256(password, salt) → 32-byte key
- Seal layer: AES-256-GCM(key, nonce) → ciphertext + 16B tag
- Verification layer: SHA-256(raw key) → auth hash stored beside the artifact

Security Note:
    Never log passwords, keys, plaintext or ciphertext values.
    Salt and nonce are generated fresh by the caller for every seal, so a
    (key, nonce) pair is never reused.
"""
import os
import hmac
import logging

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import EmptyPassword

logger = logging.getLogger("hera.vault")

SALT_SIZE = 16  # 128-bit salt
NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # AES-256
TAG_SIZE = 16  # GCM tag
AUTH_HASH_SIZE = 32  # SHA-256 digest
PBKDF2_ITERATIONS = 600_000
MIN_PBKDF2_ITERATIONS = 500_000  # floor for any format that is written


# ---------------------------------------------------------------------------
# Randomness
# ---------------------------------------------------------------------------

def generate_salt() -> bytes:
    """Return a fresh random salt."""
    return os.urandom(SALT_SIZE)


def generate_nonce() -> bytes:
    """Return a fresh random 96-bit nonce."""
    return os.urandom(NONCE_SIZE)


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(
    password: str,
    salt: bytes,
    iterations: int = PBKDF2_ITERATIONS,
    length: int = KEY_LENGTH,
) -> bytes:
    """Derive a symmetric key from a password using PBKDF2-HMAC-SHA256.

    Args:
        password: User password; must not be empty.
        salt: Random salt stored alongside the artifact.
        iterations: PBKDF2 work factor.
        length: Output key length in bytes.

    Returns:
        Derived key bytes, identical for identical inputs.

    Raises:
        EmptyPassword: If password is empty or None.
    """
    if not password:
        raise EmptyPassword("Password cannot be empty")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def auth_hash(key: bytes) -> bytes:
    """Return SHA-256 of the raw key, used to verify a password before decrypting."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(key)
    return digest.finalize()


def verify_auth_hash(key: bytes, expected: bytes) -> bool:
    """Constant-time comparison of the key's auth hash against a stored one."""
    return hmac.compare_digest(auth_hash(key), expected)


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def seal(key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
    """Encrypt and authenticate plaintext.

    Format: [encrypted_payload][GCM_tag 16B]

    Args:
        key: 32-byte key from derive_key.
        nonce: 12-byte nonce, never reused with the same key.
        plaintext: Data to seal.

    Returns:
        Ciphertext bytes with the tag appended.
    """
    cipher = AESGCM(key)
    return cipher.encrypt(nonce, plaintext, None)


def open_sealed(key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
    """Authenticate and decrypt sealed data.

    Args:
        key: 32-byte key from derive_key.
        nonce: Nonce used when sealing.
        ciphertext: Output of seal().

    Returns:
        Decrypted plaintext bytes.

    Raises:
        cryptography.exceptions.InvalidTag: On a wrong key or any corruption,
            including ciphertext shorter than the tag.
    """
    cipher = AESGCM(key)
    return cipher.decrypt(nonce, ciphertext, None)
