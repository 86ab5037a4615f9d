"""Journal Vault — Password-derived encryption of the journal.

Security Note (Threat Model):
    The artifact is opaque without the password: it holds the salt, nonce,
    ciphertext and a SHA-256 hash of the derived key, never the key itself.
    While a session is unlocked, the password and the decrypted journal live
    in process memory. There is no rate limiting on unlock attempts; the
    PBKDF2 work factor is the only brute-force cost.
"""

from .codec import (
    CANONICAL_FORMAT,
    LEGACY_FORMAT,
    VaultArtifact,
    decode_artifact,
    encode_artifact,
)
from .config import VaultConfig
from .exceptions import (
    VaultError,
    EmptyPassword,
    InvalidCredentials,
    CorruptVault,
    UnsupportedFormat,
    MalformedArtifact,
    StorageFailure,
    InvalidSessionState,
)
from .rekey import change_password, migrate_artifact
from .service import JournalVault
from .storage import FileStore, KeyValueStore, MemoryStore

__all__ = [
    "JournalVault",
    "VaultArtifact",
    "VaultConfig",
    "encode_artifact",
    "decode_artifact",
    "CANONICAL_FORMAT",
    "LEGACY_FORMAT",
    "change_password",
    "migrate_artifact",
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "VaultError",
    "EmptyPassword",
    "InvalidCredentials",
    "CorruptVault",
    "UnsupportedFormat",
    "MalformedArtifact",
    "StorageFailure",
    "InvalidSessionState",
]
