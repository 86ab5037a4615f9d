"""
Vault Artifact Codec — Transportable text encoding of sealed journals.

An artifact is stored as a JSON object:

    {"salt": b64, "iv": b64, "authHash": b64, "data": b64,
     "version": "v98-gold", "timestamp": <epoch ms>}

Binary fields are base64. Each format version declares which fields it
requires; ``decode_artifact`` validates them before anything reaches the
KDF or the cipher.
"""
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Optional

import orjson

from .crypto import (
    SALT_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    AUTH_HASH_SIZE,
    MIN_PBKDF2_ITERATIONS,
    PBKDF2_ITERATIONS,
)
from .exceptions import MalformedArtifact, UnsupportedFormat

logger = logging.getLogger("hera.vault")


@dataclass(frozen=True)
class ArtifactFormat:
    """Parameters fixed by an artifact format version."""

    version: str
    iterations: int
    has_auth_hash: bool
    writable: bool = False

    def __post_init__(self):
        if self.writable and self.iterations < MIN_PBKDF2_ITERATIONS:
            raise ValueError(
                f"Writable format {self.version} needs at least "
                f"{MIN_PBKDF2_ITERATIONS} PBKDF2 iterations, got {self.iterations}"
            )

    @property
    def required_fields(self) -> tuple[str, ...]:
        if self.has_auth_hash:
            return ("salt", "iv", "authHash", "data")
        return ("salt", "iv", "data")


CANONICAL_FORMAT = "v98-gold"
LEGACY_FORMAT = "v1.0-forensic"

FORMATS: dict[str, ArtifactFormat] = {
    CANONICAL_FORMAT: ArtifactFormat(
        version=CANONICAL_FORMAT,
        iterations=PBKDF2_ITERATIONS,
        has_auth_hash=True,
        writable=True,
    ),
    # historical artifacts without a verification hash; read-only
    LEGACY_FORMAT: ArtifactFormat(
        version=LEGACY_FORMAT,
        iterations=PBKDF2_ITERATIONS,
        has_auth_hash=False,
    ),
}

_FIELD_SIZES = {
    "salt": SALT_SIZE,
    "iv": NONCE_SIZE,
    "authHash": AUTH_HASH_SIZE,
}


@dataclass(frozen=True)
class VaultArtifact:
    """A sealed journal: everything needed to reopen it except the password."""

    salt: bytes
    iv: bytes
    data: bytes
    version: str = CANONICAL_FORMAT
    auth_hash: Optional[bytes] = None
    timestamp: Optional[int] = None

    @property
    def format(self) -> ArtifactFormat:
        return get_format(self.version)

    def __repr__(self) -> str:
        return (
            f"<VaultArtifact version={self.version} "
            f"data={len(self.data)}B timestamp={self.timestamp}>"
        )


def get_format(version: Any) -> ArtifactFormat:
    """Return the format record for a version string.

    Raises:
        UnsupportedFormat: If the version is unknown.
    """
    try:
        return FORMATS[version]
    except (KeyError, TypeError):
        raise UnsupportedFormat(str(version)) from None


def _b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _unb64(record: dict, name: str) -> bytes:
    value = record[name]
    if not isinstance(value, str):
        raise MalformedArtifact(f"Field {name!r} must be a base64 string")
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        raise MalformedArtifact(f"Field {name!r} is not valid base64") from err
    expected = _FIELD_SIZES.get(name)
    if expected is not None and len(raw) != expected:
        raise MalformedArtifact(
            f"Field {name!r} must decode to {expected} bytes, got {len(raw)}"
        )
    return raw


def encode_artifact(artifact: VaultArtifact) -> str:
    """Serialize an artifact to its transportable JSON text.

    Args:
        artifact: Sealed journal to encode.

    Returns:
        JSON string with base64 binary fields.
    """
    record: dict[str, Any] = {
        "salt": _b64(artifact.salt),
        "iv": _b64(artifact.iv),
    }
    if artifact.auth_hash is not None:
        record["authHash"] = _b64(artifact.auth_hash)
    record["data"] = _b64(artifact.data)
    record["version"] = artifact.version
    if artifact.timestamp is not None:
        record["timestamp"] = artifact.timestamp
    return orjson.dumps(record).decode("utf-8")


def decode_artifact(text: Any) -> VaultArtifact:
    """Parse artifact text and validate it against its declared format.

    Args:
        text: JSON text (str or bytes) produced by encode_artifact.

    Returns:
        Decoded VaultArtifact.

    Raises:
        MalformedArtifact: If the text is not a structurally valid artifact.
        UnsupportedFormat: If the declared version is unknown.
    """
    if not isinstance(text, (str, bytes, bytearray)):
        raise MalformedArtifact(
            f"Artifact must be text, got {type(text).__name__}"
        )
    try:
        record = orjson.loads(text)
    except orjson.JSONDecodeError as err:
        raise MalformedArtifact("Artifact is not valid JSON") from err
    if not isinstance(record, dict):
        raise MalformedArtifact("Artifact must be a JSON object")
    if "version" not in record:
        raise MalformedArtifact("Artifact is missing 'version'")

    fmt = get_format(record["version"])
    missing = [name for name in fmt.required_fields if name not in record]
    if missing:
        raise MalformedArtifact(
            f"Artifact {fmt.version} is missing field(s): {', '.join(missing)}"
        )

    data = _unb64(record, "data")
    if len(data) < TAG_SIZE:
        raise MalformedArtifact(
            f"Field 'data' too short: {len(data)} bytes (minimum {TAG_SIZE})"
        )
    timestamp = record.get("timestamp")
    if timestamp is not None and (
        isinstance(timestamp, bool) or not isinstance(timestamp, (int, float))
    ):
        raise MalformedArtifact("Field 'timestamp' must be a number")

    return VaultArtifact(
        salt=_unb64(record, "salt"),
        iv=_unb64(record, "iv"),
        data=data,
        version=fmt.version,
        auth_hash=_unb64(record, "authHash") if fmt.has_auth_hash else None,
        timestamp=int(timestamp) if timestamp is not None else None,
    )
