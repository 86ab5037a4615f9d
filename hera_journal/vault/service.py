"""
JournalVault — Password-derived encryption vault for the journal.

Provides the public API of the vault:
- ``create(password, state)`` — seal the initial journal into a new artifact
- ``open(artifact, password)`` — verify the password and unseal a journal
- ``reseal(state, password)`` — seal an updated journal with fresh randomness
- ``verify(artifact, password)`` — check a password without decrypting

Every seal draws a new salt and nonce, so the key is re-derived on each save
and a (key, nonce) pair is never reused.

Security Note:
    Never log passwords, keys, auth hashes, plaintext or ciphertext. Only log
    format versions, payload sizes and failure classes. The decrypted journal
    lives in process memory while the session is unlocked; this is an
    accepted limitation.
"""
import asyncio
import logging
from typing import Union

from cryptography.exceptions import InvalidTag

from ..journal import JournalState, now_ms
from .codec import (
    CANONICAL_FORMAT,
    VaultArtifact,
    decode_artifact,
    get_format,
)
from .crypto import (
    auth_hash,
    derive_key,
    generate_nonce,
    generate_salt,
    open_sealed,
    seal,
    verify_auth_hash,
)
from .exceptions import (
    CorruptVault,
    EmptyPassword,
    InvalidCredentials,
)

logger = logging.getLogger("hera.vault")

ArtifactLike = Union[VaultArtifact, str, bytes]


class JournalVault:
    """Seals and opens journal state under a user password.

    The vault is stateless: it holds no password or key between calls. The
    session controller owns the password and the persistence adapter.
    """

    def __init__(self, format_version: str = CANONICAL_FORMAT):
        fmt = get_format(format_version)
        if not fmt.writable:
            raise ValueError(f"Format {format_version} is read-only")
        self._format = fmt

    @property
    def format_version(self) -> str:
        return self._format.version

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_password(password: str) -> None:
        if not password:
            raise EmptyPassword("Password cannot be empty")

    @staticmethod
    def _coerce(artifact: ArtifactLike) -> VaultArtifact:
        """Decode artifact text; pass decoded artifacts through."""
        if isinstance(artifact, VaultArtifact):
            return artifact
        return decode_artifact(artifact)

    async def _derive(self, password: str, salt: bytes, iterations: int) -> bytes:
        # PBKDF2 is CPU-bound; keep it off the event loop
        return await asyncio.to_thread(derive_key, password, salt, iterations)

    def _seal_state(self, state: JournalState, key: bytes, salt: bytes) -> VaultArtifact:
        nonce = generate_nonce()
        plaintext = state.to_bytes()
        ciphertext = seal(key, nonce, plaintext)
        return VaultArtifact(
            salt=salt,
            iv=nonce,
            data=ciphertext,
            version=self._format.version,
            auth_hash=auth_hash(key) if self._format.has_auth_hash else None,
            timestamp=now_ms(),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def create(self, password: str, initial_state: JournalState) -> VaultArtifact:
        """Seal a journal into a brand-new artifact.

        Args:
            password: User password; must not be empty.
            initial_state: Journal to seal.

        Returns:
            New VaultArtifact in the canonical format.

        Raises:
            EmptyPassword: If password is empty.
        """
        self._check_password(password)
        salt = generate_salt()
        key = await self._derive(password, salt, self._format.iterations)
        artifact = self._seal_state(initial_state, key, salt)
        logger.debug(
            "Vault sealed: version=%s entries=%d size=%dB",
            artifact.version, len(initial_state.cycle_entries), len(artifact.data),
        )
        return artifact

    async def reseal(self, state: JournalState, password: str) -> VaultArtifact:
        """Seal an updated journal for a routine save.

        Identical to ``create``: a new salt, key and nonce are drawn every
        time, nothing is reused from the previous artifact.
        """
        return await self.create(password, state)

    async def verify(self, artifact: ArtifactLike, password: str) -> bool:
        """Check a password against an artifact without decrypting it.

        Legacy artifacts carry no auth hash, so for them this falls back to a
        trial decryption.

        Raises:
            EmptyPassword: If password is empty.
            MalformedArtifact: If artifact text is not a valid artifact.
            UnsupportedFormat: If the artifact version is unknown.
        """
        self._check_password(password)
        artifact = self._coerce(artifact)
        fmt = artifact.format
        key = await self._derive(password, artifact.salt, fmt.iterations)
        if artifact.auth_hash is not None:
            return verify_auth_hash(key, artifact.auth_hash)
        try:
            open_sealed(key, artifact.iv, artifact.data)
        except InvalidTag:
            return False
        return True

    async def open(self, artifact: ArtifactLike, password: str) -> JournalState:
        """Verify the password and unseal the journal.

        Args:
            artifact: VaultArtifact or its encoded text.
            password: User password.

        Returns:
            The sealed JournalState, field for field.

        Raises:
            EmptyPassword: If password is empty.
            MalformedArtifact: If artifact text is not a valid artifact.
            UnsupportedFormat: If the artifact version is unknown.
            InvalidCredentials: If the password is wrong (or, for legacy
                artifacts without an auth hash, the payload is corrupt).
            CorruptVault: If the password is right but the payload fails
                authentication or is not a valid journal.
        """
        self._check_password(password)
        artifact = self._coerce(artifact)
        fmt = artifact.format
        key = await self._derive(password, artifact.salt, fmt.iterations)

        if artifact.auth_hash is not None:
            if not verify_auth_hash(key, artifact.auth_hash):
                logger.warning("Vault open rejected: credentials mismatch")
                raise InvalidCredentials("Invalid password")
            verified = True
        else:
            verified = False

        try:
            plaintext = open_sealed(key, artifact.iv, artifact.data)
        except InvalidTag as err:
            if verified:
                logger.error(
                    "Vault payload failed authentication: version=%s",
                    artifact.version,
                )
                raise CorruptVault(
                    "Vault payload failed authentication; restore from a backup"
                ) from err
            logger.warning(
                "Vault open rejected: decryption failed (version=%s)",
                artifact.version,
            )
            raise InvalidCredentials("Invalid password or corrupt vault") from err

        try:
            state = JournalState.from_bytes(plaintext)
        except ValueError as err:
            logger.error(
                "Vault payload is not a valid journal: version=%s", artifact.version,
            )
            raise CorruptVault("Vault payload is not a valid journal") from err

        logger.debug(
            "Vault opened: version=%s entries=%d",
            artifact.version, len(state.cycle_entries),
        )
        return state
