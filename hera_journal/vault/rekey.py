"""
Vault Re-keying — Password change and migration of historical artifacts.

Both operations open the artifact with the current password and reseal the
journal with fresh salt, nonce and key in the canonical format. The old
artifact is never modified; the caller decides when to overwrite it.

Security Note:
    Plaintext exists in memory only between open and reseal.
    Never log passwords, plaintext or ciphertext values.
"""
import logging

from .codec import VaultArtifact, decode_artifact
from .exceptions import EmptyPassword, InvalidCredentials
from .service import ArtifactLike, JournalVault

logger = logging.getLogger("hera.vault")


async def change_password(
    vault: JournalVault,
    artifact: ArtifactLike,
    old_password: str,
    new_password: str,
) -> VaultArtifact:
    """Reseal the journal in an artifact under a new password.

    Args:
        vault: Vault service used to open and reseal.
        artifact: Current artifact (or its text).
        old_password: Password that opens the artifact.
        new_password: Replacement password; must not be empty.

    Returns:
        New artifact sealed under new_password.

    Raises:
        EmptyPassword: If either password is empty.
        InvalidCredentials: If old_password does not open the artifact.
        CorruptVault: If the artifact payload is damaged.
    """
    if not new_password:
        raise EmptyPassword("New password cannot be empty")
    try:
        state = await vault.open(artifact, old_password)
    except InvalidCredentials:
        logger.warning("Password change rejected: credentials mismatch")
        raise
    new_artifact = await vault.reseal(state, new_password)
    logger.info("Vault password changed (version=%s)", new_artifact.version)
    return new_artifact


async def migrate_artifact(
    vault: JournalVault,
    artifact: ArtifactLike,
    password: str,
) -> VaultArtifact:
    """Upgrade any supported artifact to the canonical format.

    Canonical artifacts are resealed as well, which refreshes their
    randomness without changing the journal.

    Returns:
        Artifact in the vault's writable format.
    """
    if not isinstance(artifact, VaultArtifact):
        artifact = decode_artifact(artifact)
    state = await vault.open(artifact, password)
    new_artifact = await vault.reseal(state, password)
    logger.info(
        "Vault artifact migrated from %s to %s",
        artifact.version, new_artifact.version,
    )
    return new_artifact
