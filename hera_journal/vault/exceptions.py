"""
Vault Exceptions — Error taxonomy for the journal vault.

Every vault failure derives from ``VaultError`` so the session layer can
catch the family, while the concrete class tells it what to ask the user.

Security Note:
    Exception messages never carry passwords, key material or plaintext.
"""


class VaultError(Exception):
    """Base class for all vault failures."""


class EmptyPassword(VaultError, ValueError):
    """An empty or missing password was supplied; never reaches the cipher."""


class InvalidCredentials(VaultError):
    """The supplied password does not open the artifact.

    For legacy artifacts without an auth hash this also covers tampered
    ciphertext, since the two cases cannot be told apart.
    """


class CorruptVault(VaultError):
    """The key is correct but the sealed payload fails authentication or parsing."""


class UnsupportedFormat(VaultError, ValueError):
    """The artifact declares a format version this codec does not understand."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Unsupported vault format version: {version!r}")


class MalformedArtifact(VaultError, ValueError):
    """The artifact text is not a structurally valid vault record."""


class StorageFailure(VaultError):
    """The persistence adapter could not read, write or remove the artifact."""


class InvalidSessionState(VaultError, RuntimeError):
    """The operation is not allowed in the session's current state."""
