"""
Vault Configuration — Validated settings for the journal vault.

Reads optional overrides from environment variables:
    HERA_VAULT_STORAGE_KEY = <key the artifact is stored under>
    HERA_VAULT_SAVE_DELAY = <seconds of quiet before a save fires>
    HERA_VAULT_IDLE_TIMEOUT = <seconds of inactivity before auto-lock>
    HERA_VAULT_DIR = <directory for the file-backed store>

Security Note:
    Passwords are never part of configuration and are never logged.
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("hera.vault")

DEFAULT_STORAGE_KEY = "hera_vault"
DEFAULT_SAVE_DELAY = 1.0
DEFAULT_IDLE_TIMEOUT = 300.0


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    storage_key: str = Field(default=DEFAULT_STORAGE_KEY, min_length=1)
    save_delay: float = Field(default=DEFAULT_SAVE_DELAY, gt=0)
    idle_timeout: float = Field(default=DEFAULT_IDLE_TIMEOUT, gt=0)
    vault_dir: Optional[str] = None

    @field_validator("storage_key")
    @classmethod
    def validate_storage_key(cls, v: str) -> str:
        """Storage keys are a single path-safe token."""
        if "/" in v or "\\" in v or v.strip() != v:
            raise ValueError(f"Invalid storage key: {v!r}")
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Unset variables fall back to the field defaults.

        Returns:
            Populated VaultConfig instance.
        """
        env = {
            "storage_key": os.environ.get("HERA_VAULT_STORAGE_KEY"),
            "save_delay": os.environ.get("HERA_VAULT_SAVE_DELAY"),
            "idle_timeout": os.environ.get("HERA_VAULT_IDLE_TIMEOUT"),
            "vault_dir": os.environ.get("HERA_VAULT_DIR"),
        }
        values = {name: value for name, value in env.items() if value is not None}
        config = cls(**values)
        logger.debug(
            "Vault config loaded: storage_key=%s idle_timeout=%s",
            config.storage_key, config.idle_timeout,
        )
        return config
