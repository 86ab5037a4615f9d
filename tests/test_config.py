"""
Tests for VaultConfig.
"""
import pytest
from pydantic import ValidationError

from hera_journal.session import JournalSession
from hera_journal.vault.config import VaultConfig
from hera_journal.vault.storage import FileStore, MemoryStore

ENV_VARS = (
    "HERA_VAULT_STORAGE_KEY",
    "HERA_VAULT_SAVE_DELAY",
    "HERA_VAULT_IDLE_TIMEOUT",
    "HERA_VAULT_DIR",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestVaultConfig:
    """Tests for defaults and validation."""

    def test_defaults(self):
        config = VaultConfig()
        assert config.storage_key == "hera_vault"
        assert config.save_delay == 1.0
        assert config.idle_timeout == 300.0
        assert config.vault_dir is None

    @pytest.mark.parametrize("field,value", [
        ("save_delay", 0),
        ("idle_timeout", -1),
        ("storage_key", ""),
        ("storage_key", "a/b"),
        ("storage_key", " padded "),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            VaultConfig(**{field: value})


class TestFromEnv:
    """Tests for VaultConfig.from_env."""

    def test_unset_env_uses_defaults(self, clean_env):
        assert VaultConfig.from_env() == VaultConfig()

    def test_env_overrides(self, clean_env, tmp_path):
        clean_env.setenv("HERA_VAULT_STORAGE_KEY", "journal")
        clean_env.setenv("HERA_VAULT_SAVE_DELAY", "0.5")
        clean_env.setenv("HERA_VAULT_IDLE_TIMEOUT", "60")
        clean_env.setenv("HERA_VAULT_DIR", str(tmp_path))
        config = VaultConfig.from_env()
        assert config.storage_key == "journal"
        assert config.save_delay == 0.5
        assert config.idle_timeout == 60.0
        assert config.vault_dir == str(tmp_path)

    def test_invalid_env(self, clean_env):
        clean_env.setenv("HERA_VAULT_IDLE_TIMEOUT", "soon")
        with pytest.raises(ValidationError):
            VaultConfig.from_env()


class TestSessionStoreSelection:
    """The session picks its adapter from the configuration."""

    def test_memory_by_default(self):
        assert isinstance(JournalSession().store, MemoryStore)

    def test_file_store_with_directory(self, tmp_path):
        session = JournalSession(config=VaultConfig(vault_dir=str(tmp_path)))
        assert isinstance(session.store, FileStore)
        assert session.store.directory == tmp_path
