"""
Tests for the persistence adapters.
"""
import pytest

from hera_journal.vault.exceptions import StorageFailure
from hera_journal.vault.storage import (
    FileStore,
    KeyValueStore,
    MemoryStore,
    read_artifact,
    remove_artifact,
    write_artifact,
)


class TestMemoryStore:
    """Tests for MemoryStore."""

    def test_get_set_remove(self):
        store = MemoryStore()
        assert store.get("k") is None
        store.set("k", "v1")
        store.set("k", "v2")
        assert store.get("k") == "v2"
        assert "k" in store
        assert len(store) == 1
        store.remove("k")
        store.remove("k")
        assert store.get("k") is None

    def test_initial_values(self):
        assert MemoryStore({"k": "v"}).get("k") == "v"

    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(MemoryStore(), KeyValueStore)
        assert isinstance(FileStore(tmp_path), KeyValueStore)


class TestFileStore:
    """Tests for FileStore."""

    def test_missing_key(self, tmp_path):
        assert FileStore(tmp_path).get("hera_vault") is None

    def test_write_and_read(self, tmp_path):
        store = FileStore(tmp_path / "nested")
        store.set("hera_vault", '{"version": "v98-gold"}')
        assert (tmp_path / "nested" / "hera_vault.vault").exists()
        assert store.get("hera_vault") == '{"version": "v98-gold"}'

    def test_overwrite_leaves_no_temp_files(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("hera_vault", "first")
        store.set("hera_vault", "second")
        assert store.get("hera_vault") == "second"
        assert [p.name for p in tmp_path.iterdir()] == ["hera_vault.vault"]

    def test_remove(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("hera_vault", "x")
        store.remove("hera_vault")
        store.remove("hera_vault")
        assert store.get("hera_vault") is None

    @pytest.mark.parametrize("key", ["", "../escape", "a/b", "a\\b", ".."])
    def test_invalid_key(self, tmp_path, key):
        with pytest.raises(ValueError):
            FileStore(tmp_path).get(key)

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(StorageFailure):
            FileStore(blocker).set("hera_vault", "x")


class TestArtifactHelpers:
    """Tests for the adapter-wrapping helpers."""

    def test_passthrough(self):
        store = MemoryStore()
        write_artifact(store, "k", "v")
        assert read_artifact(store, "k") == "v"
        remove_artifact(store, "k")
        assert read_artifact(store, "k") is None

    def test_adapter_errors_wrapped(self):
        class Failing:
            def get(self, key):
                raise OSError("io")

            def set(self, key, value):
                raise RuntimeError("quota exceeded")

            def remove(self, key):
                raise PermissionError("denied")

        store = Failing()
        with pytest.raises(StorageFailure):
            read_artifact(store, "k")
        with pytest.raises(StorageFailure):
            write_artifact(store, "k", "v")
        with pytest.raises(StorageFailure):
            remove_artifact(store, "k")

    def test_storage_failure_not_rewrapped(self, broken_store):
        with pytest.raises(StorageFailure, match="backend offline"):
            read_artifact(broken_store, "k")
