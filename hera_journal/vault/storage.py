"""
Vault Storage — Persistence adapters for the sealed artifact.

The vault stores a single artifact under one fixed key. Adapters are
synchronous key-value stores with last-writer-wins semantics; there is no
version check before an overwrite since one process owns the journal.
"""
import os
import logging
import tempfile
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from .exceptions import StorageFailure

logger = logging.getLogger("hera.vault")


@runtime_checkable
class KeyValueStore(Protocol):
    """Host-provided storage slot for the artifact text."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store or overwrite a value."""
        ...

    def remove(self, key: str) -> None:
        """Remove a value; removing a missing key is a no-op."""
        ...


class MemoryStore:
    """In-process store, used for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


class FileStore:
    """Directory-backed store: one UTF-8 file per key, replaced atomically."""

    suffix = ".vault"

    def __init__(self, directory: Union[str, Path]):
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._dir / f"{key}{self.suffix}"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as err:
            raise StorageFailure(f"Cannot read {path.name}: {err}") from err

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as err:
            raise StorageFailure(f"Cannot write {path.name}: {err}") from err
        logger.debug("Stored %s (%d bytes)", path.name, len(value))

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as err:
            raise StorageFailure(f"Cannot remove {path.name}: {err}") from err


def read_artifact(store: KeyValueStore, key: str) -> Optional[str]:
    """Read from any adapter, surfacing adapter errors as StorageFailure."""
    try:
        return store.get(key)
    except StorageFailure:
        raise
    except Exception as err:
        raise StorageFailure(f"Cannot read {key!r}: {err}") from err


def write_artifact(store: KeyValueStore, key: str, value: str) -> None:
    """Write through any adapter, surfacing adapter errors as StorageFailure."""
    try:
        store.set(key, value)
    except StorageFailure:
        raise
    except Exception as err:
        raise StorageFailure(f"Cannot write {key!r}: {err}") from err


def remove_artifact(store: KeyValueStore, key: str) -> None:
    """Remove through any adapter, surfacing adapter errors as StorageFailure."""
    try:
        store.remove(key)
    except StorageFailure:
        raise
    except Exception as err:
        raise StorageFailure(f"Cannot remove {key!r}: {err}") from err
