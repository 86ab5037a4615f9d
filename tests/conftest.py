"""Shared fixtures for the journal vault tests."""
import pytest

from hera_journal.journal import CycleDay, JournalState, UserProfile
from hera_journal.vault.exceptions import StorageFailure
from hera_journal.vault.storage import MemoryStore


class CountingStore(MemoryStore):
    """MemoryStore that records every write and can be told to fail."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.writes: list[str] = []
        self.fail_writes = False

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.writes.append(value)
        super().set(key, value)


class BrokenStore:
    """Adapter whose every operation fails."""

    def get(self, key):
        raise StorageFailure("backend offline")

    def set(self, key, value):
        raise StorageFailure("backend offline")

    def remove(self, key):
        raise StorageFailure("backend offline")


@pytest.fixture
def store():
    return CountingStore()


@pytest.fixture
def journal():
    """A journal with a customised profile and two entries."""
    return JournalState(
        profile=UserProfile(
            display_name="Hera", theme="serenity",
            temperature_unit="F", language="es",
        ),
        cycle_entries=(
            CycleDay(date="2024-01-01", flow="heavy", stress_level=3),
            CycleDay(
                date="2024-01-02", temperature=36.55, mucus="creamy",
                flow="light", cervix="med_firm", lh_test="faint",
                stress_level=2, notes="slept badly",
            ),
        ),
        last_synced=1_704_067_200_000,
        dirty=False,
    )


@pytest.fixture
def broken_store():
    return BrokenStore()
