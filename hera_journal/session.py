"""Journal Session.

The session controller owns everything that lives only while the journal is
open: the password, the decrypted ``JournalState``, the debounced save and
the idle timer. The vault itself stays stateless; the persistence adapter
holds the only thing that outlives a session, the sealed artifact.

State machine::

    UNINITIALIZED -> AWAITING_SETUP -> UNLOCKED
    UNINITIALIZED -> AWAITING_PASSWORD -> UNLOCKED | AWAITING_PASSWORD (retry)
    UNLOCKED -> AWAITING_PASSWORD  (lock, idle timeout, password change)

Locking always lets a save already underway finish and then saves any
outstanding changes. The idle lock is forced: if that last save fails the
changes are discarded and the failure is logged.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .export import export_plaintext
from .journal import Action, JournalState, default_state, reduce
from .vault.codec import decode_artifact, encode_artifact
from .vault.config import VaultConfig
from .vault.exceptions import InvalidSessionState, StorageFailure, VaultError
from .vault import rekey
from .vault.service import JournalVault
from .vault.storage import (
    FileStore,
    KeyValueStore,
    MemoryStore,
    read_artifact,
    remove_artifact,
    write_artifact,
)

logger = logging.getLogger("hera.session")


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    AWAITING_SETUP = "awaiting_setup"
    AWAITING_PASSWORD = "awaiting_password"
    UNLOCKED = "unlocked"


class SaveScheduler:
    """Single-slot debounced save.

    ``touch()`` restarts a quiet-period timer; when it fires the callback
    runs once. At most one callback is in flight: a timer that fires during a
    running save queues exactly one trailing save.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]):
        self._delay = delay
        self._callback = callback
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._rerun = False
        self._error: Optional[Exception] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True if a save is scheduled but has not started."""
        return self._timer is not None or self._rerun

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_error(self) -> Optional[Exception]:
        return self._error

    def touch(self) -> None:
        """Schedule a save after the quiet period, restarting any pending timer."""
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        """Drop a scheduled save; a save already running is not interrupted."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._rerun = False

    def _fire(self) -> None:
        self._timer = None
        if self.running:
            self._rerun = True
        else:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            self._rerun = False
            try:
                await self._callback()
            except Exception as err:
                self._error = err
                logger.error("Journal save failed: %s", type(err).__name__)
            else:
                self._error = None
            if not self._rerun:
                break

    async def flush(self) -> None:
        """Run a scheduled save now and wait for any save in flight.

        Raises:
            Exception: The error of the most recent failed save, once.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._fire()
        if self._task is not None:
            await asyncio.shield(self._task)
        err, self._error = self._error, None
        if err is not None:
            raise err

    async def save_now(self) -> None:
        """Start a save immediately (or queue it behind one in flight) and wait."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._fire()
        await self.flush()


class ActivityMonitor:
    """Idle timer fed by activity pulses from the host environment.

    The monitor does not know how activity is detected; the host calls
    ``pulse()`` on input and the monitor calls ``on_timeout`` once the
    window elapses without one.
    """

    def __init__(self, timeout: float, on_timeout: Callable[[], None]):
        self._timeout = timeout
        self._on_timeout = on_timeout
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        self.stop()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._timeout, self._expire)

    def pulse(self) -> None:
        if self._handle is not None:
            self.start()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self) -> None:
        self._handle = None
        self._on_timeout()


class JournalSession:
    """Session context for one journal.

    Holds the password and decrypted journal while unlocked and drives the
    vault and persistence adapter. Create one per application session; the
    object is passed to whatever needs the journal, there is no global.
    """

    def __init__(
        self,
        vault: Optional[JournalVault] = None,
        store: Optional[KeyValueStore] = None,
        config: Optional[VaultConfig] = None,
    ):
        self._config = config or VaultConfig()
        self._vault = vault or JournalVault()
        if store is None:
            store = (
                FileStore(self._config.vault_dir) if self._config.vault_dir
                else MemoryStore()
            )
        self._store = store
        self._key = self._config.storage_key
        self._status = SessionState.UNINITIALIZED
        self._password: Optional[str] = None
        self._state: Optional[JournalState] = None
        self._scheduler = SaveScheduler(self._config.save_delay, self._write)
        self._monitor = ActivityMonitor(self._config.idle_timeout, self._on_idle)
        self._idle_task: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return (
            f'<JournalSession [status:{self._status.value}, '
            f'dirty:{self.dirty}, pending_save:{self.has_pending_save}]>'
        )

    # --- Properties ---

    @property
    def status(self) -> SessionState:
        return self._status

    @property
    def is_unlocked(self) -> bool:
        return self._status is SessionState.UNLOCKED

    @property
    def state(self) -> JournalState:
        """The decrypted journal; only available while unlocked."""
        self._require_unlocked()
        return self._state

    @property
    def dirty(self) -> bool:
        return self._state is not None and self._state.dirty

    @property
    def has_pending_save(self) -> bool:
        return self._scheduler.pending or self._scheduler.running

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def scheduler(self) -> SaveScheduler:
        return self._scheduler

    @property
    def monitor(self) -> ActivityMonitor:
        return self._monitor

    # --- Internal helpers ---

    def _require_unlocked(self) -> None:
        if self._status is not SessionState.UNLOCKED:
            raise InvalidSessionState(
                f"Journal is not unlocked (status={self._status.value})"
            )

    def _transition(self, status: SessionState) -> None:
        if status is not self._status:
            logger.info(
                "Session %s -> %s", self._status.value, status.value,
            )
            self._status = status

    def _enter_unlocked(self, password: str, state: JournalState) -> None:
        self._password = password
        self._state = state
        self._transition(SessionState.UNLOCKED)
        self._monitor.start()

    def _discard(self) -> None:
        self._monitor.stop()
        self._scheduler.cancel()
        self._password = None
        self._state = None

    async def _write(self) -> None:
        """Reseal the current journal and overwrite the stored artifact."""
        if self._status is not SessionState.UNLOCKED or self._password is None:
            return
        snapshot = self._state
        artifact = await self._vault.reseal(snapshot, self._password)
        write_artifact(self._store, self._key, encode_artifact(artifact))
        if self._state is snapshot:
            self._state = reduce(snapshot, Action.MARK_SAVED)
        logger.debug("Journal saved (%d entries)", len(snapshot.cycle_entries))

    def _on_idle(self) -> None:
        if self._status is not SessionState.UNLOCKED:
            return
        logger.info("Session idle for %ss, locking", self._monitor.timeout)
        self._idle_task = asyncio.get_running_loop().create_task(
            self.lock(force=True)
        )
        self._idle_task.add_done_callback(self._idle_done)

    @staticmethod
    def _idle_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            logger.error("Idle lock failed: %s", type(err).__name__)

    async def _settle(self) -> None:
        """Drop scheduled saves and wait for one in flight to finish."""
        self._scheduler.cancel()
        try:
            await self._scheduler.flush()
        except Exception as err:
            logger.error("Save in flight failed: %s", type(err).__name__)

    # --- Lifecycle ---

    def start(self) -> SessionState:
        """Check the persistence adapter for an existing artifact.

        Returns:
            AWAITING_SETUP if none is stored, otherwise AWAITING_PASSWORD.
        """
        if self._status is SessionState.UNLOCKED:
            raise InvalidSessionState("Session already unlocked")
        stored = read_artifact(self._store, self._key)
        self._transition(
            SessionState.AWAITING_SETUP if stored is None
            else SessionState.AWAITING_PASSWORD
        )
        return self._status

    async def setup(
        self, password: str, initial_state: Optional[JournalState] = None,
    ) -> JournalState:
        """Create the vault with a first journal and unlock it.

        Raises:
            EmptyPassword: If password is empty.
            StorageFailure: If the artifact cannot be written.
            InvalidSessionState: If a vault already exists.
        """
        if self._status is SessionState.UNINITIALIZED:
            self.start()
        if self._status is not SessionState.AWAITING_SETUP:
            raise InvalidSessionState("A vault already exists")
        state = initial_state if initial_state is not None else default_state()
        artifact = await self._vault.create(password, state)
        write_artifact(self._store, self._key, encode_artifact(artifact))
        self._enter_unlocked(password, reduce(state, Action.LOAD_STATE, state))
        logger.info("Vault created")
        return self._state

    async def unlock(self, password: str) -> JournalState:
        """Open the stored artifact and make its journal the live state.

        On failure the session stays in AWAITING_PASSWORD and the caller may
        retry; failed attempts are not counted.

        Raises:
            EmptyPassword, InvalidCredentials, CorruptVault,
            UnsupportedFormat, MalformedArtifact, StorageFailure.
        """
        if self._status is SessionState.UNINITIALIZED:
            self.start()
        if self._status is SessionState.UNLOCKED:
            raise InvalidSessionState("Session already unlocked")
        if self._status is SessionState.AWAITING_SETUP:
            raise InvalidSessionState("No vault exists yet; run setup first")
        text = read_artifact(self._store, self._key)
        if text is None:
            self._transition(SessionState.AWAITING_SETUP)
            raise StorageFailure("No vault artifact stored")
        artifact = decode_artifact(text)
        try:
            state = await self._vault.open(artifact, password)
        except VaultError as err:
            logger.info("Unlock attempt failed: %s", type(err).__name__)
            raise
        self._enter_unlocked(password, reduce(state, Action.LOAD_STATE, state))
        if artifact.version != self._vault.format_version:
            logger.info(
                "Scheduling upgrade of %s artifact to %s",
                artifact.version, self._vault.format_version,
            )
            self._state = self._state.model_copy(update={"dirty": True})
            self._scheduler.touch()
        return self._state

    def dispatch(self, action: Action, payload: Any = None) -> JournalState:
        """Apply a journal action; changes are saved after a quiet period.

        Raises:
            InvalidSessionState: If the journal is locked.
            ValueError: If the action or payload is invalid.
        """
        self._require_unlocked()
        self._state = reduce(self._state, action, payload)
        self._monitor.pulse()
        if self._state.dirty:
            self._scheduler.touch()
        return self._state

    def pulse(self) -> None:
        """Record user activity; restarts the idle timer."""
        if self._status is SessionState.UNLOCKED:
            self._monitor.pulse()

    async def save(self) -> None:
        """Save now, coalescing with any scheduled or running save.

        Raises:
            StorageFailure: If the artifact cannot be written; the journal
                stays dirty.
        """
        self._require_unlocked()
        await self._scheduler.save_now()

    async def flush(self) -> None:
        """Run a scheduled save immediately and wait for saves in flight."""
        await self._scheduler.flush()

    async def lock(self, force: bool = False) -> None:
        """Lock the journal, saving outstanding changes first.

        Args:
            force: Discard the journal even if the final save fails (used by
                the idle timeout). Without it a failed save keeps the session
                unlocked and re-raises, so nothing is lost silently.
        """
        if self._status is not SessionState.UNLOCKED:
            return
        self._monitor.stop()
        try:
            await self._scheduler.flush()
            if self.dirty:
                await self._scheduler.save_now()
        except Exception as err:
            if not force:
                self._monitor.start()
                raise
            logger.error(
                "Discarding unsaved journal changes on lock: %s",
                type(err).__name__,
            )
        self._discard()
        self._transition(SessionState.AWAITING_PASSWORD)

    async def change_password(self, old_password: str, new_password: str) -> None:
        """Reseal the journal under a new password, then lock.

        Raises:
            EmptyPassword: If the new password is empty.
            InvalidCredentials: If old_password is wrong; the session stays
                unlocked.
        """
        self._require_unlocked()
        await self.flush()
        if self.dirty:
            await self.save()
        stored = read_artifact(self._store, self._key)
        if stored is None:
            raise StorageFailure("No vault artifact stored")
        artifact = await rekey.change_password(
            self._vault, stored, old_password, new_password,
        )
        write_artifact(self._store, self._key, encode_artifact(artifact))
        self._discard()
        self._transition(SessionState.AWAITING_PASSWORD)

    # --- Backup & reset ---

    async def export_artifact(self) -> str:
        """Return the stored artifact text as an encrypted backup."""
        if self._status is SessionState.UNLOCKED:
            await self.flush()
        text = read_artifact(self._store, self._key)
        if text is None:
            raise StorageFailure("No vault artifact stored")
        return text

    def export_plaintext(self) -> bytes:
        """Export the live journal without encryption (emits a warning)."""
        self._require_unlocked()
        return export_plaintext(self._state)

    async def restore_artifact(self, text: str) -> None:
        """Replace the stored vault with a backup artifact and lock.

        Raises:
            MalformedArtifact: If text is not a valid artifact.
            UnsupportedFormat: If its version is unknown.
        """
        decode_artifact(text)
        if self._status is SessionState.UNLOCKED:
            await self._settle()
        write_artifact(self._store, self._key, text)
        self._discard()
        self._transition(SessionState.AWAITING_PASSWORD)
        logger.info("Vault restored from backup")

    async def reset(self) -> None:
        """Delete the stored vault; the session returns to AWAITING_SETUP."""
        await self._settle()
        remove_artifact(self._store, self._key)
        self._discard()
        self._transition(SessionState.AWAITING_SETUP)
        logger.info("Vault removed")
