"""Journal State.

Plaintext payload sealed inside the vault: a user profile plus one
``CycleDay`` per calendar date. State is immutable from the caller's point
of view; ``reduce`` returns a new ``JournalState`` for every action.

The sealed document uses the camelCase keys written by the browser app
(``cycleData``, ``lhTest``, ``lastSynced`` ...), so artifacts from either
side open with the other. Python code uses the snake_case field names;
both spellings are accepted on input.
"""
import time
from enum import Enum
from typing import Any, Literal, Mapping, Optional

import orjson
from pydantic import BaseModel, Field, model_validator

Theme = Literal["blush", "serenity", "nature"]
Unit = Literal["C", "F"]
Language = Literal["en", "es", "fr"]
FlowIntensity = Literal["none", "spotting", "light", "medium", "heavy"]
MucusType = Literal["none", "dry", "sticky", "creamy", "eggwhite", "watery"]
CervixPosition = Literal["low_hard", "med_firm", "high_soft"]
LHResult = Literal["negative", "faint", "equal", "peak"]


def now_ms() -> int:
    return int(time.time() * 1000)


class UserProfile(BaseModel):
    """Display preferences of the journal owner.

    Unknown keys (avatar, AI settings, API keys) are dropped on load and
    never resealed.
    """

    display_name: str = Field(default="User", alias="name")
    theme: Theme = "blush"
    temperature_unit: Unit = Field(default="C", alias="unit")
    language: Language = Field(default="en", alias="lang")

    model_config = {"frozen": True, "extra": "ignore", "populate_by_name": True}


class CycleDay(BaseModel):
    """Observations recorded for a single date."""

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    temperature: Optional[float] = None
    mucus: MucusType = "none"
    flow: FlowIntensity = "none"
    cervix: CervixPosition = "low_hard"
    lh_test: LHResult = Field(default="negative", alias="lhTest")
    stress_level: int = Field(default=1, ge=1, le=10, alias="stressLevel")
    notes: str = ""

    model_config = {"frozen": True, "extra": "forbid", "populate_by_name": True}


class JournalState(BaseModel):
    """The whole journal, as sealed into a vault artifact."""

    profile: UserProfile = Field(default_factory=UserProfile)
    cycle_entries: tuple[CycleDay, ...] = Field(default=(), alias="cycleData")
    last_synced: int = Field(default_factory=now_ms, alias="lastSynced")
    dirty: bool = Field(default=False, alias="unsavedChanges")

    model_config = {"frozen": True, "extra": "forbid", "populate_by_name": True}

    @model_validator(mode="after")
    def validate_unique_dates(self) -> "JournalState":
        """Ensure cycle_entries holds at most one entry per date."""
        seen: set[str] = set()
        for entry in self.cycle_entries:
            if entry.date in seen:
                raise ValueError(f"Duplicate cycle entry for date {entry.date}")
            seen.add(entry.date)
        return self

    def entry_for(self, date: str) -> Optional[CycleDay]:
        """Return the entry recorded for a date, if any."""
        for entry in self.cycle_entries:
            if entry.date == date:
                return entry
        return None

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-ready document with its camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    def to_bytes(self) -> bytes:
        """Serialize to JSON bytes for sealing."""
        return orjson.dumps(self.to_document())

    @classmethod
    def from_bytes(cls, data: bytes) -> "JournalState":
        """Parse JSON bytes produced by to_bytes or by the browser app.

        Raises:
            ValueError: If the document is not valid JSON or not a valid
                journal (pydantic.ValidationError is a ValueError).
        """
        return cls.model_validate(orjson.loads(data))


def default_state() -> JournalState:
    """Return the empty journal created at first setup."""
    return JournalState()


def _by_field_name(model: type[BaseModel], values: Mapping[str, Any]) -> dict[str, Any]:
    """Translate camelCase keys of a partial update to field names."""
    aliases = {
        field.alias: name for name, field in model.model_fields.items() if field.alias
    }
    return {aliases.get(key, key): value for key, value in values.items()}


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

class Action(str, Enum):
    LOAD_STATE = "LOAD_STATE"
    UPDATE_PROFILE = "UPDATE_PROFILE"
    UPDATE_CYCLE_DAY = "UPDATE_CYCLE_DAY"
    RESET_APP = "RESET_APP"
    MARK_SAVED = "MARK_SAVED"


def upsert_entry(
    entries: tuple[CycleDay, ...], entry: CycleDay
) -> tuple[CycleDay, ...]:
    """Replace the entry with the same date in place, or append a new one."""
    for index, existing in enumerate(entries):
        if existing.date == entry.date:
            return entries[:index] + (entry,) + entries[index + 1:]
    return entries + (entry,)


def reduce(state: JournalState, action: Action, payload: Any = None) -> JournalState:
    """Apply an action and return the resulting state.

    Args:
        state: Current journal.
        action: Action to apply.
        payload: ``JournalState`` for LOAD_STATE, a partial profile mapping
            (field names or camelCase keys) for UPDATE_PROFILE, a
            ``CycleDay`` (or mapping) for
            UPDATE_CYCLE_DAY; ignored otherwise.

    Returns:
        New JournalState.

    Raises:
        ValueError: If the action is unknown or the payload is invalid.
    """
    action = Action(action)
    if action is Action.LOAD_STATE:
        loaded = (
            payload if isinstance(payload, JournalState)
            else JournalState.model_validate(payload)
        )
        return loaded.model_copy(update={"dirty": False})
    if action is Action.UPDATE_PROFILE:
        profile = UserProfile.model_validate({
            **state.profile.model_dump(),
            **_by_field_name(UserProfile, payload or {}),
        })
        return state.model_copy(update={"profile": profile, "dirty": True})
    if action is Action.UPDATE_CYCLE_DAY:
        entry = payload if isinstance(payload, CycleDay) else CycleDay.model_validate(payload)
        return state.model_copy(update={
            "cycle_entries": upsert_entry(state.cycle_entries, entry),
            "dirty": True,
        })
    if action is Action.RESET_APP:
        return default_state()
    # MARK_SAVED
    return state.model_copy(update={"dirty": False, "last_synced": now_ms()})
