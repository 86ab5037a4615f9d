"""Cycle insights computed from decrypted journal entries.

- ``cycle_day`` — position in the current cycle, counted from the most
  recent medium/heavy flow day.
- ``fertility_score`` — weighted product of normalised mucus, temperature,
  LH, cervix and stress signals, log-scaled to 0..10000.
- ``analyze_history`` / ``predict`` / ``cycle_phase`` — period starts,
  average cycle length, next period, ovulation and fertile window.
"""
import math
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Literal, Optional, Union

from .journal import CycleDay

FertilityStatus = Literal[
    "FERTILE_PEAK", "HIGH_FERTILITY", "WAITING", "LUTEAL_LOCK", "STRESS_BLOCK"
]

WEIGHTS = {
    "mucus": 2.5,
    "temperature": 2.2,
    "lh": 1.9,
    "cervix": 1.5,
    "stress": 1.4,
}

MUCUS_SCALE = {
    "none": 0, "dry": 1, "sticky": 3, "creamy": 5, "watery": 8, "eggwhite": 10,
}
LH_SCALE = {"negative": 0, "faint": 2, "equal": 7, "peak": 10}
CERVIX_SCALE = {"low_hard": 1, "med_firm": 5, "high_soft": 10}

MAX_SCORE = 10_000
PERIOD_FLOWS = frozenset({"medium", "heavy"})
DEFAULT_TEMPERATURE = 36.5

DIRECTIVES = {
    "STRESS_BLOCK": (
        "Cortisol override detected. HPO axis suppressed. "
        "Initiate regulation protocol."
    ),
    "FERTILE_PEAK": "Window open: probability above 90%.",
    "HIGH_FERTILITY": "Window opening: probability rising. Monitor LH every 4 hours.",
    "LUTEAL_LOCK": "Window closed. Progesterone dominance confirmed.",
    "WAITING": "Maintain baseline monitoring.",
}


@dataclass(frozen=True)
class FertilityReading:
    score: int
    status: FertilityStatus
    directive: str
    probability: float
    vector: str


def _as_date(value: Union[str, date]) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value)


def cycle_day(entries: Iterable[CycleDay], target: Union[str, date]) -> int:
    """Return the 1-based cycle day of ``target``.

    The cycle starts at the latest medium or heavy flow entry dated on or
    before the target. Without one the target is day 1.
    """
    target_date = _as_date(target)
    starts = [
        _as_date(entry.date) for entry in entries
        if entry.flow in PERIOD_FLOWS and _as_date(entry.date) <= target_date
    ]
    if not starts:
        return 1
    return (target_date - max(starts)).days + 1


def _temperature_signal(temperature: float, day: int) -> int:
    if temperature < 36.1:
        return 2
    if 36.4 < temperature < 36.7 and day < 14:
        return 8
    if temperature >= 36.7 and day >= 14:
        return 9
    return 5


def fertility_score(entry: CycleDay, day: int) -> FertilityReading:
    """Score a day's observations.

    Args:
        entry: Observations for the day.
        day: Cycle day of the entry (see ``cycle_day``).

    Returns:
        FertilityReading with a 0..10000 score and its status.
    """
    mucus = MUCUS_SCALE.get(entry.mucus, 0)
    lh = LH_SCALE.get(entry.lh_test, 0)
    cervix = CERVIX_SCALE.get(entry.cervix, 1)
    temperature = _temperature_signal(
        entry.temperature if entry.temperature is not None else DEFAULT_TEMPERATURE,
        day,
    )
    stress = max(entry.stress_level, 1)

    raw = (
        mucus ** WEIGHTS["mucus"]
        * temperature ** WEIGHTS["temperature"]
        * (lh or 1) ** WEIGHTS["lh"]
        * cervix ** WEIGHTS["cervix"]
    ) / stress ** WEIGHTS["stress"]
    score = min(round(math.log10(raw + 1) * 2000), MAX_SCORE)

    if stress > 7:
        status = "STRESS_BLOCK"
    elif score >= 7500:
        status = "FERTILE_PEAK"
    elif score >= 5000:
        status = "HIGH_FERTILITY"
    elif day > 20 and temperature > 8:
        status = "LUTEAL_LOCK"
    else:
        status = "WAITING"

    return FertilityReading(
        score=score,
        status=status,
        directive=DIRECTIVES[status],
        probability=score / MAX_SCORE,
        vector=f"M:{mucus} T:{temperature} L:{lh} S:{stress}",
    )


# ---------------------------------------------------------------------------
# Cycle prediction
# ---------------------------------------------------------------------------

DEFAULT_CYCLE_LENGTH = 28
LUTEAL_LENGTH = 14
PERIOD_GAP_DAYS = 10  # period days further apart than this start a new cycle
MIN_CYCLE_LENGTH = 20
MAX_CYCLE_LENGTH = 45
MENSTRUATION_DAYS = 5


class CyclePhase(str, Enum):
    NOT_ENOUGH_DATA = "Not Enough Data"
    MENSTRUATION = "Menstruation"
    FERTILE_WINDOW = "Fertile Window"
    LUTEAL = "Luteal Phase"
    FOLLICULAR = "Follicular Phase"


@dataclass(frozen=True)
class CycleHistory:
    starts: tuple[date, ...]
    avg_length: int

    @property
    def last_start(self) -> Optional[date]:
        return self.starts[-1] if self.starts else None


@dataclass(frozen=True)
class CyclePrediction:
    next_period: Optional[date]
    ovulation: Optional[date]
    fertile_window: tuple[date, ...] = ()


def analyze_history(entries: Iterable[CycleDay]) -> CycleHistory:
    """Find period starts and the average cycle length.

    A medium or heavy flow day starts a period when the previous such day
    is more than ``PERIOD_GAP_DAYS`` earlier. Only cycles between 20 and 45
    days long count towards the average; without any the default 28 is used.
    """
    period_days = sorted(
        _as_date(entry.date) for entry in entries if entry.flow in PERIOD_FLOWS
    )
    starts: list[date] = []
    previous: Optional[date] = None
    for day in period_days:
        if previous is None or (day - previous).days > PERIOD_GAP_DAYS:
            starts.append(day)
        previous = day

    lengths = [
        (later - earlier).days for earlier, later in zip(starts, starts[1:])
        if MIN_CYCLE_LENGTH < (later - earlier).days < MAX_CYCLE_LENGTH
    ]
    if lengths:
        # halves round up
        avg_length = math.floor(sum(lengths) / len(lengths) + 0.5)
    else:
        avg_length = DEFAULT_CYCLE_LENGTH
    return CycleHistory(starts=tuple(starts), avg_length=avg_length)


def predict(
    last_start: Optional[Union[str, date]], avg_length: int = DEFAULT_CYCLE_LENGTH,
) -> CyclePrediction:
    """Predict the next period, ovulation and fertile window.

    Ovulation is placed ``LUTEAL_LENGTH`` days before the next period; the
    fertile window covers the five days before it, the day itself and the
    day after.
    """
    if not last_start:
        return CyclePrediction(next_period=None, ovulation=None)
    next_period = _as_date(last_start) + timedelta(days=avg_length)
    ovulation = next_period - timedelta(days=LUTEAL_LENGTH)
    window = tuple(ovulation + timedelta(days=offset) for offset in range(-5, 2))
    return CyclePrediction(
        next_period=next_period, ovulation=ovulation, fertile_window=window,
    )


def cycle_phase(
    entries: Iterable[CycleDay], today: Optional[Union[str, date]] = None,
) -> CyclePhase:
    """Return the cycle phase of ``today`` (defaults to the current date)."""
    history = analyze_history(entries)
    if history.last_start is None:
        return CyclePhase.NOT_ENOUGH_DATA
    today = _as_date(today) if today is not None else date.today()
    day = (today - history.last_start).days + 1
    if day <= MENSTRUATION_DAYS:
        return CyclePhase.MENSTRUATION
    if today in predict(history.last_start, history.avg_length).fertile_window:
        return CyclePhase.FERTILE_WINDOW
    if day > LUTEAL_LENGTH:
        return CyclePhase.LUTEAL
    return CyclePhase.FOLLICULAR
