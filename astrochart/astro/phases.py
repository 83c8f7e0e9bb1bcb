"""
Lunar phase calculations based on a mean synodic month.

The phase of a date is the fraction of the current synodic month elapsed
since a known new moon, so 0 (and the wrap-around back to 0) is new moon
and 0.5 is full moon. This is a bounded approximation of the real lunation
and drifts by hours from observed phases; it is deterministic, which is
what the chart overlay needs.
"""

import math
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from ..errors import MalformedDataError
from ..utils.time import to_datetime

SYNODIC_MONTH = 29.53058867                                     # days
KNOWN_NEW_MOON = datetime(2000, 1, 6, 18, 14, tzinfo=timezone.utc)
SECONDS_PER_DAY = 24 * 60 * 60

NEW_MOON_WRAP_FROM = 0.95
NEW_MOON_WRAP_TO = 0.05
FULL_MOON_PHASE = 0.5

# Principal phases and the fraction of the cycle at which they occur
PRINCIPAL_PHASES = (
    (0.0, "new_moon"),
    (0.25, "first_quarter"),
    (0.5, "full_moon"),
    (0.75, "last_quarter"),
)


class MoonPhaseName(str, Enum):
    """Eight named phases, each a 1/8 bucket centred on its canonical point."""
    NEW_MOON = "new_moon"
    WAXING_CRESCENT = "waxing_crescent"
    FIRST_QUARTER = "first_quarter"
    WAXING_GIBBOUS = "waxing_gibbous"
    FULL_MOON = "full_moon"
    WANING_GIBBOUS = "waning_gibbous"
    LAST_QUARTER = "last_quarter"
    WANING_CRESCENT = "waning_crescent"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


# Upper bucket bounds in cycle order; anything from 0.9375 wraps to new moon
_PHASE_BUCKETS = (
    (0.0625, MoonPhaseName.NEW_MOON),
    (0.1875, MoonPhaseName.WAXING_CRESCENT),
    (0.3125, MoonPhaseName.FIRST_QUARTER),
    (0.4375, MoonPhaseName.WAXING_GIBBOUS),
    (0.5625, MoonPhaseName.FULL_MOON),
    (0.6875, MoonPhaseName.WANING_GIBBOUS),
    (0.8125, MoonPhaseName.LAST_QUARTER),
    (0.9375, MoonPhaseName.WANING_CRESCENT),
)


@dataclass(frozen=True)
class PhaseSample:
    """Phase of the moon at one instant."""
    date: datetime
    phase: float
    name: MoonPhaseName


@dataclass(frozen=True)
class SignificantPhase:
    """A detected new or full moon."""
    date: datetime
    type: MoonPhaseName
    phase: float


@dataclass(frozen=True)
class PhaseInstant:
    """Exact instant of a principal phase in the mean-month model."""
    date: datetime
    subtype: str
    phase: float


def calculate_moon_phase(
    date: Any,
    synodic_month: float = SYNODIC_MONTH,
    reference: datetime = KNOWN_NEW_MOON
) -> float:
    """
    Calculate the lunar phase fraction for a date.

    Args:
        date: datetime, date, unix seconds or ISO string
        synodic_month: Length of the synodic month in days
        reference: Instant of a known new moon

    Returns:
        Phase in [0, 1); 0 is new moon, 0.5 is full moon

    Raises:
        TemporalDataError: If the date cannot be interpreted
    """
    target = to_datetime(date)
    days = (target - reference).total_seconds() / SECONDS_PER_DAY

    phase = math.fmod(days, synodic_month) / synodic_month
    if phase < 0:
        phase += 1
    # -tiny + 1 rounds to 1.0, which is the same instant as 0
    if phase >= 1.0:
        phase = 0.0
    return phase


def get_moon_phase_name(phase: float) -> MoonPhaseName:
    """
    Name the phase bucket a fraction falls into.

    Raises:
        MalformedDataError: If phase is not a number in [0, 1)
    """
    if isinstance(phase, bool) or not isinstance(phase, (int, float)) or not 0 <= phase < 1:
        raise MalformedDataError(
            f"Phase must be a number in [0, 1), got {phase!r}",
            raw_data=repr(phase),
            expected_format="0 <= phase < 1"
        )

    for upper, name in _PHASE_BUCKETS:
        if phase < upper:
            return name
    return MoonPhaseName.NEW_MOON


def get_moon_phases_for_period(
    start_date: Any,
    end_date: Any,
    synodic_month: float = SYNODIC_MONTH,
    reference: datetime = KNOWN_NEW_MOON
) -> list[PhaseSample]:
    """Daily phase samples from start_date to end_date inclusive."""
    current = to_datetime(start_date)
    end = to_datetime(end_date)
    samples = []

    while current <= end:
        phase = calculate_moon_phase(current, synodic_month, reference)
        samples.append(PhaseSample(date=current, phase=phase, name=get_moon_phase_name(phase)))
        current += timedelta(days=1)

    return samples


def find_next_significant_phases(
    from_date: Any,
    count: int = 4,
    step: timedelta = timedelta(days=1),
    synodic_month: float = SYNODIC_MONTH,
    reference: datetime = KNOWN_NEW_MOON
) -> list[SignificantPhase]:
    """
    Walk forward from a date and report new and full moons in order.

    A new moon is detected when the phase wraps from >= 0.95 to < 0.05
    between two steps, a full moon when it crosses 0.5. The reported date is
    the first step after the crossing, so entries land up to one step late.

    Args:
        from_date: Date to start searching after
        count: Maximum number of phases to return
        step: Detector step; must be positive and at most one day
        synodic_month: Length of the synodic month in days
        reference: Instant of a known new moon

    Returns:
        Up to ``count`` phases, strictly increasing in time, all after from_date
    """
    if step <= timedelta(0) or step > timedelta(days=1):
        raise MalformedDataError(
            f"Detector step must be in (0, 1 day], got {step}",
            raw_data=str(step)
        )
    if count <= 0:
        return []

    current = to_datetime(from_date)
    current_phase = calculate_moon_phase(current, synodic_month, reference)
    result: list[SignificantPhase] = []

    while len(result) < count:
        prev_phase = current_phase
        current = current + step
        current_phase = calculate_moon_phase(current, synodic_month, reference)

        if prev_phase >= NEW_MOON_WRAP_FROM and current_phase < NEW_MOON_WRAP_TO:
            result.append(SignificantPhase(date=current, type=MoonPhaseName.NEW_MOON, phase=0.0))
        elif prev_phase < FULL_MOON_PHASE <= current_phase:
            result.append(SignificantPhase(date=current, type=MoonPhaseName.FULL_MOON, phase=FULL_MOON_PHASE))

    return result


def iter_phase_instants(
    start_date: Any,
    end_date: Any,
    phases: Optional[tuple[tuple[float, str], ...]] = None,
    synodic_month: float = SYNODIC_MONTH,
    reference: datetime = KNOWN_NEW_MOON
) -> Iterator[PhaseInstant]:
    """
    Yield the exact instants of principal phases between two dates.

    The model is linear in time, so the k-th occurrence of fraction f is
    reference + (k + f) * synodic_month; no stepping is involved.
    """
    start = to_datetime(start_date)
    end = to_datetime(end_date)
    phases = phases or PRINCIPAL_PHASES

    start_days = (start - reference).total_seconds() / SECONDS_PER_DAY
    cycle = math.floor(start_days / synodic_month) - 1

    while True:
        cycle_start_days = cycle * synodic_month
        if reference + timedelta(days=cycle_start_days) > end:
            return
        for fraction, subtype in phases:
            instant = reference + timedelta(days=cycle_start_days + fraction * synodic_month)
            if start <= instant <= end:
                yield PhaseInstant(date=instant, subtype=subtype, phase=fraction)
        cycle += 1
