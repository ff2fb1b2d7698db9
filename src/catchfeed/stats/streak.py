"""Daily reporting streaks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class StreakState:
    current: int = 0
    longest: int = 0
    last_active: date | None = None


def as_date(value: date | datetime | None) -> date | None:
    """Normalize a stored timestamp or date to a calendar date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def advance_streak(state: StreakState, harvest_date: date) -> StreakState:
    """Apply one report's harvest date to a streak.

    Same day as the last active date -> unchanged. Exactly one day later -> +1.
    Any larger gap, or no previous date -> 1. A report dated before the last
    active day leaves the streak alone. ``longest`` never drops below ``current``
    and ``last_active`` never moves backwards.
    """
    last = state.last_active
    if last is None:
        current = 1
    else:
        gap = (harvest_date - last).days
        if gap == 1:
            current = state.current + 1
        elif gap > 1:
            current = 1
        else:
            current = max(state.current, 1)

    last_active = harvest_date if last is None or harvest_date > last else last
    return StreakState(
        current=current,
        longest=max(state.longest, current),
        last_active=last_active,
    )
