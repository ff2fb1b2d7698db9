"""Achievement rule table: code -> pure predicate over a stats snapshot.

Every ``AchievementCode`` must have a rule and a display priority; the unit
tests check both tables cover the enum. Codes found in the catalog that are
not in the enum never match.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from catchfeed.species import TRACKED_SPECIES

logger = logging.getLogger(__name__)


class AchievementCode(str, Enum):
    """Stable achievement keys stored in ``achievements.code``."""

    REWARDS_ENTERED = "rewards_entered"
    FIRST_REPORT = "first_report"
    PHOTO_FIRST = "photo_first"
    REPORTS_10 = "reports_10"
    REPORTS_50 = "reports_50"
    REPORTS_100 = "reports_100"
    FISH_100 = "fish_100"
    FISH_500 = "fish_500"
    STREAK_3 = "streak_3"
    STREAK_7 = "streak_7"
    STREAK_30 = "streak_30"
    SPECIES_ALL_5 = "species_all_5"


@dataclass(frozen=True)
class AchievementContext:
    """Everything a rule may look at."""

    total_reports: int = 0
    total_fish: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    reports_with_photos: int = 0
    is_rewards_member: bool = False
    species_totals: Mapping[str, int] = field(default_factory=dict)


def _all_species_caught(ctx: AchievementContext) -> bool:
    return all(ctx.species_totals.get(species, 0) > 0 for species in TRACKED_SPECIES)


ACHIEVEMENT_RULES: dict[AchievementCode, Callable[[AchievementContext], bool]] = {
    AchievementCode.REWARDS_ENTERED: lambda c: c.is_rewards_member and c.total_reports >= 1,
    AchievementCode.FIRST_REPORT: lambda c: c.total_reports >= 1,
    # Named "first" in the catalog but unlocks on the SECOND photographed
    # report. Kept as shipped until product confirms the intent.
    AchievementCode.PHOTO_FIRST: lambda c: c.reports_with_photos >= 2,
    AchievementCode.REPORTS_10: lambda c: c.total_reports >= 10,
    AchievementCode.REPORTS_50: lambda c: c.total_reports >= 50,
    AchievementCode.REPORTS_100: lambda c: c.total_reports >= 100,
    AchievementCode.FISH_100: lambda c: c.total_fish >= 100,
    AchievementCode.FISH_500: lambda c: c.total_fish >= 500,
    AchievementCode.STREAK_3: lambda c: c.longest_streak >= 3,
    AchievementCode.STREAK_7: lambda c: c.longest_streak >= 7,
    AchievementCode.STREAK_30: lambda c: c.longest_streak >= 30,
    AchievementCode.SPECIES_ALL_5: _all_species_caught,
}

# Lower number = shown first when several unlock at once.
ACHIEVEMENT_PRIORITY: dict[AchievementCode, int] = {
    AchievementCode.REWARDS_ENTERED: 1,
    AchievementCode.FIRST_REPORT: 10,
    AchievementCode.PHOTO_FIRST: 12,
    AchievementCode.REPORTS_10: 20,
    AchievementCode.REPORTS_50: 21,
    AchievementCode.REPORTS_100: 22,
    AchievementCode.FISH_100: 30,
    AchievementCode.FISH_500: 31,
    AchievementCode.STREAK_3: 40,
    AchievementCode.STREAK_7: 41,
    AchievementCode.STREAK_30: 42,
    AchievementCode.SPECIES_ALL_5: 50,
}

UNKNOWN_PRIORITY = 100


def parse_code(code: str) -> AchievementCode | None:
    try:
        return AchievementCode(code)
    except ValueError:
        return None


def is_satisfied(code: str, ctx: AchievementContext) -> bool:
    """Evaluate the rule for ``code``. Unknown codes are logged and never match."""
    known = parse_code(code)
    if known is None:
        logger.warning("Unknown achievement code: %s", code)
        return False
    return ACHIEVEMENT_RULES[known](ctx)


def priority_for(code: str) -> int:
    known = parse_code(code)
    if known is None:
        return UNKNOWN_PRIORITY
    return ACHIEVEMENT_PRIORITY[known]
