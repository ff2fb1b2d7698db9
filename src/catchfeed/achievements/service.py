"""Achievement engine: evaluates stats against the rule table and persists awards."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catchfeed.achievements.rules import AchievementContext, is_satisfied, priority_for
from catchfeed.achievements.schemas import AchievementCheckResult, AwardedAchievement
from catchfeed.db.models import Achievement, HarvestReport, User, UserAchievement, UserSpeciesStat

logger = logging.getLogger(__name__)


async def has_achievement(db: AsyncSession, user_id: str, achievement_id: int) -> bool:
    """Check if user already holds a specific achievement."""
    result = await db.execute(
        select(UserAchievement.id).where(
            UserAchievement.user_id == user_id,
            UserAchievement.achievement_id == achievement_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def award_achievement(
    db: AsyncSession,
    user_id: str,
    achievement: Achievement,
    report_id: str | None = None,
) -> bool:
    """Persist an award.

    Returns True if awarded, False if the user already had it. The
    UNIQUE(user_id, achievement_id) constraint settles races: a losing insert
    is rolled back to its savepoint and reported as already earned.
    """
    if await has_achievement(db, user_id, achievement.id):
        return False

    try:
        async with db.begin_nested():
            db.add(
                UserAchievement(
                    user_id=user_id,
                    achievement_id=achievement.id,
                    earned_at=datetime.now(timezone.utc),
                    report_id=report_id,
                )
            )
    except IntegrityError:
        return False  # Race condition: already awarded
    return True


class AchievementEngine:
    """Stateless rule evaluation over the current stats of one user."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._catalog: list[Achievement] | None = None

    async def _load_catalog(self) -> list[Achievement]:
        """Load and cache the active catalog."""
        if self._catalog is None:
            result = await self.db.execute(
                select(Achievement)
                .where(Achievement.is_active.is_(True))
                .order_by(Achievement.sort_order, Achievement.id)
            )
            self._catalog = list(result.scalars())
        return self._catalog

    async def _earned_ids(self, user_id: str) -> set[int]:
        result = await self.db.execute(
            select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
        )
        return set(result.scalars())

    async def build_context(self, user_id: str) -> AchievementContext | None:
        """Snapshot the stats the rules read. None if the user does not exist."""
        user = await self.db.get(User, user_id, populate_existing=True)
        if user is None:
            return None

        photo_result = await self.db.execute(
            select(func.count(HarvestReport.id)).where(
                HarvestReport.user_id == user_id,
                HarvestReport.photo_url.is_not(None),
            )
        )
        reports_with_photos = photo_result.scalar_one()

        species_result = await self.db.execute(
            select(UserSpeciesStat.species, UserSpeciesStat.total_count).where(
                UserSpeciesStat.user_id == user_id
            )
        )
        species_totals = {row.species: row.total_count for row in species_result}

        return AchievementContext(
            total_reports=user.total_reports or 0,
            total_fish=user.total_fish_reported or 0,
            current_streak=user.current_streak_days or 0,
            longest_streak=user.longest_streak_days or 0,
            reports_with_photos=reports_with_photos or 0,
            is_rewards_member=user.rewards_opted_in_at is not None,
            species_totals=species_totals,
        )

    async def evaluate(self, user_id: str, report_id: str | None = None) -> list[AwardedAchievement]:
        """Award every active, not-yet-earned achievement whose rule now holds.

        Returns the new awards sorted by display priority. Safe to re-run:
        already-earned achievements are skipped.
        """
        catalog = await self._load_catalog()
        if not catalog:
            return []

        ctx = await self.build_context(user_id)
        if ctx is None:
            logger.warning("Achievement check for unknown user %s", user_id)
            return []

        earned = await self._earned_ids(user_id)
        awarded: list[AwardedAchievement] = []

        for achievement in catalog:
            if achievement.id in earned:
                continue
            if not is_satisfied(achievement.code, ctx):
                continue
            if await award_achievement(self.db, user_id, achievement, report_id):
                logger.info("Achievement unlocked for %s: %s", user_id, achievement.code)
                awarded.append(
                    AwardedAchievement(
                        id=achievement.id,
                        code=achievement.code,
                        name=achievement.name,
                        description=achievement.description,
                        category=achievement.category,
                        icon_name=achievement.icon,
                    )
                )

        await self.db.commit()
        return sort_by_priority(awarded)


def sort_by_priority(awarded: list[AwardedAchievement]) -> list[AwardedAchievement]:
    """Stable sort by the fixed priority table; unknown codes last."""
    return sorted(awarded, key=lambda a: priority_for(a.code))


async def check_and_award_achievements(
    db: AsyncSession,
    user_id: str,
    report_id: str | None = None,
) -> AchievementCheckResult:
    """Run the engine and fold storage failures into a result object."""
    try:
        awarded = await AchievementEngine(db).evaluate(user_id, report_id)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Failed to check achievements for %s", user_id, exc_info=True)
        return AchievementCheckResult(success=False, awarded=[], error=str(exc))
    return AchievementCheckResult(success=True, awarded=awarded)


async def get_all_achievements(db: AsyncSession) -> list[Achievement]:
    """Active catalog ordered for display. Empty list if the store is unavailable."""
    try:
        result = await db.execute(
            select(Achievement)
            .where(Achievement.is_active.is_(True))
            .order_by(Achievement.sort_order, Achievement.id)
        )
    except SQLAlchemyError:
        logger.warning("Failed to fetch achievements", exc_info=True)
        return []
    return list(result.scalars())
