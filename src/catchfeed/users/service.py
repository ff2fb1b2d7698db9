"""User stats view and rewards program conversion."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from catchfeed.achievements.schemas import EarnedAchievementResponse
from catchfeed.db.models import User, UserAchievement, UserSpeciesStat
from catchfeed.feed.service import clear_catch_feed_cache
from catchfeed.stats.schemas import SpeciesStatResponse, UserStatsResponse
from catchfeed.stats.service import backfill_user_stats_from_reports
from catchfeed.users.schemas import RewardsConversionIn, RewardsConversionResult

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from catchfeed.cache import CacheEnvelope

logger = structlog.get_logger()


async def fetch_user_stats(db: AsyncSession, user_id: str) -> UserStatsResponse | None:
    """Totals, streaks, per-species stats and earned achievements. None if absent."""
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        return None

    species_result = await db.execute(
        select(UserSpeciesStat)
        .where(UserSpeciesStat.user_id == user_id)
        .order_by(UserSpeciesStat.total_count.desc(), UserSpeciesStat.species)
    )
    earned_result = await db.execute(
        select(UserAchievement)
        .where(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.earned_at.desc(), UserAchievement.id.desc())
    )

    return UserStatsResponse(
        user_id=user.id,
        total_reports=user.total_reports or 0,
        total_fish=user.total_fish_reported or 0,
        current_streak_days=user.current_streak_days or 0,
        longest_streak_days=user.longest_streak_days or 0,
        last_active_at=user.last_active_at,
        is_rewards_member=user.rewards_opted_in_at is not None,
        species=[
            SpeciesStatResponse(
                species=s.species,
                total_count=s.total_count,
                largest_length=s.largest_length,
                last_caught_at=s.last_caught_at,
            )
            for s in species_result.scalars()
        ],
        achievements=[
            EarnedAchievementResponse(
                code=ua.achievement.code,
                name=ua.achievement.name,
                category=ua.achievement.category,
                earned_at=ua.earned_at,
                report_id=ua.report_id,
            )
            for ua in earned_result.unique().scalars()
        ],
    )


async def convert_to_rewards_member(
    db: AsyncSession,
    user_id: str,
    cache: CacheEnvelope | None = None,
    details: RewardsConversionIn | None = None,
) -> RewardsConversionResult:
    """Opt a user into the rewards program and backfill their stats.

    Idempotent: an existing member keeps the original opt-in time, and the
    backfill recomputes rather than adds.
    """
    try:
        user = await db.get(User, user_id, populate_existing=True)
        if user is None:
            return RewardsConversionResult(success=False, error="User not found")

        already_member = user.rewards_opted_in_at is not None
        if not already_member:
            user.rewards_opted_in_at = datetime.now(timezone.utc)
        if details is not None:
            if details.first_name:
                user.first_name = details.first_name
            if details.last_name:
                user.last_name = details.last_name
            if details.email:
                user.email = details.email.lower()
        opted_in_at = user.rewards_opted_in_at
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("rewards_conversion_failed", user_id=user_id, exc_info=True)
        return RewardsConversionResult(success=False, error=str(exc))

    logger.info("rewards_member_converted", user_id=user_id, already_member=already_member)

    # Their history now qualifies for the feed.
    if cache is not None:
        await clear_catch_feed_cache(cache)

    backfill = await backfill_user_stats_from_reports(db, user_id)
    return RewardsConversionResult(
        success=backfill.success,
        already_member=already_member,
        rewards_opted_in_at=opted_in_at,
        backfill=backfill,
        error=backfill.error,
    )
