"""Stats aggregation: per-species totals, denormalized user totals and streaks.

``apply_report`` is called exactly once per confirmed submission; it is not
idempotent. ``backfill_user_stats_from_reports`` rebuilds the same numbers from
history and is safe to re-run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catchfeed.achievements.service import check_and_award_achievements
from catchfeed.db.models import HarvestReport, User, UserSpeciesStat
from catchfeed.species import SpeciesCatch, largest_length, resolve_catches, total_fish
from catchfeed.stats.schemas import ApplyReportResult, BackfillResult, StatsUpdateResult
from catchfeed.stats.streak import StreakState, advance_streak, as_date

logger = logging.getLogger(__name__)


@dataclass
class SpeciesTally:
    """In-memory counterpart of a ``UserSpeciesStat`` row."""

    total_count: int = 0
    largest_length: float | None = None
    last_caught_at: date | None = None


def accumulate_catch(target: Any, catch: SpeciesCatch, harvest_date: date) -> None:
    """Fold one catch into a species row or tally (same attribute names)."""
    target.total_count = (target.total_count or 0) + catch.count

    length = largest_length(catch)
    if length is not None and (target.largest_length is None or length > target.largest_length):
        target.largest_length = length

    previous = as_date(target.last_caught_at)
    if previous is None or harvest_date > previous:
        target.last_caught_at = harvest_date


def _report_field(report: Any, name: str) -> Any:
    if isinstance(report, dict):
        return report.get(name)
    return getattr(report, name, None)


def _harvest_date(report: Any) -> date:
    value = _report_field(report, "harvest_date")
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return as_date(value)


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


async def _apply_species_catch(
    db: AsyncSession, user_id: str, catch: SpeciesCatch, harvest_date: date,
) -> None:
    """Read-or-create the (user, species) row and add this catch to it."""
    result = await db.execute(
        select(UserSpeciesStat).where(
            UserSpeciesStat.user_id == user_id,
            UserSpeciesStat.species == catch.species,
        )
    )
    stat = result.scalar_one_or_none()
    if stat is None:
        stat = UserSpeciesStat(user_id=user_id, species=catch.species, total_count=0)
        db.add(stat)
    accumulate_catch(stat, catch, harvest_date)


async def update_species_stats(
    db: AsyncSession, user_id: str, catches: list[SpeciesCatch], harvest_date: date,
) -> bool:
    """Apply each species in its own savepoint. Returns False if any species failed."""
    ok = True
    for catch in catches:
        try:
            async with db.begin_nested():
                await _apply_species_catch(db, user_id, catch, harvest_date)
        except SQLAlchemyError:
            ok = False
            logger.warning(
                "Failed to update %s stats for user %s", catch.species, user_id, exc_info=True,
            )
    return ok


async def update_user_stats(
    db: AsyncSession, user: User, fish: int, harvest_date: date,
) -> bool:
    """Bump report/fish totals and advance the streak on an already-loaded user row."""
    state = advance_streak(
        StreakState(
            current=user.current_streak_days or 0,
            longest=user.longest_streak_days or 0,
            last_active=as_date(user.last_active_at),
        ),
        harvest_date,
    )
    try:
        async with db.begin_nested():
            user.total_reports = (user.total_reports or 0) + 1
            user.total_fish_reported = (user.total_fish_reported or 0) + fish
            user.current_streak_days = state.current
            user.longest_streak_days = state.longest
            user.last_active_at = _day_start(state.last_active)
    except SQLAlchemyError:
        logger.warning("Failed to update user stats for %s", user.id, exc_info=True)
        return False
    return True


async def apply_report(db: AsyncSession, user_id: str, report: Any) -> ApplyReportResult:
    """Fold one confirmed report into species and user stats.

    The user row is read (FOR UPDATE where supported) before any species write,
    so the streak is computed from the state prior to this report.
    """
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        logger.warning("Stats update for unknown user %s", user_id)
        return ApplyReportResult(species_updated=False, user_stats_updated=False)

    harvest_date = _harvest_date(report)
    catches = resolve_catches(report)

    species_ok = await update_species_stats(db, user_id, catches, harvest_date)
    user_ok = await update_user_stats(db, user, total_fish(catches), harvest_date)

    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.error("Failed to commit stats for user %s", user_id, exc_info=True)
        return ApplyReportResult(species_updated=False, user_stats_updated=False)

    return ApplyReportResult(species_updated=species_ok, user_stats_updated=user_ok)


async def update_all_stats_after_report(
    db: AsyncSession, user_id: str, report: Any,
) -> StatsUpdateResult:
    """Main entry point after a confirmed submission: stats, then achievements."""
    try:
        applied = await apply_report(db, user_id, report)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Stats update failed for user %s", user_id, exc_info=True)
        return StatsUpdateResult(success=False, error=str(exc))

    check = await check_and_award_achievements(db, user_id, _report_field(report, "id"))

    success = applied.species_updated and applied.user_stats_updated
    if success:
        logger.info("All stats updated for user %s", user_id)
    else:
        logger.warning("Some stats failed to update for user %s", user_id)

    error = None
    if not success:
        error = "Partial stats update"
    elif not check.success:
        error = check.error

    return StatsUpdateResult(
        success=success,
        species_stats_updated=applied.species_updated,
        user_stats_updated=applied.user_stats_updated,
        achievements_awarded=check.awarded,
        error=error,
    )


async def backfill_user_stats_from_reports(db: AsyncSession, user_id: str) -> BackfillResult:
    """Recompute user and species stats from every historical report.

    Reports are replayed in harvest order through the same streak and species
    folding as ``apply_report``; the results overwrite stored totals. Achievements
    are then evaluated once with no triggering report.
    """
    try:
        user = await db.get(User, user_id, populate_existing=True)
        if user is None:
            return BackfillResult(success=False, error="User not found")

        result = await db.execute(
            select(HarvestReport)
            .options(selectinload(HarvestReport.fish_entries))
            .where(HarvestReport.user_id == user_id)
            .order_by(HarvestReport.harvest_date, HarvestReport.created_at, HarvestReport.id)
        )
        reports = list(result.scalars())
        if not reports:
            logger.info("No reports to backfill for user %s", user_id)
            return BackfillResult(success=True)

        fish = 0
        streak = StreakState()
        tallies: dict[str, SpeciesTally] = {}
        for report in reports:
            catches = resolve_catches(report)
            fish += total_fish(catches)
            streak = advance_streak(streak, report.harvest_date)
            for catch in catches:
                accumulate_catch(tallies.setdefault(catch.species, SpeciesTally()), catch, report.harvest_date)

        user.total_reports = len(reports)
        user.total_fish_reported = fish
        user.current_streak_days = streak.current
        user.longest_streak_days = streak.longest
        user.last_active_at = _day_start(streak.last_active)
        await db.flush()

        species_updated = 0
        for species, tally in tallies.items():
            try:
                async with db.begin_nested():
                    await _upsert_species_tally(db, user_id, species, tally)
            except SQLAlchemyError:
                logger.warning("Failed to backfill %s stats for user %s", species, user_id, exc_info=True)
                continue
            species_updated += 1

        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Failed to backfill stats for user %s", user_id, exc_info=True)
        return BackfillResult(success=False, error=str(exc))

    logger.info(
        "Backfilled stats for user %s: reports=%d fish=%d longest_streak=%d",
        user_id, len(reports), fish, streak.longest,
    )

    check = await check_and_award_achievements(db, user_id)
    return BackfillResult(
        success=True,
        total_reports=len(reports),
        total_fish=fish,
        species_updated=species_updated,
        achievements_awarded=check.awarded,
    )


async def _upsert_species_tally(
    db: AsyncSession, user_id: str, species: str, tally: SpeciesTally,
) -> None:
    result = await db.execute(
        select(UserSpeciesStat).where(
            UserSpeciesStat.user_id == user_id,
            UserSpeciesStat.species == species,
        )
    )
    stat = result.scalar_one_or_none()
    if stat is None:
        stat = UserSpeciesStat(user_id=user_id, species=species)
        db.add(stat)
    stat.total_count = tally.total_count
    stat.largest_length = tally.largest_length
    stat.last_caught_at = tally.last_caught_at
