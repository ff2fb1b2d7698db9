"""User stats and rewards endpoints. Identity is passed in the path."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catchfeed.cache import CacheEnvelope
from catchfeed.database import get_session
from catchfeed.db.models import HarvestReport
from catchfeed.dependencies import get_feed_cache
from catchfeed.stats.schemas import StatsUpdateResult, UserStatsResponse
from catchfeed.stats.service import update_all_stats_after_report
from catchfeed.users.schemas import RewardsConversionIn, RewardsConversionResult
from catchfeed.users.service import convert_to_rewards_member, fetch_user_stats

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/{user_id}/stats", response_model=UserStatsResponse)
async def get_user_stats(user_id: str, db: AsyncSession = Depends(get_session)):
    stats = await fetch_user_stats(db, user_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="User not found")
    return stats


@router.post("/{user_id}/reports/{report_id}/stats", response_model=StatsUpdateResult)
async def apply_report_stats(
    user_id: str,
    report_id: str,
    db: AsyncSession = Depends(get_session),
):
    """Fold a confirmed report into the user's stats. Call once per report."""
    result = await db.execute(
        select(HarvestReport)
        .options(selectinload(HarvestReport.fish_entries))
        .where(HarvestReport.id == report_id, HarvestReport.user_id == user_id)
    )
    report = result.scalar_one_or_none()
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return await update_all_stats_after_report(db, user_id, report)


@router.post("/{user_id}/rewards", response_model=RewardsConversionResult)
async def join_rewards(
    user_id: str,
    details: RewardsConversionIn | None = Body(None),
    db: AsyncSession = Depends(get_session),
    cache: CacheEnvelope = Depends(get_feed_cache),
):
    result = await convert_to_rewards_member(db, user_id, cache=cache, details=details)
    if not result.success and result.error == "User not found":
        raise HTTPException(status_code=404, detail="User not found")
    return result
