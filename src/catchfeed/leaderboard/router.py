"""Leaderboard API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from catchfeed.database import get_session
from catchfeed.feed.schemas import TopAngler
from catchfeed.leaderboard.service import weekly_top

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])


@router.get("/weekly", response_model=list[TopAngler])
async def get_weekly_leaderboard(db: AsyncSession = Depends(get_session)):
    """This week's top anglers: most fish, most species, longest fish."""
    return await weekly_top(db)
