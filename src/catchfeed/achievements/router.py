"""Achievement catalog endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from catchfeed.achievements.schemas import AchievementResponse, AllAchievementsResponse
from catchfeed.achievements.service import get_all_achievements
from catchfeed.database import get_session

router = APIRouter(prefix="/api/v1", tags=["Achievements"])


@router.get("/achievements", response_model=AllAchievementsResponse)
async def list_achievements(db: AsyncSession = Depends(get_session)):
    """All active achievements in display order."""
    achievements = await get_all_achievements(db)
    return AllAchievementsResponse(
        achievements=[
            AchievementResponse(
                id=a.id,
                code=a.code,
                name=a.name,
                description=a.description,
                category=a.category,
                icon=a.icon,
                sort_order=a.sort_order,
            )
            for a in achievements
        ]
    )
