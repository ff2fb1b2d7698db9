"""Pydantic models for achievement results and catalog listings."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AwardedAchievement(BaseModel):
    id: int
    code: str
    name: str
    description: str
    category: str
    icon_name: str | None = None


class AchievementCheckResult(BaseModel):
    success: bool
    awarded: list[AwardedAchievement] = []
    error: str | None = None


class AchievementResponse(BaseModel):
    id: int
    code: str
    name: str
    description: str
    category: str
    icon: str | None = None
    sort_order: int = 0


class EarnedAchievementResponse(BaseModel):
    code: str
    name: str
    category: str
    earned_at: datetime
    report_id: str | None = None


class AllAchievementsResponse(BaseModel):
    achievements: list[AchievementResponse]
