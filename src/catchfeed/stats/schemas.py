"""Stats aggregation request/response models."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from catchfeed.achievements.schemas import AwardedAchievement, EarnedAchievementResponse
from catchfeed.species import SpeciesCatch


class HarvestReportIn(BaseModel):
    """A confirmed report as handed over by the submission queue."""

    id: str | None = None
    harvest_date: date
    photo_url: str | None = None
    area_label: str | None = None
    red_drum_count: int = Field(default=0, ge=0)
    flounder_count: int = Field(default=0, ge=0)
    spotted_seatrout_count: int = Field(default=0, ge=0)
    weakfish_count: int = Field(default=0, ge=0)
    striped_bass_count: int = Field(default=0, ge=0)
    fish_entries: list[SpeciesCatch] = []


class ApplyReportResult(BaseModel):
    species_updated: bool
    user_stats_updated: bool


class StatsUpdateResult(BaseModel):
    success: bool
    species_stats_updated: bool = False
    user_stats_updated: bool = False
    achievements_awarded: list[AwardedAchievement] = []
    error: str | None = None


class BackfillResult(BaseModel):
    success: bool
    total_reports: int = 0
    total_fish: int = 0
    species_updated: int = 0
    achievements_awarded: list[AwardedAchievement] = []
    error: str | None = None


class SpeciesStatResponse(BaseModel):
    species: str
    total_count: int
    largest_length: float | None = None
    last_caught_at: date | None = None


class UserStatsResponse(BaseModel):
    user_id: str
    total_reports: int
    total_fish: int
    current_streak_days: int
    longest_streak_days: int
    last_active_at: datetime | None = None
    is_rewards_member: bool
    species: list[SpeciesStatResponse] = []
    achievements: list[EarnedAchievementResponse] = []
