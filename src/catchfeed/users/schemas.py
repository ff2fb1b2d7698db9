"""User-facing request/response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from catchfeed.stats.schemas import BackfillResult


class RewardsConversionIn(BaseModel):
    """Optional profile details captured when joining the rewards program."""

    first_name: str | None = Field(None, max_length=64)
    last_name: str | None = Field(None, max_length=64)
    email: str | None = Field(None, max_length=320)


class RewardsConversionResult(BaseModel):
    success: bool
    already_member: bool = False
    rewards_opted_in_at: datetime | None = None
    backfill: BackfillResult | None = None
    error: str | None = None
