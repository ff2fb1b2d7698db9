"""Feed, profile and leaderboard response models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel

from catchfeed.species import SpeciesCatch


def format_display_name(first_name: str | None, last_name: str | None) -> str:
    """'Jane Doe' -> 'Jane D.'; missing first name -> 'Anonymous'."""
    first = (first_name or "").strip() or "Anonymous"
    last = (last_name or "").strip()
    if not last:
        return first
    return f"{first} {last[0]}."


class CatchFeedEntry(BaseModel):
    id: str
    user_id: str
    angler_name: str
    angler_profile_image: str | None = None
    species: str
    species_list: list[SpeciesCatch]
    total_fish: int
    photo_url: str | None = None
    catch_date: date
    location: str | None = None
    created_at: datetime
    like_count: int = 0
    is_liked_by_current_user: bool = False


class FeedPage(BaseModel):
    entries: list[CatchFeedEntry] = []
    has_more: bool = False
    next_offset: int = 0


class AnglerProfile(BaseModel):
    user_id: str
    display_name: str
    profile_image: str | None = None
    total_catches: int = 0
    species_caught: list[str] = []
    top_species: str | None = None
    recent_catches: list[CatchFeedEntry] = []
    member_since: datetime | None = None


class TopAngler(BaseModel):
    type: Literal["catches", "species", "length"]
    user_id: str
    display_name: str
    profile_image: str | None = None
    value: int | str
    label: str


class LikeResponse(BaseModel):
    catch_id: str
    like_count: int
