"""ORM models for the remote aggregation store.

Column names follow the hosted schema: reports carry five aggregate species
count columns and may also own itemized ``fish_entries`` rows.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catchfeed.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Users (with denormalized stats)
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_new_id)
    first_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    rewards_opted_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # --- Denormalized stats ---
    total_reports: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_fish_reported: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_streak_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_active_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    reports: Mapped[list[HarvestReport]] = relationship("HarvestReport", back_populates="user")


# ---------------------------------------------------------------------------
# Harvest reports
# ---------------------------------------------------------------------------


class HarvestReport(Base):
    """One submission event. Immutable after creation except for count columns."""

    __tablename__ = "harvest_reports"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    harvest_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    area_label: Mapped[str | None] = mapped_column(String(128), nullable=True)

    red_drum_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    flounder_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    spotted_seatrout_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    weakfish_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    striped_bass_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    user: Mapped[User] = relationship("User", back_populates="reports")
    fish_entries: Mapped[list[FishEntry]] = relationship(
        "FishEntry", back_populates="report", order_by="FishEntry.id", cascade="all, delete-orphan"
    )


class FishEntry(Base):
    """Itemized species record; authoritative over the report's count columns."""

    __tablename__ = "fish_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    report_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("harvest_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )
    species: Mapped[str] = mapped_column(String(64), nullable=False)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    lengths: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    tag_number: Mapped[str | None] = mapped_column(String(64), nullable=True)

    report: Mapped[HarvestReport] = relationship("HarvestReport", back_populates="fish_entries")


# ---------------------------------------------------------------------------
# Per-species stats
# ---------------------------------------------------------------------------


class UserSpeciesStat(Base):
    """Running total per (user, species). Created on first catch, never deleted."""

    __tablename__ = "user_species_stats"
    __table_args__ = (
        UniqueConstraint("user_id", "species", name="user_species_stats_user_species_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    species: Mapped[str] = mapped_column(String(64), nullable=False)
    total_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    largest_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_caught_at: Mapped[date | None] = mapped_column(Date, nullable=True)


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class Achievement(Base):
    """Static achievement catalog entry."""

    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class UserAchievement(Base):
    """Awards. UNIQUE(user_id, achievement_id) prevents duplicates."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="user_achievements_user_achievement_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    achievement_id: Mapped[int] = mapped_column(Integer, ForeignKey("achievements.id"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    report_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)

    achievement: Mapped[Achievement] = relationship("Achievement", lazy="joined")


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------


class CatchLike(Base):
    """One like per (catch, user)."""

    __tablename__ = "catch_likes"
    __table_args__ = (
        UniqueConstraint("catch_id", "user_id", name="catch_likes_catch_user_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    catch_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("harvest_reports.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
