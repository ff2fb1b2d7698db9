"""Weekly top anglers: one winner per metric over a trailing window.

The hosted database may expose a pre-aggregated ``get_leaderboard`` procedure;
when it is missing or fails, the same aggregates are computed from raw reports.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catchfeed.config import get_settings
from catchfeed.db.models import HarvestReport, User
from catchfeed.feed.schemas import TopAngler, format_display_name
from catchfeed.species import format_length, largest_length, resolve_catches

logger = structlog.get_logger()

_PROCEDURE_SQL = text("SELECT * FROM get_leaderboard(:p_period_days, :p_limit)")


@dataclass
class AnglerAggregate:
    """One angler's totals inside the window."""

    user_id: str
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None
    total_fish: int = 0
    species: set[str] = field(default_factory=set)
    distinct_species: int = 0
    longest_length: float | None = None


def aggregate_rows(rows: Iterable[tuple[HarvestReport, User]]) -> list[AnglerAggregate]:
    """Group (report, user) rows by angler.

    Output order follows each angler's first row, so callers feeding rows in
    creation order get "earliest reporter first" for free.
    """
    by_user: dict[str, AnglerAggregate] = {}
    for report, user in rows:
        agg = by_user.get(user.id)
        if agg is None:
            agg = AnglerAggregate(
                user_id=user.id,
                first_name=user.first_name,
                last_name=user.last_name,
                profile_image_url=user.profile_image_url,
            )
            by_user[user.id] = agg

        for catch in resolve_catches(report):
            agg.total_fish += catch.count
            agg.species.add(catch.species)
            length = largest_length(catch)
            if length is not None and (agg.longest_length is None or length > agg.longest_length):
                agg.longest_length = length

    for agg in by_user.values():
        agg.distinct_species = len(agg.species)
    return list(by_user.values())


def _leader(aggregates: list[AnglerAggregate], metric: str) -> AnglerAggregate | None:
    best = None
    best_value: float = 0
    for agg in aggregates:
        value = getattr(agg, metric) or 0
        if value > best_value:
            best, best_value = agg, value
    return best


def _top_angler(agg: AnglerAggregate, kind: str, value: int | str, label: str) -> TopAngler:
    return TopAngler(
        type=kind,
        user_id=agg.user_id,
        display_name=format_display_name(agg.first_name, agg.last_name),
        profile_image=agg.profile_image_url or None,
        value=value,
        label=label,
    )


def pick_top_anglers(aggregates: list[AnglerAggregate]) -> list[TopAngler]:
    """At most one entry per metric; a metric whose best value is zero is omitted.

    Ties go to whoever comes first in ``aggregates``.
    """
    top: list[TopAngler] = []

    by_fish = _leader(aggregates, "total_fish")
    if by_fish is not None:
        label = "catch" if by_fish.total_fish == 1 else "catches"
        top.append(_top_angler(by_fish, "catches", by_fish.total_fish, label))

    by_species = _leader(aggregates, "distinct_species")
    if by_species is not None:
        top.append(_top_angler(by_species, "species", by_species.distinct_species, "species"))

    by_length = _leader(aggregates, "longest_length")
    if by_length is not None:
        top.append(_top_angler(by_length, "length", format_length(by_length.longest_length), "longest"))

    return top


def _aggregate_from_procedure_row(row: Any) -> AnglerAggregate:
    data = row._mapping
    longest = data.get("longest_length")
    return AnglerAggregate(
        user_id=str(data["user_id"]),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        profile_image_url=data.get("profile_image_url"),
        total_fish=int(data.get("total_fish") or 0),
        distinct_species=int(data.get("distinct_species") or 0),
        longest_length=float(longest) if longest else None,
    )


async def _fetch_from_procedure(
    db: AsyncSession, period_days: int, limit: int,
) -> list[AnglerAggregate] | None:
    """Pre-aggregated rows, or None if the procedure is unavailable."""
    try:
        async with db.begin_nested():
            result = await db.execute(
                _PROCEDURE_SQL, {"p_period_days": period_days, "p_limit": limit}
            )
            rows = result.all()
    except SQLAlchemyError:
        logger.info("leaderboard_procedure_unavailable")
        return None

    aggregates = [_aggregate_from_procedure_row(row) for row in rows]
    # No timestamps here, so ties fall to the lowest user id.
    aggregates.sort(key=lambda a: a.user_id)
    return aggregates


async def _fetch_from_reports(
    db: AsyncSession, since: datetime, until: datetime,
) -> list[AnglerAggregate]:
    result = await db.execute(
        select(HarvestReport, User)
        .join(User, User.id == HarvestReport.user_id)
        .where(
            User.rewards_opted_in_at.is_not(None),
            HarvestReport.created_at >= since,
            HarvestReport.created_at <= until,
        )
        .options(selectinload(HarvestReport.fish_entries))
        .order_by(HarvestReport.created_at.asc(), HarvestReport.id.asc())
        .execution_options(populate_existing=True)
    )
    return aggregate_rows(result.all())


async def fetch_top_anglers(
    db: AsyncSession,
    now: datetime | None = None,
    period_days: int | None = None,
) -> list[TopAngler]:
    """Top angler per metric over ``now - period_days .. now``. Never raises."""
    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)
    if period_days is None:
        period_days = settings.leaderboard_period_days

    try:
        aggregates = await _fetch_from_procedure(db, period_days, settings.leaderboard_limit)
        if aggregates is None:
            aggregates = await _fetch_from_reports(db, now - timedelta(days=period_days), now)
    except (SQLAlchemyError, OSError):
        logger.error("leaderboard_fetch_failed", exc_info=True)
        return []

    return pick_top_anglers(aggregates)


async def weekly_top(db: AsyncSession, now: datetime | None = None) -> list[TopAngler]:
    """This week's top anglers over the configured trailing window (seven days by default)."""
    return await fetch_top_anglers(db, now=now, period_days=get_settings().leaderboard_period_days)
