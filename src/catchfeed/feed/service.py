"""Catch feed assembly: paginated fetch, first-page cache, offline fallback.

Only catches from rewards members are shown. The first page is cached for
``feed_cache_ttl_seconds`` together with the page size it was fetched at; a
request for another size goes to the database and replaces it. Deeper pages
always go to the database. Offline, the cached first page is served whatever
its size.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catchfeed.cache import CacheEnvelope
from catchfeed.config import get_settings
from catchfeed.db.models import CatchLike, HarvestReport, User
from catchfeed.feed.schemas import AnglerProfile, CatchFeedEntry, FeedPage, format_display_name
from catchfeed.species import SpeciesCatch, primary_species, resolve_catches, total_fish
from catchfeed.stats.streak import as_date

logger = structlog.get_logger()


def build_feed_entry(
    report: HarvestReport,
    user: User,
    like_count: int = 0,
    catches: list[SpeciesCatch] | None = None,
) -> CatchFeedEntry | None:
    """Shape one report into a feed entry. None when the report has no fish."""
    if catches is None:
        catches = resolve_catches(report)
    if not catches:
        return None
    return CatchFeedEntry(
        id=report.id,
        user_id=user.id,
        angler_name=format_display_name(user.first_name, user.last_name),
        angler_profile_image=user.profile_image_url or None,
        species=primary_species(catches),
        species_list=catches,
        total_fish=total_fish(catches),
        photo_url=report.photo_url or None,
        catch_date=report.harvest_date or as_date(report.created_at),
        location=report.area_label or None,
        created_at=report.created_at,
        like_count=like_count or 0,
    )


async def is_remote_reachable(db: AsyncSession) -> bool:
    """Cheap round-trip to the database."""
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("feed_remote_unreachable", exc_info=True)
        return False
    return True


async def _query_page(db: AsyncSession, offset: int, limit: int) -> list[Any]:
    """Rows of (report, user, like_count), newest first, ``limit + 1`` at most."""
    like_count = (
        select(func.count(CatchLike.id))
        .where(CatchLike.catch_id == HarvestReport.id)
        .correlate(HarvestReport)
        .scalar_subquery()
    )
    result = await db.execute(
        select(HarvestReport, User, like_count.label("like_count"))
        .join(User, User.id == HarvestReport.user_id)
        .where(User.rewards_opted_in_at.is_not(None))
        .options(selectinload(HarvestReport.fish_entries))
        .order_by(HarvestReport.created_at.desc(), HarvestReport.id.desc())
        .offset(offset)
        .limit(limit + 1)
        .execution_options(populate_existing=True)
    )
    return list(result.all())


def _page_from_rows(rows: list[Any], offset: int, limit: int) -> FeedPage:
    has_more = len(rows) > limit
    rows = rows[:limit]

    entries = []
    for report, user, like_count in rows:
        entry = build_feed_entry(report, user, like_count)
        if entry is not None:
            entries.append(entry)

    # Advance by rows read, not entries kept, so dropped reports are not re-read.
    return FeedPage(entries=entries, has_more=has_more, next_offset=offset + len(rows))


async def _cached_page(
    cache: CacheEnvelope,
    max_age_seconds: float | None,
    limit: int | None = None,
) -> FeedPage | None:
    """Cached first page, or None. With ``limit``, a page cached at another size is a miss."""
    settings = get_settings()
    data = await cache.read(settings.feed_cache_key, max_age_seconds)
    if not isinstance(data, dict):
        return None
    if limit is not None and data.get("limit") != limit:
        logger.debug("feed_cache_limit_mismatch", cached=data.get("limit"), requested=limit)
        return None
    try:
        return FeedPage.model_validate(data)
    except ValidationError:
        logger.info("feed_cache_invalid")
        return None


async def fetch_recent_catches(
    db: AsyncSession,
    cache: CacheEnvelope,
    force_refresh: bool = False,
    limit: int | None = None,
    offset: int = 0,
) -> FeedPage:
    """Fetch one page of the community feed.

    Never raises: an unreachable or failing database falls back to the
    cached first page (stale allowed) or an empty page.
    """
    settings = get_settings()
    if limit is None:
        limit = settings.feed_page_size

    if offset == 0 and not force_refresh:
        cached = await _cached_page(cache, settings.feed_cache_ttl_seconds, limit)
        if cached is not None:
            logger.debug("feed_cache_hit", entries=len(cached.entries))
            # Offline, a full cached page has nothing more to offer.
            cached.has_more = cached.next_offset >= limit and await is_remote_reachable(db)
            return cached

    if not await is_remote_reachable(db):
        return await _offline_page(cache, offset)

    try:
        rows = await _query_page(db, offset, limit)
    except (SQLAlchemyError, OSError):
        logger.error("feed_fetch_failed", offset=offset, limit=limit, exc_info=True)
        await db.rollback()
        return await _offline_page(cache, offset)

    page = _page_from_rows(rows, offset, limit)
    if offset == 0:
        await cache.write(settings.feed_cache_key, {**page.model_dump(mode="json"), "limit": limit})

    logger.debug(
        "feed_page_fetched",
        offset=offset,
        entries=len(page.entries),
        has_more=page.has_more,
    )
    return page


async def _offline_page(cache: CacheEnvelope, offset: int) -> FeedPage:
    if offset == 0:
        cached = await _cached_page(cache, None)
        if cached is not None:
            cached.has_more = False
            return cached
    return FeedPage(entries=[], has_more=False, next_offset=offset)


async def clear_catch_feed_cache(cache: CacheEnvelope) -> None:
    await cache.clear(get_settings().feed_cache_key)


async def fetch_angler_profile(db: AsyncSession, user_id: str) -> AnglerProfile | None:
    """Public profile built from the angler's most recent reports. None if absent."""
    settings = get_settings()
    try:
        user = await db.get(User, user_id, populate_existing=True)
        if user is None:
            return None

        result = await db.execute(
            select(HarvestReport)
            .options(selectinload(HarvestReport.fish_entries))
            .where(HarvestReport.user_id == user_id)
            .order_by(HarvestReport.created_at.desc(), HarvestReport.id.desc())
            .limit(settings.profile_report_limit)
            .execution_options(populate_existing=True)
        )
        reports = list(result.scalars())
    except (SQLAlchemyError, OSError):
        logger.error("angler_profile_fetch_failed", user_id=user_id, exc_info=True)
        return None

    species_totals: dict[str, int] = {}
    recent: list[CatchFeedEntry] = []
    for report in reports:
        catches = resolve_catches(report)
        for catch in catches:
            species_totals[catch.species] = species_totals.get(catch.species, 0) + catch.count
        if len(recent) < settings.profile_recent_catches:
            entry = build_feed_entry(report, user, catches=catches)
            if entry is not None:
                recent.append(entry)

    top_species = None
    top_count = 0
    for species, count in species_totals.items():
        if count > top_count:
            top_species, top_count = species, count

    return AnglerProfile(
        user_id=user.id,
        display_name=format_display_name(user.first_name, user.last_name),
        profile_image=user.profile_image_url or None,
        total_catches=sum(species_totals.values()),
        species_caught=list(species_totals),
        top_species=top_species,
        recent_catches=recent,
        member_since=user.rewards_opted_in_at or user.created_at,
    )
