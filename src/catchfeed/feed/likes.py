"""Catch likes: batched lookup for feed pages and idempotent like/unlike."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catchfeed.db.models import CatchLike
from catchfeed.feed.schemas import CatchFeedEntry

logger = structlog.get_logger()


@dataclass(frozen=True)
class LikeStatus:
    count: int = 0
    liked: bool = False


async def fetch_likes_for_catches(
    db: AsyncSession,
    catch_ids: list[str],
    viewer_id: str | None = None,
) -> dict[str, LikeStatus]:
    """One query for all catches on a page. Empty dict if the lookup fails."""
    if not catch_ids:
        return {}

    try:
        result = await db.execute(
            select(CatchLike.catch_id, CatchLike.user_id).where(CatchLike.catch_id.in_(catch_ids))
        )
        rows = result.all()
    except (SQLAlchemyError, OSError):
        logger.warning("likes_fetch_failed", catches=len(catch_ids), exc_info=True)
        return {}

    counts: dict[str, int] = {}
    liked: set[str] = set()
    for catch_id, user_id in rows:
        counts[catch_id] = counts.get(catch_id, 0) + 1
        if viewer_id is not None and user_id == viewer_id:
            liked.add(catch_id)

    return {
        catch_id: LikeStatus(count=counts.get(catch_id, 0), liked=catch_id in liked)
        for catch_id in catch_ids
    }


async def enrich_catches_with_likes(
    db: AsyncSession,
    entries: list[CatchFeedEntry],
    viewer_id: str | None = None,
) -> list[CatchFeedEntry]:
    """Return copies of ``entries`` with like counts and the viewer's flag filled in."""
    if not entries:
        return entries

    likes = await fetch_likes_for_catches(db, [e.id for e in entries], viewer_id)
    default = LikeStatus()
    return [
        entry.model_copy(
            update={
                "like_count": likes.get(entry.id, default).count,
                "is_liked_by_current_user": likes.get(entry.id, default).liked,
            }
        )
        for entry in entries
    ]


async def count_likes(db: AsyncSession, catch_id: str) -> int:
    result = await db.execute(
        select(func.count(CatchLike.id)).where(CatchLike.catch_id == catch_id)
    )
    return result.scalar_one() or 0


async def like_catch(db: AsyncSession, catch_id: str, user_id: str) -> int | None:
    """Like a catch. Returns the new like count, or None on failure.

    Liking twice is not an error: the unique (catch, user) constraint rejects
    the second insert and the current count is returned.
    """
    try:
        try:
            async with db.begin_nested():
                db.add(CatchLike(catch_id=catch_id, user_id=user_id))
        except IntegrityError:
            logger.debug("catch_already_liked", catch_id=catch_id, user_id=user_id)
        await db.commit()
        return await count_likes(db, catch_id)
    except (SQLAlchemyError, OSError):
        await db.rollback()
        logger.error("like_failed", catch_id=catch_id, user_id=user_id, exc_info=True)
        return None


async def unlike_catch(db: AsyncSession, catch_id: str, user_id: str) -> int | None:
    """Remove a like. Returns the new like count, or None on failure."""
    try:
        await db.execute(
            delete(CatchLike).where(CatchLike.catch_id == catch_id, CatchLike.user_id == user_id)
        )
        await db.commit()
        return await count_likes(db, catch_id)
    except (SQLAlchemyError, OSError):
        await db.rollback()
        logger.error("unlike_failed", catch_id=catch_id, user_id=user_id, exc_info=True)
        return None
