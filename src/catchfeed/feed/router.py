"""Catch feed API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from catchfeed.cache import CacheEnvelope
from catchfeed.database import get_session
from catchfeed.db.models import HarvestReport
from catchfeed.dependencies import get_feed_cache
from catchfeed.feed.likes import enrich_catches_with_likes, like_catch, unlike_catch
from catchfeed.feed.schemas import AnglerProfile, FeedPage, LikeResponse
from catchfeed.feed.service import clear_catch_feed_cache, fetch_angler_profile, fetch_recent_catches

router = APIRouter(prefix="/api/v1", tags=["Feed"])


@router.get("/feed", response_model=FeedPage)
async def get_feed(
    limit: int | None = Query(None, ge=1, le=50),
    offset: int = Query(0, ge=0),
    force_refresh: bool = Query(False),
    viewer_id: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
    cache: CacheEnvelope = Depends(get_feed_cache),
):
    """One page of recent catches from rewards members."""
    page = await fetch_recent_catches(db, cache, force_refresh=force_refresh, limit=limit, offset=offset)
    if viewer_id:
        page.entries = await enrich_catches_with_likes(db, page.entries, viewer_id)
    return page


@router.delete("/feed/cache")
async def delete_feed_cache(cache: CacheEnvelope = Depends(get_feed_cache)):
    await clear_catch_feed_cache(cache)
    return {"status": "cleared"}


@router.get("/anglers/{user_id}", response_model=AnglerProfile)
async def get_angler_profile(
    user_id: str,
    viewer_id: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
):
    profile = await fetch_angler_profile(db, user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Angler not found")
    profile.recent_catches = await enrich_catches_with_likes(db, profile.recent_catches, viewer_id)
    return profile


async def _require_catch(db: AsyncSession, catch_id: str) -> None:
    if await db.get(HarvestReport, catch_id) is None:
        raise HTTPException(status_code=404, detail="Catch not found")


@router.post("/catches/{catch_id}/like", response_model=LikeResponse)
async def post_like(
    catch_id: str,
    user_id: str = Query(...),
    db: AsyncSession = Depends(get_session),
):
    await _require_catch(db, catch_id)
    count = await like_catch(db, catch_id, user_id)
    if count is None:
        raise HTTPException(status_code=503, detail="Could not record like")
    return LikeResponse(catch_id=catch_id, like_count=count)


@router.delete("/catches/{catch_id}/like", response_model=LikeResponse)
async def delete_like(
    catch_id: str,
    user_id: str = Query(...),
    db: AsyncSession = Depends(get_session),
):
    await _require_catch(db, catch_id)
    count = await unlike_catch(db, catch_id, user_id)
    if count is None:
        raise HTTPException(status_code=503, detail="Could not remove like")
    return LikeResponse(catch_id=catch_id, like_count=count)
