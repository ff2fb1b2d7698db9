"""Achievement catalog seed data: 12 achievements."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catchfeed.db.models import Achievement

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[dict] = [
    # Special
    {
        "code": "rewards_entered",
        "name": "Rewards Member",
        "description": "Join the rewards program and submit a report",
        "category": "special",
        "icon": "gift",
        "sort_order": 1,
    },
    # Reporting milestones
    {
        "code": "first_report",
        "name": "First Report",
        "description": "You submitted your first harvest report!",
        "category": "reporting",
        "icon": "flag",
        "sort_order": 2,
    },
    {
        "code": "reports_10",
        "name": "Regular Reporter",
        "description": "Submit 10 harvest reports",
        "category": "milestone",
        "icon": "trending-up",
        "sort_order": 3,
    },
    {
        "code": "reports_50",
        "name": "Dedicated Reporter",
        "description": "Submit 50 harvest reports",
        "category": "milestone",
        "icon": "award",
        "sort_order": 4,
    },
    {
        "code": "reports_100",
        "name": "Century Reporter",
        "description": "Submit 100 harvest reports",
        "category": "milestone",
        "icon": "star",
        "sort_order": 5,
    },
    # Photos
    {
        "code": "photo_first",
        "name": "Picture Perfect",
        "description": "Add photos to your harvest reports",
        "category": "special",
        "icon": "camera",
        "sort_order": 6,
    },
    # Fish counts
    {
        "code": "fish_100",
        "name": "Hundred Fish",
        "description": "Report 100 fish in total",
        "category": "milestone",
        "icon": "anchor",
        "sort_order": 7,
    },
    {
        "code": "fish_500",
        "name": "Five Hundred Fish",
        "description": "Report 500 fish in total",
        "category": "milestone",
        "icon": "award",
        "sort_order": 8,
    },
    # Streaks
    {
        "code": "streak_3",
        "name": "Three-Day Streak",
        "description": "Report on 3 consecutive days",
        "category": "streak",
        "icon": "zap",
        "sort_order": 9,
    },
    {
        "code": "streak_7",
        "name": "Week-Long Streak",
        "description": "Report on 7 consecutive days",
        "category": "streak",
        "icon": "zap",
        "sort_order": 10,
    },
    {
        "code": "streak_30",
        "name": "Month-Long Streak",
        "description": "Report on 30 consecutive days",
        "category": "streak",
        "icon": "zap",
        "sort_order": 11,
    },
    # Species
    {
        "code": "species_all_5",
        "name": "Grand Slam",
        "description": "Report all five tracked species",
        "category": "species",
        "icon": "list",
        "sort_order": 12,
    },
]


async def seed_achievements(db: AsyncSession) -> int:
    """Insert or refresh the catalog. Returns number of achievements seeded."""
    result = await db.execute(select(Achievement))
    existing = {a.code: a for a in result.scalars()}

    seeded = 0
    for data in ACHIEVEMENT_SEED_DATA:
        row = existing.get(data["code"])
        if row is None:
            db.add(Achievement(is_active=True, **data))
        else:
            row.name = data["name"]
            row.description = data["description"]
            row.category = data["category"]
            row.icon = data["icon"]
            row.sort_order = data["sort_order"]
        seeded += 1

    await db.commit()
    logger.info("Seeded %d achievements", seeded)
    return seeded
