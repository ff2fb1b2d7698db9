"""Stats aggregation against the database: totals, species rows, streaks."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from catchfeed.db.models import User, UserSpeciesStat
from catchfeed.stats import service as stats_service
from catchfeed.stats.schemas import HarvestReportIn
from catchfeed.stats.service import apply_report, update_all_stats_after_report

DAY = date(2024, 6, 10)


async def _species_rows(db, user_id: str) -> dict[str, UserSpeciesStat]:
    result = await db.execute(
        select(UserSpeciesStat)
        .where(UserSpeciesStat.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return {row.species: row for row in result.scalars()}


async def _user(db, user_id: str) -> User:
    return await db.get(User, user_id, populate_existing=True)


class TestApplyReport:
    @pytest.mark.asyncio
    async def test_first_report_creates_rows(self, db_session, make_user):
        user = await make_user()
        report = HarvestReportIn(harvest_date=DAY, red_drum_count=2, weakfish_count=1)

        result = await apply_report(db_session, user.id, report)

        assert result.species_updated is True
        assert result.user_stats_updated is True
        rows = await _species_rows(db_session, user.id)
        assert rows["Red Drum"].total_count == 2
        assert rows["Weakfish"].total_count == 1
        assert rows["Red Drum"].last_caught_at == DAY
        u = await _user(db_session, user.id)
        assert u.total_reports == 1
        assert u.total_fish_reported == 3
        assert u.current_streak_days == 1
        assert u.longest_streak_days == 1
        assert u.last_active_at.date() == DAY

    @pytest.mark.asyncio
    async def test_itemized_entries_take_precedence(self, db_session, make_user):
        user = await make_user()
        report = {
            "harvest_date": DAY.isoformat(),
            "red_drum_count": 9,
            "fish_entries": [{"species": "Flounder", "count": 1, "lengths": ["19", "x"]}],
        }

        await apply_report(db_session, user.id, report)

        rows = await _species_rows(db_session, user.id)
        assert set(rows) == {"Southern Flounder"}
        assert rows["Southern Flounder"].largest_length == 19.0
        assert (await _user(db_session, user.id)).total_fish_reported == 1

    @pytest.mark.asyncio
    async def test_species_totals_are_monotonic(self, db_session, make_user):
        user = await make_user()
        seen: dict[str, int] = {}
        for i, count in enumerate([1, 0, 3, 2, 0, 5]):
            report = HarvestReportIn(harvest_date=DAY + timedelta(days=i), red_drum_count=count, weakfish_count=1)
            await apply_report(db_session, user.id, report)
            rows = await _species_rows(db_session, user.id)
            for species, row in rows.items():
                assert row.total_count >= seen.get(species, 0)
                seen[species] = row.total_count
        assert seen == {"Red Drum": 11, "Weakfish": 6}

    @pytest.mark.asyncio
    async def test_last_caught_and_last_active_never_regress(self, db_session, make_user):
        user = await make_user()
        await apply_report(db_session, user.id, HarvestReportIn(harvest_date=DAY, red_drum_count=1))
        await apply_report(
            db_session, user.id, HarvestReportIn(harvest_date=DAY - timedelta(days=5), red_drum_count=1)
        )

        rows = await _species_rows(db_session, user.id)
        assert rows["Red Drum"].last_caught_at == DAY
        assert (await _user(db_session, user.id)).last_active_at.date() == DAY

    @pytest.mark.asyncio
    async def test_streak_over_consecutive_days_then_gap(self, db_session, make_user):
        user = await make_user()
        for offset in [0, 1, 2, 2, 5]:
            await apply_report(
                db_session, user.id, HarvestReportIn(harvest_date=DAY + timedelta(days=offset), red_drum_count=1)
            )
        u = await _user(db_session, user.id)
        assert u.current_streak_days == 1
        assert u.longest_streak_days == 3
        assert u.total_reports == 5

    @pytest.mark.asyncio
    async def test_report_without_fish_still_counts_as_report(self, db_session, make_user):
        user = await make_user()
        result = await apply_report(db_session, user.id, HarvestReportIn(harvest_date=DAY))
        assert result.species_updated is True
        u = await _user(db_session, user.id)
        assert u.total_reports == 1
        assert u.total_fish_reported == 0

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        result = await apply_report(
            db_session, "00000000-0000-0000-0000-000000000000", HarvestReportIn(harvest_date=DAY)
        )
        assert result.species_updated is False
        assert result.user_stats_updated is False


class TestPartialFailure:
    @pytest.mark.asyncio
    async def test_failed_species_is_skipped(self, db_session, make_user, monkeypatch):
        user = await make_user()
        original = stats_service._apply_species_catch

        async def flaky(db, user_id, catch, harvest_date):
            if catch.species == "Weakfish":
                raise OperationalError("UPDATE user_species_stats", {}, Exception("disk I/O error"))
            await original(db, user_id, catch, harvest_date)

        monkeypatch.setattr(stats_service, "_apply_species_catch", flaky)

        report = HarvestReportIn(harvest_date=DAY, red_drum_count=2, weakfish_count=1, striped_bass_count=1)
        result = await apply_report(db_session, user.id, report)

        assert result.species_updated is False
        assert result.user_stats_updated is True
        rows = await _species_rows(db_session, user.id)
        assert set(rows) == {"Red Drum", "Striped Bass"}
        u = await _user(db_session, user.id)
        assert u.total_reports == 1
        assert u.total_fish_reported == 4

    @pytest.mark.asyncio
    async def test_partial_failure_reported_in_combined_result(self, seeded_db, make_user, monkeypatch):
        user = await make_user()

        async def broken(*_args):
            raise OperationalError("UPDATE user_species_stats", {}, Exception("locked"))

        monkeypatch.setattr(stats_service, "_apply_species_catch", broken)

        result = await update_all_stats_after_report(
            seeded_db, user.id, HarvestReportIn(harvest_date=DAY, red_drum_count=1)
        )
        assert result.success is False
        assert result.species_stats_updated is False
        assert result.user_stats_updated is True
        assert result.error


class TestUpdateAllStatsAfterReport:
    @pytest.mark.asyncio
    async def test_first_report_awards_only_first_report(self, seeded_db, make_user, make_report):
        user = await make_user(rewards=False)
        report = await make_report(user, DAY, red_drum_count=2)

        result = await update_all_stats_after_report(seeded_db, user.id, report)

        assert result.success is True
        assert result.species_stats_updated is True
        assert result.user_stats_updated is True
        assert [a.code for a in result.achievements_awarded] == ["first_report"]
        assert result.error is None

    @pytest.mark.asyncio
    async def test_rewards_member_first_report_ordering(self, seeded_db, make_user, make_report):
        user = await make_user(rewards=True)
        report = await make_report(user, DAY, red_drum_count=1)

        result = await update_all_stats_after_report(seeded_db, user.id, report)

        assert [a.code for a in result.achievements_awarded] == ["rewards_entered", "first_report"]
