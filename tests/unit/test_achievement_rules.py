"""Achievement rule table unit tests."""

from __future__ import annotations

import logging

import pytest

from catchfeed.achievements.rules import (
    ACHIEVEMENT_PRIORITY,
    ACHIEVEMENT_RULES,
    UNKNOWN_PRIORITY,
    AchievementCode,
    AchievementContext,
    is_satisfied,
    priority_for,
)
from catchfeed.achievements.schemas import AwardedAchievement
from catchfeed.achievements.seed import ACHIEVEMENT_SEED_DATA
from catchfeed.achievements.service import sort_by_priority
from catchfeed.species import TRACKED_SPECIES


class TestTablesCoverEnum:
    def test_every_code_has_a_rule(self):
        assert set(ACHIEVEMENT_RULES) == set(AchievementCode)

    def test_every_code_has_a_priority(self):
        assert set(ACHIEVEMENT_PRIORITY) == set(AchievementCode)

    def test_seed_matches_enum(self):
        assert {a["code"] for a in ACHIEVEMENT_SEED_DATA} == {c.value for c in AchievementCode}


class TestRules:
    def test_empty_context_matches_nothing(self):
        ctx = AchievementContext()
        assert [c for c in AchievementCode if is_satisfied(c.value, ctx)] == []

    def test_first_report(self):
        ctx = AchievementContext(total_reports=1, total_fish=2, current_streak=1, longest_streak=1)
        matched = {c for c in AchievementCode if is_satisfied(c.value, ctx)}
        assert matched == {AchievementCode.FIRST_REPORT}

    @pytest.mark.parametrize(
        ("code", "below", "at"),
        [
            ("reports_10", AchievementContext(total_reports=9), AchievementContext(total_reports=10)),
            ("reports_50", AchievementContext(total_reports=49), AchievementContext(total_reports=50)),
            ("reports_100", AchievementContext(total_reports=99), AchievementContext(total_reports=100)),
            ("fish_100", AchievementContext(total_fish=99), AchievementContext(total_fish=100)),
            ("fish_500", AchievementContext(total_fish=499), AchievementContext(total_fish=500)),
            ("streak_3", AchievementContext(longest_streak=2), AchievementContext(longest_streak=3)),
            ("streak_7", AchievementContext(longest_streak=6), AchievementContext(longest_streak=7)),
            ("streak_30", AchievementContext(longest_streak=29), AchievementContext(longest_streak=30)),
        ],
    )
    def test_thresholds(self, code, below, at):
        assert is_satisfied(code, below) is False
        assert is_satisfied(code, at) is True

    def test_streak_rules_use_longest_not_current(self):
        ctx = AchievementContext(current_streak=1, longest_streak=7)
        assert is_satisfied("streak_7", ctx) is True

    def test_photo_first_needs_two_photographed_reports(self):
        assert is_satisfied("photo_first", AchievementContext(reports_with_photos=1)) is False
        assert is_satisfied("photo_first", AchievementContext(reports_with_photos=2)) is True

    def test_rewards_entered_needs_membership_and_a_report(self):
        assert is_satisfied("rewards_entered", AchievementContext(is_rewards_member=True)) is False
        assert is_satisfied("rewards_entered", AchievementContext(total_reports=1)) is False
        assert is_satisfied(
            "rewards_entered", AchievementContext(is_rewards_member=True, total_reports=1)
        ) is True

    def test_species_all_5(self):
        four = {s: 1 for s in TRACKED_SPECIES[:4]}
        assert is_satisfied("species_all_5", AchievementContext(species_totals=four)) is False
        five = {s: 1 for s in TRACKED_SPECIES}
        assert is_satisfied("species_all_5", AchievementContext(species_totals=five)) is True

    def test_unknown_code_never_matches(self, caplog):
        ctx = AchievementContext(total_reports=1000, total_fish=1000, longest_streak=100)
        with caplog.at_level(logging.WARNING):
            assert is_satisfied("legendary_angler", ctx) is False
        assert "legendary_angler" in caplog.text


class TestPriority:
    def test_known_priorities(self):
        assert priority_for("rewards_entered") == 1
        assert priority_for("first_report") == 10
        assert priority_for("photo_first") == 12
        assert priority_for("species_all_5") == 50

    def test_unknown_priority(self):
        assert priority_for("mystery") == UNKNOWN_PRIORITY

    def test_sort_by_priority(self):
        def award(code: str) -> AwardedAchievement:
            return AwardedAchievement(id=1, code=code, name=code, description="", category="x")

        ordered = sort_by_priority([award("mystery"), award("streak_3"), award("first_report"), award("rewards_entered")])
        assert [a.code for a in ordered] == ["rewards_entered", "first_report", "streak_3", "mystery"]
