"""
Tests for calculate_priority_score().

Covers the money/category fallback bands, deadline urgency bands, the
priority weight, time efficiency, goal linkage, the protected-time
penalty and clamping to [0, 100].
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest

from src.services.priority_scoring import calculate_priority_score

NOW = datetime(2025, 3, 10, 4, 30, tzinfo=UTC)


def make_task(**overrides):
    fields = {
        "money_impact": None,
        "time_required_minutes": None,
        "deadline": None,
        "priority": 3,
        "goal_id": None,
        "linked_income_source": None,
        "task_type": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestBaseline:
    def test_plain_task_scores_fallback_plus_priority(self):
        # category fallback 5 + priority 3 * 3
        assert calculate_priority_score(make_task(), NOW) == 14

    def test_missing_priority_defaults_to_three(self):
        assert calculate_priority_score(make_task(priority=None), NOW) == 14

    @pytest.mark.parametrize("priority,expected", [(1, 8), (5, 20), (9, 20), (0, 14)])
    def test_priority_weight_is_clamped(self, priority, expected):
        # 0 is falsy and falls back to the default priority
        assert calculate_priority_score(make_task(priority=priority), NOW) == expected


class TestMoneyAndCategory:
    @pytest.mark.parametrize(
        "money,points",
        [(10000, 40), (25000, 40), (5000, 35), (9999, 35), (1000, 30), (999, 20), (1, 20)],
    )
    def test_money_bands(self, money, points):
        assert calculate_priority_score(make_task(money_impact=money), NOW) == points + 9

    def test_income_linked_fallback(self):
        task = make_task(linked_income_source="Acme")
        assert calculate_priority_score(task, NOW) == 25 + 9

    @pytest.mark.parametrize("task_type", ["study", "learning"])
    def test_learning_fallback(self, task_type):
        assert calculate_priority_score(make_task(task_type=task_type), NOW) == 20 + 9

    def test_job_related_fallback(self):
        assert calculate_priority_score(make_task(task_type="job_related"), NOW) == 15 + 9

    def test_money_beats_category(self):
        task = make_task(money_impact=5000, linked_income_source="Acme", task_type="study")
        assert calculate_priority_score(task, NOW) == 35 + 9


class TestDeadline:
    @pytest.mark.parametrize(
        "hours,points",
        [(-1, 30), (1, 28), (2, 28), (3, 25), (6, 25), (10, 20), (24, 20), (30, 15), (100, 10), (200, 5)],
    )
    def test_deadline_bands(self, hours, points):
        task = make_task(deadline=NOW + timedelta(hours=hours))
        assert calculate_priority_score(task, NOW) == 14 + points


class TestEfficiencyAndGoal:
    def test_high_hourly_value(self):
        task = make_task(money_impact=5000, time_required_minutes=60)
        assert calculate_priority_score(task, NOW) == 35 + 9 + 10

    @pytest.mark.parametrize("minutes,points", [(60, 8), (120, 6), (600, 3)])
    def test_efficiency_bands(self, minutes, points):
        task = make_task(money_impact=1000, time_required_minutes=minutes)
        assert calculate_priority_score(task, NOW) == 30 + 9 + points

    def test_efficiency_needs_time_estimate(self):
        assert calculate_priority_score(make_task(money_impact=1000), NOW) == 30 + 9

    def test_goal_bonus(self):
        assert calculate_priority_score(make_task(goal_id=7), NOW) == 14 + 5


class TestProtectedPenaltyAndClamp:
    def test_penalty_is_exactly_fifty(self):
        task = make_task(money_impact=10000, deadline=NOW + timedelta(hours=1))
        unprotected = calculate_priority_score(task, NOW)
        assert unprotected == 77
        assert calculate_priority_score(task, NOW, is_during_protected_time=True) == 27

    def test_penalty_clamps_at_zero(self):
        task = make_task(task_type="job_related", priority=5)
        assert calculate_priority_score(task, NOW) == 30
        assert calculate_priority_score(task, NOW, is_during_protected_time=True) == 0

    def test_score_never_exceeds_hundred(self):
        task = make_task(
            money_impact=50000,
            time_required_minutes=30,
            deadline=NOW - timedelta(hours=1),
            priority=5,
            goal_id=1,
        )
        assert calculate_priority_score(task, NOW) == 100
