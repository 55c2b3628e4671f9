"""Tests for natural-language time expressions and money amounts."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from src.lib.timeparse import parse_amount, parse_hours, parse_time_expression

IST = ZoneInfo("Asia/Kolkata")
# Monday 10:00 local
NOW = datetime(2025, 3, 10, 10, 0, tzinfo=IST)


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, day, hour, minute, tzinfo=IST)


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("tomorrow at 10am", at(11, 10)),
        ("Tomorrow 10:30 PM", at(11, 22, 30)),
        ("tomorrow", at(11, 9)),
        ("in 2 hours", at(10, 12)),
        ("in an hour", at(10, 11)),
        ("in 30 minutes", at(10, 10, 30)),
        ("in 3 days", at(13, 10)),
        ("tonight", at(10, 20)),
        ("tonight at 8", at(10, 20)),
        ("tonight at 7:30", at(10, 19, 30)),
        ("at 9 tonight", at(10, 21)),
        ("at 3pm", at(10, 15)),
        ("5pm", at(10, 17)),
        ("friday 5pm", at(14, 17)),
        ("on wednesday at 11:15", at(12, 11, 15)),
        ("next friday", at(21, 9)),
    ],
)
def test_relative_expressions(expression, expected):
    assert parse_time_expression(expression, NOW) == expected


def test_past_clock_today_rolls_to_tomorrow():
    assert parse_time_expression("today at 9am", NOW) == at(11, 9)
    assert parse_time_expression("at 8am", NOW) == at(11, 8)


def test_same_weekday_means_next_week():
    assert parse_time_expression("monday", NOW) == at(17, 9)


def test_absolute_timestamp_is_localized():
    assert parse_time_expression("2025-03-15 14:30", NOW) == at(15, 14, 30)


def test_offset_timestamp_converted_to_local():
    parsed = parse_time_expression("2025-03-15T09:00:00+00:00", NOW)
    assert parsed == at(15, 14, 30)
    assert parsed.tzinfo == IST


@pytest.mark.parametrize("expression", ["", "   ", "whenever you like", "tomorrow at 25"])
def test_unparseable_returns_none(expression):
    assert parse_time_expression(expression, NOW) is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("₹5,000", 5000.0),
        ("5000", 5000.0),
        ("5k", 5000.0),
        ("2 lakh", 200000.0),
        ("1.5 lakhs", 150000.0),
        (750, 750.0),
        (12.5, 12.5),
    ],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", [None, True, -5, "no money here", ["5000"], "-30", "-₹500", "- 2k"])
def test_parse_amount_rejects(raw):
    assert parse_amount(raw) is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(2, 2.0), ("2", 2.0), ("2h", 2.0), ("1.5 hours", 1.5), ("3 hrs", 3.0), ("90 minutes", 1.5), ("45 min", 0.75)],
)
def test_parse_hours(raw, expected):
    assert parse_hours(raw) == expected


@pytest.mark.parametrize("raw", [None, True, -1, "-2 hours", "a while", "2 days"])
def test_parse_hours_rejects(raw):
    assert parse_hours(raw) is None
