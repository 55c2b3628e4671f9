"""
Natural-language time expressions for reminders and deadlines.

The model hands tools short expressions like "tomorrow at 10am",
"in 2 hours", "friday 5pm" or an ISO timestamp. parse_time_expression()
resolves them against the user's local "now" and returns an aware
datetime in the same timezone, or None when the expression cannot be
understood (the tool then answers with `needs_time`).

Usage:
    from src.lib.timeparse import parse_time_expression

    when = parse_time_expression("tomorrow at 10am", now_local)
"""

from __future__ import annotations

import re
from datetime import datetime, time, timedelta

from dateutil import parser as date_parser
from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta, weekday

_CLOCK = r"(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<meridiem>am|pm|a\.m\.|p\.m\.)?"

_RELATIVE_RE = re.compile(
    r"^in\s+(?P<amount>\d+|an?|one)\s+(?P<unit>minute|min|hour|hr|day|week)s?$"
)
_DAY_RE = re.compile(rf"^(?P<day>today|tonight|tomorrow)(?:\s+(?:at\s+)?{_CLOCK})?$")
_AT_RE = re.compile(rf"^(?:at\s+)?{_CLOCK}(?:\s+(?P<day>today|tonight|tomorrow))?$")
_WEEKDAY_RE = re.compile(
    rf"^(?:(?P<next>next|this|on)\s+)?(?P<weekday>monday|tuesday|wednesday|thursday|friday|saturday|sunday)"
    rf"(?:\s+(?:at\s+)?{_CLOCK})?$"
)

_WEEKDAYS: dict[str, weekday] = {
    "monday": MO,
    "tuesday": TU,
    "wednesday": WE,
    "thursday": TH,
    "friday": FR,
    "saturday": SA,
    "sunday": SU,
}

_UNITS = {
    "minute": timedelta(minutes=1),
    "min": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "hr": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
}

DEFAULT_HOUR = 9


def _clock_from_match(
    match: re.Match[str], default_hour: int = DEFAULT_HOUR, evening: bool = False
) -> time | None:
    hour_text = match.group("hour")
    if hour_text is None:
        return time(default_hour, 0)
    hour = int(hour_text)
    minute = int(match.group("minute") or 0)
    meridiem = (match.group("meridiem") or "").replace(".", "")
    if meridiem == "pm" and hour < 12:
        hour += 12
    elif not meridiem and evening and 1 <= hour <= 11:
        # "tonight at 8" is 20:00
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def _normalize(expression: str) -> str:
    text = expression.strip().lower()
    text = re.sub(r"\s+", " ", text)
    return text.rstrip(".!")


def parse_time_expression(expression: str, now: datetime) -> datetime | None:
    """
    Resolve a time expression relative to `now`.

    Args:
        expression: Free text from the model ("tomorrow at 10am", "in 30 minutes", ISO)
        now: The user's current local time (timezone-aware)

    Returns:
        Aware datetime in now's timezone, or None if unparseable
    """
    if not expression or not expression.strip():
        return None
    text = _normalize(expression)

    match = _RELATIVE_RE.match(text)
    if match:
        amount_text = match.group("amount")
        amount = 1 if amount_text in ("a", "an", "one") else int(amount_text)
        return (now + _UNITS[match.group("unit")] * amount).replace(second=0, microsecond=0)

    match = _DAY_RE.match(text)
    if match:
        day = match.group("day")
        evening = day == "tonight"
        clock = _clock_from_match(match, default_hour=20 if evening else DEFAULT_HOUR, evening=evening)
        if clock is None:
            return None
        base = now.date() + timedelta(days=1 if day == "tomorrow" else 0)
        result = datetime.combine(base, clock, tzinfo=now.tzinfo)
        if day != "tomorrow" and result <= now:
            # "today at 9am" said at 11am means tomorrow
            result += timedelta(days=1)
        return result

    match = _AT_RE.match(text)
    if match and match.group("hour") is not None and (match.group("meridiem") or match.group("minute") or text.startswith("at")):
        day = match.group("day")
        clock = _clock_from_match(match, evening=day == "tonight")
        if clock is None:
            return None
        base = now.date() + timedelta(days=1 if day == "tomorrow" else 0)
        result = datetime.combine(base, clock, tzinfo=now.tzinfo)
        if day != "tomorrow" and result <= now:
            result += timedelta(days=1)
        return result

    match = _WEEKDAY_RE.match(text)
    if match:
        clock = _clock_from_match(match)
        if clock is None:
            return None
        target = _WEEKDAYS[match.group("weekday")]
        start = now.date() + timedelta(days=1)
        if match.group("next") == "next":
            start = now.date() + timedelta(days=7 - now.weekday())
        day = start + relativedelta(weekday=target(+1))
        return datetime.combine(day, clock, tzinfo=now.tzinfo)

    return _parse_absolute(expression, now)


def _parse_absolute(expression: str, now: datetime) -> datetime | None:
    """Fall back to dateutil for absolute dates ("2026-03-05 14:00", "March 5 2pm")."""
    default = now.replace(hour=DEFAULT_HOUR, minute=0, second=0, microsecond=0)
    try:
        parsed = date_parser.parse(expression, default=default.replace(tzinfo=None))
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    else:
        parsed = parsed.astimezone(now.tzinfo)
    return parsed


def parse_amount(raw: object) -> float | None:
    """
    Parse a money amount like "₹5,000", "5000", "5k" or 5000.

    Returns None when no number can be extracted or the amount is negative.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw) if raw >= 0 else None
    if not isinstance(raw, str):
        return None
    text = raw.strip().lower().replace(",", "")
    match = re.search(r"(\d+(?:\.\d+)?)\s*(k\b|lakhs?\b|lacs?\b)?", text)
    if not match:
        return None
    if "-" in text[: match.start()]:
        return None
    value = float(match.group(1))
    suffix = match.group(2)
    if suffix == "k":
        value *= 1_000
    elif suffix:
        value *= 100_000
    return value


_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*(h|hrs?|hours?|m|mins?|minutes?)?$")


def parse_hours(raw: object) -> float | None:
    """
    Parse a duration in hours: 2, "2", "2h", "1.5 hours" or "90 minutes".

    Returns None for negative or unreadable values.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw) if raw >= 0 else None
    if not isinstance(raw, str):
        return None
    match = _DURATION_RE.match(raw.strip().lower())
    if not match:
        return None
    value = float(match.group(1))
    if (match.group(2) or "h").startswith("m"):
        return round(value / 60, 2)
    return value
