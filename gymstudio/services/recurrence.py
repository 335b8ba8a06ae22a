"""Weekly recurrence rules for class schedules.

Only a subset of iCalendar RRULE is understood::

    FREQ=WEEKLY;BYDAY=MO,WE;BYHOUR=18;BYMINUTE=30;COUNT=8;UNTIL=20250131T000000Z

The text form is parsed into :class:`RecurrenceRule` at the boundary and
expanded into concrete ``Occurrence`` windows with ``dateutil.rrule``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from itertools import islice
import re

from dateutil import rrule

from ..core.constants import RECURRENCE_DEFAULT_MAX_OCCURRENCES, RECURRENCE_DEFAULT_WINDOW
from ..core.errors import InvalidRecurrenceError

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_ICAL_DAYS = {"MO": 0, "TU": 1, "WE": 2, "TH": 3, "FR": 4, "SA": 5, "SU": 6}
_SUPPORTED_KEYS = {"FREQ", "BYDAY", "BYHOUR", "BYMINUTE", "COUNT", "UNTIL"}
_UNTIL_DATETIME = re.compile(r"^\d{8}T\d{6}Z$")
_UNTIL_DATE = re.compile(r"^\d{8}$")


@dataclass(frozen=True, slots=True)
class Occurrence:
    start: datetime
    end: datetime


@dataclass(frozen=True, slots=True)
class RecurrenceRule:
    frequency: str
    by_day: frozenset[int] = field(default_factory=frozenset)
    by_hour: int | None = None
    by_minute: int | None = None
    count: int | None = None
    until: datetime | None = None
    until_is_date: bool = False


def weekday_name(value: datetime) -> str:
    return WEEKDAY_NAMES[value.weekday()]


def _parse_int(key: str, raw: str, low: int, high: int | None = None) -> int:
    try:
        number = int(raw)
    except ValueError as exc:
        raise InvalidRecurrenceError(f"{key} must be an integer, got {raw!r}") from exc
    if number < low or (high is not None and number > high):
        raise InvalidRecurrenceError(f"{key} value {number} is out of range")
    return number


def _parse_until(raw: str) -> tuple[datetime, bool]:
    if _UNTIL_DATETIME.match(raw):
        parsed = datetime.strptime(raw, "%Y%m%dT%H%M%SZ")
        return parsed.replace(tzinfo=timezone.utc), False
    if _UNTIL_DATE.match(raw):
        return datetime.strptime(raw, "%Y%m%d"), True
    raise InvalidRecurrenceError(f"UNTIL must be YYYYMMDD or YYYYMMDDTHHMMSSZ, got {raw!r}")


def parse_rrule(text: str) -> RecurrenceRule:
    parts: dict[str, str] = {}
    for chunk in text.strip().split(";"):
        if not chunk.strip():
            continue
        key, sep, value = chunk.partition("=")
        key = key.strip().upper()
        value = value.strip()
        if not sep or not key or not value:
            raise InvalidRecurrenceError(f"Malformed recurrence rule part {chunk!r}")
        if key not in _SUPPORTED_KEYS:
            raise InvalidRecurrenceError(f"Unsupported recurrence rule part {key}")
        parts[key] = value

    frequency = parts.get("FREQ", "").upper()
    if not frequency:
        raise InvalidRecurrenceError("Invalid recurrence rule")
    if frequency != "WEEKLY":
        raise InvalidRecurrenceError("Only WEEKLY recurrence is supported")

    by_day: set[int] = set()
    for code in filter(None, (day.strip().upper() for day in parts.get("BYDAY", "").split(","))):
        if code not in _ICAL_DAYS:
            raise InvalidRecurrenceError(f"Unknown BYDAY value {code}")
        by_day.add(_ICAL_DAYS[code])

    until, until_is_date = (None, False)
    if "UNTIL" in parts:
        until, until_is_date = _parse_until(parts["UNTIL"])

    return RecurrenceRule(
        frequency=frequency,
        by_day=frozenset(by_day),
        by_hour=_parse_int("BYHOUR", parts["BYHOUR"], 0, 23) if "BYHOUR" in parts else None,
        by_minute=_parse_int("BYMINUTE", parts["BYMINUTE"], 0, 59) if "BYMINUTE" in parts else None,
        count=_parse_int("COUNT", parts["COUNT"], 1) if "COUNT" in parts else None,
        until=until,
        until_is_date=until_is_date,
    )


def _align_until(rule: RecurrenceRule, start: datetime) -> datetime:
    """Express the rule's UNTIL in the same awareness as ``start``."""
    if rule.until is None:
        return start + RECURRENCE_DEFAULT_WINDOW
    if rule.until_is_date:
        return rule.until.replace(tzinfo=start.tzinfo)
    if start.tzinfo is None:
        return rule.until.astimezone(timezone.utc).replace(tzinfo=None)
    return rule.until.astimezone(start.tzinfo)


def build_occurrences(
    start: datetime,
    duration_minutes: int,
    recurrence_rule: str | None = None,
    occurrences_limit: int | None = None,
) -> list[Occurrence]:
    duration = timedelta(minutes=duration_minutes)
    single = [Occurrence(start=start, end=start + duration)]
    if not recurrence_rule:
        return single

    rule = parse_rrule(recurrence_rule)
    by_day = sorted(rule.by_day) if rule.by_day else [start.weekday()]
    until = _align_until(rule, start)
    max_count = occurrences_limit or rule.count or RECURRENCE_DEFAULT_MAX_OCCURRENCES

    midnight = start.replace(hour=0, minute=0, second=0, microsecond=0)
    candidates = rrule.rrule(
        rrule.WEEKLY,
        dtstart=midnight,
        byweekday=by_day,
        byhour=start.hour if rule.by_hour is None else rule.by_hour,
        byminute=start.minute if rule.by_minute is None else rule.by_minute,
        bysecond=0,
        until=until,
    )
    occurrences = [
        Occurrence(start=candidate, end=candidate + duration)
        for candidate in islice((c for c in candidates if c >= start), max_count)
    ]
    return occurrences or single


__all__ = [
    "Occurrence",
    "RecurrenceRule",
    "WEEKDAY_NAMES",
    "build_occurrences",
    "parse_rrule",
    "weekday_name",
]
