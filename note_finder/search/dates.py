"""Resolve ``@`` date fragments into half-open millisecond ranges.

Every range is ``[start_ms, end_ms)`` in epoch milliseconds of local-time
midnights, so a day, ISO week, month, quarter or year is represented by
the start of its first day and the start of the day after its last day.

Supported bodies (after an optional ``c:``/``created:`` or
``m:``/``modified:`` field prefix):

    today, yesterday, last7d, last30d, thisweek, thismonth
    2026            2026-02 / 202602      2026-Q2 / 2026Q2
    2026-W05 / 2026W05                    2026-02-04 / 20260204
    13/02/2026 / 13022026 (day/month order resolved by locale if ambiguous)
    2026-02-01..2026-02-07, 2026-02-01.., ..2026-02-07
"""

from __future__ import annotations

import enum
import logging
import re
import threading
from datetime import date, datetime, time, timedelta
from typing import NamedTuple

from note_finder.search.tokens import DateField, DateFilterRange

log = logging.getLogger(__name__)


class DateSpan(NamedTuple):
    """A resolved calendar unit, ``start_ms < end_ms``."""

    start_ms: int
    end_ms: int


class DayMonthOrder(enum.Enum):
    """Order of day and month in the locale's numeric date format."""

    DAY_FIRST = "dmy"
    MONTH_FIRST = "mdy"


RELATIVE_KEYWORDS: tuple[str, ...] = (
    "today",
    "yesterday",
    "last7d",
    "last30d",
    "thisweek",
    "thismonth",
)

_FIELD_PREFIXES: tuple[tuple[str, DateField], ...] = (
    ("created:", DateField.CREATED),
    ("modified:", DateField.MODIFIED),
    ("c:", DateField.CREATED),
    ("m:", DateField.MODIFIED),
)

# ---------------------------------------------------------------------------
# Pre-compiled patterns
# ---------------------------------------------------------------------------

_YEAR = re.compile(r"^(\d{4})$")
_YEAR_MONTH = re.compile(r"^(\d{4})(?:[-/.](\d{1,2})|(\d{2}))$")
_YEAR_QUARTER = re.compile(r"^(\d{4})[-/.]?q([1-4])$")
_YEAR_WEEK = re.compile(r"^(\d{4})[-/.]?w(\d{1,2})$")
_YEAR_MONTH_DAY = re.compile(r"^(\d{4})([-/.])(\d{1,2})\2(\d{1,2})$")
_YEAR_MONTH_DAY_COMPACT = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_AMBIGUOUS_DAY = re.compile(r"^(\d{1,2})([-/.])(\d{1,2})\2(\d{4})$")
_AMBIGUOUS_DAY_COMPACT = re.compile(r"^(\d{2})(\d{2})(\d{4})$")
_DATE_LIKE = re.compile(r"^(?:\d|\.\.)[\d./\-qw]*$")


# ---------------------------------------------------------------------------
# Locale day/month order
# ---------------------------------------------------------------------------

_order_lock = threading.Lock()
_detected_order: DayMonthOrder | None = None
_configured_order: DayMonthOrder | None = None


def _read_locale_day_month_order() -> DayMonthOrder:
    """Format a known date with the locale's ``%x`` and compare positions."""
    sample = date(2000, 11, 22).strftime("%x")
    day_pos = sample.find("22")
    month_pos = sample.find("11")
    if day_pos == -1 or month_pos == -1:
        return DayMonthOrder.MONTH_FIRST
    return DayMonthOrder.DAY_FIRST if day_pos < month_pos else DayMonthOrder.MONTH_FIRST


def detect_day_month_order() -> DayMonthOrder:
    """Return the day/month order used to break ambiguous numeric dates.

    An explicit order set with :func:`configure_day_month_order` wins.
    Otherwise the locale is inspected once per process; concurrent first
    callers are serialized on a lock so detection runs a single time.
    """
    global _detected_order
    if _configured_order is not None:
        return _configured_order
    if _detected_order is None:
        with _order_lock:
            if _detected_order is None:
                _detected_order = _read_locale_day_month_order()
                log.debug("Locale date order: %s", _detected_order.value)
    return _detected_order


def configure_day_month_order(order: DayMonthOrder | None) -> None:
    """Force a day/month order, or pass None to fall back to the locale."""
    global _configured_order
    _configured_order = order


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------


def _calendar_date(year: int, month: int, day: int) -> date | None:
    """Build a date, rejecting overflowed parts such as day 32 or month 13."""
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _month_start(year: int, month: int) -> date | None:
    """First day of ``month`` (which may run past 12 into later years)."""
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return _calendar_date(year, month, 1)


def _shift_days(day: date, days: int) -> date | None:
    try:
        return day + timedelta(days=days)
    except OverflowError:
        return None


def _day_start_ms(day: date) -> int:
    return int(datetime.combine(day, time.min).timestamp() * 1000)


def _span_between(start: date | None, end: date | None) -> DateSpan | None:
    """Span from local midnight of ``start`` to local midnight of ``end``."""
    if start is None or end is None:
        return None
    try:
        start_ms = _day_start_ms(start)
        end_ms = _day_start_ms(end)
    except (OverflowError, OSError, ValueError):
        return None
    if start_ms >= end_ms:
        return None
    return DateSpan(start_ms, end_ms)


def _day_span(day: date | None) -> DateSpan | None:
    if day is None:
        return None
    return _span_between(day, _shift_days(day, 1))


# ---------------------------------------------------------------------------
# ISO 8601 weeks
# ---------------------------------------------------------------------------


def iso_week_one_start(year: int) -> date:
    """Monday of the ISO week containing January 4th of ``year``."""
    jan4 = date(year, 1, 4)
    return jan4 - timedelta(days=jan4.weekday())


def iso_weeks_in_year(year: int) -> int:
    """Number of ISO weeks (52 or 53) in ``year``."""
    gap = (iso_week_one_start(year + 1) - iso_week_one_start(year)).days
    # Both starts are Mondays: the gap is 364 or 371 days.
    return gap // 7


def iso_week_span(year: int, week: int) -> DateSpan | None:
    """Monday 00:00 of ISO ``week`` through the following Monday 00:00."""
    try:
        weeks = iso_weeks_in_year(year)
    except ValueError:
        return None
    if not 1 <= week <= weeks:
        return None
    start = iso_week_one_start(year) + timedelta(weeks=week - 1)
    return _span_between(start, _shift_days(start, 7))


# ---------------------------------------------------------------------------
# Absolute dates
# ---------------------------------------------------------------------------


def _resolve_ambiguous_day(first: int, second: int, year: int) -> date | None:
    """Pick day-first or month-first reading of ``first/second/year``."""
    day_first = _calendar_date(year, second, first)
    month_first = _calendar_date(year, first, second)
    if day_first is not None and month_first is not None:
        if detect_day_month_order() is DayMonthOrder.DAY_FIRST:
            return day_first
        return month_first
    return day_first or month_first


def _parse_day_date(text: str) -> date | None:
    m = _YEAR_MONTH_DAY.match(text)
    if m:
        return _calendar_date(int(m.group(1)), int(m.group(3)), int(m.group(4)))

    m = _YEAR_MONTH_DAY_COMPACT.match(text)
    if m:
        day = _calendar_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if day is not None:
            return day
        # Not a valid YYYYMMDD: fall through to DDMMYYYY / MMDDYYYY

    m = _AMBIGUOUS_DAY.match(text) or _AMBIGUOUS_DAY_COMPACT.match(text)
    if m:
        groups = m.groups()
        first, second, year = int(groups[0]), int(groups[-2]), int(groups[-1])
        return _resolve_ambiguous_day(first, second, year)

    return None


def parse_day(text: str) -> DateSpan | None:
    """Parse a single-day token (any of the day grammars) into a span."""
    return _day_span(_parse_day_date(text.strip().lower()))


def parse_absolute_date(text: str) -> DateSpan | None:
    """Parse a year, month, quarter, ISO week or day into a span."""
    text = text.strip().lower()

    m = _YEAR.match(text)
    if m:
        year = int(m.group(1))
        return _span_between(_calendar_date(year, 1, 1), _month_start(year, 13))

    m = _YEAR_MONTH.match(text)
    if m:
        year = int(m.group(1))
        month = int(m.group(2) or m.group(3))
        if not 1 <= month <= 12:
            return None
        return _span_between(_month_start(year, month), _month_start(year, month + 1))

    m = _YEAR_QUARTER.match(text)
    if m:
        year = int(m.group(1))
        first_month = (int(m.group(2)) - 1) * 3 + 1
        return _span_between(_month_start(year, first_month), _month_start(year, first_month + 3))

    m = _YEAR_WEEK.match(text)
    if m:
        return iso_week_span(int(m.group(1)), int(m.group(2)))

    return _day_span(_parse_day_date(text))


# ---------------------------------------------------------------------------
# Relative keywords and ranges
# ---------------------------------------------------------------------------


def resolve_relative_date_range(keyword: str, now: datetime | None = None) -> DateSpan | None:
    """Resolve ``today``, ``last7d``, ``thisweek`` etc. against ``now``."""
    today = (now or datetime.now()).date()
    keyword = keyword.strip().lower()

    if keyword == "today":
        return _span_between(today, _shift_days(today, 1))
    if keyword == "yesterday":
        return _span_between(_shift_days(today, -1), today)
    if keyword == "last7d":
        return _span_between(_shift_days(today, -6), _shift_days(today, 1))
    if keyword == "last30d":
        return _span_between(_shift_days(today, -29), _shift_days(today, 1))
    if keyword == "thisweek":
        monday = _shift_days(today, -today.weekday())
        if monday is None:
            return None
        return _span_between(monday, _shift_days(monday, 7))
    if keyword == "thismonth":
        return _span_between(
            _month_start(today.year, today.month), _month_start(today.year, today.month + 1)
        )
    return None


def parse_date_range(text: str) -> tuple[int | None, int | None] | None:
    """Parse ``<day>..<day>`` with either side optional.

    The start is the left day's start and the end is the right day's end,
    so both days are included.
    """
    left, sep, right = text.strip().lower().partition("..")
    if not sep or (not left and not right):
        return None

    start_ms: int | None = None
    end_ms: int | None = None
    if left:
        span = parse_day(left)
        if span is None:
            return None
        start_ms = span.start_ms
    if right:
        span = parse_day(right)
        if span is None:
            return None
        end_ms = span.end_ms

    if start_ms is not None and end_ms is not None and start_ms >= end_ms:
        return None
    return start_ms, end_ms


# ---------------------------------------------------------------------------
# Token bodies
# ---------------------------------------------------------------------------


def split_field_prefix(body: str) -> tuple[DateField, str]:
    """Split ``c:``/``created:``/``m:``/``modified:`` off a date body."""
    for prefix, date_field in _FIELD_PREFIXES:
        if body.startswith(prefix):
            return date_field, body[len(prefix) :]
    return DateField.DEFAULT, body


def is_date_candidate(body: str) -> bool:
    """Whether an ``@`` body looks like a date, complete or still being typed.

    ``@to`` (start of ``today``), ``@c:`` and ``@2026-0`` are candidates;
    ``@john`` is not and is searched as literal text instead.
    """
    body = body.strip().lower()
    if any(prefix.startswith(body) for prefix, _ in _FIELD_PREFIXES):
        return True
    _, rest = split_field_prefix(body)
    if not rest:
        return True
    if any(keyword.startswith(rest) for keyword in RELATIVE_KEYWORDS):
        return True
    return _DATE_LIKE.match(rest) is not None


def parse_date_token(body: str, now: datetime | None = None) -> DateFilterRange | None:
    """Parse the text after ``@`` into a date filter range.

    Returns None for anything that does not resolve to a valid range.
    """
    date_field, rest = split_field_prefix(body.strip().lower())
    if not rest:
        return None

    span = resolve_relative_date_range(rest, now)
    if span is not None:
        return DateFilterRange(field=date_field, start_ms=span.start_ms, end_ms=span.end_ms)

    if ".." in rest:
        bounds = parse_date_range(rest)
        if bounds is None:
            return None
        return DateFilterRange(field=date_field, start_ms=bounds[0], end_ms=bounds[1])

    span = parse_absolute_date(rest)
    if span is None:
        return None
    return DateFilterRange(field=date_field, start_ms=span.start_ms, end_ms=span.end_ms)
