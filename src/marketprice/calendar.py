"""NYSE session clock: exchange-local calendar, holidays, market sessions.

No external dependencies and no host timezone database: US Eastern wall-clock
time is derived from a fixed DST rule (2nd Sunday of March through the 1st
Sunday of November, switching at 02:00 local), so every result is identical
on every deployment host.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum

from marketprice.errors import PricingError, PricingErrorCode

Instant = datetime | int | float

_STANDARD_OFFSET = timedelta(hours=-5)
_DAYLIGHT_OFFSET = timedelta(hours=-4)

# Epoch ms is ~1.7e12 and epoch ns ~1.7e18; anything above this is nanoseconds.
NANOSECOND_THRESHOLD = 10**14

_DATE_KEY = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


class Session(Enum):
    """Market session for an instant."""

    PRE = "pre"
    LIVE = "live"
    AFTER = "after"
    CLOSED = "closed"


# Minutes since local midnight, [start, end).
SESSION_BANDS: dict[Session, tuple[int, int]] = {
    Session.PRE: (4 * 60, 9 * 60 + 30),
    Session.LIVE: (9 * 60 + 30, 16 * 60),
    Session.AFTER: (16 * 60, 20 * 60),
}

MARKET_OPEN = time(9, 30)
MARKET_CLOSE = time(16, 0)


@dataclass(frozen=True)
class LocalCalendar:
    """Exchange-local wall-clock fields of an instant.

    ``weekday`` follows ``date.weekday()``: Monday=0 ... Sunday=6.
    """

    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    weekday: int

    @property
    def date(self) -> date:
        return date(self.year, self.month, self.day)

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute


# ---- Timestamps ----

def now_utc() -> datetime:
    """Current instant (UTC)."""
    return datetime.now(timezone.utc)


def to_milliseconds(timestamp: Instant) -> int | float:
    """Normalize a provider timestamp to epoch milliseconds.

    Values above ``NANOSECOND_THRESHOLD`` are nanoseconds; everything else
    is passed through unchanged.
    """
    if isinstance(timestamp, datetime):
        return int(to_utc(timestamp).timestamp() * 1000)
    if abs(timestamp) > NANOSECOND_THRESHOLD:
        return int(timestamp // 1_000_000)
    return timestamp


def to_utc(instant: Instant) -> datetime:
    """Convert an instant to an aware UTC datetime.

    Naive datetimes are taken as UTC; numbers are epoch ms (or ns).
    """
    if isinstance(instant, datetime):
        if instant.tzinfo is None:
            return instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(timezone.utc)
    return datetime.fromtimestamp(to_milliseconds(instant) / 1000, tz=timezone.utc)


# ---- DST ----

def _dst_bounds(year: int) -> tuple[datetime, datetime]:
    """UTC instants at which daylight time starts and ends in ``year``."""
    start = _nth_weekday(year, 3, 6, 2)
    end = _nth_weekday(year, 11, 6, 1)
    # 02:00 EST == 07:00 UTC, 02:00 EDT == 06:00 UTC
    return (
        datetime.combine(start, time(7), tzinfo=timezone.utc),
        datetime.combine(end, time(6), tzinfo=timezone.utc),
    )


def utc_offset(instant: Instant) -> timedelta:
    """US Eastern offset from UTC in effect at ``instant``."""
    utc = to_utc(instant)
    start, end = _dst_bounds(utc.year)
    if start <= utc < end:
        return _DAYLIGHT_OFFSET
    return _STANDARD_OFFSET


def local_calendar(instant: Instant) -> LocalCalendar:
    """Exchange-local calendar fields for ``instant``."""
    utc = to_utc(instant)
    local = utc + utc_offset(utc)
    return LocalCalendar(
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
        second=local.second,
        weekday=local.weekday(),
    )


def local_to_utc(d: date, hour: int = 0, minute: int = 0) -> datetime:
    """UTC instant of a US Eastern wall-clock time on ``d``.

    Wall-clock times that do not map to exactly one instant are read as EST.
    The skipped 02:xx hour in March becomes 03:xx EDT. The repeated 01:xx
    hour in November is its second occurrence, unlike ``zoneinfo``'s
    ``fold=0``. Callers only convert 00:00 and 09:30, which are unambiguous.
    """
    wall = datetime.combine(d, time(hour, minute), tzinfo=timezone.utc)
    offset = utc_offset(wall - _STANDARD_OFFSET)
    result = wall - offset
    # Re-check once: the first guess can land on the other side of a switch.
    corrected = utc_offset(result)
    if corrected != offset:
        result = wall - corrected
    return result


def date_key(instant: Instant) -> str:
    """Exchange-local ``YYYY-MM-DD`` partition key."""
    return local_calendar(instant).date.isoformat()


def parse_date_key(key: str) -> datetime:
    """Instant of local midnight for a ``YYYY-MM-DD`` key.

    Raises:
        PricingError: The key is not a valid calendar date.
    """
    match = _DATE_KEY.match(key) if isinstance(key, str) else None
    if match is None:
        raise PricingError(
            f"Invalid date key (expected YYYY-MM-DD): {key!r}",
            code=PricingErrorCode.INVALID_DATE_KEY,
        )
    try:
        d = date(*(int(part) for part in match.groups()))
    except ValueError as exc:
        raise PricingError(
            f"Invalid date key: {key!r} ({exc})",
            code=PricingErrorCode.INVALID_DATE_KEY,
        ) from exc
    return local_to_utc(d)


# ---- Fixed-date holidays ----

def _observed(d: date) -> date:
    """Saturday holidays move to Friday, Sunday holidays to Monday."""
    if d.weekday() == 5:
        return d - timedelta(days=1)
    if d.weekday() == 6:
        return d + timedelta(days=1)
    return d


def _new_years(year: int) -> date:
    d = date(year, 1, 1)
    if d.weekday() == 6:  # Sunday → observed Monday
        return date(year, 1, 2)
    # Saturday is not observed on Dec 31 of the prior year
    return d


def _juneteenth(year: int) -> date | None:
    """Juneteenth, observed from 2021."""
    if year < 2021:
        return None
    return _observed(date(year, 6, 19))


def _independence_day(year: int) -> date:
    return _observed(date(year, 7, 4))


def _christmas(year: int) -> date:
    return _observed(date(year, 12, 25))


# ---- Rule-based holidays (Nth weekday of month) ----

def _nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    """Get the nth occurrence of a weekday in a month (1-indexed)."""
    first = date(year, month, 1)
    delta = (weekday - first.weekday()) % 7
    return first + timedelta(days=delta, weeks=n - 1)


def _last_weekday(year: int, month: int, weekday: int) -> date:
    """Get the last occurrence of a weekday in a month."""
    if month == 12:
        last_day = date(year + 1, 1, 1) - timedelta(days=1)
    else:
        last_day = date(year, month + 1, 1) - timedelta(days=1)
    delta = (last_day.weekday() - weekday) % 7
    return last_day - timedelta(days=delta)


def _easter(year: int) -> date:
    """Easter Sunday (anonymous Gregorian algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7  # noqa: E741
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return date(year, month, day)


def _good_friday(year: int) -> date:
    return _easter(year) - timedelta(days=2)


def nyse_holidays(year: int) -> set[date]:
    """All NYSE full-day holidays for a given year."""
    holidays = {
        _new_years(year),
        _nth_weekday(year, 1, 0, 3),   # MLK Day
        _nth_weekday(year, 2, 0, 3),   # Presidents' Day
        _good_friday(year),
        _last_weekday(year, 5, 0),     # Memorial Day
        _independence_day(year),
        _nth_weekday(year, 9, 0, 1),   # Labor Day
        _nth_weekday(year, 11, 3, 4),  # Thanksgiving
        _christmas(year),
    }
    juneteenth = _juneteenth(year)
    if juneteenth is not None:
        holidays.add(juneteenth)
    return holidays


# ---- Calendar queries ----

def _local_date(value: Instant | date) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return local_calendar(value).date


def is_weekend(value: Instant | date) -> bool:
    """Saturday or Sunday in exchange-local terms."""
    return _local_date(value).weekday() >= 5


def is_holiday(value: Instant | date) -> bool:
    """Check if the exchange-local date is an NYSE holiday."""
    d = _local_date(value)
    return d in nyse_holidays(d.year)


def is_trading_day(value: Instant | date) -> bool:
    """Weekday and not a holiday."""
    d = _local_date(value)
    return d.weekday() < 5 and d not in nyse_holidays(d.year)


def session_for_minute(minute_of_day: int) -> Session:
    """Session band containing a local minute-of-day on a trading day."""
    for session, (start, end) in SESSION_BANDS.items():
        if start <= minute_of_day < end:
            return session
    return Session.CLOSED


def detect_session(instant: Instant | None = None) -> Session:
    """Classify an instant into pre, live, after or closed."""
    cal = local_calendar(instant if instant is not None else now_utc())
    if not is_trading_day(cal.date):
        return Session.CLOSED
    return session_for_minute(cal.minute_of_day)


def is_within_session_window(
    timestamp: Instant,
    session: Session | str,
    reference: Instant,
) -> bool:
    """True if ``timestamp`` is on ``reference``'s local date and inside ``session``.

    The same-day requirement keeps yesterday's after-hours print out of
    today's pre-market window.
    """
    session = Session(session)
    band = SESSION_BANDS.get(session)
    if band is None:
        return False
    ts = local_calendar(timestamp)
    if ts.date != local_calendar(reference).date:
        return False
    start, end = band
    return start <= ts.minute_of_day < end


def is_same_local_day(a: Instant, b: Instant) -> bool:
    return local_calendar(a).date == local_calendar(b).date


def last_trading_day(before: Instant | date | None = None) -> date:
    """Most recent trading day strictly before ``before``'s local date."""
    d = _local_date(before if before is not None else now_utc())
    d -= timedelta(days=1)
    while not is_trading_day(d):
        d -= timedelta(days=1)
    return d


def trading_day_for(value: Instant | date | None = None) -> date:
    """The local date itself if it is a trading day, else the one before it."""
    d = _local_date(value if value is not None else now_utc())
    if is_trading_day(d):
        return d
    return last_trading_day(d)


def next_market_open(instant: Instant | None = None) -> datetime:
    """Next 09:30 ET on a trading day, as a UTC datetime."""
    cal = local_calendar(instant if instant is not None else now_utc())
    d = cal.date
    open_minute = MARKET_OPEN.hour * 60 + MARKET_OPEN.minute
    if is_trading_day(d) and cal.minute_of_day < open_minute:
        return local_to_utc(d, MARKET_OPEN.hour, MARKET_OPEN.minute)

    d += timedelta(days=1)
    while not is_trading_day(d):
        d += timedelta(days=1)
    return local_to_utc(d, MARKET_OPEN.hour, MARKET_OPEN.minute)


def last_regular_close_day(instant: Instant | None = None) -> date:
    """Trading day whose regular session most recently closed.

    Today once the 16:00 ET close has passed on a trading day, otherwise the
    previous trading day. Overnight after local midnight and on weekends it
    is still the last session that actually closed.
    """
    cal = local_calendar(instant if instant is not None else now_utc())
    close_minute = MARKET_CLOSE.hour * 60 + MARKET_CLOSE.minute
    if is_trading_day(cal.date) and cal.minute_of_day >= close_minute:
        return cal.date
    return last_trading_day(cal.date)
