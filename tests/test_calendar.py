"""Tests for the NYSE session clock."""

from datetime import date, datetime, timezone

import pytest

from marketprice.calendar import (
    Session,
    date_key,
    detect_session,
    is_holiday,
    is_trading_day,
    is_weekend,
    is_within_session_window,
    last_regular_close_day,
    last_trading_day,
    local_calendar,
    local_to_utc,
    next_market_open,
    parse_date_key,
    to_milliseconds,
    to_utc,
    trading_day_for,
    utc_offset,
)
from marketprice.errors import PricingError, PricingErrorCode

from conftest import EDT, EST


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestLocalCalendar:
    def test_winter_offset(self):
        cal = local_calendar(_utc(2025, 1, 15, 14, 30))
        assert (cal.year, cal.month, cal.day) == (2025, 1, 15)
        assert (cal.hour, cal.minute) == (9, 30)
        assert cal.weekday == 2  # Wednesday

    def test_summer_offset(self):
        cal = local_calendar(_utc(2025, 7, 15, 13, 30))
        assert (cal.hour, cal.minute) == (9, 30)

    def test_naive_datetime_is_utc(self):
        assert local_calendar(datetime(2025, 1, 15, 14, 30)).hour == 9

    def test_epoch_milliseconds(self):
        ms = int(_utc(2025, 1, 15, 14, 30).timestamp() * 1000)
        assert local_calendar(ms).minute_of_day == 9 * 60 + 30

    def test_local_midnight_rolls_date(self):
        # 03:00 UTC on the 16th is still the 15th in New York
        cal = local_calendar(_utc(2025, 1, 16, 3, 0))
        assert cal.date == date(2025, 1, 15)
        assert cal.hour == 22

    def test_host_timezone_independent(self):
        aware = datetime(2025, 1, 15, 9, 30, tzinfo=EST)
        assert local_calendar(aware).minute_of_day == 9 * 60 + 30


class TestDST:
    def test_march_switch(self):
        # 2025-03-09: 02:00 EST -> 03:00 EDT at 07:00 UTC
        before = local_calendar(_utc(2025, 3, 9, 6, 59))
        after = local_calendar(_utc(2025, 3, 9, 7, 0))
        assert (before.hour, before.minute) == (1, 59)
        assert (after.hour, after.minute) == (3, 0)

    def test_november_switch(self):
        # 2025-11-02: 02:00 EDT -> 01:00 EST at 06:00 UTC
        before = local_calendar(_utc(2025, 11, 2, 5, 59))
        after = local_calendar(_utc(2025, 11, 2, 6, 0))
        assert (before.hour, before.minute) == (1, 59)
        assert (after.hour, after.minute) == (1, 0)

    def test_offsets(self):
        assert utc_offset(_utc(2025, 1, 15)).total_seconds() == -5 * 3600
        assert utc_offset(_utc(2025, 7, 15)).total_seconds() == -4 * 3600

    def test_local_to_utc_both_seasons(self):
        assert local_to_utc(date(2025, 1, 15), 9, 30) == _utc(2025, 1, 15, 14, 30)
        assert local_to_utc(date(2025, 7, 15), 9, 30) == _utc(2025, 7, 15, 13, 30)
        assert local_to_utc(date(2025, 3, 10), 9, 30) == _utc(2025, 3, 10, 13, 30)
        assert local_to_utc(date(2025, 11, 3), 9, 30) == _utc(2025, 11, 3, 14, 30)

    def test_local_to_utc_repeated_hour_reads_as_est(self):
        # 01:30 occurs twice on 2025-11-02; the EST occurrence is returned
        assert local_to_utc(date(2025, 11, 2), 1, 30) == _utc(2025, 11, 2, 6, 30)

    def test_local_to_utc_skipped_hour_moves_forward(self):
        # 02:30 does not exist on 2025-03-09
        result = local_to_utc(date(2025, 3, 9), 2, 30)
        assert result == _utc(2025, 3, 9, 7, 30)
        cal = local_calendar(result)
        assert (cal.hour, cal.minute) == (3, 30)


class TestDateKey:
    def test_date_key(self):
        assert date_key(_utc(2025, 1, 15, 14, 30)) == "2025-01-15"

    def test_date_key_uses_local_date(self):
        # 23:00 ET is already the next day in UTC
        assert date_key(datetime(2025, 1, 15, 23, 0, tzinfo=EST)) == "2025-01-15"

    def test_parse_winter(self):
        assert parse_date_key("2025-01-15") == _utc(2025, 1, 15, 5, 0)

    def test_parse_summer(self):
        assert parse_date_key("2025-07-04") == _utc(2025, 7, 4, 4, 0)

    def test_round_trip(self):
        assert date_key(parse_date_key("2025-03-09")) == "2025-03-09"

    @pytest.mark.parametrize("key", ["2025-1-5", "2025-02-30", "2025-13-01", "abc", "", "2025-01-15T00:00"])
    def test_malformed_rejected(self, key):
        with pytest.raises(PricingError) as exc_info:
            parse_date_key(key)
        assert exc_info.value.code == PricingErrorCode.INVALID_DATE_KEY


class TestIsHoliday:
    def test_new_years(self):
        assert is_holiday(date(2024, 1, 1))

    def test_mlk_day(self):
        assert is_holiday(date(2024, 1, 15))  # 3rd Monday of Jan 2024

    def test_presidents_day(self):
        assert is_holiday(date(2024, 2, 19))

    def test_good_friday(self):
        assert is_holiday(date(2024, 3, 29))
        assert is_holiday(date(2025, 4, 18))

    def test_memorial_day(self):
        assert is_holiday(date(2024, 5, 27))

    def test_juneteenth(self):
        assert is_holiday(date(2024, 6, 19))

    def test_juneteenth_from_2021(self):
        # 2021-06-19 is Saturday → observed Friday 2021-06-18
        assert is_holiday(date(2021, 6, 18))
        assert not is_holiday(date(2020, 6, 19))

    def test_independence_day(self):
        assert is_holiday(date(2024, 7, 4))

    def test_labor_day(self):
        assert is_holiday(date(2024, 9, 2))

    def test_thanksgiving(self):
        assert is_holiday(date(2024, 11, 28))

    def test_christmas(self):
        assert is_holiday(date(2024, 12, 25))

    def test_christmas_sunday_observed_monday(self):
        assert is_holiday(date(2022, 12, 26))

    def test_regular_day_not_holiday(self):
        assert not is_holiday(date(2024, 1, 16))  # Tuesday after MLK

    def test_holiday_on_sunday_observed_monday(self):
        # 2023-01-01 is Sunday → observed 2023-01-02 (Monday)
        assert is_holiday(date(2023, 1, 2))

    def test_independence_day_saturday_observed_friday(self):
        # 2020-07-04 is Saturday → observed 2020-07-03
        assert is_holiday(date(2020, 7, 3))

    def test_new_years_saturday_not_observed_in_december(self):
        # 2022-01-01 is Saturday; 2021-12-31 stays a trading day
        assert not is_holiday(date(2021, 12, 31))

    def test_instant_uses_local_date(self):
        # 2025-01-20 (MLK) 02:00 UTC is still Sunday the 19th in New York
        assert not is_holiday(_utc(2025, 1, 20, 2, 0))
        assert is_holiday(_utc(2025, 1, 20, 15, 0))


class TestIsTradingDay:
    def test_weekday_no_holiday(self):
        assert is_trading_day(date(2024, 1, 16))

    def test_weekend(self):
        assert not is_trading_day(date(2024, 1, 13))  # Saturday
        assert not is_trading_day(date(2024, 1, 14))  # Sunday
        assert is_weekend(date(2024, 1, 13))

    def test_holiday(self):
        assert not is_trading_day(date(2024, 1, 1))

    def test_friday_evening_is_not_weekend(self):
        # Fri 2025-01-17 21:00 ET == Sat 02:00 UTC
        assert not is_weekend(datetime(2025, 1, 17, 21, 0, tzinfo=EST))


class TestDetectSession:
    @pytest.mark.parametrize(
        "hour, minute, expected",
        [
            (3, 59, Session.CLOSED),
            (4, 0, Session.PRE),
            (9, 29, Session.PRE),
            (9, 30, Session.LIVE),
            (15, 59, Session.LIVE),
            (16, 0, Session.AFTER),
            (19, 59, Session.AFTER),
            (20, 0, Session.CLOSED),
            (23, 30, Session.CLOSED),
        ],
    )
    def test_bands(self, hour, minute, expected):
        assert detect_session(datetime(2025, 1, 15, hour, minute, tzinfo=EST)) is expected

    def test_boundary_seconds(self):
        assert detect_session(datetime(2025, 1, 15, 9, 29, 59, tzinfo=EST)) is Session.PRE
        assert detect_session(datetime(2025, 1, 15, 15, 59, 59, tzinfo=EST)) is Session.LIVE

    def test_weekend_closed(self):
        assert detect_session(datetime(2025, 1, 18, 10, 0, tzinfo=EST)) is Session.CLOSED

    def test_holiday_closed(self):
        assert detect_session(datetime(2025, 1, 20, 10, 0, tzinfo=EST)) is Session.CLOSED

    def test_summer_bands(self):
        assert detect_session(datetime(2025, 7, 15, 9, 30, tzinfo=EDT)) is Session.LIVE
        assert detect_session(_utc(2025, 7, 15, 13, 29)) is Session.PRE


class TestSessionWindow:
    def test_same_day_inside(self):
        ref = datetime(2025, 1, 15, 5, 0, tzinfo=EST)
        ts = datetime(2025, 1, 15, 4, 15, tzinfo=EST)
        assert is_within_session_window(ts, Session.PRE, ref)

    def test_yesterday_after_hours_rejected(self):
        ref = datetime(2025, 1, 15, 5, 0, tzinfo=EST)
        yesterday = datetime(2025, 1, 14, 18, 0, tzinfo=EST)
        assert not is_within_session_window(yesterday, Session.PRE, ref)
        assert not is_within_session_window(yesterday, Session.AFTER, ref)

    def test_wrong_band(self):
        ref = datetime(2025, 1, 15, 10, 0, tzinfo=EST)
        ts = datetime(2025, 1, 15, 9, 29, 59, tzinfo=EST)
        assert not is_within_session_window(ts, Session.LIVE, ref)
        assert is_within_session_window(ts, "pre", ref)

    def test_closed_never_matches(self):
        ref = datetime(2025, 1, 15, 21, 0, tzinfo=EST)
        assert not is_within_session_window(ref, Session.CLOSED, ref)

    def test_nanosecond_timestamp(self):
        ref = datetime(2025, 1, 15, 17, 0, tzinfo=EST)
        ns = int(datetime(2025, 1, 15, 16, 30, tzinfo=EST).timestamp()) * 1_000_000_000
        assert is_within_session_window(ns, Session.AFTER, ref)


class TestTradingDays:
    def test_last_trading_day_skips_holiday_and_weekend(self):
        # Tue 2025-01-21 → Fri 2025-01-17 (Mon 20th is MLK)
        assert last_trading_day(_utc(2025, 1, 21, 15, 0)) == date(2025, 1, 17)

    def test_last_trading_day_monday(self):
        assert last_trading_day(date(2025, 1, 13)) == date(2025, 1, 10)

    def test_trading_day_for_trading_day(self):
        assert trading_day_for(_utc(2025, 1, 15, 15, 0)) == date(2025, 1, 15)

    def test_trading_day_for_weekend(self):
        assert trading_day_for(_utc(2025, 1, 18, 15, 0)) == date(2025, 1, 17)

    def test_last_regular_close_before_close(self):
        assert last_regular_close_day(datetime(2025, 1, 15, 10, 0, tzinfo=EST)) == date(2025, 1, 14)

    def test_last_regular_close_at_close(self):
        assert last_regular_close_day(datetime(2025, 1, 15, 16, 0, tzinfo=EST)) == date(2025, 1, 15)

    def test_last_regular_close_after_midnight(self):
        assert last_regular_close_day(datetime(2025, 1, 16, 1, 0, tzinfo=EST)) == date(2025, 1, 15)

    def test_last_regular_close_weekend(self):
        assert last_regular_close_day(datetime(2025, 1, 18, 12, 0, tzinfo=EST)) == date(2025, 1, 17)

    def test_last_regular_close_after_holiday(self):
        # Mon 2025-01-20 is MLK
        assert last_regular_close_day(datetime(2025, 1, 20, 17, 0, tzinfo=EST)) == date(2025, 1, 17)
        assert last_regular_close_day(datetime(2025, 1, 21, 10, 0, tzinfo=EST)) == date(2025, 1, 17)

    def test_last_regular_close_summer(self):
        assert last_regular_close_day(datetime(2025, 7, 15, 16, 30, tzinfo=EDT)) == date(2025, 7, 15)

    def test_next_open_same_day(self):
        assert next_market_open(datetime(2025, 1, 15, 5, 0, tzinfo=EST)) == _utc(2025, 1, 15, 14, 30)

    def test_next_open_over_holiday_weekend(self):
        friday_evening = datetime(2025, 1, 17, 17, 0, tzinfo=EST)
        assert next_market_open(friday_evening) == _utc(2025, 1, 21, 14, 30)

    def test_next_open_across_dst(self):
        friday_evening = datetime(2025, 3, 7, 17, 0, tzinfo=EST)
        assert next_market_open(friday_evening) == _utc(2025, 3, 10, 13, 30)

    def test_next_open_at_open_moves_on(self):
        at_open = datetime(2025, 1, 15, 9, 30, tzinfo=EST)
        assert next_market_open(at_open) == _utc(2025, 1, 16, 14, 30)


class TestToMilliseconds:
    def test_milliseconds_pass_through(self):
        assert to_milliseconds(1736951400000) == 1736951400000

    def test_nanoseconds_divided(self):
        assert to_milliseconds(1736951400000 * 1_000_000) == 1736951400000

    def test_nanoseconds_floor(self):
        assert to_milliseconds(1736951400000_999_999) == 1736951400000

    def test_datetime(self):
        assert to_milliseconds(_utc(2025, 1, 15, 14, 30)) == 1736951400000

    def test_to_utc_from_nanoseconds(self):
        assert to_utc(1736951400000 * 1_000_000) == _utc(2025, 1, 15, 14, 30)
