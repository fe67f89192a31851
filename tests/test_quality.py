"""Tests for snapshot quality checks."""

from datetime import datetime, timedelta

from marketprice.models.bar import Bar
from marketprice.models.quote import Quote, Trade
from marketprice.models.snapshot import Snapshot
from marketprice.quality import validate_snapshot

from conftest import EST

NOW = datetime(2025, 1, 15, 10, 0, tzinfo=EST)


def _ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _check(result, name):
    return next(c for c in result.checks if c.name == name)


class TestValidateSnapshot:
    def test_valid(self, live_snapshot):
        result = validate_snapshot(live_snapshot, now=NOW)
        assert result.passed
        assert len(result.checks) == 5

    def test_empty_snapshot(self):
        result = validate_snapshot(Snapshot(symbol="AAPL"), now=NOW)
        assert not result.passed
        assert [c.name for c in result.failed_checks] == ["has_price"]

    def test_zero_prices(self):
        snap = Snapshot(symbol="AAPL", last_trade=Trade(price=0.0), day=Bar(close=0.0))
        assert not _check(validate_snapshot(snap, now=NOW), "has_price").passed

    def test_negative_detected(self):
        snap = Snapshot(symbol="AAPL", last_trade=Trade(price=150.0), day=Bar(close=-1.0))
        check = _check(validate_snapshot(snap, now=NOW), "no_negative_prices")
        assert not check.passed
        assert "day.c" in check.message

    def test_nan_detected(self):
        snap = Snapshot(symbol="AAPL", minute_bar=Bar(close=float("nan"), timestamp=_ms(NOW)))
        assert not _check(validate_snapshot(snap, now=NOW), "finite_values").passed

    def test_future_timestamp(self):
        snap = Snapshot(
            symbol="AAPL",
            last_trade=Trade(price=150.0, timestamp=_ms(NOW + timedelta(minutes=5))),
        )
        check = _check(validate_snapshot(snap, now=NOW), "no_future_timestamps")
        assert not check.passed
        assert "lastTrade.t" in check.message

    def test_future_update_stamp(self):
        snap = Snapshot(
            symbol="AAPL",
            last_trade=Trade(price=150.0, timestamp=_ms(NOW)),
            updated=_ms(NOW + timedelta(hours=1)) * 1_000_000,
        )
        check = _check(validate_snapshot(snap, now=NOW), "no_future_timestamps")
        assert not check.passed
        assert check.message == "Future: updated"

    def test_future_tolerance(self):
        snap = Snapshot(
            symbol="AAPL",
            last_quote=Quote(price=150.0, timestamp=_ms(NOW + timedelta(seconds=30)) * 1_000_000),
        )
        assert _check(validate_snapshot(snap, now=NOW), "no_future_timestamps").passed

    def test_extreme_move(self):
        snap = Snapshot(symbol="AAPL", last_trade=Trade(price=75.0), prev_day=Bar(close=150.0))
        check = _check(validate_snapshot(snap, now=NOW), "price_sanity")
        assert not check.passed
        assert "possible split" in check.message

    def test_move_threshold_configurable(self):
        snap = Snapshot(symbol="AAPL", last_trade=Trade(price=170.0), prev_day=Bar(close=150.0))
        assert _check(validate_snapshot(snap, now=NOW), "price_sanity").passed
        assert not _check(validate_snapshot(snap, now=NOW, max_move_pct=10), "price_sanity").passed
