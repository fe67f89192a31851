"""Shared fixtures for marketprice tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure src/ is on the path for editable-style imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from marketprice.models.bar import Bar
from marketprice.models.quote import Quote, Trade
from marketprice.models.snapshot import Snapshot

EST = timezone(timedelta(hours=-5))
EDT = timezone(timedelta(hours=-4))


class FakeClock:
    """Callable clock returning a settable value."""

    def __init__(self, value):
        self.value = value

    def __call__(self):
        return self.value

    def advance(self, delta):
        self.value = self.value + delta


@pytest.fixture
def fake_clock() -> FakeClock:
    """Monotonic-style float clock starting at 1000s."""
    return FakeClock(1000.0)


@pytest.fixture
def wednesday_open() -> datetime:
    """Wed 2025-01-15 10:00 ET (regular session, EST)."""
    return datetime(2025, 1, 15, 10, 0, tzinfo=EST)


@pytest.fixture
def live_snapshot(wednesday_open) -> Snapshot:
    """Snapshot with a fresh last trade, a day close and a previous close."""
    ts = int(wednesday_open.timestamp() * 1000)
    return Snapshot(
        symbol="AAPL",
        minute_bar=Bar(close=155.40, timestamp=ts - 30_000),
        last_trade=Trade(price=155.50, timestamp=ts, size=100.0),
        last_quote=Quote(price=155.49, timestamp=ts, ask_price=155.51),
        day=Bar(close=155.00, open=151.0, high=156.0, low=150.5, volume=2_000_000.0),
        prev_day=Bar(close=150.00),
    )
