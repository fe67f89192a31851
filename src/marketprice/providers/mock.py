"""Mock provider for testing and CI; no API keys required."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from marketprice.calendar import now_utc, to_milliseconds
from marketprice.errors import PricingError, PricingErrorCode
from marketprice.models.bar import Bar
from marketprice.models.quote import Quote, Trade
from marketprice.models.snapshot import Snapshot
from marketprice.providers.base import BaseSnapshotProvider


class MockProvider(BaseSnapshotProvider):
    """In-memory provider that returns configurable static data.

    Use ``set_snapshot`` / ``set_previous_close`` to pre-load data, or leave
    defaults for a synthetic snapshot stamped with the provider clock.
    """

    def __init__(self, clock: Callable[[], datetime] = now_utc) -> None:
        self._clock = clock
        self._snapshots: dict[str, Snapshot] = {}
        self._previous_closes: dict[str, float] = {}
        self._missing: set[str] = set()
        self.calls = 0
        self.batch_calls = 0
        self.previous_close_calls = 0

    # --- Pre-load helpers ---

    def set_snapshot(self, symbol: str, snapshot: Snapshot) -> None:
        self._snapshots[symbol.upper()] = snapshot

    def set_previous_close(self, symbol: str, price: float) -> None:
        self._previous_closes[symbol.upper()] = price

    def set_missing(self, symbol: str) -> None:
        """Make ``symbol`` raise NOT_FOUND."""
        self._missing.add(symbol.upper())

    # --- Provider implementation ---

    def get_snapshot(self, symbol: str) -> Snapshot:
        self.calls += 1
        key = symbol.upper()
        if key in self._missing:
            raise PricingError("Unknown symbol", code=PricingErrorCode.NOT_FOUND, symbol=key)
        if key in self._snapshots:
            return self._snapshots[key]
        return self._synthetic_snapshot(key)

    def get_snapshots(self, symbols: list[str]) -> list[Snapshot]:
        """Batch read; unknown symbols are omitted, as Polygon does."""
        self.batch_calls += 1
        return [
            self.get_snapshot(s) for s in symbols
            if s.upper() not in self._missing
        ]

    def get_previous_close(self, symbol: str) -> float | None:
        self.previous_close_calls += 1
        key = symbol.upper()
        if key in self._previous_closes:
            return self._previous_closes[key]
        snapshot = self._snapshots.get(key)
        return snapshot.previous_close if snapshot is not None else None

    def capabilities(self) -> set[str]:
        return {"snapshots", "previous_close"}

    # --- Synthetic data generation ---

    def _synthetic_snapshot(self, symbol: str) -> Snapshot:
        ts = int(to_milliseconds(self._clock()))
        return Snapshot(
            symbol=symbol,
            minute_bar=Bar(close=150.05, timestamp=ts, open=150.0, high=150.2, low=149.9, volume=12000.0),
            last_trade=Trade(price=150.10, timestamp=ts, size=100.0),
            last_quote=Quote(price=150.09, timestamp=ts, ask_price=150.11),
            day=Bar(close=150.0, open=148.5, high=151.0, low=148.0, volume=1_000_000.0),
            prev_day=Bar(close=148.0),
            updated=ts,
        )
