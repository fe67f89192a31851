"""Snapshot data model: one provider read of a ticker."""

from __future__ import annotations

from dataclasses import dataclass

from marketprice.models.bar import Bar
from marketprice.models.quote import Quote, Trade


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time provider snapshot with competing price fields.

    No sub-observation is guaranteed present or non-zero.

    Attributes:
        symbol: Ticker symbol.
        minute_bar: Latest minute bar (close + timestamp).
        last_trade: Last trade print.
        last_quote: Last quote.
        day: Today's regular-session bar (untimestamped close).
        prev_day: Previous trading day's bar.
        updated: Provider's snapshot update timestamp (ms or ns).
    """

    symbol: str
    minute_bar: Bar | None = None
    last_trade: Trade | None = None
    last_quote: Quote | None = None
    day: Bar | None = None
    prev_day: Bar | None = None
    updated: int | None = None

    @property
    def previous_close(self) -> float | None:
        """Previous trading day's close, if positive."""
        if self.prev_day is not None and self.prev_day.close > 0:
            return self.prev_day.close
        return None

    @property
    def day_close(self) -> float | None:
        """Regular-session close so far today, if positive."""
        if self.day is not None and self.day.close > 0:
            return self.day.close
        return None
