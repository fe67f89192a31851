"""Bar (OHLCV) data model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Bar:
    """Price bar as delivered inside a provider snapshot.

    Every field is optional: providers routinely omit or zero them. Day
    bars carry no timestamp; minute bars carry the provider's raw epoch
    timestamp, in milliseconds or nanoseconds.

    Attributes:
        close: Closing price.
        timestamp: Raw epoch timestamp (ms or ns), if any.
        open: Opening price.
        high: High price.
        low: Low price.
        volume: Trading volume.
        vwap: Volume-weighted average price (provider-supplied).
    """

    close: float = 0.0
    timestamp: int | None = None
    open: float | None = None
    high: float | None = None
    low: float | None = None
    volume: float | None = None
    vwap: float | None = None
