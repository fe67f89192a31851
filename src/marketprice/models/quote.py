"""Last trade and last quote data models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Trade:
    """Most recent trade print.

    Attributes:
        price: Trade price.
        timestamp: Raw epoch timestamp (ms or ns), if any.
        size: Trade size.
    """

    price: float = 0.0
    timestamp: int | None = None
    size: float | None = None


@dataclass(frozen=True)
class Quote:
    """Most recent NBBO quote.

    Attributes:
        price: Quote price used for pricing (the bid).
        timestamp: Raw epoch timestamp (ms or ns), if any.
        ask_price: Best ask price.
        bid_size: Size at best bid.
        ask_size: Size at best ask.
    """

    price: float = 0.0
    timestamp: int | None = None
    ask_price: float | None = None
    bid_size: float | None = None
    ask_size: float | None = None
