"""Overwrite guard: may a newly resolved price replace the stored one?"""

from __future__ import annotations

from typing import Protocol

from marketprice.calendar import Instant, to_utc
from marketprice.models.price import PriceRecord
from marketprice.state import PricingStateContext


class TimedPrice(Protocol):
    price: float
    timestamp: Instant


def can_overwrite(
    state: PricingStateContext,
    existing: PriceRecord | None,
    candidate: TimedPrice,
) -> bool:
    """Decide whether ``candidate`` may replace ``existing``.

    Frozen states reject everything, before any price or timestamp is
    looked at. Otherwise a positive candidate wins over a missing or
    non-positive existing price, or over an existing price with a strictly
    older timestamp.
    """
    if not state.can_overwrite:
        return False

    if not candidate.price or candidate.price <= 0:
        return False

    if existing is None:
        return True

    if not existing.price or existing.price <= 0:
        return True

    return to_utc(candidate.timestamp) > to_utc(existing.timestamp)
