"""Pricing state machine.

Maps an instant to one of the pricing states. Each state carries the policy
flags that keep good data from being overwritten by bad fallbacks.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from marketprice.calendar import (
    Instant,
    Session,
    detect_session,
    is_trading_day,
    next_market_open,
    now_utc,
    to_utc,
)


class PriceState(Enum):
    """Pricing lifecycle state."""

    PRE_MARKET_LIVE = "pre_market_live"      # 04:00-09:30 ET
    LIVE = "live"                            # 09:30-16:00 ET
    AFTER_HOURS_LIVE = "after_hours_live"    # 16:00-20:00 ET
    OVERNIGHT_FROZEN = "overnight_frozen"    # 20:00-04:00 ET, weekdays
    WEEKEND_FROZEN = "weekend_frozen"        # weekends and holidays
    AFTER_HOURS_FROZEN = "overnight_frozen"  # alias of OVERNIGHT_FROZEN


class ReferencePrice(Enum):
    """Close used as the percent-change denominator."""

    PREVIOUS_CLOSE = "previousClose"
    REGULAR_CLOSE = "regularClose"


@dataclass(frozen=True)
class PricingStateContext:
    """Pricing state and its policy flags for one instant.

    Attributes:
        state: Pricing state.
        session: Market session the state was derived from.
        can_ingest: New provider data may be fetched and resolved.
        can_overwrite: A resolved price may replace the stored one.
        use_frozen_price: The last stored price must be served instead.
        reference_price: Close to measure percent change against.
    """

    state: PriceState
    session: Session
    can_ingest: bool
    can_overwrite: bool
    use_frozen_price: bool
    reference_price: ReferencePrice

    @property
    def is_frozen(self) -> bool:
        return self.use_frozen_price


_POLICIES: dict[PriceState, tuple[bool, bool, bool, ReferencePrice]] = {
    # state: (can_ingest, can_overwrite, use_frozen_price, reference)
    PriceState.PRE_MARKET_LIVE: (True, True, False, ReferencePrice.PREVIOUS_CLOSE),
    PriceState.LIVE: (True, True, False, ReferencePrice.PREVIOUS_CLOSE),
    PriceState.AFTER_HOURS_LIVE: (True, True, False, ReferencePrice.REGULAR_CLOSE),
    PriceState.OVERNIGHT_FROZEN: (False, False, True, ReferencePrice.REGULAR_CLOSE),
    PriceState.WEEKEND_FROZEN: (False, False, True, ReferencePrice.REGULAR_CLOSE),
}

_SESSION_STATES: dict[Session, PriceState] = {
    Session.PRE: PriceState.PRE_MARKET_LIVE,
    Session.LIVE: PriceState.LIVE,
    Session.AFTER: PriceState.AFTER_HOURS_LIVE,
    Session.CLOSED: PriceState.OVERNIGHT_FROZEN,
}


def get_pricing_state(now: Instant | None = None) -> PricingStateContext:
    """Pricing state for ``now`` (defaults to the current instant)."""
    now = to_utc(now) if now is not None else now_utc()
    session = detect_session(now)

    if not is_trading_day(now):
        state = PriceState.WEEKEND_FROZEN
    else:
        state = _SESSION_STATES[session]

    can_ingest, can_overwrite, use_frozen, reference = _POLICIES[state]
    return PricingStateContext(
        state=state,
        session=session,
        can_ingest=can_ingest,
        can_overwrite=can_overwrite,
        use_frozen_price=use_frozen,
        reference_price=reference,
    )


def next_trading_day(now: Instant | None = None) -> datetime:
    """Next market open instant (09:30 ET on a trading day)."""
    return next_market_open(now if now is not None else now_utc())


_MIN_PREVIOUS_CLOSE_TTL = int(timedelta(days=7).total_seconds())
_MAX_PREVIOUS_CLOSE_TTL = int(timedelta(days=30).total_seconds())


def previous_close_ttl(now: Instant | None = None) -> int:
    """Seconds a cached previous close stays valid.

    Time until the next open plus a 24h buffer, clamped to [7d, 30d].
    """
    now = to_utc(now) if now is not None else now_utc()
    until_open = next_trading_day(now) - now
    ttl = math.ceil((until_open + timedelta(days=1)).total_seconds())
    return max(_MIN_PREVIOUS_CLOSE_TTL, min(_MAX_PREVIOUS_CLOSE_TTL, ttl))
