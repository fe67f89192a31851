"""Resolved price, stored price and percent-change models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from marketprice.calendar import Session


class PriceSource(Enum):
    """Provenance of an effective price."""

    MINUTE = "min"
    LAST_TRADE = "lastTrade"
    DAY = "day"
    FROZEN = "frozen"
    PREVIOUS_CLOSE = "prevClose"


@dataclass(frozen=True)
class EffectivePrice:
    """Single resolved price for a ticker.

    Attributes:
        price: Resolved price, strictly positive.
        source: Snapshot field the price came from.
        timestamp: Observation time (UTC).
        is_stale: Older than the session's freshness threshold.
        stale_reason: Human-readable reason when stale.
    """

    price: float
    source: PriceSource
    timestamp: datetime
    is_stale: bool = False
    stale_reason: str | None = None

    def __post_init__(self) -> None:
        if not self.price > 0:
            raise ValueError(f"EffectivePrice must be positive, got {self.price}")


@dataclass(frozen=True)
class FrozenPrice:
    """Last known-good price served through frozen states."""

    price: float
    timestamp: datetime

    def __post_init__(self) -> None:
        if not self.price > 0:
            raise ValueError(f"FrozenPrice must be positive, got {self.price}")


@dataclass(frozen=True)
class PriceRecord:
    """Previously committed price for a ticker.

    Attributes:
        price: Stored price (may be garbage, i.e. <= 0, for legacy rows).
        timestamp: Observation time of the stored price.
        session: Session the price was committed in.
        source: Provenance of the stored price.
    """

    price: float
    timestamp: datetime
    session: Session | None = None
    source: PriceSource | None = None

    def to_frozen(self) -> FrozenPrice | None:
        if self.price > 0:
            return FrozenPrice(price=self.price, timestamp=self.timestamp)
        return None


@dataclass(frozen=True)
class ReferenceInfo:
    """Reference close a percent change was computed against.

    ``used`` is ``"previousClose"``, ``"regularClose"`` or None.
    """

    used: str | None = None
    price: float | None = None


@dataclass(frozen=True)
class PercentChangeResult:
    """Percent change plus the reference actually used."""

    change_pct: float = 0.0
    reference: ReferenceInfo = ReferenceInfo()
