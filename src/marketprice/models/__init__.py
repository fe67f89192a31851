"""Pricing models."""

from marketprice.models.bar import Bar
from marketprice.models.price import (
    EffectivePrice,
    FrozenPrice,
    PercentChangeResult,
    PriceRecord,
    PriceSource,
    ReferenceInfo,
)
from marketprice.models.quote import Quote, Trade
from marketprice.models.snapshot import Snapshot

__all__ = [
    "Bar",
    "Quote",
    "Trade",
    "Snapshot",
    "EffectivePrice",
    "FrozenPrice",
    "PriceRecord",
    "PriceSource",
    "PercentChangeResult",
    "ReferenceInfo",
]
