"""marketprice: session-aware effective prices for US equities.

Turns noisy provider snapshots into one trustworthy price and percent
change per ticker, and never lets a worse observation overwrite a better
one across session transitions, DST edges, weekends and holidays.

Quick start::

    from marketprice import create_engine_from_env
    engine = create_engine_from_env()
    update = engine.ingest("AAPL")
"""

from __future__ import annotations

import logging
import os

from marketprice.cache import CacheBackend, MemoryCache, NoCache, ParquetCache
from marketprice.calendar import (
    LocalCalendar,
    Session,
    date_key,
    detect_session,
    is_holiday,
    is_trading_day,
    is_weekend,
    is_within_session_window,
    last_regular_close_day,
    last_trading_day,
    local_calendar,
    next_market_open,
    parse_date_key,
    to_milliseconds,
    trading_day_for,
)
from marketprice.change import market_cap, market_cap_diff, percent_change
from marketprice.config import PricingConfig, ProviderType, StalenessThresholds
from marketprice.engine import PriceUpdate, PricingEngine
from marketprice.errors import PricingError, PricingErrorCode
from marketprice.guard import can_overwrite
from marketprice.log import setup_logger
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
from marketprice.resolver import resolve_effective_price
from marketprice.state import (
    PriceState,
    PricingStateContext,
    ReferencePrice,
    get_pricing_state,
    next_trading_day,
    previous_close_ttl,
)
from marketprice.store import MemoryPriceStore, PriceStore

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Engine
    "PricingEngine",
    "PriceUpdate",
    "create_engine_from_env",
    # Calendar
    "Session",
    "LocalCalendar",
    "local_calendar",
    "date_key",
    "parse_date_key",
    "is_weekend",
    "is_holiday",
    "is_trading_day",
    "detect_session",
    "is_within_session_window",
    "last_trading_day",
    "last_regular_close_day",
    "trading_day_for",
    "next_market_open",
    "to_milliseconds",
    # State machine
    "PriceState",
    "ReferencePrice",
    "PricingStateContext",
    "get_pricing_state",
    "next_trading_day",
    "previous_close_ttl",
    # Resolution
    "resolve_effective_price",
    "can_overwrite",
    "percent_change",
    "market_cap",
    "market_cap_diff",
    # Storage
    "CacheBackend",
    "MemoryCache",
    "NoCache",
    "ParquetCache",
    "PriceStore",
    "MemoryPriceStore",
    # Config
    "PricingConfig",
    "ProviderType",
    "StalenessThresholds",
    "setup_logger",
    # Errors
    "PricingError",
    "PricingErrorCode",
    # Models
    "Bar",
    "Trade",
    "Quote",
    "Snapshot",
    "EffectivePrice",
    "FrozenPrice",
    "PriceRecord",
    "PriceSource",
    "PercentChangeResult",
    "ReferenceInfo",
]


def create_engine_from_env() -> PricingEngine:
    """Zero-config factory that reads providers and API keys from env vars.

    Environment variables:
        MARKET_PRICE_PROVIDERS: Comma-separated provider list (default: "polygon").
        MARKET_PRICE_CACHE: Cache backend, one of "memory", "parquet", "none" (default: "memory").
        MARKET_PRICE_CACHE_DIR: Cache directory (default: "data/cache").
        MARKET_PRICE_LOG_LEVEL: If set, attach a console log handler at this level.
        POLYGON_API_KEY: Polygon.io API key.
        POLYGON_PLAN: Polygon plan name; "starter" serves delayed data.
    """
    provider_str = os.getenv("MARKET_PRICE_PROVIDERS", "polygon")
    provider_types = [
        ProviderType(name.strip())
        for name in provider_str.split(",")
        if name.strip()
    ]

    log_level = os.getenv("MARKET_PRICE_LOG_LEVEL")
    if log_level:
        setup_logger("marketprice", log_level)

    config = PricingConfig(
        providers=provider_types,
        cache_backend=os.getenv("MARKET_PRICE_CACHE", "memory"),
        cache_dir=os.getenv("MARKET_PRICE_CACHE_DIR", "data/cache"),
        polygon_api_key=os.getenv("POLYGON_API_KEY"),
        delayed_data=os.getenv("POLYGON_PLAN", "").strip().lower() == "starter",
    )

    return PricingEngine(config)
