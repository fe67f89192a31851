"""Pricing engine configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ProviderType(Enum):
    """Supported snapshot provider backends."""

    POLYGON = "polygon"
    MOCK = "mock"


@dataclass(frozen=True)
class StalenessThresholds:
    """Age (minutes) beyond which a timestamped price is marked stale.

    Attributes:
        pre_market_minutes: Threshold during pre-market (04:00-09:30 ET).
        live_minutes: Threshold during regular trading (09:30-16:00 ET).
        after_hours_minutes: Threshold during after-hours (16:00-20:00 ET).
    """

    pre_market_minutes: float = 5
    live_minutes: float = 1
    after_hours_minutes: float = 5


@dataclass
class PricingConfig:
    """Configuration for PricingEngine.

    Attributes:
        providers: Provider backends ordered by priority.
        cache_backend: Reference cache type: "memory", "parquet", or "none".
        cache_dir: Directory for the parquet cache file.
        cache_ttl_seconds: Default TTL for cache entries without an explicit TTL.
        cache_max_entries: LRU bound for the memory cache.
        validate: Whether to run advisory quality checks on snapshots.
        polygon_api_key: Polygon.io API key.
        delayed_data: True when the provider plan only serves delayed data.
        max_move_pct: Move vs previous close above which a snapshot is flagged.
        staleness: Per-session staleness thresholds.
    """

    providers: list[ProviderType] = field(
        default_factory=lambda: [ProviderType.POLYGON]
    )
    cache_backend: str = "memory"
    cache_dir: str = "data/cache"
    cache_ttl_seconds: int = 24 * 60 * 60
    cache_max_entries: int = 10_000
    validate: bool = True

    polygon_api_key: str | None = None
    delayed_data: bool = False
    max_move_pct: float = 40.0
    staleness: StalenessThresholds = field(default_factory=StalenessThresholds)
