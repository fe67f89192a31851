"""PricingEngine: ingest orchestration around the pure pricing core."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable

from marketprice.cache import CacheBackend, MemoryCache, NoCache, ParquetCache
from marketprice.calendar import (
    Session,
    last_regular_close_day,
    now_utc,
    to_utc,
    trading_day_for,
)
from marketprice.change import market_cap, market_cap_diff, percent_change
from marketprice.config import PricingConfig, ProviderType
from marketprice.errors import PricingError, PricingErrorCode
from marketprice.models.price import EffectivePrice, PercentChangeResult, PriceSource
from marketprice.models.snapshot import Snapshot
from marketprice.providers import create_provider
from marketprice.providers.base import BaseSnapshotProvider
from marketprice.quality import validate_snapshot
from marketprice.resolver import resolve_effective_price
from marketprice.state import PricingStateContext, get_pricing_state, previous_close_ttl
from marketprice.store import MemoryPriceStore, PriceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceUpdate:
    """Result of one ingest for one ticker.

    Attributes:
        symbol: Ticker symbol.
        price: Resolved effective price.
        change: Percent change and the reference it was measured against.
        state: Pricing state at ingest time.
        committed: Whether the store accepted the price.
        quality: ``snapshot`` for fresh data, ``delayed_15m`` for stale or
            delayed-plan data, ``frozen`` for prices served from the store.
        market_cap: Market cap in billions USD, when shares are known.
        market_cap_diff: Market-cap change vs previous close, in billions.
    """

    symbol: str
    price: EffectivePrice
    change: PercentChangeResult
    state: PricingStateContext
    committed: bool
    quality: str
    market_cap: float | None = None
    market_cap_diff: float | None = None


class PricingEngine:
    """Central orchestrator: provider -> validate -> resolve -> guard -> commit.

    Reference closes are cached per trading day, and cache expiry runs on
    the engine clock.

    Usage::

        from marketprice import create_engine_from_env
        engine = create_engine_from_env()
        update = engine.ingest("AAPL")
    """

    def __init__(
        self,
        config: PricingConfig,
        store: PriceStore | None = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.config = config
        self.store = store or MemoryPriceStore()
        self._clock = clock

        # Build provider chain
        self.providers: list[BaseSnapshotProvider] = []
        for pt in config.providers:
            kwargs: dict[str, Any] = {}
            if pt is ProviderType.POLYGON and config.polygon_api_key:
                kwargs["api_key"] = config.polygon_api_key
            elif pt is ProviderType.MOCK:
                kwargs["clock"] = clock
            self.providers.append(create_provider(pt, **kwargs))

        # Build reference cache
        self.cache: CacheBackend
        if config.cache_backend == "parquet":
            self.cache = ParquetCache(
                config.cache_dir,
                ttl_seconds=config.cache_ttl_seconds,
                clock=self._epoch_seconds,
            )
        elif config.cache_backend == "memory":
            self.cache = MemoryCache(
                ttl_seconds=config.cache_ttl_seconds,
                max_entries=config.cache_max_entries,
                clock=self._epoch_seconds,
            )
        else:
            self.cache = NoCache()

    def now(self) -> datetime:
        return to_utc(self._clock())

    def _epoch_seconds(self) -> float:
        return self.now().timestamp()

    def pricing_state(self) -> PricingStateContext:
        return get_pricing_state(self.now())

    # ------------------------------------------------------------ snapshots

    def _snapshot_providers(self) -> list[BaseSnapshotProvider]:
        return [p for p in self.providers if "snapshots" in p.capabilities()]

    def get_snapshot(self, symbol: str) -> Snapshot:
        """Fetch a snapshot, falling through retryable provider errors."""
        last_error: PricingError | None = None
        for provider in self._snapshot_providers():
            try:
                return provider.get_snapshot(symbol)
            except PricingError as e:
                if not e.retryable:
                    raise
                logger.warning(
                    "%s snapshot for %s failed (%s), trying next provider",
                    type(provider).__name__, symbol, e.code.value,
                )
                last_error = e

        raise last_error or PricingError(
            "All providers failed",
            code=PricingErrorCode.NO_DATA,
            symbol=symbol,
        )

    def get_snapshots(self, symbols: list[str]) -> dict[str, Snapshot]:
        """Batch-fetch snapshots keyed by symbol; unknown tickers are absent."""
        last_error: PricingError | None = None
        for provider in self._snapshot_providers():
            try:
                return {s.symbol.upper(): s for s in provider.get_snapshots(symbols)}
            except PricingError as e:
                if not e.retryable:
                    raise
                logger.warning(
                    "%s batch snapshot failed (%s), trying next provider",
                    type(provider).__name__, e.code.value,
                )
                last_error = e

        raise last_error or PricingError(
            "All providers failed",
            code=PricingErrorCode.NO_DATA,
        )

    # ----------------------------------------------------------- references

    @staticmethod
    def _prev_close_key(symbol: str, day: date) -> str:
        return f"prevclose:{symbol.upper()}:{day.isoformat()}"

    @staticmethod
    def _regular_close_key(symbol: str, day: date) -> str:
        return f"regclose:{symbol.upper()}:{day.isoformat()}"

    @staticmethod
    def _shares_key(symbol: str) -> str:
        return f"shares:{symbol.upper()}"

    def set_previous_close(self, symbol: str, price: float) -> None:
        """Cache the close preceding the current trading day."""
        if price > 0:
            now = self.now()
            self.cache.set(
                self._prev_close_key(symbol, trading_day_for(now)), price,
                ttl_seconds=previous_close_ttl(now),
            )

    def set_regular_close(self, symbol: str, price: float) -> None:
        """Cache the close of the most recently closed regular session."""
        if price > 0:
            key = self._regular_close_key(symbol, last_regular_close_day(self.now()))
            self.cache.set(key, price)

    def set_shares_outstanding(self, symbol: str, shares: float) -> None:
        if shares > 0:
            self.cache.set(self._shares_key(symbol), shares)

    def previous_close(
        self,
        symbol: str,
        snapshot: Snapshot | None = None,
        fetch: bool = True,
    ) -> float | None:
        """Previous close for the current trading day.

        Looked up in the cache, then in the snapshot's previous-day bar, then
        (when ``fetch`` is set) from the first provider that serves it.
        """
        key = self._prev_close_key(symbol, trading_day_for(self.now()))
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        price = snapshot.previous_close if snapshot is not None else None
        if price is None and fetch:
            price = self._fetch_previous_close(symbol)
        if price is not None:
            self.set_previous_close(symbol, price)
        return price

    def _fetch_previous_close(self, symbol: str) -> float | None:
        for provider in self.providers:
            if "previous_close" not in provider.capabilities():
                continue
            try:
                price = provider.get_previous_close(symbol)
            except PricingError as e:
                if not e.retryable:
                    raise
                logger.warning(
                    "%s previous close for %s failed (%s), trying next provider",
                    type(provider).__name__, symbol, e.code.value,
                )
                continue
            if price is not None and price > 0:
                return price
        return None

    def regular_close(
        self,
        symbol: str,
        session: Session,
        snapshot: Snapshot | None = None,
    ) -> float | None:
        """Close of the most recently closed regular session."""
        key = self._regular_close_key(symbol, last_regular_close_day(self.now()))
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        # Once the regular session is over, today's day bar close is final.
        if (
            session is Session.AFTER
            and snapshot is not None
            and snapshot.day_close is not None
        ):
            self.cache.set(key, snapshot.day_close)
            return snapshot.day_close
        return None

    def clear_cache(self, symbol: str) -> None:
        sym = symbol.upper()
        self.cache.clear(f"prevclose:{sym}:")
        self.cache.clear(f"regclose:{sym}:")
        self.cache.evict(self._shares_key(sym))

    def clear_all_cache(self) -> None:
        self.cache.clear_all()

    # --------------------------------------------------------------- ingest

    def ingest(self, symbol: str, force: bool = False) -> PriceUpdate | None:
        """Resolve and commit the current price for ``symbol``.

        In frozen states the stored price is served without calling any
        provider, unless ``force`` requests a manual catch-up.

        Returns:
            The update, or None when no trustworthy price is available.
        """
        return self._ingest(symbol.upper(), force)

    def ingest_many(
        self,
        symbols: list[str],
        force: bool = False,
    ) -> dict[str, PriceUpdate | None]:
        """Ingest several tickers from one batch snapshot read.

        Tickers missing from the batch are fetched one by one. A failing
        ticker does not stop the others.
        """
        symbols = [s.upper() for s in symbols]
        snapshots: dict[str, Snapshot] = {}
        state = self.pricing_state()
        if symbols and (state.can_ingest or force):
            try:
                snapshots = self.get_snapshots(symbols)
            except PricingError as e:
                logger.warning("Batch snapshot failed (%s), fetching one by one", e)

        results: dict[str, PriceUpdate | None] = {}
        for symbol in symbols:
            try:
                results[symbol] = self._ingest(symbol, force, snapshots.get(symbol))
            except PricingError as e:
                logger.error("Ingest failed: %s", e if e.symbol else f"{symbol}: {e}")
                results[symbol] = None
        return results

    def _ingest(
        self,
        symbol: str,
        force: bool,
        snapshot: Snapshot | None = None,
    ) -> PriceUpdate | None:
        now = self.now()
        state = get_pricing_state(now)
        session = state.session
        frozen = self.store.frozen(symbol) if state.use_frozen_price else None

        fetched = state.can_ingest or force
        if not fetched:
            if frozen is None:
                logger.debug("%s: %s with no frozen price", symbol, state.state.value)
                return None
            snapshot = Snapshot(symbol=symbol)
        else:
            if snapshot is None:
                snapshot = self.get_snapshot(symbol)
            if self.config.validate:
                self._log_quality(symbol, snapshot, now)

        effective = resolve_effective_price(
            snapshot,
            session,
            now=now,
            frozen=frozen,
            force=force,
            thresholds=self.config.staleness,
        )
        if effective is None:
            logger.debug("%s: no trustworthy price in %s session", symbol, session.value)
            return None

        committed = self.store.commit(symbol, state, effective, force=force)
        if not committed:
            logger.debug(
                "%s: kept stored price (%s, candidate %s at %s)",
                symbol, state.state.value, effective.price, effective.timestamp.isoformat(),
            )

        previous = self.previous_close(symbol, snapshot, fetch=fetched)
        regular = self.regular_close(symbol, session, snapshot)
        change = percent_change(effective.price, session, previous, regular)

        shares = self.cache.get(self._shares_key(symbol))
        cap = cap_diff = None
        if shares:
            cap = market_cap(effective.price, shares)
            if previous:
                cap_diff = market_cap_diff(effective.price, previous, shares)

        return PriceUpdate(
            symbol=symbol,
            price=effective,
            change=change,
            state=state,
            committed=committed,
            quality=self._quality(effective),
            market_cap=cap,
            market_cap_diff=cap_diff,
        )

    # ------------------------------------------------------------ internals

    def _quality(self, effective: EffectivePrice) -> str:
        if effective.source is PriceSource.FROZEN:
            return "frozen"
        if effective.is_stale or self.config.delayed_data:
            return "delayed_15m"
        return "snapshot"

    def _log_quality(self, symbol: str, snapshot: Snapshot, now: datetime) -> None:
        result = validate_snapshot(snapshot, now=now, max_move_pct=self.config.max_move_pct)
        for check in result.failed_checks:
            logger.warning("%s: %s check failed: %s", symbol, check.name, check.message)
