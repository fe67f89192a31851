"""Polygon.io snapshot provider (REST via ``requests``)."""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

from marketprice.errors import PricingError, PricingErrorCode
from marketprice.models.bar import Bar
from marketprice.models.quote import Quote, Trade
from marketprice.models.snapshot import Snapshot
from marketprice.providers.base import BaseSnapshotProvider

logger = logging.getLogger(__name__)

_SNAPSHOT_PATH = "/v2/snapshot/locale/us/markets/stocks/tickers"


def _num(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _ts(value: Any) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _bar(data: dict[str, Any] | None, timed: bool = False) -> Bar | None:
    if not data:
        return None
    return Bar(
        close=_num(data.get("c")) or 0.0,
        timestamp=_ts(data.get("t")) if timed else None,
        open=_num(data.get("o")),
        high=_num(data.get("h")),
        low=_num(data.get("l")),
        volume=_num(data.get("v")),
        vwap=_num(data.get("vw")),
    )


def parse_snapshot(payload: dict[str, Any]) -> Snapshot:
    """Map a Polygon ticker snapshot object into a ``Snapshot``.

    Zero values are kept as-is; the resolver decides what is usable.
    """
    trade = payload.get("lastTrade") or None
    quote = payload.get("lastQuote") or None
    return Snapshot(
        symbol=str(payload.get("ticker", "")).upper(),
        minute_bar=_bar(payload.get("min"), timed=True),
        last_trade=Trade(
            price=_num(trade.get("p")) or 0.0,
            timestamp=_ts(trade.get("t")),
            size=_num(trade.get("s")),
        ) if trade else None,
        last_quote=Quote(
            price=_num(quote.get("p")) or 0.0,
            timestamp=_ts(quote.get("t")),
            ask_price=_num(quote.get("P")),
            bid_size=_num(quote.get("s")),
            ask_size=_num(quote.get("S")),
        ) if quote else None,
        day=_bar(payload.get("day")),
        prev_day=_bar(payload.get("prevDay")),
        updated=_ts(payload.get("updated")),
    )


class PolygonProvider(BaseSnapshotProvider):
    """Fetch snapshots and previous closes from the Polygon.io REST API.

    Capabilities: snapshots, previous_close.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = "https://api.polygon.io",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key or os.getenv("POLYGON_API_KEY")
        if not self.api_key:
            raise PricingError(
                "Polygon API key required. Set POLYGON_API_KEY env var or pass api_key.",
                code=PricingErrorCode.AUTH_FAILED,
            )
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def capabilities(self) -> set[str]:
        return {"snapshots", "previous_close"}

    # ------------------------------------------------------------ snapshots

    def get_snapshot(self, symbol: str) -> Snapshot:
        sym = symbol.upper()
        data = self._get(f"{_SNAPSHOT_PATH}/{sym}", "get_snapshot", sym)
        ticker = data.get("ticker")
        if not ticker:
            raise PricingError(
                "Polygon returned no snapshot",
                code=PricingErrorCode.NO_DATA,
                symbol=sym,
            )
        return parse_snapshot(ticker)

    def get_snapshots(self, symbols: list[str]) -> list[Snapshot]:
        """Batch snapshot; unknown tickers are omitted from the result."""
        if not symbols:
            return []
        data = self._get(
            _SNAPSHOT_PATH,
            "get_snapshots",
            tickers=",".join(s.upper() for s in symbols),
        )
        snapshots = [parse_snapshot(t) for t in data.get("tickers") or []]
        if len(snapshots) < len(symbols):
            logger.debug(
                "Polygon batch snapshot returned %d of %d tickers",
                len(snapshots), len(symbols),
            )
        return snapshots

    # ------------------------------------------------------- previous close

    def get_previous_close(self, symbol: str) -> float | None:
        sym = symbol.upper()
        data = self._get(
            f"/v2/aggs/ticker/{sym}/prev",
            "get_previous_close",
            sym,
            adjusted="true",
        )
        results = data.get("results") or []
        if not results:
            return None
        close = _num(results[0].get("c"))
        return close if close and close > 0 else None

    # ------------------------------------------------------------ internals

    def _get(
        self,
        path: str,
        operation: str,
        symbol: str | None = None,
        **params: Any,
    ) -> dict[str, Any]:
        try:
            resp = self.session.get(
                f"{self.base_url}{path}",
                params={"apiKey": self.api_key, **params},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise PricingError(
                f"Polygon {operation} timed out: {exc}",
                code=PricingErrorCode.TIMEOUT,
                symbol=symbol,
            ) from exc
        except requests.RequestException as exc:
            raise PricingError(
                f"Polygon {operation} failed: {exc}",
                code=PricingErrorCode.PROVIDER_ERROR,
                retryable=True,
                symbol=symbol,
            ) from exc
        self._check_response(resp, symbol)
        return resp.json()

    def _check_response(self, resp: Any, symbol: str | None = None) -> None:
        if resp.status_code == 429:
            raise PricingError(
                "Polygon rate limited",
                code=PricingErrorCode.RATE_LIMITED,
                symbol=symbol,
            )
        if resp.status_code in (401, 403):
            raise PricingError(
                "Polygon authentication failed",
                code=PricingErrorCode.AUTH_FAILED,
            )
        if resp.status_code == 404:
            raise PricingError(
                "Symbol not found on Polygon",
                code=PricingErrorCode.NOT_FOUND,
                symbol=symbol,
            )
        if resp.status_code >= 400:
            raise PricingError(
                f"Polygon HTTP {resp.status_code}",
                code=PricingErrorCode.PROVIDER_ERROR,
                retryable=resp.status_code >= 500,
                symbol=symbol,
            )
