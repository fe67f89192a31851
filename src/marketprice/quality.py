"""Advisory data quality checks for provider snapshots."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from marketprice.calendar import Instant, now_utc, to_milliseconds
from marketprice.models.snapshot import Snapshot

_FUTURE_TOLERANCE_MS = 60_000


@dataclass
class ValidationCheck:
    """Single validation check result."""

    name: str
    passed: bool
    message: str = ""


@dataclass
class ValidationResult:
    """Aggregate validation result."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed_checks(self) -> list[ValidationCheck]:
        return [c for c in self.checks if not c.passed]


def _prices(snapshot: Snapshot) -> dict[str, float]:
    prices: dict[str, float] = {}
    if snapshot.minute_bar is not None:
        prices["min.c"] = snapshot.minute_bar.close
    if snapshot.last_trade is not None:
        prices["lastTrade.p"] = snapshot.last_trade.price
    if snapshot.last_quote is not None:
        prices["lastQuote.p"] = snapshot.last_quote.price
    if snapshot.day is not None:
        prices["day.c"] = snapshot.day.close
    if snapshot.prev_day is not None:
        prices["prevDay.c"] = snapshot.prev_day.close
    return {k: v for k, v in prices.items() if v is not None}


def _timestamps(snapshot: Snapshot) -> dict[str, int]:
    stamps = {
        "min.t": snapshot.minute_bar.timestamp if snapshot.minute_bar else None,
        "lastTrade.t": snapshot.last_trade.timestamp if snapshot.last_trade else None,
        "lastQuote.t": snapshot.last_quote.timestamp if snapshot.last_quote else None,
        "updated": snapshot.updated,
    }
    return {k: v for k, v in stamps.items() if v}


def validate_snapshot(
    snapshot: Snapshot,
    now: Instant | None = None,
    max_move_pct: float = 40.0,
) -> ValidationResult:
    """Run all quality checks on a snapshot.

    Checks:
        1. Has a price (some field > 0)
        2. No negative prices
        3. Finite values (no NaN/Inf)
        4. No future timestamps (1 min tolerance)
        5. Price sanity (last trade within ``max_move_pct`` of previous close)
    """
    result = ValidationResult()
    prices = _prices(snapshot)

    # 1. Has a price
    positive = [k for k, v in prices.items() if v > 0]
    if positive:
        result.checks.append(ValidationCheck("has_price", True, ", ".join(positive)))
    else:
        result.checks.append(ValidationCheck("has_price", False, "No positive price field"))

    # 2. No negative prices
    negative = [k for k, v in prices.items() if v < 0]
    if negative:
        result.checks.append(
            ValidationCheck("no_negative_prices", False, f"Negative: {', '.join(negative)}")
        )
    else:
        result.checks.append(ValidationCheck("no_negative_prices", True))

    # 3. Finite values
    non_finite = [k for k, v in prices.items() if math.isnan(v) or math.isinf(v)]
    if non_finite:
        result.checks.append(
            ValidationCheck("finite_values", False, f"NaN/Inf: {', '.join(non_finite)}")
        )
    else:
        result.checks.append(ValidationCheck("finite_values", True))

    # 4. No future timestamps
    now_ms = to_milliseconds(now if now is not None else now_utc())
    future = [
        k for k, t in _timestamps(snapshot).items()
        if to_milliseconds(t) - now_ms > _FUTURE_TOLERANCE_MS
    ]
    if future:
        result.checks.append(
            ValidationCheck("no_future_timestamps", False, f"Future: {', '.join(future)}")
        )
    else:
        result.checks.append(ValidationCheck("no_future_timestamps", True))

    # 5. Price sanity: extreme move vs previous close (possible split)
    previous_close = snapshot.previous_close
    trade = snapshot.last_trade
    if previous_close and trade is not None and trade.price and trade.price > 0:
        move = abs(trade.price - previous_close) / previous_close * 100
        if move > max_move_pct:
            result.checks.append(
                ValidationCheck(
                    "price_sanity", False,
                    f"{move:.2f}% move vs previous close - possible split or data error",
                )
            )
        else:
            result.checks.append(ValidationCheck("price_sanity", True))
    else:
        result.checks.append(ValidationCheck("price_sanity", True, "No reference"))

    return result
