"""Percent change and market-cap arithmetic."""

from __future__ import annotations

from decimal import Decimal

from marketprice.calendar import Session
from marketprice.models.price import PercentChangeResult, ReferenceInfo
from marketprice.state import ReferencePrice

_NO_REFERENCE = PercentChangeResult(change_pct=0.0, reference=ReferenceInfo())


def _positive(value: float | None) -> bool:
    return value is not None and value > 0


def percent_change(
    current_price: float | None,
    session: Session | str,
    previous_close: float | None,
    regular_close: float | None,
) -> PercentChangeResult:
    """Percent change of ``current_price`` against the session's reference close.

    Pre-market and live measure against the previous trading day's close.
    After-hours and closed measure against today's regular close, falling
    back to the previous close when the regular close is not known yet.
    """
    session = Session(session)
    if not _positive(current_price):
        return _NO_REFERENCE

    used: ReferencePrice | None = None
    reference: float | None = None

    if session in (Session.PRE, Session.LIVE):
        if _positive(previous_close):
            used, reference = ReferencePrice.PREVIOUS_CLOSE, previous_close
    elif session in (Session.AFTER, Session.CLOSED):
        if _positive(regular_close):
            used, reference = ReferencePrice.REGULAR_CLOSE, regular_close
        elif _positive(previous_close):
            used, reference = ReferencePrice.PREVIOUS_CLOSE, previous_close

    if used is None or reference is None:
        return _NO_REFERENCE

    return PercentChangeResult(
        change_pct=(current_price / reference - 1) * 100,
        reference=ReferenceInfo(used=used.value, price=reference),
    )


def market_cap(price: float, shares: float) -> float:
    """Market cap in billions USD, rounded to 2 decimals."""
    result = Decimal(str(price)) * Decimal(str(shares)) / Decimal(1_000_000_000)
    return round(float(result), 2)


def market_cap_diff(current_price: float, previous_close: float, shares: float) -> float:
    """Market-cap change vs the previous close, in billions USD."""
    result = (
        (Decimal(str(current_price)) - Decimal(str(previous_close)))
        * Decimal(str(shares))
        / Decimal(1_000_000_000)
    )
    return round(float(result), 2)
