"""Session-aware price resolution.

Turns a noisy multi-field provider snapshot into at most one effective
price. Every snapshot field read goes through this module, so a stale or
zero-valued field can never be surfaced as a current price.

Returns None when no trustworthy price is available; callers treat that as
"do not update", never as "reset to zero".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from marketprice.calendar import (
    Instant,
    Session,
    is_same_local_day,
    is_trading_day,
    is_within_session_window,
    now_utc,
    to_milliseconds,
    to_utc,
)
from marketprice.config import StalenessThresholds
from marketprice.models.price import EffectivePrice, FrozenPrice, PriceSource
from marketprice.models.snapshot import Snapshot

_DEFAULT_THRESHOLDS = StalenessThresholds()


@dataclass(frozen=True)
class _Observation:
    """One timed price field of a snapshot."""

    source: PriceSource
    price: float
    timestamp: int | None
    label: str
    rank: int

    @property
    def usable(self) -> bool:
        return self.price > 0 and bool(self.timestamp)


@dataclass(frozen=True)
class _Candidate:
    price: float
    source: PriceSource
    ts_ms: int | float
    stale: bool
    stale_reason: str | None
    rank: int


def _observations(snapshot: Snapshot) -> list[_Observation]:
    """Timed price fields in priority order: minute bar, last trade, last quote."""
    found: list[_Observation] = []
    if snapshot.minute_bar is not None:
        found.append(_Observation(
            PriceSource.MINUTE, snapshot.minute_bar.close or 0.0,
            snapshot.minute_bar.timestamp, "Minute bar", 0,
        ))
    if snapshot.last_trade is not None:
        found.append(_Observation(
            PriceSource.LAST_TRADE, snapshot.last_trade.price or 0.0,
            snapshot.last_trade.timestamp, "Last trade", 1,
        ))
    if snapshot.last_quote is not None:
        # No quote provenance: quotes are reported as last-trade prices.
        found.append(_Observation(
            PriceSource.LAST_TRADE, snapshot.last_quote.price or 0.0,
            snapshot.last_quote.timestamp, "Last quote", 2,
        ))
    return found


def _from_ms(ms: int | float) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def is_stale(timestamp: Instant, threshold_minutes: float, now: Instant) -> bool:
    """Strictly older than the threshold; future timestamps are never stale."""
    age_ms = to_milliseconds(now) - to_milliseconds(timestamp)
    if age_ms <= 0:
        return False
    return age_ms > threshold_minutes * 60_000


def _in_window(obs: _Observation, session: Session, now: datetime) -> _Candidate | None:
    """Candidate for ``obs`` if it is positive, timestamped and in today's window."""
    if not obs.usable or not is_within_session_window(obs.timestamp, session, now):
        return None
    return _Candidate(
        price=obs.price,
        source=obs.source,
        ts_ms=to_milliseconds(obs.timestamp),
        stale=False,
        stale_reason=None,
        rank=obs.rank,
    )


def _classify(
    candidate: _Candidate,
    threshold_minutes: float,
    now: datetime,
    reason: str,
) -> _Candidate:
    stale = is_stale(candidate.ts_ms, threshold_minutes, now)
    return _Candidate(
        price=candidate.price,
        source=candidate.source,
        ts_ms=candidate.ts_ms,
        stale=stale,
        stale_reason=reason if stale else None,
        rank=candidate.rank,
    )


def _to_effective(candidate: _Candidate) -> EffectivePrice:
    return EffectivePrice(
        price=candidate.price,
        source=candidate.source,
        timestamp=_from_ms(candidate.ts_ms),
        is_stale=candidate.stale,
        stale_reason=candidate.stale_reason,
    )


def _minutes(threshold: float) -> str:
    return f"{threshold:g} minute" + ("" if threshold == 1 else "s")


# ---- Per-session resolution ----

def _resolve_closed(
    snapshot: Snapshot,
    now: datetime,
    frozen: FrozenPrice | None,
    force: bool,
) -> EffectivePrice | None:
    if frozen is not None:
        return EffectivePrice(
            price=frozen.price,
            source=PriceSource.FROZEN,
            timestamp=frozen.timestamp,
            is_stale=False,
        )

    # Overnight without a frozen price: nothing to serve yet.
    if is_trading_day(now):
        return None

    # Weekend/holiday: only a manual catch-up may read the snapshot.
    if not force:
        return None
    if snapshot.day is not None and snapshot.day.close and snapshot.day.close > 0:
        return EffectivePrice(
            price=snapshot.day.close,
            source=PriceSource.DAY,
            timestamp=now,
            is_stale=True,
            stale_reason="Day close from the last trading day (forced ingest)",
        )
    bar = snapshot.minute_bar
    if bar is not None and bar.close and bar.close > 0:
        ts = _from_ms(to_milliseconds(bar.timestamp)) if bar.timestamp else now
        return EffectivePrice(
            price=bar.close,
            source=PriceSource.MINUTE,
            timestamp=ts,
            is_stale=True,
            stale_reason="Minute bar from the last trading day (forced ingest)",
        )
    return None


def _resolve_pre(
    snapshot: Snapshot,
    now: datetime,
    thresholds: StalenessThresholds,
) -> EffectivePrice | None:
    threshold = thresholds.pre_market_minutes
    for obs in _observations(snapshot):
        candidate = _in_window(obs, Session.PRE, now)
        if candidate is not None:
            reason = f"{obs.label} older than {_minutes(threshold)}"
            return _to_effective(_classify(candidate, threshold, now, reason))

    # No pre-market print yet: fall back to the previous close, marked stale,
    # so a days-old stored price is never shown as current.
    previous_close = snapshot.previous_close
    if previous_close is None:
        return None
    borrowed = next(
        (
            t for t in (
                snapshot.last_trade.timestamp if snapshot.last_trade else None,
                snapshot.last_quote.timestamp if snapshot.last_quote else None,
                snapshot.minute_bar.timestamp if snapshot.minute_bar else None,
            )
            if t
        ),
        None,
    )
    return EffectivePrice(
        price=previous_close,
        source=PriceSource.PREVIOUS_CLOSE,
        timestamp=_from_ms(to_milliseconds(borrowed)) if borrowed else now,
        is_stale=True,
        stale_reason="No valid pre-market price; falling back to previous close",
    )


def _resolve_live(
    snapshot: Snapshot,
    now: datetime,
    force: bool,
    thresholds: StalenessThresholds,
) -> EffectivePrice | None:
    threshold = thresholds.live_minutes
    trade = snapshot.last_trade
    bar = snapshot.minute_bar

    if trade is not None:
        obs = _Observation(PriceSource.LAST_TRADE, trade.price or 0.0, trade.timestamp, "Last trade", 1)
        candidate = _in_window(obs, Session.LIVE, now)
        if candidate is not None:
            reason = f"Last trade older than {_minutes(threshold)}"
            return _to_effective(_classify(candidate, threshold, now, reason))

    # Day close has no timestamp; it is as current as the snapshot itself.
    if snapshot.day_close is not None:
        return EffectivePrice(
            price=snapshot.day_close,
            source=PriceSource.DAY,
            timestamp=now,
            is_stale=False,
        )

    if bar is not None and bar.close and bar.close > 0 and bar.timestamp:
        if force or is_same_local_day(bar.timestamp, now):
            candidate = _Candidate(
                price=bar.close,
                source=PriceSource.MINUTE,
                ts_ms=to_milliseconds(bar.timestamp),
                stale=False,
                stale_reason=None,
                rank=0,
            )
            reason = f"Minute bar older than {_minutes(threshold)}"
            return _to_effective(_classify(candidate, threshold, now, reason))

    if force and trade is not None and trade.price and trade.price > 0:
        ts = _from_ms(to_milliseconds(trade.timestamp)) if trade.timestamp else now
        return EffectivePrice(
            price=trade.price,
            source=PriceSource.LAST_TRADE,
            timestamp=ts,
            is_stale=True,
            stale_reason="Last trade outside today's regular session (forced ingest)",
        )
    return None


def _resolve_after(
    snapshot: Snapshot,
    now: datetime,
    thresholds: StalenessThresholds,
) -> EffectivePrice | None:
    threshold = thresholds.after_hours_minutes
    candidates: list[_Candidate] = []
    for obs in _observations(snapshot):
        candidate = _in_window(obs, Session.AFTER, now)
        if candidate is not None:
            reason = f"{obs.label} older than {_minutes(threshold)}"
            candidates.append(_classify(candidate, threshold, now, reason))

    if not candidates:
        return None
    # Fresh before stale, then newest, then minute bar > last trade > last quote.
    best = min(candidates, key=lambda c: (c.stale, -c.ts_ms, c.rank))
    return _to_effective(best)


def resolve_effective_price(
    snapshot: Snapshot,
    session: Session | str,
    now: Instant | None = None,
    frozen: FrozenPrice | None = None,
    force: bool = False,
    thresholds: StalenessThresholds | None = None,
) -> EffectivePrice | None:
    """Resolve the effective price of ``snapshot`` for ``session``.

    Args:
        snapshot: Provider snapshot (untrusted, possibly zero-valued fields).
        session: Market session to resolve for.
        now: Reference instant. Defaults to the current instant.
        frozen: Last known-good price, served during closed sessions.
        force: Manual catch-up; relaxes same-day checks and allows weekend
            ingestion from the snapshot.
        thresholds: Per-session staleness thresholds.

    Returns:
        The effective price, or None when no trustworthy price exists.
    """
    session = Session(session)
    now = to_utc(now) if now is not None else now_utc()
    thresholds = thresholds or _DEFAULT_THRESHOLDS

    if session is Session.CLOSED:
        return _resolve_closed(snapshot, now, frozen, force)
    if session is Session.PRE:
        return _resolve_pre(snapshot, now, thresholds)
    if session is Session.LIVE:
        return _resolve_live(snapshot, now, force, thresholds)
    if session is Session.AFTER:
        return _resolve_after(snapshot, now, thresholds)
    raise ValueError(f"Unhandled session: {session}")
