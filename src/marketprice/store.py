"""Committed price store: the persistence side of the overwrite contract."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from marketprice.guard import can_overwrite
from marketprice.models.price import EffectivePrice, FrozenPrice, PriceRecord
from marketprice.state import PricingStateContext


class PriceStore(ABC):
    """Abstract store of the last committed price per ticker.

    Implementations must serialize read-existing -> guard -> write per
    ticker, so two concurrent ingests cannot both pass the guard against
    the same stale read.
    """

    @abstractmethod
    def get(self, symbol: str) -> PriceRecord | None:
        """Return the committed record, or None."""
        ...

    @abstractmethod
    def commit(
        self,
        symbol: str,
        state: PricingStateContext,
        candidate: EffectivePrice,
        force: bool = False,
    ) -> bool:
        """Write ``candidate`` if the overwrite guard allows it.

        ``force`` lets a manual catch-up seed a ticker that has no record
        yet, even in a frozen state. It never replaces an existing record
        the guard rejects.

        Returns:
            True if the candidate was written.
        """
        ...

    def frozen(self, symbol: str) -> FrozenPrice | None:
        """Last committed price usable as a frozen price."""
        record = self.get(symbol)
        return record.to_frozen() if record is not None else None


class MemoryPriceStore(PriceStore):
    """In-process store with one lock per ticker."""

    def __init__(self) -> None:
        self._records: dict[str, PriceRecord] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, symbol: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(symbol)
            if lock is None:
                lock = self._locks[symbol] = threading.Lock()
            return lock

    def get(self, symbol: str) -> PriceRecord | None:
        return self._records.get(symbol.upper())

    def put(self, symbol: str, record: PriceRecord) -> None:
        """Unconditional write, for seeding from an external store."""
        key = symbol.upper()
        with self._lock_for(key):
            self._records[key] = record

    def commit(
        self,
        symbol: str,
        state: PricingStateContext,
        candidate: EffectivePrice,
        force: bool = False,
    ) -> bool:
        key = symbol.upper()
        with self._lock_for(key):
            existing = self._records.get(key)
            allowed = can_overwrite(state, existing, candidate)
            if not allowed and force and existing is None:
                allowed = candidate.price > 0
            if allowed:
                self._records[key] = PriceRecord(
                    price=candidate.price,
                    timestamp=candidate.timestamp,
                    session=state.session,
                    source=candidate.source,
                )
            return allowed
