"""Reference-data cache backends: Memory (TTL + LRU) and Parquet (disk).

Holds per-ticker reference values (previous closes, regular closes, share
counts) outside the pure pricing core. Every backend takes an injected
clock so expiry is testable without sleeping.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, Callable

import pandas as pd

Clock = Callable[[], float]


class CacheBackend(ABC):
    """Abstract key/value cache with per-entry TTL."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store a value; ``ttl_seconds`` overrides the backend default."""
        ...

    @abstractmethod
    def evict(self, key: str) -> None:
        ...

    @abstractmethod
    def clear(self, prefix: str) -> None:
        """Evict every key starting with ``prefix``."""
        ...

    @abstractmethod
    def clear_all(self) -> None:
        ...


class NoCache(CacheBackend):
    """No-op cache that always misses."""

    def get(self, key):  # type: ignore[override]
        return None

    def set(self, key, value, ttl_seconds=None):  # type: ignore[override]
        pass

    def evict(self, key):  # type: ignore[override]
        pass

    def clear(self, prefix):  # type: ignore[override]
        pass

    def clear_all(self):
        pass


class MemoryCache(CacheBackend):
    """In-memory TTL cache with LRU eviction when ``max_entries`` is exceeded."""

    def __init__(
        self,
        ttl_seconds: float = 60,
        max_entries: int = 1000,
        clock: Clock = time.monotonic,
    ) -> None:
        self.ttl = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._store.items() if now >= expires_at]
        for k in expired:
            del self._store[k]

    def _evict_lru(self) -> None:
        while len(self._store) > self.max_entries:
            self._store.popitem(last=False)

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._store[key]
            return None
        self._store.move_to_end(key)  # refresh LRU position
        return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.ttl if ttl_seconds is None else ttl_seconds
        self._store[key] = (self._clock() + ttl, value)
        self._store.move_to_end(key)
        self._evict_expired()
        self._evict_lru()

    def evict(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self, prefix: str) -> None:
        keys = [k for k in self._store if k.startswith(prefix)]
        for k in keys:
            del self._store[k]

    def clear_all(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        self._evict_expired()
        return len(self._store)


class ParquetCache(CacheBackend):
    """Disk-backed cache of numeric values in a single Parquet file.

    Storage layout: ``{base_path}/reference.parquet`` with columns
    ``key``, ``value`` and ``expires_at`` (epoch seconds). Expiry uses a
    wall clock because entries outlive the process.
    """

    _COLUMNS = ["key", "value", "expires_at"]

    def __init__(
        self,
        base_path: Path | str,
        ttl_seconds: float = 24 * 60 * 60,
        clock: Clock = time.time,
    ) -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.ttl = ttl_seconds
        self._clock = clock
        self._frame = self._load()

    @property
    def file_path(self) -> Path:
        return self.base_path / "reference.parquet"

    def _load(self) -> pd.DataFrame:
        if not self.file_path.exists():
            return self._empty()
        try:
            df = pd.read_parquet(self.file_path)
        except Exception:
            # Unreadable cache file is treated as empty and rewritten on next set.
            return self._empty()
        return df.set_index("key")[["value", "expires_at"]]

    def _empty(self) -> pd.DataFrame:
        df = pd.DataFrame(
            {"value": pd.Series(dtype="float64"), "expires_at": pd.Series(dtype="float64")}
        )
        df.index.name = "key"
        return df

    def _flush(self) -> None:
        out = self._frame.reset_index()[self._COLUMNS]
        out.to_parquet(self.file_path, compression="snappy", index=False)

    def get(self, key: str) -> float | None:
        if key not in self._frame.index:
            return None
        row = self._frame.loc[key]
        if self._clock() >= float(row["expires_at"]):
            self.evict(key)
            return None
        return float(row["value"])

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.ttl if ttl_seconds is None else ttl_seconds
        self._frame.loc[key] = [float(value), self._clock() + ttl]
        self._flush()

    def evict(self, key: str) -> None:
        if key in self._frame.index:
            self._frame = self._frame.drop(index=key)
            self._flush()

    def clear(self, prefix: str) -> None:
        mask = self._frame.index.astype(str).str.startswith(prefix)
        if mask.any():
            self._frame = self._frame[~mask]
            self._flush()

    def clear_all(self) -> None:
        self._frame = self._empty()
        if self.file_path.exists():
            self.file_path.unlink()
