"""Abstract base class for snapshot providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketprice.models.snapshot import Snapshot


class BaseSnapshotProvider(ABC):
    """Abstract base for all snapshot providers.

    Subclasses must implement ``get_snapshot``. Other methods are optional
    and advertised via ``capabilities()``.
    """

    @abstractmethod
    def get_snapshot(self, symbol: str) -> Snapshot:
        """Get the current snapshot for a symbol.

        Field presence and zero-vs-missing semantics are provider
        controlled; providers pass values through as received.
        """
        ...

    def get_snapshots(self, symbols: list[str]) -> list[Snapshot]:
        """Get snapshots for multiple symbols (default: serial calls)."""
        return [self.get_snapshot(s) for s in symbols]

    def get_previous_close(self, symbol: str) -> float | None:
        """Previous trading day's adjusted close, if the provider has one."""
        raise NotImplementedError

    def capabilities(self) -> set[str]:
        """Return the set of supported features.

        Possible values: ``snapshots``, ``previous_close``.
        """
        return {"snapshots"}
