"""Snapshot provider registry."""

from __future__ import annotations

import importlib

from marketprice.config import ProviderType
from marketprice.providers.base import BaseSnapshotProvider

# Lazy registry: classes are imported on demand.
PROVIDER_CLASSES: dict[ProviderType, str] = {
    ProviderType.POLYGON: "marketprice.providers.polygon.PolygonProvider",
    ProviderType.MOCK: "marketprice.providers.mock.MockProvider",
}


def create_provider(
    provider_type: ProviderType,
    **kwargs,
) -> BaseSnapshotProvider:
    """Instantiate a provider by type, forwarding kwargs to its constructor."""
    dotted = PROVIDER_CLASSES[provider_type]
    module_path, cls_name = dotted.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls = getattr(module, cls_name)
    return cls(**kwargs)


__all__ = ["BaseSnapshotProvider", "PROVIDER_CLASSES", "create_provider"]
