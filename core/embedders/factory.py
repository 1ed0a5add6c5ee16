# Path: core/embedders/factory.py
# Purpose: Build the configured embedder once at application startup.
# Layer: core/embedders.
# Details: Maps EmbedderSettings.name to an implementation; callers share the instance read-only.

from __future__ import annotations

from typing import Callable, Dict

from config.settings import EmbedderSettings

from .base import Embedder
from .pooled_embedder import PooledColorEmbedder

EMBEDDER_BUILDERS: Dict[str, Callable[[EmbedderSettings], Embedder]] = {
    "pooled": lambda settings: PooledColorEmbedder(dim=settings.dim, grid=settings.grid),
}


def create_embedder(settings: EmbedderSettings) -> Embedder:
    """Instantiate the embedder named in settings."""

    builder = EMBEDDER_BUILDERS.get(settings.name)
    if builder is None:
        raise ValueError(f"Unknown embedder: {settings.name}. Supported: {sorted(EMBEDDER_BUILDERS)}")
    return builder(settings)
