# Path: core/embedders/pooled_embedder.py
# Purpose: Provide a lightweight deterministic image embedder.
# Layer: core/embedders.
# Details: Pools colour statistics over a spatial grid; stands in for a pretrained classifier's features.

from __future__ import annotations

import numpy as np
from PIL import Image

from .base import Embedder


class PooledColorEmbedder(Embedder):
    """Embed images from grid-pooled colour means plus global channel statistics.

    Cheap enough to run without a model download, and stable across runs, which makes
    it the default for demos and tests. Swap in a real extractor through the factory.
    """

    def __init__(self, dim: int = 512, grid: int = 4, name: str = "pooled") -> None:
        self.dim = dim
        self.grid = grid
        self.name = name

    def embed_image(self, image: Image.Image) -> np.ndarray:
        """Generate an embedding from cell means, channel spread, and channel quartiles."""

        rgb = image.convert("RGB")
        cells = np.asarray(rgb.resize((self.grid, self.grid), Image.Resampling.BOX), dtype=np.float32).flatten() / 255.0
        pixels = np.asarray(rgb, dtype=np.float32).reshape(-1, 3) / 255.0
        pooled = np.concatenate([
            cells,
            pixels.std(axis=0),
            np.percentile(pixels, [25, 50, 75], axis=0).flatten(),
        ]).astype(np.float32)
        # Wrap the pooled features to the configured width.
        padded = np.resize(pooled, self.dim)
        return self._normalize(padded)
