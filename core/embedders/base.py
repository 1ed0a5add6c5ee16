# Path: core/embedders/base.py
# Purpose: Define the Embedder interface wrapping the external image feature extractor.
# Layer: core/embedders.
# Details: Provides a sync contract, an async adapter that keeps inference off the event loop, and a callable wrapper.

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Union

import numpy as np
from PIL import Image

EmbedFn = Callable[[Image.Image], Union[np.ndarray, Awaitable[np.ndarray]]]


class Embedder(ABC):
    """Abstract base class for feature extractors used by the search orchestrator.

    Implementations must be deterministic for identical input and free of side effects.
    """

    name: str
    dim: int

    @abstractmethod
    def embed_image(self, image: Image.Image) -> np.ndarray:
        """Return a fixed-length embedding for a decoded image."""

    async def aembed_image(self, image: Image.Image) -> np.ndarray:
        """Awaitable variant of :meth:`embed_image`.

        Runs the synchronous implementation in a worker thread so model inference does not
        block the event loop. Subclasses with a native async backend override this.
        """

        return await asyncio.to_thread(self.embed_image, image)

    @staticmethod
    def _normalize(vector: np.ndarray) -> np.ndarray:
        """Normalize embedding vectors to unit length to simplify similarity comparisons."""

        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector.astype(np.float32)
        return (vector / norm).astype(np.float32)


async def _maybe_await(value: Any) -> Any:
    """Await awaitables and return non-awaitable values unchanged."""

    if inspect.isawaitable(value):
        return await value
    return value


class CallableEmbedder(Embedder):
    """Adapt a plain ``embed(image)`` callable, synchronous or awaitable, to the Embedder interface."""

    def __init__(self, fn: EmbedFn, dim: int, name: str = "callable") -> None:
        self._fn = fn
        self.dim = dim
        self.name = name

    def embed_image(self, image: Image.Image) -> np.ndarray:
        result = self._fn(image)
        if inspect.isawaitable(result):
            raise TypeError("Wrapped embed function is asynchronous; use aembed_image().")
        return np.asarray(result, dtype=np.float32)

    async def aembed_image(self, image: Image.Image) -> np.ndarray:
        if inspect.iscoroutinefunction(self._fn):
            return np.asarray(await self._fn(image), dtype=np.float32)
        result = await asyncio.to_thread(self._fn, image)
        return np.asarray(await _maybe_await(result), dtype=np.float32)
