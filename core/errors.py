# Path: core/errors.py
# Purpose: Define the error taxonomy raised by the visual search core.
# Layer: core.
# Details: Per-candidate failures are recoverable; query failures and contract violations escalate.

from __future__ import annotations


class VisualSearchError(Exception):
    """Base class for errors raised by the visual search core."""


class ImageUnavailable(VisualSearchError):
    """An image could not be fetched, timed out, or did not decode."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Image unavailable: {url} ({reason})")
        self.url = url
        self.reason = reason


class EmbeddingFailed(VisualSearchError):
    """The embedder raised or returned something that is not a usable feature vector."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Embedding failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class QueryImageUnavailable(VisualSearchError):
    """The query image could not be loaded or embedded, so there is nothing to rank against."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Query image unavailable: {url} ({reason})")
        self.url = url
        self.reason = reason


class DimensionMismatch(VisualSearchError, ValueError):
    """Two feature vectors of different lengths were compared."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Feature vector dimensions differ: {left} != {right}")
        self.left = left
        self.right = right


class CancelledSearch(VisualSearchError):
    """A newer search superseded this one; its result must be discarded."""

    def __init__(self, request_id: int) -> None:
        super().__init__(f"Search {request_id} was superseded")
        self.request_id = request_id


__all__ = [
    "CancelledSearch",
    "DimensionMismatch",
    "EmbeddingFailed",
    "ImageUnavailable",
    "QueryImageUnavailable",
    "VisualSearchError",
]
