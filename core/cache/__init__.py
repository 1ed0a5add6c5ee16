# Path: core/cache/__init__.py
# Purpose: Package initializer for the embedding cache.
# Layer: core/cache.
# Details: Exposes the single-flight embedding cache and its statistics record.

from .embedding_cache import CacheStats, EmbeddingCache

__all__ = ["CacheStats", "EmbeddingCache"]
