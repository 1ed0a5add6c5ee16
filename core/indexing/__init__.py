# Path: core/indexing/__init__.py
# Purpose: Package initializer for catalog warm-up utilities.
# Layer: core/indexing.
# Details: Exposes the embedding cache warmer and its report.

from .warmup import CacheWarmer, WarmupReport

__all__ = ["CacheWarmer", "WarmupReport"]
