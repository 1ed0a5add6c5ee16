# Path: core/models/__init__.py
# Purpose: Package initializer for domain model definitions.
# Layer: core/models.
# Details: Exposes dataclasses used across loading, caching, ranking, and search layers.

from .domain import Card, CacheEntry, FeatureVector, RankedResult, SearchOutcome, SearchRequest

__all__ = ["Card", "CacheEntry", "FeatureVector", "RankedResult", "SearchOutcome", "SearchRequest"]
