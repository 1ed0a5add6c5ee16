# Path: core/catalog/__init__.py
# Purpose: Package initializer for catalog helpers.
# Layer: core/catalog.
# Details: Exposes card loading, text filtering, and order-preserving intersection.

from .filters import filter_cards, intersect_ranked, load_cards, matches_text

__all__ = ["filter_cards", "intersect_ranked", "load_cards", "matches_text"]
