# Path: core/search/__init__.py
# Purpose: Package initializer for ranking and search orchestration.
# Layer: core/search.
# Details: Exposes the cosine ranker and the orchestrator entrypoint.

from .pipeline import SearchOrchestrator, SearchState
from .ranking import cosine_distance, rank

__all__ = ["SearchOrchestrator", "SearchState", "cosine_distance", "rank"]
