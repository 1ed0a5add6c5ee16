# Path: core/search/pipeline.py
# Purpose: Orchestrate a visual search: embed the query, fan out over candidates, rank the survivors.
# Layer: core/search.
# Details: Isolates per-candidate failures, reuses cached embeddings, and lets only the newest request publish.

from __future__ import annotations

import asyncio
import itertools
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from core.cache.embedding_cache import EmbeddingCache
from core.embedders.base import Embedder
from core.errors import (
    CancelledSearch,
    EmbeddingFailed,
    ImageUnavailable,
    QueryImageUnavailable,
)
from core.loading.image_loader import ImageLoader
from core.models.domain import Card, FeatureVector, RankedResult, SearchOutcome, SearchRequest, as_candidates
from .ranking import rank

logger = logging.getLogger(__name__)

CANDIDATE_FAILURES = (ImageUnavailable, EmbeddingFailed)


class SearchState(str, Enum):
    """Lifecycle of a single search request."""

    IDLE = "idle"
    LOADING_QUERY = "loading_query"
    EMBEDDING_CANDIDATES = "embedding_candidates"
    RANKING = "ranking"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_STATES = frozenset({SearchState.DONE, SearchState.CANCELLED, SearchState.FAILED})


class SearchOrchestrator:
    """High-level service bridging the catalog/API layers with the loader, embedder, cache, and ranker.

    One orchestrator models one search session: a newer request supersedes any older one
    still in flight, and only the newest request's outcome becomes visible.
    """

    def __init__(
        self,
        loader: ImageLoader,
        embedder: Embedder,
        cache: Optional[EmbeddingCache] = None,
        *,
        max_concurrency: int = 16,
        on_results: Optional[Callable[[SearchOutcome], None]] = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1.")
        self.loader = loader
        self.embedder = embedder
        self.cache = cache
        self.max_concurrency = max_concurrency
        self.on_results = on_results
        self.visible: Optional[SearchOutcome] = None
        self._request_ids = itertools.count(1)
        self._latest_id = 0
        self._states: Dict[int, SearchState] = {}

    @property
    def state(self) -> SearchState:
        """State of the newest request this session has started."""

        return self.state_of(self._latest_id)

    def state_of(self, request_id: int) -> SearchState:
        """State of a recent request; requests never started (or long finished) read as IDLE."""

        return self._states.get(request_id, SearchState.IDLE)

    def new_request(self, query_image_url: str, candidates: Sequence[Card]) -> SearchRequest:
        """Issue a request carrying the next request id for this session."""

        return SearchRequest(
            query_image_url=query_image_url,
            candidates=as_candidates(candidates),
            request_id=next(self._request_ids),
        )

    async def search(self, request: SearchRequest) -> Optional[List[RankedResult]]:
        """
        Run a search and publish its ranked results.

        Returns the ranked results, or None when a newer request superseded this one.
        Raises QueryImageUnavailable when the query image cannot be loaded or embedded,
        and lets DimensionMismatch escape when the embedder breaks its contract.

        External calls:
        - core/loading/image_loader.py::ImageLoader.load - fetches and decodes each image.
        - core/cache/embedding_cache.py::EmbeddingCache.get_or_compute - reuses candidate embeddings.
        - core/search/ranking.py::rank - orders surviving candidates by cosine distance.
        """

        if request.request_id <= self._latest_id:
            logger.info("Ignoring stale search %d (latest is %d)", request.request_id, self._latest_id)
            self._states.setdefault(request.request_id, SearchState.CANCELLED)
            return None
        self._supersede_running()
        self._latest_id = request.request_id
        self._states[request.request_id] = SearchState.IDLE

        try:
            self._advance(request, SearchState.LOADING_QUERY)
            query_vector = await self._embed_query(request)

            self._advance(request, SearchState.EMBEDDING_CANDIDATES)
            embedded, omitted = await self._embed_candidates(request)

            self._advance(request, SearchState.RANKING)
            results = rank(query_vector, embedded)

            self._advance(request, SearchState.DONE)
        except CancelledSearch:
            logger.info("Search %d superseded by %d; discarding its result", request.request_id, self._latest_id)
            self._states[request.request_id] = SearchState.CANCELLED
            return None
        except Exception:
            if self._is_superseded(request):
                logger.info("Search %d failed after being superseded; discarding", request.request_id)
                self._states[request.request_id] = SearchState.CANCELLED
                return None
            self._states[request.request_id] = SearchState.FAILED
            raise

        self._publish(SearchOutcome(request_id=request.request_id, results=results, omitted=omitted))
        return results

    async def prefetch(self, url: str) -> FeatureVector:
        """Load and embed a candidate image through the cache without running a search."""

        return await self._candidate_vector(url)

    def invalidate(self, url: str) -> bool:
        """Forget a cached candidate embedding, e.g. after the catalog reports a changed image."""

        if self.cache is None:
            return False
        return self.cache.invalidate(url)

    def _is_superseded(self, request: SearchRequest) -> bool:
        return request.request_id != self._latest_id

    def _supersede_running(self) -> None:
        """Cancel every request still in flight and forget the ones that already finished."""

        for request_id, state in list(self._states.items()):
            if state in TERMINAL_STATES:
                del self._states[request_id]
            else:
                logger.debug("Search %d -> %s", request_id, SearchState.CANCELLED.value)
                self._states[request_id] = SearchState.CANCELLED

    def _advance(self, request: SearchRequest, state: SearchState) -> None:
        """Move ``request`` to ``state``, or stop here if a newer request has started."""

        if self._is_superseded(request):
            raise CancelledSearch(request.request_id)
        logger.debug("Search %d -> %s", request.request_id, state.value)
        self._states[request.request_id] = state

    async def _embed_query(self, request: SearchRequest) -> FeatureVector:
        url = request.query_image_url
        try:
            return await self._load_and_embed(url)
        except CANDIDATE_FAILURES as exc:
            if self._is_superseded(request):
                raise CancelledSearch(request.request_id) from exc
            raise QueryImageUnavailable(url, str(exc)) from exc

    async def _embed_candidates(
        self, request: SearchRequest
    ) -> Tuple[List[Tuple[Card, FeatureVector]], List[Card]]:
        """Fan out load+embed over all candidates and join before ranking.

        gather() preserves input order, so ranking ties never depend on fetch timing.
        """

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def embed_candidate(card: Card) -> Tuple[Card, Optional[FeatureVector]]:
            async with semaphore:
                try:
                    return card, await self._candidate_vector(card.image_url)
                except CANDIDATE_FAILURES as exc:
                    logger.warning("Dropping candidate %s from search %d: %s", card.id, request.request_id, exc)
                    return card, None

        pairs = await asyncio.gather(*(embed_candidate(card) for card in request.candidates))

        embedded = [(card, vector) for card, vector in pairs if vector is not None]
        omitted = [card for card, vector in pairs if vector is None]
        if omitted:
            logger.info(
                "Search %d: %d of %d candidates omitted",
                request.request_id,
                len(omitted),
                len(request.candidates),
            )
        return embedded, omitted

    async def _candidate_vector(self, url: str) -> FeatureVector:
        if self.cache is None:
            return await self._load_and_embed(url)
        return await self.cache.get_or_compute(url, lambda: self._load_and_embed(url))

    async def _load_and_embed(self, url: str) -> FeatureVector:
        image = await self.loader.load(url)
        try:
            raw = await self.embedder.aembed_image(image)
        except Exception as exc:
            raise EmbeddingFailed(url, f"{type(exc).__name__}: {exc}") from exc

        vector = np.asarray(raw, dtype=np.float32)
        if vector.ndim != 1 or vector.size == 0:
            raise EmbeddingFailed(url, f"expected a non-empty 1-D vector, got shape {vector.shape}")
        if not np.all(np.isfinite(vector)):
            raise EmbeddingFailed(url, "vector contains non-finite values")
        vector.setflags(write=False)
        return vector

    def _publish(self, outcome: SearchOutcome) -> None:
        self.visible = outcome
        logger.info(
            "Search %d done: %d ranked, %d omitted",
            outcome.request_id,
            len(outcome.results),
            len(outcome.omitted),
        )
        if self.on_results is not None:
            self.on_results(outcome)
