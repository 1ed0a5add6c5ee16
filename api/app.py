# Path: api/app.py
# Purpose: Expose a FastAPI application for visual search over catalog cards.
# Layer: api.
# Details: Builds loader, embedder, cache, and per-session orchestrators at startup, optionally warms the cache, and closes them at shutdown.

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from config.settings import AppSettings
from core.cache.embedding_cache import EmbeddingCache
from core.catalog.filters import filter_cards, intersect_ranked, load_cards
from core.embedders.base import Embedder
from core.embedders.factory import create_embedder
from core.errors import DimensionMismatch, QueryImageUnavailable
from core.indexing.warmup import CacheWarmer, WarmupReport
from core.loading.image_loader import ImageLoader
from core.models.domain import Card
from core.search.pipeline import SearchOrchestrator

logger = logging.getLogger(__name__)


class CardPayload(BaseModel):
    id: str = Field(..., min_length=1, description="Catalog identifier of the card.")
    image_url: str = Field(..., min_length=1, description="URL of the card's image.")
    title: str = ""
    owner_email: str = ""
    workflows: List[str] = Field(default_factory=list)

    def to_card(self) -> Card:
        return Card(
            id=self.id,
            image_url=self.image_url,
            title=self.title,
            owner_email=self.owner_email,
            workflows=tuple(self.workflows),
        )


class ImageSearchRequest(BaseModel):
    query_image_url: str = Field(..., min_length=1, description="Reference image to rank candidates against.")
    candidates: List[CardPayload] = Field(default_factory=list, description="Catalog snapshot to rank.")
    session: str = Field(default="default", description="Search session; newer requests supersede older ones.")
    title_term: str = Field(default="", description="Optional title substring filter.")
    workflow_term: str = Field(default="", description="Optional workflow substring filter.")


class RankedItem(BaseModel):
    card: CardPayload
    distance: float


class ImageSearchResponse(BaseModel):
    request_id: int
    results: List[RankedItem]
    omitted: List[str] = Field(default_factory=list, description="Ids of candidates whose image could not be used.")


class InvalidateRequest(BaseModel):
    url: str = Field(..., min_length=1)


@dataclass
class SearchServices:
    """Process-wide search components, created once at startup and read-only afterwards."""

    settings: AppSettings
    loader: ImageLoader
    embedder: Embedder
    cache: Optional[EmbeddingCache]
    sessions: Dict[str, SearchOrchestrator] = field(default_factory=dict)

    def orchestrator(self, session: str) -> SearchOrchestrator:
        orchestrator = self.sessions.get(session)
        if orchestrator is None:
            orchestrator = SearchOrchestrator(
                self.loader,
                self.embedder,
                self.cache,
                max_concurrency=self.settings.search.max_concurrency,
            )
            self.sessions[session] = orchestrator
        return orchestrator


async def warm_from_catalog(services: SearchServices) -> Optional[WarmupReport]:
    """Embed the configured catalog into the shared cache so early searches hit it."""

    catalog = services.settings.search.warmup_catalog
    if catalog is None:
        return None
    if services.cache is None:
        logger.warning("Skipping warm-up of %s: the embedding cache is disabled", catalog)
        return None

    cards = load_cards(catalog)
    orchestrator = SearchOrchestrator(
        services.loader,
        services.embedder,
        services.cache,
        max_concurrency=services.settings.search.max_concurrency,
    )
    warmer = CacheWarmer(orchestrator, batch_size=services.settings.search.warmup_batch_size, show_progress=False)
    report = await warmer.warm(cards)
    logger.info("Warmed %d of %d catalog images (%d failed)", report.warmed, len(cards), len(report.failed))
    return report


def create_app(
    settings: Optional[AppSettings] = None,
    embedder: Optional[Embedder] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
):  # type: ignore[override]
    """Create a FastAPI app; ``embedder`` and ``transport`` override the configured defaults."""

    from fastapi import FastAPI, HTTPException

    settings = settings or AppSettings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services = SearchServices(
            settings=settings,
            loader=ImageLoader.from_settings(settings.loader, transport=transport),
            embedder=embedder or create_embedder(settings.embedder),
            cache=EmbeddingCache(max_entries=settings.cache.max_entries) if settings.cache.enabled else None,
        )
        app.state.services = services
        try:
            await warm_from_catalog(services)
            logger.info("Search services ready (embedder=%s, dim=%d)", services.embedder.name, services.embedder.dim)
            yield
        finally:
            await services.loader.aclose()
            services.sessions.clear()
            logger.info("Search services shut down")

    app = FastAPI(title="Page Gallery Search API", version="0.1.0", lifespan=lifespan)

    def services() -> SearchServices:
        return app.state.services

    @app.get("/health")
    def health() -> Dict[str, str]:
        """Return a simple health status payload."""

        return {"status": "ok"}

    @app.post("/search/image", response_model=ImageSearchResponse)
    async def search_image(payload: ImageSearchRequest) -> ImageSearchResponse:
        """Rank candidate cards by visual similarity to the query image."""

        orchestrator = services().orchestrator(payload.session)
        candidates = [item.to_card() for item in payload.candidates]
        request = orchestrator.new_request(payload.query_image_url, candidates)

        try:
            results = await orchestrator.search(request)
        except QueryImageUnavailable as exc:
            raise HTTPException(
                status_code=502,
                detail={"error": "query_image_unavailable", "message": str(exc), "retryable": True},
            ) from exc
        except DimensionMismatch as exc:
            logger.error("Embedder contract violated: %s", exc)
            raise HTTPException(status_code=500, detail={"error": "dimension_mismatch", "message": str(exc)}) from exc

        if results is None:
            raise HTTPException(status_code=409, detail={"error": "superseded", "retryable": False})

        if payload.title_term or payload.workflow_term:
            results = intersect_ranked(results, filter_cards(candidates, payload.title_term, payload.workflow_term))

        outcome = orchestrator.visible
        omitted = [card.id for card in outcome.omitted] if outcome and outcome.request_id == request.request_id else []
        return ImageSearchResponse(
            request_id=request.request_id,
            results=[RankedItem(card=CardPayload(**item.card.to_dict()), distance=item.distance) for item in results],
            omitted=omitted,
        )

    @app.post("/cache/invalidate")
    def invalidate(payload: InvalidateRequest) -> Dict[str, bool]:
        """Forget the cached embedding for an image whose content changed."""

        cache = services().cache
        return {"invalidated": cache.invalidate(payload.url) if cache is not None else False}

    @app.get("/cache/stats")
    def cache_stats() -> Dict[str, int]:
        cache = services().cache
        if cache is None:
            return {"hits": 0, "misses": 0, "shared": 0, "evictions": 0, "size": 0}
        stats = cache.stats()
        return {
            "hits": stats.hits,
            "misses": stats.misses,
            "shared": stats.shared,
            "evictions": stats.evictions,
            "size": stats.size,
        }

    return app
