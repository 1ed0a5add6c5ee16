# Path: core/indexing/warmup.py
# Purpose: Precompute candidate embeddings for a catalog so the first search is served from cache.
# Layer: core/indexing.
# Details: Embeds cards in batches through the orchestrator with progress reporting; failures are counted, not raised.

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from tqdm import tqdm

from core.errors import EmbeddingFailed, ImageUnavailable
from core.models.domain import Card
from core.search.pipeline import SearchOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class WarmupReport:
    """Summary of a warm-up pass."""

    warmed: int = 0
    failed: List[Card] = field(default_factory=list)


class CacheWarmer:
    """Batch process catalog cards to populate the orchestrator's embedding cache."""

    def __init__(self, orchestrator: SearchOrchestrator, batch_size: int = 8, show_progress: bool = True) -> None:
        if orchestrator.cache is None:
            raise ValueError("Cache warm-up requires an orchestrator with an embedding cache.")
        self.orchestrator = orchestrator
        self.batch_size = batch_size
        self.show_progress = show_progress

    async def warm(self, cards: Iterable[Card]) -> WarmupReport:
        """
        Embed every card's image and keep the vectors in the cache.

        External calls:
        - core/search/pipeline.py::SearchOrchestrator.prefetch - loads and embeds through the cache.
        """

        pending = list(cards)
        report = WarmupReport()
        with tqdm(total=len(pending), desc="Warming embeddings", unit="img", disable=not self.show_progress) as progress:
            for start in range(0, len(pending), self.batch_size):
                batch = pending[start : start + self.batch_size]
                outcomes = await asyncio.gather(
                    *(self.orchestrator.prefetch(card.image_url) for card in batch),
                    return_exceptions=True,
                )
                for card, outcome in zip(batch, outcomes):
                    if isinstance(outcome, (ImageUnavailable, EmbeddingFailed)):
                        logger.warning("Could not warm %s: %s", card.id, outcome)
                        report.failed.append(card)
                    elif isinstance(outcome, BaseException):
                        raise outcome
                    else:
                        report.warmed += 1
                progress.update(len(batch))
        return report
