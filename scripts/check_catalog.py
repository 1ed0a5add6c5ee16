# Path: scripts/check_catalog.py
# Purpose: CLI tool to check that every card image in a catalog can be fetched, decoded, and embedded.
# Layer: scripts.
# Details: Runs the cache warmer against a throwaway cache and reports the cards a search would omit.

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppSettings, SearchSettings
from core.cache import EmbeddingCache
from core.catalog import load_cards
from core.embedders import create_embedder
from core.indexing import CacheWarmer
from core.loading import ImageLoader
from core.search import SearchOrchestrator


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


async def run(catalog: Path, settings: AppSettings) -> int:
    cards = load_cards(catalog)
    # Only dedupes repeated URLs within this run; nothing outlives the process.
    cache = EmbeddingCache()
    async with ImageLoader.from_settings(settings.loader) as loader:
        orchestrator = SearchOrchestrator(
            loader,
            create_embedder(settings.embedder),
            cache,
            max_concurrency=settings.search.max_concurrency,
        )
        report = await CacheWarmer(orchestrator, batch_size=settings.search.warmup_batch_size).warm(cards)

    print(f"{report.warmed} of {len(cards)} card images usable; {len(report.failed)} would be omitted from searches")
    for card in report.failed:
        print(f"  unusable: id={card.id} url={card.image_url}")
    return 1 if report.failed else 0


def main() -> None:
    """Check a catalog's card images."""

    parser = argparse.ArgumentParser(description="Report catalog cards whose images cannot be used for visual search")
    parser.add_argument("--catalog", type=Path, default=Path("cards.json"), help="JSON array of cards")
    parser.add_argument("--config", type=Path, default=None, help="Optional JSON settings file")
    parser.add_argument("--batch-size", type=positive_int, default=None, help="Number of cards to check per batch")
    args = parser.parse_args()

    settings = AppSettings.from_file(args.config) if args.config else AppSettings.from_env()
    if args.batch_size is not None:
        settings.search = SearchSettings.model_validate({**settings.search.model_dump(), "warmup_batch_size": args.batch_size})
    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(levelname)s - %(message)s")

    sys.exit(asyncio.run(run(args.catalog, settings)))


if __name__ == "__main__":
    main()
