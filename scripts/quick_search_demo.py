# Path: scripts/quick_search_demo.py
# Purpose: Simple CLI to rank a catalog's cards by visual similarity to an image URL.
# Layer: scripts.
# Details: Loads cards.json, runs one search, and optionally narrows results with the text filters.

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

from config import AppSettings
from core.cache import EmbeddingCache
from core.catalog import filter_cards, intersect_ranked, load_cards
from core.embedders import create_embedder
from core.errors import QueryImageUnavailable
from core.loading import ImageLoader
from core.search import SearchOrchestrator


async def run(args: argparse.Namespace, settings: AppSettings) -> int:
    cards = load_cards(args.catalog)
    async with ImageLoader.from_settings(settings.loader) as loader:
        orchestrator = SearchOrchestrator(
            loader,
            create_embedder(settings.embedder),
            EmbeddingCache(),
            max_concurrency=settings.search.max_concurrency,
        )
        try:
            results = await orchestrator.search(orchestrator.new_request(args.image_url, cards))
        except QueryImageUnavailable as exc:
            print(f"Query image unavailable, try again: {exc}")
            return 1

    results = results or []
    if args.title or args.workflow:
        results = intersect_ranked(results, filter_cards(cards, args.title, args.workflow))

    for result in results[: args.k]:
        print(f"id={result.card.id} distance={result.distance:.4f} title={result.card.title}")
    omitted = orchestrator.visible.omitted if orchestrator.visible else []
    if omitted:
        print(f"({len(omitted)} cards skipped: image unavailable)")
    return 0


def main() -> None:
    """Execute a visual search from the command line."""

    parser = argparse.ArgumentParser(description="Rank catalog cards by similarity to an image")
    parser.add_argument("--image-url", type=str, required=True, help="Reference image URL or path")
    parser.add_argument("--catalog", type=Path, default=Path("cards.json"), help="JSON array of cards")
    parser.add_argument("--title", type=str, default="", help="Only keep cards whose title contains this")
    parser.add_argument("--workflow", type=str, default="", help="Only keep cards tagged with a matching workflow")
    parser.add_argument("--k", type=int, default=10, help="Number of results to print")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(levelname)s - %(message)s")
    sys.exit(asyncio.run(run(args, settings)))


if __name__ == "__main__":
    main()
