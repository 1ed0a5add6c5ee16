# Path: core/catalog/filters.py
# Purpose: Read-only catalog helpers used alongside visual search.
# Layer: core/catalog.
# Details: Parses cards.json, filters cards by title/workflow substrings, and intersects with ranked results.

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List

from core.models.domain import Card, RankedResult


def load_cards(path: Path | str) -> List[Card]:
    """Read a JSON array of cards; cards without an id are numbered by position."""

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON array of cards in {path}.")
    return [Card.from_dict(item, default_id=str(index)) for index, item in enumerate(payload)]


def matches_text(card: Card, title_term: str = "", workflow_term: str = "") -> bool:
    """Case-insensitive substring match on the title and, when given, on any workflow tag."""

    if title_term and title_term.lower() not in card.title.lower():
        return False
    if workflow_term:
        needle = workflow_term.lower()
        return any(needle in workflow.lower() for workflow in card.workflows)
    return True


def filter_cards(cards: Iterable[Card], title_term: str = "", workflow_term: str = "") -> List[Card]:
    return [card for card in cards if matches_text(card, title_term, workflow_term)]


def intersect_ranked(results: Iterable[RankedResult], allowed: Iterable[Card]) -> List[RankedResult]:
    """Keep ranked results whose card survived a text filter, preserving the ranked order."""

    allowed_ids = {card.id for card in allowed}
    return [result for result in results if result.card.id in allowed_ids]
