# Path: core/models/domain.py
# Purpose: Define domain models shared across loading, caching, ranking, and search workflows.
# Layer: core/models.
# Details: Lightweight dataclasses simplify hand-off between the catalog, API, and core services.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

# A 1-D float32 array produced by an embedder; read-only once computed.
FeatureVector = np.ndarray


@dataclass(frozen=True)
class Card:
    """A gallery page backed by an image. The core only ever reads ``image_url``."""

    id: str
    image_url: str
    title: str = ""
    owner_email: str = ""
    workflows: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], default_id: Optional[str] = None) -> "Card":
        """Build a card from catalog JSON.

        Accepts the gallery's own keys (``link``, ``email``, ``workflow``/``workflows``)
        as well as the field names above.
        """

        image_url = payload.get("image_url") or payload.get("link")
        if not image_url:
            raise ValueError("Card requires an image URL ('image_url' or 'link').")

        card_id = payload.get("id", default_id)
        if card_id is None:
            raise ValueError("Card requires an 'id' when no default is supplied.")

        raw_workflows = payload.get("workflows")
        if raw_workflows is None:
            single = payload.get("workflow")
            raw_workflows = [single] if single else []
        if isinstance(raw_workflows, str):
            raw_workflows = [raw_workflows]

        return cls(
            id=str(card_id),
            image_url=str(image_url),
            title=str(payload.get("title") or ""),
            owner_email=str(payload.get("owner_email") or payload.get("email") or ""),
            workflows=tuple(str(item) for item in raw_workflows if item),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the card for API responses."""

        return {
            "id": self.id,
            "image_url": self.image_url,
            "title": self.title,
            "owner_email": self.owner_email,
            "workflows": list(self.workflows),
        }


@dataclass(frozen=True)
class CacheEntry:
    """Embedding computed for an image URL, owned by the embedding cache."""

    image_url: str
    vector: FeatureVector
    computed_at: float


@dataclass(frozen=True)
class RankedResult:
    """A candidate card with its cosine distance to the query (lower is closer)."""

    card: Card
    distance: float


@dataclass(frozen=True)
class SearchRequest:
    """Query image plus the candidate snapshot to rank against it."""

    query_image_url: str
    candidates: Tuple[Card, ...]
    request_id: int


@dataclass(frozen=True)
class SearchOutcome:
    """Published result of a completed search, including candidates that had to be dropped."""

    request_id: int
    results: List[RankedResult] = field(default_factory=list)
    omitted: List[Card] = field(default_factory=list)

    @property
    def cards(self) -> List[Card]:
        return [result.card for result in self.results]


def as_candidates(cards: Sequence[Card]) -> Tuple[Card, ...]:
    """Freeze a candidate sequence into the tuple stored on a request."""

    return tuple(cards)
