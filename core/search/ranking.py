# Path: core/search/ranking.py
# Purpose: Compare feature vectors and order candidates by visual closeness.
# Layer: core/search.
# Details: Cosine distance with an explicit zero-magnitude branch and a stable ascending sort.

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

import numpy as np

from core.errors import DimensionMismatch
from core.models.domain import Card, FeatureVector, RankedResult

# Cosine distance spans [0, 2]; 1.0 is what orthogonal or zero-magnitude vectors score.
MAX_DISTANCE = 2.0
ZERO_MAGNITUDE_DISTANCE = 1.0


def _as_vector(vector: FeatureVector | Sequence[float]) -> np.ndarray:
    return np.asarray(vector, dtype=np.float64)


def cosine_distance(a: FeatureVector | Sequence[float], b: FeatureVector | Sequence[float]) -> float:
    """
    Return ``1 - (a·b) / (‖a‖·‖b‖)``.

    Raises DimensionMismatch when the vectors differ in length or are not one-dimensional.
    A zero-magnitude vector on either side yields 1.0 instead of NaN.
    """

    left = _as_vector(a)
    right = _as_vector(b)
    if left.ndim != 1 or right.ndim != 1 or left.shape[0] != right.shape[0]:
        raise DimensionMismatch(int(left.size), int(right.size))

    left_sq = float(np.dot(left, left))
    right_sq = float(np.dot(right, right))
    if left_sq == 0.0 or right_sq == 0.0:
        return ZERO_MAGNITUDE_DISTANCE

    # sqrt of the product keeps a·a / ‖a‖² at exactly 1.
    similarity = float(np.dot(left, right)) / float(np.sqrt(left_sq * right_sq))
    # Rounding can push |similarity| a hair past 1.
    return float(np.clip(1.0 - similarity, 0.0, MAX_DISTANCE))


def rank(query: FeatureVector, items: Iterable[Tuple[Card, FeatureVector]]) -> List[RankedResult]:
    """Order cards by ascending distance to ``query``; equal distances keep their input order."""

    scored = [RankedResult(card=card, distance=cosine_distance(query, vector)) for card, vector in items]
    # sorted() is stable, which is the tie-break.
    return sorted(scored, key=lambda result: result.distance)
