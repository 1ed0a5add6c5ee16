"""Tests for cosine distance and candidate ranking."""

import numpy as np
import pytest

from core.errors import DimensionMismatch
from core.search.ranking import cosine_distance, rank
from tests.helpers import make_card


class TestCosineDistance:
    """Tests for the vector comparison used by the ranker."""

    def test_symmetric(self):
        rng = np.random.RandomState(7)
        for _ in range(20):
            a = rng.randn(16)
            b = rng.randn(16)
            assert cosine_distance(a, b) == cosine_distance(b, a)

    def test_self_distance_is_zero(self):
        rng = np.random.RandomState(3)
        for _ in range(10):
            a = rng.randn(32)
            assert cosine_distance(a, a) == pytest.approx(0.0, abs=1e-12)

    def test_self_distance_is_minimum(self):
        a = np.array([0.3, -1.2, 2.0])
        others = [np.array([1.0, 0.0, 0.0]), np.array([0.3, -1.0, 2.0]), -a]
        assert all(cosine_distance(a, a) <= cosine_distance(a, other) for other in others)

    def test_known_values(self):
        assert cosine_distance([1, 0], [1, 0]) == pytest.approx(0.0)
        assert cosine_distance([1, 0], [0, 1]) == pytest.approx(1.0)
        assert cosine_distance([1, 0], [-1, 0]) == pytest.approx(2.0)

    def test_magnitude_does_not_matter(self):
        assert cosine_distance([1, 2], [10, 20]) == pytest.approx(0.0, abs=1e-12)

    def test_zero_vector_is_maximally_dissimilar(self):
        assert cosine_distance([3.0, 4.0], [0.0, 0.0]) == 1.0
        assert cosine_distance([0.0, 0.0], [3.0, 4.0]) == 1.0
        assert cosine_distance([0.0, 0.0], [0.0, 0.0]) == 1.0

    def test_zero_vector_never_nan(self):
        assert not np.isnan(cosine_distance(np.zeros(8, dtype=np.float32), np.ones(8, dtype=np.float32)))

    def test_dimension_mismatch_raises(self):
        with pytest.raises(DimensionMismatch):
            cosine_distance([1.0, 0.0], [1.0, 0.0, 0.0])

    def test_dimension_mismatch_with_zero_vector_still_raises(self):
        with pytest.raises(DimensionMismatch):
            cosine_distance([0.0, 0.0], [0.0])

    def test_dimension_mismatch_is_value_error(self):
        with pytest.raises(ValueError):
            cosine_distance(np.ones(4), np.ones(5))

    def test_matrix_input_rejected(self):
        with pytest.raises(DimensionMismatch):
            cosine_distance(np.ones((2, 2)), np.ones((2, 2)))


class TestRank:
    """Tests for ordering candidates by distance."""

    def test_orders_by_ascending_distance(self):
        first, second, third = make_card("1", "a"), make_card("2", "b"), make_card("3", "c")
        results = rank(
            np.array([1.0, 0.0]),
            [(third, np.array([-1.0, 0.0])), (first, np.array([1.0, 0.0])), (second, np.array([0.0, 1.0]))],
        )
        assert [r.card for r in results] == [first, second, third]
        assert [r.distance for r in results] == pytest.approx([0.0, 1.0, 2.0])

    def test_ties_keep_input_order(self):
        cards = [make_card(str(i), f"u{i}") for i in range(5)]
        vectors = [np.array([0.0, 1.0]), np.array([0.0, 2.0]), np.array([1.0, 0.0]), np.array([0.0, -3.0]), np.array([0.0, 5.0])]
        results = rank(np.array([1.0, 0.0]), list(zip(cards, vectors)))
        assert [r.card.id for r in results] == ["2", "0", "1", "3", "4"]

    def test_zero_vector_candidates_tie_with_orthogonal(self):
        a, b = make_card("a", "a"), make_card("b", "b")
        results = rank(np.array([1.0, 0.0]), [(a, np.zeros(2)), (b, np.array([0.0, 1.0]))])
        assert [r.card.id for r in results] == ["a", "b"]
        assert [r.distance for r in results] == [1.0, 1.0]

    def test_empty_items(self):
        assert rank(np.array([1.0, 0.0]), []) == []

    def test_mismatched_candidate_raises(self):
        with pytest.raises(DimensionMismatch):
            rank(np.array([1.0, 0.0]), [(make_card("a", "a"), np.array([1.0, 0.0, 0.0]))])
