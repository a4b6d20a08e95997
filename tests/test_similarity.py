import math

import numpy as np
import pytest

from src.vectorstore.similarity import cosine_similarity, l2_normalize


def test_cosine_matches_hand_computed_values():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0, abs=1e-6)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0, abs=1e-6)
    assert cosine_similarity([1.0, 0.0], [0.707, 0.707]) == pytest.approx(1 / math.sqrt(2), abs=1e-6)
    assert cosine_similarity([1.0, 2.0, 3.0], [-1.0, 0.5, 2.0]) == pytest.approx(
        (-1 + 1 + 6) / (math.sqrt(14) * math.sqrt(5.25)), abs=1e-6
    )


def test_cosine_is_scale_invariant():
    assert cosine_similarity([3.0, 0.0], [10.0, 10.0]) == pytest.approx(
        cosine_similarity([1.0, 0.0], [1.0, 1.0]), abs=1e-9
    )


def test_cosine_with_zero_vector_scores_zero():
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0


def test_cosine_rejects_dimension_mismatch():
    with pytest.raises(ValueError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


def test_l2_normalize_returns_unit_vector():
    unit = l2_normalize([3.0, 4.0])
    assert unit.tolist() == pytest.approx([0.6, 0.8])
    assert float(np.linalg.norm(unit)) == pytest.approx(1.0, abs=1e-6)


def test_l2_normalize_zero_vector_is_none():
    assert l2_normalize([0.0, 0.0, 0.0]) is None
