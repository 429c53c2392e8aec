from __future__ import annotations

import numpy as np
import pytest

from pathdisrupt.core.errors import DisconnectedGraphError
from pathdisrupt.core.isomap import pairwise_distances
from pathdisrupt.core.ksearch import find_k_isomap, select_best_k


def test_select_best_k_minimises_and_breaks_ties_low():
    table = {4: 0.20, 8: 0.10, 12: 0.10}
    k, scores = select_best_k([12, 4, 8], table.__getitem__)
    assert k == 8
    assert list(scores) == [4, 8, 12]


def test_select_best_k_excludes_disconnected_and_nonfinite():
    def criterion(k: int) -> float:
        if k == 4:
            raise DisconnectedGraphError("split", k=k)
        if k == 6:
            return float("nan")
        return 1.0 / k

    k, scores = select_best_k([4, 6, 8, 10], criterion)
    assert np.isnan(scores[4])
    assert np.isnan(scores[6])
    assert k == 10


def test_select_best_k_all_excluded_raises():
    def criterion(k: int) -> float:
        raise DisconnectedGraphError("split", k=k)

    with pytest.raises(DisconnectedGraphError, match="No candidate k"):
        select_best_k([2, 3], criterion)


def test_select_best_k_rejects_empty_or_nonpositive():
    with pytest.raises(ValueError):
        select_best_k([], lambda k: 0.0)
    with pytest.raises(ValueError):
        select_best_k([0, 3], lambda k: 0.0)


def test_find_k_isomap_skips_disconnected_candidates():
    rng = np.random.default_rng(0)
    x = np.vstack([rng.normal(0.0, 0.1, (5, 2)), rng.normal(50.0, 0.1, (5, 2))])
    k, scores = find_k_isomap(pairwise_distances(x), [2, 5, 7])
    assert np.isnan(scores[2])
    assert np.isfinite(scores[5]) and np.isfinite(scores[7])
    assert k in (5, 7)


def test_find_k_isomap_excludes_k_not_below_sample_count():
    x = np.c_[np.linspace(0, 1, 6), np.linspace(0, 1, 6) ** 2]
    k, scores = find_k_isomap(pairwise_distances(x), [2, 6, 9])
    assert np.isnan(scores[6]) and np.isnan(scores[9])
    assert k == 2


def test_find_k_isomap_is_deterministic():
    x = np.random.default_rng(4).normal(size=(20, 4))
    d = pairwise_distances(x)
    first = find_k_isomap(d, range(4, 13))
    second = find_k_isomap(d, range(4, 13))
    assert first[0] == second[0]
    assert np.array_equal(
        np.array(list(first[1].values())), np.array(list(second[1].values())), equal_nan=True
    )
