"""Neighbourhood-size search for per-pathway Isomap."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

import numpy as np

from pathdisrupt.core.errors import DisconnectedGraphError
from pathdisrupt.core.isomap import classical_mds, knn_geodesic, residual_variance

logger = logging.getLogger(__name__)

TIE_TOL = 1e-12


def _normalize_candidates(candidates: Iterable[int]) -> list[int]:
    ks = sorted({int(k) for k in candidates})
    if not ks:
        raise ValueError("At least one candidate k is required.")
    if ks[0] < 1:
        raise ValueError(f"Candidate k values must be positive, received {ks[0]}.")
    return ks


def select_best_k(
    candidates: Iterable[int],
    criterion_fn: Callable[[int], float],
) -> tuple[int, dict[int, float]]:
    """Pick the k minimising `criterion_fn`, smallest k on ties.

    Candidates whose criterion raises `DisconnectedGraphError` or is not
    finite are recorded as NaN and excluded.
    """
    ks = _normalize_candidates(candidates)
    scores: dict[int, float] = {}
    for k in ks:
        try:
            score = float(criterion_fn(k))
        except DisconnectedGraphError as exc:
            logger.debug("k=%d excluded: %s", k, exc)
            score = float("nan")
        scores[k] = score if np.isfinite(score) else float("nan")

    valid = [k for k in ks if np.isfinite(scores[k])]
    if not valid:
        raise DisconnectedGraphError(
            f"No candidate k yields a connected neighbour graph (tried {ks})."
        )
    best_score = min(scores[k] for k in valid)
    best_k = next(k for k in valid if scores[k] <= best_score + TIE_TOL)
    return best_k, scores


def find_k_isomap(
    dist: np.ndarray,
    candidates: Iterable[int],
    ndim_criterion: int = 1,
) -> tuple[int, dict[int, float]]:
    """Select k by Isomap residual variance on a precomputed distance matrix.

    Candidates with `k >= n_samples` cannot form a k-NN graph and are scored NaN.
    """
    d = np.asarray(dist, dtype=float)
    n = d.shape[0]
    ndim_i = min(int(ndim_criterion), n - 1)

    def _criterion(k: int) -> float:
        if k >= n:
            return float("nan")
        geo = knn_geodesic(d, k)
        coords = classical_mds(geo, ndim_i)
        return residual_variance(geo, coords)

    return select_best_k(candidates, _criterion)
