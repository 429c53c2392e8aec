"""Isomap building blocks: distances, k-NN geodesics and classical MDS."""

from __future__ import annotations

import numpy as np
from scipy.linalg import eigh
from scipy.sparse.csgraph import connected_components, shortest_path
from scipy.spatial.distance import pdist, squareform
from sklearn.neighbors import kneighbors_graph

from pathdisrupt.core.errors import DegenerateInputError, DisconnectedGraphError
from pathdisrupt.core.utils import finite_2d, safe_pearson, upper_triangle

# Stand-in weight for zero-length edges between duplicate samples.
_MIN_EDGE = float(np.finfo(float).tiny)


def pairwise_distances(x: np.ndarray) -> np.ndarray:
    """Full (n, n) Euclidean distance matrix over rows of `x`."""
    arr = finite_2d("x", x)
    if arr.shape[0] < 2:
        raise DegenerateInputError("At least two samples are required for distances.")
    return squareform(pdist(arr, metric="euclidean"))


def _validate_distance_matrix(dist: np.ndarray) -> np.ndarray:
    d = finite_2d("dist", dist)
    if d.shape[0] != d.shape[1]:
        raise ValueError(f"dist must be square, received shape {d.shape}.")
    return d


def knn_geodesic(dist: np.ndarray, k: int) -> np.ndarray:
    """Geodesic distances over the symmetrised k-nearest-neighbour graph.

    Raises:
        DisconnectedGraphError: if some pair of samples has no finite path.
    """
    d = _validate_distance_matrix(dist)
    n = d.shape[0]
    k_i = int(k)
    if k_i < 1 or k_i >= n:
        raise ValueError(f"k must be in [1, {n - 1}] for {n} samples, received {k_i}.")

    graph = kneighbors_graph(d, n_neighbors=k_i, mode="distance", metric="precomputed")
    graph.data = np.maximum(graph.data, _MIN_EDGE)

    n_components, _ = connected_components(graph, directed=False)
    if n_components > 1:
        raise DisconnectedGraphError(
            f"k={k_i} neighbour graph has {n_components} connected components.",
            k=k_i,
            n_components=int(n_components),
        )
    geo = shortest_path(graph, method="D", directed=False)
    np.fill_diagonal(geo, 0.0)
    return geo


def classical_mds(dist: np.ndarray, ndim: int) -> np.ndarray:
    """Torgerson scaling of a distance matrix into `ndim` coordinates.

    Eigenvector signs are fixed so each column's largest-magnitude entry is
    positive; non-positive eigenvalues yield zero columns.
    """
    d = _validate_distance_matrix(dist)
    n = d.shape[0]
    ndim_i = int(ndim)
    if ndim_i < 1 or ndim_i > n - 1:
        raise ValueError(f"ndim must be in [1, {n - 1}] for {n} samples, received {ndim_i}.")

    sq = d**2
    row_mean = sq.mean(axis=1, keepdims=True)
    col_mean = sq.mean(axis=0, keepdims=True)
    b = -0.5 * (sq - row_mean - col_mean + sq.mean())
    b = 0.5 * (b + b.T)

    evals, evecs = eigh(b, subset_by_index=[n - ndim_i, n - 1])
    order = np.argsort(evals)[::-1]
    evals = evals[order]
    evecs = evecs[:, order]

    lead = np.argmax(np.abs(evecs), axis=0)
    signs = np.sign(evecs[lead, np.arange(ndim_i)])
    signs[signs == 0] = 1.0
    evecs = evecs * signs

    return evecs * np.sqrt(np.clip(evals, 0.0, None))


def residual_variance(geodesic: np.ndarray, coords: np.ndarray) -> float:
    """1 - r^2 between geodesic and embedded pairwise distances.

    NaN when the embedding collapses to a point.
    """
    emb = squareform(pdist(np.asarray(coords, dtype=float), metric="euclidean"))
    r = safe_pearson(upper_triangle(geodesic), upper_triangle(emb))
    if not np.isfinite(r):
        return float("nan")
    return float(1.0 - r * r)


def isomap_embed(dist: np.ndarray, k: int, ndim: int) -> tuple[np.ndarray, np.ndarray]:
    """Isomap embedding from a precomputed distance matrix.

    Returns `(coords, geodesic)`.
    """
    geo = knn_geodesic(dist, k)
    return classical_mds(geo, ndim), geo
