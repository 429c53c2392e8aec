from __future__ import annotations

import numpy as np
import pytest
from scipy.spatial.distance import pdist, squareform

from pathdisrupt.core.errors import DisconnectedGraphError
from pathdisrupt.core.isomap import (
    classical_mds,
    isomap_embed,
    knn_geodesic,
    pairwise_distances,
    residual_variance,
)


def _two_clusters(seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    a = rng.normal(0.0, 0.1, size=(5, 2))
    b = rng.normal(100.0, 0.1, size=(5, 2))
    return np.vstack([a, b])


def test_pairwise_distances_symmetric_zero_diagonal():
    x = np.random.default_rng(1).normal(size=(8, 3))
    d = pairwise_distances(x)
    assert d.shape == (8, 8)
    assert np.allclose(d, d.T)
    assert np.allclose(np.diag(d), 0.0)
    assert np.isclose(d[0, 1], np.linalg.norm(x[0] - x[1]))


def test_knn_geodesic_detects_disconnected_graph():
    d = pairwise_distances(_two_clusters())
    with pytest.raises(DisconnectedGraphError) as excinfo:
        knn_geodesic(d, 2)
    assert excinfo.value.k == 2
    assert excinfo.value.n_components == 2

    geo = knn_geodesic(d, 5)
    assert np.isfinite(geo).all()
    assert np.allclose(geo, geo.T)


def test_knn_geodesic_rejects_k_out_of_range():
    d = pairwise_distances(_two_clusters())
    with pytest.raises(ValueError):
        knn_geodesic(d, 10)


def test_geodesic_follows_curve_not_chord():
    theta = np.linspace(0.0, np.pi, 30)
    x = np.c_[np.cos(theta), np.sin(theta)]
    geo = knn_geodesic(pairwise_distances(x), 2)
    chord = 2.0
    assert geo[0, -1] > chord
    assert np.isclose(geo[0, -1], np.pi, rtol=0.01)


def test_classical_mds_reproduces_planar_distances():
    x = np.random.default_rng(2).normal(size=(12, 2))
    d = squareform(pdist(x))
    coords = classical_mds(d, 2)
    assert coords.shape == (12, 2)
    assert np.allclose(squareform(pdist(coords)), d, atol=1e-8)
    assert residual_variance(d, coords) < 1e-10


def test_classical_mds_sign_convention_is_deterministic():
    x = np.random.default_rng(3).normal(size=(10, 3))
    d = squareform(pdist(x))
    coords = classical_mds(d, 2)
    for j in range(2):
        lead = np.argmax(np.abs(coords[:, j]))
        assert coords[lead, j] > 0


def test_isomap_embed_unrolls_arc():
    theta = np.linspace(0.0, 0.9 * np.pi, 25)
    x = np.c_[np.cos(theta), np.sin(theta)]
    coords, geo = isomap_embed(pairwise_distances(x), 3, 2)
    assert geo.shape == (25, 25)
    assert abs(np.corrcoef(coords[:, 0], theta)[0, 1]) > 0.99
