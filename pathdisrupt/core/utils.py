"""Small pure helpers for core computations."""

from __future__ import annotations

import numpy as np


def finite_2d(name: str, values: np.ndarray) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 2 or arr.size == 0:
        raise ValueError(f"{name} must be a non-empty 2D array, received shape {arr.shape}.")
    if not np.isfinite(arr).all():
        raise ValueError(f"{name} must be finite.")
    return arr


def upper_triangle(mat: np.ndarray) -> np.ndarray:
    arr = np.asarray(mat, dtype=float)
    iu = np.triu_indices(arr.shape[0], k=1)
    return arr[iu]


def safe_pearson(x: np.ndarray, y: np.ndarray) -> float:
    """Pearson r of two 1D arrays; NaN when either side is constant."""
    a = np.asarray(x, dtype=float).ravel()
    b = np.asarray(y, dtype=float).ravel()
    if a.size != b.size:
        raise ValueError("x and y must have the same length.")
    if a.size < 2:
        return float("nan")
    a = a - a.mean()
    b = b - b.mean()
    den = float(np.sqrt(np.dot(a, a) * np.dot(b, b)))
    if den <= 0.0:
        return float("nan")
    return float(np.dot(a, b) / den)
