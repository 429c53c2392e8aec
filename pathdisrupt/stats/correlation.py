"""Class-conditional Pearson correlations.

Permutation batches are computed from sufficient statistics; a single
labelling is computed directly with per-class centring.
"""

from __future__ import annotations

import numpy as np

# Batched sums: within-class variance (on globally standardised data) at or
# below VAR_TOL * n_class is treated as zero.
VAR_TOL = 1e-12
# Single labelling: a class range at or below SPREAD_TOL * max|value| is flat.
SPREAD_TOL = 1e-12


def standardize_columns(a: np.ndarray) -> np.ndarray:
    """Globally centre and scale columns; constant columns are only centred.

    Pearson correlation is invariant to this transform, and it keeps the
    sufficient-statistic formulas below well conditioned.
    """
    arr = np.asarray(a, dtype=float)
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2D array, received shape {arr.shape}.")
    if not np.isfinite(arr).all():
        raise ValueError("Input contains NaN/inf values.")
    centred = arr - arr.mean(axis=0, keepdims=True)
    sd = centred.std(axis=0, keepdims=True)
    sd[sd <= 0.0] = 1.0
    return centred / sd


def _check_inputs(x: np.ndarray, y: np.ndarray, n: int) -> None:
    if x.shape[0] != n or y.shape[0] != n:
        raise ValueError(
            f"x ({x.shape[0]} rows), y ({y.shape[0]} rows) and mask ({n}) must align."
        )


def _corr_from_sums(
    n: np.ndarray,
    sx: np.ndarray,
    sy: np.ndarray,
    sxx: np.ndarray,
    syy: np.ndarray,
    sxy: np.ndarray,
) -> np.ndarray:
    """Pearson r from group sums; all arrays carry a leading batch axis."""
    nb = n[:, None]
    vx = sxx - sx * sx / nb
    vy = syy - sy * sy / nb
    cov = sxy - sx[:, :, None] * sy[:, None, :] / n[:, None, None]
    bad_x = vx <= VAR_TOL * nb
    bad_y = vy <= VAR_TOL * nb
    vx = np.where(bad_x, np.nan, vx)
    vy = np.where(bad_y, np.nan, vy)
    with np.errstate(invalid="ignore", divide="ignore"):
        r = cov / np.sqrt(vx[:, :, None] * vy[:, None, :])
    return np.clip(r, -1.0, 1.0)


def batch_class_correlations(
    x: np.ndarray,
    y: np.ndarray,
    masks: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """Correlate every column of `x` with every column of `y` per class.

    Args:
        x: (n, p) array, ideally pre-standardised with `standardize_columns`.
        y: (n, q) array.
        masks: (b, n) boolean array; True marks the tumor class.

    Returns:
        `(r_in, r_out)`, each (b, p, q): correlations within `mask` and
        within `~mask`. Degenerate entries are NaN.
    """
    m = np.atleast_2d(np.asarray(masks, dtype=bool))
    xa = np.asarray(x, dtype=float)
    ya = np.asarray(y, dtype=float)
    _check_inputs(xa, ya, m.shape[1])

    w = m.astype(float)
    n_in = w.sum(axis=1)
    n_out = float(m.shape[1]) - n_in
    if np.any(n_in < 2) or np.any(n_out < 2):
        raise ValueError("Each class needs at least two samples in every mask.")

    x2 = xa * xa
    y2 = ya * ya
    tot_sx = xa.sum(axis=0)
    tot_sy = ya.sum(axis=0)
    tot_sxx = x2.sum(axis=0)
    tot_syy = y2.sum(axis=0)
    tot_sxy = xa.T @ ya

    sx = w @ xa
    sy = w @ ya
    sxx = w @ x2
    syy = w @ y2
    sxy = np.einsum("bn,np,nq->bpq", w, xa, ya, optimize=True)

    r_in = _corr_from_sums(n_in, sx, sy, sxx, syy, sxy)
    r_out = _corr_from_sums(
        n_out,
        tot_sx[None, :] - sx,
        tot_sy[None, :] - sy,
        tot_sxx[None, :] - sxx,
        tot_syy[None, :] - syy,
        tot_sxy[None, :, :] - sxy,
    )
    return r_in, r_out


def _centred_corr(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Pearson r for one class, centring on the class's own means."""
    xc = x - x.mean(axis=0, keepdims=True)
    yc = y - y.mean(axis=0, keepdims=True)
    vx = np.einsum("np,np->p", xc, xc)
    vy = np.einsum("nq,nq->q", yc, yc)
    # Flat columns are judged on their range within the class, which is exact.
    flat_x = np.ptp(x, axis=0) <= SPREAD_TOL * np.abs(x).max(axis=0)
    flat_y = np.ptp(y, axis=0) <= SPREAD_TOL * np.abs(y).max(axis=0)
    vx = np.where(flat_x, np.nan, vx)
    vy = np.where(flat_y, np.nan, vy)
    with np.errstate(invalid="ignore", divide="ignore"):
        r = (xc.T @ yc) / np.sqrt(vx[:, None] * vy[None, :])
    return np.clip(r, -1.0, 1.0)


def class_correlations(
    x: np.ndarray,
    y: np.ndarray,
    mask: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """Tumor and normal correlations for one labelling; returns (p, q) arrays.

    Unlike the batched form this centres each class separately, so a class
    with tiny spread around a large offset is still resolved.
    """
    m = np.asarray(mask, dtype=bool)
    xa = np.asarray(x, dtype=float)
    ya = np.asarray(y, dtype=float)
    _check_inputs(xa, ya, m.shape[0])
    if int(m.sum()) < 2 or int((~m).sum()) < 2:
        raise ValueError("Each class needs at least two samples in every mask.")
    return _centred_corr(xa[m], ya[m]), _centred_corr(xa[~m], ya[~m])


def correlation_difference(x: np.ndarray, y: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Tumor-minus-normal correlation for every (x column, y column) pair."""
    r_in, r_out = class_correlations(x, y, mask)
    return r_in - r_out
