"""Label-permutation null for tumor-vs-normal correlation differences."""

from __future__ import annotations

from functools import partial

import numpy as np

from pathdisrupt.parallel import parallel_map
from pathdisrupt.seeding import chunk_rng
from pathdisrupt.stats.correlation import batch_class_correlations

# Permuted |diff| within EXCEED_TOL of the observed |diff| counts as exceeding.
EXCEED_TOL = 1e-12

# Upper bound on batch * p * q elements held in memory per correlation batch.
_BATCH_ELEMS = 4_000_000


def permute_labels(mask: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Shuffle class labels, preserving class sizes."""
    return rng.permutation(np.asarray(mask, dtype=bool).ravel())


def _batch_rows(p: int, q: int) -> int:
    return max(1, _BATCH_ELEMS // max(1, p * q))


def _count_chunk(
    chunk: tuple[int, int],
    x: np.ndarray,
    y: np.ndarray,
    mask: np.ndarray,
    observed: np.ndarray,
    seed: int,
) -> tuple[np.ndarray, np.ndarray]:
    chunk_index, n_perm = chunk
    rng = chunk_rng(seed, chunk_index)
    p, q = observed.shape
    target = np.abs(observed) - EXCEED_TOL
    counts = np.zeros((p, q), dtype=np.int64)
    valid = np.zeros((p, q), dtype=np.int64)

    rows = _batch_rows(p, q)
    done = 0
    while done < n_perm:
        b = min(rows, n_perm - done)
        masks = np.vstack([permute_labels(mask, rng) for _ in range(b)])
        r_in, r_out = batch_class_correlations(x, y, masks)
        diff = np.abs(r_in - r_out)
        finite = np.isfinite(diff)
        valid += finite.sum(axis=0)
        with np.errstate(invalid="ignore"):
            counts += (finite & (diff >= target[None, :, :])).sum(axis=0)
        done += b
    return counts, valid


def chunk_plan(n_perm: int, chunk_size: int) -> list[tuple[int, int]]:
    """Split `n_perm` draws into `(chunk_index, size)` pieces.

    The plan depends only on `n_perm` and `chunk_size`, so seeded results do
    not depend on the number of workers.
    """
    total = int(n_perm)
    size = int(chunk_size)
    if total <= 0:
        raise ValueError("n_perm must be positive.")
    if size <= 0:
        raise ValueError("chunk_size must be positive.")
    plan = []
    start = 0
    idx = 0
    while start < total:
        step = min(size, total - start)
        plan.append((idx, step))
        start += step
        idx += 1
    return plan


def exceedance_counts(
    x: np.ndarray,
    y: np.ndarray,
    mask: np.ndarray,
    observed: np.ndarray,
    n_perm: int,
    seed: int = 0,
    *,
    chunk_size: int = 1000,
    n_jobs: int = 1,
    backend: str = "loky",
) -> tuple[np.ndarray, np.ndarray]:
    """Count permutations whose |difference| reaches the observed |difference|.

    `x` and `y` stay fixed; only the label vector is shuffled. Chunks draw
    from independent seeded streams and their counts are summed.

    Returns:
        `(counts, valid)` as int64 (p, q) arrays; `valid` counts permutations
        whose difference was finite for that pair.
    """
    obs = np.asarray(observed, dtype=float)
    plan = chunk_plan(n_perm, chunk_size)
    worker = partial(
        _count_chunk,
        x=np.asarray(x, dtype=float),
        y=np.asarray(y, dtype=float),
        mask=np.asarray(mask, dtype=bool),
        observed=obs,
        seed=int(seed),
    )
    parts = parallel_map(worker, plan, n_jobs=n_jobs, backend=backend, batch_size=1)
    counts = np.zeros(obs.shape, dtype=np.int64)
    valid = np.zeros(obs.shape, dtype=np.int64)
    for c, v in parts:
        counts += c
        valid += v
    return counts, valid


def pair_null(
    x: np.ndarray,
    y: np.ndarray,
    mask: np.ndarray,
    n_perm: int,
    seed: int = 0,
    *,
    chunk_size: int = 1000,
) -> np.ndarray:
    """Permuted tumor-minus-normal differences for a single pair.

    Draws the same label permutations as `exceedance_counts` with equal
    `seed` and `chunk_size`.
    """
    xa = np.asarray(x, dtype=float).reshape(-1, 1)
    ya = np.asarray(y, dtype=float).reshape(-1, 1)
    m = np.asarray(mask, dtype=bool)
    out = []
    for chunk_index, size in chunk_plan(n_perm, chunk_size):
        rng = chunk_rng(seed, chunk_index)
        masks = np.vstack([permute_labels(m, rng) for _ in range(size)])
        r_in, r_out = batch_class_correlations(xa, ya, masks)
        out.append((r_in - r_out)[:, 0, 0])
    return np.concatenate(out)


def permutation_pvalues(
    counts: np.ndarray,
    valid: np.ndarray,
    observed: np.ndarray | None = None,
) -> np.ndarray:
    """Add-one smoothed p-values: (1 + counts) / (1 + valid).

    NaN where `observed` is NaN or no permutation was valid.
    """
    c = np.asarray(counts, dtype=float)
    v = np.asarray(valid, dtype=float)
    if c.shape != v.shape:
        raise ValueError("counts and valid must have the same shape.")
    if np.any(c > v) or np.any(c < 0):
        raise ValueError("counts must lie in [0, valid].")
    p = (1.0 + c) / (1.0 + v)
    p[v <= 0] = np.nan
    if observed is not None:
        p[~np.isfinite(np.asarray(observed, dtype=float))] = np.nan
    return p


def pvalues_from_null(observed: np.ndarray, null: np.ndarray) -> np.ndarray:
    """p-values of observed |statistics| against an explicit (B, ...) null."""
    obs = np.asarray(observed, dtype=float)
    nul = np.asarray(null, dtype=float)
    if nul.shape[1:] != obs.shape:
        raise ValueError("null must have shape (n_perm, *observed.shape).")
    absn = np.abs(nul)
    finite = np.isfinite(absn)
    with np.errstate(invalid="ignore"):
        hits = finite & (absn >= np.abs(obs)[None, ...] - EXCEED_TOL)
    return permutation_pvalues(hits.sum(axis=0), finite.sum(axis=0), obs)
