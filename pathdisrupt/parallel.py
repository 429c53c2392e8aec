"""Order-stable worker-pool helpers for per-pathway and per-chunk work."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from joblib import Parallel, delayed

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)

BACKENDS = ("loky", "multiprocessing", "threading")


def _call_indexed(func: Callable[[T], R], indexed: tuple[int, T]) -> tuple[int, R]:
    idx, item = indexed
    return idx, func(item)


def parallel_map(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    n_jobs: int = 1,
    backend: str = "loky",
    batch_size: int = 1,
) -> list[R]:
    """Apply `func` to items and return results aligned to input order.

    Notes:
    - Each result lands in the slot of its input, independent of scheduling.
    - `batch_size=1` dispatches tasks one at a time so slow items do not
      hold back a pre-assigned partition.
    """
    seq = list(items)
    if not seq:
        return []

    jobs = int(n_jobs)
    if jobs == 0:
        raise ValueError("n_jobs must be non-zero.")
    backend_name = str(backend)
    if backend_name not in BACKENDS:
        raise ValueError(f"Unsupported backend '{backend_name}'. Use one of {BACKENDS}.")

    if jobs == 1 or len(seq) == 1:
        logger.debug("parallel_map serial execution: n_items=%d", len(seq))
        return [func(item) for item in seq]

    logger.debug(
        "parallel_map n_items=%d n_jobs=%d backend=%s batch_size=%d",
        len(seq),
        jobs,
        backend_name,
        int(batch_size),
    )
    rows = Parallel(n_jobs=jobs, backend=backend_name, batch_size=max(1, int(batch_size)))(
        delayed(_call_indexed)(func, pair) for pair in enumerate(seq)
    )
    slots: list[R | None] = [None] * len(seq)
    for idx, row in rows:
        slots[idx] = row
    return slots  # type: ignore[return-value]
