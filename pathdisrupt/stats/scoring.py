"""Multiple-testing correction and ranked result tables."""

from __future__ import annotations

import numpy as np
import pandas as pd

from pathdisrupt.core.types import CorrelationResult


def bh_fdr(pvals: np.ndarray) -> np.ndarray:
    arr = np.asarray(pvals, dtype=float)
    flat = arr.ravel()
    q = np.ones_like(flat)
    finite = np.isfinite(flat)
    if np.any((flat[finite] < 0.0) | (flat[finite] > 1.0)):
        raise ValueError("p-values must be in [0,1] or NaN.")
    if np.any(finite):
        p = flat[finite]
        m = int(p.size)
        order = np.argsort(p, kind="mergesort")
        ranked = p[order]
        ranks = np.arange(1, m + 1, dtype=float)
        adj = ranked * (float(m) / ranks)
        adj = np.minimum.accumulate(adj[::-1])[::-1]
        adj = np.clip(adj, 0.0, 1.0)
        q_valid = np.empty_like(adj)
        q_valid[order] = adj
        q[finite] = q_valid
    return q.reshape(arr.shape)


def disruption_table(result: CorrelationResult) -> pd.DataFrame:
    """Long-format table of every (pathway, miRNA) pair, most significant first."""

    def _long(frame: pd.DataFrame, name: str) -> pd.Series:
        s = frame.stack(future_stack=True)
        s.name = name
        return s

    table = pd.concat(
        [
            _long(result.tumor_corr, "tumor_corr"),
            _long(result.normal_corr, "normal_corr"),
            _long(result.diffs, "diff"),
            _long(result.pvals, "p_value"),
            _long(result.qvals, "q_value"),
        ],
        axis=1,
    )
    table.index.names = ["pathway", "mirna"]
    table = table.reset_index()
    table["abs_diff"] = table["diff"].abs()
    table = table.sort_values(
        ["p_value", "abs_diff"],
        ascending=[True, False],
        na_position="last",
        kind="mergesort",
    )
    return table.drop(columns="abs_diff").reset_index(drop=True)
