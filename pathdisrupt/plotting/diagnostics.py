"""Diagnostic figures: k selection curves, p-value QQ and permutation nulls."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from pathdisrupt.core.types import Embedding
from pathdisrupt.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from pathdisrupt.plotting.utils import save_figure


def plot_k_selection(
    embedding: Embedding,
    out_png: Path,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> None:
    """Residual variance per candidate k; excluded k are marked on the axis."""
    if not embedding.k_scores:
        raise ValueError(f"Pathway '{embedding.pathway}' has no k search scores.")
    ks = np.array(sorted(embedding.k_scores), dtype=int)
    scores = np.array([embedding.k_scores[k] for k in ks], dtype=float)
    ok = np.isfinite(scores)

    fig, ax = plt.subplots(figsize=style.figsize_diag)
    ax.plot(ks[ok], scores[ok], marker="o", color="black", linewidth=1.2)
    if np.any(~ok):
        floor = float(np.nanmin(scores)) if np.any(ok) else 0.0
        ax.scatter(
            ks[~ok],
            np.full(int((~ok).sum()), floor),
            marker="x",
            color="grey",
            label="excluded",
        )
        ax.legend(frameon=False)
    ax.axvline(embedding.k, color="red", linestyle="--", linewidth=1.5)
    ax.set_xlabel("k (neighbours)")
    ax.set_ylabel("Residual variance")
    ax.set_title(f"{embedding.pathway}: k*={embedding.k}")
    fig.tight_layout()
    save_figure(fig, Path(out_png), style=style)


def plot_pvalue_qq(pvals: np.ndarray, out_png: Path, title: str) -> None:
    arr = np.asarray(pvals, dtype=float).ravel()
    arr = arr[np.isfinite(arr)]
    n = arr.size
    if n == 0:
        return
    obs = -np.log10(np.sort(arr))
    exp = -np.log10(np.arange(1, n + 1) / (n + 1))
    fig, ax = plt.subplots(figsize=DEFAULT_PLOT_STYLE.figsize_diag)
    ax.scatter(exp, obs, s=10, color="black")
    lim = float(max(exp.max(), obs.max()))
    ax.plot([0, lim], [0, lim], color="red", linestyle="--")
    ax.set_title(title)
    ax.set_xlabel("Expected -log10(p)")
    ax.set_ylabel("Observed -log10(p)")
    fig.tight_layout()
    save_figure(fig, Path(out_png))


def plot_null_distribution(
    null_diffs: np.ndarray,
    observed_diff: float,
    out_png: Path,
    title: str | None = None,
) -> None:
    arr = np.asarray(null_diffs, dtype=float).ravel()
    arr = arr[np.isfinite(arr)]
    fig, ax = plt.subplots(figsize=(6, 4))
    ax.hist(arr, bins=30, color="steelblue", alpha=0.7, edgecolor="black")
    for sign in (1.0, -1.0):
        ax.axvline(sign * abs(observed_diff), color="red", linestyle="--", linewidth=2)
    ax.set_xlabel("Correlation difference (tumor - normal)")
    ax.set_ylabel("Count")
    if title:
        ax.set_title(title)
    fig.tight_layout()
    save_figure(fig, Path(out_png))
