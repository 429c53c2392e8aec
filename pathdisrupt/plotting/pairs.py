"""miRNA-vs-pathway scatter figures with per-class LOWESS trends."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from statsmodels.nonparametric.smoothers_lowess import lowess

from pathdisrupt.core.samples import NORMAL, TUMOR, classify_samples, rekey
from pathdisrupt.core.types import ClassRule
from pathdisrupt.core.utils import safe_pearson
from pathdisrupt.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from pathdisrupt.plotting.utils import save_figure

MIN_TREND_POINTS = 4


def build_pair_frame(
    mirna: pd.DataFrame,
    pas: pd.DataFrame,
    mirna_id: str,
    pathway_id: str,
    rule: ClassRule | None = None,
    samples: tuple[str, ...] | None = None,
) -> pd.DataFrame:
    """Join one miRNA and one pathway PAS per sample with its class label."""
    r = rule or ClassRule()
    if mirna_id not in mirna.columns:
        raise KeyError(f"miRNA '{mirna_id}' not found.")
    if pathway_id not in pas.columns:
        raise KeyError(f"Pathway '{pathway_id}' not found in PAS matrix.")
    m = rekey(mirna[[mirna_id]], r.key_length, "miRNA matrix")
    p = rekey(pas[[pathway_id]], r.key_length, "PAS matrix")
    frame = m.join(p, how="inner")
    frame.columns = ["mirna", "pas"]
    if samples is not None:
        frame = frame.loc[[s for s in samples if s in frame.index]]
    frame["class"] = classify_samples(frame.index, r).to_numpy()
    frame = frame.dropna(subset=["class", "mirna", "pas"])
    frame.index.name = "sample_id"
    return frame


def plot_mirna_pathway(
    frame: pd.DataFrame,
    mirna_id: str,
    pathway_id: str,
    out_png: Path,
    *,
    log_mirna: bool = True,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> dict[str, float]:
    """Scatter PAS against miRNA expression, coloured by class, with trends.

    Returns the per-class Pearson correlations drawn in the legend.
    """
    required = {"mirna", "pas", "class"}
    missing = sorted(required - set(frame.columns))
    if missing:
        raise ValueError(f"Missing required pair frame columns: {missing}")

    x_all = frame["mirna"].to_numpy(dtype=float)
    if log_mirna:
        x_all = np.log2(np.clip(x_all, 0.0, None) + 1.0)
    y_all = frame["pas"].to_numpy(dtype=float)
    classes = frame["class"].to_numpy()

    fig, ax = plt.subplots(figsize=style.figsize_pair)
    corrs: dict[str, float] = {}
    for label, color in ((TUMOR, style.tumor_color), (NORMAL, style.normal_color)):
        sel = classes == label
        if not np.any(sel):
            continue
        x = x_all[sel]
        y = y_all[sel]
        r = safe_pearson(x, y)
        corrs[label] = r
        ax.scatter(
            x,
            y,
            s=style.point_size,
            alpha=style.point_alpha,
            color=color,
            linewidths=0.0,
            label=f"{label} (n={int(sel.sum())}, r={r:.2f})",
        )
        if x.size >= MIN_TREND_POINTS and np.ptp(x) > 0:
            fit = lowess(y, x, frac=style.lowess_frac, return_sorted=True)
            ax.plot(fit[:, 0], fit[:, 1], color=color, linewidth=style.trend_width)

    ax.set_xlabel(f"log2({mirna_id} + 1)" if log_mirna else mirna_id)
    ax.set_ylabel(f"PAS: {pathway_id}")
    ax.set_title(f"{mirna_id} vs {pathway_id}")
    ax.legend(loc="best", frameon=False)
    fig.tight_layout()
    save_figure(fig, Path(out_png), style=style)
    return corrs
