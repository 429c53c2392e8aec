"""Plotting API for pathdisrupt results."""

from pathdisrupt.plotting.diagnostics import (
    plot_k_selection,
    plot_null_distribution,
    plot_pvalue_qq,
)
from pathdisrupt.plotting.pairs import build_pair_frame, plot_mirna_pathway
from pathdisrupt.plotting.styles import (
    DEFAULT_PLOT_STYLE,
    PlotStyle,
    apply_plot_style,
    plot_style_dict,
)
from pathdisrupt.plotting.utils import pair_stem, sanitize_feature_label, save_figure

__all__ = [
    "PlotStyle",
    "DEFAULT_PLOT_STYLE",
    "apply_plot_style",
    "plot_style_dict",
    "save_figure",
    "sanitize_feature_label",
    "pair_stem",
    "build_pair_frame",
    "plot_mirna_pathway",
    "plot_k_selection",
    "plot_pvalue_qq",
    "plot_null_distribution",
]
