"""Statistical utilities for pathdisrupt."""

from pathdisrupt.stats.correlation import (
    batch_class_correlations,
    class_correlations,
    correlation_difference,
    standardize_columns,
)
from pathdisrupt.stats.disruption import score_disruption
from pathdisrupt.stats.permutation import (
    chunk_plan,
    exceedance_counts,
    pair_null,
    permutation_pvalues,
    permute_labels,
    pvalues_from_null,
)
from pathdisrupt.stats.scoring import bh_fdr, disruption_table

__all__ = [
    "standardize_columns",
    "batch_class_correlations",
    "class_correlations",
    "correlation_difference",
    "permute_labels",
    "chunk_plan",
    "exceedance_counts",
    "pair_null",
    "permutation_pvalues",
    "pvalues_from_null",
    "score_disruption",
    "bh_fdr",
    "disruption_table",
]
