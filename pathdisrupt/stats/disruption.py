"""miRNA-pathway disruption scoring: class-conditional correlation differences."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from pathdisrupt.config import check_compute_budget
from pathdisrupt.core.errors import DegenerateInputError
from pathdisrupt.core.samples import common_samples, rekey, tumor_mask
from pathdisrupt.core.types import CorrelationResult, ScoreConfig
from pathdisrupt.stats.correlation import class_correlations, standardize_columns
from pathdisrupt.stats.permutation import exceedance_counts, permutation_pvalues
from pathdisrupt.stats.scoring import bh_fdr

logger = logging.getLogger(__name__)


def _numeric(frame: pd.DataFrame, name: str) -> pd.DataFrame:
    out = frame.apply(pd.to_numeric, errors="coerce").astype(float)
    if out.shape[1] == 0:
        raise DegenerateInputError(f"{name} matrix has no columns.")
    return out


def score_disruption(
    mirna: pd.DataFrame,
    pas: pd.DataFrame,
    config: ScoreConfig | None = None,
) -> CorrelationResult:
    """Tumor-minus-normal correlation of every miRNA with every pathway PAS.

    Args:
        mirna: samples x miRNAs expression.
        pas: samples x pathways PAS values.
        config: permutation and alignment settings.

    Returns:
        `CorrelationResult` with pathways as rows and miRNAs as columns.
        Degenerate pairs carry NaN in every matrix except `qvals` (1.0).
    """
    cfg = config or ScoreConfig()
    rule = cfg.class_rule

    mirna_k = rekey(_numeric(mirna, "miRNA"), rule.key_length, "miRNA matrix")
    pas_k = rekey(_numeric(pas, "PAS"), rule.key_length, "PAS matrix")

    samples = common_samples(mirna_k, pas_k, rule, min_median=cfg.min_median)
    mask = tumor_mask(samples, rule)
    n_tumor = int(mask.sum())
    n_normal = int(mask.size - n_tumor)
    if min(n_tumor, n_normal) < int(cfg.min_class_size):
        raise DegenerateInputError(
            f"Class sizes tumor={n_tumor}, normal={n_normal} below "
            f"min_class_size={cfg.min_class_size}."
        )

    sample_list = list(samples)
    m_sub = mirna_k.loc[sample_list]
    p_sub = pas_k.loc[sample_list]
    bad_cols = m_sub.columns[~np.isfinite(m_sub.to_numpy()).all(axis=0)]
    if len(bad_cols):
        logger.info("Dropping %d miRNAs with missing values.", len(bad_cols))
        m_sub = m_sub.drop(columns=bad_cols)
    bad_paths = p_sub.columns[~np.isfinite(p_sub.to_numpy()).all(axis=0)]
    if len(bad_paths):
        logger.info("Dropping %d pathways with missing PAS values.", len(bad_paths))
        p_sub = p_sub.drop(columns=bad_paths)
    if m_sub.shape[1] == 0 or p_sub.shape[1] == 0:
        raise DegenerateInputError("No complete miRNA or pathway columns remain.")

    pathways = list(p_sub.columns)
    mirnas = list(m_sub.columns)
    check_compute_budget(
        n_perm=cfg.n_perm,
        n_pairs=len(pathways) * len(mirnas),
        n_samples=len(sample_list),
        n_pathways=len(pathways),
        max_correlation_evaluations=cfg.max_correlation_evaluations,
        max_pathways=cfg.max_pathways,
        strict=cfg.strict_budget,
    )

    x = standardize_columns(p_sub.to_numpy(dtype=float))
    y = standardize_columns(m_sub.to_numpy(dtype=float))
    r_tumor, r_normal = class_correlations(x, y, mask)
    observed = r_tumor - r_normal
    n_nan = int(np.isnan(observed).sum())
    if n_nan:
        logger.warning(
            "%d of %d pairs have undefined correlation in at least one class.",
            n_nan,
            observed.size,
        )

    logger.info(
        "Permutation test: %d pathways x %d miRNAs, %d samples (tumor=%d, normal=%d), n_perm=%d",
        len(pathways),
        len(mirnas),
        len(sample_list),
        n_tumor,
        n_normal,
        cfg.n_perm,
    )
    counts, valid = exceedance_counts(
        x,
        y,
        mask,
        observed,
        cfg.n_perm,
        cfg.seed,
        chunk_size=cfg.chunk_size,
        n_jobs=cfg.n_jobs,
        backend=cfg.backend,
    )
    pvals = permutation_pvalues(counts, valid, observed)

    def _frame(values: np.ndarray) -> pd.DataFrame:
        return pd.DataFrame(
            values,
            index=pd.Index(pathways, name="pathway"),
            columns=pd.Index(mirnas, name="mirna"),
        )

    return CorrelationResult(
        diffs=_frame(observed),
        pvals=_frame(pvals),
        qvals=_frame(bh_fdr(pvals)),
        tumor_corr=_frame(r_tumor),
        normal_corr=_frame(r_normal),
        common_samples=tuple(samples),
        n_tumor=n_tumor,
        n_normal=n_normal,
        n_perm=int(cfg.n_perm),
        seed=int(cfg.seed),
        metadata={
            "chunk_size": int(cfg.chunk_size),
            "min_median": float(cfg.min_median),
            "n_undefined_pairs": n_nan,
            "pvalue_convention": "(1 + exceed) / (1 + valid_permutations)",
        },
    )
