"""Sample-class assignment and cross-matrix sample alignment."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import numpy as np
import pandas as pd

from pathdisrupt.core.errors import DataAlignmentError
from pathdisrupt.core.types import ClassRule

logger = logging.getLogger(__name__)

TUMOR = "tumor"
NORMAL = "normal"


def sample_class(sample_id: str, rule: ClassRule | None = None) -> str | None:
    """Return "tumor", "normal" or None (parsable but neither class)."""
    r = rule or ClassRule()
    sid = str(sample_id)
    code_str = sid[r.code_start : r.code_stop]
    if len(code_str) != r.code_stop - r.code_start or not code_str.isdigit():
        raise DataAlignmentError(
            f"Cannot read a sample-type code from '{sid}' at [{r.code_start}:{r.code_stop}]."
        )
    code = int(code_str)
    if r.tumor_codes[0] <= code <= r.tumor_codes[1]:
        return TUMOR
    if r.normal_codes[0] <= code <= r.normal_codes[1]:
        return NORMAL
    return None


def classify_samples(sample_ids: Iterable[str], rule: ClassRule | None = None) -> pd.Series:
    ids = [str(s) for s in sample_ids]
    labels = [sample_class(s, rule) for s in ids]
    return pd.Series(labels, index=ids, name="class", dtype="object")


def sample_keys(index: Iterable[str], key_length: int | None) -> pd.Index:
    """Identifiers used for matching; truncated when `key_length` is set."""
    ids = pd.Index([str(s) for s in index])
    if key_length is None:
        return ids
    return pd.Index([s[: int(key_length)] for s in ids])


def rekey(frame: pd.DataFrame, key_length: int | None, name: str) -> pd.DataFrame:
    """Reindex `frame` rows by matching key; duplicate keys are ambiguous."""
    keys = sample_keys(frame.index, key_length)
    if not keys.is_unique:
        dup = keys[keys.duplicated()].unique().tolist()[:5]
        raise DataAlignmentError(
            f"{name} has duplicate sample keys (key_length={key_length}): {dup}"
        )
    out = frame.copy()
    out.index = keys
    return out


def common_samples(
    mirna: pd.DataFrame,
    pas: pd.DataFrame,
    rule: ClassRule | None = None,
    min_median: float = 1e-6,
) -> tuple[str, ...]:
    """Samples shared by both matrices, class-assigned, with usable miRNA signal.

    Order follows the miRNA matrix. Both frames must already be keyed the
    same way (see `rekey`).
    """
    r = rule or ClassRule()
    pas_ids = set(pas.index)
    shared = [s for s in mirna.index if s in pas_ids]
    if not shared:
        raise DataAlignmentError(
            f"No common samples between miRNA matrix ({mirna.shape[0]} samples) "
            f"and PAS matrix ({pas.shape[0]} samples)."
        )

    labels = classify_samples(shared, r).to_numpy()
    assigned = [s for s, lab in zip(shared, labels) if lab is not None]
    n_unassigned = len(shared) - len(assigned)
    if n_unassigned:
        logger.info("Dropped %d shared samples outside tumor/normal codes.", n_unassigned)

    medians = mirna.loc[assigned].median(axis=1).to_numpy(dtype=float)
    keep_mask = np.isfinite(medians) & (medians >= float(min_median))
    kept = [s for s, ok in zip(assigned, keep_mask) if ok]
    n_low = len(assigned) - len(kept)
    if n_low:
        logger.info("Dropped %d samples with median miRNA expression < %g.", n_low, min_median)

    if not kept:
        raise DataAlignmentError(
            f"All {len(shared)} shared samples were excluded "
            f"({n_unassigned} unassigned class, {n_low} low miRNA signal)."
        )
    return tuple(str(s) for s in kept)


def tumor_mask(sample_ids: Iterable[str], rule: ClassRule | None = None) -> np.ndarray:
    labels = classify_samples(sample_ids, rule)
    if labels.isna().any():
        raise DataAlignmentError("Tumor mask requested for samples without a class.")
    return (labels == TUMOR).to_numpy(dtype=bool)
