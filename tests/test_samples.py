from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import pytest

from pathdisrupt.core.errors import DataAlignmentError
from pathdisrupt.core.samples import (
    NORMAL,
    TUMOR,
    classify_samples,
    common_samples,
    rekey,
    sample_class,
    tumor_mask,
)
from pathdisrupt.core.types import ClassRule


def _barcode(patient: int, code: int, vial: str = "A") -> str:
    return f"TCGA-AB-{patient:04d}-{code:02d}{vial}"


def test_sample_class_reads_tcga_type_code():
    assert sample_class(_barcode(1, 1)) == TUMOR
    assert sample_class(_barcode(1, 6)) == TUMOR
    assert sample_class(_barcode(1, 11)) == NORMAL
    assert sample_class(_barcode(1, 20)) is None
    assert sample_class("TCGA-A1-A0SB-01A-11R-A144-13") == TUMOR


def test_sample_class_rejects_unparsable_ids():
    with pytest.raises(DataAlignmentError, match="sample-type code"):
        sample_class("short-id")
    with pytest.raises(DataAlignmentError):
        sample_class("TCGA-AB-0001-XYA")


def test_custom_class_rule():
    rule = ClassRule(code_start=0, code_stop=1, tumor_codes=(1, 1), normal_codes=(0, 0))
    labels = classify_samples(["1_a", "0_b", "2_c"], rule)
    assert labels.tolist() == [TUMOR, NORMAL, None]
    assert list(labels.index) == ["1_a", "0_b", "2_c"]


def test_rekey_truncates_and_rejects_duplicates():
    frame = pd.DataFrame(
        {"x": [1.0, 2.0]},
        index=["TCGA-AB-0001-01A-11R", "TCGA-AB-0002-11A-01R"],
    )
    keyed = rekey(frame, 15, "test")
    assert list(keyed.index) == ["TCGA-AB-0001-01", "TCGA-AB-0002-11"]

    clash = pd.DataFrame(
        {"x": [1.0, 2.0]},
        index=["TCGA-AB-0001-01A-11R", "TCGA-AB-0001-01B-21R"],
    )
    with pytest.raises(DataAlignmentError, match="duplicate sample keys"):
        rekey(clash, 15, "test")


def test_common_samples_intersects_and_filters(caplog):
    caplog.set_level(logging.INFO)
    ids = [_barcode(i, 1 if i < 4 else 11) for i in range(8)]
    control = _barcode(99, 20)
    mirna = pd.DataFrame(
        np.full((9, 3), 5.0),
        index=ids + [control],
        columns=["m1", "m2", "m3"],
    )
    mirna.loc[ids[2]] = [0.0, 0.0, 3.0]
    pas = pd.DataFrame({"P": np.arange(8.0)}, index=list(reversed(ids[1:])) + [control])

    kept = common_samples(mirna, pas)
    # miRNA order, sample 0 missing from PAS, sample 2 below the median floor.
    assert kept == tuple(s for s in ids if s not in (ids[0], ids[2]))
    assert "outside tumor/normal" in caplog.text
    assert "median miRNA" in caplog.text


def test_common_samples_without_overlap_raises():
    mirna = pd.DataFrame({"m": [1.0]}, index=[_barcode(1, 1)])
    pas = pd.DataFrame({"P": [1.0]}, index=[_barcode(2, 1)])
    with pytest.raises(DataAlignmentError, match="No common samples"):
        common_samples(mirna, pas)


def test_common_samples_all_excluded_raises():
    ids = [_barcode(1, 1), _barcode(2, 11)]
    mirna = pd.DataFrame({"m": [0.0, 0.0]}, index=ids)
    pas = pd.DataFrame({"P": [1.0, 2.0]}, index=ids)
    with pytest.raises(DataAlignmentError, match="excluded"):
        common_samples(mirna, pas)


def test_tumor_mask():
    ids = [_barcode(1, 1), _barcode(2, 11), _barcode(3, 3)]
    assert tumor_mask(ids).tolist() == [True, False, True]
    with pytest.raises(DataAlignmentError):
        tumor_mask(ids + [_barcode(4, 20)])
