from __future__ import annotations

import os
from pathlib import Path

os.environ.setdefault("MPLCONFIGDIR", "/tmp/mplconfig-pathdisrupt-tests")

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from pathdisrupt.core.types import ClassRule, Embedding
from pathdisrupt.plotting import (
    apply_plot_style,
    build_pair_frame,
    pair_stem,
    plot_k_selection,
    plot_mirna_pathway,
    plot_null_distribution,
    plot_pvalue_qq,
    plot_style_dict,
    sanitize_feature_label,
)


def _pair_inputs(n: int = 12):
    rng = np.random.default_rng(0)
    ids = [f"TCGA-PL-{i:04d}-{1 if i < n // 2 else 11:02d}A-01R" for i in range(n)]
    mirna = pd.DataFrame({"hsa-miR-21-5p": rng.uniform(10.0, 500.0, size=n)}, index=ids)
    pas = pd.DataFrame({"KEGG/APOPTOSIS": rng.normal(size=n)}, index=ids)
    return mirna, pas


def test_labels_are_filesystem_safe():
    assert sanitize_feature_label("KEGG/APOPTOSIS (v2)") == "KEGG_APOPTOSIS__v2"
    assert sanitize_feature_label("///") == "feature"
    stem = pair_stem("hsa-miR-21-5p", "KEGG/APOPTOSIS")
    assert "/" not in stem and "__" in stem
    assert len(pair_stem("m" * 200, "p" * 200)) <= 82


def test_build_pair_frame_joins_and_labels():
    mirna, pas = _pair_inputs()
    frame = build_pair_frame(
        mirna, pas, "hsa-miR-21-5p", "KEGG/APOPTOSIS", ClassRule(key_length=15)
    )
    assert list(frame.columns) == ["mirna", "pas", "class"]
    assert len(frame) == 12
    assert frame["class"].value_counts().to_dict() == {"tumor": 6, "normal": 6}
    assert all(len(s) == 15 for s in frame.index)
    with pytest.raises(KeyError):
        build_pair_frame(mirna, pas, "hsa-miR-missing", "KEGG/APOPTOSIS")


def test_plot_mirna_pathway_writes_png(tmp_path: Path):
    apply_plot_style()
    mirna, pas = _pair_inputs()
    frame = build_pair_frame(mirna, pas, "hsa-miR-21-5p", "KEGG/APOPTOSIS")
    out = tmp_path / "pair.png"
    corrs = plot_mirna_pathway(frame, "hsa-miR-21-5p", "KEGG/APOPTOSIS", out)
    assert out.exists() and out.stat().st_size > 0
    assert set(corrs) == {"tumor", "normal"}
    assert all(-1.0 <= r <= 1.0 for r in corrs.values())


def test_plot_mirna_pathway_requires_columns(tmp_path: Path):
    with pytest.raises(ValueError, match="Missing required"):
        plot_mirna_pathway(pd.DataFrame({"mirna": [1.0]}), "m", "p", tmp_path / "x.png")


def test_diagnostic_figures(tmp_path: Path):
    emb = Embedding(
        pathway="P",
        coords=np.zeros((5, 1)),
        sample_ids=tuple("abcde"),
        k=6,
        ndim=1,
        residual_variance=0.1,
        k_scores={4: float("nan"), 6: 0.1, 8: 0.2},
    )
    plot_k_selection(emb, tmp_path / "k.png")
    plot_pvalue_qq(np.array([0.01, 0.2, np.nan, 0.7]), tmp_path / "qq.png", "QQ")
    plot_null_distribution(
        np.random.default_rng(0).normal(0.0, 0.2, 200), 0.6, tmp_path / "null.png", "Null"
    )
    for name in ("k.png", "qq.png", "null.png"):
        assert (tmp_path / name).exists()

    bare = Embedding("Q", np.zeros((3, 1)), ("a", "b", "c"), 2, 1, 0.0, {})
    with pytest.raises(ValueError, match="no k search"):
        plot_k_selection(bare, tmp_path / "bare.png")


def test_plot_style_dict_records_versions():
    d = plot_style_dict()
    assert d["dpi"] == 200
    assert "matplotlib_version" in d
