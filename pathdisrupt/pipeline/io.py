"""Pipeline I/O, logging, and result persistence helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from pathdisrupt.core.types import CorrelationResult, Embedding, PASResult, PathwayFailure

_CORR_MATRICES = ("diffs", "pvals", "qvals", "tumor_corr", "normal_corr")


def ensure_dir(path: str | Path) -> None:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)


def read_json(path: str | Path) -> dict[str, Any]:
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def setup_logger(log_path: Path, logger_name: str) -> logging.Logger:
    ensure_dir(log_path.parent)
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    fh = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    fh.setFormatter(formatter)
    logger.addHandler(fh)
    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)
    return logger


def _sep_for(path: Path) -> str:
    return "\t" if path.suffix.lower() in {".tsv", ".txt"} else ","


def read_matrix(path: str | Path, *, transpose: bool = False) -> pd.DataFrame:
    """Read a CSV/TSV matrix with identifiers in the first column.

    With `transpose`, a features x samples file is returned as samples x features.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Matrix file not found: {p}")
    frame = pd.read_csv(p, sep=_sep_for(p), index_col=0)
    frame = frame.apply(pd.to_numeric, errors="coerce")
    if transpose:
        frame = frame.T
    frame.index = frame.index.astype(str)
    frame.columns = frame.columns.astype(str)
    return frame


def write_matrix(path: str | Path, frame: pd.DataFrame) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(out, sep=_sep_for(out))
    return out


def save_pas_result(outdir: str | Path, result: PASResult) -> Path:
    """Write PAS matrix, per-pathway k choices and failures under `outdir`."""
    out = Path(outdir)
    ensure_dir(out)
    write_matrix(out / "pas.csv", result.pas)
    k_scores = pd.DataFrame(
        {emb.pathway: pd.Series(emb.k_scores, dtype=float) for emb in result.embeddings}
    ).T
    k_scores.index.name = "pathway"
    write_matrix(out / "k_scores.csv", k_scores)
    write_json(
        out / "metadata.json",
        {
            "pathways": list(result.pas.columns),
            "chosen_k": {str(k): int(v) for k, v in result.chosen_k.items()},
            "residual_variance": {
                emb.pathway: float(emb.residual_variance) for emb in result.embeddings
            },
            "ndim": {emb.pathway: int(emb.ndim) for emb in result.embeddings},
            "failures": [
                {"pathway": f.pathway, "error_type": f.error_type, "message": f.message}
                for f in result.failures
            ],
            "run": result.metadata,
        },
    )
    return out


def load_pas_result(outdir: str | Path) -> PASResult:
    """Load a saved PAS batch; embeddings carry only the PAS coordinate."""
    out = Path(outdir)
    meta = read_json(out / "metadata.json")
    pas = read_matrix(out / "pas.csv")
    pas = pas.loc[:, [str(c) for c in meta["pathways"]]]
    k_path = out / "k_scores.csv"
    k_scores = read_matrix(k_path) if k_path.exists() else pd.DataFrame()

    embeddings = []
    for name in pas.columns:
        scores: dict[int, float] = {}
        if name in k_scores.index:
            row = k_scores.loc[name]
            scores = {int(float(k)): float(v) for k, v in row.items()}
        embeddings.append(
            Embedding(
                pathway=name,
                coords=pas[[name]].to_numpy(dtype=float),
                sample_ids=tuple(pas.index),
                k=int(meta["chosen_k"][name]),
                ndim=int(meta.get("ndim", {}).get(name, 1)),
                residual_variance=float(meta["residual_variance"].get(name, np.nan)),
                k_scores=scores,
            )
        )
    failures = tuple(PathwayFailure(**f) for f in meta.get("failures", []))
    chosen_k = pd.Series(
        {name: int(meta["chosen_k"][name]) for name in pas.columns}, name="k", dtype="int64"
    )
    return PASResult(
        pas=pas,
        embeddings=tuple(embeddings),
        failures=failures,
        chosen_k=chosen_k,
        metadata=dict(meta.get("run", {})),
    )


def save_correlation_result(outdir: str | Path, result: CorrelationResult) -> Path:
    out = Path(outdir)
    ensure_dir(out)
    for name in _CORR_MATRICES:
        write_matrix(out / f"{name}.csv", getattr(result, name))
    write_json(
        out / "metadata.json",
        {
            "common_samples": list(result.common_samples),
            "n_tumor": int(result.n_tumor),
            "n_normal": int(result.n_normal),
            "n_perm": int(result.n_perm),
            "seed": int(result.seed),
            "run": result.metadata,
        },
    )
    return out


def load_correlation_result(outdir: str | Path) -> CorrelationResult:
    out = Path(outdir)
    meta = read_json(out / "metadata.json")
    mats = {name: read_matrix(out / f"{name}.csv") for name in _CORR_MATRICES}
    for frame in mats.values():
        frame.index.name = "pathway"
        frame.columns.name = "mirna"
    return CorrelationResult(
        **mats,
        common_samples=tuple(str(s) for s in meta["common_samples"]),
        n_tumor=int(meta["n_tumor"]),
        n_normal=int(meta["n_normal"]),
        n_perm=int(meta["n_perm"]),
        seed=int(meta["seed"]),
        metadata=dict(meta.get("run", {})),
    )
