"""Per-pathway Isomap embedding and Pathway Activity Summary batches."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import partial

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from pathdisrupt.core.errors import DataAlignmentError, DegenerateInputError, PathDisruptError
from pathdisrupt.core.isomap import isomap_embed, pairwise_distances, residual_variance
from pathdisrupt.core.ksearch import find_k_isomap
from pathdisrupt.core.types import (
    EmbedConfig,
    Embedding,
    PASResult,
    PathwayFailure,
    PathwayGeneSet,
    PathwaySubmatrix,
)
from pathdisrupt.core.utils import safe_pearson
from pathdisrupt.parallel import parallel_map

logger = logging.getLogger(__name__)

MIN_SAMPLES = 3


def pathway_submatrix(
    expr: pd.DataFrame,
    gene_set: PathwayGeneSet,
    min_genes: int = 3,
) -> PathwaySubmatrix:
    """Column-subset `expr` (samples x genes) to one pathway's genes."""
    present = [g for g in gene_set.genes if g in expr.columns]
    missing = tuple(g for g in gene_set.genes if g not in expr.columns)
    # Gene sets occasionally list a symbol twice.
    present = list(dict.fromkeys(present))
    if len(present) < int(min_genes):
        raise DegenerateInputError(
            f"Pathway '{gene_set.name}' has {len(present)} measured genes; "
            f"at least {int(min_genes)} required."
        )
    return PathwaySubmatrix(
        pathway=gene_set.name,
        values=expr.loc[:, present].astype(float),
        missing_genes=missing,
    )


def _prepare_values(values: np.ndarray, scale: bool) -> np.ndarray:
    if scale:
        return StandardScaler().fit_transform(values)
    return values


def embed_pathway(sub: PathwaySubmatrix, config: EmbedConfig | None = None) -> Embedding:
    """Isomap-embed one pathway submatrix.

    The first coordinate of the returned embedding is the pathway's PAS.
    """
    cfg = config or EmbedConfig()
    raw = sub.values.to_numpy(dtype=float)
    n = raw.shape[0]
    if n < MIN_SAMPLES:
        raise DegenerateInputError(
            f"Pathway '{sub.pathway}' has {n} samples; at least {MIN_SAMPLES} required."
        )
    if not np.isfinite(raw).all():
        raise DegenerateInputError(f"Pathway '{sub.pathway}' contains NaN/inf expression.")

    x = _prepare_values(raw, cfg.scale)
    dist = pairwise_distances(x)
    if not np.any(dist > 0.0):
        raise DegenerateInputError(f"Pathway '{sub.pathway}' has identical samples only.")

    if cfg.search_k:
        k, scores = find_k_isomap(dist, cfg.k_candidates, ndim_criterion=cfg.ndim_criterion)
    else:
        k, scores = int(cfg.fixed_k), {}
        if k >= n:
            raise DegenerateInputError(
                f"Pathway '{sub.pathway}' has {n} samples; fixed k={k} needs at least {k + 1}."
            )

    ndim = min(int(cfg.ndim), n - 1)
    coords, geo = isomap_embed(dist, k, ndim)

    if cfg.orient:
        mean_profile = StandardScaler().fit_transform(raw).mean(axis=1)
        r = safe_pearson(coords[:, 0], mean_profile)
        if np.isfinite(r) and r < 0.0:
            coords = -coords

    if scores:
        rv = scores[k]
    else:
        rv = residual_variance(geo, coords[:, : min(int(cfg.ndim_criterion), ndim)])
    return Embedding(
        pathway=sub.pathway,
        coords=coords,
        sample_ids=sub.sample_ids,
        k=int(k),
        ndim=int(ndim),
        residual_variance=float(rv),
        k_scores=dict(scores),
    )


def _embed_task(
    task: tuple[str, pd.DataFrame],
    config: EmbedConfig,
) -> Embedding | PathwayFailure:
    name, values = task
    try:
        return embed_pathway(PathwaySubmatrix(pathway=name, values=values), config)
    except PathDisruptError as exc:
        return PathwayFailure(pathway=name, error_type=type(exc).__name__, message=str(exc))


def compute_pas_matrix(
    expr: pd.DataFrame,
    gene_sets: Sequence[PathwayGeneSet],
    config: EmbedConfig | None = None,
) -> PASResult:
    """Embed every pathway and collect PAS columns in processing order.

    Failed pathways are reported in `PASResult.failures` and skipped.
    """
    cfg = config or EmbedConfig()
    if not expr.index.is_unique:
        dup = expr.index[expr.index.duplicated()].unique().tolist()[:5]
        raise DataAlignmentError(
            f"Expression sample identifiers must be unique; duplicates: {dup}"
        )

    slots: list[Embedding | PathwayFailure | None] = [None] * len(gene_sets)
    tasks: list[tuple[str, pd.DataFrame]] = []
    task_slots: list[int] = []
    for pos, gs in enumerate(gene_sets):
        try:
            sub = pathway_submatrix(expr, gs, min_genes=cfg.min_genes)
        except DegenerateInputError as exc:
            slots[pos] = PathwayFailure(gs.name, type(exc).__name__, str(exc))
            continue
        tasks.append((sub.pathway, sub.values))
        task_slots.append(pos)

    logger.info(
        "Embedding %d pathways (%d skipped before embedding), n_jobs=%d, search_k=%s",
        len(tasks),
        len(gene_sets) - len(tasks),
        cfg.n_jobs,
        cfg.search_k,
    )
    results = parallel_map(
        partial(_embed_task, config=cfg),
        tasks,
        n_jobs=cfg.n_jobs,
        backend=cfg.backend,
        batch_size=1,
    )
    for pos, res in zip(task_slots, results):
        slots[pos] = res

    embeddings: list[Embedding] = []
    failures: list[PathwayFailure] = []
    for res in slots:
        if isinstance(res, Embedding):
            embeddings.append(res)
        elif isinstance(res, PathwayFailure):
            logger.warning("Pathway %s failed (%s): %s", res.pathway, res.error_type, res.message)
            failures.append(res)

    if embeddings:
        pas = pd.concat([emb.pas for emb in embeddings], axis=1)
    else:
        pas = pd.DataFrame(index=expr.index)
    pas.index.name = expr.index.name
    chosen_k = pd.Series(
        {emb.pathway: emb.k for emb in embeddings}, name="k", dtype="int64"
    )
    logger.info("Embedded %d pathways; %d failed.", len(embeddings), len(failures))
    return PASResult(
        pas=pas,
        embeddings=tuple(embeddings),
        failures=tuple(failures),
        chosen_k=chosen_k,
        metadata={
            "n_pathways": len(gene_sets),
            "n_embedded": len(embeddings),
            "n_failed": len(failures),
            "search_k": bool(cfg.search_k),
            "k_candidates": [int(k) for k in cfg.k_candidates],
            "fixed_k": int(cfg.fixed_k),
            "ndim": int(cfg.ndim),
            "scale": bool(cfg.scale),
        },
    )
