"""Typed configuration and result containers for pathdisrupt."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

DEFAULT_K_CANDIDATES: tuple[int, ...] = tuple(range(4, 21))


@dataclass(frozen=True)
class ClassRule:
    """How a sample identifier encodes tumor vs normal tissue.

    Defaults follow the TCGA barcode: characters 14-15 hold the sample-type
    code, 01-09 are tumors and 10-19 are normals.
    """

    code_start: int = 13
    code_stop: int = 15
    tumor_codes: tuple[int, int] = (1, 9)
    normal_codes: tuple[int, int] = (10, 19)
    key_length: int | None = None


@dataclass(frozen=True)
class EmbedConfig:
    """Per-pathway Isomap configuration."""

    k_candidates: tuple[int, ...] = DEFAULT_K_CANDIDATES
    search_k: bool = True
    fixed_k: int = 8
    ndim: int = 6
    ndim_criterion: int = 1
    scale: bool = True
    orient: bool = True
    min_genes: int = 3
    n_jobs: int = 1
    backend: str = "loky"
    max_pathways: int = 5000
    strict_budget: bool = False


@dataclass(frozen=True)
class ScoreConfig:
    """Differential-correlation permutation test configuration."""

    n_perm: int = 100_000
    seed: int = 0
    chunk_size: int = 1000
    n_jobs: int = 1
    backend: str = "loky"
    min_median: float = 1e-6
    min_class_size: int = 2
    max_correlation_evaluations: float = 1e13
    max_pathways: int = 5000
    strict_budget: bool = False
    class_rule: ClassRule = field(default_factory=ClassRule)


@dataclass(frozen=True)
class PathwayGeneSet:
    name: str
    genes: tuple[str, ...]


@dataclass(frozen=True)
class PathwaySubmatrix:
    """Expression restricted to the genes of one pathway."""

    pathway: str
    values: pd.DataFrame
    missing_genes: tuple[str, ...] = ()

    @property
    def sample_ids(self) -> tuple[str, ...]:
        return tuple(str(s) for s in self.values.index)


@dataclass(frozen=True)
class Embedding:
    """Isomap output for one pathway.

    - `coords`: (n_samples, ndim), rows in submatrix sample order.
    - `k_scores`: criterion per candidate k; NaN marks an excluded k.
    """

    pathway: str
    coords: np.ndarray
    sample_ids: tuple[str, ...]
    k: int
    ndim: int
    residual_variance: float
    k_scores: dict[int, float] = field(default_factory=dict)

    @property
    def pas(self) -> pd.Series:
        return pd.Series(self.coords[:, 0], index=list(self.sample_ids), name=self.pathway)


@dataclass(frozen=True)
class PathwayFailure:
    pathway: str
    error_type: str
    message: str


@dataclass(frozen=True)
class PASResult:
    """Pathway Activity Summaries for a batch of pathways."""

    pas: pd.DataFrame
    embeddings: tuple[Embedding, ...]
    failures: tuple[PathwayFailure, ...]
    chosen_k: pd.Series
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CorrelationResult:
    """Tumor-minus-normal miRNA/PAS correlation differences and p-values.

    Matrices are indexed by pathway (rows) and miRNA (columns).
    """

    diffs: pd.DataFrame
    pvals: pd.DataFrame
    qvals: pd.DataFrame
    tumor_corr: pd.DataFrame
    normal_corr: pd.DataFrame
    common_samples: tuple[str, ...]
    n_tumor: int
    n_normal: int
    n_perm: int
    seed: int
    metadata: dict[str, Any] = field(default_factory=dict)
