"""Core compute subpackage."""

from pathdisrupt.core.embedder import compute_pas_matrix, embed_pathway, pathway_submatrix
from pathdisrupt.core.errors import (
    DataAlignmentError,
    DegenerateInputError,
    DisconnectedGraphError,
    PathDisruptError,
    ResourceExhaustionError,
)
from pathdisrupt.core.isomap import (
    classical_mds,
    isomap_embed,
    knn_geodesic,
    pairwise_distances,
    residual_variance,
)
from pathdisrupt.core.ksearch import find_k_isomap, select_best_k
from pathdisrupt.core.samples import classify_samples, common_samples, sample_class
from pathdisrupt.core.types import (
    ClassRule,
    CorrelationResult,
    EmbedConfig,
    Embedding,
    PASResult,
    PathwayFailure,
    PathwayGeneSet,
    PathwaySubmatrix,
    ScoreConfig,
)

__all__ = [
    "ClassRule",
    "EmbedConfig",
    "ScoreConfig",
    "PathwayGeneSet",
    "PathwaySubmatrix",
    "Embedding",
    "PathwayFailure",
    "PASResult",
    "CorrelationResult",
    "PathDisruptError",
    "DataAlignmentError",
    "DegenerateInputError",
    "DisconnectedGraphError",
    "ResourceExhaustionError",
    "pairwise_distances",
    "knn_geodesic",
    "classical_mds",
    "residual_variance",
    "isomap_embed",
    "select_best_k",
    "find_k_isomap",
    "pathway_submatrix",
    "embed_pathway",
    "compute_pas_matrix",
    "sample_class",
    "classify_samples",
    "common_samples",
]
