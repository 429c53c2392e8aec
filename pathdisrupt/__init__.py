"""pathdisrupt public API."""

from pathdisrupt._version import __version__
from pathdisrupt.core.embedder import compute_pas_matrix, embed_pathway
from pathdisrupt.core.ksearch import find_k_isomap, select_best_k
from pathdisrupt.core.types import ClassRule, EmbedConfig, PathwayGeneSet, ScoreConfig
from pathdisrupt.stats.disruption import score_disruption


def run_pipeline_stage(stage: str, config_path: str):
    """Lazy wrapper to avoid importing plotting dependencies at import time."""
    from pathdisrupt.pipeline import stages

    runners = {
        "assemble": stages.run_assemble_stage,
        "embed": stages.run_embed_stage,
        "score": stages.run_score_stage,
        "plot": stages.run_plot_stage,
    }
    if stage not in runners:
        raise ValueError(f"Unknown stage '{stage}'. Options: {sorted(runners)}")
    return runners[stage](config_path)


__all__ = [
    "__version__",
    "ClassRule",
    "EmbedConfig",
    "ScoreConfig",
    "PathwayGeneSet",
    "select_best_k",
    "find_k_isomap",
    "embed_pathway",
    "compute_pas_matrix",
    "score_disruption",
    "run_pipeline_stage",
]
