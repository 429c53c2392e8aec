"""Batch stages: assemble -> embed -> score -> plot, each driven by one JSON config."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import matplotlib

matplotlib.use("Agg")

from pathdisrupt.config import (
    check_compute_budget,
    class_rule_from_dict,
    embed_config_from_dict,
    load_json_config,
    score_config_from_dict,
)
from pathdisrupt.core.embedder import compute_pas_matrix
from pathdisrupt.core.samples import tumor_mask
from pathdisrupt.core.types import CorrelationResult, PASResult
from pathdisrupt.pipeline.ingest import (
    PRESETS,
    counts_to_rpm,
    counts_to_tpm,
    filter_by_class,
    read_gene_lengths,
    read_gene_sets,
    read_quantification_dir,
    read_sample_sheet,
)
from pathdisrupt.pipeline.io import (
    ensure_dir,
    load_correlation_result,
    load_pas_result,
    read_matrix,
    save_correlation_result,
    save_pas_result,
    setup_logger,
    write_json,
    write_matrix,
)
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
from pathdisrupt.stats.disruption import score_disruption
from pathdisrupt.stats.permutation import pair_null
from pathdisrupt.stats.scoring import disruption_table

LOGGER_NAME = "pathdisrupt"


def _outdir(cfg: dict[str, Any]) -> Path:
    if "outdir" not in cfg:
        raise KeyError("Config requires 'outdir'.")
    return Path(cfg["outdir"])


def _matrix_path(cfg: dict[str, Any], key: str, default: Path) -> tuple[Path, bool]:
    inputs = cfg.get("inputs", {})
    if inputs.get(key):
        return Path(inputs[key]), bool(inputs.get(f"{key}_transpose", False))
    return default, False


def _stage_logger(outdir: Path, stage: str) -> logging.Logger:
    return setup_logger(outdir / "logs" / f"{stage}.log", LOGGER_NAME)


def run_assemble_stage(config_path: str) -> dict[str, str]:
    """Build tumor/normal expression and miRNA matrices from quantification files."""
    cfg = load_json_config(config_path)
    outdir = _outdir(cfg)
    logger = _stage_logger(outdir, "assemble")
    section = cfg.get("assemble")
    if not section:
        raise KeyError("Config requires an 'assemble' section for this stage.")
    rule = class_rule_from_dict(cfg.get("class_rule"))

    written: dict[str, str] = {}
    for kind, default_preset in (("gene", "star_tpm"), ("mirna", "mirna_rpm")):
        preset_name = section.get(f"{kind}_preset", default_preset)
        if preset_name not in PRESETS:
            raise ValueError(f"Unknown preset '{preset_name}'. Options: {sorted(PRESETS)}")
        spec = PRESETS[preset_name]
        sheet = read_sample_sheet(section[f"{kind}_sample_sheet"])
        matrix = read_quantification_dir(section[f"{kind}_dir"], sheet, spec)
        if spec.counts and kind == "gene":
            if not section.get("gene_lengths"):
                raise KeyError(f"Preset '{preset_name}' requires assemble.gene_lengths.")
            matrix = counts_to_tpm(matrix, read_gene_lengths(section["gene_lengths"]))
            logger.info("Converted gene counts to TPM.")
        elif spec.counts:
            matrix = counts_to_rpm(matrix)
            logger.info("Converted miRNA counts to RPM.")
        matrix = filter_by_class(matrix, rule)
        name = "expression" if kind == "gene" else "mirna"
        path = write_matrix(outdir / "matrices" / f"{name}.csv", matrix)
        logger.info("Wrote %s matrix %s to %s", name, matrix.shape, path)
        written[name] = path.as_posix()
    return written


def run_embed_stage(config_path: str) -> PASResult:
    """Per-pathway Isomap embedding into a PAS matrix."""
    cfg = load_json_config(config_path)
    outdir = _outdir(cfg)
    logger = _stage_logger(outdir, "embed")
    embed_cfg = embed_config_from_dict(cfg.get("embed"))

    expr_path, transpose = _matrix_path(cfg, "expression", outdir / "matrices" / "expression.csv")
    expr = read_matrix(expr_path, transpose=transpose)
    inputs = cfg.get("inputs", {})
    if "gene_sets" not in inputs:
        raise KeyError("Config requires inputs.gene_sets (GMT file).")
    gene_sets = read_gene_sets(inputs["gene_sets"], min_size=int(inputs.get("min_set_size", 1)))
    logger.info(
        "Expression %s; %d gene sets from %s", expr.shape, len(gene_sets), inputs["gene_sets"]
    )

    check_compute_budget(
        n_pathways=len(gene_sets),
        max_pathways=embed_cfg.max_pathways,
        strict=embed_cfg.strict_budget,
    )
    result = compute_pas_matrix(expr, gene_sets, embed_cfg)
    for failure in result.failures:
        logger.warning("Pathway %s skipped: %s", failure.pathway, failure.message)
    save_pas_result(outdir / "pas", result)
    logger.info("PAS matrix %s written to %s", result.pas.shape, (outdir / "pas").as_posix())
    return result


def run_score_stage(config_path: str) -> CorrelationResult:
    """Differential miRNA-PAS correlation with permutation p-values."""
    cfg = load_json_config(config_path)
    outdir = _outdir(cfg)
    logger = _stage_logger(outdir, "score")
    score_cfg = score_config_from_dict(cfg.get("score"), cfg.get("class_rule"))

    mirna_path, transpose = _matrix_path(cfg, "mirna", outdir / "matrices" / "mirna.csv")
    mirna = read_matrix(mirna_path, transpose=transpose)
    pas = load_pas_result(outdir / "pas").pas
    logger.info("miRNA %s; PAS %s", mirna.shape, pas.shape)

    result = score_disruption(mirna, pas, score_cfg)
    res_dir = outdir / "disruption"
    save_correlation_result(res_dir, result)
    table = disruption_table(result)
    table.to_csv(res_dir / "disruption_table.csv", index=False)
    plot_pvalue_qq(result.pvals.to_numpy(), res_dir / "pvalue_qq.png", "Permutation p-values")
    n_sig = int((table["q_value"] <= float(cfg.get("plot", {}).get("q_threshold", 0.05))).sum())
    logger.info(
        "Scored %d pairs on %d samples; %d pairs at q<=threshold.",
        int(result.diffs.size),
        len(result.common_samples),
        n_sig,
    )
    return result


def _selected_pairs(
    plot_cfg: dict[str, Any], result: CorrelationResult, logger: logging.Logger
) -> list[tuple[str, str]]:
    requested = [(str(m), str(p)) for m, p in plot_cfg.get("pairs", [])]
    if requested:
        pairs = []
        for mirna_id, pathway_id in requested:
            if pathway_id in result.diffs.index and mirna_id in result.diffs.columns:
                pairs.append((mirna_id, pathway_id))
            else:
                logger.warning("Pair %s / %s was not scored; skipping.", mirna_id, pathway_id)
        return pairs
    top_n = int(plot_cfg.get("top_n", 5))
    table = disruption_table(result).dropna(subset=["p_value"]).head(top_n)
    return list(zip(table["mirna"].astype(str), table["pathway"].astype(str)))


def run_plot_stage(config_path: str) -> list[Path]:
    """Render miRNA-vs-PAS figures, k-selection curves and pair nulls."""
    cfg = load_json_config(config_path)
    outdir = _outdir(cfg)
    logger = _stage_logger(outdir, "plot")
    plot_cfg = cfg.get("plot", {})
    score_cfg = score_config_from_dict(cfg.get("score"), cfg.get("class_rule"))
    rule = score_cfg.class_rule
    apply_plot_style()

    mirna_path, transpose = _matrix_path(cfg, "mirna", outdir / "matrices" / "mirna.csv")
    mirna = read_matrix(mirna_path, transpose=transpose)
    pas_result = load_pas_result(outdir / "pas")
    result = load_correlation_result(outdir / "disruption")
    embeddings = {emb.pathway: emb for emb in pas_result.embeddings}

    fig_dir = outdir / "figures"
    ensure_dir(fig_dir)
    written: list[Path] = []
    null_perm = int(plot_cfg.get("null_perm", 1000))
    for mirna_id, pathway_id in _selected_pairs(plot_cfg, result, logger):
        frame = build_pair_frame(
            mirna, pas_result.pas, mirna_id, pathway_id, rule, result.common_samples
        )
        out_png = fig_dir / f"pair_{pair_stem(mirna_id, pathway_id)}.png"
        corrs = plot_mirna_pathway(
            frame, mirna_id, pathway_id, out_png, log_mirna=bool(plot_cfg.get("log_mirna", True))
        )
        written.append(out_png)
        logger.info("Plotted %s vs %s: %s", mirna_id, pathway_id, corrs)

        class_sizes = frame["class"].value_counts()
        if null_perm > 0 and min(class_sizes.get("tumor", 0), class_sizes.get("normal", 0)) >= 2:
            keys = list(frame.index)
            null = pair_null(
                frame["mirna"].to_numpy(),
                frame["pas"].to_numpy(),
                tumor_mask(keys, rule),
                null_perm,
                score_cfg.seed,
                chunk_size=score_cfg.chunk_size,
            )
            null_png = fig_dir / f"null_{pair_stem(mirna_id, pathway_id)}.png"
            plot_null_distribution(
                null,
                float(result.diffs.loc[pathway_id, mirna_id]),
                null_png,
                title=f"Null: {mirna_id} / {pathway_id}",
            )
            written.append(null_png)

        emb = embeddings.get(pathway_id)
        if emb is not None and emb.k_scores:
            k_png = fig_dir / f"ksearch_{sanitize_feature_label(pathway_id, 60)}.png"
            if k_png not in written:
                plot_k_selection(emb, k_png)
                written.append(k_png)

    write_json(
        fig_dir / "manifest.json",
        {"figures": [p.name for p in written], "style": plot_style_dict()},
    )
    logger.info("Wrote %d figures to %s", len(written), fig_dir.as_posix())
    return written

