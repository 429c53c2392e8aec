"""Configuration loading utilities for pathdisrupt pipelines."""

from __future__ import annotations

import json
import warnings
from dataclasses import fields
from pathlib import Path
from typing import Any

from pathdisrupt.core.errors import ResourceExhaustionError
from pathdisrupt.core.types import ClassRule, EmbedConfig, ScoreConfig


def load_json_config(path: str | Path) -> dict[str, Any]:
    """Load and validate a pipeline config from a JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if config_path.suffix.lower() != ".json":
        raise ValueError(
            f"Unsupported config format for '{config_path}'. Use a .json config file."
        )

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config '{config_path}' at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}"
        ) from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid config root in '{config_path}': expected JSON object, got {type(data).__name__}."
        )
    return data


def _check_keys(section: str, payload: dict[str, Any], allowed: set[str]) -> None:
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ValueError(f"Unknown key(s) in '{section}' config: {', '.join(unknown)}")


def class_rule_from_dict(payload: dict[str, Any] | None) -> ClassRule:
    data = dict(payload or {})
    _check_keys("class_rule", data, {f.name for f in fields(ClassRule)})
    for key in ("tumor_codes", "normal_codes"):
        if key in data:
            lo, hi = data[key]
            data[key] = (int(lo), int(hi))
    if data.get("key_length") is not None:
        data["key_length"] = int(data["key_length"])
    return ClassRule(**data)


def embed_config_from_dict(payload: dict[str, Any] | None) -> EmbedConfig:
    data = dict(payload or {})
    _check_keys("embed", data, {f.name for f in fields(EmbedConfig)})
    if "k_candidates" in data:
        ks = data["k_candidates"]
        if isinstance(ks, dict):
            ks = range(int(ks["start"]), int(ks["stop"]) + 1, int(ks.get("step", 1)))
        data["k_candidates"] = tuple(int(k) for k in ks)
    cfg = EmbedConfig(**data)
    if cfg.ndim < 1:
        raise ValueError("embed.ndim must be >= 1.")
    if cfg.fixed_k < 1:
        raise ValueError("embed.fixed_k must be >= 1.")
    return cfg


def score_config_from_dict(
    payload: dict[str, Any] | None,
    class_rule: dict[str, Any] | None = None,
) -> ScoreConfig:
    data = dict(payload or {})
    allowed = {f.name for f in fields(ScoreConfig)} - {"class_rule"}
    _check_keys("score", data, allowed)
    cfg = ScoreConfig(**data, class_rule=class_rule_from_dict(class_rule))
    if cfg.n_perm < 1:
        raise ValueError("score.n_perm must be >= 1.")
    if cfg.min_class_size < 2:
        raise ValueError("score.min_class_size must be >= 2.")
    return cfg


def check_compute_budget(
    *,
    n_perm: int = 0,
    n_pairs: int = 0,
    n_samples: int = 0,
    n_pathways: int = 0,
    max_correlation_evaluations: float = ScoreConfig.max_correlation_evaluations,
    max_pathways: int = ScoreConfig.max_pathways,
    strict: bool = False,
) -> list[str]:
    """Flag requested work beyond the configured budget.

    Emits a `ResourceExhaustionError` warning per exceeded limit, or raises
    it when `strict`. Work is never truncated. Returns the messages.
    """
    messages: list[str] = []
    evaluations = float(n_perm) * float(n_pairs) * float(n_samples)
    if evaluations > float(max_correlation_evaluations):
        messages.append(
            f"Permutation workload {evaluations:.3g} (n_perm={n_perm} x pairs={n_pairs} "
            f"x samples={n_samples}) exceeds budget {float(max_correlation_evaluations):.3g}."
        )
    if int(n_pathways) > int(max_pathways):
        messages.append(
            f"Pathway batch of {n_pathways} exceeds max_pathways={max_pathways}."
        )
    for msg in messages:
        if strict:
            raise ResourceExhaustionError(msg)
        warnings.warn(msg, ResourceExhaustionError, stacklevel=2)
    return messages
