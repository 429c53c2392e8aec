from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest

from pathdisrupt import cli
from pathdisrupt.pipeline import stages


def _load_script_module(script_name: str):
    root = Path(__file__).resolve().parents[1]
    script_path = root / "scripts" / script_name
    spec = importlib.util.spec_from_file_location(script_name.replace(".py", ""), script_path)
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Unable to load script module: {script_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.parametrize(
    ("script_name", "runner"),
    [("run_embed.py", "run_embed_stage"), ("run_score.py", "run_score_stage")],
)
def test_stage_scripts_forward_config(monkeypatch, script_name: str, runner: str):
    module = _load_script_module(script_name)
    called: list[str] = []
    monkeypatch.setattr(module, runner, lambda config_path: called.append(config_path))

    rc = module.main(["--config", "tiny.json"])
    assert rc == 0
    assert called == ["tiny.json"]


def test_cli_dispatches_single_stage(monkeypatch):
    called: list[tuple[str, str]] = []
    monkeypatch.setattr(stages, "run_score_stage", lambda p: called.append(("score", p)))
    assert cli.main(["score", "--config", "cfg.json"]) == 0
    assert called == [("score", "cfg.json")]


def test_cli_all_runs_embed_score_plot_in_order(monkeypatch):
    called: list[str] = []
    for stage in ("embed", "score", "plot"):
        monkeypatch.setattr(
            stages, f"run_{stage}_stage", lambda p, stage=stage: called.append(stage)
        )
    assert cli.main(["all", "--config", "cfg.json"]) == 0
    assert called == ["embed", "score", "plot"]


def test_cli_requires_config():
    with pytest.raises(SystemExit):
        cli.main(["embed"])


def test_run_pipeline_stage_rejects_unknown_stage():
    from pathdisrupt import run_pipeline_stage

    with pytest.raises(ValueError, match="Unknown stage"):
        run_pipeline_stage("bogus", "cfg.json")
