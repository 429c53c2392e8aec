"""Command-line interface for the pathdisrupt batch stages."""

from __future__ import annotations

import argparse
from typing import Iterable

STAGES = ("assemble", "embed", "score", "plot")

_HELP = {
    "assemble": "Build tumor/normal expression and miRNA matrices from GDC files",
    "embed": "Per-pathway Isomap embedding into a PAS matrix",
    "score": "Differential miRNA-PAS correlation with permutation p-values",
    "plot": "Render miRNA-vs-PAS figures and diagnostics",
}


def _run_stage(stage: str, config_path: str) -> None:
    from pathdisrupt.pipeline import stages

    runner = getattr(stages, f"run_{stage}_stage")
    runner(config_path)


def main(argv: Iterable[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(description="pathdisrupt CLI")
    sub = parser.add_subparsers(dest="command", required=True)
    for stage in STAGES:
        sp = sub.add_parser(stage, help=_HELP[stage])
        sp.add_argument("--config", required=True, help="Path to JSON pipeline config")
    all_p = sub.add_parser("all", help="Run embed, score and plot in sequence")
    all_p.add_argument("--config", required=True, help="Path to JSON pipeline config")

    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.command == "all":
        for stage in ("embed", "score", "plot"):
            _run_stage(stage, args.config)
        return 0
    _run_stage(args.command, args.config)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
