#!/usr/bin/env python3
"""CLI entrypoint for the per-pathway Isomap PAS embedding stage."""

from __future__ import annotations

import argparse

from pathdisrupt.pipeline.stages import run_embed_stage


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the per-pathway Isomap PAS embedding stage.")
    parser.add_argument("--config", required=True, help="Path to JSON pipeline config.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    run_embed_stage(str(args.config))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
