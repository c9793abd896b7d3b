"""`errorutil config` command implementation."""

from __future__ import annotations

import argparse
from dataclasses import asdict
from pathlib import Path

from rich.console import Console

from errorutil.config import resolve_config


def add_subparser(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """Register the `config` command."""
    parser = subparsers.add_parser("config", help="Print the resolved reporter configuration.")
    parser.add_argument("--root", default=None, help="Directory holding errorutil.yaml / config.yaml.")
    parser.set_defaults(command="config")
    return parser


def run(args: argparse.Namespace) -> None:
    """Execute the `config` command."""
    root = Path(args.root) if getattr(args, "root", None) else Path.cwd()
    cfg = resolve_config(root)
    data = asdict(cfg)
    data.pop("env_prefix", None)
    data["log_dir"] = None if cfg.log_dir is None else str(cfg.log_dir)
    Console().print_json(data=data)
