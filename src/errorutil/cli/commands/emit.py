"""`errorutil emit` command implementation."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Any

from rich.console import Console

from errorutil.config import ConfigError, resolve_config
from errorutil.formatting import build_envelope, build_record
from errorutil.payloads import classify_payload
from errorutil.reporter import ErrorReporter
from errorutil.transport import HttpLogSink
from errorutil.types import ResponseError, Severity


def add_subparser(subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
    """Register the `emit` command."""
    parser = subparsers.add_parser("emit", help="Send one error record to the log backend.")
    parser.add_argument("--message", required=True, help="Error message.")
    parser.add_argument("--context", default=None, help="Context label, e.g. the calling component.")
    parser.add_argument("--object-type", default=None, help="Related domain object, e.g. Account.")
    parser.add_argument("--severity", choices=[Severity.MED.value, Severity.HIGH.value], default=Severity.MED.value)
    parser.add_argument("--status", type=int, default=None, help="Send as a response error with this status.")
    parser.add_argument("--status-text", default=None, help="Reason phrase for --status.")
    parser.add_argument("--url", default=None, help="Log endpoint; overrides configuration.")
    parser.add_argument("--root", default=None, help="Directory holding errorutil.yaml / config.yaml.")
    parser.add_argument("--dry-run", action="store_true", help="Print the envelope instead of sending it.")
    parser.set_defaults(command="emit")
    return parser


def build_payload(args: argparse.Namespace) -> Any:
    """Turn CLI arguments into an error payload."""
    if args.status is not None:
        return ResponseError(args.status, args.status_text, {"message": args.message})
    return RuntimeError(args.message)


def run(args: argparse.Namespace) -> None:
    """Execute the `emit` command."""
    root = Path(args.root) if getattr(args, "root", None) else Path.cwd()
    cfg = resolve_config(root)
    payload = build_payload(args)
    severity = Severity(args.severity)

    if args.dry_run:
        record = build_record(
            classify_payload(payload),
            severity=severity,
            context_type=args.context,
            object_type=args.object_type,
            record_url=cfg.record_url,
        )
        Console().print_json(data=build_envelope(record, cfg))
        return

    url = args.url or cfg.endpoint_url
    if not url:
        raise ConfigError("No log endpoint. Pass --url or set ERRORUTIL_ENDPOINT_URL.")

    reporter = ErrorReporter(sink=HttpLogSink(url, timeout=cfg.timeout), cfg=cfg)
    try:
        asyncio.run(reporter.submit(payload, severity, args.context, args.object_type))
    except Exception as exc:
        Console(stderr=True).print(f"Submission failed: {type(exc).__name__}: {exc}", markup=False)
        raise SystemExit(1) from exc
    Console().print(f"Submitted {severity.value} record to {url}", markup=False)
