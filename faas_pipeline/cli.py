"""Command-line interface for running and checking pipeline definitions.

Usage::

    faas-pipeline run pipeline.json --payload payload.json
    faas-pipeline validate pipeline.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import httpx

from .config import PipelineSettings
from .errors import FaasPipelineError
from .session import FaasPipeline

EXIT_OK = 0
EXIT_PIPELINE_ERROR = 1
EXIT_BAD_INPUT = 2


class InputError(Exception):
    """A definition or payload file could not be read as JSON."""


def _read_json(source: str) -> Any:
    try:
        text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise InputError(f"cannot read {source}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InputError(f"{source} is not valid JSON: {exc}") from exc


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=logging.getLevelName(level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _print_metrics(fn_id: str, records: List[dict]) -> None:
    print(json.dumps({"fnId": fn_id, "metrics": records}), file=sys.stderr)


def cmd_run(args, client: Optional[httpx.AsyncClient] = None) -> int:
    """Run a pipeline and print its result."""
    try:
        pipeline_root = _read_json(args.pipeline)
        payload = _read_json(args.payload) if args.payload else {}
    except InputError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_BAD_INPUT

    settings = args.settings
    if args.gateway:
        settings.gateway_url = args.gateway
    if args.timeout is not None:
        settings.timeout = args.timeout

    pipeline = FaasPipeline.from_settings(settings, pipeline_root, client=client)
    if args.metrics:
        pipeline.on_metrics(_print_metrics)

    try:
        result = asyncio.run(pipeline.run(payload))
    except FaasPipelineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_PIPELINE_ERROR

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return EXIT_OK


def cmd_validate(args) -> int:
    """Check a pipeline definition without calling any function."""
    try:
        pipeline_root = _read_json(args.pipeline)
    except InputError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_BAD_INPUT

    try:
        FaasPipeline(args.settings.gateway_url, pipeline_root).validate()
    except FaasPipelineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_PIPELINE_ERROR

    print("ok")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="faas-pipeline",
        description="Run split/pipe pipelines of remote functions",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Run command
    run_parser = subparsers.add_parser("run", help="Run a pipeline definition")
    run_parser.add_argument("pipeline", help="Pipeline definition (JSON file)")
    run_parser.add_argument(
        "--payload",
        "-p",
        help="Initial payload (JSON file, '-' for stdin; default: {})",
    )
    run_parser.add_argument(
        "--gateway",
        "-g",
        help="Function gateway URL (default: $FAAS_GATEWAY_URL)",
    )
    run_parser.add_argument(
        "--timeout",
        "-t",
        type=float,
        help="Per-call timeout in seconds (default: none)",
    )
    run_parser.add_argument(
        "--metrics",
        "-m",
        action="store_true",
        help="Print metric events to stderr",
    )

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate", help="Check a pipeline definition"
    )
    validate_parser.add_argument("pipeline", help="Pipeline definition (JSON file)")

    return parser


def main(
    argv: Optional[List[str]] = None, *, client: Optional[httpx.AsyncClient] = None
) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        args.settings = PipelineSettings.from_env()
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_BAD_INPUT

    _setup_logging("DEBUG" if args.verbose else args.settings.log_level)

    if args.command == "run":
        return cmd_run(args, client=client)
    return cmd_validate(args)


if __name__ == "__main__":
    sys.exit(main())
