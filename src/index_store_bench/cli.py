"""Command line entry point: list experiments or run a selection of them."""

# ruff: noqa: T201  # CLI intentionally prints the experiment listing

from __future__ import annotations

import argparse
from collections.abc import Sequence
import logging
from pathlib import Path

from pydantic import ValidationError

from index_store_bench.config import Settings
from index_store_bench.consistency import verify_assertions_enabled
from index_store_bench.engine.errors import EngineError
from index_store_bench.errors import ConfigurationError, HarnessError
from index_store_bench.experiments import EXPERIMENTS, ExperimentContext, run_experiment
from index_store_bench.observability.logging import configure_logging
from index_store_bench.observability.metrics import write_metrics
from index_store_bench.observability.tracing import init_tracing


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="index-store-bench",
        description="Benchmark and consistency harness for a pluggable text index store",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List available experiments")

    run = subparsers.add_parser("run", help="Run one or more experiments in order")
    run.add_argument("names", nargs="+", metavar="NAME", help="Experiment names (see 'list')")
    run.add_argument(
        "--metrics-out",
        type=Path,
        default=None,
        help="Write Prometheus metrics in text exposition format to this file",
    )
    run.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: INDEX_BENCH_LOG_LEVEL or info)",
    )
    run.add_argument(
        "--plain-logs",
        action="store_true",
        help="Human readable log lines instead of JSON",
    )
    return parser


def _list_experiments() -> int:
    width = max(len(name) for name in EXPERIMENTS.names())
    for registered in EXPERIMENTS:
        print(f"{registered.name:<{width}}  {registered.description}")
    return EXIT_OK


def _run(args: argparse.Namespace) -> int:
    try:
        settings = Settings()
    except ValidationError as exc:
        print(f"Error: invalid configuration: {exc}")
        return EXIT_CONFIGURATION

    configure_logging(args.log_level or settings.log_level, json_output=settings.json_logs and not args.plain_logs)
    init_tracing()

    try:
        verify_assertions_enabled()
        unknown = [name for name in args.names if name not in EXPERIMENTS]
        if unknown:
            msg = f"Unknown experiment(s): {', '.join(unknown)}"
            raise ConfigurationError(msg)

        context = ExperimentContext(settings=settings)
        for name in args.names:
            run_experiment(name, context)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIGURATION
    except (HarnessError, EngineError):
        logger.exception("Experiment run aborted")
        return EXIT_FAILURE
    finally:
        if args.metrics_out is not None:
            write_metrics(args.metrics_out)
            logger.info("Metrics written to %s", args.metrics_out)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)
    if args.command == "list":
        return _list_experiments()
    return _run(args)


if __name__ == "__main__":
    raise SystemExit(main())
