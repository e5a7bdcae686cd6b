"""CLI entry point for running Cypress specs in parallel and stress testing them."""

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import Any

from rich.console import Console

from cypress_utils.aggregator import aggregate_results, count_failed_samples
from cypress_utils.engines.loading import EngineNotFoundError, load_engine_manifest
from cypress_utils.engines.manifest import EngineManifest
from cypress_utils.fan_out import FanOutAbortedError
from cypress_utils.models.settings import RunSettings
from cypress_utils.report import format_output, render_report
from cypress_utils.runner import SpecRunner
from cypress_utils.settings_loader import build_settings
from cypress_utils.spec_resolver import SpecResolutionError, resolve_specs

log = logging.getLogger("cypress_utils")


async def run(args: argparse.Namespace) -> int:
    """Resolve settings from parsed arguments, run the command, return exit code."""
    try:
        settings = await build_settings(
            command=args.command,
            identifiers=args.identifiers,
            threads=args.threads,
            trial_count=getattr(args, "trial_count", None),
            config_file_flag=args.config_file,
            config_overrides=args.config_overrides,
            spec_root=args.spec_root,
            exclude_patterns=args.exclude,
            test_files=args.test_files,
            engine=args.engine,
            engine_config=json.loads(args.engine_config),
        )
        log.info("Loading engine: %s", settings.engine)
        manifest = load_engine_manifest(settings.engine)
        engine_config = manifest.config_cls(**settings.engine_config)
    except (FileNotFoundError, ValueError, EngineNotFoundError) as e:
        log.error("Invalid configuration: %s", e)
        return 1

    return await run_command(
        settings, manifest, engine_config, as_json=args.json, console=Console()
    )


async def run_command(
    settings: RunSettings,
    manifest: EngineManifest[Any],
    engine_config: Any,
    *,
    as_json: bool = False,
    console: Console,
) -> int:
    """Resolve specs, fan out engine runs and report aggregated statistics."""
    try:
        specs = resolve_specs(
            settings.spec_root,
            settings.test_files,
            settings.identifiers,
            settings.exclude_patterns,
        )
    except SpecResolutionError as e:
        log.warning("%s", e)
        return 0

    log.info("Matched %d spec file(s): %s", len(specs), ", ".join(specs))

    started = time.monotonic()
    try:
        async with manifest.engine_factory(engine_config) as engine:
            runner = SpecRunner(
                engine=engine,
                options=settings.run_options(),
                threads=settings.threads,
            )
            if settings.command == "stress-test":
                results = await runner.stress_test(specs, settings.trial_count)
            else:
                results = await runner.run_parallel(specs)
    except FanOutAbortedError as e:
        log.error("Aborting, engine raised unexpectedly: %s", e, exc_info=e.cause)
        return 1
    elapsed_seconds = int(time.monotonic() - started)

    stats = aggregate_results(results)
    failed_samples = count_failed_samples(results)

    report_args: dict[str, Any] = {
        "command": settings.command,
        "elapsed_seconds": elapsed_seconds,
        "trial_count": settings.trial_count,
        "stats": stats,
        "failed_samples": failed_samples,
    }
    if as_json:
        print(json.dumps(format_output(**report_args), indent=2))
    else:
        render_report(console, **report_args)

    return 1 if failed_samples == len(results) else 0


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the options shared by every command."""
    parser.add_argument(
        "identifiers",
        nargs="*",
        help="Case-insensitive substrings or globs selecting spec files (all if none)",
    )
    parser.add_argument(
        "-t",
        "--threads",
        "--limit",
        dest="threads",
        type=int,
        default=None,
        help="Maximum number of parallel test runners (default: 2)",
    )
    parser.add_argument(
        "--config-file",
        default=None,
        help="Cypress config file, or 'false' to disable it (default: cypress.json)",
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="config_overrides",
        default=None,
        help="Inline Cypress config overrides (key=value,key2=value2)",
    )
    parser.add_argument(
        "--spec-root",
        default=None,
        help="Directory searched for spec files (default: cypress/integration)",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=None,
        help="Glob of spec files to skip, may be repeated",
    )
    parser.add_argument(
        "--test-files",
        default=None,
        help="Glob of candidate spec files under the spec root (default: **/*.*)",
    )
    parser.add_argument(
        "--engine",
        default="cypress",
        help="Execution engine key",
    )
    parser.add_argument(
        "--engine-config",
        default="{}",
        help="JSON configuration for the engine",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the aggregated statistics as JSON",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with both commands."""
    parser = argparse.ArgumentParser(
        prog="cypress-utils",
        description="Run Cypress specs in parallel or stress test them",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    run_parallel = subparsers.add_parser(
        "run-parallel", help="Run each matched spec file in its own Cypress run"
    )
    add_common_arguments(run_parallel)

    stress_test = subparsers.add_parser(
        "stress-test", help="Run the matched spec files repeatedly"
    )
    add_common_arguments(stress_test)
    stress_test.add_argument(
        "-n",
        "--trial-count",
        "--count",
        dest="trial_count",
        type=int,
        default=None,
        help="Number of trial attempts to run the specs (default: 4)",
    )

    return parser


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help(sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(run(args))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
