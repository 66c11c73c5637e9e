"""CLI entry point for flakehunt."""

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from importlib.metadata import version
from pathlib import Path

from flakehunt.adapters.loading import (
    AdapterNotFoundError,
    detect_adapter,
    load_adapter_manifest,
)
from flakehunt.adapters.manifest import AdapterManifest
from flakehunt.aggregation import aggregate
from flakehunt.config import (
    DEFAULT_OUT_DIR,
    ConfigurationError,
    FileConfig,
    SessionConfig,
    load_config_file,
    parse_duration,
)
from flakehunt.orchestrator import RunOrchestrator
from flakehunt.reporting.builder import build_report
from flakehunt.reporting.json_report import render_json, write_json_report
from flakehunt.reporting.markdown import write_markdown_report
from flakehunt.reporting.summary import log_report_summary

EXIT_SUCCESS = 0
EXIT_TOOL_ERROR = 1
EXIT_FLAKES_FOUND = 2

COMMAND_SEPARATOR = "--"


def resolve_adapter(
    tool: str | None, command: Sequence[str]
) -> tuple[str, AdapterManifest]:
    """Load the adapter named by ``tool``, or detect it from the command."""
    if tool:
        return tool, load_adapter_manifest(tool)
    return detect_adapter(command)


async def run(
    command: Sequence[str],
    runs: int,
    timeout: float | None = None,
    out_dir: Path = DEFAULT_OUT_DIR,
    keep_runs: int = 0,
    tool: str | None = None,
    target: str | None = None,
    fail_on_flake: bool = True,
    json_output: bool = False,
) -> int:
    """Run a flake-hunting session and return the exit code."""
    log = logging.getLogger("flakehunt")

    try:
        config = SessionConfig.create(
            runs=runs,
            timeout=timeout,
            out_dir=out_dir,
            keep_runs=keep_runs,
            command=command,
        )
        tool_key, manifest = resolve_adapter(tool, command)
    except (ConfigurationError, AdapterNotFoundError) as e:
        log.error("%s", e)
        return EXIT_TOOL_ERROR

    # Keep stdout clean for the JSON document.
    orchestrator = RunOrchestrator(
        config=config,
        adapter=manifest.adapter_factory(),
        stdout=sys.stderr if json_output else None,
    )

    log.info("Running %d iteration(s) with %s...", config.runs, tool_key)
    with cancel_on_signals(orchestrator, log):
        try:
            result = await orchestrator.run()
        except RuntimeError as e:
            log.error("%s", e)
            return EXIT_TOOL_ERROR

    failed_runs = len(result.records) - len(result.successful_records)
    if failed_runs:
        log.warning(
            "%d of %d run(s) produced no usable results",
            failed_runs,
            result.runs_executed,
        )

    report = build_report(
        tool=tool_key,
        target=target or " ".join(command),
        runs_executed=result.runs_executed,
        tests=aggregate(result.records),
    )

    for writer in (write_json_report, write_markdown_report):
        try:
            path = writer(result.latest_dir, report)
            log.info("Report written to %s", path)
        except OSError as e:
            log.warning("Failed to write report: %s", e)

    log_report_summary(log, report, result.latest_dir)

    if json_output:
        print(render_json(report))

    if fail_on_flake and report.flaky_count > 0:
        return EXIT_FLAKES_FOUND
    return EXIT_SUCCESS


CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def cancel_on_signals(
    orchestrator: RunOrchestrator, log: logging.Logger
) -> Generator[None]:
    """Turn SIGINT/SIGTERM into a cancellation request while active."""
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []

    def handle() -> None:
        log.warning("Interrupted, stopping...")
        orchestrator.cancel()

    for sig in CANCEL_SIGNALS:
        try:
            loop.add_signal_handler(sig, handle)
        except NotImplementedError:
            log.debug("Signal handling unavailable for %s", sig.name)
        else:
            installed.append(sig)

    try:
        yield
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def split_command(argv: Sequence[str]) -> tuple[Sequence[str], Sequence[str]]:
    """Split arguments into flakehunt flags and the test command after ``--``.

    Raises:
        ConfigurationError: If there is no ``--`` separator

    """
    if COMMAND_SEPARATOR not in argv:
        raise ConfigurationError(
            "Test command required after --. "
            "Usage: flakehunt [flags] -- <test command>"
        )
    index = list(argv).index(COMMAND_SEPARATOR)
    return argv[:index], argv[index + 1 :]


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for flakehunt flags."""
    parser = argparse.ArgumentParser(
        prog="flakehunt",
        description="Detect flaky tests by running a test command repeatedly",
        epilog=(
            "Exit codes: 0 no flakes detected, 1 tool error, "
            "2 flaky tests detected (with --fail-on-flake)"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {version('flakehunt')}",
    )
    parser.add_argument("--runs", type=int, help="Number of repetitions (required)")
    parser.add_argument(
        "--timeout", help="Max total runtime, e.g. '90s', '5m' (0 disables)"
    )
    parser.add_argument(
        "--out", type=Path, help=f"Output directory (default: {DEFAULT_OUT_DIR})"
    )
    parser.add_argument(
        "--keep-runs",
        type=int,
        help="Number of run directories to keep (0 keeps all)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the report JSON to stdout",
    )
    parser.add_argument(
        "--fail-on-flake",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Exit with code 2 if flaky tests are detected (default: on)",
    )
    parser.add_argument("--target", help="Target description for reporting")
    parser.add_argument(
        "--tool",
        help="Adapter key (jest, cypress); detected from the command if omitted",
    )
    parser.add_argument(
        "--config", type=Path, help="YAML file with default flag values"
    )
    return parser


async def run_from_args(args: argparse.Namespace, command: Sequence[str]) -> int:
    """Merge flags with the optional config file and run the session."""
    log = logging.getLogger("flakehunt")

    file_config = FileConfig()
    if args.config is not None:
        try:
            file_config = await load_config_file(args.config)
        except (FileNotFoundError, ValueError) as e:
            log.error("%s", e)
            return EXIT_TOOL_ERROR

    runs = args.runs if args.runs is not None else file_config.runs
    if runs is None:
        log.error("--runs is required and must be a positive integer")
        return EXIT_TOOL_ERROR

    raw_timeout = args.timeout if args.timeout is not None else file_config.timeout
    try:
        timeout = parse_duration(str(raw_timeout)) if raw_timeout is not None else None
    except ValueError as e:
        log.error("%s", e)
        return EXIT_TOOL_ERROR

    # Zero disables the timeout.
    timeout = timeout or None

    return await run(
        command=command,
        runs=runs,
        timeout=timeout,
        out_dir=_first_set(args.out, file_config.out, DEFAULT_OUT_DIR),
        keep_runs=_first_set(args.keep_runs, file_config.keep_runs, 0),
        tool=_first_set(args.tool, file_config.tool, None),
        target=_first_set(args.target, file_config.target, None),
        fail_on_flake=_first_set(
            args.fail_on_flake, file_config.fail_on_flake, True
        ),
        json_output=args.json_output,
    )


def _first_set[T](*values: T | None) -> T | None:
    return next((value for value in values if value is not None), None)


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()

    try:
        flags, command = split_command(argv)
    except ConfigurationError as e:
        if {"-h", "--help", "--version"} & set(argv):
            parser.parse_args(argv)
        logging.getLogger("flakehunt").error("%s", e)
        sys.exit(EXIT_TOOL_ERROR)

    args = parser.parse_args(flags)
    sys.exit(asyncio.run(run_from_args(args, command)))


if __name__ == "__main__":  # pragma: no cover
    main()
