"""
dupfinder command line.

Usage:
    dupfinder [OPTIONS] [DIRECTORY...]

    # Find duplicates in the current directory
    dupfinder

    # Remove duplicates under ~/Pictures, keeping the oldest copy (dry run)
    dupfinder -f -k oldest -n ~/Pictures

    # Replace duplicates with hard links, JSON report saved to a file
    dupfinder -l -o json --save-report dupes.json /srv/media

Exit codes:
    0   no duplicates found, or action completed
    1   duplicates found (find only)
    2   one or more files could not be processed
    3   invalid arguments or configuration
    130 interrupted
"""

import argparse
import asyncio
import os
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

import structlog

from dupfinder import __version__
from dupfinder.config.exceptions import ConfigurationError
from dupfinder.config.logging import configure_from_env
from dupfinder.config.settings import (
    DupFinderSettings,
    apply_overrides,
    load_settings,
    resolve_config_path,
)
from dupfinder.dedup.executor import ActionExecutor, ActionResult
from dupfinder.dedup.formatting import parse_size
from dupfinder.dedup.keep_policy import ConsoleChooser, KeepPolicyResolver
from dupfinder.dedup.models import (
    ActionMode,
    DetectionMethod,
    HashAlgorithm,
    KeepPolicy,
    ReportFormat,
    ScanResult,
    ScanStats,
)
from dupfinder.dedup.pipeline import DedupPipeline
from dupfinder.dedup.report_generator import ReportGenerator
from dupfinder.dedup.scanner import DedupScanner

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_DUPLICATES_FOUND = 1
EXIT_ACTION_FAILED = 2
EXIT_CONFIG_ERROR = 3
EXIT_INTERRUPTED = 130

MAX_PARALLEL_WORKERS = 32


class DupFinderArgumentParser(argparse.ArgumentParser):
    """argparse exits 2 on bad usage; dupfinder reserves 2 for action failures."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(EXIT_CONFIG_ERROR, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = DupFinderArgumentParser(
        prog="dupfinder",
        description="Find duplicate files and optionally remove, hard-link or trash them",
    )
    parser.add_argument(
        "directories",
        nargs="*",
        metavar="DIRECTORY",
        help="Directories to scan (default: current directory)",
    )
    parser.add_argument(
        "-m",
        "--method",
        choices=[m.value for m in DetectionMethod],
        help="Detection method (default: hash)",
    )
    parser.add_argument(
        "--hash-algorithm",
        choices=[a.value for a in HashAlgorithm],
        help="Digest for the hash method (default: sha256)",
    )
    parser.add_argument("-s", "--min-size", help="Minimum file size, e.g. 100, 10K, 1M, 2G")
    parser.add_argument("-t", "--type", dest="types", help="File extensions to include, e.g. jpg,png")
    parser.add_argument("-e", "--exclude", help="Regex; matching paths are skipped")
    parser.add_argument(
        "-r",
        "--remove",
        action="store_true",
        help="Remove duplicates, asking which file to keep (unless -k is given)",
    )
    parser.add_argument(
        "-f",
        "--force-remove",
        action="store_true",
        help="Remove duplicates using the keep rule without asking",
    )
    parser.add_argument(
        "-k",
        "--keep-rule",
        choices=[p.value for p in KeepPolicy],
        help="Which file to keep in each group (default: first)",
    )
    parser.add_argument(
        "-o",
        "--output",
        choices=[f.value for f in ReportFormat],
        help="Report format (default: text)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-n", "--dry-run", action="store_true", help="Show what would be done")
    parser.add_argument("-l", "--link", action="store_true", help="Replace duplicates with hard links")
    parser.add_argument("--trash", action="store_true", help="Move duplicates to the trash")
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Re-compare content with the kept file before acting",
    )
    parser.add_argument(
        "-p",
        "--parallel",
        action="store_true",
        help="Fingerprint files in parallel",
    )
    parser.add_argument("--workers", type=int, help="Number of fingerprinting workers")
    parser.add_argument(
        "--save-report",
        metavar="FILE",
        help="Also save the report to FILE (CSV when the output format is text)",
    )
    parser.add_argument("--config", metavar="FILE", help="YAML settings file")
    parser.add_argument("--log-format", choices=["console", "json"], help="Log format (stderr)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def default_parallel_workers() -> int:
    return min(MAX_PARALLEL_WORKERS, (os.cpu_count() or 1) + 4)


def settings_from_args(args: argparse.Namespace) -> DupFinderSettings:
    """
    Merge command-line flags over the settings file.

    Raises:
        ConfigurationError: invalid size, conflicting flags, bad config file
    """
    if args.link and args.trash:
        raise ConfigurationError("--link and --trash cannot be combined")

    settings = load_settings(resolve_config_path(args.config))

    workers = args.workers
    if workers is None and args.parallel:
        workers = default_parallel_workers()

    scan_overrides = {
        "directories": [Path(d) for d in args.directories] or None,
        "method": args.method,
        "hash_algorithm": args.hash_algorithm,
        "min_file_size": parse_size(args.min_size) if args.min_size is not None else None,
        "extensions": args.types,
        "exclude_pattern": args.exclude,
        "workers": workers,
    }

    action_overrides = {}
    cli_action = args.remove or args.force_remove or args.link or args.trash

    if cli_action:
        if args.link:
            mode = ActionMode.hardlink
        elif args.trash:
            mode = ActionMode.trash
        else:
            mode = ActionMode.remove

        keep_policy = args.keep_rule
        if keep_policy is None and args.remove:
            keep_policy = KeepPolicy.interactive.value

        action_overrides = {"mode": mode, "keep_policy": keep_policy}

    if cli_action or settings.action is not None:
        action_overrides.update(
            {
                "keep_policy": action_overrides.get("keep_policy") or args.keep_rule,
                "dry_run": True if args.dry_run else None,
                "verify": True if args.verify else None,
            }
        )
        if not cli_action:
            action_overrides["mode"] = None
    elif args.keep_rule:
        logger.warning("dupfinder_keep_rule_ignored", reason="no action requested")

    report_overrides = {
        "format": args.output,
        "output_path": Path(args.save_report) if args.save_report else None,
    }

    return apply_overrides(
        settings,
        scan=scan_overrides,
        action=action_overrides,
        report=report_overrides,
    )


def build_pipeline(settings: DupFinderSettings, stdin: Optional[TextIO] = None) -> DedupPipeline:
    scanner = DedupScanner(settings.scan, progress_callback=_log_progress)

    action = settings.action
    if action is None:
        return DedupPipeline(scanner)

    chooser = None
    if action.keep_policy is KeepPolicy.interactive:
        chooser = ConsoleChooser(input_stream=stdin)

    resolver = KeepPolicyResolver(action.keep_policy, chooser=chooser)
    executor = ActionExecutor(
        mode=action.mode,
        dry_run=action.dry_run,
        verify=action.verify,
        hash_algorithm=settings.scan.hash_algorithm,
        chunk_size=settings.scan.chunk_size,
    )
    return DedupPipeline(scanner, resolver, executor)


def _log_progress(stats: ScanStats) -> None:
    logger.debug(
        "dedup_scan_progress",
        total_scanned=stats.total_scanned,
        total_skipped=stats.total_skipped,
        duplicate_groups=stats.duplicate_groups,
        current_directory=stats.current_directory,
    )


def exit_code_for(scan_result: ScanResult, action_result: Optional[ActionResult]) -> int:
    if scan_result.cancelled or (action_result is not None and action_result.cancelled):
        return EXIT_INTERRUPTED
    if action_result is not None and action_result.aborted:
        return EXIT_CONFIG_ERROR
    if action_result is not None:
        return EXIT_ACTION_FAILED if action_result.failed else EXIT_OK
    return EXIT_DUPLICATES_FOUND if scan_result.groups else EXIT_OK


def write_reports(
    settings: DupFinderSettings,
    scan_result: ScanResult,
    action_result: Optional[ActionResult],
    stdout: TextIO,
) -> None:
    generator = ReportGenerator(scan_config=settings.scan, action_config=settings.action)
    fmt = settings.report.format

    generator.write(fmt, scan_result, action_result, stream=stdout)

    if settings.report.output_path is not None:
        # Text reports are for terminals; the saved copy is CSV
        saved_fmt = ReportFormat.csv if fmt is ReportFormat.text else fmt
        generator.write(saved_fmt, scan_result, action_result, output_path=settings.report.output_path)


async def run(
    settings: DupFinderSettings,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    """
    Scan, act, report.

    Returns:
        Process exit code
    """
    stdout = stdout if stdout is not None else sys.stdout
    pipeline = build_pipeline(settings, stdin=stdin)

    def handle_interrupt(signum, frame):
        logger.warning("dupfinder_interrupt_received", signal=signum)
        pipeline.cancel()
        # A second Ctrl-C aborts immediately
        signal.signal(signal.SIGINT, signal.default_int_handler)

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        scan_result, action_result = await pipeline.run()
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    write_reports(settings, scan_result, action_result, stdout)
    if action_result is not None and action_result.aborted:
        print(f"Error: {action_result.abort_reason}", file=sys.stderr)
    return exit_code_for(scan_result, action_result)


def main(
    argv: Optional[Sequence[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    args = build_parser().parse_args(argv)
    configure_from_env(verbose=args.verbose, log_format=args.log_format)

    try:
        settings = settings_from_args(args)
        return asyncio.run(run(settings, stdin=stdin, stdout=stdout))
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    except Exception:
        logger.exception("dupfinder_unexpected_error")
        raise


if __name__ == "__main__":
    sys.exit(main())
