"""
Command-line entry point

Reviews local Git changes with a locally hosted model and prints the
findings grouped by file.
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import CONFIG_FILE_NAMES, AppConfig, ConfigManager
from .exceptions import ReviewError
from .formatting.report import ReportFormatter
from .git.source import COMMIT_RANGE, STAGED, WORKING_TREE, GitSource
from .llm.client import ModelClient
from .review.aggregator import FailedFile, SkippedFile
from .review.eligibility import EligibilityDecision
from .review.pipeline import ProgressEvent, ReviewPipeline


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-code-review",
        description="AI-assisted review of local Git changes",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    review_parser = subparsers.add_parser("review", help="Analyze code changes")
    scope = review_parser.add_mutually_exclusive_group()
    scope.add_argument("-s", "--staged", action="store_true", help="Analyze staged changes")
    scope.add_argument("-c", "--commit", metavar="SHA", help="Analyze a specific commit")
    review_parser.add_argument("--base", metavar="SHA", help="Compare the commit against this base")
    review_parser.add_argument("--config", metavar="PATH", help="Path to configuration file")
    review_parser.add_argument("-q", "--quiet", action="store_true", help="Quiet mode (findings only)")
    review_parser.add_argument(
        "--no-health-check",
        action="store_true",
        help="Skip the model service health check",
    )
    review_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    health_parser = subparsers.add_parser("health", help="Check model service status")
    health_parser.add_argument("--config", metavar="PATH", help="Path to configuration file")

    config_parser = subparsers.add_parser("config", help="Show current configuration")
    config_parser.add_argument("--init", action="store_true", help="Create a configuration file")
    config_parser.add_argument("--config", metavar="PATH", help="Path to configuration file")

    return parser


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load, validate and activate the configuration (logging included)."""
    return ConfigManager(AppConfig.load(config_path)).config


def print_remediation(hints: List[str]) -> None:
    if not hints:
        return
    print("\nSuggestions:", file=sys.stderr)
    for i, hint in enumerate(hints, 1):
        print(f"  {i}. {hint}", file=sys.stderr)


def print_progress(event: ProgressEvent) -> None:
    outcome = event.outcome
    if isinstance(outcome, SkippedFile):
        status = "skipped (binary)" if outcome.decision is EligibilityDecision.SKIP_BINARY else "skipped (too large)"
    elif isinstance(outcome, FailedFile):
        status = "failed"
    else:
        status = "done"
    print(f"[{event.index}/{event.total}] {event.path}: {status}", file=sys.stderr)


class CancellationHandler:
    """
    Turns SIGINT/SIGTERM into a cancellation event.

    The first signal asks the run loop to stop before the next request;
    a second SIGINT falls back to KeyboardInterrupt.
    """

    def __init__(self):
        self.event = threading.Event()
        self._previous = {}

    def _handle(self, signum, frame):
        if self.event.is_set() and signum == signal.SIGINT:
            raise KeyboardInterrupt
        logger.warning(f"Received signal {signum}, stopping after the current file")
        print("\nStopping after the current file...", file=sys.stderr)
        self.event.set()

    def __enter__(self):
        if threading.current_thread() is threading.main_thread():
            for signum in (signal.SIGINT, signal.SIGTERM):
                self._previous[signum] = signal.signal(signum, self._handle)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()


def run_review(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    pipeline_config = config.pipeline()

    if args.commit:
        mode = COMMIT_RANGE
    elif args.staged:
        mode = STAGED
    else:
        mode = WORKING_TREE

    source = GitSource()
    source.validate_repository()

    with ModelClient(pipeline_config) as client:
        pipeline = ReviewPipeline(pipeline_config, client=client)
        records = pipeline.collect(source, mode, commit=args.commit, base=args.base)

        if not records:
            print("No changes found for analysis")
            return EXIT_OK

        if not args.no_health_check:
            if not args.quiet:
                print(f"Checking model {pipeline_config.model_name}...", file=sys.stderr)
            pipeline.preflight()

        if not args.quiet:
            print(f"Found {len(records)} files for analysis", file=sys.stderr)

        with CancellationHandler() as cancellation:
            report = pipeline.run(
                records,
                observer=None if args.quiet else print_progress,
                cancel_event=cancellation.event,
            )

    formatter = ReportFormatter(quiet=args.quiet)
    print(formatter.format_json(report) if args.json else formatter.format(report))

    if report.interrupted:
        return EXIT_INTERRUPTED
    return EXIT_FAILURE if report.has_errors else EXIT_OK


def run_health(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    pipeline_config = config.pipeline()

    with ModelClient(pipeline_config) as client:
        health = client.probe_health()

    if health.healthy:
        print(f"Model service is working correctly ({pipeline_config.model_name})")
        return EXIT_OK

    print(f"Error: {health.error}", file=sys.stderr)
    print_remediation([
        "The model service is running: ollama serve",
        f"The model is downloaded: ollama pull {pipeline_config.model_name}",
        f"The URL is correct: {pipeline_config.model_url}",
    ])
    return EXIT_FAILURE


def run_config(args: argparse.Namespace) -> int:
    if args.init:
        target = Path.cwd() / CONFIG_FILE_NAMES[0]
        if target.exists():
            print(f"Configuration file already exists: {target}", file=sys.stderr)
            return EXIT_FAILURE
        target.write_text(AppConfig().to_yaml(), encoding="utf-8")
        print(f"Configuration file created: {target}")
        return EXIT_OK

    config = load_config(args.config)
    print(config.to_yaml(), end="")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_FAILURE

    handlers = {
        "review": run_review,
        "health": run_health,
        "config": run_config,
    }

    try:
        return handlers[args.command](args)
    except ReviewError as e:
        print(f"Error: {e}", file=sys.stderr)
        print_remediation(e.remediation)
        return EXIT_FAILURE
    except (ValueError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
