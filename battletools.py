#!/usr/bin/env python3
"""
battletools - statistics, search and anonymization over battle log archives.

Usage:
    battletools statistics DIR... [--csv out.csv] [--pretty out.txt] [--elo 1500]
    battletools search USERNAME DIR... [--wins-only] [--forfeits-only]
    battletools anonymize DIR... -o OUTPUT [--safe] [--state state.json]

Global options (before the subcommand):
    --exclude S     skip files and directories whose name contains S
    -j N            worker threads (default: CPU count, max 8)
    --no-progress   never draw the progress line
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from anonymizer import Anonymizer
from battle_search import ParticipantSearcher
from config import RunConfig, progress_enabled
from directory_walker import DirectoryWalker, LogTransformer, WalkSummary
from errors import (
    BattleToolsError,
    ConfigurationError,
    IncompleteAnonymization,
    LockInvariantViolation,
    RootDirectoryError,
)
from progress import TraversalProgress, format_time
from pseudonyms import PseudonymTracker
from statistics_collector import StatisticsCollector

MAX_LISTED_WARNINGS = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="battletools",
        description="Analyze and anonymize battle log archives.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--exclude",
        default=None,
        help="Skip files and directories whose name contains this string",
    )
    parser.add_argument(
        "-j",
        "--threads",
        type=int,
        default=None,
        help="Number of worker threads (default: CPU count, max 8)",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Don't draw the progress line",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    stats = subparsers.add_parser(
        "statistics",
        aliases=["stats", "winrates"],
        help="Win rates per species",
    )
    stats.add_argument("directories", nargs="+", type=Path)
    stats.add_argument("--csv", type=Path, default=None, help="Write CSV here")
    stats.add_argument(
        "--human-readable",
        "--pretty",
        dest="pretty",
        type=Path,
        default=None,
        help="Write a formatted table here",
    )
    stats.add_argument(
        "--minimum-elo",
        "--elo",
        dest="min_elo",
        type=float,
        default=None,
        help="Ignore battles where either player is rated below this",
    )
    stats.set_defaults(handler=run_statistics)

    search = subparsers.add_parser("search", aliases=["s"], help="Find a user's battles")
    search.add_argument("username")
    search.add_argument("directories", nargs="+", type=Path)
    search.add_argument(
        "-w", "--wins-only", action="store_true", help="Only battles the user won"
    )
    search.add_argument(
        "-f", "--forfeits-only", action="store_true", help="Only battles ending in a forfeit"
    )
    search.set_defaults(handler=run_search)

    anonymize = subparsers.add_parser("anonymize", help="Pseudonymize players")
    anonymize.add_argument("directories", nargs="+", type=Path)
    anonymize.add_argument(
        "-o", "--output", type=Path, required=True, help="Output directory"
    )
    anonymize.add_argument(
        "--safe",
        action="store_true",
        help="Refuse to write any log where a player name survives",
    )
    anonymize.add_argument(
        "--no-ratings", action="store_true", help="Remove ratings instead of rounding"
    )
    anonymize.add_argument(
        "--no-log", action="store_true", help="Empty the battle log and input log"
    )
    anonymize.add_argument(
        "--by-format",
        action="store_true",
        help="Write into one subdirectory per format",
    )
    anonymize.add_argument(
        "--state",
        type=Path,
        default=None,
        help="Load pseudonyms from (and save them to) this JSON file",
    )
    anonymize.add_argument(
        "--abort-on-leak",
        action="store_true",
        help="With --safe, stop at the first leaking log",
    )
    anonymize.set_defaults(handler=run_anonymize)

    return parser


def walk(
    transformer: LogTransformer,
    config: RunConfig,
    fail_fast: bool = False,
) -> WalkSummary:
    progress = TraversalProgress() if config.show_progress else None
    walker = DirectoryWalker(
        transformer,
        exclude=config.exclude,
        max_workers=config.worker_count(),
        fail_fast=fail_fast,
        progress=progress,
    )
    return walker.run(config.directories)


def print_summary(title: str, summary: WalkSummary, stream=None):
    stream = stream if stream is not None else sys.stderr
    print("\n" + "=" * 60, file=stream)
    print(title, file=stream)
    print("=" * 60, file=stream)
    print(f"Directories visited: {summary.directories_visited}", file=stream)
    print(f"Files processed: {summary.files_processed}", file=stream)
    if summary.excluded:
        print(f"Entries excluded: {summary.excluded}", file=stream)
    print(f"Total time: {format_time(summary.elapsed_seconds)}", file=stream)

    if summary.failures:
        print(f"\nWarnings ({len(summary.failures)}):", file=stream)
        for failure in summary.failures[:MAX_LISTED_WARNINGS]:
            print(f"  {failure.path}: {failure.error}", file=stream)
        if len(summary.failures) > MAX_LISTED_WARNINGS:
            print(
                f"  ... and {len(summary.failures) - MAX_LISTED_WARNINGS} more",
                file=stream,
            )
    print("=" * 60, file=stream)


def run_statistics(args: argparse.Namespace, config: RunConfig) -> int:
    collector = StatisticsCollector(min_elo=args.min_elo)
    summary = walk(collector, config)

    if args.csv is not None:
        args.csv.write_text(collector.to_csv(), encoding="utf-8")
        print(f"Wrote CSV to {args.csv}", file=sys.stderr)
    if args.pretty is not None:
        args.pretty.write_text(collector.to_table(), encoding="utf-8")
        print(f"Wrote table to {args.pretty}", file=sys.stderr)
    if args.csv is None and args.pretty is None:
        sys.stdout.write(collector.to_table())

    print_summary("STATISTICS COMPLETE", summary)
    return 0


def run_search(args: argparse.Namespace, config: RunConfig) -> int:
    searcher = ParticipantSearcher(
        args.username,
        wins_only=args.wins_only,
        forfeits_only=args.forfeits_only,
    )
    summary = walk(searcher, config)
    print_summary("SEARCH COMPLETE", summary)
    return 0


def run_anonymize(args: argparse.Namespace, config: RunConfig) -> int:
    if args.state is not None and args.state.exists():
        tracker = PseudonymTracker.load(args.state)
        print(
            f"Loaded {len(tracker)} pseudonyms from {args.state}", file=sys.stderr
        )
    else:
        tracker = PseudonymTracker()

    args.output.mkdir(parents=True, exist_ok=True)
    anonymizer = Anonymizer(
        tracker=tracker,
        strict=args.safe,
        keep_ratings=not args.no_ratings,
        strip_logs=args.no_log,
        output_dir=args.output,
        group_by_format=args.by_format,
    )

    try:
        summary = walk(anonymizer, config, fail_fast=args.abort_on_leak)
    except IncompleteAnonymization as e:
        print(f"\nAborted: {e}", file=sys.stderr)
        print("No anonymized logs were written.", file=sys.stderr)
        return 1

    if args.state is not None:
        tracker.save(args.state)

    print_summary("ANONYMIZATION COMPLETE", summary)
    print(f"Output directory: {args.output}", file=sys.stderr)
    print(f"Logs written: {len(anonymizer.written)}", file=sys.stderr)
    print(f"Players seen: {len(tracker)}", file=sys.stderr)

    leaks = [
        f.error for f in summary.fatal_failures if isinstance(f.error, IncompleteAnonymization)
    ]
    if leaks:
        print(
            f"\nIdentifying information left in {len(leaks)} log(s); not written:",
            file=sys.stderr,
        )
        for leak in leaks:
            print(f"  {leak.room_id}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    show_progress = not args.no_progress and progress_enabled(sys.stderr)
    try:
        config = RunConfig(
            directories=args.directories,
            exclude=args.exclude,
            max_workers=args.threads,
            show_progress=show_progress,
        )
        return args.handler(args, config)
    except (ConfigurationError, RootDirectoryError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except LockInvariantViolation as e:
        print(f"\nInternal error, run aborted: {e}", file=sys.stderr)
        return 1
    except BattleToolsError as e:
        print(f"\nError during processing: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
