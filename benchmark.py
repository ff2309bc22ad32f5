#!/usr/bin/env python3
"""
Performance benchmarking for battle-log-tools.

Tracks and records:
- Memory usage over time (background psutil sampling)
- Wall time and throughput (files/s, MB/s) for each analysis

Usage:
    python benchmark.py --files 5000 [--output report.json] [-j 4]

Builds a synthetic archive (two day directories of generated battles), runs
statistics, search and anonymize over it, and prints a report.
"""

import argparse
import json
import sys
import tempfile
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import psutil

from anonymizer import Anonymizer
from battle_search import ParticipantSearcher
from config import get_available_memory_mb, resolve_worker_count
from directory_walker import DirectoryWalker, LogTransformer
from progress import format_time
from pseudonyms import PseudonymTracker
from statistics_collector import StatisticsCollector

DAY_DIRECTORIES = ("2020-11-20", "2020-11-21")
PLAYER_POOL = 50
SEARCHED_PLAYER = "Player 7"

TEAMS = (
    ("Rotom-Fan", "Regirock", "Conkeldurr", "Reuniclus", "Incineroar", "Miltank"),
    ("Drednaw", "Pinsir", "Pikachu-Sinnoh", "Latios", "Entei", "Exeggutor-Alola"),
)


@dataclass
class MemorySample:
    """A single memory measurement."""
    timestamp: float
    available_mb: float
    used_mb: float


@dataclass
class ModeMetrics:
    """Timing for one analysis over the synthetic archive."""
    name: str
    duration_seconds: float = 0.0
    files_processed: int = 0
    failures: int = 0
    bytes_processed: int = 0

    @property
    def files_per_second(self) -> float:
        if self.duration_seconds <= 0:
            return 0.0
        return self.files_processed / self.duration_seconds

    @property
    def throughput_mb_s(self) -> float:
        if self.duration_seconds <= 0:
            return 0.0
        return (self.bytes_processed / (1024 * 1024)) / self.duration_seconds


@dataclass
class BenchmarkReport:
    """Complete benchmark report."""
    total_files: int
    total_size_mb: float
    workers: int

    modes: dict = field(default_factory=dict)

    # Memory
    peak_memory_mb: float = 0.0
    min_available_memory_mb: float = 0.0

    # System info
    cpu_count: int = 0
    platform: str = ""
    initial_available_memory_mb: float = 0.0


class MemoryMonitor:
    """Background thread that samples memory usage."""

    def __init__(self, interval_seconds: float = 0.5):
        self.interval = interval_seconds
        self.samples: list[MemorySample] = []
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.start_time = 0.0

    def start(self):
        self.start_time = time.time()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._monitor_loop, daemon=True)
        self._thread.start()

    def stop(self):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2.0)

    def _monitor_loop(self):
        while not self._stop_event.is_set():
            self.samples.append(self._take_sample())
            self._stop_event.wait(self.interval)

    def _take_sample(self) -> MemorySample:
        mem = psutil.virtual_memory()
        return MemorySample(
            timestamp=time.time() - self.start_time,
            available_mb=mem.available / (1024 * 1024),
            used_mb=mem.used / (1024 * 1024),
        )

    def get_peak_used(self) -> float:
        """Get peak memory used in MB."""
        if not self.samples:
            return 0.0
        return max(s.used_mb for s in self.samples)

    def get_min_available(self) -> float:
        """Get minimum available memory in MB."""
        if not self.samples:
            return 0.0
        return min(s.available_mb for s in self.samples)


def synthetic_battle(number: int) -> dict:
    """A plausible rated battle between two players from a small pool."""
    p1 = f"Player {number % PLAYER_POOL}"
    # 7n + 1 and n never agree mod 50, so the players always differ
    p2 = f"Player {(number * 7 + 1) % PLAYER_POOL}"
    winner = p1 if number % 3 else p2
    return {
        "winner": winner,
        "seed": [number, 2, 3, 4],
        "turns": 20 + number % 30,
        "p1": p1,
        "p2": p2,
        "p1team": [{"species": species} for species in TEAMS[number % 2]],
        "p2team": [{"species": species} for species in TEAMS[(number + 1) % 2]],
        "log": [
            f"|j|☆{p1}",
            f"|j|☆{p2}",
            f"|player|p1|{p1}|cynthia|1400",
            f"|player|p2|{p2}|cynthia|1100",
            "|gametype|singles",
            "|gen|8",
            "|tier|[Gen 8] Random Battle",
            "|rated|",
            f"|c|☆{p1}|gl hf",
            "|turn|1",
            f"|move|p1a: {TEAMS[number % 2][0]}|Volt Switch|p2a: {TEAMS[(number + 1) % 2][0]}",
            f"|win|{winner}",
        ],
        "inputLog": [
            '>start {"formatid":"gen8randombattle"}',
            f'>player p1 {{"name":"{p1}"}}',
            f'>player p2 {{"name":"{p2}"}}',
            ">p1 move 1",
        ],
        "p1rating": {"elo": 1000 + number % 700, "rpr": 1474.7, "rprd": 115.09},
        "p2rating": {"elo": 1000 + (number * 3) % 700, "rpr": 1434.9, "rprd": 109.8},
        "endType": "forfeit" if number % 10 == 0 else "normal",
        "timestamp": "Sat Nov 21 2020 17:05:04 GMT-0500 (Eastern Standard Time)",
        "roomid": f"battle-gen8randombattle-{number}",
        "format": "gen8randombattle",
    }


def create_synthetic_archive(file_count: int, root: Path) -> int:
    """Write `file_count` battles split across the day directories; returns bytes."""
    print(f"Creating synthetic archive ({file_count} battles)...")
    written_bytes = 0
    for day in DAY_DIRECTORIES:
        (root / day).mkdir(parents=True, exist_ok=True)
    for number in range(1, file_count + 1):
        day = DAY_DIRECTORIES[number % len(DAY_DIRECTORIES)]
        path = root / day / f"battle-gen8randombattle-{number}.log.json"
        content = json.dumps(synthetic_battle(number), ensure_ascii=False)
        path.write_text(content, encoding="utf-8")
        written_bytes += len(content.encode("utf-8"))
    print(f"  Total size: {written_bytes / (1024 * 1024):.1f} MB")
    return written_bytes


def time_mode(
    name: str,
    transformer: LogTransformer,
    root: Path,
    workers: int,
    total_bytes: int,
) -> ModeMetrics:
    print(f"Running {name}...")
    walker = DirectoryWalker(transformer, max_workers=workers, error_stream=sys.stderr)
    start_time = time.time()
    summary = walker.run([root])
    metrics = ModeMetrics(
        name=name,
        duration_seconds=time.time() - start_time,
        files_processed=summary.files_processed,
        failures=len(summary.failures),
        bytes_processed=total_bytes,
    )
    print(f"  {format_time(metrics.duration_seconds)} ({metrics.files_per_second:.0f} files/s)")
    return metrics


def run_benchmark(file_count: int, workers: Optional[int] = None) -> BenchmarkReport:
    """Build the archive in a temporary directory and time every analysis."""
    workers = resolve_worker_count(workers)
    initial_memory = get_available_memory_mb()

    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "logs"
        total_bytes = create_synthetic_archive(file_count, root)

        report = BenchmarkReport(
            total_files=file_count,
            total_size_mb=total_bytes / (1024 * 1024),
            workers=workers,
            cpu_count=psutil.cpu_count(logical=True) or 1,
            platform=sys.platform,
            initial_available_memory_mb=initial_memory,
        )

        with open(Path(tmpdir) / "search.txt", "w", encoding="utf-8") as search_output:
            transformers = (
                ("statistics", StatisticsCollector()),
                ("search", ParticipantSearcher(SEARCHED_PLAYER, output=search_output)),
                (
                    "anonymize",
                    Anonymizer(
                        tracker=PseudonymTracker(),
                        output_dir=Path(tmpdir) / "anonymized",
                    ),
                ),
            )

            mem_monitor = MemoryMonitor(interval_seconds=0.5)
            mem_monitor.start()
            try:
                for name, transformer in transformers:
                    metrics = time_mode(name, transformer, root, workers, total_bytes)
                    report.modes[name] = {
                        **asdict(metrics),
                        "files_per_second": metrics.files_per_second,
                        "throughput_mb_s": metrics.throughput_mb_s,
                    }
            finally:
                mem_monitor.stop()

    report.peak_memory_mb = mem_monitor.get_peak_used()
    report.min_available_memory_mb = mem_monitor.get_min_available()
    return report


def print_report(report: BenchmarkReport):
    """Print a formatted benchmark report."""
    print(f"\n{'='*70}")
    print("BENCHMARK REPORT")
    print(f"{'='*70}")

    print(f"\nARCHIVE:")
    print(f"  Battles: {report.total_files}")
    print(f"  Size: {report.total_size_mb:.1f} MB")
    print(f"  Workers: {report.workers}")

    print(f"\nPERFORMANCE:")
    for name, mode in report.modes.items():
        print(
            f"  {name:<12} {format_time(mode['duration_seconds']):>10}"
            f"  {mode['files_per_second']:8.0f} files/s"
            f"  {mode['throughput_mb_s']:6.2f} MB/s"
            f"  ({mode['failures']} failures)"
        )

    print(f"\nMEMORY:")
    print(f"  Initial available: {report.initial_available_memory_mb:.0f} MB")
    print(f"  Peak memory used: {report.peak_memory_mb:.0f} MB")
    print(f"  Min available: {report.min_available_memory_mb:.0f} MB")

    print(f"\nSYSTEM:")
    print(f"  Platform: {report.platform}")
    print(f"  CPU cores: {report.cpu_count}")

    print(f"\n{'='*70}")


def save_report(report: BenchmarkReport, output_path: Path):
    """Save report to JSON file."""
    with open(output_path, "w") as f:
        json.dump(asdict(report), f, indent=2)
    print(f"\nReport saved to: {output_path}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Benchmark battle-log-tools over a synthetic archive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--files", "-n", type=int, default=2000, help="Number of synthetic battles"
    )
    parser.add_argument("--output", "-o", help="Output path for JSON report")
    parser.add_argument("-j", "--threads", type=int, default=None, help="Worker threads")

    args = parser.parse_args(argv)
    if args.files < 1:
        parser.error("--files must be positive")

    report = run_benchmark(args.files, args.threads)
    print_report(report)
    if args.output:
        save_report(report, Path(args.output))
    return 0


if __name__ == "__main__":
    sys.exit(main())
