#!/usr/bin/env python3
"""
Run configuration for battle-log-tools.

Worker count defaults to the CPU count (capped), dropping to a single worker
when the machine is short on memory. Environment overrides:

    BATTLETOOLS_WORKERS=4        fixed worker count
    BATTLETOOLS_NO_PROGRESS=1    never draw the progress line
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import psutil

from errors import ConfigurationError

MAX_DEFAULT_WORKERS = 8
MIN_FREE_MEMORY_MB = 400  # Below this, process one file at a time

WORKERS_ENV = "BATTLETOOLS_WORKERS"
NO_PROGRESS_ENV = "BATTLETOOLS_NO_PROGRESS"


def get_available_memory_mb() -> float:
    """Available system memory in MB."""
    return psutil.virtual_memory().available / (1024 * 1024)


def default_worker_count() -> int:
    """CPU count capped at MAX_DEFAULT_WORKERS, or 1 when memory is low."""
    available_mb = get_available_memory_mb()
    if available_mb < MIN_FREE_MEMORY_MB:
        print(
            f"  WARNING: Low memory ({available_mb:.0f} MB available). "
            "Processing files one at a time.",
            file=sys.stderr,
        )
        return 1
    cpus = psutil.cpu_count(logical=True) or 1
    return max(1, min(cpus, MAX_DEFAULT_WORKERS))


def resolve_worker_count(requested: Optional[int] = None) -> int:
    """Explicit request, then BATTLETOOLS_WORKERS, then the default."""
    if requested is None:
        env_value = os.environ.get(WORKERS_ENV, "").strip()
        if env_value:
            try:
                requested = int(env_value)
            except ValueError:
                raise ConfigurationError(
                    f"{WORKERS_ENV} must be an integer, got {env_value!r}"
                )
    if requested is None:
        return default_worker_count()
    if requested < 1:
        raise ConfigurationError(f"worker count must be positive, got {requested}")
    return requested


def progress_enabled(stream=sys.stderr) -> bool:
    """Draw progress only on an interactive stream and when not disabled."""
    if os.environ.get(NO_PROGRESS_ENV, "").lower() in ("1", "true", "yes"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


@dataclass
class RunConfig:
    """Options shared by every subcommand."""

    directories: list[Path] = field(default_factory=list)
    exclude: Optional[str] = None
    max_workers: Optional[int] = None
    show_progress: bool = False

    def __post_init__(self):
        self.directories = [Path(d) for d in self.directories]
        # An empty exclusion would match every name
        if self.exclude == "":
            self.exclude = None

    def worker_count(self) -> int:
        return resolve_worker_count(self.max_workers)
