#!/usr/bin/env python3
"""Progress display and time formatting for directory runs."""

import sys
import threading
import time
from typing import TextIO


def format_time(seconds: float) -> str:
    """Format seconds into human-readable time string."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.0f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = seconds % 60
        return f"{hours}h {minutes}m {secs:.0f}s"


class TraversalProgress:
    """Single-line progress for a traversal whose size is unknown up front."""

    def __init__(self, stream: TextIO = sys.stderr, description: str = "Scanning"):
        self.stream = stream
        self.description = description
        self.directories = 0
        self.files = 0
        self.errors = 0
        self.pending = 0
        self.start_time = time.time()
        self._lock = threading.Lock()

    def directory_done(self, files: int, errors: int, pending: int):
        """Record one finished directory and redraw (thread-safe)."""
        with self._lock:
            self.directories += 1
            self.files += files
            self.errors += errors
            self.pending = pending
            self._render()

    def _render(self):
        elapsed = time.time() - self.start_time
        line = (
            f"\r{self.description}: {self.directories} dirs, {self.pending} queued"
            f" | {self.files} files | {self.errors} errors | {format_time(elapsed)}"
        )
        self.stream.write(line)
        self.stream.flush()

    def finish(self):
        with self._lock:
            self._render()
            self.stream.write("\n")
            self.stream.flush()
