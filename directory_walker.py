#!/usr/bin/env python3
"""
Parallel directory traversal for battle log analyses.

Any object with the two LogTransformer methods gets parallel traversal:

    handle_log_file(content, path) -> result   # called on pool threads
    handle_results(results)                    # called once, at the end

The walker pops one directory at a time from a shared queue and fans its
entries out over a thread pool. Files are read and transformed on workers;
subdirectories found by workers are pushed back onto the queue. The queue
lock is held only for push/pop, never while a file is read or transformed.
"""

import os
import sys
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol, Sequence, TextIO

from errors import BattleToolsError, LockInvariantViolation, LogReadError, RootDirectoryError
from locking import exclusive
from progress import TraversalProgress


class LogTransformer(Protocol):
    def handle_log_file(self, content: str, path: Path) -> Any:
        ...

    def handle_results(self, results: list) -> Any:
        ...


class DirectoryQueue:
    """
    Thread-safe LIFO work list of directories still to visit.

    A directory (by resolved path) is accepted at most once, so duplicate
    roots and symlink loops are visited a single time.
    """

    def __init__(self, roots: Iterable[Path] = ()):
        self._lock = threading.Lock()
        self._pending: list[Path] = []
        self._seen: set[str] = set()
        for root in roots:
            self.push(root)

    def push(self, path: Path) -> bool:
        """Queue a directory. Returns False if it was already accepted."""
        key = os.path.realpath(path)
        with exclusive(self._lock, "directory queue"):
            if key in self._seen:
                return False
            self._seen.add(key)
            self._pending.append(Path(path))
            return True

    def pop(self) -> Optional[Path]:
        """Take the most recently queued directory, or None when drained."""
        with exclusive(self._lock, "directory queue"):
            if not self._pending:
                return None
            return self._pending.pop()

    def __len__(self) -> int:
        with exclusive(self._lock, "directory queue"):
            return len(self._pending)


@dataclass
class FileFailure:
    """A file or directory skipped because of an error."""

    path: Path
    error: BattleToolsError


@dataclass
class WalkSummary:
    """What a traversal visited and what it had to skip."""

    directories_visited: int = 0
    files_processed: int = 0
    excluded: int = 0
    elapsed_seconds: float = 0.0
    failures: list[FileFailure] = field(default_factory=list)

    @property
    def fatal_failures(self) -> list[FileFailure]:
        return [f for f in self.failures if f.error.fatal]


# Marks a pool task that only queued a subdirectory
_SUBDIRECTORY = object()


class DirectoryWalker:
    """
    Runs a LogTransformer over every log file under a set of root directories.

    - Entries whose name contains `exclude` are neither read nor descended into
    - Per-file errors are printed to `error_stream` and recorded; the run goes on
    - handle_results is called exactly once, after the whole tree is drained
    """

    def __init__(
        self,
        transformer: LogTransformer,
        exclude: Optional[str] = None,
        max_workers: Optional[int] = None,
        fail_fast: bool = False,
        progress: Optional[TraversalProgress] = None,
        error_stream: Optional[TextIO] = None,
    ):
        self.transformer = transformer
        self.exclude = exclude or None
        self.max_workers = max_workers
        self.fail_fast = fail_fast
        self.progress = progress
        self.error_stream = error_stream if error_stream is not None else sys.stderr

    def run(self, roots: Sequence[Path]) -> WalkSummary:
        """Traverse `roots`, then fold every result into the transformer."""
        roots = [Path(root) for root in roots]
        for root in roots:
            if not root.is_dir():
                raise RootDirectoryError(root)

        start_time = time.time()
        queue = DirectoryQueue(roots)
        summary = WalkSummary()
        results: list = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            while True:
                directory = queue.pop()
                if directory is None:
                    break
                failures_before = len(summary.failures)
                files_before = summary.files_processed
                results.extend(
                    self._handle_directory(directory, queue, executor, summary)
                )
                summary.directories_visited += 1
                if self.progress is not None:
                    self.progress.directory_done(
                        files=summary.files_processed - files_before,
                        errors=len(summary.failures) - failures_before,
                        pending=len(queue),
                    )

        if self.progress is not None:
            self.progress.finish()
        summary.elapsed_seconds = time.time() - start_time

        self.transformer.handle_results(results)
        return summary

    def _handle_directory(
        self,
        directory: Path,
        queue: DirectoryQueue,
        executor: ThreadPoolExecutor,
        summary: WalkSummary,
    ) -> list:
        """Fan one directory's entries out over the pool and collect results."""
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            self._record_failure(summary, directory, LogReadError(directory, e))
            return []

        futures: dict[Future, Path] = {}
        for entry in entries:
            if self.exclude is not None and self.exclude in entry.name:
                summary.excluded += 1
                continue
            futures[executor.submit(self._handle_entry, entry, queue)] = entry

        batch = []
        for future in as_completed(futures):
            entry = futures[future]
            try:
                outcome = future.result()
            except LockInvariantViolation:
                raise
            except BattleToolsError as e:
                self._record_failure(summary, entry, e)
                continue
            if outcome is _SUBDIRECTORY:
                continue
            summary.files_processed += 1
            batch.append(outcome)
        return batch

    def _handle_entry(self, entry: Path, queue: DirectoryQueue) -> Any:
        """Runs on a pool thread: queue a subdirectory or transform a file."""
        if entry.is_dir():
            queue.push(entry)
            return _SUBDIRECTORY
        try:
            content = entry.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise LogReadError(entry, e) from e
        return self.transformer.handle_log_file(content, entry)

    def _record_failure(self, summary: WalkSummary, path: Path, error: BattleToolsError):
        if self.fail_fast and error.fatal:
            raise error
        summary.failures.append(FileFailure(path, error))
        print(f"{path}: {error}", file=self.error_stream)


def walk_directories(
    roots: Sequence[Path],
    transformer: LogTransformer,
    exclude: Optional[str] = None,
    max_workers: Optional[int] = None,
) -> WalkSummary:
    """Convenience wrapper: one DirectoryWalker run with default reporting."""
    walker = DirectoryWalker(transformer, exclude=exclude, max_workers=max_workers)
    return walker.run(roots)
