#!/usr/bin/env python3
"""
Error types shared by the traversal engine and the log analyses.

Per-file errors (LogReadError, MalformedLog) are reported and the file is
skipped. IncompleteAnonymization is recorded per file but marked fatal so the
caller can refuse the run. LockInvariantViolation always aborts.
"""

from pathlib import Path
from typing import Iterable


class BattleToolsError(Exception):
    """Base class for every error raised by battle-log-tools."""

    # Fatal errors abort a fail-fast run instead of being recorded
    fatal = False


class LogReadError(BattleToolsError):
    """A log file or directory could not be read."""

    def __init__(self, path: Path, cause: Exception):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"could not read {self.path}: {cause}")


class MalformedLog(BattleToolsError):
    """A required field is missing or has the wrong type."""

    pass


class IncompleteAnonymization(BattleToolsError):
    """An identity survived anonymization of a log."""

    fatal = True

    def __init__(self, room_id: str, leaked: Iterable[str] = ()):
        self.room_id = room_id
        self.leaked = tuple(leaked)
        super().__init__(
            f"identifying information left in anonymized log for room {room_id!r}"
        )


class LockInvariantViolation(BattleToolsError):
    """A lock guarding shared state could not be acquired."""

    fatal = True


class RootDirectoryError(BattleToolsError):
    """A root passed to the walker is not a readable directory."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"not a directory: {self.path}")


class ConfigurationError(BattleToolsError):
    """Invalid run configuration."""

    pass
