#!/usr/bin/env python3
"""Exclusive lock acquisition for state shared between worker threads."""

import threading
from contextlib import contextmanager
from typing import Iterator

from errors import LockInvariantViolation

# Critical sections are a dict lookup or a list push/pop, so a lock that stays
# unavailable this long means something holds it across real work.
LOCK_TIMEOUT_SECONDS = 30.0


@contextmanager
def exclusive(
    lock: threading.Lock, name: str, timeout: float = LOCK_TIMEOUT_SECONDS
) -> Iterator[None]:
    """Hold `lock` for the body of the with-block or raise LockInvariantViolation."""
    if not lock.acquire(timeout=timeout):
        raise LockInvariantViolation(
            f"{name} lock not acquired within {timeout:.1f}s"
        )
    try:
        yield
    finally:
        lock.release()
