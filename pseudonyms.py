#!/usr/bin/env python3
"""
Stable pseudonyms for battle participants.

One PseudonymTracker is shared by every anonymization call of a run, so the
same player gets the same number in every log. Construct a fresh tracker per
run (or per test) and pass it explicitly.
"""

import json
import threading
from pathlib import Path
from typing import Optional

from locking import exclusive


class PseudonymTracker:
    """
    Thread-safe map from raw player names to small positive integers.

    - The same raw name always maps to the same pseudonym
    - Different raw names (case-sensitive) never share one
    - The battle counter increases once per anonymized log
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pseudonyms: dict[str, int] = {}
        self._next_pseudonym = 1
        self._battle_number = 0

    def _assign_locked(self, raw_identity: str) -> int:
        pseudonym = self._pseudonyms.get(raw_identity)
        if pseudonym is None:
            pseudonym = self._next_pseudonym
            self._pseudonyms[raw_identity] = pseudonym
            self._next_pseudonym += 1
        return pseudonym

    def assign(self, raw_identity: str) -> int:
        """Get the pseudonym for a name, allocating one on first sight."""
        with exclusive(self._lock, "pseudonym tracker"):
            return self._assign_locked(raw_identity)

    def assign_battle(
        self, p1: str, p2: str, winner: str
    ) -> tuple[int, int, Optional[int]]:
        """Assign both players and the winner in one critical section.

        An empty winner (a tie) gets no pseudonym and returns None.
        """
        with exclusive(self._lock, "pseudonym tracker"):
            p1_anon = self._assign_locked(p1)
            p2_anon = self._assign_locked(p2)
            winner_anon = self._assign_locked(winner) if winner else None
        return p1_anon, p2_anon, winner_anon

    def next_battle_number(self) -> int:
        """Advance and return the battle sequence number."""
        with exclusive(self._lock, "pseudonym tracker"):
            self._battle_number += 1
            return self._battle_number

    @property
    def battle_number(self) -> int:
        return self._battle_number

    def __len__(self) -> int:
        with exclusive(self._lock, "pseudonym tracker"):
            return len(self._pseudonyms)

    def __contains__(self, raw_identity: str) -> bool:
        with exclusive(self._lock, "pseudonym tracker"):
            return raw_identity in self._pseudonyms

    # State is only ever persisted to a path the caller names.

    def to_json(self) -> str:
        with exclusive(self._lock, "pseudonym tracker"):
            state = {
                "pseudonyms": dict(self._pseudonyms),
                "next_pseudonym": self._next_pseudonym,
                "battle_number": self._battle_number,
            }
        return json.dumps(state, ensure_ascii=False, sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> "PseudonymTracker":
        state = json.loads(text)
        tracker = cls()
        tracker._pseudonyms = {str(k): int(v) for k, v in state["pseudonyms"].items()}
        tracker._next_pseudonym = int(state["next_pseudonym"])
        tracker._battle_number = int(state["battle_number"])
        # A hand-edited file must not make the counter hand out a used number
        if tracker._pseudonyms:
            tracker._next_pseudonym = max(
                tracker._next_pseudonym, max(tracker._pseudonyms.values()) + 1
            )
        return tracker

    def save(self, path: Path):
        Path(path).write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> "PseudonymTracker":
        return cls.from_json(Path(path).read_text(encoding="utf-8"))
