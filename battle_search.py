#!/usr/bin/env python3
"""Find every battle a user took part in."""

import sys
import threading
from pathlib import Path
from typing import Optional, TextIO

from battle_log import LOG_SUFFIX, optional_string, parse_log, require_string
from identity import to_id

FORFEIT = "forfeit"


def room_name(path: Path) -> str:
    """'battle-gen8ou-1.log.json' -> 'battle-gen8ou-1'"""
    name = path.name
    if name.endswith(LOG_SUFFIX):
        return name[: -len(LOG_SUFFIX)]
    return name


def describe_result(winner_id: str, end_type: str) -> str:
    if not winner_id:
        return "there was no winner"
    if end_type == FORFEIT:
        return f"{winner_id} won by forfeit"
    return f"{winner_id} won normally"


class ParticipantSearcher:
    """
    Prints one line per battle involving `username`:

        (2020-11-21) <<battle-gen8ou-1>> annika vs. rusthaters (annika won normally)

    Lines are printed as matches are found, so their order follows the
    traversal rather than the directory listing.
    """

    def __init__(
        self,
        username: str,
        wins_only: bool = False,
        forfeits_only: bool = False,
        output: Optional[TextIO] = None,
    ):
        self.user_id = to_id(username)
        self.wins_only = wins_only
        self.forfeits_only = forfeits_only
        self.output = output if output is not None else sys.stdout
        self._print_lock = threading.Lock()

    def match(self, content: str, path: Path) -> Optional[str]:
        """The report line for one log, or None when it does not match."""
        battle = parse_log(content)
        p1_id = to_id(require_string(battle, "p1"))
        p2_id = to_id(require_string(battle, "p2"))
        if self.user_id not in (p1_id, p2_id):
            return None

        winner_id = to_id(optional_string(battle, "winner"))
        if self.wins_only and winner_id != self.user_id:
            return None
        end_type = optional_string(battle, "endType")
        if self.forfeits_only and end_type != FORFEIT:
            return None

        date = path.parent.name
        return (
            f"({date}) <<{room_name(path)}>> {p1_id} vs. {p2_id} "
            f"({describe_result(winner_id, end_type)})"
        )

    # LogTransformer

    def handle_log_file(self, content: str, path: Path) -> Optional[str]:
        line = self.match(content, path)
        if line is not None:
            with self._print_lock:
                print(line, file=self.output, flush=True)
        return line

    def handle_results(self, results: list):
        pass
