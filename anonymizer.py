#!/usr/bin/env python3
"""
Battle log anonymizer - pseudonymize players in battle logs for safe sharing.

Per log:
- Players and winner are replaced by stable numeric pseudonyms
- Room ids are removed, ratings are rounded (or removed)
- Timestamps keep only the date and hour
- Chat, join/leave and inactivity lines are dropped, other lines have every
  spelling of both players replaced
- Strict mode rejects any log where a spelling of a player survives
"""

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from battle_log import LOG_SUFFIX, parse_log, rating_value, require_string
from errors import IncompleteAnonymization, MalformedLog
from identity import PlayerIdentity, to_id
from pattern_matcher import INPUT_RULES, TURN_LOG_RULES, LineAction, PlayerPatterns
from pseudonyms import PseudonymTracker

REQUIRED_STRING_FIELDS = ("p1", "p2", "winner", "timestamp")
RATING_FIELDS = ("p1rating", "p2rating")

# rating sub-field -> rounding step
RATING_ROUNDING = {
    "elo": 50,
    "rpr": 50,
    "rprd": 10,
}

TIMESTAMP_MASK = ":XX"


@dataclass
class AnonymizedBattle:
    """Result from anonymizing a single log."""

    content: str
    battle_number: int
    format_id: str
    source: Optional[Path] = None


def round_to(value: float, step: int) -> int:
    """Round half away from zero to the nearest multiple of `step`."""
    scaled = abs(value) / step
    return int(math.copysign(math.floor(scaled + 0.5) * step, value))


def mask_timestamp(timestamp: str) -> str:
    """'Sat Nov 21 2020 17:05:04 GMT-0500' -> 'Sat Nov 21 2020 17:XX'"""
    return timestamp.split(":", 1)[0] + TIMESTAMP_MASK


class Anonymizer:
    """
    Rewrites battle logs with pseudonymized players.

    Implements the handle_log_file/handle_results pair the DirectoryWalker
    drives: handle_log_file anonymizes one log, handle_results writes every
    anonymized log to `output_dir`.
    """

    def __init__(
        self,
        tracker: Optional[PseudonymTracker] = None,
        strict: bool = False,
        keep_ratings: bool = True,
        strip_logs: bool = False,
        output_dir: Optional[Path] = None,
        group_by_format: bool = False,
    ):
        self.tracker = tracker if tracker is not None else PseudonymTracker()
        self.strict = strict
        self.keep_ratings = keep_ratings
        self.strip_logs = strip_logs
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.group_by_format = group_by_format
        self.written: list[Path] = []

    def anonymize(self, raw_text: str) -> AnonymizedBattle:
        """Anonymize one raw log."""
        battle = parse_log(raw_text)
        p1_name, p2_name, winner, timestamp = (
            require_string(battle, field) for field in REQUIRED_STRING_FIELDS
        )
        p1 = PlayerIdentity(p1_name)
        p2 = PlayerIdentity(p2_name)

        p1_anon, p2_anon, winner_anon = self.tracker.assign_battle(
            p1_name, p2_name, winner
        )
        patterns = PlayerPatterns(p1, p2, str(p1_anon), str(p2_anon))

        result = dict(battle)
        result["p1"] = str(p1_anon)
        result["p2"] = str(p2_anon)
        # Ties keep the empty winner
        result["winner"] = str(winner_anon) if winner_anon is not None else ""

        for field in RATING_FIELDS:
            if field in battle:
                result[field] = self._anonymize_rating(battle[field])

        result["roomid"] = None
        result["timestamp"] = mask_timestamp(timestamp)

        if "inputLog" in battle:
            result["inputLog"] = self._rewrite_input_log(
                self._string_list(battle, "inputLog"), patterns
            )
        if "log" in battle:
            result["log"] = self._rewrite_log(
                self._string_list(battle, "log"), patterns
            )

        content = json.dumps(result, ensure_ascii=False, separators=(",", ":"))

        if self.strict:
            leaked = patterns.leaked_forms(content)
            if leaked:
                raise IncompleteAnonymization(str(battle.get("roomid")), leaked)

        format_id = battle.get("format")
        format_id = to_id(format_id) if isinstance(format_id, str) else ""
        return AnonymizedBattle(
            content=content,
            battle_number=self.tracker.next_battle_number(),
            format_id=format_id or "unknown",
        )

    def _anonymize_rating(self, rating: Any) -> Optional[dict[str, Optional[int]]]:
        if not self.keep_ratings or not isinstance(rating, dict):
            return None
        rounded = {}
        for key, step in RATING_ROUNDING.items():
            value = rating_value(rating.get(key))
            rounded[key] = round_to(value, step) if value is not None else None
        return rounded

    @staticmethod
    def _string_list(battle: dict[str, Any], field: str) -> list[str]:
        entries = battle[field]
        if not isinstance(entries, list):
            raise MalformedLog(f"bad JSON for {field}: expected an array")
        for entry in entries:
            if not isinstance(entry, str):
                raise MalformedLog(f"bad JSON for {field} entry: {entry!r}")
        return entries

    def _rewrite_log(self, entries: list[str], patterns: PlayerPatterns) -> list[str]:
        if self.strip_logs:
            return []
        rewritten = []
        for line in entries:
            action = TURN_LOG_RULES.classify(line)
            if action is LineAction.DROP:
                continue
            if action is LineAction.PLAYER_SLOT:
                rewritten.append(patterns.substitute_player_line(line))
            elif action is LineAction.SUBSTITUTE:
                rewritten.append(patterns.substitute(line))
            else:
                rewritten.append(patterns.substitute_prefixed(line))
        return rewritten

    def _rewrite_input_log(
        self, entries: list[str], patterns: PlayerPatterns
    ) -> list[str]:
        if self.strip_logs:
            return []
        rewritten = []
        for line in entries:
            action = INPUT_RULES.classify(line)
            if action is LineAction.DROP:
                continue
            if action is LineAction.PLAYER_SLOT:
                rewritten.append(patterns.substitute_input_player(line))
            else:
                rewritten.append(patterns.substitute(line))
        return rewritten

    # LogTransformer

    def handle_log_file(self, content: str, path: Path) -> AnonymizedBattle:
        battle = self.anonymize(content)
        battle.source = path
        return battle

    def handle_results(self, results: list[AnonymizedBattle]):
        if self.output_dir is None:
            return
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for battle in results:
            out_path = self.output_path(battle)
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(battle.content, encoding="utf-8")
            self.written.append(out_path)

    def output_path(self, battle: AnonymizedBattle) -> Path:
        filename = f"{battle.battle_number}{LOG_SUFFIX}"
        if self.group_by_format:
            return self.output_dir / battle.format_id / filename
        return self.output_dir / filename
