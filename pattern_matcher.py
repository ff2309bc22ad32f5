#!/usr/bin/env python3
"""
Pattern matching for player identities inside battle logs.

Two pieces:
1. LogLineRules - static table deciding what happens to each log entry
   (drop it, rewrite a structured player slot, substitute every identity
   form, or substitute only after an unambiguous `|p1a: ` style prefix)
2. PlayerPatterns - per-battle compiled regexes mapping every spelling of
   both players to their pseudonyms in a single pass
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from identity import PlayerIdentity


class LineAction(Enum):
    DROP = "drop"
    PLAYER_SLOT = "player_slot"
    SUBSTITUTE = "substitute"
    PREFIX_ANCHORED = "prefix_anchored"


@dataclass(frozen=True)
class LineRule:
    """Action applied to entries starting with any of `prefixes`."""

    name: str
    prefixes: tuple[str, ...]
    action: LineAction


# Inline rating announcements ("Annika's rating: 1400 &rarr; ...")
RATING_MARKER = "'s rating: "

LOG_RULES = (
    # Chat, joins, leaves and timer notices are dropped outright
    LineRule(
        name="chat",
        prefixes=("|c|", "|c:|", "|chat|"),
        action=LineAction.DROP,
    ),
    LineRule(
        name="presence",
        prefixes=("|j|", "|J|", "|join|", "|l|", "|L|", "|leave|"),
        action=LineAction.DROP,
    ),
    LineRule(
        name="inactivity",
        prefixes=("|inactive|", "|inactiveoff|"),
        action=LineAction.DROP,
    ),
    LineRule(
        name="player",
        prefixes=("|player|",),
        action=LineAction.PLAYER_SLOT,
    ),
    # Free text that may name a player anywhere in the line
    LineRule(
        name="free_text",
        prefixes=(
            "|n|",
            "|N|",
            "|name|",
            "|win|",
            "|tie|",
            "|-message|",
            "|raw|",
            "|html|",
        ),
        action=LineAction.SUBSTITUTE,
    ),
)

INPUT_LOG_RULES = (
    LineRule(name="chat", prefixes=(">chat ",), action=LineAction.DROP),
    LineRule(name="player", prefixes=(">player ",), action=LineAction.PLAYER_SLOT),
)


class LogLineRules:
    """Classifies log entries with a first-match prefix table."""

    def __init__(self, rules: tuple[LineRule, ...], default: LineAction):
        self.rules = rules
        self.default = default
        # Flattened (prefix, action) pairs, in rule order
        self._prefix_actions = [
            (prefix, rule.action) for rule in rules for prefix in rule.prefixes
        ]

    def classify(self, line: str) -> LineAction:
        if RATING_MARKER in line:
            return LineAction.DROP
        for prefix, action in self._prefix_actions:
            if line.startswith(prefix):
                return action
        return self.default


TURN_LOG_RULES = LogLineRules(LOG_RULES, default=LineAction.PREFIX_ANCHORED)
INPUT_RULES = LogLineRules(INPUT_LOG_RULES, default=LineAction.SUBSTITUTE)


def _alternation(forms) -> str:
    return "|".join(re.escape(form) for form in forms)


def _json_spelling(form: str) -> str:
    """How `form` reads inside a string of compact, non-ASCII-preserving JSON."""
    return json.dumps(form, ensure_ascii=False)[1:-1]


class PlayerPatterns:
    """
    Compiled replacement patterns for the two players of one battle.

    Same form on both sides (e.g. "Annika" vs "annika") resolves to p1.
    """

    def __init__(
        self,
        p1: PlayerIdentity,
        p2: PlayerIdentity,
        p1_anon: str,
        p2_anon: str,
    ):
        self.slots = {"p1": (p1, p1_anon), "p2": (p2, p2_anon)}

        self._replacements: dict[str, str] = {}
        for form in p2.forms():
            self._replacements[form] = p2_anon
        for form in p1.forms():
            self._replacements[form] = p1_anon

        if self._replacements:
            ordered = sorted(self._replacements, key=lambda f: (-len(f), f))
            self._any_form: Optional[re.Pattern] = re.compile(_alternation(ordered))
        else:
            self._any_form = None

        # |p1: name, |p1a: name, |p1b: name
        self._slot_patterns = []
        for slot, (player, anon) in self.slots.items():
            forms = player.forms()
            if forms:
                pattern = re.compile(
                    r"(\|" + slot + r"[ab]?: )(?:" + _alternation(forms) + ")"
                )
                self._slot_patterns.append((pattern, anon))

    def substitute(self, text: str) -> str:
        """Replace every identity form of either player in one pass."""
        if self._any_form is None:
            return text
        return self._any_form.sub(lambda m: self._replacements[m.group(0)], text)

    def substitute_prefixed(self, text: str) -> str:
        """Replace identity forms only where they follow a `|p1a: ` style slot."""
        for pattern, anon in self._slot_patterns:
            text = pattern.sub(lambda m, anon=anon: m.group(1) + anon, text)
        return text

    def substitute_player_line(self, line: str) -> str:
        """Rewrite `|player|p1|<name>|<avatar>|<rating>` with the pseudonym."""
        parts = line.split("|")
        if len(parts) >= 4 and parts[2] in self.slots and parts[3]:
            parts[3] = self.slots[parts[2]][1]
        return self.substitute("|".join(parts))

    def substitute_input_player(self, line: str) -> str:
        """Rewrite `>player p1 {"name":...}` with the pseudonym as the name."""
        head, _, payload = line.partition(" ")
        slot, _, options = payload.partition(" ")
        if slot not in self.slots:
            return self.substitute(line)
        anon = self.slots[slot][1]
        try:
            parsed = json.loads(options)
        except ValueError:
            parsed = None
        if not isinstance(parsed, dict):
            parsed = {}
        parsed["name"] = anon
        rebuilt = json.dumps(parsed, ensure_ascii=False, separators=(",", ":"))
        return self.substitute(f"{head} {slot} {rebuilt}")

    def leaked_forms(self, text: str) -> list[str]:
        """Identity forms still present in `text`, raw or JSON-escaped.

        `text` may be serialized JSON, where a form containing `"` or `\\`
        only appears in its escaped spelling.
        """
        return [
            form
            for form in self._replacements
            if form in text or _json_spelling(form) in text
        ]
