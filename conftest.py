#!/usr/bin/env python3
"""Shared fixtures: a real rated battle and a builder for log directory trees."""

import copy
import json
from pathlib import Path

import pytest

SAMPLE_BATTLE = {
    "winner": "Annika",
    "seed": [1, 1, 1, 1],
    "turns": 2,
    "p1": "Annika",
    "p2": "Rust Haters",
    "p1team": [
        {"name": "Rotom", "species": "Rotom-Fan", "level": 84, "item": "Heavy-Duty Boots"},
        {"name": "Regirock", "species": "Regirock", "level": 85, "item": "Chesto Berry"},
        {"name": "Conkeldurr", "species": "Conkeldurr", "level": 80, "item": "Flame Orb"},
        {"name": "Reuniclus", "species": "Reuniclus", "level": 84, "item": "Life Orb"},
        {"name": "Incineroar", "species": "Incineroar", "level": 80, "item": "Choice Scarf"},
        {"name": "Miltank", "species": "Miltank", "level": 84, "item": "Leftovers"},
    ],
    "p2team": [
        {"name": "Drednaw", "species": "Drednaw", "level": 84, "item": "Life Orb"},
        {"name": "Pinsir", "species": "Pinsir", "level": 84, "item": "Choice Scarf"},
        {"name": "Pikachu", "species": "Pikachu-Sinnoh", "level": 92, "item": "Light Ball"},
        {"name": "Latios", "species": "Latios", "level": 78, "item": "Soul Dew"},
        {"name": "Entei", "species": "Entei", "level": 78, "item": "Choice Band"},
        {"name": "Exeggutor", "species": "Exeggutor-Alola", "level": 86, "item": "Choice Specs"},
    ],
    "score": [0, 2],
    "inputLog": [">lol you thought i'd leak someone's real input log"],
    "log": [
        "|j|☆Annika",
        "|j|☆Rust Hater",
        "|player|p1|Annika|cynthia|1400",
        "|player|p2|Rust Hater|cynthia|1100",
        "|teamsize|p1|6",
        "|teamsize|p2|6",
        "|gametype|singles",
        "|gen|8",
        "|tier|[Gen 8] Random Battle",
        "|rated|",
    ],
    "p1rating": {
        "entryid": "75790599",
        "userid": "annika",
        "w": "4",
        "l": 4,
        "t": "0",
        "gxe": 46.8,
        "r": 1516.9377700433,
        "rd": 121.36211247153,
        "rptime": 1632906000,
        "rpr": 1474.7452159936,
        "rprd": 115.09180605287,
        "elo": 1400,
        "col1": 8,
        "oldelo": "1057.7590112468",
    },
    "p2rating": {
        "entryid": "75790599",
        "userid": "rusthater",
        "w": "4",
        "l": 5,
        "t": "0",
        "gxe": 41.8,
        "r": "1516.9377700433",
        "rd": "121.36211247153",
        "rptime": "1632906000",
        "rpr": 1434.9434039083,
        "rprd": 109.84367373045,
        "elo": 1130.7522733629,
        "col1": 9,
        "oldelo": "1040.4859871929",
    },
    "endType": "normal",
    "timestamp": "Wed Nov 1 1970 00:00:01 GMT-0400 (Eastern Daylight Time)",
    "roomid": "battle-gen8randombattle-1",
    "format": "gen8randombattle",
    "comment": "if you're curious - this is my own rating info & teams from my battles",
}

# Strings that must never survive anonymization of SAMPLE_BATTLE
IDENTIFYING_STRINGS = ("00:00:01", "Annika", "annika", "Rust Haters", "rusthaters")


def make_battle(**overrides) -> dict:
    """A deep copy of SAMPLE_BATTLE with top-level fields replaced."""
    battle = copy.deepcopy(SAMPLE_BATTLE)
    battle.update(overrides)
    return battle


def write_battle(path: Path, battle: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(battle, ensure_ascii=False), encoding="utf-8")
    return path


def build_log_tree(root: Path, count: int, battle: dict = None) -> Path:
    """`count` copies of a battle split across day1/ and day2/ under root."""
    content = json.dumps(battle if battle is not None else SAMPLE_BATTLE, ensure_ascii=False)
    pivot = count // 2
    for i in range(count):
        day = "day1" if i > pivot else "day2"
        path = root / day / f"battle-gen8randombattle-{i}.log.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def sample_battle():
    return make_battle()


@pytest.fixture
def sample_log():
    """SAMPLE_BATTLE as raw JSON text."""
    return json.dumps(SAMPLE_BATTLE, ensure_ascii=False)


@pytest.fixture
def log_tree(tmp_path):
    """Factory: log_tree(count, battle=None) -> root directory."""

    def build(count: int, battle: dict = None) -> Path:
        return build_log_tree(tmp_path / "logs", count, battle)

    return build
