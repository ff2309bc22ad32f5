#!/usr/bin/env python3
"""
Win-rate statistics per species.

Each log contributes one GameResult per team member on each side. The
ranking metric is the number of standard deviations a species' win rate sits
away from 50%:

    deviation = (winrate_percent - 50) * sqrt(games) / 50
"""

import csv
import io
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from battle_log import parse_log, rating_value

CSV_HEADER = ("species", "games", "wins", "winrate_percent", "deviation")
TABLE_HEADER = ("Rank", "Species", "Deviations", "Winrate", "Games", "Wins")

# Any "<Base>-<form>" collapses to Base
COLLAPSED_FORM_PREFIXES = (
    "Pikachu",
    "Unown",
    "Basculin",
    "Sawsbuck",
    "Vivillon",
    "Florges",
    "Furfrou",
    "Minior",
    "Gourgeist",
    "Toxtricity",
)
# Single cosmetic forms
COLLAPSED_FORMS = {
    "Gastrodon-East": "Gastrodon",
    "Magearna-Original": "Magearna",
    "Genesect-Douse": "Genesect",
}


def normalize_species(species: str) -> str:
    for base in COLLAPSED_FORM_PREFIXES:
        if species.startswith(base + "-"):
            return base
    return COLLAPSED_FORMS.get(species, species)


def format_number(value: float) -> str:
    """At most six decimals, trailing zeros trimmed (100.0 -> '100')."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


@dataclass
class GameResult:
    species: str
    won: bool


@dataclass
class SpeciesStats:
    """Games and wins for one species; rates are derived on demand."""

    games: int = 0
    wins: int = 0

    @property
    def winrate(self) -> float:
        return self.wins / self.games * 100

    @property
    def deviation(self) -> float:
        return (self.winrate - 50) * math.sqrt(self.games) / 50


class StatisticsCollector:
    """Aggregates species win rates over a directory of battle logs."""

    def __init__(self, min_elo: Optional[float] = None):
        self.min_elo = min_elo or 0
        self.species: dict[str, SpeciesStats] = {}
        self._is_sorted = False

    def process_log(self, battle: dict[str, Any]) -> list[GameResult]:
        """GameResults for one parsed log; empty if a side is under min_elo."""
        for rating_field in ("p1rating", "p2rating"):
            rating = battle.get(rating_field)
            elo = rating_value(rating.get("elo")) if isinstance(rating, dict) else None
            if (elo or 0) < self.min_elo:
                return []

        winner = battle.get("winner")
        results = []
        for team_field, player_field in (("p1team", "p1"), ("p2team", "p2")):
            won = battle.get(player_field) == winner
            team = battle.get(team_field)
            if not isinstance(team, list):
                continue
            for member in team:
                if isinstance(member, dict) and isinstance(member.get("species"), str):
                    results.append(GameResult(normalize_species(member["species"]), won))
        return results

    def add_game_results(self, results: list[GameResult]):
        if not results:
            return
        # New data invalidates the ordering
        self._is_sorted = False
        for result in results:
            stats = self.species.get(result.species)
            if stats is None:
                stats = self.species[result.species] = SpeciesStats()
            stats.games += 1
            if result.won:
                stats.wins += 1

    def sort(self):
        """Order species by descending deviation (stable)."""
        if self._is_sorted:
            return
        ordered = sorted(
            self.species.items(), key=lambda item: item[1].deviation, reverse=True
        )
        self.species = dict(ordered)
        self._is_sorted = True

    def ranked(self) -> list[tuple[str, SpeciesStats]]:
        self.sort()
        return list(self.species.items())

    # LogTransformer

    def handle_log_file(self, content: str, path: Path) -> list[GameResult]:
        return self.process_log(parse_log(content))

    def handle_results(self, results: list[list[GameResult]]):
        for batch in results:
            self.add_game_results(batch)

    # Output

    def to_csv(self) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for species, stats in self.ranked():
            writer.writerow(
                (
                    species,
                    stats.games,
                    stats.wins,
                    format_number(stats.winrate),
                    format_number(stats.deviation),
                )
            )
        return buffer.getvalue()

    def to_table(self) -> str:
        rows = [TABLE_HEADER]
        for rank, (species, stats) in enumerate(self.ranked(), start=1):
            rows.append(
                (
                    str(rank),
                    species,
                    format_number(stats.deviation),
                    format_number(stats.winrate) + "%",
                    str(stats.games),
                    str(stats.wins),
                )
            )
        widths = [max(len(row[col]) for row in rows) for col in range(len(TABLE_HEADER))]
        border = "+" + "+".join("-" * (width + 2) for width in widths) + "+"

        lines = [border]
        for row in rows:
            cells = (f" {cell.ljust(width)} " for cell, width in zip(row, widths))
            lines.append("|" + "|".join(cells) + "|")
            lines.append(border)
        return "\n".join(lines) + "\n"
