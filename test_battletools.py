#!/usr/bin/env python3
"""End-to-end tests for the battletools command line."""

import json

import pytest

from battletools import main
from conftest import IDENTIFYING_STRINGS, make_battle, write_battle

FILE_COUNT = 30


@pytest.fixture
def root(log_tree):
    return log_tree(FILE_COUNT)


def run(*argv) -> int:
    return main(["--no-progress", "-j", "4", *[str(arg) for arg in argv]])


class TestStatistics:
    @pytest.mark.parametrize("subcommand", ["statistics", "stats", "winrates"])
    def test_table_to_stdout(self, root, capsys, subcommand):
        assert run(subcommand, root) == 0
        captured = capsys.readouterr()
        assert "| 1    | Rotom-Fan       |" in captured.out
        assert f"Files processed: {FILE_COUNT}" in captured.err

    def test_csv_file(self, root, tmp_path, capsys):
        out = tmp_path / "stats.csv"
        assert run("stats", root, "--csv", out) == 0
        lines = out.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "species,games,wins,winrate_percent,deviation"
        assert lines[1].startswith(f"Rotom-Fan,{FILE_COUNT},{FILE_COUNT},100,")
        assert capsys.readouterr().out == ""

    @pytest.mark.parametrize("flag", ["--pretty", "--human-readable"])
    def test_table_file(self, root, tmp_path, flag):
        out = tmp_path / "stats.txt"
        assert run("stats", root, flag, out) == 0
        assert "| Rank | Species" in out.read_text(encoding="utf-8")

    @pytest.mark.parametrize("flag", ["--elo", "--minimum-elo"])
    def test_minimum_elo(self, root, tmp_path, flag):
        out = tmp_path / "stats.csv"
        assert run("stats", root, flag, 1131, "--csv", out) == 0
        assert out.read_text(encoding="utf-8").splitlines() == [
            "species,games,wins,winrate_percent,deviation"
        ]

    def test_exclusion(self, root, tmp_path):
        out = tmp_path / "stats.csv"
        assert main(["--no-progress", "--exclude", "day1", "stats", str(root), "--csv", str(out)]) == 0
        games = int(out.read_text(encoding="utf-8").splitlines()[1].split(",")[1])
        assert games == FILE_COUNT // 2 + 1


class TestSearch:
    @pytest.mark.parametrize("subcommand", ["search", "s"])
    def test_search(self, root, capsys, subcommand):
        assert run(subcommand, "AnniKa", root) == 0
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == FILE_COUNT
        assert "annika vs. rusthaters (annika won normally)" in lines[0]

    @pytest.mark.parametrize("flag", ["-f", "--forfeits-only"])
    def test_forfeits_only(self, root, capsys, flag):
        assert run("search", "AnniKa", root, flag) == 0
        assert capsys.readouterr().out == ""

    @pytest.mark.parametrize("flag", ["-w", "--wins-only"])
    def test_wins_only(self, root, capsys, flag):
        assert run("search", "AnniKa", root, flag) == 0
        assert len(capsys.readouterr().out.splitlines()) == FILE_COUNT
        assert run("search", "rusthaters", root, flag) == 0
        assert capsys.readouterr().out == ""


class TestAnonymize:
    def test_anonymize(self, root, tmp_path):
        out = tmp_path / "anonymized"
        assert run("anonymize", root, "-o", out) == 0

        files = sorted(out.iterdir(), key=lambda p: int(p.name.split(".")[0]))
        assert [p.name for p in files] == [f"{n}.log.json" for n in range(1, FILE_COUNT + 1)]
        first = files[0].read_text(encoding="utf-8")
        assert first == files[-1].read_text(encoding="utf-8")
        for term in IDENTIFYING_STRINGS:
            assert term not in first

    def test_options(self, root, tmp_path):
        out = tmp_path / "anonymized"
        assert run("anonymize", root, "--output", out, "--no-ratings", "--no-log", "--by-format", "--safe") == 0
        battle = json.loads((out / "gen8randombattle" / "1.log.json").read_text(encoding="utf-8"))
        assert battle["p1rating"] is None
        assert battle["log"] == []

    def test_state_carries_over(self, root, tmp_path):
        state = tmp_path / "state.json"
        assert run("anonymize", root, "-o", tmp_path / "first", "--state", state) == 0
        assert run("anonymize", root, "-o", tmp_path / "second", "--state", state) == 0

        second = sorted(int(p.name.split(".")[0]) for p in (tmp_path / "second").iterdir())
        assert second == list(range(FILE_COUNT + 1, 2 * FILE_COUNT + 1))
        first_battle = json.loads((tmp_path / "first" / "1.log.json").read_text(encoding="utf-8"))
        second_battle = json.loads(
            (tmp_path / "second" / f"{FILE_COUNT + 1}.log.json").read_text(encoding="utf-8")
        )
        assert first_battle["p1"] == second_battle["p1"] == "1"

    def test_leak_in_safe_mode(self, root, tmp_path, capsys):
        battle = make_battle(roomid="battle-gen8randombattle-leak", log=["|-activate|p2a: Drednaw|[of] Annika"])
        write_battle(root / "day1" / "leak.log.json", battle)
        out = tmp_path / "anonymized"

        assert run("anonymize", root, "-o", out, "--safe") == 1
        assert len(list(out.iterdir())) == FILE_COUNT
        err = capsys.readouterr().err
        assert "battle-gen8randombattle-leak" in err
        assert "Warnings (1):" in err

    def test_abort_on_leak(self, root, tmp_path, capsys):
        battle = make_battle(log=["|-activate|p2a: Drednaw|[of] Annika"])
        write_battle(root / "day1" / "leak.log.json", battle)
        out = tmp_path / "anonymized"

        assert run("anonymize", root, "-o", out, "--safe", "--abort-on-leak") == 1
        assert list(out.iterdir()) == []
        assert "Aborted" in capsys.readouterr().err

    def test_malformed_files_reported(self, root, tmp_path, capsys):
        for i in range(7):
            (root / "day2" / f"broken-{i}.log.json").write_text("{", encoding="utf-8")

        assert run("anonymize", root, "-o", tmp_path / "anonymized") == 0
        err = capsys.readouterr().err
        assert "Warnings (7):" in err
        assert "... and 2 more" in err


class TestSetupErrors:
    def test_missing_directory(self, tmp_path, capsys):
        assert run("stats", tmp_path / "missing") == 1
        assert "not a directory" in capsys.readouterr().err

    def test_bad_thread_count(self, root, capsys):
        assert main(["--no-progress", "-j", "0", "stats", str(root)]) == 1
        assert "worker count" in capsys.readouterr().err

    def test_output_required(self, root):
        with pytest.raises(SystemExit):
            main(["anonymize", str(root)])
