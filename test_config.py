#!/usr/bin/env python3
"""Tests for run configuration."""

import io
from pathlib import Path

import pytest

import config
from config import RunConfig, default_worker_count, progress_enabled, resolve_worker_count
from errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv(config.WORKERS_ENV, raising=False)
    monkeypatch.delenv(config.NO_PROGRESS_ENV, raising=False)


class TestWorkerCount:
    def test_explicit(self):
        assert resolve_worker_count(3) == 3

    @pytest.mark.parametrize("requested", [0, -2])
    def test_non_positive_rejected(self, requested):
        with pytest.raises(ConfigurationError):
            resolve_worker_count(requested)

    def test_environment(self, monkeypatch):
        monkeypatch.setenv(config.WORKERS_ENV, "2")
        assert resolve_worker_count() == 2
        assert resolve_worker_count(5) == 5

    def test_environment_not_a_number(self, monkeypatch):
        monkeypatch.setenv(config.WORKERS_ENV, "many")
        with pytest.raises(ConfigurationError):
            resolve_worker_count()

    def test_default_is_capped(self):
        assert 1 <= default_worker_count() <= config.MAX_DEFAULT_WORKERS
        assert resolve_worker_count() == default_worker_count()

    def test_low_memory_uses_one_worker(self, monkeypatch, capsys):
        monkeypatch.setattr(config, "get_available_memory_mb", lambda: 100.0)
        assert default_worker_count() == 1
        assert "Low memory" in capsys.readouterr().err


class TestProgressEnabled:
    def test_not_a_terminal(self):
        assert not progress_enabled(io.StringIO())

    def test_disabled_by_environment(self, monkeypatch):
        class Terminal(io.StringIO):
            def isatty(self):
                return True

        assert progress_enabled(Terminal())
        monkeypatch.setenv(config.NO_PROGRESS_ENV, "1")
        assert not progress_enabled(Terminal())


class TestRunConfig:
    def test_paths_and_exclusion(self):
        run_config = RunConfig(directories=["logs"], exclude="")
        assert run_config.directories == [Path("logs")]
        assert run_config.exclude is None

    def test_worker_count(self):
        assert RunConfig(max_workers=4).worker_count() == 4
