"""Tests for the recite CLI commands."""

import json
import logging
import sqlite3

import pytest
from typer.testing import CliRunner

from recite.application.factory import get_scheduler_service
from recite.domain.errors import StorageFailure
from recite.infrastructure.serialization import load_practice_log, load_progress_map
from recite.interface import cli
from recite.interface.cli import app

runner = CliRunner()


@pytest.fixture
def store(mock_home, tmp_path, monkeypatch):
    """Points the CLI at a JSON store inside the test directory."""
    path = tmp_path / "progress.json"
    monkeypatch.setenv("RECITE_BACKEND", "json")
    monkeypatch.setenv("RECITE_STORE_PATH", str(path))
    return path


@pytest.fixture(autouse=True)
def restore_logging():
    """Commands reconfigure the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "recite: spaced-repetition review scheduler" in result.stdout
    assert "queue" in result.stdout
    assert "review" in result.stdout


# --- Review ---


def test_review_records_outcome(store):
    result = runner.invoke(app, ["review", "1:1", "5"])

    assert result.exit_code == 0
    assert "1:1: interval=1d efactor=2.60" in result.stdout
    assert load_progress_map(store.read_text())["1:1"].total_reviews == 1


def test_review_rejects_bad_quality(store):
    result = runner.invoke(app, ["review", "1:1", "7"])

    assert result.exit_code == 2
    assert "between 0 and 5" in result.output
    assert not store.exists()


def test_review_storage_failure(mock_home, tmp_path, monkeypatch):
    broken = tmp_path / "progress.json"
    broken.write_text("{ not json")
    monkeypatch.setenv("RECITE_STORE_PATH", str(broken))

    result = runner.invoke(app, ["review", "1:1", "4"])

    assert result.exit_code == 1
    assert "Storage error" in result.output


# --- Queue ---


def test_queue_empty(store):
    result = runner.invoke(app, ["queue"])
    assert result.exit_code == 0
    assert "Nothing due." in result.stdout


def test_queue_json(store):
    runner.invoke(app, ["init", "a", "b", "c"])

    result = runner.invoke(app, ["queue", "--json", "--max-items", "2"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["queue"] == ["a", "b"]
    assert data["eligible"] == 3
    assert data["truncated"] == ["c"]


def test_queue_text(store):
    runner.invoke(app, ["init", "a"])

    result = runner.invoke(app, ["queue"])

    assert result.exit_code == 0
    assert "1. a" in result.stdout


# --- Show ---


def test_show_missing_item(store):
    result = runner.invoke(app, ["show", "nope"])
    assert result.exit_code == 1


def test_show_json(store):
    runner.invoke(app, ["review", "2:255", "2"])

    result = runner.invoke(app, ["show", "2:255", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["item_key"] == "2:255"
    assert data["interval"] == 1
    assert len(data["mistakes"]) == 1
    assert data["metrics"]["item_key"] == "2:255"


# --- Init / Stats / Export ---


def test_init_and_stats(store):
    result = runner.invoke(app, ["init", "a", "b"])
    assert result.exit_code == 0
    assert "Tracking a" in result.stdout

    result = runner.invoke(app, ["stats", "--json"])
    assert result.exit_code == 0
    stats = json.loads(result.stdout)
    assert stats["total_items"] == 2
    assert stats["weak_items"] == 2


def test_export_to_file(store, tmp_path):
    runner.invoke(app, ["review", "a", "4"])
    target = tmp_path / "export.json"

    result = runner.invoke(app, ["export", str(target)])

    assert result.exit_code == 0
    assert set(load_progress_map(target.read_text())) == {"a"}


def test_export_to_stdout(store):
    runner.invoke(app, ["init", "a"])

    result = runner.invoke(app, ["export"])

    assert result.exit_code == 0
    assert set(json.loads(result.stdout)) == {"a"}


# --- Session ---


def test_session_reviews_until_blank(store):
    runner.invoke(app, ["init", "a", "b"])

    result = runner.invoke(app, ["session"], input="5\n\n")

    assert result.exit_code == 0
    assert "2 items due" in result.stdout
    assert "Reviewed 1 items (1 outcomes), 1 left." in result.stdout
    progress = load_progress_map(store.read_text())
    assert progress["a"].total_reviews == 1
    assert progress["b"].total_reviews == 0


def test_session_retries_bad_input(store):
    runner.invoke(app, ["init", "a"])

    result = runner.invoke(app, ["session"], input="x\n9\n4\n")

    assert result.exit_code == 0
    assert "whole number from 0 to 5" in result.stdout
    assert load_progress_map(store.read_text())["a"].total_reviews == 1


def test_session_nothing_due(store):
    result = runner.invoke(app, ["session"])
    assert result.exit_code == 0
    assert "Nothing due." in result.stdout


# --- Config ---


def test_config_show(store):
    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["backend"] == "json"
    assert data["resolved_store_path"] == str(store.resolve())


def test_invalid_config(store, monkeypatch):
    monkeypatch.setenv("RECITE_AGGRESSIVENESS", "3")

    result = runner.invoke(app, ["queue"])

    assert result.exit_code == 2
    assert "Invalid configuration" in result.output


# --- Storage errors ---


@pytest.mark.parametrize(
    "args",
    [
        ["queue"],
        ["review", "k", "4"],
        ["show", "k"],
        ["init", "k"],
        ["stats"],
        ["export"],
        ["session"],
    ],
)
def test_corrupt_progress_store(store, args):
    store.write_text("not json")

    result = runner.invoke(app, args)

    assert result.exit_code == 1
    assert "Storage error" in result.output
    assert not isinstance(result.exception, StorageFailure)


@pytest.mark.parametrize("args", [["practice", "k", "80"], ["history"], ["show", "k"]])
def test_corrupt_practice_store(store, args):
    runner.invoke(app, ["init", "k"])
    practice_file(store).write_text("not json")

    result = runner.invoke(app, args)

    assert result.exit_code == 1
    assert "Storage error" in result.output


def test_commands_close_sqlite_store(mock_home, tmp_path, monkeypatch):
    monkeypatch.setenv("RECITE_BACKEND", "sqlite")
    monkeypatch.setenv("RECITE_STORE_PATH", str(tmp_path / "progress.db"))
    opened = []

    def tracking_factory(config):
        service = get_scheduler_service(config)
        opened.append(service)
        return service

    monkeypatch.setattr(cli, "get_scheduler_service", tracking_factory)

    result = runner.invoke(app, ["init", "a"])

    assert result.exit_code == 0
    assert len(opened) == 1
    with pytest.raises(sqlite3.ProgrammingError):
        opened[0]._repo.conn.execute("SELECT 1")


# --- Practice history ---


def practice_file(store):
    return store.with_name("progress-practice.json")


def test_practice_is_logged(store):
    result = runner.invoke(
        app, ["practice", "1:1", "85", "--words", "20", "--correct", "17", "--duration", "42"]
    )

    assert result.exit_code == 0
    assert "Logged practice for 1:1: 85%" in result.stdout
    [attempt] = load_practice_log(practice_file(store).read_text())
    assert attempt.item_key == "1:1"
    assert attempt.correct_words == 17
    assert attempt.duration_seconds == 42.0
    # Practice never touches the schedule
    assert not store.exists()


def test_practice_rejects_bad_accuracy(store):
    result = runner.invoke(app, ["practice", "1:1", "120"])

    assert result.exit_code == 2
    assert "accuracy" in result.output
    assert not practice_file(store).exists()


def test_history_with_stats(store):
    runner.invoke(app, ["practice", "a", "70"])
    runner.invoke(app, ["practice", "b", "90"])
    runner.invoke(app, ["practice", "a", "95"])

    result = runner.invoke(app, ["history", "a", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert [a["accuracy"] for a in data["attempts"]] == [70, 95]
    assert data["stats"]["total_sessions"] == 2
    assert data["stats"]["average_accuracy"] == 83
    assert data["stats"]["best_accuracy"] == 95


def test_history_text(store):
    result = runner.invoke(app, ["history"])
    assert result.exit_code == 0
    assert "No practice recorded." in result.stdout

    runner.invoke(app, ["practice", "a", "60"])
    result = runner.invoke(app, ["history", "a"])
    assert "1 sessions, average 60%, best 60%" in result.stdout


def test_show_includes_practice(store):
    runner.invoke(app, ["init", "a"])
    runner.invoke(app, ["practice", "a", "88"])

    result = runner.invoke(app, ["show", "a", "--json"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["practice"]["total_sessions"] == 1


# --- Stats prediction ---


def test_stats_predicts_completion(store):
    runner.invoke(app, ["init", "a", "b"])

    result = runner.invoke(app, ["stats", "--json", "--target", "10", "--rate", "4"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["predicted_completion"] is not None

    plain = runner.invoke(app, ["stats", "--json"])
    assert "predicted_completion" not in json.loads(plain.stdout)


def test_stats_prediction_unavailable(store):
    result = runner.invoke(app, ["stats", "--target", "5", "--rate", "0"])

    assert result.exit_code == 0
    assert "Target reached:   n/a" in result.stdout


# --- Logging ---


def test_log_file_written_when_configured(store, tmp_path, monkeypatch):
    log_dir = tmp_path / "logs"
    monkeypatch.setenv("RECITE_LOG_DIR", str(log_dir))
    monkeypatch.setenv("RECITE_VERBOSE", "2")

    result = runner.invoke(app, ["review", "1:1", "5"])

    assert result.exit_code == 0
    assert "Recorded q=5 for 1:1" in (log_dir / "recite.log").read_text()


def test_verbose_flag_beats_config(store, monkeypatch):
    monkeypatch.setenv("RECITE_VERBOSE", "3")

    runner.invoke(app, ["-v", "queue"])
    assert logging.getLogger().level == logging.WARNING

    runner.invoke(app, ["queue"])
    assert logging.getLogger().level == logging.DEBUG
