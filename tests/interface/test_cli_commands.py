"""Tests for CLI commands: review, queue, stats, reset, cards, thresholds, config and server."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from wordwise.application.progress_engine import ProgressEngine
from wordwise.infrastructure.adapters.memory_store import InMemoryStore
from wordwise.interface.cli import app

runner = CliRunner()

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryStore(card_ids=["apple", "banana"])


@pytest.fixture
def engine(store):
    engine = ProgressEngine(store, store, store, clock=lambda: NOW)
    with patch("wordwise.interface.cli._engine", return_value=engine):
        yield engine


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "review" in result.stdout
    assert "queue" in result.stdout
    assert "thresholds" in result.stdout


# --- Reviews ---


def test_review_command(engine):
    result = runner.invoke(
        app, ["review", "alice", "apple", "--correct", "--response-time", "2000"]
    )

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["state"] == "learning"
    assert data["score"] == 1.8


def test_incorrect_review_command(engine):
    result = runner.invoke(app, ["review", "alice", "apple", "--incorrect"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["correct_streak"] == 0


def test_review_error_exits_nonzero(engine):
    result = runner.invoke(app, ["review", " ", "apple"])

    assert result.exit_code == 1


def test_queue_and_stats(engine):
    runner.invoke(app, ["review", "alice", "apple"])

    queue = runner.invoke(app, ["queue", "alice"])
    stats = runner.invoke(app, ["stats", "alice"])

    assert queue.stdout.split() == ["banana", "apple"]
    assert json.loads(stats.stdout)["total_words"] == 1


def test_words_command(engine):
    runner.invoke(app, ["review", "alice", "apple"])
    runner.invoke(app, ["review", "alice", "banana", "--incorrect"])

    listed = runner.invoke(app, ["words", "alice"])
    learning = runner.invoke(app, ["words", "alice", "--state", "learning"])
    unknown_state = runner.invoke(app, ["words", "alice", "--state", "expert"])

    assert [r["flashcard_id"] for r in json.loads(listed.stdout)] == ["banana", "apple"]
    assert [r["state"] for r in json.loads(learning.stdout)] == ["learning"]
    assert unknown_state.exit_code == 1


# --- Reset ---


def test_reset_with_force(engine, store):
    runner.invoke(app, ["review", "alice", "apple"])

    result = runner.invoke(app, ["reset", "alice", "--force"])

    assert result.exit_code == 0
    assert store._progress == {}


def test_reset_declined(engine, store):
    runner.invoke(app, ["review", "alice", "apple"])

    result = runner.invoke(app, ["reset", "alice"], input="n\n")

    assert result.exit_code != 0
    assert len(store._progress) == 1


# --- Cards ---


@patch("wordwise.application.factory.get_store")
def test_cards_add(mock_get_store):
    mock_get_store.return_value.add_flashcards.return_value = 2

    result = runner.invoke(app, ["cards", "add", "pear", "fig"])

    assert result.exit_code == 0
    assert "Added 2" in result.stdout
    mock_get_store.return_value.add_flashcards.assert_called_once_with(["pear", "fig"])


# --- Thresholds ---


def test_thresholds_show(engine):
    result = runner.invoke(app, ["thresholds", "show"])

    assert result.exit_code == 0
    assert [row["state"] for row in json.loads(result.stdout)][0] == "unknown"


def test_thresholds_check(tmp_path):
    good = tmp_path / "good.yaml"
    good.write_text("- state: known\n  min_mastery_level: 2\n")
    bad = tmp_path / "bad.yaml"
    bad.write_text("thresholds: [unclosed")

    ok = runner.invoke(app, ["thresholds", "check", str(good)])
    broken = runner.invoke(app, ["thresholds", "check", str(bad)])

    assert ok.exit_code == 0
    assert "1 valid row(s): known" in ok.stdout
    assert broken.exit_code == 1


def test_thresholds_set(engine, store, tmp_path):
    path = tmp_path / "thresholds.yaml"
    path.write_text(
        "thresholds:\n"
        "  - state: learning\n"
        "    min_mastery_level: 1\n"
        "    next_review_delay: 2 days\n"
        "  - state: unknown\n"
    )

    result = runner.invoke(app, ["thresholds", "set", str(path)])

    assert result.exit_code == 0
    assert "Applied 2 row(s): unknown, learning" in result.stdout
    assert [t.state.value for t in store._thresholds] == ["unknown", "learning"]


def test_thresholds_set_rejects_partially_valid_file(engine, store, tmp_path):
    path = tmp_path / "thresholds.yaml"
    path.write_text("- state: known\n  min_mastery_level: 2\n- state: expert\n")

    result = runner.invoke(app, ["thresholds", "set", str(path)])

    assert result.exit_code == 1
    assert len(store._thresholds) == 5


# --- Config ---


@patch("wordwise.interface.cli.resolve_config")
def test_config_show_command(mock_resolve_config):
    mock_config = MagicMock()
    mock_config.model_dump.return_value = {"backend": "memory", "retry_attempts": 3}
    mock_resolve_config.return_value = mock_config

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["backend"] == "memory"


# --- Server ---


@patch("uvicorn.run")
def test_server_command(mock_run):
    result = runner.invoke(app, ["server", "--port", "9000"])
    assert result.exit_code == 0
    mock_run.assert_called_with("wordwise.server:app", host="127.0.0.1", port=9000, reload=False)
