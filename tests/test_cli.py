"""
Tests for the replybot CLI.
"""

import json
import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from replybot.cli.commands import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI callback swaps the loguru sink for the runner's stderr."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "autoReply": {
            "enabled": True,
            "replyMode": "keyword",
            "responseDelay": 0,
            "fallbackMessage": "",
            "keywordRules": [
                {"name": "greeting", "keywords": ["hello"], "response": "Hi!"},
                {"name": "pricing", "keywords": ["price"], "response": "See the site."},
            ],
            "stats": {"storageDir": str(tmp_path / "data")},
        }
    }))
    return path


def test_match_exact(config_file):
    result = runner.invoke(app, ["match", "hello there", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "hello" in result.stdout
    assert "[exact]" in result.stdout
    assert "Hi!" in result.stdout


def test_match_fuzzy(config_file):
    result = runner.invoke(app, ["match", "prise", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "[fuzzy]" in result.stdout


def test_match_nothing_exits_nonzero(config_file):
    result = runner.invoke(app, ["match", "zzzz", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "No keyword rule matched" in result.stdout


def test_status_shows_mode(config_file):
    result = runner.invoke(app, ["status", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "keyword" in result.stdout


def test_invalid_config_exits(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    result = runner.invoke(app, ["status", "--config", str(path)])

    assert result.exit_code == 1


def test_stats_without_data(config_file):
    result = runner.invoke(app, ["stats", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "No stats recorded yet" in result.stdout


def test_simulate_sends_keyword_reply(config_file):
    result = runner.invoke(app, ["simulate", "-m", "hello", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "Hi!" in result.stdout
    assert "kind=keyword" in result.stdout


def test_simulate_group_without_mention_gets_no_reply(config_file):
    result = runner.invoke(
        app, ["simulate", "-m", "hello", "--group", "--config", str(config_file)]
    )

    assert result.exit_code == 1
    assert "No reply" in result.stdout
