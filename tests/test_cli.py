"""
Tests for the WABOT CLI

Runs the typer commands in-process against an in-memory database.
"""

import pytest
from unittest.mock import patch
from typer.testing import CliRunner

from wabot.cli import app
from wabot.services.assistant.pipeline import build_pipeline
from wabot.services.seed_data import SAMPLE_KNOWLEDGE
from wabot.services.stores import KnowledgeStore


runner = CliRunner()


@pytest.fixture
def cli_db(db):
    with patch("wabot.cli.get_db", return_value=db):
        yield db


class TestCLIBasics:
    """Basic CLI tests."""

    def test_cli_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("init-db", "seed", "ask", "status", "serve"):
            assert command in result.stdout

    def test_cli_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "WABOT" in result.stdout


class TestDatabaseCommands:

    def test_init_db(self, cli_db):
        result = runner.invoke(app, ["init-db"])

        assert result.exit_code == 0
        assert "Database ready" in result.stdout
        assert "sqlite" in result.stdout

    def test_init_db_failure(self):
        with patch("wabot.cli.get_db", side_effect=RuntimeError("Access denied")):
            result = runner.invoke(app, ["init-db"])

        assert result.exit_code == 1
        assert "Access denied" in result.stdout

    def test_seed(self, cli_db):
        result = runner.invoke(app, ["seed"])

        assert result.exit_code == 0
        assert KnowledgeStore(cli_db).count() == len(SAMPLE_KNOWLEDGE)

    def test_seed_is_repeatable(self, cli_db):
        runner.invoke(app, ["seed"])
        result = runner.invoke(app, ["seed"])

        assert "Inserted 0" in result.stdout
        assert KnowledgeStore(cli_db).count() == len(SAMPLE_KNOWLEDGE)

    def test_seed_reset(self, cli_db):
        KnowledgeStore(cli_db).add("misc", "misc", "Old question?", "Old answer")

        result = runner.invoke(app, ["seed", "--reset"])

        assert result.exit_code == 0
        assert KnowledgeStore(cli_db).count() == len(SAMPLE_KNOWLEDGE)


class TestAsk:

    def test_ask_runs_pipeline(self, cli_db, test_settings):
        with patch("wabot.cli.build_pipeline", side_effect=lambda db: build_pipeline(db, test_settings)):
            result = runner.invoke(app, ["ask", "hi", "--from", "60123"])

        assert result.exit_code == 0
        assert "What would you like to know?" in result.stdout
        assert "intent: greeting" in result.stdout
        assert "model: fallback" in result.stdout

    def test_ask_uses_seeded_knowledge(self, cli_db, test_settings):
        runner.invoke(app, ["seed"])

        with patch("wabot.cli.build_pipeline", side_effect=lambda db: build_pipeline(db, test_settings)):
            result = runner.invoke(app, ["ask", "do you offer a free trial", "--from", "60123"])

        assert result.exit_code == 0
        assert "knowledge used: True" in result.stdout


class TestStatusAndServe:

    def test_status(self, cli_db):
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "Backend" in result.stdout
        assert "Database" in result.stdout

    def test_serve(self):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(app, ["serve", "--port", "3100"])

        assert result.exit_code == 0
        args, kwargs = mock_run.call_args
        assert args[0] == "wabot.main:app"
        assert kwargs["port"] == 3100
