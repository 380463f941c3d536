"""
Tests for the typer CLI
=======================

Runs against a local configuration (ollama provider, direct parser, no
memory store) so no command needs network access.
"""

from __future__ import annotations

import threading

import pytest
from rich.prompt import Prompt
from typer.testing import CliRunner

from adapters.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def local_env(monkeypatch):
    monkeypatch.setattr("dotenv.load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setenv("LLM_PROVIDER", "ollama")
    monkeypatch.setenv("PARSER_MODE", "direct")
    monkeypatch.setenv("MEMORY_BACKEND", "none")


class TestCli:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "voice-agents v0.1.0" in result.output

    def test_agents_table(self):
        result = runner.invoke(app, ["agents"])
        assert result.exit_code == 0
        assert "voice_agent" in result.output
        assert "get_weather" in result.output

    def test_parse_direct(self):
        text = "daily_cigarettes: 3\ndaily_sleep: 6.5\ndaily_feeling: tired\ndaily_reason: stress"
        result = runner.invoke(app, ["parse", "daily_checkin", text])
        assert result.exit_code == 0
        assert '"daily_cigarettes": 3' in result.output
        assert '"daily_sleep": 6.5' in result.output

    def test_parse_unknown_interview(self):
        result = runner.invoke(app, ["parse", "favourite_colour", "blue"])
        assert result.exit_code == 2

    def test_parse_failure_exit_code(self):
        result = runner.invoke(app, ["parse", "contact_details", "phone: 12"])
        assert result.exit_code == 1
        assert "Parse failed" in result.output

    def test_bad_configuration_exits(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        result = runner.invoke(app, ["agents"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_chat_reads_input_off_the_event_loop(self, monkeypatch):
        threads = []

        def ask(*args, **kwargs):
            threads.append(threading.current_thread())
            return "exit"

        monkeypatch.setattr(Prompt, "ask", ask)
        result = runner.invoke(app, ["chat", "--user", "tester"])

        assert result.exit_code == 0
        assert "Goodbye" in result.output
        assert len(threads) == 1
        assert threads[0] is not threading.main_thread()
