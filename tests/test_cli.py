"""Tests for the CLI commands and display rendering.

Covers: Click command registration, ``chat`` and ``review`` in mock mode,
exit codes for bad input and unconfigured providers, ``config check``,
``config init``, and the Rich render helpers.
"""

from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from model_relay.cli import EXIT_BAD_INPUT, EXIT_UPSTREAM, main
from model_relay.display import _mask_key, render_failures, render_providers, render_review
from model_relay.errors import AllProvidersFailedError
from model_relay.router import MOCK_RESPONSE
from model_relay.types import DEFAULT_FALLBACK_ORDER, FailureRecord, Vendor

CLEAN_ENV = {
    "GEMINI_API_KEY": "",
    "GROQ_API_KEY": "",
    "OPENAI_API_KEY": "",
    "OLLAMA_HOST": "",
    "MOCK_MODE": "",
    "MODEL_COMPLETION": "",
    "MODEL_CHAT": "",
    "MODEL_REVIEW": "",
}

DIFF = "--- a/app.py\n+++ b/app.py\n@@ -1 +1 @@\n-x = 1\n+x = 2\n"


@pytest.fixture()
def isolated(tmp_path: Path):
    """Point the config file at a temp dir and clear provider env vars."""
    config_path = tmp_path / ".model-relay" / "config.toml"
    with (
        patch("model_relay.config.CONFIG_PATH", config_path),
        patch("model_relay.cli.CONFIG_PATH", config_path),
        patch.dict(os.environ, CLEAN_ENV, clear=False),
    ):
        yield config_path


# ---------------------------------------------------------------------------
# Click command registration
# ---------------------------------------------------------------------------


class TestCommandRegistration:
    """Top-level commands and the config group are registered."""

    def test_main_help_lists_commands(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        for name in ("chat", "complete", "review", "providers", "config"):
            assert name in result.output

    def test_config_subcommands(self) -> None:
        result = CliRunner().invoke(main, ["config", "--help"])
        assert result.exit_code == 0
        for name in ("path", "show", "check", "init"):
            assert name in result.output

    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "model-relay" in result.output


# ---------------------------------------------------------------------------
# Generation commands
# ---------------------------------------------------------------------------


class TestChatCommand:
    def test_mock_mode_answer(self, isolated: Path) -> None:
        result = CliRunner().invoke(main, ["chat", "What is a closure?"], env={"MOCK_MODE": "true"})
        assert result.exit_code == 0
        assert MOCK_RESPONSE in result.output

    def test_blank_message_exits_bad_input(self, isolated: Path) -> None:
        result = CliRunner().invoke(main, ["chat", "   "], env={"MOCK_MODE": "true"})
        assert result.exit_code == EXIT_BAD_INPUT

    def test_no_providers_exits_upstream(self, isolated: Path) -> None:
        isolated.parent.mkdir(parents=True, exist_ok=True)
        isolated.write_text('[[fallback]]\nprovider = "gemini"\nmodel = "gemini-2.0-flash"\n')
        result = CliRunner().invoke(main, ["chat", "hi"])
        assert result.exit_code == EXIT_UPSTREAM

    def test_invalid_config_file(self, isolated: Path) -> None:
        isolated.parent.mkdir(parents=True, exist_ok=True)
        isolated.write_text('[[fallback]]\nprovider = "nope"\nmodel = "x"\n')
        result = CliRunner().invoke(main, ["chat", "hi"])
        assert result.exit_code == EXIT_UPSTREAM


class TestReviewCommand:
    def test_mock_mode_json_output(self, isolated: Path) -> None:
        result = CliRunner().invoke(
            main,
            ["review", "-", "--title", "Bump x", "--files", "app.py", "--output", "json"],
            input=DIFF,
            env={"MOCK_MODE": "true"},
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["rawResponse"] is True
        assert data["summary"] == MOCK_RESPONSE

    def test_empty_diff_exits_bad_input(self, isolated: Path) -> None:
        result = CliRunner().invoke(main, ["review", "-"], input="", env={"MOCK_MODE": "true"})
        assert result.exit_code == EXIT_BAD_INPUT


# ---------------------------------------------------------------------------
# config commands
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_path(self, isolated: Path) -> None:
        result = CliRunner().invoke(main, ["config", "path"])
        assert result.exit_code == 0
        assert str(isolated) in result.output

    def test_check_fails_without_keys(self, isolated: Path) -> None:
        result = CliRunner().invoke(main, ["config", "check"])
        assert result.exit_code == 1
        assert "No AI API keys found" in result.output

    def test_check_passes_with_key(self, isolated: Path) -> None:
        result = CliRunner().invoke(main, ["config", "check"], env={"GROQ_API_KEY": "g" * 40})
        assert result.exit_code == 0
        assert "Validation passed" in result.output

    def test_check_passes_in_mock_mode(self, isolated: Path) -> None:
        result = CliRunner().invoke(main, ["config", "check"], env={"MOCK_MODE": "true"})
        assert result.exit_code == 0

    def test_init_writes_default_order(self, isolated: Path) -> None:
        result = CliRunner().invoke(main, ["config", "init"])
        assert result.exit_code == 0
        with open(isolated, "rb") as f:
            data = tomllib.load(f)
        assert len(data["fallback"]) == len(DEFAULT_FALLBACK_ORDER)

    def test_init_refuses_overwrite(self, isolated: Path) -> None:
        isolated.parent.mkdir(parents=True, exist_ok=True)
        isolated.write_text("mock_mode = true\n")
        result = CliRunner().invoke(main, ["config", "init"])
        assert result.exit_code == 1
        assert isolated.read_text() == "mock_mode = true\n"

    def test_show_masks_keys(self, isolated: Path) -> None:
        key = "AIza-secret-value-1234"
        result = CliRunner().invoke(main, ["config", "show"], env={"GEMINI_API_KEY": key})
        assert result.exit_code == 0
        assert key not in result.output
        assert "1234" in result.output


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


class TestDisplay:
    def test_mask_key(self) -> None:
        assert _mask_key("abc") == "****"
        assert _mask_key("sk-abcdef") == "****cdef"

    def test_render_review(self, capsys: pytest.CaptureFixture[str]) -> None:
        render_review(
            {
                "summary": "Two issues.",
                "comments": [{"file": "app.py", "line": 3, "comment": "Off by one"}],
                "patches": [{"file": "app.py", "diff": "+x = 2"}],
                "testCases": ["empty list"],
                "status": "validated",
            }
        )
        out = capsys.readouterr().out
        assert "Two issues." in out
        assert "Off by one" in out
        assert "empty list" in out

    def test_render_providers(self, capsys: pytest.CaptureFixture[str]) -> None:
        render_providers(DEFAULT_FALLBACK_ORDER, {"gemini": True, "mock_mode": False})
        out = capsys.readouterr().out
        assert "gemini-2.0-flash" in out
        assert "ready" in out
        assert "skipped" in out

    def test_render_failures(self, capsys: pytest.CaptureFixture[str]) -> None:
        render_failures(
            AllProvidersFailedError([FailureRecord(Vendor.GROQ, "llama", "status: HTTP 429")])
        )
        out = capsys.readouterr().out
        assert "HTTP 429" in out
