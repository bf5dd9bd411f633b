"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

from mindly.store import SqlStudentStateStore
from mindly.tutor.types import MasteryEntry, MasteryLevel, Misconception, StudentState

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


@pytest.fixture
def database_url(tmp_path):
    """A file-backed SQLite database seeded with one student."""
    url = f"sqlite:///{tmp_path / 'tutor.db'}"
    store = SqlStudentStateStore(url)
    store.init_db()
    store.save(
        StudentState(
            user_id="asha",
            exam_domain="UPSC",
            messages_in_session=5,
            concept_mastery={"Federalism": MasteryEntry(level=MasteryLevel.FRAGILE, failure_count=2)},
        )
    )
    store.engine.dispose()
    return url


def run_cli_command(command: list[str], database_url: str, timeout: int = 30) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        command: Arguments after 'python -m mindly.cli.main'
        database_url: DATABASE_URL for the subprocess
        timeout: Maximum time to wait

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    env = {
        **os.environ,
        "DATABASE_URL": database_url,
        "GROQ_API_KEY": "",
        "GEMINI_API_KEY": "",
        "LLM_PROVIDER": "groq",
        "COLUMNS": "200",
    }
    result = subprocess.run(
        [sys.executable, "-m", "mindly.cli.main", *command],
        cwd=PROJECT_ROOT,
        env=env,
        capture_output=True,
        text=True,
        timeout=timeout,
    )

    return result.returncode, result.stdout, result.stderr


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, database_url):
        code, stdout, stderr = run_cli_command(["--help"], database_url)

        assert code == 0, f"Help failed: {stderr}"
        assert "chat" in stdout
        assert "state" in stdout
        assert "prompt" in stdout

    def test_version(self, database_url):
        code, stdout, stderr = run_cli_command(["version"], database_url)

        assert code == 0, f"Version failed: {stderr}"
        assert "mindly" in stdout


class TestCLIState:
    """Test state commands."""

    def test_show_seeded_student(self, database_url):
        code, stdout, stderr = run_cli_command(["state", "show", "--user", "asha"], database_url)

        assert code == 0, f"State show failed: {stderr}"
        assert "Federalism" in stdout
        assert "FRAGILE" in stdout

    def test_show_unknown_student(self, database_url):
        code, stdout, stderr = run_cli_command(["state", "show", "--user", "ghost"], database_url)

        assert code == 0, f"State show crashed: {stderr}"
        assert "No concepts assessed yet" in stdout

    def test_show_escapes_bracketed_text(self, database_url):
        store = SqlStudentStateStore(database_url)
        store.save(
            StudentState(
                user_id="ravi",
                pending_question="What does [/x] mean?",
                concept_mastery={"Arrays [/x]": MasteryEntry(level=MasteryLevel.SOLID)},
                misconceptions=[
                    Misconception(concept="[bold]Sets", misconception="thinks [/] is empty", session_number=1)
                ],
            )
        )
        store.engine.dispose()

        code, stdout, stderr = run_cli_command(["state", "show", "--user", "ravi"], database_url)

        assert code == 0, f"State show crashed: {stderr}"
        assert "Arrays [/x]" in stdout
        assert "[bold]Sets" in stdout
        assert "thinks [/] is empty" in stdout

    def test_reset(self, database_url):
        code, stdout, stderr = run_cli_command(
            ["state", "reset", "--user", "asha", "--yes"], database_url
        )

        assert code == 0, f"Reset failed: {stderr}"
        assert "Reset state for asha" in stdout

        store = SqlStudentStateStore(database_url)
        assert store.load("asha").concept_mastery == {}


class TestCLIPrompt:
    """Test prompt command."""

    def test_prompt_for_stored_state(self, database_url):
        code, stdout, stderr = run_cli_command(
            ["prompt", "--user", "asha", "--action", "warmup_retrieval"], database_url
        )

        assert code == 0, f"Prompt failed: {stderr}"
        assert "WARM-UP RETRIEVAL" in stdout
        assert "Federalism" in stdout

    def test_invalid_action(self, database_url):
        code, _, _ = run_cli_command(
            ["prompt", "--user", "asha", "--action", "dance"], database_url
        )

        assert code == 2


class TestCLIChat:
    """Test chat command without a configured backend."""

    def test_chat_without_api_key_exits(self, database_url):
        code, stdout, stderr = run_cli_command(["chat", "--user", "asha"], database_url)

        assert code == 1
        assert "No API key configured" in stdout
