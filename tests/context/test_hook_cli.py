"""Tests for the git-memory-context and rlm-configure command lines."""

import io
import json
import sys
from unittest.mock import patch

import pytest

from context.cli import main_configure, main_hook, read_prompt
from context.config import config_path, load_config
from context.llm import LLMError


class TestReadPrompt:
    """Tests for decoding hook input."""

    def test_hook_json(self):
        assert read_prompt('{"prompt": "fix the login bug"}') == "fix the login bug"

    def test_raw_text(self):
        assert read_prompt("  fix the login bug\n") == "fix the login bug"

    def test_json_without_prompt(self):
        assert read_prompt('{"session_id": "abc"}') == ""

    def test_json_non_object_is_raw_text(self):
        assert read_prompt("42") == "42"

    def test_empty(self):
        assert read_prompt("") == ""


def run_hook(monkeypatch, repo, stdin_text):
    monkeypatch.setattr(sys, "argv", ["git-memory-context", "--repo", str(repo)])
    monkeypatch.setattr(sys, "stdin", io.StringIO(stdin_text))
    with pytest.raises(SystemExit) as exc_info:
        main_hook()
    return exc_info.value.code


def test_hook_prints_block(temp_git_repo, git_commit, monkeypatch, capsys):
    git_commit("feat(auth): add login\n\nIntent: enable-capability\nScope: auth/login")

    code = run_hook(monkeypatch, temp_git_repo, json.dumps({"prompt": "login"}))

    assert code == 0
    out = capsys.readouterr().out
    assert out.startswith('<git-memory-context mode="recency">')


def test_hook_outside_repository_prints_nothing(tmp_path, monkeypatch, capsys):
    code = run_hook(monkeypatch, tmp_path, "anything")

    assert code == 0
    assert capsys.readouterr().out == ""


def run_configure(monkeypatch, repo, *args):
    monkeypatch.setattr(sys, "argv", ["rlm-configure", "--repo", str(repo), *args])
    with pytest.raises(SystemExit) as exc_info:
        main_configure()
    return exc_info.value.code


def test_configure_saves_changes(temp_git_repo, monkeypatch, capsys):
    code = run_configure(
        monkeypatch, temp_git_repo, "--enable", "--model", "qwen3:4b", "--timeout", "9000"
    )

    assert code == 0
    assert config_path(temp_git_repo).exists()
    config = load_config(temp_git_repo)
    assert config.enabled is True
    assert config.model == "qwen3:4b"
    assert config.timeout_ms == 9000
    assert "Model-enhanced retrieval: enabled" in capsys.readouterr().out


def test_configure_show_only_writes_nothing(temp_git_repo, monkeypatch):
    assert run_configure(monkeypatch, temp_git_repo) == 0
    assert not config_path(temp_git_repo).exists()


def test_enable_and_disable_are_exclusive(temp_git_repo, monkeypatch):
    assert run_configure(monkeypatch, temp_git_repo, "--enable", "--disable") == 2


@patch("context.cli.LocalLLMClient.call")
def test_check_success(mock_call, temp_git_repo, monkeypatch):
    mock_call.return_value = "ok"

    assert run_configure(monkeypatch, temp_git_repo, "--check") == 0
    assert mock_call.call_args.args[1] == "Reply with exactly: ok"


@patch("context.cli.LocalLLMClient.call")
def test_check_failure(mock_call, temp_git_repo, monkeypatch):
    mock_call.side_effect = LLMError("connection refused")

    assert run_configure(monkeypatch, temp_git_repo, "--check") == 1
