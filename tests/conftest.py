"""Shared fixtures: temporary git repositories with deterministic commit dates."""

import itertools
import os
import subprocess

import pytest

ISOLATED_ENV_VARS = (
    "STRUCTURED_GIT_SESSION",
    "TRAILER_INDEX_PATH",
    "RLM_CONFIG_PATH",
    "RLM_ENABLED",
    "RLM_ENDPOINT",
    "RLM_MODEL",
    "RLM_TIMEOUT_MS",
    "RLM_MAX_TOKENS",
    "RLM_BENCH_TRACE",
    "RLM_BENCH_TRACE_FILE",
    "RLM_BENCH_PROMPT_ID",
    "RLM_BENCH_RUN_ID",
    "GIT_MEMORY_INDEX_MISS_FALLBACK",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep developer settings (or a local .env) out of the tests."""
    for name in ISOLATED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _git(repo_path, *args, env=None):
    return subprocess.run(
        ["git", *args],
        cwd=repo_path,
        check=True,
        capture_output=True,
        text=True,
        env=env,
    ).stdout


@pytest.fixture
def temp_git_repo(tmp_path):
    """
    Create a temporary git repository with proper git config.
    Returns the repo path.
    """
    repo_path = tmp_path / "test_repo"
    repo_path.mkdir()

    _git(repo_path, "init")
    _git(repo_path, "config", "user.name", "Test User")
    _git(repo_path, "config", "user.email", "test@example.com")
    _git(repo_path, "config", "commit.gpgsign", "false")

    return repo_path


@pytest.fixture
def git_commit(temp_git_repo):
    """
    Commit factory for temp_git_repo.

    Each call creates an empty commit with the given message, one day after
    the previous one, and returns the new HEAD hash.
    """
    days = itertools.count(1)

    def make(message: str) -> str:
        date = f"2025-01-{next(days):02d}T12:00:00+00:00"
        env = {**os.environ, "GIT_AUTHOR_DATE": date, "GIT_COMMITTER_DATE": date}
        _git(temp_git_repo, "commit", "--allow-empty", "-m", message, env=env)
        return _git(temp_git_repo, "rev-parse", "HEAD").strip()

    return make
