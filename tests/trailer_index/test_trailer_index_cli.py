"""Tests for the trailer-index command line."""

import argparse

from trailer_index.cli import cmd_build, cmd_check, cmd_stats
from trailer_index.store import index_path


def args_for(repo):
    return argparse.Namespace(repo=repo)


def test_build_then_check(temp_git_repo, git_commit, capsys):
    git_commit("feat(auth): add login\n\nIntent: enable-capability\nScope: auth/login")

    assert cmd_check(args_for(temp_git_repo)) == 1
    assert cmd_build(args_for(temp_git_repo)) == 0
    assert index_path(temp_git_repo).exists()
    assert cmd_check(args_for(temp_git_repo)) == 0

    assert "Commits indexed: 1" in capsys.readouterr().out


def test_check_after_new_commit_fails(temp_git_repo, git_commit):
    git_commit("feat: first")
    cmd_build(args_for(temp_git_repo))
    git_commit("fix: second")

    assert cmd_check(args_for(temp_git_repo)) == 1


def test_build_outside_repository_fails(tmp_path):
    assert cmd_build(args_for(tmp_path)) == 1


def test_stats_without_index_fails(temp_git_repo, git_commit):
    git_commit("feat: first")
    assert cmd_stats(args_for(temp_git_repo)) == 1


def test_stats_reports_scopes(temp_git_repo, git_commit, capsys):
    git_commit("feat(auth): add login\n\nIntent: enable-capability\nScope: auth/login")
    cmd_build(args_for(temp_git_repo))
    capsys.readouterr()

    assert cmd_stats(args_for(temp_git_repo)) == 0

    out = capsys.readouterr().out
    assert "Status: fresh" in out
    assert "enable-capability: 1" in out
    assert "auth/login" in out


def test_build_reports_progress_on_stderr(temp_git_repo, git_commit, capsys):
    git_commit("feat: first")

    assert cmd_build(args_for(temp_git_repo)) == 0

    captured = capsys.readouterr()
    assert "Building trailer index" in captured.err
    assert "Building trailer index" not in captured.out
