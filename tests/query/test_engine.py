"""
Integration tests for the query engine.

Each scenario runs twice where it matters: once answered from a fresh
trailer index and once from a full log scan, and both must agree.
"""

from unittest.mock import patch

import pytest

from extract.git_utils import GitError
from query.engine import query, run_query
from query.filters import IndexMissPolicy, QueryParams
from trailer_index.store import build_index, index_path, write_index


def rebuild_index(repo):
    write_index(build_index(repo), index_path(repo))


@pytest.fixture
def history(temp_git_repo, git_commit):
    """A small history exercising scope and keyword precision."""
    hashes = {
        "auth": git_commit(
            "fix(auth): handle expired sessions\n\n"
            "Intent: fix-defect\n"
            "Scope: auth/login\n"
            "Decided-Against: Redis pub/sub (no persistence guarantee)\n"
            "Session: 2025-02-08/expiry"
        ),
        "oauth": git_commit(
            "feat(oauth): add github provider\n\n"
            "Intent: enable-capability\n"
            "Scope: oauth/provider\n"
            "Decided-Against: predis client (unmaintained)"
        ),
        "authn": git_commit(
            "refactor(authentication): split guards\n\n"
            "Intent: restructure\n"
            "Scope: authentication"
        ),
        "plain": git_commit("Update README"),
        "docs": git_commit(
            "docs(auth): describe login flow\n\n"
            "Intent: document\n"
            "Scope: auth\n"
            "Session: 2025-02-08/expiry"
        ),
    }
    return temp_git_repo, hashes


def result_hashes(result):
    return [c.hash for c in result.commits]


@pytest.mark.parametrize("indexed", [True, False])
class TestPrecision:
    """Scope and keyword precision, with and without the index."""

    def test_scope_prefix_excludes_lookalikes(self, history, indexed):
        repo, h = history
        if indexed:
            rebuild_index(repo)

        result = run_query(QueryParams(scope="auth"), repo)

        assert result_hashes(result) == [h["docs"], h["auth"]]
        assert result.used_index is indexed

    def test_keyword_excludes_partial_words(self, history, indexed):
        repo, h = history
        if indexed:
            rebuild_index(repo)

        result = run_query(QueryParams(decided_against="redis"), repo)

        assert result_hashes(result) == [h["auth"]]

    def test_intents_union_and_session(self, history, indexed):
        repo, h = history
        if indexed:
            rebuild_index(repo)

        params = QueryParams(intents=("fix-defect", "document"), session="2025-02-08/expiry")
        assert result_hashes(run_query(params, repo)) == [h["docs"], h["auth"]]


class TestIndexUse:
    """When the index is consulted and what happens on a miss."""

    def test_stale_index_is_ignored(self, history, git_commit):
        repo, h = history
        rebuild_index(repo)
        newer = git_commit("fix(auth): reject reused tokens\n\nIntent: fix-defect\nScope: auth/token")

        result = run_query(QueryParams(scope="auth"), repo)

        assert not result.used_index
        assert result_hashes(result)[0] == newer

    def test_no_index_flag(self, history):
        repo, _ = history
        rebuild_index(repo)
        assert not run_query(QueryParams(scope="auth"), repo, no_index=True).used_index

    def test_since_skips_index(self, history):
        repo, _ = history
        rebuild_index(repo)
        assert not run_query(QueryParams(scope="auth"), repo, since="2020-01-01").used_index

    def test_miss_without_keyword_is_trusted(self, history):
        repo, _ = history
        rebuild_index(repo)

        result = run_query(QueryParams(intents=("explore",)), repo)

        assert result.commits == []
        assert result.used_index

    def test_miss_with_keyword_is_confirmed_by_scan(self, history):
        repo, _ = history
        rebuild_index(repo)

        result = run_query(QueryParams(session="nope", decided_against="redis"), repo)

        assert result.commits == []
        assert not result.used_index

    def test_always_policy_rescans(self, history):
        repo, _ = history
        rebuild_index(repo)

        result = run_query(
            QueryParams(intents=("explore",)), repo, miss_policy=IndexMissPolicy.ALWAYS
        )
        assert not result.used_index

    def test_failed_hash_read_falls_back_to_scan(self, history):
        repo, h = history
        rebuild_index(repo)

        with patch("query.engine.read_log_for_hashes", side_effect=GitError("bad object")):
            result = run_query(QueryParams(intents=("fix-defect", "document")), repo)

        assert result_hashes(result) == [h["docs"], h["auth"]]
        assert not result.used_index

    def test_exact_candidates_cut_to_limit_before_reading(self, history):
        repo, h = history
        rebuild_index(repo)

        with patch("query.engine.read_log_for_hashes", return_value="") as mock_read:
            run_query(QueryParams(scope="auth", limit=1), repo)

        assert mock_read.call_args.args[1] == [h["docs"]]

    def test_keyword_candidates_are_not_cut(self, history):
        repo, h = history
        rebuild_index(repo)

        result = run_query(QueryParams(decided_against="redis", limit=1), repo)

        assert result_hashes(result) == [h["auth"]]
        assert result.used_index

    def test_policy_from_environment(self, history, monkeypatch):
        repo, _ = history
        rebuild_index(repo)
        monkeypatch.setenv("GIT_MEMORY_INDEX_MISS_FALLBACK", "never")

        result = run_query(QueryParams(session="nope", decided_against="redis"), repo)
        assert result.used_index


def test_unfiltered_query_returns_newest_structured(history):
    repo, h = history
    result = run_query(QueryParams(limit=2), repo)

    assert result_hashes(result) == [h["docs"], h["authn"]]
    assert [e.hash for e in result.errors] == [h["plain"]]


def test_query_returns_commits(history):
    repo, h = history
    commits = query(QueryParams(decisions_only=True, limit=1), repo)
    assert [c.hash for c in commits] == [h["oauth"]]


def test_outside_repository_raises(tmp_path):
    with pytest.raises(GitError):
        run_query(QueryParams(scope="auth"), tmp_path)
