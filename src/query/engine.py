"""
Query entry point over structured commit history.

A query is answered from the trailer index when the index is fresh and the
filters are ones it can express; otherwise, or when the index reports no
candidates for a filter it cannot express exactly, the full git log is
scanned with the precision filters.
"""

from dataclasses import dataclass, field
from pathlib import Path

from common.env import env
from common.logger import get_logger
from extract.git_utils import GitError, read_log, read_log_for_hashes
from extract.models import ParseError, StructuredCommit
from extract.parser import parse_log_output
from trailer_index.store import load_index

from .filters import (
    IndexMissPolicy,
    QueryParams,
    apply_query_filters,
    can_use_index,
    index_candidates,
    should_fall_back,
)

logger = get_logger(__name__)


@dataclass
class QueryResult:
    """Commits matching a query plus how they were found."""

    commits: list[StructuredCommit]
    used_index: bool = False
    errors: list[ParseError] = field(default_factory=list)


def _full_scan(
    repo_root: Path,
    params: QueryParams,
    path: str | None,
    since: str | None,
) -> QueryResult:
    commits, errors = parse_log_output(read_log(repo_root, since=since, path=path))
    return QueryResult(commits=apply_query_filters(commits, params), errors=errors)


def run_query(
    params: QueryParams,
    repo_root: Path,
    *,
    no_index: bool = False,
    path: str | None = None,
    since: str | None = None,
    miss_policy: IndexMissPolicy | None = None,
) -> QueryResult:
    """
    Resolve a query, preferring the trailer index.

    Args:
        params: Query filters
        repo_root: Path to git repository root
        no_index: Skip the index even if it is fresh
        path: Optional pathspec (forces a log scan)
        since: Optional git --since expression (forces a log scan)
        miss_policy: How to treat zero index candidates; defaults to the
            GIT_MEMORY_INDEX_MISS_FALLBACK setting

    Returns:
        QueryResult with matching commits in log order, newest first

    Raises:
        GitError: If the git log cannot be read
    """
    if miss_policy is None:
        miss_policy = IndexMissPolicy.from_value(env.index_miss_fallback())

    if can_use_index(params, no_index=no_index, path=path, since=since):
        index = load_index(repo_root)
        if index is not None:
            hashes = index_candidates(index, params)
            if hashes:
                # Only keyword matches need re-checking against the full text
                if not params.decided_against:
                    hashes = hashes[: params.limit]
                try:
                    raw = read_log_for_hashes(repo_root, hashes)
                except GitError as e:
                    logger.debug(f"Reading indexed commits failed, scanning the log: {e}")
                    return _full_scan(repo_root, params, path, since)
                commits, errors = parse_log_output(raw)
                return QueryResult(
                    commits=apply_query_filters(commits, params),
                    used_index=True,
                    errors=errors,
                )
            if not should_fall_back(params, miss_policy):
                return QueryResult(commits=[], used_index=True)
            logger.debug("Index returned no candidates; confirming with a full scan")

    return _full_scan(repo_root, params, path, since)


def query(
    params: QueryParams,
    repo_root: Path | None = None,
    **kwargs,
) -> list[StructuredCommit]:
    """
    Return the commits matching ``params``, newest first.

    Accepts the same keyword arguments as ``run_query``.

    Raises:
        GitError: If the git log cannot be read
    """
    return run_query(params, repo_root or Path.cwd(), **kwargs).commits
