"""
Trailer index: an inverted index from trailer values to commit hashes.

The index is built by one full traversal of the git log and stored as JSON
(by default at ``.git/info/trailer-index.json``). It records the HEAD commit
it was built against; an index whose head differs from the current HEAD is
stale and is never used. There is no incremental update: any change to the
repository means a full rebuild.
"""

import json
import os
import tempfile
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from common.constants import INDEX_FILENAME, INDEX_VERSION
from common.env import env
from common.logger import get_logger
from extract.git_utils import GitError, get_git_dir, get_head_commit, read_log
from extract.models import IndexedCommit, StructuredCommit
from extract.parser import parse_log_output

logger = get_logger(__name__)


class Freshness(str, Enum):
    """Freshness of the stored index relative to the current HEAD."""

    FRESH = "fresh"
    STALE = "stale"
    ABSENT = "absent"


@dataclass
class TrailerIndex:
    """In-memory form of the trailer index file."""

    head_commit: str
    generated: str
    version: int = INDEX_VERSION
    commit_count: int = 0
    by_intent: dict[str, list[str]] = field(default_factory=dict)
    by_scope: dict[str, list[str]] = field(default_factory=dict)
    by_session: dict[str, list[str]] = field(default_factory=dict)
    with_decided_against: list[str] = field(default_factory=list)
    # Insertion order is log order, newest first
    commits: dict[str, IndexedCommit] = field(default_factory=dict)

    def scope_keys(self) -> list[str]:
        """Scope keys, most used first (ties broken alphabetically)."""
        return sorted(self.by_scope, key=lambda k: (-len(self.by_scope[k]), k))

    def commits_for(self, hashes: list[str]) -> list[IndexedCommit]:
        return [self.commits[h] for h in hashes if h in self.commits]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "generated": self.generated,
            "headCommit": self.head_commit,
            "commitCount": self.commit_count,
            "byIntent": self.by_intent,
            "byScope": self.by_scope,
            "bySession": self.by_session,
            "withDecidedAgainst": self.with_decided_against,
            "commits": {h: c.to_dict() for h, c in self.commits.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrailerIndex":
        """
        Decode the on-disk representation.

        Raises:
            ValueError: If required keys are missing or malformed
        """
        try:
            return cls(
                version=int(data["version"]),
                generated=str(data.get("generated", "")),
                head_commit=str(data["headCommit"]),
                commit_count=int(data.get("commitCount", 0)),
                by_intent={k: list(v) for k, v in data.get("byIntent", {}).items()},
                by_scope={k: list(v) for k, v in data.get("byScope", {}).items()},
                by_session={k: list(v) for k, v in data.get("bySession", {}).items()},
                with_decided_against=list(data.get("withDecidedAgainst", [])),
                commits={
                    h: IndexedCommit.from_dict(c) for h, c in data.get("commits", {}).items()
                },
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed trailer index: {e}") from e


def index_path(repo_root: Path) -> Path:
    """
    Location of the index file for a repository.

    Raises:
        GitError: If no override is set and repo_root is not a repository
    """
    override = env.trailer_index_path()
    if override is not None:
        return override
    return get_git_dir(repo_root) / "info" / INDEX_FILENAME


def build_index_from_commits(
    commits: list[StructuredCommit], head_commit: str
) -> TrailerIndex:
    """Build the inverted maps for already-parsed commits (log order)."""
    index = TrailerIndex(
        head_commit=head_commit,
        generated=datetime.now(timezone.utc).isoformat(),
        commit_count=len(commits),
    )

    for commit in commits:
        index.commits[commit.hash] = IndexedCommit.from_commit(commit)

        if commit.intent:
            index.by_intent.setdefault(commit.intent, []).append(commit.hash)
        for scope in commit.scope:
            hashes = index.by_scope.setdefault(scope, [])
            if not hashes or hashes[-1] != commit.hash:
                hashes.append(commit.hash)
        if commit.session:
            index.by_session.setdefault(commit.session, []).append(commit.hash)
        if commit.decided_against:
            index.with_decided_against.append(commit.hash)

    return index


def build_index(repo_root: Path) -> TrailerIndex:
    """
    Build a trailer index from the full git log.

    Args:
        repo_root: Path to git repository root

    Returns:
        Freshly built index stamped with the current HEAD

    Raises:
        GitError: If HEAD or the log cannot be read
    """
    head = get_head_commit(repo_root)
    commits, errors = parse_log_output(read_log(repo_root))

    if errors:
        logger.info(
            f"Skipped [bold]{len(errors)}[/bold] non-structured or malformed commit(s)"
        )

    return build_index_from_commits(commits, head)


def write_index(index: TrailerIndex, path: Path) -> Path:
    """
    Write the index atomically (temp file in the same directory, then rename).

    Concurrent readers see either the previous file or the new one, never a
    partial write.

    Raises:
        OSError: If the file cannot be written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(index.to_dict(), f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    return path


def read_index_file(path: Path) -> TrailerIndex:
    """
    Decode an index file without checking freshness.

    Callers reading the index this way must compare ``head_commit`` with the
    current HEAD themselves.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid index
    """
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Trailer index is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Trailer index is not a JSON object")
    return TrailerIndex.from_dict(data)


def _read_state(repo_root: Path) -> tuple[Freshness, TrailerIndex | None]:
    try:
        path = index_path(repo_root)
        head = get_head_commit(repo_root)
    except GitError as e:
        logger.debug(f"No repository state available: {e}")
        return Freshness.ABSENT, None

    if not path.exists():
        return Freshness.ABSENT, None

    try:
        index = read_index_file(path)
    except (OSError, ValueError) as e:
        logger.debug(f"Ignoring unreadable trailer index at {path}: {e}")
        return Freshness.STALE, None

    if index.version != INDEX_VERSION or index.head_commit != head:
        return Freshness.STALE, None

    return Freshness.FRESH, index


def check_freshness(repo_root: Path) -> Freshness:
    """
    Compare the stored index against the current HEAD.

    Returns:
        FRESH if the index matches HEAD, STALE if it exists but is outdated,
        corrupt or of another version, ABSENT if there is no index (or no
        readable repository)
    """
    return _read_state(repo_root)[0]


def load_index(repo_root: Path) -> TrailerIndex | None:
    """
    Load the index only if it is fresh.

    Returns:
        The index, or None when it is stale, missing, corrupt or of an
        unrecognized version. None means "no index": fall back, do not retry.
    """
    freshness, index = _read_state(repo_root)
    if freshness is not Freshness.FRESH:
        logger.debug(f"Trailer index unavailable ({freshness.value})")
    return index
