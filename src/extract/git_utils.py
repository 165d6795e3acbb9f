"""Thin wrappers around the git commands used to read commit history."""

import subprocess
from collections.abc import Iterable, Sequence
from pathlib import Path

from common.constants import LOG_FORMAT
from common.logger import get_logger

logger = get_logger(__name__)


class GitError(RuntimeError):
    """Raised when a git command fails or git is not available."""


def run_git(args: Iterable[str], repo_root: Path) -> str:
    """
    Run a git sub-command and return its stdout.

    Args:
        args: Arguments after ``git``
        repo_root: Directory to run git in

    Returns:
        Raw stdout of the command

    Raises:
        GitError: If git is not installed, the directory is not a
            repository, or the command exits non-zero
    """
    args = list(args)
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise GitError("git executable not found") from e
    except NotADirectoryError as e:
        raise GitError(f"{repo_root} is not a directory") from e
    except OSError as e:
        raise GitError(f"git {args[0]} could not be started: {e}") from e

    if completed.returncode != 0:
        raise GitError(completed.stderr.strip() or f"git {args[0]} failed")
    return completed.stdout


def get_git_dir(repo_root: Path) -> Path:
    """
    Resolve the repository's git directory.

    Args:
        repo_root: Path inside a git working tree

    Returns:
        Absolute path to the .git directory

    Raises:
        GitError: If repo_root is not inside a repository
    """
    git_dir = Path(run_git(["rev-parse", "--git-dir"], repo_root).strip())
    if not git_dir.is_absolute():
        git_dir = Path(repo_root) / git_dir
    return git_dir


def get_head_commit(repo_root: Path) -> str:
    """
    Get current HEAD commit hash.

    Raises:
        GitError: If git command fails (including an empty repository)
    """
    return run_git(["rev-parse", "HEAD"], repo_root).strip()


def read_log(
    repo_root: Path,
    max_count: int | None = None,
    since: str | None = None,
    path: str | None = None,
    grep: Sequence[str] = (),
) -> str:
    """
    Read raw git log output in the structured record format.

    Args:
        repo_root: Path to git repository root
        max_count: Maximum number of records (None for the full history)
        since: Optional git --since expression
        path: Optional pathspec limiting the log
        grep: Optional --grep patterns (git ORs multiple patterns)

    Returns:
        Delimiter-separated raw log text, one block per commit

    Raises:
        GitError: If git command fails
    """
    args = ["log", LOG_FORMAT]
    if max_count is not None:
        args.append(f"-n{max_count}")
    if since:
        args.append(f"--since={since}")
    for pattern in grep:
        args.append(f"--grep={pattern}")
    if path:
        args.extend(["--", path])

    logger.debug(f"git {' '.join(args)}")
    return run_git(args, repo_root)


def read_log_for_hashes(repo_root: Path, hashes: Sequence[str]) -> str:
    """
    Read raw git log output for an explicit set of commits.

    Uses: git log --no-walk <hash>...

    Raises:
        GitError: If git command fails
    """
    if not hashes:
        return ""
    return run_git(["log", LOG_FORMAT, "--no-walk", *hashes], repo_root)
