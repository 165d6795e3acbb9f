"""Render retrieval results as the context block injected before a prompt.

Block layout::

    <git-memory-context mode="heuristic">
    Relevant decisions (decided-against):
    - [auth/login] Redis pub/sub (no persistence guarantee)

    Relevant commits:
    a1b2c3d fix(auth): handle expired sessions | auth/login

    Session: 2025-02-08/passkey (3 commits)
    </git-memory-context>

The ``mode`` attribute names the retrieval mode actually used, so
evaluation tooling can attribute quality to it.
"""

import re
from dataclasses import dataclass, field

from common.constants import MODE_RECENCY
from extract.models import IndexedCommit

_BLOCK_RE = re.compile(r'<git-memory-context mode="([^"]+)">[\s\S]*?</git-memory-context>')


@dataclass(frozen=True)
class DecisionEntry:
    """A decided-against entry with the scopes of its commit."""

    scope: tuple[str, ...]
    text: str


@dataclass(frozen=True)
class SessionInfo:
    id: str
    commit_count: int


@dataclass
class ContextResult:
    """Everything the pipeline resolved for one prompt."""

    mode: str
    commits: list[IndexedCommit] = field(default_factory=list)
    decisions: list[DecisionEntry] = field(default_factory=list)
    session: SessionInfo | None = None
    summary: str | None = None

    @property
    def hashes(self) -> list[str]:
        return [c.hash for c in self.commits]


def decisions_for(commits: list[IndexedCommit], limit: int) -> list[DecisionEntry]:
    """Collect decided-against entries from commits in order, up to ``limit``."""
    decisions: list[DecisionEntry] = []
    for commit in commits:
        for text in commit.decided_against:
            if len(decisions) >= limit:
                return decisions
            decisions.append(DecisionEntry(scope=tuple(commit.scope), text=text))
    return decisions


def format_commit_line(commit: IndexedCommit) -> str:
    scope_suffix = f" | {', '.join(commit.scope)}" if commit.scope else ""
    return f"{commit.hash[:7]} {commit.subject}{scope_suffix}"


def format_listing(result: ContextResult) -> str:
    """Render decisions and commits without the surrounding tags."""
    label = "Recent" if result.mode == MODE_RECENCY else "Relevant"
    lines: list[str] = []

    if result.decisions:
        lines.append(f"{label} decisions (decided-against):")
        for d in result.decisions:
            scope_label = f"[{', '.join(d.scope)}] " if d.scope else ""
            lines.append(f"- {scope_label}{d.text}")
        lines.append("")

    if result.commits:
        lines.append(f"{label} commits:")
        lines.extend(format_commit_line(c) for c in result.commits)

    return "\n".join(lines).strip()


def render_context(result: ContextResult) -> str:
    """
    Render the full context block.

    Returns:
        The block, or an empty string when there is nothing to show
    """
    if not result.commits and not result.summary:
        return ""

    if result.summary:
        body = f"Summary:\n{result.summary.strip()}"
    else:
        body = format_listing(result)

    if result.session:
        plural = "" if result.session.commit_count == 1 else "s"
        body += f"\n\nSession: {result.session.id} ({result.session.commit_count} commit{plural})"

    return f'<git-memory-context mode="{result.mode}">\n{body}\n</git-memory-context>'


def parse_context_block(text: str) -> tuple[str | None, str | None]:
    """
    Find a context block in hook output.

    Returns:
        Tuple of (mode, full block), or (None, None) if there is no block
    """
    match = _BLOCK_RE.search(text)
    if not match:
        return None, None
    return match.group(1), match.group(0)
