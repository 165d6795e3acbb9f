"""
Composable query operations over structured commits.

Each filter is a pure function: commits in, commits out. The filters accept
anything carrying ``intent``, ``scope``, ``session`` and ``decided_against``
attributes, so they run over parsed ``StructuredCommit`` records and over the
``IndexedCommit`` projections stored in the trailer index alike.

Usage:
    from query.filters import QueryParams, apply_query_filters, filter_by_scope

    # Compose filters manually
    result = filter_by_scope("auth")(filter_by_intents(["fix-defect"])(commits))

    # Or use the all-in-one composition
    result = apply_query_filters(commits, QueryParams(intents=("fix-defect",), scope="auth"))
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, TypeVar

from common.constants import DEFAULT_QUERY_LIMIT
from trailer_index.store import TrailerIndex

from .matching import scope_matches, word_boundary_match


class Filterable(Protocol):
    @property
    def hash(self) -> str: ...

    @property
    def intent(self) -> str | None: ...

    @property
    def scope(self) -> Sequence[str]: ...

    @property
    def session(self) -> str | None: ...

    @property
    def decided_against(self) -> Sequence[str]: ...


C = TypeVar("C", bound=Filterable)
Filter = Callable[[Sequence[C]], list[C]]


@dataclass(frozen=True)
class QueryParams:
    """Filter set for a commit query.

    Multiple intents are OR-combined; every other active field is
    AND-combined with the intents and with each other.
    """

    intents: tuple[str, ...] = ()
    scope: str | None = None
    session: str | None = None
    decisions_only: bool = False
    decided_against: str | None = None
    limit: int = DEFAULT_QUERY_LIMIT

    def __post_init__(self):
        if self.limit <= 0:
            raise ValueError(f"limit must be a positive integer, got {self.limit}")
        object.__setattr__(self, "intents", tuple(self.intents))

    @property
    def has_filters(self) -> bool:
        return bool(
            self.intents
            or self.scope
            or self.session
            or self.decisions_only
            or self.decided_against
        )


# ---------------------------------------------------------------------------
# Composable filter functions
# ---------------------------------------------------------------------------


def filter_by_intents(intents: Iterable[str]) -> Filter:
    """Filter commits by intent types (OR across intents)."""
    wanted = set(intents)

    def apply(commits: Sequence[C]) -> list[C]:
        if not wanted:
            return list(commits)
        return [c for c in commits if c.intent is not None and c.intent in wanted]

    return apply


def filter_by_scope(pattern: str) -> Filter:
    """Filter commits by scope using hierarchical prefix matching."""

    def apply(commits: Sequence[C]) -> list[C]:
        return [c for c in commits if any(scope_matches(s, pattern) for s in c.scope)]

    return apply


def filter_by_session(session: str) -> Filter:
    """Filter commits by exact session match."""

    def apply(commits: Sequence[C]) -> list[C]:
        return [c for c in commits if c.session == session]

    return apply


def filter_decisions_only(commits: Sequence[C]) -> list[C]:
    """Keep only commits that have decided-against entries."""
    return [c for c in commits if c.decided_against]


def filter_by_decided_against(keyword: str) -> Filter:
    """Filter commits by decided-against keyword using word-boundary matching."""

    def apply(commits: Sequence[C]) -> list[C]:
        return [
            c for c in commits if any(word_boundary_match(d, keyword) for d in c.decided_against)
        ]

    return apply


def apply_query_filters(commits: Sequence[C], params: QueryParams) -> list[C]:
    """
    Apply all query filters in a fixed order.

    Order: intents, scope, session, decisions-only, decided-against, then
    truncation to ``params.limit``.
    """
    result: list[C] = list(commits)

    if params.intents:
        result = filter_by_intents(params.intents)(result)
    if params.scope:
        result = filter_by_scope(params.scope)(result)
    if params.session:
        result = filter_by_session(params.session)(result)
    if params.decisions_only:
        result = filter_decisions_only(result)
    if params.decided_against:
        result = filter_by_decided_against(params.decided_against)(result)

    return result[: params.limit]


# ---------------------------------------------------------------------------
# Index-based resolution
# ---------------------------------------------------------------------------


class IndexMissPolicy(str, Enum):
    """What an empty index result means for a query with active filters."""

    # Re-scan only when a decided-against keyword is active, because the
    # index can only say "has decided-against entries", not which words.
    DECIDED_AGAINST = "decided-against"
    ALWAYS = "always"
    NEVER = "never"

    @classmethod
    def from_value(cls, value: str | None) -> "IndexMissPolicy":
        try:
            return cls(value) if value else cls.DECIDED_AGAINST
        except ValueError:
            return cls.DECIDED_AGAINST


def should_fall_back(params: QueryParams, policy: IndexMissPolicy) -> bool:
    """Whether zero index candidates must be confirmed by a full scan."""
    if not params.has_filters or policy is IndexMissPolicy.NEVER:
        return False
    if policy is IndexMissPolicy.ALWAYS:
        return True
    return bool(params.decided_against)


def can_use_index(
    params: QueryParams,
    no_index: bool = False,
    path: str | None = None,
    since: str | None = None,
) -> bool:
    """
    Determine whether the trailer index can satisfy this query.

    Path and since-date queries must go through git log; an unfiltered query
    has nothing for the index to accelerate.
    """
    if no_index or path or since:
        return False
    return params.has_filters


def index_candidates(index: TrailerIndex, params: QueryParams) -> list[str]:
    """
    Resolve every candidate hash for the query from the inverted maps.

    Intent hashes are unioned, then each active filter intersects. Scope is
    resolved by running scope_matches over every scope key. The result keeps
    index (log) order. With no active filter the result is empty.

    Args:
        index: A fresh trailer index
        params: Query filters (limit is ignored here)

    Returns:
        Candidate hashes, newest first
    """
    candidates: set[str] | None = None

    def intersect(hashes: Iterable[str]) -> None:
        nonlocal candidates
        found = set(hashes)
        candidates = found if candidates is None else candidates & found

    if params.intents:
        intent_hashes: set[str] = set()
        for intent in params.intents:
            intent_hashes.update(index.by_intent.get(intent, ()))
        intersect(intent_hashes)

    if params.session:
        intersect(index.by_session.get(params.session, ()))

    if params.decisions_only or params.decided_against:
        intersect(index.with_decided_against)

    if params.scope:
        scope_hashes: set[str] = set()
        for key, hashes in index.by_scope.items():
            if scope_matches(key, params.scope):
                scope_hashes.update(hashes)
        intersect(scope_hashes)

    if not candidates:
        return []
    return [h for h in index.commits if h in candidates]


def query_index_for_hashes(index: TrailerIndex, params: QueryParams) -> list[str]:
    """Resolve matching commit hashes from the index, truncated to the limit."""
    return index_candidates(index, params)[: params.limit]
