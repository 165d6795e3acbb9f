"""
Context pipeline: turn a prompt into a bounded context block.

Retrieval runs through three states, each the fallback for the one before:

    model-enhanced  signals from a delegated model call, one round of
                    model-proposed follow-up queries, optional summary
    heuristic       signals from local keyword and synonym lookups
    recency         newest commits and decisions, ignoring the prompt

A state that yields nothing usable hands over to the next. The pipeline is
invoked synchronously before every user interaction, so ``retrieve_context``
never raises: the worst outcome is an empty block.
"""

import time
from collections.abc import Callable
from pathlib import Path

from common.constants import (
    MODE_HEURISTIC,
    MODE_MODEL_ENHANCED,
    MODE_RECENCY,
    RECENCY_MAX_COMMITS,
    RECENCY_MAX_DECISIONS,
    SIGNAL_MAX_COMMITS,
    SIGNAL_MAX_DECISIONS,
)
from common.env import env
from common.logger import get_logger
from extract.git_utils import GitError, read_log
from extract.models import IndexedCommit
from extract.parser import parse_log_output
from query.filters import QueryParams, apply_query_filters, filter_by_decided_against, index_candidates
from query.matching import word_boundary_match
from trailer_index.store import TrailerIndex, load_index

from .config import RlmConfig, load_config
from .formatting import (
    ContextResult,
    DecisionEntry,
    SessionInfo,
    decisions_for,
    format_listing,
    render_context,
)
from .llm import LLMError, LocalLLMClient
from .signals import PromptSignals, extract_prompt_signals
from .subcalls import FollowUpQuery, analyze_prompt, generate_follow_up_queries, summarize_context
from .trace import RetrievalTrace, write_trace

logger = get_logger(__name__)


def _newest_first(commits: list[IndexedCommit]) -> list[IndexedCommit]:
    return sorted(commits, key=lambda c: c.date, reverse=True)


def resolve_signals(index: TrailerIndex, signals: PromptSignals) -> list[IndexedCommit]:
    """
    Resolve prompt signals to ranked index commits.

    Scope hints are unioned. Intent hints narrow the scope candidates when
    the two overlap, and stand alone when there are no scope hints. Keywords
    add commits whose decided-against entries contain them as whole words.
    Commits matching more signals rank first, then newer before older.
    """
    scores: dict[str, int] = {}

    def bump(hashes) -> None:
        for h in hashes:
            scores[h] = scores.get(h, 0) + 1

    scope_hashes: set[str] = set()
    for scope in signals.scopes:
        hashes = index_candidates(index, QueryParams(scope=scope))
        scope_hashes.update(hashes)
        bump(hashes)

    intent_hashes: set[str] = set()
    if signals.intents:
        intent_hashes = set(index_candidates(index, QueryParams(intents=signals.intents)))
        bump(intent_hashes)

    if scope_hashes:
        pool = (scope_hashes & intent_hashes) or scope_hashes
    else:
        pool = set(intent_hashes)

    with_decisions = index.commits_for(index.with_decided_against)
    for keyword in signals.keywords:
        hashes = [c.hash for c in filter_by_decided_against(keyword)(with_decisions)]
        pool.update(hashes)
        bump(hashes)

    ranked = _newest_first(index.commits_for([h for h in index.commits if h in pool]))
    # Stable sort keeps date order within equal scores
    return sorted(ranked, key=lambda c: scores.get(c.hash, 0), reverse=True)


def signal_decisions(
    index: TrailerIndex,
    commits: list[IndexedCommit],
    keywords: tuple[str, ...],
    limit: int = SIGNAL_MAX_DECISIONS,
) -> list[DecisionEntry]:
    """Decisions of the selected commits, then keyword matches from the rest."""
    decisions = decisions_for(commits, limit)
    seen = {_decision_key(d) for d in decisions}

    if keywords:
        for commit in _newest_first(index.commits_for(index.with_decided_against)):
            for text in commit.decided_against:
                if len(decisions) >= limit:
                    return decisions
                entry = DecisionEntry(scope=tuple(commit.scope), text=text)
                if _decision_key(entry) in seen:
                    continue
                if any(word_boundary_match(text, k) for k in keywords):
                    decisions.append(entry)
                    seen.add(_decision_key(entry))
    return decisions


def _decision_key(entry: DecisionEntry) -> tuple[tuple[str, ...], str]:
    return entry.scope, entry.text


class ContextPipeline:
    """Fallback chain for one repository.

    Args:
        repo_root: Path inside the git repository
        config: Model settings (loaded from the repository when omitted)
        client: Model client (built from config when omitted and enabled)
    """

    def __init__(
        self,
        repo_root: Path,
        config: RlmConfig | None = None,
        client: LocalLLMClient | None = None,
    ):
        self.repo_root = Path(repo_root)
        self.config = config or load_config(self.repo_root)
        self.client = client
        if self.client is None and self.config.enabled:
            self.client = LocalLLMClient(self.config.endpoint, self.config.model)

    def run(self, prompt: str, trace: RetrievalTrace | None = None) -> ContextResult | None:
        """
        Resolve context for a prompt.

        Returns:
            The first usable result in preference order, or None when no
            data source yields anything
        """
        trace = trace or RetrievalTrace(prompt=prompt)
        index = load_index(self.repo_root)

        stages: list[tuple[str, Callable[..., ContextResult | None]]] = [
            (MODE_MODEL_ENHANCED, self._model_enhanced),
            (MODE_HEURISTIC, self._heuristic),
            (MODE_RECENCY, self._recency),
        ]

        for mode, stage in stages:
            trace.attempted.append(mode)
            result = stage(prompt, index, trace)
            if result is not None:
                trace.mode = result.mode
                trace.candidates = result.hashes
                if result.session is None and index is not None:
                    result.session = self._session_from_index(index)
                return result

        return None

    # -- state 1 -----------------------------------------------------------

    def _model_enhanced(
        self, prompt: str, index: TrailerIndex | None, trace: RetrievalTrace
    ) -> ContextResult | None:
        if not self.config.enabled or self.client is None or index is None or not prompt.strip():
            return None

        try:
            signals = analyze_prompt(self.client, self.config, prompt, index.scope_keys())
        except LLMError as e:
            logger.debug(f"Prompt analysis failed, falling back: {e}")
            trace.failures.append(f"analyze: {e}")
            return None

        trace.signals = signals.to_dict()
        if signals.is_empty:
            return None

        commits = resolve_signals(index, signals)[:SIGNAL_MAX_COMMITS]
        if not commits:
            return None

        result = ContextResult(
            mode=MODE_MODEL_ENHANCED,
            commits=commits,
            decisions=signal_decisions(index, commits, signals.keywords),
        )

        self._expand_with_follow_ups(prompt, index, result, signals, trace)

        try:
            result.summary = summarize_context(
                self.client, self.config, prompt, format_listing(result)
            )
            trace.summarized = True
        except LLMError as e:
            logger.debug(f"Summarization failed, keeping raw listing: {e}")
            trace.failures.append(f"summarize: {e}")

        return result

    def _expand_with_follow_ups(
        self,
        prompt: str,
        index: TrailerIndex,
        result: ContextResult,
        signals: PromptSignals,
        trace: RetrievalTrace,
    ) -> None:
        """Run one round of model-proposed queries, merging only new hashes."""
        try:
            queries = generate_follow_up_queries(
                self.client,
                self.config,
                prompt,
                format_listing(result),
                set(index.by_scope),
            )
        except LLMError as e:
            logger.debug(f"Follow-up generation failed: {e}")
            trace.failures.append(f"follow-up: {e}")
            return

        trace.follow_ups = [q.to_dict() for q in queries]
        seen = set(result.hashes)
        added: list[IndexedCommit] = []

        for query in queries:
            for commit in self._resolve_follow_up(index, query):
                if len(result.commits) + len(added) >= SIGNAL_MAX_COMMITS:
                    break
                if commit.hash in seen:
                    continue
                seen.add(commit.hash)
                added.append(commit)

        if added:
            result.commits.extend(added)
            result.decisions = signal_decisions(index, result.commits, signals.keywords)
            trace.added = [c.hash for c in added]

    @staticmethod
    def _resolve_follow_up(index: TrailerIndex, query: FollowUpQuery) -> list[IndexedCommit]:
        params = query.to_params(limit=SIGNAL_MAX_COMMITS)
        candidates = index.commits_for(index_candidates(index, params))
        # The index projection carries decided-against text, so the precision
        # filters run here without reading the log
        return apply_query_filters(candidates, params)

    # -- state 2 -----------------------------------------------------------

    def _heuristic(
        self, prompt: str, index: TrailerIndex | None, trace: RetrievalTrace
    ) -> ContextResult | None:
        if index is None or not prompt.strip():
            return None

        decision_texts = [
            text for c in index.commits_for(index.with_decided_against) for text in c.decided_against
        ]
        signals = extract_prompt_signals(prompt, index.scope_keys(), decision_texts)
        if trace.signals is None:
            trace.signals = signals.to_dict()
        if signals.is_empty:
            return None

        commits = resolve_signals(index, signals)[:SIGNAL_MAX_COMMITS]
        if not commits:
            return None

        return ContextResult(
            mode=MODE_HEURISTIC,
            commits=commits,
            decisions=signal_decisions(index, commits, signals.keywords),
        )

    # -- state 3 -----------------------------------------------------------

    def _recency(
        self, prompt: str, index: TrailerIndex | None, trace: RetrievalTrace
    ) -> ContextResult | None:
        if index is not None:
            commits = _newest_first(list(index.commits.values()))[:RECENCY_MAX_COMMITS]
            with_decisions = _newest_first(index.commits_for(index.with_decided_against))
            decisions = decisions_for(with_decisions, RECENCY_MAX_DECISIONS)
            session = None
        else:
            try:
                parsed, _ = parse_log_output(read_log(self.repo_root, max_count=RECENCY_MAX_COMMITS))
            except GitError as e:
                logger.debug(f"No git history available: {e}")
                trace.failures.append(f"log: {e}")
                return None
            commits = [IndexedCommit.from_commit(c) for c in parsed]
            decisions = decisions_for(commits, RECENCY_MAX_DECISIONS)
            session = self._session_from_commits(commits)

        if not commits:
            return None

        return ContextResult(
            mode=MODE_RECENCY,
            commits=commits,
            decisions=decisions,
            session=session,
        )

    # -- session -----------------------------------------------------------

    @staticmethod
    def _session_from_index(index: TrailerIndex) -> SessionInfo | None:
        session_id = env.session_id()
        if session_id and index.by_session.get(session_id):
            return SessionInfo(id=session_id, commit_count=len(index.by_session[session_id]))
        return None

    @staticmethod
    def _session_from_commits(commits: list[IndexedCommit]) -> SessionInfo | None:
        session_id = env.session_id()
        if not session_id:
            return None
        count = sum(1 for c in commits if c.session == session_id)
        return SessionInfo(id=session_id, commit_count=count) if count else None


def retrieve_context(
    prompt: str,
    repo_root: Path | None = None,
    *,
    config: RlmConfig | None = None,
    client: LocalLLMClient | None = None,
) -> str:
    """
    Build the context block for a prompt.

    Args:
        prompt: Free-text user prompt (may be empty)
        repo_root: Path inside the git repository (default: current directory)
        config: Model settings override
        client: Model client override

    Returns:
        The formatted block, or an empty string. Never raises.
    """
    started = time.perf_counter()
    output = ""
    try:
        prompt = prompt if isinstance(prompt, str) else ""
        trace = RetrievalTrace(prompt=prompt)
        pipeline = ContextPipeline(repo_root or Path.cwd(), config=config, client=client)
        result = pipeline.run(prompt, trace)
        if result is not None:
            output = render_context(result)
        write_trace(trace, (time.perf_counter() - started) * 1000)
    except Exception as e:
        # Runs before every user interaction: degrade to no context
        logger.debug(f"Context retrieval failed: {e}", exc_info=True)
        return ""
    return output
