"""Delegated model sub-calls for model-enhanced retrieval.

Three sub-calls, each split into a pure prompt builder, a pure response
parser and a thin wrapper that performs the call:

    1. analyze_prompt             prompt -> PromptSignals
    2. generate_follow_up_queries prompt + current context -> FollowUpQuery list
    3. summarize_context          prompt + full context -> prose

Parsers never raise: anything that does not decode to the expected shape
yields an empty result. The wrappers let ``LLMError`` propagate so the
pipeline can fall back one state.
"""

import json
import re
from collections.abc import Sequence, Set
from dataclasses import dataclass
from typing import Any

from common.constants import INTENT_TYPES, MAX_ANALYZE_SCOPES, MAX_FOLLOW_UP_QUERIES
from query.filters import QueryParams

from .config import RlmConfig, effective_limits
from .llm import LocalLLMClient
from .signals import MAX_INTENT_HINTS, MAX_KEYWORDS, MAX_SCOPE_HINTS, PromptSignals

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```$")
_THINK_RE = re.compile(r"\s*/think\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class FollowUpQuery:
    """One extra lookup proposed by the model after the first retrieval."""

    scope: str | None = None
    intent: str | None = None
    decided_against: str | None = None

    @property
    def is_actionable(self) -> bool:
        return any((self.scope, self.intent, self.decided_against))

    def to_params(self, limit: int) -> QueryParams:
        return QueryParams(
            intents=(self.intent,) if self.intent else (),
            scope=self.scope,
            decided_against=self.decided_against,
            limit=limit,
        )

    def to_dict(self) -> dict[str, str | None]:
        return {
            "scope": self.scope,
            "intent": self.intent,
            "decidedAgainst": self.decided_against,
        }


def normalize_json_payload(text: str) -> str:
    """Strip markdown fences and trailing reasoning markers around JSON."""
    text = _FENCE_OPEN_RE.sub("", text.strip())
    text = _FENCE_CLOSE_RE.sub("", text)
    return _THINK_RE.sub("", text).strip()


def parse_json_object(text: str) -> dict[str, Any] | None:
    """
    Decode a JSON object from a model response.

    Tries the normalized text first, then the outermost ``{...}`` slice.

    Returns:
        The decoded object, or None
    """

    def try_parse(candidate: str) -> dict[str, Any] | None:
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, TypeError):
            return None
        return parsed if isinstance(parsed, dict) else None

    normalized = normalize_json_payload(text)
    direct = try_parse(normalized)
    if direct is not None:
        return direct

    start = normalized.find("{")
    end = normalized.rfind("}")
    if 0 <= start < end:
        return try_parse(normalized[start : end + 1])
    return None


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item]


# ---------------------------------------------------------------------------
# Sub-call 1: prompt analysis
# ---------------------------------------------------------------------------


def build_analyze_prompt(prompt: str, scope_keys: Sequence[str]) -> tuple[str, str]:
    """Return (system prompt, user prompt) for signal extraction."""
    top_scopes = ", ".join(scope_keys[:MAX_ANALYZE_SCOPES])
    system = f"""Extract the relevant scopes and intents from a user prompt.

Available scopes: {top_scopes}
Available intents: {", ".join(INTENT_TYPES)}

Respond ONLY with JSON: {{"scopes": ["scope1"], "intents": ["intent1"], "keywords": ["other", "terms"]}}
- scopes: which available scopes relate to this prompt (0-{MAX_SCOPE_HINTS})
- intents: which intents match (0-{MAX_INTENT_HINTS})
- keywords: other significant terms not captured by scopes/intents (0-{MAX_KEYWORDS})"""
    return system, prompt


def parse_analyze_response(text: str, valid_scopes: Set[str]) -> PromptSignals:
    """Decode the analysis response, keeping only known scopes and intents."""
    data = parse_json_object(text)
    if data is None:
        return PromptSignals()

    scopes = [s for s in _strings(data.get("scopes")) if s in valid_scopes]
    intents = [i for i in _strings(data.get("intents")) if i in INTENT_TYPES]
    keywords = [k.strip() for k in _strings(data.get("keywords")) if k.strip()]

    return PromptSignals(
        scopes=tuple(dict.fromkeys(scopes))[:MAX_SCOPE_HINTS],
        intents=tuple(dict.fromkeys(intents))[:MAX_INTENT_HINTS],
        keywords=tuple(keywords[:MAX_KEYWORDS]),
    )


def analyze_prompt(
    client: LocalLLMClient,
    config: RlmConfig,
    prompt: str,
    scope_keys: Sequence[str],
) -> PromptSignals:
    """
    Ask the model which scopes, intents and keywords a prompt concerns.

    Raises:
        LLMError: If the call fails or times out
    """
    timeout_ms, max_tokens = effective_limits(config)
    system, user = build_analyze_prompt(prompt, scope_keys)
    text = client.call(system, user, max_tokens, timeout_ms, json_mode=True)
    return parse_analyze_response(text, set(scope_keys))


# ---------------------------------------------------------------------------
# Sub-call 2: follow-up query generation
# ---------------------------------------------------------------------------


def build_follow_up_prompt(prompt: str, current_context: str) -> tuple[str, str]:
    """Return (system prompt, user prompt) for follow-up query generation."""
    system = f"""The user asked a question. Current context was retrieved from git history.
If the context is insufficient, suggest 0-{MAX_FOLLOW_UP_QUERIES} additional queries to find more relevant information.
Each query can filter by scope (path like "auth/login"), intent, or decided-against keyword.

Respond ONLY with JSON: {{"queries": [{{"scope": "auth", "intent": "fix-defect", "decidedAgainst": null}}]}}
Respond with {{"queries": []}} if the current context is sufficient."""
    user = f"""User prompt: "{prompt}"

Current context from git history:
{current_context}"""
    return system, user


def parse_follow_up_response(text: str, valid_scopes: Set[str]) -> list[FollowUpQuery]:
    """
    Decode follow-up queries.

    Only the first two proposals are considered. A proposal naming a scope
    outside ``valid_scopes`` or an unknown intent is dropped whole, as is one
    with no usable field.
    """
    data = parse_json_object(text)
    if data is None or not isinstance(data.get("queries"), list):
        return []

    queries = []
    for raw in data["queries"][:MAX_FOLLOW_UP_QUERIES]:
        if not isinstance(raw, dict):
            continue
        scope = raw.get("scope")
        intent = raw.get("intent")
        decided_against = raw.get("decidedAgainst")
        if scope is not None and not (isinstance(scope, str) and scope in valid_scopes):
            continue
        if intent is not None and not (isinstance(intent, str) and intent in INTENT_TYPES):
            continue
        query = FollowUpQuery(
            scope=scope,
            intent=intent,
            decided_against=(
                decided_against.strip()
                if isinstance(decided_against, str) and decided_against.strip()
                else None
            ),
        )
        if query.is_actionable:
            queries.append(query)
    return queries


def generate_follow_up_queries(
    client: LocalLLMClient,
    config: RlmConfig,
    prompt: str,
    current_context: str,
    valid_scopes: Set[str],
) -> list[FollowUpQuery]:
    """
    Ask the model for up to two follow-up lookups.

    Raises:
        LLMError: If the call fails or times out
    """
    timeout_ms, max_tokens = effective_limits(config)
    system, user = build_follow_up_prompt(prompt, current_context)
    text = client.call(system, user, max_tokens, timeout_ms, json_mode=True)
    return parse_follow_up_response(text, valid_scopes)


# ---------------------------------------------------------------------------
# Sub-call 3: context summarization
# ---------------------------------------------------------------------------


def build_summarize_prompt(prompt: str, full_context: str) -> tuple[str, str]:
    """Return (system prompt, user prompt) for context compression."""
    system = """Summarize the most relevant information from git history for the user's task.
Write 3-5 concise lines highlighting:
- Recent relevant changes
- Decisions that constrain the approach
- Patterns or conventions to follow"""
    user = f"""User's task: "{prompt}"

Git history context:
{full_context}"""
    return system, user


def summarize_context(
    client: LocalLLMClient,
    config: RlmConfig,
    prompt: str,
    full_context: str,
) -> str:
    """
    Compress the retrieved context into a few lines of prose.

    Raises:
        LLMError: If the call fails or times out
    """
    timeout_ms, max_tokens = effective_limits(config)
    system, user = build_summarize_prompt(prompt, full_context)
    return client.call(system, user, max_tokens, timeout_ms)
