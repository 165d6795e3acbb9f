"""Heuristic prompt signal extraction.

Turns a free-text prompt into scope hints, intent hints and keywords using
only local lookups: the scope keys present in the trailer index, a synonym
table per intent, and the decided-against texts already recorded.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from query.matching import word_boundary_match

MAX_SCOPE_HINTS = 5
MAX_INTENT_HINTS = 2
MAX_KEYWORDS = 5
MIN_SEGMENT_LENGTH = 3
MIN_KEYWORD_LENGTH = 4

INTENT_SYNONYMS: dict[str, tuple[str, ...]] = {
    "fix-defect": (
        "fix", "bug", "bugs", "broken", "error", "errors", "crash", "failing",
        "fails", "regression", "wrong", "incorrect", "defect", "issue",
    ),
    "enable-capability": (
        "add", "implement", "feature", "support", "new", "create", "build",
        "enable", "introduce", "capability",
    ),
    "improve-quality": (
        "improve", "optimize", "performance", "faster", "slow", "cleanup",
        "clean", "quality", "tests", "coverage", "speed",
    ),
    "restructure": (
        "refactor", "restructure", "reorganize", "rename", "move", "split",
        "extract", "simplify", "consolidate",
    ),
    "configure-infra": (
        "config", "configure", "configuration", "ci", "deploy", "deployment",
        "docker", "pipeline", "infra", "infrastructure", "dependency",
        "dependencies", "upgrade",
    ),
    "document": ("document", "documentation", "docs", "readme", "comment", "comments", "explain"),
    "explore": ("explore", "experiment", "spike", "prototype", "investigate", "try", "evaluate"),
    "resolve-blocker": ("blocked", "blocker", "unblock", "stuck", "workaround", "blocking"),
}

STOP_WORDS = frozenset(
    {
        "about", "above", "after", "again", "also", "because", "been", "before",
        "being", "between", "both", "could", "does", "doing", "done", "each",
        "from", "have", "having", "here", "into", "just", "like", "make",
        "more", "most", "need", "only", "other", "over", "please", "same",
        "should", "some", "such", "than", "that", "their", "them", "then",
        "there", "these", "they", "this", "those", "through", "under", "until",
        "very", "want", "were", "what", "when", "where", "which", "while",
        "will", "with", "without", "would", "your", "code", "file", "files",
        "change", "changes", "thing", "things", "work", "working",
    }
)

_TOKEN_RE = re.compile(r"[A-Za-z][A-Za-z0-9_+.-]*[A-Za-z0-9+]|[A-Za-z]")
_SEGMENT_SPLIT_RE = re.compile(r"[/_-]")


@dataclass(frozen=True)
class PromptSignals:
    """Retrieval signals derived from one prompt."""

    scopes: tuple[str, ...] = ()
    intents: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.scopes or self.intents or self.keywords)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "scopes": list(self.scopes),
            "intents": list(self.intents),
            "keywords": list(self.keywords),
        }


def _variants(word: str) -> set[str]:
    variants = {word, f"{word}s"}
    if word.endswith("s") and len(word) > MIN_SEGMENT_LENGTH:
        variants.add(word[:-1])
    return variants


def _mentions(prompt: str, word: str) -> bool:
    # Keys may start or end with non-word characters (c++, .net)
    return any(
        re.search(rf"(?<!\w){re.escape(v)}(?!\w)", prompt, re.IGNORECASE)
        for v in _variants(word)
    )


def scope_hints(prompt: str, scope_keys: Sequence[str]) -> list[str]:
    """
    Known scope keys the prompt refers to.

    A full key mentioned verbatim ranks ahead of a key matched through one of
    its path segments.
    """
    exact: list[str] = []
    by_segment: list[str] = []

    for key in scope_keys:
        if _mentions(prompt, key):
            exact.append(key)
            continue
        segments = [s for s in _SEGMENT_SPLIT_RE.split(key.lower()) if len(s) >= MIN_SEGMENT_LENGTH]
        if any(_mentions(prompt, s) for s in segments):
            by_segment.append(key)

    return (exact + by_segment)[:MAX_SCOPE_HINTS]


def intent_hints(prompt: str) -> list[str]:
    """Intents whose synonyms appear in the prompt, strongest first."""
    tokens = {t.lower() for t in _TOKEN_RE.findall(prompt)}
    scored = []
    for order, (intent, synonyms) in enumerate(INTENT_SYNONYMS.items()):
        score = sum(1 for s in synonyms if s in tokens)
        if score:
            scored.append((-score, order, intent))
    return [intent for _, _, intent in sorted(scored)][:MAX_INTENT_HINTS]


def keyword_hints(prompt: str, decision_texts: Iterable[str]) -> list[str]:
    """Prompt words that also occur as whole words in recorded decisions."""
    texts = list(decision_texts)
    if not texts:
        return []

    keywords: list[str] = []
    seen: set[str] = set()
    for token in _TOKEN_RE.findall(prompt):
        lowered = token.lower()
        if len(lowered) < MIN_KEYWORD_LENGTH or lowered in STOP_WORDS or lowered in seen:
            continue
        seen.add(lowered)
        if any(word_boundary_match(text, lowered) for text in texts):
            keywords.append(lowered)
            if len(keywords) >= MAX_KEYWORDS:
                break
    return keywords


def extract_prompt_signals(
    prompt: str,
    scope_keys: Sequence[str],
    decision_texts: Iterable[str] = (),
) -> PromptSignals:
    """
    Extract heuristic retrieval signals from a prompt.

    Args:
        prompt: Raw user prompt
        scope_keys: Scope values known to the index
        decision_texts: Decided-against entries known to the index

    Returns:
        PromptSignals (possibly empty)
    """
    if not prompt or not prompt.strip():
        return PromptSignals()

    return PromptSignals(
        scopes=tuple(scope_hints(prompt, scope_keys)),
        intents=tuple(intent_hints(prompt)),
        keywords=tuple(keyword_hints(prompt, decision_texts)),
    )
