"""Shared constants for the git-memory tools.

For environment-based configuration (model endpoint, session, etc.), use the env module:
    from common.env import env
    endpoint = env.rlm_endpoint()
"""

# Controlled vocabulary for the Intent trailer
INTENT_TYPES: tuple[str, ...] = (
    "enable-capability",
    "fix-defect",
    "improve-quality",
    "restructure",
    "configure-infra",
    "document",
    "explore",
    "resolve-blocker",
)

CONVENTIONAL_TYPES: tuple[str, ...] = (
    "feat",
    "fix",
    "refactor",
    "perf",
    "docs",
    "test",
    "build",
    "ci",
    "chore",
    "revert",
)

# Keys outside this set are ignored during trailer extraction so body text
# containing colons (URLs, env vars) is not mistaken for trailers.
KNOWN_TRAILER_KEYS: frozenset[str] = frozenset(
    {
        # Structured commit trailers
        "intent",
        "scope",
        "decided-against",
        "session",
        "refs",
        "context",
        "breaking",
        # Standard git trailers
        "signed-off-by",
        "co-authored-by",
        "reviewed-by",
        "acked-by",
        "tested-by",
        "reported-by",
        "helped-by",
        "cc",
    }
)

# Git log record format
COMMIT_DELIMITER = "---commit---"
LOG_FORMAT = f"--format={COMMIT_DELIMITER}%nHash: %H%nDate: %aI%nSubject: %s%n%b"

# Trailer index
INDEX_VERSION = 1
INDEX_FILENAME = "trailer-index.json"
RLM_CONFIG_FILENAME = "rlm-config.json"

# Query defaults
DEFAULT_QUERY_LIMIT = 50

# Context block caps. Signal-driven modes claim higher precision, so they
# are held to tighter caps than the recency floor.
RECENCY_MAX_COMMITS = 10
RECENCY_MAX_DECISIONS = 20
SIGNAL_MAX_COMMITS = 6
SIGNAL_MAX_DECISIONS = 8

# Delegated sub-call bounds
MAX_FOLLOW_UP_QUERIES = 2
MAX_ANALYZE_SCOPES = 30

# Context block modes
MODE_MODEL_ENHANCED = "model-enhanced"
MODE_HEURISTIC = "heuristic"
MODE_RECENCY = "recency"
