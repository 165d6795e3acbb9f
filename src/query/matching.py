"""
Matching primitives for structured commit queries.

These two predicates define the precision of every scope and decided-against
lookup, both in the full-scan filters and in the index resolution.
"""

import re


def scope_matches(value: str, pattern: str) -> bool:
    """
    Hierarchical prefix match for scope values.

    "auth" matches "auth" and "auth/registration" but not "oauth/provider"
    or "authentication". Comparison is case-insensitive.
    """
    v = value.lower()
    p = pattern.lower()
    return v == p or v.startswith(p + "/")


def word_boundary_match(text: str, keyword: str) -> bool:
    """
    Case-insensitive whole-word match.

    "redis" matches "Redis pub/sub" but not "predis", "jedis" or
    "redistribution". The keyword is escaped, so any user input is safe.
    """
    if not keyword:
        return False
    return re.search(rf"\b{re.escape(keyword)}\b", text, re.IGNORECASE) is not None
