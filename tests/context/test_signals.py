"""Tests for heuristic prompt signal extraction."""

from context.signals import extract_prompt_signals, intent_hints, keyword_hints, scope_hints

SCOPE_KEYS = ["auth/login", "auth", "payments/refunds", "docs"]


class TestScopeHints:
    """Tests for matching prompts against known scope keys."""

    def test_exact_key_ranks_first(self):
        assert scope_hints("the login page for auth is broken", SCOPE_KEYS)[:2] == [
            "auth",
            "auth/login",
        ]

    def test_segment_match(self):
        assert scope_hints("why do refunds take so long", SCOPE_KEYS) == ["payments/refunds"]

    def test_plural_and_singular_variants(self):
        assert scope_hints("handle a refund twice", SCOPE_KEYS) == ["payments/refunds"]

    def test_no_substring_matches(self):
        assert scope_hints("authentication tokens leak", SCOPE_KEYS) == []

    def test_keys_with_symbol_edges(self):
        keys = ["lang/c++", ".net", "docs"]
        assert scope_hints("port the c++ parser to .net", keys) == [".net", "lang/c++"]
        assert scope_hints("the cpp parser on dotnet", keys) == []


class TestIntentHints:
    """Tests for the synonym table."""

    def test_defect_words(self):
        assert intent_hints("fix the broken login bug")[0] == "fix-defect"

    def test_at_most_two(self):
        hints = intent_hints("refactor and document the new feature, then fix the bug")
        assert len(hints) == 2

    def test_no_synonyms(self):
        assert intent_hints("hello there") == []


class TestKeywordHints:
    """Tests for keywords taken from recorded decisions."""

    def test_matches_decision_words(self):
        decisions = ["Redis pub/sub (no persistence guarantee)"]
        assert keyword_hints("should sessions live in redis", decisions) == ["redis"]

    def test_short_and_stop_words_skipped(self):
        decisions = ["should we use the redis cluster"]
        assert keyword_hints("should we use it", decisions) == []

    def test_partial_words_do_not_count(self):
        assert keyword_hints("use redis", ["predis client"]) == []

    def test_no_decisions(self):
        assert keyword_hints("anything about redis", []) == []


def test_empty_prompt_gives_empty_signals():
    assert extract_prompt_signals("   ", SCOPE_KEYS, ["Redis"]).is_empty


def test_combined_signals():
    signals = extract_prompt_signals(
        "fix the login timeout, we rejected redis before",
        SCOPE_KEYS,
        ["Redis pub/sub (no persistence guarantee)"],
    )

    assert signals.scopes == ("auth/login",)
    assert signals.intents[0] == "fix-defect"
    assert signals.keywords == ("redis",)
    assert signals.to_dict()["scopes"] == ["auth/login"]
