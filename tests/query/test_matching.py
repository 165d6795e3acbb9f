"""Tests for scope and keyword matching primitives."""

import pytest

from query.matching import scope_matches, word_boundary_match


class TestScopeMatches:
    """Tests for hierarchical scope matching."""

    @pytest.mark.parametrize("value", ["auth", "auth/login", "auth/login/passkey", "Auth/Login"])
    def test_matches_scope_and_descendants(self, value):
        assert scope_matches(value, "auth")

    @pytest.mark.parametrize("value", ["oauth", "oauth/provider", "authentication", "authz/roles"])
    def test_rejects_shared_substrings(self, value):
        assert not scope_matches(value, "auth")

    def test_child_pattern_does_not_match_parent(self):
        assert not scope_matches("auth", "auth/login")


class TestWordBoundaryMatch:
    """Tests for whole-word keyword matching."""

    def test_matches_whole_word_case_insensitively(self):
        assert word_boundary_match("Redis pub/sub (no persistence guarantee)", "redis")

    @pytest.mark.parametrize("text", ["predis client", "jedis pool", "redistribution of load"])
    def test_rejects_partial_words(self, text):
        assert not word_boundary_match(text, "redis")

    def test_regex_metacharacters_are_literal(self):
        assert word_boundary_match("switched to c.d tooling", "c.d")
        assert not word_boundary_match("switched to cxd tooling", "c.d")

    def test_empty_keyword_never_matches(self):
        assert not word_boundary_match("anything", "")
