"""
Tests for edit-distance matching.
"""

import pytest

from replybot.auto_reply.fuzzy import fuzzy_match, levenshtein_distance


class TestLevenshteinDistance:
    """Tests for levenshtein_distance."""

    @pytest.mark.parametrize("text", ["", "a", "hello", "你好世界"])
    def test_identical_strings_have_zero_distance(self, text):
        assert levenshtein_distance(text, text) == 0

    @pytest.mark.parametrize("a,b", [
        ("kitten", "sitting"),
        ("flaw", "lawn"),
        ("", "abc"),
        ("hello", "helo"),
    ])
    def test_distance_is_symmetric(self, a, b):
        assert levenshtein_distance(a, b) == levenshtein_distance(b, a)

    @pytest.mark.parametrize("text", ["x", "hello", "多字节文本"])
    def test_distance_from_empty_is_length(self, text):
        assert levenshtein_distance("", text) == len(text)

    def test_known_distances(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("flaw", "lawn") == 2
        assert levenshtein_distance("hello", "helo") == 1

    def test_counts_code_points_not_bytes(self):
        assert levenshtein_distance("价格", "价钱") == 1


class TestFuzzyMatch:
    """Tests for fuzzy_match."""

    @pytest.mark.parametrize("text,keyword", [
        ("ab", "ab"),
        ("ab", "abc"),
        ("abc", "ab"),
        ("", "hello"),
    ])
    def test_short_strings_never_match(self, text, keyword):
        assert fuzzy_match(text, keyword) is False

    def test_one_edit_within_threshold(self):
        # floor(0.3 * 4) = 1
        assert fuzzy_match("helo", "hello") is True

    def test_threshold_uses_shorter_length(self):
        # floor(0.3 * 3) = 0, so any edit fails
        assert fuzzy_match("cot", "cost") is False
        assert fuzzy_match("cost", "cost") is True

    def test_unrelated_text_does_not_match(self):
        assert fuzzy_match("xyz", "hello") is False
