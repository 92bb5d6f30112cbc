"""Tests for snapshot similarity and validity classification."""

import pytest

from codemarks.store.drift import compare_snapshot, extract_lines, similarity


class TestSimilarity:
    def test_identical(self):
        assert similarity("a b c", "c b a") == 1.0

    def test_partial(self):
        assert similarity("a b c d", "a b x y") == pytest.approx(2 / 6)

    def test_whitespace_insensitive(self):
        assert similarity("return  x\n", "return x") == 1.0

    def test_both_empty(self):
        assert similarity("", "   ") == 1.0


class TestExtractLines:
    def test_range(self):
        assert extract_lines("a\nb\nc", 2, 3) == "b\nc"

    def test_out_of_bounds(self):
        assert extract_lines("a\nb", 2, 3) is None
        assert extract_lines("a\nb", 0, 1) is None


class TestCompareSnapshot:
    CONTENT = "one\nif ready:\n    start(engine)\nthree\n"

    def test_exact(self):
        result = compare_snapshot("if ready:\n    start(engine)", "f.py:2-3", self.CONTENT)
        assert result.valid
        assert result.similarity == 1.0

    def test_classification(self):
        # 2 of 5 tokens shared
        low = compare_snapshot("if ready: x y", "f.py:2-3", self.CONTENT)
        assert not low.valid
        # 3 of 4
        high = compare_snapshot("if ready: start(engine) z", "f.py:2-3", self.CONTENT)
        assert high.valid
        assert high.reason == "Code slightly changed (75% similar)"

    def test_half_similar_is_still_valid(self):
        result = compare_snapshot("if ready: q", "f.py:2-3", self.CONTENT)
        assert result.valid
        assert result.similarity == 0.5

    def test_bad_location(self):
        result = compare_snapshot("x", "no-colon", self.CONTENT)
        assert not result.valid
        assert "Invalid location" in result.reason
