"""Tests for whitespace normalization and edit distance."""

import pytest

from llm_edit.distance import levenshtein_distance, lines_similar
from llm_edit.normalizer import (
    apply_indentation,
    detect_indentation,
    detect_newline,
    normalize_newlines,
    normalize_whitespace,
    search_lines,
    strip_common_indent,
)


# ─────────────────────────────────────────────────────────────
# Normalizer Tests
# ─────────────────────────────────────────────────────────────


class TestNewlines:
    """Test newline handling."""

    def test_crlf_to_lf(self):
        assert normalize_newlines("a\r\nb\r\n") == "a\nb\n"

    def test_detect_crlf(self):
        assert detect_newline("a\r\nb") == "\r\n"

    def test_detect_lf(self):
        assert detect_newline("a\nb") == "\n"
        assert detect_newline("") == "\n"


class TestStripCommonIndent:
    """Test common indentation removal."""

    def test_strips_shared_indent(self):
        assert strip_common_indent("    a\n      b\n    c") == "a\n  b\nc"

    def test_blank_lines_ignored(self):
        assert strip_common_indent("    a\n\n    b") == "a\n\nb"

    def test_no_indent_unchanged(self):
        assert strip_common_indent("a\n  b") == "a\n  b"

    def test_all_blank(self):
        assert strip_common_indent("  \n ") == "  \n "


class TestNormalizeWhitespace:
    """Test the canonical comparison form."""

    def test_trailing_whitespace_removed(self):
        assert normalize_whitespace("a  \nb\t") == "a\nb"

    def test_common_indent_removed(self):
        assert normalize_whitespace("  x = 1\n  y = 2") == "x = 1\ny = 2"

    def test_outer_blank_lines_removed(self):
        assert normalize_whitespace("\n\n  foo\n\n") == "foo"

    def test_relative_indent_kept(self):
        assert normalize_whitespace("  if x:\n      y()") == "if x:\n    y()"

    def test_crlf(self):
        assert normalize_whitespace("a\r\nb\r\n") == "a\nb"

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "\n\n",
            "  a\n    b  \n\n",
            "\t\tx\n\t\t\ty\n",
            " \n  def f():\n      return 1\n \n",
            "a\r\n  b\r\n",
        ],
    )
    def test_idempotent(self, text):
        once = normalize_whitespace(text)
        assert normalize_whitespace(once) == once


class TestIndentation:
    """Test indentation detection and re-application."""

    def test_detect_first_non_blank(self):
        assert detect_indentation("\n    foo\n  bar") == "    "

    def test_detect_none(self):
        assert detect_indentation("foo") == ""
        assert detect_indentation("") == ""

    def test_apply_prefix(self):
        assert apply_indentation("a\n  b", "    ") == "    a\n      b"

    def test_apply_no_double_indent(self):
        assert apply_indentation("    a\n    b", "    ") == "    a\n    b"

    def test_blank_lines_untouched(self):
        assert apply_indentation("a\n\nb", "  ") == "  a\n\n  b"

    def test_empty_prefix_strips(self):
        assert apply_indentation("  a\n  b", "") == "a\nb"


class TestSearchLines:
    def test_trailing_newline_no_phantom_line(self):
        assert search_lines("a\nb\n") == ["a", "b"]

    def test_outer_blank_lines_dropped(self):
        assert search_lines("\n  \na\n\nb\n  \n") == ["a", "", "b"]

    def test_empty(self):
        assert search_lines("") == []


# ─────────────────────────────────────────────────────────────
# Distance Tests
# ─────────────────────────────────────────────────────────────


class TestLevenshtein:
    """Test bounded edit distance."""

    def test_identical(self):
        assert levenshtein_distance("abc", "abc") == 0

    def test_empty(self):
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("abc", "") == 3

    def test_classic(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("flaw", "lawn") == 2

    def test_symmetric(self):
        assert levenshtein_distance("abcdef", "azced") == levenshtein_distance("azced", "abcdef")

    def test_bound_length_difference(self):
        assert levenshtein_distance("a", "abcdefgh", max_distance=2) == 3

    def test_bound_early_exit(self):
        assert levenshtein_distance("aaaaaaaa", "bbbbbbbb", max_distance=3) == 4

    def test_bound_not_hit(self):
        assert levenshtein_distance("kitten", "sitting", max_distance=5) == 3


class TestLinesSimilar:
    """Test fuzzy line comparison."""

    def test_short_lines_need_equality(self):
        assert not lines_similar("}", ")")
        assert lines_similar("  }", "}")

    def test_small_difference_accepted(self):
        assert lines_similar("const greeting = 'hello';", 'const greeting = "hello";')

    def test_large_difference_rejected(self):
        assert not lines_similar("return compute(a, b)", "raise ValueError(msg)")

    def test_ratio_boundary(self):
        # 20 chars, 3 edits = exactly 15%
        a = "abcdefghijklmnopqrst"
        b = "XYZdefghijklmnopqrst"
        assert lines_similar(a, b)
        c = "XYZWefghijklmnopqrst"
        assert not lines_similar(a, c)
