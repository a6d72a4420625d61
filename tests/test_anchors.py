"""Tests for anchor-pair hunk resolution."""

import pytest

from llm_edit.anchors import (
    build_new_text,
    edit_kind_for,
    explain_missing_anchors,
    find_anchor_candidates,
    resolve_hunks,
)
from llm_edit.config import EditLimits
from llm_edit.errors import (
    AmbiguousMatchError,
    ErrorKind,
    InvalidHunkShapeError,
    NoMatchError,
    SpanTooLargeError,
)
from llm_edit.types import AnchorHunk, EditKind


def hunk(before="", after="", replacement="", occurrence=None):
    return AnchorHunk(
        before_anchor=before,
        after_anchor=after,
        replacement=replacement,
        occurrence=occurrence,
    )


# ─────────────────────────────────────────────────────────────
# Candidate Tests
# ─────────────────────────────────────────────────────────────


class TestCandidates:
    """Test candidate enumeration for each anchor shape."""

    def test_full_rewrite(self):
        content = "old stuff"
        candidates = find_anchor_candidates(content, hunk(replacement="new"))
        assert len(candidates) == 1
        assert (candidates[0].start, candidates[0].end) == (0, len(content))
        assert candidates[0].kind == EditKind.FULL_REWRITE

    def test_beginning_of_file(self):
        content = "import os\nprint(1)\n"
        candidates = find_anchor_candidates(content, hunk(after="import os", replacement="x"))
        assert len(candidates) == 1
        assert (candidates[0].start, candidates[0].end) == (0, 0)
        assert candidates[0].kind == EditKind.BEGINNING_OF_FILE

    def test_beginning_of_file_too_far(self):
        content = "x" * 2000 + "\nmarker\n"
        limits = EditLimits(max_boundary_anchor_distance=1000)
        assert find_anchor_candidates(content, hunk(after="marker"), limits) == []

    def test_end_of_file(self):
        content = "a\nb\nlast line\n"
        candidates = find_anchor_candidates(content, hunk(before="last line", replacement="x"))
        assert len(candidates) == 1
        assert (candidates[0].start, candidates[0].end) == (len(content), len(content))
        assert candidates[0].kind == EditKind.END_OF_FILE

    def test_end_of_file_too_far(self):
        content = "marker\n" + "x" * 2000
        limits = EditLimits(max_boundary_anchor_distance=1000)
        assert find_anchor_candidates(content, hunk(before="marker"), limits) == []

    def test_normal_pair(self):
        content = "import A\nexport class X {}"
        candidates = find_anchor_candidates(
            content, hunk(before="import A", after="export class X {}")
        )
        assert len(candidates) == 1
        assert (candidates[0].start, candidates[0].end) == (0, len(content))
        assert candidates[0].kind == EditKind.NORMAL

    def test_every_pair_enumerated(self):
        content = "B1 A1 B2 A2"
        candidates = find_anchor_candidates(content, hunk(before="B", after="A"))
        spans = [content[c.start : c.end] for c in candidates]
        assert spans == ["B1 A", "B1 A1 B2 A", "B2 A"]

    def test_span_limit(self):
        content = "BEGIN" + "x" * 100 + "END"
        limits = EditLimits(max_anchor_span=50)
        assert find_anchor_candidates(content, hunk(before="BEGIN", after="END"), limits) == []

    def test_pair_cap(self):
        content = "B " + "A " * 10
        limits = EditLimits(max_anchor_pairs_per_hunk=3)
        assert len(find_anchor_candidates(content, hunk(before="B", after="A"), limits)) == 3

    def test_identical_anchors(self):
        assert find_anchor_candidates("foo bar foo", hunk(before="foo", after="foo")) == []

    def test_edit_kind_for(self):
        assert edit_kind_for(hunk()) == EditKind.FULL_REWRITE
        assert edit_kind_for(hunk(after="a")) == EditKind.BEGINNING_OF_FILE
        assert edit_kind_for(hunk(before="a")) == EditKind.END_OF_FILE
        assert edit_kind_for(hunk(before="a", after="b")) == EditKind.NORMAL


class TestExplainMissing:
    """Test zero-candidate error selection."""

    def test_identical(self):
        err = explain_missing_anchors("foo", hunk(before="foo", after="foo"), hunk_index=2)
        assert isinstance(err, InvalidHunkShapeError)
        assert err.hunk_index == 2

    def test_span_too_large(self):
        content = "BEGIN" + "x" * 100 + "END"
        limits = EditLimits(max_anchor_span=50)
        err = explain_missing_anchors(content, hunk(before="BEGIN", after="END"), limits)
        assert isinstance(err, SpanTooLargeError)
        assert "108" in err.message

    def test_missing_before(self):
        err = explain_missing_anchors("abc", hunk(before="zzz", after="abc"))
        assert isinstance(err, NoMatchError)
        assert "beforeAnchor" in err.message

    def test_wrong_order(self):
        err = explain_missing_anchors("second\nfirst", hunk(before="first", after="second"))
        assert isinstance(err, NoMatchError)
        assert "never appears after" in err.message

    def test_boundary_too_far(self):
        content = "x" * 2000 + "\nmarker\n"
        err = explain_missing_anchors(content, hunk(after="marker"))
        assert isinstance(err, NoMatchError)
        assert "start of the file" in err.message


# ─────────────────────────────────────────────────────────────
# New Text Tests
# ─────────────────────────────────────────────────────────────


class TestBuildNewText:
    """Test replacement construction and the anchor guard."""

    def test_normal_verbatim(self):
        h = hunk(before="import A", after="export class X {}", replacement="import B")
        assert build_new_text(h) == "import Aimport Bexport class X {}"

    def test_normal_newline_join(self):
        h = hunk(before="import A", after="export class X {}", replacement="import B")
        limits = EditLimits(anchor_join="newline")
        assert build_new_text(h, limits=limits) == "import A\nimport B\nexport class X {}"

    def test_newline_join_keeps_existing_newlines(self):
        h = hunk(before="a\n", after="c", replacement="b\n")
        limits = EditLimits(anchor_join="newline")
        assert build_new_text(h, limits=limits) == "a\nb\nc"

    def test_newline_join_empty_replacement(self):
        h = hunk(before="a", after="c", replacement="")
        limits = EditLimits(anchor_join="newline")
        assert build_new_text(h, limits=limits) == "a\nc"

    def test_boundary_replacement_only(self):
        assert build_new_text(hunk(after="x", replacement="top\n")) == "top\n"
        assert build_new_text(hunk(before="x", replacement="bottom")) == "bottom"
        assert build_new_text(hunk(replacement="all new")) == "all new"

    def test_boundary_newline_join(self):
        limits = EditLimits(anchor_join="newline")
        bof = hunk(after="import os", replacement="# header")
        assert build_new_text(bof, limits=limits, content="import os\n") == "# header\n"
        eof = hunk(before="end", replacement="more")
        assert build_new_text(eof, limits=limits, content="end") == "\nmore"

    def test_guard_long_anchor_in_replacement(self):
        anchor = "def important_function():"
        h = hunk(before=anchor, after="return 1", replacement=anchor + "\n    pass")
        with pytest.raises(InvalidHunkShapeError):
            build_new_text(h)

    def test_guard_multiline_anchor_in_replacement(self):
        h = hunk(before="a\nb", after="zzz", replacement="a\nb\nc")
        with pytest.raises(InvalidHunkShapeError):
            build_new_text(h)

    def test_short_anchor_allowed_in_replacement(self):
        h = hunk(before="x = 1", after="y = 2", replacement="x = 1 + 1")
        assert build_new_text(h) == "x = 1x = 1 + 1y = 2"


# ─────────────────────────────────────────────────────────────
# Resolution Tests
# ─────────────────────────────────────────────────────────────


class TestResolveHunks:
    """Test hunk-to-edit resolution and disambiguation."""

    def test_single_candidate(self):
        content = "import A\nexport class X {}"
        edits = resolve_hunks(
            content, [hunk(before="import A", after="export class X {}", replacement="import B")]
        )
        assert len(edits) == 1
        edit = edits[0]
        assert edit.old_text == content
        assert edit.new_text == "import Aimport Bexport class X {}"
        assert edit.kind == EditKind.NORMAL
        assert edit.source_hunk_index == 0

    def test_ambiguous_without_occurrence(self):
        content = "start\nmid\nend\nstart\nmid\nend"
        with pytest.raises(AmbiguousMatchError) as exc:
            resolve_hunks(content, [hunk(before="start\n", after="\nend", replacement="X")])
        assert "found 3 valid" in exc.value.message
        assert exc.value.kind == ErrorKind.AMBIGUOUS_MATCH
        assert exc.value.hunk_index == 0
        assert len(exc.value.locations) == 3

    def test_occurrence_selects_candidate(self):
        content = "<a>1</a><a>2</a>"
        edits = resolve_hunks(content, [hunk(before="<a>", after="</a>", replacement="X", occurrence=3)])
        # Candidates in source order: (0,8) (0,16) (8,16)
        assert (edits[0].start, edits[0].end) == (8, 16)
        assert edits[0].new_text == "<a>X</a>"

    def test_default_occurrence(self):
        content = "<a>1</a><a>2</a>"
        edits = resolve_hunks(content, [hunk(before="<a>", after="</a>", replacement="X")], default_occurrence=1)
        assert (edits[0].start, edits[0].end) == (0, 8)

    def test_occurrence_out_of_range(self):
        content = "<a>1</a>"
        with pytest.raises(AmbiguousMatchError) as exc:
            resolve_hunks(content, [hunk(before="<a>", after="</a>", replacement="X", occurrence=2)])
        assert "out of range" in exc.value.message

    def test_error_carries_hunk_index(self):
        content = "alpha\nbeta\ngamma\n"
        hunks = [
            hunk(before="alpha", after="beta", replacement="\n"),
            hunk(before="nope", after="gamma", replacement="\n"),
        ]
        with pytest.raises(NoMatchError) as exc:
            resolve_hunks(content, hunks)
        assert exc.value.hunk_index == 1

    def test_full_rewrite_old_text_is_content(self):
        edits = resolve_hunks("old", [hunk(replacement="new")])
        assert edits[0].old_text == "old"
        assert (edits[0].start, edits[0].end) == (0, 3)

    def test_boundary_insertions(self):
        content = "import os\nbody()\n"
        edits = resolve_hunks(
            content,
            [
                hunk(after="import os", replacement="#!/usr/bin/env python\n"),
                hunk(before="body()", replacement="tail()\n"),
            ],
        )
        assert [(e.start, e.end) for e in edits] == [(0, 0), (len(content), len(content))]
        assert edits[0].old_text == ""
        assert edits[1].after_anchor == ""
        assert edits[1].before_anchor == "body()"
