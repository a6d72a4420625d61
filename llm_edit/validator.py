"""Overlap and limit validation for resolved edit sets.

Runs after matching/resolution and before anything is applied. Each check
raises its own error so callers see exactly which limit was hit.
"""

from __future__ import annotations

from llm_edit.config import EditLimits
from llm_edit.errors import (
    InvalidHunkShapeError,
    LimitExceededError,
    OverlappingEditsError,
    SpanTooLargeError,
)
from llm_edit.types import EditKind, EditOperation


def _line_count(text: str) -> int:
    return len(text.split("\n"))


def check_file_size(source: str, limits: EditLimits | None = None) -> None:
    """Reject files larger than the configured byte ceiling."""
    limits = limits or EditLimits()
    size = len(source.encode("utf-8"))
    if size > limits.max_file_bytes:
        raise LimitExceededError(
            f"File size {size / 1_000_000:.2f}MB exceeds "
            f"{limits.max_file_bytes / 1_000_000:g}MB limit. Split the file or "
            "use smaller targeted edits."
        )


def check_hunk_count(edits: list[EditOperation], limits: EditLimits) -> None:
    if len(edits) > limits.max_hunks:
        raise LimitExceededError(
            f"{len(edits)} hunks exceeds {limits.max_hunks} limit. Break changes "
            "into several requests with fewer hunks each."
        )


def check_overlaps(source: str, edits: list[EditOperation]) -> None:
    """Reject any pair of edits whose spans intersect.

    Adjacent edits (one ends where the next starts) are allowed.
    """
    ordered = sorted(edits, key=lambda e: (e.start, e.end))
    for a, b in zip(ordered, ordered[1:]):
        if a.end > b.start:
            first = source.count("\n", 0, a.start) + 1
            second = source.count("\n", 0, b.start) + 1
            raise OverlappingEditsError(
                f"Overlapping edits detected: edit {a.source_hunk_index} (line {first}) "
                f"overlaps with edit {b.source_hunk_index} (line {second}). Edits must "
                "target non-overlapping regions.",
                a.source_hunk_index,
                b.source_hunk_index,
            )


def check_spans(edits: list[EditOperation], limits: EditLimits) -> None:
    for edit in edits:
        if edit.kind is not EditKind.NORMAL:
            continue
        span = edit.end - edit.start
        if span > limits.max_anchor_span:
            raise SpanTooLargeError(
                f"Anchor span too large: {span} chars exceeds the "
                f"{limits.max_anchor_span} char limit. Choose closer anchors.",
                edit.source_hunk_index,
            )


def check_anchor_strength(
    source: str,
    edits: list[EditOperation],
    limits: EditLimits,
) -> None:
    """Reject generic single-line anchors in larger files.

    An anchor is strong enough when it spans several lines, is long, or sits
    on the file boundary.
    """
    if _line_count(source) < limits.small_file_lines:
        return

    for edit in edits:
        if edit.kind is not EditKind.NORMAL or not edit.before_anchor or not edit.after_anchor:
            continue

        checks = (
            ("beforeAnchor", edit.before_anchor, edit.start == 0, "start"),
            ("afterAnchor", edit.after_anchor, edit.end == len(source), "end"),
        )
        for name, anchor, on_boundary, boundary in checks:
            strong = (
                _line_count(anchor) >= limits.min_anchor_lines
                or len(anchor) >= limits.min_single_line_anchor_chars
            )
            if not strong and not on_boundary:
                raise InvalidHunkShapeError(
                    f"Weak {name}: prefer {limits.min_anchor_lines}+ lines, or "
                    f">={limits.min_single_line_anchor_chars} chars, or anchor at file "
                    f"{boundary}. Provided anchor looks too generic.",
                    edit.source_hunk_index,
                )


def check_change_ratio(
    source: str,
    edits: list[EditOperation],
    limits: EditLimits,
) -> None:
    """Reject edit sets that rewrite too much of the file at once."""
    if len(edits) == 1 and edits[0].start == 0 and edits[0].end == len(source):
        return

    file_lines = _line_count(source)
    if file_lines < limits.min_lines_for_ratio_check:
        return

    changed = sum(_line_count(e.old_text) + _line_count(e.new_text) for e in edits)
    ratio = changed / (2 * file_lines)
    if ratio > limits.max_changed_lines_ratio:
        raise LimitExceededError(
            f"{ratio * 100:.0f}% change ratio exceeds "
            f"{limits.max_changed_lines_ratio * 100:g}% limit. Break into smaller "
            "changes or rewrite the whole file."
        )


def validate_edits(
    source: str,
    edits: list[EditOperation],
    limits: EditLimits | None = None,
    check_ratio: bool = False,
) -> None:
    """Run every check in order; the first failure is raised.

    Args:
        source: File content the edits were resolved against
        edits: Resolved edit operations
        limits: Limits to enforce
        check_ratio: Enforce the changed-lines ratio (literal edits only)

    Raises:
        EditError: LimitExceeded, OverlappingEdits, SpanTooLarge or
            InvalidHunkShape.
    """
    limits = limits or EditLimits()
    check_file_size(source, limits)
    check_hunk_count(edits, limits)
    check_overlaps(source, edits)
    check_spans(edits, limits)
    check_anchor_strength(source, edits, limits)
    if check_ratio:
        check_change_ratio(source, edits, limits)


__all__ = [
    "check_file_size",
    "check_hunk_count",
    "check_overlaps",
    "check_spans",
    "check_anchor_strength",
    "check_change_ratio",
    "validate_edits",
]
