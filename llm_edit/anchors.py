"""Anchor-pair hunk resolution.

A hunk names the text just before and just after the region it replaces.
Empty anchors mark file boundaries: an empty before anchor inserts at the
top of the file, an empty after anchor appends at the end, and two empty
anchors rewrite the whole file.
"""

from __future__ import annotations

from llm_edit.config import EditLimits
from llm_edit.errors import (
    AmbiguousMatchError,
    EditError,
    InvalidHunkShapeError,
    NoMatchError,
    SpanTooLargeError,
)
from llm_edit.types import AnchorCandidate, AnchorHunk, EditKind, EditOperation, MatchStage


def _snippet(text: str, limit: int = 100) -> str:
    flat = text.replace("\n", "\\n")
    return flat if len(flat) <= limit else flat[:limit] + "..."


def _line_of(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


def edit_kind_for(hunk: AnchorHunk) -> EditKind:
    """Which boundary case a hunk's anchors describe."""
    if not hunk.before_anchor and not hunk.after_anchor:
        return EditKind.FULL_REWRITE
    if not hunk.before_anchor:
        return EditKind.BEGINNING_OF_FILE
    if not hunk.after_anchor:
        return EditKind.END_OF_FILE
    return EditKind.NORMAL


def boundary_anchor_in_range(
    content: str,
    kind: EditKind,
    before_anchor: str,
    after_anchor: str,
    max_distance: int,
) -> bool:
    """Whether a boundary insertion's context anchor sits near its boundary."""
    index = boundary_anchor_offset(content, kind, before_anchor, after_anchor)
    return anchor_near_boundary(content, kind, index, before_anchor, after_anchor, max_distance)


def boundary_anchor_offset(
    content: str, kind: EditKind, before_anchor: str, after_anchor: str
) -> int:
    """Offset of the anchor a boundary insertion hangs on, or -1."""
    if kind is EditKind.BEGINNING_OF_FILE:
        return content.find(after_anchor)
    if kind is EditKind.END_OF_FILE:
        return content.rfind(before_anchor)
    return -1


def anchor_near_boundary(
    content: str,
    kind: EditKind,
    index: int,
    before_anchor: str,
    after_anchor: str,
    max_distance: int,
) -> bool:
    """Whether the anchor at `index` of `content` is within reach of its boundary."""
    if kind is EditKind.BEGINNING_OF_FILE:
        return (
            index != -1
            and content.startswith(after_anchor, index)
            and index <= max_distance
        )
    if kind is EditKind.END_OF_FILE:
        return (
            index != -1
            and content.startswith(before_anchor, index)
            and len(content) - (index + len(before_anchor)) <= max_distance
        )
    return True


def find_anchor_candidates(
    content: str,
    hunk: AnchorHunk,
    limits: EditLimits | None = None,
) -> list[AnchorCandidate]:
    """Every region of `content` the hunk could apply to, in source order."""
    limits = limits or EditLimits()
    before, after = hunk.before_anchor, hunk.after_anchor
    kind = edit_kind_for(hunk)

    if kind is EditKind.FULL_REWRITE:
        return [AnchorCandidate(0, len(content), kind, content)]

    if kind in (EditKind.BEGINNING_OF_FILE, EditKind.END_OF_FILE):
        if not boundary_anchor_in_range(
            content, kind, before, after, limits.max_boundary_anchor_distance
        ):
            return []
        at = 0 if kind is EditKind.BEGINNING_OF_FILE else len(content)
        return [AnchorCandidate(at, at, kind, "")]

    if before == after:
        return []

    pairs: list[AnchorCandidate] = []
    before_idx = content.find(before)
    while before_idx != -1:
        window_end = before_idx + limits.max_anchor_span
        after_idx = content.find(after, before_idx + len(before))
        while after_idx != -1 and after_idx + len(after) <= window_end:
            end = after_idx + len(after)
            pairs.append(AnchorCandidate(before_idx, end, kind, content[before_idx:end]))
            if len(pairs) >= limits.max_anchor_pairs_per_hunk:
                return pairs
            after_idx = content.find(after, after_idx + 1)
        before_idx = content.find(before, before_idx + 1)
    return pairs


def explain_missing_anchors(
    content: str,
    hunk: AnchorHunk,
    limits: EditLimits | None = None,
    hunk_index: int | None = None,
) -> EditError:
    """Build the error that explains why a hunk produced no candidates."""
    limits = limits or EditLimits()
    before, after = hunk.before_anchor, hunk.after_anchor
    kind = edit_kind_for(hunk)
    distance = limits.max_boundary_anchor_distance

    if kind is EditKind.BEGINNING_OF_FILE:
        index = content.find(after)
        if index == -1:
            return NoMatchError(
                f'afterAnchor not found in file: "{_snippet(after)}". '
                "Anchors must be EXACT text from the current file.",
                hunk_index,
            )
        return NoMatchError(
            f"afterAnchor first occurs at line {_line_of(content, index)}, more than "
            f"{distance} chars from the start of the file. An empty beforeAnchor "
            "inserts at the top of the file; use both anchors to edit elsewhere.",
            hunk_index,
        )

    if kind is EditKind.END_OF_FILE:
        index = content.rfind(before)
        if index == -1:
            return NoMatchError(
                f'beforeAnchor not found in file: "{_snippet(before)}". '
                "Anchors must be EXACT text from the current file.",
                hunk_index,
            )
        return NoMatchError(
            f"beforeAnchor last occurs at line {_line_of(content, index)}, more than "
            f"{distance} chars from the end of the file. An empty afterAnchor "
            "appends at the end of the file; use both anchors to edit elsewhere.",
            hunk_index,
        )

    if before == after:
        return InvalidHunkShapeError(
            "beforeAnchor and afterAnchor are identical; choose two different "
            "anchors around the region to replace.",
            hunk_index,
        )

    before_idx = content.find(before)
    if before_idx != -1:
        after_idx = content.find(after, before_idx + len(before))
        if after_idx != -1:
            span = after_idx + len(after) - before_idx
            return SpanTooLargeError(
                f"Anchor span too large: {span} chars between beforeAnchor and "
                f"afterAnchor exceeds the {limits.max_anchor_span} char limit. "
                "Choose closer anchors.",
                hunk_index,
            )

    missing = []
    if before_idx == -1:
        missing.append(f'beforeAnchor "{_snippet(before)}"')
    if content.find(after) == -1:
        missing.append(f'afterAnchor "{_snippet(after)}"')
    if missing:
        detail = "Could not find " + " or ".join(missing) + " in file."
    else:
        detail = (
            f'afterAnchor "{_snippet(after)}" never appears after beforeAnchor '
            f'"{_snippet(before)}".'
        )
    return NoMatchError(
        f"{detail} Anchors must be EXACT text from the current file.",
        hunk_index,
    )


def _guarded(anchor: str, min_chars: int) -> bool:
    return bool(anchor) and ("\n" in anchor or len(anchor) >= min_chars)


def _join(left: str, right: str) -> str:
    if left and right and not left.endswith("\n") and not right.startswith("\n"):
        return left + "\n" + right
    return left + right


def build_new_text(
    hunk: AnchorHunk,
    kind: EditKind | None = None,
    limits: EditLimits | None = None,
    content: str = "",
    hunk_index: int | None = None,
) -> str:
    """Text that replaces the hunk's matched region.

    Normal hunks re-emit both anchors around the replacement; boundary
    insertions and full rewrites emit the replacement alone.

    Raises:
        InvalidHunkShapeError: the replacement repeats a multi-line or long
            anchor verbatim.
    """
    limits = limits or EditLimits()
    kind = kind or edit_kind_for(hunk)
    replacement = hunk.replacement

    for name, anchor in (("beforeAnchor", hunk.before_anchor), ("afterAnchor", hunk.after_anchor)):
        if _guarded(anchor, limits.anchor_guard_min_chars) and anchor in replacement:
            raise InvalidHunkShapeError(
                f"Invalid hunk: replacement must not include {name}. Put anchors "
                "only in beforeAnchor/afterAnchor and keep the replacement anchor-free.",
                hunk_index,
            )

    if kind is EditKind.NORMAL:
        if limits.anchor_join == "newline":
            return _join(_join(hunk.before_anchor, replacement), hunk.after_anchor)
        return hunk.before_anchor + replacement + hunk.after_anchor

    if limits.anchor_join == "newline" and replacement:
        if kind is EditKind.BEGINNING_OF_FILE and content:
            return _join(replacement, content)[: -len(content)]
        if kind is EditKind.END_OF_FILE and content:
            return _join(content, replacement)[len(content) :]
    return replacement


def resolve_hunks(
    content: str,
    hunks: list[AnchorHunk],
    limits: EditLimits | None = None,
    default_occurrence: int | None = None,
) -> list[EditOperation]:
    """Turn anchor hunks into concrete edit operations.

    Args:
        content: File content snapshot
        hunks: Hunks to resolve; never trusted, every one is re-checked
        limits: Resolution limits
        default_occurrence: Occurrence used for hunks that don't set one

    Returns:
        One EditOperation per hunk, in hunk order.

    Raises:
        EditError: the first hunk that can't be resolved, with its index.
    """
    limits = limits or EditLimits()
    edits: list[EditOperation] = []

    for index, hunk in enumerate(hunks):
        kind = edit_kind_for(hunk)
        candidates = find_anchor_candidates(content, hunk, limits)
        if not candidates:
            raise explain_missing_anchors(content, hunk, limits, index)

        occurrence = hunk.occurrence if hunk.occurrence is not None else default_occurrence
        if occurrence is None:
            if len(candidates) > 1:
                locations = [
                    (_line_of(content, c.start), _line_of(content, max(c.start, c.end - 1)))
                    for c in candidates
                ]
                where = ", ".join(f"lines {a}-{b}" for a, b in locations)
                raise AmbiguousMatchError(
                    f"Ambiguous anchors: found {len(candidates)} valid before/after "
                    f"pairs at {where}. Use more unique anchors (prefer multi-line), "
                    'or provide "occurrence" to select which match to edit.',
                    index,
                    locations,
                )
            occurrence = 1

        if occurrence > len(candidates):
            raise AmbiguousMatchError(
                f"occurrence {occurrence} is out of range. Only {len(candidates)} "
                "valid matches found.",
                index,
            )
        candidate = candidates[occurrence - 1]

        new_text = build_new_text(hunk, kind, limits, content, index)
        anchor_offset = None
        if kind in (EditKind.BEGINNING_OF_FILE, EditKind.END_OF_FILE):
            anchor_offset = boundary_anchor_offset(
                content, kind, hunk.before_anchor, hunk.after_anchor
            )
        edits.append(
            EditOperation(
                old_text=content[candidate.start : candidate.end],
                new_text=new_text,
                start=candidate.start,
                end=candidate.end,
                kind=kind,
                source_hunk_index=index,
                before_anchor=hunk.before_anchor,
                after_anchor=hunk.after_anchor,
                match_stage=MatchStage.EXACT,
                anchor_offset=anchor_offset,
            )
        )

    return edits


__all__ = [
    "edit_kind_for",
    "boundary_anchor_in_range",
    "boundary_anchor_offset",
    "anchor_near_boundary",
    "find_anchor_candidates",
    "explain_missing_anchors",
    "build_new_text",
    "resolve_hunks",
]
