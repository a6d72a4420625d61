"""Atomic application of validated edit sets.

Edits are spliced bottom-up by their captured offsets; nothing is searched
again. Every splice re-checks that the buffer still holds what was resolved,
and any mismatch aborts the whole batch.
"""

from __future__ import annotations

import hashlib

from llm_edit.anchors import anchor_near_boundary, boundary_anchor_offset
from llm_edit.config import EditLimits
from llm_edit.errors import ApplyInvariantViolationError, StaleContentError
from llm_edit.types import EditKind, EditOperation


def compute_content_hash(text: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def ensure_fresh(source: str, expected_hash: str | None) -> str:
    """Check a snapshot against the hash the caller read earlier.

    Returns:
        The snapshot's own hash.

    Raises:
        StaleContentError: the file changed since the caller's read.
    """
    actual = compute_content_hash(source)
    if expected_hash is not None and expected_hash != actual:
        raise StaleContentError(
            f"File changed since it was read (expected hash {expected_hash[:12]}, "
            f"found {actual[:12]}). Read the file again and rebuild the edit."
        )
    return actual


def _boundary_anchor_holds(source: str, edit: EditOperation, max_distance: int) -> bool:
    # Measured on the snapshot; splices made earlier in the pass only shift the buffer
    index = edit.anchor_offset
    if index is None:
        index = boundary_anchor_offset(source, edit.kind, edit.before_anchor, edit.after_anchor)
    return anchor_near_boundary(
        source, edit.kind, index, edit.before_anchor, edit.after_anchor, max_distance
    )


def _apply_order(edit: EditOperation) -> tuple[int, int, int]:
    # Bottom of file first; same start: longer span first, then hunk order
    return (-edit.start, -edit.end, edit.source_hunk_index)


def apply_edits(
    source: str,
    edits: list[EditOperation],
    limits: EditLimits | None = None,
) -> str:
    """Apply all edits to `source` in one pass.

    Args:
        source: Snapshot the edits were resolved against
        edits: Validated, non-overlapping edit operations
        limits: Boundary-distance guard for top/bottom insertions

    Returns:
        The new file content.

    Raises:
        ApplyInvariantViolationError: the buffer no longer matches an edit.
    """
    limits = limits or EditLimits()
    result = source

    for edit in sorted(edits, key=_apply_order):
        if edit.start < 0 or edit.end < edit.start or edit.end > len(result):
            raise ApplyInvariantViolationError(
                f"Edit {edit.source_hunk_index} has an invalid range "
                f"[{edit.start}, {edit.end}) for content of length {len(result)}.",
                edit.source_hunk_index,
            )

        current = result[edit.start : edit.end]
        if current != edit.old_text:
            raise ApplyInvariantViolationError(
                f"Edit {edit.source_hunk_index}: content at the expected range no "
                "longer matches the resolved text; nothing was applied.",
                edit.source_hunk_index,
            )

        if edit.kind in (EditKind.BEGINNING_OF_FILE, EditKind.END_OF_FILE):
            if not _boundary_anchor_holds(source, edit, limits.max_boundary_anchor_distance):
                raise ApplyInvariantViolationError(
                    f"Edit {edit.source_hunk_index}: boundary anchor is no longer "
                    "near the file boundary; nothing was applied.",
                    edit.source_hunk_index,
                )

        result = result[: edit.start] + edit.new_text + result[edit.end :]

    return result


__all__ = ["compute_content_hash", "ensure_fresh", "apply_edits"]
