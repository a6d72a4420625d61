"""Error taxonomy for edit resolution.

Every failure the engine can report maps to one ErrorKind. Internally the
matchers, resolver, validator and applier raise EditError subclasses; the
engine and the file-level applier turn them into structured results.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of edit-resolution failures."""

    NO_MATCH = "no_match"
    AMBIGUOUS_MATCH = "ambiguous_match"
    INVALID_HUNK_SHAPE = "invalid_hunk_shape"
    SPAN_TOO_LARGE = "span_too_large"
    OVERLAPPING_EDITS = "overlapping_edits"
    LIMIT_EXCEEDED = "limit_exceeded"
    STALE_CONTENT = "stale_content"
    APPLY_INVARIANT_VIOLATION = "apply_invariant_violation"


class EditError(Exception):
    """Base class for all edit-resolution errors.

    Args:
        message: Human-readable explanation with enough detail to fix the input
        hunk_index: Index of the hunk/edit that failed, if one is to blame
    """

    kind: ErrorKind = ErrorKind.APPLY_INVARIANT_VIOLATION

    def __init__(self, message: str, hunk_index: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hunk_index = hunk_index

    def __str__(self) -> str:
        return self.message


class NoMatchError(EditError):
    kind = ErrorKind.NO_MATCH


class AmbiguousMatchError(EditError):
    """Several candidate locations and no way to pick one."""

    kind = ErrorKind.AMBIGUOUS_MATCH

    def __init__(
        self,
        message: str,
        hunk_index: int | None = None,
        locations: list[tuple[int, int]] | None = None,
    ) -> None:
        super().__init__(message, hunk_index)
        # 1-based inclusive line ranges
        self.locations = list(locations or [])


class InvalidHunkShapeError(EditError):
    kind = ErrorKind.INVALID_HUNK_SHAPE


class ProposalParseError(InvalidHunkShapeError):
    """Collaborator output could not be turned into hunks."""


class SpanTooLargeError(EditError):
    kind = ErrorKind.SPAN_TOO_LARGE


class OverlappingEditsError(EditError):
    kind = ErrorKind.OVERLAPPING_EDITS

    def __init__(self, message: str, first_index: int, second_index: int) -> None:
        super().__init__(message, hunk_index=second_index)
        self.first_index = first_index
        self.second_index = second_index


class LimitExceededError(EditError):
    kind = ErrorKind.LIMIT_EXCEEDED


class StaleContentError(EditError):
    kind = ErrorKind.STALE_CONTENT


class ApplyInvariantViolationError(EditError):
    kind = ErrorKind.APPLY_INVARIANT_VIOLATION


__all__ = [
    "ErrorKind",
    "EditError",
    "NoMatchError",
    "AmbiguousMatchError",
    "InvalidHunkShapeError",
    "ProposalParseError",
    "SpanTooLargeError",
    "OverlappingEditsError",
    "LimitExceededError",
    "StaleContentError",
    "ApplyInvariantViolationError",
]
