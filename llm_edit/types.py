"""Core types for llm-edit.

Pydantic models describe what crosses the engine boundary (requests, hunks,
results); frozen dataclasses describe what the matchers and resolver produce
internally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from llm_edit.errors import ErrorKind, InvalidHunkShapeError

MAX_ANCHOR_CHARS = 10_000
MAX_REPLACEMENT_CHARS = 50_000


class MatchStage(str, Enum):
    """Which matcher tier produced a match (a confidence signal)."""

    EXACT = "exact"
    TRIMMED = "trimmed"
    FUZZY = "fuzzy"


# Most to least confident
STAGE_ORDER = [MatchStage.EXACT, MatchStage.TRIMMED, MatchStage.FUZZY]


class EditKind(str, Enum):
    NORMAL = "normal"
    BEGINNING_OF_FILE = "beginning_of_file"
    END_OF_FILE = "end_of_file"
    FULL_REWRITE = "full_rewrite"


class LiteralEdit(BaseModel):
    """Replace a verbatim block of text.

    An empty old_text together with insert_after_line inserts new_text after
    that 1-based line (0 = top of file).
    """

    kind: Literal["literal"] = "literal"
    old_text: str = Field(alias="oldText")
    new_text: str = Field(alias="newText")
    replace_all: bool = Field(False, alias="replaceAll")
    insert_after_line: int | None = Field(None, ge=0, alias="insertAfterLine")

    model_config = ConfigDict(populate_by_name=True)


class AnchorHunk(BaseModel):
    """Replace everything between two verbatim anchors.

    Empty anchors mark file boundaries:
        - both empty: full rewrite
        - before empty: insert at beginning of file
        - after empty: append at end of file
    """

    kind: Literal["anchor"] = "anchor"
    before_anchor: str = Field("", max_length=MAX_ANCHOR_CHARS, alias="beforeAnchor")
    after_anchor: str = Field("", max_length=MAX_ANCHOR_CHARS, alias="afterAnchor")
    replacement: str = Field(max_length=MAX_REPLACEMENT_CHARS)
    occurrence: int | None = Field(None, gt=0)

    model_config = ConfigDict(populate_by_name=True)


Hunk = Union[LiteralEdit, AnchorHunk]


class EditRequest(BaseModel):
    """One resolution request against a snapshot of a file."""

    source_text: str = Field(alias="sourceText")
    old_text: str | None = Field(None, alias="oldText")
    new_text: str | None = Field(None, alias="newText")
    hunks: list[Hunk] = Field(default_factory=list)
    replace_all: bool = Field(False, alias="replaceAll")
    occurrence: int | None = Field(None, gt=0)
    insert_after_line: int | None = Field(None, ge=0, alias="insertAfterLine")
    expected_hash: str | None = Field(None, alias="expectedHash")

    model_config = ConfigDict(populate_by_name=True)

    def normalized_hunks(self) -> list[Hunk]:
        """Collapse the flat and list forms into a single list of hunks.

        The hunk list takes priority over the flat old_text/new_text fields.
        Literal and anchor hunks can't be mixed in one request.
        """
        if self.hunks:
            hunks = list(self.hunks)
        elif self.old_text is not None or self.new_text is not None:
            if self.old_text is None or self.new_text is None:
                raise InvalidHunkShapeError(
                    "Both old_text and new_text are required for a literal edit."
                )
            hunks = [
                LiteralEdit(
                    old_text=self.old_text,
                    new_text=self.new_text,
                    replace_all=self.replace_all,
                    insert_after_line=self.insert_after_line,
                )
            ]
        else:
            raise InvalidHunkShapeError(
                "Nothing to do: provide old_text/new_text or a non-empty edits array of hunks."
            )

        kinds = {h.kind for h in hunks}
        if len(kinds) > 1:
            raise InvalidHunkShapeError(
                "Literal edits and anchor hunks cannot be mixed in one request."
            )
        return hunks


class EditResult(BaseModel):
    """Structured outcome of a resolution request."""

    success: bool
    new_content: str | None = None
    diff: str | None = None
    content_hash: str | None = None
    applied_edit_count: int = 0
    total_edit_count: int = 0
    match_stage: MatchStage | None = None
    match_stages: list[MatchStage] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    post_edit_context: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    failed_hunk_index: int | None = None


@dataclass(frozen=True)
class MatchCandidate:
    """A block located by the progressive matcher.

    Line indices are 0-based and end_line is inclusive; start/end are offsets
    into the source snapshot.
    """

    start_line: int
    end_line: int
    start: int
    end: int
    matched_text: str
    indentation: str = ""


@dataclass
class MatchResult:
    matches: list[MatchCandidate] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    match_stage: MatchStage | None = None
    error_kind: ErrorKind | None = None
    # 1-based inclusive line ranges of rejected candidates
    locations: list[tuple[int, int]] = field(default_factory=list)


@dataclass(frozen=True)
class AnchorCandidate:
    start: int
    end: int
    kind: EditKind
    matched_text: str


@dataclass(frozen=True)
class EditOperation:
    """A resolved, concrete change: source[start:end] -> new_text."""

    old_text: str
    new_text: str
    start: int
    end: int
    kind: EditKind = EditKind.NORMAL
    source_hunk_index: int = 0
    before_anchor: str = ""
    after_anchor: str = ""
    match_stage: MatchStage | None = None
    # Snapshot offset of the context anchor of a boundary insertion
    anchor_offset: int | None = None


__all__ = [
    "MatchStage",
    "STAGE_ORDER",
    "EditKind",
    "LiteralEdit",
    "AnchorHunk",
    "Hunk",
    "EditRequest",
    "EditResult",
    "MatchCandidate",
    "MatchResult",
    "AnchorCandidate",
    "EditOperation",
    "MAX_ANCHOR_CHARS",
    "MAX_REPLACEMENT_CHARS",
]
