"""Edit-resolution pipeline.

request -> {progressive matcher | anchor resolver} -> validator -> applier
-> diff -> result

Pure: works on the snapshot carried by the request and never touches the
filesystem. File-level reads and writes live in `llm_edit.tools.patch_apply`.
"""

from __future__ import annotations

from llm_edit.anchors import resolve_hunks
from llm_edit.applier import apply_edits, compute_content_hash, ensure_fresh
from llm_edit.config import EditLimits
from llm_edit.errors import (
    AmbiguousMatchError,
    EditError,
    ErrorKind,
    InvalidHunkShapeError,
    NoMatchError,
)
from llm_edit.matcher import find_matches_progressive
from llm_edit.normalizer import apply_indentation, detect_newline, normalize_newlines
from llm_edit.tools.diff_generator import generate_edit_diff, post_edit_context, truncate_diff
from llm_edit.types import (
    STAGE_ORDER,
    AnchorHunk,
    EditKind,
    EditOperation,
    EditRequest,
    EditResult,
    LiteralEdit,
    MatchCandidate,
    MatchStage,
)
from llm_edit.validator import check_file_size, validate_edits


def _with_newline(text: str, newline: str) -> str:
    text = normalize_newlines(text)
    return text.replace("\n", newline) if newline != "\n" else text


def _line_total(source: str) -> int:
    if not source:
        return 0
    count = source.count("\n") + 1
    return count - 1 if source.endswith("\n") else count


def _insertion(source: str, edit: LiteralEdit, index: int) -> EditOperation:
    """Insert new_text after a 1-based line (0 = top of file)."""
    line = edit.insert_after_line or 0
    total = _line_total(source)
    if line > total:
        raise NoMatchError(
            f"Edit {index}: insertAfterLine {line} is beyond the end of the file "
            f"({total} lines).",
            index,
        )

    newline = detect_newline(source)
    text = _with_newline(edit.new_text, newline)

    offset = 0
    for _ in range(line):
        found = source.find("\n", offset)
        offset = len(source) if found == -1 else found + 1

    if offset == len(source) and source and not source.endswith("\n"):
        text = newline + text.removesuffix(newline)
    elif offset < len(source) and not text.endswith(newline):
        text += newline

    return EditOperation(
        old_text="",
        new_text=text,
        start=offset,
        end=offset,
        source_hunk_index=index,
        match_stage=MatchStage.EXACT,
    )


def _deletions(
    source: str,
    matches: list[MatchCandidate],
    index: int,
    stage: MatchStage,
) -> list[EditOperation]:
    """Delete matched lines together with one line break per run.

    Matches on consecutive lines form a single run, so a run ending on an
    unterminated last line never reaches back into another match.
    """
    runs: list[list[MatchCandidate]] = []
    for match in sorted(matches, key=lambda m: m.start_line):
        if runs and match.start_line == runs[-1][-1].end_line + 1:
            runs[-1].append(match)
        else:
            runs.append([match])

    operations: list[EditOperation] = []
    for run in runs:
        start, end = run[0].start, run[-1].end
        next_break = source.find("\n", end)
        if next_break != -1:
            end = next_break + 1
        elif start > 0:
            start = source.rfind("\n", 0, start)
            if start > 0 and source[start - 1] == "\r":
                start -= 1
        operations.append(
            EditOperation(
                old_text=source[start:end],
                new_text="",
                start=start,
                end=end,
                source_hunk_index=index,
                match_stage=stage,
            )
        )
    return operations


def _replacement(
    source: str,
    match: MatchCandidate,
    edit: LiteralEdit,
    index: int,
    stage: MatchStage,
) -> EditOperation:
    start, end = match.start, match.end
    body = normalize_newlines(edit.new_text)
    old = normalize_newlines(edit.old_text)
    # The match never covers the block's outer line breaks
    if old.endswith("\n") and body.endswith("\n"):
        body = body[:-1]
    if old.startswith("\n") and body.startswith("\n"):
        body = body[1:]
    body = apply_indentation(body, match.indentation)

    return EditOperation(
        old_text=source[start:end],
        new_text=_with_newline(body, detect_newline(source)),
        start=start,
        end=end,
        source_hunk_index=index,
        match_stage=stage,
    )


def resolve_literal_edits(
    source: str,
    edits: list[LiteralEdit],
    limits: EditLimits | None = None,
) -> list[EditOperation]:
    """Locate each literal edit with the progressive matcher.

    Raises:
        EditError: the first edit that can't be located uniquely.
    """
    limits = limits or EditLimits()
    operations: list[EditOperation] = []

    for index, edit in enumerate(edits):
        if edit.old_text == edit.new_text:
            raise InvalidHunkShapeError(
                f"Edit {index}: oldText and newText are identical; nothing to change.",
                index,
            )

        if edit.insert_after_line is not None:
            if edit.old_text:
                raise InvalidHunkShapeError(
                    f"Edit {index}: insertAfterLine requires an empty oldText.",
                    index,
                )
            operations.append(_insertion(source, edit, index))
            continue

        if edit.old_text == "":
            if source == "" and len(edits) == 1:
                operations.append(
                    EditOperation(
                        old_text="",
                        new_text=edit.new_text,
                        start=0,
                        end=0,
                        kind=EditKind.FULL_REWRITE,
                        source_hunk_index=index,
                        match_stage=MatchStage.EXACT,
                    )
                )
                continue
            raise InvalidHunkShapeError(
                f"Edit {index}: empty oldText is not supported here. It is only "
                "allowed as the single edit that fills an empty file, or together "
                "with insertAfterLine.",
                index,
            )

        result = find_matches_progressive(source, edit.old_text, edit.replace_all, limits)
        if result.errors:
            message = f"Edit {index}: {result.errors[0]}"
            if result.error_kind is ErrorKind.AMBIGUOUS_MATCH:
                raise AmbiguousMatchError(message, index, result.locations)
            raise NoMatchError(message, index)

        if edit.new_text == "":
            operations.extend(_deletions(source, result.matches, index, result.match_stage))
            continue
        for match in result.matches:
            operations.append(_replacement(source, match, edit, index, result.match_stage))

    return operations


def _least_confident(stages: list[MatchStage]) -> MatchStage | None:
    if not stages:
        return None
    return max(stages, key=STAGE_ORDER.index)


def resolve_edit(request: EditRequest, limits: EditLimits | None = None) -> EditResult:
    """Resolve, validate and apply one request against its snapshot.

    Args:
        request: Source snapshot plus a literal edit or a list of hunks
        limits: Limits to enforce; defaults to EditLimits()

    Returns:
        EditResult. Failures are reported with error_kind and the index of
        the first failing hunk; nothing is ever partially applied.
    """
    limits = limits or EditLimits()
    source = request.source_text
    total = len(request.hunks) or 1

    try:
        ensure_fresh(source, request.expected_hash)
        hunks = request.normalized_hunks()
        total = len(hunks)
        check_file_size(source, limits)

        literal = isinstance(hunks[0], LiteralEdit)
        if literal:
            edits = resolve_literal_edits(source, hunks, limits)
        else:
            anchor_hunks: list[AnchorHunk] = hunks
            edits = resolve_hunks(source, anchor_hunks, limits, request.occurrence)

        validate_edits(source, edits, limits, check_ratio=literal)
        new_content = apply_edits(source, edits, limits)
    except EditError as exc:
        return EditResult(
            success=False,
            total_edit_count=total,
            error=exc.message,
            error_kind=exc.kind,
            failed_hunk_index=exc.hunk_index,
        )

    diff = generate_edit_diff(source, edits, limits.diff_context_lines)

    stages: list[MatchStage] = []
    warnings: list[str] = []
    for edit in edits:
        stage = edit.match_stage
        if stage is None:
            continue
        if stage not in stages:
            stages.append(stage)
        if stage is not MatchStage.EXACT:
            warnings.append(
                f"Edit {edit.source_hunk_index}: {stage.value} match used; review the diff."
            )

    return EditResult(
        success=True,
        new_content=new_content,
        diff=truncate_diff(diff, limits.max_diff_bytes),
        content_hash=compute_content_hash(new_content),
        applied_edit_count=len(edits),
        total_edit_count=total,
        match_stage=_least_confident(stages),
        match_stages=stages,
        warnings=list(dict.fromkeys(warnings)),
        post_edit_context=post_edit_context(new_content, edits, limits.diff_context_lines),
    )


__all__ = ["resolve_edit", "resolve_literal_edits"]
