"""Progressive line matcher for literal old-text edits.

Strategies run from most literal to most flexible:

1. exact   - whitespace-normalized window equals the normalized block
2. trimmed - every line pair equal after stripping both sides
3. fuzzy   - every line pair within a small edit-distance ratio

A stage that finds anything ends the search, even when what it found is
ambiguous. Looser stages only run after a stage found nothing.
"""

from __future__ import annotations

from collections.abc import Callable

from diff_match_patch import diff_match_patch

from llm_edit.config import EditLimits
from llm_edit.distance import lines_similar
from llm_edit.errors import ErrorKind
from llm_edit.normalizer import (
    detect_indentation,
    normalize_newlines,
    normalize_whitespace,
    search_lines,
)
from llm_edit.types import MatchCandidate, MatchResult, MatchStage

LineCompare = Callable[[str, str], bool]

_TIP_NO_MATCH = (
    "TIP: Read the file again and copy the EXACT text, then modify only "
    "what needs to change."
)
_TIP_AMBIGUOUS = (
    "TIP: Add more surrounding context (5-10 lines before/after) to make the "
    "match unique, or set replaceAll to change every occurrence."
)


class SourceLines:
    """Line view of a source snapshot that maps line ranges back to offsets.

    Lines are split on LF; a trailing CR is kept out of both the comparison
    text and the matched span.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.raw = source.split("\n")
        self.lines = [line[:-1] if line.endswith("\r") else line for line in self.raw]
        self.starts: list[int] = []
        offset = 0
        for raw in self.raw:
            self.starts.append(offset)
            offset += len(raw) + 1

    def __len__(self) -> int:
        return len(self.lines)

    def span(self, start_line: int, end_line: int) -> tuple[int, int]:
        """Offsets of lines start_line..end_line (inclusive)."""
        start = self.starts[start_line]
        end = self.starts[end_line] + len(self.lines[end_line])
        return start, end

    def candidate(self, start_line: int, end_line: int) -> MatchCandidate:
        start, end = self.span(start_line, end_line)
        block = "\n".join(self.lines[start_line : end_line + 1])
        return MatchCandidate(
            start_line=start_line,
            end_line=end_line,
            start=start,
            end=end,
            matched_text=self.source[start:end],
            indentation=detect_indentation(block),
        )


def _locations(matches: list[MatchCandidate]) -> list[tuple[int, int]]:
    return [(m.start_line + 1, m.end_line + 1) for m in matches]


def _format_locations(matches: list[MatchCandidate]) -> str:
    return ", ".join(f"lines {a}-{b}" for a, b in _locations(matches))


def find_matches_exact(source: str | SourceLines, old_text: str) -> list[MatchCandidate]:
    """Every window whose normalized text equals the normalized block."""
    view = source if isinstance(source, SourceLines) else SourceLines(source)
    needle = normalize_whitespace(old_text)
    if not needle:
        return []
    count = len(needle.split("\n"))

    found: list[MatchCandidate] = []
    for i in range(len(view) - count + 1):
        window = "\n".join(view.lines[i : i + count])
        if normalize_whitespace(window) == needle:
            found.append(view.candidate(i, i + count - 1))
    return found


def _scan(view: SourceLines, needle: list[str], same: LineCompare) -> list[MatchCandidate]:
    """Top-to-bottom scan that resumes after each accepted window."""
    count = len(needle)
    found: list[MatchCandidate] = []
    if count == 0:
        return found
    i = 0
    while i <= len(view) - count:
        if all(same(view.lines[i + k], needle[k]) for k in range(count)):
            found.append(view.candidate(i, i + count - 1))
            i += count
        else:
            i += 1
    return found


def find_matches_trimmed(source: str | SourceLines, old_text: str) -> list[MatchCandidate]:
    """Windows whose lines equal the block's lines after stripping both sides."""
    view = source if isinstance(source, SourceLines) else SourceLines(source)
    return _scan(view, search_lines(old_text), lambda a, b: a.strip() == b.strip())


def find_matches_fuzzy(
    source: str | SourceLines,
    old_text: str,
    limits: EditLimits | None = None,
) -> list[MatchCandidate]:
    """Windows whose lines are all similar to the block's lines."""
    limits = limits or EditLimits()
    view = source if isinstance(source, SourceLines) else SourceLines(source)
    needle = search_lines(old_text)
    if len(needle) > limits.max_fuzzy_lines:
        return []

    def similar(a: str, b: str) -> bool:
        return lines_similar(
            a,
            b,
            max_ratio=limits.fuzzy_max_ratio,
            min_length=limits.fuzzy_min_line_length,
        )

    return _scan(view, needle, similar)


def closest_line_hint(source: str, old_text: str) -> str | None:
    """Describe where the file most resembles the block, if anywhere.

    Uses diff-match-patch's bitap locator on the block's first non-blank
    line. Advisory only: never used to pick an edit location.
    """
    text = normalize_newlines(source)
    needle = next((line.strip() for line in search_lines(old_text) if line.strip()), "")
    if not text or not needle:
        return None

    dmp = diff_match_patch()
    dmp.Match_Threshold = 0.5
    dmp.Match_Distance = max(1000, len(text))
    pattern = needle[: dmp.Match_MaxBits]
    location = dmp.match_main(text, pattern, 0)
    if location == -1:
        return None

    line_number = text.count("\n", 0, location) + 1
    line = text.split("\n")[line_number - 1].strip()
    return f'Closest similar text near line {line_number}: "{line[:120]}"'


def _preview(old_text: str) -> str:
    normalized = normalize_whitespace(old_text)
    lines = normalized.split("\n")
    if len(lines) > 3:
        return "\\n".join(lines[:3]) + "..."
    return normalized.replace("\n", "\\n")


def find_matches_progressive(
    source: str,
    old_text: str,
    replace_all: bool = False,
    limits: EditLimits | None = None,
) -> MatchResult:
    """Locate `old_text` in `source`, loosening the comparison stage by stage.

    Args:
        source: File content snapshot
        old_text: Block to find
        replace_all: Accept several matches instead of rejecting them
        limits: Fuzzy-stage limits

    Returns:
        MatchResult with the accepted matches, or a single error message.
        An empty old_text yields neither matches nor errors.
    """
    limits = limits or EditLimits()
    if old_text == "":
        return MatchResult()

    if not normalize_whitespace(old_text):
        return MatchResult(
            errors=["oldText contains only whitespace; nothing to match."],
            error_kind=ErrorKind.NO_MATCH,
        )

    view = SourceLines(source)

    matches = find_matches_exact(view, old_text)
    if matches:
        return _settle(matches, MatchStage.EXACT, replace_all)

    matches = find_matches_trimmed(view, old_text)
    if matches:
        return _settle(matches, MatchStage.TRIMMED, replace_all)

    if not replace_all:
        matches = find_matches_fuzzy(view, old_text, limits)
        if matches:
            return _settle(matches, MatchStage.FUZZY, replace_all)

    message = (
        f'Could not find match for oldText in file. Searched for (normalized): '
        f'"{_preview(old_text)}".'
    )
    hint = closest_line_hint(source, old_text)
    if hint:
        message += f" {hint}."
    message += f" {_TIP_NO_MATCH}"
    return MatchResult(errors=[message], error_kind=ErrorKind.NO_MATCH)


def _settle(
    matches: list[MatchCandidate],
    stage: MatchStage,
    replace_all: bool,
) -> MatchResult:
    if len(matches) == 1 or (replace_all and stage is not MatchStage.FUZZY):
        return MatchResult(matches=matches, match_stage=stage)

    where = _format_locations(matches)
    if stage is MatchStage.EXACT:
        message = f"Found {len(matches)} matches for oldText at {where}. {_TIP_AMBIGUOUS}"
    elif stage is MatchStage.TRIMMED:
        message = (
            f"Found {len(matches)} trimmed matches for oldText at {where}. "
            f"{_TIP_AMBIGUOUS}"
        )
    else:
        message = (
            f"Found {len(matches)} fuzzy matches for oldText at {where}; "
            f"too ambiguous to apply. {_TIP_AMBIGUOUS}"
        )
    return MatchResult(
        errors=[message],
        error_kind=ErrorKind.AMBIGUOUS_MATCH,
        locations=_locations(matches),
    )


__all__ = [
    "SourceLines",
    "find_matches_exact",
    "find_matches_trimmed",
    "find_matches_fuzzy",
    "find_matches_progressive",
    "closest_line_hint",
]
