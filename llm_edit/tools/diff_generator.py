"""Context-diff helpers for resolved edits."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.text import Text

from llm_edit.types import EditOperation


def _split(text: str) -> list[str]:
    """Lines of `text` without terminators; a final newline adds no line."""
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


@dataclass
class DiffBlock:
    """Whole-line region of the source rewritten by one or more edits."""

    region_start: int
    region_end: int
    edits: list[EditOperation]

    def new_text(self, source: str) -> str:
        parts = []
        cursor = self.region_start
        for edit in self.edits:
            parts.append(source[cursor : edit.start])
            parts.append(edit.new_text)
            cursor = edit.end
        parts.append(source[cursor : self.region_end])
        return "".join(parts)


def _region(source: str, edit: EditOperation) -> tuple[int, int]:
    start = source.rfind("\n", 0, edit.start) + 1
    if edit.end > edit.start and source[edit.end - 1] == "\n":
        return start, edit.end
    if edit.start == edit.end == start and (not edit.new_text or edit.new_text.endswith("\n")):
        # Insertion of whole lines before this line
        return start, start
    end = source.find("\n", edit.end)
    return start, len(source) if end == -1 else end + 1


def group_edits(source: str, edits: list[EditOperation]) -> list[DiffBlock]:
    """Group edits into blocks in source order; edits sharing a line merge."""
    blocks: list[DiffBlock] = []
    for edit in sorted(edits, key=lambda e: (e.start, e.end)):
        start, end = _region(source, edit)
        if blocks and start < blocks[-1].region_end:
            blocks[-1].region_end = max(blocks[-1].region_end, end)
            blocks[-1].edits.append(edit)
        else:
            blocks.append(DiffBlock(start, end, [edit]))
    return blocks


def generate_edit_diff(
    source: str,
    edits: list[EditOperation],
    context_lines: int = 2,
    filepath: str | None = None,
) -> str:
    """Render one `@@` block per edit (or group of edits on shared lines).

    Args:
        source: Content the edits were resolved against
        edits: Applied edit operations
        context_lines: Unchanged lines shown before and after each block
        filepath: Optional path for `---`/`+++` headers

    Returns:
        Diff text, blocks in source order.
    """
    source_lines = _split(source)
    out: list[str] = []
    if filepath:
        out.extend([f"--- a/{filepath}", f"+++ b/{filepath}"])

    shift = 0
    for block in group_edits(source, edits):
        first_line = source.count("\n", 0, block.region_start)
        old_lines = _split(source[block.region_start : block.region_end])
        new_lines = _split(block.new_text(source))
        after_line = first_line + len(old_lines)

        out.append(
            f"@@ -{first_line + 1},{len(old_lines)} "
            f"+{first_line + 1 + shift},{len(new_lines)} @@"
        )
        for line in source_lines[max(0, first_line - context_lines) : first_line]:
            out.append(f" {line}")
        out.extend(f"-{line}" for line in old_lines)
        out.extend(f"+{line}" for line in new_lines)
        for line in source_lines[after_line : after_line + context_lines]:
            out.append(f" {line}")

        shift += len(new_lines) - len(old_lines)

    return "\n".join(out) + "\n" if out else ""


def truncate_diff(diff: str, max_bytes: int) -> str:
    """Cut a diff to at most `max_bytes` UTF-8 bytes at a line boundary."""
    encoded = diff.encode("utf-8")
    if len(encoded) <= max_bytes:
        return diff

    truncated = encoded[:max_bytes].decode("utf-8", errors="ignore")
    last_newline = truncated.rfind("\n")
    if last_newline > 0:
        truncated = truncated[:last_newline]
    return f"{truncated}\n... (diff truncated to {max_bytes} bytes) ..."


def post_edit_context(
    new_content: str,
    edits: list[EditOperation],
    context_lines: int = 2,
) -> str:
    """Numbered excerpt of the new content around each applied edit.

    Lets a caller confirm the result without reading the whole file again.
    """
    lines = new_content.split("\n")
    ranges: list[tuple[int, int]] = []
    shift = 0
    for edit in sorted(edits, key=lambda e: (e.start, e.end)):
        start = edit.start + shift
        end = start + len(edit.new_text)
        first = new_content.count("\n", 0, start)
        last = new_content.count("\n", 0, max(start, end - 1)) if end > start else first
        lo = max(0, first - context_lines)
        hi = min(len(lines) - 1, last + context_lines)
        if ranges and lo <= ranges[-1][1] + 1:
            ranges[-1] = (ranges[-1][0], max(ranges[-1][1], hi))
        else:
            ranges.append((lo, hi))
        shift += len(edit.new_text) - (edit.end - edit.start)

    width = len(str(len(lines)))
    chunks = []
    for lo, hi in ranges:
        chunks.append(
            "\n".join(f"{n + 1:>{width}} | {lines[n]}" for n in range(lo, hi + 1))
        )
    return "\n...\n".join(chunks)


_LINE_STYLES = {"@": "cyan", "+": "green", "-": "red"}


def render_diff(diff: str) -> Text:
    """Colour a diff for terminal output."""
    text = Text()
    for line in diff.splitlines():
        if line.startswith(("---", "+++")):
            style = "bold"
        else:
            style = _LINE_STYLES.get(line[:1], "")
        text.append(line + "\n", style=style)
    return text


def print_diff(diff: str, console: Console | None = None) -> None:
    (console or Console()).print(render_diff(diff))


__all__ = [
    "DiffBlock",
    "group_edits",
    "generate_edit_diff",
    "truncate_diff",
    "post_edit_context",
    "render_diff",
    "print_diff",
]
