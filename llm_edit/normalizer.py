"""Whitespace and newline normalization for text comparison.

None of these functions touch the bytes that end up on disk; they only decide
whether two blocks should be considered the same.
"""

from __future__ import annotations


def normalize_newlines(text: str) -> str:
    """Convert CRLF line endings to LF."""
    return text.replace("\r\n", "\n")


def detect_newline(text: str) -> str:
    """Return the line terminator used by `text`."""
    return "\r\n" if "\r\n" in text else "\n"


def _leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def strip_common_indent(text: str) -> str:
    """Remove the smallest indentation shared by all non-blank lines."""
    lines = text.split("\n")
    widths = [len(_leading_whitespace(line)) for line in lines if line.strip()]
    if not widths:
        return text
    indent = min(widths)
    if indent == 0:
        return text
    return "\n".join(line[indent:] if line.strip() else line for line in lines)


def normalize_whitespace(text: str) -> str:
    """Canonical form used by the exact matcher.

    Trailing whitespace is trimmed per line, common indentation removed and
    leading/trailing blank lines dropped. Applying it twice changes nothing.
    """
    text = normalize_newlines(text)
    lines = [line.rstrip() for line in text.split("\n")]
    text = strip_common_indent("\n".join(lines))
    return text.strip("\n")


def detect_indentation(text: str) -> str:
    """Leading whitespace of the first non-blank line."""
    for line in normalize_newlines(text).split("\n"):
        if line.strip():
            return _leading_whitespace(line)
    return ""


def apply_indentation(text: str, prefix: str) -> str:
    """Re-indent a block so its outermost lines start with `prefix`.

    The block's own common indentation is removed first, so an already
    indented body is never indented twice. Blank lines are left alone.
    """
    stripped = strip_common_indent(text)
    if not prefix:
        return stripped
    return "\n".join(
        prefix + line if line.strip() else line for line in stripped.split("\n")
    )


def search_lines(text: str) -> list[str]:
    """Lines of a search block without leading/trailing blank lines."""
    lines = normalize_newlines(text).split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


__all__ = [
    "normalize_newlines",
    "detect_newline",
    "strip_common_indent",
    "normalize_whitespace",
    "detect_indentation",
    "apply_indentation",
    "search_lines",
]
