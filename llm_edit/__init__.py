"""llm-edit: edit resolution for AI coding agents.

Locates the region of a file an edit applies to, either from verbatim old
text (progressive matcher) or from anchor-pair hunks (anchor resolver), then
validates, applies and diffs the result without ever guessing a location.
"""

from llm_edit.config import EditLimits, load_limits
from llm_edit.engine import resolve_edit
from llm_edit.errors import EditError, ErrorKind
from llm_edit.types import AnchorHunk, EditRequest, EditResult, LiteralEdit, MatchStage

__all__ = [
    "AnchorHunk",
    "EditError",
    "EditLimits",
    "EditRequest",
    "EditResult",
    "ErrorKind",
    "LiteralEdit",
    "MatchStage",
    "load_limits",
    "resolve_edit",
]
