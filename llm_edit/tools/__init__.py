"""Diff rendering and file-level application tools.

`llm_edit.tools.patch_apply` is imported directly rather than re-exported
here, since it depends on the engine, which depends on the diff helpers.
"""

from .diff_generator import (
    DiffBlock,
    generate_edit_diff,
    group_edits,
    post_edit_context,
    print_diff,
    render_diff,
    truncate_diff,
)

__all__ = [
    "DiffBlock",
    "generate_edit_diff",
    "group_edits",
    "post_edit_context",
    "print_diff",
    "render_diff",
    "truncate_diff",
]
