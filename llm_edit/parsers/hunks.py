"""Parse anchor-hunk proposals emitted by a model.

The collaborator is asked to wrap its answer in ``<json>...</json>`` tags:

    <json>{"hunks":[{"beforeAnchor":"...","afterAnchor":"...","replacement":"..."}]}</json>

Parsed hunks are only a proposal; the resolver re-checks every one of them.
"""

from __future__ import annotations

import json
import re

from pydantic import BaseModel, Field, ValidationError

from llm_edit.errors import ProposalParseError
from llm_edit.types import AnchorHunk

JSON_TAG_PATTERN = re.compile(r"<json>(?P<body>.*?)</json>", re.DOTALL)


class HunkProposal(BaseModel):
    """Validated shape of a collaborator's answer."""

    hunks: list[AnchorHunk] = Field(min_length=1)


def parse_hunk_proposal(text: str) -> list[AnchorHunk]:
    """Extract and validate the hunks in a model response.

    Args:
        text: Raw model output.

    Returns:
        The proposed hunks, in order.

    Raises:
        ProposalParseError: no tags, empty or invalid JSON, or a payload that
            doesn't match the hunk schema.
    """
    match = JSON_TAG_PATTERN.search(text or "")
    if not match:
        raise ProposalParseError("Model output is not wrapped in <json>...</json> tags.")

    body = match.group("body").strip()
    if not body:
        raise ProposalParseError("Empty JSON content in <json> tags.")

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise ProposalParseError(f"Invalid JSON: {e}") from e

    try:
        proposal = HunkProposal.model_validate(payload)
    except ValidationError as e:
        issues = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ProposalParseError(f"Invalid hunk structure: {issues}") from e

    return proposal.hunks


def find_proposal_problems(content: str, hunks: list[AnchorHunk]) -> list[str]:
    """List reasons a proposal can't apply to `content`, without duplicates.

    An empty list does not mean the proposal is valid, only that it is worth
    sending to the resolver.
    """
    problems: list[str] = []
    for hunk in hunks:
        before, after = hunk.before_anchor, hunk.after_anchor
        if not before and not after:
            continue
        if before and after and before == after:
            problems.append("beforeAnchor and afterAnchor are identical")
            continue
        if not before:
            if after not in content:
                problems.append("afterAnchor not found in current file")
            continue
        if not after:
            if before not in content:
                problems.append("beforeAnchor not found in current file")
            continue

        before_idx = content.find(before)
        after_idx = -1 if before_idx == -1 else content.find(after, before_idx + len(before))
        if after_idx == -1:
            problems.append("Anchors not found in current file in correct order")

    return list(dict.fromkeys(problems))


def format_retry_feedback(problems: list[str]) -> str:
    """Feedback appended to the prompt when asking the model to try again."""
    bullets = "\n".join(f"- {problem}" for problem in problems)
    return (
        "Your previous output was invalid:\n"
        f"{bullets}\n\n"
        "Fix and return JSON only in the same shape."
    )


__all__ = [
    "HunkProposal",
    "JSON_TAG_PATTERN",
    "parse_hunk_proposal",
    "find_proposal_problems",
    "format_retry_feedback",
]
