"""Parsers for collaborator output."""

from .hunks import HunkProposal, find_proposal_problems, format_retry_feedback, parse_hunk_proposal

__all__ = [
    "HunkProposal",
    "find_proposal_problems",
    "format_retry_feedback",
    "parse_hunk_proposal",
]
