"""Safety constraints for file edits.

Path sandboxing and protected-file rules for the local file store. Edits
that would touch files outside the repository, credentials, or write
obvious secrets fail safely and report why.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

# File patterns that should never be modified
PROTECTED_FILE_PATTERNS = [
    r"\.env$",
    r"\.env\.",
    r"credentials",
    r"secrets?\.",
    r"\.pem$",
    r"\.key$",
    r"id_rsa",
    r"id_ed25519",
    r"\.ssh/",
    r"\.aws/",
    r"\.docker/config\.json",
    r"(^|/)\.git/",
]

# Content that looks like a leaked secret
SECRET_PATTERNS = [
    r"-----BEGIN [A-Z ]*PRIVATE KEY-----",
    r"AKIA[0-9A-Z]{16}",  # AWS access key
    r"ghp_[a-zA-Z0-9]{36}",  # GitHub token
    r"sk-[a-zA-Z0-9]{48}",  # OpenAI key
]


@dataclass
class SafetyCheck:
    """Result of a safety check."""

    allowed: bool
    reason: str
    matched_rule: str | None = None


@dataclass
class SafetyGuard:
    """Sandbox for file reads and writes under a repository root."""

    repo_root: Path
    extra_protected: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.repo_root = Path(self.repo_root).resolve()

    def resolve(self, path: str | Path) -> Path:
        """Resolve `path` against the repository root."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.repo_root / candidate
        return candidate.resolve()

    def check_path(self, path: str | Path) -> SafetyCheck:
        """Check if a file path is safe to access/modify.

        Args:
            path: File path, absolute or relative to the repository root

        Returns:
            SafetyCheck with allowed status and reason
        """
        try:
            resolved = self.resolve(path)
        except (OSError, ValueError) as e:
            return SafetyCheck(
                allowed=False,
                reason=f"Invalid path: {e}",
            )

        # Sandboxing
        if not resolved.is_relative_to(self.repo_root):
            return SafetyCheck(
                allowed=False,
                reason="Path outside repo root",
                matched_rule=str(self.repo_root),
            )

        path_str = resolved.as_posix()
        for pattern in PROTECTED_FILE_PATTERNS + self.extra_protected:
            if re.search(pattern, path_str, re.IGNORECASE):
                return SafetyCheck(
                    allowed=False,
                    reason="Protected file pattern",
                    matched_rule=pattern,
                )

        return SafetyCheck(
            allowed=True,
            reason="Path within repo root and not protected",
        )

    def check_file_write(self, path: str | Path, content: str) -> SafetyCheck:
        """Check if writing content to a file is safe.

        Args:
            path: File path
            content: Content to write

        Returns:
            SafetyCheck with allowed status and reason
        """
        path_check = self.check_path(path)
        if not path_check.allowed:
            return path_check

        for pattern in SECRET_PATTERNS:
            if re.search(pattern, content):
                return SafetyCheck(
                    allowed=False,
                    reason="Content contains potential secrets",
                    matched_rule=pattern,
                )

        return SafetyCheck(
            allowed=True,
            reason="File write allowed",
        )


def is_safe_path(path: str | Path, repo_root: str | Path = ".") -> bool:
    """Quick check if a path is safe.

    Args:
        path: File path
        repo_root: Repository root

    Returns:
        True if safe
    """
    guard = SafetyGuard(repo_root=repo_root)
    return guard.check_path(path).allowed


__all__ = [
    "SafetyGuard",
    "SafetyCheck",
    "is_safe_path",
    "PROTECTED_FILE_PATTERNS",
    "SECRET_PATTERNS",
]
