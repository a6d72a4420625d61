"""Outcome logging for file edits.

Dual logging:
- Quick reference log: ~/.llm-edit/failures.log
- Full session data: ~/.llm-edit/sessions/<timestamp>.json

Set LLM_EDIT_HOME to move the base directory.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional


def _home() -> Path:
    return Path(os.environ.get("LLM_EDIT_HOME") or Path.home() / ".llm-edit")


LLM_EDIT_DIR = _home()
FAILURES_LOG = LLM_EDIT_DIR / "failures.log"
SESSIONS_DIR = LLM_EDIT_DIR / "sessions"


def ensure_dirs():
    """Ensure log directories exist."""
    LLM_EDIT_DIR.mkdir(parents=True, exist_ok=True)
    SESSIONS_DIR.mkdir(parents=True, exist_ok=True)


def _write_session(session_id: str, session_data: dict) -> Path:
    session_file = SESSIONS_DIR / f"{session_id}.json"
    with open(session_file, "w") as f:
        json.dump(session_data, f, indent=2)
    return session_file


def _session_data(
    timestamp_str: str,
    file: str,
    status: str,
    mode: Optional[str],
    original: Optional[str],
    result: Optional[str],
    extra: Optional[dict[str, Any]],
) -> dict:
    session_data: dict[str, Any] = {
        "timestamp": timestamp_str,
        "file": file,
        "status": status,
    }
    if mode:
        session_data["mode"] = mode
    if original:
        session_data["original"] = original
    if result:
        session_data["result"] = result
    if extra:
        session_data.update(extra)
    return session_data


def log_failure(
    file: str,
    reason: str,
    error_kind: Optional[str] = None,
    mode: Optional[str] = None,
    original: Optional[str] = None,
    hunk_index: Optional[int] = None,
    extra: Optional[dict[str, Any]] = None,
) -> Path:
    """Log failure to both quick log and full session.

    Args:
        file: File path that failed
        reason: Failure reason
        error_kind: ErrorKind value, if the failure was classified
        mode: "literal" or "sketch"
        original: File content the edit was resolved against
        hunk_index: Index of the failing hunk
        extra: Additional data to log

    Returns:
        Path to the session file.
    """
    ensure_dirs()
    timestamp = datetime.now()
    timestamp_str = timestamp.strftime("%Y-%m-%d %H:%M:%S")
    session_id = timestamp.strftime("%Y%m%d_%H%M%S_%f")

    # Quick reference log (one line per failure)
    with open(FAILURES_LOG, "a") as f:
        short_reason = reason[:100].replace("\n", " ")
        kind = error_kind or "error"
        f.write(f"{timestamp_str} | {file} | FAIL | {kind} | {short_reason}\n")

    session_data = _session_data(timestamp_str, file, "failed", mode, original, None, extra)
    session_data["reason"] = reason
    if error_kind:
        session_data["error_kind"] = error_kind
    if hunk_index is not None:
        session_data["hunk_index"] = hunk_index

    return _write_session(session_id, session_data)


def log_success(
    file: str,
    mode: Optional[str] = None,
    original: Optional[str] = None,
    result: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> Path:
    """Log successful edit to a session file.

    Args:
        file: File path that was edited
        mode: "literal" or "sketch"
        original: Content before the edit
        result: Content after the edit
        extra: Additional data to log (diff, match stage, ...)

    Returns:
        Path to the session file.
    """
    ensure_dirs()
    timestamp = datetime.now()
    timestamp_str = timestamp.strftime("%Y-%m-%d %H:%M:%S")
    session_id = timestamp.strftime("%Y%m%d_%H%M%S_%f")

    session_data = _session_data(timestamp_str, file, "success", mode, original, result, extra)
    return _write_session(session_id, session_data)


def get_recent_failures(limit: int = 10) -> list[str]:
    """Get recent failure log lines.

    Args:
        limit: Maximum number of lines to return

    Returns:
        List of recent failure log lines.
    """
    if not FAILURES_LOG.exists():
        return []

    with open(FAILURES_LOG, "r") as f:
        lines = f.readlines()

    return [line.strip() for line in lines[-limit:]]


def get_session(session_id: str) -> Optional[dict]:
    """Load a session file by ID.

    Args:
        session_id: Session ID (file stem, YYYYMMDD_HHMMSS_ffffff)

    Returns:
        Session data dict or None if not found.
    """
    session_file = SESSIONS_DIR / f"{session_id}.json"
    if not session_file.exists():
        return None

    with open(session_file, "r") as f:
        return json.load(f)


def clear_old_sessions(days: int = 7) -> int:
    """Delete session files older than N days.

    Args:
        days: Delete sessions older than this many days

    Returns:
        Number of sessions deleted.
    """
    if not SESSIONS_DIR.exists():
        return 0

    cutoff = datetime.now().timestamp() - (days * 24 * 60 * 60)
    deleted = 0

    for session_file in SESSIONS_DIR.glob("*.json"):
        if session_file.stat().st_mtime < cutoff:
            session_file.unlink()
            deleted += 1

    return deleted


__all__ = [
    "LLM_EDIT_DIR",
    "FAILURES_LOG",
    "SESSIONS_DIR",
    "log_failure",
    "log_success",
    "get_recent_failures",
    "get_session",
    "clear_old_sessions",
]
