"""File-level edit application.

Reads a file through a FileStore, resolves the edit against that snapshot,
re-reads to make sure nobody changed the file meanwhile, then writes the
result atomically. Outcomes are recorded in the session log and metrics.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from llm_edit.applier import compute_content_hash
from llm_edit.config import EditLimits
from llm_edit.engine import resolve_edit
from llm_edit.errors import ErrorKind
from llm_edit.logging import log_failure, log_success
from llm_edit.metrics import log_metric
from llm_edit.safety import SafetyGuard
from llm_edit.types import EditRequest, EditResult


@dataclass
class FileSnapshot:
    """File content as read, plus its conflict hash."""

    path: str
    content: str
    content_hash: str
    exists: bool = True


class FileStore(Protocol):
    """Where files are read from and written to."""

    def read(self, path: str | Path) -> FileSnapshot: ...

    def write(self, path: str | Path, content: str) -> str | None:
        """Persist content; return a backup path if one was made."""
        ...


@dataclass
class LocalFileStore:
    """Local filesystem store sandboxed to a repository root."""

    repo_root: Path
    create_backups: bool = True
    backup_dir: Path | None = None

    def __post_init__(self):
        self.repo_root = Path(self.repo_root).resolve()
        self.guard = SafetyGuard(repo_root=self.repo_root)
        if self.backup_dir is None:
            self.backup_dir = self.repo_root / ".llm-edit-backups"

    def read(self, path: str | Path) -> FileSnapshot:
        """Read a file; a missing file reads as empty.

        Raises:
            PermissionError: path fails the safety check
        """
        check = self.guard.check_path(path)
        if not check.allowed:
            raise PermissionError(f"{check.reason}: {path}")

        resolved = self.guard.resolve(path)
        if not resolved.exists():
            return FileSnapshot(str(path), "", compute_content_hash(""), exists=False)

        # Bytes keep CRLF line endings intact
        content = resolved.read_bytes().decode("utf-8")
        return FileSnapshot(str(path), content, compute_content_hash(content))

    def _create_backup(self, file_path: Path) -> str | None:
        """Create a backup of the file before modifying."""
        if not self.create_backups or not file_path.exists():
            return None

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = int(time.time() * 1000)
        backup_path = self.backup_dir / f"{file_path.name}.{timestamp}.bak"
        backup_path.write_bytes(file_path.read_bytes())
        return str(backup_path)

    def write(self, path: str | Path, content: str) -> str | None:
        """Write via temp file and rename.

        Raises:
            PermissionError: path or content fails the safety check
            OSError: the write itself failed
        """
        check = self.guard.check_file_write(path, content)
        if not check.allowed:
            raise PermissionError(f"{check.reason}: {path}")

        resolved = self.guard.resolve(path)
        backup_path = self._create_backup(resolved)

        resolved.parent.mkdir(parents=True, exist_ok=True)
        temp_path = resolved.with_name(f".{resolved.name}.{os.getpid()}.{time.time_ns()}.tmp")
        try:
            temp_path.write_bytes(content.encode("utf-8"))
            os.replace(temp_path, resolved)
        finally:
            temp_path.unlink(missing_ok=True)
        return backup_path

    def restore(self, backup_path: str | Path, path: str | Path) -> bool:
        """Put a backup back in place of `path`.

        Returns:
            True if the backup existed and was restored
        """
        backup = Path(backup_path)
        if not backup.exists():
            return False
        self.write(path, backup.read_bytes().decode("utf-8"))
        return True


@dataclass
class ApplyResult:
    """Result of applying an edit to a file."""

    success: bool
    file_path: str
    result: EditResult | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    backup_path: str | None = None
    dry_run: bool = False


@dataclass
class PatchApplier:
    """Resolve and apply edits to files held by a FileStore."""

    store: FileStore
    limits: EditLimits = field(default_factory=EditLimits)
    record: bool = True

    def apply(
        self,
        path: str | Path,
        old_text: str | None = None,
        new_text: str | None = None,
        hunks: list[Any] | None = None,
        replace_all: bool = False,
        occurrence: int | None = None,
        insert_after_line: int | None = None,
        expected_hash: str | None = None,
        dry_run: bool = False,
    ) -> ApplyResult:
        """Apply a literal edit or a list of hunks to one file.

        Args:
            path: File path (relative to the store's root or absolute)
            old_text: Verbatim text to replace (literal path)
            new_text: Replacement text (literal path)
            hunks: LiteralEdit/AnchorHunk models or dicts in their JSON shape
            replace_all: Replace every match of old_text
            occurrence: Default occurrence for ambiguous anchor hunks
            insert_after_line: Insert new_text after this line (old_text empty)
            expected_hash: Hash the caller saw when it last read the file
            dry_run: Resolve and diff only; never write

        Returns:
            ApplyResult; failures never raise.
        """
        start_time = time.time()
        file_path = str(path)

        try:
            snapshot = self.store.read(path)
        except (OSError, UnicodeDecodeError) as e:
            return self._fail(file_path, f"Failed to read file: {e}", None, start_time, dry_run)

        try:
            request = EditRequest(
                source_text=snapshot.content,
                old_text=old_text,
                new_text=new_text,
                hunks=hunks or [],
                replace_all=replace_all,
                occurrence=occurrence,
                insert_after_line=insert_after_line,
                expected_hash=expected_hash,
            )
        except ValidationError as e:
            return self._fail(
                file_path,
                f"Invalid edit request: {e}",
                ErrorKind.INVALID_HUNK_SHAPE,
                start_time,
                dry_run,
                original=snapshot.content,
            )

        mode = "sketch" if request.hunks and request.hunks[0].kind == "anchor" else "literal"
        result = resolve_edit(request, self.limits)
        if not result.success:
            return self._fail(
                file_path,
                result.error or "Edit could not be resolved",
                result.error_kind,
                start_time,
                dry_run,
                mode=mode,
                original=snapshot.content,
                result=result,
            )

        if dry_run:
            self._record_success(file_path, mode, result, start_time, dry_run=True)
            return ApplyResult(True, file_path, result=result, dry_run=True)

        # Nothing may change between resolution and write
        try:
            current = self.store.read(path)
        except (OSError, UnicodeDecodeError) as e:
            return self._fail(file_path, f"Failed to re-read file: {e}", None, start_time, dry_run, mode=mode)
        if current.content_hash != snapshot.content_hash:
            return self._fail(
                file_path,
                "File changed while the edit was being resolved; nothing was written.",
                ErrorKind.STALE_CONTENT,
                start_time,
                dry_run,
                mode=mode,
                original=snapshot.content,
            )

        try:
            backup_path = self.store.write(path, result.new_content or "")
        except OSError as e:
            return self._fail(
                file_path,
                f"Failed to write file: {e}",
                None,
                start_time,
                dry_run,
                mode=mode,
                original=snapshot.content,
                result=result,
            )

        self._record_success(file_path, mode, result, start_time)
        return ApplyResult(True, file_path, result=result, backup_path=backup_path)

    def _record_success(
        self,
        file_path: str,
        mode: str,
        result: EditResult,
        start_time: float,
        dry_run: bool = False,
    ) -> None:
        if not self.record:
            return
        stage = result.match_stage.value if result.match_stage else None
        log_metric(
            task_type=mode,
            file=file_path,
            duration_ms=int((time.time() - start_time) * 1000),
            success=True,
            applied_edits=result.applied_edit_count,
            total_edits=result.total_edit_count,
            match_stage=stage,
            dry_run=dry_run,
        )
        log_success(
            file_path,
            mode=mode,
            extra={
                "diff": result.diff,
                "match_stage": stage,
                "applied_edits": result.applied_edit_count,
                "warnings": result.warnings,
                "dry_run": dry_run,
            },
        )

    def _fail(
        self,
        file_path: str,
        error: str,
        error_kind: ErrorKind | None,
        start_time: float,
        dry_run: bool,
        mode: str = "literal",
        original: str | None = None,
        result: EditResult | None = None,
    ) -> ApplyResult:
        if self.record:
            kind = error_kind.value if error_kind else None
            log_metric(
                task_type=mode,
                file=file_path,
                duration_ms=int((time.time() - start_time) * 1000),
                success=False,
                total_edits=result.total_edit_count if result else 0,
                error_kind=kind,
                error=error,
                dry_run=dry_run,
            )
            log_failure(
                file_path,
                error,
                error_kind=kind,
                mode=mode,
                original=original,
                hunk_index=result.failed_hunk_index if result else None,
            )
        return ApplyResult(
            success=False,
            file_path=file_path,
            result=result,
            error=error,
            error_kind=error_kind,
            dry_run=dry_run,
        )


def apply_patch(
    file_path: str | Path,
    old_text: str,
    new_text: str,
    repo_root: str | Path = ".",
    replace_all: bool = False,
    dry_run: bool = False,
) -> ApplyResult:
    """Convenience function to apply a literal old/new edit.

    Args:
        file_path: Path to file
        old_text: Text to find
        new_text: Text to replace with
        repo_root: Repository root
        replace_all: Replace every match
        dry_run: Don't write

    Returns:
        ApplyResult with status
    """
    applier = PatchApplier(store=LocalFileStore(repo_root=repo_root))
    return applier.apply(
        file_path,
        old_text=old_text,
        new_text=new_text,
        replace_all=replace_all,
        dry_run=dry_run,
    )


def apply_hunks(
    file_path: str | Path,
    hunks: list[Any],
    repo_root: str | Path = ".",
    occurrence: int | None = None,
    dry_run: bool = False,
) -> ApplyResult:
    """Convenience function to apply anchor hunks.

    Args:
        file_path: Path to file
        hunks: AnchorHunk models or dicts
        repo_root: Repository root
        occurrence: Default occurrence for ambiguous hunks
        dry_run: Don't write

    Returns:
        ApplyResult with status
    """
    applier = PatchApplier(store=LocalFileStore(repo_root=repo_root))
    return applier.apply(file_path, hunks=hunks, occurrence=occurrence, dry_run=dry_run)


__all__ = [
    "FileSnapshot",
    "FileStore",
    "LocalFileStore",
    "ApplyResult",
    "PatchApplier",
    "apply_patch",
    "apply_hunks",
]
