"""
Apply keep decisions: remove, hard-link or trash the non-kept files.

Features:
- Safety checks before each file (still there, unchanged, keeper present)
- Optional content re-verification against the kept file
- Per-file failure isolation (one failure never aborts the group or the run)
- Dry-run: same outcomes and ordering, no mutation
- Cancellation honoured between groups only
"""

from __future__ import annotations

import errno
import os
import uuid
from pathlib import Path
from typing import Callable, Iterable, Optional

import send2trash
import structlog

from dupfinder.config.exceptions import ActionError, InteractiveInputError
from dupfinder.dedup.fingerprint import hash_file
from dupfinder.dedup.models import (
    ActionMode,
    ActionStatus,
    DuplicateGroup,
    FileActionOutcome,
    FileRecord,
    HashAlgorithm,
    KeepDecision,
)

logger = structlog.get_logger(__name__)


def _stored_decision(group: DuplicateGroup) -> Optional[KeepDecision]:
    return group.decision


class ActionResult:
    """Aggregate result of applying decisions."""

    def __init__(self, mode: ActionMode = ActionMode.remove, dry_run: bool = False):
        self.mode = mode
        self.dry_run = dry_run
        self.total_to_process: int = 0
        self.completed: int = 0
        self.planned: int = 0
        self.skipped: int = 0
        self.failed: int = 0
        self.bytes_reclaimed: int = 0
        self.bytes_reclaimable: int = 0
        self.groups_processed: int = 0
        self.groups_skipped: int = 0
        self.skipped_group_ids: list[int] = []
        self.cancelled: bool = False
        self.aborted: bool = False
        self.abort_reason: str = ""
        self.outcomes: list[FileActionOutcome] = []
        self.kept: dict[int, Path] = {}  # group_id -> kept path

    def record(self, outcome: FileActionOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status is ActionStatus.done:
            self.completed += 1
            self.bytes_reclaimed += outcome.size_bytes
        elif outcome.status is ActionStatus.dry_run:
            self.planned += 1
            self.bytes_reclaimable += outcome.size_bytes
        elif outcome.status is ActionStatus.skipped:
            self.skipped += 1
        else:
            self.failed += 1

    def skip_group(self, group_id: int) -> None:
        self.groups_skipped += 1
        self.skipped_group_ids.append(group_id)

    def outcomes_for(self, group_id: int) -> list[FileActionOutcome]:
        return [o for o in self.outcomes if o.group_id == group_id]


class ActionExecutor:
    """
    Act on every removed member of each KeepDecision.

    Safety checks (per file):
    1. Removed path is not the kept path
    2. Removed file still exists, same size as at scan time
    3. Kept file still exists
    4. (verify) Removed file content equals kept file content
    """

    def __init__(
        self,
        mode: ActionMode = ActionMode.remove,
        dry_run: bool = False,
        verify: bool = False,
        hash_algorithm: HashAlgorithm = HashAlgorithm.sha256,
        chunk_size: int = 65536,
        progress_callback: Optional[Callable[[ActionResult], None]] = None,
    ):
        """
        Initialize executor.

        Args:
            mode: remove, hardlink or trash
            dry_run: Report what would happen without touching files
            verify: Re-hash removed and kept files before acting
            hash_algorithm: Digest used by verify
            chunk_size: Read size for verify hashing
            progress_callback: Called after each file
        """
        self.mode = ActionMode(mode)
        self.dry_run = dry_run
        self.verify = verify
        self.hash_algorithm = hash_algorithm
        self.chunk_size = chunk_size
        self.progress_callback = progress_callback
        self._cancelled = False

    def cancel(self) -> None:
        """Stop before the next group; the current group is finished."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def new_result(self) -> ActionResult:
        return ActionResult(mode=self.mode, dry_run=self.dry_run)

    def apply(
        self,
        groups: Iterable[DuplicateGroup],
        resolve: Optional[Callable[[DuplicateGroup], Optional[KeepDecision]]] = None,
    ) -> ActionResult:
        """
        Resolve and act on each group, one at a time.

        Args:
            groups: Duplicate groups, in group_id order
            resolve: Returns the decision for a group, or None to skip it.
                Defaults to the decision already stored on the group.

        Interactive input running out after a group was acted on aborts the
        run but still returns the result, so the changes made so far get
        reported. Before that, InteractiveInputError propagates.
        """
        resolve = resolve or _stored_decision
        result = self.new_result()

        logger.info(
            "dedup_action_started",
            mode=self.mode.value,
            dry_run=self.dry_run,
        )

        for group in groups:
            if self._cancelled:
                result.cancelled = True
                logger.info("dedup_action_cancelled", groups_processed=result.groups_processed)
                break

            try:
                decision = resolve(group)
            except InteractiveInputError as e:
                if result.groups_processed == 0:
                    raise
                result.aborted = True
                result.abort_reason = str(e)
                logger.warning(
                    "dedup_action_aborted",
                    group_id=group.group_id,
                    groups_processed=result.groups_processed,
                    reason=str(e),
                )
                break

            if decision is None:
                result.skip_group(group.group_id)
                continue

            result.total_to_process += len(decision.removed)
            self.execute_decision(decision, result, group_id=group.group_id)

        self.log_summary(result)
        return result

    def execute_decision(
        self,
        decision: KeepDecision,
        result: ActionResult,
        group_id: int = 0,
    ) -> list[FileActionOutcome]:
        """
        Act on every removed file of one decision.

        Returns:
            Outcomes for this group, in removed order
        """
        result.kept[group_id] = decision.kept.path
        outcomes = []

        for record in decision.removed:
            outcome = self._execute_file(record, decision.kept, group_id)
            result.record(outcome)
            outcomes.append(outcome)

            if self.progress_callback:
                self.progress_callback(result)

        result.groups_processed += 1
        return outcomes

    def log_summary(self, result: ActionResult) -> None:
        logger.info(
            "dedup_action_completed",
            mode=self.mode.value,
            dry_run=self.dry_run,
            completed=result.completed,
            planned=result.planned,
            skipped=result.skipped,
            failed=result.failed,
            bytes_reclaimed=result.bytes_reclaimed,
            cancelled=result.cancelled,
            aborted=result.aborted,
        )

    def _execute_file(self, record: FileRecord, kept: FileRecord, group_id: int) -> FileActionOutcome:
        target = kept.path if self.mode is ActionMode.hardlink else None

        def outcome(status: ActionStatus, reason: str = "") -> FileActionOutcome:
            return FileActionOutcome(
                group_id=group_id,
                path=record.path,
                target=target,
                mode=self.mode,
                status=status,
                size_bytes=record.size_bytes if status in (ActionStatus.done, ActionStatus.dry_run) else 0,
                reason=reason,
            )

        safe, reason = self._safety_check(record, kept)
        if not safe:
            logger.debug("dedup_file_skipped", file_path=str(record.path), reason=reason)
            return outcome(ActionStatus.skipped, reason)

        if self.dry_run:
            logger.debug("dedup_file_dry_run", file_path=str(record.path), mode=self.mode.value)
            return outcome(ActionStatus.dry_run)

        try:
            self._perform(record.path, kept.path)
        except ActionError as e:
            logger.warning(
                "dedup_action_failed",
                file_path=str(record.path),
                mode=self.mode.value,
                error=e.reason,
            )
            return outcome(ActionStatus.failed, e.reason)

        logger.info(
            "dedup_file_processed",
            file_path=str(record.path),
            mode=self.mode.value,
            size_bytes=record.size_bytes,
        )
        return outcome(ActionStatus.done)

    def _safety_check(self, record: FileRecord, kept: FileRecord) -> tuple[bool, str]:
        """
        Run safety checks before acting on a file.

        Returns:
            (is_safe, reason_if_not_safe)
        """
        file_path = record.path

        if file_path == kept.path:
            return False, "Removed path is the kept path"

        try:
            st = file_path.lstat()
        except OSError:
            return False, "File no longer exists"

        if st.st_size != record.size_bytes:
            return False, "Size changed since scan"

        if not kept.path.exists():
            return False, "Kept file no longer exists"

        if self.mode is ActionMode.hardlink:
            try:
                if os.path.samefile(file_path, kept.path):
                    return False, "Already hard-linked to kept file"
            except OSError as e:
                return False, f"Cannot stat for link check: {e}"

        if self.verify:
            try:
                if self._hash(file_path) != self._hash(kept.path):
                    return False, "Content differs from kept file"
            except OSError as e:
                return False, f"Cannot read file for verification: {e}"

        return True, ""

    def _hash(self, path: Path) -> str:
        return hash_file(path, self.hash_algorithm, self.chunk_size)

    def _perform(self, path: Path, kept_path: Path) -> None:
        """
        Mutate the filesystem for one file.

        Raises:
            ActionError: on any OS-level failure (path left as it was for hardlink)
        """
        try:
            if self.mode is ActionMode.remove:
                path.unlink()
            elif self.mode is ActionMode.trash:
                send2trash.send2trash(str(path))
            else:
                self._replace_with_link(path, kept_path)
        except PermissionError as e:
            raise ActionError(str(path), f"Permission denied: {e}") from e
        except OSError as e:
            if e.errno == errno.EXDEV:
                raise ActionError(str(path), "Cross-device link (different filesystem)") from e
            raise ActionError(str(path), str(e)) from e

    @staticmethod
    def _replace_with_link(path: Path, kept_path: Path) -> None:
        """
        Make path a hard link to kept_path.

        The link is created under a temporary name next to path, then renamed
        over it, so a failed link leaves the original file untouched.
        """
        tmp_path = path.with_name(f".{path.name}.dupfinder-{uuid.uuid4().hex[:8]}")
        os.link(kept_path, tmp_path)
        try:
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
