"""
Report generation for duplicate scan results.

Formats:
- text: grouped listing, wasted space per group, totals, action outcomes
- json: one object per group (identifier + files), summary block
- csv: group_id,file_path,size_bytes,modification_time,formatted_size

UTF-8 everywhere (accents in filenames).
"""

from __future__ import annotations

import csv
import io
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, TextIO

import structlog

from dupfinder.dedup.executor import ActionResult
from dupfinder.dedup.formatting import format_size, format_timestamp
from dupfinder.dedup.models import (
    ActionConfig,
    ActionMode,
    ActionStatus,
    DuplicateGroup,
    FileActionOutcome,
    ReportFormat,
    ScanConfig,
    ScanResult,
)

logger = structlog.get_logger(__name__)

RULE = "=" * 48

_ACTION_LABELS = {
    ActionMode.remove: "Remove duplicates",
    ActionMode.hardlink: "Replace duplicates with hard links",
    ActionMode.trash: "Move duplicates to trash",
}


class ReportGenerator:
    """
    Render scan results (and optional action results) as text, JSON or CSV.

    scan_config/action_config only feed the text header; they are optional.
    """

    CSV_COLUMNS = [
        "group_id",
        "file_path",
        "size_bytes",
        "modification_time",
        "formatted_size",
    ]

    def __init__(
        self,
        scan_config: Optional[ScanConfig] = None,
        action_config: Optional[ActionConfig] = None,
    ):
        self.scan_config = scan_config
        self.action_config = action_config

    def render(
        self,
        fmt: ReportFormat,
        scan_result: ScanResult,
        action_result: Optional[ActionResult] = None,
    ) -> str:
        fmt = ReportFormat(fmt)
        if fmt is ReportFormat.json:
            return self.render_json(scan_result, action_result)
        if fmt is ReportFormat.csv:
            return self.render_csv(scan_result)
        return self.render_text(scan_result, action_result)

    def write(
        self,
        fmt: ReportFormat,
        scan_result: ScanResult,
        action_result: Optional[ActionResult] = None,
        output_path: Optional[Path] = None,
        stream: Optional[TextIO] = None,
    ) -> Optional[Path]:
        """
        Render and write a report to output_path, or to stream (default stdout).

        Returns:
            Path to the written file, None when written to a stream
        """
        content = self.render(fmt, scan_result, action_result)
        if output_path is not None:
            return self.save(content, output_path)

        out = stream if stream is not None else sys.stdout
        out.write(content)
        out.flush()
        return None

    def save(self, content: str, output_path: Path) -> Path:
        """
        Write a rendered report to disk.

        Returns:
            Path to the written file
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            f.write(content)

        logger.info("dedup_report_saved", output_path=str(output_path), size_bytes=len(content))
        return output_path

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    def render_csv(self, scan_result: ScanResult) -> str:
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=self.CSV_COLUMNS, lineterminator="\n")
        writer.writeheader()

        for group in scan_result.groups:
            for member in group.members:
                writer.writerow(
                    {
                        "group_id": group.group_id,
                        "file_path": str(member.path),
                        "size_bytes": member.size_bytes,
                        "modification_time": int(member.mod_time),
                        "formatted_size": format_size(member.size_bytes),
                    }
                )

        return output.getvalue()

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def render_json(self, scan_result: ScanResult, action_result: Optional[ActionResult] = None) -> str:
        payload: dict[str, Any] = {
            "timestamp": scan_result.scan_date.isoformat(timespec="seconds"),
            "method": scan_result.method.value,
            "directories": [str(d) for d in scan_result.directories],
            "summary": {
                "files_scanned": scan_result.total_scanned,
                "files_skipped": scan_result.total_skipped,
                "errors": scan_result.total_errors,
                "duplicate_groups": scan_result.duplicate_groups_count,
                "duplicate_files": scan_result.total_duplicates,
                "wasted_bytes": scan_result.wasted_bytes,
                "cancelled": scan_result.cancelled,
            },
            "duplicate_groups": [self._group_dict(g, action_result) for g in scan_result.groups],
        }

        if action_result is not None:
            payload["actions"] = {
                "mode": action_result.mode.value,
                "dry_run": action_result.dry_run,
                "completed": action_result.completed,
                "planned": action_result.planned,
                "skipped": action_result.skipped,
                "failed": action_result.failed,
                "bytes_reclaimed": action_result.bytes_reclaimed,
                "bytes_reclaimable": action_result.bytes_reclaimable,
                "groups_processed": action_result.groups_processed,
                "groups_skipped": action_result.groups_skipped,
                "cancelled": action_result.cancelled,
                "aborted": action_result.aborted,
                "abort_reason": action_result.abort_reason or None,
            }

        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    @staticmethod
    def _group_dict(group: DuplicateGroup, action_result: Optional[ActionResult]) -> dict[str, Any]:
        data: dict[str, Any] = {
            "group_id": group.group_id,
            "identifier": group.fingerprint,
            "wasted_bytes": group.wasted_bytes,
            "files": [
                {
                    "path": str(m.path),
                    "size": m.size_bytes,
                    "mtime": int(m.mod_time),
                }
                for m in group.members
            ],
        }

        if action_result is not None:
            kept = action_result.kept.get(group.group_id)
            data["kept"] = str(kept) if kept is not None else None
            data["actions"] = [
                {
                    "path": str(o.path),
                    "status": o.status.value,
                    "target": str(o.target) if o.target else None,
                    "reason": o.reason or None,
                }
                for o in action_result.outcomes_for(group.group_id)
            ]

        return data

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def render_text(self, scan_result: ScanResult, action_result: Optional[ActionResult] = None) -> str:
        lines = self._header_lines(scan_result)

        if not scan_result.groups:
            lines.append("No duplicates found!")
            lines.extend(self._footer_lines())
            return "\n".join(lines) + "\n"

        if action_result is None:
            lines.append("Found duplicate files:")
        else:
            lines.append("Processing duplicate groups...")
        lines.append("")

        for group in scan_result.groups:
            lines.extend(self._group_lines(group, action_result))
            lines.append("")

        lines.extend(self._summary_lines(scan_result, action_result))
        lines.extend(self._footer_lines())
        return "\n".join(lines) + "\n"

    def _header_lines(self, scan_result: ScanResult) -> list[str]:
        lines = [
            RULE,
            "           DUPLICATE FINDER",
            RULE,
            f"Directories: {' '.join(str(d) for d in scan_result.directories)}",
            f"Method: {scan_result.method.value}",
        ]

        if self.scan_config is not None:
            lines.append(f"Minimum size: {format_size(self.scan_config.min_file_size)}")
            if self.scan_config.extensions:
                lines.append(f"File types: {','.join(sorted(self.scan_config.extensions))}")
            if self.scan_config.exclude_pattern:
                lines.append(f"Exclude pattern: {self.scan_config.exclude_pattern}")

        if self.action_config is not None:
            label = _ACTION_LABELS[self.action_config.mode]
            lines.append(f"Action: {label} (keep rule: {self.action_config.keep_policy.value})")
            if self.action_config.dry_run:
                lines.append("DRY RUN MODE")
        else:
            lines.append("Action: Find only")

        started = scan_result.scan_date.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        lines.append(f"Started: {started}")
        if scan_result.cancelled:
            lines.append("Scan cancelled: results are partial")
        lines.append("")
        return lines

    def _group_lines(self, group: DuplicateGroup, action_result: Optional[ActionResult]) -> list[str]:
        lines = [f"Group {group.group_id} ({len(group.members)} files):"]
        for member in group.members:
            lines.append(
                f"  {member.path} ({format_size(member.size_bytes)}, {format_timestamp(member.mod_time)})"
            )
        lines.append(f"  Wasted space: {format_size(group.wasted_bytes)}")

        if action_result is None:
            return lines

        kept = action_result.kept.get(group.group_id)
        if kept is None:
            if group.group_id in action_result.skipped_group_ids:
                lines.append("  Skipping this group")
            elif action_result.aborted:
                lines.append("  Not processed (aborted)")
            else:
                lines.append("  Not processed (cancelled)")
            return lines

        lines.append(f"  Keeping: {kept}")
        for outcome in action_result.outcomes_for(group.group_id):
            lines.append(f"  {self._outcome_line(outcome)}")
        return lines

    @staticmethod
    def _outcome_line(outcome: FileActionOutcome) -> str:
        path = outcome.path
        if outcome.status is ActionStatus.dry_run:
            if outcome.mode is ActionMode.hardlink:
                return f"[DRY RUN] Would create hard link: {path} -> {outcome.target}"
            if outcome.mode is ActionMode.trash:
                return f"[DRY RUN] Would move to trash: {path}"
            return f"[DRY RUN] Would remove: {path}"
        if outcome.status is ActionStatus.done:
            if outcome.mode is ActionMode.hardlink:
                return f"Hard link created: {path} -> {outcome.target}"
            if outcome.mode is ActionMode.trash:
                return f"Moved to trash: {path}"
            return f"Removed: {path}"
        if outcome.status is ActionStatus.skipped:
            return f"Skipped: {path} ({outcome.reason})"
        return f"Failed: {path} ({outcome.reason})"

    @staticmethod
    def _summary_lines(scan_result: ScanResult, action_result: Optional[ActionResult]) -> list[str]:
        lines = [
            "Summary:",
            f"  Files scanned: {scan_result.total_scanned:,}",
            f"  Duplicate groups: {scan_result.duplicate_groups_count:,}",
            f"  Duplicate files: {scan_result.total_duplicates:,}",
            f"  Wasted space: {format_size(scan_result.wasted_bytes)}",
        ]

        if action_result is None:
            return lines

        if action_result.dry_run:
            lines.append(f"  Files that would be processed: {action_result.planned:,}")
            lines.append(f"  Space reclaimable: {format_size(action_result.bytes_reclaimable)}")
        else:
            verb = {
                ActionMode.remove: "removed",
                ActionMode.hardlink: "hard-linked",
                ActionMode.trash: "moved to trash",
            }[action_result.mode]
            lines.append(f"  Files {verb}: {action_result.completed:,}")
            lines.append(f"  Space saved: {format_size(action_result.bytes_reclaimed)}")
        lines.append(f"  Skipped: {action_result.skipped:,}")
        lines.append(f"  Failed: {action_result.failed:,}")
        lines.append(f"  Groups processed: {action_result.groups_processed:,}")
        if action_result.cancelled:
            lines.append("  Cancelled before all groups were processed")
        if action_result.aborted:
            lines.append(f"  Aborted before all groups were processed: {action_result.abort_reason}")
        return lines

    @staticmethod
    def _footer_lines() -> list[str]:
        finished = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        return [
            RULE,
            f"Duplicate search completed at {finished}",
            RULE,
        ]
