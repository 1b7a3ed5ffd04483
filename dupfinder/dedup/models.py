"""
Pydantic models for duplicate detection.

Models:
- ScanConfig: Scan configuration (roots, method, filters, workers)
- ActionConfig: Keep policy and action applied to duplicate groups
- ScanStats: Real-time scan statistics
- FileRecord: One fingerprinted file (immutable)
- KeepDecision: Kept file + removed files of one group
- DuplicateGroup: >= 2 files sharing a fingerprint
- ScanResult: Final scan result
- FileActionOutcome: Result of acting on one removed file
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dupfinder.config.exceptions import ConfigurationError
from dupfinder.dedup.formatting import parse_size


class DetectionMethod(str, Enum):
    """How files are fingerprinted."""

    size = "size"
    hash = "hash"
    name = "name"


class HashAlgorithm(str, Enum):
    """Digest used by the hash detection method."""

    sha256 = "sha256"
    sha1 = "sha1"
    md5 = "md5"


class KeepPolicy(str, Enum):
    """Rule selecting the surviving member of a duplicate group."""

    newest = "newest"
    oldest = "oldest"
    largest = "largest"
    smallest = "smallest"
    first = "first"
    interactive = "interactive"


class ActionMode(str, Enum):
    """What happens to the non-kept members of a group."""

    remove = "remove"
    hardlink = "hardlink"
    trash = "trash"


class ReportFormat(str, Enum):
    text = "text"
    json = "json"
    csv = "csv"


class ActionStatus(str, Enum):
    """Outcome of an action on a single file."""

    done = "done"
    dry_run = "dry_run"
    skipped = "skipped"
    failed = "failed"


def normalize_extensions(value: object) -> set[str]:
    """Turn "JPG, .png" or ["jpg", ".PNG"] into {"jpg", "png"}."""
    if value is None:
        return set()
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    return {str(item).strip().lstrip(".").lower() for item in items if str(item).strip().lstrip(".")}


class ScanConfig(BaseModel):
    """Configuration for a duplicate scan."""

    directories: list[Path] = Field(
        default_factory=lambda: [Path(".")],
        min_length=1,
        description="Root directories to walk recursively",
    )
    method: DetectionMethod = Field(
        default=DetectionMethod.hash,
        description="Fingerprint used to compare files",
    )
    hash_algorithm: HashAlgorithm = Field(
        default=HashAlgorithm.sha256,
        description="Digest for the hash method",
    )
    min_file_size: int = Field(
        default=0,
        ge=0,
        description="Minimum file size in bytes (0 = no minimum)",
    )
    extensions: set[str] = Field(
        default_factory=set,
        description="Extension allow-list (lowercased, without dot); empty = all",
    )
    exclude_pattern: Optional[str] = Field(
        default=None,
        description="Regex searched in the full path; a match excludes the file",
    )
    workers: int = Field(
        default=1,
        ge=1,
        le=256,
        description="Concurrent fingerprinting workers",
    )
    chunk_size: int = Field(
        default=65536,
        ge=1,
        description="Hashing chunk size in bytes",
    )

    @field_validator("directories")
    @classmethod
    def expand_directories(cls, v: list[Path]) -> list[Path]:
        return [p.expanduser() for p in v]

    @field_validator("min_file_size", mode="before")
    @classmethod
    def validate_min_file_size(cls, v: object) -> object:
        """Accept "10K" style strings (config files) as well as ints."""
        if isinstance(v, str):
            try:
                return parse_size(v)
            except ConfigurationError as e:
                raise ValueError(str(e)) from e
        return v

    @field_validator("extensions", mode="before")
    @classmethod
    def validate_extensions(cls, v: object) -> set[str]:
        return normalize_extensions(v)

    @field_validator("exclude_pattern")
    @classmethod
    def validate_exclude_pattern(cls, v: Optional[str]) -> Optional[str]:
        """Reject patterns that do not compile."""
        if not v:
            return None
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid exclude pattern '{v}': {e}") from e
        return v

    @field_validator("hash_algorithm")
    @classmethod
    def validate_hash_algorithm(cls, v: HashAlgorithm) -> HashAlgorithm:
        """Refuse algorithms this interpreter cannot compute."""
        if v.value not in hashlib.algorithms_available:
            raise ValueError(f"Hash algorithm '{v.value}' unavailable in this Python build")
        return v


class ActionConfig(BaseModel):
    """Configuration for acting on duplicate groups."""

    keep_policy: KeepPolicy = KeepPolicy.first
    mode: ActionMode = ActionMode.remove
    dry_run: bool = False
    verify: bool = Field(
        default=False,
        description="Re-compare removed file content with the kept file before acting",
    )


class ScanStats(BaseModel):
    """Real-time scan statistics."""

    total_seen: int = 0
    total_scanned: int = 0
    total_skipped: int = 0
    total_errors: int = 0
    duplicate_groups: int = 0
    current_directory: str = ""


class FileRecord(BaseModel):
    """One file considered for duplicate analysis."""

    model_config = ConfigDict(frozen=True)

    path: Path
    size_bytes: int = Field(ge=0)
    mod_time: float
    fingerprint: str


class KeepDecision(BaseModel):
    """Kept file and the members to remove/link."""

    kept: FileRecord
    removed: list[FileRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_kept_not_removed(self) -> "KeepDecision":
        if self.kept in self.removed:
            raise ValueError(f"Kept file {self.kept.path} listed as removed")
        return self


class DuplicateGroup(BaseModel):
    """Group of >= 2 files sharing the same fingerprint."""

    group_id: int
    fingerprint: str
    members: list[FileRecord] = Field(min_length=2)
    decision: Optional[KeepDecision] = None

    @model_validator(mode="after")
    def check_decision_covers_members(self) -> "DuplicateGroup":
        if self.decision is None:
            return self
        kept = self.decision.kept
        if kept not in self.members:
            raise ValueError(f"Group {self.group_id}: kept file {kept.path} is not a member")
        if self.decision.removed != [m for m in self.members if m != kept]:
            raise ValueError(f"Group {self.group_id}: removed files must be every other member, in order")
        return self

    @property
    def wasted_bytes(self) -> int:
        """Storage taken by all copies but one."""
        return self.members[0].size_bytes * (len(self.members) - 1)

    def decide(self, kept_index: int) -> KeepDecision:
        """
        Mark members[kept_index] as kept, every other member as removed.

        Returns:
            The KeepDecision, also stored on the group
        """
        if self.decision is not None:
            raise ValueError(f"Group {self.group_id} already has a kept file")
        if not 0 <= kept_index < len(self.members):
            raise IndexError(f"Group {self.group_id} has no member #{kept_index}")

        kept = self.members[kept_index]
        self.decision = KeepDecision(
            kept=kept,
            removed=[m for i, m in enumerate(self.members) if i != kept_index],
        )
        return self.decision


class ScanResult(BaseModel):
    """Final scan result."""

    scan_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    method: DetectionMethod = DetectionMethod.hash
    directories: list[Path] = Field(default_factory=list)
    total_seen: int = 0
    total_scanned: int = 0
    total_skipped: int = 0
    total_errors: int = 0
    cancelled: bool = False
    groups: list[DuplicateGroup] = Field(default_factory=list)

    @property
    def duplicate_groups_count(self) -> int:
        return len(self.groups)

    @property
    def total_duplicates(self) -> int:
        """Files beyond the first in every group."""
        return sum(len(g.members) - 1 for g in self.groups)

    @property
    def wasted_bytes(self) -> int:
        return sum(g.wasted_bytes for g in self.groups)


class FileActionOutcome(BaseModel):
    """Result of acting (or simulating) on one removed file."""

    group_id: int
    path: Path
    target: Optional[Path] = None
    mode: ActionMode
    status: ActionStatus
    size_bytes: int = 0
    reason: str = ""
