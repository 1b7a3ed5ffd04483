"""
Duplicate detection.

Modules:
- filters: Inclusion filter (size, extensions, exclude regex)
- fingerprint: size / hash / name fingerprints
- grouping: Fingerprint -> duplicate groups
- scanner: Directory walk with a fingerprinting worker pool
- keep_policy: Which member of a group survives
- executor: Remove, hard-link or trash the other members
- report_generator: text / JSON / CSV reports
- pipeline: scan -> resolve -> act
- models: Pydantic data models
"""

from dupfinder.dedup.models import (
    ActionConfig,
    DuplicateGroup,
    FileRecord,
    KeepDecision,
    ScanConfig,
    ScanResult,
    ScanStats,
)

__all__ = [
    "ActionConfig",
    "DuplicateGroup",
    "FileRecord",
    "KeepDecision",
    "ScanConfig",
    "ScanResult",
    "ScanStats",
]
