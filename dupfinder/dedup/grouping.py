"""
Group builder: buckets FileRecords by fingerprint.

Only buckets with 2+ records become DuplicateGroups. Group ids follow the
order in which each fingerprint was first seen; members keep discovery order.
"""

from __future__ import annotations

from typing import Iterable

from dupfinder.dedup.models import DuplicateGroup, FileRecord


class GroupBuilder:
    """Single-owner fingerprint index for one scan."""

    def __init__(self):
        self._buckets: dict[str, list[FileRecord]] = {}  # fingerprint -> [record, ...]
        self._dup_groups_count: int = 0

    def add(self, record: FileRecord) -> None:
        bucket = self._buckets.setdefault(record.fingerprint, [])
        bucket.append(record)

        # Track duplicate groups incrementally (avoid O(n) recomputation)
        if len(bucket) == 2:
            self._dup_groups_count += 1

    def add_all(self, records: Iterable[FileRecord]) -> None:
        for record in records:
            self.add(record)

    @property
    def duplicate_groups_count(self) -> int:
        return self._dup_groups_count

    def build(self) -> list[DuplicateGroup]:
        """
        Build duplicate groups from the fingerprint index.

        Returns:
            DuplicateGroups with >= 2 members, numbered from 1
        """
        groups = []
        group_id = 1

        for fingerprint, records in self._buckets.items():
            if len(records) < 2:
                continue

            groups.append(
                DuplicateGroup(
                    group_id=group_id,
                    fingerprint=fingerprint,
                    members=list(records),
                )
            )
            group_id += 1

        return groups


def build_groups(records: Iterable[FileRecord]) -> list[DuplicateGroup]:
    """Group an already-fingerprinted sequence of records."""
    builder = GroupBuilder()
    builder.add_all(records)
    return builder.build()
