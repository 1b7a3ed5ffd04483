"""
Recursive file scanner with fingerprint-based duplicate grouping.

Features:
- Sorted os.walk traversal (deterministic discovery order, symlinks not followed)
- Inclusion filter (min size, extension allow-list, exclude regex)
- Fingerprinting on a fixed-size thread pool, results folded in discovery order
- Single GroupBuilder owned by the scan coordinator
- Progress callback and cancellation
"""

from __future__ import annotations

import asyncio
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterator, Optional

import structlog

from dupfinder.config.exceptions import ConfigurationError
from dupfinder.dedup.filters import InclusionFilter
from dupfinder.dedup.fingerprint import FingerprintExtractor
from dupfinder.dedup.grouping import GroupBuilder
from dupfinder.dedup.models import FileRecord, ScanConfig, ScanResult, ScanStats

logger = structlog.get_logger(__name__)

# Files fingerprinted per gather() round, per worker
BATCH_PER_WORKER = 64


def validate_directories(directories: list[Path]) -> None:
    """
    Raise ConfigurationError unless every root is an existing directory.
    """
    if not directories:
        raise ConfigurationError("No directories given")

    missing = [str(d) for d in directories if not d.is_dir()]
    if missing:
        raise ConfigurationError(f"Directory does not exist: {', '.join(missing)}")


class DedupScanner:
    """
    Scan directory trees and group files sharing a fingerprint.

    Grouping only happens once every included file has been fingerprinted:
    duplicates are order-independent, so no group is final before that.
    """

    def __init__(
        self,
        config: ScanConfig,
        progress_callback: Optional[Callable[[ScanStats], None]] = None,
        progress_interval: int = 100,
    ):
        """
        Initialize scanner.

        Args:
            config: Scan configuration
            progress_callback: Optional callback for progress updates
            progress_interval: Call the callback every N fingerprinted files
        """
        self.config = config
        self.progress_callback = progress_callback
        self.progress_interval = progress_interval
        self.file_filter = InclusionFilter.from_config(config)
        self.extractor = FingerprintExtractor.from_config(config)
        self.stats = ScanStats()
        self._builder = GroupBuilder()
        self._pool: Optional[ThreadPoolExecutor] = None
        self._start_time: float = 0.0
        self._cancelled = False

    def cancel(self) -> None:
        """Cancel the scan (files already fingerprinted are still grouped)."""
        self._cancelled = True

    async def scan(self) -> ScanResult:
        """
        Main scan entry point.

        Steps:
        1. Validate roots
        2. Walk every root, filter, fingerprint (thread pool)
        3. Build duplicate groups
        4. Return results

        Raises:
            ConfigurationError: if a root is missing or not a directory
        """
        validate_directories(self.config.directories)

        self._start_time = time.time()
        self._cancelled = False
        self.stats = ScanStats()
        self._builder = GroupBuilder()

        logger.info(
            "dedup_scan_started",
            directories=[str(d) for d in self.config.directories],
            method=self.config.method.value,
            workers=self.config.workers,
        )

        already_seen: set[str] = set()

        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            self._pool = pool
            try:
                for directory in self.config.directories:
                    if self._cancelled:
                        break
                    await self._scan_directory(directory, already_seen)
            finally:
                self._pool = None

        groups = self._builder.build()

        result = ScanResult(
            method=self.config.method,
            directories=list(self.config.directories),
            total_seen=self.stats.total_seen,
            total_scanned=self.stats.total_scanned,
            total_skipped=self.stats.total_skipped,
            total_errors=self.stats.total_errors,
            cancelled=self._cancelled,
            groups=groups,
        )

        logger.info(
            "dedup_scan_completed",
            total_scanned=result.total_scanned,
            total_skipped=result.total_skipped,
            total_errors=result.total_errors,
            duplicate_groups=result.duplicate_groups_count,
            total_duplicates=result.total_duplicates,
            wasted_bytes=result.wasted_bytes,
            cancelled=result.cancelled,
            elapsed_seconds=round(time.time() - self._start_time, 2),
        )

        return result

    def _walk(self, directory: Path) -> Iterator[tuple[Path, str]]:
        """
        Yield (file path, identity key) under directory, sorted per level.

        The key resolves the parent directory only, so a symlinked root
        overlapping another root maps to the same key while a symlinked
        file keeps its own.
        """

        def on_error(error: OSError) -> None:
            self.stats.total_errors += 1
            logger.debug(
                "dedup_directory_unreadable",
                directory=str(error.filename),
                error=str(error),
            )

        for dirpath, dirnames, filenames in os.walk(directory, onerror=on_error, followlinks=False):
            dirnames.sort()
            self.stats.current_directory = dirpath
            real_dir = os.path.realpath(dirpath)
            for name in sorted(filenames):
                yield Path(dirpath) / name, os.path.join(real_dir, name)

    async def _scan_directory(self, directory: Path, already_seen: set[str]) -> None:
        """
        Scan a directory recursively.

        Args:
            directory: Root to scan
            already_seen: Resolved paths already visited (overlapping roots)
        """
        batch_size = self.config.workers * BATCH_PER_WORKER
        batch: list[Path] = []

        for file_path, resolved_key in self._walk(directory):
            if self._cancelled:
                return

            self.stats.total_seen += 1

            if resolved_key in already_seen:
                continue
            already_seen.add(resolved_key)

            if not self.file_filter.should_include(file_path):
                self.stats.total_skipped += 1
                continue

            batch.append(file_path)
            if len(batch) >= batch_size:
                await self._process_batch(batch)
                batch = []

        if batch and not self._cancelled:
            await self._process_batch(batch)

    async def _process_batch(self, paths: list[Path]) -> None:
        """
        Fingerprint a batch concurrently, then fold results in discovery order.
        """
        records = await asyncio.gather(*(self._fingerprint(p) for p in paths))

        for path, record in zip(paths, records):
            if record is None:
                # Vanished or unreadable since filtering
                self.stats.total_errors += 1
                continue

            self._builder.add(record)
            self.stats.total_scanned += 1
            self.stats.duplicate_groups = self._builder.duplicate_groups_count

            if self.progress_callback and self.stats.total_scanned % self.progress_interval == 0:
                self.progress_callback(self.stats)

    async def _fingerprint(self, path: Path) -> Optional[FileRecord]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool, self.extractor.extract, path)
