"""
Fingerprint extraction: turns a path into a FileRecord.

Methods:
- size: decimal byte length (stat only, false positives expected)
- hash: hex digest of the full content (chunked reads)
- name: base filename (same name in different folders = duplicate)
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

import structlog

from dupfinder.dedup.models import (
    DetectionMethod,
    FileRecord,
    HashAlgorithm,
    ScanConfig,
)

logger = structlog.get_logger(__name__)


def hash_file(file_path: Path, algorithm: HashAlgorithm = HashAlgorithm.sha256, chunk_size: int = 65536) -> str:
    """
    Compute a hex digest (chunked for memory efficiency).

    Args:
        file_path: File to hash
        algorithm: sha256, sha1 or md5
        chunk_size: Read size in bytes

    Returns:
        Hex digest string
    """
    digest = hashlib.new(algorithm.value)

    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)

    return digest.hexdigest()


class FingerprintExtractor:
    """Builds FileRecords for one detection method."""

    def __init__(
        self,
        method: DetectionMethod = DetectionMethod.hash,
        algorithm: HashAlgorithm = HashAlgorithm.sha256,
        chunk_size: int = 65536,
    ):
        self.method = method
        self.algorithm = algorithm
        self.chunk_size = chunk_size

    @classmethod
    def from_config(cls, config: ScanConfig) -> "FingerprintExtractor":
        return cls(
            method=config.method,
            algorithm=config.hash_algorithm,
            chunk_size=config.chunk_size,
        )

    def extract(self, path: Path) -> Optional[FileRecord]:
        """
        Fingerprint a single file.

        Returns None if the file vanished or became unreadable since it was
        filtered; the caller drops it from the scan.
        """
        try:
            st = path.stat()
            if self.method is DetectionMethod.size:
                fingerprint = str(st.st_size)
            elif self.method is DetectionMethod.hash:
                fingerprint = hash_file(path, self.algorithm, self.chunk_size)
            else:
                fingerprint = path.name
        except OSError as e:
            logger.debug(
                "dedup_fingerprint_failed",
                file_path=str(path),
                error=str(e),
            )
            return None

        return FileRecord(
            path=path,
            size_bytes=st.st_size,
            mod_time=st.st_mtime,
            fingerprint=fingerprint,
        )
