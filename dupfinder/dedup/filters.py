"""
Inclusion filter: decides whether a file takes part in a scan.

Rules (in order):
1. Must be a readable regular file (symlinks, FIFOs, sockets excluded)
2. Exclude regex searched in the full path -> excluded
3. Minimum size (only when > 0)
4. Extension allow-list (case-insensitive, after the last ".")
"""

from __future__ import annotations

import os
import re
import stat
from pathlib import Path
from typing import Iterable, Optional

from dupfinder.dedup.models import ScanConfig, normalize_extensions


def file_extension(path: Path) -> str:
    """Substring after the last "." of the file name, lowercased ("" if none)."""
    name = path.name
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


class InclusionFilter:
    """Pure metadata filter; fails closed on any stat/access error."""

    def __init__(
        self,
        min_size: int = 0,
        extensions: Optional[Iterable[str] | str] = None,
        exclude_pattern: Optional[str] = None,
    ):
        """
        Args:
            min_size: Minimum size in bytes (0 = no minimum)
            extensions: Allow-list, e.g. "jpg,png" or {"jpg", "png"}
            exclude_pattern: Regex; compiled here, so invalid patterns raise re.error
        """
        self.min_size = min_size
        self.extensions = normalize_extensions(extensions)
        self._exclude = re.compile(exclude_pattern) if exclude_pattern else None

    @classmethod
    def from_config(cls, config: ScanConfig) -> "InclusionFilter":
        return cls(
            min_size=config.min_file_size,
            extensions=config.extensions,
            exclude_pattern=config.exclude_pattern,
        )

    def should_include(self, path: Path) -> bool:
        """
        Check if file should be scanned.

        Args:
            path: File to check

        Returns:
            True if the file passes every rule
        """
        try:
            st = path.lstat()
        except OSError:
            return False

        if not stat.S_ISREG(st.st_mode):
            return False

        if not os.access(path, os.R_OK):
            return False

        # Exclusion wins over every inclusion criterion
        if self._exclude is not None and self._exclude.search(str(path)):
            return False

        if self.min_size > 0 and st.st_size < self.min_size:
            return False

        if self.extensions and file_extension(path) not in self.extensions:
            return False

        return True
