"""
dupfinder - Canonical exception hierarchy.

Configuration errors abort a run before any filesystem mutation.
Per-file errors never escape the scanner or the executor; they are
recorded as skipped/failed outcomes instead.
"""


class DupFinderError(Exception):
    """Base exception dupfinder."""


class ConfigurationError(DupFinderError):
    """Invalid method, policy, mode, pattern, size or directory."""


class InteractiveInputError(ConfigurationError):
    """No usable input stream for interactive keep selection."""


class ActionError(DupFinderError):
    """Removal or hard-link failure for a single file."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
