"""dupfinder - content-based duplicate file detection and cleanup."""

__version__ = "1.0.0"
