"""
Shared pytest fixtures for dupfinder.

- write_file: create a file (parents included) with content and optional mtime
- dup_tree: small tree with two duplicate groups and one unique file

The event loop is managed by pytest-asyncio in auto mode (pyproject.toml).
"""

import os
from pathlib import Path
from typing import Callable, Optional

import pytest
import structlog

from dupfinder.config.logging import configure_logging


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep structlog output at WARNING during tests."""
    configure_logging(level="WARNING")
    yield
    structlog.reset_defaults()


@pytest.fixture
def write_file() -> Callable[..., Path]:
    def _write(path: Path, content: bytes = b"", mtime: Optional[float] = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write


@pytest.fixture
def dup_tree(tmp_path, write_file) -> dict:
    """
    Structure:
        root/
            photos/IMG_001.jpg        (dup A)
            photos/notes.txt          (unique)
            backup/IMG_001 (1).jpg    (dup A)
            backup/report.pdf         (dup B)
            desktop/report (1).pdf    (dup B)
    """
    root = tmp_path / "root"
    content_a = b"JPEG photo content " * 100
    content_b = b"PDF document content " * 50

    files = {
        "a1": write_file(root / "photos" / "IMG_001.jpg", content_a, mtime=1_700_000_000),
        "unique": write_file(root / "photos" / "notes.txt", b"just some notes", mtime=1_700_000_100),
        "a2": write_file(root / "backup" / "IMG_001 (1).jpg", content_a, mtime=1_700_000_200),
        "b1": write_file(root / "backup" / "report.pdf", content_b, mtime=1_700_000_300),
        "b2": write_file(root / "desktop" / "report (1).pdf", content_b, mtime=1_700_000_400),
    }
    return {"root": root, "files": files, "content_a": content_a, "content_b": content_b}
