"""
Pytest fixtures for cardimport tests.

All filesystem work happens below tmp_path; records are built directly so the
creation time is known instead of depending on the platform's stat fields.
"""

import os
import datetime as dt

import pytest

from cardimport.models import FileRecord


@pytest.fixture
def make_file(tmp_path):
    """Create a file below tmp_path and return its absolute path."""

    def _make(relpath: str, content: bytes = b"data") -> str:
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return str(path)

    return _make


@pytest.fixture
def make_record():
    """Build a FileRecord for an existing file with a fixed creation time."""

    def _make(path: str, created: dt.datetime = dt.datetime(2024, 3, 5, 14, 30, 0)) -> FileRecord:
        return FileRecord(
            source_path=os.path.abspath(path),
            size=os.path.getsize(path) if os.path.exists(path) else 0,
            original_creation_time=created,
        )

    return _make


@pytest.fixture
def archive(tmp_path):
    root = tmp_path / "archive"
    root.mkdir()
    return root


def snapshot(root) -> set:
    """All paths (files and folders) below root, with file contents."""
    entries = set()
    for curr, dirs, files in os.walk(root):
        for d in dirs:
            entries.add((os.path.join(curr, d), None))
        for f in files:
            path = os.path.join(curr, f)
            with open(path, "rb") as fh:
                entries.add((path, fh.read()))
    return entries
