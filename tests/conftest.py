"""
Shared fixtures for filebox tests.
"""

import zipfile
from pathlib import Path

import pytest

from filebox.core.paths import PathResolver
from filebox.services.archive import ArchiveAccessor
from filebox.services.filesystem import FileSystemAccessor
from filebox.services.operations import OperationDispatcher


def make_zip(path: Path, entries: dict) -> Path:
    """Write a ZIP file; entries map internal names to bytes (None for a directory entry)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in entries.items():
            if data is None:
                zf.writestr(zipfile.ZipInfo(name), b"")
            else:
                zf.writestr(name, data)
    return path


def zip_names(path: Path) -> list:
    with zipfile.ZipFile(path) as zf:
        return zf.namelist()


@pytest.fixture
def sample_zip(tmp_path):
    """An archive with nested folders, an implicit folder and an image."""
    return make_zip(tmp_path / "backup.zip", {
        "readme.txt": b"hello archive",
        "docs/": None,
        "docs/guide.md": b"# Guide\n",
        "docs/api/index.html": b"<html></html>",
        "images/logo.png": b"\x89PNG\r\n\x1a\nfake",
    })


@pytest.fixture
def archives():
    return ArchiveAccessor()


@pytest.fixture
def filesystem():
    return FileSystemAccessor()


@pytest.fixture
def dispatcher():
    return OperationDispatcher(resolver=PathResolver())
