"""
Real filesystem access.

Thin wrapper over list/stat/copy/move/delete/mkdir. Recursive copy and
recursive delete skip entries they cannot touch (permissions, locks) with a
warning instead of aborting, because whole-drive operations routinely hit
protected system files.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import string
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from filebox.core.errors import (
    CrossDeviceError,
    InvalidParameterError,
    PathNotFoundError,
    TypeMismatchError,
)
from filebox.core.models import DirectoryListing, FileSystemEntry


@dataclass
class BulkReport:
    """Outcome of a recursive copy or delete."""
    processed: int = 0
    skipped: list[tuple[str, str]] = field(default_factory=list)  # (path, error message)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def skip(self, path: Path | str, error: Exception) -> None:
        self.skipped.append((str(path), str(error)))


class FileSystemAccessor:
    """Best-effort operations on the real filesystem."""

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @staticmethod
    def exists(path: Path | str) -> bool:
        return os.path.exists(path)

    @staticmethod
    def is_dir(path: Path | str) -> bool:
        return os.path.isdir(path)

    @staticmethod
    def is_file(path: Path | str) -> bool:
        return os.path.isfile(path)

    @staticmethod
    def stat(path: Path | str) -> os.stat_result:
        return os.stat(path)

    def file_size(self, path: Path | str) -> int:
        """Size of a file in bytes."""
        return self.stat(path).st_size

    @staticmethod
    def scandir(path: Path | str) -> list[os.DirEntry]:
        """Raw directory entries, fully materialized."""
        with os.scandir(path) as it:
            return list(it)

    def stat_entry(self, path: Path | str) -> FileSystemEntry:
        """Metadata for one path (symlinks are followed)."""
        path = Path(path)
        st = self.stat(path)
        created = getattr(st, 'st_birthtime', None) or st.st_ctime
        is_dir = os.path.isdir(path)
        return FileSystemEntry(
            name=path.name or str(path),
            path=str(path),
            size=st.st_size,
            created=datetime.fromtimestamp(created),
            modified=datetime.fromtimestamp(st.st_mtime),
            is_directory=is_dir,
            is_file=os.path.isfile(path),
        )

    def list_directory(self, path: Path | str) -> DirectoryListing:
        """
        List a directory.

        Entries that cannot be stat'ed (locked or protected files) are left
        out with a warning but still count towards ``total_items``.

        Raises:
            PathNotFoundError: The directory does not exist
            TypeMismatchError: The path is not a directory
        """
        path = Path(path).resolve()

        if not path.exists():
            raise PathNotFoundError(f"Directory does not exist: {path}", str(path))
        if not path.is_dir():
            raise TypeMismatchError(f"Path is not a directory: {path}", str(path))

        raw = self.scandir(path)
        listing = DirectoryListing(path=str(path), total_items=len(raw))

        for entry in raw:
            try:
                listing.entries.append(self.stat_entry(entry.path))
            except OSError as e:
                logging.warning(f"FileSystemAccessor - Unable to access {entry.path}: {e}")

        return listing

    @staticmethod
    def list_drives() -> list[dict[str, str]]:
        """Mounted filesystem roots: drive letters on Windows, ``/`` elsewhere."""
        if os.name != 'nt':
            return [{'letter': '/', 'path': '/', 'label': '/'}]

        drives = []
        for letter in string.ascii_uppercase:
            drive_path = f"{letter}:\\"
            if os.path.exists(drive_path):
                drives.append({'letter': letter, 'path': drive_path, 'label': f"{letter}:"})
        return drives

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @staticmethod
    def make_dirs(path: Path | str) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def copy_file(self, source: Path | str, destination: Path | str) -> int:
        """
        Copy a single file, creating the destination's parent directory.

        Returns:
            Size of the written file
        """
        source, destination = Path(source), Path(destination)
        if destination.is_dir():
            raise TypeMismatchError(f"Destination is a directory: {destination}", str(destination))
        self.make_dirs(destination.parent)
        shutil.copy2(source, destination)
        return self.file_size(destination)

    def copy_tree(self, source: Path | str, destination: Path | str) -> BulkReport:
        """
        Recursively copy a directory.

        Entries that fail to copy are skipped with a warning; the rest of the
        tree is still copied.
        """
        source, destination = Path(source), Path(destination)
        if destination.resolve().is_relative_to(source.resolve()):
            raise InvalidParameterError(
                f"Cannot copy a directory into itself: {source} -> {destination}", str(destination)
            )
        report = BulkReport()
        self._copy_tree(source, destination, report)
        return report

    def _copy_tree(self, source: Path, destination: Path, report: BulkReport) -> None:
        self.make_dirs(destination)

        for entry in self.scandir(source):
            src = Path(entry.path)
            dst = destination / entry.name
            try:
                if entry.is_dir(follow_symlinks=False):
                    self._copy_tree(src, dst, report)
                elif entry.is_file(follow_symlinks=False):
                    shutil.copy2(src, dst)
                    report.processed += 1
            except OSError as e:
                logging.warning(f"FileSystemAccessor - Unable to copy {src}: {e}")
                report.skip(src, e)

    def delete_file(self, path: Path | str) -> None:
        os.unlink(path)

    def delete_tree(self, path: Path | str) -> BulkReport:
        """
        Recursively delete a directory.

        Entries that cannot be removed are skipped with a warning, which also
        leaves their parent directories in place.
        """
        report = BulkReport()
        self._delete_tree(Path(path), report)
        return report

    def _delete_tree(self, path: Path, report: BulkReport) -> None:
        for entry in self.scandir(path):
            child = Path(entry.path)
            try:
                if entry.is_dir(follow_symlinks=False):
                    self._delete_tree(child, report)
                else:
                    self.delete_file(child)
                    report.processed += 1
            except OSError as e:
                logging.warning(f"FileSystemAccessor - Unable to delete {child}: {e}")
                report.skip(child, e)

        try:
            os.rmdir(path)
        except OSError as e:
            logging.warning(f"FileSystemAccessor - Unable to remove directory {path}: {e}")
            report.skip(path, e)

    def rename(self, source: Path | str, destination: Path | str) -> None:
        """
        Atomically rename within one filesystem.

        Raises:
            CrossDeviceError: Source and destination are on different devices
        """
        try:
            os.rename(source, destination)
        except OSError as e:
            if e.errno == errno.EXDEV:
                raise CrossDeviceError(
                    f"Cannot rename across devices: {source} -> {destination}", str(source)
                ) from e
            raise
