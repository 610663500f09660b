"""
ZIP archive access.

Provides list/read/extract/add/delete against a ZIP container. Internal
paths always use forward slashes; directories are either explicit entries
ending in ``/`` or implied by the paths of the files beneath them.

Writers are not serialized: callers must not run ``add`` or ``delete``
concurrently against the same container.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Callable, Optional

from filebox.core.errors import (
    ArchiveNotFoundError,
    PathNotFoundError,
    TypeMismatchError,
)
from filebox.core.models import ArchiveEntry
from filebox.core.paths import ARCHIVE_EXTENSION, normalize_internal_path
from filebox.services.file_io import FileIOService


COMPRESSION_METHODS = {
    'deflated': zipfile.ZIP_DEFLATED,
    'stored': zipfile.ZIP_STORED,
}


def _modified(info: zipfile.ZipInfo) -> Optional[datetime]:
    try:
        return datetime(*info.date_time)
    except ValueError:
        return None


class ArchiveAccessor:
    """Operations against entries of a ZIP container."""

    def __init__(
        self,
        compression: str = 'deflated',
        file_io: Optional[FileIOService] = None
    ):
        if compression not in COMPRESSION_METHODS:
            raise ValueError(f"Unknown compression method: {compression}")
        self.compression = COMPRESSION_METHODS[compression]
        self.file_io = file_io or FileIOService()

    # -------------------------------------------------------------------------
    # Container checks
    # -------------------------------------------------------------------------

    @staticmethod
    def exists(container_path: Path | str) -> bool:
        """True iff the path exists and has a ``.zip`` extension (any case)."""
        if not container_path:
            return False
        path = Path(container_path)
        return path.exists() and path.suffix.lower() == ARCHIVE_EXTENSION

    def _require(self, container_path: Path | str) -> Path:
        if not self.exists(container_path):
            raise ArchiveNotFoundError(
                f"Archive does not exist: {container_path}", str(container_path)
            )
        return Path(container_path)

    @staticmethod
    def _open(container: Path, mode: str = 'r', **kwargs) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(container, mode, **kwargs)
        except zipfile.BadZipFile as e:
            raise ArchiveNotFoundError(f"Not a valid ZIP archive: {container} ({e})", str(container)) from e

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def list(self, container_path: Path | str, internal_prefix: str = "") -> list[ArchiveEntry]:
        """
        List the direct children of a directory inside the archive.

        Args:
            container_path: Path to the ZIP file
            internal_prefix: Directory inside the archive ("" for the root)

        Returns:
            Directories first, then files, each in archive order

        Raises:
            ArchiveNotFoundError: The container does not exist
            PathNotFoundError: Nothing in the archive lives under the prefix
        """
        container = self._require(container_path)
        prefix = normalize_internal_path(internal_prefix)
        lead = prefix + '/' if prefix else ''

        directories: dict[str, ArchiveEntry] = {}
        files: list[ArchiveEntry] = []
        found = not prefix

        with self._open(container) as zf:
            for info in zf.infolist():
                name = info.filename.replace('\\', '/')
                if not name.startswith(lead):
                    continue
                found = True

                rest = name[len(lead):]
                if not rest:
                    continue  # The prefix directory itself

                head, sep, tail = rest.partition('/')
                if sep:
                    entry = directories.get(head)
                    if entry is None:
                        entry = ArchiveEntry(
                            name=head,
                            internal_path=lead + head,
                            is_directory=True,
                        )
                        directories[head] = entry
                    if not tail:
                        entry.modified = _modified(info)
                else:
                    files.append(ArchiveEntry(
                        name=head,
                        internal_path=lead + head,
                        size=info.file_size,
                        modified=_modified(info),
                    ))

        if not found:
            raise PathNotFoundError(
                f"Path not found in archive {container}: {prefix}", prefix
            )

        return list(directories.values()) + files

    def get_entry(self, container_path: Path | str, internal_path: str) -> ArchiveEntry:
        """Metadata for a single entry (file or directory)."""
        container = self._require(container_path)
        target = normalize_internal_path(internal_path)

        with self._open(container) as zf:
            info = self._find_info(zf, target)
            if info is not None:
                return ArchiveEntry(
                    name=PurePosixPath(target).name,
                    internal_path=target,
                    size=info.file_size,
                    modified=_modified(info),
                )
            if self._members_under(zf, target):
                return ArchiveEntry(
                    name=PurePosixPath(target).name,
                    internal_path=target,
                    is_directory=True,
                )

        raise PathNotFoundError(f"Entry not found in archive {container}: {target}", target)

    def read(
        self,
        container_path: Path | str,
        internal_path: str,
        binary: bool = False
    ) -> str | bytes:
        """
        Read an entry.

        Args:
            container_path: Path to the ZIP file
            internal_path: Entry inside the archive
            binary: Return raw bytes instead of decoded text

        Raises:
            ArchiveNotFoundError: The container does not exist
            PathNotFoundError: The entry does not exist
            TypeMismatchError: The entry is a directory
        """
        container = self._require(container_path)
        target = normalize_internal_path(internal_path)

        with self._open(container) as zf:
            info = self._find_info(zf, target)
            if info is None:
                if self._members_under(zf, target):
                    raise TypeMismatchError(f"Entry is a directory: {target}", target)
                raise PathNotFoundError(f"Entry not found in archive {container}: {target}", target)
            data = zf.read(info)

        if binary:
            return data
        text, _ = self.file_io.decode(data)
        return text

    def extract(
        self,
        container_path: Path | str,
        internal_path: str,
        destination_path: Path | str
    ) -> int:
        """
        Write an entry to the real filesystem.

        A directory entry (or implied directory) is extracted with everything
        beneath it, using ``destination_path`` as the directory to create.

        Returns:
            Number of files written

        Raises:
            ArchiveNotFoundError: The container does not exist
            PathNotFoundError: The entry does not exist
        """
        container = self._require(container_path)
        target = normalize_internal_path(internal_path)
        destination = Path(destination_path)

        with self._open(container) as zf:
            info = self._find_info(zf, target)
            if info is not None:
                self._write_member(zf, info, destination)
                return 1

            members = self._members_under(zf, target)
            if not members:
                raise PathNotFoundError(f"Entry not found in archive {container}: {target}", target)

            destination.mkdir(parents=True, exist_ok=True)
            root = destination.resolve()
            written = 0
            for member in members:
                relative = member.filename.replace('\\', '/')[len(target) + 1:]
                out_path = (destination / relative).resolve()
                if out_path != root and root not in out_path.parents:
                    logging.warning(f"ArchiveAccessor - Skipping entry outside destination: {member.filename}")
                    continue
                if member.is_dir():
                    out_path.mkdir(parents=True, exist_ok=True)
                    continue
                self._write_member(zf, member, out_path)
                written += 1

        return written

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def add(
        self,
        container_path: Path | str,
        source_file_path: Path | str,
        internal_path: str
    ) -> ArchiveEntry:
        """
        Insert or overwrite an entry from a real file.

        Creates the container if it does not exist yet.

        Raises:
            ArchiveNotFoundError: The container path is not a .zip file
            PathNotFoundError: The source file does not exist
            TypeMismatchError: The source is not a regular file
        """
        container = Path(container_path)
        if container.suffix.lower() != ARCHIVE_EXTENSION:
            raise ArchiveNotFoundError(
                f"Archive does not exist: {container_path}", str(container_path)
            )

        source = Path(source_file_path)
        if not source.exists():
            raise PathNotFoundError(f"Source does not exist: {source}", str(source))
        if not source.is_file():
            raise TypeMismatchError(f"Source is not a file: {source}", str(source))

        target = normalize_internal_path(internal_path)
        if not target:
            raise PathNotFoundError("Internal path is empty", internal_path)

        if container.exists() and container.stat().st_size > 0:
            with self._open(container) as zf:
                replacing = self._find_info(zf, target) is not None
            if replacing:
                self._rewrite(container, lambda name: name == target)
        else:
            container.parent.mkdir(parents=True, exist_ok=True)

        with self._open(container, 'a', compression=self.compression) as zf:
            zf.write(source, arcname=target)
            info = zf.getinfo(target)

        logging.debug(f"ArchiveAccessor - Added {source} to {container} as {target}")
        return ArchiveEntry(
            name=PurePosixPath(target).name,
            internal_path=target,
            size=info.file_size,
            modified=_modified(info),
        )

    def delete(self, container_path: Path | str, internal_path: str) -> int:
        """
        Remove an entry, or every entry beneath a directory prefix.

        Returns:
            Number of entries removed

        Raises:
            ArchiveNotFoundError: The container does not exist
            PathNotFoundError: Nothing matched the internal path
        """
        container = self._require(container_path)
        target = normalize_internal_path(internal_path)
        if not target:
            raise PathNotFoundError("Internal path is empty", internal_path)

        lead = target + '/'
        removed = self._rewrite(
            container,
            lambda name: name == target or name.startswith(lead),
        )
        if not removed:
            raise PathNotFoundError(f"Entry not found in archive {container}: {target}", target)

        logging.debug(f"ArchiveAccessor - Removed {removed} entries under {target} from {container}")
        return removed

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _find_info(zf: zipfile.ZipFile, target: str) -> Optional[zipfile.ZipInfo]:
        """The file entry named ``target``, or None."""
        for info in zf.infolist():
            if info.is_dir():
                continue
            if info.filename.replace('\\', '/') == target:
                return info
        return None

    @staticmethod
    def _members_under(zf: zipfile.ZipFile, target: str) -> list[zipfile.ZipInfo]:
        """Entries inside directory ``target`` (including its own entry)."""
        if not target:
            return zf.infolist()
        lead = target + '/'
        return [
            info for info in zf.infolist()
            if info.filename.replace('\\', '/').startswith(lead)
        ]

    @staticmethod
    def _write_member(zf: zipfile.ZipFile, info: zipfile.ZipInfo, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with zf.open(info) as src, open(destination, 'wb') as dst:
            shutil.copyfileobj(src, dst)

    def _rewrite(self, container: Path, drop: Callable[[str], bool]) -> int:
        """
        Rewrite the container without the entries ``drop`` selects.

        The new archive is written next to the original and swapped in with
        ``os.replace``.

        Returns:
            Number of entries dropped
        """
        fd, temp_name = tempfile.mkstemp(
            prefix='.filebox_', suffix=ARCHIVE_EXTENSION, dir=container.parent
        )
        os.close(fd)
        temp_path = Path(temp_name)
        dropped = 0

        try:
            with self._open(container) as src, zipfile.ZipFile(temp_path, 'w') as dst:
                dst.comment = src.comment
                for info in src.infolist():
                    if drop(info.filename.replace('\\', '/')):
                        dropped += 1
                        continue
                    dst.writestr(info, src.read(info))
            if dropped:
                os.replace(temp_path, container)
        finally:
            if temp_path.exists():
                temp_path.unlink()

        return dropped
