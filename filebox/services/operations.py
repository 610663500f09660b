"""
Operation dispatcher.

Serves list/read/copy/move (plus drives and scan) across the real
filesystem and ZIP archives. Every path is resolved into a VirtualPath
first; copies are routed on the (source, destination) combination:

    archive -> disk     extract, then stat the result
    disk -> archive     add the disk file
    archive -> archive  extract to a staging file, add it, remove the staging file
    disk -> disk        recursive directory copy or single file copy

Every call returns a result record. Nothing raises past ``execute``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import traceback
from pathlib import PurePosixPath
from typing import Any, Awaitable, Callable, Optional

from filebox.core.errors import (
    CrossDeviceError,
    FileboxError,
    InvalidParameterError,
    PathNotFoundError,
    PermissionOrLockError,
    TypeMismatchError,
    UnsupportedOperationError,
)
from filebox.core.folder.scanner import TreeScanner
from filebox.core.models import (
    DrivesResult,
    EntryKind,
    ErrorKind,
    ListResult,
    OperationKind,
    OperationResult,
    ReadResult,
    TransferResult,
    TreeScanResult,
    VirtualPath,
    now_iso,
)
from filebox.core.paths import PathResolver
from filebox.services.archive import ArchiveAccessor
from filebox.services.file_io import FileIOService, TempFileManager
from filebox.services.filesystem import FileSystemAccessor
from filebox.services.settings import TransferSettings


RESULT_TYPES: dict[OperationKind, type[OperationResult]] = {
    OperationKind.LIST: ListResult,
    OperationKind.READ: ReadResult,
    OperationKind.COPY: TransferResult,
    OperationKind.MOVE: TransferResult,
    OperationKind.DRIVES: DrivesResult,
    OperationKind.SCAN: TreeScanResult,
}


class OperationDispatcher:
    """
    Routes file operations to the archive or filesystem accessor.

    Usage:
        dispatcher = OperationDispatcher()
        result = await dispatcher.execute("copy", "C:\\a\\b.zip/x.txt", "D:\\x.txt")
        print(result.to_dict())
    """

    def __init__(
        self,
        resolver: Optional[PathResolver] = None,
        archives: Optional[ArchiveAccessor] = None,
        filesystem: Optional[FileSystemAccessor] = None,
        file_io: Optional[FileIOService] = None,
        scanner: Optional[TreeScanner] = None,
        settings: Optional[TransferSettings] = None
    ):
        self.settings = settings or TransferSettings()
        self.resolver = resolver or PathResolver()
        self.file_io = file_io or FileIOService(default_encoding=self.settings.default_encoding)
        self.archives = archives or ArchiveAccessor(self.settings.compression, self.file_io)
        self.filesystem = filesystem or FileSystemAccessor()
        self.scanner = scanner or TreeScanner(filesystem=self.filesystem)

        self._handlers: dict[OperationKind, Callable[..., Awaitable[OperationResult]]] = {
            OperationKind.LIST: self._list,
            OperationKind.READ: self._read,
            OperationKind.COPY: self._copy,
            OperationKind.MOVE: self._move,
            OperationKind.DRIVES: self._drives,
            OperationKind.SCAN: self._scan,
        }

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def execute(
        self,
        operation: OperationKind | str,
        source: Optional[str] = None,
        destination: Optional[str] = None
    ) -> OperationResult:
        """
        Run one operation.

        Args:
            operation: Operation kind or its name ("list", "read", "copy", ...)
            source: Path to list/read/scan, or the copy/move source
            destination: Copy/move destination

        Returns:
            A result record; failures have ``success=False``
        """
        kind = OperationKind.from_string(operation)
        if kind is None:
            return OperationResult.failure(
                str(operation), f"Unknown operation: {operation}", ErrorKind.INVALID_PARAMETERS
            )

        result_type = RESULT_TYPES[kind]
        try:
            return await self._handlers[kind](source, destination)
        except FileboxError as e:
            logging.error(f"OperationDispatcher - {kind.value} failed: {e}")
            return result_type.failure(kind.value, str(e), e.kind)
        except Exception as e:
            logging.exception(f"OperationDispatcher - {kind.value} failed unexpectedly")
            return result_type.failure(kind.value, str(e), ErrorKind.UNKNOWN, traceback.format_exc())

    async def execute_request(self, params: dict[str, Any]) -> OperationResult:
        """
        Run an operation described by a flat parameter record.

        Accepts ``operation`` plus ``folderPath`` (list), ``filePath`` (read),
        ``sourcePath``/``destinationPath`` (copy, move) or ``rootPath`` (scan).
        """
        operation = params.get('operation', '')
        kind = OperationKind.from_string(operation)

        if kind == OperationKind.LIST:
            return await self.execute(kind, params.get('folderPath'))
        if kind == OperationKind.READ:
            return await self.execute(kind, params.get('filePath'))
        if kind == OperationKind.SCAN:
            return await self.execute(kind, params.get('rootPath'))
        return await self.execute(
            kind or operation, params.get('sourcePath'), params.get('destinationPath')
        )

    def execute_sync(
        self,
        operation: OperationKind | str,
        source: Optional[str] = None,
        destination: Optional[str] = None
    ) -> OperationResult:
        """Run ``execute`` on a private event loop."""
        return asyncio.run(self.execute(operation, source, destination))

    def cancel(self) -> None:
        """Cancel a scan started through this dispatcher."""
        self.scanner.cancel()

    # -------------------------------------------------------------------------
    # list / read / drives / scan
    # -------------------------------------------------------------------------

    async def _list(self, folder_path: Optional[str], _destination=None) -> ListResult:
        folder_path = self._require_param(folder_path, 'folderPath is required for list operation')
        vpath = self.resolver.parse(folder_path)

        if vpath.is_archive_path or (
            self.archives.exists(folder_path) and self.filesystem.is_file(folder_path)
        ):
            # A bare container file lists the archive root
            container = vpath.container_path or folder_path
            entries = await asyncio.to_thread(self.archives.list, container, vpath.internal_path)
            return ListResult(
                success=True,
                operation=OperationKind.LIST.value,
                path=folder_path,
                total_items=len(entries),
                directories=[e.to_dict() for e in entries if e.is_directory],
                files=[e.to_dict() for e in entries if not e.is_directory],
            )

        listing = await asyncio.to_thread(self.filesystem.list_directory, folder_path)
        return ListResult(
            success=True,
            operation=OperationKind.LIST.value,
            path=listing.path,
            total_items=listing.total_items,
            directories=[e.to_dict() for e in listing.directories],
            files=[e.to_dict() for e in listing.files],
        )

    async def _read(self, file_path: Optional[str], _destination=None) -> ReadResult:
        file_path = self._require_param(file_path, 'filePath is required for read operation')
        vpath = self.resolver.parse(file_path)

        if vpath.is_archive_path:
            raw = await asyncio.to_thread(
                self.archives.read, vpath.container_path, vpath.internal_path, True
            )
            rendered = self.file_io.render(raw, vpath.internal_path)
            return ReadResult(
                success=True,
                operation=OperationKind.READ.value,
                path=file_path,
                content=rendered.content,
                size=rendered.size,
                modified=now_iso(),
                is_image=rendered.is_image,
            )

        absolute = os.path.abspath(file_path)
        rendered = await asyncio.to_thread(self.file_io.read_file, absolute)
        entry = await asyncio.to_thread(self.filesystem.stat_entry, absolute)
        return ReadResult(
            success=True,
            operation=OperationKind.READ.value,
            path=absolute,
            content=rendered.content,
            size=entry.size,
            modified=entry.modified.isoformat() if entry.modified else None,
            is_image=rendered.is_image,
        )

    async def _drives(self, _source=None, _destination=None) -> DrivesResult:
        drives = await asyncio.to_thread(self.filesystem.list_drives)
        return DrivesResult(success=True, operation=OperationKind.DRIVES.value, drives=drives)

    async def _scan(self, root_path: Optional[str], _destination=None) -> TreeScanResult:
        return await self.scanner.scan(root_path)

    # -------------------------------------------------------------------------
    # copy
    # -------------------------------------------------------------------------

    async def _copy(self, source: Optional[str], destination: Optional[str]) -> TransferResult:
        source = self._require_param(source, 'sourcePath is required for copy operation')
        destination = self._require_param(destination, 'destinationPath is required for copy operation')

        src = self.resolver.parse(source)
        dst = self.resolver.parse(destination)

        if src.is_archive_path and not dst.is_archive_path:
            return await self._copy_archive_to_disk(source, src, destination)
        if not src.is_archive_path and dst.is_archive_path:
            return await self._copy_disk_to_archive(source, destination, dst)
        if src.is_archive_path and dst.is_archive_path:
            return await self._copy_archive_to_archive(source, src, destination, dst)
        return await self._copy_disk_to_disk(source, destination)

    async def _copy_archive_to_disk(
        self,
        source: str,
        src: VirtualPath,
        destination: str
    ) -> TransferResult:
        target = os.path.abspath(destination)
        await asyncio.to_thread(
            self.archives.extract, src.container_path, src.internal_path, target
        )

        if await asyncio.to_thread(self.filesystem.is_dir, target):
            return self._transfer(OperationKind.COPY, source, target, EntryKind.DIRECTORY)

        size = await asyncio.to_thread(self.filesystem.file_size, target)
        return self._transfer(OperationKind.COPY, source, target, EntryKind.FILE, size)

    async def _copy_disk_to_archive(
        self,
        source: str,
        destination: str,
        dst: VirtualPath
    ) -> TransferResult:
        source_file = os.path.abspath(source)
        entry = await asyncio.to_thread(
            self.archives.add, dst.container_path, source_file, dst.internal_path
        )
        return self._transfer(OperationKind.COPY, source_file, destination, EntryKind.FILE, entry.size)

    async def _copy_archive_to_archive(
        self,
        source: str,
        src: VirtualPath,
        destination: str,
        dst: VirtualPath
    ) -> TransferResult:
        source_entry = await asyncio.to_thread(
            self.archives.get_entry, src.container_path, src.internal_path
        )
        if source_entry.is_directory:
            raise TypeMismatchError(
                f"Only files can be copied between archives: {src.internal_path}",
                src.internal_path,
            )

        with TempFileManager(directory=self.settings.temp_dir or None) as staging:
            staged = staging.staging_path(PurePosixPath(src.internal_path).name)
            await asyncio.to_thread(
                self.archives.extract, src.container_path, src.internal_path, staged
            )
            entry = await asyncio.to_thread(
                self.archives.add, dst.container_path, staged, dst.internal_path
            )

        return self._transfer(OperationKind.COPY, source, destination, EntryKind.FILE, entry.size)

    async def _copy_disk_to_disk(self, source: str, destination: str) -> TransferResult:
        absolute_source = os.path.abspath(source)
        absolute_destination = os.path.abspath(destination)

        if not await asyncio.to_thread(self.filesystem.exists, absolute_source):
            raise PathNotFoundError(f"Source does not exist: {absolute_source}", absolute_source)

        if await asyncio.to_thread(self.filesystem.is_dir, absolute_source):
            report = await asyncio.to_thread(
                self.filesystem.copy_tree, absolute_source, absolute_destination
            )
            if report.skipped_count:
                logging.warning(
                    f"OperationDispatcher - Copied {absolute_source} with {report.skipped_count} entries skipped"
                )
            return self._transfer(
                OperationKind.COPY, absolute_source, absolute_destination, EntryKind.DIRECTORY
            )

        if await asyncio.to_thread(self.filesystem.is_file, absolute_source):
            size = await asyncio.to_thread(
                self.filesystem.copy_file, absolute_source, absolute_destination
            )
            return self._transfer(
                OperationKind.COPY, absolute_source, absolute_destination, EntryKind.FILE, size
            )

        raise TypeMismatchError(
            f"Source is neither a file nor a directory: {absolute_source}", absolute_source
        )

    # -------------------------------------------------------------------------
    # move
    # -------------------------------------------------------------------------

    async def _move(self, source: Optional[str], destination: Optional[str]) -> TransferResult:
        """
        Move on disk: rename, falling back to copy + delete across devices.

        The fallback is not transactional. If the copy phase fails, the
        partially written destination stays in place and the error propagates.
        """
        source = self._require_param(source, 'sourcePath is required for move operation')
        destination = self._require_param(destination, 'destinationPath is required for move operation')

        if self.resolver.is_archive_path(source) or self.resolver.is_archive_path(destination):
            raise UnsupportedOperationError(
                "Move is only supported between disk paths; use copy for archives"
            )

        absolute_source = os.path.abspath(source)
        absolute_destination = os.path.abspath(destination)

        if not await asyncio.to_thread(self.filesystem.exists, absolute_source):
            raise PathNotFoundError(f"Source does not exist: {absolute_source}", absolute_source)

        is_directory = await asyncio.to_thread(self.filesystem.is_dir, absolute_source)
        await asyncio.to_thread(self.filesystem.make_dirs, os.path.dirname(absolute_destination))

        try:
            await asyncio.to_thread(self.filesystem.rename, absolute_source, absolute_destination)
        except CrossDeviceError:
            logging.info(
                f"OperationDispatcher - Cross-device move, copying {absolute_source} to {absolute_destination}"
            )
            await asyncio.to_thread(
                self._copy_then_delete, absolute_source, absolute_destination, is_directory
            )

        if is_directory:
            return self._transfer(
                OperationKind.MOVE, absolute_source, absolute_destination, EntryKind.DIRECTORY
            )

        size = await asyncio.to_thread(self.filesystem.file_size, absolute_destination)
        return self._transfer(
            OperationKind.MOVE, absolute_source, absolute_destination, EntryKind.FILE, size
        )

    def _copy_then_delete(self, source: str, destination: str, is_directory: bool) -> None:
        if is_directory:
            report = self.filesystem.copy_tree(source, destination)
            if report.skipped_count:
                raise PermissionOrLockError(
                    f"Cross-device move of {source} skipped {report.skipped_count} entries; source left in place",
                    source,
                )
            self.filesystem.delete_tree(source)
        else:
            self.filesystem.copy_file(source, destination)
            self.filesystem.delete_file(source)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_param(value: Optional[str], message: str) -> str:
        if not value:
            raise InvalidParameterError(message)
        return str(value)

    @staticmethod
    def _transfer(
        kind: OperationKind,
        source: str,
        destination: str,
        entry_kind: EntryKind,
        size: Optional[int] = None
    ) -> TransferResult:
        return TransferResult(
            success=True,
            operation=kind.value,
            source=source,
            destination=destination,
            type=entry_kind,
            size=size,
            timestamp=now_iso(),
        )
