"""
Folder size scanner.

Walks a directory tree depth-first and builds a ScanNode tree with
aggregate sizes, with:
- Bounded concurrency (file stats and subdirectory recursion run in
  sequential batches, concurrently within a batch)
- Cooperative cancellation
- Throttled progress reporting
- Error resilience (unreadable directories and files count as empty)
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
import time
import traceback
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Optional

from filebox.core.errors import ScanCancelled
from filebox.core.models import ErrorKind, ScanNode, TreeScanResult


DEFAULT_SKIP_DIRECTORIES = frozenset({
    '$Recycle.Bin',
    '$RECYCLE.BIN',
    'System Volume Information',
    '$WinREAgent',
    '$SysReset',
})


class ScanState(Enum):
    """Lifecycle of a scanner."""
    IDLE = auto()
    SCANNING = auto()
    COMPLETED = auto()
    CANCELLED = auto()
    FAILED = auto()


@dataclass
class ScanOptions:
    """Options for folder size scanning."""
    file_batch_size: int = 100
    dir_batch_size: int = 10
    progress_interval: float = 0.1  # Seconds between progress updates
    percentage_scale: int = 1000    # Folder count treated as "done" by the estimate
    skip_directories: frozenset[str] = field(default_factory=lambda: DEFAULT_SKIP_DIRECTORIES)

    def __post_init__(self):
        if self.file_batch_size < 1 or self.dir_batch_size < 1:
            raise ValueError("Batch sizes must be positive")
        if self.percentage_scale < 1:
            raise ValueError("percentage_scale must be positive")
        self.skip_directories = frozenset(self.skip_directories)


@dataclass
class ScanProgress:
    """
    Progress snapshot of a running scan.

    ``tree`` holds the live, partially built root; consumers must treat it
    as read-only.
    """
    folders_scanned: int
    total_size: int
    current_path: str
    percentage: int
    tree: list[ScanNode]


class CancellationToken:
    """Thread-safe cancellation flag shared by every branch of a scan."""

    def __init__(self):
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelled("Operation cancelled by user")


ProgressCallback = Callable[[ScanProgress], None]


class TreeScanner:
    """
    Builds folder size trees.

    One scan session runs per instance at a time. Counters, the
    cancellation flag and the progress throttle are reset at the start of
    every ``scan``.
    """

    def __init__(
        self,
        options: Optional[ScanOptions] = None,
        filesystem=None,
        clock: Callable[[], float] = time.monotonic
    ):
        if filesystem is None:
            from filebox.services.filesystem import FileSystemAccessor
            filesystem = FileSystemAccessor()

        self.options = options or ScanOptions()
        self.filesystem = filesystem
        self._clock = clock
        self._token = CancellationToken()
        self._progress_callback: Optional[ProgressCallback] = None
        self._state = ScanState.IDLE

        self._folders_scanned = 0
        self._total_size = 0
        self._last_progress: Optional[float] = None
        self._root: Optional[ScanNode] = None
        self._lock: Optional[asyncio.Lock] = None

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def folders_scanned(self) -> int:
        return self._folders_scanned

    @property
    def total_size(self) -> int:
        return self._total_size

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        self._progress_callback = callback

    def cancel(self) -> None:
        """Request cancellation of the running scan."""
        self._token.cancel()
        logging.info("TreeScanner - Operation cancelled")

    def reset_cancellation(self) -> None:
        """Clear the cancellation flag, the counters and the progress throttle."""
        self._token.reset()
        self._folders_scanned = 0
        self._total_size = 0
        self._last_progress = None
        self._root = None

    def scan_sync(
        self,
        root_path: str,
        progress_callback: Optional[ProgressCallback] = None
    ) -> TreeScanResult:
        """Run ``scan`` on a private event loop."""
        return asyncio.run(self.scan(root_path, progress_callback))

    async def scan(
        self,
        root_path: str,
        progress_callback: Optional[ProgressCallback] = None
    ) -> TreeScanResult:
        """
        Scan a directory tree.

        Args:
            root_path: Root directory to scan
            progress_callback: Overrides the callback set with
                ``set_progress_callback`` for this scan

        Returns:
            TreeScanResult; never raises. A cancelled scan returns
            ``success=False, cancelled=True``.
        """
        self.reset_cancellation()
        if progress_callback is not None:
            self._progress_callback = progress_callback

        if not root_path:
            return TreeScanResult.failure('scan', "Root path is required", ErrorKind.INVALID_PARAMETERS)

        absolute = os.path.abspath(root_path)
        try:
            if not await asyncio.to_thread(os.path.isdir, absolute):
                if await asyncio.to_thread(os.path.exists, absolute):
                    return TreeScanResult.failure('scan', "Path is not a directory", ErrorKind.TYPE_MISMATCH)
                return TreeScanResult.failure(
                    'scan', f"Cannot access path: {absolute}", ErrorKind.PATH_NOT_FOUND
                )
        except OSError as e:
            return TreeScanResult.failure('scan', f"Cannot access path: {absolute} ({e})", ErrorKind.PATH_NOT_FOUND)

        self._lock = asyncio.Lock()
        self._state = ScanState.SCANNING
        start_time = time.time()

        try:
            root = await self._build_node(absolute, 0)
        except ScanCancelled:
            self._state = ScanState.CANCELLED
            logging.info(f"TreeScanner - Scan of {absolute} cancelled after {self._folders_scanned} folders")
            return TreeScanResult.failure(
                'scan', "Operation cancelled", ErrorKind.CANCELLED,
                total_size=self._total_size,
                folders_scanned=self._folders_scanned,
            )
        except Exception as e:
            self._state = ScanState.FAILED
            logging.exception(f"TreeScanner - Scan of {absolute} failed")
            return TreeScanResult.failure('scan', str(e), ErrorKind.UNKNOWN, traceback.format_exc())

        self._state = ScanState.COMPLETED
        logging.info(
            f"TreeScanner - Scanned {self._folders_scanned} folders, {self._total_size} bytes "
            f"in {time.time() - start_time:.2f}s"
        )

        if self._progress_callback:
            self._notify(ScanProgress(
                folders_scanned=self._folders_scanned,
                total_size=self._total_size,
                current_path=absolute,
                percentage=100,
                tree=[root],
            ))

        return TreeScanResult(
            success=True,
            operation='scan',
            tree=[root],
            total_size=self._total_size,
            folders_scanned=self._folders_scanned,
        )

    # -------------------------------------------------------------------------
    # Tree building
    # -------------------------------------------------------------------------

    async def _build_node(self, folder_path: str, depth: int) -> ScanNode:
        """Recursively size one directory."""
        self._token.raise_if_cancelled()

        async with self._lock:
            self._folders_scanned += 1

        node = ScanNode(
            name=os.path.basename(folder_path) or folder_path,
            path=folder_path,
            depth=depth,
        )
        if depth == 0:
            self._root = node

        self._send_progress(folder_path)

        try:
            entries = await asyncio.to_thread(self.filesystem.scandir, folder_path)
        except OSError as e:
            logging.debug(f"TreeScanner - Cannot list {folder_path}: {e}")
            return node

        self._token.raise_if_cancelled()

        files: list[str] = []
        directories: list[str] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name not in self.options.skip_directories:
                        directories.append(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    files.append(entry.path)
            except OSError as e:
                logging.debug(f"TreeScanner - Cannot inspect {entry.path}: {e}")

        await self._size_files(node, files)

        node.folder_count = len(directories)
        await self._scan_subdirectories(node, directories, depth)

        return node

    async def _size_files(self, node: ScanNode, files: list[str]) -> None:
        batch_size = self.options.file_batch_size

        for start in range(0, len(files), batch_size):
            self._token.raise_if_cancelled()

            batch = files[start:start + batch_size]
            sizes = await asyncio.gather(*(self._file_size(path) for path in batch))

            batch_total = 0
            for size in sizes:
                if size is None:
                    continue
                node.size += size
                node.file_count += 1
                batch_total += size

            async with self._lock:
                self._total_size += batch_total

            self._token.raise_if_cancelled()

    async def _file_size(self, path: str) -> Optional[int]:
        try:
            return await asyncio.to_thread(self.filesystem.file_size, path)
        except OSError as e:
            logging.debug(f"TreeScanner - Cannot stat {path}: {e}")
            return None

    async def _scan_subdirectories(self, node: ScanNode, directories: list[str], depth: int) -> None:
        batch_size = self.options.dir_batch_size

        for start in range(0, len(directories), batch_size):
            self._token.raise_if_cancelled()

            tasks = [
                asyncio.ensure_future(self._build_node(path, depth + 1))
                for path in directories[start:start + batch_size]
            ]

            # Drain the whole batch so every branch unwinds before this one
            cancelled: Optional[ScanCancelled] = None
            failure: Optional[Exception] = None
            for next_done in asyncio.as_completed(tasks):
                try:
                    child = await next_done
                except ScanCancelled as e:
                    cancelled = cancelled or e
                    continue
                except Exception as e:
                    failure = failure or e
                    continue
                node.add_child(child)

            if failure is not None:
                raise failure
            if cancelled is not None:
                raise cancelled

            self._token.raise_if_cancelled()

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    def _send_progress(self, current_path: str) -> None:
        """Emit a progress snapshot, at most once per ``progress_interval``."""
        if not self._progress_callback or self._root is None:
            return

        now = self._clock()
        if self._last_progress is not None and now - self._last_progress < self.options.progress_interval:
            return
        self._last_progress = now

        percentage = min(round(self._folders_scanned / self.options.percentage_scale * 100), 99)
        self._notify(ScanProgress(
            folders_scanned=self._folders_scanned,
            total_size=self._total_size,
            current_path=current_path,
            percentage=percentage,
            tree=[self._root],
        ))

    def _notify(self, progress: ScanProgress) -> None:
        if self._token.is_cancelled:
            return
        try:
            self._progress_callback(progress)
        except Exception as e:
            logging.warning(f"TreeScanner - Progress callback failed: {e}")
