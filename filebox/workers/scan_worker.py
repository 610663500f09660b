"""
Worker for folder size scans.
"""

from __future__ import annotations

from typing import Optional

from PyQt6.QtCore import QObject

from filebox.core.folder.scanner import ScanOptions, ScanProgress, TreeScanner
from filebox.core.models import ErrorKind, OperationKind, TreeScanResult
from filebox.workers.base_worker import BaseWorker


class TreeScanWorker(BaseWorker):
    """
    Builds a folder size tree on the worker thread.

    Forwards the scanner's throttled progress; ``cancel()`` sets the
    scanner's token, so the scan ends with a cancelled result.
    """

    def __init__(
        self,
        root_path: str,
        options: Optional[ScanOptions] = None,
        scanner: Optional[TreeScanner] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.root_path = root_path
        self.scanner = scanner or TreeScanner(options)

    def run_operation(self) -> TreeScanResult:
        # The scanner clears its token when a scan starts
        if self.is_cancelled:
            return TreeScanResult.failure(OperationKind.SCAN.value, "Operation cancelled", ErrorKind.CANCELLED)
        self.signals.status.emit(f"Scanning {self.root_path}...")
        return self.scanner.scan_sync(self.root_path, self._on_progress)

    def _on_progress(self, progress: ScanProgress) -> None:
        self.signals.progress.emit(progress.percentage, 100, progress.current_path)
        self.signals.progress_detail.emit(progress)

    def cancel(self) -> None:
        super().cancel()
        self.scanner.cancel()
