"""
Background workers for non-blocking operations.

Provides QThread-based workers for:
- Folder size scans
- File and archive operations

All workers use Qt signals for thread-safe communication
with the UI thread.
"""

from filebox.workers.base_worker import (
    BaseWorker,
    WorkerSignals,
    WorkerState,
    WorkerThread,
)
from filebox.workers.scan_worker import TreeScanWorker
from filebox.workers.operation_worker import OperationWorker

__all__ = [
    # Base
    'BaseWorker',
    'WorkerSignals',
    'WorkerState',
    'WorkerThread',
    # Scan
    'TreeScanWorker',
    # Operations
    'OperationWorker',
]
