"""
Folder size scanning.

Provides functionality for:
- Recursive, bounded-concurrency directory walks
- Aggregate size trees
- Cancellation and throttled progress
"""

from filebox.core.folder.scanner import (
    CancellationToken,
    ScanOptions,
    ScanProgress,
    ScanState,
    TreeScanner,
)

__all__ = [
    'CancellationToken',
    'ScanOptions',
    'ScanProgress',
    'ScanState',
    'TreeScanner',
]
