"""
Worker for single dispatcher operations (list, read, copy, move, drives).
"""

from __future__ import annotations

from typing import Optional

from PyQt6.QtCore import QObject

from filebox.core.models import OperationKind, OperationResult
from filebox.services.operations import OperationDispatcher
from filebox.workers.base_worker import BaseWorker


class OperationWorker(BaseWorker):
    """Runs one dispatcher operation on the worker thread."""

    def __init__(
        self,
        operation: OperationKind | str,
        source: Optional[str] = None,
        destination: Optional[str] = None,
        dispatcher: Optional[OperationDispatcher] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.operation = operation
        self.source = source
        self.destination = destination
        self.dispatcher = dispatcher or OperationDispatcher()

    def run_operation(self) -> OperationResult:
        name = self.operation.value if isinstance(self.operation, OperationKind) else self.operation
        self.signals.status.emit(f"Running {name}...")
        return self.dispatcher.execute_sync(self.operation, self.source, self.destination)

    def cancel(self) -> None:
        # Only scans stop early; copies and moves run to completion
        super().cancel()
        self.dispatcher.cancel()
