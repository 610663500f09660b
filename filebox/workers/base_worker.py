"""
Qt worker plumbing for running filebox operations off the UI thread.

A worker wraps one blocking call that produces an OperationResult:
- ``finished`` carries every result, successful or a structured failure
- ``cancelled`` fires instead when the result (or the worker) was cancelled
- ``error`` is reserved for exceptions that escaped the operation
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Optional

from PyQt6.QtCore import QMutex, QMutexLocker, QObject, QThread, pyqtSignal, pyqtSlot

from filebox.core.models import OperationResult


class WorkerState(Enum):
    PENDING = auto()
    RUNNING = auto()
    CANCELLING = auto()
    CANCELLED = auto()
    COMPLETED = auto()
    FAILED = auto()


class WorkerSignals(QObject):
    """Signals emitted from the worker thread."""
    started = pyqtSignal()
    status = pyqtSignal(str)

    # (percentage, 100, current path)
    progress = pyqtSignal(int, int, str)
    # ScanProgress snapshot; its tree is live and read-only
    progress_detail = pyqtSignal(object)

    finished = pyqtSignal(object)       # OperationResult
    cancelled = pyqtSignal()
    error = pyqtSignal(str, str)        # (exception type, message)
    state_changed = pyqtSignal(object)  # WorkerState


class _WorkerMeta(type(QObject), type(ABC)):
    pass


class BaseWorker(QObject, ABC, metaclass=_WorkerMeta):
    """
    Base class for operation workers.

    Subclasses implement ``run_operation``. Move the worker to a
    ``WorkerThread`` or call ``run()`` directly.
    """

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.signals = WorkerSignals()
        self._mutex = QMutex()
        self._state = WorkerState.PENDING
        self._cancel_requested = False
        self._result: Optional[OperationResult] = None
        self._error: Optional[tuple[str, str]] = None

    @property
    def state(self) -> WorkerState:
        with QMutexLocker(self._mutex):
            return self._state

    def _set_state(self, state: WorkerState) -> None:
        with QMutexLocker(self._mutex):
            self._state = state
        self.signals.state_changed.emit(state)

    @property
    def is_cancelled(self) -> bool:
        with QMutexLocker(self._mutex):
            return self._cancel_requested

    @property
    def result(self) -> Optional[OperationResult]:
        return self._result

    @property
    def error(self) -> Optional[tuple[str, str]]:
        return self._error

    def cancel(self) -> None:
        """Request cancellation; subclasses forward it to the running operation."""
        with QMutexLocker(self._mutex):
            self._cancel_requested = True
            running = self._state == WorkerState.RUNNING
        if running:
            self._set_state(WorkerState.CANCELLING)

    @pyqtSlot()
    def run(self) -> None:
        self._set_state(WorkerState.RUNNING)
        self.signals.started.emit()

        try:
            result = self.run_operation()
        except Exception as e:
            logging.exception(f"{type(self).__name__} - Operation raised")
            self._error = (type(e).__name__, str(e))
            self._set_state(WorkerState.FAILED)
            self.signals.error.emit(type(e).__name__, str(e))
            return

        self._result = result
        if result.cancelled or self.is_cancelled:
            self._set_state(WorkerState.CANCELLED)
            self.signals.cancelled.emit()
            return

        if not result.success:
            logging.warning(f"{type(self).__name__} - {result.operation} failed: {result.error}")
        self._set_state(WorkerState.COMPLETED)
        self.signals.finished.emit(result)

    @abstractmethod
    def run_operation(self) -> OperationResult:
        """Perform the blocking call on the worker thread."""


class WorkerThread(QThread):
    """
    Owns a worker and runs it when started.

    Usage:
        thread = WorkerThread(TreeScanWorker("D:\\"))
        thread.worker.signals.finished.connect(show_tree)
        thread.start()
    """

    def __init__(self, worker: BaseWorker, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.worker = worker
        worker.moveToThread(self)

        self.started.connect(worker.run)
        for signal in (worker.signals.finished, worker.signals.cancelled, worker.signals.error):
            signal.connect(self.quit)

    def cancel(self) -> None:
        self.worker.cancel()
