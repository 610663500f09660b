import pytest

pytest.importorskip("PyQt6.QtCore")

from filebox.core.folder.scanner import ScanOptions, TreeScanner
from filebox.core.models import ErrorKind, TreeScanResult
from filebox.workers import OperationWorker, TreeScanWorker, WorkerState


class TestTreeScanWorker:
    """Running scans through the Qt worker."""

    def test_scan_finishes_with_result(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "a.txt").write_bytes(b"x" * 12)
        worker = TreeScanWorker(str(tmp_path), ScanOptions(progress_interval=0))
        finished, progress, details = [], [], []
        worker.signals.finished.connect(finished.append)
        worker.signals.progress.connect(lambda current, total, message: progress.append((current, total)))
        worker.signals.progress_detail.connect(details.append)

        worker.run()

        assert worker.state == WorkerState.COMPLETED
        assert len(finished) == 1
        result = finished[0]
        assert isinstance(result, TreeScanResult)
        assert result.root.size == 12
        assert progress[-1] == (100, 100)
        assert all(total == 100 for _, total in progress)
        assert details[-1].percentage == 100

    def test_cancel_emits_cancelled(self, tmp_path):
        for i in range(5):
            (tmp_path / f"d{i}").mkdir()
        scanner = TreeScanner(ScanOptions(progress_interval=0))
        worker = TreeScanWorker(str(tmp_path), scanner=scanner)
        cancelled, finished, errors = [], [], []
        worker.signals.cancelled.connect(lambda: cancelled.append(True))
        worker.signals.finished.connect(finished.append)
        worker.signals.error.connect(lambda kind, message: errors.append(kind))
        worker.signals.progress_detail.connect(lambda info: worker.cancel())

        worker.run()

        assert cancelled == [True]
        assert finished == []
        assert errors == []
        assert worker.state == WorkerState.CANCELLED
        assert worker.result.cancelled is True
        assert worker.result.error_kind == ErrorKind.CANCELLED

    def test_cancel_before_run_skips_the_scan(self, tmp_path):
        (tmp_path / "a.txt").write_bytes(b"x")
        worker = TreeScanWorker(str(tmp_path), ScanOptions(progress_interval=0))
        cancelled, finished, progress = [], [], []
        worker.signals.cancelled.connect(lambda: cancelled.append(True))
        worker.signals.finished.connect(finished.append)
        worker.signals.progress_detail.connect(progress.append)

        worker.cancel()
        worker.run()

        assert cancelled == [True]
        assert finished == []
        assert progress == []
        assert worker.state == WorkerState.CANCELLED
        assert worker.result.tree == []
        assert worker.result.error_kind == ErrorKind.CANCELLED


class TestOperationWorker:
    """Running dispatcher operations through the Qt worker."""

    def test_success(self, tmp_path):
        (tmp_path / "a.txt").write_text("hello")
        worker = OperationWorker("read", str(tmp_path / "a.txt"))
        finished = []
        worker.signals.finished.connect(finished.append)

        worker.run()

        assert finished[0].content == "hello"

    def test_structured_failure_is_a_result(self, tmp_path):
        worker = OperationWorker("list", str(tmp_path / "missing"))
        finished, errors = [], []
        worker.signals.finished.connect(finished.append)
        worker.signals.error.connect(lambda kind, message: errors.append(kind))

        worker.run()

        assert errors == []
        assert finished[0].success is False
        assert finished[0].error_kind == ErrorKind.PATH_NOT_FOUND
        assert worker.state == WorkerState.COMPLETED

    def test_unexpected_exception_emits_error(self):
        class ExplodingDispatcher:
            def execute_sync(self, operation, source, destination):
                raise RuntimeError("dispatcher exploded")

        worker = OperationWorker("list", "/tmp", dispatcher=ExplodingDispatcher())
        finished, errors = [], []
        worker.signals.finished.connect(finished.append)
        worker.signals.error.connect(lambda kind, message: errors.append((kind, message)))

        worker.run()

        assert finished == []
        assert errors == [("RuntimeError", "dispatcher exploded")]
        assert worker.state == WorkerState.FAILED
