import json
import logging
import sys

import pytest

import main
from filebox.core.models import OperationKind


@pytest.fixture
def run_cli(tmp_path, monkeypatch, capsys):
    """Invoke main() with an isolated settings file; returns (exit code, parsed stdout)."""
    config = tmp_path / "settings.json"
    monkeypatch.setattr(main, "setup_logging", lambda level, log_file=None: logging.getLogger("filebox.cli"))
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)

    def run(*argv):
        code = main.main(["--config", str(config), *argv])
        return code, json.loads(capsys.readouterr().out)

    run.config = config
    return run


class TestParseArguments:
    """Command line parsing."""

    def test_copy(self):
        args = main.parse_arguments(["--log-level", "DEBUG", "copy", "a.txt", "b.zip/a.txt"])

        assert args.operation == OperationKind.COPY
        assert args.source == "a.txt"
        assert args.destination == "b.zip/a.txt"
        assert args.log_level == "DEBUG"

    def test_scan_with_progress(self):
        args = main.parse_arguments(["scan", "/data", "--progress"])

        assert args.operation == OperationKind.SCAN
        assert args.source == "/data"
        assert args.show_progress is True

    def test_drives_takes_no_path(self):
        args = main.parse_arguments(["drives"])

        assert args.source is None
        assert args.destination is None

    def test_operation_required(self):
        with pytest.raises(SystemExit):
            main.parse_arguments([])


class TestMain:
    """End-to-end runs printing JSON results."""

    def test_list_prints_result_and_remembers_path(self, run_cli, tmp_path):
        folder = tmp_path / "data"
        folder.mkdir()
        (folder / "a.txt").write_text("a")

        code, output = run_cli("list", str(folder))

        assert code == main.EXIT_OK
        assert output["success"] is True
        assert output["totalItems"] == 1
        saved = json.loads(run_cli.config.read_text())
        assert saved["recent_paths"] == [str(folder)]

    def test_failure_exit_code(self, run_cli, tmp_path):
        code, output = run_cli("read", str(tmp_path / "missing.txt"))

        assert code == main.EXIT_FAILED
        assert output["success"] is False
        assert output["errorKind"] == "path_not_found"

    def test_scan(self, run_cli, tmp_path):
        (tmp_path / "data").mkdir()
        (tmp_path / "data" / "f.bin").write_bytes(b"1234")

        code, output = run_cli("scan", str(tmp_path / "data"))

        assert code == main.EXIT_OK
        assert output["totalSize"] == 4
        assert output["tree"][0]["fileCount"] == 1

    def test_cancelled_scan_exit_code(self, run_cli, tmp_path, monkeypatch):
        (tmp_path / "data").mkdir()
        original = main.create_dispatcher

        def cancelling_dispatcher(settings):
            dispatcher = original(settings)
            dispatcher.scanner.token.cancel()
            monkeypatch.setattr(dispatcher.scanner, "reset_cancellation", lambda: None)
            return dispatcher

        monkeypatch.setattr(main, "create_dispatcher", cancelling_dispatcher)

        code, output = run_cli("scan", str(tmp_path / "data"))

        assert code == main.EXIT_CANCELLED
        assert output["cancelled"] is True
