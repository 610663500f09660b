"""
Command line entry point for filebox.

This module handles:
- Command line argument parsing
- Logging configuration
- Settings loading
- Running one operation and printing its result as JSON
- Ctrl+C cancellation of scans
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from filebox import __version__
from filebox.core.folder.scanner import ScanProgress, TreeScanner
from filebox.core.models import OperationKind, OperationResult
from filebox.services.operations import OperationDispatcher
from filebox.services.settings import ApplicationSettings, SettingsManager


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "filebox"
APP_VERSION = __version__

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    operation: OperationKind
    source: Optional[str] = None
    destination: Optional[str] = None
    show_progress: bool = False
    config_file: Optional[str] = None
    log_level: Optional[str] = None
    log_file: Optional[str] = None


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """Custom log formatter with colors for console."""

    COLORS = {
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors:
            color = self.COLORS.get(record.levelno, '')
            return f"{color}{formatted}{self.RESET}"

        return formatted


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure application logging.

    Console output goes to stderr so stdout carries only results.

    Args:
        level: Log level string
        log_file: Optional file path for logging

    Returns:
        Root logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(LogFormatter(use_colors=True))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(LogFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger('chardet').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)

    return root_logger


# =============================================================================
# Exception Handling
# =============================================================================

class ExceptionHandler:
    """Global handler that logs unhandled exceptions."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def handle_exception(self, exc_type: type, exc_value: BaseException, exc_tb) -> None:
        """Handle an unhandled exception."""
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return

        self.logger.critical(
            "Unhandled exception",
            exc_info=(exc_type, exc_value, exc_tb)
        )


# =============================================================================
# Command Line Parsing
# =============================================================================

def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="File and ZIP archive operations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Paths may point inside a ZIP archive: C:\\data\\backup.zip/docs/readme.txt

Examples:
  %(prog)s list ~/Downloads                    List a folder
  %(prog)s list backup.zip/docs                List a folder inside an archive
  %(prog)s read backup.zip/docs/readme.txt     Print an archive entry
  %(prog)s copy report.pdf backup.zip/report.pdf
  %(prog)s move /mnt/a/big.iso /mnt/b/big.iso
  %(prog)s scan / --progress                   Folder sizes with live progress
        """
    )

    parser.add_argument('--version', action='version', version=f"%(prog)s {APP_VERSION}")
    parser.add_argument('--config', dest='config_file', help="Settings file (JSON)")
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help="Logging level (overrides settings)"
    )
    parser.add_argument('--log-file', help="Also write logs to this file")

    commands = parser.add_subparsers(dest='operation', required=True)

    list_cmd = commands.add_parser('list', help="List a folder or archive folder")
    list_cmd.add_argument('path')

    read_cmd = commands.add_parser('read', help="Read a file or archive entry")
    read_cmd.add_argument('path')

    for name, help_text in (('copy', "Copy a file or folder"), ('move', "Move a file or folder on disk")):
        cmd = commands.add_parser(name, help=help_text)
        cmd.add_argument('source')
        cmd.add_argument('destination')

    commands.add_parser('drives', help="List mounted drives")

    scan_cmd = commands.add_parser('scan', help="Compute folder sizes")
    scan_cmd.add_argument('path')
    scan_cmd.add_argument('--progress', action='store_true', help="Report progress on stderr")

    parsed = parser.parse_args(args)

    return CommandLineArgs(
        operation=OperationKind(parsed.operation),
        source=getattr(parsed, 'path', None) or getattr(parsed, 'source', None),
        destination=getattr(parsed, 'destination', None),
        show_progress=getattr(parsed, 'progress', False),
        config_file=parsed.config_file,
        log_level=parsed.log_level,
        log_file=parsed.log_file,
    )


# =============================================================================
# Running
# =============================================================================

def create_dispatcher(settings: ApplicationSettings) -> OperationDispatcher:
    """Build a dispatcher wired to the loaded settings."""
    scanner = TreeScanner(settings.scan.to_options())
    return OperationDispatcher(scanner=scanner, settings=settings.transfer)


def _print_progress(progress: ScanProgress) -> None:
    sys.stderr.write(
        f"\r{progress.percentage:3d}% | {progress.folders_scanned} folders | "
        f"{progress.total_size} bytes | {progress.current_path[-60:]}"
    )
    sys.stderr.flush()


def run_operation(dispatcher: OperationDispatcher, args: CommandLineArgs) -> OperationResult:
    """Run the requested operation; SIGINT cancels a running scan."""
    if args.operation != OperationKind.SCAN:
        return dispatcher.execute_sync(args.operation, args.source, args.destination)

    dispatcher.scanner.set_progress_callback(_print_progress if args.show_progress else None)

    previous = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, lambda signum, frame: dispatcher.cancel())
    try:
        result = asyncio.run(dispatcher.execute(OperationKind.SCAN, args.source))
    finally:
        signal.signal(signal.SIGINT, previous)
        if args.show_progress:
            sys.stderr.write("\n")

    return result


# =============================================================================
# Main Function
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Application main entry point.

    Returns:
        Exit code (0 for success)
    """
    args = parse_arguments(argv)

    settings_manager = SettingsManager(args.config_file)
    settings = settings_manager.settings

    level = args.log_level or settings.logging.level
    log_file = args.log_file or settings.logging.log_file
    logger = setup_logging(level, Path(log_file) if log_file else None)
    logger.debug(f"Starting {APP_NAME} v{APP_VERSION}")

    sys.excepthook = ExceptionHandler(logger).handle_exception

    try:
        result = run_operation(create_dispatcher(settings), args)
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        result = OperationResult.failure(args.operation.value, str(e), diagnostic=traceback.format_exc())

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))

    if result.cancelled:
        return EXIT_CANCELLED
    if result.success and args.source and args.operation == OperationKind.LIST:
        settings.remember_path(args.source)
        settings_manager.save(settings)
    return EXIT_OK if result.success else EXIT_FAILED


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == '__main__':
    sys.exit(main())
