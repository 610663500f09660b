"""
Application settings management.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Callable, Optional

from filebox.core.folder.scanner import DEFAULT_SKIP_DIRECTORIES, ScanOptions


@dataclass
class ScanSettings:
    """Settings for folder size scanning."""
    file_batch_size: int = 100
    dir_batch_size: int = 10
    progress_interval_ms: int = 100
    percentage_scale: int = 1000
    skip_directories: list[str] = field(default_factory=lambda: sorted(DEFAULT_SKIP_DIRECTORIES))

    def to_options(self) -> ScanOptions:
        """Build scanner options from these settings."""
        return ScanOptions(
            file_batch_size=self.file_batch_size,
            dir_batch_size=self.dir_batch_size,
            progress_interval=self.progress_interval_ms / 1000,
            percentage_scale=self.percentage_scale,
            skip_directories=frozenset(self.skip_directories),
        )


@dataclass
class TransferSettings:
    """Settings for copy, move and archive writes."""
    compression: str = "deflated"   # "deflated" or "stored"
    temp_dir: str = ""              # Staging directory; system temp if empty
    default_encoding: str = "utf-8"


@dataclass
class LoggingSettings:
    """Logging settings."""
    level: str = "INFO"
    log_file: str = ""


@dataclass
class ApplicationSettings:
    """Main application settings container."""
    scan: ScanSettings = field(default_factory=ScanSettings)
    transfer: TransferSettings = field(default_factory=TransferSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    recent_paths: list[str] = field(default_factory=list)
    recent_paths_limit: int = 10

    def remember_path(self, path: str) -> None:
        """Move a path to the front of the recent list."""
        if path in self.recent_paths:
            self.recent_paths.remove(path)
        self.recent_paths.insert(0, path)
        del self.recent_paths[self.recent_paths_limit:]


class SettingsManager:
    """Manager for loading/saving application settings."""

    def __init__(self, settings_path: Optional[Path | str] = None):
        self.settings_path = Path(settings_path) if settings_path else self._get_default_path()
        self._settings: Optional[ApplicationSettings] = None
        self._observers: list[Callable[[ApplicationSettings], None]] = []

    @staticmethod
    def _get_default_path() -> Path:
        """Get the default settings file path."""
        if os.name == 'nt':
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'filebox' / 'settings.json'
        config_home = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
        return Path(config_home) / 'filebox' / 'settings.json'

    @property
    def settings(self) -> ApplicationSettings:
        """Get current settings, loading from disk if needed."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> ApplicationSettings:
        """Load settings from disk; defaults if missing or unreadable."""
        if not self.settings_path.exists():
            return ApplicationSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return self._from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logging.warning(f"SettingsManager - Could not load {self.settings_path}, using defaults: {e}")
            return ApplicationSettings()

    def save(self, settings: Optional[ApplicationSettings] = None) -> bool:
        """Save settings to disk."""
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(asdict(settings), f, indent=2)
        except OSError as e:
            logging.error(f"SettingsManager - Could not save {self.settings_path}: {e}")
            return False

        self._settings = settings
        self._notify_observers()
        return True

    def reset(self) -> ApplicationSettings:
        """Restore defaults and persist them."""
        self._settings = ApplicationSettings()
        self.save()
        return self._settings

    def add_observer(self, callback: Callable[[ApplicationSettings], None]) -> None:
        self._observers.append(callback)

    def remove_observer(self, callback: Callable[[ApplicationSettings], None]) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify_observers(self) -> None:
        for callback in self._observers:
            try:
                callback(self._settings)
            except Exception as e:
                logging.warning(f"SettingsManager - Settings observer failed: {e}")

    @staticmethod
    def _section(cls, data: Any):
        """Build a settings section, ignoring unknown keys."""
        if not isinstance(data, dict):
            return cls()
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def _from_dict(self, data: dict) -> ApplicationSettings:
        if not isinstance(data, dict):
            raise TypeError("Settings file must contain a JSON object")

        return ApplicationSettings(
            scan=self._section(ScanSettings, data.get('scan')),
            transfer=self._section(TransferSettings, data.get('transfer')),
            logging=self._section(LoggingSettings, data.get('logging')),
            recent_paths=list(data.get('recent_paths', [])),
            recent_paths_limit=int(data.get('recent_paths_limit', 10)),
        )
