"""
Services: archive and filesystem access, content rendering, settings and
the operation dispatcher.
"""

from filebox.services.archive import ArchiveAccessor
from filebox.services.filesystem import FileSystemAccessor
from filebox.services.file_io import FileIOService, TempFileManager
from filebox.services.operations import OperationDispatcher
from filebox.services.settings import ApplicationSettings, SettingsManager

__all__ = [
    'ArchiveAccessor',
    'FileSystemAccessor',
    'FileIOService',
    'TempFileManager',
    'OperationDispatcher',
    'ApplicationSettings',
    'SettingsManager',
]
