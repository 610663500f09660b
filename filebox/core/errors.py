"""
Exception taxonomy for file and archive operations.

Accessors raise these; the dispatcher and the tree scanner convert them into
structured failure results so nothing escapes the component boundary.
"""

from __future__ import annotations

from typing import Optional

from filebox.core.models import ErrorKind


class FileboxError(Exception):
    """Base class for classified operation errors."""
    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class ArchiveNotFoundError(FileboxError):
    """The ZIP container does not exist or is not a .zip file."""
    kind = ErrorKind.ARCHIVE_NOT_FOUND


class PathNotFoundError(FileboxError):
    """A disk path or an archive entry does not exist."""
    kind = ErrorKind.PATH_NOT_FOUND


class TypeMismatchError(FileboxError):
    """A file was expected where a directory was found, or the reverse."""
    kind = ErrorKind.TYPE_MISMATCH


class PermissionOrLockError(FileboxError):
    """An entry could not be accessed because of permissions or a lock."""
    kind = ErrorKind.PERMISSION_OR_LOCK


class CrossDeviceError(FileboxError):
    """A rename could not cross a filesystem boundary."""
    kind = ErrorKind.CROSS_DEVICE


class InvalidParameterError(FileboxError):
    """A required parameter is missing or malformed."""
    kind = ErrorKind.INVALID_PARAMETERS


class UnsupportedOperationError(FileboxError):
    """The operation is not available for this combination of paths."""
    kind = ErrorKind.UNSUPPORTED


class ScanCancelled(Exception):
    """Unwinds an in-flight tree scan after cancellation was requested."""
    kind = ErrorKind.CANCELLED
