"""
Core data models for the file and archive operation engine.

This module defines all data structures used across the application:
- Virtual path descriptors (disk path vs. path inside a ZIP archive)
- Archive and filesystem entry models
- Folder size tree models
- Operation result records

All models are designed to be:
- UI-agnostic (can be used with any frontend)
- Serializable (``to_dict`` produces the camelCase wire shape)
- Type-hinted for IDE support
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterator, Optional


# =============================================================================
# Enumerations
# =============================================================================

class OperationKind(Enum):
    """Operations served by the dispatcher."""
    LIST = "list"
    READ = "read"
    COPY = "copy"
    MOVE = "move"
    DRIVES = "drives"
    SCAN = "scan"

    @classmethod
    def from_string(cls, value: str) -> Optional['OperationKind']:
        """Resolve an operation name, or None if it is not known."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class EntryKind(Enum):
    """Kind of the object a transfer moved or copied."""
    FILE = "file"
    DIRECTORY = "directory"


class ErrorKind(Enum):
    """Classification of operation failures."""
    ARCHIVE_NOT_FOUND = "archive_not_found"    # Container missing or not .zip
    PATH_NOT_FOUND = "path_not_found"          # Disk path or archive entry missing
    TYPE_MISMATCH = "type_mismatch"            # Expected file, got directory (or vice versa)
    PERMISSION_OR_LOCK = "permission_or_lock"  # Per-entry, skipped during bulk walks
    CROSS_DEVICE = "cross_device"              # Rename across devices, triggers fallback
    CANCELLED = "cancelled"                    # User cancelled a scan
    INVALID_PARAMETERS = "invalid_parameters"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


def now_iso() -> str:
    """Current local time as an ISO-8601 string."""
    return datetime.now().isoformat()


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# =============================================================================
# Path Models
# =============================================================================

@dataclass(frozen=True)
class VirtualPath:
    """
    A path that addresses either the real filesystem or a ZIP archive entry.

    Either ``is_archive_path`` is True and both other fields are non-empty,
    or it is False and both are empty.
    """
    is_archive_path: bool = False
    container_path: str = ""
    internal_path: str = ""

    def __post_init__(self):
        if self.is_archive_path:
            if not self.container_path or not self.internal_path:
                raise ValueError("Archive paths need a container and an internal path")
        elif self.container_path or self.internal_path:
            raise ValueError("Disk paths carry no container or internal path")

    @classmethod
    def disk(cls) -> 'VirtualPath':
        return cls()

    @classmethod
    def archive(cls, container_path: str, internal_path: str) -> 'VirtualPath':
        return cls(True, container_path, internal_path)


# =============================================================================
# Entry Models
# =============================================================================

@dataclass
class ArchiveEntry:
    """One entry inside a ZIP container."""
    name: str
    internal_path: str
    size: int = 0
    is_directory: bool = False
    modified: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'path': self.internal_path,
            'size': self.size,
            'modified': _iso(self.modified),
            'isDirectory': self.is_directory,
            'isFile': not self.is_directory,
        }


@dataclass
class FileSystemEntry:
    """Metadata for a file or directory on disk."""
    name: str
    path: str
    size: int = 0
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    is_directory: bool = False
    is_file: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'path': self.path,
            'size': self.size,
            'created': _iso(self.created),
            'modified': _iso(self.modified),
            'isDirectory': self.is_directory,
            'isFile': self.is_file,
        }


@dataclass
class DirectoryListing:
    """Entries of one disk directory."""
    path: str
    entries: list[FileSystemEntry] = field(default_factory=list)
    total_items: int = 0

    @property
    def directories(self) -> list[FileSystemEntry]:
        return [e for e in self.entries if e.is_directory]

    @property
    def files(self) -> list[FileSystemEntry]:
        return [e for e in self.entries if not e.is_directory]


# =============================================================================
# Folder Size Tree
# =============================================================================

@dataclass
class ScanNode:
    """
    A directory in a size tree.

    ``size``, ``file_count`` and ``folder_count`` include the node's own
    files plus the totals of every child. Each node owns its children.
    """
    name: str
    path: str
    depth: int = 0
    size: int = 0
    file_count: int = 0
    folder_count: int = 0
    children: list['ScanNode'] = field(default_factory=list)

    def add_child(self, child: 'ScanNode') -> None:
        """Attach a finished child and roll its totals into this node."""
        self.children.append(child)
        self.size += child.size
        self.file_count += child.file_count
        self.folder_count += child.folder_count

    def iter_all(self) -> Iterator['ScanNode']:
        """Iterate over this node and all descendants."""
        yield self
        for child in self.children:
            yield from child.iter_all()

    def find(self, path: str) -> Optional['ScanNode']:
        """Find a node by its full path."""
        for node in self.iter_all():
            if node.path == path:
                return node
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'path': self.path,
            'size': self.size,
            'children': [child.to_dict() for child in self.children],
            'depth': self.depth,
            'fileCount': self.file_count,
            'folderCount': self.folder_count,
        }


# =============================================================================
# Operation Results
# =============================================================================

@dataclass
class OperationResult:
    """
    Base result of every operation.

    Failures carry ``error`` and ``error_kind``; unclassified failures also
    carry a ``diagnostic`` traceback.
    """
    success: bool
    operation: str
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    diagnostic: Optional[str] = None
    cancelled: bool = False
    timestamp: str = field(default_factory=now_iso)

    @classmethod
    def failure(
        cls,
        operation: str,
        error: str,
        error_kind: ErrorKind = ErrorKind.UNKNOWN,
        diagnostic: Optional[str] = None,
        **fields: Any
    ) -> 'OperationResult':
        """Build a failed result of this record type."""
        return cls(
            success=False,
            operation=operation,
            error=error,
            error_kind=error_kind,
            diagnostic=diagnostic,
            cancelled=error_kind == ErrorKind.CANCELLED,
            **fields,
        )

    def _payload(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {'success': self.success, 'operation': self.operation}
        if self.success:
            data.update(self._payload())
            data['timestamp'] = self.timestamp
            return data

        data['error'] = self.error
        if self.error_kind is not None:
            data['errorKind'] = self.error_kind.value
        if self.cancelled:
            data['cancelled'] = True
        if self.diagnostic:
            data['diagnostic'] = self.diagnostic
        return data


@dataclass
class ListResult(OperationResult):
    """Directory listing, on disk or inside an archive."""
    path: str = ""
    total_items: int = 0
    directories: list[dict[str, Any]] = field(default_factory=list)
    files: list[dict[str, Any]] = field(default_factory=list)

    def _payload(self) -> dict[str, Any]:
        return {
            'path': self.path,
            'totalItems': self.total_items,
            'directories': self.directories,
            'files': self.files,
            'summary': {
                'totalFiles': len(self.files),
                'totalDirectories': len(self.directories),
            },
        }


@dataclass
class ReadResult(OperationResult):
    """File content, as text or as an image data URI."""
    path: str = ""
    content: str = ""
    size: int = 0
    modified: Optional[str] = None
    is_image: bool = False

    def _payload(self) -> dict[str, Any]:
        return {
            'path': self.path,
            'content': self.content,
            'size': self.size,
            'modified': self.modified,
            'isImage': self.is_image,
        }


@dataclass
class TransferResult(OperationResult):
    """Outcome of a copy or move."""
    source: str = ""
    destination: str = ""
    type: EntryKind = EntryKind.FILE
    size: Optional[int] = None

    def _payload(self) -> dict[str, Any]:
        data = {
            'source': self.source,
            'destination': self.destination,
            'type': self.type.value,
        }
        if self.size is not None:
            data['size'] = self.size
        return data


@dataclass
class DrivesResult(OperationResult):
    """Mounted filesystem roots."""
    drives: list[dict[str, str]] = field(default_factory=list)

    def _payload(self) -> dict[str, Any]:
        return {'drives': self.drives}


@dataclass
class TreeScanResult(OperationResult):
    """Final outcome of a folder size scan."""
    tree: list[ScanNode] = field(default_factory=list)
    total_size: int = 0
    folders_scanned: int = 0

    @property
    def root(self) -> Optional[ScanNode]:
        return self.tree[0] if self.tree else None

    def _payload(self) -> dict[str, Any]:
        return {
            'tree': [node.to_dict() for node in self.tree],
            'totalSize': self.total_size,
            'foldersScanned': self.folders_scanned,
        }
