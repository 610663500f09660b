"""
File content service.

Handles:
- Encoding detection for text content
- Image detection and data URI rendering
- Staging files for archive-to-archive transfers
"""

from __future__ import annotations

import base64
import logging
import os
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

import chardet

from filebox.core.errors import PathNotFoundError, TypeMismatchError


@dataclass
class FileContent:
    """Rendered content of a file: text, or a data URI for images."""
    content: str
    size: int
    is_image: bool = False
    encoding: Optional[str] = None
    mime_type: Optional[str] = None


class FileIOService:
    """Service for turning raw file bytes into displayable content."""

    # Extensions rendered as images; anything unmapped falls back to image/jpeg
    IMAGE_MIME_TYPES = {
        '.jpg': 'image/jpeg',
        '.jpeg': 'image/jpeg',
        '.png': 'image/png',
        '.gif': 'image/gif',
        '.bmp': 'image/bmp',
        '.webp': 'image/webp',
        '.svg': 'image/svg+xml',
        '.ico': 'image/x-icon',
    }
    DEFAULT_IMAGE_MIME = 'image/jpeg'

    def __init__(
        self,
        default_encoding: str = 'utf-8',
        fallback_encoding: str = 'latin-1',
        min_confidence: float = 0.7
    ):
        self.default_encoding = default_encoding
        self.fallback_encoding = fallback_encoding
        self.min_confidence = min_confidence

    @staticmethod
    def _extension(name: str) -> str:
        return PurePosixPath(str(name).replace('\\', '/')).suffix.lower()

    def is_image(self, name: str) -> bool:
        """Check if a file name has an image extension."""
        return self._extension(name) in self.IMAGE_MIME_TYPES

    def mime_type_for(self, name: str) -> str:
        """MIME type for an image file name."""
        return self.IMAGE_MIME_TYPES.get(self._extension(name), self.DEFAULT_IMAGE_MIME)

    def to_data_uri(self, data: bytes, name: str) -> str:
        """Encode image bytes as a ``data:<mime>;base64,`` URI."""
        encoded = base64.b64encode(data).decode('ascii')
        return f"data:{self.mime_type_for(name)};base64,{encoded}"

    def decode(self, raw: bytes, encoding: Optional[str] = None) -> tuple[str, str]:
        """
        Decode bytes to text.

        Args:
            raw: Raw content
            encoding: Force a specific encoding (auto-detect if None)

        Returns:
            Tuple of (text, encoding used)
        """
        detected = encoding
        if detected is None:
            if raw.startswith(b'\xef\xbb\xbf'):
                detected = 'utf-8-sig'
            elif raw.startswith(b'\xff\xfe'):
                detected = 'utf-16-le'
            elif raw.startswith(b'\xfe\xff'):
                detected = 'utf-16-be'
            else:
                detected = self._detect_encoding(raw)

        try:
            return raw.decode(detected), detected
        except (UnicodeDecodeError, LookupError):
            logging.debug(f"FileIOService - Decoding as {detected} failed, using {self.fallback_encoding}")
            return raw.decode(self.fallback_encoding, errors='replace'), self.fallback_encoding

    def render(self, raw: bytes, name: str) -> FileContent:
        """Render raw bytes as text, or as a data URI for images."""
        if self.is_image(name):
            return FileContent(
                content=self.to_data_uri(raw, name),
                size=len(raw),
                is_image=True,
                mime_type=self.mime_type_for(name),
            )

        text, encoding = self.decode(raw)
        return FileContent(content=text, size=len(raw), encoding=encoding)

    def read_file(self, path: Path | str) -> FileContent:
        """
        Read a disk file and render its content.

        Raises:
            PathNotFoundError: The file does not exist
            TypeMismatchError: The path is not a regular file
        """
        path = Path(path)

        if not path.exists():
            raise PathNotFoundError(f"File does not exist: {path}", str(path))

        if not path.is_file():
            raise TypeMismatchError(f"Path is not a file: {path}", str(path))

        return self.render(path.read_bytes(), path.name)

    def _detect_encoding(self, content: bytes) -> str:
        """Detect encoding of content."""
        if not content:
            return self.default_encoding

        result = chardet.detect(content)

        if result['confidence'] > self.min_confidence and result['encoding']:
            encoding = result['encoding'].lower()
            if encoding == 'ascii':
                return 'utf-8'  # ASCII is subset of UTF-8
            return encoding

        return self.default_encoding


class TempFileManager:
    """Manager for staging files with automatic cleanup."""

    def __init__(self, prefix: str = "filebox_", directory: Optional[Path | str] = None):
        self.prefix = prefix
        self.directory = Path(directory) if directory else Path(tempfile.gettempdir())
        self._temp_files: list[Path] = []

    def staging_path(self, basename: str) -> Path:
        """
        Reserve a unique path for a staged copy of ``basename``.

        The name combines a nanosecond timestamp and a random token so that
        concurrent staging of identically named entries does not collide.
        """
        safe_name = os.path.basename(basename.replace('\\', '/').rstrip('/')) or 'entry'
        token = f"{time.time_ns()}_{uuid.uuid4().hex[:8]}"
        path = self.directory / f"{self.prefix}{token}_{safe_name}"
        self._temp_files.append(path)
        return path

    def cleanup(self):
        """Remove every staged file."""
        for path in self._temp_files:
            try:
                if path.exists():
                    path.unlink()
            except OSError as e:
                logging.warning(f"TempFileManager - Cleanup failed for temp file {path}: {e}")

        self._temp_files.clear()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.cleanup()
