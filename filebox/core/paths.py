"""
Virtual path resolution.

A virtual path addresses either the real filesystem or an entry inside a ZIP
archive, e.g. ``C:\\data\\backup.zip/docs/readme.txt``. Separators may be any
mix of ``/`` and the host separator.
"""

from __future__ import annotations

import os
import re

from filebox.core.models import VirtualPath


ARCHIVE_EXTENSION = '.zip'


class PathResolver:
    """Splits virtual path strings into container and internal parts."""

    def __init__(self, separator: str = os.sep):
        self.separator = separator
        self._split = re.compile('[' + re.escape('/' + separator) + ']')

    def parse(self, path: str) -> VirtualPath:
        """
        Parse a path string into a VirtualPath.

        The leftmost segment ending in ``.zip`` (case-insensitive) terminates
        the container path. If at least one non-empty segment follows it,
        the path addresses an archive entry; otherwise it addresses the
        archive file itself and is a plain disk path.

        Args:
            path: Path string to parse

        Returns:
            VirtualPath descriptor
        """
        if not path:
            return VirtualPath.disk()

        segments = self._split.split(str(path))

        for index, segment in enumerate(segments):
            if not segment.lower().endswith(ARCHIVE_EXTENSION):
                continue

            internal = [s for s in segments[index + 1:] if s]
            if not internal:
                return VirtualPath.disk()

            container = self.separator.join(segments[:index + 1])
            return VirtualPath.archive(container, '/'.join(internal))

        return VirtualPath.disk()

    def is_archive_path(self, path: str) -> bool:
        """Check whether a path points inside an archive."""
        return self.parse(path).is_archive_path


def normalize_internal_path(path: str) -> str:
    """Forward slashes, no leading or trailing slash, no empty segments."""
    return '/'.join(s for s in re.split(r'[\\/]', path or '') if s)
