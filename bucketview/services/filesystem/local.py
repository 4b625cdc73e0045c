"""Local filesystem backend: a read-only view rooted at one directory."""

from __future__ import annotations

import logging
import os
import stat as stat_module
from datetime import datetime, timezone
from typing import BinaryIO, List, Optional

from .context import CallContext, check_context
from .exceptions import ConfigurationError
from .interfaces import DirectoryEntry, FileInfo
from .paths import join

logger = logging.getLogger(__name__)

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _mtime(st: os.stat_result) -> datetime:
    return datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)


class LocalFileSystem:
    """Local filesystem implementation of the filesystem contract."""

    def __init__(self, root: str):
        if not root or not os.path.isdir(root):
            raise ConfigurationError(f"local root is not a directory: {root!r}")
        self.root = os.path.abspath(root)

    def resolve_path(self, path: str) -> str:
        """Absolute path of ``path`` under the root; escaping the root reads as missing."""
        rel = (path or '').replace('\\', '/').lstrip('/')
        candidate = os.path.normpath(os.path.join(self.root, rel))
        if candidate != self.root and not candidate.startswith(self.root + os.sep):
            raise FileNotFoundError(f"Path resolves outside root: {path}")
        return candidate

    def is_not_exist(self, err: BaseException) -> bool:
        return isinstance(err, FileNotFoundError)

    def join(self, *segments: str) -> str:
        return join(*segments)

    def stat(self, path: str, ctx: Optional[CallContext] = None) -> FileInfo:
        check_context(ctx, 'stat')
        local_path = self.resolve_path(path)
        st = os.stat(local_path)
        name = os.path.basename(local_path) if local_path != self.root else '/'
        return FileInfo(
            name=name,
            size=st.st_size,
            mod_time=_mtime(st),
            is_dir=stat_module.S_ISDIR(st.st_mode),
        )

    def read_dir(self, path: str, ctx: Optional[CallContext] = None) -> List[DirectoryEntry]:
        check_context(ctx, 'read_dir')
        local_path = self.resolve_path(path)
        entries = []
        with os.scandir(local_path) as it:
            for entry in sorted(it, key=lambda e: e.name):
                try:
                    st = entry.stat()
                    size, mod_time = st.st_size, _mtime(st)
                except FileNotFoundError:
                    # removed between listing and stat
                    size, mod_time = -1, EPOCH
                entries.append(DirectoryEntry(
                    name=entry.name,
                    size=size,
                    mod_time=mod_time,
                    is_dir=entry.is_dir(),
                ))
        logger.debug(f"Listed {len(entries)} entries in {local_path}")
        return entries

    def open(self, path: str, ctx: Optional[CallContext] = None) -> BinaryIO:
        check_context(ctx, 'open')
        return open(self.resolve_path(path), 'rb')

    def size(self, path: str, ctx: Optional[CallContext] = None) -> int:
        check_context(ctx, 'size')
        return os.stat(self.resolve_path(path)).st_size
