"""Registry of configured filesystems, resolved per site."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Mapping, Optional

from .exceptions import ConfigurationError
from .factory import FileSystemSettings, build_filesystems, load_filesystem_settings_from_env
from .interfaces import FileSystem

logger = logging.getLogger(__name__)


class FileSystemRegistry:
    """One filesystem per configured root, built once and shared read-only."""

    def __init__(self, filesystems: Mapping[str, FileSystem], default_root: str = '',
                 sites: Optional[Mapping[str, str]] = None):
        sites = dict(sites or {})
        unknown = sorted({root for root in sites.values() if root not in filesystems})
        if unknown:
            raise ConfigurationError(f"sites reference unconfigured roots: {', '.join(unknown)}")
        if default_root and default_root not in filesystems:
            raise ConfigurationError(f"default root {default_root!r} is not configured")
        self._filesystems: Dict[str, FileSystem] = dict(filesystems)
        self._default_root = default_root
        self._sites = {host.lower(): root for host, root in sites.items()}

    @classmethod
    def from_settings(cls, settings: Optional[FileSystemSettings] = None, **kwargs) -> 'FileSystemRegistry':
        settings = settings or load_filesystem_settings_from_env()
        filesystems = build_filesystems(settings, **kwargs)
        logger.info(f"Configured {len(filesystems)} file systems and {len(settings.sites)} sites")
        return cls(filesystems, default_root=settings.root, sites=settings.sites)

    @property
    def roots(self):
        return tuple(self._filesystems)

    def get(self, root: str) -> FileSystem:
        try:
            return self._filesystems[root]
        except KeyError:
            raise ConfigurationError(f"no file system configured for root {root!r}") from None

    def for_site(self, host: Optional[str]) -> Optional[FileSystem]:
        """Filesystem serving ``host`` (port ignored), else the default root's, else None."""
        name = (host or '').split(':', 1)[0].lower()
        root = self._sites.get(name, self._default_root)
        if not root:
            return None
        return self._filesystems[root]


_registry_singleton: Optional[FileSystemRegistry] = None
_registry_singleton_lock = threading.Lock()


def get_filesystem_registry() -> FileSystemRegistry:
    global _registry_singleton
    if _registry_singleton is None:
        with _registry_singleton_lock:
            if _registry_singleton is None:
                _registry_singleton = FileSystemRegistry.from_settings()
    return _registry_singleton


def reset_filesystem_registry_singleton() -> None:
    global _registry_singleton
    with _registry_singleton_lock:
        _registry_singleton = None
