"""Read-only filesystem facade over local disk and S3-compatible object storage."""

from .context import CallContext
from .exceptions import (
    BackendError,
    ConfigurationError,
    FileSystemError,
    NotFoundError,
    OperationCancelled,
    PartialListingError,
)
from .interfaces import AccountRoot, BucketDescriptor, BucketRoot, DirectoryEntry, FileInfo, FileSystem, LocalRoot
from .local import LocalFileSystem
from .paths import check_path, join, parse_root
from .reader import SeekableRangeReader
from .routing import RegionRouter
from .s3 import MAX_LISTING_PAGES, ObjectStoreFileSystem, is_not_found_error
from .service import FileSystemRegistry, get_filesystem_registry, reset_filesystem_registry_singleton

__all__ = [
    'AccountRoot',
    'BackendError',
    'BucketDescriptor',
    'BucketRoot',
    'CallContext',
    'ConfigurationError',
    'DirectoryEntry',
    'FileInfo',
    'FileSystem',
    'FileSystemError',
    'FileSystemRegistry',
    'LocalFileSystem',
    'LocalRoot',
    'MAX_LISTING_PAGES',
    'NotFoundError',
    'ObjectStoreFileSystem',
    'OperationCancelled',
    'PartialListingError',
    'RegionRouter',
    'SeekableRangeReader',
    'check_path',
    'get_filesystem_registry',
    'is_not_found_error',
    'join',
    'parse_root',
    'reset_filesystem_registry_singleton',
]
