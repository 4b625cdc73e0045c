"""
Custom exceptions for filesystem backends.
"""

from typing import Optional


class FileSystemError(Exception):
    """Base exception for filesystem errors."""
    pass


class ConfigurationError(FileSystemError):
    """Invalid filesystem configuration, raised at construction time."""
    pass


class OperationCancelled(FileSystemError):
    """The caller's context was cancelled or its deadline passed."""
    pass


class BackendError(FileSystemError):
    """Object storage call failed (network, authentication, permission, ...)."""

    def __init__(self, message: str, operation: str = None, bucket: str = None,
                 key: Optional[str] = None, status_code: int = None):
        super().__init__(message)
        self.operation = operation
        self.bucket = bucket
        self.key = key
        self.status_code = status_code


class NotFoundError(BackendError):
    """Bucket or object does not exist."""
    pass


class PartialListingError(BackendError):
    """A paginated listing failed after at least one page was fetched."""

    def __init__(self, message: str, pages_fetched: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.pages_fetched = pages_fetched
