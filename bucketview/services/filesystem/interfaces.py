"""Filesystem contract, root variants and shared value types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, List, Optional, Protocol, Union

from .context import CallContext
from .exceptions import ConfigurationError


@dataclass(frozen=True)
class FileInfo:
    """Metadata for a single path, built fresh on every call."""

    name: str
    size: int
    mod_time: datetime
    is_dir: bool


@dataclass(frozen=True)
class DirectoryEntry:
    """One entry of a directory listing."""

    name: str
    size: int
    mod_time: datetime
    is_dir: bool


@dataclass(frozen=True)
class BucketDescriptor:
    """Bucket facts gathered once at startup."""

    name: str
    region: str
    creation_date: datetime


@dataclass(frozen=True)
class LocalRoot:
    path: str


@dataclass(frozen=True)
class BucketRoot:
    """A single bucket, optionally scoped under a fixed key prefix."""

    bucket: str
    prefix: str = ''

    def __post_init__(self):
        if not self.bucket:
            raise ConfigurationError(f"invalid configuration with bucket {self.bucket!r} and prefix {self.prefix!r}")


@dataclass(frozen=True)
class AccountRoot:
    """Every bucket visible to the account, one top-level directory each."""


RootSpec = Union[LocalRoot, BucketRoot, AccountRoot]


class FileSystem(Protocol):
    """Capability set shared by the local and object-store backends."""

    def is_not_exist(self, err: BaseException) -> bool:
        ...

    def join(self, *segments: str) -> str:
        ...

    def stat(self, path: str, ctx: Optional[CallContext] = None) -> FileInfo:
        ...

    def read_dir(self, path: str, ctx: Optional[CallContext] = None) -> List[DirectoryEntry]:
        ...

    def open(self, path: str, ctx: Optional[CallContext] = None) -> BinaryIO:
        ...

    def size(self, path: str, ctx: Optional[CallContext] = None) -> int:
        ...
