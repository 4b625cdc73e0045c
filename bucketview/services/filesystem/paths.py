"""Path helpers: joining, segment splitting, traversal checks and root parsing."""

from __future__ import annotations

import posixpath
from typing import List

from .interfaces import AccountRoot, BucketRoot, LocalRoot, RootSpec

S3_SCHEME = 's3://'


def join(*segments: str) -> str:
    """Join path segments with '/' and clean the result ('' if nothing left)."""
    parts = [s for s in segments if s]
    if not parts:
        return ''
    joined = posixpath.normpath('/'.join(parts))
    if joined.startswith('//'):
        joined = '/' + joined.lstrip('/')
    return '' if joined == '.' else joined


def split_segments(path: str) -> List[str]:
    """Non-empty segments of a slash-delimited path; root yields []."""
    return [part for part in (path or '').split('/') if part]


def check_path(path: str) -> bool:
    """True if the path contains no '.' or '..' elements and no duplicate slashes."""
    if path in ('', '/'):
        return True
    if path == '..' or path.startswith(('../', '//')):
        return False
    return path == posixpath.normpath(path)


def parse_root(value: str) -> RootSpec:
    """Map a configured root string onto one of the root variants.

    ``s3://`` serves every bucket in the account, ``s3://bucket/prefix``
    serves one bucket under an optional prefix, anything else is a local path.
    """
    raw = (value or '').strip()
    if not raw.startswith(S3_SCHEME):
        return LocalRoot(path=raw)
    tail = raw[len(S3_SCHEME):].strip('/')
    if not tail:
        return AccountRoot()
    bucket, _, prefix = tail.partition('/')
    return BucketRoot(bucket=bucket, prefix=prefix.strip('/'))
