"""S3-compatible object storage backend (AWS S3 / MinIO).

Directories are synthesized from ``/``-delimited listings: common prefixes
become directories, and so does every zero-byte object. The latter follows the
convention of consoles that create empty placeholder objects for folders; a
genuinely empty file is therefore also reported as a directory.
"""

from __future__ import annotations

import logging
from contextlib import closing
from datetime import datetime, timezone
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple, Union

from botocore.exceptions import BotoCoreError, ClientError

from .context import CallContext, check_context
from .exceptions import BackendError, ConfigurationError, NotFoundError, PartialListingError
from .interfaces import AccountRoot, BucketRoot, DirectoryEntry, FileInfo
from .paths import join, split_segments
from .reader import SeekableRangeReader
from .routing import RegionRouter

logger = logging.getLogger(__name__)

# Hard ceiling on listing pages per read_dir call.
MAX_LISTING_PAGES = 20
MAX_KEYS_PER_PAGE = 1000
NOT_FOUND_CODES = ('404', 'NoSuchKey', 'NoSuchBucket', 'NotFound')

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _status_code(exc: ClientError) -> Optional[int]:
    response = getattr(exc, 'response', {}) or {}
    return (response.get('ResponseMetadata') or {}).get('HTTPStatusCode')


def _is_not_found_client_error(exc: ClientError) -> bool:
    response = getattr(exc, 'response', {}) or {}
    error_code = str((response.get('Error') or {}).get('Code') or '')
    return _status_code(exc) == 404 or error_code in NOT_FOUND_CODES


def is_not_found_error(err: Optional[BaseException]) -> bool:
    """True if ``err`` or anything it was raised from is a not-found response.

    Other backend errors, including a listing that failed part way, are never
    not-found even when the call that failed answered 404.
    """
    seen = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        if isinstance(err, NotFoundError):
            return True
        if isinstance(err, BackendError):
            return False
        if isinstance(err, ClientError) and _is_not_found_client_error(err):
            return True
        err = err.__cause__
    return False


def _base_name(path: str) -> str:
    segments = split_segments(path)
    return segments[-1] if segments else '/'


class ObjectStoreFileSystem:
    """Read-only filesystem over one bucket, or over every bucket of an account.

    With ``bucket`` unset the first path segment names the bucket and the root
    lists the account's buckets. With ``bucket`` set, paths map to keys under
    the optional ``prefix``. Instances hold no per-request state and may be
    shared between threads.
    """

    def __init__(self, router: RegionRouter, bucket: Optional[str] = None, prefix: str = '',
                 bucket_creation_dates: Optional[Mapping[str, datetime]] = None,
                 max_entries: int = -1):
        bucket = (bucket or '').strip() or None
        prefix = (prefix or '').strip('/')
        if bucket is None and prefix:
            raise ConfigurationError(f"invalid configuration with bucket {bucket!r} and prefix {prefix!r}")
        if max_entries < -1:
            raise ConfigurationError(f"max_entries must be -1 (unlimited) or >= 0, got {max_entries}")
        self.router = router
        self.bucket = bucket
        self.prefix = prefix
        self.max_entries = max_entries
        self.bucket_creation_dates = MappingProxyType(dict(bucket_creation_dates or {}))
        self.earliest_creation_date = min(self.bucket_creation_dates.values(), default=EPOCH)

    @classmethod
    def from_root(cls, root: Union[BucketRoot, AccountRoot], router: RegionRouter,
                  bucket_creation_dates: Optional[Mapping[str, datetime]] = None,
                  max_entries: int = -1) -> 'ObjectStoreFileSystem':
        if isinstance(root, BucketRoot):
            return cls(router, bucket=root.bucket, prefix=root.prefix,
                       bucket_creation_dates=bucket_creation_dates, max_entries=max_entries)
        if isinstance(root, AccountRoot):
            return cls(router, bucket_creation_dates=bucket_creation_dates, max_entries=max_entries)
        raise TypeError(f"Unsupported root for object storage: {root!r}")

    @property
    def _limited(self) -> bool:
        return self.max_entries != -1

    def _creation_date(self, bucket: Optional[str]) -> datetime:
        return self.bucket_creation_dates.get(bucket, EPOCH)

    def resolve(self, path: str) -> Tuple[Optional[str], str]:
        """Return the (bucket, key) a virtual path addresses."""
        if self.bucket is None:
            segments = split_segments(path)
            if not segments:
                return None, ''
            return segments[0], '/'.join(segments[1:])
        return self.bucket, join(self.prefix, path).lstrip('/')

    def _entry_name(self, bucket: str, key: str) -> str:
        if self.bucket is None:
            return f"{bucket}/{key}"
        if self.prefix and key.startswith(self.prefix + '/'):
            return key[len(self.prefix) + 1:]
        return key

    def _call(self, ctx: Optional[CallContext], operation: str, bucket: Optional[str],
              key: Optional[str] = None, **params):
        check_context(ctx, operation)
        client = self.router.client_for(bucket)
        location = f"{bucket}/{key}" if key else (bucket or 'account')
        logger.debug(f"{operation} {location} (region {self.router.region_for(bucket)})")
        try:
            return getattr(client, operation)(**params)
        except ClientError as exc:
            error_cls = NotFoundError if _is_not_found_client_error(exc) else BackendError
            raise error_cls(
                f"{operation} failed for {location}: {exc}",
                operation=operation, bucket=bucket, key=key, status_code=_status_code(exc),
            ) from exc
        except BotoCoreError as exc:
            raise BackendError(
                f"{operation} failed for {location}: {exc}",
                operation=operation, bucket=bucket, key=key,
            ) from exc

    def is_not_exist(self, err: BaseException) -> bool:
        return is_not_found_error(err)

    def join(self, *segments: str) -> str:
        return join(*segments)

    def stat(self, path: str, ctx: Optional[CallContext] = None) -> FileInfo:
        name = _base_name(path)
        segments = split_segments(path)

        if self.bucket is None:
            if not segments:
                return FileInfo(name=name, size=0, mod_time=self.earliest_creation_date, is_dir=True)
            if len(segments) == 1:
                bucket = segments[0]
                self._call(ctx, 'head_bucket', bucket, Bucket=bucket)
                return FileInfo(name=name, size=0, mod_time=self._creation_date(bucket), is_dir=True)
        elif not segments and not self.prefix:
            self._call(ctx, 'head_bucket', self.bucket, Bucket=self.bucket)
            return FileInfo(name=name, size=0, mod_time=self._creation_date(self.bucket), is_dir=True)

        bucket, key = self.resolve(path)
        if self._has_children(bucket, key, ctx):
            # no per-prefix timestamp exists, so directories carry the bucket's
            return FileInfo(name=name, size=0, mod_time=self._creation_date(bucket), is_dir=True)

        head = self._call(ctx, 'head_object', bucket, key, Bucket=bucket, Key=key)
        size = int(head.get('ContentLength') or 0)
        return FileInfo(
            name=name,
            size=size,
            mod_time=head.get('LastModified') or EPOCH,
            is_dir=size == 0,
        )

    def _has_children(self, bucket: str, key: str, ctx: Optional[CallContext]) -> bool:
        prefix = key + '/' if key else ''
        response = self._call(
            ctx, 'list_objects', bucket, prefix,
            Bucket=bucket, Delimiter='/', Prefix=prefix, MaxKeys=1,
        )
        return bool(response.get('CommonPrefixes') or response.get('Contents'))

    def read_dir(self, path: str, ctx: Optional[CallContext] = None) -> List[DirectoryEntry]:
        if self.bucket is None and not split_segments(path):
            return self._list_buckets(ctx)

        bucket, key = self.resolve(path)
        prefix = key + '/' if key else ''
        entries: List[DirectoryEntry] = []
        marker = None
        for page in range(MAX_LISTING_PAGES):
            params = {'Bucket': bucket, 'Delimiter': '/', 'Prefix': prefix}
            if 0 <= self.max_entries < MAX_KEYS_PER_PAGE:
                params['MaxKeys'] = self.max_entries
            if marker:
                params['Marker'] = marker
            try:
                response = self._call(ctx, 'list_objects', bucket, prefix, **params)
            except BackendError as exc:
                if page == 0:
                    raise
                raise PartialListingError(
                    f"listing {bucket}/{prefix} aborted after {page} pages: {exc}",
                    pages_fetched=page, operation='list_objects', bucket=bucket, key=prefix,
                    status_code=exc.status_code,
                ) from exc

            page_entries = self._page_entries(bucket, prefix, response)
            if self._limited:
                entries.extend(page_entries[:self.max_entries - len(entries)])
                if len(entries) >= self.max_entries:
                    break
            else:
                entries.extend(page_entries)

            if not response.get('IsTruncated'):
                break
            marker = response.get('NextMarker') or self._last_marker(response)
            if not marker:
                break
        else:
            logger.warning(f"Listing of {bucket}/{prefix} stopped at {MAX_LISTING_PAGES} pages")

        logger.debug(f"Listed {len(entries)} entries under {bucket}/{prefix}")
        return entries

    def _page_entries(self, bucket: str, prefix: str, response: dict) -> List[DirectoryEntry]:
        entries = []
        for common_prefix in response.get('CommonPrefixes') or []:
            entries.append(DirectoryEntry(
                name=self._entry_name(bucket, common_prefix['Prefix']),
                size=0,
                mod_time=self._creation_date(bucket),
                is_dir=True,
            ))
        for obj in response.get('Contents') or []:
            key = obj['Key']
            if key == prefix:
                # the directory's own placeholder object
                continue
            size = int(obj.get('Size') or 0)
            entries.append(DirectoryEntry(
                name=self._entry_name(bucket, key),
                size=size,
                mod_time=obj.get('LastModified') or EPOCH,
                is_dir=size == 0,
            ))
        return entries

    @staticmethod
    def _last_marker(response: dict) -> Optional[str]:
        candidates = [obj['Key'] for obj in response.get('Contents') or []]
        candidates += [cp['Prefix'] for cp in response.get('CommonPrefixes') or []]
        return max(candidates) if candidates else None

    def _list_buckets(self, ctx: Optional[CallContext]) -> List[DirectoryEntry]:
        response = self._call(ctx, 'list_buckets', None)
        entries = []
        for bucket in response.get('Buckets') or []:
            if self._limited and len(entries) >= self.max_entries:
                break
            entries.append(DirectoryEntry(
                name=bucket['Name'],
                size=0,
                mod_time=bucket.get('CreationDate') or EPOCH,
                is_dir=True,
            ))
        return entries

    def open(self, path: str, ctx: Optional[CallContext] = None) -> SeekableRangeReader:
        info = self.stat(path, ctx)
        bucket, key = self.resolve(path)

        def fetch(offset: int, buffer: memoryview) -> int:
            if offset < 0:
                raise ValueError(f"negative read offset {offset} for {bucket}/{key}")
            response = self._call(
                ctx, 'get_object', bucket, key,
                Bucket=bucket, Key=key, Range=f"bytes={offset}-{offset + len(buffer) - 1}",
            )
            with closing(response['Body']) as body:
                data = body.read(len(buffer))
            buffer[:len(data)] = data
            return len(data)

        return SeekableRangeReader(fetch, info.size)

    def size(self, path: str, ctx: Optional[CallContext] = None) -> int:
        return self.stat(path, ctx).size
