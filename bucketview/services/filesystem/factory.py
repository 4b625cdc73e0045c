"""Factory for configuring filesystem backends from environment variables."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .exceptions import BackendError, ConfigurationError
from .interfaces import AccountRoot, BucketDescriptor, BucketRoot, LocalRoot, RootSpec
from .local import LocalFileSystem
from .paths import parse_root
from .routing import RegionRouter
from .s3 import ObjectStoreFileSystem

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'us-east-1'

# get_bucket_location reports these legacy names instead of region ids
LEGACY_LOCATIONS = {
    None: 'us-east-1',
    '': 'us-east-1',
    'EU': 'eu-west-1',
}


@dataclass
class FileSystemSettings:
    root: str = ''
    file_systems: List[str] = field(default_factory=list)
    sites: Dict[str, str] = field(default_factory=dict)
    max_directory_entries: int = -1
    default_region: str = DEFAULT_REGION
    profile: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    endpoint_url: Optional[str] = None
    use_path_style: bool = False
    verify_ssl: bool = True
    connect_timeout: float = 10
    read_timeout: float = 60

    @property
    def roots(self) -> List[str]:
        roots = [self.root] if self.root else []
        roots.extend(r for r in self.file_systems if r and r not in roots)
        return roots


def _parse_json(name: str, value: Optional[str], expected: type):
    if not value or not value.strip():
        return expected()
    try:
        parsed = json.loads(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} is not valid JSON: {exc}") from exc
    if not isinstance(parsed, expected):
        raise ConfigurationError(f"{name} must be a JSON {expected.__name__}")
    return parsed


def load_filesystem_settings_from_env() -> FileSystemSettings:
    # Values come from app_config so env parsing lives in one place.
    from bucketview.config import app_config

    return FileSystemSettings(
        root=(app_config.FILE_SYSTEM_ROOT or '').strip(),
        file_systems=[str(r).strip() for r in _parse_json('FILE_SYSTEMS', app_config.FILE_SYSTEMS, list)],
        sites={str(k): str(v).strip() for k, v in _parse_json('SITES', app_config.SITES, dict).items()},
        max_directory_entries=int(app_config.MAX_DIRECTORY_ENTRIES),
        default_region=app_config.AWS_REGION or DEFAULT_REGION,
        profile=app_config.AWS_PROFILE,
        access_key_id=app_config.AWS_ACCESS_KEY_ID,
        secret_access_key=app_config.AWS_SECRET_ACCESS_KEY,
        session_token=app_config.AWS_SESSION_TOKEN,
        endpoint_url=app_config.S3_ENDPOINT_URL,
        use_path_style=bool(app_config.S3_USE_PATH_STYLE),
        verify_ssl=bool(app_config.S3_VERIFY_SSL),
        connect_timeout=float(app_config.S3_CONNECT_TIMEOUT),
        read_timeout=float(app_config.S3_READ_TIMEOUT),
    )


def build_s3_client(settings: FileSystemSettings, region: str):
    """Create an S3 client pinned to ``region``."""
    import boto3
    from botocore.config import Config

    session_kwargs = {}
    if settings.profile:
        session_kwargs['profile_name'] = settings.profile
    session = boto3.session.Session(**session_kwargs)

    client_kwargs = {
        'service_name': 's3',
        'region_name': region,
        'verify': settings.verify_ssl,
    }
    if settings.endpoint_url:
        client_kwargs['endpoint_url'] = settings.endpoint_url
    if settings.access_key_id:
        client_kwargs['aws_access_key_id'] = settings.access_key_id
    if settings.secret_access_key:
        client_kwargs['aws_secret_access_key'] = settings.secret_access_key
    if settings.session_token:
        client_kwargs['aws_session_token'] = settings.session_token

    addressing_style = 'path' if settings.use_path_style else 'auto'
    client_kwargs['config'] = Config(
        signature_version='s3v4',
        s3={'addressing_style': addressing_style},
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
    )
    logger.info(f"Creating S3 client for region {region}")
    return session.client(**client_kwargs)


def _bucket_region(client, bucket: str, default_region: str) -> str:
    from botocore.exceptions import BotoCoreError, ClientError

    try:
        location = client.get_bucket_location(Bucket=bucket).get('LocationConstraint')
    except (BotoCoreError, ClientError) as exc:
        logger.warning(f"Could not determine region of bucket {bucket}, using {default_region}: {exc}")
        return default_region
    return LEGACY_LOCATIONS.get(location, location)


def discover_buckets(client, default_region: str) -> List[BucketDescriptor]:
    """List the account's buckets along with their regions and creation dates."""
    from botocore.exceptions import BotoCoreError, ClientError

    try:
        response = client.list_buckets()
    except (BotoCoreError, ClientError) as exc:
        raise BackendError(f"error listing buckets in account: {exc}", operation='list_buckets') from exc

    buckets = []
    for bucket in response.get('Buckets') or []:
        name = bucket['Name']
        buckets.append(BucketDescriptor(
            name=name,
            region=_bucket_region(client, name, default_region),
            creation_date=bucket.get('CreationDate') or datetime.now(timezone.utc),
        ))
    logger.info(f"Discovered {len(buckets)} buckets across {len({b.region for b in buckets})} regions")
    return buckets


def _describe_single_bucket(client, bucket: str, default_region: str) -> BucketDescriptor:
    return BucketDescriptor(
        name=bucket,
        region=_bucket_region(client, bucket, default_region),
        creation_date=datetime.now(timezone.utc),
    )


def build_router(settings: FileSystemSettings, roots: List[RootSpec], client_factory=build_s3_client):
    """Build the regional client table for the object-store roots.

    Returns the router and the bucket descriptors it was built from, or
    ``(None, [])`` when no root needs object storage.
    """
    s3_roots = [r for r in roots if isinstance(r, (BucketRoot, AccountRoot))]
    if not s3_roots:
        return None, []

    default_region = settings.default_region
    default_client = client_factory(settings, default_region)
    try:
        buckets = discover_buckets(default_client, default_region)
    except BackendError as exc:
        if any(isinstance(r, AccountRoot) for r in s3_roots):
            raise
        logger.warning(f"Listing buckets denied, describing configured buckets only: {exc}")
        names = sorted({r.bucket for r in s3_roots})
        buckets = [_describe_single_bucket(default_client, name, default_region) for name in names]

    known = {b.name for b in buckets}
    for root in s3_roots:
        if isinstance(root, BucketRoot) and root.bucket not in known:
            logger.warning(f"Bucket {root.bucket} not visible in account listing")
            buckets.append(_describe_single_bucket(default_client, root.bucket, default_region))
            known.add(root.bucket)

    clients = {default_region: default_client}
    for region in sorted({b.region for b in buckets}):
        if region not in clients:
            clients[region] = client_factory(settings, region)

    router = RegionRouter(
        default_region=default_region,
        clients=clients,
        bucket_regions={b.name: b.region for b in buckets},
    )
    return router, buckets


def build_filesystem(root: RootSpec, settings: FileSystemSettings,
                     router: Optional[RegionRouter] = None,
                     buckets: Optional[List[BucketDescriptor]] = None):
    """Construct the backend serving one root variant."""
    if isinstance(root, LocalRoot):
        logger.info(f"Serving local root {root.path}")
        return LocalFileSystem(root.path)
    if isinstance(root, (BucketRoot, AccountRoot)):
        if router is None:
            raise ConfigurationError(f"object storage root {root!r} requires a region router")
        creation_dates = {b.name: b.creation_date for b in buckets or []}
        logger.info(f"Serving object storage root {root!r}")
        return ObjectStoreFileSystem.from_root(
            root, router,
            bucket_creation_dates=creation_dates,
            max_entries=settings.max_directory_entries,
        )
    raise TypeError(f"Unsupported root: {root!r}")


def build_filesystems(settings: FileSystemSettings, client_factory=build_s3_client) -> dict:
    """Build one backend per configured root, keyed by the root string."""
    parsed = {raw: parse_root(raw) for raw in settings.roots}
    router, buckets = build_router(settings, list(parsed.values()), client_factory=client_factory)
    return {raw: build_filesystem(root, settings, router, buckets) for raw, root in parsed.items()}
