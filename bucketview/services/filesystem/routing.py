"""Bucket to region to client routing table."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping, Optional

from .exceptions import ConfigurationError


class RegionRouter:
    """Immutable routing table selecting the regional client for a bucket.

    Buckets with no known region are served by the default region's client.
    """

    def __init__(self, default_region: str, clients: Mapping[str, Any],
                 bucket_regions: Optional[Mapping[str, str]] = None):
        if not default_region:
            raise ConfigurationError('default region is required')
        if default_region not in clients:
            raise ConfigurationError(f"no client configured for default region {default_region!r}")
        bucket_regions = dict(bucket_regions or {})
        missing = sorted({region for region in bucket_regions.values() if region not in clients})
        if missing:
            raise ConfigurationError(f"no client configured for regions: {', '.join(missing)}")
        self._default_region = default_region
        self._clients = MappingProxyType(dict(clients))
        self._bucket_regions = MappingProxyType(bucket_regions)

    @property
    def default_region(self) -> str:
        return self._default_region

    @property
    def regions(self):
        return tuple(self._clients)

    @property
    def bucket_regions(self) -> Mapping[str, str]:
        return self._bucket_regions

    def region_for(self, bucket: Optional[str]) -> str:
        if bucket and bucket in self._bucket_regions:
            return self._bucket_regions[bucket]
        return self._default_region

    def client_for(self, bucket: Optional[str]):
        return self._clients[self.region_for(bucket)]

    @property
    def default_client(self):
        return self._clients[self._default_region]
