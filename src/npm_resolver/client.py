"""Registry client facade exposing the public operations."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .cache import MetadataCache
from .config import RegistryConfig
from .package_config import PackageConfigExtractor
from .upstream import PackageArchive, RegistryFetcher
from .versioning.resolver import VersionResolver

logger = logging.getLogger(__name__)


class NpmRegistryClient:
    """Cached access to package versions, configs and tarballs.

    One instance owns a metadata cache and a registry fetcher and shares
    both between its version resolver and config extractor. Independent
    instances never share state.
    """

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        cache: Optional[MetadataCache] = None,
        fetcher: Optional[RegistryFetcher] = None,
    ):
        """Initialize the client.

        Args:
            config: Client configuration; defaults to ``RegistryConfig.from_env()``.
            cache: Cache to use instead of a fresh one sized from ``config``.
            fetcher: Fetcher to use instead of one built from ``config``.
        """
        self._config = config if config is not None else RegistryConfig.from_env()
        self._cache = cache if cache is not None else MetadataCache(self._config.cache_max_bytes)
        self._fetcher = fetcher if fetcher is not None else RegistryFetcher(
            self._config.registry_url, timeout=self._config.timeout
        )
        self._resolver = VersionResolver(
            self._fetcher,
            self._cache,
            positive_ttl=self._config.positive_ttl,
            negative_ttl=self._config.negative_ttl,
        )
        self._extractor = PackageConfigExtractor(
            self._fetcher,
            self._cache,
            exclude_keys=self._config.exclude_keys,
            positive_ttl=self._config.positive_ttl,
            negative_ttl=self._config.negative_ttl,
        )

    @property
    def config(self) -> RegistryConfig:
        return self._config

    @property
    def cache(self) -> MetadataCache:
        return self._cache

    async def get_available_versions(self, package_name: str) -> List[str]:
        """Returns a list of available versions, sorted by semver."""
        return await self._resolver.available_versions(package_name)

    async def resolve_version(self, package_name: str, range_or_tag: str) -> Optional[str]:
        """Resolves the semver range or tag to a published version."""
        return await self._resolver.resolve_version(package_name, range_or_tag)

    async def get_package_config(self, package_name: str, version: str) -> Optional[Dict[str, Any]]:
        """Returns metadata about a package version, mostly its package.json."""
        return await self._extractor.package_config(package_name, version)

    async def get_package(self, package_name: str, version: str) -> PackageArchive:
        """Returns a stream of the tarball'd contents of the given package."""
        return await self._fetcher.fetch_archive(package_name, version)

    def cache_stats(self) -> Dict[str, Any]:
        return self._cache.stats()

    async def start(self) -> None:
        await self._fetcher.start()
        logger.debug("Registry client using %s", self._fetcher.registry_url)

    async def stop(self) -> None:
        await self._fetcher.stop()

    async def __aenter__(self) -> "NpmRegistryClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()
