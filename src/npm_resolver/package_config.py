"""Per-version package config extraction with field filtering."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from .cache import NOT_FOUND, Found, MetadataCache
from .constants import Constants
from .upstream import RegistryFetcher

logger = logging.getLogger(__name__)


def clean_package_config(
    document: Mapping[str, Any],
    exclude_keys: Iterable[str] = Constants.PACKAGE_CONFIG_EXCLUDE_KEYS,
    internal_prefix: str = Constants.PACKAGE_CONFIG_INTERNAL_PREFIX,
) -> Dict[str, Any]:
    """Drop internal (prefixed) and denylisted top-level keys."""
    excluded = set(exclude_keys)
    return {
        key: value
        for key, value in document.items()
        if not key.startswith(internal_prefix) and key not in excluded
    }


class PackageConfigExtractor:
    """Returns the cleaned registry document of one exact package version.

    Results, including "no such package/version", are cached under their own
    key; the package document is fetched through the same fetcher the
    version resolver uses but is not shared with its cache entry.
    """

    def __init__(
        self,
        fetcher: RegistryFetcher,
        cache: MetadataCache,
        exclude_keys: Iterable[str] = Constants.PACKAGE_CONFIG_EXCLUDE_KEYS,
        internal_prefix: str = Constants.PACKAGE_CONFIG_INTERNAL_PREFIX,
        positive_ttl: float = Constants.POSITIVE_TTL_SEC,
        negative_ttl: float = Constants.NEGATIVE_TTL_SEC,
    ):
        self._fetcher = fetcher
        self._cache = cache
        self._exclude_keys = tuple(exclude_keys)
        self._internal_prefix = internal_prefix
        self._positive_ttl = positive_ttl
        self._negative_ttl = negative_ttl

    @staticmethod
    def cache_key(package_name: str, version: str) -> str:
        return f"config-{package_name}-{version}"

    async def package_config(self, package_name: str, version: str) -> Optional[Dict[str, Any]]:
        """Return the filtered document for ``package_name@version``, or None."""
        cache_key = self.cache_key(package_name, version)
        cached = self._cache.get(cache_key)

        if cached is not None:
            if isinstance(cached, Found):
                return json.loads(cached.payload)
            return None

        config = await self._fetch_package_config(package_name, version)

        if config is None:
            self._cache.set(cache_key, NOT_FOUND, self._negative_ttl)
            return None

        self._cache.set(cache_key, Found(json.dumps(config)), self._positive_ttl)
        return config

    async def _fetch_package_config(self, package_name: str, version: str) -> Optional[Dict[str, Any]]:
        document = await self._fetcher.fetch_metadata(package_name)
        if document is None:
            return None

        versions = document.get("versions") or {}
        if version not in versions:
            logger.debug("Version %s not published for %s", version, package_name)
            return None

        return clean_package_config(versions[version], self._exclude_keys, self._internal_prefix)
