"""npm-resolver: cached version resolution against an npm registry.

Resolves package names and semver ranges or dist-tags to concrete versions,
returns cleaned per-version package metadata, and streams package tarballs,
keeping upstream traffic bounded through a TTL/LRU metadata cache.
"""

from .cache import MetadataCache, Found, NotFound, NOT_FOUND
from .client import NpmRegistryClient
from .config import RegistryConfig
from .errors import RegistryError, RegistryFetchError, RegistryConnectionError, ConfigError
from .package_config import PackageConfigExtractor
from .upstream import RegistryFetcher, PackageArchive
from .versioning.models import VersionSet
from .versioning.resolver import VersionResolver

__all__ = [
    "MetadataCache",
    "Found",
    "NotFound",
    "NOT_FOUND",
    "NpmRegistryClient",
    "RegistryConfig",
    "RegistryError",
    "RegistryFetchError",
    "RegistryConnectionError",
    "ConfigError",
    "PackageConfigExtractor",
    "RegistryFetcher",
    "PackageArchive",
    "VersionSet",
    "VersionResolver",
]
