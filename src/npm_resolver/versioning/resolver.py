"""NPM version resolver using semantic versioning."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple, Union

import semantic_version

from ..cache import NOT_FOUND, Found, MetadataCache
from ..common.logging_utils import extra_context, is_debug_enabled
from ..constants import Constants
from ..upstream import RegistryFetcher
from .models import VersionSet

logger = logging.getLogger(__name__)


def _sort_key(version: str) -> Tuple[int, Union[semantic_version.Version, str]]:
    """Order by semver precedence; unparseable strings go first, by text."""
    try:
        return 1, semantic_version.Version(version)
    except ValueError:
        pass
    try:
        return 1, semantic_version.Version.coerce(version)
    except ValueError:
        return 0, version


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Return ``versions`` in ascending semantic-version order."""
    return sorted(versions, key=_sort_key)


def max_satisfying(versions: Iterable[str], range_expression: str) -> Optional[str]:
    """Pick the highest version satisfying an npm range expression.

    Args:
        versions: Candidate version strings.
        range_expression: npm range such as ``^1.2.0`` or ``>=1 <3 || 4.x``.

    Returns:
        The original string of the best match, or None when nothing matches
        or the expression cannot be parsed.
    """
    try:
        spec = semantic_version.NpmSpec(range_expression)
    except ValueError:
        logger.debug("Invalid semver range %r", range_expression)
        return None

    parsed = {}
    for v in versions:
        try:
            parsed.setdefault(semantic_version.Version(v), v)
        except ValueError:
            continue  # Skip invalid versions

    best = spec.select(parsed)
    return parsed[best] if best is not None else None


class VersionResolver:
    """Answers "which versions exist" and "which version does this range mean".

    Version sets are cached per package; resolution itself is recomputed
    on every call.
    """

    def __init__(
        self,
        fetcher: RegistryFetcher,
        cache: MetadataCache,
        positive_ttl: float = Constants.POSITIVE_TTL_SEC,
        negative_ttl: float = Constants.NEGATIVE_TTL_SEC,
    ):
        self._fetcher = fetcher
        self._cache = cache
        self._positive_ttl = positive_ttl
        self._negative_ttl = negative_ttl

    @staticmethod
    def cache_key(package_name: str) -> str:
        return f"versions-{package_name}"

    async def get_version_set(self, package_name: str) -> Optional[VersionSet]:
        """Return the cached or freshly fetched VersionSet, None if unknown."""
        cache_key = self.cache_key(package_name)
        cached = self._cache.get(cache_key)

        if cached is not None:
            if is_debug_enabled(logger):
                logger.debug(
                    "Version set cache hit",
                    extra=extra_context(
                        event="cache_hit",
                        component="resolver",
                        package=package_name,
                        negative=not isinstance(cached, Found),
                    ),
                )
            if isinstance(cached, Found):
                return VersionSet.from_json(cached.payload)
            return None

        document = await self._fetcher.fetch_metadata(package_name)

        if document is None:
            self._cache.set(cache_key, NOT_FOUND, self._negative_ttl)
            return None

        version_set = VersionSet.from_document(document)
        self._cache.set(cache_key, Found(version_set.to_json()), self._positive_ttl)
        return version_set

    async def available_versions(self, package_name: str) -> List[str]:
        """Return all published versions sorted by semver, [] if unknown."""
        version_set = await self.get_version_set(package_name)
        if version_set is None:
            return []
        return sort_versions(version_set.versions)

    async def resolve_version(self, package_name: str, range_or_tag: str) -> Optional[str]:
        """Resolve a dist-tag, exact version or npm range to a published version.

        Args:
            package_name: Package identifier.
            range_or_tag: e.g. ``latest``, ``1.2.3`` or ``^1.2.0``.

        Returns:
            The concrete version, or None if the package is unknown or nothing
            satisfies the request.
        """
        version_set = await self.get_version_set(package_name)
        if version_set is None:
            return None

        requested = range_or_tag
        if requested in version_set.tags:
            requested = version_set.tags[requested]

        if requested in version_set.versions:
            return requested

        resolved = max_satisfying(version_set.versions, requested)
        logger.debug("Resolved %s@%s to %s", package_name, range_or_tag, resolved)
        return resolved
