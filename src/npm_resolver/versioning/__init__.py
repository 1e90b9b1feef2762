"""Version sets and semver resolution for registry packages."""

from .models import VersionSet
from .resolver import VersionResolver, sort_versions, max_satisfying

__all__ = ["VersionSet", "VersionResolver", "sort_versions", "max_satisfying"]
