"""Data models for versioning and package resolution."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple


@dataclass(frozen=True)
class VersionSet:
    """Published versions of one package plus its dist-tags."""

    versions: Tuple[str, ...]
    tags: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "VersionSet":
        """Extract versions and dist-tags from a registry package document."""
        versions = document.get("versions") or {}
        tags = document.get("dist-tags") or {}
        return cls(
            versions=tuple(versions.keys()),
            tags={str(k): str(v) for k, v in tags.items()},
        )

    def to_json(self) -> str:
        return json.dumps({"versions": list(self.versions), "tags": dict(self.tags)})

    @classmethod
    def from_json(cls, payload: str) -> "VersionSet":
        data: Dict[str, Any] = json.loads(payload)
        return cls(versions=tuple(data["versions"]), tags=dict(data["tags"]))

    def __contains__(self, version: object) -> bool:
        return version in self.versions
