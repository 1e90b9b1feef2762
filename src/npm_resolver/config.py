"""Runtime configuration for the registry client."""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .constants import Constants
from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class RegistryConfig:
    """Configuration for the registry client."""

    registry_url: str = Constants.REGISTRY_URL_NPM
    cache_max_bytes: int = Constants.CACHE_MAX_BYTES
    positive_ttl: float = Constants.POSITIVE_TTL_SEC
    negative_ttl: float = Constants.NEGATIVE_TTL_SEC
    timeout: Optional[float] = Constants.REQUEST_TIMEOUT
    exclude_keys: Tuple[str, ...] = field(
        default_factory=lambda: tuple(Constants.PACKAGE_CONFIG_EXCLUDE_KEYS)
    )

    def __post_init__(self) -> None:
        self.registry_url = str(self.registry_url).rstrip("/")
        if not self.registry_url:
            raise ConfigError("registry_url must not be empty")
        if self.cache_max_bytes <= 0:
            raise ConfigError("cache_max_bytes must be positive")
        if self.positive_ttl < 0 or self.negative_ttl < 0:
            raise ConfigError("TTLs must not be negative")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        self.exclude_keys = tuple(self.exclude_keys)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RegistryConfig":
        """Create config from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        try:
            return cls(**dict(data))
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RegistryConfig":
        """Create config from environment variables.

        NPM_REGISTRY_URL selects the registry; NPM_RESOLVER_TIMEOUT
        optionally overrides the request timeout (``0`` disables it).
        """
        env = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        if env.get(Constants.ENV_REGISTRY_URL):
            overrides["registry_url"] = env[Constants.ENV_REGISTRY_URL]
        if env.get(Constants.ENV_TIMEOUT):
            overrides["timeout"] = _parse_timeout(env[Constants.ENV_TIMEOUT])
        return cls(**overrides)

    @classmethod
    def from_file(cls, path: str) -> "RegistryConfig":
        """Load config from a YAML file.

        Settings may sit at the top level or under a ``registry:`` section.
        """
        if not os.path.isfile(path):
            raise ConfigError(f"Config file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse config {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must contain a mapping")
        section = data.get("registry", data)
        if not isinstance(section, dict):
            raise ConfigError(f"'registry' section in {path} must be a mapping")

        logger.debug("Loaded registry config from %s", path)
        return cls.from_mapping(section)

    @classmethod
    def from_args(cls, args: Any, base: Optional["RegistryConfig"] = None) -> "RegistryConfig":
        """Apply CLI overrides on top of ``base`` (file or environment config).

        Args:
            args: Parsed CLI arguments namespace.
            base: Config to override; defaults to ``from_env()``.

        Returns:
            RegistryConfig instance.
        """
        config = base if base is not None else cls.from_env()
        overrides: Dict[str, Any] = {}
        if getattr(args, "REGISTRY", None):
            overrides["registry_url"] = args.REGISTRY
        if getattr(args, "TIMEOUT", None) is not None:
            overrides["timeout"] = _parse_timeout(args.TIMEOUT)
        if not overrides:
            return config
        return dataclasses.replace(config, **overrides)


def _parse_timeout(value: Any) -> Optional[float]:
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid timeout: {value!r}") from exc
    if seconds < 0:
        raise ConfigError(f"Timeout must not be negative: {value!r}")
    # 0 disables the deadline.
    return seconds or None
