"""Exception types raised by the registry client."""

from __future__ import annotations

from typing import Optional


class RegistryError(Exception):
    """Base class for registry failures that must reach the caller."""


class RegistryFetchError(RegistryError):
    """Upstream answered with a status the client does not expect.

    Carries the status code and response body for diagnostics.
    """

    def __init__(self, message: str, status: int, url: str, body: str = ""):
        super().__init__(f"{message}\nstatus: {status}\ndata: {body}")
        self.status = status
        self.url = url
        self.body = body


class RegistryConnectionError(RegistryError):
    """Transport-level failure (connection refused, DNS, timeout, ...)."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class ConfigError(ValueError):
    """Invalid configuration value or configuration file."""
