"""Upstream client for the npm registry HTTP surface."""

from __future__ import annotations

import asyncio
import logging
import urllib.parse
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp
from yarl import URL

from .common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from .constants import Constants
from .errors import RegistryConnectionError, RegistryFetchError

logger = logging.getLogger(__name__)


def is_scoped_package_name(package_name: str) -> bool:
    """Return True for ``@scope/name`` identifiers."""
    return package_name.startswith("@")


def encode_package_name(package_name: str) -> str:
    """Percent-encode a package name for the metadata URL.

    The leading ``@`` of a scoped name stays literal; the remainder is
    encoded like JavaScript's encodeURIComponent, so the scope separator
    becomes ``%2F``.
    """
    if is_scoped_package_name(package_name):
        return "@" + urllib.parse.quote(package_name[1:], safe="!*'()")
    return urllib.parse.quote(package_name, safe="!*'()")


def tarball_base_name(package_name: str) -> str:
    """Archive file stem: the unscoped part of a scoped name, else the name."""
    if is_scoped_package_name(package_name):
        return package_name.split("/")[1]
    return package_name


class PackageArchive:
    """Readable byte stream over an upstream tarball response.

    The underlying connection stays open until the stream is exhausted,
    ``release()`` is called, or the ``async with`` block exits.
    """

    def __init__(self, response: Any, package_name: str, version: str, url: str):
        self._response = response
        self.package_name = package_name
        self.version = version
        self.url = url

    @property
    def status(self) -> int:
        return self._response.status

    @property
    def headers(self) -> Dict[str, str]:
        return {k: str(v) for k, v in self._response.headers.items()}

    @property
    def content_length(self) -> Optional[int]:
        value = self._response.headers.get("Content-Length")
        try:
            return int(value) if value is not None else None
        except ValueError:
            return None

    async def iter_chunks(self, chunk_size: int = Constants.ARCHIVE_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Yield the archive bytes in chunks, releasing the response at the end."""
        try:
            async for chunk in self._response.content.iter_chunked(chunk_size):
                yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise self._stream_error(exc) from exc
        finally:
            self.release()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iter_chunks()

    async def read(self) -> bytes:
        """Buffer the whole archive. Prefer iteration for large tarballs."""
        try:
            return await self._response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise self._stream_error(exc) from exc
        finally:
            self.release()

    def _stream_error(self, exc: BaseException) -> RegistryConnectionError:
        return RegistryConnectionError(
            f"Failed to read tarball for {self.package_name}@{self.version}: {exc!r}", self.url
        )

    def release(self) -> None:
        self._response.release()

    async def __aenter__(self) -> "PackageArchive":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class RegistryFetcher:
    """Fetches package documents and tarballs from an npm registry.

    A single keep-alive ``aiohttp.ClientSession`` is shared by all requests.
    It is created lazily on first use and closed by ``stop()``.
    """

    def __init__(
        self,
        registry_url: str = Constants.REGISTRY_URL_NPM,
        timeout: Optional[float] = Constants.REQUEST_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the fetcher.

        Args:
            registry_url: Registry base URL.
            timeout: Seconds allowed to connect and between received bytes,
                or None for no deadline. A tarball that keeps streaming is
                never cut off.
            session: Externally managed session; not closed by ``stop()``.
        """
        self._registry_url = registry_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=None, sock_connect=timeout, sock_read=timeout)
        self._session = session
        self._owns_session = session is None

    @property
    def registry_url(self) -> str:
        return self._registry_url

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=100, keepalive_timeout=30)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
                headers={"User-Agent": Constants.USER_AGENT},
            )
            self._owns_session = True

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def metadata_url(self, package_name: str) -> str:
        return f"{self._registry_url}/{encode_package_name(package_name)}"

    def tarball_url(self, package_name: str, version: str) -> str:
        return (
            f"{self._registry_url}/{package_name}/-/"
            f"{tarball_base_name(package_name)}-{version}.tgz"
        )

    async def fetch_metadata(self, package_name: str) -> Optional[Dict[str, Any]]:
        """Fetch the full registry document for a package.

        Args:
            package_name: Package identifier, possibly scoped.

        Returns:
            Parsed document, or None when the registry answers 404.

        Raises:
            RegistryFetchError: Any status other than 200 or 404.
            RegistryConnectionError: Transport failure.
        """
        url = self.metadata_url(package_name)
        logger.debug("Fetching package info for %s from %s", package_name, safe_url(url))

        response = await self._get(url, headers={"Accept": "application/json"})
        try:
            if response.status == 200:
                try:
                    document = await response.json(content_type=None)
                except ValueError as exc:
                    raise RegistryFetchError(
                        f"Invalid package info for {package_name}", response.status, url, str(exc)
                    ) from exc
                if not isinstance(document, dict):
                    # An empty or non-object body must not read as "not found".
                    content = await response.text(errors="replace")
                    raise RegistryFetchError(
                        f"Invalid package info for {package_name}", response.status, url, content
                    )
                return document

            if response.status == 404:
                logger.debug(
                    "Package not found",
                    extra=extra_context(
                        event="http_response",
                        component="upstream",
                        outcome="not_found",
                        status_code=404,
                        target=safe_url(url),
                    ),
                )
                return None

            content = await response.text(errors="replace")
            logger.warning(
                "Unexpected registry status %s for %s",
                response.status,
                package_name,
                extra=extra_context(
                    event="http_response",
                    component="upstream",
                    outcome="error",
                    status_code=response.status,
                    target=safe_url(url),
                ),
            )
            raise RegistryFetchError(
                f"Failed to fetch info for {package_name}", response.status, url, content
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RegistryConnectionError(f"Failed to read info for {package_name}: {exc}", url) from exc
        finally:
            response.release()

    async def fetch_archive(self, package_name: str, version: str) -> PackageArchive:
        """Open a stream over the tarball of ``package_name@version``.

        Raises:
            RegistryFetchError: Any status other than 200, 404 included.
            RegistryConnectionError: Transport failure.
        """
        url = self.tarball_url(package_name, version)
        logger.debug("Fetching package for %s from %s", package_name, safe_url(url))

        response = await self._get(url)
        if response.status == 200:
            return PackageArchive(response, package_name, version, url)

        try:
            content = await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            content = f"<unreadable body: {exc}>"
        finally:
            response.release()

        logger.warning(
            "Unexpected registry status %s for tarball %s@%s",
            response.status,
            package_name,
            version,
            extra=extra_context(
                event="http_response",
                component="upstream",
                outcome="error",
                status_code=response.status,
                target=safe_url(url),
            ),
        )
        raise RegistryFetchError(
            f"Failed to fetch tarball for {package_name}@{version}", response.status, url, content
        )

    async def _get(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        """Issue a GET, mapping transport errors to RegistryConnectionError."""
        if self._session is None:
            await self.start()
        assert self._session is not None

        with Timer() as t:
            try:
                # The name is already percent-encoded; stop yarl from re-quoting %2F.
                response = await self._session.get(URL(url, encoded=True), headers=headers)
            except asyncio.TimeoutError as exc:
                raise RegistryConnectionError(f"Request to {safe_url(url)} timed out", url) from exc
            except aiohttp.ClientError as exc:
                raise RegistryConnectionError(f"Request to {safe_url(url)} failed: {exc}", url) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="upstream",
                    action="GET",
                    status_code=response.status,
                    duration_ms=t.duration_ms(),
                    target=safe_url(url),
                ),
            )
        return response

    async def __aenter__(self) -> "RegistryFetcher":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
