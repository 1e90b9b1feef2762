"""Shared test doubles for the registry client tests."""

import copy

import pytest

from npm_resolver.cache import MetadataCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeFetcher:
    """In-memory stand-in for RegistryFetcher that counts upstream calls."""

    def __init__(self, documents=None, error=None):
        self.documents = documents or {}
        self.error = error
        self.metadata_calls = []
        self.archive_calls = []

    async def fetch_metadata(self, package_name):
        self.metadata_calls.append(package_name)
        if self.error is not None:
            raise self.error
        document = self.documents.get(package_name)
        return copy.deepcopy(document) if document is not None else None

    async def fetch_archive(self, package_name, version):
        self.archive_calls.append((package_name, version))
        if self.error is not None:
            raise self.error
        return f"archive:{package_name}@{version}"

    async def start(self):
        pass

    async def stop(self):
        pass

    @property
    def registry_url(self):
        return "https://registry.test"


def make_document(versions, tags=None, extra_fields=None):
    """Build a registry package document with one sub-document per version."""
    return {
        "name": "pkg",
        "dist-tags": tags or {},
        "versions": {
            v: dict({"name": "pkg", "version": v}, **(extra_fields or {})) for v in versions
        },
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MetadataCache(clock=clock)
