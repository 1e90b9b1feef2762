"""Shared helpers used across the cache, fetcher and resolvers."""
