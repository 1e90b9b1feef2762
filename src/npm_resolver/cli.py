"""Command line interface for querying an npm registry through the cache."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, List, Optional

from .client import NpmRegistryClient
from .common.logging_utils import configure_logging
from .config import RegistryConfig
from .constants import ExitCodes
from .errors import ConfigError, RegistryError
from .upstream import tarball_base_name

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="npm-resolver",
        description="Resolve npm package versions and metadata through a TTL cache",
    )
    parser.add_argument("--registry",
                        dest="REGISTRY",
                        help="Registry base URL (default: $NPM_REGISTRY_URL or the public registry)",
                        action="store", type=str)
    parser.add_argument("--config",
                        dest="CONFIG",
                        help="YAML configuration file",
                        action="store", type=str)
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help="Per-request timeout in seconds (0 disables)",
                        action="store", type=float)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store", type=str,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store", type=str)

    subparsers = parser.add_subparsers(dest="COMMAND", required=True)

    versions = subparsers.add_parser("versions", help="List published versions in semver order")
    versions.add_argument("PACKAGE", help="Package name, e.g. react or @babel/core")

    resolve = subparsers.add_parser("resolve", help="Resolve a range or dist-tag to a version")
    resolve.add_argument("PACKAGE", help="Package name")
    resolve.add_argument("RANGE", nargs="?", default="latest", help="Range or tag (default: latest)")

    config = subparsers.add_parser("config", help="Show the cleaned package.json of a version")
    config.add_argument("PACKAGE", help="Package name")
    config.add_argument("VERSION", help="Exact version")

    fetch = subparsers.add_parser("fetch", help="Download a package tarball")
    fetch.add_argument("PACKAGE", help="Package name")
    fetch.add_argument("VERSION", help="Exact version")
    fetch.add_argument("-o", "--output",
                       dest="OUTPUT",
                       help="Output file (default: <name>-<version>.tgz)",
                       action="store", type=str)

    return parser


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments."""
    configure_logging(getattr(args, "LOG_LEVEL", None))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def load_config(args: Any) -> RegistryConfig:
    """Build the effective config: file or environment, then CLI overrides."""
    base = RegistryConfig.from_file(args.CONFIG) if getattr(args, "CONFIG", None) else None
    return RegistryConfig.from_args(args, base=base)


async def _write_archive(archive: Any, output: str) -> int:
    """Stream an archive to ``output``; a partial file is removed on failure."""
    written = 0
    try:
        fh = open(output, "wb")
    except OSError:
        archive.release()
        raise
    try:
        with fh:
            async for chunk in archive:
                fh.write(chunk)
                written += len(chunk)
    except BaseException:
        os.remove(output)
        raise
    return written


def _print_json(value: Any) -> None:
    sys.stdout.write(json.dumps(value, indent=2) + "\n")


async def run_command(args: Any, client: NpmRegistryClient) -> int:
    """Execute one subcommand and return its exit code."""
    if args.COMMAND == "versions":
        _print_json(await client.get_available_versions(args.PACKAGE))
        return ExitCodes.SUCCESS.value

    if args.COMMAND == "resolve":
        version = await client.resolve_version(args.PACKAGE, args.RANGE)
        if version is None:
            sys.stderr.write(f"No version of {args.PACKAGE} matches {args.RANGE}\n")
            return ExitCodes.NOT_FOUND.value
        sys.stdout.write(version + "\n")
        return ExitCodes.SUCCESS.value

    if args.COMMAND == "config":
        package_config = await client.get_package_config(args.PACKAGE, args.VERSION)
        if package_config is None:
            sys.stderr.write(f"{args.PACKAGE}@{args.VERSION} not found\n")
            return ExitCodes.NOT_FOUND.value
        _print_json(package_config)
        return ExitCodes.SUCCESS.value

    if args.COMMAND == "fetch":
        output = args.OUTPUT or f"{tarball_base_name(args.PACKAGE)}-{args.VERSION}.tgz"
        archive = await client.get_package(args.PACKAGE, args.VERSION)
        written = await _write_archive(archive, output)
        logger.info("Wrote %d bytes to %s", written, os.path.abspath(output))
        sys.stdout.write(output + "\n")
        return ExitCodes.SUCCESS.value

    raise ValueError(f"Unknown command: {args.COMMAND}")


async def _main_async(args: Any, config: RegistryConfig) -> int:
    async with NpmRegistryClient(config) as client:
        return await run_command(args, client)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``npm-resolver`` command."""
    args = build_parser().parse_args(argv)
    _setup_logging(args)

    try:
        config = load_config(args)
    except ConfigError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return ExitCodes.CONFIG_ERROR.value

    try:
        return asyncio.run(_main_async(args, config))
    except RegistryError as exc:
        logger.error("Registry request failed: %s", exc)
        sys.stderr.write(f"ERROR: {exc}\n")
        return ExitCodes.CONNECTION_ERROR.value


if __name__ == "__main__":
    sys.exit(main())
