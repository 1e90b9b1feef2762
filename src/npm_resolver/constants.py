"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the command line.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    NOT_FOUND = 1
    CONNECTION_ERROR = 2
    CONFIG_ERROR = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration defaults; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org"
    ENV_REGISTRY_URL = "NPM_REGISTRY_URL"
    ENV_TIMEOUT = "NPM_RESOLVER_TIMEOUT"
    ENV_LOG_LEVEL = "NPM_RESOLVER_LOG_LEVEL"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    USER_AGENT = "npm-resolver/0.1"
    REQUEST_TIMEOUT = 30  # Connect and per-read seconds per upstream request; None disables

    ONE_MEGABYTE = 1024 * 1024
    CACHE_MAX_BYTES = 40 * ONE_MEGABYTE
    CACHE_CLEANUP_INTERVAL_SEC = 60
    POSITIVE_TTL_SEC = 60
    NEGATIVE_TTL_SEC = 5 * 60

    # Keys that sometimes appear in per-version registry documents but are of
    # no use to consumers of the package config.
    PACKAGE_CONFIG_EXCLUDE_KEYS = (
        "browserify",
        "bugs",
        "directories",
        "engines",
        "files",
        "homepage",
        "keywords",
        "maintainers",
        "scripts",
    )
    PACKAGE_CONFIG_INTERNAL_PREFIX = "_"

    ARCHIVE_CHUNK_SIZE = 64 * 1024
