"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    INPUT_ERROR = 4
    RULE_ERROR = 5


class PackagingTypes(Enum):
    """Packaging types the engine treats specially.

    Args:
        Enum (string): Packaging type names as they appear in coordinates.
    """

    PARTIAL = "partialbundlelist"
    CONFIG = "zip"
    BUNDLE_LIST = "xml"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_MAVEN = "https://repo1.maven.org/maven2"
    LOCAL_REPOSITORY = os.path.join(os.path.expanduser("~"), ".m2", "repository")
    METADATA_FILE = "maven-metadata.xml"
    LOCAL_METADATA_FILE = "maven-metadata-local.xml"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 1
    HTTP_CACHE_TTL_SEC = 300
    METADATA_CACHE_TTL_SEC = 600
    DOWNLOAD_CHUNK_SIZE = 64 * 1024

    # Companion configuration payload of a partial bundle list
    CONFIG_CLASSIFIER = "bundlelistconfig"
    CONFIG_ARCHIVE_SLING_DIR = "sling"
    CONFIG_ARCHIVE_CONFIG_DIR = "config"
    SLING_PROPERTIES = "sling.properties"
    SLING_BOOTSTRAP = "sling_bootstrap.txt"

    # Project layout defaults, relative to the project base directory
    BUNDLE_LIST_FILE = os.path.join("src", "main", "bundles", "list.xml")
    CONFIG_DIRECTORY = os.path.join("src", "main", "config")
    ADDITIONAL_PROPERTIES = os.path.join("src", "main", "sling", "additional.properties")
    ADDITIONAL_BOOTSTRAP = os.path.join("src", "main", "sling", "bootstrap.txt")
    WORK_DIR = "target"
    OVERLAY_CONFIG_DIR = "tmpConfigDir"

    DEFAULT_BUNDLE_LIST = "org.apache.sling:org.apache.sling.launchpad:RELEASE:xml:bundlelist"
    DEFAULT_START_LEVEL = 0
    DEFAULT_RESOURCE_PRIORITY = 100

    REWRITE_MAX_CYCLES = 1000
    FILE_ENCODING = "utf-8"
