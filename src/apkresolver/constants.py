"""
Constants and configuration values for apkresolver.

This module contains upstream URLs, timeouts, default policy values and
logging settings used throughout the application.
"""

# GitHub API URLs
GITHUB_API_BASE = "https://api.github.com/repos"
GITHUB_API_HOST = "api.github.com"
GITHUB_MAX_PER_PAGE = 100
GITHUB_RELEASES_PER_PAGE = 30
GITHUB_MAX_PAGES = 3

# F-Droid
FDROID_PACKAGES_API = "https://f-droid.org/api/v1/packages"
FDROID_REPO_URL = "https://f-droid.org/repo"
FDROIDDATA_COMMITS_API = (
    "https://gitlab.com/api/v4/projects/36528/repository/commits"
)

# Mozilla
MOZILLA_PRODUCT_DETAILS_URL = (
    "https://product-details.mozilla.org/1.0/mobile_versions.json"
)
MOZILLA_ARCHIVE_BASE = "https://archive.mozilla.org/pub"
MOZILLA_TASKCLUSTER_BASE = "https://firefox-ci-tc.services.mozilla.com/api"

# Chromium snapshots
CHROMIUM_SNAPSHOTS_BASE = "https://storage.googleapis.com/chromium-browser-snapshots"
CHROMIUM_SNAPSHOTS_METADATA_BASE = (
    "https://www.googleapis.com/storage/v1/b/chromium-browser-snapshots/o"
)

# Tor Project
TOR_DIST_BASE = "https://dist.torproject.org/torbrowser"

# Vivaldi
VIVALDI_DOWNLOAD_PAGE = "https://vivaldi.com/download/"

# Network timeouts and limits (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CONNECT_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.3
DOWNLOAD_PROBE_TIMEOUT = 15
DEFAULT_MAX_CONCURRENT_RESOLUTIONS = 5
DEFAULT_CONNECTOR_LIMIT = 10

# Freshness policy
DEFAULT_GLOBAL_MAX_AGE_DAYS = 180

# Device defaults
DEFAULT_DEVICE_ABI = "arm64-v8a"
DEFAULT_DEVICE_SDK_INT = 34

# Artifact formats
APK_FORMAT = "apk"
ZIP_FORMAT = "zip"
APK_EXTENSION = ".apk"
ZIP_EXTENSION = ".zip"

# Configuration
APP_NAME = "apkresolver"
CONFIG_FILE_NAME = "apkresolver.yaml"
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"

# Logging configuration
LOGGER_NAME = "apkresolver"
LOG_LEVEL_ENV_VAR = "APKRESOLVER_LOG_LEVEL"
LOG_FILE_NAME = "apkresolver.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Outcome status names (serialized form)
STATUS_SUCCESS = "success"
STATUS_SOURCE_UNAVAILABLE = "source_unavailable"
STATUS_PARSE_FAILURE = "parse_failure"
STATUS_NO_COMPATIBLE_ARTIFACT = "no_compatible_artifact"
STATUS_STALE_RELEASE = "stale_release"
