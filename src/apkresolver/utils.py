# src/apkresolver/utils.py
import importlib.metadata
import os
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from apkresolver.constants import (
    APP_NAME,
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CONNECT_RETRIES,
    DOWNLOAD_PROBE_TIMEOUT,
    GITHUB_TOKEN_ENV_VAR,
)
from apkresolver.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `apkresolver/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(APP_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"{APP_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def get_effective_github_token(
    github_token: Optional[str], allow_env_token: bool = True
) -> Optional[str]:
    """
    Determine the GitHub token to use, preferring the explicit argument over the environment.

    Parameters:
        github_token (Optional[str]): Explicit token to use; leading and trailing whitespace are ignored.
        allow_env_token (bool): If True, fall back to the `GITHUB_TOKEN` environment variable when no explicit token is provided.

    Returns:
        Optional[str]: The chosen token with surrounding whitespace removed, or `None` if no token is available.
    """
    candidate = (github_token or "").strip()
    if candidate:
        return candidate
    if not allow_env_token:
        return None
    env_token = os.environ.get(GITHUB_TOKEN_ENV_VAR)
    return env_token.strip() if env_token and env_token.strip() else None


def _retrying_session() -> requests.Session:
    session = requests.Session()
    retry_strategy: Retry = Retry(
        total=DEFAULT_CONNECT_RETRIES,
        connect=DEFAULT_CONNECT_RETRIES,
        read=DEFAULT_CONNECT_RETRIES,
        status=DEFAULT_CONNECT_RETRIES,
        backoff_factor=DEFAULT_BACKOFF_FACTOR,
        status_forcelist=[408, 429, 500, 502, 503, 504],
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["User-Agent"] = get_user_agent()
    return session


def check_download_available(
    url: str, timeout: float = DOWNLOAD_PROBE_TIMEOUT
) -> bool:
    """
    Probe a resolved download URL with a HEAD request.

    Redirects are followed. Status-based retries are applied by urllib3's Retry
    before the final status is inspected.

    Parameters:
        url (str): The download URL to probe.
        timeout (float): Per-request timeout in seconds.

    Returns:
        bool: True if the final response has a 2xx status, False on any other status or request failure.
    """
    session = _retrying_session()
    try:
        response = session.head(url, allow_redirects=True, timeout=timeout)
        logger.debug(
            f"Received HTTP response status code: {response.status_code} for URL: {url}"
        )
        return 200 <= response.status_code < 300
    except requests.exceptions.RequestException as e:
        logger.warning(f"Download probe failed for {url}: {e}")
        return False
    finally:
        session.close()
