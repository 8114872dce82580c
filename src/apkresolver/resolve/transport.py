"""
HTTP Transport for the Resolution Engine

The engine only talks to upstreams through the ``Transport`` interface so that
connection pooling, proxy and certificate trust stay outside of it and tests
can substitute recorded responses. ``AiohttpTransport`` is the production
implementation.

Example:
    async with AiohttpTransport(github_token=token) as transport:
        response = await transport.execute(HttpRequest(url))
"""

import asyncio
import json
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

import aiohttp
from aiohttp import ClientSession, ClientTimeout, TCPConnector

from apkresolver.constants import (
    DEFAULT_CONNECTOR_LIMIT,
    DEFAULT_MAX_CONCURRENT_RESOLUTIONS,
    DEFAULT_REQUEST_TIMEOUT,
    GITHUB_API_HOST,
)
from apkresolver.exceptions import TransportError
from apkresolver.log_utils import logger
from apkresolver.utils import get_user_agent


@dataclass(frozen=True)
class HttpRequest:
    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HttpResponse:
    url: str
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Raises:
            json.JSONDecodeError: If the body is not valid JSON.
        """
        return json.loads(self.body.decode("utf-8", errors="replace"))

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class Transport(ABC):
    """
    Abstract HTTP transport shared read-only by concurrent resolutions.

    Implementations return every response they receive, whatever its status,
    and raise TransportError only when no response could be obtained.
    """

    @abstractmethod
    async def execute(self, request: HttpRequest) -> HttpResponse:
        """
        Perform a request.

        Raises:
            TransportError: On connection failures and timeouts.
        """


def _clamp_positive(name: str, value: Any, default: int) -> int:
    """
    Normalize a value to a positive integer (minimum 1), falling back to a default on parse errors.
    """
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning(
            "Invalid %s value %r; using default of %d", name, value, default
        )
        return default
    if parsed <= 0:
        logger.warning("%s must be >= 1; clamping %d to 1", name, parsed)
        return 1
    return parsed


class AiohttpTransport(Transport):
    """
    Transport backed by a pooled aiohttp ClientSession.

    The session is created lazily and reused by every request; a GitHub token,
    when configured, is only sent to the GitHub API host.
    """

    def __init__(
        self,
        github_token: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        connector_limit: int = DEFAULT_CONNECTOR_LIMIT,
        limit_per_host: int = DEFAULT_MAX_CONCURRENT_RESOLUTIONS,
        proxy: Optional[str] = None,
        ca_bundle: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Parameters:
            github_token (Optional[str]): Token for authenticated GitHub API requests.
            timeout (float): Total request timeout in seconds.
            connector_limit (int): Maximum total connections in the pool.
            limit_per_host (int): Maximum connections per upstream host.
            proxy (Optional[str]): HTTP(S) proxy URL applied to every request.
            ca_bundle (Optional[str]): Path to a CA bundle trusted for TLS.
            user_agent (Optional[str]): User-Agent header; defaults to the package agent.
        """
        self.github_token = github_token
        self.timeout = ClientTimeout(total=timeout)
        self.connector_limit = _clamp_positive(
            "connector_limit", connector_limit, DEFAULT_CONNECTOR_LIMIT
        )
        self.limit_per_host = _clamp_positive(
            "limit_per_host", limit_per_host, DEFAULT_MAX_CONCURRENT_RESOLUTIONS
        )
        self.proxy = proxy
        self.ca_bundle = ca_bundle
        self.user_agent = user_agent
        self._session: Optional[ClientSession] = None

    async def __aenter__(self) -> "AiohttpTransport":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _ssl_context(self) -> Optional[ssl.SSLContext]:
        if not self.ca_bundle:
            return None
        return ssl.create_default_context(cafile=self.ca_bundle)

    async def _ensure_session(self) -> ClientSession:
        """
        Ensure a session exists, creating one if needed.

        Returns:
            ClientSession: The active aiohttp session.
        """
        if self._session is None or self._session.closed:
            ssl_context = self._ssl_context()
            connector = TCPConnector(
                limit=self.connector_limit,
                limit_per_host=self.limit_per_host,
                enable_cleanup_closed=True,
                ssl=ssl_context if ssl_context is not None else True,
            )
            self._session = ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers=self._get_default_headers(),
            )
        return self._session

    def _get_default_headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent or get_user_agent()}

    def _headers_for(self, request: HttpRequest) -> Dict[str, str]:
        headers = dict(request.headers)
        host = urlsplit(request.url).hostname or ""
        if host == GITHUB_API_HOST:
            headers.setdefault("Accept", "application/vnd.github+json")
            headers.setdefault("X-GitHub-Api-Version", "2022-11-28")
            if self.github_token:
                headers.setdefault("Authorization", f"token {self.github_token}")
        return headers

    async def close(self) -> None:
        """Close the client session and release resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def execute(self, request: HttpRequest) -> HttpResponse:
        session = await self._ensure_session()
        logger.debug("%s %s", request.method, request.url)
        try:
            async with session.request(
                request.method,
                request.url,
                params=dict(request.params) or None,
                headers=self._headers_for(request),
                proxy=self.proxy,
            ) as response:
                body = await response.read()
                return HttpResponse(
                    url=str(response.url),
                    status=response.status,
                    headers=dict(response.headers),
                    body=body,
                )
        except asyncio.TimeoutError as exc:
            raise TransportError(
                "Request timed out", url=request.url, details=str(exc) or None
            ) from exc
        except aiohttp.ClientError as exc:
            raise TransportError(
                "Request failed", url=request.url, details=str(exc)
            ) from exc
