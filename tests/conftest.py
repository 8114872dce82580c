import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlencode

import platformdirs
import pytest
import requests

from apkresolver.resolve.device import FixedClock, StaticDeviceProfileProvider
from apkresolver.resolve.models import ABI, DeviceProfile
from apkresolver.resolve.transport import HttpRequest, HttpResponse, Transport

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)

_ASYNC_NETWORK_BLOCK_MSG = (
    "Async network access is blocked during tests. Use FakeTransport or mock aiohttp.ClientSession."
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


async def _async_block_network(*_args, **_kwargs):
    """
    Prevent async network calls during tests by raising a RuntimeError.

    Raises:
        RuntimeError: `_ASYNC_NETWORK_BLOCK_MSG` explaining that async network access is blocked.
    """
    raise RuntimeError(_ASYNC_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used by the suite.

    Parameters:
        config: pytest.Config
            The pytest configuration object used to register markers.
    """
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test (auto-detected)"
    )
    config.addinivalue_line("markers", "unit: fast isolated unit tests")
    config.addinivalue_line(
        "markers", "integration: tests spanning several components"
    )
    config.addinivalue_line(
        "markers", "user_interface: interactive menu tests with a mocked terminal"
    )


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs and the apkresolver config location at a temporary directory.

    Also removes GITHUB_TOKEN and APKRESOLVER_LOG_LEVEL from the environment so
    tests see deterministic defaults.
    """
    base = tmp_path_factory.mktemp("apkresolver")
    config_dir = base / "config"
    log_dir = base / "log"
    for path in (config_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("APKRESOLVER_LOG_LEVEL", raising=False)

    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )

    import apkresolver.config as config

    monkeypatch.setattr(config, "CONFIG_DIR", str(config_dir))
    monkeypatch.setattr(
        config, "CONFIG_FILE", str(config_dir / config.CONFIG_FILE_NAME)
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.head = _block_network
    requests.Session.request = _block_network

    import aiohttp

    aiohttp.request = _async_block_network
    aiohttp.ClientSession.request = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.get = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.head = _async_block_network  # type: ignore[assignment]


# =============================================================================
# Fake collaborators
# =============================================================================


Route = Union[HttpResponse, Exception]


class FakeTransport(Transport):
    """
    In-memory Transport keyed by URL.

    Each route maps a URL to a canned HttpResponse or to an exception to raise.
    A route registered with the encoded query (sorted params) wins over the
    bare URL. Unknown URLs answer 404. Every request is
    recorded in ``requests``; ``delay`` makes each call await before answering.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None, delay: float = 0.0):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.requests: List[HttpRequest] = []
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    def add_json(self, url: str, payload: Any, status: int = 200, headers=None):
        self.routes[url] = HttpResponse(
            url=url,
            status=status,
            headers=dict(headers or {}),
            body=json.dumps(payload).encode("utf-8"),
        )

    def add_text(self, url: str, text: str, status: int = 200, headers=None):
        self.routes[url] = HttpResponse(
            url=url, status=status, headers=dict(headers or {}), body=text.encode("utf-8")
        )

    def add_error(self, url: str, error: Exception):
        self.routes[url] = error

    def urls(self) -> List[str]:
        return [request.url for request in self.requests]

    async def execute(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            route = None
            if request.params:
                query = urlencode(sorted((k, str(v)) for k, v in request.params.items()))
                route = self.routes.get(f"{request.url}?{query}")
            if route is None:
                route = self.routes.get(request.url)
            if route is None:
                return HttpResponse(url=request.url, status=404, headers={}, body=b"")
            if isinstance(route, Exception):
                raise route
            return route
        finally:
            self.in_flight -= 1


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def make_transport():
    """Factory for additional FakeTransport instances (e.g. with a delay)."""
    return FakeTransport


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def fixed_clock():
    return FixedClock(NOW)


@pytest.fixture
def arm64_device():
    return DeviceProfile(abi=ABI.ARM64_V8A, sdk_int=34)


@pytest.fixture
def arm64_provider(arm64_device):
    return StaticDeviceProfileProvider(arm64_device)
