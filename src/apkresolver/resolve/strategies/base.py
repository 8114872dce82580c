"""
Fetch Strategy Base

Every upstream integration implements ``FetchStrategy._fetch``. The public
``fetch_latest`` wrapper turns transport failures into
``SourceUnavailableError`` and malformed payloads into ``UpstreamParseError``,
so callers only ever see those two typed failures (or cancellation).

Strategies read their own upstream and nothing else: artifact selection and
staleness checks happen in the orchestrator.
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from apkresolver.exceptions import (
    HTTPStatusError,
    RateLimitError,
    SourceUnavailableError,
    TransportError,
    UpstreamParseError,
    VersionParseError,
)
from apkresolver.log_utils import logger

from ..models import ReleaseCandidate
from ..transport import HttpRequest, HttpResponse, Transport

_HREF_RX = re.compile(r'href="([^"]+)"', re.IGNORECASE)


@dataclass(frozen=True)
class FetchContext:
    """Per-resolution request helpers bound to the shared transport."""

    transport: Transport

    async def get(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> HttpResponse:
        """
        GET a URL and require a success status.

        Raises:
            RateLimitError: GitHub answered 403 with no remaining quota.
            HTTPStatusError: Any other non-2xx status.
            TransportError: No response could be obtained.
        """
        response = await self.transport.execute(
            HttpRequest(url=url, params=dict(params or {}), headers=dict(headers or {}))
        )
        if response.ok:
            return response

        if response.status == 403 and response.header("X-RateLimit-Remaining") == "0":
            reset = response.header("X-RateLimit-Reset")
            raise RateLimitError(
                reset_time=int(reset) if reset and reset.isdigit() else None,
                url=url,
            )
        raise HTTPStatusError(
            f"Upstream returned HTTP {response.status}",
            url=url,
            status_code=response.status,
            is_retryable=response.status >= 500 or response.status == 429,
        )

    async def get_json(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        response = await self.get(url, params=params, headers=headers)
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise UpstreamParseError(
                "Response is not valid JSON", url=url, details=str(exc)
            ) from exc

    async def get_text(self, url: str) -> str:
        response = await self.get(url)
        return response.text()


class FetchStrategy(ABC):
    """Reads the latest release of one application from one upstream channel."""

    kind = "base"

    @abstractmethod
    async def _fetch(self, ctx: FetchContext) -> ReleaseCandidate:
        """Query the upstream and build the raw release candidate."""

    def describe(self) -> str:
        return self.kind

    async def fetch_latest(self, ctx: FetchContext) -> ReleaseCandidate:
        """
        Fetch the latest release candidate.

        Raises:
            SourceUnavailableError: The upstream could not be reached or answered
                with a non-success status.
            UpstreamParseError: The upstream answered but the expected fields could
                not be located.
        """
        try:
            candidate = await self._fetch(ctx)
        except (SourceUnavailableError, UpstreamParseError):
            raise
        except TransportError as exc:
            raise SourceUnavailableError(
                exc.message,
                url=exc.url,
                status_code=exc.status_code,
                details=exc.details,
            ) from exc
        except VersionParseError as exc:
            raise UpstreamParseError(
                f"Unparsable version from {self.describe()}", details=str(exc)
            ) from exc
        except (
            KeyError,
            IndexError,
            TypeError,
            ValueError,
            AttributeError,
            ArithmeticError,
        ) as exc:
            raise UpstreamParseError(
                f"Unexpected payload from {self.describe()}",
                details=f"{type(exc).__name__}: {exc}",
            ) from exc

        if not candidate.version_text or not candidate.version_text.strip():
            raise UpstreamParseError(f"No version found by {self.describe()}")
        logger.debug(
            "%s found version %s with %d artifact(s)",
            self.describe(),
            candidate.version_text,
            len(candidate.artifacts),
        )
        return candidate


# =============================================================================
# Parsing helpers shared by strategies
# =============================================================================


def require(data: Mapping[str, Any], key: str, url: Optional[str] = None) -> Any:
    """
    Return ``data[key]``, raising UpstreamParseError when missing or empty.
    """
    if not isinstance(data, Mapping):
        raise UpstreamParseError(
            f"Expected an object containing '{key}'",
            url=url,
            details=f"got {type(data).__name__}",
        )
    value = data.get(key)
    if value is None or value == "" or value == []:
        raise UpstreamParseError(f"Field '{key}' missing from response", url=url)
    return value


def parse_iso_timestamp(text: str) -> datetime:
    """
    Parse an ISO 8601 timestamp into an aware datetime (UTC when no offset is given).

    Raises:
        ValueError: If the text is not ISO 8601.
    """
    value = str(text).strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_listing_timestamp(text: str, fmt: str) -> datetime:
    """Parse a directory-listing timestamp (always UTC on the mirrors we read)."""
    return datetime.strptime(text.strip(), fmt).replace(tzinfo=timezone.utc)


def extract_links(html: str) -> List[str]:
    """Return every href of an HTML page in document order."""
    return _HREF_RX.findall(html)
