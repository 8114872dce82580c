"""
Tor Browser Strategy

dist.torproject.org serves plain directory listings: the top level holds one
directory per version (alpha versions carry an ``a<N>`` suffix) and each
version directory lists the Android APKs with their upload times. Versions
released for desktop only have no APKs, so a few older versions are tried.
"""

import re
from datetime import datetime
from typing import List, Optional, Tuple

from apkresolver.constants import TOR_DIST_BASE
from apkresolver.exceptions import UpstreamParseError
from apkresolver.log_utils import logger

from ..models import ABI, Artifact, ReleaseCandidate
from ..version import normalize, try_normalize
from .base import FetchContext, FetchStrategy, extract_links, parse_listing_timestamp

LISTING_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"
VERSIONS_SCANNED = 3

_VERSION_DIR_RX = re.compile(r"^(\d+(?:\.\d+)*(?:a\d+)?)/$")
_APK_ROW_RX = re.compile(
    r'href="(tor-browser-android-(aarch64|armv7|x86_64|x86)-[^"]+\.apk)"[^>]*>'
    r"[^<]*</a>\s+(\d{4}-\d{2}-\d{2} \d{2}:\d{2})"
)

TOR_ARCHES = {
    "aarch64": ABI.ARM64_V8A,
    "armv7": ABI.ARMEABI_V7A,
    "x86": ABI.X86,
    "x86_64": ABI.X86_64,
}


class TorDistStrategy(FetchStrategy):
    kind = "tor-dist"

    def __init__(self, alpha: bool = False) -> None:
        self.alpha = alpha

    def describe(self) -> str:
        return "tor-dist:alpha" if self.alpha else "tor-dist:stable"

    def _channel_versions(self, listing: str) -> List[str]:
        versions = []
        for link in extract_links(listing):
            match = _VERSION_DIR_RX.match(link)
            if match is None:
                continue
            version = match.group(1)
            if ("a" in version) == self.alpha and try_normalize(version):
                versions.append(version)
        return sorted(versions, key=normalize, reverse=True)

    def _apks(
        self, version: str, listing: str
    ) -> Tuple[List[Artifact], Optional[datetime]]:
        artifacts = []
        newest: Optional[datetime] = None
        for file_name, arch, stamp in _APK_ROW_RX.findall(listing):
            uploaded = parse_listing_timestamp(stamp, LISTING_TIMESTAMP_FORMAT)
            newest = uploaded if newest is None else max(newest, uploaded)
            artifacts.append(
                Artifact(
                    url=f"{TOR_DIST_BASE}/{version}/{file_name}",
                    abi=TOR_ARCHES[arch],
                    file_name=file_name,
                )
            )
        return artifacts, newest

    async def _fetch(self, ctx: FetchContext) -> ReleaseCandidate:
        index_url = f"{TOR_DIST_BASE}/"
        versions = self._channel_versions(await ctx.get_text(index_url))
        if not versions:
            raise UpstreamParseError(
                f"No {self.describe()} versions in listing", url=index_url
            )

        for version in versions[:VERSIONS_SCANNED]:
            version_url = f"{TOR_DIST_BASE}/{version}/"
            artifacts, published = self._apks(version, await ctx.get_text(version_url))
            if artifacts:
                return ReleaseCandidate(
                    version_text=version,
                    published_at=published,
                    artifacts=artifacts,
                    source_url=version_url,
                )
            logger.debug("Tor Browser %s has no Android builds", version)

        raise UpstreamParseError(
            "No Android builds in the newest Tor Browser versions",
            url=index_url,
            details=", ".join(versions[:VERSIONS_SCANNED]),
        )
