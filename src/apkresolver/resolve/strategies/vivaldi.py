"""
Vivaldi Strategy

Vivaldi publishes no release feed for Android; the download page links the
per-ABI APKs directly and the file names carry the version. No publish time
is available, so Vivaldi is cataloged without an age policy.
"""

import re

from apkresolver.constants import VIVALDI_DOWNLOAD_PAGE
from apkresolver.exceptions import UpstreamParseError
from apkresolver.log_utils import logger

from ..models import ABI, Artifact, ReleaseCandidate
from ..version import latest_of
from .base import FetchContext, FetchStrategy

_APK_LINK_RX = re.compile(
    r"https://downloads\.vivaldi\.com/stable/Vivaldi\.([\d.]+)_([A-Za-z0-9_-]+)\.apk"
)


class VivaldiStrategy(FetchStrategy):
    kind = "vivaldi"

    async def _fetch(self, ctx: FetchContext) -> ReleaseCandidate:
        page = await ctx.get_text(VIVALDI_DOWNLOAD_PAGE)
        links = {match.group(0): match.groups() for match in _APK_LINK_RX.finditer(page)}
        if not links:
            raise UpstreamParseError(
                "No APK links on download page", url=VIVALDI_DOWNLOAD_PAGE
            )

        version = latest_of([version for version, _ in links.values()])
        if version is None:
            raise UpstreamParseError(
                "No version in APK links", url=VIVALDI_DOWNLOAD_PAGE
            )
        artifacts = []
        for url, (link_version, abi_name) in links.items():
            if link_version != version:
                continue
            try:
                abi = ABI.parse(abi_name)
            except ValueError:
                logger.debug("Skipping Vivaldi link with unknown ABI: %s", url)
                continue
            artifacts.append(
                Artifact(url=url, abi=abi, file_name=url.rsplit("/", 1)[-1])
            )
        if not artifacts:
            raise UpstreamParseError(
                f"No APK links for a known ABI in version {version}",
                url=VIVALDI_DOWNLOAD_PAGE,
            )
        return ReleaseCandidate(
            version_text=version,
            published_at=None,
            artifacts=artifacts,
            source_url=VIVALDI_DOWNLOAD_PAGE,
        )
