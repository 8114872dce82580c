"""
Chromium Snapshot Strategy

Continuous Chromium builds land in the public ``chromium-browser-snapshots``
bucket. ``LAST_CHANGE`` names the newest revision; the object metadata of its
archive gives the upload time. The artifact is a zip that bundles the APKs.
"""

import re
from urllib.parse import quote

from apkresolver.constants import (
    CHROMIUM_SNAPSHOTS_BASE,
    CHROMIUM_SNAPSHOTS_METADATA_BASE,
    ZIP_FORMAT,
)
from apkresolver.exceptions import UpstreamParseError

from ..models import ABI, Artifact, ReleaseCandidate
from .base import FetchContext, FetchStrategy, parse_iso_timestamp, require

_REVISION_RX = re.compile(r"^\d+$")


class ChromiumSnapshotStrategy(FetchStrategy):
    kind = "chromium-snapshot"

    def __init__(
        self,
        platform: str = "Android_Arm64",
        abi: ABI = ABI.ARM64_V8A,
        archive_name: str = "chrome-android.zip",
        min_sdk: int = 29,
    ) -> None:
        self.platform = platform
        self.abi = abi
        self.archive_name = archive_name
        self.min_sdk = min_sdk

    def describe(self) -> str:
        return f"chromium-snapshot:{self.platform}"

    async def _fetch(self, ctx: FetchContext) -> ReleaseCandidate:
        last_change_url = f"{CHROMIUM_SNAPSHOTS_BASE}/{self.platform}/LAST_CHANGE"
        revision = (await ctx.get_text(last_change_url)).strip()
        if not _REVISION_RX.match(revision):
            raise UpstreamParseError(
                "LAST_CHANGE does not contain a revision number",
                url=last_change_url,
                details=revision[:80],
            )

        object_name = f"{self.platform}/{revision}/{self.archive_name}"
        metadata_url = f"{CHROMIUM_SNAPSHOTS_METADATA_BASE}/{quote(object_name, safe='')}"
        metadata = await ctx.get_json(metadata_url)
        updated = parse_iso_timestamp(require(metadata, "updated", metadata_url))

        return ReleaseCandidate(
            version_text=revision,
            published_at=updated,
            artifacts=[
                Artifact(
                    url=f"{CHROMIUM_SNAPSHOTS_BASE}/{object_name}",
                    abi=self.abi,
                    file_name=self.archive_name,
                    format=ZIP_FORMAT,
                    min_sdk=self.min_sdk,
                )
            ],
            source_url=metadata_url,
        )
