"""
Mozilla Strategies

Release and beta builds of Firefox, Focus and Klar are announced in the
product-details feed and published on archive.mozilla.org, whose directory
listing carries the upload time. Nightly builds only exist on Taskcluster,
where the index points at the latest signing task per ABI.
"""

import re
from typing import List, Sequence

from apkresolver.constants import (
    MOZILLA_ARCHIVE_BASE,
    MOZILLA_PRODUCT_DETAILS_URL,
    MOZILLA_TASKCLUSTER_BASE,
)
from apkresolver.exceptions import UpstreamParseError

from ..models import ABI, Artifact, ReleaseCandidate
from .base import (
    FetchContext,
    FetchStrategy,
    parse_iso_timestamp,
    parse_listing_timestamp,
    require,
)

ARCHIVE_TIMESTAMP_FORMAT = "%d-%b-%Y %H:%M"
NIGHTLY_VERSION_FORMAT = "%Y-%m-%d %H:%M"
ANDROID_ABIS = (ABI.ARMEABI_V7A, ABI.ARM64_V8A, ABI.X86, ABI.X86_64)


class MozillaArchiveStrategy(FetchStrategy):
    kind = "mozilla-archive"

    def __init__(
        self,
        product: str,
        file_prefix: str,
        version_key: str = "version",
        abis: Sequence[ABI] = ANDROID_ABIS,
        reference_abi: ABI = ABI.ARM64_V8A,
    ) -> None:
        """
        Parameters:
            product (str): Archive product directory ("fenix" or "focus").
            file_prefix (str): File name prefix ("fenix", "focus" or "klar").
            version_key (str): product-details key holding the version
                ("version" or "beta_version").
            abis (Sequence[ABI]): ABIs Mozilla builds for this product.
            reference_abi (ABI): ABI whose listing supplies the upload time.
        """
        self.product = product
        self.file_prefix = file_prefix
        self.version_key = version_key
        self.abis = tuple(abis)
        self.reference_abi = reference_abi

    def describe(self) -> str:
        return f"mozilla-archive:{self.file_prefix}:{self.version_key}"

    def _directory_url(self, version: str, abi: ABI) -> str:
        return (
            f"{MOZILLA_ARCHIVE_BASE}/{self.product}/releases/{version}/android/"
            f"{self.file_prefix}-{version}-android-{abi.value}/"
        )

    def _file_name(self, version: str, abi: ABI) -> str:
        return f"{self.file_prefix}-{version}.multi.android-{abi.value}.apk"

    async def _fetch(self, ctx: FetchContext) -> ReleaseCandidate:
        details = await ctx.get_json(MOZILLA_PRODUCT_DETAILS_URL)
        version = str(require(details, self.version_key, MOZILLA_PRODUCT_DETAILS_URL))

        listing_url = self._directory_url(version, self.reference_abi)
        listing = await ctx.get_text(listing_url)
        reference_file = self._file_name(version, self.reference_abi)
        row = re.search(
            re.escape(reference_file)
            + r"</a>\s*</td>\s*<td>[^<]*</td>\s*<td>\s*([^<]+?)\s*</td>",
            listing,
        )
        if row is None:
            raise UpstreamParseError(
                f"{reference_file} not found in archive listing", url=listing_url
            )

        artifacts: List[Artifact] = [
            Artifact(
                url=self._directory_url(version, abi) + self._file_name(version, abi),
                abi=abi,
                file_name=self._file_name(version, abi),
            )
            for abi in self.abis
        ]
        return ReleaseCandidate(
            version_text=version,
            published_at=parse_listing_timestamp(row.group(1), ARCHIVE_TIMESTAMP_FORMAT),
            artifacts=artifacts,
            source_url=listing_url,
        )


class MozillaTaskclusterStrategy(FetchStrategy):
    kind = "mozilla-taskcluster"

    def __init__(
        self,
        namespace_template: str,
        artifact_template: str,
        abis: Sequence[ABI] = ANDROID_ABIS,
        reference_abi: ABI = ABI.ARM64_V8A,
    ) -> None:
        """
        Parameters:
            namespace_template (str): Index namespace with an ``{abi}`` placeholder.
            artifact_template (str): Artifact path with an ``{abi}`` placeholder.
            abis (Sequence[ABI]): ABIs with an index route.
            reference_abi (ABI): ABI whose task supplies the build time.
        """
        self.namespace_template = namespace_template
        self.artifact_template = artifact_template
        self.abis = tuple(abis)
        self.reference_abi = reference_abi

    def describe(self) -> str:
        return f"taskcluster:{self.namespace_template}"

    def _index_url(self, abi: ABI) -> str:
        namespace = self.namespace_template.format(abi=abi.value)
        return f"{MOZILLA_TASKCLUSTER_BASE}/index/v1/task/{namespace}"

    async def _fetch(self, ctx: FetchContext) -> ReleaseCandidate:
        index_url = self._index_url(self.reference_abi)
        index = await ctx.get_json(index_url)
        task_id = str(require(index, "taskId", index_url))

        task_url = f"{MOZILLA_TASKCLUSTER_BASE}/queue/v1/task/{task_id}"
        task = await ctx.get_json(task_url)
        created = parse_iso_timestamp(require(task, "created", task_url))

        artifacts = []
        for abi in self.abis:
            artifact_path = self.artifact_template.format(abi=abi.value)
            artifacts.append(
                Artifact(
                    url=f"{self._index_url(abi)}/artifacts/{artifact_path}",
                    abi=abi,
                    file_name=artifact_path.rsplit("/", 1)[-1],
                )
            )
        return ReleaseCandidate(
            version_text=created.strftime(NIGHTLY_VERSION_FORMAT),
            published_at=created,
            artifacts=artifacts,
            source_url=task_url,
        )
