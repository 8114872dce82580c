"""
F-Droid Strategy

The F-Droid packages API lists the published version codes of a package and
the suggested one. It carries no dates, so the publish time is taken from the
fdroiddata commit that added the suggested version to the package metadata.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from apkresolver.constants import (
    FDROID_PACKAGES_API,
    FDROID_REPO_URL,
    FDROIDDATA_COMMITS_API,
)
from apkresolver.exceptions import UpstreamParseError

from ..models import ABI, Artifact, ReleaseCandidate
from .base import FetchContext, FetchStrategy, parse_iso_timestamp, require

COMMITS_SCANNED = 5


class FdroidStrategy(FetchStrategy):
    kind = "fdroid"

    def __init__(
        self,
        package_name: str,
        abi_by_version_code_suffix: Optional[Mapping[int, ABI]] = None,
    ) -> None:
        """
        Parameters:
            package_name (str): Android package name on F-Droid.
            abi_by_version_code_suffix (Optional[Mapping[int, ABI]]): For packages
                built per ABI, maps the last digit of the version code to the ABI.
                When omitted the suggested version code is a universal APK.
        """
        self.package_name = package_name
        self.abi_by_version_code_suffix = dict(abi_by_version_code_suffix or {})

    @property
    def packages_url(self) -> str:
        return f"{FDROID_PACKAGES_API}/{self.package_name}"

    def describe(self) -> str:
        return f"fdroid:{self.package_name}"

    def _apk_url(self, version_code: int) -> str:
        return f"{FDROID_REPO_URL}/{self.package_name}_{version_code}.apk"

    def _artifacts(
        self, packages: List[Dict[str, Any]], suggested: Dict[str, Any]
    ) -> List[Artifact]:
        if not self.abi_by_version_code_suffix:
            code = int(suggested["versionCode"])
            return [
                Artifact(
                    url=self._apk_url(code),
                    file_name=f"{self.package_name}_{code}.apk",
                )
            ]

        artifacts = []
        for package in packages:
            if package.get("versionName") != suggested["versionName"]:
                continue
            code = int(package["versionCode"])
            abi = self.abi_by_version_code_suffix.get(code % 10)
            if abi is None:
                continue
            artifacts.append(
                Artifact(
                    url=self._apk_url(code),
                    abi=abi,
                    file_name=f"{self.package_name}_{code}.apk",
                )
            )
        return artifacts

    async def _fetch(self, ctx: FetchContext) -> ReleaseCandidate:
        data = await ctx.get_json(self.packages_url)
        suggested_code = int(require(data, "suggestedVersionCode", self.packages_url))
        packages = require(data, "packages", self.packages_url)
        if not isinstance(packages, list):
            raise UpstreamParseError("'packages' is not a list", url=self.packages_url)

        suggested = next(
            (p for p in packages if int(p.get("versionCode", -1)) == suggested_code),
            None,
        )
        if suggested is None:
            raise UpstreamParseError(
                f"Suggested version code {suggested_code} is not listed",
                url=self.packages_url,
            )

        version_name = str(require(suggested, "versionName", self.packages_url))
        artifacts = self._artifacts(packages, suggested)
        if not artifacts:
            raise UpstreamParseError(
                f"No ABI-specific builds of {version_name} recognized",
                url=self.packages_url,
            )

        return ReleaseCandidate(
            version_text=version_name,
            published_at=await self._publish_date(ctx, version_name),
            artifacts=artifacts,
            source_url=self.packages_url,
        )

    async def _publish_date(self, ctx: FetchContext, version_name: str) -> datetime:
        commits = await ctx.get_json(
            FDROIDDATA_COMMITS_API,
            params={
                "path": f"metadata/{self.package_name}.yml",
                "per_page": COMMITS_SCANNED,
            },
        )
        if not isinstance(commits, list) or not commits:
            raise UpstreamParseError(
                f"No fdroiddata commits for {self.package_name}",
                url=FDROIDDATA_COMMITS_API,
            )
        # Prefer the commit that mentions the version; metadata fixes may follow it
        chosen = next(
            (c for c in commits if version_name in str(c.get("title") or "")),
            commits[0],
        )
        return parse_iso_timestamp(require(chosen, "created_at", FDROIDDATA_COMMITS_API))
