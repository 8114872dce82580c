"""
GitHub Releases Strategy

Reads releases from the GitHub REST API. Repositories whose newest published
release is always the one to ship use the ``/releases/latest`` endpoint; those
that interleave channels (Brave's release/beta/nightly, Thunderbird and K-9
sharing a repository) page through ``/releases`` and take the first entry
accepted by a ``ReleaseFilter``.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence

from apkresolver.constants import (
    APK_FORMAT,
    GITHUB_API_BASE,
    GITHUB_MAX_PAGES,
    GITHUB_MAX_PER_PAGE,
    GITHUB_RELEASES_PER_PAGE,
)
from apkresolver.exceptions import UpstreamParseError
from apkresolver.log_utils import logger

from ..models import ABI, Artifact, ReleaseCandidate
from .base import FetchContext, FetchStrategy, parse_iso_timestamp, require

VersionExtractor = Callable[[Mapping[str, Any]], str]


@dataclass(frozen=True)
class AssetRule:
    """Maps release assets whose name matches ``pattern`` to an ABI (None = universal)."""

    pattern: str
    abi: Optional[ABI] = None
    format: str = APK_FORMAT

    def matches(self, asset_name: str) -> bool:
        return re.search(self.pattern, asset_name) is not None


@dataclass(frozen=True)
class ReleaseFilter:
    """Channel filter applied to entries of the releases listing."""

    name_prefix: Optional[str] = None
    tag_prefix: Optional[str] = None
    prerelease: Optional[bool] = None

    def matches(self, release: Mapping[str, Any]) -> bool:
        if release.get("draft"):
            return False
        if self.prerelease is not None and bool(release.get("prerelease")) != self.prerelease:
            return False
        if self.name_prefix and not str(release.get("name") or "").startswith(
            self.name_prefix
        ):
            return False
        if self.tag_prefix and not str(release.get("tag_name") or "").startswith(
            self.tag_prefix
        ):
            return False
        return True


def tag_version(prefix: str = "v", separator: Optional[str] = None) -> VersionExtractor:
    """
    Build an extractor reading the version from ``tag_name``.

    The prefix is removed when present; ``separator`` is replaced by dots
    (``THUNDERBIRD_9_0b3`` -> ``9.0b3``).
    """

    def extract(release: Mapping[str, Any]) -> str:
        tag = str(require(release, "tag_name")).strip()
        if prefix and tag.startswith(prefix):
            tag = tag[len(prefix) :]
        if separator:
            tag = tag.replace(separator, ".")
        return tag

    return extract


def name_version(pattern: str) -> VersionExtractor:
    """Build an extractor taking the first group of ``pattern`` in the release name."""
    compiled = re.compile(pattern)

    def extract(release: Mapping[str, Any]) -> str:
        name = str(require(release, "name"))
        match = compiled.search(name)
        if match is None:
            raise UpstreamParseError(f"Release name {name!r} has no version")
        return match.group(1)

    return extract


class GithubReleaseStrategy(FetchStrategy):
    kind = "github"

    def __init__(
        self,
        repository: str,
        asset_rules: Sequence[AssetRule],
        release_filter: Optional[ReleaseFilter] = None,
        version_from: Optional[VersionExtractor] = None,
        per_page: int = GITHUB_RELEASES_PER_PAGE,
        max_pages: int = GITHUB_MAX_PAGES,
    ) -> None:
        """
        Parameters:
            repository (str): ``owner/name`` of the GitHub repository.
            asset_rules (Sequence[AssetRule]): Rules selecting the APK assets; first match wins.
            release_filter (Optional[ReleaseFilter]): When given, page through the
                listing instead of using ``/releases/latest``.
            version_from (Optional[VersionExtractor]): Version extractor; defaults to
                the tag with an optional leading "v" removed.
            per_page (int): Listing page size (capped at the API maximum).
            max_pages (int): Number of listing pages scanned before giving up.
        """
        self.repository = repository
        self.asset_rules = tuple(asset_rules)
        self.release_filter = release_filter
        self.version_from = version_from or tag_version()
        self.per_page = max(1, min(int(per_page), GITHUB_MAX_PER_PAGE))
        self.max_pages = max(1, int(max_pages))

    @property
    def releases_url(self) -> str:
        return f"{GITHUB_API_BASE}/{self.repository}/releases"

    def describe(self) -> str:
        return f"github:{self.repository}"

    def _artifacts(self, release: Mapping[str, Any]) -> List[Artifact]:
        assets = release.get("assets") or []
        if not isinstance(assets, list):
            raise UpstreamParseError(
                "Release assets is not a list", url=self.releases_url
            )
        artifacts: List[Artifact] = []
        for asset in assets:
            if not isinstance(asset, Mapping):
                logger.warning(
                    "Skipping malformed asset in %s: expected dict, got %s",
                    self.repository,
                    type(asset).__name__,
                )
                continue
            name = str(asset.get("name") or "")
            url = asset.get("browser_download_url")
            if not name or not url:
                continue
            rule = next((r for r in self.asset_rules if r.matches(name)), None)
            if rule is None:
                continue
            artifacts.append(
                Artifact(url=url, abi=rule.abi, file_name=name, format=rule.format)
            )
        return artifacts

    def _candidate(
        self, release: Mapping[str, Any], artifacts: List[Artifact]
    ) -> ReleaseCandidate:
        return ReleaseCandidate(
            version_text=self.version_from(release),
            published_at=parse_iso_timestamp(require(release, "published_at")),
            artifacts=artifacts,
            source_url=release.get("html_url") or self.releases_url,
        )

    async def _fetch(self, ctx: FetchContext) -> ReleaseCandidate:
        if self.release_filter is None:
            return await self._fetch_latest_endpoint(ctx)
        return await self._scan_releases(ctx, self.release_filter)

    async def _fetch_latest_endpoint(self, ctx: FetchContext) -> ReleaseCandidate:
        url = f"{self.releases_url}/latest"
        release = await ctx.get_json(url)
        if not isinstance(release, Mapping):
            raise UpstreamParseError(
                "Expected a release object",
                url=url,
                details=f"got {type(release).__name__}",
            )
        artifacts = self._artifacts(release)
        if not artifacts:
            raise UpstreamParseError(
                f"Latest release of {self.repository} has no matching assets", url=url
            )
        return self._candidate(release, artifacts)

    async def _scan_releases(
        self, ctx: FetchContext, release_filter: ReleaseFilter
    ) -> ReleaseCandidate:
        for page in range(1, self.max_pages + 1):
            releases = await ctx.get_json(
                self.releases_url, params={"per_page": self.per_page, "page": page}
            )
            if not isinstance(releases, list):
                raise UpstreamParseError(
                    "Expected a list of releases",
                    url=self.releases_url,
                    details=f"got {type(releases).__name__}",
                )
            for release in releases:
                if not isinstance(release, Mapping) or not release_filter.matches(
                    release
                ):
                    continue
                artifacts = self._artifacts(release)
                if not artifacts:
                    # Assets are uploaded after the release is created
                    logger.debug(
                        "Skipping %s release %s without matching assets",
                        self.repository,
                        release.get("tag_name"),
                    )
                    continue
                return self._candidate(release, artifacts)
            if len(releases) < self.per_page:
                break

        raise UpstreamParseError(
            f"No release of {self.repository} matches {release_filter}",
            url=self.releases_url,
        )
