"""
Upstream fetch strategies, one class per kind of release channel.
"""

from .base import FetchContext, FetchStrategy
from .chromium import ChromiumSnapshotStrategy
from .fdroid import FdroidStrategy
from .github import (
    AssetRule,
    GithubReleaseStrategy,
    ReleaseFilter,
    name_version,
    tag_version,
)
from .mozilla import MozillaArchiveStrategy, MozillaTaskclusterStrategy
from .tor import TorDistStrategy
from .vivaldi import VivaldiStrategy

__all__ = [
    "FetchContext",
    "FetchStrategy",
    "AssetRule",
    "ReleaseFilter",
    "tag_version",
    "name_version",
    "GithubReleaseStrategy",
    "FdroidStrategy",
    "MozillaArchiveStrategy",
    "MozillaTaskclusterStrategy",
    "ChromiumSnapshotStrategy",
    "TorDistStrategy",
    "VivaldiStrategy",
]
