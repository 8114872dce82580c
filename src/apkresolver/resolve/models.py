"""
Core Data Model for the apkresolver Resolution Engine

This module defines the value types shared by every fetch strategy, the
artifact selector, the freshness validator and the orchestrator.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, List, Optional, Tuple, Union

from apkresolver.constants import (
    APK_FORMAT,
    STATUS_NO_COMPATIBLE_ARTIFACT,
    STATUS_PARSE_FAILURE,
    STATUS_SOURCE_UNAVAILABLE,
    STATUS_STALE_RELEASE,
    STATUS_SUCCESS,
)


class ABI(Enum):
    """Android application binary interfaces an artifact can be built for."""

    ARMEABI_V7A = "armeabi-v7a"
    ARM64_V8A = "arm64-v8a"
    X86 = "x86"
    X86_64 = "x86_64"

    @property
    def is_32bit(self) -> bool:
        return self in (ABI.ARMEABI_V7A, ABI.X86)

    @classmethod
    def parse(cls, text: str) -> "ABI":
        """
        Parse an ABI name, accepting the aliases upstreams use in file names.

        Raises:
            ValueError: If the text names no known ABI.
        """
        key = str(text).strip().lower().replace("_", "-")
        abi = _ABI_ALIASES.get(key)
        if abi is None:
            raise ValueError(f"Unknown ABI: {text!r}")
        return abi


_ABI_ALIASES: Dict[str, ABI] = {
    "armeabi-v7a": ABI.ARMEABI_V7A,
    "armeabi": ABI.ARMEABI_V7A,
    "armv7": ABI.ARMEABI_V7A,
    "arm": ABI.ARMEABI_V7A,
    "arm32": ABI.ARMEABI_V7A,
    "arm64-v8a": ABI.ARM64_V8A,
    "arm64": ABI.ARM64_V8A,
    "aarch64": ABI.ARM64_V8A,
    "x86": ABI.X86,
    "i686": ABI.X86,
    "x86-64": ABI.X86_64,
    "x64": ABI.X86_64,
    "amd64": ABI.X86_64,
}

# ABIs a device can run, keyed by its primary ABI, best first
COMPATIBLE_ABIS: Dict[ABI, Tuple[ABI, ...]] = {
    ABI.ARM64_V8A: (ABI.ARM64_V8A, ABI.ARMEABI_V7A),
    ABI.ARMEABI_V7A: (ABI.ARMEABI_V7A,),
    ABI.X86_64: (ABI.X86_64, ABI.X86),
    ABI.X86: (ABI.X86,),
}


@dataclass(frozen=True)
class Artifact:
    """A concrete downloadable binary published for a release."""

    url: str
    """Direct download URL"""

    abi: Optional[ABI] = None
    """Target ABI; None marks a universal artifact"""

    file_name: Optional[str] = None
    """Upstream file name, when known"""

    format: str = APK_FORMAT
    """Container format ("apk" or "zip")"""

    min_sdk: Optional[int] = None
    """Lowest Android API level the artifact installs on, when published"""

    @property
    def is_universal(self) -> bool:
        return self.abi is None


@total_ordering
@dataclass(frozen=True, eq=False)
class VersionInfo:
    """
    A normalized, ordered version.

    Equality and ordering use only the precomputed ``sort_key``; the upstream
    text is kept verbatim in ``version_text`` for display and exemption lookups.
    Build instances with ``apkresolver.resolve.version.normalize``.
    """

    version_text: str
    release: Tuple[int, ...]
    suffix: str
    is_prerelease: bool
    sort_key: Tuple[Any, ...] = field(repr=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionInfo):
            return NotImplemented
        return self.sort_key == other.sort_key

    def __lt__(self, other: "VersionInfo") -> bool:
        if not isinstance(other, VersionInfo):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __hash__(self) -> int:
        return hash(self.sort_key)

    def __str__(self) -> str:
        return self.version_text


@dataclass
class ReleaseCandidate:
    """Raw release data produced by a fetch strategy before normalization."""

    version_text: str
    """Version string exactly as published upstream"""

    published_at: Optional[datetime] = None
    """Timezone-aware publish time; None when the upstream does not publish one"""

    artifacts: List[Artifact] = field(default_factory=list)
    """Every artifact published for the release"""

    source_url: Optional[str] = None
    """Upstream location the candidate was read from"""


@dataclass(frozen=True)
class FetchResult:
    """Canonical, source-agnostic description of the latest release."""

    version: VersionInfo
    publish_timestamp: Optional[datetime]
    download_url: str
    required_artifact_hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version.version_text,
            "publish_timestamp": (
                self.publish_timestamp.isoformat() if self.publish_timestamp else None
            ),
            "download_url": self.download_url,
            "required_artifact_hint": self.required_artifact_hint,
        }


@dataclass(frozen=True)
class ApplicationDescriptor:
    """Immutable identity and freshness policy of a cataloged application."""

    app_id: str
    """Stable identifier (e.g. 'firefox_nightly')"""

    display_name: str
    """Human readable name"""

    max_age_days: Optional[int] = None
    """Maximum tolerated release age; None disables freshness enforcement"""

    age_check_exempt_versions: Tuple[str, ...] = ()
    """Version texts that skip the per-app age check (the global ceiling still applies)"""

    min_sdk: int = 21
    """Lowest Android API level the application supports"""

    homepage: Optional[str] = None


@dataclass(frozen=True)
class DeviceProfile:
    """Snapshot of the capabilities of the device being served."""

    abi: ABI = ABI.ARM64_V8A
    supported_abis: Tuple[ABI, ...] = ()
    prefer_32bit: bool = False
    sdk_int: int = 34

    def __post_init__(self) -> None:
        if not self.supported_abis:
            object.__setattr__(self, "supported_abis", COMPATIBLE_ABIS[self.abi])


# =============================================================================
# Resolution outcomes
# =============================================================================


@dataclass(frozen=True)
class Success:
    result: FetchResult
    status: str = field(default=STATUS_SUCCESS, init=False)

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, **self.result.to_dict()}


@dataclass(frozen=True)
class SourceUnavailable:
    detail: str = ""
    status: str = field(default=STATUS_SOURCE_UNAVAILABLE, init=False)

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "detail": self.detail}


@dataclass(frozen=True)
class ParseFailure:
    detail: str = ""
    status: str = field(default=STATUS_PARSE_FAILURE, init=False)

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "detail": self.detail}


@dataclass(frozen=True)
class NoCompatibleArtifact:
    detail: str = ""
    status: str = field(default=STATUS_NO_COMPATIBLE_ARTIFACT, init=False)

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "detail": self.detail}


@dataclass(frozen=True)
class StaleRelease:
    age_in_days: int
    threshold_in_days: int
    result: Optional[FetchResult] = None
    status: str = field(default=STATUS_STALE_RELEASE, init=False)

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "status": self.status,
            "age_in_days": self.age_in_days,
            "threshold_in_days": self.threshold_in_days,
        }
        if self.result is not None:
            data["version"] = self.result.version.version_text
            data["download_url"] = self.result.download_url
        return data


ResolutionOutcome = Union[
    Success, SourceUnavailable, ParseFailure, NoCompatibleArtifact, StaleRelease
]


@dataclass(frozen=True)
class UpdateCheck:
    """Outcome of comparing the latest release against an installed version."""

    outcome: ResolutionOutcome
    installed_version: Optional[str] = None
    update_available: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.outcome.to_dict(),
            "installed_version": self.installed_version,
            "update_available": self.update_available,
        }
