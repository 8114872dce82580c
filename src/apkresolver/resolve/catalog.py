"""
Application Catalog

Maps each application id to its descriptor (identity and freshness policy)
and to the strategy that reads its upstream channel. The default catalog is
static; policies can be overridden from configuration.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, List, Mapping, Optional

from apkresolver.exceptions import ConfigurationError, UnknownApplicationError

from .models import ABI, ApplicationDescriptor
from .strategies import (
    AssetRule,
    ChromiumSnapshotStrategy,
    FdroidStrategy,
    FetchStrategy,
    GithubReleaseStrategy,
    MozillaArchiveStrategy,
    MozillaTaskclusterStrategy,
    ReleaseFilter,
    TorDistStrategy,
    VivaldiStrategy,
    name_version,
    tag_version,
)


@dataclass(frozen=True)
class CatalogEntry:
    descriptor: ApplicationDescriptor
    strategy: FetchStrategy

    @property
    def app_id(self) -> str:
        return self.descriptor.app_id


class AppCatalog:
    """Ordered, read-only registry of cataloged applications."""

    def __init__(self, entries: List[CatalogEntry]) -> None:
        self._entries: Dict[str, CatalogEntry] = {}
        for entry in entries:
            if entry.app_id in self._entries:
                raise ConfigurationError(f"Duplicate application id: {entry.app_id}")
            self._entries[entry.app_id] = entry

    def __contains__(self, app_id: object) -> bool:
        return app_id in self._entries

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def app_ids(self) -> List[str]:
        return list(self._entries)

    def get(self, app_id: str) -> CatalogEntry:
        try:
            return self._entries[app_id]
        except KeyError:
            raise UnknownApplicationError(app_id) from None

    def with_policy_overrides(
        self, overrides: Optional[Mapping[str, Mapping[str, Any]]]
    ) -> "AppCatalog":
        """
        Return a catalog whose descriptors carry overridden freshness policies.

        ``overrides`` maps app ids to ``max_age_days`` and/or
        ``age_check_exempt_versions``. Unknown app ids or keys raise
        ConfigurationError.
        """
        if not overrides:
            return self
        entries = []
        for entry in self:
            override = overrides.get(entry.app_id)
            if override is None:
                entries.append(entry)
                continue
            unknown = set(override) - {"max_age_days", "age_check_exempt_versions"}
            if unknown:
                raise ConfigurationError(
                    f"Unknown policy keys for {entry.app_id}",
                    details=", ".join(sorted(unknown)),
                )
            changes: Dict[str, Any] = {}
            if "max_age_days" in override:
                max_age = override["max_age_days"]
                if max_age is not None and (not isinstance(max_age, int) or max_age <= 0):
                    raise ConfigurationError(
                        f"max_age_days for {entry.app_id} must be a positive integer or null"
                    )
                changes["max_age_days"] = max_age
            if "age_check_exempt_versions" in override:
                changes["age_check_exempt_versions"] = tuple(
                    str(v) for v in override["age_check_exempt_versions"] or ()
                )
            entries.append(replace(entry, descriptor=replace(entry.descriptor, **changes)))

        missing = set(overrides) - set(self._entries)
        if missing:
            raise ConfigurationError(
                "Policy overrides for unknown applications",
                details=", ".join(sorted(missing)),
            )
        return AppCatalog(entries)


def _entry(
    app_id: str,
    display_name: str,
    max_age_days: Optional[int],
    strategy: FetchStrategy,
    exempt: tuple = (),
    min_sdk: int = 21,
    homepage: Optional[str] = None,
) -> CatalogEntry:
    return CatalogEntry(
        descriptor=ApplicationDescriptor(
            app_id=app_id,
            display_name=display_name,
            max_age_days=max_age_days,
            age_check_exempt_versions=tuple(exempt),
            min_sdk=min_sdk,
            homepage=homepage,
        ),
        strategy=strategy,
    )


def _abi_split_rules(template: str) -> List[AssetRule]:
    """Asset rules for names embedding the Android ABI string via ``{abi}``."""
    return [AssetRule(template.format(abi=abi.value), abi) for abi in ABI]


BRAVE_ASSETS = [
    AssetRule(r"^BraveMonoarm\.apk$", ABI.ARMEABI_V7A),
    AssetRule(r"^BraveMonoarm64\.apk$", ABI.ARM64_V8A),
    AssetRule(r"^BraveMonox86\.apk$", ABI.X86),
    AssetRule(r"^BraveMonox64\.apk$", ABI.X86_64),
]
BRAVE_VERSION = name_version(r"v(\d+\.\d+\.\d+)")

THUNDERBIRD_ASSETS = [AssetRule(r"^thunderbird-.*\.apk$")]


def _brave(app_id: str, display_name: str, channel: str, max_age: int) -> CatalogEntry:
    return _entry(
        app_id,
        display_name,
        max_age,
        GithubReleaseStrategy(
            "brave/brave-browser",
            BRAVE_ASSETS,
            release_filter=ReleaseFilter(name_prefix=f"{channel} v"),
            version_from=BRAVE_VERSION,
        ),
        min_sdk=28,
        homepage="https://brave.com/",
    )


def _firefox_archive(
    app_id: str,
    display_name: str,
    product: str,
    file_prefix: str,
    version_key: str,
    max_age: int,
) -> CatalogEntry:
    return _entry(
        app_id,
        display_name,
        max_age,
        MozillaArchiveStrategy(product, file_prefix, version_key=version_key),
        min_sdk=21,
        homepage="https://www.mozilla.org/firefox/browsers/mobile/",
    )


def build_default_catalog() -> AppCatalog:
    """Return the built-in catalog of supported applications."""
    return AppCatalog(
        [
            _brave("brave", "Brave", "Release", 28),
            _brave("brave_beta", "Brave Beta", "Beta", 14),
            _brave("brave_nightly", "Brave Nightly", "Nightly", 7),
            _entry(
                "chromium",
                "Chromium",
                60,
                ChromiumSnapshotStrategy(),
                min_sdk=29,
                homepage="https://www.chromium.org/",
            ),
            _entry(
                "cromite",
                "Cromite",
                60,
                GithubReleaseStrategy(
                    "uazo/cromite",
                    [
                        AssetRule(r"^arm_ChromePublic\.apk$", ABI.ARMEABI_V7A),
                        AssetRule(r"^arm64_ChromePublic\.apk$", ABI.ARM64_V8A),
                        AssetRule(r"^x64_ChromePublic\.apk$", ABI.X86_64),
                    ],
                ),
                min_sdk=26,
                homepage="https://github.com/uazo/cromite",
            ),
            _entry(
                "duckduckgo",
                "DuckDuckGo",
                60,
                GithubReleaseStrategy(
                    "duckduckgo/Android",
                    [AssetRule(r"^duckduckgo-.*-play-release\.apk$")],
                ),
                min_sdk=26,
                homepage="https://duckduckgo.com/",
            ),
            _entry(
                "fairemail",
                "FairEmail",
                60,
                GithubReleaseStrategy(
                    "M66B/FairEmail",
                    [AssetRule(r"^FairEmail-v.*-github-release\.apk$")],
                ),
                min_sdk=23,
                homepage="https://email.faircode.eu/",
            ),
            _entry(
                "fennec_fdroid",
                "Fennec F-Droid",
                60,
                FdroidStrategy(
                    "org.mozilla.fennec_fdroid",
                    abi_by_version_code_suffix={
                        0: ABI.ARMEABI_V7A,
                        1: ABI.X86,
                        2: ABI.ARM64_V8A,
                        3: ABI.X86_64,
                    },
                ),
                homepage="https://f-droid.org/packages/org.mozilla.fennec_fdroid/",
            ),
            _entry(
                "ffupdater",
                "FFUpdater",
                60,
                GithubReleaseStrategy(
                    "Tobi823/ffupdater", [AssetRule(r"^ffupdater-release\.apk$")]
                ),
                homepage="https://github.com/Tobi823/ffupdater",
            ),
            _firefox_archive(
                "firefox_beta", "Firefox Beta", "fenix", "fenix", "beta_version", 21
            ),
            _firefox_archive(
                "firefox_focus_beta",
                "Firefox Focus Beta",
                "focus",
                "focus",
                "beta_version",
                21,
            ),
            _firefox_archive(
                "firefox_focus", "Firefox Focus", "focus", "focus", "version", 60
            ),
            _firefox_archive(
                "firefox_klar", "Firefox Klar", "focus", "klar", "version", 60
            ),
            _entry(
                "firefox_nightly",
                "Firefox Nightly",
                7,
                MozillaTaskclusterStrategy(
                    "mobile.v3.firefox-android.apks.fenix-nightly.latest.{abi}",
                    "public/build/target.{abi}.apk",
                ),
                homepage="https://www.mozilla.org/firefox/channel/android/",
            ),
            _firefox_archive("firefox_release", "Firefox", "fenix", "fenix", "version", 60),
            _entry(
                "k9mail",
                "K-9 Mail",
                60,
                GithubReleaseStrategy(
                    "thunderbird/thunderbird-android",
                    [AssetRule(r"^k9mail-.*\.apk$")],
                    release_filter=ReleaseFilter(tag_prefix="K9MAIL_", prerelease=False),
                    version_from=tag_version(prefix="K9MAIL_", separator="_"),
                ),
                homepage="https://k9mail.app/",
            ),
            _entry(
                "iceraven",
                "Iceraven",
                60,
                GithubReleaseStrategy(
                    "fork-maintainers/iceraven-browser",
                    _abi_split_rules(r"^iceraven-.*-browser-{abi}-forkRelease\.apk$"),
                    version_from=tag_version(prefix="iceraven-"),
                ),
                homepage="https://github.com/fork-maintainers/iceraven-browser",
            ),
            _entry(
                "orbot",
                "Orbot",
                60,
                GithubReleaseStrategy(
                    "guardianproject/orbot",
                    _abi_split_rules(r"^Orbot-.*-fullperm-{abi}-release\.apk$")
                    + [AssetRule(r"^Orbot-.*-fullperm-universal-release\.apk$")],
                ),
                exempt=("17.3.2-RC-1-tor-0.4.8.12",),
                homepage="https://orbot.app/",
            ),
            _entry(
                "privacy_browser",
                "Privacy Browser",
                60,
                FdroidStrategy("com.stoutner.privacybrowser.standard"),
                min_sdk=24,
                homepage="https://www.stoutner.com/privacy-browser-android/",
            ),
            _entry(
                "thorium",
                "Thorium",
                300,
                GithubReleaseStrategy(
                    "Alex313031/Thorium-Android",
                    [
                        AssetRule(r"^Thorium_Public_.*_arm32\.apk$", ABI.ARMEABI_V7A),
                        AssetRule(r"^Thorium_Public_.*_arm64\.apk$", ABI.ARM64_V8A),
                        AssetRule(r"^Thorium_Public_.*_x86\.apk$", ABI.X86),
                        AssetRule(r"^Thorium_Public_.*_x64\.apk$", ABI.X86_64),
                    ],
                    version_from=tag_version(prefix="M"),
                ),
                exempt=("126.0.6478.246",),
                min_sdk=28,
                homepage="https://thorium.rocks/",
            ),
            _entry(
                "thunderbird",
                "Thunderbird",
                60,
                GithubReleaseStrategy(
                    "thunderbird/thunderbird-android",
                    THUNDERBIRD_ASSETS,
                    release_filter=ReleaseFilter(
                        tag_prefix="THUNDERBIRD_", prerelease=False
                    ),
                    version_from=tag_version(prefix="THUNDERBIRD_", separator="_"),
                ),
                homepage="https://www.thunderbird.net/mobile/",
            ),
            _entry(
                "thunderbird_beta",
                "Thunderbird Beta",
                60,
                GithubReleaseStrategy(
                    "thunderbird/thunderbird-android",
                    THUNDERBIRD_ASSETS,
                    release_filter=ReleaseFilter(
                        tag_prefix="THUNDERBIRD_", prerelease=True
                    ),
                    version_from=tag_version(prefix="THUNDERBIRD_", separator="_"),
                ),
                homepage="https://www.thunderbird.net/mobile/",
            ),
            _entry(
                "tor_browser_alpha",
                "Tor Browser Alpha",
                60,
                TorDistStrategy(alpha=True),
                homepage="https://www.torproject.org/download/alpha/",
            ),
            _entry(
                "tor_browser",
                "Tor Browser",
                60,
                TorDistStrategy(alpha=False),
                homepage="https://www.torproject.org/download/",
            ),
            _entry(
                "vivaldi",
                "Vivaldi",
                None,
                VivaldiStrategy(),
                min_sdk=26,
                homepage="https://vivaldi.com/android/",
            ),
        ]
    )
