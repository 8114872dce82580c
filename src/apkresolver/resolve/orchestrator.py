"""
Resolution Orchestrator

Drives one resolution per application through the pipeline

    Start -> Fetching -> Parsed -> Selecting -> Selected -> Validating -> Valid | Stale
                      \\-> Unavailable     \\-> ParseFailed / NoCompatibleArtifact

and maps every terminal state to exactly one ``ResolutionOutcome``. No retries
happen here: a failed fetch is reported immediately and retry policy is left
to the caller. Resolutions share only the read-only transport, so many can run
concurrently; ``resolve_many`` bounds them with a semaphore.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

from apkresolver.constants import (
    DEFAULT_GLOBAL_MAX_AGE_DAYS,
    DEFAULT_MAX_CONCURRENT_RESOLUTIONS,
)
from apkresolver.exceptions import (
    NoCompatibleArtifactError,
    SourceUnavailableError,
    UpstreamParseError,
    VersionParseError,
)
from apkresolver.log_utils import logger

from .catalog import AppCatalog, CatalogEntry
from .device import Clock, DeviceProfileProvider, SystemClock
from .freshness import validate
from .models import (
    FetchResult,
    NoCompatibleArtifact,
    ParseFailure,
    ResolutionOutcome,
    SourceUnavailable,
    StaleRelease,
    Success,
    UpdateCheck,
)
from .selector import artifact_hint, select_artifact
from .strategies import FetchContext
from .transport import Transport
from .version import Ordering, compare, normalize


class ResolutionState(Enum):
    START = "start"
    FETCHING = "fetching"
    PARSED = "parsed"
    SELECTING = "selecting"
    SELECTED = "selected"
    VALIDATING = "validating"
    VALID = "valid"
    STALE = "stale"
    PARSE_FAILED = "parse_failed"
    UNAVAILABLE = "unavailable"
    NO_ARTIFACT = "no_compatible_artifact"


@dataclass(frozen=True)
class EngineSettings:
    global_max_age_days: Optional[int] = DEFAULT_GLOBAL_MAX_AGE_DAYS
    max_concurrent: int = DEFAULT_MAX_CONCURRENT_RESOLUTIONS


class ResolutionEngine:
    """
    Resolves the latest release and device-compatible download for cataloged apps.

    All collaborators are injected: the transport performs network calls, the
    device provider answers capability questions and the clock supplies "now".
    The engine keeps no mutable state between calls.
    """

    def __init__(
        self,
        catalog: AppCatalog,
        transport: Transport,
        device_provider: DeviceProfileProvider,
        clock: Optional[Clock] = None,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self.catalog = catalog
        self.transport = transport
        self.device_provider = device_provider
        self.clock = clock or SystemClock()
        self.settings = settings or EngineSettings()

    def _transition(self, app_id: str, state: ResolutionState) -> None:
        logger.debug("[%s] -> %s", app_id, state.value)

    async def resolve_latest(self, app_id: str) -> ResolutionOutcome:
        """
        Resolve the latest release of one application.

        Returns:
            ResolutionOutcome: Exactly one outcome per call; failures are values.

        Raises:
            UnknownApplicationError: If ``app_id`` is not cataloged.
            asyncio.CancelledError: If cancelled while awaiting the network.
        """
        entry = self.catalog.get(app_id)
        self._transition(app_id, ResolutionState.START)
        outcome = await self._resolve_entry(entry)
        self._log_outcome(entry, outcome)
        return outcome

    async def _resolve_entry(self, entry: CatalogEntry) -> ResolutionOutcome:
        app_id = entry.app_id
        descriptor = entry.descriptor

        if not self.device_provider.supports_min_os_version(descriptor.min_sdk):
            self._transition(app_id, ResolutionState.NO_ARTIFACT)
            return NoCompatibleArtifact(
                f"{descriptor.display_name} requires Android API level {descriptor.min_sdk}"
            )

        self._transition(app_id, ResolutionState.FETCHING)
        try:
            candidate = await entry.strategy.fetch_latest(FetchContext(self.transport))
        except SourceUnavailableError as exc:
            self._transition(app_id, ResolutionState.UNAVAILABLE)
            return SourceUnavailable(str(exc))
        except UpstreamParseError as exc:
            self._transition(app_id, ResolutionState.PARSE_FAILED)
            return ParseFailure(str(exc))

        try:
            version = normalize(candidate.version_text)
        except VersionParseError as exc:
            self._transition(app_id, ResolutionState.PARSE_FAILED)
            return ParseFailure(str(exc))
        self._transition(app_id, ResolutionState.PARSED)

        self._transition(app_id, ResolutionState.SELECTING)
        device = self.device_provider.snapshot()
        try:
            artifact = select_artifact(candidate.artifacts, device)
        except NoCompatibleArtifactError as exc:
            self._transition(app_id, ResolutionState.NO_ARTIFACT)
            return NoCompatibleArtifact(str(exc))
        self._transition(app_id, ResolutionState.SELECTED)

        result = FetchResult(
            version=version,
            publish_timestamp=candidate.published_at,
            download_url=artifact.url,
            required_artifact_hint=artifact_hint(artifact),
        )

        self._transition(app_id, ResolutionState.VALIDATING)
        outcome = validate(
            result,
            descriptor,
            self.clock.now(),
            global_max_age_days=self.settings.global_max_age_days,
        )
        if isinstance(outcome, Success):
            self._transition(app_id, ResolutionState.VALID)
        elif isinstance(outcome, StaleRelease):
            self._transition(app_id, ResolutionState.STALE)
        else:
            self._transition(app_id, ResolutionState.PARSE_FAILED)
        return outcome

    def _log_outcome(self, entry: CatalogEntry, outcome: ResolutionOutcome) -> None:
        name = entry.descriptor.display_name
        if isinstance(outcome, Success):
            logger.info(
                "%s %s: %s", name, outcome.result.version, outcome.result.download_url
            )
        elif isinstance(outcome, StaleRelease):
            logger.warning(
                "%s latest release is %d days old (limit %d days); upstream may be broken",
                name,
                outcome.age_in_days,
                outcome.threshold_in_days,
            )
        elif isinstance(outcome, ParseFailure):
            logger.warning("%s upstream format changed: %s", name, outcome.detail)
        elif isinstance(outcome, SourceUnavailable):
            logger.warning("%s upstream unavailable: %s", name, outcome.detail)
        else:
            logger.info("%s: no update for this device (%s)", name, outcome.detail)

    async def resolve_many(
        self, app_ids: Iterable[str], max_concurrent: Optional[int] = None
    ) -> Dict[str, ResolutionOutcome]:
        """
        Resolve several applications concurrently.

        At most ``max_concurrent`` resolutions (default from settings) await the
        network at once. Results keep the order of ``app_ids``.

        Raises:
            UnknownApplicationError: Before any network call, if an id is not cataloged.
        """
        ids = list(dict.fromkeys(app_ids))
        for app_id in ids:
            self.catalog.get(app_id)

        limit = max(1, int(max_concurrent or self.settings.max_concurrent))
        semaphore = asyncio.Semaphore(limit)

        async def resolve_one(app_id: str) -> ResolutionOutcome:
            async with semaphore:
                return await self.resolve_latest(app_id)

        results = await asyncio.gather(
            *(resolve_one(app_id) for app_id in ids), return_exceptions=True
        )

        outcomes: Dict[str, ResolutionOutcome] = {}
        for app_id, result in zip(ids, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                logger.error(
                    "Unexpected error resolving %s: %s",
                    app_id,
                    result,
                    exc_info=(type(result), result, result.__traceback__),
                )
                outcomes[app_id] = ParseFailure(
                    f"unexpected error: {type(result).__name__}: {result}"
                )
                continue
            outcomes[app_id] = result
        return outcomes

    async def check_for_update(
        self, app_id: str, installed_version: Optional[str]
    ) -> UpdateCheck:
        """
        Resolve an application and compare the result with an installed version.

        ``update_available`` is None when resolution failed or the installed
        version text cannot be parsed; a stale release is never offered.
        """
        outcome = await self.resolve_latest(app_id)
        return evaluate_update(app_id, outcome, installed_version)


def evaluate_update(
    app_id: str, outcome: ResolutionOutcome, installed_version: Optional[str]
) -> UpdateCheck:
    """Compare an already resolved outcome with the installed version text."""
    if not isinstance(outcome, Success):
        return UpdateCheck(outcome, installed_version, None)
    if installed_version is None:
        return UpdateCheck(outcome, None, True)
    try:
        installed = normalize(installed_version)
    except VersionParseError:
        logger.warning(
            "Cannot compare %s with unparsable installed version %r",
            app_id,
            installed_version,
        )
        return UpdateCheck(outcome, installed_version, None)
    newer = compare(outcome.result.version, installed) is Ordering.GREATER
    return UpdateCheck(outcome, installed_version, newer)
