"""
apkresolver Resolution Engine

Determines, for each cataloged application, the latest published release and
the download artifact that fits a given device.

Core Components:
- models: canonical value types and resolution outcomes
- version: version normalization and ordering
- selector: device-aware artifact selection
- freshness: two-tier staleness policy
- strategies: one fetch strategy per kind of upstream channel
- catalog: application descriptors and their strategies
- transport: injected HTTP transport (aiohttp implementation)
- device: injected device profile provider and clock
- orchestrator: ResolutionEngine, the single entry point
"""

from .catalog import AppCatalog, CatalogEntry, build_default_catalog
from .device import (
    Clock,
    DeviceProfileProvider,
    FixedClock,
    StaticDeviceProfileProvider,
    SystemClock,
)
from .freshness import validate
from .models import (
    ABI,
    ApplicationDescriptor,
    Artifact,
    DeviceProfile,
    FetchResult,
    NoCompatibleArtifact,
    ParseFailure,
    ReleaseCandidate,
    ResolutionOutcome,
    SourceUnavailable,
    StaleRelease,
    Success,
    UpdateCheck,
    VersionInfo,
)
from .orchestrator import (
    EngineSettings,
    ResolutionEngine,
    ResolutionState,
    evaluate_update,
)
from .selector import select, select_artifact
from .transport import AiohttpTransport, HttpRequest, HttpResponse, Transport
from .version import Ordering, compare, compare_versions, normalize

__all__ = [
    # Model
    "ABI",
    "ApplicationDescriptor",
    "Artifact",
    "DeviceProfile",
    "FetchResult",
    "ReleaseCandidate",
    "VersionInfo",
    "UpdateCheck",
    # Outcomes
    "ResolutionOutcome",
    "Success",
    "SourceUnavailable",
    "ParseFailure",
    "NoCompatibleArtifact",
    "StaleRelease",
    # Components
    "normalize",
    "compare",
    "compare_versions",
    "Ordering",
    "select",
    "select_artifact",
    "validate",
    # Catalog and orchestration
    "AppCatalog",
    "CatalogEntry",
    "build_default_catalog",
    "EngineSettings",
    "ResolutionEngine",
    "ResolutionState",
    "evaluate_update",
    # Collaborators
    "Transport",
    "HttpRequest",
    "HttpResponse",
    "AiohttpTransport",
    "DeviceProfileProvider",
    "StaticDeviceProfileProvider",
    "Clock",
    "SystemClock",
    "FixedClock",
]
