"""
apkresolver - resolve the latest release and device-compatible download of Android apps.
"""

from apkresolver.resolve import (
    ABI,
    AiohttpTransport,
    AppCatalog,
    DeviceProfile,
    EngineSettings,
    FetchResult,
    ResolutionEngine,
    ResolutionOutcome,
    StaticDeviceProfileProvider,
    build_default_catalog,
)

__all__ = [
    "ABI",
    "AiohttpTransport",
    "AppCatalog",
    "DeviceProfile",
    "EngineSettings",
    "FetchResult",
    "ResolutionEngine",
    "ResolutionOutcome",
    "StaticDeviceProfileProvider",
    "build_default_catalog",
]
