"""
Injected device and clock capabilities.

The engine never probes the device or reads the system clock directly; it asks
the collaborators defined here so that resolutions stay deterministic in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional, Sequence

from .models import ABI, DeviceProfile


class DeviceProfileProvider(ABC):
    """Source of the capabilities of the device being served."""

    @abstractmethod
    def current_abi(self) -> ABI:
        """Primary ABI of the device."""

    @abstractmethod
    def prefers_32bit(self) -> bool:
        """Whether 32-bit builds should win over 64-bit ones."""

    @abstractmethod
    def supports_min_os_version(self, min_sdk: int) -> bool:
        """Whether the device runs at least the given Android API level."""

    def supported_abis(self) -> Sequence[ABI]:
        return ()

    def sdk_int(self) -> int:
        return 34

    def snapshot(self) -> DeviceProfile:
        """Freeze the current answers into a DeviceProfile."""
        return DeviceProfile(
            abi=self.current_abi(),
            supported_abis=tuple(self.supported_abis()),
            prefer_32bit=self.prefers_32bit(),
            sdk_int=self.sdk_int(),
        )


class StaticDeviceProfileProvider(DeviceProfileProvider):
    """Provider answering from a fixed DeviceProfile (configuration or CLI flags)."""

    def __init__(self, profile: Optional[DeviceProfile] = None) -> None:
        self.profile = profile or DeviceProfile()

    def current_abi(self) -> ABI:
        return self.profile.abi

    def prefers_32bit(self) -> bool:
        return self.profile.prefer_32bit

    def supports_min_os_version(self, min_sdk: int) -> bool:
        return self.profile.sdk_int >= min_sdk

    def supported_abis(self) -> Sequence[ABI]:
        return self.profile.supported_abis

    def sdk_int(self) -> int:
        return self.profile.sdk_int

    def snapshot(self) -> DeviceProfile:
        return self.profile


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone aware."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self.instant = instant

    def now(self) -> datetime:
        return self.instant
