"""
Artifact Selection

Picks the single artifact of a release that best fits a device. Selection
depends only on the candidate set and the device profile, never on the order
the upstream listed the artifacts in.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from apkresolver.constants import APK_FORMAT
from apkresolver.exceptions import NoCompatibleArtifactError
from apkresolver.log_utils import logger

from .models import ABI, Artifact, DeviceProfile


def abi_preference(device: DeviceProfile) -> List[ABI]:
    """
    Return the device's ABIs in the order artifacts should be tried.

    When the profile prefers 32-bit builds, 32-bit ABIs move to the front;
    relative order is otherwise preserved.
    """
    abis = list(dict.fromkeys(device.supported_abis or (device.abi,)))
    if device.prefer_32bit:
        abis = [abi for abi in abis if abi.is_32bit] + [
            abi for abi in abis if not abi.is_32bit
        ]
    return abis


def _tie_break_key(artifact: Artifact) -> Tuple[bool, str]:
    return (artifact.format != APK_FORMAT, artifact.url)


def _installable(artifacts: Iterable[Artifact], sdk_int: int) -> List[Artifact]:
    return [
        artifact
        for artifact in artifacts
        if artifact.min_sdk is None or artifact.min_sdk <= sdk_int
    ]


def select_artifact(
    candidates: Sequence[Artifact], device: DeviceProfile
) -> Artifact:
    """
    Choose the artifact to download for a device.

    Policy:
        1. drop artifacts requiring a newer Android API level than the device has;
        2. take the first ABI in ``abi_preference(device)`` with an exact match;
        3. otherwise fall back to a universal artifact.
    Several artifacts for the same ABI are ordered by (non-APK last, URL).

    Raises:
        NoCompatibleArtifactError: If nothing in the candidate set fits the device.
    """
    usable = _installable(candidates, device.sdk_int)
    if not usable:
        raise NoCompatibleArtifactError(
            "No artifact installable on this device",
            details=f"{len(candidates)} candidate(s), device sdk {device.sdk_int}",
        )

    for abi in abi_preference(device):
        matches = [artifact for artifact in usable if artifact.abi is abi]
        if matches:
            chosen = min(matches, key=_tie_break_key)
            logger.debug("Selected %s artifact %s", abi.value, chosen.url)
            return chosen

    universal = [artifact for artifact in usable if artifact.is_universal]
    if universal:
        chosen = min(universal, key=_tie_break_key)
        logger.debug("Selected universal artifact %s", chosen.url)
        return chosen

    published = sorted({a.abi.value for a in usable if a.abi is not None})
    raise NoCompatibleArtifactError(
        "No artifact matches the device ABI",
        details=(
            f"device supports {[abi.value for abi in abi_preference(device)]}, "
            f"release provides {published}"
        ),
    )


def select(candidates: Sequence[Artifact], device: DeviceProfile) -> str:
    """Return the download URL of the artifact chosen by ``select_artifact``."""
    return select_artifact(candidates, device).url


def artifact_hint(artifact: Artifact) -> Optional[str]:
    """
    Describe what the caller must handle for an artifact.

    Returns the ABI value for ABI-specific builds, the format for non-APK
    containers, both joined with '/' when both apply, or None for a universal APK.
    """
    parts = []
    if artifact.abi is not None:
        parts.append(artifact.abi.value)
    if artifact.format != APK_FORMAT:
        parts.append(artifact.format)
    return "/".join(parts) if parts else None
