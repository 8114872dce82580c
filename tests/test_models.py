"""
Tests for the core data model and outcome serialization.
"""

import json
from datetime import datetime, timezone

import pytest

from apkresolver.resolve.models import (
    ABI,
    ApplicationDescriptor,
    Artifact,
    DeviceProfile,
    FetchResult,
    NoCompatibleArtifact,
    ParseFailure,
    SourceUnavailable,
    StaleRelease,
    Success,
    UpdateCheck,
)
from apkresolver.resolve.version import normalize

pytestmark = [pytest.mark.unit]

PUBLISHED = datetime(2024, 5, 29, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def result():
    return FetchResult(
        version=normalize("1.73.5"),
        publish_timestamp=PUBLISHED,
        download_url="https://example.com/brave-arm64.apk",
        required_artifact_hint="arm64-v8a",
    )


class TestABI:
    """Test ABI parsing and properties."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("arm64-v8a", ABI.ARM64_V8A),
            ("arm64", ABI.ARM64_V8A),
            ("AArch64", ABI.ARM64_V8A),
            ("armeabi-v7a", ABI.ARMEABI_V7A),
            ("armv7", ABI.ARMEABI_V7A),
            ("arm", ABI.ARMEABI_V7A),
            ("x86", ABI.X86),
            ("x86_64", ABI.X86_64),
            ("x64", ABI.X86_64),
        ],
    )
    def test_parse_aliases(self, text, expected):
        assert ABI.parse(text) is expected

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError):
            ABI.parse("mips")

    def test_is_32bit(self):
        assert ABI.ARMEABI_V7A.is_32bit
        assert ABI.X86.is_32bit
        assert not ABI.ARM64_V8A.is_32bit
        assert not ABI.X86_64.is_32bit


class TestDeviceProfile:
    """Test DeviceProfile defaults."""

    def test_supported_abis_derived_from_primary(self):
        assert DeviceProfile(abi=ABI.X86_64).supported_abis == (ABI.X86_64, ABI.X86)
        assert DeviceProfile(abi=ABI.ARMEABI_V7A).supported_abis == (ABI.ARMEABI_V7A,)

    def test_explicit_supported_abis_kept(self):
        profile = DeviceProfile(abi=ABI.ARM64_V8A, supported_abis=(ABI.ARM64_V8A,))
        assert profile.supported_abis == (ABI.ARM64_V8A,)


class TestArtifact:
    def test_universal_when_no_abi(self):
        assert Artifact("https://example.com/a.apk").is_universal
        assert not Artifact("https://example.com/a.apk", abi=ABI.X86).is_universal


class TestOutcomes:
    """Test outcome variants and their serialized form."""

    def test_success(self, result):
        outcome = Success(result)
        assert outcome.ok is True
        assert outcome.to_dict() == {
            "status": "success",
            "version": "1.73.5",
            "publish_timestamp": "2024-05-29T08:30:00+00:00",
            "download_url": "https://example.com/brave-arm64.apk",
            "required_artifact_hint": "arm64-v8a",
        }

    @pytest.mark.parametrize(
        "outcome, status",
        [
            (SourceUnavailable("HTTP 503"), "source_unavailable"),
            (ParseFailure("missing tag_name"), "parse_failure"),
            (NoCompatibleArtifact("no x86 build"), "no_compatible_artifact"),
        ],
    )
    def test_failures(self, outcome, status):
        assert outcome.ok is False
        assert outcome.status == status
        assert outcome.to_dict() == {"status": status, "detail": outcome.detail}

    def test_stale_release(self, result):
        outcome = StaleRelease(10, 7, result)
        assert outcome.ok is False
        assert outcome.to_dict() == {
            "status": "stale_release",
            "age_in_days": 10,
            "threshold_in_days": 7,
            "version": "1.73.5",
            "download_url": "https://example.com/brave-arm64.apk",
        }

    def test_status_is_not_an_init_argument(self):
        with pytest.raises(TypeError):
            SourceUnavailable("x", status="success")

    def test_outcomes_are_json_serializable(self, result):
        check = UpdateCheck(Success(result), "1.70.0", True)
        payload = json.loads(json.dumps(check.to_dict()))
        assert payload["update_available"] is True
        assert payload["installed_version"] == "1.70.0"
        assert payload["status"] == "success"


class TestApplicationDescriptor:
    def test_defaults(self):
        descriptor = ApplicationDescriptor(app_id="vivaldi", display_name="Vivaldi")
        assert descriptor.max_age_days is None
        assert descriptor.age_check_exempt_versions == ()
        assert descriptor.min_sdk == 21

    def test_frozen(self):
        descriptor = ApplicationDescriptor(app_id="a", display_name="A")
        with pytest.raises(AttributeError):
            descriptor.max_age_days = 3
