# src/apkresolver/config.py

"""
Configuration loading for apkresolver.

Configuration is a flat YAML mapping of upper-case keys stored in
``apkresolver.yaml`` under the platformdirs user config directory. A missing
file yields the defaults; a malformed file or an invalid value raises
ConfigurationError.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import platformdirs
import yaml

from apkresolver.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_DEVICE_ABI,
    DEFAULT_DEVICE_SDK_INT,
    DEFAULT_GLOBAL_MAX_AGE_DAYS,
    DEFAULT_MAX_CONCURRENT_RESOLUTIONS,
    DEFAULT_REQUEST_TIMEOUT,
)
from apkresolver.exceptions import ConfigFileError, ConfigurationError
from apkresolver.log_utils import logger
from apkresolver.resolve.models import ABI, DeviceProfile
from apkresolver.resolve.orchestrator import EngineSettings
from apkresolver.utils import get_effective_github_token

# Get the config directory using platformdirs
CONFIG_DIR = platformdirs.user_config_dir(APP_NAME)
CONFIG_FILE = os.path.join(CONFIG_DIR, CONFIG_FILE_NAME)

KNOWN_KEYS = frozenset(
    {
        "GITHUB_TOKEN",
        "GLOBAL_MAX_AGE_DAYS",
        "MAX_CONCURRENT_RESOLUTIONS",
        "REQUEST_TIMEOUT",
        "PROXY_URL",
        "CA_BUNDLE",
        "DEVICE_ABI",
        "DEVICE_SUPPORTED_ABIS",
        "PREFER_32BIT_APKS",
        "DEVICE_SDK_INT",
        "LOG_LEVEL",
        "APP_POLICY_OVERRIDES",
    }
)


@dataclass(frozen=True)
class Settings:
    """Validated runtime settings derived from the configuration mapping."""

    github_token: Optional[str] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    proxy_url: Optional[str] = None
    ca_bundle: Optional[str] = None
    device: DeviceProfile = field(default_factory=DeviceProfile)
    engine: EngineSettings = field(default_factory=EngineSettings)
    log_level: Optional[str] = None
    app_policy_overrides: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def transport_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``AiohttpTransport``."""
        return {
            "github_token": self.github_token,
            "timeout": self.request_timeout,
            "proxy": self.proxy_url,
            "ca_bundle": self.ca_bundle,
            "limit_per_host": self.engine.max_concurrent,
        }


def config_exists(path: Optional[str] = None) -> bool:
    return os.path.exists(path or CONFIG_FILE)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the apkresolver configuration YAML.

    Parameters:
        path (str | None): Explicit config file. When None, the platformdirs-managed CONFIG_FILE is used.

    Returns:
        dict: The parsed configuration mapping; empty when the file does not exist or is empty.

    Raises:
        ConfigFileError: If the file cannot be read, is not valid YAML, or does not contain a mapping.
    """
    config_path = path or CONFIG_FILE
    if not os.path.exists(config_path):
        if path:
            raise ConfigFileError(f"Configuration file not found: {config_path}")
        logger.debug("No configuration file at %s; using defaults", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigFileError(
            f"Invalid YAML in configuration file {config_path}", details=str(e)
        ) from e
    except OSError as e:
        raise ConfigFileError(
            f"Cannot read configuration file {config_path}", details=str(e)
        ) from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigFileError(
            f"Configuration file {config_path} must contain a mapping",
            details=f"got {type(config).__name__}",
        )
    logger.debug("Loaded configuration from %s", config_path)
    return config


def _positive_int(config: Mapping[str, Any], key: str, default: int) -> int:
    value = config.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be a positive integer", details=repr(value))
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"{key} must be a positive integer", details=repr(value)
        ) from e
    if number <= 0:
        raise ConfigurationError(f"{key} must be a positive integer", details=repr(value))
    return number


def _positive_float(config: Mapping[str, Any], key: str, default: float) -> float:
    value = config.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be a positive number", details=repr(value))
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"{key} must be a positive number", details=repr(value)
        ) from e
    if number <= 0:
        raise ConfigurationError(f"{key} must be a positive number", details=repr(value))
    return number


def _flag(config: Mapping[str, Any], key: str, default: bool) -> bool:
    value = config.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "yes", "1", "on"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "no", "0", "off"}:
        return False
    raise ConfigurationError(f"{key} must be true or false", details=repr(value))


def _abi(key: str, value: Any) -> ABI:
    try:
        return ABI.parse(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} names an unknown ABI", details=repr(value)) from e


def _optional_str(config: Mapping[str, Any], key: str) -> Optional[str]:
    value = config.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_device_profile(config: Mapping[str, Any]) -> DeviceProfile:
    """Build the DeviceProfile described by the DEVICE_* and PREFER_32BIT_APKS keys."""
    primary = _abi("DEVICE_ABI", config.get("DEVICE_ABI") or DEFAULT_DEVICE_ABI)
    supported: Tuple[ABI, ...] = ()
    raw_supported = config.get("DEVICE_SUPPORTED_ABIS")
    if raw_supported:
        if isinstance(raw_supported, str):
            raw_supported = [part for part in raw_supported.split(",") if part.strip()]
        if not isinstance(raw_supported, (list, tuple)):
            raise ConfigurationError(
                "DEVICE_SUPPORTED_ABIS must be a list", details=repr(raw_supported)
            )
        supported = tuple(
            dict.fromkeys(_abi("DEVICE_SUPPORTED_ABIS", item) for item in raw_supported)
        )
        if primary not in supported:
            supported = (primary,) + supported
    return DeviceProfile(
        abi=primary,
        supported_abis=supported,
        prefer_32bit=_flag(config, "PREFER_32BIT_APKS", False),
        sdk_int=_positive_int(config, "DEVICE_SDK_INT", DEFAULT_DEVICE_SDK_INT),
    )


def _policy_overrides(config: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    raw = config.get("APP_POLICY_OVERRIDES") or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(
            "APP_POLICY_OVERRIDES must be a mapping of app ids", details=repr(raw)
        )
    overrides: Dict[str, Dict[str, Any]] = {}
    for app_id, policy in raw.items():
        if not isinstance(policy, dict):
            raise ConfigurationError(
                f"Policy override for {app_id} must be a mapping", details=repr(policy)
            )
        overrides[str(app_id)] = dict(policy)
    return overrides


def build_settings(config: Optional[Mapping[str, Any]] = None) -> Settings:
    """
    Validate a configuration mapping and build runtime Settings.

    Unknown keys are logged and ignored. GITHUB_TOKEN falls back to the
    environment variable of the same name.

    Raises:
        ConfigurationError: If any known key holds an invalid value.
    """
    config = config or {}
    unknown = sorted(set(config) - KNOWN_KEYS)
    if unknown:
        logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))

    global_max_age = _positive_int(
        config, "GLOBAL_MAX_AGE_DAYS", DEFAULT_GLOBAL_MAX_AGE_DAYS
    )
    engine = EngineSettings(
        global_max_age_days=global_max_age,
        max_concurrent=_positive_int(
            config, "MAX_CONCURRENT_RESOLUTIONS", DEFAULT_MAX_CONCURRENT_RESOLUTIONS
        ),
    )
    return Settings(
        github_token=get_effective_github_token(_optional_str(config, "GITHUB_TOKEN")),
        request_timeout=_positive_float(config, "REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        proxy_url=_optional_str(config, "PROXY_URL"),
        ca_bundle=_optional_str(config, "CA_BUNDLE"),
        device=build_device_profile(config),
        engine=engine,
        log_level=_optional_str(config, "LOG_LEVEL"),
        app_policy_overrides=_policy_overrides(config),
    )
