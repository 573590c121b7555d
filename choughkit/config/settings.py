"""YAML configuration for choughkit.

Settings come from four layers, highest precedence first:

1. CLI flags (passed in as overrides)
2. Environment variables (CHOUGHKIT_PREFIX, CHOUGHKIT_CACHE_DIR,
   CHOUGHKIT_TRUST_LEVEL, CHOUGHKIT_CHANNEL)
3. choughkit.yaml
4. Built-in defaults

Example choughkit.yaml:

    prefix: ~/.local
    trust_level: strict
    channel: stable
    download:
      timeout: 60
      max_retries: 5
    patch:
      codesign: true
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from choughkit.core.directory import get_cache_dir
from choughkit.core.exceptions import ConfigError
from choughkit.core.verification import TrustLevel
from choughkit.release.table import DEFAULT_CHANNEL

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "choughkit.yaml"

ENV_CONFIG = "CHOUGHKIT_CONFIG"
ENV_VARS = {
    "prefix": "CHOUGHKIT_PREFIX",
    "cache_dir": "CHOUGHKIT_CACHE_DIR",
    "trust_level": "CHOUGHKIT_TRUST_LEVEL",
    "channel": "CHOUGHKIT_CHANNEL",
}

KNOWN_KEYS = {
    "prefix",
    "cache_dir",
    "trust_level",
    "channel",
    "release_table",
    "download",
    "patch",
}


def default_prefix() -> Path:
    return Path.home() / ".local"


@dataclass
class DownloadConfig:
    """HTTP download settings."""

    timeout: int = 30
    max_retries: int = 3


@dataclass
class PatchConfig:
    """Load path patching settings."""

    codesign: bool = True


@dataclass
class InstallerConfig:
    """Complete choughkit configuration."""

    prefix: Path = field(default_factory=default_prefix)
    cache_dir: Path = field(default_factory=get_cache_dir)
    trust_level: TrustLevel = TrustLevel.WARN
    channel: str = DEFAULT_CHANNEL
    release_table: Optional[Path] = None  # None: the embedded table
    download: DownloadConfig = field(default_factory=DownloadConfig)
    patch: PatchConfig = field(default_factory=PatchConfig)
    source: Optional[Path] = None  # config file it was read from


def find_config_file(
    start: Optional[Path] = None, env: Optional[Mapping[str, str]] = None
) -> Optional[Path]:
    """
    Locate the config file: $CHOUGHKIT_CONFIG, else ./choughkit.yaml.

    Raises:
        ConfigError: If $CHOUGHKIT_CONFIG names a missing file
    """
    env = os.environ if env is None else env
    explicit = env.get(ENV_CONFIG)
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigError(f"{ENV_CONFIG} points to a missing file: {path}")
        return path

    candidate = (start or Path.cwd()) / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def parse_config_file(config_path: Path) -> Dict[str, Any]:
    """
    Read choughkit.yaml into a dictionary.

    An empty file is an empty configuration.

    Raises:
        ConfigError: If the file is missing, not valid YAML, or not a mapping
    """
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top level must be a mapping")

    unknown = sorted(set(data) - KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"{config_path}: unknown keys: {', '.join(unknown)}")
    return data


def load_config(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> InstallerConfig:
    """
    Build the effective configuration.

    Args:
        path: Config file (default: find_config_file())
        env: Environment mapping (default: os.environ)
        overrides: Values from CLI flags; None values are ignored

    Raises:
        ConfigError: If any layer holds an invalid value
    """
    env = os.environ if env is None else env

    if path is None:
        path = find_config_file(env=env)
    data: Dict[str, Any] = {}
    if path is not None:
        data = parse_config_file(Path(path))
        logger.debug(f"Loaded configuration from {path}")

    for key, var in ENV_VARS.items():
        value = env.get(var)
        if value:
            logger.debug(f"{var} overrides {key}")
            data[key] = value

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    config = _build(data)
    config.source = Path(path) if path is not None else None
    return config


def _build(data: Dict[str, Any]) -> InstallerConfig:
    config = InstallerConfig()

    if data.get("prefix"):
        config.prefix = _path(data["prefix"])
    if data.get("cache_dir"):
        config.cache_dir = _path(data["cache_dir"])
    if data.get("release_table"):
        config.release_table = _path(data["release_table"])

    if "trust_level" in data:
        try:
            config.trust_level = TrustLevel.parse(data["trust_level"])
        except ValueError as e:
            raise ConfigError(str(e)) from e

    if "channel" in data:
        channel = data["channel"]
        if not isinstance(channel, str) or not channel:
            raise ConfigError(f"channel must be a non-empty string, got {channel!r}")
        config.channel = channel

    download = _section(data, "download")
    config.download = DownloadConfig(
        timeout=_positive_int("download.timeout", download.get("timeout", 30)),
        max_retries=_positive_int(
            "download.max_retries", download.get("max_retries", 3)
        ),
    )

    patch = _section(data, "patch")
    codesign = patch.get("codesign", True)
    if not isinstance(codesign, bool):
        raise ConfigError(f"patch.codesign must be true or false, got {codesign!r}")
    config.patch = PatchConfig(codesign=codesign)

    return config


def _path(value: Any) -> Path:
    return Path(str(value)).expanduser()


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"{name} must be a mapping")
    return section


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{name} must be a positive integer, got {value!r}")
    return value


__all__ = [
    "CONFIG_FILENAME",
    "DownloadConfig",
    "PatchConfig",
    "InstallerConfig",
    "find_config_file",
    "parse_config_file",
    "load_config",
]
