"""Configuration loading for choughkit."""

from choughkit.config.settings import (
    CONFIG_FILENAME,
    DownloadConfig,
    InstallerConfig,
    PatchConfig,
    find_config_file,
    load_config,
    parse_config_file,
)

__all__ = [
    "CONFIG_FILENAME",
    "DownloadConfig",
    "PatchConfig",
    "InstallerConfig",
    "find_config_file",
    "parse_config_file",
    "load_config",
]
