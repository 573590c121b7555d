"""
Release metadata for chough.

This package provides the release table (channel x version x platform ->
artifact naming and checksum) and the pure resolver built on it.
"""

from choughkit.release.table import (
    DEFAULT_CHANNEL,
    LATEST,
    NO_CHECK,
    NamingScheme,
    NamingTemplate,
    ReleaseEntry,
    ReleaseTable,
    normalize_version,
)
from choughkit.release.resolver import (
    ArtifactRef,
    default_table,
    load_table,
    resolve,
    resolve_target,
)

__all__ = [
    "DEFAULT_CHANNEL",
    "LATEST",
    "NO_CHECK",
    "NamingScheme",
    "NamingTemplate",
    "ReleaseEntry",
    "ReleaseTable",
    "normalize_version",
    "ArtifactRef",
    "default_table",
    "load_table",
    "resolve",
    "resolve_target",
]
