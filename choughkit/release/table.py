"""
Release table for chough artifacts.

The table maps (channel, version, os x arch) to the artifact naming scheme and
checksum of each published build. It is loaded from YAML (by default the
embedded `choughkit/data/releases.yaml`) and validated on load, so the
resolver can stay a pure lookup.

Example:
    >>> table = ReleaseTable.load()
    >>> release = table.find_release("0.1.4")
    >>> release.platforms["macos-arm64"]
    '8076b5504103853f66d5a8d0907edcfc624d7c306b9a924bba8fa65f1e97fda5'
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from packaging.version import Version

from choughkit.core.exceptions import (
    InvalidVersionError,
    ReleaseTableError,
    UnsupportedPlatform,
)
from choughkit.core.platform import TargetDescriptor
from choughkit.core.verification import is_valid_sha256

logger = logging.getLogger(__name__)

NO_CHECK = "no_check"
DEFAULT_CHANNEL = "stable"
LATEST = "latest"

_VERSION_RE = re.compile(r"^\d+(\.\d+)*$")


def normalize_version(version: str) -> str:
    """
    Validate a release version and strip an optional leading 'v'.

    Raises:
        InvalidVersionError: If version is empty or not dotted numeric

    Example:
        >>> normalize_version("v0.1.4")
        '0.1.4'
    """
    value = (version or "").strip()
    if value[:1] in ("v", "V"):
        value = value[1:]
    if not _VERSION_RE.match(value):
        raise InvalidVersionError(
            f"Invalid version '{version}': expected a dotted numeric version like 0.1.4"
        )
    return value


@dataclass
class NamingTemplate:
    """A file name template plus the OS/arch tokens substituted into it."""

    template: str
    os_tokens: Dict[str, str] = field(default_factory=dict)
    arch_tokens: Dict[str, str] = field(default_factory=dict)

    def render(self, target: TargetDescriptor, version: str) -> str:
        """
        Render the name for a target.

        Example:
            >>> NamingTemplate("chough-{os}-{arch}", {"macos": "darwin"},
            ...                {"x86_64": "amd64"}).render(
            ...     TargetDescriptor("macos", "x86_64"), "0.1.0")
            'chough-darwin-amd64'
        """
        return self.template.format(
            version=version,
            os=self.os_tokens.get(target.os, target.os),
            arch=self.arch_tokens.get(target.arch, target.arch),
        )


@dataclass
class NamingScheme:
    """How a release names its download and the binary it contains."""

    name: str
    artifact: NamingTemplate
    binary: NamingTemplate


@dataclass
class ReleaseEntry:
    """One published version in one channel."""

    channel: str
    version: str
    scheme: NamingScheme

    platforms: Dict[str, Optional[str]]
    """Platform key -> SHA256 digest, or None when the release publishes none"""

    unsupported: Dict[str, str] = field(default_factory=dict)
    """Platform key -> reason shown when an install is attempted there"""

    depends_on: List[str] = field(default_factory=list)
    desc: Optional[str] = None

    def supports(self, target: TargetDescriptor) -> bool:
        return target.platform_key in self.platforms

    def checksum_for(self, target: TargetDescriptor) -> Optional[str]:
        return self.platforms.get(target.platform_key)


class ReleaseTable:
    """
    Validated release table.

    Example:
        >>> table = ReleaseTable.load()
        >>> table.versions("stable")
        ['0.1.4', '0.1.0']
    """

    def __init__(
        self,
        tool: str,
        command: str,
        base_url: str,
        schemes: Dict[str, NamingScheme],
        channels: Dict[str, List[ReleaseEntry]],
        desc: str = "",
        homepage: str = "",
        license: str = "",
        source: Optional[Path] = None,
    ):
        self.tool = tool
        self.command = command
        self.base_url = base_url.rstrip("/")
        self.schemes = schemes
        self.channels = channels
        self.desc = desc
        self.homepage = homepage
        self.license = license
        self.source = source

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @staticmethod
    def default_path() -> Path:
        """Path to the embedded release table."""
        return Path(__file__).parent.parent / "data" / "releases.yaml"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "ReleaseTable":
        """
        Load and validate a release table from YAML.

        Args:
            path: Table file. If None, uses the embedded releases.yaml

        Raises:
            ReleaseTableError: If the file is missing, unparseable, or invalid
        """
        path = Path(path) if path else cls.default_path()
        if not path.exists():
            raise ReleaseTableError(f"Release table not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ReleaseTableError(f"Invalid YAML in release table {path}: {e}") from e

        table = cls.from_dict(data, source=path)
        logger.debug(
            f"Loaded release table {path} "
            f"({sum(len(r) for r in table.channels.values())} releases)"
        )
        return table

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], source: Optional[Path] = None
    ) -> "ReleaseTable":
        """
        Build a table from parsed YAML data.

        Raises:
            ReleaseTableError: If required keys are missing or values are invalid
        """
        if not isinstance(data, dict):
            raise ReleaseTableError("Release table must be a mapping")

        for key in ("tool", "base_url", "schemes", "channels"):
            if key not in data:
                raise ReleaseTableError(f"Release table is missing '{key}'")

        schemes = {
            name: _parse_scheme(name, raw) for name, raw in data["schemes"].items()
        }

        channels: Dict[str, List[ReleaseEntry]] = {}
        for channel, releases in data["channels"].items():
            if not isinstance(releases, list):
                raise ReleaseTableError(f"Channel '{channel}' must be a list of releases")
            entries = [_parse_release(channel, r, schemes) for r in releases]
            seen = set()
            for entry in entries:
                if entry.version in seen:
                    raise ReleaseTableError(
                        f"Duplicate version {entry.version} in channel '{channel}'"
                    )
                seen.add(entry.version)
            channels[channel] = entries

        return cls(
            tool=data["tool"],
            command=data.get("command", data["tool"]),
            base_url=data["base_url"],
            schemes=schemes,
            channels=channels,
            desc=data.get("desc", ""),
            homepage=data.get("homepage", ""),
            license=data.get("license", ""),
            source=source,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_channels(self) -> List[str]:
        return list(self.channels)

    def versions(self, channel: str = DEFAULT_CHANNEL) -> List[str]:
        """Versions in a channel, newest first."""
        releases = self._channel(channel)
        return sorted((r.version for r in releases), key=Version, reverse=True)

    def latest_version(self, channel: str = DEFAULT_CHANNEL) -> str:
        versions = self.versions(channel)
        if not versions:
            raise ReleaseTableError(f"Channel '{channel}' has no releases")
        return versions[0]

    def find_release(
        self, version: str, channel: str = DEFAULT_CHANNEL
    ) -> Optional[ReleaseEntry]:
        """
        Look up a release by version (or 'latest').

        Returns:
            ReleaseEntry if the version is published in the channel, None otherwise

        Raises:
            ReleaseTableError: If the channel does not exist
            InvalidVersionError: If version is malformed
        """
        if version == LATEST:
            version = self.latest_version(channel)
        version = normalize_version(version)

        for release in self._channel(channel):
            if release.version == version:
                return release
        return None

    def _channel(self, channel: str) -> List[ReleaseEntry]:
        if channel not in self.channels:
            raise ReleaseTableError(
                f"Unknown channel '{channel}' (known: {', '.join(self.channels)})"
            )
        return self.channels[channel]


def _parse_template(owner: str, raw: Any) -> NamingTemplate:
    if isinstance(raw, str):
        return NamingTemplate(template=raw)
    if not isinstance(raw, dict) or "template" not in raw:
        raise ReleaseTableError(f"{owner}: naming entry needs a 'template'")
    return NamingTemplate(
        template=raw["template"],
        os_tokens=dict(raw.get("os") or {}),
        arch_tokens=dict(raw.get("arch") or {}),
    )


def _parse_scheme(name: str, raw: Any) -> NamingScheme:
    if not isinstance(raw, dict):
        raise ReleaseTableError(f"Scheme '{name}' must be a mapping")
    for key in ("artifact", "binary"):
        if key not in raw:
            raise ReleaseTableError(f"Scheme '{name}' is missing '{key}'")
    return NamingScheme(
        name=name,
        artifact=_parse_template(f"scheme '{name}' artifact", raw["artifact"]),
        binary=_parse_template(f"scheme '{name}' binary", raw["binary"]),
    )


def _parse_platform_key(owner: str, key: str) -> str:
    os_name, _, arch = str(key).partition("-")
    try:
        return TargetDescriptor.from_values(os_name, arch).platform_key
    except UnsupportedPlatform as e:
        raise ReleaseTableError(f"{owner}: invalid platform key '{key}' ({e})") from e


def _parse_checksum(owner: str, entry: Any) -> Optional[str]:
    if not isinstance(entry, dict) or "sha256" not in entry:
        raise ReleaseTableError(
            f"{owner}: every platform must declare 'sha256' (a digest or '{NO_CHECK}')"
        )
    value = str(entry["sha256"]).strip().lower()
    if value == NO_CHECK:
        return None
    if not is_valid_sha256(value):
        raise ReleaseTableError(f"{owner}: invalid sha256 '{entry['sha256']}'")
    return value


def _parse_release(
    channel: str, raw: Any, schemes: Dict[str, NamingScheme]
) -> ReleaseEntry:
    if not isinstance(raw, dict) or "version" not in raw:
        raise ReleaseTableError(f"Channel '{channel}': release entry needs a 'version'")

    try:
        version = normalize_version(str(raw["version"]))
    except InvalidVersionError as e:
        raise ReleaseTableError(f"Channel '{channel}': {e}") from e

    owner = f"{channel} {version}"
    scheme_name = raw.get("scheme")
    if scheme_name not in schemes:
        raise ReleaseTableError(f"{owner}: unknown scheme '{scheme_name}'")

    platforms: Dict[str, Optional[str]] = {}
    for key, entry in (raw.get("platforms") or {}).items():
        platforms[_parse_platform_key(owner, key)] = _parse_checksum(
            f"{owner} {key}", entry
        )
    if not platforms:
        raise ReleaseTableError(f"{owner}: no platforms listed")

    unsupported = {
        _parse_platform_key(owner, key): str(reason)
        for key, reason in (raw.get("unsupported") or {}).items()
    }
    overlap = set(unsupported) & set(platforms)
    if overlap:
        raise ReleaseTableError(
            f"{owner}: platforms both supported and unsupported: {sorted(overlap)}"
        )

    return ReleaseEntry(
        channel=channel,
        version=version,
        scheme=schemes[scheme_name],
        platforms=platforms,
        unsupported=unsupported,
        depends_on=list(raw.get("depends_on") or []),
        desc=raw.get("desc"),
    )


__all__ = [
    "NO_CHECK",
    "DEFAULT_CHANNEL",
    "LATEST",
    "normalize_version",
    "NamingTemplate",
    "NamingScheme",
    "ReleaseEntry",
    "ReleaseTable",
]
