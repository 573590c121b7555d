"""
Platform resolver: (os, arch, version) -> ArtifactRef.

Resolution is a pure lookup in the release table. It never touches the
network or the filesystem (beyond loading the embedded table once), and it
fails loudly with UnsupportedPlatform instead of falling back to another
platform's build.
"""

import functools
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from choughkit.core.exceptions import UnsupportedPlatform
from choughkit.core.filesystem import is_archive
from choughkit.core.platform import TargetDescriptor
from choughkit.release.table import DEFAULT_CHANNEL, ReleaseTable


@dataclass(frozen=True)
class ArtifactRef:
    """Fully-qualified reference to one downloadable chough build."""

    target: TargetDescriptor
    version: str
    channel: str
    url: str
    artifact_name: str
    binary_name: str
    """Exact name of the executable inside the download"""

    sha256: Optional[str]
    """Expected SHA256, or None when the release is explicitly unchecked"""

    command_name: str = "chough"
    depends_on: Tuple[str, ...] = ()

    @property
    def unchecked(self) -> bool:
        return self.sha256 is None

    @property
    def is_archive(self) -> bool:
        return is_archive(self.artifact_name)

    @property
    def library_suffix(self) -> str:
        return self.target.library_suffix

    @property
    def artifact_id(self) -> str:
        """Identifier used for staging directories and lock names."""
        return f"{self.command_name}-{self.version}-{self.target.platform_key}"


@functools.lru_cache(maxsize=1)
def default_table() -> ReleaseTable:
    """The embedded release table, loaded once per process."""
    return ReleaseTable.load()


def load_table(path: Optional[Path] = None) -> ReleaseTable:
    """Load the release table at path, or the embedded one if path is None."""
    if path is None:
        return default_table()
    return ReleaseTable.load(Path(path))


def resolve(
    os_name: str,
    arch: str,
    version: str,
    channel: str = DEFAULT_CHANNEL,
    table: Optional[ReleaseTable] = None,
) -> ArtifactRef:
    """
    Resolve the artifact for a platform and version.

    Args:
        os_name: Operating system ('macos'/'darwin' or 'linux')
        arch: Architecture ('arm64'/'aarch64' or 'x86_64'/'amd64')
        version: Dotted numeric version ('0.1.4', 'v0.1.4') or 'latest'
        channel: Release channel in the table
        table: Release table (defaults to the embedded one)

    Returns:
        ArtifactRef whose target matches (os_name, arch) exactly

    Raises:
        UnsupportedPlatform: If the platform, the channel, or the version in
            this channel has no published artifact
        InvalidVersionError: If version is malformed

    Example:
        >>> ref = resolve("macos", "arm64", "0.1.4")
        >>> ref.url
        'https://github.com/hyperpuncher/chough/releases/download/v0.1.4/chough_v0.1.4_darwin_arm64.tar.gz'
    """
    target = TargetDescriptor.from_values(os_name, arch)
    return resolve_target(target, version, channel=channel, table=table)


def resolve_target(
    target: TargetDescriptor,
    version: str,
    channel: str = DEFAULT_CHANNEL,
    table: Optional[ReleaseTable] = None,
) -> ArtifactRef:
    """Resolve for an already-normalized TargetDescriptor. See resolve()."""
    table = table or default_table()

    channels = table.list_channels()
    if channel not in channels:
        raise UnsupportedPlatform(
            target.os,
            target.arch,
            version=version,
            detail=f"unknown channel '{channel}' (known: {', '.join(channels)})",
        )

    release = table.find_release(version, channel)
    if release is None:
        raise UnsupportedPlatform(
            target.os,
            target.arch,
            version=version,
            detail=(
                f"version not published in channel '{channel}' "
                f"(known: {', '.join(table.versions(channel))})"
            ),
        )

    if not release.supports(target):
        reason = release.unsupported.get(target.platform_key) or (
            f"release ships only {', '.join(sorted(release.platforms))}"
        )
        raise UnsupportedPlatform(
            target.os, target.arch, version=release.version, detail=reason
        )

    artifact_name = release.scheme.artifact.render(target, release.version)
    return ArtifactRef(
        target=target,
        version=release.version,
        channel=channel,
        url=f"{table.base_url}/v{release.version}/{artifact_name}",
        artifact_name=artifact_name,
        binary_name=release.scheme.binary.render(target, release.version),
        sha256=release.checksum_for(target),
        command_name=table.command,
        depends_on=tuple(release.depends_on),
    )


__all__ = ["ArtifactRef", "resolve", "resolve_target", "default_table", "load_table"]
