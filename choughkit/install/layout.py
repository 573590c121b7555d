"""Install layout and installed-state records."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from choughkit.core.platform import TargetDescriptor


@dataclass
class InstallLayout:
    """
    Where an install puts its files.

    Attributes:
        prefix: Install prefix (e.g., /opt/homebrew/Cellar/chough/0.1.4)
        bin_dir: Executable directory (default: prefix/bin)
        lib_dir: Shared library directory (default: prefix/lib)
        rpath_dir: Directory recorded as the binary's runtime search path.
            Defaults to lib_dir with symlinks resolved, so the binary does not
            depend on a 'current version' link that may later move.
    """

    prefix: Path
    bin_dir: Optional[Path] = None
    lib_dir: Optional[Path] = None
    rpath_dir: Optional[Path] = None

    def __post_init__(self):
        self.prefix = Path(self.prefix)
        self.bin_dir = Path(self.bin_dir) if self.bin_dir else self.prefix / "bin"
        self.lib_dir = Path(self.lib_dir) if self.lib_dir else self.prefix / "lib"
        if self.rpath_dir is not None:
            self.rpath_dir = Path(self.rpath_dir)

    def resolved_rpath_dir(self) -> Path:
        """The runtime search path entry to record in the binary."""
        return self.rpath_dir if self.rpath_dir else self.lib_dir.resolve()

    def receipt_path(self) -> Path:
        return self.prefix / "INSTALL_RECEIPT.json"


@dataclass
class InstalledState:
    """What an install left on disk."""

    binary_path: Path
    libraries: List[Path]
    target: TargetDescriptor
    version: str
    channel: str
    source_url: str
    checksum_verified: bool
    load_paths_patched: bool = False
    installed_at: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "binary_path": str(self.binary_path),
            "libraries": [str(p) for p in self.libraries],
            "os": self.target.os,
            "arch": self.target.arch,
            "version": self.version,
            "channel": self.channel,
            "source_url": self.source_url,
            "checksum_verified": self.checksum_verified,
            "load_paths_patched": self.load_paths_patched,
            "installed_at": self.installed_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InstalledState":
        """
        Create from dictionary.

        Raises:
            KeyError: If a required key is missing
        """
        return cls(
            binary_path=Path(data["binary_path"]),
            libraries=[Path(p) for p in data.get("libraries", [])],
            target=TargetDescriptor(data["os"], data["arch"]),
            version=data["version"],
            channel=data.get("channel", "stable"),
            source_url=data.get("source_url", ""),
            checksum_verified=bool(data.get("checksum_verified", False)),
            load_paths_patched=bool(data.get("load_paths_patched", False)),
            installed_at=data.get("installed_at"),
        )


__all__ = ["InstallLayout", "InstalledState"]
