"""
Target platform detection for choughkit.

This module determines the Target Descriptor (operating system and CPU
architecture) that governs which chough artifact is selected for an install.

Features:
- Operating system detection (macOS, Linux)
- CPU architecture detection (arm64, x86_64)
- Normalization of host aliases ('darwin', 'aarch64', 'amd64', 'x64', ...)
- Canonical platform keys (e.g., 'macos-arm64', 'linux-x86_64')
- Cached detection (runs once per process)

Usage:
    from choughkit.core.platform import detect_target

    target = detect_target()
    print(f"OS: {target.os}")
    print(f"Architecture: {target.arch}")
    print(f"Platform key: {target.platform_key}")
"""

import functools
import platform
from dataclasses import dataclass

from choughkit.core.exceptions import UnsupportedPlatform

SUPPORTED_OS = ("macos", "linux")
SUPPORTED_ARCH = ("arm64", "x86_64")

_OS_ALIASES = {
    "macos": "macos",
    "darwin": "macos",
    "mac": "macos",
    "osx": "macos",
    "linux": "linux",
}

_ARCH_ALIASES = {
    "arm64": "arm64",
    "aarch64": "arm64",
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
}


@dataclass(frozen=True)
class TargetDescriptor:
    """
    The (operating system, architecture) pair an install is performed for.

    Attributes:
        os: Normalized operating system ('macos' or 'linux')
        arch: Normalized CPU architecture ('arm64' or 'x86_64')
    """

    os: str
    arch: str

    @property
    def platform_key(self) -> str:
        """
        Canonical platform key used in the release table.

        Example:
            >>> TargetDescriptor('macos', 'arm64').platform_key
            'macos-arm64'
        """
        return f"{self.os}-{self.arch}"

    @property
    def is_macos(self) -> bool:
        return self.os == "macos"

    @property
    def library_suffix(self) -> str:
        """Shared library suffix for this OS ('.dylib' or '.so')."""
        return ".dylib" if self.is_macos else ".so"

    @classmethod
    def from_values(cls, os_name: str, arch: str) -> "TargetDescriptor":
        """
        Build a descriptor from raw (possibly aliased) values.

        Raises:
            UnsupportedPlatform: If either value is not a supported platform
        """
        return cls(os=normalize_os(os_name, arch), arch=normalize_arch(arch, os_name))

    def __str__(self) -> str:
        return self.platform_key


def normalize_os(os_name: str, arch: str = "") -> str:
    """
    Normalize an operating system name.

    Args:
        os_name: Raw OS name (e.g., 'Darwin', 'macos', 'linux')
        arch: Architecture, only used for the error message

    Returns:
        'macos' or 'linux'

    Raises:
        UnsupportedPlatform: If the OS is not supported
    """
    key = (os_name or "").strip().lower()
    if key not in _OS_ALIASES:
        raise UnsupportedPlatform(
            os_name or "<empty>",
            arch or "?",
            detail=f"supported operating systems: {', '.join(SUPPORTED_OS)}",
        )
    return _OS_ALIASES[key]


def normalize_arch(arch: str, os_name: str = "") -> str:
    """
    Normalize a CPU architecture name.

    Args:
        arch: Raw architecture (e.g., 'aarch64', 'AMD64', 'x86_64')
        os_name: OS name, only used for the error message

    Returns:
        'arm64' or 'x86_64'

    Raises:
        UnsupportedPlatform: If the architecture is not supported
    """
    key = (arch or "").strip().lower()
    if key not in _ARCH_ALIASES:
        raise UnsupportedPlatform(
            os_name or "?",
            arch or "<empty>",
            detail=f"supported architectures: {', '.join(SUPPORTED_ARCH)}",
        )
    return _ARCH_ALIASES[key]


@functools.lru_cache(maxsize=1)
def detect_target() -> TargetDescriptor:
    """
    Detect the Target Descriptor of the running host.

    This function is cached - it only runs detection once per process.

    Returns:
        TargetDescriptor for the host

    Raises:
        UnsupportedPlatform: If the host OS or architecture is not supported

    Example:
        >>> target = detect_target()
        >>> print(f"Installing for {target.platform_key}")
        Installing for linux-x86_64
    """
    return TargetDescriptor.from_values(platform.system(), _detect_machine())


def _detect_machine() -> str:
    """
    Detect the hardware architecture.

    Under Rosetta 2 an x86_64 Python reports 'x86_64' on Apple Silicon; the
    native arm64 build is preferred there.
    """
    machine = platform.machine()
    if platform.system().lower() == "darwin" and machine.lower() == "x86_64":
        if _running_under_rosetta():
            return "arm64"
    return machine


def _running_under_rosetta() -> bool:
    """Check the 'sysctl.proc_translated' flag on macOS."""
    import subprocess

    try:
        result = subprocess.run(
            ["sysctl", "-n", "sysctl.proc_translated"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0 and result.stdout.strip() == "1"


def get_supported_targets() -> list[TargetDescriptor]:
    """
    Get every (os, arch) pair choughkit knows how to describe.

    Whether a given release ships an artifact for each pair is decided by the
    release table, not here.
    """
    return [TargetDescriptor(o, a) for o in SUPPORTED_OS for a in SUPPORTED_ARCH]


def clear_target_cache():
    """
    Clear the detection cache.

    This forces the next call to detect_target() to re-detect.
    Useful for testing.
    """
    detect_target.cache_clear()


__all__ = [
    "TargetDescriptor",
    "SUPPORTED_OS",
    "SUPPORTED_ARCH",
    "normalize_os",
    "normalize_arch",
    "detect_target",
    "get_supported_targets",
    "clear_target_cache",
]
