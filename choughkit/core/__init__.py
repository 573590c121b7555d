"""
Core functionality for choughkit.

This package contains the foundational modules that other components depend on.
"""

from .directory import (
    get_cache_dir,
    ensure_cache_structure,
    verify_directory_writable,
    DirectoryError,
)

from .locking import (
    LockManager,
)

from .platform import (
    TargetDescriptor,
    detect_target,
    normalize_os,
    normalize_arch,
    get_supported_targets,
    clear_target_cache,
)

from .verification import (
    TrustLevel,
    compute_file_hash,
    ensure_integrity,
    accept_unchecked,
)

from .exceptions import (
    ChoughKitError,
    UnsupportedPlatform,
    ReleaseTableError,
    InvalidVersionError,
    InstallError,
    DownloadError,
    ChecksumMismatch,
    UntrustedArtifact,
    ArtifactNotFound,
    LibraryPatchError,
    VerificationFailed,
    ConfigError,
    LockTimeoutError,
)

__all__ = [
    # Directory management
    "get_cache_dir",
    "ensure_cache_structure",
    "verify_directory_writable",
    "DirectoryError",
    # Locking
    "LockManager",
    # Platform detection
    "TargetDescriptor",
    "detect_target",
    "normalize_os",
    "normalize_arch",
    "get_supported_targets",
    "clear_target_cache",
    # Verification
    "TrustLevel",
    "compute_file_hash",
    "ensure_integrity",
    "accept_unchecked",
    # Exceptions
    "ChoughKitError",
    "UnsupportedPlatform",
    "ReleaseTableError",
    "InvalidVersionError",
    "InstallError",
    "DownloadError",
    "ChecksumMismatch",
    "UntrustedArtifact",
    "ArtifactNotFound",
    "LibraryPatchError",
    "VerificationFailed",
    "ConfigError",
    "LockTimeoutError",
]
