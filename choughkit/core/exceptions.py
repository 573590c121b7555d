"""
Centralized exception hierarchy for choughkit.

Every failure an install can end in is one of these types. None of them are
retried by the install pipeline: the operator re-runs the command after fixing
the cause (network, wrong staged file, host tools).
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class ChoughKitError(Exception):
    """Base exception for all choughkit errors."""

    pass


# ============================================================================
# Resolution Exceptions
# ============================================================================


class UnsupportedPlatform(ChoughKitError):
    """Raised when no release artifact exists for the requested target."""

    def __init__(self, os_name: str, arch: str, version: str = "", detail: str = ""):
        self.os = os_name
        self.arch = arch
        self.version = version
        msg = f"No chough artifact for {os_name}-{arch}"
        if version:
            msg += f" (version {version})"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class ReleaseTableError(ChoughKitError):
    """Raised when the release table is missing or malformed."""

    pass


class InvalidVersionError(ReleaseTableError):
    """Version string is not a dotted numeric version."""

    pass


# ============================================================================
# Install Exceptions
# ============================================================================


class InstallError(ChoughKitError):
    """Base exception for failures while installing an artifact."""

    pass


class DownloadError(InstallError):
    """Raised when the artifact cannot be fetched after retries."""

    pass


class ChecksumMismatch(InstallError):
    """Raised when a downloaded or staged artifact fails SHA256 verification."""

    def __init__(self, name: str, expected: str, actual: str):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for {name}: expected {expected}, got {actual}"
        )


class UntrustedArtifact(InstallError):
    """Raised when an unchecked artifact is refused by the trust level."""

    pass


class ArtifactNotFound(InstallError):
    """Raised when the expected binary is absent from the staging directory."""

    def __init__(self, binary_name: str, staging_dir, candidates=None):
        self.binary_name = binary_name
        self.staging_dir = staging_dir
        self.candidates = sorted(candidates or [])
        msg = f"Expected binary '{binary_name}' not found in {staging_dir}"
        if self.candidates:
            msg += f" (staged: {', '.join(self.candidates)})"
        super().__init__(msg)


class LibraryPatchError(InstallError):
    """Raised when rewriting the binary's load commands fails."""

    pass


class VerificationFailed(InstallError):
    """Raised when the installed binary does not report the expected version."""

    def __init__(self, binary_path, expected_version: str, output: str = ""):
        self.binary_path = binary_path
        self.expected_version = expected_version
        self.output = output
        msg = f"{binary_path} --version did not report {expected_version}"
        if output:
            msg += f" (output: {output.strip()[:200]})"
        super().__init__(msg)


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigError(ChoughKitError):
    """Configuration parsing or validation error."""

    pass


class LockTimeoutError(ChoughKitError):
    """Raised when the install lock for a prefix cannot be acquired."""

    pass
