"""
Artifact integrity verification and trust policy.

This module provides:
- SHA256 file hashing
- Hash format validation and timing-attack resistant comparison
- The trust level that decides what happens to artifacts published without
  a checksum ('no_check' entries in the release table)
"""

import hashlib
import logging
import secrets
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from choughkit.core.exceptions import ChecksumMismatch, UntrustedArtifact

logger = logging.getLogger(__name__)

SHA256_HEX_LENGTH = 64


class TrustLevel(str, Enum):
    """
    How unchecked artifacts are treated.

    STRICT refuses them, WARN installs them with a warning, ALLOW installs
    them and only notes it at INFO level.
    """

    STRICT = "strict"
    WARN = "warn"
    ALLOW = "allow"

    @classmethod
    def parse(cls, value: "str | TrustLevel") -> "TrustLevel":
        """
        Parse a trust level from a string (case-insensitive).

        Raises:
            ValueError: If value is not a known trust level
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(level.value for level in cls)
            raise ValueError(f"Invalid trust level '{value}' (choose from: {choices})")


def compute_file_hash(
    file_path: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> str:
    """
    Compute the SHA256 hash of a file.

    Args:
        file_path: Path to file
        progress_callback: Optional progress callback (bytes_read, total_bytes)

    Returns:
        Lowercase hex digest

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    hasher = hashlib.sha256()
    file_size = file_path.stat().st_size
    bytes_read = 0

    with open(file_path, "rb") as f:
        while chunk := f.read(64 * 1024):
            hasher.update(chunk)
            bytes_read += len(chunk)
            if progress_callback:
                progress_callback(bytes_read, file_size)

    return hasher.hexdigest()


def is_valid_sha256(hash_str: str) -> bool:
    """Check that hash_str is 64 hexadecimal characters."""
    if not hash_str or len(hash_str) != SHA256_HEX_LENGTH:
        return False
    return all(c in "0123456789abcdef" for c in hash_str.lower())


def ensure_integrity(
    file_path: Path,
    expected_sha256: Optional[str],
    trust_level: TrustLevel = TrustLevel.WARN,
) -> bool:
    """
    Apply the integrity policy to a fetched or staged artifact.

    Args:
        file_path: Artifact on disk
        expected_sha256: Expected digest, or None for an unchecked artifact
        trust_level: Policy for unchecked artifacts

    Returns:
        True if the checksum was verified, False if verification was skipped

    Raises:
        ChecksumMismatch: If a checksum was supplied and does not match
        UntrustedArtifact: If the artifact is unchecked and trust_level is STRICT
    """
    if expected_sha256:
        actual = compute_file_hash(file_path)
        if not secrets.compare_digest(
            actual.encode(), expected_sha256.strip().lower().encode()
        ):
            raise ChecksumMismatch(file_path.name, expected_sha256.lower(), actual)
        logger.debug(f"SHA256 verified for {file_path.name}")
        return True

    return accept_unchecked(file_path.name, trust_level)


def accept_unchecked(artifact_name: str, trust_level: TrustLevel) -> bool:
    """
    Decide whether an artifact without a published checksum may be installed.

    Returns:
        Always False (nothing was verified) when the artifact is accepted

    Raises:
        UntrustedArtifact: If trust_level is STRICT
    """
    trust_level = TrustLevel.parse(trust_level)
    if trust_level is TrustLevel.STRICT:
        raise UntrustedArtifact(
            f"{artifact_name} has no published checksum and trust level is 'strict'. "
            "Use --trust-level warn to install it anyway."
        )
    if trust_level is TrustLevel.WARN:
        logger.warning(
            f"Installing {artifact_name} without checksum verification "
            "(release publishes no SHA256)"
        )
    else:
        logger.info(f"Checksum verification skipped for {artifact_name}")
    return False


__all__ = [
    "TrustLevel",
    "compute_file_hash",
    "is_valid_sha256",
    "ensure_integrity",
    "accept_unchecked",
]
