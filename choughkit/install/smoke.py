"""
Post-install smoke test.

Runs the installed binary with --version and checks the expected version
string appears in its output. This is the last pipeline step; on macOS it is
also the first point where broken load path patching would show up.
"""

import logging
import subprocess
from pathlib import Path

from choughkit.core.exceptions import VerificationFailed

logger = logging.getLogger(__name__)

SMOKE_TIMEOUT = 30


def run_version(binary_path: Path, timeout: int = SMOKE_TIMEOUT) -> subprocess.CompletedProcess:
    """
    Run `<binary> --version`.

    Raises:
        FileNotFoundError: If the binary does not exist
        PermissionError: If it is not executable
        subprocess.TimeoutExpired: If it does not exit in time
    """
    cmd = [str(binary_path), "--version"]
    logger.debug(f"Running: {' '.join(cmd)}")
    return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)


def verify(binary_path: Path, expected_version: str, timeout: int = SMOKE_TIMEOUT) -> bool:
    """
    Check that the installed binary runs and reports the expected version.

    Args:
        binary_path: Installed executable
        expected_version: Version string that must appear in the output
        timeout: Seconds to wait for the binary

    Returns:
        True if the binary exited 0 and its output contains expected_version
    """
    try:
        result = run_version(binary_path, timeout)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.error(f"Smoke test could not run {binary_path}: {e}")
        return False

    output = (result.stdout or "") + (result.stderr or "")
    if result.returncode != 0:
        logger.error(
            f"{binary_path} --version exited {result.returncode}: {output.strip()}"
        )
        return False

    if expected_version not in output:
        logger.error(
            f"{binary_path} --version did not report {expected_version}: {output.strip()!r}"
        )
        return False

    logger.info(f"Smoke test passed: {binary_path} reports {expected_version}")
    return True


def require_version(
    binary_path: Path, expected_version: str, timeout: int = SMOKE_TIMEOUT
) -> None:
    """
    Like verify(), but raise on failure.

    Raises:
        VerificationFailed: If the smoke test fails
    """
    try:
        result = run_version(binary_path, timeout)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise VerificationFailed(binary_path, expected_version, str(e)) from e

    output = (result.stdout or "") + (result.stderr or "")
    if result.returncode != 0 or expected_version not in output:
        raise VerificationFailed(binary_path, expected_version, output.strip())
    logger.info(f"Smoke test passed: {binary_path} reports {expected_version}")


__all__ = ["verify", "require_version", "run_version", "SMOKE_TIMEOUT"]
