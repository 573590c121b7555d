"""
Release artifact download with progress tracking, retry logic, and checksum verification.

This module fetches chough release artifacts over HTTP(S):
- Streaming download into a '.part' file, renamed into place only when complete
- SHA256 computed while streaming and checked before the rename
- Retry with exponential backoff for transport failures
- Progress reporting (bytes, percentage, speed, ETA)
- Reuse of an already-downloaded file whose checksum matches
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

from choughkit.core.exceptions import ChecksumMismatch, DownloadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float

    def __str__(self) -> str:
        return format_progress(self)


class StreamingHasher:
    """Compute a SHA256 digest incrementally while data is streamed."""

    def __init__(self):
        self.hasher = hashlib.sha256()

    def update(self, data: bytes):
        self.hasher.update(data)

    def finalize(self) -> str:
        """Get final hash value as lowercase hex string."""
        return self.hasher.hexdigest()

    def matches(self, expected_hash: str) -> bool:
        """Check if the digest so far equals expected_hash (case-insensitive)."""
        return self.finalize() == expected_hash.strip().lower()


def download_file(
    url: str,
    destination: Path,
    expected_sha256: Optional[str] = None,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
    max_retries: int = 3,
    session: Optional[requests.Session] = None,
) -> Path:
    """
    Download a file from URL to destination.

    Args:
        url: URL to download from
        destination: Local path to save the file
        expected_sha256: Expected SHA256 hash; None skips verification
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts for transport failures
        session: Optional requests session (defaults to module-level requests)

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: If the download fails after all retries
        ChecksumMismatch: If the downloaded content does not match expected_sha256
        ValueError: If URL or destination is empty

    Example:
        >>> download_file(
        ...     "https://github.com/hyperpuncher/chough/releases/download/v0.1.4/"
        ...     "chough_v0.1.4_darwin_arm64.tar.gz",
        ...     Path("downloads/chough_v0.1.4_darwin_arm64.tar.gz"),
        ...     expected_sha256="8076b550...",
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")
    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    if destination.exists() and expected_sha256:
        if verify_checksum(destination, expected_sha256):
            logger.info(f"Using cached download: {destination.name}")
            return destination
        logger.warning(f"Cached {destination.name} has wrong checksum, re-downloading")
        destination.unlink()

    for attempt in range(max_retries):
        try:
            return _download_once(
                url=url,
                destination=destination,
                expected_sha256=expected_sha256,
                progress_callback=progress_callback,
                timeout=timeout,
                session=session,
            )
        except RequestException as e:
            if attempt == max_retries - 1:
                raise DownloadError(
                    f"Download of {url} failed after {max_retries} attempts: {e}"
                ) from e

            backoff_seconds = 2**attempt
            logger.warning(
                f"Download attempt {attempt + 1} failed: {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            time.sleep(backoff_seconds)

    raise DownloadError(f"Download of {url} failed: no attempts made")


def _download_once(
    url: str,
    destination: Path,
    expected_sha256: Optional[str],
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
    session: Optional[requests.Session],
) -> Path:
    """
    Perform a single streaming download attempt.

    Raises:
        ChecksumMismatch: If checksum doesn't match
        RequestException: If the HTTP request fails
    """
    http = session or requests
    partial = destination.with_name(destination.name + ".part")

    logger.info(f"Downloading {url}")
    hasher = StreamingHasher()
    downloaded = 0

    with http.get(url, stream=True, timeout=timeout, allow_redirects=True) as response:
        response.raise_for_status()

        content_length = response.headers.get("content-length")
        total_size = int(content_length) if content_length else 0
        start_time = time.time()
        last_progress_time = start_time

        try:
            with open(partial, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    hasher.update(chunk)
                    downloaded += len(chunk)

                    now = time.time()
                    if progress_callback and (
                        now - last_progress_time >= 0.5 or downloaded == total_size
                    ):
                        elapsed = now - start_time
                        speed = downloaded / elapsed if elapsed > 0 else 0
                        remaining = total_size - downloaded if total_size > 0 else 0
                        progress_callback(
                            DownloadProgress(
                                bytes_downloaded=downloaded,
                                total_bytes=total_size if total_size > 0 else downloaded,
                                percentage=(downloaded / total_size * 100)
                                if total_size > 0
                                else 0,
                                speed_bps=speed,
                                eta_seconds=remaining / speed if speed > 0 else 0,
                            )
                        )
                        last_progress_time = now
        except Exception:
            partial.unlink(missing_ok=True)
            raise

    if expected_sha256:
        if not hasher.matches(expected_sha256):
            partial.unlink(missing_ok=True)
            raise ChecksumMismatch(
                destination.name, expected_sha256.lower(), hasher.finalize()
            )
        logger.info(f"Checksum verified for {destination.name}")

    partial.replace(destination)
    logger.debug(f"Download complete: {destination} ({downloaded} bytes)")
    return destination


def verify_checksum(file_path: Path, expected_sha256: str) -> bool:
    """
    Verify a file's SHA256 checksum.

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    hasher = StreamingHasher()
    with open(file_path, "rb") as f:
        while chunk := f.read(CHUNK_SIZE):
            hasher.update(chunk)
    return hasher.matches(expected_sha256)


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"
