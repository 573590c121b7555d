"""
File system utilities for choughkit.

This module provides the file operations an install needs:
- Archive extraction (tar.gz, tar.xz, tar.bz2, zip) with traversal checks
- Atomic file install (copy to temp + rename, so re-runs overwrite cleanly)
- Atomic text writes for receipts and rendered formulas
- Guarded directory removal
"""

import os
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Callable, Optional, Union


# ============================================================================
# Errors
# ============================================================================


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains potentially malicious paths."""

    pass


ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz", ".tar.bz2", ".tbz2", ".zip")


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """Check if path is inside parent (both should be resolved)."""
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def is_archive(name: str) -> bool:
    """Check if a file name has a supported archive suffix."""
    return name.lower().endswith(ARCHIVE_SUFFIXES)


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Reject archive members that would land outside destination.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()
    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "Extraction has been blocked."
        )


def _validate_archive_link(member: tarfile.TarInfo, destination: Path) -> None:
    """
    Reject symlink and hardlink members whose target leaves destination.

    Symlink targets are relative to the member's directory, hardlink targets
    to the archive root.

    Raises:
        InsecureArchiveError: If the link target is outside destination
    """
    if member.issym():
        target = (destination / member.name).parent / member.linkname
    elif member.islnk():
        target = destination / member.linkname
    else:
        return

    if not is_relative_to(target.resolve(), destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{member.name}' links to '{member.linkname}' "
            "outside the extraction directory. Extraction has been blocked."
        )


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """
    Extract an archive to a destination directory.

    Supported formats: .tar.gz/.tgz, .tar.xz, .tar.bz2/.tbz2, .zip

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        ArchiveExtractionError: If extraction fails
        InsecureArchiveError: If archive contains malicious paths

    Example:
        >>> extract_archive('chough_v0.1.4_darwin_arm64.tar.gz', '/tmp/staging')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)
    name = archive_path.name.lower()

    try:
        if name.endswith(".zip"):
            _extract_zip(archive_path, destination, progress_callback)
        elif name.endswith((".tar.gz", ".tgz")):
            _extract_tar(archive_path, destination, "r:gz", progress_callback)
        elif name.endswith(".tar.xz"):
            _extract_tar(archive_path, destination, "r:xz", progress_callback)
        elif name.endswith((".tar.bz2", ".tbz2")):
            _extract_tar(archive_path, destination, "r:bz2", progress_callback)
        else:
            raise UnsupportedArchiveFormat(
                f"Unsupported archive format: {archive_path.name}. "
                f"Supported: {', '.join(ARCHIVE_SUFFIXES)}"
            )
    except (InsecureArchiveError, UnsupportedArchiveFormat):
        raise
    except Exception as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(
    archive_path: Path,
    destination: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a ZIP archive, restoring Unix permission bits."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.infolist()
        for member in members:
            _validate_archive_path(member.filename, destination)

        for i, member in enumerate(members):
            extracted = Path(zf.extract(member, destination))
            mode = (member.external_attr >> 16) & 0o777
            if mode and not member.is_dir():
                extracted.chmod(mode)
            if progress_callback:
                progress_callback(i + 1, len(members))


def _extract_tar(
    archive_path: Path,
    destination: Path,
    mode: str,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()
        for member in members:
            _validate_archive_path(member.name, destination)
            _validate_archive_link(member, destination)

        if hasattr(tarfile, "data_filter"):
            tar.extractall(destination, filter="data")
        else:
            tar.extractall(destination)

        if progress_callback:
            progress_callback(len(members), len(members))


def archive_root(extract_dir: Path) -> Path:
    """
    Return the directory that holds the extracted payload.

    Archives with a single top-level directory are unwrapped; otherwise the
    extraction directory itself is the root.
    """
    items = list(extract_dir.iterdir())
    if len(items) == 1 and items[0].is_dir():
        return items[0]
    return extract_dir


# ============================================================================
# Safe File Operations
# ============================================================================


def install_file(source: Path, destination: Path, mode: int = 0o644) -> Path:
    """
    Copy source to destination atomically and set its permission bits.

    The copy goes to a temporary file in the destination directory and is
    renamed over the target, so an existing file (or a symlink left by another
    package manager) is replaced rather than written through.

    Args:
        source: File to copy
        destination: Final path
        mode: Permission bits for the installed file

    Returns:
        destination

    Raises:
        FilesystemError: If the source is missing or the copy fails
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_file():
        raise FilesystemError(f"Source file does not exist: {source}")

    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path_str = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp"
    )
    os.close(fd)
    temp_path = Path(temp_path_str)

    try:
        shutil.copyfile(source, temp_path)
        temp_path.chmod(mode)
        temp_path.replace(destination)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise FilesystemError(
            f"Failed to install {source.name} to {destination}: {e}"
        ) from e

    return destination


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Example:
        >>> atomic_write('INSTALL_RECEIPT.json', '{"version": "0.1.4"}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)
        temp_path.replace(file_path)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Remove a directory tree, refusing paths outside require_prefix.

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('~/.cache/choughkit/staging/x', require_prefix='~/.cache/choughkit')
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


__all__ = [
    "FilesystemError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "ARCHIVE_SUFFIXES",
    "is_relative_to",
    "is_archive",
    "extract_archive",
    "archive_root",
    "install_file",
    "atomic_write",
    "safe_rmtree",
]
