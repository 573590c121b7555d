"""
Cache directory management for choughkit.

Directory Structure:
    Cache ($XDG_CACHE_HOME/choughkit or ~/.cache/choughkit):
        - downloads/  : Fetched release artifacts, reused when the checksum matches
        - staging/    : Per-install extraction directories, removed after install
        - lock/       : Per-prefix install locks
"""

import os
from pathlib import Path
from typing import Dict, Optional

CACHE_SUBDIRS = ("downloads", "staging", "lock")


class DirectoryError(Exception):
    """Raised when a choughkit directory cannot be created or used."""

    pass


def get_cache_dir() -> Path:
    """
    Get the cache directory path.

    Honors XDG_CACHE_HOME, falling back to ~/.cache.

    Example:
        >>> get_cache_dir()
        PosixPath('/home/user/.cache/choughkit')
    """
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / "choughkit"
    return Path.home() / ".cache" / "choughkit"


def ensure_cache_structure(cache_dir: Optional[Path] = None) -> Dict[str, Path]:
    """
    Create the cache directory and its subdirectories (idempotent).

    Args:
        cache_dir: Cache root (defaults to get_cache_dir())

    Returns:
        Mapping of 'root' and each subdirectory name to its path

    Raises:
        DirectoryError: If a directory cannot be created
    """
    root = Path(cache_dir) if cache_dir else get_cache_dir()
    paths = {"root": root}
    try:
        root.mkdir(parents=True, exist_ok=True)
        for name in CACHE_SUBDIRS:
            paths[name] = root / name
            paths[name].mkdir(exist_ok=True)
    except OSError as e:
        raise DirectoryError(f"Cannot create cache directory {root}: {e}") from e
    return paths


def verify_directory_writable(path: Path) -> bool:
    """
    Check that a directory exists (or can be created) and is writable.

    Used by 'doctor' to report on the install prefix before an install is tried.
    """
    path = Path(path)
    probe_dir = path
    while not probe_dir.exists():
        if probe_dir.parent == probe_dir:
            return False
        probe_dir = probe_dir.parent
    return probe_dir.is_dir() and os.access(probe_dir, os.W_OK | os.X_OK)


__all__ = [
    "DirectoryError",
    "get_cache_dir",
    "ensure_cache_structure",
    "verify_directory_writable",
]
