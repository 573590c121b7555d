"""
Install locking for choughkit.

Two installs into the same prefix must not interleave their copies and
patches. Each prefix gets a file lock (via the `filelock` library) keyed on
its resolved path; the lock is released automatically if the process dies.

Usage:
    from choughkit.core.locking import LockManager

    lock_manager = LockManager(cache_dir / "lock")
    with lock_manager.install_lock(prefix, timeout=300):
        # copy binary, copy libraries, patch, write receipt
        pass
"""

import hashlib
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout

from choughkit.core.directory import get_cache_dir
from choughkit.core.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


class LockManager:
    """
    Manages per-prefix install locks.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Optional[Path] = None):
        """
        Initialize lock manager.

        Args:
            lock_dir: Directory for lock files (default: <cache>/lock)
        """
        self.lock_dir = Path(lock_dir) if lock_dir else get_cache_dir() / "lock"
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    def lock_path_for(self, prefix: Path) -> Path:
        """Lock file path for an install prefix."""
        digest = hashlib.sha256(str(Path(prefix).resolve()).encode()).hexdigest()
        return self.lock_dir / f"install-{digest[:16]}.lock"

    @contextmanager
    def install_lock(self, prefix: Path, timeout: int = 300):
        """
        Acquire the install lock for a prefix.

        Args:
            prefix: Install prefix being modified
            timeout: Maximum wait time in seconds

        Raises:
            LockTimeoutError: If the lock can't be acquired within timeout
        """
        lock_path = self.lock_path_for(prefix)
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired install lock for {prefix}: {lock_path}")
                yield
                logger.debug(f"Released install lock for {prefix}")
        except Timeout as e:
            raise LockTimeoutError(
                f"Could not acquire install lock for {prefix} after {timeout}s. "
                "Another choughkit process may be installing into it."
            ) from e


__all__ = ["LockManager"]
