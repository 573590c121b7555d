"""Runtime dependency checks (e.g. chough 0.1.4 shells out to ffmpeg)."""

import logging
import shutil
from typing import Iterable, List

logger = logging.getLogger(__name__)


def check_dependencies(names: Iterable[str]) -> List[str]:
    """
    Return the dependencies that are not on PATH, in the order given.

    Example:
        >>> check_dependencies(["ffmpeg"])
        []
    """
    missing = []
    for name in names:
        path = shutil.which(name)
        if path:
            logger.debug(f"Found dependency {name}: {path}")
        else:
            missing.append(name)
    return missing


def warn_missing(names: Iterable[str], command: str = "chough") -> List[str]:
    """Log a warning for each missing dependency and return them."""
    missing = check_dependencies(names)
    for name in missing:
        logger.warning(f"{command} needs '{name}' at runtime but it was not found on PATH")
    return missing


__all__ = ["check_dependencies", "warn_missing"]
