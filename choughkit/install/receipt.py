"""
Install receipt persistence.

The receipt records what an install put into a prefix so that uninstall
removes exactly those files. It is written to `<prefix>/INSTALL_RECEIPT.json`
with an atomic write, and rewritten on every install.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from choughkit.core.exceptions import ChoughKitError
from choughkit.core.filesystem import atomic_write
from choughkit.install.layout import InstallLayout, InstalledState

logger = logging.getLogger(__name__)

RECEIPT_FORMAT_VERSION = 1


class ReceiptError(ChoughKitError):
    """Raised when an existing receipt cannot be read."""

    pass


def write_receipt(layout: InstallLayout, state: InstalledState) -> Path:
    """
    Write the receipt for an install.

    Sets state.installed_at if it is not set yet.
    """
    if not state.installed_at:
        state.installed_at = datetime.now(timezone.utc).isoformat()

    data = {"format": RECEIPT_FORMAT_VERSION, **state.to_dict()}
    path = layout.receipt_path()
    atomic_write(path, json.dumps(data, indent=2) + "\n")
    logger.debug(f"Wrote install receipt: {path}")
    return path


def read_receipt(layout: InstallLayout) -> Optional[InstalledState]:
    """
    Read the receipt of a previous install.

    Returns:
        InstalledState, or None if the prefix has no receipt

    Raises:
        ReceiptError: If the receipt exists but is corrupt
    """
    path = layout.receipt_path()
    if not path.exists():
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return InstalledState.from_dict(data)
    except (json.JSONDecodeError, TypeError, KeyError) as e:
        raise ReceiptError(f"Corrupt install receipt {path}: {e}") from e


__all__ = ["ReceiptError", "write_receipt", "read_receipt"]
