"""
Shared utilities for CLI commands.

Provides common functionality used across multiple CLI commands to
eliminate duplication and ensure consistent behavior.
"""

import logging
import sys
from typing import Any, Dict, Optional

from choughkit.config.settings import InstallerConfig, load_config
from choughkit.core.download import DownloadProgress, format_progress

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Management
# ============================================================================


def config_from_args(args) -> InstallerConfig:
    """
    Load the effective configuration, applying CLI flags as overrides.

    Flags a subcommand does not define are simply absent from args.

    Raises:
        ConfigError: If the config file or any override is invalid
    """
    overrides = {
        key: getattr(args, key, None)
        for key in ("prefix", "cache_dir", "trust_level", "channel")
    }
    return load_config(getattr(args, "config", None), overrides=overrides)


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def format_success_message(
    title: str,
    details: Dict[str, Any],
    next_steps: Optional[list] = None,
    width: int = 70,
) -> str:
    """
    Format a standardized success message.

    Args:
        title: Success message title
        details: Key-value pairs to display
        next_steps: Optional list of next step instructions
        width: Width of message box

    Returns:
        Formatted message string
    """
    lines = []
    lines.append("=" * width)
    lines.append(title)
    lines.append("=" * width)
    lines.append("")

    for key, value in details.items():
        lines.append(f"{key}: {value}")

    if next_steps:
        lines.append("")
        lines.append("Next steps:")
        for step in next_steps:
            lines.append(f"  {step}")

    lines.append("")
    return "\n".join(lines)


def safe_print(message: str, file=None):
    """
    Print message with safe encoding handling for limited consoles.

    Falls back to ASCII-safe markers if Unicode symbols can't be encoded.
    """
    try:
        print(message, file=file)
    except UnicodeEncodeError:
        safe_message = (
            message.replace("⚠️", "WARNING:")
            .replace("✓", "[OK]")
            .replace("✅", "[OK]")
            .replace("❌", "[ERROR]")
        )
        print(safe_message, file=file)


def make_progress_printer(quiet: bool = False):
    """
    Progress callback for downloads that rewrites one stderr line.

    Returns None when quiet, so no callback is installed.
    """
    if quiet:
        return None

    def _print(progress: DownloadProgress):
        done = progress.total_bytes and progress.bytes_downloaded >= progress.total_bytes
        end = "\n" if done else ""
        print(f"\r{format_progress(progress)}", end=end, file=sys.stderr, flush=True)

    return _print
