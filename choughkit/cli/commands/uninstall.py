"""
Uninstall command implementation.

Removes the files recorded in the prefix's install receipt.
"""

import logging

from choughkit.cli.utils import config_from_args
from choughkit.install.pipeline import InstallPipeline

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the uninstall command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, including when nothing was installed)
    """
    config = config_from_args(args)
    state = InstallPipeline(config).uninstall()
    if state is not None and not args.quiet:
        removed = 1 + len(state.libraries)
        print(f"Removed chough {state.version} ({removed} files) from {config.prefix}")
    return 0
