"""
Verify command implementation.

Smoke-tests an installed chough binary.
"""

import logging

from choughkit.cli.utils import config_from_args
from choughkit.install.layout import InstallLayout
from choughkit.install.receipt import read_receipt
from choughkit.install.smoke import verify

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the verify command.

    Binary and expected version default to what the prefix receipt recorded.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 if the smoke test passed)
    """
    binary = args.binary
    expected = args.expect

    if binary is None or expected is None:
        config = config_from_args(args)
        state = read_receipt(InstallLayout(config.prefix))
        if state is None:
            logger.error(
                f"No install receipt in {config.prefix}; pass --binary and --expect"
            )
            return 1
        binary = binary or state.binary_path
        expected = expected or state.version

    if verify(binary, expected):
        if not args.quiet:
            print(f"✓ {binary} reports {expected}")
        return 0
    return 1
