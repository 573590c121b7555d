"""
Formula command implementation.

Renders a Homebrew formula from the release table.
"""

import logging

from choughkit.cli.utils import config_from_args
from choughkit.formula.render import FormulaRenderer
from choughkit.release.resolver import load_table

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the formula command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config = config_from_args(args)
    renderer = FormulaRenderer(load_table(config.release_table))

    if args.output:
        renderer.write(args.output, args.release_version, config.channel)
    else:
        print(renderer.render(args.release_version, config.channel), end="")
    return 0
