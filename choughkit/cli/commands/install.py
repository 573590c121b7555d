"""
Install command implementation.

Runs the full pipeline: resolve, download, verify, install, patch, smoke test.
"""

import logging

from choughkit.cli.utils import (
    config_from_args,
    format_success_message,
    make_progress_printer,
)
from choughkit.install.pipeline import InstallPipeline

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config = config_from_args(args)
    logger.debug(f"Arguments: {args}")

    pipeline = InstallPipeline(
        config, progress_callback=make_progress_printer(quiet=args.quiet)
    )
    state = pipeline.run(args.release_version, staged_artifact=args.staged)

    if not args.quiet:
        details = {
            "Version": state.version,
            "Platform": state.target.platform_key,
            "Binary": state.binary_path,
            "Libraries": len(state.libraries),
            "Checksum": "verified" if state.checksum_verified else "not verified",
        }
        if state.target.is_macos:
            details["Load paths"] = "patched" if state.load_paths_patched else "unchanged"
        print(
            format_success_message(
                "chough installed",
                details,
                next_steps=[f"Make sure {state.binary_path.parent} is on your PATH"],
            )
        )
    return 0
