"""
Patch command implementation.

Applies the host's load path patcher to an already installed binary.
"""

import logging

from choughkit.core.platform import detect_target
from choughkit.install.patcher import get_patcher

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the patch command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    binary = args.binary
    lib_dir = args.lib_dir or binary.resolve().parent.parent / "lib"

    target = detect_target()
    patcher = get_patcher(target, codesign=not args.no_codesign)
    changed = patcher.patch_load_paths(binary, lib_dir, args.rpath)

    if not args.quiet:
        if not target.is_macos:
            print(f"No load path patching needed on {target.os}")
        elif changed:
            print(f"Patched {binary} (libraries in {lib_dir})")
        else:
            print(f"{binary} already up to date")
    return 0
