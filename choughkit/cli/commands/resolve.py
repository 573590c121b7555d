"""
Resolve command implementation.

Prints the artifact a platform and version resolve to, without downloading.
"""

import json
import logging

from choughkit.cli.utils import config_from_args
from choughkit.core.platform import TargetDescriptor, detect_target
from choughkit.release.resolver import load_table, resolve_target
from choughkit.release.table import NO_CHECK

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the resolve command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    if bool(args.os_name) != bool(args.arch):
        logger.error("--os and --arch must be given together")
        return 1

    config = config_from_args(args)
    if args.os_name:
        target = TargetDescriptor.from_values(args.os_name, args.arch)
    else:
        target = detect_target()
        logger.debug(f"Detected target {target}")

    ref = resolve_target(
        target,
        args.release_version,
        channel=config.channel,
        table=load_table(config.release_table),
    )

    info = {
        "platform": ref.target.platform_key,
        "version": ref.version,
        "channel": ref.channel,
        "url": ref.url,
        "artifact": ref.artifact_name,
        "binary": ref.binary_name,
        "sha256": ref.sha256 or NO_CHECK,
        "depends_on": list(ref.depends_on),
    }

    if args.json:
        print(json.dumps(info, indent=2))
    else:
        width = max(len(key) for key in info)
        for key, value in info.items():
            if isinstance(value, list):
                value = ", ".join(value) or "-"
            print(f"{key.ljust(width)}  {value}")
    return 0
