"""
Installation of resolved chough artifacts.

Provides the installer, the load path patcher capability, the smoke test and
the pipeline that runs them in order.
"""

from choughkit.install.dependencies import check_dependencies
from choughkit.install.installer import Installer
from choughkit.install.layout import InstalledState, InstallLayout
from choughkit.install.patcher import (
    LoadPathPatcher,
    MachOLoadPathPatcher,
    NoOpLoadPathPatcher,
    get_patcher,
)
from choughkit.install.pipeline import InstallPipeline
from choughkit.install.receipt import ReceiptError, read_receipt, write_receipt
from choughkit.install.smoke import require_version, verify

__all__ = [
    "Installer",
    "InstallLayout",
    "InstalledState",
    "LoadPathPatcher",
    "MachOLoadPathPatcher",
    "NoOpLoadPathPatcher",
    "get_patcher",
    "InstallPipeline",
    "ReceiptError",
    "read_receipt",
    "write_receipt",
    "verify",
    "require_version",
    "check_dependencies",
]
