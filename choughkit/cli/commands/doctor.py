"""
Doctor command for diagnosing environment issues.

This module provides health checks for a choughkit install, including
platform support, release availability, install/cache directories, the
macOS patching tools and chough's runtime dependencies.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import shutil
import logging

from choughkit.cli.utils import config_from_args, safe_print
from choughkit.config.settings import InstallerConfig
from choughkit.core.directory import verify_directory_writable
from choughkit.core.exceptions import ChoughKitError
from choughkit.core.platform import TargetDescriptor, detect_target
from choughkit.install.dependencies import check_dependencies
from choughkit.install.layout import InstallLayout
from choughkit.install.receipt import read_receipt
from choughkit.release.resolver import ArtifactRef, load_table, resolve_target
from choughkit.release.table import LATEST

logger = logging.getLogger(__name__)

MACOS_TOOLS = ("otool", "install_name_tool", "codesign")

# Failures of these checks are reported as warnings
OPTIONAL_CHECKS = {"Runtime dependencies"}


@dataclass
class CheckResult:
    """Result of a health check."""

    name: str
    passed: bool
    message: str
    fix_command: Optional[str] = None


class EnvironmentChecker:
    """Check the environment chough is installed into."""

    def __init__(self, config: InstallerConfig):
        self.config = config
        self.target: Optional[TargetDescriptor] = None
        self.ref: Optional[ArtifactRef] = None

    def check_platform(self) -> CheckResult:
        """Check the host is a supported OS/architecture."""
        try:
            self.target = detect_target()
        except ChoughKitError as e:
            return CheckResult(name="Platform", passed=False, message=str(e))
        return CheckResult(name="Platform", passed=True, message=str(self.target))

    def check_release(self) -> CheckResult:
        """Check the channel publishes a build for the host."""
        if self.target is None:
            return CheckResult(
                name="Release", passed=False, message="Skipped: platform unsupported"
            )
        try:
            self.ref = resolve_target(
                self.target,
                LATEST,
                channel=self.config.channel,
                table=load_table(self.config.release_table),
            )
        except ChoughKitError as e:
            return CheckResult(name="Release", passed=False, message=str(e))

        checksum = "checksum" if self.ref.sha256 else "no checksum"
        return CheckResult(
            name="Release",
            passed=True,
            message=f"{self.ref.artifact_name} ({self.ref.channel}, {checksum})",
        )

    def check_directory(self, name: str, path: Path) -> CheckResult:
        """Check a directory is writable (or creatable)."""
        if verify_directory_writable(path):
            return CheckResult(name=name, passed=True, message=str(path))
        return CheckResult(
            name=name,
            passed=False,
            message=f"{path} is not writable",
            fix_command=f"Choose another location or fix permissions on {path}",
        )

    def check_patch_tools(self) -> Optional[CheckResult]:
        """Check the Xcode command line tools on macOS (None elsewhere)."""
        if self.target is None or not self.target.is_macos:
            return None
        missing = [tool for tool in MACOS_TOOLS if shutil.which(tool) is None]
        if missing:
            return CheckResult(
                name="Patch tools",
                passed=False,
                message=f"Missing: {', '.join(missing)}",
                fix_command="xcode-select --install",
            )
        return CheckResult(
            name="Patch tools", passed=True, message=", ".join(MACOS_TOOLS)
        )

    def check_runtime_dependencies(self) -> Optional[CheckResult]:
        """Check the release's runtime dependencies are on PATH."""
        if self.ref is None or not self.ref.depends_on:
            return None
        missing = check_dependencies(self.ref.depends_on)
        if missing:
            return CheckResult(
                name="Runtime dependencies",
                passed=False,
                message=f"Not on PATH: {', '.join(missing)}",
                fix_command=f"Install {', '.join(missing)} with your package manager",
            )
        return CheckResult(
            name="Runtime dependencies",
            passed=True,
            message=", ".join(self.ref.depends_on),
        )

    def check_installed(self) -> CheckResult:
        """Report what the prefix receipt says is installed."""
        try:
            state = read_receipt(InstallLayout(self.config.prefix))
        except ChoughKitError as e:
            return CheckResult(
                name="Installed",
                passed=False,
                message=str(e),
                fix_command="choughkit install",
            )
        if state is None:
            return CheckResult(name="Installed", passed=True, message="not installed")
        return CheckResult(
            name="Installed",
            passed=True,
            message=f"{state.version} ({state.target}) at {state.binary_path}",
        )

    def run_all_checks(self) -> List[CheckResult]:
        """Run all health checks. Order matters: later checks use earlier results."""
        results = [
            self.check_platform(),
            self.check_release(),
            self.check_directory("Install prefix", self.config.prefix),
            self.check_directory("Cache", self.config.cache_dir),
            self.check_patch_tools(),
            self.check_runtime_dependencies(),
            self.check_installed(),
        ]
        return [r for r in results if r is not None]


def run(args) -> int:
    """
    Run doctor command.

    Args:
        args: Parsed arguments from argparse

    Returns:
        Exit code (0 if no check failed; warnings do not fail)
    """
    quiet = args.quiet
    config = config_from_args(args)

    if not quiet:
        print("Running choughkit diagnostics...\n")
    logger.debug("Starting environment diagnostics")

    checks = EnvironmentChecker(config).run_all_checks()

    passed = 0
    failed = 0
    warnings = 0

    for result in checks:
        if result.passed:
            passed += 1
            if not quiet:
                safe_print(f"✅ {result.name}: {result.message}")
            logger.debug(f"Check passed: {result.name}")
            continue

        if result.name in OPTIONAL_CHECKS:
            warnings += 1
            if not quiet:
                safe_print(f"⚠️  {result.name}: {result.message}")
            logger.debug(f"Check warned: {result.name}")
        else:
            failed += 1
            safe_print(f"❌ {result.name}: {result.message}")
            logger.debug(f"Check failed: {result.name}")

        if result.fix_command and not quiet:
            print(f"   Fix: {result.fix_command}")

    if not quiet:
        print(f"\nSummary: {passed} passed, {failed} failed, {warnings} warnings")

    return 1 if failed else 0
