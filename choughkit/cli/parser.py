"""
choughkit CLI argument parser.

This module implements the command-line interface for choughkit using argparse.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from choughkit.core.verification import TrustLevel

# Get version from package
try:
    from importlib.metadata import version

    __version__ = version("choughkit")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)

TRUST_CHOICES = [level.value for level in TrustLevel]


class CLI:
    """choughkit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="choughkit",
            description="choughkit - install prebuilt chough ASR binaries",
            epilog='Use "choughkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"choughkit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./choughkit.yaml)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_resolve_command(subparsers)
        self._add_install_command(subparsers)
        self._add_uninstall_command(subparsers)
        self._add_verify_command(subparsers)
        self._add_patch_command(subparsers)
        self._add_formula_command(subparsers)
        self._add_doctor_command(subparsers)

        return parser

    def _add_channel_option(self, parser):
        parser.add_argument(
            "--channel",
            metavar="NAME",
            help="Release channel (default: from config, 'stable')",
        )

    def _add_prefix_option(self, parser):
        parser.add_argument(
            "--prefix",
            type=Path,
            metavar="DIR",
            help="Install prefix (default: from config, ~/.local)",
        )

    def _add_resolve_command(self, subparsers):
        """Add 'resolve' subcommand."""
        parser = subparsers.add_parser(
            "resolve",
            help="Show the artifact for a platform and version",
            description="Resolve the download URL, checksum and binary name "
            "without downloading anything",
        )
        parser.add_argument(
            "release_version",
            nargs="?",
            default="latest",
            metavar="VERSION",
            help="Version to resolve (default: latest)",
        )
        parser.add_argument("--os", dest="os_name", metavar="OS", help="Target OS")
        parser.add_argument("--arch", metavar="ARCH", help="Target architecture")
        self._add_channel_option(parser)
        parser.add_argument(
            "--json", action="store_true", help="Print the result as JSON"
        )

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Install chough",
            description="Download, verify, install, patch and smoke-test chough",
        )
        parser.add_argument(
            "release_version",
            nargs="?",
            default="latest",
            metavar="VERSION",
            help="Version to install (default: latest)",
        )
        self._add_prefix_option(parser)
        self._add_channel_option(parser)
        parser.add_argument(
            "--trust-level",
            choices=TRUST_CHOICES,
            help="Policy for releases without a checksum (default: warn)",
        )
        parser.add_argument(
            "--cache-dir", type=Path, metavar="DIR", help="Download cache directory"
        )
        parser.add_argument(
            "--staged",
            type=Path,
            metavar="PATH",
            help="Use an already downloaded artifact file or unpacked directory",
        )

    def _add_uninstall_command(self, subparsers):
        """Add 'uninstall' subcommand."""
        parser = subparsers.add_parser(
            "uninstall",
            help="Remove an installed chough",
            description="Remove the files recorded in the prefix install receipt",
        )
        self._add_prefix_option(parser)

    def _add_verify_command(self, subparsers):
        """Add 'verify' subcommand."""
        parser = subparsers.add_parser(
            "verify",
            help="Smoke-test an installed chough",
            description="Run 'chough --version' and check the reported version",
        )
        self._add_prefix_option(parser)
        parser.add_argument(
            "--binary",
            type=Path,
            metavar="PATH",
            help="Binary to test (default: from the prefix receipt)",
        )
        parser.add_argument(
            "--expect",
            metavar="VERSION",
            help="Expected version (default: from the prefix receipt)",
        )

    def _add_patch_command(self, subparsers):
        """Add 'patch' subcommand."""
        parser = subparsers.add_parser(
            "patch",
            help="Fix dynamic library load paths of a binary",
            description="Rewrite @loader_path library references to @rpath and "
            "add the library directory as a search path (macOS only)",
        )
        parser.add_argument("binary", type=Path, help="Binary to patch")
        parser.add_argument(
            "--lib-dir",
            type=Path,
            metavar="DIR",
            help="Library directory (default: ../lib next to the binary)",
        )
        parser.add_argument(
            "--rpath",
            type=Path,
            metavar="DIR",
            help="Search path to record (default: lib dir, symlinks resolved)",
        )
        parser.add_argument(
            "--no-codesign",
            action="store_true",
            help="Do not re-sign the binary after patching",
        )

    def _add_formula_command(self, subparsers):
        """Add 'formula' subcommand."""
        parser = subparsers.add_parser(
            "formula",
            help="Generate a Homebrew formula",
            description="Render a Homebrew formula from the release table",
        )
        parser.add_argument(
            "release_version",
            nargs="?",
            default="latest",
            metavar="VERSION",
            help="Version to render (default: latest)",
        )
        self._add_channel_option(parser)
        parser.add_argument(
            "--output",
            "-o",
            type=Path,
            metavar="PATH",
            help="Write to PATH instead of stdout",
        )

    def _add_doctor_command(self, subparsers):
        """Add 'doctor' subcommand."""
        parser = subparsers.add_parser(
            "doctor",
            help="Diagnose environment and configuration",
            description="Check platform support, directories, tools and runtime "
            "dependencies",
        )
        self._add_prefix_option(parser)
        self._add_channel_option(parser)

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        # Configure logging
        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        # Command module mapping
        command_map = {
            "resolve": "choughkit.cli.commands.resolve",
            "install": "choughkit.cli.commands.install",
            "uninstall": "choughkit.cli.commands.uninstall",
            "verify": "choughkit.cli.commands.verify",
            "patch": "choughkit.cli.commands.patch",
            "formula": "choughkit.cli.commands.formula",
            "doctor": "choughkit.cli.commands.doctor",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        try:
            # Dynamic import of command module
            import importlib

            module = importlib.import_module(module_name)

            # Call run() function in module
            if not hasattr(module, "run"):
                logger.error(f"Command module {module_name} has no run() function")
                return 1

            return module.run(args)

        except ImportError as e:
            logger.error(f"Failed to load command module: {e}")
            if args.verbose:
                import traceback

                traceback.print_exc()
            return 1


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
