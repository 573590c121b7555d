"""
Homebrew formula renderer.

Renders one formula for a (channel, version) of the release table, so the
table stays the single place where URLs and checksums live. Templates are
Jinja2 files in `choughkit/formula/templates`.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from choughkit.core.exceptions import ChoughKitError, ReleaseTableError
from choughkit.core.filesystem import atomic_write, is_archive
from choughkit.core.platform import SUPPORTED_OS, TargetDescriptor, get_supported_targets
from choughkit.release.resolver import default_table
from choughkit.release.table import DEFAULT_CHANNEL, ReleaseEntry, ReleaseTable

logger = logging.getLogger(__name__)

FORMULA_TEMPLATE = "formula.rb.j2"

# Homebrew interpolates the formula's own version into the URL.
RUBY_VERSION = "#{version}"

_RUBY_OS = {"macos": "mac", "linux": "linux"}
_RUBY_CPU = {"arm64": "arm", "x86_64": "intel"}


class FormulaRenderError(ChoughKitError):
    """Raised when a formula cannot be rendered or written."""

    pass


def formula_class_name(tool: str) -> str:
    """
    Homebrew class name for a tool name.

    Example:
        >>> formula_class_name("chough-cli")
        'ChoughCli'
    """
    return "".join(part.capitalize() for part in re.split(r"[-_.]", tool) if part)


class FormulaRenderer:
    """
    Render Homebrew formulas from a release table.

    Example:
        >>> renderer = FormulaRenderer()
        >>> print(renderer.render("0.1.4"))
        class Chough < Formula
        ...
    """

    def __init__(
        self, table: Optional[ReleaseTable] = None, template_dir: Optional[Path] = None
    ):
        """
        Initialize renderer.

        Args:
            table: Release table (default: the embedded one)
            template_dir: Alternative template directory
        """
        self.table = table or default_table()
        self.template_dir = template_dir
        self._jinja_env = self._init_jinja2()

    def _init_jinja2(self):
        from jinja2 import Environment, FileSystemLoader

        if self.template_dir:
            template_dir = Path(self.template_dir)
        else:
            template_dir = Path(__file__).parent / "templates"

        if not template_dir.exists():
            raise FormulaRenderError(f"Template directory not found: {template_dir}")

        jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        logger.debug(f"Jinja2 templates initialized from: {template_dir}")
        return jinja_env

    def render(self, version: str, channel: str = DEFAULT_CHANNEL) -> str:
        """
        Render the formula for one release.

        Raises:
            ReleaseTableError: If the version is not in the channel
            FormulaRenderError: If template rendering fails
        """
        release = self.table.find_release(version, channel)
        if release is None:
            raise ReleaseTableError(
                f"Version {version} is not published in channel '{channel}' "
                f"(known: {', '.join(self.table.versions(channel))})"
            )

        context = self.build_context(release)
        try:
            template = self._jinja_env.get_template(FORMULA_TEMPLATE)
            content = template.render(**context)
        except Exception as e:
            raise FormulaRenderError(
                f"Failed to render template {FORMULA_TEMPLATE}: {e}"
            ) from e

        return content if content.endswith("\n") else content + "\n"

    def write(
        self, path: Path, version: str, channel: str = DEFAULT_CHANNEL
    ) -> Path:
        """Render a formula and write it atomically to path."""
        content = self.render(version, channel)
        path = Path(path)
        try:
            atomic_write(path, content)
        except OSError as e:
            raise FormulaRenderError(f"Failed to write formula {path}: {e}") from e
        logger.info(f"Generated formula: {path}")
        return path

    def build_context(self, release: ReleaseEntry) -> Dict[str, Any]:
        """Template variables for a release."""
        table = self.table
        scheme = release.scheme
        supported = [t for t in get_supported_targets() if release.supports(t)]

        branches = [
            {
                "condition": f"OS.{_RUBY_OS[t.os]}? && Hardware::CPU.{_RUBY_CPU[t.arch]}?",
                "binary": scheme.binary.render(t, release.version),
            }
            for t in supported
        ]
        if len({b["binary"] for b in branches}) == 1:
            branches = branches[:1]

        artifact_names = {
            scheme.artifact.render(t, release.version) for t in supported
        }

        return {
            "class_name": formula_class_name(table.tool),
            "desc": release.desc or table.desc,
            "homepage": table.homepage,
            "version": release.version,
            "license": table.license,
            "depends_on": list(release.depends_on),
            "command": table.command,
            "os_blocks": self._os_blocks(release),
            "install_branches": branches,
            "install_libraries": any(is_archive(name) for name in artifact_names),
        }

    def _os_blocks(self, release: ReleaseEntry) -> List[Dict[str, Any]]:
        blocks = []
        for os_name in SUPPORTED_OS:
            # arm64 first: it is the `if Hardware::CPU.arm?` branch
            cells = [
                self._cell(release, TargetDescriptor(os_name, arch))
                for arch in ("arm64", "x86_64")
            ]
            if all(cell["url"] is None for cell in cells):
                continue
            blocks.append({"os": os_name, "cells": cells})
        return blocks

    def _cell(self, release: ReleaseEntry, target: TargetDescriptor) -> Dict[str, Any]:
        if release.supports(target):
            artifact = release.scheme.artifact.render(target, RUBY_VERSION)
            return {
                "url": f"{self.table.base_url}/v{RUBY_VERSION}/{artifact}",
                "sha256": release.checksum_for(target),
                "odie": None,
            }
        reason = release.unsupported.get(target.platform_key) or (
            f"{self.table.tool} {release.version} has no build for {target.platform_key}."
        )
        return {"url": None, "sha256": None, "odie": reason}


__all__ = ["FormulaRenderer", "FormulaRenderError", "formula_class_name"]
