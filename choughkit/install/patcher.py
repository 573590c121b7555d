"""
Dynamic-library load path patching.

macOS chough builds reference their bundled dylibs as '@loader_path/<lib>',
which only resolves while the dylibs sit next to the binary. After install
they live in lib/, so each such reference is rewritten to '@rpath/<lib>' and
the library directory is added as an LC_RPATH entry.

Linux builds need none of this, so the capability has a no-op implementation
and callers get the right one from get_patcher() instead of checking the OS.

The Mach-O implementation drives the Xcode command line tools:
- otool -L             list load commands (install names)
- otool -l             list LC_RPATH entries
- install_name_tool    -change / -add_rpath
- codesign             re-sign ad hoc after modification (arm64 refuses
                       binaries whose signature no longer matches)
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from choughkit.core.exceptions import LibraryPatchError
from choughkit.core.platform import TargetDescriptor

logger = logging.getLogger(__name__)

LOADER_PATH_PREFIX = "@loader_path/"
RPATH_PREFIX = "@rpath/"
TOOL_TIMEOUT = 60


class LoadPathPatcher(ABC):
    """
    Abstract interface for rewriting an installed binary's library references.
    """

    @abstractmethod
    def patch_load_paths(
        self, binary_path: Path, library_dir: Path, rpath_dir: Optional[Path] = None
    ) -> bool:
        """
        Make binary_path find the libraries installed in library_dir.

        Args:
            binary_path: Installed executable
            library_dir: Directory holding the co-installed libraries
            rpath_dir: Search path to record (default: library_dir resolved)

        Returns:
            True if the binary was modified, False if it already was correct

        Raises:
            LibraryPatchError: If the binary cannot be inspected or rewritten
        """
        pass


class NoOpLoadPathPatcher(LoadPathPatcher):
    """Patcher for platforms whose binaries need no load path changes."""

    def patch_load_paths(
        self, binary_path: Path, library_dir: Path, rpath_dir: Optional[Path] = None
    ) -> bool:
        logger.debug(f"No load path patching needed for {binary_path}")
        return False


class MachOLoadPathPatcher(LoadPathPatcher):
    """
    Rewrites '@loader_path/<lib>' references to '@rpath/<lib>' in a Mach-O binary.

    Example:
        >>> patcher = MachOLoadPathPatcher()
        >>> patcher.patch_load_paths(Path("/opt/chough/bin/chough"),
        ...                          Path("/opt/chough/lib"))
        True
    """

    def __init__(
        self,
        codesign: bool = True,
        otool: str = "otool",
        install_name_tool: str = "install_name_tool",
        codesign_tool: str = "codesign",
    ):
        """
        Initialize patcher.

        Args:
            codesign: Re-sign the binary ad hoc after modifying it
            otool: otool executable
            install_name_tool: install_name_tool executable
            codesign_tool: codesign executable
        """
        self.codesign = codesign
        self.otool = otool
        self.install_name_tool = install_name_tool
        self.codesign_tool = codesign_tool

    def patch_load_paths(
        self, binary_path: Path, library_dir: Path, rpath_dir: Optional[Path] = None
    ) -> bool:
        binary_path = Path(binary_path)
        library_dir = Path(library_dir)
        if not binary_path.is_file():
            raise LibraryPatchError(f"Binary not found: {binary_path}")

        rpath = str(Path(rpath_dir) if rpath_dir else library_dir.resolve())
        install_names = self.list_install_names(binary_path)
        changed = False

        for lib in self._library_names(library_dir):
            old = f"{LOADER_PATH_PREFIX}{lib}"
            if old not in install_names:
                logger.debug(f"{binary_path.name} does not reference {old}, skipping")
                continue
            new = f"{RPATH_PREFIX}{lib}"
            self._run([self.install_name_tool, "-change", old, new, str(binary_path)])
            logger.info(f"Rewrote {old} -> {new}")
            changed = True

        if rpath in self.list_rpaths(binary_path):
            logger.debug(f"{binary_path.name} already has rpath {rpath}")
        else:
            self._run([self.install_name_tool, "-add_rpath", rpath, str(binary_path)])
            logger.info(f"Added rpath {rpath} to {binary_path.name}")
            changed = True

        if changed and self.codesign:
            self._run(
                [self.codesign_tool, "--force", "--sign", "-", str(binary_path)]
            )
            logger.debug(f"Re-signed {binary_path} (ad hoc)")

        return changed

    def list_install_names(self, binary_path: Path) -> List[str]:
        """
        Install names of the libraries a binary links against.

        Raises:
            LibraryPatchError: If otool fails or the output is not a load list
        """
        output = self._run([self.otool, "-L", str(binary_path)])
        lines = output.splitlines()
        if not lines or not lines[0].rstrip().endswith(":"):
            raise LibraryPatchError(
                f"Unexpected otool -L output for {binary_path}: {output[:200]!r}"
            )
        return parse_install_names(lines[1:])

    def list_rpaths(self, binary_path: Path) -> List[str]:
        """
        LC_RPATH entries of a binary.

        Raises:
            LibraryPatchError: If otool fails
        """
        return parse_rpaths(self._run([self.otool, "-l", str(binary_path)]))

    def _library_names(self, library_dir: Path) -> List[str]:
        if not library_dir.is_dir():
            return []
        return sorted(p.name for p in library_dir.glob("*.dylib"))

    def _run(self, cmd: List[str]) -> str:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=TOOL_TIMEOUT
            )
        except FileNotFoundError as e:
            raise LibraryPatchError(
                f"{cmd[0]} not found. Install the Xcode command line tools "
                "(xcode-select --install)."
            ) from e
        except subprocess.TimeoutExpired as e:
            raise LibraryPatchError(f"{cmd[0]} timed out after {TOOL_TIMEOUT}s") from e

        if result.returncode != 0:
            raise LibraryPatchError(
                f"{' '.join(cmd)} failed (exit {result.returncode}): "
                f"{(result.stderr or result.stdout).strip()}"
            )
        return result.stdout


def parse_install_names(lines: List[str]) -> List[str]:
    """
    Parse the body of `otool -L` output.

    Example:
        >>> parse_install_names([
        ...     "\\t@loader_path/libonnxruntime.dylib (compatibility version 0.0.0, "
        ...     "current version 1.17.1)"])
        ['@loader_path/libonnxruntime.dylib']
    """
    names = []
    for line in lines:
        entry = line.strip()
        if not entry:
            continue
        names.append(entry.split(" (compatibility version", 1)[0].strip())
    return names


def parse_rpaths(output: str) -> List[str]:
    """
    Extract LC_RPATH paths from `otool -l` output.

    Each entry looks like:
                  cmd LC_RPATH
              cmdsize 32
                 path /opt/chough/lib (offset 12)
    """
    rpaths = []
    in_rpath = False
    for line in output.splitlines():
        fields = line.split(None, 1)
        if len(fields) < 2:
            continue
        key, value = fields
        if key == "cmd":
            in_rpath = value.strip() == "LC_RPATH"
        elif key == "path" and in_rpath:
            rpaths.append(value.rsplit(" (offset", 1)[0].strip())
            in_rpath = False
    return rpaths


def get_patcher(target: TargetDescriptor, codesign: bool = True) -> LoadPathPatcher:
    """
    Get the load path patcher for a target.

    Example:
        >>> get_patcher(TargetDescriptor("linux", "x86_64"))
        <choughkit.install.patcher.NoOpLoadPathPatcher object at ...>
    """
    if target.is_macos:
        return MachOLoadPathPatcher(codesign=codesign)
    return NoOpLoadPathPatcher()


__all__ = [
    "LoadPathPatcher",
    "NoOpLoadPathPatcher",
    "MachOLoadPathPatcher",
    "parse_install_names",
    "parse_rpaths",
    "get_patcher",
]
