"""
Install pipeline: resolve -> install -> patch -> smoke test.

Each step depends on the previous one, and the order never changes:

1. Resolve the ArtifactRef for the (detected or given) target
2. Install binary and libraries into the layout (under the prefix lock)
3. Patch load paths with the target's LoadPathPatcher (no-op on Linux)
4. Drop files a previous install left behind, write the receipt
5. Run the smoke test; a failure fails the install

Example:
    >>> pipeline = InstallPipeline(load_config())
    >>> state = pipeline.run("0.1.4")
    >>> state.binary_path
    PosixPath('/home/user/.local/bin/chough')
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from choughkit.config.settings import InstallerConfig
from choughkit.core.download import DownloadProgress
from choughkit.core.locking import LockManager
from choughkit.core.platform import TargetDescriptor, detect_target
from choughkit.install.dependencies import warn_missing
from choughkit.install.installer import Installer
from choughkit.install.layout import InstallLayout, InstalledState
from choughkit.install.patcher import LoadPathPatcher, get_patcher
from choughkit.install.receipt import ReceiptError, read_receipt, write_receipt
from choughkit.install.smoke import require_version
from choughkit.release.resolver import ArtifactRef, load_table, resolve_target
from choughkit.release.table import ReleaseTable

logger = logging.getLogger(__name__)

PatcherFactory = Callable[..., LoadPathPatcher]


class InstallPipeline:
    """
    Runs a complete chough install or uninstall for one prefix.

    Attributes:
        config: Effective configuration
        layout: Destination layout (default: derived from config.prefix)
        table: Release table used for resolution
    """

    def __init__(
        self,
        config: Optional[InstallerConfig] = None,
        layout: Optional[InstallLayout] = None,
        table: Optional[ReleaseTable] = None,
        installer: Optional[Installer] = None,
        patcher_factory: PatcherFactory = get_patcher,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
        lock_timeout: int = 300,
    ):
        self.config = config or InstallerConfig()
        self.layout = layout or InstallLayout(self.config.prefix)
        self.table = table or load_table(self.config.release_table)
        self.installer = installer or Installer(
            cache_dir=self.config.cache_dir,
            trust_level=self.config.trust_level,
            timeout=self.config.download.timeout,
            max_retries=self.config.download.max_retries,
            progress_callback=progress_callback,
        )
        self.patcher_factory = patcher_factory
        self.lock_manager = LockManager(self.installer.cache_dir / "lock")
        self.lock_timeout = lock_timeout

    def resolve(
        self,
        version: str,
        target: Optional[TargetDescriptor] = None,
        channel: Optional[str] = None,
    ) -> ArtifactRef:
        """Resolve the artifact for target (default: this host)."""
        target = target or detect_target()
        return resolve_target(
            target, version, channel=channel or self.config.channel, table=self.table
        )

    def run(
        self,
        version: str,
        target: Optional[TargetDescriptor] = None,
        channel: Optional[str] = None,
        staged_artifact: Optional[Path] = None,
    ) -> InstalledState:
        """
        Install chough.

        Args:
            version: Version to install, or 'latest'
            target: Target platform (default: detected host)
            channel: Release channel (default: config.channel)
            staged_artifact: Artifact file or unpacked directory the host
                already fetched

        Returns:
            InstalledState of the new install

        Raises:
            ChoughKitError: Subclass describing the failed step
        """
        ref = self.resolve(version, target, channel)
        logger.info(f"Resolved {ref.artifact_id}: {ref.url}")

        with self.lock_manager.install_lock(self.layout.prefix, self.lock_timeout):
            previous = self._previous_state()
            state = self.installer.install(ref, self.layout, staged_artifact)

            if state.libraries:
                patcher = self.patcher_factory(
                    ref.target, codesign=self.config.patch.codesign
                )
                state.load_paths_patched = patcher.patch_load_paths(
                    state.binary_path,
                    self.layout.lib_dir,
                    self.layout.resolved_rpath_dir(),
                )
            else:
                logger.debug(f"{ref.artifact_id} ships no shared libraries; not patching")

            self._remove_stale(previous, state)
            write_receipt(self.layout, state)

        warn_missing(ref.depends_on, ref.command_name)

        require_version(state.binary_path, ref.version)

        logger.info(f"{ref.command_name} {ref.version} installed to {self.layout.prefix}")
        return state

    def uninstall(self) -> Optional[InstalledState]:
        """
        Remove what the last install recorded in the prefix receipt.

        Returns:
            The removed InstalledState, or None if nothing was installed

        Raises:
            ReceiptError: If the receipt is corrupt
        """
        with self.lock_manager.install_lock(self.layout.prefix, self.lock_timeout):
            state = read_receipt(self.layout)
            if state is None:
                logger.info(f"Nothing installed in {self.layout.prefix}")
                return None

            for path in [state.binary_path, *state.libraries]:
                if path.exists() or path.is_symlink():
                    path.unlink()
                    logger.debug(f"Removed {path}")
                else:
                    logger.debug(f"Already gone: {path}")
            self.layout.receipt_path().unlink()

        logger.info(
            f"Uninstalled {state.binary_path.name} {state.version} from {self.layout.prefix}"
        )
        return state

    def _previous_state(self) -> Optional[InstalledState]:
        try:
            return read_receipt(self.layout)
        except ReceiptError as e:
            logger.warning(f"{e}; files from the previous install will be left in place")
            return None

    def _remove_stale(
        self, previous: Optional[InstalledState], current: InstalledState
    ) -> None:
        if previous is None:
            return
        keep = {current.binary_path, *current.libraries}
        for path in [previous.binary_path, *previous.libraries]:
            if path in keep or not path.exists():
                continue
            path.unlink()
            logger.info(f"Removed {path} left by {previous.version}")


__all__ = ["InstallPipeline"]
