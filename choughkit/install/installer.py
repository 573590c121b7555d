"""
Archive/binary installer.

This module takes a resolved ArtifactRef and puts the chough executable and
its shared libraries into an InstallLayout:

1. Fetch the artifact (or use one the host already staged)
2. Verify its checksum, or apply the trust level if the release has none
3. Unpack it into a fresh staging directory
4. Select the binary by its exact expected name
5. Copy it to bin/ as the canonical command name, mode 0755
6. Copy the platform's shared libraries to lib/

Every copy replaces the destination atomically, so running the same install
twice leaves the same files behind.

Example:
    >>> installer = Installer(cache_dir=Path("~/.cache/choughkit").expanduser())
    >>> ref = resolve("linux", "x86_64", "0.1.4")
    >>> state = installer.install(ref, InstallLayout(Path("/usr/local")))
    >>> state.binary_path
    PosixPath('/usr/local/bin/chough')
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from choughkit.core.directory import ensure_cache_structure
from choughkit.core.download import DownloadProgress, download_file
from choughkit.core.exceptions import ArtifactNotFound, InstallError
from choughkit.core.filesystem import (
    FilesystemError,
    archive_root,
    extract_archive,
    install_file,
    safe_rmtree,
)
from choughkit.core.verification import TrustLevel, accept_unchecked, ensure_integrity
from choughkit.install.layout import InstallLayout, InstalledState
from choughkit.release.resolver import ArtifactRef

logger = logging.getLogger(__name__)

BINARY_MODE = 0o755
LIBRARY_MODE = 0o644


def is_shared_library(name: str, suffix: str) -> bool:
    """
    Check if a file name is a shared library for the given suffix.

    Versioned sonames ('libonnxruntime.so.1.17.1') count as '.so' libraries.
    """
    if name.endswith(suffix):
        return True
    return suffix == ".so" and ".so." in name


class Installer:
    """
    Installs a resolved chough artifact into an install layout.

    Attributes:
        cache_dir: Root of the download/staging cache
        trust_level: Policy for artifacts published without a checksum
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        trust_level: TrustLevel = TrustLevel.WARN,
        timeout: int = 30,
        max_retries: int = 3,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ):
        """
        Initialize installer.

        Args:
            cache_dir: Cache root (default: $XDG_CACHE_HOME/choughkit)
            trust_level: Policy for unchecked artifacts
            timeout: HTTP timeout in seconds
            max_retries: Download attempts before giving up
            progress_callback: Optional download progress callback
        """
        paths = ensure_cache_structure(cache_dir)
        self.cache_dir = paths["root"]
        self.downloads_dir = paths["downloads"]
        self.staging_dir = paths["staging"]
        self.trust_level = TrustLevel.parse(trust_level)
        self.timeout = timeout
        self.max_retries = max_retries
        self.progress_callback = progress_callback

    def install(
        self,
        ref: ArtifactRef,
        layout: InstallLayout,
        staged_artifact: Optional[Path] = None,
    ) -> InstalledState:
        """
        Install an artifact.

        Args:
            ref: Resolved artifact
            layout: Destination layout
            staged_artifact: Artifact already fetched by the host. Either the
                downloaded file itself (its name must equal ref.artifact_name)
                or a directory holding its unpacked contents.

        Returns:
            InstalledState describing the installed files

        Raises:
            DownloadError: If the artifact cannot be fetched
            ChecksumMismatch: If the artifact fails verification
            UntrustedArtifact: If the artifact is unchecked and trust is strict
            ArtifactNotFound: If the expected binary is not in the artifact
            InstallError: If copying into the layout fails
        """
        logger.info(
            f"Installing {ref.command_name} {ref.version} for {ref.target.platform_key}"
        )

        if staged_artifact is not None and Path(staged_artifact).is_dir():
            root = Path(staged_artifact)
            verified = self._accept_staged_directory(ref, root)
            return self._install_from(ref, root, layout, verified)

        artifact_path, verified = self.fetch(ref, staged_artifact)
        staging = self.staging_dir / ref.artifact_id
        try:
            try:
                root = self._unpack(ref, artifact_path, staging)
            except FilesystemError as e:
                raise InstallError(f"Failed to unpack {ref.artifact_name}: {e}") from e
            return self._install_from(ref, root, layout, verified)
        finally:
            safe_rmtree(staging, require_prefix=self.staging_dir)

    def fetch(
        self, ref: ArtifactRef, staged_artifact: Optional[Path] = None
    ) -> Tuple[Path, bool]:
        """
        Get the artifact file onto disk and check its integrity.

        Returns:
            (artifact path, whether the checksum was verified)
        """
        if staged_artifact is not None:
            path = Path(staged_artifact)
            if not path.is_file() or path.name != ref.artifact_name:
                raise ArtifactNotFound(
                    ref.artifact_name,
                    path.parent,
                    candidates=[path.name] if path.exists() else None,
                )
            logger.debug(f"Using staged artifact {path}")
            return path, ensure_integrity(path, ref.sha256, self.trust_level)

        # Refuse before touching the network when the policy forbids it.
        if ref.unchecked:
            accept_unchecked(ref.artifact_name, self.trust_level)

        path = download_file(
            url=ref.url,
            destination=self.downloads_dir / ref.artifact_name,
            expected_sha256=ref.sha256,
            progress_callback=self.progress_callback,
            timeout=self.timeout,
            max_retries=self.max_retries,
        )
        return path, not ref.unchecked

    def locate_binary(self, ref: ArtifactRef, root: Path) -> Path:
        """
        Find the binary by its exact expected name.

        Other platforms' binaries staged alongside it are never considered.

        Raises:
            ArtifactNotFound: If root has no file with that exact name
        """
        candidate = root / ref.binary_name
        if candidate.is_file():
            return candidate
        staged = [p.name for p in root.iterdir()] if root.is_dir() else []
        raise ArtifactNotFound(ref.binary_name, root, candidates=staged)

    def find_libraries(self, ref: ArtifactRef, root: Path) -> List[Path]:
        """Shared libraries at the top of the staging root, sorted by name."""
        return sorted(
            p
            for p in root.iterdir()
            if p.is_file() and is_shared_library(p.name, ref.library_suffix)
        )

    def _accept_staged_directory(self, ref: ArtifactRef, root: Path) -> bool:
        # The host fetched and unpacked the artifact, so any published
        # checksum was its to check.
        if ref.unchecked:
            return accept_unchecked(ref.artifact_name, self.trust_level)
        logger.info(
            f"Using pre-staged directory {root}; checksum of {ref.artifact_name} "
            "is verified by the host that staged it"
        )
        return False

    def _unpack(self, ref: ArtifactRef, artifact_path: Path, staging: Path) -> Path:
        if staging.exists():
            safe_rmtree(staging, require_prefix=self.staging_dir)
        staging.mkdir(parents=True)

        if ref.is_archive:
            logger.debug(f"Extracting {artifact_path.name} to {staging}")
            extract_archive(artifact_path, staging)
            return archive_root(staging)

        install_file(artifact_path, staging / ref.artifact_name, BINARY_MODE)
        return staging

    def _install_from(
        self, ref: ArtifactRef, root: Path, layout: InstallLayout, verified: bool
    ) -> InstalledState:
        binary_src = self.locate_binary(ref, root)
        libraries = self.find_libraries(ref, root)

        try:
            binary_path = install_file(
                binary_src, layout.bin_dir / ref.command_name, BINARY_MODE
            )
            logger.info(f"Installed {binary_src.name} as {binary_path}")

            installed_libs = []
            for lib in libraries:
                installed_libs.append(
                    install_file(lib, layout.lib_dir / lib.name, LIBRARY_MODE)
                )
            if installed_libs:
                logger.info(
                    f"Installed {len(installed_libs)} shared libraries to {layout.lib_dir}"
                )
        except FilesystemError as e:
            raise InstallError(f"Failed to install {ref.artifact_id}: {e}") from e

        return InstalledState(
            binary_path=binary_path,
            libraries=installed_libs,
            target=ref.target,
            version=ref.version,
            channel=ref.channel,
            source_url=ref.url,
            checksum_verified=verified,
        )


__all__ = ["Installer", "is_shared_library", "BINARY_MODE", "LIBRARY_MODE"]
