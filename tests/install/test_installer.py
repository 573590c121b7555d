"""
Tests for the archive/binary installer.
"""

import hashlib
import io
import stat
import tarfile
from unittest.mock import patch

import pytest
import responses

from choughkit.core.exceptions import (
    ArtifactNotFound,
    ChecksumMismatch,
    InstallError,
    UntrustedArtifact,
)
from choughkit.core.platform import TargetDescriptor
from choughkit.core.verification import TrustLevel
from choughkit.install.installer import Installer, is_shared_library
from choughkit.release.resolver import resolve, resolve_target
from choughkit.release.table import ReleaseTable
from tests.fixtures.artifacts import LINUX_LIBS, MACOS_LIBS

LINUX_X86_64 = TargetDescriptor("linux", "x86_64")


def table_with_checksum(sha256):
    """Table publishing a single checksummed Linux x86_64 0.1.4 tarball."""
    return ReleaseTable.from_dict(
        {
            "tool": "chough",
            "base_url": "https://github.com/hyperpuncher/chough/releases/download",
            "schemes": {
                "tarball": {
                    "artifact": "chough_v{version}_{os}_{arch}.tar.gz",
                    "binary": {
                        "template": "chough-{os}-{arch}",
                        "arch": {"x86_64": "amd64"},
                    },
                }
            },
            "channels": {
                "stable": [
                    {
                        "version": "0.1.4",
                        "scheme": "tarball",
                        "platforms": {"linux-x86_64": {"sha256": sha256}},
                    }
                ]
            },
        }
    )


def file_mode(path):
    return stat.S_IMODE(path.stat().st_mode)


class TestIsSharedLibrary:
    """Test shared library name matching."""

    @pytest.mark.parametrize(
        "name,suffix,expected",
        [
            ("libonnxruntime.1.17.1.dylib", ".dylib", True),
            ("libsherpa-onnx-c-api.so", ".so", True),
            ("libonnxruntime.so.1.17.1", ".so", True),
            ("libonnxruntime.so.1.17.1", ".dylib", False),
            ("chough-linux-amd64", ".so", False),
            ("README.md", ".dylib", False),
        ],
    )
    def test_names(self, name, suffix, expected):
        """Test suffix and versioned soname handling."""
        assert is_shared_library(name, suffix) is expected


class TestInstallFromStagedDirectory:
    """Test installs from a directory the host already unpacked."""

    def test_selects_exact_arch_binary(self, cache_dir, layout, staged_directory):
        """Test the arm64 binary is chosen although amd64 sits next to it."""
        ref = resolve("macos", "arm64", "0.1.4")

        state = Installer(cache_dir).install(ref, layout, staged_directory)

        assert state.binary_path == layout.bin_dir / "chough"
        assert state.binary_path.read_bytes() == (
            staged_directory / "chough-darwin-arm64"
        ).read_bytes()
        assert file_mode(state.binary_path) == 0o755

    def test_selects_intel_binary(self, cache_dir, layout, staged_directory):
        """Test x86_64 picks the amd64 binary from the same directory."""
        ref = resolve("macos", "x86_64", "0.1.4")

        state = Installer(cache_dir).install(ref, layout, staged_directory)

        assert state.binary_path.read_bytes() == (
            staged_directory / "chough-darwin-amd64"
        ).read_bytes()

    def test_installs_dylibs(self, cache_dir, layout, staged_directory):
        """Test dylibs are copied to lib/ and recorded."""
        ref = resolve("macos", "arm64", "0.1.4")

        state = Installer(cache_dir).install(ref, layout, staged_directory)

        assert sorted(p.name for p in state.libraries) == sorted(MACOS_LIBS)
        for lib in MACOS_LIBS:
            assert (layout.lib_dir / lib).read_text() == f"dylib {lib}"
            assert file_mode(layout.lib_dir / lib) == 0o644

    def test_staged_directory_not_marked_verified(
        self, cache_dir, layout, staged_directory
    ):
        """Test checksum verification is left to the host that staged it."""
        ref = resolve("macos", "arm64", "0.1.4")

        state = Installer(cache_dir, TrustLevel.STRICT).install(
            ref, layout, staged_directory
        )

        assert state.checksum_verified is False
        assert state.source_url == ref.url

    def test_idempotent(self, cache_dir, layout, staged_directory):
        """Test installing twice leaves identical files."""
        ref = resolve("macos", "arm64", "0.1.4")
        installer = Installer(cache_dir)

        first = installer.install(ref, layout, staged_directory)
        before = {
            p.relative_to(layout.prefix): p.read_bytes()
            for p in layout.prefix.rglob("*")
            if p.is_file()
        }
        second = installer.install(ref, layout, staged_directory)
        after = {
            p.relative_to(layout.prefix): p.read_bytes()
            for p in layout.prefix.rglob("*")
            if p.is_file()
        }

        assert first.binary_path == second.binary_path
        assert first.libraries == second.libraries
        assert before == after

    def test_missing_binary(self, cache_dir, layout, staged_directory):
        """Test a directory without the expected binary is rejected."""
        ref = resolve("linux", "x86_64", "0.1.4")

        with pytest.raises(ArtifactNotFound, match="chough-linux-amd64") as exc_info:
            Installer(cache_dir).install(ref, layout, staged_directory)

        assert "chough-darwin-arm64" in exc_info.value.candidates
        assert not (layout.bin_dir / "chough").exists()

    def test_unchecked_strict_refused(self, cache_dir, layout, tmp_path, fake_chough):
        """Test strict trust refuses an unchecked staged directory."""
        staged = tmp_path / "linux-staged"
        fake_chough(staged / "chough-linux-amd64", "0.1.4", "amd64")
        ref = resolve("linux", "x86_64", "0.1.4")

        with pytest.raises(UntrustedArtifact):
            Installer(cache_dir, TrustLevel.STRICT).install(ref, layout, staged)


class TestInstallFromArchive:
    """Test installs from a downloaded or staged archive file."""

    def test_linux_tarball(self, cache_dir, layout, linux_tarball):
        """Test a wrapped Linux tarball installs binary and sonames."""
        ref = resolve("linux", "x86_64", "0.1.4")

        state = Installer(cache_dir).install(ref, layout, linux_tarball)

        assert state.binary_path == layout.bin_dir / "chough"
        assert b"(amd64)" in state.binary_path.read_bytes()
        assert file_mode(state.binary_path) == 0o755
        assert sorted(p.name for p in state.libraries) == sorted(LINUX_LIBS)
        assert state.checksum_verified is False
        assert not (layout.bin_dir / "chough-linux-arm64").exists()

    def test_staging_cleaned_up(self, cache_dir, layout, linux_tarball):
        """Test the staging directory is removed after install."""
        ref = resolve("linux", "x86_64", "0.1.4")

        Installer(cache_dir).install(ref, layout, linux_tarball)

        assert list((cache_dir / "staging").iterdir()) == []

    def test_macos_tarball_ignores_other_files(self, cache_dir, layout, macos_tarball):
        """Test README and the other arch binary are not installed."""
        ref = resolve("macos", "arm64", "0.1.4")

        with patch(
            "choughkit.install.installer.ensure_integrity", return_value=True
        ) as integrity:
            state = Installer(cache_dir).install(ref, layout, macos_tarball)

        integrity.assert_called_once_with(
            macos_tarball, ref.sha256, TrustLevel.WARN
        )
        assert state.checksum_verified is True
        assert b"(arm64)" in state.binary_path.read_bytes()
        assert sorted(p.name for p in layout.lib_dir.iterdir()) == sorted(MACOS_LIBS)
        assert [p.name for p in layout.bin_dir.iterdir()] == ["chough"]

    def test_checksum_verified(self, cache_dir, layout, linux_tarball):
        """Test a staged archive matching the published checksum."""
        digest = hashlib.sha256(linux_tarball.read_bytes()).hexdigest()
        ref = resolve_target(LINUX_X86_64, "0.1.4", table=table_with_checksum(digest))

        state = Installer(cache_dir, TrustLevel.STRICT).install(
            ref, layout, linux_tarball
        )

        assert state.checksum_verified is True

    def test_checksum_mismatch(self, cache_dir, layout, linux_tarball):
        """Test a tampered archive installs nothing."""
        ref = resolve_target(LINUX_X86_64, "0.1.4", table=table_with_checksum("0" * 64))

        with pytest.raises(ChecksumMismatch):
            Installer(cache_dir).install(ref, layout, linux_tarball)

        assert not layout.bin_dir.exists()

    def test_staged_file_wrong_name(self, cache_dir, layout, macos_tarball):
        """Test a staged file must carry the artifact's exact name."""
        ref = resolve("linux", "x86_64", "0.1.4")

        with pytest.raises(ArtifactNotFound, match="chough_v0.1.4_linux_x86_64.tar.gz"):
            Installer(cache_dir).install(ref, layout, macos_tarball)

    def test_symlink_out_of_staging_refused(self, cache_dir, layout, tmp_path):
        """Test an unchecked tarball cannot write outside staging via a symlink."""
        outside = tmp_path / "outside"
        outside.mkdir()
        archive = tmp_path / "chough_v0.1.4_linux_x86_64.tar.gz"
        with tarfile.open(archive, "w:gz") as tar:
            link = tarfile.TarInfo("escape")
            link.type = tarfile.SYMTYPE
            link.linkname = str(outside)
            tar.addfile(link)
            for name, content in (
                ("escape/pwned", b"bad"),
                ("chough-linux-amd64", b"#!/bin/sh\n"),
            ):
                info = tarfile.TarInfo(name)
                info.size = len(content)
                tar.addfile(info, io.BytesIO(content))
        ref = resolve("linux", "x86_64", "0.1.4")

        with pytest.raises(InstallError, match="outside the extraction directory"):
            Installer(cache_dir).install(ref, layout, archive)

        assert not (outside / "pwned").exists()
        assert not layout.bin_dir.exists()

    def test_raw_binary(self, cache_dir, layout, raw_binary):
        """Test a non-archive release is installed directly."""
        ref = resolve("linux", "x86_64", "0.1.0")

        state = Installer(cache_dir).install(ref, layout, raw_binary)

        assert state.binary_path.read_bytes() == raw_binary.read_bytes()
        assert file_mode(state.binary_path) == 0o755
        assert state.libraries == []


class TestDownload:
    """Test installs that fetch the artifact."""

    @responses.activate
    def test_download_linux(self, cache_dir, layout, linux_tarball):
        """Test the artifact is fetched from its release URL."""
        ref = resolve("linux", "x86_64", "0.1.4")
        responses.add(responses.GET, ref.url, body=linux_tarball.read_bytes(), status=200)

        state = Installer(cache_dir).install(ref, layout)

        assert len(responses.calls) == 1
        assert responses.calls[0].request.url == ref.url
        assert (cache_dir / "downloads" / ref.artifact_name).exists()
        assert state.binary_path.exists()

    def test_strict_refuses_before_network(self, cache_dir, layout):
        """Test an unchecked artifact is refused without any request."""
        ref = resolve("linux", "x86_64", "0.1.4")

        with responses.RequestsMock() as rsps:
            with pytest.raises(UntrustedArtifact, match="trust level is 'strict'"):
                Installer(cache_dir, TrustLevel.STRICT).install(ref, layout)
            assert len(rsps.calls) == 0

    @responses.activate
    def test_download_passes_checksum(self, cache_dir, layout, linux_tarball):
        """Test a checksummed download is verified while streaming."""
        content = linux_tarball.read_bytes()
        ref = resolve_target(
            LINUX_X86_64,
            "0.1.4",
            table=table_with_checksum(hashlib.sha256(content).hexdigest()),
        )
        responses.add(responses.GET, ref.url, body=content, status=200)

        state = Installer(cache_dir, TrustLevel.STRICT).install(ref, layout)

        assert state.checksum_verified is True
