"""
Tests for the platform resolver.
"""

import pytest

from choughkit.core.exceptions import (
    InvalidVersionError,
    UnsupportedPlatform,
)
from choughkit.core.platform import TargetDescriptor, get_supported_targets
from choughkit.release.resolver import (
    ArtifactRef,
    default_table,
    load_table,
    resolve,
    resolve_target,
)
from choughkit.release.table import ReleaseTable

BASE = "https://github.com/hyperpuncher/chough/releases/download"


class TestResolveStable:
    """Test resolution against the stable channel."""

    @pytest.mark.parametrize(
        "target", get_supported_targets(), ids=lambda t: t.platform_key
    )
    def test_every_platform_matches_its_target(self, target):
        """Test a resolved artifact never belongs to another platform."""
        ref = resolve_target(target, "0.1.4")

        assert ref.target == target
        assert ref.version == "0.1.4"
        assert ref.url.startswith(f"{BASE}/v0.1.4/")
        assert ref.url.endswith(ref.artifact_name)

    def test_macos_arm64(self):
        """Test Apple Silicon artifact and checksum."""
        ref = resolve("macos", "arm64", "0.1.4")

        assert ref.url == f"{BASE}/v0.1.4/chough_v0.1.4_darwin_arm64.tar.gz"
        assert ref.binary_name == "chough-darwin-arm64"
        assert ref.sha256 == (
            "8076b5504103853f66d5a8d0907edcfc624d7c306b9a924bba8fa65f1e97fda5"
        )
        assert ref.is_archive
        assert not ref.unchecked
        assert ref.library_suffix == ".dylib"

    def test_macos_x86_64(self):
        """Test Intel macOS artifact uses the amd64 binary name."""
        ref = resolve("darwin", "amd64", "0.1.4")

        assert ref.url == f"{BASE}/v0.1.4/chough_v0.1.4_darwin_x86_64.tar.gz"
        assert ref.binary_name == "chough-darwin-amd64"
        assert ref.sha256.startswith("b89cfe03")

    def test_linux_x86_64_unchecked(self):
        """Test Linux builds resolve without a checksum."""
        ref = resolve("linux", "x86_64", "0.1.4")

        assert ref.url == f"{BASE}/v0.1.4/chough_v0.1.4_linux_x86_64.tar.gz"
        assert ref.binary_name == "chough-linux-amd64"
        assert ref.unchecked
        assert ref.sha256 is None
        assert ref.library_suffix == ".so"

    def test_linux_aarch64_alias(self):
        """Test host spellings resolve to the canonical target."""
        ref = resolve("Linux", "aarch64", "v0.1.4")

        assert ref.target == TargetDescriptor("linux", "arm64")
        assert ref.binary_name == "chough-linux-arm64"

    def test_depends_on_and_command(self):
        """Test runtime dependencies and command name are carried."""
        ref = resolve("macos", "arm64", "0.1.4")

        assert ref.depends_on == ("ffmpeg",)
        assert ref.command_name == "chough"
        assert ref.artifact_id == "chough-0.1.4-macos-arm64"

    def test_latest(self):
        """Test 'latest' resolves to the newest stable release."""
        assert resolve("linux", "arm64", "latest").version == "0.1.4"

    def test_raw_binary_release(self):
        """Test 0.1.0 downloads the executable directly."""
        ref = resolve("linux", "x86_64", "0.1.0")

        assert ref.artifact_name == "chough-linux-amd64"
        assert ref.url == f"{BASE}/v0.1.0/chough-linux-amd64"
        assert not ref.is_archive
        assert ref.unchecked
        assert ref.depends_on == ()


class TestResolvePackaging:
    """Test resolution against the packaging channel."""

    def test_titlecase_artifact(self):
        """Test titlecase OS names and the plain binary name."""
        ref = resolve("macos", "arm64", "0.1.0", channel="packaging")

        assert ref.artifact_name == "chough_v0.1.0_Darwin_arm64.tar.gz"
        assert ref.binary_name == "chough"
        assert ref.channel == "packaging"

    def test_intel_mac_unsupported(self):
        """Test Intel macOS fails with the published reason."""
        with pytest.raises(UnsupportedPlatform, match="Apple Silicon") as exc_info:
            resolve("macos", "x86_64", "0.1.0", channel="packaging")

        assert exc_info.value.os == "macos"
        assert exc_info.value.arch == "x86_64"
        assert exc_info.value.version == "0.1.0"


class TestResolveErrors:
    """Test resolver failures."""

    def test_unknown_version(self):
        """Test an unpublished version lists known versions."""
        with pytest.raises(UnsupportedPlatform, match="known: 0.1.4, 0.1.0"):
            resolve("macos", "arm64", "0.2.0")

    def test_invalid_version(self):
        """Test malformed version raises InvalidVersionError."""
        with pytest.raises(InvalidVersionError):
            resolve("macos", "arm64", "0.1.x")

    def test_unknown_channel(self):
        """Test an unknown channel is an unsupported request, not a table error."""
        with pytest.raises(
            UnsupportedPlatform, match=r"unknown channel 'nightly' \(known: stable, packaging\)"
        ):
            resolve("macos", "arm64", "0.1.4", channel="nightly")

    def test_unknown_channel_latest(self):
        """Test 'latest' in an unknown channel."""
        with pytest.raises(UnsupportedPlatform, match="unknown channel"):
            resolve("linux", "x86_64", "latest", channel="nightly")

    @pytest.mark.parametrize(
        "os_name,arch", [("windows", "x86_64"), ("linux", "armv7l"), ("freebsd", "arm64")]
    )
    def test_unsupported_platform(self, os_name, arch):
        """Test platforms outside the supported set."""
        with pytest.raises(UnsupportedPlatform):
            resolve(os_name, arch, "0.1.4")

    def test_platform_missing_from_release(self):
        """Test a platform absent from a release without a stated reason."""
        table = ReleaseTable.from_dict(
            {
                "tool": "chough",
                "base_url": "https://example.invalid",
                "schemes": {"raw": {"artifact": "chough", "binary": "chough"}},
                "channels": {
                    "stable": [
                        {
                            "version": "1.0",
                            "scheme": "raw",
                            "platforms": {"linux-x86_64": {"sha256": "no_check"}},
                        }
                    ]
                },
            }
        )

        with pytest.raises(UnsupportedPlatform, match="release ships only linux-x86_64"):
            resolve("macos", "arm64", "1.0", table=table)


class TestTables:
    """Test table loading helpers."""

    def test_default_table_cached(self):
        """Test the embedded table is loaded once."""
        assert default_table() is default_table()

    def test_load_table_default(self):
        """Test no path means the embedded table."""
        assert load_table() is default_table()

    def test_load_table_path(self, tmp_path):
        """Test an explicit path is loaded."""
        path = tmp_path / "releases.yaml"
        path.write_text(ReleaseTable.default_path().read_text())

        table = load_table(str(path))

        assert table is not default_table()
        assert table.source == path

    def test_artifact_ref_frozen(self):
        """Test references are immutable."""
        ref = resolve("macos", "arm64", "0.1.4")
        assert isinstance(ref, ArtifactRef)
        with pytest.raises(AttributeError):
            ref.version = "0.1.0"
