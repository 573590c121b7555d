"""
Tests for target platform detection.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from choughkit.core.exceptions import UnsupportedPlatform
from choughkit.core.platform import (
    TargetDescriptor,
    clear_target_cache,
    detect_target,
    get_supported_targets,
    normalize_arch,
    normalize_os,
)


class TestTargetDescriptor:
    """Test TargetDescriptor dataclass."""

    def test_platform_key(self):
        """Test platform key combines os and arch."""
        assert TargetDescriptor("macos", "arm64").platform_key == "macos-arm64"
        assert TargetDescriptor("linux", "x86_64").platform_key == "linux-x86_64"

    def test_library_suffix(self):
        """Test the shared library suffix follows the OS."""
        assert TargetDescriptor("macos", "x86_64").library_suffix == ".dylib"
        assert TargetDescriptor("linux", "arm64").library_suffix == ".so"

    def test_is_macos(self):
        """Test is_macos property."""
        assert TargetDescriptor("macos", "arm64").is_macos
        assert not TargetDescriptor("linux", "arm64").is_macos

    def test_frozen(self):
        """Test descriptors cannot be mutated."""
        target = TargetDescriptor("macos", "arm64")
        with pytest.raises(AttributeError):
            target.arch = "x86_64"

    def test_from_values_normalizes_aliases(self):
        """Test host spellings are normalized."""
        target = TargetDescriptor.from_values("Darwin", "aarch64")
        assert target == TargetDescriptor("macos", "arm64")

    def test_str(self):
        """Test string form is the platform key."""
        assert str(TargetDescriptor("linux", "arm64")) == "linux-arm64"


class TestNormalization:
    """Test OS/arch alias normalization."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("darwin", "macos"),
            ("Darwin", "macos"),
            ("macos", "macos"),
            ("osx", "macos"),
            ("Linux", "linux"),
        ],
    )
    def test_normalize_os(self, raw, expected):
        """Test OS aliases."""
        assert normalize_os(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("arm64", "arm64"),
            ("aarch64", "arm64"),
            ("x86_64", "x86_64"),
            ("AMD64", "x86_64"),
            ("x64", "x86_64"),
        ],
    )
    def test_normalize_arch(self, raw, expected):
        """Test architecture aliases."""
        assert normalize_arch(raw) == expected

    def test_unsupported_os(self):
        """Test Windows is rejected."""
        with pytest.raises(UnsupportedPlatform, match="supported operating systems"):
            normalize_os("windows", "x86_64")

    def test_unsupported_arch(self):
        """Test 32-bit ARM is rejected."""
        with pytest.raises(UnsupportedPlatform, match="supported architectures"):
            normalize_arch("armv7l", "linux")

    def test_empty_values(self):
        """Test empty values are rejected."""
        with pytest.raises(UnsupportedPlatform):
            normalize_os("")
        with pytest.raises(UnsupportedPlatform):
            normalize_arch("")


class TestDetectTarget:
    """Test host detection."""

    def test_detect_linux_x86_64(self):
        """Test detection on Linux x86_64."""
        with patch("platform.system", return_value="Linux"), patch(
            "platform.machine", return_value="x86_64"
        ):
            clear_target_cache()
            assert detect_target() == TargetDescriptor("linux", "x86_64")

    def test_detect_macos_arm64(self):
        """Test detection on Apple Silicon."""
        with patch("platform.system", return_value="Darwin"), patch(
            "platform.machine", return_value="arm64"
        ):
            clear_target_cache()
            assert detect_target() == TargetDescriptor("macos", "arm64")

    def test_detect_rosetta_prefers_arm64(self):
        """Test an x86_64 Python under Rosetta resolves to arm64."""
        translated = MagicMock(returncode=0, stdout="1\n")
        with patch("platform.system", return_value="Darwin"), patch(
            "platform.machine", return_value="x86_64"
        ), patch("subprocess.run", return_value=translated):
            clear_target_cache()
            assert detect_target() == TargetDescriptor("macos", "arm64")

    def test_detect_intel_mac(self):
        """Test a native Intel Mac stays x86_64."""
        native = MagicMock(returncode=0, stdout="0\n")
        with patch("platform.system", return_value="Darwin"), patch(
            "platform.machine", return_value="x86_64"
        ), patch("subprocess.run", return_value=native):
            clear_target_cache()
            assert detect_target() == TargetDescriptor("macos", "x86_64")

    def test_detect_sysctl_missing(self):
        """Test a failing sysctl probe is treated as native."""
        with patch("platform.system", return_value="Darwin"), patch(
            "platform.machine", return_value="x86_64"
        ), patch("subprocess.run", side_effect=FileNotFoundError("sysctl")):
            clear_target_cache()
            assert detect_target().arch == "x86_64"

    def test_detect_sysctl_timeout(self):
        """Test a hanging sysctl probe is treated as native."""
        with patch("platform.system", return_value="Darwin"), patch(
            "platform.machine", return_value="x86_64"
        ), patch(
            "subprocess.run", side_effect=subprocess.TimeoutExpired("sysctl", 5)
        ):
            clear_target_cache()
            assert detect_target().arch == "x86_64"

    def test_detect_unsupported_host(self):
        """Test an unsupported host raises."""
        with patch("platform.system", return_value="Windows"), patch(
            "platform.machine", return_value="AMD64"
        ):
            clear_target_cache()
            with pytest.raises(UnsupportedPlatform):
                detect_target()

    def test_detection_is_cached(self):
        """Test detection runs once per process."""
        with patch("platform.system", return_value="Linux") as system, patch(
            "platform.machine", return_value="aarch64"
        ):
            clear_target_cache()
            first = detect_target()
            calls = system.call_count
            second = detect_target()
        assert first is second
        assert system.call_count == calls


class TestSupportedTargets:
    """Test supported target helpers."""

    def test_four_targets(self):
        """Test every os x arch pair is listed."""
        keys = {t.platform_key for t in get_supported_targets()}
        assert keys == {"macos-arm64", "macos-x86_64", "linux-arm64", "linux-x86_64"}
