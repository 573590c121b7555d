"""
Tests for the post-install smoke test.
"""

import logging
import subprocess
from unittest.mock import patch

import pytest

from choughkit.core.exceptions import VerificationFailed
from choughkit.install.smoke import require_version, run_version, verify


class TestVerify:
    """Test verify function."""

    def test_pass(self, tmp_path, fake_chough):
        """Test a binary reporting the expected version."""
        binary = fake_chough(tmp_path / "bin" / "chough", "0.1.4")
        assert verify(binary, "0.1.4") is True

    def test_run_version_output(self, tmp_path, fake_chough):
        """Test --version output is captured."""
        binary = fake_chough(tmp_path / "chough", "0.1.4", "amd64")

        result = run_version(binary)

        assert result.returncode == 0
        assert result.stdout.strip() == "chough 0.1.4 (amd64)"

    def test_wrong_version(self, tmp_path, fake_chough, caplog):
        """Test a different version fails."""
        binary = fake_chough(tmp_path / "chough", "0.1.0")

        with caplog.at_level(logging.ERROR):
            assert verify(binary, "0.1.4") is False

        assert "did not report 0.1.4" in caplog.text

    def test_nonzero_exit(self, tmp_path, fake_chough, caplog):
        """Test a crashing binary fails even if it prints the version."""
        binary = fake_chough(tmp_path / "chough", "0.1.4", exit_code=3)

        with caplog.at_level(logging.ERROR):
            assert verify(binary, "0.1.4") is False

        assert "exited 3" in caplog.text

    def test_missing_binary(self, tmp_path):
        """Test a missing binary fails without raising."""
        assert verify(tmp_path / "chough", "0.1.4") is False

    def test_not_executable(self, tmp_path):
        """Test a non-executable file fails without raising."""
        binary = tmp_path / "chough"
        binary.write_text("#!/bin/sh\necho 0.1.4\n")
        binary.chmod(0o644)

        assert verify(binary, "0.1.4") is False

    def test_timeout(self, tmp_path, fake_chough):
        """Test a hanging binary fails."""
        binary = fake_chough(tmp_path / "chough", "0.1.4")

        with patch(
            "choughkit.install.smoke.subprocess.run",
            side_effect=subprocess.TimeoutExpired(str(binary), 30),
        ):
            assert verify(binary, "0.1.4") is False

    def test_version_on_stderr(self, tmp_path):
        """Test a version printed to stderr counts."""
        binary = tmp_path / "chough"
        binary.write_text('#!/bin/sh\necho "chough 0.1.4" >&2\n')
        binary.chmod(0o755)

        assert verify(binary, "0.1.4") is True


class TestRequireVersion:
    """Test require_version function."""

    def test_pass(self, tmp_path, fake_chough):
        """Test success returns None."""
        binary = fake_chough(tmp_path / "chough", "0.1.4")
        assert require_version(binary, "0.1.4") is None

    def test_wrong_version_raises(self, tmp_path, fake_chough):
        """Test failure carries binary, expectation and output."""
        binary = fake_chough(tmp_path / "chough", "0.1.0")

        with pytest.raises(VerificationFailed) as exc_info:
            require_version(binary, "0.1.4")

        assert exc_info.value.binary_path == binary
        assert exc_info.value.expected_version == "0.1.4"
        assert "chough 0.1.0" in exc_info.value.output

    def test_missing_binary_raises(self, tmp_path):
        """Test a missing binary raises VerificationFailed."""
        with pytest.raises(VerificationFailed, match="did not report 0.1.4"):
            require_version(tmp_path / "chough", "0.1.4")
