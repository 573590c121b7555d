"""
Pytest configuration and shared fixtures for choughkit tests.
"""

import logging

import pytest
from pathlib import Path

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.artifacts import (
    fake_chough,
    macos_tarball,
    linux_tarball,
    raw_binary,
    staged_directory,
)
from tests.fixtures.directories import (
    cache_dir,
    prefix,
    layout,
    installer_config,
)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that download real release artifacts",
    )


def pytest_collection_modifyitems(config, items):
    """
    Skip integration tests unless --integration flag is provided.
    """
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch):
    """Keep tests away from the user's cache, config and CHOUGHKIT_* settings."""
    for var in (
        "CHOUGHKIT_CONFIG",
        "CHOUGHKIT_PREFIX",
        "CHOUGHKIT_CACHE_DIR",
        "CHOUGHKIT_TRUST_LEVEL",
        "CHOUGHKIT_CHANNEL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))

    yield

    from choughkit.core.platform import clear_target_cache

    clear_target_cache()


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))

    return fake_home


@pytest.fixture
def restore_logging():
    """Undo the root logger changes CLI.run() makes via basicConfig(force=True)."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level

    yield

    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
