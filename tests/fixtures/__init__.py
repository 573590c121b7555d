"""Test fixtures for choughkit tests.

This package provides reusable pytest fixtures for testing choughkit components.
Fixtures are organized by type:

- artifacts: Fake chough release artifacts (tarballs, raw binaries, staged dirs)
- directories: Cache/prefix directories and matching configuration
- macho: A stand-in for otool/install_name_tool/codesign

Import fixtures in your tests using:
    from tests.fixtures.artifacts import macos_tarball
    from tests.fixtures.macho import FakeMachOTools
"""

__all__ = [
    "artifacts",
    "directories",
    "macho",
]
