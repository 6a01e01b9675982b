"""Unit tests for version consistency."""

import importlib.metadata

import pytest

import nanobanana


@pytest.mark.unit
class TestVersionConsistency:
    """Test that version is consistently reported across the package."""

    def test_version_matches_package_metadata(self):
        """Verify nanobanana.__version__ matches installed package metadata."""
        try:
            pkg_version = importlib.metadata.version("nanobanana")
        except importlib.metadata.PackageNotFoundError:
            pytest.skip("Package not installed, can't verify metadata version")

        assert nanobanana.__version__ == pkg_version

    def test_version_format(self):
        """Verify version is either X.Y[.Z] or the development placeholder."""
        version = nanobanana.__version__

        assert isinstance(version, str)
        assert len(version) > 0

        if version.endswith(".dev"):
            assert version == "0.0.0.dev"
        else:
            parts = version.split(".")
            assert len(parts) >= 2, f"Version {version} should have at least major.minor"

    def test_public_api_exports(self):
        for name in nanobanana.__all__:
            assert hasattr(nanobanana, name), name
