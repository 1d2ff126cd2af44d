"""Tests for sourcekitd discovery and loading.

The ctypes binding itself needs a real sourcekitd and is not exercised
here; these tests cover what can fail before the library is touched.
"""

from pathlib import Path

import pytest

from skdump import service as service_module
from skdump.errors import ServiceError
from skdump.service import SourceKitd, SourceKitService, VariantType, find_sourcekitd

from conftest import FakeService


class TestFindSourcekitd:
    """Tests for find_sourcekitd."""

    def test_configured_path(self, tmp_path: Path):
        library = tmp_path / "libsourcekitdInProc.so"
        library.touch()

        assert find_sourcekitd(library) == library

    def test_configured_path_missing(self, tmp_path: Path):
        with pytest.raises(ServiceError):
            find_sourcekitd(tmp_path / "missing.so")

    def test_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        library = tmp_path / "sourcekitd"
        library.touch()
        monkeypatch.setenv("SKDUMP_SOURCEKITD", str(library))

        assert find_sourcekitd() == library

    def test_environment_missing(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SKDUMP_SOURCEKITD", str(tmp_path / "missing"))

        with pytest.raises(ServiceError):
            find_sourcekitd()

    def test_configured_wins_over_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        configured = tmp_path / "configured.so"
        configured.touch()
        monkeypatch.setenv("SKDUMP_SOURCEKITD", str(tmp_path / "env.so"))

        assert find_sourcekitd(configured) == configured

    def test_known_locations(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        library = tmp_path / "toolchain" / "libsourcekitdInProc.so"
        library.parent.mkdir()
        library.touch()
        monkeypatch.setattr(
            service_module, "KNOWN_LOCATIONS", (str(tmp_path / "nope.so"), str(library))
        )

        assert find_sourcekitd() == library

    def test_nothing_found(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(service_module, "KNOWN_LOCATIONS", ())
        monkeypatch.setattr(service_module.ctypes.util, "find_library", lambda name: None)

        with pytest.raises(ServiceError):
            find_sourcekitd()


class TestSourceKitd:
    """Tests for loading the library."""

    def test_not_a_library(self, tmp_path: Path):
        bogus = tmp_path / "sourcekitd"
        bogus.write_text("not a shared library")

        with pytest.raises(ServiceError):
            SourceKitd(bogus)


class TestSourceKitService:
    """Tests for the service protocol."""

    def test_fake_service_satisfies_protocol(self):
        assert isinstance(FakeService(), SourceKitService)

    def test_variant_types(self):
        assert VariantType.DICTIONARY == 1
        assert VariantType.UID == 5
        assert VariantType.DATA == 8
