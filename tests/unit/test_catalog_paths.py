"""Tests for deterministic catalog path generation."""

from __future__ import annotations

import pytest

from geoipt.core.exceptions import ContractError
from geoipt.utils.catalog_paths import (
    build_geometry_path,
    build_listing_path,
    build_manifest_path,
    ensure_safe_relative_path,
)


class TestBuildPaths:
    def test_manifest_default(self) -> None:
        assert build_manifest_path() == "capas/regiones.json"

    def test_manifest_custom(self) -> None:
        assert build_manifest_path("layers/", "manifest.json") == "layers/manifest.json"

    def test_manifest_without_prefix(self) -> None:
        assert build_manifest_path("", "regiones.json") == "regiones.json"

    def test_listing(self) -> None:
        assert build_listing_path("capas_03") == "capas/capas_03/listado.json"

    def test_listing_custom(self) -> None:
        assert build_listing_path("r1", prefix="layers", listing_name="index.json") == "layers/r1/index.json"

    def test_listing_empty_folder(self) -> None:
        with pytest.raises(ContractError):
            build_listing_path(" / ")

    def test_geometry(self) -> None:
        assert build_geometry_path("capas_03", "PRC_Copiapo.kml") == "capas/capas_03/PRC_Copiapo.kml"

    def test_geometry_with_subfolder(self) -> None:
        assert build_geometry_path("capas_03", "prc/zonas.kml") == "capas/capas_03/prc/zonas.kml"

    def test_geometry_empty_file(self) -> None:
        with pytest.raises(ContractError) as exc_info:
            build_geometry_path("capas_03", "")
        assert exc_info.value.code == "INVALID_PATH"

    def test_geometry_traversal_rejected(self) -> None:
        with pytest.raises(ContractError):
            build_geometry_path("capas_03", "../../secrets.kml")


class TestEnsureSafeRelativePath:
    def test_normalises_duplicate_slashes(self) -> None:
        assert ensure_safe_relative_path("capas//capas_03/./a.kml") == "capas/capas_03/a.kml"

    @pytest.mark.parametrize("path", ["", "  ", "/abs.kml", "a/../../b.kml", "a\\b.kml"])
    def test_rejected(self, path: str) -> None:
        with pytest.raises(ContractError) as exc_info:
            ensure_safe_relative_path(path)
        assert exc_info.value.stage == "storage"
