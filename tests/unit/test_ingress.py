"""Tests for the ingress boundary helpers.

Validates:
- ``parse_query_params`` builds the point and viewport, rejects bad input
- ``bbox_order`` switches between N,E,S,W and W,S,E,N
- ``parse_export_params`` validates the zone selectors
"""

from __future__ import annotations

import pytest

from geoipt.core.exceptions import ContractError
from geoipt.core.ingress import ExportRequest, parse_export_params, parse_query_params
from geoipt.models.bbox import BoundingBox
from geoipt.models.feature import QueryPoint

BASE = {"lat": "-29.45", "lon": "-70.45", "bbox": "-29,-70,-30,-71"}

# ---------------------------------------------------------------------------
# parse_query_params
# ---------------------------------------------------------------------------


class TestParseQueryParams:
    """Turn request parameters into a point and a viewport."""

    def test_point_and_viewport(self) -> None:
        point, viewport = parse_query_params(BASE)
        assert point == QueryPoint(lat=-29.45, lon=-70.45)
        assert viewport == BoundingBox(north=-29, east=-70, south=-30, west=-71)

    def test_wsen_order(self) -> None:
        params = {**BASE, "bbox": "-71,-30,-70,-29", "bbox_order": "WSEN"}
        _, viewport = parse_query_params(params)
        assert viewport == BoundingBox(north=-29, east=-70, south=-30, west=-71)

    def test_missing_bbox_collapses_to_point(self) -> None:
        _, viewport = parse_query_params({"lat": "1.5", "lon": "2.5"})
        assert viewport == BoundingBox(north=1.5, east=2.5, south=1.5, west=2.5)

    def test_blank_bbox_collapses_to_point(self) -> None:
        _, viewport = parse_query_params({**BASE, "bbox": "  "})
        assert viewport.north == viewport.south == -29.45

    @pytest.mark.parametrize("name", ["lat", "lon"])
    def test_missing_coordinate(self, name: str) -> None:
        params = {k: v for k, v in BASE.items() if k != name}
        with pytest.raises(ContractError, match=name) as exc_info:
            parse_query_params(params)
        assert exc_info.value.code == "MISSING_PARAMETER"
        assert exc_info.value.stage == "ingress"

    @pytest.mark.parametrize(
        ("name", "value"),
        [("lat", "abc"), ("lat", "91"), ("lon", "-180.5"), ("lat", "nan")],
    )
    def test_invalid_coordinate(self, name: str, value: str) -> None:
        with pytest.raises(ContractError) as exc_info:
            parse_query_params({**BASE, name: value})
        assert exc_info.value.code == "INVALID_COORDINATE"

    def test_boundary_coordinates_accepted(self) -> None:
        point, _ = parse_query_params({"lat": "-90", "lon": "180"})
        assert point == QueryPoint(lat=-90, lon=180)

    def test_malformed_bbox(self) -> None:
        with pytest.raises(ContractError) as exc_info:
            parse_query_params({**BASE, "bbox": "1,2,3"})
        assert exc_info.value.code == "INVALID_BBOX"

    def test_unknown_bbox_order(self) -> None:
        with pytest.raises(ContractError) as exc_info:
            parse_query_params({**BASE, "bbox_order": "lonlat"})
        assert exc_info.value.code == "INVALID_BBOX_ORDER"


# ---------------------------------------------------------------------------
# parse_export_params
# ---------------------------------------------------------------------------


class TestParseExportParams:
    """Zone selectors on top of the query parameters."""

    def test_defaults(self) -> None:
        request = parse_export_params({**BASE, "file": "z.kml"})
        assert request == ExportRequest(
            point=QueryPoint(lat=-29.45, lon=-70.45),
            viewport=BoundingBox(north=-29, east=-70, south=-30, west=-71),
            file_name="z.kml",
        )
        assert request.feature_index == 0
        assert request.fmt == "kml"

    def test_index_and_format(self) -> None:
        request = parse_export_params({**BASE, "file": "z.kml", "index": "3", "format": "JSON"})
        assert request.feature_index == 3
        assert request.fmt == "json"

    def test_missing_file(self) -> None:
        with pytest.raises(ContractError, match="file") as exc_info:
            parse_export_params(BASE)
        assert exc_info.value.code == "MISSING_PARAMETER"

    @pytest.mark.parametrize("index", ["x", "1.5", "-1"])
    def test_invalid_index(self, index: str) -> None:
        with pytest.raises(ContractError) as exc_info:
            parse_export_params({**BASE, "file": "z.kml", "index": index})
        assert exc_info.value.code == "INVALID_PARAMETER"

    def test_folder_selector(self) -> None:
        request = parse_export_params({**BASE, "file": "z.kml", "folder": " capas_04 "})
        assert request.folder_key == "capas_04"

    def test_folder_defaults_to_any(self) -> None:
        assert parse_export_params({**BASE, "file": "z.kml"}).folder_key == ""

    def test_invalid_format(self) -> None:
        with pytest.raises(ContractError, match="format") as exc_info:
            parse_export_params({**BASE, "file": "z.kml", "format": "shp"})
        assert exc_info.value.code == "INVALID_PARAMETER"

    def test_query_errors_propagate(self) -> None:
        with pytest.raises(ContractError) as exc_info:
            parse_export_params({"file": "z.kml"})
        assert exc_info.value.code == "MISSING_PARAMETER"
