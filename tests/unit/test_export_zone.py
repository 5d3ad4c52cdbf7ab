"""Tests for the export_zone activity.

Covers:
- KML document structure, style and ExtendedData
- Exported KML parses back into the same zone
- JSON export layout
- Download file names
- Degenerate rings and unknown formats rejected
"""

from __future__ import annotations

import json

import pytest
from lxml import etree

from geoipt.activities.export_zone import (
    DEFAULT_INSTRUMENT_NAME,
    DEFAULT_ZONE_NAME,
    JSON_CONTENT_TYPE,
    KML_CONTENT_TYPE,
    KML_NAMESPACE,
    STYLE_ID,
    ExportError,
    export_zone,
    export_zone_json,
    export_zone_kml,
)
from geoipt.activities.parse_geometry import parse_kml
from geoipt.models.feature import GeometryFeature, GeometryType, MatchResult
from geoipt.utils.catalog_paths import export_file_name

NS = {"k": KML_NAMESPACE}
OPEN_RING = [(-70.5, -29.5), (-70.4, -29.5), (-70.4, -29.4), (-70.5, -29.4)]


def _match(
    attributes: dict[str, str] | None = None,
    rings: list | None = None,
    source_file: str = "PRC_LaSerena.kml",
) -> MatchResult:
    feature = GeometryFeature(
        GeometryType.POLYGON,
        rings=rings if rings is not None else [OPEN_RING],
        attributes=attributes if attributes is not None else {"ZONA": "ZR-1", "USO": "Residencial"},
    )
    return MatchResult(source_file=source_file, folder_key="capas_04", feature=feature, feature_index=0)


class TestExportKml:
    def test_document_structure(self) -> None:
        root = etree.fromstring(export_zone_kml(_match(), instrument_name="PRC La Serena"))
        assert root.tag == f"{{{KML_NAMESPACE}}}kml"
        assert root.xpath("string(k:Document/k:name)", namespaces=NS) == "PRC La Serena"
        assert root.xpath("string(k:Document/k:Style/@id)", namespaces=NS) == STYLE_ID
        assert root.xpath("string(k:Document/k:Placemark/k:styleUrl)", namespaces=NS) == f"#{STYLE_ID}"
        assert root.xpath("string(k:Document/k:Placemark/k:name)", namespaces=NS) == "ZR-1"

    def test_xml_declaration(self) -> None:
        content = export_zone_kml(_match())
        assert content.startswith(b"<?xml version='1.0' encoding='UTF-8'?>")

    def test_ring_closed_with_zero_altitude(self) -> None:
        root = etree.fromstring(export_zone_kml(_match()))
        coords = root.xpath("string(//k:coordinates)", namespaces=NS).split()
        assert coords[0] == "-70.5,-29.5,0"
        assert coords[-1] == coords[0]
        assert len(coords) == 5

    def test_extended_data(self) -> None:
        root = etree.fromstring(export_zone_kml(_match()))
        data = {
            d.get("name"): d.findtext(f"{{{KML_NAMESPACE}}}value")
            for d in root.iterfind(".//k:Data", namespaces=NS)
        }
        assert data == {"ZONA": "ZR-1", "USO": "Residencial"}

    def test_only_first_ring_written(self) -> None:
        second = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)]
        root = etree.fromstring(export_zone_kml(_match(rings=[OPEN_RING, second])))
        assert len(root.xpath("//k:Polygon", namespaces=NS)) == 1

    def test_name_fallbacks(self) -> None:
        root = etree.fromstring(export_zone_kml(_match(attributes={}, source_file="")))
        assert root.xpath("string(k:Document/k:name)", namespaces=NS) == DEFAULT_INSTRUMENT_NAME
        assert root.xpath("string(k:Document/k:Placemark/k:name)", namespaces=NS) == DEFAULT_ZONE_NAME

    def test_document_named_after_source_file(self) -> None:
        root = etree.fromstring(export_zone_kml(_match()))
        assert root.xpath("string(k:Document/k:name)", namespaces=NS) == "PRC_LaSerena.kml"

    def test_round_trip_through_parser(self) -> None:
        features = parse_kml(export_zone_kml(_match()))
        assert len(features) == 1
        assert features[0].attributes["ZONA"] == "ZR-1"
        assert features[0].rings[0][:4] == OPEN_RING

    def test_special_characters_escaped(self) -> None:
        match = _match(attributes={"NOM": "Zona <A> & \"B\""})
        features = parse_kml(export_zone_kml(match))
        assert features[0].attributes["NOM"] == 'Zona <A> & "B"'

    def test_degenerate_ring_rejected(self) -> None:
        with pytest.raises(ExportError) as exc_info:
            export_zone_kml(_match(rings=[[(0.0, 0.0), (1.0, 1.0)]]))
        assert exc_info.value.code == "EXPORT_DEGENERATE_RING"

    def test_no_rings_rejected(self) -> None:
        with pytest.raises(ExportError):
            export_zone_kml(_match(rings=[]))

    def test_invalid_attribute_value_rejected(self) -> None:
        with pytest.raises(ExportError) as exc_info:
            export_zone_kml(_match(attributes={"bad": "\x00"}))
        assert exc_info.value.code == "EXPORT_INVALID_ATTRIBUTE"


class TestExportJson:
    def test_attributes_plus_geometry(self) -> None:
        payload = json.loads(export_zone_json(_match()))
        assert payload["ZONA"] == "ZR-1"
        assert payload["geometry"]["type"] == "Polygon"
        ring = payload["geometry"]["coordinates"][0]
        assert ring[0] == ring[-1] == [-70.5, -29.5]

    def test_pretty_printed_unicode(self) -> None:
        text = export_zone_json(_match(attributes={"NOM": "Copiapó"}))
        assert '\n  "NOM": "Copiapó"' in text


class TestExportZone:
    def test_kml(self) -> None:
        exported = export_zone(_match(), "kml")
        assert exported.file_name == "geoipt_zona_PRC_LaSerena.kml"
        assert exported.content_type == KML_CONTENT_TYPE
        assert exported.content.startswith(b"<?xml")

    def test_json(self) -> None:
        exported = export_zone(_match(), "JSON")
        assert exported.file_name == "geoipt_zona_PRC_LaSerena.json"
        assert exported.content_type == JSON_CONTENT_TYPE
        assert json.loads(exported.content)["ZONA"] == "ZR-1"

    def test_unknown_format(self) -> None:
        with pytest.raises(ExportError) as exc_info:
            export_zone(_match(), "shp")
        assert exc_info.value.code == "EXPORT_FORMAT_UNSUPPORTED"
        assert exc_info.value.stage == "export_zone"
        assert exc_info.value.retryable is False


class TestExportFileName:
    @pytest.mark.parametrize(
        ("source", "ext", "expected"),
        [
            ("PRC_Copiapo.kml", "kml", "geoipt_zona_PRC_Copiapo.kml"),
            ("SCC_Caldera.geojson", "json", "geoipt_zona_SCC_Caldera.json"),
            ("PRC Copiapó.kml", "kml", "geoipt_zona_PRC_Copiap.kml"),
            ("", "kml", "geoipt_zona_zona.kml"),
            ("sub/dir/plan.kml", ".kml", "geoipt_zona_plan.kml"),
        ],
    )
    def test_names(self, source: str, ext: str, expected: str) -> None:
        assert export_file_name(source, ext) == expected
