"""Zone export activity.

Serialises one matched zone for download:

- **KML**: a KML 2.2 document with a single styled Placemark, every
  attribute as ``ExtendedData/Data`` and the zone's first ring as the
  polygon outer boundary (``lon,lat,0`` tokens).
- **JSON**: the zone's attributes plus a GeoJSON ``geometry`` object,
  pretty-printed with a 2-space indent.

Download names follow ``geoipt_zona_{stem}.{ext}``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from geoipt.core.exceptions import ValidationError
from geoipt.utils.catalog_paths import export_file_name

if TYPE_CHECKING:
    from lxml.etree import _Element

    from geoipt.models.feature import MatchResult

logger = logging.getLogger("geoipt.activities.export_zone")

KML_NAMESPACE = "http://www.opengis.net/kml/2.2"
KML_CONTENT_TYPE = "application/vnd.google-earth.kml+xml"
JSON_CONTENT_TYPE = "application/json"

FORMAT_KML = "kml"
FORMAT_JSON = "json"

STYLE_ID = "geoipt_poly"
LINE_COLOR = "ffeb6325"
LINE_WIDTH = "2"
POLY_COLOR = "66f6823b"

DEFAULT_INSTRUMENT_NAME = "Zona GeoIPT"
DEFAULT_ZONE_NAME = "Zona consultada"
_ZONE_NAME_KEYS = ("NOM", "ZONA", "NOMBRE_PM")


class ExportError(ValidationError):
    """Raised when a zone cannot be serialised for download."""

    default_stage = "export_zone"
    default_code = "EXPORT_FAILED"


@dataclass(frozen=True, slots=True)
class ExportedZone:
    """A serialised zone ready to be sent as an attachment."""

    file_name: str
    content_type: str
    content: bytes


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def export_zone(match: MatchResult, fmt: str = FORMAT_KML, *, instrument_name: str = "") -> ExportedZone:
    """Serialise *match* as KML or JSON.

    Raises:
        ExportError: If *fmt* is unknown or the zone has no usable ring.
    """
    fmt = fmt.lower().strip()
    if fmt == FORMAT_KML:
        content = export_zone_kml(match, instrument_name)
        content_type = KML_CONTENT_TYPE
    elif fmt == FORMAT_JSON:
        content = export_zone_json(match).encode("utf-8")
        content_type = JSON_CONTENT_TYPE
    else:
        msg = f"Unsupported export format {fmt!r}; expected 'kml' or 'json'"
        raise ExportError(msg, code="EXPORT_FORMAT_UNSUPPORTED")

    file_name = export_file_name(match.source_file, fmt)
    logger.info(
        "Zone exported | file=%s | format=%s | bytes=%d | source=%s/%s",
        file_name,
        fmt,
        len(content),
        match.folder_key,
        match.source_file,
    )
    return ExportedZone(file_name=file_name, content_type=content_type, content=content)


def export_zone_kml(match: MatchResult, instrument_name: str = "") -> bytes:
    """Build a KML 2.2 document holding one Placemark for *match*.

    Only the first ring of the zone is written.

    Raises:
        ExportError: If the zone has no ring with at least 3 vertices.
    """
    from lxml import etree  # type: ignore[attr-defined]

    feature = match.feature
    ring = feature.rings[0] if feature.rings else []
    if len(ring) < 3:
        msg = (
            f"Zone {match.feature_index} of {match.source_file!r} has no ring "
            f"with at least 3 vertices"
        )
        raise ExportError(msg, code="EXPORT_DEGENERATE_RING")

    kml = etree.Element(_tag("kml"), nsmap={None: KML_NAMESPACE})
    document = _sub(kml, "Document")
    _sub(document, "name").text = (
        instrument_name or match.source_file or DEFAULT_INSTRUMENT_NAME
    )

    style = _sub(document, "Style", id=STYLE_ID)
    line_style = _sub(style, "LineStyle")
    _sub(line_style, "color").text = LINE_COLOR
    _sub(line_style, "width").text = LINE_WIDTH
    poly_style = _sub(style, "PolyStyle")
    _sub(poly_style, "color").text = POLY_COLOR

    placemark = _sub(document, "Placemark")
    _sub(placemark, "name").text = _zone_name(feature.attributes)
    _sub(placemark, "styleUrl").text = f"#{STYLE_ID}"

    extended = _sub(placemark, "ExtendedData")
    for key, value in feature.attributes.items():
        try:
            data = _sub(extended, "Data", name=key)
            _sub(data, "value").text = value
        except ValueError as exc:
            msg = f"Attribute {key!r} is not XML-compatible: {exc}"
            raise ExportError(msg, code="EXPORT_INVALID_ATTRIBUTE") from exc

    polygon = _sub(placemark, "Polygon")
    boundary = _sub(polygon, "outerBoundaryIs")
    linear_ring = _sub(boundary, "LinearRing")
    _sub(linear_ring, "coordinates").text = " ".join(
        f"{lon},{lat},0" for lon, lat in _closed(ring)
    )

    return etree.tostring(kml, xml_declaration=True, encoding="UTF-8", pretty_print=True)


def export_zone_json(match: MatchResult) -> str:
    """Serialise the zone's attributes plus its GeoJSON ``geometry``."""
    payload: dict[str, object] = dict(match.feature.attributes)
    payload["geometry"] = match.feature.geometry_dict()
    return json.dumps(payload, ensure_ascii=False, indent=2)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _tag(local_name: str) -> str:
    return f"{{{KML_NAMESPACE}}}{local_name}"


def _sub(parent: _Element, local_name: str, **attrib: str) -> _Element:
    from lxml import etree  # type: ignore[attr-defined]

    return etree.SubElement(parent, _tag(local_name), **attrib)


def _zone_name(attributes: dict[str, str]) -> str:
    for key in _ZONE_NAME_KEYS:
        value = attributes.get(key, "").strip()
        if value:
            return value
    return DEFAULT_ZONE_NAME


def _closed(ring: list[tuple[float, float]]) -> list[tuple[float, float]]:
    if ring[0] != ring[-1]:
        return [*ring, ring[0]]
    return ring


__all__ = [
    "ExportError",
    "ExportedZone",
    "export_file_name",
    "export_zone",
    "export_zone_json",
    "export_zone_kml",
]
