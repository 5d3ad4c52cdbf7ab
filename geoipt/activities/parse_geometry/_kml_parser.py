"""lxml-based KML parser.

Walks the element tree of a KML document and turns every Placemark
that carries polygon geometry into one ``GeometryFeature``.

Supported structures:
- ``Placemark > Polygon``
- ``Placemark > MultiGeometry > Polygon`` (nested MultiGeometry too)
- Placemarks nested at any depth inside Document / Folder
- KML 2.2, legacy Google Earth namespaces, or no namespace at all

Only ``outerBoundaryIs`` rings are read; ``innerBoundaryIs`` (holes)
is ignored, so a point inside a hole is reported as contained.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geoipt.activities.parse_geometry._normalization import (
    extract_extended_data,
    parse_coordinates_text,
    strip_html,
)
from geoipt.activities.parse_geometry._validation import GeometryParseError, keep_ring
from geoipt.models.feature import GeometryFeature, GeometryType

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger("geoipt.activities.parse_geometry")

# Attribute names filled from <name> / <description> when ExtendedData lacks them.
NAME_ATTRIBUTES = ("NAME", "NOMBRE_PM")
DESCRIPTION_ATTRIBUTE = "DESCRIPTION"

_PLACEMARKS = "//*[local-name()='Placemark']"
_POLYGONS = ".//*[local-name()='Polygon']"
_OUTER_COORDS = (
    "./*[local-name()='outerBoundaryIs']"
    "/*[local-name()='LinearRing']"
    "/*[local-name()='coordinates']"
)


def read_kml_features(payload: str | bytes, source: str = "") -> list[GeometryFeature]:
    """Parse KML text into polygon features.

    Args:
        payload: KML document as text or bytes.
        source: File name used in log lines and error messages.

    Returns:
        One feature per Placemark with at least one usable ring.

    Raises:
        GeometryParseError: If the payload is empty, is not well-formed
            XML, or yields no usable polygon ring.
    """
    root = _parse_xml(payload, source)

    features: list[GeometryFeature] = []
    placemarks: list[_Element] = root.xpath(_PLACEMARKS)

    for idx, placemark in enumerate(placemarks):
        polygons = placemark.xpath(_POLYGONS)
        if not polygons:
            continue

        context = f"{source or '<kml>'} placemark {idx}"
        rings = []
        for polygon in polygons:
            ring = _outer_ring(polygon)
            if keep_ring(ring, context):
                rings.append(ring)

        if not rings:
            logger.warning("Skipping placemark without usable rings | %s", context)
            continue

        geometry_type = GeometryType.POLYGON if len(polygons) == 1 else GeometryType.MULTI_POLYGON
        features.append(
            GeometryFeature(
                geometry_type=geometry_type,
                rings=rings,
                attributes=_placemark_attributes(placemark),
            )
        )

    if not features:
        msg = f"No usable polygon rings in KML {source or '<payload>'}"
        raise GeometryParseError(msg, code="NO_USABLE_GEOMETRY")

    return features


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _parse_xml(payload: str | bytes, source: str) -> _Element:
    from lxml import etree  # type: ignore[attr-defined]

    content = payload.encode("utf-8") if isinstance(payload, str) else payload
    if not content or not content.strip():
        msg = f"KML payload is empty: {source or '<payload>'}"
        raise GeometryParseError(msg, code="EMPTY_PAYLOAD")

    parser = etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        huge_tree=False,
        recover=False,
    )
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as exc:
        msg = f"Not valid XML: {source or '<payload>'}: {exc}"
        raise GeometryParseError(msg, code="INVALID_XML") from exc
    if root is None:
        msg = f"Not valid XML: {source or '<payload>'}"
        raise GeometryParseError(msg, code="INVALID_XML")
    return root


def _outer_ring(polygon: _Element) -> list[tuple[float, float]]:
    coords: list[tuple[float, float]] = []
    for coordinates in polygon.xpath(_OUTER_COORDS):
        if coordinates.text:
            coords.extend(parse_coordinates_text(coordinates.text))
    return coords


def _child_text(element: _Element, local_name: str) -> str:
    found = element.xpath(f"./*[local-name()='{local_name}']")
    if not found:
        return ""
    return "".join(found[0].itertext()).strip()


def _placemark_attributes(placemark: _Element) -> dict[str, str]:
    attributes = extract_extended_data(placemark)

    name = _child_text(placemark, "name")
    if name:
        for key in NAME_ATTRIBUTES:
            attributes.setdefault(key, name)

    description = strip_html(_child_text(placemark, "description"))
    if description:
        attributes.setdefault(DESCRIPTION_ATTRIBUTE, description)

    return attributes
