"""Coordinate and attribute normalization helpers for geometry parsing.

Responsibilities:
- Parse KML coordinate text into ``(lon, lat)`` tuples
- Convert GeoJSON coordinate arrays into ``(lon, lat)`` tuples
- Stringify GeoJSON property values
- Extract ExtendedData attributes from a KML Placemark
- Strip HTML from KML descriptions

Coordinate parsing is tolerant: a malformed pair is dropped on its own
and never invalidates the rest of its ring.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING

from geoipt.activities.parse_geometry._validation import is_valid_coordinate

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger("geoipt.activities.parse_geometry")

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")

# ---------------------------------------------------------------------------
# Coordinate normalization
# ---------------------------------------------------------------------------


def parse_coordinates_text(text: str) -> list[tuple[float, float]]:
    """Parse KML coordinate text (``lon,lat[,alt] lon,lat[,alt] ...``)."""
    coords: list[tuple[float, float]] = []
    for token in text.split():
        parts = token.strip().split(",")
        if len(parts) < 2:
            logger.debug("Dropping coordinate token without lon,lat: %r", token)
            continue
        try:
            lon = float(parts[0])
            lat = float(parts[1])
        except ValueError:
            logger.debug("Dropping non-numeric coordinate token: %r", token)
            continue
        if not is_valid_coordinate(lon, lat):
            logger.debug("Dropping out-of-range coordinate: (%s, %s)", lon, lat)
            continue
        coords.append((lon, lat))
    return coords


def coords_to_tuples(raw_coords: object) -> list[tuple[float, float]]:
    """Convert a GeoJSON position array to ``(lon, lat)`` tuples.

    Drops altitude if present.  Positions that are not sequences, have
    fewer than two elements, or hold non-numeric values are dropped.
    """
    if not isinstance(raw_coords, list | tuple):
        return []
    coords: list[tuple[float, float]] = []
    for position in raw_coords:
        if not isinstance(position, list | tuple) or len(position) < 2:
            continue
        if isinstance(position[0], bool) or isinstance(position[1], bool):
            continue
        try:
            lon = float(position[0])
            lat = float(position[1])
        except (TypeError, ValueError, OverflowError):
            continue
        if not is_valid_coordinate(lon, lat):
            continue
        coords.append((lon, lat))
    return coords


# ---------------------------------------------------------------------------
# Attribute normalization
# ---------------------------------------------------------------------------


def stringify_value(value: object) -> str | None:
    """Render a GeoJSON property value as text; ``None`` stays ``None``."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dict | list):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def extract_properties(props: object) -> dict[str, str]:
    """Copy GeoJSON ``properties`` into a flat string mapping."""
    if not isinstance(props, dict):
        return {}
    attributes: dict[str, str] = {}
    for key, value in props.items():
        text = stringify_value(value)
        if text is not None:
            attributes[str(key)] = text
    return attributes


def strip_html(text: str) -> str:
    """Reduce an HTML fragment (KML ``<description>``) to plain text."""
    if not text or not text.strip():
        return ""
    if "<" not in text:
        return _WS_RE.sub(" ", text).strip()

    import lxml.html
    from lxml import etree  # type: ignore[attr-defined]

    try:
        plain = lxml.html.fromstring(text).text_content()
    except (etree.ParserError, etree.XMLSyntaxError, ValueError):
        plain = _TAG_RE.sub(" ", text)
    return _WS_RE.sub(" ", plain).strip()


# ---------------------------------------------------------------------------
# KML ExtendedData
# ---------------------------------------------------------------------------


def extract_extended_data(placemark: _Element) -> dict[str, str]:
    """Extract ExtendedData attributes from a Placemark element.

    Handles both KML metadata patterns:
    - ``ExtendedData/Data[@name]/value``: untyped key-value pairs.
    - ``ExtendedData//SimpleData[@name]``: typed fields, usually inside
      ``SchemaData``.

    Element names are matched by local name so any KML namespace (or
    none) is accepted.
    """
    attributes: dict[str, str] = {}

    for data_elem in placemark.xpath(
        "./*[local-name()='ExtendedData']/*[local-name()='Data']"
    ):
        key = (data_elem.get("name") or "").strip()
        values = data_elem.xpath("./*[local-name()='value']")
        if key and values and values[0].text is not None:
            attributes[key] = values[0].text.strip()

    for simple_data in placemark.xpath(
        "./*[local-name()='ExtendedData']//*[local-name()='SimpleData']"
    ):
        key = (simple_data.get("name") or "").strip()
        if key and simple_data.text is not None:
            attributes[key] = simple_data.text.strip()

    return attributes
