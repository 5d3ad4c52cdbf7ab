"""Catalog records: regions and the instrument files listed under them.

The manifest (``capas/regiones.json``) and the per-region listings
(``capas/<folder>/listado.json``) are hand-maintained JSON and have
drifted between several shapes over time.  Each record type exposes a
``from_dict`` decoder that accepts every known spelling once, at load
time, so the rest of the pipeline only sees the canonical dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from geoipt.models.bbox import BoundingBox, normalize_bbox

if TYPE_CHECKING:
    from collections.abc import Mapping

# Source keys, first match wins.
_REGION_FOLDER_KEYS = ("carpeta", "folder_key", "folder")
_REGION_NAME_KEYS = ("nombre", "display_name", "name")
_REGION_ID_KEYS = ("codigo_ine", "id", "code")
_REGION_ACTIVE_KEYS = ("activo", "active")

_INSTRUMENT_FILE_KEYS = ("archivo", "kml", "file_name", "file")
_INSTRUMENT_FOLDER_KEYS = ("carpeta", "folder_key", "folder")

DEFAULT_ZOOM = 7


def _first(data: Mapping[str, Any], keys: tuple[str, ...], default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return default


@dataclass(frozen=True, slots=True)
class RegionDescriptor:
    """One administrative region's geometry bundle.

    Attributes:
        id: Region code (INE code such as ``"03"``).
        display_name: Human-readable region name.
        folder_key: Folder under the layers prefix (e.g. ``"capas_03"``).
        bounding_box: Region extent; ``None`` means never filtered out.
        center: Map centre as ``(lat, lon)``, if declared.
        default_zoom: Map zoom level used when centring on the region.
        active: Inactive regions are never queried.
    """

    id: str
    display_name: str = ""
    folder_key: str = ""
    bounding_box: BoundingBox | None = None
    center: tuple[float, float] | None = None
    default_zoom: int = DEFAULT_ZOOM
    active: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RegionDescriptor:
        """Decode one manifest record.

        Unknown keys are ignored; a malformed ``bbox`` or ``centro``
        decodes to ``None`` rather than failing the whole manifest.
        """
        center_raw = _first(data, ("centro", "center"))
        center: tuple[float, float] | None = None
        if isinstance(center_raw, list | tuple) and len(center_raw) == 2:
            try:
                center = (float(center_raw[0]), float(center_raw[1]))
            except (TypeError, ValueError, OverflowError):
                center = None

        try:
            zoom = int(_first(data, ("zoom", "default_zoom"), DEFAULT_ZOOM))
        except (TypeError, ValueError, OverflowError):
            zoom = DEFAULT_ZOOM

        active_raw = _first(data, _REGION_ACTIVE_KEYS, True)

        return cls(
            id=str(_first(data, _REGION_ID_KEYS, "")),
            display_name=str(_first(data, _REGION_NAME_KEYS, "")),
            folder_key=str(_first(data, _REGION_FOLDER_KEYS, "")),
            bounding_box=normalize_bbox(_first(data, ("bbox", "bounding_box"))),
            center=center,
            default_zoom=zoom,
            active=active_raw is not False,
        )


@dataclass(frozen=True, slots=True)
class InstrumentRecord:
    """One zoning-instrument geometry file listed under a region.

    Attributes:
        file_name: Geometry file name relative to the region folder.
        folder_key: Region folder holding the file.
        bounding_box: Declared file extent; ``None`` means always a candidate.
        raw_metadata: The listing entry as found, minus decoded keys.
        region_name: Region display name, for the candidate table.
        region_code: Region code, for the candidate table.
    """

    file_name: str
    folder_key: str = ""
    bounding_box: BoundingBox | None = None
    raw_metadata: dict[str, Any] = field(default_factory=dict)
    region_name: str = ""
    region_code: str = ""

    @property
    def path_key(self) -> tuple[str, str]:
        """Identity of the underlying file, used as the geometry cache key."""
        return (self.folder_key, self.file_name)

    @property
    def display_name(self) -> str:
        name = self.raw_metadata.get("nombre") or self.raw_metadata.get("name")
        return str(name) if name else self.file_name.rsplit(".", 1)[0]

    @classmethod
    def from_entry(
        cls,
        entry: object,
        *,
        folder_key: str,
        region_name: str = "",
        region_code: str = "",
    ) -> InstrumentRecord | None:
        """Decode one listing entry.

        Entries are either a bare file name string or an object with a
        file key plus arbitrary metadata.  Returns ``None`` for entries
        that name no file.
        """
        if isinstance(entry, str):
            file_name = entry.strip()
            if not file_name:
                return None
            return cls(
                file_name=file_name,
                folder_key=folder_key,
                region_name=region_name,
                region_code=region_code,
            )

        if not isinstance(entry, dict):
            return None

        file_name = str(_first(entry, _INSTRUMENT_FILE_KEYS, "")).strip()
        if not file_name:
            return None

        decoded = {*_INSTRUMENT_FILE_KEYS, *_INSTRUMENT_FOLDER_KEYS, "bbox"}
        metadata = {k: v for k, v in entry.items() if k not in decoded}

        return cls(
            file_name=file_name,
            folder_key=str(_first(entry, _INSTRUMENT_FOLDER_KEYS, folder_key)),
            bounding_box=normalize_bbox(entry.get("bbox")),
            raw_metadata=metadata,
            region_name=str(_first(entry, ("region_nombre",), region_name)),
            region_code=str(_first(entry, ("codigo_region",), region_code)),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "file_name": self.file_name,
            "folder_key": self.folder_key,
            "bounding_box": self.bounding_box.to_dict() if self.bounding_box else None,
            "metadata": dict(self.raw_metadata),
            "region_name": self.region_name,
            "region_code": self.region_code,
        }
