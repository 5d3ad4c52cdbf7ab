"""Shared pytest fixtures for the GeoIPT test suite."""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from geoipt.core.config import LookupConfig
from geoipt.core.context import QueryContext
from geoipt.storage.base import GeometryStorage, StorageNotFoundError, StorageTransientError

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).parent
DATA_DIR = TESTS_DIR / "data"


@pytest.fixture()
def data_dir() -> Path:
    """Return the path to the test data directory (a catalog root)."""
    return DATA_DIR


# ---------------------------------------------------------------------------
# In-memory storage double
# ---------------------------------------------------------------------------


class InMemoryStorage(GeometryStorage):
    """Storage double serving paths from a dict.

    Values may be ``bytes``, ``str``, or JSON-serialisable objects.
    Paths listed in ``failing`` raise ``StorageTransientError``.
    Every fetch is recorded in ``fetches`` (thread-safe).
    """

    name = "memory"

    def __init__(
        self,
        files: dict[str, object] | None = None,
        *,
        failing: set[str] | None = None,
    ) -> None:
        self.files: dict[str, object] = dict(files or {})
        self.failing = set(failing or ())
        self.fetches: list[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def fetch_bytes(self, path: str) -> bytes:
        with self._lock:
            self.fetches.append(path)
        if path in self.failing:
            raise StorageTransientError(self.name, path, f"Simulated outage: {path}")
        if path not in self.files:
            raise StorageNotFoundError(self.name, path)
        value = self.files[path]
        if isinstance(value, bytes):
            return value
        if isinstance(value, str):
            return value.encode("utf-8")
        return json.dumps(value).encode("utf-8")

    def close(self) -> None:
        self.closed = True

    def fetch_count(self, path: str) -> int:
        return self.fetches.count(path)


def square_kml(
    west: float,
    south: float,
    east: float,
    north: float,
    *,
    name: str = "Zona",
    data: dict[str, str] | None = None,
) -> str:
    """KML 2.2 document with one square Placemark."""
    coords = (
        f"{west},{south},0 {east},{south},0 {east},{north},0 "
        f"{west},{north},0 {west},{south},0"
    )
    extended = "".join(
        f'<Data name="{k}"><value>{v}</value></Data>' for k, v in (data or {}).items()
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<kml xmlns="http://www.opengis.net/kml/2.2"><Document>'
        f"<Placemark><name>{name}</name>"
        f"<ExtendedData>{extended}</ExtendedData>"
        "<Polygon><outerBoundaryIs><LinearRing>"
        f"<coordinates>{coords}</coordinates>"
        "</LinearRing></outerBoundaryIs></Polygon>"
        "</Placemark></Document></kml>"
    )


def square_geojson(
    west: float,
    south: float,
    east: float,
    north: float,
    *,
    properties: dict[str, object] | None = None,
) -> dict[str, object]:
    """GeoJSON FeatureCollection with one square Polygon feature."""
    ring = [[west, south], [east, south], [east, north], [west, north], [west, south]]
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": properties or {},
                "geometry": {"type": "Polygon", "coordinates": [ring]},
            }
        ],
    }


@pytest.fixture()
def memory_storage() -> InMemoryStorage:
    """Empty in-memory storage; tests fill ``files`` as needed."""
    return InMemoryStorage()


@pytest.fixture()
def catalog_storage() -> InMemoryStorage:
    """One region ``r1`` with one instrument ``z.kml`` (ZONA=H1) near (-29.45, -70.45)."""
    return InMemoryStorage(
        {
            "capas/regiones.json": [
                {
                    "codigo_ine": "04",
                    "nombre": "Coquimbo",
                    "carpeta": "r1",
                    "bbox": [[-30, -71], [-29, -70]],
                }
            ],
            "capas/r1/listado.json": {
                "instrumentos": [
                    {
                        "archivo": "z.kml",
                        "nombre": "PRC Zona Test",
                        "tipo": "PRC",
                        "comuna": "La Serena",
                        "bbox": [[-29.5, -70.5], [-29.4, -70.4]],
                    }
                ]
            },
            "capas/r1/z.kml": square_kml(
                -70.5, -29.5, -70.4, -29.4, name="H1", data={"ZONA": "H1"}
            ),
        }
    )


@pytest.fixture()
def sequential_config() -> LookupConfig:
    """Configuration with a single worker (deterministic fetch order)."""
    return LookupConfig(max_workers=1)


@pytest.fixture()
def catalog_context(catalog_storage: InMemoryStorage) -> QueryContext:
    """Query context over ``catalog_storage``."""
    return QueryContext(storage=catalog_storage, config=LookupConfig(), correlation_id="test-cid")
