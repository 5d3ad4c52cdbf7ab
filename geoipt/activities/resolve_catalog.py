"""Catalog resolution activity.

Narrows the regionally-partitioned layer catalog down to the instrument
files worth fetching for one viewport:

1. Read the region manifest and drop inactive regions.
2. Skip regions whose declared box misses the viewport.
3. Load each surviving region's listing and keep instruments whose box
   is absent or intersects the viewport.

A record without a box is never filtered out.  If the box filter
eliminates every loaded instrument, the whole unfiltered set is
returned instead and ``CandidateSet.used_fallback`` is set: an
inaccurate box in a hand-edited listing must not hide every polygon
from the user.

Only the manifest is query-fatal.  A broken listing costs that region
alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from geoipt.core.exceptions import ContractError, PermanentError
from geoipt.models.bbox import intersects
from geoipt.models.catalog import InstrumentRecord, RegionDescriptor
from geoipt.storage.base import StorageError
from geoipt.utils.catalog_paths import build_listing_path, build_manifest_path

if TYPE_CHECKING:
    from collections.abc import Iterator

    from geoipt.core.config import LookupConfig
    from geoipt.core.context import QueryContext
    from geoipt.models.bbox import BoundingBox
    from geoipt.storage.base import GeometryStorage

logger = logging.getLogger("geoipt.activities.resolve_catalog")

# Envelope keys, first match wins.
MANIFEST_LIST_KEYS = ("regiones_ipt", "regiones", "regions")
LISTING_LIST_KEYS = ("instrumentos", "listado", "instruments", "kml", "kml_files")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CatalogUnavailableError(PermanentError):
    """The region manifest could not be fetched or decoded."""

    default_stage = "resolve_catalog"
    default_code = "CATALOG_UNAVAILABLE"


class ListingUnavailableError(PermanentError):
    """A region's instrument listing could not be fetched or decoded."""

    default_stage = "resolve_catalog"
    default_code = "LISTING_UNAVAILABLE"


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CandidateSet:
    """Instruments selected for one viewport.

    Attributes:
        candidates: Selected records in region order, then listing order.
        regions_examined: Folder keys of regions whose listing was loaded.
        used_fallback: ``True`` when the box filter removed everything
            and the unfiltered set was returned instead.
        total_loaded: Records loaded before box filtering.
    """

    candidates: list[InstrumentRecord] = field(default_factory=list)
    regions_examined: list[str] = field(default_factory=list)
    used_fallback: bool = False
    total_loaded: int = 0

    def __len__(self) -> int:
        return len(self.candidates)

    def __iter__(self) -> Iterator[InstrumentRecord]:
        return iter(self.candidates)


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


def list_regions(
    storage: GeometryStorage,
    config: LookupConfig | None = None,
) -> list[RegionDescriptor]:
    """Load the active regions from the manifest.

    Args:
        storage: Catalog storage adapter.
        config: Supplies the layers prefix and manifest name.

    Returns:
        Active regions in manifest order.

    Raises:
        CatalogUnavailableError: If the manifest cannot be read or has
            no recognisable region array.
    """
    from geoipt.core.config import LookupConfig

    config = config or LookupConfig()
    path = build_manifest_path(config.layers_prefix, config.manifest_name)

    try:
        document = storage.fetch_json(path)
    except StorageError as exc:
        msg = f"Region manifest unavailable at {path!r}: {exc}"
        raise CatalogUnavailableError(msg, retryable=exc.retryable) from exc

    records = _unwrap(document, MANIFEST_LIST_KEYS)
    if records is None:
        msg = f"Region manifest at {path!r} holds no region array"
        raise CatalogUnavailableError(msg)

    regions: list[RegionDescriptor] = []
    for idx, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning("Skipping non-object manifest record | index=%d", idx)
            continue
        region = RegionDescriptor.from_dict(record)
        if not region.active:
            logger.debug("Skipping inactive region | id=%s", region.id)
            continue
        if not region.folder_key:
            logger.warning(
                "Skipping region without folder | index=%d | id=%s | name=%s",
                idx,
                region.id,
                region.display_name,
            )
            continue
        regions.append(region)

    logger.info("Region manifest loaded | path=%s | active_regions=%d", path, len(regions))
    return regions


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


def load_listing(
    storage: GeometryStorage,
    region: RegionDescriptor,
    config: LookupConfig | None = None,
) -> list[InstrumentRecord]:
    """Load the instrument records listed for *region*.

    Listing-level ``carpeta``, ``region`` and ``codigo_region`` fields,
    when present, override the region's folder, name and code for every
    entry in the listing.

    Raises:
        ListingUnavailableError: If the listing cannot be read or has no
            recognisable instrument array.
    """
    from geoipt.core.config import LookupConfig

    config = config or LookupConfig()
    try:
        path = build_listing_path(
            region.folder_key,
            prefix=config.layers_prefix,
            listing_name=config.listing_name,
        )
    except ContractError as exc:
        msg = f"Unusable folder for region {region.folder_key!r}: {exc}"
        raise ListingUnavailableError(msg) from exc

    try:
        document = storage.fetch_json(path)
    except StorageError as exc:
        msg = f"Listing unavailable for region {region.folder_key!r}: {exc}"
        raise ListingUnavailableError(msg, retryable=exc.retryable) from exc

    entries = _unwrap(document, LISTING_LIST_KEYS)
    if entries is None:
        msg = f"Listing at {path!r} holds no instrument array"
        raise ListingUnavailableError(msg)

    header: dict[str, Any] = document if isinstance(document, dict) else {}
    folder_key = str(header.get("carpeta") or region.folder_key)
    region_name = str(header.get("region") or region.display_name)
    region_code = str(header.get("codigo_region") or region.id)

    records: list[InstrumentRecord] = []
    for entry in entries:
        record = InstrumentRecord.from_entry(
            entry,
            folder_key=folder_key,
            region_name=region_name,
            region_code=region_code,
        )
        if record is None:
            logger.debug("Skipping listing entry without file | region=%s", folder_key)
            continue
        records.append(record)

    logger.debug("Listing loaded | region=%s | instruments=%d", folder_key, len(records))
    return records


# ---------------------------------------------------------------------------
# Viewport filtering
# ---------------------------------------------------------------------------


def candidates_for_viewport(viewport: BoundingBox, context: QueryContext) -> CandidateSet:
    """Select the instrument files that may contain a point in *viewport*.

    Raises:
        CatalogUnavailableError: If the region manifest cannot be loaded.
    """
    regions = list_regions(context.storage, context.config)

    result = CandidateSet()
    loaded: list[InstrumentRecord] = []

    for region in regions:
        if region.bounding_box is not None and not intersects(region.bounding_box, viewport):
            logger.debug("Region outside viewport | region=%s", region.folder_key)
            continue

        try:
            records = load_listing(context.storage, region, context.config)
        except ListingUnavailableError as exc:
            logger.warning(
                "Listing skipped | region=%s | code=%s | correlation_id=%s | %s",
                region.folder_key,
                exc.code,
                context.correlation_id,
                exc,
            )
            continue

        result.regions_examined.append(region.folder_key)
        loaded.extend(records)
        result.candidates.extend(
            r for r in records if r.bounding_box is None or intersects(r.bounding_box, viewport)
        )

    result.total_loaded = len(loaded)

    if loaded and not result.candidates:
        logger.warning(
            "Viewport filter removed every instrument, using unfiltered set | "
            "loaded=%d | viewport=%s | correlation_id=%s",
            len(loaded),
            viewport.to_nesw(),
            context.correlation_id,
        )
        result.candidates = list(loaded)
        result.used_fallback = True

    logger.info(
        "Candidates resolved | regions=%d | loaded=%d | candidates=%d | fallback=%s | "
        "correlation_id=%s",
        len(result.regions_examined),
        result.total_loaded,
        len(result.candidates),
        result.used_fallback,
        context.correlation_id,
    )
    return result


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _unwrap(document: object, keys: tuple[str, ...]) -> list[Any] | None:
    """Return the record array from a bare array or a keyed envelope."""
    if isinstance(document, list):
        return document
    if isinstance(document, dict):
        for key in keys:
            value = document.get(key)
            if isinstance(value, list):
                return value
    return None
