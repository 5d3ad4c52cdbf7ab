"""Deterministic catalog path generation.

The layer catalog follows the static-site layout:

    {prefix}/regiones.json
    {prefix}/{folder}/listado.json
    {prefix}/{folder}/{file}

Folder keys and file names come from hand-edited JSON, so every
segment is checked before it reaches a storage adapter: absolute paths,
``..`` segments and backslashes are rejected.

Export download names follow ``geoipt_zona_{stem}.{ext}``.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from geoipt.core.constants import (
    DEFAULT_LAYERS_PREFIX,
    DEFAULT_LISTING_NAME,
    DEFAULT_MANIFEST_NAME,
)
from geoipt.core.exceptions import ContractError

EXPORT_PREFIX = "geoipt_zona"

# Characters allowed in download file names.
_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def ensure_safe_relative_path(path: str) -> str:
    """Return *path* normalised to a relative POSIX path.

    Raises:
        ContractError: If the path is empty, absolute, uses backslashes,
            or contains a ``..`` segment.
    """
    if not path or not path.strip():
        msg = "Catalog path must not be empty"
        raise ContractError(msg, stage="storage", code="INVALID_PATH")
    if "\\" in path:
        msg = f"Catalog path must use forward slashes: {path!r}"
        raise ContractError(msg, stage="storage", code="INVALID_PATH")

    pure = PurePosixPath(path.strip())
    if pure.is_absolute() or ".." in pure.parts:
        msg = f"Catalog path escapes the catalog root: {path!r}"
        raise ContractError(msg, stage="storage", code="INVALID_PATH")
    return str(pure)


def _join(*segments: str) -> str:
    parts = [s.strip("/") for s in segments if s and s.strip("/")]
    return ensure_safe_relative_path("/".join(parts))


def build_manifest_path(
    prefix: str = DEFAULT_LAYERS_PREFIX,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
) -> str:
    """Build the region manifest path.

    Format: ``{prefix}/{manifest_name}``
    """
    return _join(prefix, manifest_name)


def build_listing_path(
    folder_key: str,
    *,
    prefix: str = DEFAULT_LAYERS_PREFIX,
    listing_name: str = DEFAULT_LISTING_NAME,
) -> str:
    """Build a region's instrument listing path.

    Format: ``{prefix}/{folder}/{listing_name}``

    Raises:
        ContractError: If the folder key is empty or unsafe.
    """
    if not folder_key.strip("/ "):
        msg = "Region folder key must not be empty"
        raise ContractError(msg, stage="resolve_catalog", code="INVALID_PATH")
    return _join(prefix, folder_key, listing_name)


def build_geometry_path(
    folder_key: str,
    file_name: str,
    *,
    prefix: str = DEFAULT_LAYERS_PREFIX,
) -> str:
    """Build a geometry file path.

    Format: ``{prefix}/{folder}/{file}``.  A file name that already
    carries a sub-folder is kept as-is under the region folder.

    Raises:
        ContractError: If the file name is empty or any segment is unsafe.
    """
    if not file_name.strip("/ "):
        msg = "Geometry file name must not be empty"
        raise ContractError(msg, stage="find_containing", code="INVALID_PATH")
    return _join(prefix, folder_key, file_name)


def export_file_name(source_file: str, extension: str) -> str:
    """Build the download name for an exported zone.

    Format: ``geoipt_zona_{stem}.{extension}`` where *stem* is the
    source file name without its extension.  Falls back to ``zona``.
    """
    stem = PurePosixPath(source_file or "").stem
    stem = _FILENAME_RE.sub("_", stem).strip("._") or "zona"
    return f"{EXPORT_PREFIX}_{stem}.{extension.lstrip('.')}"
