"""Storage factory: selects the catalog storage adapter by name.

The factory maintains a registry of known adapters.  Each entry is a
lazy import thunk so that backend dependencies (``httpx``,
``azure-storage-blob``) are only loaded when that backend is selected.

Usage::

    from geoipt.storage.factory import get_storage

    storage = get_storage("http", base_url="https://geoipt.example.cl")
    manifest = storage.fetch_json("capas/regiones.json")

The backend name is read from ``GEOIPT_STORAGE_BACKEND`` via
``LookupConfig.storage_backend``; ``storage_from_config`` maps the rest
of the config onto the adapter's constructor.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from geoipt.storage.base import GeometryStorage, StorageError

if TYPE_CHECKING:
    from collections.abc import Callable

    from geoipt.core.config import LookupConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Backend name constants
# ---------------------------------------------------------------------------

LOCAL = "local"
HTTP = "http"
AZURE_BLOB = "azure_blob"

# ---------------------------------------------------------------------------
# Lazy-import adapter registry
# ---------------------------------------------------------------------------

_ADAPTER_REGISTRY: dict[str, Callable[[], type[GeometryStorage]]] = {}


def _register_builtin_adapters() -> None:
    """Register the built-in storage adapters."""

    def _local() -> type[GeometryStorage]:
        from geoipt.storage.local import LocalStorage

        return LocalStorage

    def _http() -> type[GeometryStorage]:
        from geoipt.storage.http import HttpStorage

        return HttpStorage

    def _azure_blob() -> type[GeometryStorage]:
        from geoipt.storage.azure_blob import AzureBlobStorage

        return AzureBlobStorage

    _ADAPTER_REGISTRY[LOCAL] = _local
    _ADAPTER_REGISTRY[HTTP] = _http
    _ADAPTER_REGISTRY[AZURE_BLOB] = _azure_blob


def _ensure_registry() -> None:
    """Initialise the adapter registry once (idempotent)."""
    if not _ADAPTER_REGISTRY:
        _register_builtin_adapters()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_storage(
    name: str,
    loader: Callable[[], type[GeometryStorage]],
) -> None:
    """Register a custom storage adapter.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Storage backend name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _ADAPTER_REGISTRY[name] = loader
    logger.debug("Registered storage adapter: %s", name)


def get_storage(name: str, **kwargs: Any) -> GeometryStorage:
    """Create and return a storage adapter instance.

    Args:
        name: Backend identifier (``"local"``, ``"http"``, ``"azure_blob"``).
        **kwargs: Passed to the adapter constructor.

    Raises:
        StorageError: If the named backend is not registered.
    """
    _ensure_registry()

    loader = _ADAPTER_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_ADAPTER_REGISTRY))
        msg = f"Unknown storage backend: {name!r}. Available: {available}"
        raise StorageError(backend=name, path="", message=msg)

    adapter_cls = loader()
    logger.info("Creating storage adapter: %s", name)
    return adapter_cls(**kwargs)


def storage_from_config(config: LookupConfig) -> GeometryStorage:
    """Create the adapter selected by *config*."""
    if config.storage_backend == HTTP:
        return get_storage(HTTP, base_url=config.base_url, timeout_s=config.http_timeout_s)
    if config.storage_backend == AZURE_BLOB:
        return get_storage(AZURE_BLOB, container=config.blob_container)
    if config.storage_backend == LOCAL:
        return get_storage(LOCAL, root=config.storage_root)
    return get_storage(config.storage_backend)


def list_storages() -> list[str]:
    """Return the names of all registered storage adapters."""
    _ensure_registry()
    return sorted(_ADAPTER_REGISTRY)
