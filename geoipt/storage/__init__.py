"""Catalog storage adapters.

Implements the storage-agnostic adapter pattern:
- GeometryStorage: Abstract base class defining the fetch interface
- LocalStorage: Directory on disk (dev, tests, bundled layers)
- HttpStorage: Static web site serving ``capas/`` (httpx)
- AzureBlobStorage: Blob container mirroring the ``capas/`` layout

The active backend is selected via configuration.
"""

from geoipt.storage.base import (
    GeometryStorage,
    StorageDecodeError,
    StorageError,
    StorageNotFoundError,
    StorageTransientError,
)
from geoipt.storage.factory import (
    AZURE_BLOB,
    HTTP,
    LOCAL,
    get_storage,
    list_storages,
    register_storage,
    storage_from_config,
)

__all__ = [
    "AZURE_BLOB",
    "HTTP",
    "LOCAL",
    "GeometryStorage",
    "StorageDecodeError",
    "StorageError",
    "StorageNotFoundError",
    "StorageTransientError",
    "get_storage",
    "list_storages",
    "register_storage",
    "storage_from_config",
]
