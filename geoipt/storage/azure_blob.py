"""Azure Blob Storage adapter.

Reads the catalog from a blob container whose blob names mirror the
static-site layout (``capas/regiones.json``, ``capas/capas_03/...``).
The connection string comes from ``AzureWebJobsStorage`` so the function
app and the catalog can share one storage account.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from geoipt.core.exceptions import ContractError
from geoipt.storage.base import (
    GeometryStorage,
    StorageError,
    StorageNotFoundError,
    StorageTransientError,
)
from geoipt.utils.catalog_paths import ensure_safe_relative_path

if TYPE_CHECKING:
    from azure.storage.blob import BlobServiceClient

logger = logging.getLogger(__name__)


def get_blob_service_client() -> BlobServiceClient:
    """Create a ``BlobServiceClient`` from the ``AzureWebJobsStorage`` env var.

    Raises:
        ContractError: If the environment variable is not set.
    """
    from azure.storage.blob import BlobServiceClient

    connection_string = os.environ.get("AzureWebJobsStorage", "")  # noqa: SIM112
    if not connection_string:
        msg = "AzureWebJobsStorage environment variable is not set"
        raise ContractError(msg, stage="storage", code="MISSING_CONNECTION_STRING")

    return BlobServiceClient.from_connection_string(connection_string)


class AzureBlobStorage(GeometryStorage):
    """Serve catalog paths from one blob container."""

    name = "azure_blob"

    def __init__(
        self,
        container: str,
        *,
        blob_service_client: BlobServiceClient | None = None,
    ) -> None:
        if not container:
            msg = "AzureBlobStorage requires a container name"
            raise ValueError(msg)
        self._container = container
        self._service = blob_service_client or get_blob_service_client()

    @property
    def container(self) -> str:
        return self._container

    def fetch_bytes(self, path: str) -> bytes:
        from azure.core.exceptions import (
            AzureError,
            ResourceNotFoundError,
            ServiceRequestError,
            ServiceResponseError,
        )

        blob_name = ensure_safe_relative_path(path)
        blob_client = self._service.get_blob_client(container=self._container, blob=blob_name)
        try:
            data = blob_client.download_blob().readall()
        except ResourceNotFoundError as exc:
            raise StorageNotFoundError(
                self.name, path, f"Blob not found: {self._container}/{blob_name}"
            ) from exc
        except (ServiceRequestError, ServiceResponseError) as exc:
            msg = f"Transient failure reading {self._container}/{blob_name}: {exc}"
            raise StorageTransientError(self.name, path, msg) from exc
        except AzureError as exc:
            msg = f"Failed to read {self._container}/{blob_name}: {exc}"
            raise StorageError(self.name, path, msg) from exc

        logger.debug(
            "Downloaded blob | container=%s | blob=%s | size=%d bytes",
            self._container,
            blob_name,
            len(data),
        )
        return bytes(data)
