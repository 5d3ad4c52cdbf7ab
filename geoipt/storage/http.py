"""HTTP storage adapter.

Reads the catalog from the static web site that serves the map front
end (``https://<site>/capas/...``) using ``httpx``.  One client is kept
per adapter so that a query's fetches share connections; the client is
safe to use from the containment engine's worker threads.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from geoipt.storage.base import (
    GeometryStorage,
    StorageError,
    StorageNotFoundError,
    StorageTransientError,
)
from geoipt.utils.catalog_paths import ensure_safe_relative_path

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 30.0

# Status codes worth a retry by the caller.
_TRANSIENT_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})


class HttpStorage(GeometryStorage):
    """Serve catalog paths from a base URL."""

    name = "http"

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
        client: httpx.Client | None = None,
    ) -> None:
        if not base_url:
            msg = "HttpStorage requires a non-empty base_url"
            raise ValueError(msg)
        self._base_url = base_url.rstrip("/") + "/"
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_s, follow_redirects=True)

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, path: str) -> str:
        relative = ensure_safe_relative_path(path)
        return self._base_url + quote(relative, safe="/")

    def fetch_bytes(self, path: str) -> bytes:
        url = self.url_for(path)
        try:
            response = self._client.get(url)
        except httpx.TimeoutException as exc:
            msg = f"Timed out fetching {url}: {exc}"
            raise StorageTransientError(self.name, path, msg) from exc
        except httpx.HTTPError as exc:
            msg = f"HTTP error fetching {url}: {exc}"
            raise StorageTransientError(self.name, path, msg) from exc

        if response.status_code == 404:
            raise StorageNotFoundError(self.name, path, f"Not found: {url}")
        if response.status_code in _TRANSIENT_STATUS:
            msg = f"HTTP {response.status_code} fetching {url}"
            raise StorageTransientError(self.name, path, msg)
        if response.status_code >= 400:
            msg = f"HTTP {response.status_code} fetching {url}"
            raise StorageError(self.name, path, msg)

        logger.debug(
            "Fetched URL | url=%s | status=%d | size=%d bytes",
            url,
            response.status_code,
            len(response.content),
        )
        return response.content

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
