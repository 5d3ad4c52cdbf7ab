"""GeometryStorage abstract base class.

Defines the fetch-style contract the lookup pipeline uses to read the
region manifest, the per-region listings, and the geometry files.  The
resolver and the containment engine interact exclusively with this
interface; they never know whether the catalog lives on a local disk,
behind a static web site, or in a blob container.

Concrete adapters implement ``fetch_bytes`` only; text and JSON
decoding are shared here so every backend reports decode failures the
same way.
"""

from __future__ import annotations

import abc
import json
from typing import Any

from geoipt.core.exceptions import GeoIptError, PermanentError, TransientError


class GeometryStorage(abc.ABC):
    """Abstract base class for catalog storage adapters.

    Paths are POSIX-style and relative to the adapter's root
    (e.g. ``"capas/capas_03/listado.json"``).

    Example usage::

        storage = get_storage("local", root="/srv/geoipt")
        manifest = storage.fetch_json("capas/regiones.json")
    """

    #: Adapter name, used in log lines and error messages.
    name: str = ""

    @abc.abstractmethod
    def fetch_bytes(self, path: str) -> bytes:
        """Return the raw content stored at *path*.

        Raises:
            StorageNotFoundError: If nothing is stored at *path*.
            StorageTransientError: On timeouts and other retryable failures.
            StorageError: On any other read failure.
        """

    def fetch_text(self, path: str, *, encoding: str = "utf-8") -> str:
        """Return the content at *path* decoded as text.

        A UTF-8 byte-order mark is stripped.  Undecodable bytes are
        replaced rather than failing the whole file.
        """
        data = self.fetch_bytes(path)
        if encoding.lower().replace("-", "") == "utf8":
            encoding = "utf-8-sig"
        return data.decode(encoding, errors="replace")

    def fetch_json(self, path: str) -> Any:
        """Return the content at *path* decoded as JSON.

        Raises:
            StorageDecodeError: If the content is not valid JSON.
        """
        text = self.fetch_text(path)
        try:
            return json.loads(text)
        except (json.JSONDecodeError, ValueError, RecursionError) as exc:
            msg = f"Content at {path!r} is not valid JSON: {exc}"
            raise StorageDecodeError(self.name, path, msg) from exc

    def close(self) -> None:
        """Release any held connections.  No-op by default."""

    def __enter__(self) -> GeometryStorage:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Storage exceptions
# ---------------------------------------------------------------------------


class StorageError(GeoIptError):
    """Base exception for storage adapter errors.

    Attributes:
        backend: Name of the adapter that raised the error.
        path: The path being read.
        message: Human-readable error description.
        retryable: Whether the caller may retry the read.
    """

    default_stage = "storage"
    default_code = "STORAGE_ERROR"

    def __init__(
        self,
        backend: str,
        path: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        self.backend = backend
        self.path = path
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.backend}] {self.message}"


class StorageNotFoundError(StorageError, PermanentError):
    """Nothing is stored at the requested path."""

    default_code = "STORAGE_NOT_FOUND"

    def __init__(self, backend: str, path: str, message: str = "") -> None:
        super().__init__(backend, path, message or f"Not found: {path}", retryable=False)


class StorageTransientError(StorageError, TransientError):
    """Timeout, throttling, or a server-side failure worth retrying."""

    default_code = "STORAGE_TRANSIENT"

    def __init__(self, backend: str, path: str, message: str) -> None:
        super().__init__(backend, path, message, retryable=True)


class StorageDecodeError(StorageError, PermanentError):
    """Content was read but could not be decoded."""

    default_code = "STORAGE_DECODE_FAILED"
