"""Local directory storage adapter.

Reads the catalog from a checkout of the static site, e.g. a directory
that contains ``capas/regiones.json``.  Used for development, tests,
and deployments that ship the layers alongside the function app.
"""

from __future__ import annotations

import logging
from pathlib import Path

from geoipt.storage.base import GeometryStorage, StorageError, StorageNotFoundError
from geoipt.utils.catalog_paths import ensure_safe_relative_path

logger = logging.getLogger(__name__)


class LocalStorage(GeometryStorage):
    """Serve catalog paths from a directory on disk."""

    name = "local"

    def __init__(self, root: Path | str = ".") -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def fetch_bytes(self, path: str) -> bytes:
        relative = ensure_safe_relative_path(path)
        target = self._root / relative
        try:
            data = target.read_bytes()
        except FileNotFoundError as exc:
            raise StorageNotFoundError(self.name, path) from exc
        except IsADirectoryError as exc:
            raise StorageNotFoundError(self.name, path, f"Path is a directory: {path}") from exc
        except OSError as exc:
            msg = f"Cannot read {path}: {exc}"
            raise StorageError(self.name, path, msg) from exc

        logger.debug("Read local file | path=%s | size=%d bytes", relative, len(data))
        return data
