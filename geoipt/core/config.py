"""Lookup configuration loaded from environment variables.

All configuration values have working defaults for a local checkout of
the layer catalog. Azure Functions app settings (or
``local.settings.json`` for local dev) are the source of truth when
deployed.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out
    of its valid range, so bad configuration is caught at startup rather
    than on the first query.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from geoipt.core.constants import (
    DEFAULT_LAYERS_PREFIX,
    DEFAULT_LISTING_NAME,
    DEFAULT_MANIFEST_NAME,
)
from geoipt.core.exceptions import GeoIptError

_STORAGE_BACKENDS = frozenset({"local", "http", "azure_blob"})
_MAX_WORKERS_LIMIT = 64


class ConfigValidationError(GeoIptError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        self.message = message
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class LookupConfig:
    """Immutable lookup configuration.

    Loaded once at startup and carried by every ``QueryContext``.

    Attributes:
        storage_backend: Storage adapter name (``local``, ``http`` or ``azure_blob``).
        storage_root: Directory holding the layers prefix (``local`` backend).
        base_url: Site URL that serves the layers prefix (``http`` backend).
        blob_container: Blob container holding the layers (``azure_blob`` backend).
        layers_prefix: Folder that holds the manifest and region folders.
        manifest_name: Region manifest file name.
        listing_name: Per-region listing file name.
        http_timeout_s: Timeout in seconds for each storage fetch.
        max_workers: Parallel geometry fetches per query (1 = sequential).
    """

    storage_backend: str = "local"
    storage_root: str = "."
    base_url: str = ""
    blob_container: str = "capas"
    layers_prefix: str = DEFAULT_LAYERS_PREFIX
    manifest_name: str = DEFAULT_MANIFEST_NAME
    listing_name: str = DEFAULT_LISTING_NAME
    http_timeout_s: float = 30.0
    max_workers: int = 4

    @classmethod
    def from_env(cls) -> LookupConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a
                required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``GEOIPT_MAX_WORKERS=abc``).
        """
        config = cls(
            storage_backend=os.getenv("GEOIPT_STORAGE_BACKEND", "local"),
            storage_root=os.getenv("GEOIPT_STORAGE_ROOT", "."),
            base_url=os.getenv("GEOIPT_BASE_URL", ""),
            blob_container=os.getenv("GEOIPT_BLOB_CONTAINER", "capas"),
            layers_prefix=os.getenv("GEOIPT_LAYERS_PREFIX", DEFAULT_LAYERS_PREFIX),
            manifest_name=os.getenv("GEOIPT_MANIFEST_NAME", DEFAULT_MANIFEST_NAME),
            listing_name=os.getenv("GEOIPT_LISTING_NAME", DEFAULT_LISTING_NAME),
            http_timeout_s=float(os.getenv("GEOIPT_HTTP_TIMEOUT_S", "30")),
            max_workers=int(os.getenv("GEOIPT_MAX_WORKERS", "4")),
        )
        _validate(config)
        return config


def _validate(config: LookupConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.storage_backend not in _STORAGE_BACKENDS:
        raise ConfigValidationError(
            "GEOIPT_STORAGE_BACKEND",
            config.storage_backend,
            f"must be one of {', '.join(sorted(_STORAGE_BACKENDS))}",
        )

    if config.storage_backend == "http" and not config.base_url:
        raise ConfigValidationError(
            "GEOIPT_BASE_URL",
            config.base_url,
            "must not be empty when GEOIPT_STORAGE_BACKEND=http",
        )

    if config.storage_backend == "azure_blob" and not config.blob_container:
        raise ConfigValidationError(
            "GEOIPT_BLOB_CONTAINER",
            config.blob_container,
            "must not be empty when GEOIPT_STORAGE_BACKEND=azure_blob",
        )

    if config.http_timeout_s <= 0:
        raise ConfigValidationError(
            "GEOIPT_HTTP_TIMEOUT_S",
            config.http_timeout_s,
            "must be > 0 (seconds)",
        )

    if not 1 <= config.max_workers <= _MAX_WORKERS_LIMIT:
        raise ConfigValidationError(
            "GEOIPT_MAX_WORKERS",
            config.max_workers,
            f"must be between 1 and {_MAX_WORKERS_LIMIT}",
        )

    if not config.manifest_name:
        raise ConfigValidationError(
            "GEOIPT_MANIFEST_NAME",
            config.manifest_name,
            "must not be empty",
        )

    if not config.listing_name:
        raise ConfigValidationError(
            "GEOIPT_LISTING_NAME",
            config.listing_name,
            "must not be empty",
        )
