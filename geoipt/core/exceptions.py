"""Unified exception taxonomy for the lookup pipeline.

Every domain exception inherits from ``GeoIptError`` and carries
structured context fields so that callers (the query orchestrator, the
HTTP entry points) can decide whether a failure is fatal to the query,
recoverable for one source, or a caller mistake.

Taxonomy categories
-------------------
- ``ValidationError``: input/contract violations, never retryable.
- ``TransientError``: temporary failures (network, throttle), retryable.
- ``PermanentError``: unrecoverable domain failures, not retryable.
- ``ContractError``: request or payload shape violations, never retryable.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and for the ``error`` field of a
query result.
"""

from __future__ import annotations


class GeoIptError(Exception):
    """Base exception for all lookup-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"resolve_catalog"``, ``"parse_geometry"``).
        code: Machine-readable error code (e.g. ``"CATALOG_UNAVAILABLE"``).
        retryable: Whether retrying the same operation may succeed.
        correlation_id: Request correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(GeoIptError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(GeoIptError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(GeoIptError):
    """Unrecoverable domain failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(GeoIptError):
    """Request or payload shape violation. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
