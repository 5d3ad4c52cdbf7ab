"""Per-query session context and the per-batch geometry cache.

The lookup pipeline keeps no module-level state.  Everything a query
needs (configuration, the storage adapter, a correlation identifier)
travels in an explicit ``QueryContext`` passed to the resolver and the
containment engine.

``GeometryCache`` is created fresh for every query batch.  It is keyed
by ``(folder_key, file_name)`` and guarantees each file is fetched and
parsed at most once even when several worker threads ask for it at the
same time.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from geoipt.core.config import LookupConfig

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

    from geoipt.storage.base import GeometryStorage

logger = logging.getLogger("geoipt.core.context")

T = TypeVar("T")


class _Entry(Generic[T]):
    """One cache slot: filled exactly once, then read by every waiter."""

    __slots__ = ("done", "error", "value")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: T | None = None
        self.error: BaseException | None = None


class GeometryCache(Generic[T]):
    """Load-once cache for parsed geometry within one query batch.

    The first caller for a key runs the loader; concurrent callers for
    the same key block until it finishes and then share its result.  A
    loader failure is stored and re-raised to every caller for that key,
    so a broken file is fetched once per batch, not once per reference.
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, _Entry[T]] = {}
        self._lock = threading.Lock()
        self._load_count = 0

    def get_or_load(self, key: Hashable, loader: Callable[[], T]) -> T:
        with self._lock:
            entry = self._entries.get(key)
            owner = entry is None
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
                self._load_count += 1

        if owner:
            try:
                entry.value = loader()
            except Exception as exc:
                entry.error = exc
            finally:
                entry.done.set()
        else:
            logger.debug("Geometry cache hit | key=%s", key)
            entry.done.wait()

        if entry.error is not None:
            raise entry.error
        return entry.value  # type: ignore[return-value]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def load_count(self) -> int:
        """Number of loader invocations since construction."""
        return self._load_count


@dataclass(slots=True)
class QueryContext:
    """Explicit session object threaded through one or more queries.

    Attributes:
        storage: Adapter used for every manifest, listing and geometry fetch.
        config: Lookup configuration (paths, worker count).
        correlation_id: Identifier stamped on log lines and error payloads.
    """

    storage: GeometryStorage
    config: LookupConfig = field(default_factory=LookupConfig)
    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_config(cls, config: LookupConfig | None = None) -> QueryContext:
        """Build a context whose storage adapter is selected by *config*.

        Defaults to ``LookupConfig.from_env()``.
        """
        from geoipt.storage.factory import storage_from_config

        config = config or LookupConfig.from_env()
        return cls(storage=storage_from_config(config), config=config)

    def close(self) -> None:
        self.storage.close()

    def __enter__(self) -> QueryContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
