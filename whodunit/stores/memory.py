"""In-process data store."""

import copy
import logging
import threading
from typing import Any, Callable, Self

from whodunit.stores import register_store
from whodunit.stores.base import DataStore, StoreError

logger = logging.getLogger(__name__)


@register_store
class MemoryStore(DataStore):
    """Data store keeping every table in memory.

    Rows live in ``{table: {key value: row}}``. All operations hold a single
    lock, so ``write_if_null`` is atomic across threads sharing the store.
    Push handlers are called synchronously, outside the lock, after each
    write that changed something.

    Expected URL format:
        memory://
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[Any, dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._handlers: dict[str, list[Callable[[str], None]]] = {}

    @classmethod
    def can_open(cls, url: str) -> bool:
        return url.startswith("memory:")

    @classmethod
    def from_url(cls, url: str, **options) -> Self:
        return cls()

    def upsert(self, table: str, key: str, record: dict[str, Any]) -> None:
        if key not in record:
            raise StoreError(f"Record for {table!r} is missing key column {key!r}")
        with self._lock:
            self._tables.setdefault(table, {})[record[key]] = copy.deepcopy(record)
        self._notify(table)

    def select_all(self, table: str) -> list[dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(row) for row in self._tables.get(table, {}).values()]

    def delete_all(self, table: str, key: str) -> None:
        with self._lock:
            rows = self._tables.get(table, {})
            had_rows = bool(rows)
            rows.clear()
        if had_rows:
            self._notify(table)

    def write_if_null(
        self, table: str, key: str, record: dict[str, Any], field: str
    ) -> bool:
        if key not in record:
            raise StoreError(f"Record for {table!r} is missing key column {key!r}")
        with self._lock:
            rows = self._tables.setdefault(table, {})
            existing = rows.get(record[key])
            if existing is not None and existing.get(field) is not None:
                return False
            rows[record[key]] = copy.deepcopy(record)
        self._notify(table)
        return True

    def subscribe(self, table: str, handler: Callable[[str], None]) -> bool:
        with self._lock:
            self._handlers.setdefault(table, []).append(handler)
        return True

    def _notify(self, table: str) -> None:
        with self._lock:
            handlers = list(self._handlers.get(table, []))
        for handler in handlers:
            try:
                handler(table)
            except Exception:
                # A broken subscriber must not fail the write that triggered it
                logger.exception("Change handler for %r failed", table)
