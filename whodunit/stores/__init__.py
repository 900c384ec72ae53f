"""Data store backends holding votes, scores and the shared session row."""

from .base import DataStore, StoreError

# Store registry - import stores here to register them
_stores: list[type[DataStore]] = []


def register_store(store_class: type[DataStore]) -> type[DataStore]:
    """Decorator to register a data store class."""
    _stores.append(store_class)
    return store_class


def get_all_stores() -> list[type[DataStore]]:
    """Return all registered store classes."""
    return _stores.copy()


def open_store(url: str, **options) -> DataStore:
    """Open the first registered store that accepts the given URL.

    Raises:
        StoreError: If no registered store can open the URL
    """
    for store_class in _stores:
        if store_class.can_open(url):
            return store_class.from_url(url, **options)
    raise StoreError(f"No data store available for {url!r}")


# Imported last so the backends can register themselves.
from . import memory  # noqa: E402,F401
from . import postgrest  # noqa: E402,F401
