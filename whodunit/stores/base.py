"""Abstract base class for data stores."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Self


class StoreError(Exception):
    """Raised when the data store cannot be reached or rejects a request.

    Callers treat this as transient: the operation is skipped and
    superseded by the next periodic attempt.
    """
    pass


class DataStore(ABC):
    """Abstract base class for the shared data store.

    Every table is addressed by a key column, and every write is a full-row
    upsert on that key: the last writer for a key wins. Stores are
    registered via the @register_store decorator in whodunit/stores/__init__.py.
    """

    @classmethod
    @abstractmethod
    def can_open(cls, url: str) -> bool:
        """Check if this store handles the given URL."""
        pass

    @classmethod
    @abstractmethod
    def from_url(cls, url: str, **options) -> Self:
        """Create a store instance for the given URL."""
        pass

    @abstractmethod
    def upsert(self, table: str, key: str, record: dict[str, Any]) -> None:
        """Insert or fully replace the row whose ``key`` column matches the record.

        Args:
            table: Table name
            key: Conflict column; the record must carry its value
            record: Complete row
        """
        pass

    @abstractmethod
    def select_all(self, table: str) -> list[dict[str, Any]]:
        """Return every row of a table."""
        pass

    @abstractmethod
    def delete_all(self, table: str, key: str) -> None:
        """Delete every row of a table.

        Args:
            table: Table name
            key: Key column identifying rows
        """
        pass

    @abstractmethod
    def write_if_null(
        self, table: str, key: str, record: dict[str, Any], field: str
    ) -> bool:
        """Write a record only if its row is absent or has ``field`` set to null.

        This is a single conditional write, never a read followed by a write.

        Returns:
            True if this call wrote the record, False if the row already had
            a value in ``field``.
        """
        pass

    def subscribe(self, table: str, handler: Callable[[str], None]) -> bool:
        """Register a push handler called with the table name after changes.

        Returns:
            False if this store has no push channel and callers must poll.
        """
        return False

    def close(self) -> None:
        """Release any resources held by the store."""
        pass
