"""Abstract storage interface implemented by SqliteAdapter.

An adapter stores the records of one collection, described by a Schema,
under the keys the schema serializes. Absence is reported through return
values (None, False, empty lists); only writes raise StoreError.
"""

from abc import ABC, abstractmethod
from typing import Any, Sequence

from .query import Query
from .schema import Schema


class PersistenceAdapter(ABC):
    """
    Key/value view of one collection.

    Subclasses must implement every operation below for records described
    by self.schema.
    """

    schema: Schema

    @abstractmethod
    def initialize(self) -> bool:
        """Create the backing storage if it does not exist. False on failure."""
        pass

    @abstractmethod
    def load(self, key: Any) -> Any | None:
        """Return the record stored under key, or None."""
        pass

    @abstractmethod
    def contains(self, key: Any) -> bool:
        pass

    @abstractmethod
    def store(self, key: Any, record: Any) -> None:
        """
        Insert a new record.

        Raises:
            StoreError: If the record cannot be serialized or the key is taken
        """
        pass

    @abstractmethod
    def upsert(self, key: Any, record: Any) -> None:
        """Insert a record, replacing any record already stored under key."""
        pass

    @abstractmethod
    def update(self, key: Any, record: Any, only: Sequence[str] | None = None) -> None:
        """
        Overwrite the stored fields of key with those of record.

        Args:
            key: Key of the row to update (a missing row is not an error)
            record: Source of the new field values
            only: Names of the fields to write; all non-key fields if None

        Raises:
            StoreError: If the record cannot be serialized
        """
        pass

    @abstractmethod
    def delete(self, key: Any) -> bool:
        """Remove the record under key. True unless the backend failed."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every record."""
        pass

    @abstractmethod
    def scan(self, start: int = 0, limit: int | None = None) -> list[tuple[Any, Any]]:
        """
        List (key, record) pairs in ascending key order.

        Args:
            start: Number of pairs to skip
            limit: Maximum number of pairs to return; unlimited if None

        Returns:
            The pairs; records that cannot be deserialized are left out
        """
        pass


class QueryableAdapter(PersistenceAdapter):
    """Adapter that can also filter records with a predicate."""

    @abstractmethod
    def query(self, query: Query, start: int = 0, limit: int | None = None) -> list[tuple[Any, Any]]:
        """Like scan(), restricted to records matching query."""
        pass
