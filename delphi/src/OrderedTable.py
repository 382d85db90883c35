"""OrderedTable: Abstract indexed record table consumed by the window store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Iterator, TypeVar

R = TypeVar("R")


class OrderedTable(ABC, Generic[R]):
    """Abstract table of records ordered by an integer primary key.

    Implementations keep the primary ordering plus any number of named
    secondary orderings. Secondary index ties are broken by ascending
    primary key.
    """

    @abstractmethod
    def insert(self, record: R) -> None:
        """Insert a new record.

        :param record: Record to insert.
        :raises KeyError: If a record with the same primary key exists.
        """
        pass

    @abstractmethod
    def erase(self, key: int) -> R:
        """Remove a record by primary key.

        :param key: Primary key of the record.
        :returns: The removed record.
        :raises KeyError: If no such record exists.
        """
        pass

    @abstractmethod
    def get(self, key: int) -> R | None:
        """Look up a record by primary key.

        :param key: Primary key of the record.
        :returns: The record, or None if absent.
        """
        pass

    @abstractmethod
    def replace(self, record: R) -> None:
        """Replace the stored record that has the same primary key.

        :param record: Replacement record.
        :raises KeyError: If no record with that primary key exists.
        """
        pass

    @abstractmethod
    def ordered(self, index: str | None = None) -> list[R]:
        """Return all records in index order.

        :param index: Secondary index name, or None for primary key order.
        :returns: Records in ascending order of the index.
        :raises ValueError: If the index is unknown.
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every record."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

    def first(self, index: str | None = None) -> R | None:
        """Return the lowest record in index order, or None if empty."""
        records = self.ordered(index)
        return records[0] if records else None

    def last(self, index: str | None = None) -> R | None:
        """Return the highest record in index order, or None if empty."""
        records = self.ordered(index)
        return records[-1] if records else None

    def __iter__(self) -> Iterator[R]:
        return iter(self.ordered())
