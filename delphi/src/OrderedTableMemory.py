"""OrderedTableMemory: In-memory OrderedTable with incrementally sorted indices.

Records live in a dict keyed by primary key. Each ordering is a sorted list
maintained with ``bisect`` on insert and erase, so no ordering is ever
re-sorted from scratch.

.. code-block:: python

    >>> table = OrderedTableMemory(
    ...     primary_key=lambda r: r[0], indices={"value": lambda r: r[1]}
    ... )
    >>> table.insert((2, 50))
    >>> table.insert((1, 70))
    >>> table.ordered()
    [(1, 70), (2, 50)]
    >>> table.ordered("value")
    [(2, 50), (1, 70)]
"""

from __future__ import annotations

from bisect import bisect_left, insort
from typing import Any, Callable, TypeVar

from .OrderedTable import OrderedTable

R = TypeVar("R")


class OrderedTableMemory(OrderedTable[R]):
    """In-memory ordered table.

    :ivar index_names: Names of the secondary indices.
    """

    def __init__(
        self,
        primary_key: Callable[[R], int],
        indices: dict[str, Callable[[R], Any]] | None = None,
    ) -> None:
        """Initialize an empty table.

        :param primary_key: Function extracting the primary key of a record.
        :param indices: Dict mapping secondary index names to key functions.
        """
        self._primary_key = primary_key
        self._index_keys: dict[str, Callable[[R], Any]] = dict(indices or {})
        self.index_names = list(self._index_keys)

        self._records: dict[int, R] = {}
        self._primary: list[int] = []
        self._indices: dict[str, list[tuple[Any, int]]] = {
            name: [] for name in self._index_keys
        }

    def insert(self, record: R) -> None:
        key = self._primary_key(record)
        if key in self._records:
            raise KeyError(f"duplicate primary key {key}")

        self._records[key] = record
        insort(self._primary, key)
        for name, key_fn in self._index_keys.items():
            insort(self._indices[name], (key_fn(record), key))

    def erase(self, key: int) -> R:
        record = self._records.pop(key)

        self._remove_sorted(self._primary, key)
        for name, key_fn in self._index_keys.items():
            self._remove_sorted(self._indices[name], (key_fn(record), key))
        return record

    def get(self, key: int) -> R | None:
        return self._records.get(key)

    def replace(self, record: R) -> None:
        key = self._primary_key(record)
        old = self._records[key]

        for name, key_fn in self._index_keys.items():
            old_entry = (key_fn(old), key)
            new_entry = (key_fn(record), key)
            if old_entry != new_entry:
                self._remove_sorted(self._indices[name], old_entry)
                insort(self._indices[name], new_entry)
        self._records[key] = record

    def ordered(self, index: str | None = None) -> list[R]:
        if index is None:
            return [self._records[k] for k in self._primary]
        if index not in self._indices:
            raise ValueError(f"Unknown index '{index}'. Available: {self.index_names}")
        return [self._records[k] for _, k in self._indices[index]]

    def first(self, index: str | None = None) -> R | None:
        if index is not None:
            return super().first(index)
        return self._records[self._primary[0]] if self._primary else None

    def last(self, index: str | None = None) -> R | None:
        if index is not None:
            return super().last(index)
        return self._records[self._primary[-1]] if self._primary else None

    def clear(self) -> None:
        self._records.clear()
        self._primary.clear()
        for entries in self._indices.values():
            entries.clear()

    def __len__(self) -> int:
        return len(self._records)

    @staticmethod
    def _remove_sorted(entries: list, entry: Any) -> None:
        pos = bisect_left(entries, entry)
        if pos == len(entries) or entries[pos] != entry:
            raise KeyError(f"index entry {entry!r} missing")
        del entries[pos]
