"""WindowStore: Fixed-capacity sliding window of price observations.

Observations are keyed by a strictly decreasing ``sequence``. The first
observation ever stored gets ``MAX_SEQUENCE`` and each later one gets the
current minimum minus one, so an ascending primary scan yields the newest
observation first and the oldest last. Once the window is full, each insert
first evicts the record with the largest sequence (the oldest).

.. code-block:: python

    >>> store = WindowStore(capacity=2)
    >>> store.insert_evicting(150, "alice", 1).sequence == MAX_SEQUENCE
    True
    >>> store.insert_evicting(160, "bob", 2).sequence == MAX_SEQUENCE - 1
    True
    >>> _ = store.insert_evicting(170, "carol", 3)
    >>> [o.reporter for o in store.recency_ordered_snapshot()]
    ['carol', 'bob']
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .constants import CAPACITY, MAX_SEQUENCE
from .OrderedTable import OrderedTable
from .OrderedTableMemory import OrderedTableMemory

logger = logging.getLogger(__name__)

VALUE_INDEX = "value"
TIMESTAMP_INDEX = "timestamp"


@dataclass(frozen=True)
class Observation:
    """One accepted price report.

    :ivar sequence: Primary key, strictly decreasing with insertion order.
    :ivar reporter: Principal that submitted the value.
    :ivar value: Submitted fixed-point value.
    :ivar average: Published average computed when this record was inserted.
    :ivar timestamp: Acceptance time in microseconds.
    """

    sequence: int
    reporter: str
    value: int
    average: int
    timestamp: int

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "reporter": self.reporter,
            "value": self.value,
            "average": self.average,
            "timestamp": self.timestamp,
        }


def new_observation_table() -> OrderedTableMemory[Observation]:
    """Create an in-memory table with the window's orderings."""
    return OrderedTableMemory(
        primary_key=lambda o: o.sequence,
        indices={
            VALUE_INDEX: lambda o: o.value,
            TIMESTAMP_INDEX: lambda o: o.timestamp,
        },
    )


class WindowStore:
    """Bounded window of observations with recency, value and time orderings.

    :ivar capacity: Maximum number of observations held.
    """

    def __init__(
        self,
        capacity: int = CAPACITY,
        table: OrderedTable[Observation] | None = None,
    ) -> None:
        """Initialize the store.

        :param capacity: Maximum number of observations held (default: 21).
        :param table: Backing table. Must index ``value`` and ``timestamp``.
            Defaults to an in-memory table.
        :raises ValueError: If capacity is not positive.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.capacity = capacity
        self._table = table if table is not None else new_observation_table()

    def size(self) -> int:
        return len(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def is_full(self) -> bool:
        return len(self._table) >= self.capacity

    def insert_evicting(self, value: int, reporter: str, now: int) -> Observation:
        """Insert a new observation, evicting the oldest if the window is full.

        The new record's average is initialized to its own value.

        :param value: Submitted value.
        :param reporter: Submitting principal.
        :param now: Acceptance time in microseconds.
        :returns: The inserted observation.
        :raises OverflowError: If the sequence space is exhausted.
        """
        newest = self._table.first()
        if newest is None:
            sequence = MAX_SEQUENCE
        elif newest.sequence == 0:
            raise OverflowError("observation sequence space exhausted")
        else:
            sequence = newest.sequence - 1

        if len(self._table) + 1 > self.capacity:
            oldest = self._table.last()
            assert oldest is not None
            self._table.erase(oldest.sequence)
            logger.debug(
                f"Evicted observation {oldest.sequence} "
                f"(reporter={oldest.reporter}, value={oldest.value})"
            )

        observation = Observation(
            sequence=sequence,
            reporter=reporter,
            value=value,
            average=value,
            timestamp=now,
        )
        self._table.insert(observation)
        return observation

    def update_average(self, sequence: int, average: int) -> Observation:
        """Replace the average of one observation.

        :param sequence: Primary key of the observation.
        :param average: New average.
        :returns: The updated observation.
        :raises KeyError: If no such observation exists.
        """
        current = self._table.get(sequence)
        if current is None:
            raise KeyError(f"no observation with sequence {sequence}")
        updated = replace(current, average=average)
        self._table.replace(updated)
        return updated

    def get(self, sequence: int) -> Observation | None:
        return self._table.get(sequence)

    def latest(self) -> Observation | None:
        """Return the most recently inserted observation, or None."""
        return self._table.first()

    def recency_ordered_snapshot(self) -> list[Observation]:
        """Return observations newest first (ascending sequence)."""
        return self._table.ordered()

    def value_ordered_snapshot(self) -> list[Observation]:
        """Return observations by ascending value, ties by ascending sequence."""
        return self._table.ordered(VALUE_INDEX)

    def timestamp_ordered_snapshot(self) -> list[Observation]:
        """Return observations by ascending timestamp, ties by ascending sequence."""
        return self._table.ordered(TIMESTAMP_INDEX)

    def clear_all(self) -> None:
        self._table.clear()

    def checkpoint(self) -> list[Observation]:
        """Capture the current contents for a later rollback.

        Observations are immutable, so a shallow list is a full copy.
        """
        return self._table.ordered()

    def rollback(self, checkpoint: list[Observation]) -> None:
        """Restore the contents captured by checkpoint()."""
        self._table.clear()
        for observation in checkpoint:
            self._table.insert(observation)
