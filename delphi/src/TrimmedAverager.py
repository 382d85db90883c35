"""TrimmedAverager: Asymmetric trimmed mean over a full observation window.

Algorithm:
    1. Require exactly ``window_size`` observations ordered by ascending value
    2. Skip the ``skip_lowest`` lowest values
    3. Take the next ``take`` values
    4. Return their arithmetic mean, truncated to an integer

With the defaults (21 / 5 / 9) the 5 lowest and the 7 highest values are
discarded. The extra trimming at the top end biases the published average
against upward manipulation, so it is deliberately not a symmetric trim.

.. code-block:: python

    >>> averager = TrimmedAverager()
    >>> averager.compute_values(list(range(100, 121)))
    109
"""

from __future__ import annotations

from typing import Sequence

from .constants import CAPACITY, TRIM_SKIP_LOWEST, TRIM_TAKE
from .WindowStore import Observation


class TrimmedAverager:
    """Computes the published average of a full window.

    :ivar window_size: Number of observations expected in a snapshot.
    :ivar skip_lowest: Number of lowest values discarded.
    :ivar take: Number of values averaged after the skipped ones.
    """

    def __init__(
        self,
        window_size: int = CAPACITY,
        skip_lowest: int = TRIM_SKIP_LOWEST,
        take: int = TRIM_TAKE,
    ) -> None:
        """Initialize the averager.

        :param window_size: Expected snapshot length (default: 21).
        :param skip_lowest: Lowest values to discard (default: 5).
        :param take: Values to average after the skipped ones (default: 9).
        :raises ValueError: If parameters are inconsistent.
        """
        if skip_lowest < 0:
            raise ValueError("skip_lowest must not be negative")
        if take < 1:
            raise ValueError("take must be at least 1")
        if skip_lowest + take > window_size:
            raise ValueError("skip_lowest + take must not exceed window_size")

        self.window_size = window_size
        self.skip_lowest = skip_lowest
        self.take = take

    def compute(self, value_ordered_snapshot: Sequence[Observation]) -> int:
        """Compute the trimmed average of a value-ordered window snapshot.

        :param value_ordered_snapshot: Observations ascending by value.
        :returns: Integer-truncated mean of the retained values.
        :raises ValueError: If the snapshot is not exactly window_size long.
        """
        return self.compute_values([o.value for o in value_ordered_snapshot])

    def compute_values(self, sorted_values: Sequence[int]) -> int:
        """Compute the trimmed average of ascending values.

        :param sorted_values: Values in ascending order.
        :returns: Integer-truncated mean of the retained values.
        :raises ValueError: If there are not exactly window_size values.
        """
        if len(sorted_values) != self.window_size:
            raise ValueError(
                f"expected {self.window_size} values, got {len(sorted_values)}"
            )

        kept = sorted_values[self.skip_lowest:self.skip_lowest + self.take]
        return sum(kept) // self.take
