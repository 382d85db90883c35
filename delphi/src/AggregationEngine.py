"""AggregationEngine: Accepts price submissions and publishes the trimmed average.

Submission pipeline:
    1. Authorization: reporter must be approved or an active validator
    2. Range: value must lie within [min_value, max_value]
    3. Rate limit: reporter's cooldown must have elapsed
    4. Insert into the window, evicting the oldest observation if full
    5. If the window is full, store the trimmed average on the new
       observation; otherwise its average is its own value

Every public operation runs under the engine's lock. Validator set lookups,
which may go over the network, happen before it is taken. Mutating
operations checkpoint the window, reporter stats and allow-list first and
restore them if anything raises, so a failed call leaves no trace.

.. code-block:: python

    >>> engine = AggregationEngine(EngineConfig(admin="admin"))
    >>> engine.set_reporters("admin", ["alice"])
    >>> engine.submit("alice", 150, now=0).average
    150
    >>> engine.submit("alice", 160, now=1_000_000)
    Traceback (most recent call last):
        ...
    delphi.src.errors.RateLimited: alice is rate limited, retry in 54.0s
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from .constants import (
    CAPACITY,
    COOLDOWN,
    MAX_VALUE,
    MIN_VALUE,
    TRIM_SKIP_LOWEST,
    TRIM_TAKE,
)
from .errors import OutOfRange, RateLimited, Unauthorized
from .OrderedTable import OrderedTable
from .RateLimiter import RateLimiter, ReporterStats
from .ReporterRegistry import ReporterRegistry
from .TrimmedAverager import TrimmedAverager
from .WindowStore import Observation, WindowStore

logger = logging.getLogger(__name__)


def current_time_micros() -> int:
    """Return the current wall-clock time in microseconds."""
    return time.time_ns() // 1_000


@dataclass
class EngineConfig:
    """Engine parameters.

    :ivar admin: Principal allowed to run administrative operations.
    :ivar capacity: Observations retained in the window.
    :ivar min_value: Lowest accepted value (inclusive).
    :ivar max_value: Highest accepted value (inclusive).
    :ivar cooldown: Microseconds between a reporter's accepted submissions.
    :ivar skip_lowest: Lowest values discarded by the trimmed average.
    :ivar take: Values averaged after the discarded ones.
    """

    admin: str
    capacity: int = CAPACITY
    min_value: int = MIN_VALUE
    max_value: int = MAX_VALUE
    cooldown: int = COOLDOWN
    skip_lowest: int = TRIM_SKIP_LOWEST
    take: int = TRIM_TAKE

    def __post_init__(self) -> None:
        if not self.admin:
            raise ValueError("admin must be specified")
        if self.min_value > self.max_value:
            raise ValueError("min_value must not exceed max_value")


class AggregationEngine:
    """Rolling price feed for a single tracked quantity.

    :ivar config: Engine parameters.
    :ivar registry: Reporter authorization.
    :ivar clock: Callable returning the current time in microseconds.
    """

    def __init__(
        self,
        config: EngineConfig,
        registry: ReporterRegistry | None = None,
        clock: Callable[[], int] | None = None,
        table: OrderedTable[Observation] | None = None,
    ) -> None:
        """Initialize the engine.

        :param config: Engine parameters.
        :param registry: Reporter registry (default: empty allow-list and
            no active validators).
        :param clock: Time source in microseconds (default: system clock).
        :param table: Backing table for the window (default: in memory).
        :raises ValueError: If the configuration is inconsistent.
        """
        self.config = config
        self.registry = registry or ReporterRegistry()
        self.clock = clock or current_time_micros

        self._averager = TrimmedAverager(
            window_size=config.capacity,
            skip_lowest=config.skip_lowest,
            take=config.take,
        )
        self._limiter = RateLimiter(config.cooldown)
        self._window = WindowStore(config.capacity, table=table)
        self._lock = threading.RLock()

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Serialize an operation and undo its writes if it raises."""
        with self._lock:
            window = self._window.checkpoint()
            stats = self._limiter.checkpoint()
            reporters = self.registry.checkpoint()
            try:
                yield
            except BaseException:
                self._window.rollback(window)
                self._limiter.rollback(stats)
                self.registry.rollback(reporters)
                raise

    def submit(self, reporter: str, value: int, now: int | None = None) -> Observation:
        """Submit a price observation.

        The validator set is queried before the engine lock is taken, so a
        slow validator source does not stall other operations.

        :param reporter: Authenticated submitting principal.
        :param value: Fixed-point value.
        :param now: Submission time in microseconds (default: clock()).
        :returns: The stored observation, including its published average.
        :raises ValueError: If now is not a non-negative integer.
        :raises Unauthorized: If reporter is neither approved nor an active
            validator.
        :raises OutOfRange: If value is outside [min_value, max_value].
        :raises RateLimited: If reporter's cooldown has not elapsed.
        :raises ValidatorSetError: If the validator set could not be queried.
        """
        if now is None:
            now = self.clock()
        if isinstance(now, bool) or not isinstance(now, int) or now < 0:
            raise ValueError(f"Timestamp must be a non-negative integer, got {now!r}")

        active_validator = None
        if not self.registry.is_approved(reporter):
            active_validator = self.registry.is_active_validator(reporter)

        with self._transaction():
            authorized = self.registry.is_approved(reporter)
            if not authorized:
                # Allow-list changed since the lookup above
                if active_validator is None:
                    active_validator = self.registry.is_active_validator(reporter)
                authorized = active_validator

            if not authorized:
                logger.warning(f"Rejected submission from unauthorized {reporter}")
                raise Unauthorized(
                    reporter, f"{reporter} is not an active validator or approved reporter"
                )

            if (
                isinstance(value, bool)
                or not isinstance(value, int)
                or not self.config.min_value <= value <= self.config.max_value
            ):
                logger.warning(f"Rejected out of range value {value!r} from {reporter}")
                raise OutOfRange(value, self.config.min_value, self.config.max_value)

            try:
                self._limiter.check_and_record(reporter, now)
            except RateLimited as exc:
                logger.warning(f"Rejected submission: {exc}")
                raise

            observation = self._window.insert_evicting(value, reporter, now)
            if self._window.is_full():
                average = self._averager.compute(self._window.value_ordered_snapshot())
                observation = self._window.update_average(observation.sequence, average)

            logger.info(
                f"Accepted {value} from {reporter} "
                f"(sequence={observation.sequence}, average={observation.average}, "
                f"window={self._window.size()}/{self._window.capacity})"
            )
            return observation

    def set_reporters(self, caller: str, principals: Iterable[str]) -> None:
        """Replace the approved reporter list.

        :param caller: Authenticated calling principal.
        :param principals: New approved reporters.
        :raises Unauthorized: If caller is not the administrator.
        """
        with self._transaction():
            self._require_admin(caller)
            self.registry.set_reporters(principals)

    def reset_all(self, caller: str) -> None:
        """Clear reporter stats, the observation window and the allow-list.

        :param caller: Authenticated calling principal.
        :raises Unauthorized: If caller is not the administrator.
        """
        with self._transaction():
            self._require_admin(caller)
            self._limiter.clear()
            self._window.clear_all()
            self.registry.clear()
            logger.info("All oracle state cleared")

    def _require_admin(self, caller: str) -> None:
        if caller != self.config.admin:
            logger.warning(f"Rejected administrative call from {caller}")
            raise Unauthorized(caller, f"{caller} is not the administrator")

    def window(self) -> list[Observation]:
        """Get the observation window, newest first."""
        with self._lock:
            return self._window.recency_ordered_snapshot()

    def latest(self) -> Observation | None:
        """Get the newest observation, or None if the window is empty."""
        with self._lock:
            return self._window.latest()

    def latest_average(self) -> int | None:
        """Get the currently published average, or None if nothing was submitted."""
        latest = self.latest()
        return latest.average if latest is not None else None

    def reporter_stats(self) -> dict[str, ReporterStats]:
        with self._lock:
            return self._limiter.all_stats()

    def reporters(self) -> list[str]:
        with self._lock:
            return self.registry.reporters()

    def snapshot(self) -> dict:
        """Get all read-only state as plain data.

        :returns: Dict with the window (newest first), reporter stats, the
            approved reporters and the published average.
        """
        with self._lock:
            return {
                "average": self.latest_average(),
                "window": [o.to_dict() for o in self.window()],
                "stats": [s.to_dict() for s in self.reporter_stats().values()],
                "reporters": self.reporters(),
            }
