"""RateLimiter: Per-reporter submission cooldown tracking.

A reporter's first accepted submission creates its stats record with a
count of zero. Each later submission is accepted only once the cooldown
has elapsed since the last accepted one, in which case the timestamp
advances and the count increments. A rejected submission leaves the
record untouched.

.. code-block:: python

    >>> limiter = RateLimiter(cooldown=55_000_000)
    >>> limiter.check_and_record("alice", 0)
    >>> limiter.check_and_record("alice", 10_000_000)
    Traceback (most recent call last):
        ...
    delphi.src.errors.RateLimited: alice is rate limited, retry in 45.0s
    >>> limiter.check_and_record("alice", 55_000_000)
    >>> limiter.get("alice").submission_count
    1
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .constants import COOLDOWN
from .errors import RateLimited

logger = logging.getLogger(__name__)


@dataclass
class ReporterStats:
    """Submission bookkeeping for one reporter.

    :ivar reporter: Reporter principal.
    :ivar last_timestamp: Time of the last accepted submission (microseconds).
    :ivar submission_count: Accepted submissions after the first one.
    """

    reporter: str
    last_timestamp: int
    submission_count: int = 0

    def to_dict(self) -> dict:
        return {
            "reporter": self.reporter,
            "last_timestamp": self.last_timestamp,
            "submission_count": self.submission_count,
        }


class RateLimiter:
    """Rejects submissions that arrive faster than the cooldown.

    :ivar cooldown: Minimum microseconds between accepted submissions.
    """

    def __init__(self, cooldown: int = COOLDOWN) -> None:
        """Initialize the rate limiter.

        :param cooldown: Minimum microseconds between accepted submissions
            of the same reporter (default: 55 seconds).
        :raises ValueError: If cooldown is negative.
        """
        if cooldown < 0:
            raise ValueError("cooldown must not be negative")

        self.cooldown = cooldown
        self._stats: dict[str, ReporterStats] = {}

    def check_and_record(self, reporter: str, now: int) -> None:
        """Accept a submission from reporter at now, or reject it.

        :param reporter: Submitting principal.
        :param now: Current time in microseconds.
        :raises RateLimited: If the cooldown has not elapsed.
        """
        stats = self._stats.get(reporter)
        if stats is None:
            self._stats[reporter] = ReporterStats(reporter=reporter, last_timestamp=now)
            logger.debug(f"First submission recorded for {reporter}")
            return

        elapsed = now - stats.last_timestamp
        if elapsed < self.cooldown:
            raise RateLimited(reporter, self.cooldown - elapsed)

        stats.last_timestamp = now
        stats.submission_count += 1

    def get(self, reporter: str) -> ReporterStats | None:
        """Get the stats of a reporter.

        :param reporter: Reporter principal.
        :returns: Copy of the ReporterStats, or None if the reporter never
            submitted.
        """
        stats = self._stats.get(reporter)
        return replace(stats) if stats is not None else None

    def all_stats(self) -> dict[str, ReporterStats]:
        """Get a copy of every reporter's stats.

        :returns: Dict mapping reporters to copies of their stats.
        """
        return {r: replace(s) for r, s in self._stats.items()}

    def clear(self) -> None:
        self._stats = {}

    def __len__(self) -> int:
        return len(self._stats)

    def checkpoint(self) -> dict[str, ReporterStats]:
        return self.all_stats()

    def rollback(self, checkpoint: dict[str, ReporterStats]) -> None:
        self._stats = {r: replace(s) for r, s in checkpoint.items()}
