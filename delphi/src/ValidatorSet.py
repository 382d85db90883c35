"""ValidatorSet: Source of the platform's currently active validators.

Active validators are implicitly trusted as reporters. The set changes over
time, so the registry queries it on demand through this interface instead
of holding a copy.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Iterable

logger = logging.getLogger(__name__)


class ValidatorSet(ABC):
    """Abstract base class for validator set sources."""

    @abstractmethod
    def get_active_validators(self) -> list[str]:
        """Fetch the currently active validators.

        :returns: List of validator principals.
        :raises ValidatorSetError: If the set cannot be determined.
        """
        pass


class StaticValidatorSet(ValidatorSet):
    """Validator set fixed at construction time.

    :ivar validators: The validator principals.
    """

    def __init__(self, validators: Iterable[str] = ()) -> None:
        self.validators = list(validators)

    def get_active_validators(self) -> list[str]:
        return list(self.validators)


class CachedValidatorSet(ValidatorSet):
    """Caches another validator set for a limited time.

    :ivar inner: The wrapped validator set.
    :ivar ttl: Seconds a fetched set stays fresh.
    """

    DEFAULT_TTL_SECONDS = 60.0

    def __init__(self, inner: ValidatorSet, ttl: float = DEFAULT_TTL_SECONDS) -> None:
        """Initialize the cache.

        :param inner: Validator set to cache.
        :param ttl: Seconds a fetched set stays fresh (default: 60).
        :raises ValueError: If ttl is negative.
        """
        if ttl < 0:
            raise ValueError("ttl must not be negative")

        self.inner = inner
        self.ttl = ttl
        self._validators: list[str] = []
        self._timestamp: float | None = None

    def is_stale(self) -> bool:
        """Check if the cached set must be refreshed.

        :returns: True if nothing was fetched yet or the set is older than
            the TTL.
        """
        if self._timestamp is None:
            return True
        return time.time() - self._timestamp > self.ttl

    def get_active_validators(self) -> list[str]:
        if self.is_stale():
            validators = self.inner.get_active_validators()
            self._validators = list(validators)
            self._timestamp = time.time()
            logger.debug(f"Validator set refreshed: {len(validators)} validators")
        return list(self._validators)

    def invalidate(self) -> None:
        """Drop the cached set so the next query refreshes it."""
        self._validators = []
        self._timestamp = None
