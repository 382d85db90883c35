"""ReporterRegistry: Decides which principals may submit observations.

A principal is authorized if it is on the approved allow-list or is one of
the currently active validators. The allow-list is only ever replaced as a
whole.

.. code-block:: python

    >>> registry = ReporterRegistry(StaticValidatorSet(["val1"]))
    >>> registry.set_reporters(["alice"])
    >>> registry.is_authorized("alice"), registry.is_authorized("val1")
    (True, True)
    >>> registry.is_authorized("mallory")
    False
"""

from __future__ import annotations

import logging
from typing import Iterable

from .constants import MAX_ACTIVE_VALIDATORS
from .ValidatorSet import StaticValidatorSet, ValidatorSet

logger = logging.getLogger(__name__)


class ReporterRegistry:
    """Approved reporter allow-list plus active validator lookup.

    :ivar validator_set: Source of the active validators.
    :ivar max_validators: Number of validator set entries considered.
    """

    def __init__(
        self,
        validator_set: ValidatorSet | None = None,
        reporters: Iterable[str] = (),
        max_validators: int = MAX_ACTIVE_VALIDATORS,
    ) -> None:
        """Initialize the registry.

        :param validator_set: Active validator source (default: empty set).
        :param reporters: Initially approved reporters.
        :param max_validators: Validator set entries considered (default: 21).
        """
        self.validator_set = validator_set or StaticValidatorSet()
        self.max_validators = max_validators
        self._approved: set[str] = self._to_set(reporters)

    @staticmethod
    def _to_set(principals: Iterable[str]) -> set[str]:
        if isinstance(principals, str):
            raise ValueError(
                f"principals must be a collection of principals, not the string {principals!r}"
            )
        return set(principals)

    def is_approved(self, principal: str) -> bool:
        return principal in self._approved

    def is_active_validator(self, principal: str) -> bool:
        """Check if principal is among the active validators.

        :param principal: Principal to check.
        :returns: True if principal is an active validator.
        :raises ValidatorSetError: If the validator set is unavailable.
        """
        validators = self.validator_set.get_active_validators()
        return principal in validators[:self.max_validators]

    def is_authorized(self, principal: str) -> bool:
        """Check if principal may submit observations.

        The validator set is only queried for principals not on the
        allow-list.

        :param principal: Principal to check.
        :returns: True if approved or an active validator.
        """
        return self.is_approved(principal) or self.is_active_validator(principal)

    def set_reporters(self, principals: Iterable[str]) -> None:
        """Replace the allow-list contents.

        :param principals: New approved reporters. Duplicates collapse.
        :raises ValueError: If principals is a single string.
        """
        self._approved = self._to_set(principals)
        logger.info(f"Approved reporters set: {len(self._approved)} reporters")

    def reporters(self) -> list[str]:
        """Get the approved reporters in sorted order."""
        return sorted(self._approved)

    def clear(self) -> None:
        self._approved = set()

    def checkpoint(self) -> frozenset[str]:
        return frozenset(self._approved)

    def rollback(self, checkpoint: frozenset[str]) -> None:
        self._approved = set(checkpoint)
