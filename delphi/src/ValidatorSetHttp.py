"""ValidatorSetHttp: Validator set fetched from a node's HTTP endpoint."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from .errors import ValidatorSetError
from .principal import normalize_principal
from .ValidatorSet import ValidatorSet

logger = logging.getLogger(__name__)

# Retry configuration for validator set requests
MAX_RETRIES = 5
BACKOFF_BASE = 1.0
BACKOFF_MAX = 5.0


class ValidatorSetHttp(ValidatorSet):
    """Validator set served as JSON over HTTP.

    The endpoint must return either a list of addresses or an object with a
    ``validators`` list. List entries may be address strings or objects with
    an ``address`` field.

    :ivar url: Endpoint URL.
    :ivar timeout: Request timeout in seconds.
    :ivar max_retries: Attempts before giving up.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        max_retries: int = MAX_RETRIES,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP validator set.

        :param url: Endpoint URL returning the active validators.
        :param timeout: Request timeout in seconds (default: 10).
        :param max_retries: Attempts before giving up (default: 5).
        :param transport: Optional httpx transport override.
        :raises ValueError: If max_retries is less than 1.
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.url = url
        self.timeout = timeout
        self.max_retries = max_retries
        self._transport = transport

    def _get(self) -> httpx.Response:
        """GET the endpoint with retry and backoff.

        :returns: HTTP response.
        :raises ValidatorSetError: If max retries exceeded.
        """
        with httpx.Client(transport=self._transport, timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                try:
                    logger.debug("GET %s (attempt %d)", self.url, attempt + 1)
                    response = client.get(self.url)
                    if response.is_success:
                        return response
                    logger.warning(
                        "Validator set GET %s failed: %s %s (attempt %d/%d)",
                        self.url,
                        response.status_code,
                        response.reason_phrase,
                        attempt + 1,
                        self.max_retries,
                    )
                except httpx.RequestError as exc:
                    logger.warning(
                        "Validator set GET %s error: %s (attempt %d/%d)",
                        self.url,
                        exc,
                        attempt + 1,
                        self.max_retries,
                    )
                if attempt + 1 < self.max_retries:
                    time.sleep(min(BACKOFF_BASE * (1.5 ** attempt), BACKOFF_MAX))

        raise ValidatorSetError(
            f"Validator set GET {self.url} failed after {self.max_retries} attempts"
        )

    def get_active_validators(self) -> list[str]:
        response = self._get()
        try:
            payload = response.json()
        except ValueError as exc:
            raise ValidatorSetError(f"Invalid JSON from {self.url}: {exc}") from exc
        return self._parse(payload)

    def _parse(self, payload: Any) -> list[str]:
        if isinstance(payload, dict):
            payload = payload.get("validators")
        if not isinstance(payload, list):
            raise ValidatorSetError(f"Unexpected validator set payload from {self.url}")

        validators: list[str] = []
        for entry in payload:
            address = entry.get("address") if isinstance(entry, dict) else entry
            if not isinstance(address, str):
                raise ValidatorSetError(f"Invalid validator entry: {entry!r}")
            try:
                validators.append(normalize_principal(address))
            except ValueError as exc:
                raise ValidatorSetError(str(exc)) from exc
        return validators
