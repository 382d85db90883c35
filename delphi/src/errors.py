"""Exceptions raised by the aggregation engine and its collaborators."""


class OracleError(Exception):
    """Base exception for price feed errors."""

    pass


class Unauthorized(OracleError):
    """Raised when a principal may not perform the requested operation.

    :ivar principal: The rejected principal.
    """

    def __init__(self, principal: str, message: str | None = None):
        """Initialize the error.

        :param principal: The rejected principal.
        :param message: Optional override for the default message.
        """
        self.principal = principal
        super().__init__(message or f"{principal} is not authorized")


class OutOfRange(OracleError):
    """Raised when a submitted value falls outside the allowed range.

    :ivar value: The rejected value.
    :ivar min_value: Lower bound (inclusive).
    :ivar max_value: Upper bound (inclusive).
    """

    def __init__(self, value: object, min_value: int, max_value: int):
        self.value = value
        self.min_value = min_value
        self.max_value = max_value
        super().__init__(
            f"value {value!r} outside of allowed range [{min_value}, {max_value}]"
        )


class RateLimited(OracleError):
    """Raised when a reporter submits again before the cooldown elapsed.

    :ivar reporter: The reporter that was rate limited.
    :ivar retry_after: Microseconds until the next submission is accepted.
    """

    def __init__(self, reporter: str, retry_after: int):
        self.reporter = reporter
        self.retry_after = retry_after
        super().__init__(
            f"{reporter} is rate limited, retry in {retry_after / 1_000_000:.1f}s"
        )


class ValidatorSetError(OracleError):
    """Raised when the active validator set cannot be determined."""

    pass
