"""Exception hierarchy for RESAS API failures.

Every failure raised by :class:`~resas_downloader.client.ResasClient`
derives from :class:`ResasAPIError`, so callers can catch a single type.
The ``retryable`` flag tells the retry loop whether another attempt may
succeed.
"""

from __future__ import annotations


class ResasAPIError(Exception):
    """Raised when a RESAS API request cannot produce a usable result."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class ResasTransportError(ResasAPIError):
    """Network-level failure (connection refused, timeout, reset)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=True)


class ResasStatusError(ResasAPIError):
    """Non-success status, either in the HTTP response or in the JSON body."""


class ResasDecodeError(ResasAPIError):
    """Response body is not valid JSON or does not match the requested schema."""


class RetryExhaustedError(ResasAPIError):
    """All attempts allowed by the retry policy failed."""

    def __init__(
        self,
        message: str,
        *,
        attempts: int,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.attempts = attempts
