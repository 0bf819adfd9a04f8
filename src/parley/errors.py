"""Exception hierarchy shared across parley."""

from __future__ import annotations


class ParleyError(Exception):
    """Base exception for all parley errors."""


class DecodeError(ParleyError, ValueError):
    """A transport frame could not be decoded into a message."""


class TransportClosedError(ParleyError):
    """The session transport is closed or failed."""


class SessionExistsError(ParleyError):
    """A session with the same id is already active."""


class InvalidTransitionError(ParleyError):
    """A turn was moved into a state its current state does not allow."""


class TurnCancelledError(ParleyError):
    """The turn's cancellation token fired while work was in flight."""

    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__(reason)
        self.reason = reason


class ProviderError(ParleyError):
    """Error from an external provider call.

    Attributes:
        retryable: Whether the caller could retry the request.
        provider: Name of the provider that raised the error.
        status_code: HTTP status code from the provider, if available.
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        provider: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.provider = provider
        self.status_code = status_code
