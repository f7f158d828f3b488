"""
Translate transport, HTTP and agent failures into one `SwitchboardError`
hierarchy, while preserving the original exception for full tracebacks.
"""

from __future__ import annotations

import logging
from typing import Final, Optional

import httpx

__all__: tuple[str, ...] = (
    "SwitchboardError",
    "TransportError",
    "RequestTimeoutError",
    "RequestCancelledError",
    "NetworkError",
    "ProtocolError",
    "MalformedResponseError",
    "DecodeError",
    "AuthError",
    "UpstreamRateLimitError",
    "ServerError",
    "HTTPStatusError",
    "AgentError",
    "NoProviderConfiguredError",
    "QuotaExceededError",
    "MaxIterationsReachedError",
    "InvalidToolResponseError",
    "AgentBusyError",
    "error_for_status",
    "classify_transport_error",
)

RECONFIGURE_HINT: Final = "Check your API key in settings, or configure your own key to continue."
RETRY_HINT: Final = "Check your network connection and try again."


class SwitchboardError(RuntimeError):
    """Root of every error raised by llm-switchboard.

    Attributes:
        original_exc: The underlying exception, if this error wraps one.
        hint: A short recovery suggestion suitable for showing to a user.
    """

    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        original_exc: Optional[BaseException] = None,
        *,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        if original_exc is not None:
            self.__cause__ = original_exc
        if hint is not None:
            self.hint = hint


# --- transport --------------------------------------------------------------


class TransportError(SwitchboardError):
    """The request never produced an HTTP response."""


class RequestTimeoutError(TransportError):
    hint = RETRY_HINT


class RequestCancelledError(TransportError):
    pass


class NetworkError(TransportError):
    hint = RETRY_HINT


# --- protocol ---------------------------------------------------------------


class ProtocolError(SwitchboardError):
    """The provider answered, but not in the shape we expect."""


class MalformedResponseError(ProtocolError):
    pass


class DecodeError(ProtocolError):
    pass


# --- HTTP status ------------------------------------------------------------


class HTTPStatusError(SwitchboardError):
    """Non-2xx response that has no more specific class."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        body: Optional[str] = None,
        original_exc: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, original_exc)
        self.status = status
        self.body = body


class AuthError(HTTPStatusError):
    hint = RECONFIGURE_HINT


class UpstreamRateLimitError(HTTPStatusError):
    """The provider itself throttled us (HTTP 429).

    Independent from the local daily quota, see `QuotaExceededError`.
    """

    hint = "The provider is rate limiting requests, please retry later."


class ServerError(HTTPStatusError):
    hint = RETRY_HINT


# --- agent ------------------------------------------------------------------


class AgentError(SwitchboardError):
    """Failures raised by the orchestrator itself."""


class NoProviderConfiguredError(AgentError):
    hint = RECONFIGURE_HINT

    def __init__(self, message: str = "No LLM provider is configured") -> None:
        super().__init__(message)


class QuotaExceededError(AgentError):
    """The local daily allowance for the built-in credential is used up."""

    hint = RECONFIGURE_HINT

    def __init__(self, reset_description: str) -> None:
        super().__init__(
            f"Daily free quota reached, resets {reset_description}"
        )
        self.reset_description = reset_description


class MaxIterationsReachedError(AgentError):
    def __init__(self, max_iterations: int) -> None:
        super().__init__(
            f"Agent stopped after {max_iterations} iterations without a final answer"
        )
        self.max_iterations = max_iterations


class InvalidToolResponseError(AgentError):
    pass


class AgentBusyError(AgentError):
    """A turn is already running for this session."""


# --- mapping helpers ----------------------------------------------------------


def error_for_status(status: int, body: Optional[str] = None) -> HTTPStatusError:
    """Map a non-2xx status code to the matching error class."""
    detail = body.strip() if body else ""
    if status == 401:
        return AuthError("API key is invalid or expired", status=status, body=body)
    if status == 429:
        return UpstreamRateLimitError(
            "Too many requests, please retry later", status=status, body=body
        )
    if 500 <= status <= 599:
        return ServerError(
            f"Server error ({status}): {detail or 'internal server error'}",
            status=status,
            body=body,
        )
    return HTTPStatusError(
        f"HTTP error ({status}): {detail or 'unknown error'}", status=status, body=body
    )


def classify_transport_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> TransportError:
    """Wrap an httpx exception in the matching `TransportError`."""
    log = logger or logging.getLogger("llm_switchboard.errors")

    if isinstance(exc, httpx.TimeoutException):
        err: TransportError = RequestTimeoutError("Request timed out", exc)
    elif isinstance(exc, httpx.TransportError):
        err = NetworkError(f"Network error: {exc}", exc)
    else:
        err = TransportError(f"{exc.__class__.__name__}: {exc}", exc)

    log.warning("Wrapping transport exception", extra={"exc": exc})
    return err
