"""
HTTP transport used by every adapter and search capability.

Adapters only need two operations: a request that returns the decoded JSON
body, and a stream that yields the raw lines of an SSE body.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Mapping, Optional, Protocol

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from llm_switchboard.errors import (
    DecodeError,
    NetworkError,
    RequestCancelledError,
    RequestTimeoutError,
    classify_transport_error,
    error_for_status,
)

__all__ = ["Transport", "HTTPXTransport"]

Headers = Mapping[str, str]


class Transport(Protocol):
    """What the adapters need from an HTTP client."""

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Headers] = None,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        ...

    def open_stream(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Headers] = None,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> AsyncIterator[str]:
        """Send a request and lazily yield the response body line by line."""
        ...


class HTTPXTransport:
    """
    `Transport` implementation on top of ``httpx.AsyncClient``.

    Non-streaming requests are retried on timeouts and connection failures.
    Streams are never retried: once lines have been handed out a replay
    would duplicate output.
    """

    def __init__(
        self,
        *,
        timeout: float = 60.0,
        stream_timeout: float = 300.0,
        max_retries: int = 2,
        retry_wait: Optional[wait_base] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            timeout: Seconds allowed for a whole non-streaming request.
            stream_timeout: Seconds allowed between two reads of a stream.
            max_retries: Extra attempts after a transient failure.
            retry_wait: tenacity wait strategy between attempts.
            client: Pre-configured client; the transport will not close it.
            logger: Optional custom logger.
        """
        self.timeout = timeout
        self.stream_timeout = stream_timeout
        self.max_retries = max_retries
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=30)
        self.logger = logger or logging.getLogger(__name__)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self.retry_wait,
            retry=retry_if_exception_type((RequestTimeoutError, NetworkError)),
            reraise=True,
        )

    def _ensure_open(self) -> None:
        if self._client.is_closed:
            raise RequestCancelledError("Transport has been closed")

    async def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Headers],
        json: Any,
        params: Optional[Mapping[str, Any]],
    ) -> httpx.Response:
        self._ensure_open()
        try:
            response = await self._client.request(
                method,
                url,
                headers={"Accept": "application/json", **(headers or {})},
                json=json,
                params=params,
            )
        except httpx.HTTPError as exc:
            raise classify_transport_error(exc, self.logger) from exc

        if not response.is_success:
            raise error_for_status(response.status_code, response.text)
        return response

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Headers] = None,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        async for attempt in self._retrying():
            with attempt:
                response = await self._send(method, url, headers, json, params)

        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(
                f"Undecodable response body: {response.text[:200]!r}", exc
            ) from exc

    async def open_stream(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Headers] = None,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> AsyncIterator[str]:
        self._ensure_open()
        try:
            async with self._client.stream(
                method,
                url,
                headers={"Accept": "text/event-stream", **(headers or {})},
                json=json,
                params=params,
                timeout=httpx.Timeout(self.timeout, read=self.stream_timeout),
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise error_for_status(response.status_code, body)
                async for line in response.aiter_lines():
                    yield line
        except httpx.HTTPError as exc:
            raise classify_transport_error(exc, self.logger) from exc

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """Close the underlying client if this transport created it. Safe to call twice."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "HTTPXTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
