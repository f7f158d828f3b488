"""Base class shared by the provider adapters. All adapters are async-first."""
from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable, Optional, Protocol, Sequence

from llm_switchboard.errors import MalformedResponseError, error_for_status
from llm_switchboard.params import merge_params
from llm_switchboard.providers import ProviderConfig
from llm_switchboard.sse import decode_sse_event, is_done_line
from llm_switchboard.transport import HTTPXTransport, Transport
from llm_switchboard.types import ChatMessage, ChatResponse, Done, StreamChunk, ToolDefinition

__all__ = ["ProviderAdapter", "StreamDecoder", "split_system", "new_call_id", "raise_for_stream_error"]


def new_call_id() -> str:
    """Id for a tool call the backend sent without one."""
    return f"call_{uuid.uuid4().hex}"


def raise_for_stream_error(event: dict[str, Any]) -> None:
    """
    Raise if a decoded stream event is an ``{"error": {...}}`` payload.

    OpenAI-compatible backends and Gemini report failures that happen after
    the HTTP 200 this way. A numeric ``code`` maps like an HTTP status.
    """
    error = event.get("error")
    if not error:
        return
    if not isinstance(error, dict):
        error = {"message": str(error)}
    body = json.dumps(error, ensure_ascii=False)
    code = error.get("code")
    if isinstance(code, int) and not isinstance(code, bool) and code >= 400:
        raise error_for_status(code, body)
    raise MalformedResponseError(f"Stream error: {error.get('message') or body}")


class StreamDecoder(Protocol):
    """
    Per-call accumulator that turns decoded SSE events into canonical chunks.

    A new decoder is created for every `chat_stream` call and dropped when the
    stream ends, so partial tool-call state never leaks between calls.
    """

    def feed(self, event: dict[str, Any]) -> list[StreamChunk]:
        ...


def split_system(messages: Sequence[ChatMessage]) -> tuple[Optional[str], list[ChatMessage]]:
    """
    Pull every system message out of *messages*.

    Returns the system texts joined into one prompt (None if there were none)
    and the remaining messages in their original order.
    """
    system_parts: list[str] = []
    rest: list[ChatMessage] = []
    for msg in messages:
        if msg.role == "system":
            if msg.content:
                system_parts.append(msg.content)
        else:
            rest.append(msg)
    return ("\n\n".join(system_parts) if system_parts else None), rest


class ProviderAdapter(ABC):
    """
    Translate canonical chat state to one backend's wire format and back.

    Subclasses describe the wire format (endpoint, headers, request body,
    response and stream decoding); this class owns the request flow.
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        transport: Optional[Transport] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        default_params: Optional[dict[str, Any]] = None,
        id_factory: Callable[[], str] = new_call_id,
    ) -> None:
        """
        Args:
            config: Provider, key, base URL and model to talk to.
            transport: HTTP transport; an `HTTPXTransport` owned by this
                adapter is created when omitted.
            logger: Optional logger instance. If None, a logger named after
                this module will be used.
            name: Optional name for this component, used in logging.
                If None, defaults to the concrete class's name.
            default_params: Generation params applied to every call,
                overridden per call.
            id_factory: Makes ids for tool calls the backend left unnamed.
        """
        self.config = config
        self.model = config.resolved_model
        self.base_url = config.resolved_base_url
        self.logger = logger or logging.getLogger(__name__)
        self.name = name if name is not None else self.__class__.__name__
        self.default_params = default_params or {}
        self.id_factory = id_factory
        self._owns_transport = transport is None
        self.transport: Transport = transport or HTTPXTransport(logger=self.logger)

    # --- wire format -------------------------------------------------------
    @abstractmethod
    def endpoint(self, *, stream: bool) -> str:
        ...

    @abstractmethod
    def headers(self) -> dict[str, str]:
        ...

    def query_params(self, *, stream: bool) -> Optional[dict[str, str]]:
        return None

    @abstractmethod
    def build_request(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[ToolDefinition],
        params: dict[str, Any],
        *,
        stream: bool,
    ) -> dict[str, Any]:
        """Return the JSON body for one request."""
        ...

    @abstractmethod
    def parse_response(self, raw: dict[str, Any]) -> ChatResponse:
        """Decode a non-streaming response body."""
        ...

    @abstractmethod
    def new_stream_decoder(self) -> StreamDecoder:
        ...

    # --- request flow ------------------------------------------------------
    async def chat(
        self,
        messages: Sequence[ChatMessage],
        tools: Optional[Sequence[ToolDefinition]] = None,
        *,
        params: Optional[dict[str, Any]] = None,
    ) -> ChatResponse:
        """
        Send the conversation and wait for the complete reply.

        Raises:
            TransportError, HTTPStatusError subclasses, ProtocolError.
        """
        body = self.build_request(
            messages, tools or [], merge_params(self.default_params, params), stream=False
        )
        self._log(f"chat model={self.model} stream=False tools={len(tools or [])}")
        raw = await self.transport.request(
            "POST",
            self.endpoint(stream=False),
            headers=self.headers(),
            json=body,
            params=self.query_params(stream=False),
        )
        if not isinstance(raw, dict):
            raise MalformedResponseError(
                f"Expected a JSON object, got {type(raw).__name__}"
            )
        return self.parse_response(raw)

    async def chat_stream(
        self,
        messages: Sequence[ChatMessage],
        tools: Optional[Sequence[ToolDefinition]] = None,
        *,
        params: Optional[dict[str, Any]] = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream the reply as canonical chunks.

        The stream always ends with at least one `Done`. Closing this
        generator early closes the underlying transport stream.
        """
        body = self.build_request(
            messages, tools or [], merge_params(self.default_params, params), stream=True
        )
        self._log(f"chat model={self.model} stream=True tools={len(tools or [])}")
        decoder = self.new_stream_decoder()
        lines = self.transport.open_stream(
            "POST",
            self.endpoint(stream=True),
            headers=self.headers(),
            json=body,
            params=self.query_params(stream=True),
        )
        saw_done = False
        try:
            async for line in lines:
                if is_done_line(line):
                    break
                event = decode_sse_event(line)
                if event is None:
                    continue
                for chunk in decoder.feed(event):
                    saw_done = saw_done or isinstance(chunk, Done)
                    yield chunk
        finally:
            aclose = getattr(lines, "aclose", None)
            if aclose is not None:
                await aclose()

        if not saw_done:
            yield Done()

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """Close the transport if this adapter created it."""
        if self._owns_transport:
            aclose = getattr(self.transport, "aclose", None)
            if aclose is not None:
                await aclose()

    async def __aenter__(self) -> "ProviderAdapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")
