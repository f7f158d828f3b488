"""Shared fakes for the test suite."""

from typing import Any, Optional

import pytest

from llm_switchboard.agent.store import InMemoryConversationStore
from llm_switchboard.types import ChatResponse, StreamChunk


class FakeTransport:
    """Records requests and replays a canned body or canned SSE lines."""

    def __init__(self, response: Any = None, lines: Optional[list[str]] = None) -> None:
        self.response = response
        self.lines = list(lines or [])
        self.requests: list[dict[str, Any]] = []
        self.lines_consumed = 0
        self.stream_closed = False

    def _record(self, method, url, headers, json, params) -> None:
        self.requests.append(
            {"method": method, "url": url, "headers": headers, "json": json, "params": params}
        )

    @property
    def last_request(self) -> dict[str, Any]:
        return self.requests[-1]

    async def request(self, method, url, *, headers=None, json=None, params=None):
        self._record(method, url, headers, json, params)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    async def open_stream(self, method, url, *, headers=None, json=None, params=None):
        self._record(method, url, headers, json, params)
        try:
            for line in self.lines:
                self.lines_consumed += 1
                yield line
        finally:
            self.stream_closed = True


class ScriptedProvider:
    """
    Stand-in for a `ProviderAdapter`.

    `chat` returns the scripted responses in order (the last one repeats);
    `chat_stream` yields the scripted chunks.
    """

    def __init__(
        self,
        responses: Optional[list[ChatResponse]] = None,
        chunks: Optional[list[StreamChunk]] = None,
        stream_error: Optional[Exception] = None,
    ) -> None:
        self.responses = list(responses or [])
        self.chunks = list(chunks or [])
        self.stream_error = stream_error
        self.calls: list[dict[str, Any]] = []
        self.chunks_pulled = 0
        self.stream_closed = False
        self.closed = False

    async def chat(self, messages, tools=None, *, params=None):
        self.calls.append({"messages": list(messages), "tools": list(tools or [])})
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        return response

    async def chat_stream(self, messages, tools=None, *, params=None):
        self.calls.append({"messages": list(messages), "tools": list(tools or [])})
        try:
            for chunk in self.chunks:
                self.chunks_pulled += 1
                yield chunk
            if self.stream_error is not None:
                raise self.stream_error
        finally:
            self.stream_closed = True

    async def aclose(self):
        self.closed = True


@pytest.fixture
def store():
    return InMemoryConversationStore()


@pytest.fixture
def fake_transport():
    return FakeTransport()
