"""Tests for the OpenAI-compatible adapter."""

import json

import pytest

from conftest import FakeTransport
from llm_switchboard.adapters.openai import OpenAIAdapter, OpenAIToolCallAccumulator
from llm_switchboard.errors import MalformedResponseError, ServerError
from llm_switchboard.providers import Provider, ProviderConfig
from llm_switchboard.types import (
    ChatMessage,
    ContentDelta,
    Done,
    ParameterProperty,
    ParameterSchema,
    ToolCall,
    ToolCallArgsDelta,
    ToolCallStart,
    ToolDefinition,
)

ECHO_TOOL = ToolDefinition(
    id="echo",
    name="echo",
    description="Echo text back",
    parameters=ParameterSchema(
        properties={"text": ParameterProperty("string", "Text to echo")},
        required=["text"],
    ),
)


def sse(payload: dict) -> str:
    return "data: " + json.dumps(payload)


def tool_delta(index, *, id=None, name=None, args=None) -> str:
    call = {"index": index}
    if id is not None:
        call["id"] = id
    function = {}
    if name is not None:
        function["name"] = name
    if args is not None:
        function["arguments"] = args
    if function:
        call["function"] = function
    return sse({"choices": [{"index": 0, "delta": {"tool_calls": [call]}}]})


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def adapter(transport):
    config = ProviderConfig(provider=Provider.OPENAI, api_key="sk-test")
    return OpenAIAdapter(config, transport=transport)


class TestOpenAIRequest:
    """Request body construction."""

    def test_basic_request(self, adapter):
        body = adapter.build_request(
            [ChatMessage.system("Be brief"), ChatMessage.user("Hello")],
            [],
            {"temperature": 0.7, "max_tokens": 100, "extra": {}},
            stream=False,
        )

        assert body["model"] == "gpt-4o-mini"
        assert body["stream"] is False
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 100
        assert "tools" not in body
        assert body["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hello"},
        ]

    def test_single_system_message(self, adapter):
        """Several system messages collapse into one leading entry."""
        body = adapter.build_request(
            [
                ChatMessage.user("Hi"),
                ChatMessage.system("First"),
                ChatMessage.system("Second"),
            ],
            [],
            {"extra": {}},
            stream=False,
        )

        roles = [m["role"] for m in body["messages"]]
        assert roles == ["system", "user"]
        assert body["messages"][0]["content"] == "First\n\nSecond"

    def test_tool_call_round_trip_messages(self, adapter):
        messages = [
            ChatMessage.user("Echo hi"),
            ChatMessage.assistant(None, [ToolCall("call_1", "echo", '{"text": "hi"}')]),
            ChatMessage.tool_result("call_1", "hi"),
        ]

        body = adapter.build_request(messages, [ECHO_TOOL], {"extra": {}}, stream=True)

        assistant = body["messages"][1]
        assert assistant["content"] is None
        assert assistant["tool_calls"] == [
            {
                "id": "call_1",
                "type": "function",
                "function": {"name": "echo", "arguments": '{"text": "hi"}'},
            }
        ]
        assert body["messages"][2] == {"role": "tool", "content": "hi", "tool_call_id": "call_1"}
        assert body["tools"] == [
            {
                "type": "function",
                "function": {
                    "name": "echo",
                    "description": "Echo text back",
                    "parameters": {
                        "type": "object",
                        "properties": {"text": {"type": "string", "description": "Text to echo"}},
                        "required": ["text"],
                    },
                },
            }
        ]

    def test_extra_params_pass_through(self, adapter):
        body = adapter.build_request(
            [ChatMessage.user("x")], [], {"extra": {"presence_penalty": 0.5}}, stream=False
        )
        assert body["presence_penalty"] == 0.5

    def test_endpoint_and_headers(self, adapter):
        assert adapter.endpoint(stream=True) == "https://api.openai.com/v1/chat/completions"
        assert adapter.headers() == {"Authorization": "Bearer sk-test"}

    def test_compatible_backend_uses_its_base_url(self, transport):
        config = ProviderConfig(provider=Provider.DEEPSEEK, api_key="k")
        adapter = OpenAIAdapter(config, transport=transport)

        assert adapter.endpoint(stream=False) == "https://api.deepseek.com/v1/chat/completions"
        assert adapter.model == "deepseek-chat"


class TestOpenAIChat:
    """Non-streaming responses."""

    @pytest.mark.asyncio
    async def test_chat_with_tool_calls(self, adapter, transport):
        transport.response = {
            "choices": [
                {
                    "message": {
                        "role": "assistant",
                        "content": None,
                        "tool_calls": [
                            {
                                "id": "call_9",
                                "type": "function",
                                "function": {"name": "echo", "arguments": '{"text":"yo"}'},
                            }
                        ],
                    },
                    "finish_reason": "tool_calls",
                }
            ],
            "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
        }

        response = await adapter.chat([ChatMessage.user("hi")], [ECHO_TOOL])

        assert response.content is None
        assert response.tool_calls == [ToolCall("call_9", "echo", '{"text":"yo"}')]
        assert response.finish_reason == "tool_calls"
        assert response.usage.total_tokens == 15

        request = transport.last_request
        assert request["method"] == "POST"
        assert request["json"]["stream"] is False
        assert request["headers"]["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_chat_text(self, adapter, transport):
        transport.response = {
            "choices": [{"message": {"content": "Hello!"}, "finish_reason": "stop"}]
        }

        response = await adapter.chat([ChatMessage.user("hi")])

        assert response.content == "Hello!"
        assert response.tool_calls is None
        assert response.usage is None

    @pytest.mark.asyncio
    async def test_chat_without_choices_is_malformed(self, adapter, transport):
        transport.response = {"choices": []}

        with pytest.raises(MalformedResponseError):
            await adapter.chat([ChatMessage.user("hi")])

    @pytest.mark.asyncio
    async def test_object_arguments_are_encoded(self, adapter, transport):
        transport.response = {
            "choices": [
                {
                    "message": {
                        "tool_calls": [
                            {"id": "c", "function": {"name": "echo", "arguments": {"text": "x"}}}
                        ]
                    }
                }
            ]
        }

        response = await adapter.chat([ChatMessage.user("hi")])

        assert json.loads(response.tool_calls[0].arguments) == {"text": "x"}

    @pytest.mark.asyncio
    async def test_calls_without_ids_get_distinct_ids(self, transport):
        ids = iter(["gen_1", "gen_2"])
        config = ProviderConfig(provider=Provider.KIMI, api_key="k")
        adapter = OpenAIAdapter(config, transport=transport, id_factory=lambda: next(ids))
        transport.response = {
            "choices": [
                {
                    "message": {
                        "tool_calls": [
                            {"function": {"name": "echo", "arguments": '{"text":"a"}'}},
                            {"id": "", "function": {"name": "echo", "arguments": '{"text":"b"}'}},
                            {"id": "call_kept", "function": {"name": "echo", "arguments": "{}"}},
                        ]
                    },
                    "finish_reason": "tool_calls",
                }
            ]
        }

        response = await adapter.chat([ChatMessage.user("hi")])

        assert [tc.id for tc in response.tool_calls] == ["gen_1", "gen_2", "call_kept"]


class TestOpenAIStream:
    """Streaming decoding."""

    @pytest.mark.asyncio
    async def test_tool_call_deltas_are_accumulated_by_index(self, adapter, transport):
        transport.lines = [
            tool_delta(0, id="a", name="f"),
            tool_delta(0, args='{"x":'),
            tool_delta(0, args="1}"),
            sse({"choices": [{"index": 0, "delta": {}, "finish_reason": "tool_calls"}]}),
            "data: [DONE]",
        ]

        chunks = [c async for c in adapter.chat_stream([ChatMessage.user("go")])]

        assert chunks == [
            ToolCallStart("a", "f"),
            ToolCallArgsDelta("a", '{"x":'),
            ToolCallArgsDelta("a", "1}"),
            Done("tool_calls"),
        ]
        args = "".join(c.fragment for c in chunks if isinstance(c, ToolCallArgsDelta))
        assert json.loads(args) == {"x": 1}
        assert transport.last_request["json"]["stream"] is True

    @pytest.mark.asyncio
    async def test_content_and_noise_lines(self, adapter, transport):
        transport.lines = [
            ": keep-alive",
            "",
            sse({"choices": [{"delta": {"role": "assistant", "content": "Hel"}}]}),
            "data: {not json",
            sse({"choices": [{"delta": {"content": "lo"}}]}),
            sse({"choices": [{"delta": {}, "finish_reason": "stop"}]}),
            "data: [DONE]",
            sse({"choices": [{"delta": {"content": "after done"}}]}),
        ]

        chunks = [c async for c in adapter.chat_stream([ChatMessage.user("hi")])]

        assert chunks == [ContentDelta("Hel"), ContentDelta("lo"), Done("stop")]
        assert transport.stream_closed

    @pytest.mark.asyncio
    async def test_stream_without_finish_reason_still_ends_with_done(self, adapter, transport):
        transport.lines = [sse({"choices": [{"delta": {"content": "x"}}]})]

        chunks = [c async for c in adapter.chat_stream([ChatMessage.user("hi")])]

        assert chunks == [ContentDelta("x"), Done()]

    @pytest.mark.asyncio
    async def test_closing_the_stream_closes_the_transport(self, adapter, transport):
        transport.lines = [sse({"choices": [{"delta": {"content": str(i)}}]}) for i in range(10)]

        stream = adapter.chat_stream([ChatMessage.user("hi")])
        first = await stream.__anext__()
        await stream.aclose()

        assert first == ContentDelta("0")
        assert transport.stream_closed
        assert transport.lines_consumed == 1

    @pytest.mark.asyncio
    async def test_error_event_without_code_raises(self, adapter, transport):
        transport.lines = [
            sse({"choices": [{"delta": {"content": "par"}}]}),
            sse({"error": {"message": "server overloaded", "type": "server_error", "code": None}}),
            "data: [DONE]",
        ]
        chunks = []

        with pytest.raises(MalformedResponseError, match="server overloaded"):
            async for chunk in adapter.chat_stream([ChatMessage.user("hi")]):
                chunks.append(chunk)

        assert chunks == [ContentDelta("par")]
        assert transport.stream_closed

    @pytest.mark.asyncio
    async def test_error_event_with_status_code_maps_like_http(self, adapter, transport):
        transport.lines = [sse({"error": {"message": "upstream unavailable", "code": 503}})]

        with pytest.raises(ServerError) as exc_info:
            _ = [c async for c in adapter.chat_stream([ChatMessage.user("hi")])]

        assert exc_info.value.status == 503
        assert json.loads(exc_info.value.body)["message"] == "upstream unavailable"


class TestOpenAIToolCallAccumulator:
    def test_parallel_calls_keep_their_own_ids(self):
        acc = OpenAIToolCallAccumulator()
        out = []
        for line in [
            {"choices": [{"delta": {"tool_calls": [{"index": 0, "id": "a", "function": {"name": "f", "arguments": ""}}]}}]},
            {"choices": [{"delta": {"tool_calls": [{"index": 1, "id": "b", "function": {"name": "g", "arguments": "{}"}}]}}]},
            {"choices": [{"delta": {"tool_calls": [{"index": 0, "function": {"arguments": "{\"k\":2}"}}]}}]},
        ]:
            out.extend(acc.feed(line))

        assert out == [
            ToolCallStart("a", "f"),
            ToolCallStart("b", "g"),
            ToolCallArgsDelta("b", "{}"),
            ToolCallArgsDelta("a", '{"k":2}'),
        ]
        assert acc.tool_calls() == [ToolCall("a", "f", '{"k":2}'), ToolCall("b", "g", "{}")]

    def test_args_before_name_are_held_back(self):
        acc = OpenAIToolCallAccumulator()

        first = acc.feed({"choices": [{"delta": {"tool_calls": [{"index": 0, "id": "a", "function": {"arguments": "{"}}]}}]})
        second = acc.feed({"choices": [{"delta": {"tool_calls": [{"index": 0, "function": {"name": "f", "arguments": "}"}}]}}]})

        assert first == []
        assert second == [ToolCallStart("a", "f"), ToolCallArgsDelta("a", "{}")]
