"""OpenAI Chat Completions adapter, also used for OpenAI-compatible backends (DeepSeek, Kimi)."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from openai.types.chat import (
    ChatCompletionAssistantMessageParam,
    ChatCompletionSystemMessageParam,
    ChatCompletionToolMessageParam,
    ChatCompletionToolParam,
    ChatCompletionUserMessageParam,
)

from llm_switchboard.adapters.base import ProviderAdapter, raise_for_stream_error, split_system
from llm_switchboard.errors import MalformedResponseError
from llm_switchboard.types import (
    ChatMessage,
    ChatResponse,
    ContentDelta,
    Done,
    StreamChunk,
    ToolCall,
    ToolCallArgsDelta,
    ToolCallStart,
    ToolDefinition,
    Usage,
)

__all__ = ["OpenAIAdapter", "OpenAIToolCallAccumulator"]


@dataclass(slots=True)
class _PendingCall:
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""
    started: bool = False


class OpenAIToolCallAccumulator:
    """
    Accumulate streamed ``tool_calls`` deltas per provider index.

    OpenAI sends the call id and function name once, on the first delta for
    an index, and argument fragments on later deltas. A call is announced
    (`ToolCallStart`) as soon as both id and name are known; fragments that
    arrive before that are held back and released right after the start.
    """

    def __init__(self) -> None:
        self._calls: dict[int, _PendingCall] = {}

    def feed(self, event: dict[str, Any]) -> list[StreamChunk]:
        chunks: list[StreamChunk] = []
        raise_for_stream_error(event)
        for choice in event.get("choices") or []:
            delta = choice.get("delta") or {}

            content = delta.get("content")
            if content:
                chunks.append(ContentDelta(content))

            for tool_delta in delta.get("tool_calls") or []:
                chunks.extend(self._feed_tool_delta(tool_delta))

            finish_reason = choice.get("finish_reason")
            if finish_reason:
                chunks.append(Done(finish_reason))
        return chunks

    def _feed_tool_delta(self, tool_delta: dict[str, Any]) -> list[StreamChunk]:
        index = tool_delta.get("index") or 0
        pending = self._calls.setdefault(index, _PendingCall())
        function = tool_delta.get("function") or {}

        if tool_delta.get("id"):
            pending.id = tool_delta["id"]
        if function.get("name"):
            pending.name = function["name"]

        fragment = function.get("arguments") or ""
        out: list[StreamChunk] = []

        if not pending.started:
            pending.arguments += fragment
            if pending.id and pending.name:
                pending.started = True
                out.append(ToolCallStart(pending.id, pending.name))
                if pending.arguments:
                    out.append(ToolCallArgsDelta(pending.id, pending.arguments))
            return out

        if fragment:
            pending.arguments += fragment
            out.append(ToolCallArgsDelta(pending.id, fragment))  # type: ignore[arg-type]
        return out

    def tool_calls(self) -> list[ToolCall]:
        """The calls seen so far, in index order."""
        return [
            ToolCall(id=call.id, name=call.name, arguments=call.arguments or "{}")
            for _, call in sorted(self._calls.items())
            if call.id and call.name
        ]


class OpenAIAdapter(ProviderAdapter):
    """
    Adapter for ``POST {base_url}/chat/completions``.

    Messages map 1:1 by role; tool schemas nest under ``function.parameters``.
    """

    def endpoint(self, *, stream: bool) -> str:
        return f"{self.base_url}/chat/completions"

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    # --- request -----------------------------------------------------------
    def build_messages(self, messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
        """Convert canonical messages, collapsing every system message into one leading entry."""
        system, rest = split_system(messages)
        out: list[dict[str, Any]] = []
        if system is not None:
            out.append(ChatCompletionSystemMessageParam(role="system", content=system))

        for msg in rest:
            if msg.role == "tool":
                out.append(
                    ChatCompletionToolMessageParam(
                        role="tool",
                        content=msg.content or "",
                        tool_call_id=msg.tool_call_id or "",
                    )
                )
            elif msg.role == "assistant":
                assistant: ChatCompletionAssistantMessageParam = {"role": "assistant"}
                if msg.tool_calls:
                    assistant["content"] = msg.content
                    assistant["tool_calls"] = [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {"name": tc.name, "arguments": tc.arguments},
                        }
                        for tc in msg.tool_calls
                    ]
                else:
                    assistant["content"] = msg.content or ""
                out.append(assistant)
            else:
                out.append(ChatCompletionUserMessageParam(role="user", content=msg.content or ""))
        return out

    def build_tools(self, tools: Sequence[ToolDefinition]) -> list[ChatCompletionToolParam]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters.to_json_schema(),
                },
            }
            for tool in tools
        ]

    def build_request(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[ToolDefinition],
        params: dict[str, Any],
        *,
        stream: bool,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": self.build_messages(messages),
            "stream": stream,
        }
        if tools:
            body["tools"] = self.build_tools(tools)

        params = dict(params)
        extras = params.pop("extra", {})
        body.update(params)
        for key, value in extras.items():
            body.setdefault(key, value)
        return body

    # --- response ----------------------------------------------------------
    def parse_response(self, raw: dict[str, Any]) -> ChatResponse:
        choices = raw.get("choices")
        if not choices:
            raise MalformedResponseError("Response has no choices")
        choice = choices[0]
        message = choice.get("message") or {}

        tool_calls = [
            ToolCall(
                id=tc.get("id") or self.id_factory(),
                name=(tc.get("function") or {}).get("name") or "",
                arguments=_arguments_text((tc.get("function") or {}).get("arguments")),
            )
            for tc in message.get("tool_calls") or []
        ]

        return ChatResponse(
            content=message.get("content"),
            tool_calls=tool_calls or None,
            finish_reason=choice.get("finish_reason"),
            usage=_usage(raw.get("usage")),
            raw=raw,
        )

    def new_stream_decoder(self) -> OpenAIToolCallAccumulator:
        return OpenAIToolCallAccumulator()


def _arguments_text(arguments: Any) -> str:
    # some compatible backends send an object instead of a JSON string
    if arguments is None or arguments == "":
        return "{}"
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments, ensure_ascii=False)


def _usage(raw: Optional[dict[str, Any]]) -> Optional[Usage]:
    if not raw:
        return None
    return Usage(
        prompt_tokens=raw.get("prompt_tokens"),
        completion_tokens=raw.get("completion_tokens"),
        total_tokens=raw.get("total_tokens"),
    )
