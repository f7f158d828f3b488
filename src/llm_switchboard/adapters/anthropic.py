"""Anthropic Messages API adapter."""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from anthropic.types import MessageParam, ToolParam, ToolResultBlockParam

from llm_switchboard.adapters.base import ProviderAdapter, split_system
from llm_switchboard.errors import MalformedResponseError, ServerError, UpstreamRateLimitError
from llm_switchboard.params import stop_list
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

__all__ = ["AnthropicAdapter", "AnthropicStreamDecoder", "ANTHROPIC_VERSION", "DEFAULT_MAX_TOKENS"]

ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096


class AnthropicStreamDecoder:
    """Map Anthropic stream events to canonical chunks, tracking open tool_use blocks by index."""

    def __init__(self) -> None:
        self._tool_ids: dict[int, str] = {}
        self._current_tool_id: Optional[str] = None
        self._stop_reason: Optional[str] = None

    def feed(self, event: dict[str, Any]) -> list[StreamChunk]:
        kind = event.get("type")

        if kind == "content_block_start":
            block = event.get("content_block") or {}
            if block.get("type") == "tool_use" and block.get("id") and block.get("name"):
                self._current_tool_id = block["id"]
                self._tool_ids[event.get("index", 0)] = block["id"]
                return [ToolCallStart(block["id"], block["name"])]
            return []

        if kind == "content_block_delta":
            delta = event.get("delta") or {}
            if delta.get("text"):
                return [ContentDelta(delta["text"])]
            partial = delta.get("partial_json")
            tool_id = self._tool_ids.get(event.get("index", -1), self._current_tool_id)
            if partial and tool_id:
                return [ToolCallArgsDelta(tool_id, partial)]
            return []

        if kind == "content_block_stop":
            self._current_tool_id = None
            return []

        if kind == "message_delta":
            # reported once, on message_stop
            self._stop_reason = (event.get("delta") or {}).get("stop_reason") or self._stop_reason
            return []

        if kind == "message_stop":
            return [Done(self._stop_reason)]

        if kind == "error":
            raise _stream_error(event.get("error") or {})

        # message_start, ping
        return []


def _stream_error(error: dict[str, Any]) -> Exception:
    message = error.get("message") or "unknown stream error"
    kind = error.get("type")
    if kind == "overloaded_error":
        return ServerError(f"Anthropic overloaded: {message}", status=529, body=json.dumps(error))
    if kind == "rate_limit_error":
        return UpstreamRateLimitError(
            "Too many requests, please retry later", status=429, body=json.dumps(error)
        )
    return MalformedResponseError(f"Anthropic stream error ({kind}): {message}")


class AnthropicAdapter(ProviderAdapter):
    """
    Adapter for ``POST {base_url}/messages``.

    Anthropic has no ``tool`` role: tool results travel as ``user`` messages
    made of ``tool_result`` blocks, and the system prompt is a top-level field.
    """

    def endpoint(self, *, stream: bool) -> str:
        return f"{self.base_url}/messages"

    def headers(self) -> dict[str, str]:
        return {"x-api-key": self.config.api_key, "anthropic-version": ANTHROPIC_VERSION}

    # --- request -----------------------------------------------------------
    def build_messages(self, messages: Sequence[ChatMessage]) -> list[MessageParam]:
        """Convert non-system messages; consecutive tool results share one user message."""
        out: list[MessageParam] = []
        for msg in messages:
            if msg.role == "tool":
                block: ToolResultBlockParam = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id or "",
                    "content": msg.content or "",
                }
                previous = out[-1] if out else None
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and all(b.get("type") == "tool_result" for b in previous["content"])
                ):
                    previous["content"].append(block)
                else:
                    out.append({"role": "user", "content": [block]})
            elif msg.role == "assistant" and msg.tool_calls:
                blocks: list[dict[str, Any]] = []
                if msg.content:
                    blocks.append({"type": "text", "text": msg.content})
                blocks.extend(
                    {
                        "type": "tool_use",
                        "id": tc.id,
                        "name": tc.name,
                        "input": tc.arguments_dict(),
                    }
                    for tc in msg.tool_calls
                )
                out.append({"role": "assistant", "content": blocks})
            elif msg.role == "assistant" and not msg.content:
                # the API rejects empty assistant turns
                continue
            else:
                out.append({"role": msg.role, "content": msg.content or ""})  # type: ignore[typeddict-item]
        return out

    def build_tools(self, tools: Sequence[ToolDefinition]) -> list[ToolParam]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.parameters.to_json_schema(),
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
        system, rest = split_system(messages)
        params = dict(params)
        extras = params.pop("extra", {})

        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": params.pop("max_tokens", DEFAULT_MAX_TOKENS),
        }
        if system is not None:
            body["system"] = system
        body["messages"] = self.build_messages(rest)
        body["stream"] = stream
        if tools:
            body["tools"] = self.build_tools(tools)

        stop = stop_list(params.pop("stop", None))
        if stop:
            body["stop_sequences"] = stop
        body.update(params)
        for key, value in extras.items():
            body.setdefault(key, value)
        return body

    # --- response ----------------------------------------------------------
    def parse_response(self, raw: dict[str, Any]) -> ChatResponse:
        blocks = raw.get("content")
        if not isinstance(blocks, list):
            raise MalformedResponseError("Response has no content blocks")

        texts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in blocks:
            kind = block.get("type")
            if kind == "text" and block.get("text"):
                texts.append(block["text"])
            elif kind == "tool_use" and block.get("id") and block.get("name"):
                tool_calls.append(
                    ToolCall(
                        id=block["id"],
                        name=block["name"],
                        arguments=json.dumps(block.get("input") or {}, ensure_ascii=False),
                    )
                )

        return ChatResponse(
            content="".join(texts) if texts else None,
            tool_calls=tool_calls or None,
            finish_reason=raw.get("stop_reason"),
            usage=_usage(raw.get("usage")),
            raw=raw,
        )

    def new_stream_decoder(self) -> AnthropicStreamDecoder:
        return AnthropicStreamDecoder()


def _usage(raw: Optional[dict[str, Any]]) -> Optional[Usage]:
    if not raw:
        return None
    prompt = raw.get("input_tokens")
    completion = raw.get("output_tokens")
    total = prompt + completion if prompt is not None and completion is not None else None
    return Usage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)
