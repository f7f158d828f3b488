"""Gemini ``generateContent`` adapter (native REST format)."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, Sequence

from llm_switchboard.adapters.base import (
    ProviderAdapter,
    new_call_id,
    raise_for_stream_error,
    split_system,
)
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

__all__ = ["GeminiAdapter", "GeminiStreamDecoder"]

# generationConfig field names for the standard params
_GENERATION_KEYS = {
    "temperature": "temperature",
    "max_tokens": "maxOutputTokens",
    "top_p": "topP",
}


def _args_json(args: Any) -> str:
    return json.dumps(args if isinstance(args, dict) else {}, ensure_ascii=False)


def _function_call(part: dict[str, Any]) -> Optional[dict[str, Any]]:
    # responses use camelCase, but accept either spelling
    return part.get("functionCall") or part.get("function_call")


class GeminiStreamDecoder:
    """
    Gemini streams full candidate snapshots rather than deltas.

    Gemini assigns no call ids, so every ``functionCall`` part gets a fresh
    id and is emitted as a start immediately followed by its complete
    arguments.
    """

    def __init__(self, id_factory: Callable[[], str] = new_call_id) -> None:
        self._id_factory = id_factory

    def feed(self, event: dict[str, Any]) -> list[StreamChunk]:
        raise_for_stream_error(event)
        candidates = event.get("candidates") or []
        if not candidates:
            return []
        candidate = candidates[0]

        chunks: list[StreamChunk] = []
        for part in (candidate.get("content") or {}).get("parts") or []:
            if part.get("text"):
                chunks.append(ContentDelta(part["text"]))
            call = _function_call(part)
            if call and call.get("name"):
                call_id = self._id_factory()
                chunks.append(ToolCallStart(call_id, call["name"]))
                chunks.append(ToolCallArgsDelta(call_id, _args_json(call.get("args"))))

        if candidate.get("finishReason"):
            chunks.append(Done(candidate["finishReason"]))
        return chunks


class GeminiAdapter(ProviderAdapter):
    """
    Adapter for ``POST {base_url}/models/{model}:generateContent``.

    The API key travels as the ``key`` query parameter. The assistant role is
    ``model``; tool results are ``user`` turns made of ``function_response``
    parts.
    """

    def endpoint(self, *, stream: bool) -> str:
        method = "streamGenerateContent" if stream else "generateContent"
        return f"{self.base_url}/models/{self.model}:{method}"

    def headers(self) -> dict[str, str]:
        return {}

    def query_params(self, *, stream: bool) -> dict[str, str]:
        if stream:
            return {"key": self.config.api_key, "alt": "sse"}
        return {"key": self.config.api_key}

    # --- request -----------------------------------------------------------
    def build_contents(self, messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
        """
        Convert non-system messages to ``contents``.

        A tool result is answered by function name, which Gemini needs and the
        canonical message lacks, so it is looked up from the assistant call
        with the same id (falling back to the id itself).
        """
        call_names: dict[str, str] = {}
        contents: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == "user":
                contents.append({"role": "user", "parts": [{"text": msg.content or ""}]})

            elif msg.role == "assistant":
                parts: list[dict[str, Any]] = []
                if msg.content:
                    parts.append({"text": msg.content})
                for tc in msg.tool_calls or []:
                    call_names[tc.id] = tc.name
                    parts.append({"function_call": {"name": tc.name, "args": tc.arguments_dict()}})
                if not parts:
                    parts.append({"text": ""})
                contents.append({"role": "model", "parts": parts})

            elif msg.role == "tool":
                call_id = msg.tool_call_id or ""
                part = {
                    "function_response": {
                        "name": call_names.get(call_id, call_id),
                        "response": {"result": msg.content or ""},
                    }
                }
                previous = contents[-1] if contents else None
                if previous is not None and previous["role"] == "user" and all(
                    "function_response" in p for p in previous["parts"]
                ):
                    previous["parts"].append(part)
                else:
                    contents.append({"role": "user", "parts": [part]})

        return contents

    def build_tools(self, tools: Sequence[ToolDefinition]) -> list[dict[str, Any]]:
        return [
            {
                "function_declarations": [
                    {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters.to_json_schema(upper_types=True),
                    }
                    for tool in tools
                ]
            }
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
        body: dict[str, Any] = {"contents": self.build_contents(rest)}
        if system is not None:
            body["system_instruction"] = {"role": "user", "parts": [{"text": system}]}
        if tools:
            body["tools"] = self.build_tools(tools)

        params = dict(params)
        extras = params.pop("extra", {})
        generation: dict[str, Any] = {}
        for key, wire_key in _GENERATION_KEYS.items():
            if key in params:
                generation[wire_key] = params[key]
        stop = stop_list(params.get("stop"))
        if stop:
            generation["stopSequences"] = stop
        if generation:
            body["generationConfig"] = generation

        for key, value in extras.items():
            if key == "generationConfig" and isinstance(value, dict):
                body["generationConfig"] = {**generation, **value}
            else:
                body.setdefault(key, value)
        return body

    # --- response ----------------------------------------------------------
    def parse_response(self, raw: dict[str, Any]) -> ChatResponse:
        usage = _usage(raw.get("usageMetadata"))
        candidates = raw.get("candidates") or []
        if not candidates:
            return ChatResponse(usage=usage, raw=raw)
        candidate = candidates[0]

        texts: list[str] = []
        tool_calls: list[ToolCall] = []
        for part in (candidate.get("content") or {}).get("parts") or []:
            if part.get("text"):
                texts.append(part["text"])
            call = _function_call(part)
            if call and call.get("name"):
                tool_calls.append(
                    ToolCall(id=self.id_factory(), name=call["name"], arguments=_args_json(call.get("args")))
                )

        return ChatResponse(
            content="".join(texts) if texts else None,
            tool_calls=tool_calls or None,
            finish_reason=candidate.get("finishReason"),
            usage=usage,
            raw=raw,
        )

    def new_stream_decoder(self) -> GeminiStreamDecoder:
        return GeminiStreamDecoder(self.id_factory)


def _usage(raw: Optional[dict[str, Any]]) -> Optional[Usage]:
    if not raw:
        return None
    return Usage(
        prompt_tokens=raw.get("promptTokenCount"),
        completion_tokens=raw.get("candidatesTokenCount"),
        total_tokens=raw.get("totalTokenCount"),
    )
