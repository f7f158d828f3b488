"""Tool executor for the agent loop.

Dispatches a model-issued tool call to the matching skill through a
strategy dict. `ToolExecutor.execute` always returns text: tool failures are
reported back to the model, never raised.
"""

import logging
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from llm_switchboard.errors import SwitchboardError
from llm_switchboard.tools.builtin import (
    BUILTIN_TOOLS,
    WEB_SEARCH,
    GenerateHookInput,
    ScriptFormatterInput,
    TrendAnalyzerInput,
    WebSearchInput,
    format_search_results,
    hook_prompt,
    script_prompt,
    trend_prompt,
)
from llm_switchboard.tools.search import SearchCapability
from llm_switchboard.types import ToolCall, ToolDefinition

_logger = logging.getLogger(__name__)

SEARCH_NOT_CONFIGURED = (
    "Error: web search is not configured. Add a Tavily or SerpAPI key "
    "in settings to enable web search."
)

Handler = Callable[[BaseModel], Awaitable[str]]


def _validation_summary(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"]) or "arguments"
        parts.append(f"{field}: {error['msg']}")
    return "; ".join(parts)


class ToolExecutor:
    """Executes built-in and capability-backed skills."""

    def __init__(
        self,
        search: Optional[SearchCapability] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            search: Backing service for ``web_search``; the skill is only
                offered to the model when this is set.
            logger: Optional custom logger.
        """
        self.search = search
        self.logger = logger or _logger
        # Strategy dict: tool_name -> (InputModel, handler)
        self._handlers: dict[str, tuple[type[BaseModel], Handler]] = {
            "generate_hook": (GenerateHookInput, self._generate_hook),
            "script_formatter": (ScriptFormatterInput, self._script_formatter),
            "trend_analyzer": (TrendAnalyzerInput, self._trend_analyzer),
            "web_search": (WebSearchInput, self._web_search),
        }

    def available_tools(self) -> list[ToolDefinition]:
        tools = list(BUILTIN_TOOLS)
        if self.search is not None:
            tools.append(WEB_SEARCH)
        return tools

    async def execute(self, call: ToolCall) -> str:
        """Run one tool call and return its result text."""
        self.logger.debug("Executing tool %s with arguments %s", call.name, call.arguments)

        entry = self._handlers.get(call.name)
        if entry is None:
            available = ", ".join(tool.name for tool in self.available_tools())
            return f"Unknown tool: {call.name}. Available tools: {available}"

        input_model, handler = entry
        try:
            params = input_model.model_validate(call.arguments_dict())
        except ValidationError as exc:
            return f"Invalid arguments for {call.name}: {_validation_summary(exc)}"

        try:
            return await handler(params)
        except Exception:
            self.logger.exception("Error executing tool %s", call.name)
            return f"Tool {call.name} failed unexpectedly."

    # --- skills ------------------------------------------------------------
    async def _generate_hook(self, params: GenerateHookInput) -> str:
        return hook_prompt(params)

    async def _script_formatter(self, params: ScriptFormatterInput) -> str:
        return script_prompt(params)

    async def _trend_analyzer(self, params: TrendAnalyzerInput) -> str:
        return trend_prompt(params)

    async def _web_search(self, params: WebSearchInput) -> str:
        if self.search is None:
            return SEARCH_NOT_CONFIGURED
        try:
            results = await self.search.search(params.query, params.max_results)
        except SwitchboardError as exc:
            self.logger.warning("Search for %r failed: %s", params.query, exc)
            return f"Search failed: {exc}"
        return format_search_results(params.query, results[: params.max_results])
