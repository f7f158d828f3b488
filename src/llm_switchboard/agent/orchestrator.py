"""
Bounded tool-calling loop and cancellable streaming replies.

One `AgentOrchestrator` drives one conversation session at a time. Every
collaborator (adapter, tool executor, store, rate limiter) is injected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Callable, Optional, Sequence

from llm_switchboard.adapters.base import ProviderAdapter
from llm_switchboard.agent.prompts import build_system_prompt
from llm_switchboard.agent.ratelimit import DailyUsageLimiter, RateLimiter
from llm_switchboard.agent.store import ConversationStore
from llm_switchboard.errors import (
    AgentBusyError,
    InvalidToolResponseError,
    MaxIterationsReachedError,
    NoProviderConfiguredError,
    QuotaExceededError,
)
from llm_switchboard.providers import ProviderConfig
from llm_switchboard.tools.executor import ToolExecutor
from llm_switchboard.tools.search import SearchCapability
from llm_switchboard.transport import Transport
from llm_switchboard.types import ChatMessage, ContentDelta, SkillKind, ToolCall

__all__ = [
    "AgentState",
    "AgentStatus",
    "AgentSession",
    "AgentOrchestrator",
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_HISTORY_LIMIT",
]

DEFAULT_MAX_ITERATIONS = 5
DEFAULT_HISTORY_LIMIT = 20


class AgentState(StrEnum):
    IDLE = "idle"
    THINKING = "thinking"
    CALLING_TOOL = "calling_tool"
    STREAMING = "streaming"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class AgentStatus:
    """Current state plus its detail: the tool name while calling a tool, the message on error."""

    state: AgentState
    detail: Optional[str] = None

    @classmethod
    def idle(cls) -> "AgentStatus":
        return cls(AgentState.IDLE)

    @classmethod
    def thinking(cls) -> "AgentStatus":
        return cls(AgentState.THINKING)

    @classmethod
    def calling_tool(cls, name: str) -> "AgentStatus":
        return cls(AgentState.CALLING_TOOL, name)

    @classmethod
    def streaming(cls) -> "AgentStatus":
        return cls(AgentState.STREAMING)

    @classmethod
    def error(cls, message: str) -> "AgentStatus":
        return cls(AgentState.ERROR, message)

    @property
    def is_busy(self) -> bool:
        return self.state not in (AgentState.IDLE, AgentState.ERROR)


@dataclass(slots=True)
class AgentSession:
    status: AgentStatus = field(default_factory=AgentStatus.idle)
    iteration_count: int = 0
    cancelled: bool = False


StatusCallback = Callable[[AgentStatus], None]
UpdateCallback = Callable[[str], None]


class AgentOrchestrator:
    """
    Run user turns against one provider adapter.

    `run` is the tool-calling loop: the model may call tools up to
    ``max_iterations`` times before it has to answer. `stream_reply` streams
    a plain answer without offering tools and can be interrupted with
    `cancel`.
    """

    def __init__(
        self,
        adapter: Optional[ProviderAdapter],
        executor: ToolExecutor,
        store: ConversationStore,
        *,
        rate_limiter: Optional[RateLimiter] = None,
        quota_limited: bool = False,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        system_prompt: Optional[str] = None,
        on_status: Optional[StatusCallback] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            adapter: Provider adapter, or None when nothing is configured
                (every turn then fails with `NoProviderConfiguredError`).
            executor: Tool executor; its tools are offered to the model.
            store: Conversation persistence.
            rate_limiter: Daily quota, consulted only when *quota_limited*.
            quota_limited: True for the shared built-in credential.
            max_iterations: Upper bound on provider calls per `run`.
            history_limit: Persisted messages included in each context.
            system_prompt: Overrides the generated system prompt.
            on_status: Called with every status change.
            logger: Optional custom logger.
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be >= 1")
        self.adapter = adapter
        self.executor = executor
        self.store = store
        self.rate_limiter = rate_limiter
        self.quota_limited = quota_limited
        self.max_iterations = max_iterations
        self.history_limit = history_limit
        self.system_prompt = system_prompt
        self.on_status = on_status
        self.logger = logger or logging.getLogger(__name__)
        self.session = AgentSession()

    @classmethod
    def from_config(
        cls,
        config: Optional[ProviderConfig],
        store: ConversationStore,
        *,
        search: Optional[SearchCapability] = None,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[Transport] = None,
        logger: Optional[logging.Logger] = None,
        **kwargs,
    ) -> "AgentOrchestrator":
        """
        Wire an orchestrator from a `ProviderConfig`.

        A quota-limited config without an explicit *rate_limiter* gets a
        fresh `DailyUsageLimiter`.
        """
        from llm_switchboard.factory import create_adapter

        adapter = (
            create_adapter(config, transport=transport, logger=logger)
            if config is not None
            else None
        )
        quota_limited = config is not None and config.is_quota_limited
        if quota_limited and rate_limiter is None:
            rate_limiter = DailyUsageLimiter()
        return cls(
            adapter,
            ToolExecutor(search, logger=logger),
            store,
            rate_limiter=rate_limiter,
            quota_limited=quota_limited,
            logger=logger,
            **kwargs,
        )

    # --- status ------------------------------------------------------------
    @property
    def status(self) -> AgentStatus:
        return self.session.status

    def _set_status(self, status: AgentStatus) -> None:
        self.session.status = status
        if self.on_status is not None:
            self.on_status(status)

    def _begin(self, status: AgentStatus) -> None:
        if self.session.status.is_busy:
            raise AgentBusyError(
                f"A turn is already running ({self.session.status.state.value})"
            )
        self.session.iteration_count = 0
        self.session.cancelled = False
        self._set_status(status)

    def cancel(self) -> None:
        """Ask the running turn to stop at its next chunk or iteration boundary."""
        self.session.cancelled = True

    # --- shared steps ------------------------------------------------------
    def _require_adapter(self) -> ProviderAdapter:
        if self.adapter is None:
            raise NoProviderConfiguredError()
        return self.adapter

    def _consume_quota(self) -> None:
        if not self.quota_limited or self.rate_limiter is None:
            return
        # no await between check and increment
        try_acquire = getattr(self.rate_limiter, "try_acquire", None)
        if try_acquire is not None:
            allowed = try_acquire()
        else:
            allowed = self.rate_limiter.can_send()
            if allowed:
                self.rate_limiter.record_usage()
        if not allowed:
            raise QuotaExceededError(self.rate_limiter.reset_description())

    def _system_prompt(self) -> str:
        if self.system_prompt is not None:
            return self.system_prompt
        include_search = any(
            tool.skill_kind is SkillKind.EXTERNAL_CAPABILITY
            for tool in self.executor.available_tools()
        )
        return build_system_prompt(include_search)

    def build_context(self, conversation_id: str, user_message: ChatMessage) -> list[ChatMessage]:
        """
        System prompt, then the most recent persisted messages, then the new turn.

        Persisted system messages and empty assistant messages are skipped.
        Tool results at the start of the window whose calls fell outside it
        are dropped, since no backend accepts an unanswered tool result.
        """
        history = [
            msg
            for msg in self.store.fetch_recent_messages(conversation_id, self.history_limit)
            if msg.role != "system" and not _is_empty_reply(msg)
        ]
        while history and history[0].role == "tool":
            history.pop(0)
        return [ChatMessage.system(self._system_prompt()), *history, user_message]

    def _persist(
        self,
        conversation_id: str,
        message: ChatMessage,
        context: list[ChatMessage],
        produced: list[ChatMessage],
    ) -> None:
        self.store.append(conversation_id, message)
        context.append(message)
        produced.append(message)

    @staticmethod
    def _check_tool_calls(calls: Sequence[ToolCall]) -> None:
        for call in calls:
            if not call.name:
                raise InvalidToolResponseError(f"Tool call {call.id!r} has no name")

    # --- tool-calling loop -------------------------------------------------
    async def run(self, conversation_id: str, user_text: str) -> list[ChatMessage]:
        """
        Process one user turn with tools available.

        Returns:
            The messages this turn produced, in order, starting with the user
            message. Every message is also appended to the store.

        Raises:
            AgentBusyError: Another turn is running.
            NoProviderConfiguredError, QuotaExceededError: Before any request.
            MaxIterationsReachedError: The model kept calling tools.
            SwitchboardError: Transport, HTTP and protocol failures, unchanged.
        """
        self._begin(AgentStatus.thinking())
        started = False
        try:
            adapter = self._require_adapter()
            self._consume_quota()

            user_message = ChatMessage.user(user_text)
            context = self.build_context(conversation_id, user_message)
            self.store.append(conversation_id, user_message)
            started = True
            produced = [user_message]
            tools = self.executor.available_tools()

            while self.session.iteration_count < self.max_iterations:
                if self.session.cancelled:
                    self.logger.info("Turn cancelled after %d iterations", self.session.iteration_count)
                    return produced

                self.session.iteration_count += 1
                self._set_status(AgentStatus.thinking())
                response = await adapter.chat(context, tools)

                if not response.has_tool_calls:
                    if response.content:
                        self._persist(
                            conversation_id,
                            ChatMessage.assistant(response.content),
                            context,
                            produced,
                        )
                    else:
                        self.logger.info("Provider returned an empty answer; nothing saved")
                    return produced

                calls = list(response.tool_calls or [])
                self._check_tool_calls(calls)
                self._persist(
                    conversation_id,
                    ChatMessage.assistant(response.content, calls),
                    context,
                    produced,
                )
                for call in calls:
                    self._set_status(AgentStatus.calling_tool(call.name))
                    result = await self.executor.execute(call)
                    self._persist(
                        conversation_id,
                        ChatMessage.tool_result(call.id, result),
                        context,
                        produced,
                    )

            raise MaxIterationsReachedError(self.max_iterations)

        except Exception as exc:
            self.logger.warning("Turn failed: %s", exc)
            self._set_status(AgentStatus.error(str(exc)))
            raise
        finally:
            if started:
                self.store.touch(conversation_id)
            if self.session.status.is_busy:
                self._set_status(AgentStatus.idle())

    # --- streaming reply ---------------------------------------------------
    async def stream_reply(
        self,
        conversation_id: str,
        user_text: str,
        *,
        on_update: Optional[UpdateCallback] = None,
    ) -> Optional[ChatMessage]:
        """
        Stream a plain answer (no tools) to one user turn.

        *on_update* receives the accumulated text after every content chunk.
        Whatever text arrived before a cancellation or failure is still saved
        as one assistant message.

        Returns:
            The saved assistant message, or None when no text arrived.
        """
        self._begin(AgentStatus.streaming())
        started = False
        text = ""
        message: Optional[ChatMessage] = None
        try:
            adapter = self._require_adapter()
            self._consume_quota()

            user_message = ChatMessage.user(user_text)
            context = self.build_context(conversation_id, user_message)
            self.store.append(conversation_id, user_message)
            started = True

            stream = adapter.chat_stream(context)
            try:
                async for chunk in stream:
                    if self.session.cancelled:
                        break
                    if isinstance(chunk, ContentDelta):
                        text += chunk.text
                        if on_update is not None:
                            on_update(text)
                    if self.session.cancelled:
                        break
            finally:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()

        except Exception as exc:
            self.logger.warning("Streaming turn failed: %s", exc)
            self._set_status(AgentStatus.error(str(exc)))
            raise
        finally:
            if text:
                message = ChatMessage.assistant(text)
                self.store.append(conversation_id, message)
            if started:
                self.store.touch(conversation_id)
            if self.session.status.is_busy:
                self._set_status(AgentStatus.idle())

        return message

    async def aclose(self) -> None:
        if self.adapter is not None:
            await self.adapter.aclose()


def _is_empty_reply(message: ChatMessage) -> bool:
    return message.role == "assistant" and not message.content and not message.tool_calls
