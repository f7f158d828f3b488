from .orchestrator import AgentOrchestrator, AgentSession, AgentState, AgentStatus
from .prompts import build_system_prompt
from .ratelimit import DailyUsageLimiter, RateLimiter
from .store import ConversationStore, InMemoryConversationStore

__all__ = [
    "AgentOrchestrator",
    "AgentSession",
    "AgentState",
    "AgentStatus",
    "build_system_prompt",
    "DailyUsageLimiter",
    "RateLimiter",
    "ConversationStore",
    "InMemoryConversationStore",
]
