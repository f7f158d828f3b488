from .builtin import BUILTIN_TOOLS, WEB_SEARCH
from .executor import SEARCH_NOT_CONFIGURED, ToolExecutor
from .search import SearchCapability, SearchResult, SerpAPISearch, TavilySearch

__all__ = [
    "BUILTIN_TOOLS",
    "WEB_SEARCH",
    "SEARCH_NOT_CONFIGURED",
    "ToolExecutor",
    "SearchCapability",
    "SearchResult",
    "SerpAPISearch",
    "TavilySearch",
]
