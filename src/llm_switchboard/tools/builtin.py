"""Built-in skills: tool definitions, pydantic input models and prompt builders.

The pure-prompt skills do no work of their own. Each one turns validated
arguments into a structured follow-up instruction that the model answers on
the next iteration of the agent loop.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from llm_switchboard.types import ParameterProperty, ParameterSchema, SkillKind, ToolDefinition

# ============================================================================
# Enums
# ============================================================================


class HookStyle(str, Enum):
    SUSPENSE = "suspense"
    PAIN_POINT = "pain-point"
    DATA = "data"
    QUESTION = "question"
    STORY = "story"


class ScriptFormat(str, Enum):
    STANDARD = "standard"
    CONCISE = "concise"
    DETAILED = "detailed"


class ContentCategory(str, Enum):
    FOOD = "food"
    FASHION = "fashion"
    TECH = "tech"
    COMEDY = "comedy"
    TUTORIAL = "tutorial"
    LIFESTYLE = "lifestyle"
    GAMING = "gaming"
    OTHER = "other"


class Region(str, Enum):
    CHINA = "china"
    US = "us"
    SOUTHEAST_ASIA = "southeast-asia"
    EUROPE = "europe"
    GLOBAL = "global"


# ============================================================================
# Input models
# ============================================================================


class _SkillInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


class GenerateHookInput(_SkillInput):
    topic: str = Field(..., min_length=1, description="Video topic or core message")
    style: HookStyle = Field(HookStyle.SUSPENSE, description="Hook style")
    count: int = Field(5, ge=1, le=20, description="How many hooks to write")


class ScriptFormatterInput(_SkillInput):
    content: str = Field(..., min_length=1, description="Raw copy or idea to format")
    duration: int = Field(60, ge=5, le=600, description="Target video length in seconds")
    format: ScriptFormat = Field(ScriptFormat.STANDARD, description="Output format")


class TrendAnalyzerInput(_SkillInput):
    category: ContentCategory = Field(..., description="Content category")
    region: Region = Field(Region.GLOBAL, description="Target region")


class WebSearchInput(_SkillInput):
    query: str = Field(..., min_length=1, description="Search keywords")
    max_results: int = Field(5, ge=1, le=20, description="Maximum number of results")


# ============================================================================
# Tool definitions
# ============================================================================


def _values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


GENERATE_HOOK = ToolDefinition(
    id="generate_hook",
    name="generate_hook",
    description=(
        "Write attention-grabbing opening hooks for the first three seconds "
        "of a short video, to improve watch-through rate."
    ),
    parameters=ParameterSchema(
        properties={
            "topic": ParameterProperty("string", "Video topic or core message"),
            "style": ParameterProperty("string", "Hook style", _values(HookStyle)),
            "count": ParameterProperty("integer", "How many hooks to write, default 5"),
        },
        required=["topic"],
    ),
)

SCRIPT_FORMATTER = ToolDefinition(
    id="script_formatter",
    name="script_formatter",
    description=(
        "Turn copy or an idea into a shot-by-shot short-video script with "
        "visuals, voice-over and timing."
    ),
    parameters=ParameterSchema(
        properties={
            "content": ParameterProperty("string", "Raw copy or idea to format"),
            "duration": ParameterProperty("integer", "Target length in seconds, default 60"),
            "format": ParameterProperty("string", "Output format", _values(ScriptFormat)),
        },
        required=["content"],
    ),
)

TREND_ANALYZER = ToolDefinition(
    id="trend_analyzer",
    name="trend_analyzer",
    description="Analyze current short-video trends and suggest content directions.",
    parameters=ParameterSchema(
        properties={
            "category": ParameterProperty("string", "Content category", _values(ContentCategory)),
            "region": ParameterProperty("string", "Target region", _values(Region)),
        },
        required=["category"],
    ),
)

WEB_SEARCH = ToolDefinition(
    id="web_search",
    name="web_search",
    description=(
        "Search the web for live information such as recent trends, news "
        "events or competitor activity."
    ),
    parameters=ParameterSchema(
        properties={
            "query": ParameterProperty("string", "Search keywords"),
            "max_results": ParameterProperty("integer", "Maximum number of results, default 5"),
        },
        required=["query"],
    ),
    skill_kind=SkillKind.EXTERNAL_CAPABILITY,
)

BUILTIN_TOOLS: tuple[ToolDefinition, ...] = (GENERATE_HOOK, SCRIPT_FORMATTER, TREND_ANALYZER)


# ============================================================================
# Prompt builders
# ============================================================================


def hook_prompt(params: GenerateHookInput) -> str:
    return f"""[Hook writing task]
Write {params.count} opening hooks for the first three seconds of a short video.

Topic: {params.topic}
Style: {params.style.value}

Requirements:
1. Keep each hook under 15 words
2. It must grab attention within 3 seconds
3. Spark curiosity or recognition
4. Work both spoken and as on-screen text
5. No exaggerated clickbait

Output format:
1. [Hook] - one line on why it works
2. ...

Start now:"""


def script_prompt(params: ScriptFormatterInput) -> str:
    return f"""[Shot script task]
Convert the content below into a {params.format.value} shot-by-shot short-video script.

Source content:
{params.content}

Target length: about {params.duration} seconds

Use this table layout:
| # | Time | Visuals | Voice-over / captions | Notes |
|---|------|---------|-----------------------|-------|
| 1 | 0-3s | Opening shot | Hook line | Grab attention |
| 2 | 3-10s | ... | ... | ... |

Requirements:
1. A strong hook in the first 3 seconds
2. Tight pacing with moderate information density
3. A clear call to action at the end
4. Note any footage or effects needed

Start now:"""


def trend_prompt(params: TrendAnalyzerInput) -> str:
    return f"""[Trend analysis task]
Analyze current short-video trends in the {params.category.value} category for the {params.region.value} region.

Cover these dimensions:

## 1. Popular formats
- Video types that are trending
- Popular shooting techniques
- Popular editing styles

## 2. Viral elements
- Common hook patterns
- Trending music styles
- Popular effects or filters

## 3. Creator advice
- Good entry points for newcomers
- Ways to stand out
- Pitfalls to avoid

## 4. Directions to try
- 3-5 content directions worth emulating
- A short note on each

Base the analysis on your own knowledge (this is not live data, treat it as guidance):"""


def format_search_results(query: str, results: list) -> str:
    """Numbered result list for the model; `results` holds `SearchResult` items."""
    if not results:
        return f'No search results found for "{query}".'
    lines = [f'Search results for "{query}":', ""]
    for number, result in enumerate(results, start=1):
        lines.append(f"{number}. **{result.title}**")
        lines.append(f"   {result.snippet}")
        lines.append(f"   {result.url}")
    lines.append("")
    lines.append("Use these results to give the user analysis and advice.")
    return "\n".join(lines)


__all__ = [
    "HookStyle",
    "ScriptFormat",
    "ContentCategory",
    "Region",
    "GenerateHookInput",
    "ScriptFormatterInput",
    "TrendAnalyzerInput",
    "WebSearchInput",
    "GENERATE_HOOK",
    "SCRIPT_FORMATTER",
    "TREND_ANALYZER",
    "WEB_SEARCH",
    "BUILTIN_TOOLS",
    "hook_prompt",
    "script_prompt",
    "trend_prompt",
    "format_search_results",
]
