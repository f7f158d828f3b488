"""
Provider‑neutral dataclasses for client‑side tool use.

They are intentionally minimal: everything provider‑specific lives in adapters.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Optional

__all__ = [
    "ToolCall",
    "ToolDefinition",
    "ParameterSchema",
    "ParameterProperty",
    "SkillKind",
]

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolCall:
    """A model‑agnostic request emitted by the LLM to call a local tool."""
    id: str
    name: str
    arguments: str = "{}"  # JSON-encoded object

    def arguments_dict(self) -> dict[str, Any]:
        """Decode `arguments`, returning an empty dict when it is not a JSON object."""
        if not self.arguments.strip():
            return {}
        try:
            decoded = json.loads(self.arguments)
        except json.JSONDecodeError:
            _logger.warning("Bad JSON in tool call %s: %r", self.id, self.arguments)
            return {}
        return decoded if isinstance(decoded, dict) else {}


class SkillKind(StrEnum):
    PURE_PROMPT = "pure_prompt"
    EXTERNAL_CAPABILITY = "external_capability"


@dataclass(slots=True)
class ParameterProperty:
    type: str
    description: str
    enum_values: Optional[list[str]] = None


@dataclass(slots=True)
class ParameterSchema:
    properties: dict[str, ParameterProperty] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)
    type: str = "object"

    def to_json_schema(self, *, upper_types: bool = False) -> dict[str, Any]:
        """
        Render as a JSON-schema dict.

        Args:
            upper_types: Upper-case every ``type`` value ("OBJECT", "STRING", ...),
                which only Gemini expects.
        """
        def _type(value: str) -> str:
            return value.upper() if upper_types else value

        properties: dict[str, Any] = {}
        for name, prop in self.properties.items():
            rendered: dict[str, Any] = {
                "type": _type(prop.type),
                "description": prop.description,
            }
            if prop.enum_values is not None:
                rendered["enum"] = list(prop.enum_values)
            properties[name] = rendered

        return {
            "type": _type(self.type),
            "properties": properties,
            "required": list(self.required),
        }


@dataclass(slots=True)
class ToolDefinition:
    """A tool the model may call, together with its argument schema."""
    id: str
    name: str
    description: str
    parameters: ParameterSchema
    skill_kind: SkillKind = SkillKind.PURE_PROMPT
