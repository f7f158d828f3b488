"""
Generation-parameter normalization for llm-switchboard.

Public API
- Callers pass a dict as `params` to an adapter's `chat` or `chat_stream`.

Contract
- Standard keys work across providers:
  temperature: float
  max_tokens: int
  top_p: float
  stop: str | list[str]

- Provider specific keys go under `extra` and are copied into the request
  body unchanged. Examples:
    extra.presence_penalty: float      (OpenAI-compatible)
    extra.top_k: int                   (Anthropic)
    extra.safetySettings: list         (Gemini)

Unknown top-level keys are moved into extra.
"""

from __future__ import annotations

from typing import Any, Optional

__all__ = ["STANDARD_KEYS", "normalize_params", "merge_params", "stop_list"]

STANDARD_KEYS = {
    "temperature",
    "max_tokens",
    "top_p",
    "stop",
}


def normalize_params(params: Optional[dict[str, Any]]) -> dict[str, Any]:
    """
    Normalize a user-supplied params dict to a single internal shape.

    Returns a dict with only standard keys plus an `extra` dict.
    Rules:
      - Keys not in STANDARD_KEYS are moved into extra
      - If the caller already passed an `extra` dict it is merged last
      - None values are dropped

    Example
    -------
    >>> normalize_params({"temperature": 0.2, "seed": 7, "extra": {"top_k": 5}})
    {'temperature': 0.2, 'extra': {'seed': 7, 'top_k': 5}}
    """
    if params is None:
        return {"extra": {}}
    if not isinstance(params, dict):
        raise TypeError(f"params must be a dict, got {type(params).__name__}")

    user_extra = params.get("extra") or {}
    if not isinstance(user_extra, dict):
        raise TypeError("params['extra'] must be a dict")

    std: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in params.items():
        if key == "extra" or value is None:
            continue
        if key in STANDARD_KEYS:
            std[key] = value
        else:
            extra[key] = value

    std["extra"] = {**extra, **user_extra}
    return std


def merge_params(
    defaults: Optional[dict[str, Any]], overrides: Optional[dict[str, Any]]
) -> dict[str, Any]:
    """
    Shallow-merge adapter defaults with per-call overrides, then normalize.

    Top-level keys are overwritten by overrides; `extra` is merged per key.
    """
    base = normalize_params(defaults)
    if not overrides:
        return base
    over = normalize_params(overrides)
    merged = {**base, **over}
    merged["extra"] = {**base["extra"], **over["extra"]}
    return merged


def stop_list(stop: Any) -> Optional[list[str]]:
    """`stop` as a list, for backends that only accept a sequence."""
    if stop is None:
        return None
    if isinstance(stop, str):
        return [stop]
    return list(stop)
