"""
Server-Sent-Events line parsing shared by every adapter.

Only ``data:`` lines carry payloads. Streams are expected to contain the
occasional keep-alive, comment or half-written line, so nothing here raises:
a line that cannot be used is reported as ``None`` and skipped by the caller.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Final, Optional

__all__ = ["DATA_PREFIX", "DONE_SENTINEL", "parse_sse_line", "decode_sse_event", "is_done_line"]

DATA_PREFIX: Final = "data: "
DONE_SENTINEL: Final = "[DONE]"

_logger = logging.getLogger(__name__)


def parse_sse_line(line: str) -> Optional[str]:
    """Return the payload of a ``data:`` line, or None for any other line and for ``[DONE]``."""
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):]
    if payload.strip() == DONE_SENTINEL:
        return None
    return payload


def is_done_line(line: str) -> bool:
    """True for the OpenAI-style end-of-stream line ``data: [DONE]``."""
    return line.startswith(DATA_PREFIX) and line[len(DATA_PREFIX):].strip() == DONE_SENTINEL


def decode_sse_event(line: str) -> Optional[dict[str, Any]]:
    """
    Decode one SSE line into a JSON object.

    Returns:
        The decoded object, or None if the line is not a data line, is the
        stream-end sentinel, is not valid JSON, or is JSON but not an object.
    """
    payload = parse_sse_line(line)
    if payload is None:
        return None
    try:
        event = json.loads(payload)
    except json.JSONDecodeError:
        _logger.debug("Skipping undecodable SSE line: %r", line[:200])
        return None
    if not isinstance(event, dict):
        _logger.debug("Skipping non-object SSE payload: %r", line[:200])
        return None
    return event
