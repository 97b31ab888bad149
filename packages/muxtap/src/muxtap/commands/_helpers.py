"""Shared helper functions for commands.

PUBLIC API:
  - format_age: Human-readable age of a timestamp
  - slot_frontmatter: Frontmatter describing the slot after an action
"""

import time
from typing import Any

from ..orchestrator import Orchestrator

__all__ = ["format_age", "slot_frontmatter"]


def format_age(timestamp: float, now: float | None = None) -> str:
    """Format seconds since timestamp as "12s", "5m" or "3h".

    Args:
        timestamp: Epoch seconds
        now: Reference time, defaults to the current time

    Returns:
        Short age string
    """
    seconds = max(0, int((now if now is not None else time.time()) - timestamp))
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    return f"{seconds // 3600}h"


def slot_frontmatter(engine: Orchestrator, action: str, **extra: Any) -> dict[str, Any]:
    """Build frontmatter describing the slot after an action."""
    return {
        "action": action,
        "status": "ok",
        "active": engine.active() or "idle",
        "stashed": len(engine.stashed()),
        **extra,
    }
