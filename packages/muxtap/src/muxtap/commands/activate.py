"""Activate command - swap an identity into the slot.

PUBLIC API:
  - activate: Show identity in the slot, creating it on first use
"""

from typing import Any

from ..app import app
from ..errors import MuxtapError, markdown_error_response
from ._helpers import slot_frontmatter


@app.command(
    display="markdown",
    fastmcp={"type": "tool", "description": "Show an identity in the slot pane, creating it if needed"},
)
def activate(state, identity: str) -> dict[str, Any]:
    """Swap identity into the slot.

    The pane that was in the slot keeps running in the background and can be
    brought back with another activate.

    Args:
        state: Application state.
        identity: Resource name, AI chat (ai-N) or the slot role for idle.

    Returns:
        Markdown formatted result with the identity's pane.
    """
    try:
        engine = state.engine()
        handle = engine.activate(identity)
    except MuxtapError as e:
        return markdown_error_response(str(e))

    return {
        "elements": [{"type": "text", "content": f"**{identity}** is now in the slot (`{handle}`)"}],
        "frontmatter": slot_frontmatter(engine, "activate", identity=identity, handle=handle),
    }
