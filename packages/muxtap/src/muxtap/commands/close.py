"""Close command - destroy an identity's pane.

PUBLIC API:
  - close: Kill identity's pane and forget it
"""

from typing import Any

from ..app import app
from ..errors import MuxtapError, markdown_error_response
from ._helpers import slot_frontmatter


@app.command(
    display="markdown",
    fastmcp={"type": "tool", "description": "Close an identity's pane; the slot gets a fresh placeholder"},
)
def close(state, identity: str) -> dict[str, Any]:
    """Destroy identity's pane.

    Closing the identity shown in the slot puts a fresh placeholder there.

    Args:
        state: Application state.
        identity: Identity to close. Fixed layout roles cannot be closed.

    Returns:
        Markdown formatted result.
    """
    try:
        engine = state.engine()
        engine.close(identity)
    except MuxtapError as e:
        return markdown_error_response(str(e))

    return {
        "elements": [{"type": "text", "content": f"Closed **{identity}**"}],
        "frontmatter": slot_frontmatter(engine, "close", identity=identity),
    }
