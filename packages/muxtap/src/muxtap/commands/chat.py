"""Chat command - open a new AI chat in the slot."""

from typing import Any

from ..app import app
from ..errors import MuxtapError, markdown_error_response
from ._helpers import slot_frontmatter


@app.command(
    display="markdown",
    fastmcp={"type": "tool", "description": "Open the next free AI chat (ai-N) in the slot"},
)
def chat(state, family: str = "ai") -> dict[str, Any]:
    """Open the lowest-numbered free chat of a family and show it."""
    try:
        engine = state.engine()
        identity = engine.open_chat(family)
    except MuxtapError as e:
        return markdown_error_response(str(e))

    return {
        "elements": [{"type": "text", "content": f"Opened **{identity}**"}],
        "frontmatter": slot_frontmatter(engine, "chat", identity=identity),
    }
