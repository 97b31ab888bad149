"""Reconcile command - prune dead panes and repair the slot."""

from typing import Any

from ..app import app
from ..errors import MuxtapError, markdown_error_response
from ._helpers import slot_frontmatter


@app.command(
    display="markdown",
    fastmcp={"type": "tool", "description": "Forget identities whose panes died and repair the slot"},
)
def reconcile(state) -> dict[str, Any]:
    """Run one reconciliation pass, plus anything the drift watcher found."""
    try:
        engine = state.engine()
        removed = engine.reconcile()
        removed = state.drain_removed() + removed
    except MuxtapError as e:
        return markdown_error_response(str(e))

    if removed:
        elements = [{"type": "list", "items": removed, "ordered": False}]
    else:
        elements = [{"type": "text", "content": "Nothing to reconcile"}]

    return {
        "elements": elements,
        "frontmatter": slot_frontmatter(engine, "reconcile", removed=len(removed)),
    }
