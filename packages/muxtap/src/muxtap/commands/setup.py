"""Setup command - build or recover the layout."""

from typing import Any

from ..app import app
from ..errors import MuxtapError, markdown_error_response


@app.command(
    display="markdown",
    fastmcp={"type": "tool", "description": "Build or recover the fixed pane layout"},
)
def setup(state) -> dict[str, Any]:
    """Find, recover or build the layout and bind its roles."""
    try:
        engine = state.engine()
        built = engine.setup()
    except MuxtapError as e:
        return markdown_error_response(str(e))

    return {
        "elements": [
            {"type": "text", "content": f"Layout **{engine.layout.name}** in `{built.window}`"},
            {
                "type": "list",
                "items": [f"{role}: `{handle}`" for role, handle in built.roles.items()],
                "ordered": False,
            },
        ],
        "frontmatter": {
            "action": "setup",
            "status": "ok",
            "reused": built.reused,
            "slot": built.current,
        },
    }
