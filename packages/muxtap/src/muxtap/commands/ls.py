"""List command - show every identity and where its pane is."""

from ..app import app
from ..errors import MuxtapError, table_error_response
from ._helpers import format_age


@app.command(
    display="table",
    headers=["Identity", "Handle", "Family", "Location", "Pooled", "Last Access"],
    fastmcp={"type": "tool", "description": "List identities and where their panes are"},
)
def ls(state, filter: str = None):  # pyright: ignore[reportArgumentType]
    """List all bound identities with their pane and location."""
    try:
        rows = state.engine().describe()
    except MuxtapError as e:
        return table_error_response(str(e))

    results = []
    for row in rows:
        if filter and filter.lower() not in f"{row['identity']} {row['family']}".lower():
            continue
        results.append(
            {
                "Identity": row["identity"],
                "Handle": row["handle"],
                "Family": row["family"],
                "Location": row["location"],
                "Pooled": "yes" if row["pooled"] else "",
                "Last Access": format_age(row["last_access"]),
            }
        )

    return results
