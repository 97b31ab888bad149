"""Pool command - show pooled windows in eviction order."""

from ..app import app
from ..errors import MuxtapError, table_error_response
from ._helpers import format_age


@app.command(
    display="table",
    headers=["#", "Name", "Window", "Handle", "Active", "Last Access"],
)
def pool(state):
    """List pooled windows, next eviction candidate first."""
    try:
        engine = state.engine()
        entries = engine.pool.list()
    except MuxtapError as e:
        return table_error_response(str(e))

    return [
        {
            "#": index,
            "Name": entry.name,
            "Window": entry.window_name,
            "Handle": engine.resolve(entry.name) or "-",
            "Active": "yes" if engine.active() == entry.name else "",
            "Last Access": format_age(entry.last_access),
        }
        for index, entry in enumerate(entries, 1)
    ]
