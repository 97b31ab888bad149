"""Stable identities over tmux panes with MCP support.

Entry point for muxtap application that can run as either a REPL interface
or MCP server depending on command line arguments.
"""

import sys
import logging

from .app import app
from .config import get_config_manager

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
)


def _attach_debug_log(path: str) -> None:
    """Send DEBUG output of every muxtap logger to a file."""
    handler = logging.FileHandler(path)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    package_logger = logging.getLogger("muxtap")
    package_logger.setLevel(logging.DEBUG)
    package_logger.addHandler(handler)


def main():
    """Run muxtap as REPL or MCP server based on command line arguments.

    Checks for --mcp flag to determine mode:
    - With --mcp: Runs as MCP server for integration
    - Without --mcp: Runs as interactive REPL
    """
    debug_log = get_config_manager().debug_log
    if debug_log:
        _attach_debug_log(debug_log)

    if "--mcp" in sys.argv:
        app.mcp.run()
    else:
        app.run(title="muxtap - Identity Pane Orchestrator")


if __name__ == "__main__":
    main()
