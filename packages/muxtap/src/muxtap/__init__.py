"""Stable logical identities over volatile tmux panes.

Callers name things ("pod-a", "ai-2", "top"); muxtap binds each name to a live
tmux pane, swaps one of them at a time into a visible slot without losing its
scrollback, bounds on-demand windows with an LRU pool, and repairs its state
when panes die behind its back. Built on ReplKit2 for dual REPL/MCP use.

PUBLIC API:
  - Orchestrator: The identity/handle engine
  - app: ReplKit2 application instance with muxtap commands
"""

from .orchestrator import Orchestrator
from .app import app

__version__ = "0.1.0"
__all__ = ["Orchestrator", "app"]
