"""Multiplexer gateway - everything that speaks tmux.

PUBLIC API:
  - Gateway: Abstract primitive set every backend provides
  - TmuxGateway: Gateway implemented with tmux commands
  - run_tmux: Run tmux command and return result
  - check_tmux_available: Check if tmux is usable
  - TmuxError, GatewayError, PaneNotFoundError, SessionNotFoundError
"""

from .core import run_tmux, check_tmux_available
from .exceptions import TmuxError, GatewayError, PaneNotFoundError, SessionNotFoundError
from .gateway import Gateway, TmuxGateway

__all__ = [
    "Gateway",
    "TmuxGateway",
    "run_tmux",
    "check_tmux_available",
    "TmuxError",
    "GatewayError",
    "PaneNotFoundError",
    "SessionNotFoundError",
]
