"""Tmux-specific exceptions.

PUBLIC API:
  - TmuxError: Base exception for all tmux operations
  - GatewayError: A tmux command failed
  - SessionNotFoundError: Session not found exception
  - PaneNotFoundError: Pane not found exception
"""

from ..errors import MuxtapError


class TmuxError(MuxtapError):
    """Base exception for all tmux operations."""

    pass


class GatewayError(TmuxError):
    """Raised when a multiplexer command exits non-zero or cannot run.

    Attributes:
        args_: The command arguments that failed.
        stderr: Error output reported by the multiplexer.
    """

    def __init__(self, args: list[str], stderr: str = "", code: int = 1):
        self.args_ = list(args)
        self.stderr = stderr.strip()
        self.code = code
        command = args[0] if args else "?"
        super().__init__(
            f"tmux {command} failed: {self.stderr or f'exit {code}'}",
            context={"args": " ".join(self.args_)},
        )


class SessionNotFoundError(GatewayError):
    """Raised when a tmux session cannot be found."""

    pass


class PaneNotFoundError(GatewayError):
    """Raised when a tmux pane cannot be found."""

    pass
