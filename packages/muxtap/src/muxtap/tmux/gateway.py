"""Multiplexer gateway - the primitives the orchestrator is built on.

The orchestration layer never builds multiplexer syntax itself. It talks to a
Gateway, which has one implementation per backend: TmuxGateway here, and
MemoryGateway in muxtap.testing for tests.

PUBLIC API:
  - Gateway: Abstract primitive set every backend provides
  - TmuxGateway: Gateway implemented with tmux commands
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..types import Handle, WindowHandle
from .core import run_tmux, get_current_pane
from .exceptions import GatewayError, PaneNotFoundError, SessionNotFoundError

__all__ = ["Gateway", "TmuxGateway"]


class Gateway(ABC):
    """Blocking, RPC-like access to the multiplexer.

    Every method either returns or raises a GatewayError. There is no
    atomicity across calls.
    """

    @abstractmethod
    def invoke(self, *args: str) -> str:
        """Run a raw command and return its stripped output."""

    @abstractmethod
    def current_pane(self) -> Optional[Handle]:
        """Pane the orchestrator itself runs in, if any."""

    @abstractmethod
    def window_of(self, handle: Handle) -> WindowHandle:
        """Window that currently contains a pane."""

    @abstractmethod
    def create_pane(
        self,
        parent: Handle,
        *,
        vertical: bool = True,
        percent: Optional[int] = None,
        command: Optional[str] = None,
        env: Optional[dict[str, str]] = None,
    ) -> Handle:
        """Split a new pane off parent and return its handle."""

    @abstractmethod
    def create_window(
        self,
        name: str,
        *,
        command: Optional[str] = None,
        env: Optional[dict[str, str]] = None,
    ) -> tuple[WindowHandle, Handle]:
        """Create a detached window and return (window, first pane)."""

    @abstractmethod
    def destroy_pane(self, handle: Handle) -> None:
        """Kill a pane."""

    @abstractmethod
    def destroy_window(self, window: WindowHandle) -> None:
        """Kill a window and every pane in it."""

    @abstractmethod
    def swap_panes(self, source: Handle, target: Handle) -> None:
        """Exchange the positions of two panes; contents stay with their handles."""

    @abstractmethod
    def list_panes(self, scope: Optional[WindowHandle] = None) -> list[Handle]:
        """List live pane handles in a window, or in the whole session."""

    @abstractmethod
    def set_option(self, key: str, value: str, scope: Optional[str] = None) -> None:
        """Store a metadata value on the session (or on scope)."""

    @abstractmethod
    def get_option(self, key: str, scope: Optional[str] = None) -> Optional[str]:
        """Read a metadata value; None when unset."""

    @abstractmethod
    def unset_option(self, key: str, scope: Optional[str] = None) -> None:
        """Remove a metadata value."""

    @abstractmethod
    def tag_pane(self, handle: Handle, key: str, value: str) -> None:
        """Store a metadata value on a pane. It moves with the pane through swaps."""

    @abstractmethod
    def pane_tags(self, key: str) -> dict[Handle, str]:
        """Every live pane carrying key, mapped to its value, in one query."""

    @abstractmethod
    def select_pane(self, handle: Handle) -> None:
        """Focus a pane (and its window)."""

    @abstractmethod
    def apply_layout(self, window: WindowHandle, layout: str) -> None:
        """Re-apply a named arrangement to a window."""

    @abstractmethod
    def set_pane_title(self, handle: Handle, title: str) -> None:
        """Set the title of a pane."""

    def pane_exists(self, handle: Handle) -> bool:
        """Check if a pane is alive. Read-only, so failures mean "no"."""
        try:
            return handle in self.list_panes()
        except GatewayError:
            return False


class TmuxGateway(Gateway):
    """Gateway backed by the tmux command line.

    Args:
        session: Session to scope session-wide queries and options to.
            None targets the client's current session.
        timeout: Seconds before any single tmux call is abandoned.
    """

    def __init__(self, session: Optional[str] = None, timeout: float = 3.0, logger: Optional[logging.Logger] = None):
        self.session = session
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def invoke(self, *args: str) -> str:
        code, stdout, stderr = run_tmux(list(args), timeout=self.timeout)
        if code != 0:
            self.logger.debug(f"tmux {' '.join(args)} -> {code}: {stderr.strip()}")
            raise _classify(list(args), stderr, code)
        return stdout.strip()

    def current_pane(self) -> Optional[Handle]:
        return get_current_pane()

    def window_of(self, handle: Handle) -> WindowHandle:
        return self.invoke("display-message", "-p", "-t", handle, "#{window_id}")

    def create_pane(self, parent, *, vertical=True, percent=None, command=None, env=None) -> Handle:
        args = ["split-window", "-d", "-t", parent, "-v" if vertical else "-h"]
        if percent:
            args.extend(["-l", f"{percent}%"])
        for key, value in (env or {}).items():
            args.extend(["-e", f"{key}={value}"])
        args.extend(["-P", "-F", "#{pane_id}"])
        if command:
            args.append(command)
        return self.invoke(*args)

    def create_window(self, name, *, command=None, env=None) -> tuple[WindowHandle, Handle]:
        args = ["new-window", "-d", "-n", name]
        if self.session:
            args.extend(["-t", f"{self.session}:"])
        for key, value in (env or {}).items():
            args.extend(["-e", f"{key}={value}"])
        args.extend(["-P", "-F", "#{window_id} #{pane_id}"])
        if command:
            args.append(command)

        output = self.invoke(*args)
        parts = output.split()
        if len(parts) != 2:
            self._kill_window_named(name)
            raise GatewayError(args, f"unexpected new-window output: {output!r}")
        window, pane = parts

        # Keep our name; the user's shell would otherwise rename it
        try:
            self.invoke("set-window-option", "-t", window, "automatic-rename", "off")
        except GatewayError as e:
            self.logger.debug(f"Could not pin name of {window}: {e}")
        return window, pane

    def destroy_pane(self, handle: Handle) -> None:
        self.invoke("kill-pane", "-t", handle)

    def destroy_window(self, window: WindowHandle) -> None:
        self.invoke("kill-window", "-t", window)

    def swap_panes(self, source: Handle, target: Handle) -> None:
        self.invoke("swap-pane", "-d", "-s", source, "-t", target)

    def list_panes(self, scope: Optional[WindowHandle] = None) -> list[Handle]:
        if scope is not None:
            args = ["list-panes", "-t", scope]
        elif self.session:
            args = ["list-panes", "-s", "-t", self.session]
        else:
            args = ["list-panes", "-a"]
        output = self.invoke(*args, "-F", "#{pane_id}")
        return [line.strip() for line in output.split("\n") if line.strip()]

    def set_option(self, key: str, value: str, scope: Optional[str] = None) -> None:
        self.invoke(*self._option_target("set-option", scope), key, value)

    def get_option(self, key: str, scope: Optional[str] = None) -> Optional[str]:
        value = self.invoke(*self._option_target("show-options", scope), "-v", "-q", key)
        return value or None

    def unset_option(self, key: str, scope: Optional[str] = None) -> None:
        self.invoke(*self._option_target("set-option", scope), "-u", key)

    def tag_pane(self, handle: Handle, key: str, value: str) -> None:
        self.invoke("set-option", "-p", "-t", handle, key, value)

    def pane_tags(self, key: str) -> dict[Handle, str]:
        if self.session:
            args = ["list-panes", "-s", "-t", self.session]
        else:
            args = ["list-panes", "-a"]
        output = self.invoke(*args, "-F", f"#{{pane_id}}\t#{{{key}}}")

        tags = {}
        for line in output.split("\n"):
            handle, _, value = line.strip().partition("\t")
            if handle and value:
                tags[handle] = value
        return tags

    def select_pane(self, handle: Handle) -> None:
        self.invoke("select-window", "-t", handle)
        self.invoke("select-pane", "-t", handle)

    def apply_layout(self, window: WindowHandle, layout: str) -> None:
        self.invoke("select-layout", "-t", window, layout)

    def set_pane_title(self, handle: Handle, title: str) -> None:
        self.invoke("select-pane", "-t", handle, "-T", title)

    def _kill_window_named(self, name: str) -> None:
        """Best-effort cleanup of a window whose handle we never learned."""
        target = f"={name}" if not self.session else f"{self.session}:={name}"
        try:
            self.invoke("kill-window", "-t", target)
        except GatewayError as e:
            self.logger.warning(f"Could not clean up window {name!r}: {e}")

    def _option_target(self, command: str, scope: Optional[str]) -> list[str]:
        """Build the target part of an option command."""
        if scope is not None:
            return [command, "-w", "-t", scope]
        if self.session:
            return [command, "-t", self.session]
        return [command]


def _classify(args: list[str], stderr: str, code: int) -> GatewayError:
    """Map tmux error text onto the exception hierarchy."""
    text = stderr.lower()
    if "can't find pane" in text or "can't find window" in text:
        return PaneNotFoundError(args, stderr, code)
    if "can't find session" in text or "no server running" in text:
        return SessionNotFoundError(args, stderr, code)
    return GatewayError(args, stderr, code)
