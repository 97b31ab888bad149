"""In-memory gateway for testing.

This module provides a Gateway that models windows, panes and options in
plain Python structures, enabling unit testing without a tmux server.

Example usage in tests:
    from muxtap.testing import MemoryGateway

    def test_swap():
        gateway = MemoryGateway()
        window, control = gateway.add_window("main")
        slot = gateway.create_pane(control)
        _, other = gateway.create_window("Resource: pod-a")

        gateway.swap_panes(slot, other)
        assert gateway.panes_in(window) == [control, other]
"""

from dataclasses import dataclass, field
from typing import Optional

from muxtap.tmux.exceptions import GatewayError, PaneNotFoundError
from muxtap.tmux.gateway import Gateway
from muxtap.types import Handle, WindowHandle


@dataclass
class MemoryPane:
    """A pane that exists only in memory."""

    id: Handle
    command: Optional[str] = None
    env: dict[str, str] = field(default_factory=dict)
    title: str = ""
    tags: dict[str, str] = field(default_factory=dict)


@dataclass
class MemoryWindow:
    """A window holding panes in layout order."""

    id: WindowHandle
    name: str
    panes: list[Handle] = field(default_factory=list)
    layout: Optional[str] = None


class MemoryGateway(Gateway):
    """Gateway backed by dictionaries.

    Every primitive call is appended to ``calls`` as (method, args) so tests
    can assert on exactly what reached the multiplexer.
    """

    def __init__(self, current: Optional[Handle] = None) -> None:
        self.windows: dict[WindowHandle, MemoryWindow] = {}
        self.panes: dict[Handle, MemoryPane] = {}
        self.options: dict[tuple[Optional[str], str], str] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.focused: Optional[Handle] = None
        self._current = current
        self._failures: dict[str, Exception] = {}
        self._pane_counter = 0
        self._window_counter = 0

    # Gateway implementation

    def invoke(self, *args: str) -> str:
        self._record("invoke", *args)
        return ""

    def current_pane(self) -> Optional[Handle]:
        self._record("current_pane")
        return self._current

    def window_of(self, handle: Handle) -> WindowHandle:
        self._record("window_of", handle)
        return self._window_containing(handle).id

    def create_pane(self, parent, *, vertical=True, percent=None, command=None, env=None) -> Handle:
        self._record("create_pane", parent)
        window = self._window_containing(parent)
        pane = self._new_pane(command, env)
        window.panes.insert(window.panes.index(parent) + 1, pane.id)
        return pane.id

    def create_window(self, name, *, command=None, env=None) -> tuple[WindowHandle, Handle]:
        self._record("create_window", name)
        window = self._new_window(name)
        pane = self._new_pane(command, env)
        window.panes.append(pane.id)
        return window.id, pane.id

    def destroy_pane(self, handle: Handle) -> None:
        self._record("destroy_pane", handle)
        self._remove_pane(handle)

    def destroy_window(self, window: WindowHandle) -> None:
        self._record("destroy_window", window)
        target = self.windows.pop(window, None)
        if target is None:
            raise PaneNotFoundError(["kill-window", "-t", window], f"can't find window: {window}")
        for handle in target.panes:
            self.panes.pop(handle, None)

    def swap_panes(self, source: Handle, target: Handle) -> None:
        self._record("swap_panes", source, target)
        source_window = self._window_containing(source)
        target_window = self._window_containing(target)
        source_index = source_window.panes.index(source)
        target_index = target_window.panes.index(target)
        source_window.panes[source_index] = target
        target_window.panes[target_index] = source

    def list_panes(self, scope: Optional[WindowHandle] = None) -> list[Handle]:
        self._record("list_panes", scope)
        if scope is None:
            return [handle for window in self.windows.values() for handle in window.panes]
        window = self.windows.get(scope)
        if window is None:
            raise PaneNotFoundError(["list-panes", "-t", scope], f"can't find window: {scope}")
        return list(window.panes)

    def set_option(self, key: str, value: str, scope: Optional[str] = None) -> None:
        self._record("set_option", key, value, scope)
        self.options[(scope, key)] = value

    def get_option(self, key: str, scope: Optional[str] = None) -> Optional[str]:
        self._record("get_option", key, scope)
        return self.options.get((scope, key))

    def unset_option(self, key: str, scope: Optional[str] = None) -> None:
        self._record("unset_option", key, scope)
        self.options.pop((scope, key), None)

    def tag_pane(self, handle: Handle, key: str, value: str) -> None:
        self._record("tag_pane", handle, key, value)
        self._window_containing(handle)
        self.panes[handle].tags[key] = value

    def pane_tags(self, key: str) -> dict[Handle, str]:
        self._record("pane_tags", key)
        return {handle: pane.tags[key] for handle, pane in self.panes.items() if key in pane.tags}

    def select_pane(self, handle: Handle) -> None:
        self._record("select_pane", handle)
        self._window_containing(handle)
        self.focused = handle

    def apply_layout(self, window: WindowHandle, layout: str) -> None:
        self._record("apply_layout", window, layout)
        if window not in self.windows:
            raise PaneNotFoundError(["select-layout", "-t", window], f"can't find window: {window}")
        self.windows[window].layout = layout

    def set_pane_title(self, handle: Handle, title: str) -> None:
        self._record("set_pane_title", handle, title)
        self._window_containing(handle)
        self.panes[handle].title = title

    # Test helpers

    def add_window(self, name: str = "main", panes: int = 1) -> tuple[WindowHandle, Handle]:
        """Create a window with panes outside the call log; first pane becomes current.

        Returns:
            (window, first pane)
        """
        window = self._new_window(name)
        for _ in range(panes):
            window.panes.append(self._new_pane(None, None).id)
        if self._current is None:
            self._current = window.panes[0]
        return window.id, window.panes[0]

    def panes_in(self, window: WindowHandle) -> list[Handle]:
        """Pane order of a window, without touching the call log."""
        return list(self.windows[window].panes)

    def kill_pane(self, handle: Handle) -> None:
        """Kill a pane from outside, as a user or crashed process would."""
        self._remove_pane(handle)

    def set_current_pane(self, handle: Optional[Handle]) -> None:
        self._current = handle

    def set_failure(self, method: str, error: Optional[Exception] = None) -> None:
        """Make every call to method raise until cleared."""
        self._failures[method] = error or GatewayError([method], f"injected {method} failure")

    def clear_failures(self) -> None:
        self._failures.clear()

    def calls_to(self, method: str) -> list[tuple]:
        """Arguments of every recorded call to method."""
        return [args for name, args in self.calls if name == method]

    def reset_calls(self) -> None:
        self.calls.clear()

    # Internals

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, args))
        error = self._failures.get(method)
        if error is not None:
            raise error

    def _new_pane(self, command, env) -> MemoryPane:
        self._pane_counter += 1
        pane = MemoryPane(id=f"%{self._pane_counter}", command=command, env=dict(env or {}))
        self.panes[pane.id] = pane
        return pane

    def _new_window(self, name: str) -> MemoryWindow:
        self._window_counter += 1
        window = MemoryWindow(id=f"@{self._window_counter}", name=name)
        self.windows[window.id] = window
        return window

    def _window_containing(self, handle: Handle) -> MemoryWindow:
        for window in self.windows.values():
            if handle in window.panes:
                return window
        raise PaneNotFoundError(["-t", handle], f"can't find pane: {handle}")

    def _remove_pane(self, handle: Handle) -> None:
        window = self._window_containing(handle)
        window.panes.remove(handle)
        self.panes.pop(handle, None)
        if not window.panes:
            del self.windows[window.id]
        if self.focused == handle:
            self.focused = None
