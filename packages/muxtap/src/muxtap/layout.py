"""Layout setup - find, recover or build the fixed-role panes.

PUBLIC API:
  - LayoutBuilder: Produce role -> handle mapping for a LayoutSpec
  - BuiltLayout: Result of a build
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from .errors import LayoutError
from .store import HandleStore
from .tmux.exceptions import GatewayError
from .tmux.gateway import Gateway
from .types import Handle, Identity, LayoutSpec, WindowHandle

__all__ = ["LayoutBuilder", "BuiltLayout"]


@dataclass
class BuiltLayout:
    """Fixed-role panes of a ready layout window.

    Attributes:
        window: Layout window.
        roles: Handle for every layout role.
        current: Pane in the slot position right now. Differs from the slot
            role's handle when something was left swapped in.
        reused: True if stored handles were all still alive.
    """

    window: WindowHandle
    roles: dict[Identity, Handle]
    current: Handle
    reused: bool = False


class LayoutBuilder:
    """Build the layout window for a LayoutSpec.

    Args:
        gateway: Multiplexer access.
        layout: Roles and split geometry.
        store: Where role handles are persisted.
        placeholder_command: Command run in a newly created slot pane.
    """

    def __init__(
        self,
        gateway: Gateway,
        layout: LayoutSpec,
        store: HandleStore,
        placeholder_command: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.gateway = gateway
        self.layout = layout
        self.store = store
        self.placeholder_command = placeholder_command
        self.logger = logger or logging.getLogger(__name__)

    def build(self) -> BuiltLayout:
        """Reuse stored role handles if all alive, otherwise recover or build.

        Raises:
            LayoutError: If there is no pane to build from.
            GatewayError: If a split or kill fails.
        """
        stored = self.load_stored()
        try:
            live = set(self.gateway.list_panes())
        except GatewayError as e:
            self.logger.warning(f"Cannot list panes, rebuilding layout: {e}")
            live = set()

        if len(stored) == self.layout.expected_panes and all(h in live for h in stored.values()):
            self.logger.info(f"Layout {self.layout.name}: all {len(stored)} stored panes alive, reusing")
            window = self.gateway.window_of(stored[self.layout.control_role])
            return BuiltLayout(window, stored, self._occupant(window, stored), reused=True)

        base = self._base_pane(live)
        window = self.gateway.window_of(base)
        panes = self.gateway.list_panes(window)
        self.logger.info(f"Layout {self.layout.name}: window {window} has {len(panes)} pane(s)")

        if len(panes) == 1:
            roles = self._create(panes[0])
        elif len(panes) >= self.layout.expected_panes:
            roles = dict(zip(self.layout.roles, panes))
            self.logger.info(f"Registered existing panes by position: {roles}")
        else:
            self.logger.info("Partial layout, recreating from scratch")
            for handle in panes:
                if handle != base:
                    self.gateway.destroy_pane(handle)
            roles = self._create(base)

        self._finish(window, roles)
        return BuiltLayout(window, roles, roles[self.layout.slot_role])

    def load_stored(self) -> dict[Identity, Handle]:
        """Fetch every role's stored handle in parallel. Missing roles are omitted."""
        roles = self.layout.roles
        with ThreadPoolExecutor(max_workers=len(roles)) as executor:
            values = list(executor.map(self.store.get, roles))
        return {role: handle for role, handle in zip(roles, values) if handle}

    def persist(self, roles: dict[Identity, Handle]) -> None:
        for role, handle in roles.items():
            self.store.set(role, handle)

    def forget(self) -> None:
        for role in self.layout.roles:
            self.store.delete(role)

    def _base_pane(self, live: set[Handle]) -> Handle:
        """Pane to build from: ours if we run inside the multiplexer."""
        current = self.gateway.current_pane()
        if current:
            return current
        if live:
            return sorted(live)[0]
        raise LayoutError("no pane to build layout from", context={"layout": self.layout.name})

    def _create(self, base: Handle) -> dict[Identity, Handle]:
        """Split base into the layout's roles."""
        roles = self.layout.roles
        if len(roles) == 2:
            slot = self.gateway.create_pane(
                base, vertical=True, percent=self.layout.split_percent, command=self._command_for(roles[1])
            )
            return {roles[0]: base, roles[1]: slot}

        if len(roles) == 3:
            bottom = self.gateway.create_pane(
                base, vertical=True, percent=self.layout.split_percent, command=self._command_for(roles[1])
            )
            side = self.gateway.create_pane(
                bottom, vertical=False, percent=self.layout.side_percent, command=self._command_for(roles[2])
            )
            return {roles[0]: base, roles[1]: bottom, roles[2]: side}

        raise LayoutError(f"cannot build a {len(roles)}-pane layout", context={"layout": self.layout.name})

    def _command_for(self, role: Identity) -> Optional[str]:
        return self.placeholder_command if role == self.layout.slot_role else None

    def _finish(self, window: WindowHandle, roles: dict[Identity, Handle]) -> None:
        """Persist handles, then cosmetics: titles, arrangement, focus."""
        self.persist(roles)

        for role, handle in roles.items():
            try:
                self.gateway.set_pane_title(handle, f"[{role}]")
            except GatewayError as e:
                self.logger.debug(f"Could not title {handle}: {e}")

        if self.layout.tmux_layout:
            try:
                self.gateway.apply_layout(window, self.layout.tmux_layout)
            except GatewayError as e:
                self.logger.debug(f"Could not apply {self.layout.tmux_layout}: {e}")

        try:
            self.gateway.select_pane(roles[self.layout.control_role])
        except GatewayError as e:
            self.logger.debug(f"Could not focus control pane: {e}")

    def _occupant(self, window: WindowHandle, roles: dict[Identity, Handle]) -> Handle:
        """Pane in the slot position: the one not held by another role."""
        others = {h for r, h in roles.items() if r != self.layout.slot_role}
        try:
            candidates = [p for p in self.gateway.list_panes(window) if p not in others]
        except GatewayError:
            candidates = []
        if len(candidates) == 1:
            return candidates[0]
        return roles[self.layout.slot_role]
