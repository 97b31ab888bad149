"""Slot activation - swap identities in and out of the one visible region.

The slot is a pane position in the layout window. Activating an identity
swaps its pane into that position; the pane that was there moves to where the
activated pane lived (its stash window). Both panes keep their processes and
scrollback, and both keep their handles: only positions change.

PUBLIC API:
  - Slot: Visible-slot state machine (Idle / Active(identity))
"""

import logging
from typing import Optional

from .errors import IdentityNotFoundError, NotActivatableError, StructuralPreconditionError
from .registry import Factory, IdentityRegistry
from .store import HandleStore
from .tmux.exceptions import GatewayError, PaneNotFoundError
from .tmux.gateway import Gateway
from .types import Binding, Handle, Identity, LayoutSpec, WindowHandle

__all__ = ["Slot"]


class Slot:
    """State of the visible slot.

    Attributes:
        window: Layout window that contains the slot.
        control: Handle of the control pane, which is never swapped.
        current: Handle currently occupying the slot.
        active_identity: Dynamic identity in the slot, or None when Idle
            (the placeholder is showing).
        stashed: Bound handles that are alive outside the layout window.
    """

    def __init__(
        self,
        gateway: Gateway,
        registry: IdentityRegistry,
        layout: LayoutSpec,
        store: Optional[HandleStore] = None,
        placeholder_command: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.gateway = gateway
        self.registry = registry
        self.layout = layout
        self.store = store
        self.placeholder_command = placeholder_command
        self.logger = logger or logging.getLogger(__name__)

        self.window: Optional[WindowHandle] = None
        self.control: Optional[Handle] = None
        self.current: Optional[Handle] = None
        self.active_identity: Optional[Identity] = None
        self.stashed: list[Handle] = []

    def attach(self, window: WindowHandle, control: Handle, current: Handle) -> None:
        """Point the slot at a built layout. Starts Idle unless current is bound."""
        self.window = window
        self.control = control
        self.current = current
        owner = self.registry.identity_for(current)
        self.active_identity = owner if owner and not self._is_fixed(owner) else None
        self.refresh_stash()

    @property
    def ready(self) -> bool:
        return self.window is not None and self.current is not None

    @property
    def placeholder(self) -> Optional[Handle]:
        """Handle of the default placeholder pane (the slot role)."""
        return self.registry.resolve(self.layout.slot_role)

    def active(self, category: Optional[str] = None) -> Optional[Identity]:
        """Active identity, optionally only if it belongs to category."""
        if self.active_identity is None or category is None:
            return self.active_identity
        family = self.registry.family_of(self.active_identity)
        return self.active_identity if family.category == category else None

    def is_occupant(self, identity: Identity) -> bool:
        """Check whether identity's handle is the one in the slot."""
        handle = self.registry.resolve(identity)
        return handle is not None and handle == self.current

    def check_layout(self) -> list[Handle]:
        """Verify the layout window has exactly the expected pane count.

        Returns:
            Handles in the layout window.

        Raises:
            StructuralPreconditionError: On any other count, or if the slot
                has not been attached to a layout yet.
            GatewayError: If the window cannot be listed.
        """
        if not self.ready:
            raise StructuralPreconditionError(self.layout.expected_panes, 0, self.window)
        panes = self.gateway.list_panes(self.window)
        if len(panes) != self.layout.expected_panes:
            raise StructuralPreconditionError(self.layout.expected_panes, len(panes), self.window)
        return panes

    def activate(self, identity: Identity, factory: Factory) -> Binding:
        """Bring identity into the slot, creating its pane if needed.

        Activating the slot role itself swaps the placeholder back and
        returns the slot to Idle.

        Raises:
            NotActivatableError: For fixed roles other than the slot role, and
                for families without a slot category.
            StructuralPreconditionError: If the layout is not the expected shape.
            GatewayError: If creating or swapping fails. Nothing changes.
        """
        family = self.registry.family_of(identity)
        if family.fixed:
            if identity != self.layout.slot_role:
                raise NotActivatableError(identity)
        elif family.category is None:
            raise NotActivatableError(identity, reason="no slot category")

        existing = self.registry.get(identity)
        if existing is not None and existing.handle == self.current:
            existing.touch()
            self.active_identity = None if family.fixed else identity
            self._focus()
            return existing

        # Shape first: a failed check must not leave a half-created identity behind
        self.check_layout()

        created = existing is None
        binding = self.registry.get_or_create(identity, factory)

        try:
            self.gateway.swap_panes(self.current, binding.handle)
        except GatewayError:
            if created:
                self._rollback(identity)
            raise

        previous = self.active_identity
        self.current = binding.handle
        self.active_identity = None if family.fixed else identity
        self.logger.info(f"Activated {identity} ({binding.handle}), was {previous or 'idle'}")

        self.refresh_stash()
        self._relayout()
        self._focus()
        return binding

    def close(self, identity: Identity) -> Binding:
        """Destroy identity's pane and forget it.

        If identity occupies the slot, a fresh placeholder is split off the
        dying pane first so the slot is never empty, then the old pane is
        killed and the slot returns to Idle.

        Raises:
            IdentityNotFoundError: If identity is not bound.
            NotActivatableError: If identity is a fixed layout role.
            GatewayError: If the pane cannot be destroyed. Nothing changes.
        """
        binding = self.registry.get(identity)
        if binding is None:
            raise IdentityNotFoundError(identity)
        if self._is_fixed(identity):
            raise NotActivatableError(identity, action="close")

        if binding.handle == self.current:
            self._replace_current(binding.handle)
        else:
            try:
                self.gateway.destroy_pane(binding.handle)
            except PaneNotFoundError:
                self.logger.debug(f"{identity} ({binding.handle}) already gone")

        removed = self.registry.remove(identity)
        if self.active_identity == identity:
            self.active_identity = None
        self.logger.info(f"Closed {identity} ({removed.handle})")
        self.refresh_stash()
        return removed

    def adopt(self, handle: Handle) -> None:
        """Make an existing live pane the slot occupant without swapping.

        Used by reconciliation when the multiplexer already moved a pane into
        the slot position on its own.
        """
        self.current = handle
        owner = self.registry.identity_for(handle)
        if owner is None and self.placeholder is None:
            self.install_placeholder(handle)
            owner = self.layout.slot_role
        self.active_identity = owner if owner and not self._is_fixed(owner) else None
        self.logger.info(f"Adopted {handle} as slot occupant ({self.active_identity or 'idle'})")

    def install_placeholder(self, handle: Handle) -> None:
        """Rebind the slot role to a fresh placeholder and drop the stale one."""
        stale = self.placeholder
        if stale is not None and stale != handle:
            try:
                self.gateway.destroy_pane(stale)
            except GatewayError as e:
                self.logger.debug(f"Stale placeholder {stale} not destroyed: {e}")

        self.registry.bind(self.layout.slot_role, handle)
        if self.store is not None:
            try:
                self.store.set(self.layout.slot_role, handle)
            except GatewayError as e:
                self.logger.warning(f"Could not persist placeholder {handle}: {e}")

    def create_placeholder(self, parent: Handle) -> Handle:
        """Split a new placeholder pane off parent."""
        return self.gateway.create_pane(
            parent,
            vertical=True,
            percent=self.layout.split_percent if parent == self.control else None,
            command=self.placeholder_command,
        )

    def refresh_stash(self, live: Optional[set[Handle]] = None) -> list[Handle]:
        """Recompute which bound handles live outside the layout window.

        Read-only: failures keep the previous list.
        """
        if self.window is None:
            return self.stashed
        try:
            visible = set(self.gateway.list_panes(self.window))
            if live is None:
                live = set(self.gateway.list_panes())
        except GatewayError as e:
            self.logger.debug(f"Stash refresh skipped: {e}")
            return self.stashed

        self.stashed = [b.handle for b in self.registry.all() if b.handle in live and b.handle not in visible]
        return self.stashed

    def _replace_current(self, handle: Handle) -> None:
        """Swap a fresh placeholder in for the pane being closed."""
        fresh = self.create_placeholder(handle)
        try:
            self.gateway.destroy_pane(handle)
        except GatewayError:
            try:
                self.gateway.destroy_pane(fresh)
            except GatewayError as e:
                self.logger.warning(f"Could not roll back placeholder {fresh}: {e}")
            raise

        self.current = fresh
        self.install_placeholder(fresh)
        self._relayout()

    def _rollback(self, identity: Identity) -> None:
        """Undo a creation whose activation failed."""
        binding = self.registry.remove(identity)
        try:
            self.gateway.destroy_pane(binding.handle)
        except GatewayError as e:
            self.logger.warning(f"Could not clean up {identity} ({binding.handle}): {e}")

    def _is_fixed(self, identity: Identity) -> bool:
        return self.registry.family_of(identity).fixed

    def _relayout(self) -> None:
        if not self.layout.tmux_layout or self.window is None:
            return
        try:
            self.gateway.apply_layout(self.window, self.layout.tmux_layout)
        except GatewayError as e:
            self.logger.debug(f"Layout not re-applied: {e}")

    def _focus(self) -> None:
        if self.current is None:
            return
        try:
            self.gateway.select_pane(self.current)
        except GatewayError as e:
            self.logger.debug(f"Could not focus {self.current}: {e}")
