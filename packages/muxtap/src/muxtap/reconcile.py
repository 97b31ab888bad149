"""Reconciliation - bring in-memory state back in line with the multiplexer.

Panes die behind our back: a user closes one, a process exits, a shell is
killed. The reconciler queries the live pane set once, prunes bindings whose
handles are gone, and repairs the slot if its occupant died.

PUBLIC API:
  - Reconciler: Prune dead bindings and heal the slot
"""

import logging
from typing import Optional

from .pool import WindowPool
from .registry import IdentityRegistry
from .slot import Slot
from .tmux.exceptions import GatewayError
from .tmux.gateway import Gateway
from .types import Handle, Identity, RecoveryPolicy

__all__ = ["Reconciler"]


class Reconciler:
    """Prune dead bindings and repair the slot.

    Args:
        gateway: Multiplexer access.
        registry: Bindings to prune.
        slot: Slot to repair.
        pool: Pool whose membership follows the registry.
        policy: What to do when the slot's occupant died and two panes remain.
    """

    def __init__(
        self,
        gateway: Gateway,
        registry: IdentityRegistry,
        slot: Slot,
        pool: Optional[WindowPool] = None,
        policy: RecoveryPolicy = RecoveryPolicy.ADOPT,
        logger: Optional[logging.Logger] = None,
    ):
        self.gateway = gateway
        self.registry = registry
        self.slot = slot
        self.pool = pool
        self.policy = policy
        self.logger = logger or logging.getLogger(__name__)

    def reconcile(self) -> list[Identity]:
        """Run one reconciliation pass.

        Idempotent: a second pass with no intervening changes removes nothing.

        Returns:
            Identities whose bindings were removed. Empty if the live pane
            list could not be fetched.
        """
        try:
            live = set(self.gateway.list_panes())
        except GatewayError as e:
            self.logger.warning(f"Reconcile skipped, cannot list panes: {e}")
            return []

        removed = []
        for binding in self.registry.all():
            if binding.handle in live:
                continue
            self.registry.remove(binding.identity)
            if self.pool is not None:
                self.pool.forget(binding.identity)
            if self.slot.active_identity == binding.identity:
                self.slot.active_identity = None
            removed.append(binding.identity)

        if removed:
            self.logger.info(f"Pruned {len(removed)} dead binding(s): {', '.join(removed)}")

        if self.slot.ready and self.slot.current not in live:
            self._heal(live)

        self.slot.refresh_stash(live)
        return removed

    def _heal(self, live: set[Handle]) -> None:
        """Repair the slot after its occupant died."""
        slot = self.slot
        dead = slot.current

        if slot.control not in live:
            self.logger.error(f"Control pane {slot.control} is gone; layout needs setup")
            return

        if self.policy is RecoveryPolicy.IGNORE:
            self.logger.warning(f"Slot occupant {dead} died; leaving slot as is")
            return

        try:
            panes = self.gateway.list_panes(slot.window)
        except GatewayError as e:
            self.logger.warning(f"Cannot inspect layout window {slot.window}: {e}")
            return

        # Panes that could be in the slot position: anything not held by another role
        survivors = [p for p in panes if p != slot.control and not self._is_other_role(p)]
        expected = slot.layout.expected_panes

        if len(panes) == expected and len(survivors) == 1 and self.policy is RecoveryPolicy.ADOPT:
            slot.adopt(survivors[0])
            self.logger.info(f"Slot occupant {dead} died; adopted {survivors[0]}")
            return

        if len(panes) == expected - 1 or (len(panes) == expected and self.policy is RecoveryPolicy.RECREATE):
            self._recreate(dead, survivors if len(panes) == expected else [])
            return

        self.logger.warning(f"Slot occupant {dead} died and layout window has {len(panes)} panes; not repairing")

    def _is_other_role(self, handle: Handle) -> bool:
        owner = self.registry.identity_for(handle)
        if owner is None or owner == self.slot.layout.slot_role:
            return False
        return self.registry.family_of(owner).fixed

    def _recreate(self, dead: Handle, discard: list[Handle]) -> None:
        """Split a fresh placeholder into the slot position."""
        slot = self.slot
        try:
            fresh = slot.create_placeholder(slot.control)
        except GatewayError as e:
            self.logger.error(f"Could not recreate placeholder: {e}")
            return

        for handle in discard:
            owner = self.registry.identity_for(handle)
            if owner is not None and owner != slot.layout.slot_role:
                self.registry.remove(owner)
                if self.pool is not None:
                    self.pool.forget(owner)
            try:
                self.gateway.destroy_pane(handle)
            except GatewayError as e:
                self.logger.debug(f"Could not discard {handle}: {e}")

        slot.current = fresh
        slot.active_identity = None
        slot.install_placeholder(fresh)
        self.logger.info(f"Slot occupant {dead} died; recreated placeholder {fresh}")
