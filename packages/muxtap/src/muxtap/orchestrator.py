"""Orchestrator - the identity/handle engine behind one lock.

Ties the registry, slot, pool and reconciler together and is the only object
the application layer talks to. Every mutating call holds one reentrant lock,
so a swap and the bookkeeping that follows it look atomic to other callers.

PUBLIC API:
  - Orchestrator: Activate, close, resolve, list and reconcile identities
"""

import logging
import threading
from typing import Any, Optional

from .config import ConfigManager, get_config_manager
from .errors import IdentityNotFoundError, MuxtapError, NotActivatableError
from .layout import BuiltLayout, LayoutBuilder
from .pool import Setup, WindowPool
from .reconcile import Reconciler
from .registry import Factory, IdentityRegistry
from .slot import Slot
from .store import FileHandleStore, HandleStore, TmuxOptionStore
from .tmux.exceptions import GatewayError
from .tmux.gateway import Gateway, TmuxGateway
from .types import (
    AI_FAMILY,
    RESOURCE_FAMILY,
    SINGLE_LAYOUT,
    Binding,
    Handle,
    Identity,
    IdentityFamily,
    LayoutSpec,
    Location,
    RecoveryPolicy,
)

__all__ = ["Orchestrator"]


class Orchestrator:
    """Logical identities over multiplexer panes.

    Args:
        gateway: Multiplexer access.
        layout: Fixed roles and which of them is the control pane and the slot.
        store: Where fixed-role handles persist. Defaults to session options.
        families: Dynamic identity families. The layout roles form the one
            fixed family automatically.
        pool_max_size: Window pool bound, 0 for unbounded.
        window_prefix: Prepended to every window this engine creates.
        recovery: Slot repair policy when its occupant dies.
        placeholder_command: Command for newly created placeholder panes.
        logger: Parent logger; components log to children of it.
    """

    def __init__(
        self,
        gateway: Gateway,
        *,
        layout: LayoutSpec = SINGLE_LAYOUT,
        store: Optional[HandleStore] = None,
        families: Optional[list[IdentityFamily]] = None,
        pool_max_size: int = 0,
        window_prefix: str = "",
        recovery: RecoveryPolicy = RecoveryPolicy.ADOPT,
        placeholder_command: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.gateway = gateway
        self.layout = layout
        self.store = store if store is not None else TmuxOptionStore(gateway)
        self.window_prefix = window_prefix
        self._lock = threading.RLock()

        role_family = IdentityFamily(name="role", fixed=True, roles=layout.roles)
        dynamic = list(families) if families is not None else [AI_FAMILY, RESOURCE_FAMILY]

        self.registry = IdentityRegistry([role_family, *dynamic], gateway, self.logger.getChild("registry"))
        self.slot = Slot(gateway, self.registry, layout, self.store, placeholder_command, self.logger.getChild("slot"))
        self.pool = WindowPool(
            gateway,
            self.registry,
            self.slot,
            max_size=pool_max_size,
            prefix=window_prefix,
            lock=self._lock,
            logger=self.logger.getChild("pool"),
        )
        self.reconciler = Reconciler(
            gateway, self.registry, self.slot, self.pool, recovery, self.logger.getChild("reconcile")
        )
        self.builder = LayoutBuilder(gateway, layout, self.store, placeholder_command, self.logger.getChild("layout"))

    @classmethod
    def from_config(
        cls,
        config: Optional[ConfigManager] = None,
        gateway: Optional[Gateway] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "Orchestrator":
        """Build an orchestrator from muxtap.toml settings."""
        config = config or get_config_manager()
        if gateway is None:
            gateway = TmuxGateway(session=config.session, timeout=config.gateway_timeout)

        if config.store == "file":
            store: HandleStore = FileHandleStore(config.store_path)
        else:
            store = TmuxOptionStore(gateway)

        return cls(
            gateway,
            layout=config.layout,
            store=store,
            families=config.families,
            pool_max_size=config.pool_max_size,
            window_prefix=config.window_prefix,
            recovery=config.recovery,
            placeholder_command=config.placeholder_command,
            logger=logger,
        )

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # Layout lifecycle

    def setup(self) -> BuiltLayout:
        """Find, recover or build the layout and bind every fixed role.

        Dynamic identities left alive by an earlier run are bound again from
        their pane tags, and pooled ones rejoin the pool.

        Raises:
            LayoutError: If there is nothing to build from.
            GatewayError: If building fails.
        """
        with self._lock:
            built = self.builder.build()
            for role, handle in built.roles.items():
                self.registry.bind(role, handle)

            for binding in self.registry.rediscover():
                if self.registry.family_of(binding.identity).pooled:
                    self.pool.adopt(binding.identity)

            self.slot.attach(built.window, built.roles[self.layout.control_role], built.current)
            self.logger.info(f"Layout {self.layout.name} ready in {built.window}: {built.roles}")
            return built

    def teardown(self) -> list[Identity]:
        """Close every dynamic identity and forget stored role handles.

        Returns:
            Identities that were closed.
        """
        with self._lock:
            closed = []
            for binding in self.registry.all():
                if self.registry.family_of(binding.identity).fixed:
                    continue
                try:
                    self._close(binding.identity)
                    closed.append(binding.identity)
                except MuxtapError as e:
                    self.logger.warning(f"Teardown could not close {binding.identity}: {e}")

            for role in self.layout.roles:
                if role in self.registry:
                    self.registry.remove(role)
            self.builder.forget()
            return closed

    # Mutations

    def activate(self, identity: Identity) -> Handle:
        """Swap identity into the slot, creating it on first use.

        Returns:
            The identity's handle, unchanged by the swap.

        Raises:
            StructuralPreconditionError: Layout window has the wrong pane count.
            NotActivatableError: Identity is a non-slot fixed role.
            CapacityExceededError: Pool full with only the active entry.
            GatewayError: Creating or swapping failed; nothing changed.
        """
        with self._lock:
            self.reconciler.reconcile()
            family = self.registry.family_of(identity)

            if not family.pooled:
                return self.slot.activate(identity, self._factory(identity)).handle
            if self.slot.is_occupant(identity):
                if identity in self.pool:
                    self.pool.touch(identity)
                return self.slot.activate(identity, self._factory(identity)).handle

            self.slot.check_layout()
            created = identity not in self.registry
            self.pool.get_or_create(identity)
            try:
                return self.slot.activate(identity, self._factory(identity)).handle
            except MuxtapError:
                if created:
                    self._discard_pooled(identity)
                raise

    def open_chat(self, family_name: str = AI_FAMILY.name) -> Identity:
        """Activate the lowest-numbered free identity of a family (e.g. ai-1).

        Raises:
            IdentityNotFoundError: If the family does not exist.
        """
        with self._lock:
            family = next((f for f in self.registry.families if f.name == family_name), None)
            if family is None or family.fixed:
                raise IdentityNotFoundError(family_name, where="identity families")

            self.reconciler.reconcile()
            number = 1
            while f"{family.prefix}{number}" in self.registry:
                number += 1
            identity = f"{family.prefix}{number}"
            self.activate(identity)
            return identity

    def close(self, identity: Identity) -> None:
        """Destroy identity's pane and forget it; the slot is never left empty.

        Raises:
            IdentityNotFoundError: If identity is not bound.
            NotActivatableError: If identity is a fixed role.
            GatewayError: If destroying fails; nothing changed.
        """
        with self._lock:
            self.reconciler.reconcile()
            self._close(identity)

    def get_or_create(self, name: Identity, setup: Optional[Setup] = None) -> Handle:
        """Pool accessor: ensure name has a pooled window without showing it.

        Raises:
            NotActivatableError: If name does not belong to a pooled family.
            CapacityExceededError: Pool full with only the active entry.
        """
        with self._lock:
            if not self.registry.family_of(name).pooled:
                raise NotActivatableError(name, reason="not a pooled family", action="pool")
            return self.pool.get_or_create(name, setup)

    def reconcile(self) -> list[Identity]:
        """Prune dead bindings and heal the slot. See Reconciler."""
        with self._lock:
            return self.reconciler.reconcile()

    # Reads

    def resolve(self, identity: Identity) -> Optional[Handle]:
        """Pure lookup, no reconciliation."""
        return self.registry.resolve(identity)

    def active(self, category: Optional[str] = None) -> Optional[Identity]:
        return self.slot.active(category)

    def stashed(self) -> list[Identity]:
        """Identities whose panes are alive outside the layout window."""
        with self._lock:
            owners = (self.registry.identity_for(h) for h in self.slot.stashed)
            return sorted(owner for owner in owners if owner is not None)

    def describe(self) -> list[dict[str, Any]]:
        """One row per binding with where its pane currently is."""
        with self._lock:
            self.reconciler.reconcile()
            try:
                visible = set(self.gateway.list_panes(self.slot.window)) if self.slot.window else set()
            except GatewayError:
                visible = set()
            stashed = set(self.slot.stashed)

            rows = []
            for binding in self.registry.all():
                rows.append(
                    {
                        "identity": binding.identity,
                        "handle": binding.handle,
                        "family": binding.family,
                        "location": self._location(binding.handle, visible, stashed),
                        "pooled": binding.identity in self.pool,
                        "created_at": binding.created_at,
                        "last_access": binding.last_access,
                    }
                )
            return rows

    def list(self) -> list[Binding]:
        """Every live binding, fixed roles first."""
        with self._lock:
            self.reconciler.reconcile()
            return self.registry.all()

    def _location(self, handle: Handle, visible: set[Handle], stashed: set[Handle]) -> Location:
        if handle == self.slot.current:
            return "active"
        if handle in visible:
            return "visible"
        if handle in stashed:
            return "stashed"
        return "unknown"

    def _close(self, identity: Identity) -> None:
        if identity in self.pool:
            self.pool.close(identity)
        else:
            self.slot.close(identity)

    def _factory(self, identity: Identity) -> Factory:
        """Creates a detached window for a dynamic identity."""
        family = self.registry.family_of(identity)
        name = f"{self.window_prefix}{family.window_name(identity)}"

        def create() -> Handle:
            _, handle = self.gateway.create_window(name, command=family.command)
            return handle

        return create

    def _discard_pooled(self, identity: Identity) -> None:
        try:
            self.pool.close(identity)
        except MuxtapError as e:
            self.logger.warning(f"Could not discard {identity} after failed activation: {e}")
