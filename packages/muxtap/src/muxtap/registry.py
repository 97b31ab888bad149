"""Identity registry - the 1:1 map from identities to live handles.

Dynamic identities are tagged on their pane when created, so a restarted
registry can find them again with one query.

PUBLIC API:
  - IdentityRegistry: Bindings plus reverse lookup by handle
  - Factory: Callable that creates a physical object for an identity
  - IDENTITY_TAG: Pane option naming the identity a pane was created for
"""

import logging
from collections.abc import Callable, Iterable
from typing import Optional

from .errors import IdentityNotFoundError, MuxtapError
from .tmux.exceptions import GatewayError
from .tmux.gateway import Gateway
from .types import Binding, Handle, Identity, IdentityFamily

__all__ = ["IdentityRegistry", "Factory", "IDENTITY_TAG"]

type Factory = Callable[[], Handle]

IDENTITY_TAG = "@muxtap_identity"


class IdentityRegistry:
    """In-memory bindings of identities to handles.

    The registry never destroys anything on its own: removing a binding only
    forgets it. The one exception is a freshly created object that could not
    be bound, which is destroyed best-effort so it does not leak.

    Args:
        families: Identity families, used to tag each binding.
        gateway: Used for tagging new panes, rediscovery and best-effort
            cleanup of unbindable objects.
        logger: Logger for diagnostics (defaults to the module logger).
    """

    def __init__(
        self,
        families: Iterable[IdentityFamily],
        gateway: Optional[Gateway] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.families = list(families)
        self.gateway = gateway
        self.logger = logger or logging.getLogger(__name__)
        self._bindings: dict[Identity, Binding] = {}
        self._by_handle: dict[Handle, Identity] = {}

    def family_of(self, identity: Identity) -> IdentityFamily:
        """Find the family an identity belongs to.

        Fixed families win; among dynamic families the longest prefix wins, so
        an empty prefix acts as the fallback.

        Raises:
            IdentityNotFoundError: If no family claims the identity.
        """
        for family in self.families:
            if family.fixed and family.matches(identity):
                return family

        candidates = [f for f in self.families if not f.fixed and f.matches(identity)]
        if not candidates:
            raise IdentityNotFoundError(identity, where="identity families")
        return max(candidates, key=lambda f: len(f.prefix))

    def resolve(self, identity: Identity) -> Optional[Handle]:
        """Pure lookup. Returns the bound handle, or None when unbound."""
        binding = self._bindings.get(identity)
        return binding.handle if binding else None

    def get(self, identity: Identity) -> Optional[Binding]:
        return self._bindings.get(identity)

    def identity_for(self, handle: Handle) -> Optional[Identity]:
        """Reverse lookup: which identity owns a handle."""
        return self._by_handle.get(handle)

    def __contains__(self, identity: Identity) -> bool:
        return identity in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def bind(self, identity: Identity, handle: Handle) -> Binding:
        """Bind identity to handle, replacing any previous handle for identity.

        Raises:
            MuxtapError: If handle already belongs to another identity.
        """
        owner = self._by_handle.get(handle)
        if owner is not None and owner != identity:
            raise MuxtapError(f"handle {handle} already bound to {owner}", context={"identity": identity})

        previous = self._bindings.get(identity)
        if previous is not None:
            self._by_handle.pop(previous.handle, None)

        binding = Binding(
            identity=identity,
            handle=handle,
            family=self.family_of(identity).name,
        )
        if previous is not None:
            binding.created_at = previous.created_at
        self._bindings[identity] = binding
        self._by_handle[handle] = identity
        self.logger.debug(f"Bound {identity} -> {handle}")
        return binding

    def get_or_create(self, identity: Identity, factory: Factory) -> Binding:
        """Return the binding for identity, creating the object if needed.

        Args:
            identity: Identity to resolve.
            factory: Creates the physical object. Must clean up after itself if
                it fails partway; a raised exception leaves the registry
                untouched.

        Returns:
            The existing or newly created binding.
        """
        existing = self._bindings.get(identity)
        if existing is not None:
            existing.touch()
            return existing

        handle = factory()
        try:
            binding = self.bind(identity, handle)
        except MuxtapError:
            self._discard(handle)
            raise

        if not self.family_of(identity).fixed:
            self._tag(identity, handle)
        return binding

    def rediscover(self) -> list[Binding]:
        """Bind live tagged panes left behind by an earlier run.

        Panes already bound here, tags naming a fixed role and duplicate tags
        are skipped. Read-only towards the multiplexer; a failed query finds
        nothing.

        Returns:
            New bindings, in identity order.
        """
        if self.gateway is None:
            return []
        try:
            tags = self.gateway.pane_tags(IDENTITY_TAG)
        except GatewayError as e:
            self.logger.warning(f"Could not look for tagged panes: {e}")
            return []

        found = []
        for handle, identity in sorted(tags.items(), key=lambda item: item[1]):
            if handle in self._by_handle or identity in self._bindings:
                self.logger.debug(f"Skipping tagged {handle} ({identity}): already bound")
                continue
            try:
                family = self.family_of(identity)
            except IdentityNotFoundError:
                self.logger.debug(f"Skipping tagged {handle}: no family for {identity}")
                continue
            if family.fixed:
                continue
            found.append(self.bind(identity, handle))
            self.logger.info(f"Rediscovered {identity} -> {handle}")
        return found

    def remove(self, identity: Identity) -> Binding:
        """Forget a binding. Does not destroy the physical object.

        Raises:
            IdentityNotFoundError: If identity is not bound.
        """
        binding = self._bindings.pop(identity, None)
        if binding is None:
            raise IdentityNotFoundError(identity)
        self._by_handle.pop(binding.handle, None)
        self.logger.debug(f"Unbound {identity} (was {binding.handle})")
        return binding

    def all(self) -> list[Binding]:
        """All bindings: fixed roles first, each group in identity order."""
        fixed = []
        dynamic = []
        for identity in sorted(self._bindings):
            binding = self._bindings[identity]
            family = self.family_of(identity)
            (fixed if family.fixed else dynamic).append(binding)
        return fixed + dynamic

    def _tag(self, identity: Identity, handle: Handle) -> None:
        if self.gateway is None:
            return
        try:
            self.gateway.tag_pane(handle, IDENTITY_TAG, identity)
        except GatewayError as e:
            self.logger.warning(f"Could not tag {handle} as {identity}, it will not survive a restart: {e}")

    def _discard(self, handle: Handle) -> None:
        """Best-effort destroy of an object that never got bound."""
        if self.gateway is None:
            return
        try:
            self.gateway.destroy_pane(handle)
        except GatewayError as e:
            self.logger.warning(f"Could not clean up orphaned {handle}: {e}")
