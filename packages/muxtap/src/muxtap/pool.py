"""Window pool - bounded set of on-demand windows with LRU eviction.

Each pooled identity gets its own detached window. When the pool is full the
least recently used entry is closed to make room, except the one currently
shown in the slot.

PUBLIC API:
  - WindowPool: LRU-bounded pool of identity windows
  - PoolEntry: Metadata about one pooled window
"""

import logging
import re
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

from .errors import CapacityExceededError, IdentityNotFoundError
from .registry import IdentityRegistry
from .slot import Slot
from .tmux.exceptions import GatewayError
from .tmux.gateway import Gateway
from .types import Handle, Identity

__all__ = ["WindowPool", "PoolEntry"]

type Setup = Callable[[Handle], None]


@dataclass
class PoolEntry:
    """Metadata about a pooled window."""

    name: Identity
    window_name: str
    created_at: float = field(default_factory=time.time)
    last_access: float = field(default_factory=time.time)


class WindowPool:
    """Pool of identity windows, evicting least recently used when full.

    Args:
        gateway: Multiplexer access.
        registry: Bindings shared with the slot; pool membership and
            bindings are added and removed together.
        slot: Used to skip the active occupant and to close entries safely.
        max_size: Maximum entries. 0 means unbounded.
        prefix: Prepended to every pooled window name.
        lock: Shared with the owner so pool calls serialize with everything else.
    """

    def __init__(
        self,
        gateway: Gateway,
        registry: IdentityRegistry,
        slot: Slot,
        max_size: int = 0,
        prefix: str = "",
        lock: Optional[threading.RLock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if max_size < 0:
            raise ValueError(f"max_size must be >= 0, got {max_size}")
        self.gateway = gateway
        self.registry = registry
        self.slot = slot
        self._max_size = max_size
        self.prefix = prefix
        self._lock = lock or threading.RLock()
        self.logger = logger or logging.getLogger(__name__)
        # Oldest first; move_to_end marks most recent
        self._entries: OrderedDict[Identity, PoolEntry] = OrderedDict()

    def get_or_create(self, name: Identity, setup: Optional[Setup] = None) -> Handle:
        """Return the handle for name, creating its window if needed.

        Existing entries are touched. New entries evict first when the pool is
        at capacity, then create the window and run setup on its pane.

        Args:
            name: Pooled identity.
            setup: Called with the new pane's handle. If it raises, the window
                is destroyed and the error propagates.

        Raises:
            CapacityExceededError: If full and only the active entry remains.
            GatewayError: If the window cannot be created.
        """
        with self._lock:
            if name in self._entries:
                self.touch(name)
                return self.registry.resolve(name)

            while self._max_size > 0 and len(self._entries) >= self._max_size:
                self.evict_lru()

            family = self.registry.family_of(name)
            window_name = f"{self.prefix}{family.window_name(name)}"

            def create() -> Handle:
                window, handle = self.gateway.create_window(window_name, command=family.command)
                if setup is not None:
                    try:
                        setup(handle)
                    except Exception:
                        self._destroy_quietly(window)
                        raise
                return handle

            binding = self.registry.get_or_create(name, create)
            self._entries[name] = PoolEntry(name=name, window_name=window_name)
            self._mark_access(name)
            self.logger.info(f"Pooled {name} ({binding.handle}), {len(self._entries)}/{self._max_size or 'unbounded'}")
            return binding.handle

    def adopt(self, name: Identity) -> PoolEntry:
        """Take an already bound identity into the pool without creating anything.

        Used after a restart. Recency comes from the access marker the
        previous run left on the session; entries without one count as oldest.
        """
        with self._lock:
            family = self.registry.family_of(name)
            entry = PoolEntry(name=name, window_name=f"{self.prefix}{family.window_name(name)}")
            try:
                marker = self.gateway.get_option(self._access_key(name))
            except GatewayError:
                marker = None
            entry.last_access = float(marker) if marker and marker.isdigit() else 0.0

            self._entries[name] = entry
            ordered = sorted(self._entries.values(), key=lambda e: e.last_access)
            self._entries = OrderedDict((e.name, e) for e in ordered)
            self.logger.info(f"Adopted {name} into the pool, {len(self._entries)}/{self._max_size or 'unbounded'}")
            return entry

    def touch(self, name: Identity) -> None:
        """Mark name as most recently used."""
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                raise IdentityNotFoundError(name, where="window pool")
            entry.last_access = time.time()
            self._entries.move_to_end(name)
            binding = self.registry.get(name)
            if binding is not None:
                binding.touch()
            self._mark_access(name)

    def evict_lru(self) -> Identity:
        """Close the least recently used entry that is not in the slot.

        Returns:
            The evicted name.

        Raises:
            CapacityExceededError: If the pool is empty or holds only the
                active occupant.
        """
        with self._lock:
            for name in self._entries:
                if self.slot.is_occupant(name):
                    continue
                self.logger.info(f"Evicting least recently used {name}")
                self.close(name)
                return name
            raise CapacityExceededError(self._max_size)

    def close(self, name: Identity) -> None:
        """Close a pooled window and forget its binding.

        Raises:
            IdentityNotFoundError: If name is not pooled.
        """
        with self._lock:
            if name not in self._entries:
                raise IdentityNotFoundError(name, where="window pool")
            if name in self.registry:
                self.slot.close(name)
            self.forget(name)

    def forget(self, name: Identity) -> bool:
        """Drop pool membership without touching the multiplexer.

        Returns:
            True if name was pooled.
        """
        with self._lock:
            if self._entries.pop(name, None) is None:
                return False
            try:
                self.gateway.unset_option(self._access_key(name))
            except GatewayError as e:
                self.logger.debug(f"Could not clear access marker for {name}: {e}")
            return True

    def list(self) -> list[PoolEntry]:
        """Entries from least to most recently used."""
        with self._lock:
            return list(self._entries.values())

    def size(self) -> int:
        return len(self._entries)

    @property
    def max_size(self) -> int:
        """Maximum entries, 0 if unbounded."""
        return self._max_size

    def __contains__(self, name: Identity) -> bool:
        return name in self._entries

    def _mark_access(self, name: Identity) -> None:
        """Record last access on the session so other clients can see it."""
        try:
            self.gateway.set_option(self._access_key(name), str(int(time.time())))
        except GatewayError as e:
            self.logger.debug(f"Could not set access marker for {name}: {e}")

    def _access_key(self, name: Identity) -> str:
        return "@muxtap_last_access_" + re.sub(r"[^A-Za-z0-9_-]", "_", name)

    def _destroy_quietly(self, window: str) -> None:
        try:
            self.gateway.destroy_window(window)
        except GatewayError as e:
            self.logger.warning(f"Could not clean up window {window}: {e}")
