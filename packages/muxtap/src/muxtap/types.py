"""Type definitions for muxtap - identities over handles.

Callers talk in identities ("top", "pod-a", "ai-2"). The multiplexer talks in
handles ("%42", "@7"). A Binding pairs the two. Handles are opaque: never parse
them for structure.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal


type Handle = str  # e.g., "%42" - multiplexer pane ID, opaque
type WindowHandle = str  # e.g., "@7" - multiplexer window ID, opaque
type Identity = str  # e.g., "top", "pod-a", "ai-2"

# Where a bound handle currently lives
type Location = Literal["active", "visible", "stashed", "unknown"]


@dataclass
class Binding:
    """One identity bound to one live handle."""

    identity: Identity
    handle: Handle
    family: str
    created_at: float = field(default_factory=time.time)
    last_access: float = field(default_factory=time.time)

    def touch(self) -> None:
        """Mark the binding as just accessed."""
        self.last_access = time.time()


@dataclass(frozen=True)
class IdentityFamily:
    """A group of identities managed the same way.

    Fixed families pre-declare their identities (layout roles) and live for the
    session. Dynamic families are matched by prefix and created on demand.
    """

    name: str
    fixed: bool = False
    prefix: str = ""
    category: str | None = None  # slot category; None means never activatable
    command: str | None = None  # command run in newly created panes
    pooled: bool = False
    window_format: str = "{identity}"
    roles: tuple[Identity, ...] = ()

    def matches(self, identity: Identity) -> bool:
        """Check whether an identity belongs to this family."""
        if self.fixed:
            return identity in self.roles
        return identity.startswith(self.prefix)

    def window_name(self, identity: Identity) -> str:
        """Window name for a newly created identity."""
        return self.window_format.format(identity=identity, suffix=identity[len(self.prefix) :])


@dataclass(frozen=True)
class LayoutSpec:
    """A fixed arrangement of role panes in the layout window."""

    name: str
    roles: tuple[Identity, ...]
    control_role: Identity
    slot_role: Identity
    tmux_layout: str = "even-vertical"
    split_percent: int = 50  # size of the first split, in percent of the window
    side_percent: int = 40  # size of the side split (three-role layouts only)

    @property
    def expected_panes(self) -> int:
        """Number of panes the layout window must hold."""
        return len(self.roles)


SINGLE_LAYOUT = LayoutSpec(
    name="single",
    roles=("control", "slot"),
    control_role="control",
    slot_role="slot",
    tmux_layout="even-vertical",
    split_percent=50,
)

THREE_LAYOUT = LayoutSpec(
    name="three",
    roles=("top", "left", "right"),
    control_role="top",
    slot_role="left",
    tmux_layout="",
    split_percent=70,
    side_percent=40,
)

LAYOUTS = {layout.name: layout for layout in (SINGLE_LAYOUT, THREE_LAYOUT)}


class RecoveryPolicy(Enum):
    """What reconciliation does when the slot's current pane has died."""

    ADOPT = "adopt"  # two panes left: adopt the non-control survivor
    RECREATE = "recreate"  # always replace survivors with a fresh placeholder
    IGNORE = "ignore"  # leave the slot alone and log


AI_FAMILY = IdentityFamily(name="ai", prefix="ai-", category="ai", command="claude", window_format="AI Chat {suffix}")
RESOURCE_FAMILY = IdentityFamily(
    name="resource", prefix="", category="resource", pooled=True, window_format="Resource: {identity}"
)
