"""Error taxonomy and shared error responses for muxtap.

Every failure an orchestrator call can report is a MuxtapError. Callers can
catch the base class or tell the categories apart:

  - StructuralPreconditionError: live layout does not match the expected shape
  - CapacityExceededError: pool full and nothing evictable
  - IdentityNotFoundError: identity or pool name unknown
  - NotActivatableError: identity exists but cannot occupy the slot
  - LayoutError: layout could not be built or recovered

Gateway failures live in muxtap.tmux.exceptions and share the same base.

PUBLIC API:
  - MuxtapError: Base exception with context
  - StructuralPreconditionError, CapacityExceededError, IdentityNotFoundError,
    NotActivatableError, LayoutError
  - markdown_error_response: Create error response for markdown display
  - table_error_response: Create error response for table display
  - string_error_response: Create error response for string display
"""

from typing import Any


class MuxtapError(Exception):
    """Base exception for all muxtap errors.

    Attributes:
        message: Human-readable error description.
        context: Additional details for display and debugging.
    """

    def __init__(self, message: str, *, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


class StructuralPreconditionError(MuxtapError):
    """Raised when the layout window does not hold the expected pane count."""

    def __init__(self, expected: int, found: int, window: str | None = None):
        self.expected = expected
        self.found = found
        self.window = window
        super().__init__(
            f"expected {expected} panes in layout window, found {found}",
            context={"window": window} if window else None,
        )


class CapacityExceededError(MuxtapError):
    """Raised when the pool is full and no entry can be evicted."""

    def __init__(self, max_size: int, reason: str = "nothing evictable"):
        self.max_size = max_size
        super().__init__(f"window pool limit reached ({max_size}): {reason}")


class IdentityNotFoundError(MuxtapError):
    """Raised when an identity is not tracked."""

    def __init__(self, identity: str, where: str = "registry"):
        self.identity = identity
        super().__init__(f"{identity} not found in {where}")


class NotActivatableError(MuxtapError):
    """Raised when activating an identity that cannot occupy the slot."""

    def __init__(self, identity: str, reason: str = "fixed layout role", action: str = "activate"):
        self.identity = identity
        super().__init__(f"cannot {action} {identity}: {reason}")


class LayoutError(MuxtapError):
    """Raised when the layout cannot be created or recovered."""

    pass


def markdown_error_response(message: str) -> dict[str, Any]:
    """Create error response for markdown display commands.

    Args:
        message: The error message to display

    Returns:
        Markdown display dict with error element
    """
    return {"elements": [{"type": "text", "content": f"Error: {message}"}], "frontmatter": {"status": "error"}}


def table_error_response(message: str) -> list[dict[str, Any]]:
    """Create error response for table display commands.

    Args:
        message: The error message (will be logged)

    Returns:
        Empty list (tables show nothing on error)
    """
    from logging import getLogger

    logger = getLogger(__name__)
    logger.warning(f"Command failed: {message}")
    return []


def string_error_response(message: str) -> str:
    """Create error response for string display commands."""
    return f"Error: {message}"
