"""Testing utilities for muxtap.

This package provides an in-memory Gateway for unit testing without a
running tmux server.
"""

from muxtap.testing.memory import MemoryGateway, MemoryPane, MemoryWindow

__all__ = [
    "MemoryGateway",
    "MemoryPane",
    "MemoryWindow",
]
