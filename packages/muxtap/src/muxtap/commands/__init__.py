"""muxtap commands."""

from .ls import ls
from .activate import activate
from .close import close
from .chat import chat
from .reconcile import reconcile
from .pool import pool
from .setup import setup

__all__ = ["ls", "activate", "close", "chat", "reconcile", "pool", "setup"]
