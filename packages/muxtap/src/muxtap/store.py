"""Handle store - persist fixed-role handles across orchestrator restarts.

Values are single opaque handles keyed by a small fixed set of names, one per
layout role. Dynamic identities are never stored; they are rediscovered from
the live multiplexer.

PUBLIC API:
  - HandleStore: Abstract key/value store
  - TmuxOptionStore: Session user options (@muxtap_<key>)
  - FileHandleStore: YAML file
  - MemoryHandleStore: In-process dict
"""

import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import yaml

from .tmux.exceptions import GatewayError
from .tmux.gateway import Gateway

__all__ = ["HandleStore", "TmuxOptionStore", "FileHandleStore", "MemoryHandleStore"]

logger = logging.getLogger(__name__)


class HandleStore(ABC):
    """Flat namespace of well-known keys to opaque handles."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a handle under key."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored handle, or None when absent."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Forget key. Missing keys are ignored."""


class MemoryHandleStore(HandleStore):
    """Store that lives only as long as the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class TmuxOptionStore(HandleStore):
    """Store handles as user options on the multiplexer session.

    Survives orchestrator restarts but not multiplexer restarts, which is
    exactly the lifetime of the handles themselves.
    """

    def __init__(self, gateway: Gateway, prefix: str = "@muxtap_"):
        self.gateway = gateway
        self.prefix = prefix

    def _option(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def set(self, key: str, value: str) -> None:
        self.gateway.set_option(self._option(key), value)

    def get(self, key: str) -> Optional[str]:
        try:
            return self.gateway.get_option(self._option(key))
        except GatewayError as e:
            logger.debug(f"Handle store read {key} failed: {e}")
            return None

    def delete(self, key: str) -> None:
        try:
            self.gateway.unset_option(self._option(key))
        except GatewayError as e:
            logger.debug(f"Handle store delete {key} failed: {e}")


class FileHandleStore(HandleStore):
    """Store handles in a YAML file (atomic write on every change)."""

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self.data: dict[str, str] = {}
        self.load()

    def load(self) -> None:
        """Load handles from YAML file."""
        if self.path.exists():
            try:
                with open(self.path) as f:
                    loaded = yaml.safe_load(f) or {}
            except (yaml.YAMLError, IOError) as e:
                logger.warning(f"Ignoring unreadable handle store {self.path}: {e}")
                loaded = {}
            self.data = {str(k): str(v) for k, v in loaded.items()} if isinstance(loaded, dict) else {}
        else:
            self.data = {}

    def save(self) -> None:
        """Save handles to YAML file (atomic write)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(mode="w", dir=self.path.parent, delete=False, suffix=".yaml") as f:
            yaml.safe_dump(self.data, f, default_flow_style=False)
            temp_path = Path(f.name)

        temp_path.replace(self.path)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value
        self.save()

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def delete(self, key: str) -> None:
        if self.data.pop(key, None) is not None:
            self.save()
