"""Configuration management for muxtap.

Handles layout, pool and identity-family settings from muxtap.toml.

Example muxtap.toml:
    [default]
    layout = "single"
    pool_max_size = 5
    recovery = "adopt"

    [families.ai]
    command = "claude --continue"

    [families.logs]
    prefix = "log-"
    category = "resource"
    pooled = true
    window_format = "Logs: {suffix}"
"""

import dataclasses
import logging
import os
import tomllib
from pathlib import Path
from typing import Optional

from .types import AI_FAMILY, LAYOUTS, RESOURCE_FAMILY, IdentityFamily, LayoutSpec, RecoveryPolicy

logger = logging.getLogger(__name__)

_FAMILY_FIELDS = ("prefix", "category", "command", "pooled", "window_format")


def _find_config_file() -> Optional[Path]:
    """Find muxtap.toml in current or parent directories."""
    current = Path.cwd()

    for parent in [current] + list(current.parents):
        config_file = parent / "muxtap.toml"
        if config_file.exists():
            return config_file

    return None


def _load_config(path: Optional[Path] = None) -> dict:
    """Load raw configuration from file."""
    if path is None:
        path = _find_config_file()

    if path is None or not path.exists():
        return {}

    with open(path, "rb") as f:
        return tomllib.load(f)


class ConfigManager:
    """Manages configuration for muxtap.

    Args:
        path: Explicit config file. Defaults to the nearest muxtap.toml.
    """

    def __init__(self, path: Optional[Path] = None):
        self._config_file = path or _find_config_file()
        self.data = _load_config(self._config_file)
        self._default_config = self.data.get("default", {})
        self._families = self._parse_families(self.data.get("families", {}))

    @property
    def config_file(self) -> Optional[Path]:
        return self._config_file

    @property
    def session(self) -> Optional[str]:
        """Target session. MUXTAP_SESSION wins over the file."""
        return os.environ.get("MUXTAP_SESSION") or self._default_config.get("session")

    @property
    def layout(self) -> LayoutSpec:
        """Layout to build, with the slot role override applied."""
        name = self._default_config.get("layout", "single")
        layout = LAYOUTS.get(name)
        if layout is None:
            logger.warning(f"Unknown layout {name!r}, using single")
            layout = LAYOUTS["single"]

        slot_role = self._default_config.get("slot_role")
        if slot_role and slot_role != layout.slot_role:
            if slot_role in layout.roles and slot_role != layout.control_role:
                layout = dataclasses.replace(layout, slot_role=slot_role)
            else:
                logger.warning(f"slot_role {slot_role!r} is not a swappable role of {layout.name}, ignoring")
        return layout

    @property
    def pool_max_size(self) -> int:
        """Maximum pooled windows, 0 for unbounded."""
        return max(0, int(self._default_config.get("pool_max_size", 0)))

    @property
    def window_prefix(self) -> str:
        return self._default_config.get("window_prefix", "")

    @property
    def recovery(self) -> RecoveryPolicy:
        value = self._default_config.get("recovery", "adopt")
        try:
            return RecoveryPolicy(value)
        except ValueError:
            logger.warning(f"Unknown recovery policy {value!r}, using adopt")
            return RecoveryPolicy.ADOPT

    @property
    def poll_interval(self) -> float:
        """Seconds between drift checks; 0 disables the watcher."""
        return float(self._default_config.get("poll_interval", 3.0))

    @property
    def gateway_timeout(self) -> float:
        return float(self._default_config.get("gateway_timeout", 3.0))

    @property
    def placeholder_command(self) -> Optional[str]:
        return self._default_config.get("placeholder_command")

    @property
    def store(self) -> str:
        """Handle store backend: "tmux" or "file"."""
        return self._default_config.get("store", "tmux")

    @property
    def store_path(self) -> Path:
        return Path(self._default_config.get("store_path", "~/.muxtap/handles.yaml")).expanduser()

    @property
    def debug_log(self) -> Optional[str]:
        """Debug log file. MUXTAP_DEBUG_LOG wins over the file."""
        return os.environ.get("MUXTAP_DEBUG_LOG") or self._default_config.get("debug_log")

    @property
    def families(self) -> list[IdentityFamily]:
        """Dynamic identity families, built-ins merged with [families.*]."""
        return list(self._families.values())

    def _parse_families(self, tables: dict) -> dict[str, IdentityFamily]:
        families = {AI_FAMILY.name: AI_FAMILY, RESOURCE_FAMILY.name: RESOURCE_FAMILY}

        for name, table in tables.items():
            if not isinstance(table, dict):
                continue
            overrides = {k: v for k, v in table.items() if k in _FAMILY_FIELDS}
            unknown = set(table) - set(_FAMILY_FIELDS)
            if unknown:
                logger.warning(f"Ignoring unknown keys in [families.{name}]: {', '.join(sorted(unknown))}")

            if name in families:
                families[name] = dataclasses.replace(families[name], **overrides)
            else:
                families[name] = IdentityFamily(name=name, **overrides)

        return families


# Global instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get or create the global config manager."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
