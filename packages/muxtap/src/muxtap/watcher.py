"""Drift watcher - periodic reconciliation between user actions.

Catches drift caused outside the program (a user killing a pane, a process
exiting) without waiting for the next activate or close.

PUBLIC API:
  - DriftWatcher: Background thread that reconciles on an interval
"""

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Optional

from .errors import MuxtapError
from .types import Identity

if TYPE_CHECKING:
    from .orchestrator import Orchestrator

__all__ = ["DriftWatcher"]

logger = logging.getLogger(__name__)


class DriftWatcher:
    """Run Orchestrator.reconcile() every interval seconds.

    Args:
        orchestrator: Engine to reconcile.
        interval: Seconds between passes.
        on_change: Called with removed identities when a pass removed any.
    """

    def __init__(
        self,
        orchestrator: "Orchestrator",
        interval: float = 3.0,
        on_change: Optional[Callable[[list[Identity]], None]] = None,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        self.orchestrator = orchestrator
        self.interval = interval
        self.on_change = on_change
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start polling. Starting a running watcher is an error."""
        if self.running:
            raise RuntimeError("Watcher already running")
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="muxtap-drift")
        self._thread.start()
        logger.debug(f"Drift watcher started ({self.interval}s)")

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

    def check(self) -> list[Identity]:
        """Run one pass now. Errors are logged, never raised."""
        try:
            removed = self.orchestrator.reconcile()
        except MuxtapError as e:
            logger.warning(f"Drift check failed: {e}")
            return []

        if removed and self.on_change is not None:
            try:
                self.on_change(removed)
            except Exception as e:
                logger.error(f"Drift callback failed: {e}")
        return removed

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.check()

    def __enter__(self) -> "DriftWatcher":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
