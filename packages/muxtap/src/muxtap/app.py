"""muxtap ReplKit2 application - identities over tmux panes.

Main application entry point providing dual REPL/MCP functionality for
activating, closing and inspecting logical identities bound to tmux panes.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from replkit2 import App

from .config import get_config_manager
from .orchestrator import Orchestrator
from .tmux.gateway import Gateway
from .watcher import DriftWatcher

logger = logging.getLogger(__name__)


@dataclass
class MuxtapState:
    """Application state for muxtap.

    Holds the one orchestrator for this process. It is built lazily from
    muxtap.toml on first use so importing the app never touches tmux.
    """

    orchestrator: Optional[Orchestrator] = None
    watcher: Optional[DriftWatcher] = None
    gateway: Optional[Gateway] = None  # defaults to tmux
    removed: list[str] = field(default_factory=list)

    def engine(self) -> Orchestrator:
        """Return the orchestrator, building its layout and drift watcher on first call.

        Raises:
            MuxtapError: If the layout cannot be set up. The next call retries.
        """
        if self.orchestrator is None:
            config = get_config_manager()
            orchestrator = Orchestrator.from_config(config, self.gateway, logger=logging.getLogger("muxtap.engine"))
            orchestrator.setup()
            self.orchestrator = orchestrator
            if config.poll_interval > 0:
                self.watcher = DriftWatcher(orchestrator, config.poll_interval, self._record_removed)
                self.watcher.start()
        return self.orchestrator

    def drain_removed(self) -> list[str]:
        """Identities the drift watcher removed since the last drain."""
        with self.engine().lock:
            removed, self.removed = self.removed, []
            return removed

    def _record_removed(self, removed: list[str]) -> None:
        logger.info(f"Drift removed: {', '.join(removed)}")
        with self.engine().lock:
            self.removed.extend(removed)


# Must be created before command imports for decorator registration
app = App(
    "muxtap",
    MuxtapState,
    uri_scheme="muxtap",
    fastmcp={
        "description": "Stable identities over tmux panes with a swap-in slot",
        "tags": {"terminal", "tmux", "layout"},
    },
)


# Command imports trigger @app.command decorator registration
from .commands import ls  # noqa: E402, F401
from .commands import activate  # noqa: E402, F401
from .commands import close  # noqa: E402, F401
from .commands import chat  # noqa: E402, F401
from .commands import reconcile  # noqa: E402, F401
from .commands import pool  # noqa: E402, F401
from .commands import setup  # noqa: E402, F401
