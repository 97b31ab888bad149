"""Core tmux operations - the only place a tmux process is spawned.

PUBLIC API:
  - run_tmux: Execute tmux command and return result
  - check_tmux_available: Check if tmux is available and server running
  - get_current_pane: Get the pane this process runs in
"""

import os
import shutil
import subprocess
from typing import List, Optional, Tuple


def run_tmux(args: List[str], timeout: Optional[float] = None) -> Tuple[int, str, str]:
    """Run tmux command, return (returncode, stdout, stderr).

    Args:
        args: Arguments after the tmux binary.
        timeout: Seconds before the call is abandoned (exit 124).
    """
    cmd = ["tmux"] + args
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        return 124, "", "tmux timeout"
    except OSError as e:
        return 127, "", str(e)
    return result.returncode, result.stdout, result.stderr


def check_tmux_available() -> bool:
    """Check if tmux is available and server is running."""
    if shutil.which("tmux") is None:
        return False
    code, _, _ = run_tmux(["info"])
    return code == 0


def get_current_pane() -> Optional[str]:
    """Get current tmux pane ID if inside tmux.

    Prefers TMUX_PANE, which is stable for the life of the pane, over asking
    tmux for the focused pane.
    """
    if not os.environ.get("TMUX"):
        return None

    pane_id = os.environ.get("TMUX_PANE")
    if pane_id:
        return pane_id

    code, stdout, _ = run_tmux(["display", "-p", "#{pane_id}"])
    if code == 0:
        return stdout.strip()
    return None
