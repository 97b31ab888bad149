"""Tests for the in-memory gateway itself."""

import pytest

from muxtap.tmux.exceptions import PaneNotFoundError
from muxtap.testing import MemoryGateway


class TestMemoryGateway:
    """Test that the fake behaves like tmux where the engine relies on it."""

    def test_swap_across_windows(self):
        """Swapping exchanges positions; handles stay with their content."""
        gateway = MemoryGateway()
        main, control = gateway.add_window("main", panes=2)
        other, stashed = gateway.create_window("stash")

        gateway.swap_panes("%2", stashed)

        assert gateway.panes_in(main) == [control, stashed]
        assert gateway.panes_in(other) == ["%2"]
        assert gateway.window_of("%2") == other

    def test_last_pane_closes_window(self):
        gateway = MemoryGateway()
        window, pane = gateway.create_window("x")
        gateway.destroy_pane(pane)
        assert window not in gateway.windows

    def test_missing_pane(self):
        with pytest.raises(PaneNotFoundError):
            MemoryGateway().destroy_pane("%1")

    def test_injected_failure_recorded(self):
        """Failed calls are still logged."""
        gateway = MemoryGateway()
        gateway.set_failure("list_panes")
        with pytest.raises(Exception):
            gateway.list_panes()
        assert gateway.calls_to("list_panes") == [(None,)]

    def test_split_inserts_after_parent(self):
        gateway = MemoryGateway()
        window, first = gateway.add_window(panes=2)
        new = gateway.create_pane(first)
        assert gateway.panes_in(window) == [first, new, "%2"]

    def test_tags_follow_pane(self):
        """A pane's tags move with it through a swap and die with it."""
        gateway = MemoryGateway()
        gateway.add_window("main", panes=2)
        _, stashed = gateway.create_window("stash")
        gateway.tag_pane(stashed, "@muxtap_identity", "pod-a")

        gateway.swap_panes("%2", stashed)
        assert gateway.pane_tags("@muxtap_identity") == {stashed: "pod-a"}

        gateway.kill_pane(stashed)
        assert gateway.pane_tags("@muxtap_identity") == {}
