"""Tests for the LRU window pool."""

import pytest

from muxtap.errors import CapacityExceededError, IdentityNotFoundError, NotActivatableError


class TestPoolBasics:
    """Test creation, touch and listing."""

    def test_get_or_create_creates_hidden_window(self, make_engine, gateway):
        """Pooled windows are created detached and not swapped in."""
        engine = make_engine(window_prefix="mx ")
        handle = engine.get_or_create("pod-a")

        assert engine.resolve("pod-a") == handle
        assert engine.pool.size() == 1
        assert engine.pool.list()[0].window_name == "mx Resource: pod-a"
        assert engine.active() is None
        assert gateway.panes_in("@1") == ["%1", "%2"]

    def test_get_or_create_existing_touches(self, engine, gateway):
        """A second call returns the same handle and moves it to most recent."""
        first = engine.get_or_create("a")
        engine.get_or_create("b")
        gateway.reset_calls()

        assert engine.get_or_create("a") == first
        assert [e.name for e in engine.pool.list()] == ["b", "a"]
        assert gateway.calls_to("create_window") == []

    def test_access_marker_written(self, engine, gateway):
        """Last access is mirrored to a session option."""
        engine.get_or_create("pod/a")
        assert (None, "@muxtap_last_access_pod_a") in gateway.options

        engine.pool.close("pod/a")
        assert (None, "@muxtap_last_access_pod_a") not in gateway.options

    def test_setup_called_with_handle(self, engine):
        """setup receives the new pane's handle."""
        seen = []
        handle = engine.get_or_create("pod-a", setup=seen.append)
        assert seen == [handle]

    def test_setup_failure_destroys_window(self, engine, gateway):
        """A failing setup leaves no window, binding or pool entry."""

        def broken(handle):
            raise RuntimeError("setup failed")

        with pytest.raises(RuntimeError):
            engine.get_or_create("pod-a", setup=broken)

        assert "pod-a" not in engine.registry
        assert engine.pool.size() == 0
        assert len(gateway.windows) == 1

    def test_close_unknown(self, engine):
        with pytest.raises(IdentityNotFoundError):
            engine.pool.close("nope")

    def test_unbounded(self, engine):
        """max_size 0 never evicts."""
        for i in range(10):
            engine.get_or_create(f"pod-{i}")
        assert engine.pool.size() == 10
        assert engine.pool.max_size == 0

    def test_negative_max_size(self, make_engine):
        with pytest.raises(ValueError):
            make_engine(pool_max_size=-1)

    @pytest.mark.parametrize("identity", ["ai-1", "slot"])
    def test_non_pooled_rejected(self, engine, gateway, identity):
        """Only pooled families get pool windows."""
        with pytest.raises(NotActivatableError, match="not a pooled family"):
            engine.get_or_create(identity)

        assert engine.pool.size() == 0
        assert gateway.calls_to("create_window") == []


class TestEviction:
    """Test LRU eviction and active protection."""

    def test_eviction_scenario(self, make_engine):
        """The active entry survives; the least recent inactive one goes."""
        engine = make_engine(pool_max_size=2)
        engine.get_or_create("a")
        old_b = engine.get_or_create("b")
        assert engine.pool.size() == 2

        engine.activate("a")
        engine.get_or_create("c")

        assert "b" not in engine.registry
        assert sorted(e.name for e in engine.pool.list()) == ["a", "c"]
        assert engine.active() == "a"

        new_b = engine.get_or_create("b")
        assert new_b != old_b
        assert engine.pool.size() == 2
        assert "a" in engine.pool
        assert "c" not in engine.pool

    def test_evicts_least_recent(self, make_engine):
        """Touching an entry protects it from the next eviction."""
        engine = make_engine(pool_max_size=2)
        engine.get_or_create("a")
        engine.get_or_create("b")
        engine.get_or_create("a")

        engine.get_or_create("c")

        assert [e.name for e in engine.pool.list()] == ["a", "c"]

    def test_only_active_not_evictable(self, make_engine, gateway):
        """A pool holding only the active entry reports capacity exceeded."""
        engine = make_engine(pool_max_size=1)
        engine.activate("a")
        gateway.reset_calls()

        with pytest.raises(CapacityExceededError):
            engine.get_or_create("b")

        assert "b" not in engine.registry
        assert engine.pool.size() == 1
        assert engine.active() == "a"
        assert gateway.calls_to("create_window") == []

    def test_evict_empty_pool(self, engine):
        with pytest.raises(CapacityExceededError):
            engine.pool.evict_lru()

    def test_evicting_dead_pane(self, make_engine, gateway):
        """An entry whose pane already died is still evicted cleanly."""
        engine = make_engine(pool_max_size=1)
        handle = engine.get_or_create("a")
        gateway.kill_pane(handle)

        engine.get_or_create("b")

        assert "a" not in engine.registry
        assert [e.name for e in engine.pool.list()] == ["b"]
