"""Tests for reconciliation and slot repair."""

from muxtap.types import THREE_LAYOUT, LayoutSpec, RecoveryPolicy

# Slot on the top pane so killing "left" does not touch the slot
TOP_SLOT = LayoutSpec(
    name="top-slot", roles=("top", "left", "right"), control_role="right", slot_role="top", tmux_layout=""
)


class TestPruning:
    """Test removal of dead bindings."""

    def test_killed_role_removed(self, make_engine, gateway):
        """Killing a non-slot role removes exactly that binding."""
        engine = make_engine(layout=TOP_SLOT)
        assert (engine.resolve("top"), engine.resolve("left"), engine.resolve("right")) == ("%1", "%2", "%3")
        assert engine.slot.current == "%1"

        gateway.kill_pane("%2")

        assert engine.reconcile() == ["left"]
        assert engine.resolve("left") is None
        assert engine.resolve("top") == "%1"

    def test_idempotent(self, make_engine, gateway):
        """A second pass without changes removes nothing."""
        engine = make_engine(layout=TOP_SLOT)
        gateway.kill_pane("%2")

        engine.reconcile()
        assert engine.reconcile() == []

    def test_single_bulk_query(self, engine, gateway):
        """Pruning costs one session-wide list, however many bindings exist."""
        for i in range(5):
            engine.get_or_create(f"pod-{i}")
        gateway.reset_calls()

        engine.reconcile()

        assert gateway.calls_to("list_panes").count((None,)) == 1

    def test_dead_stashed_identity(self, engine, gateway):
        """Killed background panes leave the registry and the pool."""
        handle = engine.get_or_create("pod-a")
        gateway.kill_pane(handle)

        assert engine.reconcile() == ["pod-a"]
        assert "pod-a" not in engine.pool
        assert engine.slot.current == "%2"

    def test_list_failure_tolerated(self, engine, gateway):
        """A failing enumeration is treated as nothing to do."""
        gateway.set_failure("list_panes")
        assert engine.reconcile() == []
        gateway.clear_failures()
        assert engine.resolve("slot") == "%2"


class TestSlotRepair:
    """Test healing when the slot's occupant died."""

    def test_placeholder_died_recreated(self, engine, gateway, store):
        """One pane left: a fresh placeholder is created and the slot is Idle."""
        gateway.kill_pane("%2")

        assert engine.reconcile() == ["slot"]

        fresh = engine.resolve("slot")
        assert fresh == "%3"
        assert engine.slot.current == fresh
        assert gateway.panes_in("@1") == ["%1", fresh]
        assert store.data["slot"] == fresh
        assert engine.active() is None
        assert engine.reconcile() == []

    def test_active_died_recreated(self, engine, gateway):
        """The active identity dying clears the active marker."""
        handle = engine.activate("pod-a")
        gateway.kill_pane(handle)

        assert engine.reconcile() == ["pod-a"]
        assert engine.active() is None
        assert len(gateway.panes_in("@1")) == 2
        assert engine.slot.current == engine.resolve("slot")

    def _respawned(self, engine, gateway):
        """Active pane died after something else moved into the layout window."""
        handle = engine.activate("pod-a")
        survivor = gateway.create_pane(handle)
        gateway.kill_pane(handle)
        gateway.reset_calls()
        return survivor

    def test_adopt_survivor(self, engine, gateway):
        """Two panes left: the non-control one becomes the slot without creating."""
        survivor = self._respawned(engine, gateway)

        assert engine.reconcile() == ["pod-a"]

        assert engine.slot.current == survivor
        assert engine.active() is None
        assert gateway.calls_to("create_pane") == []
        assert engine.resolve("slot") == "%2"

    def test_adopt_known_identity(self, engine, gateway):
        """An adopted pane that belongs to an identity makes it active."""
        engine.activate("pod-a")
        engine.activate("pod-b")
        pod_b = engine.resolve("pod-b")
        pod_a = engine.resolve("pod-a")
        # User swapped pod-a back in by hand, then pod-b died elsewhere
        gateway.swap_panes(pod_b, pod_a)
        gateway.kill_pane(pod_b)

        assert engine.reconcile() == ["pod-b"]
        assert engine.slot.current == pod_a
        assert engine.active() == "pod-a"

    def test_recreate_policy(self, make_engine, gateway):
        """recreate replaces the survivor with a fresh placeholder."""
        engine = make_engine(recovery=RecoveryPolicy.RECREATE)
        survivor = self._respawned(engine, gateway)

        engine.reconcile()

        fresh = engine.resolve("slot")
        assert fresh != survivor
        assert survivor not in gateway.panes
        assert gateway.panes_in("@1") == ["%1", fresh]
        assert engine.slot.current == fresh

    def test_ignore_policy(self, make_engine, gateway):
        """ignore leaves the slot alone."""
        engine = make_engine(recovery=RecoveryPolicy.IGNORE)
        gateway.kill_pane("%2")
        gateway.reset_calls()

        assert engine.reconcile() == ["slot"]
        assert engine.slot.current == "%2"
        assert gateway.calls_to("create_pane") == []

    def test_three_layout_slot_died(self, make_engine, gateway):
        """In the three-role layout the other roles are never adopted."""
        engine = make_engine(layout=THREE_LAYOUT)
        left = engine.resolve("left")
        gateway.kill_pane(left)

        assert engine.reconcile() == ["left"]

        assert engine.resolve("right") == "%3"
        assert engine.resolve("left") not in (None, left)
        assert engine.slot.current == engine.resolve("left")
        assert len(gateway.panes_in("@1")) == 3
