"""Shared fixtures: an in-memory multiplexer with a built layout."""

import pytest

from muxtap.orchestrator import Orchestrator
from muxtap.store import MemoryHandleStore
from muxtap.testing import MemoryGateway


@pytest.fixture
def gateway():
    """One window with one pane (%1), which is the current pane."""
    gateway = MemoryGateway()
    gateway.add_window("main")
    return gateway


@pytest.fixture
def store():
    return MemoryHandleStore()


@pytest.fixture
def make_engine(gateway, store):
    """Build an orchestrator on the shared gateway and run setup."""

    def make(**kwargs):
        engine = Orchestrator(gateway, store=store, **kwargs)
        engine.setup()
        gateway.reset_calls()
        return engine

    return make


@pytest.fixture
def engine(make_engine):
    """Single layout: control %1, placeholder %2 in window @1."""
    return make_engine()
