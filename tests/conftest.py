r"""
Shared pytest fixtures for graph-acid tests.
"""

import pytest

from graph_acid.adapters.memory import InMemoryStore
from graph_acid.config import PLANS
from graph_acid.types import RunPlan


def _no_sleep(seconds: float) -> None:
    pass


class RecordingSleep:
    """Sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def memory_store() -> InMemoryStore:
    """Connected in-memory store."""
    store = InMemoryStore(lock_timeout=5.0)
    store.connect()
    yield store
    store.disconnect()


@pytest.fixture
def quick_plan() -> RunPlan:
    return PLANS["quick"]


@pytest.fixture
def tiny_plan() -> RunPlan:
    """Very small counts for fast end-to-end tests."""
    return RunPlan(
        name="tiny",
        workers=4,
        drain_timeout_seconds=30,
        sleep_ms=0,
        atomicity_transactions=10,
        g0_writers=10,
        g1a_writers=2,
        g1a_readers=3,
        g1b_writers=3,
        g1b_readers=3,
        g1c_transactions=10,
        imp_transactions=3,
        pmp_transactions=3,
        otv_rounds=5,
        otv_readers=4,
        fr_transactions=4,
        lu_transactions=10,
        ws_writers=8,
        ws_pairs=3,
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def no_sleep():
    """Sleep replacement that returns immediately."""
    return _no_sleep
