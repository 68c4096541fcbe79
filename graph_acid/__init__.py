r"""
graph-acid: isolation anomaly tests for transactional graph stores.

Runs the LDBC ACID catalog (Atomicity-C, Atomicity-RB, G0, G1a, G1b, G1c,
IMP, PMP, OTV, FR, LU, WS) against Neo4j, Memgraph or the in-process
reference store and judges whether each anomaly manifested.

    from graph_acid import get_plan
    from graph_acid.adapters import Neo4jStore
    from graph_acid.runner import Harness

    store = Neo4jStore()
    store.connect()
    summary = Harness(store, plan=get_plan("quick")).run()
"""

from graph_acid.config import DEFAULT_PLAN, PLANS, get_plan
from graph_acid.errors import (
    AdapterError,
    HarnessError,
    HarnessTimeout,
    InvariantViolation,
    MissingResultError,
    SetupFailure,
    TransactionAborted,
)
from graph_acid.operations import Operation
from graph_acid.types import OutcomeStatus, Role, RunPlan, ScenarioReport, TaskSpec, TransactionOutcome, Verdict

__all__ = [
    "AdapterError",
    "DEFAULT_PLAN",
    "HarnessError",
    "HarnessTimeout",
    "InvariantViolation",
    "MissingResultError",
    "Operation",
    "OutcomeStatus",
    "PLANS",
    "Role",
    "RunPlan",
    "ScenarioReport",
    "SetupFailure",
    "TaskSpec",
    "TransactionAborted",
    "TransactionOutcome",
    "Verdict",
    "get_plan",
]

__version__ = "0.1.0"
