r"""
Scenario runner and orchestration.

Coordinates setup, concurrent execution, consistency reads and judging of
anomaly scenarios against a store.

    from graph_acid.runner import Harness

    harness = Harness(store)
    summary = harness.run()
"""

from graph_acid.runner.harness import Harness, ProgressCallback, RunSummary
from graph_acid.runner.judge import Judge
from graph_acid.runner.orchestrator import Orchestrator, TransactionContext

__all__ = [
    "Harness",
    "Judge",
    "Orchestrator",
    "ProgressCallback",
    "RunSummary",
    "TransactionContext",
]
