r"""
Protocol definitions for transactional stores and scenarios.

All store adapters must implement the TransactionalStore protocol.
All catalog entries must implement the Scenario protocol.

    from graph_acid.protocols import TransactionalStore, Scenario

    class MyStore(TransactionalStore):
        ...
"""

import random
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from graph_acid.operations import Operation
from graph_acid.types import Payload, RunPlan, TaskSpec, TransactionOutcome

__all__ = [
    "TransactionalStore",
    "Scenario",
    "Step",
]

Step = tuple[Operation, Payload]


@runtime_checkable
class TransactionalStore(Protocol):
    """Protocol for transactional graph store adapters.

    The harness only calls begin, commit, abort, execute and wipe; everything
    store-specific (query language, wire protocol, schema) stays behind it.
    """

    @property
    def name(self) -> str:
        """Human-readable store name."""
        ...

    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        """Establish connection to the store."""
        ...

    def disconnect(self) -> None:
        """Close connection to the store."""
        ...

    def begin(self) -> Any:
        """Open a transaction and return its handle."""
        ...

    def commit(self, tx: Any) -> None:
        """Commit the transaction.

        Raises:
            TransactionAborted: If the store rejects the commit.
        """
        ...

    def abort(self, tx: Any) -> None:
        """Roll back the transaction and release its locks."""
        ...

    def execute(self, tx: Any, operation: Operation, parameters: Payload) -> Payload:
        """Execute a named operation inside the transaction.

        Raises:
            TransactionAborted: If the store aborts the transaction.
            AdapterError: If the operation cannot complete.
        """
        ...

    def wipe(self) -> None:
        """Delete all data; returns once the effect is visible to new transactions."""
        ...


@runtime_checkable
class Scenario(Protocol):
    """Protocol for anomaly scenarios."""

    @property
    def name(self) -> str:
        """Scenario name."""
        ...

    @property
    def description(self) -> str:
        """Human-readable description."""
        ...

    @property
    def sequential(self) -> bool:
        """Run tasks one after another instead of through the pool."""
        ...

    def init_steps(self, plan: RunPlan) -> list[Step]:
        """Operations run in one setup transaction after the wipe."""
        ...

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        """Build the full task list with parameters bound."""
        ...

    def baseline_check(self, plan: RunPlan) -> Step | None:
        """Consistency read taken before the race, if any."""
        ...

    def final_check(self, plan: RunPlan) -> Step | None:
        """Consistency read taken after all tasks resolved, if any."""
        ...

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Any:
        """Inspect outcomes and consistency reads; return a Detection."""
        ...
