r"""
Concurrent task orchestration.

Runs a scenario's task list against a store through a bounded worker pool,
one transaction per task (or per round for multi-round tasks), and records
each task's outcome at its submission index. Task failures are captured as
outcomes and never stop other tasks.

    from graph_acid.runner.orchestrator import Orchestrator

    orchestrator = Orchestrator(store, workers=8)
    outcomes = orchestrator.run_tasks(tasks)
"""

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any

from graph_acid.errors import AdapterError, HarnessError, HarnessTimeout, TransactionAborted
from graph_acid.operations import Operation
from graph_acid.protocols import Step, TransactionalStore
from graph_acid.types import Payload, TaskSpec, TransactionOutcome, TransactionProgram

__all__ = ["Orchestrator", "TransactionContext", "SleepFunction"]

logger = logging.getLogger(__name__)

SleepFunction = Callable[[float], None]


class TransactionContext:
    """Handle given to a transaction program while its transaction is open.

    Attributes:
        round: Zero-based round number for multi-round tasks.
    """

    def __init__(
        self,
        store: TransactionalStore,
        handle: Any,
        *,
        round: int = 0,
        sleep: SleepFunction = time.sleep,
    ) -> None:
        self._store = store
        self._handle = handle
        self._sleep = sleep
        self.round = round
        self.rolled_back = False

    def execute(self, operation: Operation, **parameters: Any) -> Payload:
        """Execute an operation inside the open transaction."""
        if self.rolled_back:
            msg = f"{operation} after rollback"
            raise AdapterError(msg)
        return self._store.execute(self._handle, operation, parameters)

    def sleep(self, ms: int) -> None:
        """Hold the transaction open for ``ms`` milliseconds."""
        if ms > 0:
            self._sleep(ms / 1000)

    def rollback(self) -> None:
        """Roll the transaction back; the task is reported as rolled back."""
        if not self.rolled_back:
            self._store.abort(self._handle)
            self.rolled_back = True


class Orchestrator:
    """Runs transaction programs against a store."""

    def __init__(
        self,
        store: TransactionalStore,
        *,
        workers: int = 8,
        drain_timeout: float = 3600.0,
        sleep: SleepFunction = time.sleep,
    ) -> None:
        if workers < 1:
            msg = f"workers must be at least 1, got {workers}"
            raise ValueError(msg)
        self._store = store
        self._workers = workers
        self._drain_timeout = drain_timeout
        self._sleep = sleep

    @property
    def workers(self) -> int:
        return self._workers

    def _abort_quietly(self, handle: Any) -> None:
        try:
            self._store.abort(handle)
        except HarnessError as e:
            logger.debug("Abort after failure raised %s: %s", type(e).__name__, e)

    def run_transaction(self, program: TransactionProgram, params: Payload, *, round: int = 0) -> tuple[Payload, bool]:
        """Run one program in a fresh transaction.

        Returns:
            The program's payload and whether the program rolled back.

        Raises:
            TransactionAborted: If the store aborted the transaction.
            AdapterError: If the adapter failed.
        """
        handle = self._store.begin()
        ctx = TransactionContext(self._store, handle, round=round, sleep=self._sleep)
        try:
            payload = program(ctx, params) or {}
            if not ctx.rolled_back:
                self._store.commit(handle)
        except Exception:
            if not ctx.rolled_back:
                self._abort_quietly(handle)
            raise
        return payload, ctx.rolled_back

    def run_task(self, task: TaskSpec) -> TransactionOutcome:
        """Run a task to completion and capture its outcome."""
        payload: Payload = {}
        committed = 0
        for round in range(task.rounds):
            try:
                payload, rolled_back = self.run_transaction(task.program, task.params, round=round)
            except TransactionAborted as e:
                logger.debug("Task %d (%s) aborted: %s", task.index, task.role, e)
                return TransactionOutcome.aborted(task.index, task.role, e, rounds=committed)
            except AdapterError as e:
                logger.warning("Task %d (%s) adapter error: %s", task.index, task.role, e)
                return TransactionOutcome.errored(task.index, task.role, e, rounds=committed)
            except Exception as e:
                logger.warning("Task %d (%s) failed unexpectedly", task.index, task.role, exc_info=True)
                return TransactionOutcome.errored(task.index, task.role, e, rounds=committed)
            if rolled_back:
                return TransactionOutcome.rolled_back(task.index, task.role, payload, rounds=committed)
            committed += 1
        return TransactionOutcome.committed(task.index, task.role, payload, rounds=committed)

    def run_tasks(self, tasks: Sequence[TaskSpec], *, sequential: bool = False) -> list[TransactionOutcome]:
        """Run every task and return outcomes ordered by task index.

        Args:
            tasks: Tasks indexed 0..n-1.
            sequential: Run tasks one after another on the calling thread.

        Raises:
            HarnessTimeout: If the pool did not drain within the timeout.
        """
        if sorted(t.index for t in tasks) != list(range(len(tasks))):
            msg = "Task indices must be 0..n-1 without gaps"
            raise ValueError(msg)

        outcomes: list[TransactionOutcome | None] = [None] * len(tasks)

        if sequential:
            for task in tasks:
                outcomes[task.index] = self.run_task(task)
            return outcomes  # type: ignore[return-value]

        executor = ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="graph-acid")
        futures = [executor.submit(self.run_task, task) for task in tasks]
        done, pending = wait(futures, timeout=self._drain_timeout)
        if pending:
            executor.shutdown(wait=False, cancel_futures=True)
            raise HarnessTimeout(len(pending), self._drain_timeout)
        executor.shutdown(wait=True)

        for future in done:
            outcome = future.result()
            outcomes[outcome.index] = outcome
        return outcomes  # type: ignore[return-value]

    def run_setup(self, steps: Sequence[Step]) -> None:
        """Run all steps in a single committed transaction."""
        if not steps:
            return

        def setup(tx: TransactionContext, params: Payload) -> Payload:
            for operation, parameters in steps:
                tx.execute(operation, **parameters)
            return {}

        self.run_transaction(setup, {})

    def run_check(self, step: Step) -> Payload:
        """Run a single consistency read in its own transaction."""
        operation, parameters = step

        def check(tx: TransactionContext, params: Payload) -> Payload:
            return tx.execute(operation, **parameters)

        payload, _ = self.run_transaction(check, {})
        return payload
