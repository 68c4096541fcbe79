r"""
Snapshot scenarios over a four-account transfer cycle.

Writers increment every balance on the cycle in one transaction. Readers
read the cycle's balances twice with a pause in between.

- OTV (observed transaction vanishes): once a reader saw a write, its
  second read may not fall behind it.
- FR (fractured read): both reads must be identical.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TYPE_CHECKING

from graph_acid.operations import CYCLE_SIZE, Operation
from graph_acid.protocols import Step
from graph_acid.scenarios.base import BaseScenario, Detection, ScenarioRegistry, committed_payloads, interleave
from graph_acid.types import Payload, Role, RunPlan, TaskSpec, TransactionOutcome

if TYPE_CHECKING:
    from graph_acid.runner.orchestrator import TransactionContext

__all__ = ["ObservedTransactionVanishes", "FracturedRead"]


def cycle_steps() -> list[Step]:
    """Accounts 1..4 with zero balance, linked 1 -> 2 -> 3 -> 4 -> 1."""
    steps: list[Step] = [(Operation.CREATE_ACCOUNT, {"accountId": i, "balance": 0}) for i in range(1, CYCLE_SIZE + 1)]
    steps.extend(
        (Operation.CREATE_TRANSFER, {"account1Id": i, "account2Id": i % CYCLE_SIZE + 1})
        for i in range(1, CYCLE_SIZE + 1)
    )
    return steps


def otv_write(tx: TransactionContext, params: Payload) -> Payload:
    tx.execute(Operation.CYCLE_INCREMENT, accountId=params["accountIds"][tx.round])
    return {}


def fr_write(tx: TransactionContext, params: Payload) -> Payload:
    tx.execute(Operation.CYCLE_INCREMENT, accountId=params["accountId"])
    return {}


def cycle_read(tx: TransactionContext, params: Payload) -> Payload:
    first = tx.execute(Operation.CYCLE_READ, accountId=params["accountId"])["balances"]
    tx.sleep(params["sleepMs"])
    second = tx.execute(Operation.CYCLE_READ, accountId=params["accountId"])["balances"]
    return {"firstRead": list(first), "secondRead": list(second)}


def _start(rng: random.Random) -> int:
    return rng.randint(1, CYCLE_SIZE)


@ScenarioRegistry.register("otv")
class ObservedTransactionVanishes(BaseScenario):
    """OTV: observed transaction vanishes.

    A single writer runs many rounds, each incrementing the cycle from a
    random account in its own transaction. A reader's first read must not
    be newer than its second: max(firstRead) <= min(secondRead).
    """

    def init_steps(self, plan: RunPlan) -> list[Step]:
        return cycle_steps()

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        writer = TaskSpec(
            0,
            Role.WRITER,
            otv_write,
            {"accountIds": [_start(rng) for _ in range(plan.otv_rounds)]},
            rounds=plan.otv_rounds,
        )
        readers = [
            TaskSpec(i + 1, Role.READER, cycle_read, {"accountId": _start(rng), "sleepMs": plan.sleep_ms})
            for i in range(plan.otv_readers)
        ]
        return [writer, *readers]

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        return Detection.from_findings(
            f"reader {task.index} read {payload['firstRead']} then {payload['secondRead']}"
            for task, payload in committed_payloads(tasks, outcomes, Role.READER)
            if max(payload["firstRead"]) > min(payload["secondRead"])
        )


@ScenarioRegistry.register("fr")
class FracturedRead(BaseScenario):
    """FR: fractured read.

    Writers increment the cycle from a random account; readers must see the
    same balances in both reads.
    """

    def init_steps(self, plan: RunPlan) -> list[Step]:
        return cycle_steps()

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        writers = [{"accountId": _start(rng)} for _ in range(plan.fr_transactions)]
        readers = [{"accountId": _start(rng), "sleepMs": plan.sleep_ms} for _ in range(plan.fr_transactions)]
        return interleave(fr_write, writers, cycle_read, readers)

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        return Detection.from_findings(
            f"reader {task.index} read {payload['firstRead']} then {payload['secondRead']}"
            for task, payload in committed_payloads(tasks, outcomes, Role.READER)
            if payload["firstRead"] != payload["secondRead"]
        )
