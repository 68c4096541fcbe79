r"""
Many-preceders scenarios.

A reader performs the same read twice inside one transaction with a pause
in between, while writers commit changes to what it reads. Both reads must
return the same result.

- IMP (item-many-preceders): the reader reads an account's balance.
- PMP (predicate-many-preceders): the reader counts incoming transfers.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TYPE_CHECKING

from graph_acid.operations import Operation
from graph_acid.protocols import Step
from graph_acid.scenarios.base import BaseScenario, Detection, ScenarioRegistry, committed_payloads, interleave
from graph_acid.types import Payload, Role, RunPlan, TaskSpec, TransactionOutcome

if TYPE_CHECKING:
    from graph_acid.runner.orchestrator import TransactionContext

__all__ = ["ItemManyPreceders", "PredicateManyPreceders", "repeated_read_findings"]


def imp_write(tx: TransactionContext, params: Payload) -> Payload:
    tx.execute(Operation.IMP_W, accountId=params["accountId"])
    return {}


def imp_read(tx: TransactionContext, params: Payload) -> Payload:
    first = tx.execute(Operation.READ_BALANCE, accountId=params["accountId"])["balance"]
    tx.sleep(params["sleepMs"])
    second = tx.execute(Operation.READ_BALANCE, accountId=params["accountId"])["balance"]
    return {"firstRead": first, "secondRead": second}


def pmp_write(tx: TransactionContext, params: Payload) -> Payload:
    tx.execute(Operation.PMP_W, account1Id=params["account1Id"], account2Id=params["account2Id"])
    return {}


def pmp_read(tx: TransactionContext, params: Payload) -> Payload:
    first = tx.execute(Operation.COUNT_INCOMING_TRANSFERS, accountId=params["account2Id"])["count"]
    tx.sleep(params["sleepMs"])
    second = tx.execute(Operation.COUNT_INCOMING_TRANSFERS, accountId=params["account2Id"])["count"]
    return {"firstRead": first, "secondRead": second}


def repeated_read_findings(tasks: Sequence[TaskSpec], outcomes: Sequence[TransactionOutcome]) -> list[str]:
    """Committed readers whose two reads differ."""
    return [
        f"reader {task.index} read {payload['firstRead']} then {payload['secondRead']}"
        for task, payload in committed_payloads(tasks, outcomes, Role.READER)
        if payload["firstRead"] != payload["secondRead"]
    ]


@ScenarioRegistry.register("imp")
class ItemManyPreceders(BaseScenario):
    """IMP: item-many-preceders.

    Writers increment an account's balance; readers read the balance twice.
    """

    def init_steps(self, plan: RunPlan) -> list[Step]:
        return [(Operation.CREATE_ACCOUNT, {"accountId": 1, "balance": 1})]

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        writers = [{"accountId": 1}] * plan.imp_transactions
        readers = [{"accountId": 1, "sleepMs": plan.sleep_ms}] * plan.imp_transactions
        return interleave(imp_write, writers, imp_read, readers)

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        return Detection.from_findings(repeated_read_findings(tasks, outcomes))


@ScenarioRegistry.register("pmp")
class PredicateManyPreceders(BaseScenario):
    """PMP: predicate-many-preceders.

    Writers add a transfer into account 2; readers count the transfers into
    account 2 twice.
    """

    def init_steps(self, plan: RunPlan) -> list[Step]:
        return [
            (Operation.CREATE_ACCOUNT, {"accountId": 1}),
            (Operation.CREATE_ACCOUNT, {"accountId": 2}),
        ]

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        writers = [{"account1Id": 1, "account2Id": 2}] * plan.pmp_transactions
        readers = [{"account2Id": 2, "sleepMs": plan.sleep_ms}] * plan.pmp_transactions
        return interleave(pmp_write, writers, pmp_read, readers)

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        return Detection.from_findings(repeated_read_findings(tasks, outcomes))
