r"""
Atomicity scenarios.

Both scenarios run their transactions one after another and compare an
aggregate read of the graph before and after:

- Atomicity-C: committed transactions are fully visible, a transaction that
  trips the id constraint leaves no trace.
- Atomicity-RB: transactions that roll back on purpose leave no trace.

    from graph_acid.scenarios.atomicity import AtomicityCommit

    scenario = AtomicityCommit()
    tasks = scenario.build_tasks(plan, random.Random(42))
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TYPE_CHECKING

from graph_acid.operations import Operation
from graph_acid.protocols import Step
from graph_acid.scenarios.base import BaseScenario, Detection, ScenarioRegistry
from graph_acid.types import OutcomeStatus, Payload, Role, RunPlan, TaskSpec, TransactionOutcome

if TYPE_CHECKING:
    from graph_acid.runner.orchestrator import TransactionContext

__all__ = ["AtomicityCommit", "AtomicityRollback", "atomicity_c", "atomicity_rb"]

# Id of the seeded account that colliding transactions target
EXISTING_ACCOUNT_ID = 2
FIRST_NEW_ACCOUNT_ID = 3


def atomicity_c(tx: TransactionContext, params: Payload) -> Payload:
    tx.execute(
        Operation.ATOMICITY_C,
        account1Id=1,
        account2Id=params["account2Id"],
        newTrans=params["newTrans"],
    )
    return {}


def atomicity_rb(tx: TransactionContext, params: Payload) -> Payload:
    tx.execute(Operation.APPEND_TRANS_HISTORY, accountId=1, newTrans=params["newTrans"])
    if tx.execute(Operation.ACCOUNT_EXISTS, accountId=params["account2Id"])["accountExists"]:
        tx.rollback()
        return {"rolledBack": True}
    tx.execute(Operation.CREATE_ACCOUNT, accountId=params["account2Id"], transHistory=[])
    return {}


class _AtomicityScenario(BaseScenario):
    sequential = True

    def init_steps(self, plan: RunPlan) -> list[Step]:
        return [
            (Operation.CREATE_ACCOUNT, {"accountId": 1, "name": "AliceAcc", "transHistory": [100]}),
            (Operation.CREATE_ACCOUNT, {"accountId": EXISTING_ACCOUNT_ID, "name": "BobAcc", "transHistory": [50, 150]}),
        ]

    def baseline_check(self, plan: RunPlan) -> Step | None:
        return (Operation.ATOMICITY_CHECK, {})

    def final_check(self, plan: RunPlan) -> Step | None:
        return (Operation.ATOMICITY_CHECK, {})

    def _compare_counts(self, committed: int, baseline: Payload | None, final: Payload | None) -> list[str]:
        if baseline is None or final is None:
            return ["atomicityCheck result missing"]
        expected = {
            "numAccounts": baseline["numAccounts"] + committed,
            "numNames": baseline["numNames"],
            "numTransferred": baseline["numTransferred"] + committed,
        }
        return [
            f"{key}: expected {value}, found {final[key]}"
            for key, value in expected.items()
            if final[key] != value
        ]


@ScenarioRegistry.register("atomicity_c")
class AtomicityCommit(_AtomicityScenario):
    """Atomicity-C: committed transactions are fully visible, aborted ones invisible.

    Each transaction appends to account 1's transfer history and creates a new
    account linked by a transfer. Every n-th transaction reuses the id of an
    existing account, trips the uniqueness constraint and must abort.
    """

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        tasks = []
        for i in range(plan.atomicity_transactions):
            collides = (i + 1) % plan.atomicity_collision_every == 0
            params = {
                "account2Id": EXISTING_ACCOUNT_ID if collides else FIRST_NEW_ACCOUNT_ID + i,
                "newTrans": 200 + i,
                "collides": collides,
            }
            tasks.append(TaskSpec(i, Role.WRITER, atomicity_c, params))
        return tasks

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        committed = sum(1 for o in outcomes if o.ok)
        findings = self._compare_counts(committed, baseline, final)
        colliding = [(t, o) for t, o in zip(tasks, outcomes, strict=True) if t.params["collides"]]
        for task, outcome in colliding:
            if outcome.ok:
                findings.append(f"transaction {task.index} reused account id {EXISTING_ACCOUNT_ID} and committed")
        if colliding and not any(o.failed for _, o in colliding):
            findings.append("no colliding transaction was rejected")
        return Detection.from_findings(findings)


@ScenarioRegistry.register("atomicity_rb")
class AtomicityRollback(_AtomicityScenario):
    """Atomicity-RB: rolled-back transactions leave no trace.

    Each transaction appends to account 1's transfer history, then probes for
    its target account. Even transactions target an existing account and roll
    back; the others create the account and commit.
    """

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        tasks = []
        for i in range(plan.atomicity_transactions):
            collides = i % 2 == 0
            params = {
                "account2Id": EXISTING_ACCOUNT_ID if collides else FIRST_NEW_ACCOUNT_ID + i,
                "newTrans": 200 + i,
                "collides": collides,
            }
            tasks.append(TaskSpec(i, Role.WRITER, atomicity_rb, params))
        return tasks

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        committed = sum(1 for o in outcomes if o.ok)
        findings = self._compare_counts(committed, baseline, final)
        for task, outcome in zip(tasks, outcomes, strict=True):
            if task.params["collides"] and outcome.ok:
                findings.append(f"transaction {task.index} found no account {EXISTING_ACCOUNT_ID} and committed")
            elif not task.params["collides"] and outcome.status == OutcomeStatus.ROLLED_BACK:
                findings.append(f"transaction {task.index} saw account {task.params['account2Id']} before creating it")
        return Detection.from_findings(findings)
