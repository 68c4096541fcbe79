r"""
Dirty write and dirty read scenarios.

- G0 (dirty write): writers append to the version history of two accounts
  and the transfer between them; the three histories must agree.
- G1a (aborted read): readers must never see a value written by a
  transaction that rolled back.
- G1b (intermediate read): readers must never see a value a writer
  overwrote before committing.
- G1c (circular information flow): no two committed transactions may each
  read the other's write.

    from graph_acid.scenarios.dirty import DirtyWrite

    detection = DirtyWrite().detect(tasks, outcomes, None, final)
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

__all__ = [
    "DirtyWrite",
    "AbortedRead",
    "IntermediateRead",
    "CircularInformationFlow",
]

G0_HISTORIES = ("a1VersionHistory", "tVersionHistory", "a2VersionHistory")


# =============================================================================
# Transaction programs
# =============================================================================


def g0_write(tx: TransactionContext, params: Payload) -> Payload:
    tx.execute(Operation.G0, account1Id=1, account2Id=2, transactionId=params["transactionId"])
    return {}


def g1a_write(tx: TransactionContext, params: Payload) -> Payload:
    internal_id = tx.execute(Operation.LOCATE_ACCOUNT, accountId=params["accountId"])["internalId"]
    tx.sleep(params["sleepMs"])
    tx.execute(Operation.SET_BALANCE_BY_INTERNAL_ID, internalId=internal_id, balance=200)
    tx.sleep(params["sleepMs"])
    tx.rollback()
    return {}


def read_balance(tx: TransactionContext, params: Payload) -> Payload:
    return tx.execute(Operation.READ_BALANCE, accountId=params["accountId"])


def g1b_write(tx: TransactionContext, params: Payload) -> Payload:
    tx.execute(Operation.SET_BALANCE, accountId=params["accountId"], balance=params["even"])
    tx.sleep(params["sleepMs"])
    tx.execute(Operation.SET_BALANCE, accountId=params["accountId"], balance=params["odd"])
    return {}


def g1c_write_read(tx: TransactionContext, params: Payload) -> Payload:
    return tx.execute(
        Operation.G1C,
        account1Id=params["account1Id"],
        account2Id=params["account2Id"],
        transactionId=params["transactionId"],
    )


# =============================================================================
# Scenarios
# =============================================================================


@ScenarioRegistry.register("g0")
class DirtyWrite(BaseScenario):
    """G0: dirty write.

    Two accounts joined by a transfer all start with version history [0].
    Every writer appends its transaction id to all three histories in one
    transaction. Restricted to the ids present in all three, the histories
    must be in the same order; a committed id must appear everywhere and an
    aborted id nowhere.
    """

    def init_steps(self, plan: RunPlan) -> list[Step]:
        return [
            (Operation.CREATE_ACCOUNT, {"accountId": 1, "versionHistory": [0]}),
            (Operation.CREATE_ACCOUNT, {"accountId": 2, "versionHistory": [0]}),
            (Operation.CREATE_TRANSFER, {"account1Id": 1, "account2Id": 2, "versionHistory": [0]}),
        ]

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        return [TaskSpec(i, Role.WRITER, g0_write, {"transactionId": i + 1}) for i in range(plan.g0_writers)]

    def final_check(self, plan: RunPlan) -> Step | None:
        return (Operation.G0_CHECK, {"account1Id": 1, "account2Id": 2})

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        if final is None:
            return Detection.from_findings(["g0check result missing"])

        histories = {key: list(final[key]) for key in G0_HISTORIES}
        committed = {t.params["transactionId"] for t, _ in committed_payloads(tasks, outcomes)}
        failed = {t.params["transactionId"] for t, o in zip(tasks, outcomes, strict=True) if o.failed}

        findings = []
        for key, history in histories.items():
            present = set(history)
            findings.extend(f"committed transaction {tid} missing from {key}" for tid in sorted(committed - present))
            findings.extend(f"aborted transaction {tid} present in {key}" for tid in sorted(failed & present))

        common = set.intersection(*(set(h) for h in histories.values()))
        restricted = {key: [tid for tid in h if tid in common] for key, h in histories.items()}
        reference = restricted[G0_HISTORIES[0]]
        for key in G0_HISTORIES[1:]:
            if restricted[key] != reference:
                findings.append(f"{key} order differs from {G0_HISTORIES[0]}")
        return Detection.from_findings(findings)


@ScenarioRegistry.register("g1a")
class AbortedRead(BaseScenario):
    """G1a: aborted read.

    Writers set the balance to 200 between two sleeps and then roll back.
    Every committed reader must see the committed balance (99).
    """

    def init_steps(self, plan: RunPlan) -> list[Step]:
        return [(Operation.CREATE_ACCOUNT, {"accountId": 1, "balance": 99})]

    def baseline_check(self, plan: RunPlan) -> Step | None:
        return (Operation.READ_BALANCE, {"accountId": 1})

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        writers = [{"accountId": 1, "sleepMs": plan.sleep_ms}] * plan.g1a_writers
        readers = [{"accountId": 1}] * plan.g1a_readers
        return interleave(g1a_write, writers, read_balance, readers)

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        if baseline is None:
            return Detection.from_findings(["baseline balance missing"])
        expected = baseline["balance"]
        return Detection.from_findings(
            f"reader {task.index} saw balance {payload['balance']}, expected {expected}"
            for task, payload in committed_payloads(tasks, outcomes, Role.READER)
            if payload["balance"] != expected
        )


@ScenarioRegistry.register("g1b")
class IntermediateRead(BaseScenario):
    """G1b: intermediate read.

    Writers set the balance to an even value, pause, then to an odd value
    and commit. A committed reader that sees an even balance read an
    intermediate state.
    """

    def init_steps(self, plan: RunPlan) -> list[Step]:
        return [(Operation.CREATE_ACCOUNT, {"accountId": 1, "balance": 99})]

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        writers = [{"accountId": 1, "even": 200, "odd": 99, "sleepMs": plan.g1b_sleep_ms}] * plan.g1b_writers
        readers = [{"accountId": 1}] * plan.g1b_readers
        return interleave(g1b_write, writers, read_balance, readers)

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        return Detection.from_findings(
            f"reader {task.index} saw intermediate balance {payload['balance']}"
            for task, payload in committed_payloads(tasks, outcomes, Role.READER)
            if payload["balance"] % 2 == 0
        )


@ScenarioRegistry.register("g1c")
class CircularInformationFlow(BaseScenario):
    """G1c: circular information flow.

    Each transaction writes its id to one of two accounts and reads the
    other, in a random direction. If T1 read T2's id and T2 read T1's id,
    each transaction observed the other: a dependency cycle.
    """

    def init_steps(self, plan: RunPlan) -> list[Step]:
        return [
            (Operation.CREATE_ACCOUNT, {"accountId": 1, "balance": 0}),
            (Operation.CREATE_ACCOUNT, {"accountId": 2, "balance": 0}),
        ]

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        tasks = []
        for i in range(plan.g1c_transactions):
            first, second = (1, 2) if rng.random() < 0.5 else (2, 1)
            params = {"account1Id": first, "account2Id": second, "transactionId": i + 1}
            tasks.append(TaskSpec(i, Role.WRITER, g1c_write_read, params))
        return tasks

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        reads = {t.params["transactionId"]: p["account2Balance"] for t, p in committed_payloads(tasks, outcomes)}

        findings = []
        for tid, seen in sorted(reads.items()):
            if seen == 0:
                continue
            if seen not in reads:
                findings.append(f"transaction {tid} read {seen}, written by a transaction that did not commit")
            elif reads[seen] == tid and tid < seen:
                findings.append(f"transactions {tid} and {seen} read each other's writes")
        return Detection.from_findings(findings)
