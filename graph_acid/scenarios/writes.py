r"""
Write anomaly scenarios.

- LU (lost update): every committed increment of a counter must survive.
- WS (write skew): concurrent withdrawals must not jointly break a
  constraint that each one checked on its own.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TYPE_CHECKING

from graph_acid.operations import Operation
from graph_acid.protocols import Step
from graph_acid.scenarios.base import BaseScenario, Detection, ScenarioRegistry
from graph_acid.types import Payload, Role, RunPlan, TaskSpec, TransactionOutcome

if TYPE_CHECKING:
    from graph_acid.runner.orchestrator import TransactionContext

__all__ = ["LostUpdate", "WriteSkew"]

# First account id created by LU writers
LU_FIRST_NEW_ACCOUNT_ID = 2

WS_BALANCES = (70, 80)
WS_MINIMUM_TOTAL = 100
WS_WITHDRAWAL = 100


def lu_write(tx: TransactionContext, params: Payload) -> Payload:
    tx.execute(Operation.LU_W, account1Id=1, account2Id=params["account2Id"])
    return {}


def ws_write(tx: TransactionContext, params: Payload) -> Payload:
    pair = tx.execute(Operation.READ_PAIR_BALANCE, account1Id=params["account1Id"], account2Id=params["account2Id"])
    if pair["total"] < WS_MINIMUM_TOTAL:
        return {"withdrew": False}
    tx.sleep(params["sleepMs"])
    tx.execute(Operation.WITHDRAW, accountId=params["withdrawFrom"], amount=WS_WITHDRAWAL)
    return {"withdrew": True}


@ScenarioRegistry.register("lu")
class LostUpdate(BaseScenario):
    """LU: lost update.

    Each writer adds a transfer out of account 1 and increments its
    numTransferred counter. Afterwards the counter and the number of
    outgoing transfers must both equal the number of committed writers.
    """

    def init_steps(self, plan: RunPlan) -> list[Step]:
        return [(Operation.CREATE_ACCOUNT, {"accountId": 1, "numTransferred": 0})]

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        return [
            TaskSpec(i, Role.WRITER, lu_write, {"account2Id": LU_FIRST_NEW_ACCOUNT_ID + i})
            for i in range(plan.lu_transactions)
        ]

    def final_check(self, plan: RunPlan) -> Step | None:
        return (Operation.LU_R, {"accountId": 1})

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        if final is None:
            return Detection.from_findings(["luR result missing"])
        expected = sum(1 for o in outcomes if o.ok)
        return Detection.from_findings(
            f"{key} is {final[key]}, expected {expected}"
            for key in ("numTransferred", "numTransferEdges")
            if final[key] != expected
        )


@ScenarioRegistry.register("ws")
class WriteSkew(BaseScenario):
    """WS: write skew.

    Pairs of accounts start at 70 and 80. A writer withdraws 100 from one
    side only if the pair still holds at least 100 in total. No pair may end
    with a total of zero or less.
    """

    def init_steps(self, plan: RunPlan) -> list[Step]:
        steps: list[Step] = []
        for pair in range(1, plan.ws_pairs + 1):
            steps.append((Operation.CREATE_ACCOUNT, {"accountId": 2 * pair - 1, "balance": WS_BALANCES[0]}))
            steps.append((Operation.CREATE_ACCOUNT, {"accountId": 2 * pair, "balance": WS_BALANCES[1]}))
        return steps

    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        tasks = []
        for i in range(plan.ws_writers):
            pair = rng.randint(1, plan.ws_pairs)
            account1_id, account2_id = 2 * pair - 1, 2 * pair
            params = {
                "account1Id": account1_id,
                "account2Id": account2_id,
                "withdrawFrom": rng.choice((account1_id, account2_id)),
                "sleepMs": plan.sleep_ms,
            }
            tasks.append(TaskSpec(i, Role.WRITER, ws_write, params))
        return tasks

    def final_check(self, plan: RunPlan) -> Step | None:
        return (Operation.WS_R, {})

    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        if final is None:
            return Detection.from_findings(["wsR result missing"])
        return Detection.from_findings(
            f"accounts {account_id} and {account_id + 1} hold a total of zero or less"
            for account_id in final["violatingPairs"]
        )
