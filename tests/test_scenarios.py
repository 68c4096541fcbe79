r"""
Tests for graph_acid.scenarios: task plans and detection rules.
"""

import random

import pytest

from graph_acid.errors import AdapterError, TransactionAborted
from graph_acid.operations import Operation
from graph_acid.protocols import Scenario
from graph_acid.scenarios import (
    AbortedRead,
    AtomicityCommit,
    AtomicityRollback,
    CircularInformationFlow,
    DirtyWrite,
    FracturedRead,
    IntermediateRead,
    ItemManyPreceders,
    LostUpdate,
    ObservedTransactionVanishes,
    PredicateManyPreceders,
    ScenarioRegistry,
    WriteSkew,
)
from graph_acid.scenarios.base import interleave
from graph_acid.types import OutcomeStatus, Role, RunPlan, TransactionOutcome

CATALOG = ["atomicity_c", "atomicity_rb", "g0", "g1a", "g1b", "g1c", "imp", "pmp", "otv", "fr", "lu", "ws"]


def outcome_for(task, status=OutcomeStatus.COMMITTED, **payload):
    if status == OutcomeStatus.COMMITTED:
        return TransactionOutcome.committed(task.index, task.role, payload)
    if status == OutcomeStatus.ROLLED_BACK:
        return TransactionOutcome.rolled_back(task.index, task.role, payload)
    return TransactionOutcome.aborted(task.index, task.role, TransactionAborted("conflict"))


@pytest.fixture
def plan():
    return RunPlan(name="test")


@pytest.fixture
def rng():
    return random.Random(7)


class TestRegistry:
    def test_catalog_order(self):
        assert ScenarioRegistry.list() == CATALOG

    def test_create(self):
        assert isinstance(ScenarioRegistry.create("g0"), DirtyWrite)

    def test_create_unknown(self):
        with pytest.raises(ValueError, match="Unknown scenario"):
            ScenarioRegistry.create("g2")

    @pytest.mark.parametrize("name", CATALOG)
    def test_scenarios_implement_protocol(self, name):
        scenario = ScenarioRegistry.create(name)
        assert isinstance(scenario, Scenario)
        assert scenario.name == name
        assert scenario.description

    @pytest.mark.parametrize("name", CATALOG)
    def test_task_indices_are_dense(self, name, plan, rng):
        tasks = ScenarioRegistry.create(name).build_tasks(plan, rng)
        assert [t.index for t in tasks] == list(range(len(tasks)))

    @pytest.mark.parametrize("name", CATALOG)
    def test_task_plan_is_seeded(self, name, plan):
        scenario = ScenarioRegistry.create(name)
        first = [t.params for t in scenario.build_tasks(plan, random.Random(3))]
        second = [t.params for t in scenario.build_tasks(plan, random.Random(3))]
        assert first == second


class TestInterleave:
    def test_writer_first_then_remainder(self):
        tasks = interleave(lambda tx, p: {}, [{"w": 0}, {"w": 1}], lambda tx, p: {}, [{"r": 0}, {"r": 1}, {"r": 2}])
        assert [t.role for t in tasks] == [Role.WRITER, Role.READER, Role.WRITER, Role.READER, Role.READER]


class TestAtomicityCommit:
    def test_plan(self, plan, rng):
        tasks = AtomicityCommit().build_tasks(plan, rng)
        assert len(tasks) == 50
        assert sum(1 for t in tasks if t.params["collides"]) == 10
        assert AtomicityCommit.sequential

    def test_consistent_counts_pass(self, plan, rng):
        tasks = AtomicityCommit().build_tasks(plan, rng)
        outcomes = [
            outcome_for(t, OutcomeStatus.ABORTED if t.params["collides"] else OutcomeStatus.COMMITTED) for t in tasks
        ]
        baseline = {"numAccounts": 2, "numNames": 2, "numTransferred": 3}
        final = {"numAccounts": 42, "numNames": 2, "numTransferred": 43}
        assert AtomicityCommit().detect(tasks, outcomes, baseline, final).anomalies == 0

    def test_partial_commit_detected(self, plan, rng):
        tasks = AtomicityCommit().build_tasks(plan, rng)
        outcomes = [
            outcome_for(t, OutcomeStatus.ABORTED if t.params["collides"] else OutcomeStatus.COMMITTED) for t in tasks
        ]
        baseline = {"numAccounts": 2, "numNames": 2, "numTransferred": 3}
        final = {"numAccounts": 42, "numNames": 2, "numTransferred": 44}
        detection = AtomicityCommit().detect(tasks, outcomes, baseline, final)
        assert detection.anomalies == 1
        assert "numTransferred" in detection.details[0]

    def test_colliding_commit_detected(self, plan, rng):
        tasks = AtomicityCommit().build_tasks(plan, rng)
        outcomes = [outcome_for(t) for t in tasks]
        baseline = {"numAccounts": 2, "numNames": 2, "numTransferred": 3}
        final = {"numAccounts": 52, "numNames": 2, "numTransferred": 53}
        detection = AtomicityCommit().detect(tasks, outcomes, baseline, final)
        assert detection.anomalies == 11

    def test_collision_rejected_by_adapter_error_passes(self, plan, rng):
        tasks = AtomicityCommit().build_tasks(plan, rng)
        outcomes = [
            TransactionOutcome.errored(t.index, t.role, AdapterError("unique constraint violation"))
            if t.params["collides"]
            else outcome_for(t)
            for t in tasks
        ]
        baseline = {"numAccounts": 2, "numNames": 2, "numTransferred": 3}
        final = {"numAccounts": 42, "numNames": 2, "numTransferred": 43}
        assert AtomicityCommit().detect(tasks, outcomes, baseline, final).anomalies == 0


class TestAtomicityRollback:
    def test_consistent_counts_pass(self, plan, rng):
        tasks = AtomicityRollback().build_tasks(plan, rng)
        outcomes = [
            outcome_for(t, OutcomeStatus.ROLLED_BACK if t.params["collides"] else OutcomeStatus.COMMITTED)
            for t in tasks
        ]
        baseline = {"numAccounts": 2, "numNames": 2, "numTransferred": 3}
        final = {"numAccounts": 27, "numNames": 2, "numTransferred": 28}
        assert AtomicityRollback().detect(tasks, outcomes, baseline, final).anomalies == 0

    def test_rolled_back_write_visible(self, plan, rng):
        tasks = AtomicityRollback().build_tasks(plan, rng)
        outcomes = [
            outcome_for(t, OutcomeStatus.ROLLED_BACK if t.params["collides"] else OutcomeStatus.COMMITTED)
            for t in tasks
        ]
        baseline = {"numAccounts": 2, "numNames": 2, "numTransferred": 3}
        final = {"numAccounts": 27, "numNames": 2, "numTransferred": 53}
        assert AtomicityRollback().detect(tasks, outcomes, baseline, final).anomalies == 1


class TestDirtyWrite:
    def test_final_check(self, plan):
        assert DirtyWrite().final_check(plan) == (Operation.G0_CHECK, {"account1Id": 1, "account2Id": 2})

    def test_consistent_histories(self, plan, rng):
        tasks = DirtyWrite().build_tasks(plan, rng)[:3]
        outcomes = [outcome_for(tasks[0]), outcome_for(tasks[1], OutcomeStatus.ABORTED), outcome_for(tasks[2])]
        final = {"a1VersionHistory": [0, 3, 1], "tVersionHistory": [0, 3, 1], "a2VersionHistory": [0, 3, 1]}
        assert DirtyWrite().detect(tasks, outcomes, None, final).anomalies == 0

    def test_order_mismatch(self, plan, rng):
        tasks = DirtyWrite().build_tasks(plan, rng)[:2]
        outcomes = [outcome_for(t) for t in tasks]
        final = {"a1VersionHistory": [0, 1, 2], "tVersionHistory": [0, 2, 1], "a2VersionHistory": [0, 1, 2]}
        detection = DirtyWrite().detect(tasks, outcomes, None, final)
        assert detection.anomalies == 1
        assert "tVersionHistory" in detection.details[0]

    def test_aborted_id_present(self, plan, rng):
        tasks = DirtyWrite().build_tasks(plan, rng)[:2]
        outcomes = [outcome_for(tasks[0]), outcome_for(tasks[1], OutcomeStatus.ABORTED)]
        final = {"a1VersionHistory": [0, 1, 2], "tVersionHistory": [0, 1], "a2VersionHistory": [0, 1]}
        detection = DirtyWrite().detect(tasks, outcomes, None, final)
        assert detection.anomalies == 1
        assert "aborted transaction 2" in detection.details[0]


class TestAbortedRead:
    def test_baseline_is_read_balance(self, plan):
        assert AbortedRead().baseline_check(plan) == (Operation.READ_BALANCE, {"accountId": 1})

    def test_detects_rolled_back_value(self, plan, rng):
        tasks = AbortedRead().build_tasks(plan, rng)
        outcomes = []
        for t in tasks:
            if t.role == Role.WRITER:
                outcomes.append(outcome_for(t, OutcomeStatus.ROLLED_BACK))
            else:
                outcomes.append(outcome_for(t, balance=200 if t.index == 1 else 99))
        detection = AbortedRead().detect(tasks, outcomes, {"balance": 99}, None)
        assert detection.anomalies == 1


class TestIntermediateRead:
    def test_even_read_detected(self, plan, rng):
        tasks = IntermediateRead().build_tasks(plan, rng)
        outcomes = [
            outcome_for(t) if t.role == Role.WRITER else outcome_for(t, balance=200 if t.index == 3 else 99)
            for t in tasks
        ]
        assert IntermediateRead().detect(tasks, outcomes, None, None).anomalies == 1

    def test_aborted_reader_ignored(self, plan, rng):
        tasks = IntermediateRead().build_tasks(plan, rng)
        outcomes = [
            outcome_for(t) if t.role == Role.WRITER else outcome_for(t, OutcomeStatus.ABORTED) for t in tasks
        ]
        assert IntermediateRead().detect(tasks, outcomes, None, None).anomalies == 0


class TestCircularInformationFlow:
    def test_directions_are_mixed(self, plan, rng):
        tasks = CircularInformationFlow().build_tasks(plan, rng)
        directions = {t.params["account1Id"] for t in tasks}
        assert directions == {1, 2}

    def test_cycle_detected(self, plan, rng):
        tasks = CircularInformationFlow().build_tasks(plan, rng)[:3]
        outcomes = [
            outcome_for(tasks[0], account2Balance=2),
            outcome_for(tasks[1], account2Balance=1),
            outcome_for(tasks[2], account2Balance=0),
        ]
        detection = CircularInformationFlow().detect(tasks, outcomes, None, None)
        assert detection.anomalies == 1
        assert "1 and 2" in detection.details[0]

    def test_read_of_aborted_write(self, plan, rng):
        tasks = CircularInformationFlow().build_tasks(plan, rng)[:2]
        outcomes = [outcome_for(tasks[0], account2Balance=2), outcome_for(tasks[1], OutcomeStatus.ABORTED)]
        assert CircularInformationFlow().detect(tasks, outcomes, None, None).anomalies == 1

    def test_serial_history_passes(self, plan, rng):
        tasks = CircularInformationFlow().build_tasks(plan, rng)[:3]
        outcomes = [
            outcome_for(tasks[0], account2Balance=0),
            outcome_for(tasks[1], account2Balance=1),
            outcome_for(tasks[2], account2Balance=2),
        ]
        assert CircularInformationFlow().detect(tasks, outcomes, None, None).anomalies == 0


class TestRepeatedReads:
    @pytest.mark.parametrize("cls", [ItemManyPreceders, PredicateManyPreceders])
    def test_changed_read_detected(self, cls, plan, rng):
        tasks = cls().build_tasks(plan, rng)
        assert len(tasks) == 40
        outcomes = [
            outcome_for(t)
            if t.role == Role.WRITER
            else outcome_for(t, firstRead=1, secondRead=2 if t.index == 1 else 1)
            for t in tasks
        ]
        assert cls().detect(tasks, outcomes, None, None).anomalies == 1

    def test_fractured_read(self, plan, rng):
        tasks = FracturedRead().build_tasks(plan, rng)
        outcomes = [
            outcome_for(t)
            if t.role == Role.WRITER
            else outcome_for(t, firstRead=[1, 1, 1, 1], secondRead=[2, 2, 1, 1] if t.index == 1 else [1, 1, 1, 1])
            for t in tasks
        ]
        assert FracturedRead().detect(tasks, outcomes, None, None).anomalies == 1


class TestObservedTransactionVanishes:
    def test_plan(self, plan, rng):
        tasks = ObservedTransactionVanishes().build_tasks(plan, rng)
        writer = tasks[0]
        assert writer.role == Role.WRITER
        assert writer.rounds == 100
        assert len(writer.params["accountIds"]) == 100
        assert all(1 <= a <= 4 for a in writer.params["accountIds"])
        assert sum(1 for t in tasks if t.role == Role.READER) == 50

    def test_vanishing_write(self, plan, rng):
        tasks = ObservedTransactionVanishes().build_tasks(plan, rng)
        outcomes = [outcome_for(tasks[0])]
        for t in tasks[1:]:
            second = [2, 2, 2, 2] if t.index == 1 else [3, 3, 3, 3]
            outcomes.append(outcome_for(t, firstRead=[3, 3, 3, 3], secondRead=second))
        assert ObservedTransactionVanishes().detect(tasks, outcomes, None, None).anomalies == 1


class TestLostUpdate:
    def test_counts_match(self, plan, rng):
        tasks = LostUpdate().build_tasks(plan, rng)
        outcomes = [outcome_for(t, OutcomeStatus.ABORTED if t.index < 10 else OutcomeStatus.COMMITTED) for t in tasks]
        final = {"numTransferred": 190, "numTransferEdges": 190}
        assert LostUpdate().detect(tasks, outcomes, None, final).anomalies == 0

    def test_lost_update_detected(self, plan, rng):
        tasks = LostUpdate().build_tasks(plan, rng)
        outcomes = [outcome_for(t) for t in tasks]
        final = {"numTransferred": 180, "numTransferEdges": 200}
        detection = LostUpdate().detect(tasks, outcomes, None, final)
        assert detection.anomalies == 1
        assert "numTransferred" in detection.details[0]


class TestWriteSkew:
    def test_init_pairs(self, plan):
        steps = WriteSkew().init_steps(plan)
        assert len(steps) == 20
        assert steps[0] == (Operation.CREATE_ACCOUNT, {"accountId": 1, "balance": 70})
        assert steps[1] == (Operation.CREATE_ACCOUNT, {"accountId": 2, "balance": 80})

    def test_withdraw_side_belongs_to_pair(self, plan, rng):
        for t in WriteSkew().build_tasks(plan, rng):
            assert t.params["withdrawFrom"] in (t.params["account1Id"], t.params["account2Id"])
            assert t.params["account2Id"] == t.params["account1Id"] + 1

    def test_violations_reported(self, plan, rng):
        tasks = WriteSkew().build_tasks(plan, rng)
        outcomes = [outcome_for(t) for t in tasks]
        assert WriteSkew().detect(tasks, outcomes, None, {"violatingPairs": []}).anomalies == 0
        assert WriteSkew().detect(tasks, outcomes, None, {"violatingPairs": [3, 7]}).anomalies == 2
