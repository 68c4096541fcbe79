r"""
Tests for graph_acid.runner.orchestrator module.
"""

import threading
import time

import pytest

from graph_acid.errors import AdapterError, HarnessTimeout, MissingResultError, TransactionAborted
from graph_acid.operations import Operation
from graph_acid.runner.orchestrator import Orchestrator
from graph_acid.types import OutcomeStatus, Role, TaskSpec


def seed_account(store, balance=99):
    Orchestrator(store).run_setup([(Operation.CREATE_ACCOUNT, {"accountId": 1, "balance": balance})])


def read_balance(tx, params):
    return tx.execute(Operation.READ_BALANCE, accountId=1)


def increment(tx, params):
    tx.execute(Operation.IMP_W, accountId=1)
    return {}


class TestTransactionContext:
    def test_sleep_uses_injected_function(self, memory_store, recording_sleep):
        def program(tx, params):
            tx.sleep(250)
            tx.sleep(0)
            return {}

        Orchestrator(memory_store, sleep=recording_sleep).run_transaction(program, {})
        assert recording_sleep.calls == [0.25]

    def test_rollback_discards_writes(self, memory_store, no_sleep):
        seed_account(memory_store)

        def program(tx, params):
            tx.execute(Operation.SET_BALANCE, accountId=1, balance=200)
            tx.rollback()
            return {}

        orchestrator = Orchestrator(memory_store, sleep=no_sleep)
        payload, rolled_back = orchestrator.run_transaction(program, {})
        assert rolled_back
        assert orchestrator.run_check((Operation.READ_BALANCE, {"accountId": 1})) == {"balance": 99}

    def test_execute_after_rollback_fails(self, memory_store):
        def program(tx, params):
            tx.rollback()
            tx.execute(Operation.ATOMICITY_CHECK)
            return {}

        with pytest.raises(AdapterError, match="after rollback"):
            Orchestrator(memory_store).run_transaction(program, {})


class TestRunTask:
    def test_committed_outcome(self, memory_store):
        seed_account(memory_store)
        outcome = Orchestrator(memory_store).run_task(TaskSpec(0, Role.READER, read_balance))
        assert outcome.status == OutcomeStatus.COMMITTED
        assert outcome.payload == {"balance": 99}

    def test_aborted_outcome_releases_transaction(self, memory_store):
        def conflict(tx, params):
            tx.execute(Operation.CREATE_ACCOUNT, accountId=5)
            raise TransactionAborted("serialization failure")

        orchestrator = Orchestrator(memory_store)
        outcome = orchestrator.run_task(TaskSpec(0, Role.WRITER, conflict))
        assert outcome.status == OutcomeStatus.ABORTED
        assert outcome.cause == "serialization failure"
        assert orchestrator.run_check((Operation.ACCOUNT_EXISTS, {"accountId": 5})) == {"accountExists": False}

    def test_missing_result_is_errored(self, memory_store):
        outcome = Orchestrator(memory_store).run_task(TaskSpec(0, Role.READER, read_balance))
        assert outcome.status == OutcomeStatus.ERRORED
        assert outcome.error_type == MissingResultError.__name__

    def test_unexpected_exception_is_errored(self, memory_store):
        def broken(tx, params):
            raise KeyError("balance")

        outcome = Orchestrator(memory_store).run_task(TaskSpec(0, Role.READER, broken))
        assert outcome.status == OutcomeStatus.ERRORED
        assert outcome.error_type == "KeyError"

    def test_rounds_each_commit(self, memory_store):
        seed_account(memory_store, balance=0)
        orchestrator = Orchestrator(memory_store)
        outcome = orchestrator.run_task(TaskSpec(0, Role.WRITER, increment, rounds=5))
        assert outcome.rounds_committed == 5
        assert orchestrator.run_check((Operation.READ_BALANCE, {"accountId": 1})) == {"balance": 5}

    def test_round_number_is_exposed(self, memory_store):
        seen = []

        def program(tx, params):
            seen.append(tx.round)
            return {}

        Orchestrator(memory_store).run_task(TaskSpec(0, Role.WRITER, program, rounds=3))
        assert seen == [0, 1, 2]

    def test_failing_round_stops_task(self, memory_store):
        def program(tx, params):
            if tx.round == 2:
                raise TransactionAborted("deadlock")
            return {}

        outcome = Orchestrator(memory_store).run_task(TaskSpec(0, Role.WRITER, program, rounds=5))
        assert outcome.status == OutcomeStatus.ABORTED
        assert outcome.rounds_committed == 2

    def test_rollback_keeps_committed_rounds(self, memory_store):
        seed_account(memory_store, balance=0)

        def program(tx, params):
            tx.execute(Operation.IMP_W, accountId=1)
            if tx.round == 2:
                tx.rollback()
            return {}

        orchestrator = Orchestrator(memory_store)
        outcome = orchestrator.run_task(TaskSpec(0, Role.WRITER, program, rounds=5))
        assert outcome.status == OutcomeStatus.ROLLED_BACK
        assert outcome.rounds_committed == 2
        assert orchestrator.run_check((Operation.READ_BALANCE, {"accountId": 1})) == {"balance": 2}


class TestRunTasks:
    def test_outcomes_follow_task_index(self, memory_store):
        def echo(tx, params):
            return {"value": params["value"]}

        tasks = [TaskSpec(i, Role.WRITER, echo, {"value": i * 10}) for i in range(20)]
        outcomes = Orchestrator(memory_store, workers=4).run_tasks(tasks)
        assert [o.index for o in outcomes] == list(range(20))
        assert [o.payload["value"] for o in outcomes] == [i * 10 for i in range(20)]

    def test_failures_do_not_stop_other_tasks(self, memory_store):
        seed_account(memory_store, balance=0)

        def maybe_fail(tx, params):
            if params["fail"]:
                raise TransactionAborted("conflict")
            return increment(tx, params)

        tasks = [TaskSpec(i, Role.WRITER, maybe_fail, {"fail": i % 3 == 0}) for i in range(9)]
        orchestrator = Orchestrator(memory_store, workers=3)
        outcomes = orchestrator.run_tasks(tasks)
        assert sum(1 for o in outcomes if o.status == OutcomeStatus.ABORTED) == 3
        assert orchestrator.run_check((Operation.READ_BALANCE, {"accountId": 1})) == {"balance": 6}

    def test_sequential_runs_in_order(self, memory_store):
        order = []

        def record(tx, params):
            order.append(params["n"])
            return {}

        tasks = [TaskSpec(i, Role.WRITER, record, {"n": i}) for i in range(5)]
        Orchestrator(memory_store, workers=4).run_tasks(tasks, sequential=True)
        assert order == [0, 1, 2, 3, 4]

    def test_pool_is_bounded(self, memory_store):
        active = 0
        peak = 0
        lock = threading.Lock()

        class CountingStore:
            name = "Counting"

            def begin(self):
                nonlocal active, peak
                with lock:
                    active += 1
                    peak = max(peak, active)
                return object()

            def commit(self, tx):
                nonlocal active
                with lock:
                    active -= 1

            def abort(self, tx):
                self.commit(tx)

        def program(tx, params):
            tx.sleep(10)
            return {}

        tasks = [TaskSpec(i, Role.WRITER, program) for i in range(12)]
        Orchestrator(CountingStore(), workers=3, sleep=time.sleep).run_tasks(tasks)  # type: ignore[arg-type]
        assert 1 <= peak <= 3

    def test_invalid_indices(self, memory_store):
        tasks = [TaskSpec(1, Role.WRITER, increment)]
        with pytest.raises(ValueError, match="indices"):
            Orchestrator(memory_store).run_tasks(tasks)

    def test_invalid_workers(self, memory_store):
        with pytest.raises(ValueError, match="workers"):
            Orchestrator(memory_store, workers=0)

    def test_drain_timeout(self, memory_store):
        release = threading.Event()

        def blocked(tx, params):
            release.wait(5)
            return {}

        orchestrator = Orchestrator(memory_store, workers=1, drain_timeout=0.05)
        try:
            with pytest.raises(HarnessTimeout):
                orchestrator.run_tasks([TaskSpec(0, Role.WRITER, blocked), TaskSpec(1, Role.WRITER, blocked)])
        finally:
            release.set()


class TestSetupAndCheck:
    def test_setup_runs_in_one_transaction(self, memory_store):
        orchestrator = Orchestrator(memory_store)
        with pytest.raises(TransactionAborted):
            orchestrator.run_setup([
                (Operation.CREATE_ACCOUNT, {"accountId": 1}),
                (Operation.CREATE_ACCOUNT, {"accountId": 1}),
            ])
        assert orchestrator.run_check((Operation.ATOMICITY_CHECK, {}))["numAccounts"] == 0

    def test_empty_setup(self, memory_store):
        Orchestrator(memory_store).run_setup([])

    def test_check_propagates_missing_result(self, memory_store):
        with pytest.raises(MissingResultError):
            Orchestrator(memory_store).run_check((Operation.READ_BALANCE, {"accountId": 1}))
