r"""
Tests for graph_acid.runner.judge module.
"""

from graph_acid.errors import AdapterError, MissingResultError, TransactionAborted
from graph_acid.runner.judge import Judge
from graph_acid.scenarios.base import Detection
from graph_acid.types import Role, TaskSpec, TransactionOutcome, Verdict


def noop(tx, params):
    return {}


class StubScenario:
    name = "stub"

    def __init__(self, detection=None, error=None):
        self.detection = detection or Detection()
        self.error = error

    def detect(self, tasks, outcomes, baseline, final):
        if self.error:
            raise self.error
        return self.detection


def race(roles):
    return [TaskSpec(i, role, noop) for i, role in enumerate(roles)]


class TestVerdicts:
    def test_passed(self):
        tasks = race([Role.WRITER, Role.READER])
        outcomes = [
            TransactionOutcome.committed(0, Role.WRITER, {}),
            TransactionOutcome.committed(1, Role.READER, {}),
        ]
        report = Judge().evaluate(StubScenario(), "Memory", tasks, outcomes, None, None, duration_ms=12.5)
        assert report.verdict == Verdict.PASSED
        assert report.submitted == 2
        assert report.committed == 2
        assert report.duration_ms == 12.5

    def test_anomaly_fails(self):
        tasks = race([Role.WRITER])
        outcomes = [TransactionOutcome.committed(0, Role.WRITER, {})]
        detection = Detection.from_findings(["reader saw 200"])
        report = Judge().evaluate(StubScenario(detection), "Memory", tasks, outcomes, None, None)
        assert report.verdict == Verdict.FAILED
        assert report.anomalies == 1
        assert report.details == ("reader saw 200",)

    def test_all_failed_is_inconclusive(self):
        tasks = race([Role.WRITER, Role.WRITER])
        outcomes = [
            TransactionOutcome.aborted(0, Role.WRITER, TransactionAborted("x")),
            TransactionOutcome.errored(1, Role.WRITER, AdapterError("y")),
        ]
        report = Judge().evaluate(StubScenario(), "Memory", tasks, outcomes, None, None)
        assert report.verdict == Verdict.INCONCLUSIVE
        assert report.aborted == 1
        assert report.errored == 1

    def test_all_readers_failed_is_inconclusive(self):
        tasks = race([Role.WRITER, Role.READER, Role.WRITER, Role.READER])
        outcomes = [
            TransactionOutcome.committed(0, Role.WRITER, {}),
            TransactionOutcome.aborted(1, Role.READER, TransactionAborted("x")),
            TransactionOutcome.committed(2, Role.WRITER, {}),
            TransactionOutcome.aborted(3, Role.READER, TransactionAborted("x")),
        ]
        report = Judge().evaluate(StubScenario(), "Memory", tasks, outcomes, None, None)
        assert report.verdict == Verdict.INCONCLUSIVE

    def test_anomaly_beats_inconclusive(self):
        tasks = race([Role.WRITER])
        outcomes = [TransactionOutcome.aborted(0, Role.WRITER, TransactionAborted("x"))]
        detection = Detection.from_findings(["count mismatch"])
        report = Judge().evaluate(StubScenario(detection), "Memory", tasks, outcomes, None, None)
        assert report.verdict == Verdict.FAILED

    def test_rolled_back_is_not_failure(self):
        tasks = race([Role.WRITER, Role.READER])
        outcomes = [
            TransactionOutcome.rolled_back(0, Role.WRITER, {}),
            TransactionOutcome.committed(1, Role.READER, {}),
        ]
        report = Judge().evaluate(StubScenario(), "Memory", tasks, outcomes, None, None)
        assert report.verdict == Verdict.PASSED
        assert report.rolled_back == 1

    def test_missing_row_counts_as_anomaly(self):
        tasks = race([Role.WRITER, Role.READER])
        outcomes = [
            TransactionOutcome.committed(0, Role.WRITER, {}),
            TransactionOutcome.errored(1, Role.READER, MissingResultError("readBalance", {"accountId": 1})),
        ]
        report = Judge().evaluate(StubScenario(), "Memory", tasks, outcomes, None, None)
        assert report.verdict == Verdict.FAILED
        assert report.anomalies == 1

    def test_detection_error(self):
        tasks = race([Role.WRITER])
        outcomes = [TransactionOutcome.committed(0, Role.WRITER, {})]
        report = Judge().evaluate(StubScenario(error=KeyError("balance")), "Memory", tasks, outcomes, None, None)
        assert report.verdict == Verdict.ERROR
        assert "detection failed" in report.error

    def test_details_truncated(self):
        tasks = race([Role.WRITER])
        outcomes = [TransactionOutcome.committed(0, Role.WRITER, {})]
        detection = Detection.from_findings(f"finding {i}" for i in range(50))
        report = Judge(max_details=5).evaluate(StubScenario(detection), "Memory", tasks, outcomes, None, None)
        assert report.anomalies == 50
        assert len(report.details) == 5
