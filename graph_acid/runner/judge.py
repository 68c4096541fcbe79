r"""
Scenario judging.

Turns a scenario's outcomes and consistency reads into a ScenarioReport:
counts how transactions resolved, applies the scenario's detection rule and
assigns a verdict.

    FAILED        at least one anomaly
    INCONCLUSIVE  every task failed, or every task of one role failed
    PASSED        otherwise

    from graph_acid.runner.judge import Judge

    report = Judge().evaluate(scenario, "Memory", tasks, outcomes, baseline, final)
"""

import logging
from collections.abc import Sequence
from dataclasses import replace

from graph_acid.errors import MissingResultError
from graph_acid.protocols import Scenario
from graph_acid.types import OutcomeStatus, Payload, ScenarioReport, TaskSpec, TransactionOutcome, Verdict

__all__ = ["Judge"]

logger = logging.getLogger(__name__)

# Findings kept in a report; the anomaly count is not truncated
MAX_DETAILS = 20


class Judge:
    """Applies detection rules and assigns verdicts."""

    def __init__(self, *, max_details: int = MAX_DETAILS) -> None:
        self._max_details = max_details

    def evaluate(
        self,
        scenario: Scenario,
        store: str,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
        *,
        duration_ms: float = 0.0,
    ) -> ScenarioReport:
        base = self.tally(scenario.name, store, tasks, outcomes, duration_ms=duration_ms)

        try:
            detection = scenario.detect(tasks, outcomes, baseline, final)
        except Exception as e:
            logger.warning("%s: detection failed: %s", scenario.name, e, exc_info=True)
            return replace(base, verdict=Verdict.ERROR, error=f"detection failed: {e}")

        details = list(detection.details)
        anomalies = detection.anomalies

        # Fixture rows are committed before the race
        for outcome in outcomes:
            if outcome.error_type == MissingResultError.__name__:
                anomalies += 1
                details.append(f"task {outcome.index} found no row: {outcome.cause}")

        if anomalies:
            verdict = Verdict.FAILED
        elif self._race_missing(tasks, outcomes):
            verdict = Verdict.INCONCLUSIVE
            details.append("every task of a role failed; the race did not happen")
        else:
            verdict = Verdict.PASSED

        return replace(base, anomalies=anomalies, verdict=verdict, details=tuple(details[: self._max_details]))

    @staticmethod
    def tally(
        scenario: str,
        store: str,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        *,
        duration_ms: float = 0.0,
    ) -> ScenarioReport:
        """Count how the transactions resolved, without judging them."""
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in outcomes:
            counts[outcome.status] += 1

        return ScenarioReport(
            scenario=scenario,
            store=store,
            submitted=len(tasks),
            committed=counts[OutcomeStatus.COMMITTED],
            aborted=counts[OutcomeStatus.ABORTED],
            errored=counts[OutcomeStatus.ERRORED],
            rolled_back=counts[OutcomeStatus.ROLLED_BACK],
            duration_ms=duration_ms,
        )

    @staticmethod
    def _race_missing(tasks: Sequence[TaskSpec], outcomes: Sequence[TransactionOutcome]) -> bool:
        if not outcomes:
            return False
        if all(o.failed for o in outcomes):
            return True
        if len(tasks) < 2:
            return False
        roles = {task.role for task in tasks}
        return any(
            all(o.failed for t, o in zip(tasks, outcomes, strict=True) if t.role == role)
            for role in roles
        )
