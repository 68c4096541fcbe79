r"""
Harness driving scenarios against a store.

Per scenario: wipe -> init -> baseline -> race -> final check -> judge.
A scenario that cannot be set up is SKIPPED, a failing final read is an
ERROR, a pool that does not drain is a TIMEOUT. The harness always moves
on to the next scenario.

    from graph_acid.runner import Harness

    harness = Harness(store, plan=get_plan("quick"))
    summary = harness.run(["g0", "lu"])
    print(f"{summary.passed}/{len(summary.reports)} passed")
"""

import logging
import random
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

from graph_acid.config import DEFAULT_PLAN, get_plan
from graph_acid.errors import HarnessTimeout, InvariantViolation, SetupFailure
from graph_acid.protocols import Scenario, Step, TransactionalStore
from graph_acid.runner.judge import Judge
from graph_acid.runner.orchestrator import Orchestrator, SleepFunction
from graph_acid.scenarios import ScenarioRegistry
from graph_acid.types import Payload, RunPlan, ScenarioReport, TaskSpec, Verdict

__all__ = ["Harness", "RunSummary", "ProgressCallback"]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str, str], None]


@dataclass
class RunSummary:
    """Reports from one harness run.

    Attributes:
        store: Store name.
        plan: Run plan used.
        reports: One report per scenario, in run order.
        started_at: Timestamp when the run started.
        completed_at: Timestamp when the run completed.
    """

    store: str
    plan: RunPlan
    reports: list[ScenarioReport] = field(default_factory=list)
    started_at: float = 0.0
    completed_at: float = 0.0

    @property
    def duration_seconds(self) -> float:
        """Total duration in seconds."""
        return self.completed_at - self.started_at

    @property
    def passed(self) -> int:
        """Number of scenarios that passed."""
        return sum(1 for r in self.reports if r.ok)

    @property
    def failed_count(self) -> int:
        """Number of scenarios that did not pass."""
        return sum(1 for r in self.reports if not r.ok)

    @property
    def anomaly_count(self) -> int:
        """Anomalies across all scenarios."""
        return sum(r.anomalies for r in self.reports)

    @property
    def all_passed(self) -> bool:
        return bool(self.reports) and self.failed_count == 0

    def raise_for_failures(self) -> None:
        """Raise InvariantViolation if any scenario detected an anomaly."""
        failed = [r.scenario for r in self.reports if r.verdict == Verdict.FAILED]
        if failed:
            msg = f"Anomalies detected in: {', '.join(failed)}"
            raise InvariantViolation(msg)


class Harness:
    """Runs the scenario catalog against one store."""

    def __init__(
        self,
        store: TransactionalStore,
        *,
        plan: RunPlan | None = None,
        judge: Judge | None = None,
        sleep: SleepFunction = time.sleep,
    ) -> None:
        self._store = store
        self._plan = plan or get_plan(DEFAULT_PLAN)
        self._judge = judge or Judge()
        self._orchestrator = Orchestrator(
            store,
            workers=self._plan.workers,
            drain_timeout=self._plan.drain_timeout_seconds,
            sleep=sleep,
        )
        self._progress_callback: ProgressCallback | None = None

    @property
    def plan(self) -> RunPlan:
        return self._plan

    def set_progress_callback(self, callback: ProgressCallback) -> None:
        """Set callback for progress updates: (store, scenario, status)."""
        self._progress_callback = callback

    def _progress(self, scenario: str, status: str) -> None:
        if self._progress_callback:
            self._progress_callback(self._store.name, scenario, status)

    def _resolve(self, scenarios: Sequence[str | Scenario] | None) -> list[Scenario]:
        if scenarios is None:
            return ScenarioRegistry.create_all()
        return [ScenarioRegistry.create(s) if isinstance(s, str) else s for s in scenarios]

    def run(self, scenarios: Sequence[str | Scenario] | None = None) -> RunSummary:
        """Run scenarios in order (None = whole catalog).

        Raises:
            ValueError: If a scenario name is not registered.
        """
        resolved = self._resolve(scenarios)
        summary = RunSummary(store=self._store.name, plan=self._plan, started_at=time.time())

        for scenario in resolved:
            summary.reports.append(self.run_scenario(scenario))

        summary.completed_at = time.time()
        logger.info(
            "%s: %d/%d scenarios passed, %d anomalies",
            summary.store,
            summary.passed,
            len(summary.reports),
            summary.anomaly_count,
        )
        return summary

    def _setup(self, scenario: Scenario) -> tuple[list[TaskSpec], Payload | None]:
        stage = "plan"
        try:
            rng = random.Random(f"{self._plan.seed}:{scenario.name}")
            tasks = list(scenario.build_tasks(self._plan, rng))
            stage = "wipe"
            self._store.wipe()
            stage = "init"
            self._orchestrator.run_setup(scenario.init_steps(self._plan))
            stage = "baseline"
            return tasks, self._check(scenario.baseline_check(self._plan))
        except Exception as e:
            raise SetupFailure(scenario.name, stage, e) from e

    def _check(self, step: Step | None) -> Payload | None:
        if step is None:
            return None
        return self._orchestrator.run_check(step)

    def run_scenario(self, scenario: Scenario) -> ScenarioReport:
        """Run a single scenario and judge it."""
        self._progress(scenario.name, "running")
        logger.info("%s: starting on %s", scenario.name, self._store.name)
        start = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - start) * 1000

        try:
            tasks, baseline = self._setup(scenario)
        except SetupFailure as e:
            logger.warning("%s: skipped: %s", scenario.name, e)
            return self._finish(
                ScenarioReport(
                    scenario.name, self._store.name, verdict=Verdict.SKIPPED, duration_ms=elapsed_ms(), error=str(e)
                )
            )

        try:
            outcomes = self._orchestrator.run_tasks(tasks, sequential=scenario.sequential)
        except HarnessTimeout as e:
            logger.warning("%s: %s", scenario.name, e)
            return self._finish(
                ScenarioReport(
                    scenario.name,
                    self._store.name,
                    submitted=len(tasks),
                    verdict=Verdict.TIMEOUT,
                    duration_ms=elapsed_ms(),
                    error=str(e),
                )
            )

        try:
            final = self._check(scenario.final_check(self._plan))
        except Exception as e:
            logger.warning("%s: final check failed: %s", scenario.name, e)
            report = self._judge.tally(scenario.name, self._store.name, tasks, outcomes, duration_ms=elapsed_ms())
            return self._finish(replace(report, verdict=Verdict.ERROR, error=f"final check failed: {e}"))

        report = self._judge.evaluate(
            scenario, self._store.name, tasks, outcomes, baseline, final, duration_ms=elapsed_ms()
        )
        return self._finish(report)

    def _finish(self, report: ScenarioReport) -> ScenarioReport:
        log = logger.info if report.ok else logger.warning
        log(
            "%s: %s (committed=%d aborted=%d errored=%d rolled_back=%d anomalies=%d)",
            report.scenario,
            report.verdict.name,
            report.committed,
            report.aborted,
            report.errored,
            report.rolled_back,
            report.anomalies,
        )
        self._progress(report.scenario, report.verdict.name.lower())
        return report
