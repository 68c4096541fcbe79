r"""
Report collection.

    from graph_acid.reporting.collector import ResultCollector

    collector = ResultCollector()
    collector.start_session(plan="quick", store="Memory")
    collector.add_summary(summary)
"""

import platform
import sys
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from graph_acid.runner.harness import RunSummary
from graph_acid.types import ScenarioReport, Verdict

__all__ = ["ResultCollector", "SessionInfo", "EnvironmentInfo"]


@dataclass
class SessionInfo:
    """Information about a harness session.

    Attributes:
        session_id: Unique session identifier.
        started_at: Session start timestamp.
        completed_at: Session end timestamp (empty if ongoing).
        plan: Run plan name.
        store: Store name.
        store_version: Store version string.
    """

    session_id: str = ""
    started_at: str = ""
    completed_at: str = ""
    plan: str = ""
    store: str = ""
    store_version: str = ""


@dataclass
class EnvironmentInfo:
    """Information about the machine running the harness."""

    platform: str = ""
    python_version: str = ""
    cpu: str = ""


class ResultCollector:
    """Collects scenario reports for export."""

    def __init__(self) -> None:
        self._reports: list[ScenarioReport] = []
        self._session = SessionInfo()
        self._environment = EnvironmentInfo()

    def start_session(self, *, plan: str, store: str, store_version: str = "unknown") -> None:
        """Start a new session."""
        started_at = datetime.now(UTC)
        self._session = SessionInfo(
            session_id=f"acid_{started_at.strftime('%Y%m%d_%H%M%S')}",
            started_at=started_at.isoformat(),
            plan=plan,
            store=store,
            store_version=store_version,
        )
        self._environment = EnvironmentInfo(
            platform=platform.system().lower(),
            python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
            cpu=platform.processor() or "unknown",
        )

    def end_session(self) -> None:
        """End the current session."""
        self._session.completed_at = datetime.now(UTC).isoformat()

    def add_report(self, report: ScenarioReport) -> None:
        self._reports.append(report)

    def add_summary(self, summary: RunSummary) -> None:
        """Add every report of a harness run."""
        self._reports.extend(summary.reports)

    @property
    def reports(self) -> list[ScenarioReport]:
        return self._reports

    @property
    def session(self) -> SessionInfo:
        return self._session

    @property
    def environment(self) -> EnvironmentInfo:
        return self._environment

    def verdict_counts(self) -> dict[str, int]:
        """Number of scenarios per verdict name, zero counts included."""
        counts = {verdict.name: 0 for verdict in Verdict}
        for report in self._reports:
            counts[report.verdict.name] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Convert collected data to dictionary."""
        return {
            "session": {
                "id": self._session.session_id,
                "started_at": self._session.started_at,
                "completed_at": self._session.completed_at,
                "plan": self._session.plan,
                "store": self._session.store,
                "store_version": self._session.store_version,
            },
            "environment": {
                "platform": self._environment.platform,
                "python_version": self._environment.python_version,
                "cpu": self._environment.cpu,
            },
            "verdicts": self.verdict_counts(),
            "reports": [self._report_to_dict(r) for r in self._reports],
        }

    def _report_to_dict(self, report: ScenarioReport) -> dict[str, Any]:
        data: dict[str, Any] = {
            "scenario": report.scenario,
            "store": report.store,
            "verdict": report.verdict.name,
            "submitted": report.submitted,
            "committed": report.committed,
            "aborted": report.aborted,
            "errored": report.errored,
            "rolled_back": report.rolled_back,
            "anomalies": report.anomalies,
            "duration_ms": round(report.duration_ms, 3),
        }
        if report.details:
            data["details"] = list(report.details)
        if report.error:
            data["error"] = report.error
        return data
