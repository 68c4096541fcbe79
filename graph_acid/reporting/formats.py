r"""
Export formats for scenario reports.

    from graph_acid.reporting.formats import JsonExporter, render_summary

    JsonExporter().export(collector, "results.json")
    print(render_summary(summary))
"""

import csv
import io
import json
from abc import ABC, abstractmethod
from pathlib import Path

from graph_acid.reporting.collector import ResultCollector
from graph_acid.runner.harness import RunSummary
from graph_acid.types import ScenarioReport

__all__ = ["BaseExporter", "JsonExporter", "CsvExporter", "MarkdownExporter", "render_summary", "EXPORTERS"]


class BaseExporter(ABC):
    """Base class for report exporters."""

    extension: str = ""

    def export(self, collector: ResultCollector, path: str | Path) -> None:
        """Export reports to file."""
        Path(path).write_text(self.to_string(collector))

    @abstractmethod
    def to_string(self, collector: ResultCollector) -> str:
        """Export reports to string."""
        ...


class JsonExporter(BaseExporter):
    """Export reports to JSON format."""

    extension = "json"

    def __init__(self, *, indent: int = 2) -> None:
        self._indent = indent

    def to_string(self, collector: ResultCollector) -> str:
        return json.dumps(collector.to_dict(), indent=self._indent)


class CsvExporter(BaseExporter):
    """Export reports to CSV format, one row per scenario."""

    extension = "csv"

    columns = (
        "session_id",
        "store",
        "scenario",
        "verdict",
        "submitted",
        "committed",
        "aborted",
        "errored",
        "rolled_back",
        "anomalies",
        "duration_ms",
        "error",
    )

    def to_string(self, collector: ResultCollector) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(self.columns)
        for r in collector.reports:
            writer.writerow([
                collector.session.session_id,
                r.store,
                r.scenario,
                r.verdict.name,
                r.submitted,
                r.committed,
                r.aborted,
                r.errored,
                r.rolled_back,
                r.anomalies,
                f"{r.duration_ms:.3f}",
                r.error or "",
            ])
        return buffer.getvalue()


class MarkdownExporter(BaseExporter):
    """Export reports to Markdown format."""

    extension = "md"

    def to_string(self, collector: ResultCollector) -> str:
        lines: list[str] = []
        session = collector.session
        env = collector.environment

        lines.append("# Isolation Anomaly Report")
        lines.append("")
        lines.append(f"**Session:** {session.session_id}")
        lines.append(f"**Store:** {session.store} ({session.store_version})")
        lines.append(f"**Plan:** {session.plan}")
        lines.append(f"**Date:** {session.started_at[:10] if session.started_at else 'N/A'}")
        lines.append("")

        lines.append("## Environment")
        lines.append("")
        lines.append(f"- Platform: {env.platform}")
        lines.append(f"- Python: {env.python_version}")
        lines.append(f"- CPU: {env.cpu}")
        lines.append("")

        lines.append("## Verdicts")
        lines.append("")
        lines.append("| Scenario | Verdict | Committed | Aborted | Errored | Rolled back | Anomalies |")
        lines.append("|----------|---------|-----------|---------|---------|-------------|-----------|")
        for r in collector.reports:
            lines.append(
                f"| {r.scenario} | {r.verdict.name} | {r.committed} | {r.aborted} "
                f"| {r.errored} | {r.rolled_back} | {r.anomalies} |"
            )
        lines.append("")

        flagged = [r for r in collector.reports if r.details or r.error]
        if flagged:
            lines.append("## Findings")
            lines.append("")
            for r in flagged:
                lines.append(f"### {r.scenario}")
                lines.append("")
                if r.error:
                    lines.append(f"- Error: {r.error}")
                lines.extend(f"- {detail}" for detail in r.details)
                lines.append("")

        return "\n".join(lines)


EXPORTERS: dict[str, type[BaseExporter]] = {
    "json": JsonExporter,
    "csv": CsvExporter,
    "markdown": MarkdownExporter,
}


def _row(report: ScenarioReport) -> str:
    return (
        f"{report.scenario:<14}{report.verdict.name:<14}{report.committed:>10}"
        f"{report.aborted:>9}{report.errored:>9}{report.anomalies:>11}"
    )


def render_summary(summary: RunSummary) -> str:
    """Plain-text table of every scenario's verdict and counts."""
    header = f"{'scenario':<14}{'verdict':<14}{'committed':>10}{'aborted':>9}{'errored':>9}{'anomalies':>11}"
    lines = [f"Store: {summary.store}  Plan: {summary.plan.name}", header, "-" * len(header)]
    lines.extend(_row(r) for r in summary.reports)
    lines.append("-" * len(header))
    lines.append(
        f"{summary.passed}/{len(summary.reports)} passed, {summary.anomaly_count} anomalies "
        f"in {summary.duration_seconds:.1f}s"
    )
    return "\n".join(lines)
