r"""
Report collection and export.

Aggregates scenario reports and exports to JSON, CSV and Markdown.

    from graph_acid.reporting import ResultCollector, MarkdownExporter

    collector = ResultCollector()
    collector.add_summary(summary)
    MarkdownExporter().export(collector, "report.md")
"""

from graph_acid.reporting.collector import EnvironmentInfo, ResultCollector, SessionInfo
from graph_acid.reporting.formats import EXPORTERS, CsvExporter, JsonExporter, MarkdownExporter, render_summary

__all__ = [
    "EXPORTERS",
    "CsvExporter",
    "EnvironmentInfo",
    "JsonExporter",
    "MarkdownExporter",
    "ResultCollector",
    "SessionInfo",
    "render_summary",
]
