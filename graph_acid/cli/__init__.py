r"""
Command-line interface for graph-acid.

    graph-acid run -s neo4j -p quick
    graph-acid scenarios
"""

from graph_acid.cli.main import app, main

__all__ = [
    "app",
    "main",
]
