r"""
Store adapters for graph-acid.

Each adapter implements the TransactionalStore protocol so scenarios run
unchanged against every store.

    from graph_acid.adapters import AdapterRegistry

    store = AdapterRegistry.create("memory")
    store.connect()
"""

from graph_acid.adapters.base import AdapterRegistry, BaseStore
from graph_acid.adapters.bolt import BoltStore
from graph_acid.adapters.memgraph import MemgraphStore
from graph_acid.adapters.memory import InMemoryStore
from graph_acid.adapters.neo4j import Neo4jStore

__all__ = [
    "AdapterRegistry",
    "BaseStore",
    "BoltStore",
    "InMemoryStore",
    "MemgraphStore",
    "Neo4jStore",
]
