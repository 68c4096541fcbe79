r"""
Neo4j store adapter.

Requires: pip install neo4j

Environment variables:
    GRAPH_ACID_NEO4J_URI: Connection URI (default: bolt://localhost:7687)
    GRAPH_ACID_NEO4J_USER: Username (default: neo4j)
    GRAPH_ACID_NEO4J_PASSWORD: Password (default: benchmark)

    from graph_acid.adapters.neo4j import Neo4jStore

    store = Neo4jStore()
    store.connect(uri="bolt://localhost:7687", user="neo4j", password="password")
"""

from typing import Any

from graph_acid.adapters.base import AdapterRegistry
from graph_acid.adapters.bolt import BoltStore
from graph_acid.config import get_env

__all__ = ["Neo4jStore"]


@AdapterRegistry.register("neo4j")
class Neo4jStore(BoltStore):
    """Neo4j transactional store."""

    constraint_query = "CREATE CONSTRAINT account_id IF NOT EXISTS FOR (a:Account) REQUIRE a.id IS UNIQUE"

    @property
    def name(self) -> str:
        return "Neo4j"

    @property
    def version(self) -> str:
        if not self._connected or self._driver is None:
            return "unknown"
        try:
            with self._driver.session() as session:
                record = session.run("CALL dbms.components() YIELD versions RETURN versions[0] AS version").single()
                return record["version"] if record else "unknown"
        except Exception:
            return "unknown"

    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        uri = uri or get_env("NEO4J_URI", default="bolt://localhost:7687")
        user = kwargs.get("user") or get_env("NEO4J_USER", default="neo4j")
        password = kwargs.get("password") or get_env("NEO4J_PASSWORD", default="benchmark")

        if uri is None:
            msg = "Neo4j URI required"
            raise ValueError(msg)

        self._open_driver(uri, (user, password) if password else None)
