r"""
Memgraph store adapter.

Memgraph uses the Bolt protocol, same as Neo4j. Path projection is written
with ``extract`` and the id constraint uses Memgraph's ASSERT syntax.
Requires: pip install neo4j

Environment variables:
    GRAPH_ACID_MEMGRAPH_URI: Connection URI (default: bolt://localhost:7688)

    from graph_acid.adapters.memgraph import MemgraphStore

    store = MemgraphStore()
    store.connect(uri="bolt://localhost:7688")
"""

from typing import Any

from graph_acid.adapters.base import AdapterRegistry
from graph_acid.adapters.bolt import CYPHER_QUERIES, BoltStore, CypherQuery
from graph_acid.config import get_env
from graph_acid.errors import TransactionAborted
from graph_acid.operations import CYCLE_SIZE, Operation

__all__ = ["MemgraphStore", "MEMGRAPH_QUERIES"]

MEMGRAPH_QUERIES: dict[Operation, CypherQuery] = {
    **CYPHER_QUERIES,
    Operation.CYCLE_READ: CypherQuery(
        f"MATCH p = (a1:Account {{id: $accountId}})-[:transfer*..{CYCLE_SIZE}]->(a1)\n"
        f"RETURN extract(a IN nodes(p)[0..{CYCLE_SIZE}] | a.balance) AS balances",
        fields=("balances",),
    ),
}


@AdapterRegistry.register("memgraph")
class MemgraphStore(BoltStore):
    """Memgraph transactional store."""

    queries = MEMGRAPH_QUERIES
    constraint_query = "CREATE CONSTRAINT ON (a:Account) ASSERT a.id IS UNIQUE"

    @property
    def name(self) -> str:
        return "Memgraph"

    @property
    def version(self) -> str:
        if not self._connected or self._driver is None:
            return "unknown"
        try:
            with self._driver.session() as session:
                for record in session.run("SHOW VERSION"):
                    return str(record[0])
                return "unknown"
        except Exception:
            return "unknown"

    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        uri = uri or get_env("MEMGRAPH_URI", default="bolt://localhost:7688")

        if uri is None:
            msg = "Memgraph URI required"
            raise ValueError(msg)

        user = kwargs.get("user") or get_env("MEMGRAPH_USER")
        password = kwargs.get("password") or get_env("MEMGRAPH_PASSWORD")
        self._open_driver(uri, (user, password) if user and password else None)

    @staticmethod
    def _translate(error: Exception) -> Exception:
        """Map a driver exception, treating Memgraph's constraint violations as aborts."""
        from neo4j.exceptions import ClientError

        # Memgraph reports unique constraint violations as plain client errors
        if isinstance(error, ClientError) and "constraint violation" in str(error).lower():
            return TransactionAborted(str(error))
        return BoltStore._translate(error)
