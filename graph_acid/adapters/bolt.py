r"""
Shared Bolt adapter for Cypher stores.

Neo4j and Memgraph both speak Bolt and run the same driver; they differ only
in a few query renderings and in how the id constraint is declared. Each
operation maps to one Cypher statement plus the fields read from its first
row.

Requires: pip install neo4j

    from graph_acid.adapters.neo4j import Neo4jStore

    store = Neo4jStore()
    store.connect(uri="bolt://localhost:7687")
    tx = store.begin()
    store.execute(tx, Operation.READ_BALANCE, {"accountId": 1})
"""

from dataclasses import dataclass
from typing import Any

from graph_acid.adapters.base import BaseStore
from graph_acid.errors import AdapterError, MissingResultError, TransactionAborted
from graph_acid.operations import ACCOUNT_PROPERTIES, CYCLE_SIZE, TRANSFER_PROPERTIES, Operation
from graph_acid.types import Payload

__all__ = ["BoltStore", "BoltTransaction", "CypherQuery", "CYPHER_QUERIES"]


@dataclass(frozen=True, slots=True)
class CypherQuery:
    """One Cypher statement.

    Attributes:
        text: Cypher text with $-parameters.
        fields: Columns of the first row copied into the payload.
        requires_row: Raise MissingResultError when the statement returns no row.
    """

    text: str
    fields: tuple[str, ...] = ()
    requires_row: bool = True


@dataclass
class BoltTransaction:
    """Open explicit transaction and the session that owns it."""

    session: Any
    tx: Any
    open: bool = True


_MATCH_PAIR = "MATCH (a1:Account {id: $account1Id}), (a2:Account {id: $account2Id})\n"
_CYCLE = f"-[:transfer*..{CYCLE_SIZE}]->"

CYPHER_QUERIES: dict[Operation, CypherQuery] = {
    Operation.CREATE_ACCOUNT: CypherQuery(
        "CREATE (a:Account) SET a = $props",
        requires_row=False,
    ),
    Operation.CREATE_TRANSFER: CypherQuery(
        _MATCH_PAIR + "CREATE (a1)-[t:transfer]->(a2) SET t = $props RETURN a1.id AS accountId",
    ),
    Operation.ATOMICITY_C: CypherQuery(
        "MATCH (a1:Account {id: $account1Id})\n"
        "CREATE (a1)-[:transfer {amount: $newTrans}]->(:Account {id: $account2Id})\n"
        "SET a1.transHistory = coalesce(a1.transHistory, []) + [$newTrans]\n"
        "RETURN a1.id AS accountId",
    ),
    Operation.APPEND_TRANS_HISTORY: CypherQuery(
        "MATCH (a:Account {id: $accountId})\n"
        "SET a.transHistory = coalesce(a.transHistory, []) + [$newTrans]\n"
        "RETURN a.id AS accountId",
    ),
    Operation.ACCOUNT_EXISTS: CypherQuery(
        "OPTIONAL MATCH (a:Account {id: $accountId}) RETURN a IS NOT NULL AS accountExists",
        fields=("accountExists",),
    ),
    Operation.ATOMICITY_CHECK: CypherQuery(
        "MATCH (a:Account)\n"
        "RETURN count(a) AS numAccounts, count(a.name) AS numNames,\n"
        "       sum(size(coalesce(a.transHistory, []))) AS numTransferred",
        fields=("numAccounts", "numNames", "numTransferred"),
    ),
    Operation.G0: CypherQuery(
        "MATCH (a1:Account {id: $account1Id})-[t:transfer]->(a2:Account {id: $account2Id})\n"
        "SET a1.versionHistory = a1.versionHistory + [$transactionId]\n"
        "SET a2.versionHistory = a2.versionHistory + [$transactionId]\n"
        "SET t.versionHistory = t.versionHistory + [$transactionId]\n"
        "RETURN a1.id AS accountId",
    ),
    Operation.G0_CHECK: CypherQuery(
        "MATCH (a1:Account {id: $account1Id})-[t:transfer]->(a2:Account {id: $account2Id})\n"
        "RETURN a1.versionHistory AS a1VersionHistory,\n"
        "       t.versionHistory AS tVersionHistory,\n"
        "       a2.versionHistory AS a2VersionHistory",
        fields=("a1VersionHistory", "tVersionHistory", "a2VersionHistory"),
    ),
    Operation.LOCATE_ACCOUNT: CypherQuery(
        "MATCH (a:Account {id: $accountId}) RETURN id(a) AS internalId",
        fields=("internalId",),
    ),
    Operation.SET_BALANCE_BY_INTERNAL_ID: CypherQuery(
        "MATCH (a:Account) WHERE id(a) = $internalId SET a.balance = $balance RETURN a.id AS accountId",
    ),
    Operation.SET_BALANCE: CypherQuery(
        "MATCH (a:Account {id: $accountId}) SET a.balance = $balance RETURN a.id AS accountId",
    ),
    Operation.READ_BALANCE: CypherQuery(
        "MATCH (a:Account {id: $accountId}) RETURN a.balance AS balance",
        fields=("balance",),
    ),
    Operation.G1C: CypherQuery(
        "MATCH (a1:Account {id: $account1Id})\n"
        "SET a1.balance = $transactionId\n"
        "WITH count(*) AS dummy\n"
        "MATCH (a2:Account {id: $account2Id})\n"
        "RETURN a2.balance AS account2Balance",
        fields=("account2Balance",),
    ),
    Operation.IMP_W: CypherQuery(
        "MATCH (a:Account {id: $accountId}) SET a.balance = a.balance + 1 RETURN a.id AS accountId",
    ),
    Operation.PMP_W: CypherQuery(
        _MATCH_PAIR + "CREATE (a1)-[:transfer]->(a2) RETURN a1.id AS accountId",
    ),
    Operation.COUNT_INCOMING_TRANSFERS: CypherQuery(
        "MATCH (a2:Account {id: $accountId})\n"
        "OPTIONAL MATCH (a2)<-[t:transfer]-(:Account)\n"
        "RETURN count(t) AS count",
        fields=("count",),
    ),
    Operation.CYCLE_INCREMENT: CypherQuery(
        f"MATCH path = (n:Account {{id: $accountId}}){_CYCLE}(n)\n"
        f"UNWIND nodes(path)[0..{CYCLE_SIZE}] AS a\n"
        "SET a.balance = a.balance + 1\n"
        "RETURN a.id AS accountId",
    ),
    Operation.CYCLE_READ: CypherQuery(
        f"MATCH p = (a1:Account {{id: $accountId}}){_CYCLE}(a1)\n"
        f"RETURN [a IN nodes(p)[0..{CYCLE_SIZE}] | a.balance] AS balances",
        fields=("balances",),
    ),
    Operation.LU_W: CypherQuery(
        "MATCH (a1:Account {id: $account1Id})\n"
        "CREATE (a1)-[:transfer]->(:Account {id: $account2Id})\n"
        "SET a1.numTransferred = a1.numTransferred + 1\n"
        "RETURN a1.numTransferred AS numTransferred",
    ),
    Operation.LU_R: CypherQuery(
        "MATCH (a:Account {id: $accountId})\n"
        "OPTIONAL MATCH (a)-[t:transfer]->()\n"
        "WITH a, count(t) AS numTransferEdges\n"
        "RETURN numTransferEdges, a.numTransferred AS numTransferred",
        fields=("numTransferred", "numTransferEdges"),
    ),
    Operation.READ_PAIR_BALANCE: CypherQuery(
        _MATCH_PAIR + "RETURN a1.balance + a2.balance AS total",
        fields=("total",),
    ),
    Operation.WITHDRAW: CypherQuery(
        "MATCH (a:Account {id: $accountId}) SET a.balance = a.balance - $amount RETURN a.id AS accountId",
    ),
    Operation.WS_R: CypherQuery(
        "MATCH (a1:Account), (a2:Account)\n"
        "WHERE a2.id = a1.id + 1 AND a1.id % 2 = 1 AND a1.balance + a2.balance <= 0\n"
        "RETURN collect(a1.id) AS violatingPairs",
        fields=("violatingPairs",),
    ),
}


def _properties(parameters: Payload, allowed: tuple[str, ...]) -> Payload:
    props = {k: parameters[k] for k in allowed if parameters.get(k) is not None}
    if "accountId" in parameters:
        props["id"] = parameters["accountId"]
    return props


class BoltStore(BaseStore):
    """Base class for stores reached through the neo4j Bolt driver.

    Subclasses supply connection defaults, the constraint statement and any
    query renderings that differ from ``CYPHER_QUERIES``.
    """

    queries: dict[Operation, CypherQuery] = CYPHER_QUERIES
    constraint_query: str = ""

    def __init__(self) -> None:
        self._driver: Any = None
        self._connected = False

    def _open_driver(self, uri: str, auth: tuple[str, str] | None) -> None:
        try:
            from neo4j import GraphDatabase
        except ImportError as e:
            msg = "neo4j package not installed. Install with: pip install neo4j"
            raise ImportError(msg) from e

        self._driver = GraphDatabase.driver(uri, auth=auth)
        try:
            self._driver.verify_connectivity()
        except Exception as e:
            self._driver.close()
            self._driver = None
            raise self._translate(e) from e
        self._connected = True

    def disconnect(self) -> None:
        if self._driver:
            self._driver.close()
            self._driver = None
        self._connected = False

    def _require_driver(self) -> Any:
        if self._driver is None:
            msg = f"{self.name} is not connected"
            raise AdapterError(msg)
        return self._driver

    @staticmethod
    def _translate(error: Exception) -> Exception:
        """Map a driver exception onto the harness taxonomy."""
        from neo4j.exceptions import ConstraintError, TransientError

        if isinstance(error, (TransientError, ConstraintError)):
            return TransactionAborted(str(error))
        return AdapterError(f"{type(error).__name__}: {error}")

    def begin(self) -> BoltTransaction:
        session = self._require_driver().session()
        try:
            tx = session.begin_transaction()
        except Exception as e:
            session.close()
            raise self._translate(e) from e
        return BoltTransaction(session=session, tx=tx)

    def commit(self, tx: BoltTransaction) -> None:
        try:
            tx.tx.commit()
        except Exception as e:
            raise self._translate(e) from e
        finally:
            tx.open = False
            tx.session.close()

    def abort(self, tx: BoltTransaction) -> None:
        if not tx.open:
            return
        tx.open = False
        try:
            tx.tx.rollback()
        except Exception as e:
            raise self._translate(e) from e
        finally:
            tx.session.close()

    def execute(self, tx: BoltTransaction, operation: Operation, parameters: Payload) -> Payload:
        query = self.queries.get(Operation(operation))
        if query is None:
            msg = f"Unsupported operation: {operation}"
            raise AdapterError(msg)

        params = dict(parameters)
        if operation == Operation.CREATE_ACCOUNT:
            params = {"props": _properties(parameters, ACCOUNT_PROPERTIES)}
        elif operation == Operation.CREATE_TRANSFER:
            params["props"] = _properties(parameters, TRANSFER_PROPERTIES)

        try:
            records = list(tx.tx.run(query.text, params))
        except Exception as e:
            raise self._translate(e) from e

        if not records:
            if query.requires_row:
                raise MissingResultError(operation, parameters)
            return {}
        return {field: records[0][field] for field in query.fields}

    def wipe(self) -> None:
        driver = self._require_driver()
        try:
            with driver.session() as session:
                session.run("MATCH (n) DETACH DELETE n").consume()
                if self.constraint_query:
                    session.run(self.constraint_query).consume()
        except Exception as e:
            raise self._translate(e) from e
