r"""
In-process reference store.

A serializable in-memory account graph: one transaction runs at a time, each
works on a private copy of the graph, commit publishes the copy and abort
discards it. Account ids are unique. Used by the test-suite and as a baseline
that every scenario must pass against.

    from graph_acid.adapters.memory import InMemoryStore

    store = InMemoryStore()
    store.connect()
"""

import copy
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from graph_acid.adapters.base import AdapterRegistry, BaseStore
from graph_acid.errors import AdapterError, MissingResultError, TransactionAborted
from graph_acid.operations import ACCOUNT_PROPERTIES, CYCLE_SIZE, TRANSFER_PROPERTIES, Operation
from graph_acid.types import Payload

__all__ = ["InMemoryStore", "MemoryTransaction"]


@dataclass
class _Graph:
    """Account graph. Accounts and transfers are keyed by internal id."""

    accounts: dict[int, dict[str, Any]] = field(default_factory=dict)
    transfers: list[dict[str, Any]] = field(default_factory=list)
    next_internal_id: int = 0


@dataclass
class MemoryTransaction:
    """Handle for an open in-memory transaction."""

    graph: _Graph
    open: bool = True


def _copy_value(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


@AdapterRegistry.register("memory")
class InMemoryStore(BaseStore):
    """Serializable in-memory store."""

    def __init__(self, *, lock_timeout: float = 60.0) -> None:
        self._graph = _Graph()
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout
        self._connected = False
        self._handlers: dict[Operation, Callable[[_Graph, Payload], Payload]] = {
            Operation.CREATE_ACCOUNT: self._create_account,
            Operation.CREATE_TRANSFER: self._create_transfer,
            Operation.ATOMICITY_C: self._atomicity_c,
            Operation.APPEND_TRANS_HISTORY: self._append_trans_history,
            Operation.ACCOUNT_EXISTS: self._account_exists,
            Operation.ATOMICITY_CHECK: self._atomicity_check,
            Operation.G0: self._g0,
            Operation.G0_CHECK: self._g0_check,
            Operation.LOCATE_ACCOUNT: self._locate_account,
            Operation.SET_BALANCE_BY_INTERNAL_ID: self._set_balance_by_internal_id,
            Operation.SET_BALANCE: self._set_balance,
            Operation.READ_BALANCE: self._read_balance,
            Operation.G1C: self._g1c,
            Operation.IMP_W: self._imp_w,
            Operation.PMP_W: self._pmp_w,
            Operation.COUNT_INCOMING_TRANSFERS: self._count_incoming_transfers,
            Operation.CYCLE_INCREMENT: self._cycle_increment,
            Operation.CYCLE_READ: self._cycle_read,
            Operation.LU_W: self._lu_w,
            Operation.LU_R: self._lu_r,
            Operation.READ_PAIR_BALANCE: self._read_pair_balance,
            Operation.WITHDRAW: self._withdraw,
            Operation.WS_R: self._ws_r,
        }

    @property
    def name(self) -> str:
        return "Memory"

    @property
    def version(self) -> str:
        return "in-process"

    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        self._connected = True

    def disconnect(self) -> None:
        self._connected = False

    def begin(self) -> MemoryTransaction:
        if not self._lock.acquire(timeout=self._lock_timeout):
            msg = f"Lock wait timed out after {self._lock_timeout}s"
            raise TransactionAborted(msg)
        return MemoryTransaction(graph=copy.deepcopy(self._graph))

    def commit(self, tx: MemoryTransaction) -> None:
        if not tx.open:
            msg = "Transaction already closed"
            raise AdapterError(msg)
        self._graph = tx.graph
        tx.open = False
        self._lock.release()

    def abort(self, tx: MemoryTransaction) -> None:
        if not tx.open:
            return
        tx.open = False
        self._lock.release()

    def execute(self, tx: MemoryTransaction, operation: Operation, parameters: Payload) -> Payload:
        if not tx.open:
            msg = f"{operation} on a closed transaction"
            raise AdapterError(msg)
        handler = self._handlers.get(Operation(operation))
        if handler is None:
            msg = f"Unsupported operation: {operation}"
            raise AdapterError(msg)
        return handler(tx.graph, parameters)

    def wipe(self) -> None:
        with self._lock:
            self._graph = _Graph()

    # -------------------------------------------------------------------------
    # Graph helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _find(graph: _Graph, account_id: int) -> int | None:
        for internal_id, props in graph.accounts.items():
            if props.get("id") == account_id:
                return internal_id
        return None

    def _require(self, graph: _Graph, operation: Operation, account_id: int) -> dict[str, Any]:
        internal_id = self._find(graph, account_id)
        if internal_id is None:
            raise MissingResultError(operation, {"accountId": account_id})
        return graph.accounts[internal_id]

    def _insert_account(self, graph: _Graph, account_id: int, props: dict[str, Any]) -> int:
        if self._find(graph, account_id) is not None:
            msg = f"Account {account_id} already exists"
            raise TransactionAborted(msg)
        internal_id = graph.next_internal_id
        graph.next_internal_id += 1
        graph.accounts[internal_id] = {"id": account_id, **props}
        return internal_id

    def _cycle(self, graph: _Graph, operation: Operation, account_id: int) -> list[int]:
        start = self._find(graph, account_id)
        if start is None:
            raise MissingResultError(operation, {"accountId": account_id})
        path = [start]
        current = start
        for _ in range(CYCLE_SIZE):
            nxt = next((t["dst"] for t in graph.transfers if t["src"] == current), None)
            if nxt is None:
                raise MissingResultError(operation, {"accountId": account_id})
            if nxt == start:
                return path
            path.append(nxt)
            current = nxt
        raise MissingResultError(operation, {"accountId": account_id})

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def _create_account(self, graph: _Graph, params: Payload) -> Payload:
        props = {k: _copy_value(params[k]) for k in ACCOUNT_PROPERTIES if params.get(k) is not None}
        self._insert_account(graph, params["accountId"], props)
        return {}

    def _create_transfer(self, graph: _Graph, params: Payload) -> Payload:
        src = self._find(graph, params["account1Id"])
        dst = self._find(graph, params["account2Id"])
        if src is None or dst is None:
            raise MissingResultError(Operation.CREATE_TRANSFER, params)
        props = {k: _copy_value(params[k]) for k in TRANSFER_PROPERTIES if params.get(k) is not None}
        graph.transfers.append({"src": src, "dst": dst, **props})
        return {}

    def _atomicity_c(self, graph: _Graph, params: Payload) -> Payload:
        a1 = self._require(graph, Operation.ATOMICITY_C, params["account1Id"])
        src = self._find(graph, params["account1Id"])
        dst = self._insert_account(graph, params["account2Id"], {})
        graph.transfers.append({"src": src, "dst": dst, "amount": params["newTrans"]})
        a1["transHistory"] = [*a1.get("transHistory", []), params["newTrans"]]
        return {}

    def _append_trans_history(self, graph: _Graph, params: Payload) -> Payload:
        account = self._require(graph, Operation.APPEND_TRANS_HISTORY, params["accountId"])
        account["transHistory"] = [*account.get("transHistory", []), params["newTrans"]]
        return {}

    def _account_exists(self, graph: _Graph, params: Payload) -> Payload:
        return {"accountExists": self._find(graph, params["accountId"]) is not None}

    def _atomicity_check(self, graph: _Graph, params: Payload) -> Payload:
        accounts = graph.accounts.values()
        return {
            "numAccounts": len(graph.accounts),
            "numNames": sum(1 for a in accounts if a.get("name") is not None),
            "numTransferred": sum(len(a.get("transHistory", [])) for a in accounts),
        }

    def _g0_edge(self, graph: _Graph, params: Payload) -> tuple[dict, dict, dict]:
        src = self._find(graph, params["account1Id"])
        dst = self._find(graph, params["account2Id"])
        edge = next((t for t in graph.transfers if t["src"] == src and t["dst"] == dst), None)
        if src is None or dst is None or edge is None:
            raise MissingResultError(Operation.G0, params)
        return graph.accounts[src], edge, graph.accounts[dst]

    def _g0(self, graph: _Graph, params: Payload) -> Payload:
        tid = params["transactionId"]
        for item in self._g0_edge(graph, params):
            item["versionHistory"] = [*item.get("versionHistory", []), tid]
        return {}

    def _g0_check(self, graph: _Graph, params: Payload) -> Payload:
        a1, edge, a2 = self._g0_edge(graph, params)
        return {
            "a1VersionHistory": list(a1.get("versionHistory", [])),
            "tVersionHistory": list(edge.get("versionHistory", [])),
            "a2VersionHistory": list(a2.get("versionHistory", [])),
        }

    def _locate_account(self, graph: _Graph, params: Payload) -> Payload:
        internal_id = self._find(graph, params["accountId"])
        if internal_id is None:
            raise MissingResultError(Operation.LOCATE_ACCOUNT, params)
        return {"internalId": internal_id}

    def _set_balance_by_internal_id(self, graph: _Graph, params: Payload) -> Payload:
        account = graph.accounts.get(params["internalId"])
        if account is None:
            raise MissingResultError(Operation.SET_BALANCE_BY_INTERNAL_ID, params)
        account["balance"] = params["balance"]
        return {}

    def _set_balance(self, graph: _Graph, params: Payload) -> Payload:
        self._require(graph, Operation.SET_BALANCE, params["accountId"])["balance"] = params["balance"]
        return {}

    def _read_balance(self, graph: _Graph, params: Payload) -> Payload:
        account = self._require(graph, Operation.READ_BALANCE, params["accountId"])
        return {"balance": account.get("balance")}

    def _g1c(self, graph: _Graph, params: Payload) -> Payload:
        a1 = self._require(graph, Operation.G1C, params["account1Id"])
        a2 = self._require(graph, Operation.G1C, params["account2Id"])
        a1["balance"] = params["transactionId"]
        return {"account2Balance": a2.get("balance")}

    def _imp_w(self, graph: _Graph, params: Payload) -> Payload:
        account = self._require(graph, Operation.IMP_W, params["accountId"])
        account["balance"] = account.get("balance", 0) + 1
        return {}

    def _pmp_w(self, graph: _Graph, params: Payload) -> Payload:
        return self._create_transfer(graph, {"account1Id": params["account1Id"], "account2Id": params["account2Id"]})

    def _count_incoming_transfers(self, graph: _Graph, params: Payload) -> Payload:
        internal_id = self._find(graph, params["accountId"])
        if internal_id is None:
            raise MissingResultError(Operation.COUNT_INCOMING_TRANSFERS, params)
        return {"count": sum(1 for t in graph.transfers if t["dst"] == internal_id)}

    def _cycle_increment(self, graph: _Graph, params: Payload) -> Payload:
        for internal_id in self._cycle(graph, Operation.CYCLE_INCREMENT, params["accountId"]):
            account = graph.accounts[internal_id]
            account["balance"] = account.get("balance", 0) + 1
        return {}

    def _cycle_read(self, graph: _Graph, params: Payload) -> Payload:
        path = self._cycle(graph, Operation.CYCLE_READ, params["accountId"])
        return {"balances": [graph.accounts[i].get("balance") for i in path]}

    def _lu_w(self, graph: _Graph, params: Payload) -> Payload:
        a1 = self._require(graph, Operation.LU_W, params["account1Id"])
        src = self._find(graph, params["account1Id"])
        dst = self._insert_account(graph, params["account2Id"], {})
        graph.transfers.append({"src": src, "dst": dst})
        a1["numTransferred"] = a1.get("numTransferred", 0) + 1
        return {}

    def _lu_r(self, graph: _Graph, params: Payload) -> Payload:
        internal_id = self._find(graph, params["accountId"])
        if internal_id is None:
            raise MissingResultError(Operation.LU_R, params)
        return {
            "numTransferred": graph.accounts[internal_id].get("numTransferred", 0),
            "numTransferEdges": sum(1 for t in graph.transfers if t["src"] == internal_id),
        }

    def _read_pair_balance(self, graph: _Graph, params: Payload) -> Payload:
        a1 = self._require(graph, Operation.READ_PAIR_BALANCE, params["account1Id"])
        a2 = self._require(graph, Operation.READ_PAIR_BALANCE, params["account2Id"])
        return {"total": a1.get("balance", 0) + a2.get("balance", 0)}

    def _withdraw(self, graph: _Graph, params: Payload) -> Payload:
        account = self._require(graph, Operation.WITHDRAW, params["accountId"])
        account["balance"] = account.get("balance", 0) - params["amount"]
        return {}

    def _ws_r(self, graph: _Graph, params: Payload) -> Payload:
        by_id = {a["id"]: a for a in graph.accounts.values() if a.get("id") is not None}
        violating = [
            account_id
            for account_id, account in sorted(by_id.items())
            if account_id % 2 == 1
            and account_id + 1 in by_id
            and account.get("balance", 0) + by_id[account_id + 1].get("balance", 0) <= 0
        ]
        return {"violatingPairs": violating}
