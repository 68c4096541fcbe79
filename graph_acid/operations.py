r"""
Operation vocabulary shared by every store adapter.

Each member names one statement a transaction program can execute. Adapters
translate the operation and its parameters into their native query form; the
core never sees query text.

    from graph_acid.operations import Operation

    payload = store.execute(tx, Operation.READ_BALANCE, {"accountId": 1})
    payload["balance"]
"""

from enum import StrEnum

__all__ = ["Operation", "CYCLE_SIZE", "ACCOUNT_PROPERTIES", "TRANSFER_PROPERTIES"]

# Number of accounts in the OTV/FR transfer cycle
CYCLE_SIZE = 4

# Optional properties accepted by createAccount / createTransfer
ACCOUNT_PROPERTIES = ("name", "balance", "transHistory", "versionHistory", "numTransferred")
TRANSFER_PROPERTIES = ("amount", "versionHistory")


class Operation(StrEnum):
    """Named store operations.

    Parameters and payload fields are listed as ``params -> payload``.
    """

    # accountId, [name, balance, transHistory, versionHistory, numTransferred] -> {}
    CREATE_ACCOUNT = "createAccount"
    # account1Id, account2Id, [amount, versionHistory] -> {}
    CREATE_TRANSFER = "createTransfer"

    # account1Id, account2Id, newTrans -> {}; creates account2 and a transfer,
    # appends newTrans to account1's transHistory
    ATOMICITY_C = "atomicityC"
    # accountId, newTrans -> {}
    APPEND_TRANS_HISTORY = "appendTransHistory"
    # accountId -> {accountExists}
    ACCOUNT_EXISTS = "accountExists"
    # -> {numAccounts, numNames, numTransferred}
    ATOMICITY_CHECK = "atomicityCheck"

    # account1Id, account2Id, transactionId -> {}
    G0 = "g0"
    # account1Id, account2Id -> {a1VersionHistory, tVersionHistory, a2VersionHistory}
    G0_CHECK = "g0check"

    # accountId -> {internalId}
    LOCATE_ACCOUNT = "locateAccount"
    # internalId, balance -> {}
    SET_BALANCE_BY_INTERNAL_ID = "setBalanceByInternalId"
    # accountId, balance -> {}
    SET_BALANCE = "setBalance"
    # accountId -> {balance}
    READ_BALANCE = "readBalance"

    # account1Id, account2Id, transactionId -> {account2Balance}
    G1C = "g1c"

    # accountId -> {}
    IMP_W = "impW"

    # account1Id, account2Id -> {}
    PMP_W = "pmpW"
    # accountId -> {count}
    COUNT_INCOMING_TRANSFERS = "countIncomingTransfers"

    # accountId -> {}; increments every balance on the transfer cycle
    CYCLE_INCREMENT = "cycleIncrement"
    # accountId -> {balances}; balances along the cycle starting at accountId
    CYCLE_READ = "cycleRead"

    # account1Id, account2Id -> {}
    LU_W = "luW"
    # accountId -> {numTransferred, numTransferEdges}
    LU_R = "luR"

    # account1Id, account2Id -> {total}
    READ_PAIR_BALANCE = "readPairBalance"
    # accountId, amount -> {}
    WITHDRAW = "withdraw"
    # -> {violatingPairs}; odd ids of pairs (id, id + 1) whose balances sum to <= 0
    WS_R = "wsR"
