r"""
Core types for the isolation-anomaly harness.

    from graph_acid.types import ScenarioReport, Verdict

    report = harness.run_scenario(scenario)
    if not report.ok:
        print(f"{report.scenario}: {report.anomalies} anomalies")
"""

from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from enum import IntEnum, StrEnum, auto
from typing import TYPE_CHECKING, Any

from graph_acid.errors import InvariantViolation

if TYPE_CHECKING:
    from graph_acid.runner.orchestrator import TransactionContext

__all__ = [
    "Payload",
    "Role",
    "OutcomeStatus",
    "TransactionOutcome",
    "TransactionProgram",
    "TaskSpec",
    "Verdict",
    "ScenarioReport",
    "RunPlan",
]

Payload = dict[str, Any]

TransactionProgram = Callable[["TransactionContext", Payload], Payload]


class Role(StrEnum):
    """Role a task plays in a scenario's race."""

    WRITER = "writer"
    READER = "reader"


class OutcomeStatus(IntEnum):
    """How a submitted transaction resolved."""

    COMMITTED = auto()
    ROLLED_BACK = auto()
    ABORTED = auto()
    ERRORED = auto()


@dataclass(frozen=True, slots=True)
class TransactionOutcome:
    """Result of one task, stored at the task's submission index.

    Attributes:
        index: Index of the task in the scenario's task list.
        role: Writer or reader.
        status: How the transaction resolved.
        payload: Fields returned by the transaction program.
        cause: Error message for aborted or errored transactions.
        error_type: Exception class name for aborted or errored transactions.
        rounds_committed: Committed rounds for multi-round tasks.
    """

    index: int
    role: Role
    status: OutcomeStatus
    payload: Payload = field(default_factory=dict)
    cause: str | None = None
    error_type: str | None = None
    rounds_committed: int = 0

    @classmethod
    def committed(cls, index: int, role: Role, payload: Payload, *, rounds: int = 1) -> "TransactionOutcome":
        return cls(index, role, OutcomeStatus.COMMITTED, payload, rounds_committed=rounds)

    @classmethod
    def rolled_back(cls, index: int, role: Role, payload: Payload, *, rounds: int = 0) -> "TransactionOutcome":
        return cls(index, role, OutcomeStatus.ROLLED_BACK, payload, rounds_committed=rounds)

    @classmethod
    def aborted(cls, index: int, role: Role, error: BaseException, *, rounds: int = 0) -> "TransactionOutcome":
        return cls(
            index,
            role,
            OutcomeStatus.ABORTED,
            cause=str(error),
            error_type=type(error).__name__,
            rounds_committed=rounds,
        )

    @classmethod
    def errored(cls, index: int, role: Role, error: BaseException, *, rounds: int = 0) -> "TransactionOutcome":
        return cls(
            index,
            role,
            OutcomeStatus.ERRORED,
            cause=str(error),
            error_type=type(error).__name__,
            rounds_committed=rounds,
        )

    @property
    def ok(self) -> bool:
        """True if the transaction committed."""
        return self.status == OutcomeStatus.COMMITTED

    @property
    def failed(self) -> bool:
        """True if the store or the adapter aborted the transaction."""
        return self.status in (OutcomeStatus.ABORTED, OutcomeStatus.ERRORED)


@dataclass(frozen=True, slots=True)
class TaskSpec:
    """One concurrent task, bound to concrete parameters up front.

    Attributes:
        index: Submission index; the outcome is stored at the same index.
        role: Writer or reader.
        program: Transaction program executed inside an open transaction.
        params: Parameters handed to the program.
        rounds: Number of transactions the task runs back to back.
    """

    index: int
    role: Role
    program: TransactionProgram
    params: Payload = field(default_factory=dict)
    rounds: int = 1


class Verdict(IntEnum):
    """Scenario verdict."""

    PASSED = auto()
    FAILED = auto()
    INCONCLUSIVE = auto()
    SKIPPED = auto()
    ERROR = auto()
    TIMEOUT = auto()


@dataclass(frozen=True, slots=True)
class ScenarioReport:
    """Judged result of one scenario against one store.

    Attributes:
        scenario: Scenario name.
        store: Store adapter name.
        submitted: Number of tasks submitted.
        committed: Tasks whose transaction committed.
        aborted: Tasks the store aborted (TransactionAborted).
        errored: Tasks that failed with an adapter error.
        rolled_back: Tasks whose program rolled back on purpose.
        anomalies: Number of anomalies detected.
        verdict: Scenario verdict.
        details: Human-readable findings.
        duration_ms: Wall-clock time of the scenario.
        error: Error message for SKIPPED, ERROR and TIMEOUT verdicts.
    """

    scenario: str
    store: str
    submitted: int = 0
    committed: int = 0
    aborted: int = 0
    errored: int = 0
    rolled_back: int = 0
    anomalies: int = 0
    verdict: Verdict = Verdict.PASSED
    details: tuple[str, ...] = ()
    duration_ms: float = 0.0
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True if the scenario passed."""
        return self.verdict == Verdict.PASSED

    @property
    def failed_transactions(self) -> int:
        """Aborted plus errored transactions."""
        return self.aborted + self.errored

    def raise_for_verdict(self) -> None:
        """Raise InvariantViolation if an anomaly was detected."""
        if self.verdict == Verdict.FAILED:
            summary = "; ".join(self.details[:3]) or "anomaly detected"
            msg = f"{self.scenario}: {self.anomalies} anomalies ({summary})"
            raise InvariantViolation(msg)


# Plan fields that may be zero; every other count must be positive
_DELAY_FIELDS = ("sleep_ms", "g1b_sleep_ms")


@dataclass(frozen=True, slots=True)
class RunPlan:
    """Static scenario-plan input: pool sizing and per-scenario counts.

    Attributes:
        name: Plan name.
        workers: Size of the bounded worker pool.
        drain_timeout_seconds: Safety timeout while waiting for the pool to drain.
        seed: Seed for the random source used to bind task parameters.
        sleep_ms: Race-widening delay taken inside open transactions.
        atomicity_transactions: Transactions per atomicity scenario.
        atomicity_collision_every: Every n-th Atomicity-C transaction reuses an existing id.
        g0_writers: G0 writer count.
        g1a_writers: G1a writer count.
        g1a_readers: G1a reader count.
        g1b_writers: G1b writer count.
        g1b_readers: G1b reader count.
        g1b_sleep_ms: Delay between the even and the odd write in G1b.
        g1c_transactions: G1c transaction count.
        imp_transactions: IMP writers (and readers).
        pmp_transactions: PMP writers (and readers).
        otv_rounds: Rounds run by the single OTV writer.
        otv_readers: OTV reader count.
        fr_transactions: FR writers (and readers).
        lu_transactions: LU writer count.
        ws_writers: WS writer count.
        ws_pairs: Number of account pairs seeded for WS.

    Raises:
        ValueError: If a count or the timeout is below one, or a delay is negative.
    """

    name: str
    workers: int = 8
    drain_timeout_seconds: int = 3600
    seed: int = 42
    sleep_ms: int = 250
    atomicity_transactions: int = 50
    atomicity_collision_every: int = 5
    g0_writers: int = 200
    g1a_writers: int = 5
    g1a_readers: int = 5
    g1b_writers: int = 20
    g1b_readers: int = 20
    g1b_sleep_ms: int = 1
    g1c_transactions: int = 100
    imp_transactions: int = 20
    pmp_transactions: int = 20
    otv_rounds: int = 100
    otv_readers: int = 50
    fr_transactions: int = 100
    lu_transactions: int = 200
    ws_writers: int = 50
    ws_pairs: int = 10

    def __post_init__(self) -> None:
        for f in fields(self):
            if f.name in ("name", "seed"):
                continue
            value = getattr(self, f.name)
            minimum = 0 if f.name in _DELAY_FIELDS else 1
            if value < minimum:
                msg = f"RunPlan.{f.name} must be at least {minimum}, got {value}"
                raise ValueError(msg)

    def with_overrides(self, **changes: Any) -> "RunPlan":
        """Return a copy with the given fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
