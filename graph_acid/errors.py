r"""
Error taxonomy for the harness.

    TransactionAborted   store rejected or rolled back a transaction (expected)
    AdapterError         network or protocol failure, judged like an abort
    MissingResultError   a read found no row
    InvariantViolation   the judge detected an anomaly
    SetupFailure         wipe, init or baseline read failed; scenario skipped
    HarnessTimeout       the worker pool did not drain in time
"""

__all__ = [
    "HarnessError",
    "TransactionAborted",
    "AdapterError",
    "MissingResultError",
    "InvariantViolation",
    "SetupFailure",
    "HarnessTimeout",
]


class HarnessError(Exception):
    """Base class for harness errors."""


class TransactionAborted(HarnessError):
    """The store aborted the transaction (conflict, deadlock, constraint)."""


class AdapterError(HarnessError):
    """The adapter could not complete an operation."""


class MissingResultError(AdapterError):
    """A read operation returned no row."""

    def __init__(self, operation: str, parameters: dict | None = None) -> None:
        self.operation = operation
        self.parameters = dict(parameters or {})
        super().__init__(f"{operation} returned no result for {self.parameters}")


class InvariantViolation(HarnessError):
    """An isolation anomaly was detected."""


class SetupFailure(HarnessError):
    """Scenario setup failed."""

    def __init__(self, scenario: str, stage: str, cause: BaseException) -> None:
        self.scenario = scenario
        self.stage = stage
        self.cause = cause
        super().__init__(f"{scenario}: {stage} failed: {cause}")


class HarnessTimeout(HarnessError):
    """Tasks were still running when the drain timeout expired."""

    def __init__(self, pending: int, timeout_seconds: float) -> None:
        self.pending = pending
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{pending} tasks still running after {timeout_seconds}s")
