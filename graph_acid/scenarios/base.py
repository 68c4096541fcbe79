r"""
Base scenario implementation.

A scenario seeds a small account graph, describes the concurrent tasks that
race against it, and inspects the outcomes for its anomaly.

    from graph_acid.scenarios.base import BaseScenario, ScenarioRegistry

    @ScenarioRegistry.register("my_anomaly")
    class MyScenario(BaseScenario):
        ...
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from graph_acid.protocols import Step
from graph_acid.types import Payload, Role, RunPlan, TaskSpec, TransactionOutcome, TransactionProgram

__all__ = [
    "BaseScenario",
    "Detection",
    "ScenarioRegistry",
    "committed_payloads",
    "interleave",
]


@dataclass(frozen=True, slots=True)
class Detection:
    """Anomalies found by a scenario's detection rule."""

    anomalies: int = 0
    details: tuple[str, ...] = ()

    @classmethod
    def from_findings(cls, findings: Iterable[str]) -> Detection:
        details = tuple(findings)
        return cls(anomalies=len(details), details=details)


class ScenarioRegistry:
    """Registry for scenarios, in catalog order."""

    _scenarios: dict[str, type[BaseScenario]] = {}

    @classmethod
    def register(cls, name: str) -> Any:
        """Decorator to register a scenario class."""

        def decorator(scenario_cls: type[BaseScenario]) -> type[BaseScenario]:
            scenario_cls.name = name
            cls._scenarios[name] = scenario_cls
            return scenario_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> type[BaseScenario] | None:
        """Get scenario class by name."""
        return cls._scenarios.get(name)

    @classmethod
    def list(cls) -> list[str]:
        """List registered scenario names."""
        return list(cls._scenarios.keys())

    @classmethod
    def create(cls, name: str) -> BaseScenario:
        """Create scenario instance by name."""
        scenario_cls = cls.get(name)
        if scenario_cls is None:
            valid = ", ".join(cls.list())
            msg = f"Unknown scenario '{name}'. Valid scenarios: {valid}"
            raise ValueError(msg)
        return scenario_cls()

    @classmethod
    def create_all(cls) -> list[BaseScenario]:
        """Instantiate every registered scenario."""
        return [scenario_cls() for scenario_cls in cls._scenarios.values()]


class BaseScenario(ABC):
    """Base class for anomaly scenarios.

    Each scenario follows the pattern: init -> baseline -> race -> final check.
    """

    name: str = ""
    sequential: bool = False

    @property
    def description(self) -> str:
        """First line of the class docstring."""
        doc = self.__class__.__doc__ or self.name
        return doc.strip().splitlines()[0]

    @abstractmethod
    def init_steps(self, plan: RunPlan) -> list[Step]:
        """Operations that seed the graph, run in one transaction."""
        ...

    @abstractmethod
    def build_tasks(self, plan: RunPlan, rng: random.Random) -> list[TaskSpec]:
        """Build the task list with parameters bound."""
        ...

    def baseline_check(self, plan: RunPlan) -> Step | None:
        """Consistency read before the race."""
        return None

    def final_check(self, plan: RunPlan) -> Step | None:
        """Consistency read after the race."""
        return None

    @abstractmethod
    def detect(
        self,
        tasks: Sequence[TaskSpec],
        outcomes: Sequence[TransactionOutcome],
        baseline: Payload | None,
        final: Payload | None,
    ) -> Detection:
        """Count anomalies in the outcomes and consistency reads."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"


def interleave(
    writer: TransactionProgram,
    writer_params: Sequence[Payload],
    reader: TransactionProgram,
    reader_params: Sequence[Payload],
) -> list[TaskSpec]:
    """Alternate writers and readers, writer first, then append the remainder."""
    roles: list[tuple[Role, TransactionProgram, Payload]] = []
    for i in range(max(len(writer_params), len(reader_params))):
        if i < len(writer_params):
            roles.append((Role.WRITER, writer, writer_params[i]))
        if i < len(reader_params):
            roles.append((Role.READER, reader, reader_params[i]))
    return [TaskSpec(index, role, program, params) for index, (role, program, params) in enumerate(roles)]


def committed_payloads(
    tasks: Sequence[TaskSpec],
    outcomes: Sequence[TransactionOutcome],
    role: Role | None = None,
) -> list[tuple[TaskSpec, Payload]]:
    """Tasks that committed, paired with their payloads."""
    return [
        (task, outcome.payload)
        for task, outcome in zip(tasks, outcomes, strict=True)
        if outcome.ok and (role is None or task.role == role)
    ]
