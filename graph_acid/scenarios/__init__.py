r"""
Anomaly scenario catalog.

Importing this package registers every scenario in catalog order:
atomicity_c, atomicity_rb, g0, g1a, g1b, g1c, imp, pmp, otv, fr, lu, ws.

    from graph_acid.scenarios import ScenarioRegistry

    for scenario in ScenarioRegistry.create_all():
        print(scenario.name, scenario.description)
"""

from graph_acid.scenarios.base import BaseScenario, Detection, ScenarioRegistry
from graph_acid.scenarios.atomicity import AtomicityCommit, AtomicityRollback
from graph_acid.scenarios.dirty import AbortedRead, CircularInformationFlow, DirtyWrite, IntermediateRead
from graph_acid.scenarios.preceders import ItemManyPreceders, PredicateManyPreceders
from graph_acid.scenarios.snapshot import FracturedRead, ObservedTransactionVanishes
from graph_acid.scenarios.writes import LostUpdate, WriteSkew

__all__ = [
    "AbortedRead",
    "AtomicityCommit",
    "AtomicityRollback",
    "BaseScenario",
    "CircularInformationFlow",
    "Detection",
    "DirtyWrite",
    "FracturedRead",
    "IntermediateRead",
    "ItemManyPreceders",
    "LostUpdate",
    "ObservedTransactionVanishes",
    "PredicateManyPreceders",
    "ScenarioRegistry",
    "WriteSkew",
]
