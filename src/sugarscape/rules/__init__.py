"""Rule phases composed by the simulation engine."""

from sugarscape.rules.base import SimulationRule
from sugarscape.rules.registry import RuleRegistry
from sugarscape.rules.movement import Candidate, MovementRule
from sugarscape.rules.combat import CombatRule
from sugarscape.rules.reproduction import ReproductionRule
from sugarscape.rules.inheritance import InheritanceRule
from sugarscape.rules.culture import CultureRule
from sugarscape.rules.credit import CreditRule
from sugarscape.rules.disease import DiseaseRule
from sugarscape.rules.lifecycle import (
    GrowbackRule,
    MortalityRule,
    PollutionRule,
    ReplacementRule,
)

__all__ = [
    "SimulationRule",
    "RuleRegistry",
    "Candidate",
    "MovementRule",
    "CombatRule",
    "ReproductionRule",
    "InheritanceRule",
    "CultureRule",
    "CreditRule",
    "DiseaseRule",
    "GrowbackRule",
    "MortalityRule",
    "PollutionRule",
    "ReplacementRule",
]
