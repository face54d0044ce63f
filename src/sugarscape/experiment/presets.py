"""
Experiment presets: pre-configured scenario templates.

Each preset returns a SugarscapeConfig reproducing one of the classic
Sugarscape scenarios, from pure foraging up to disease dynamics.
"""

from __future__ import annotations

from typing import Callable

from sugarscape.core.config import SugarscapeConfig


def movement_only() -> SugarscapeConfig:
    """Foraging on the two-peak landscape with replacement of the dead."""
    return SugarscapeConfig(experiment_name="movement_only")


def seasons_pollution() -> SugarscapeConfig:
    """Seasonal growback plus pollution from harvesting and metabolism."""
    return SugarscapeConfig(
        experiment_name="seasons_pollution",
        enable_seasonality=True,
        enable_pollution=True,
    )


def movement_reproduction() -> SugarscapeConfig:
    """Sexual reproduction with inheritance; no replacement."""
    return SugarscapeConfig(
        experiment_name="movement_reproduction",
        enable_reproduction=True,
        enable_inheritance=True,
    )


def movement_culture_credit() -> SugarscapeConfig:
    """Cultural transmission and neighbour lending."""
    return SugarscapeConfig(
        experiment_name="movement_culture_credit",
        enable_culture=True,
        enable_credit=True,
    )


def movement_credit_reproduction() -> SugarscapeConfig:
    """Credit markets in a reproducing population; loans pass to heirs."""
    return SugarscapeConfig(
        experiment_name="movement_credit_reproduction",
        enable_credit=True,
        enable_reproduction=True,
        enable_inheritance=True,
    )


def culture_combat() -> SugarscapeConfig:
    """Two tribes fighting over the landscape."""
    return SugarscapeConfig(
        experiment_name="culture_combat",
        enable_culture=True,
        enable_combat=True,
    )


def disease() -> SugarscapeConfig:
    """Disease spread and immune adaptation."""
    return SugarscapeConfig(
        experiment_name="disease",
        enable_disease=True,
        disease_mutation_probability=0.01,
    )


# Registry of all presets
PRESETS: dict[str, Callable[[], SugarscapeConfig]] = {
    "movement_only": movement_only,
    "seasons_pollution": seasons_pollution,
    "movement_reproduction": movement_reproduction,
    "movement_culture_credit": movement_culture_credit,
    "movement_credit_reproduction": movement_credit_reproduction,
    "culture_combat": culture_combat,
    "disease": disease,
}


def get_preset(name: str) -> SugarscapeConfig:
    """Get a preset config by name."""
    if name not in PRESETS:
        raise KeyError(f"Unknown preset: '{name}'. Available: {list(PRESETS.keys())}")
    return PRESETS[name]()


def list_presets() -> list[str]:
    """Return list of available preset names."""
    return list(PRESETS.keys())
