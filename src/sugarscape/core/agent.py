"""
Core agent record for the Sugarscape sandbox.

Agents carry genetic attributes (vision, metabolism, lifespan), a sugar
accumulator, a cultural bit-tag, an immune system with the diseases they
carry, family links and an optional opaque trait payload supplied by
external collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from sugarscape.core.bits import Tribe, contains_bits, tribe_of


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"


@dataclass(eq=False)
class Agent:
    """A forager on the sugar grid. Compared by identity."""

    # === Identity ===
    id: int
    pos: tuple[int, int]
    sex: Sex

    # === Genetic endowment ===
    vision: int
    metabolism: int
    max_age: int

    # === Wealth ===
    sugar: float
    initial_sugar: float  # reproduction threshold, fixed at creation

    # === Bit sequences ===
    culture: np.ndarray
    immunity: np.ndarray
    diseases: list[np.ndarray] = field(default_factory=list)

    # === Lifecycle ===
    age: int = 0
    is_alive: bool = True
    born_tick: int = 0

    # === Family ===
    parent_ids: tuple[int, int] | None = None
    children: list[int] = field(default_factory=list)
    total_inheritance_received: float = 0.0

    # === Opaque payload (psychological traits, etc.) ===
    traits: Any = None

    # === History (append each tick) ===
    sugar_history: list[float] = field(default_factory=list)
    position_history: list[tuple[int, int]] = field(default_factory=list)

    @property
    def tribe(self) -> Tribe:
        return tribe_of(self.culture)

    def record_tick(self) -> None:
        """Append current wealth and position to the history lists."""
        self.sugar_history.append(self.sugar)
        self.position_history.append(self.pos)

    def in_fertility_window(self, window: tuple[int, int]) -> bool:
        return window[0] <= self.age <= window[1]

    def is_fertile(self, window: tuple[int, int]) -> bool:
        """Fertile by age and wealthy enough to reproduce."""
        return self.in_fertility_window(window) and self.sugar >= self.initial_sugar

    def has_disease(self, disease: np.ndarray) -> bool:
        return contains_bits(self.diseases, disease)

    def infect(self, disease: np.ndarray) -> bool:
        """Add ``disease`` unless an equal one is already carried."""
        if self.has_disease(disease):
            return False
        self.diseases.append(disease)
        return True

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view handed to external decision providers."""
        return {
            "id": self.id,
            "pos": list(self.pos),
            "sex": self.sex.value,
            "age": self.age,
            "max_age": self.max_age,
            "vision": self.vision,
            "metabolism": self.metabolism,
            "sugar": self.sugar,
            "initial_sugar": self.initial_sugar,
            "tribe": self.tribe.value,
            "n_children": len(self.children),
            "n_diseases": len(self.diseases),
            "traits": self.traits,
        }

    def __repr__(self) -> str:
        status = "alive" if self.is_alive else "dead"
        return (
            f"Agent(id={self.id}, pos={self.pos}, sex={self.sex.value}, "
            f"age={self.age}, sugar={self.sugar:.1f}, {status})"
        )
