"""
Culture rule: tag bits spread between neighbours.

Each agent, in a fresh random order, picks one random von Neumann
neighbour and one random tag position; if the neighbour's bit differs it
is flipped to match the agent's (subject to the flip probability).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sugarscape.core.bits import Tribe
from sugarscape.rules.base import SimulationRule

if TYPE_CHECKING:
    from sugarscape.core.state import SimulationState


class CultureRule(SimulationRule):
    """Rule K: cultural transmission by tag flipping."""

    enabled_by = "enable_culture"

    @property
    def name(self) -> str:
        return "culture"

    @property
    def description(self) -> str:
        return "Bit-tag cultural transmission between neighbouring agents"

    def run(self, state: SimulationState) -> None:
        rng = state.rng
        tag_length = state.config.culture_tag_length
        p_flip = state.config.culture_flip_probability
        for agent in state.population.shuffled(rng):
            neighbours = state.population.occupants(state.grid.von_neumann(agent.pos))
            if not neighbours:
                continue
            neighbour = neighbours[int(rng.integers(len(neighbours)))]
            index = int(rng.integers(tag_length))
            if p_flip < 1.0 and rng.random() >= p_flip:
                continue
            if neighbour.culture[index] != agent.culture[index]:
                neighbour.culture[index] = agent.culture[index]
                state.events.culture_flips += 1

    def get_metrics(self, state: SimulationState) -> dict[str, Any]:
        reds = sum(1 for a in state.population if a.tribe == Tribe.RED)
        return {"red": reds, "blue": len(state.population) - reds}
