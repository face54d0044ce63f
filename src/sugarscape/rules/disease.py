"""
Disease rule: transmission between neighbours and immune adaptation.

Transmission: every neighbour carrying at least one disease passes one of
them (chosen at random) to the agent; duplicates are ignored.

Immune response: a disease that occurs inside the immunity string is
harmless. For any other disease the immunity window closest to it (first
one on ties) has its first mismatching bit flipped. Each disease that was
not harmless against the immunity as it stood before any flips this tick
costs the carrier ``disease_penalty`` sugar.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sugarscape.core.bits import flip_toward, is_subsequence, random_bits
from sugarscape.core.state import DeathCause
from sugarscape.rules.base import SimulationRule

if TYPE_CHECKING:
    import numpy as np

    from sugarscape.core.agent import Agent
    from sugarscape.core.state import SimulationState


def random_disease(rng: np.random.Generator, length_range: tuple[int, int]) -> np.ndarray:
    length = int(rng.integers(length_range[0], length_range[1] + 1))
    return random_bits(rng, length)


class DiseaseRule(SimulationRule):
    """Rule E: disease transmission and immune response."""

    enabled_by = "enable_disease"

    @property
    def name(self) -> str:
        return "disease"

    @property
    def description(self) -> str:
        return "Neighbour disease transmission and Hamming-distance immune adaptation"

    def run(self, state: SimulationState) -> None:
        order = state.population.shuffled(state.rng)
        for agent in order:
            self.transmit_to(agent, state)
        doomed: list[Agent] = []
        for agent in order:
            uncured = self.immune_response(agent, state)
            if self.succumbs(uncured, state):
                doomed.append(agent)
        state.bury([(agent, DeathCause.DISEASE) for agent in doomed])

    def transmit_to(self, agent: Agent, state: SimulationState) -> None:
        config, rng = state.config, state.rng
        for neighbour in state.population.occupants(state.grid.von_neumann(agent.pos)):
            if not neighbour.diseases:
                continue
            disease = neighbour.diseases[int(rng.integers(len(neighbour.diseases)))]
            if (
                config.disease_transmission_probability < 1.0
                and rng.random() >= config.disease_transmission_probability
            ):
                continue
            copy = disease.copy()
            if (
                config.disease_mutation_probability > 0.0
                and rng.random() < config.disease_mutation_probability
            ):
                bit = int(rng.integers(len(copy)))
                copy[bit] = not copy[bit]
            if agent.infect(copy):
                state.events.infections += 1

    def immune_response(self, agent: Agent, state: SimulationState) -> list[np.ndarray]:
        """Adapt the immunity and charge for uncured diseases; returns them."""
        before = agent.immunity.copy()
        uncured = [d for d in agent.diseases if not is_subsequence(d, before)]
        for disease in agent.diseases:
            if flip_toward(agent.immunity, disease) is not None:
                state.events.immune_flips += 1
        penalty = state.config.disease_penalty * len(uncured)
        agent.sugar -= penalty
        state.events.disease_penalty_paid += penalty
        if state.config.drop_cured_diseases:
            agent.diseases = [d for d in agent.diseases if not is_subsequence(d, before)]
        return uncured

    def succumbs(self, uncured: list[np.ndarray], state: SimulationState) -> bool:
        p_death = state.config.disease_mortality_probability
        if p_death <= 0.0:
            return False
        return any(state.rng.random() < p_death for _ in uncured)

    def get_metrics(self, state: SimulationState) -> dict[str, Any]:
        infected = [a for a in state.population if a.diseases]
        return {
            "infected": len(infected),
            "mean_diseases": (
                sum(len(a.diseases) for a in state.population) / len(state.population)
                if len(state.population) else 0.0
            ),
        }
