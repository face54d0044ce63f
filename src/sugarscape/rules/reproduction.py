"""
Reproduction rule: fertile neighbours of opposite sex produce offspring.

Children take metabolism, vision and max-age from either parent at random,
get position-wise crossovers of both parents' culture tags and immune
systems, and are endowed by each parent with half of the smaller of the
parent's current and initial sugar.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from sugarscape.core.agent import Agent, Sex
from sugarscape.core.bits import crossover_bits
from sugarscape.core.decision import (
    DecisionContext,
    note_invalid_decision,
    request_decision,
)
from sugarscape.rules.base import SimulationRule

if TYPE_CHECKING:
    import numpy as np

    from sugarscape.core.state import SimulationState


def max_matings(agent: Agent) -> int:
    """How many children an agent can afford this tick: floor(log2(s / s0)) + 1."""
    if agent.initial_sugar <= 0 or agent.sugar < agent.initial_sugar:
        return 0
    return int(math.floor(math.log2(agent.sugar / agent.initial_sugar))) + 1


def endowment(agent: Agent) -> float:
    """Sugar one parent hands to a newborn."""
    return min(agent.sugar, agent.initial_sugar) / 2.0


def _pick(rng: np.random.Generator, a: Any, b: Any) -> Any:
    return a if rng.random() < 0.5 else b


class ReproductionRule(SimulationRule):
    """Rule S: sexual reproduction between fertile neighbours."""

    enabled_by = "enable_reproduction"

    @property
    def name(self) -> str:
        return "reproduction"

    @property
    def description(self) -> str:
        return "Pairing of fertile opposite-sex agents with genetic and cultural crossover"

    def run(self, state: SimulationState) -> None:
        for agent in state.population.shuffled(state.rng):
            if not agent.is_alive or not self.is_fertile(agent, state):
                continue
            partners = self.eligible_partners(agent, state)
            if not partners:
                continue
            limit = min(state.config.max_partners, max_matings(agent))
            for partner in self.choose_partners(agent, partners, limit, state):
                self.mate(agent, partner, state)

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def is_fertile(self, agent: Agent, state: SimulationState) -> bool:
        return agent.is_fertile(state.config.fertility_window(agent.sex.value))

    def free_cells(self, a: Agent, b: Agent, state: SimulationState) -> list[tuple[int, int]]:
        """Empty von Neumann cells around either parent, sorted."""
        grid, population = state.grid, state.population
        cells = {
            p for p in grid.von_neumann(a.pos) + grid.von_neumann(b.pos)
            if population.is_empty(p)
        }
        return sorted(cells)

    def eligible_partners(self, agent: Agent, state: SimulationState) -> list[Agent]:
        """Fertile opposite-sex agents in sight with room for a child."""
        config = state.config
        visible = state.grid.visible_positions(
            agent.pos, agent.vision, config.vision_shape, config.vision_metric,
        )
        return [
            other for other in state.population.occupants(visible)
            if other.sex != agent.sex
            and self.is_fertile(other, state)
            and self.free_cells(agent, other, state)
        ]

    def choose_partners(
        self,
        agent: Agent,
        partners: list[Agent],
        limit: int,
        state: SimulationState,
    ) -> list[Agent]:
        record = request_decision(
            state, agent, DecisionContext.REPRODUCTION,
            lambda: {
                "tick": state.tick,
                "max_partners": limit,
                "partners": [p.snapshot() for p in partners],
            },
        )
        if record is None:
            order = state.rng.permutation(len(partners))
            return [partners[i] for i in order[:limit]]

        by_id = {p.id: p for p in partners}
        chosen: list[Agent] = []
        for partner_id in record.reproduction_partners or []:
            partner = by_id.pop(partner_id, None)
            if partner is None or len(chosen) >= limit:
                note_invalid_decision(
                    state, agent, DecisionContext.REPRODUCTION,
                    f"partner {partner_id} not eligible",
                )
                continue
            chosen.append(partner)
        return chosen

    # ------------------------------------------------------------------
    # Mating
    # ------------------------------------------------------------------

    def mate(self, a: Agent, b: Agent, state: SimulationState) -> Agent | None:
        """Produce one child if both parents still qualify and a cell is free."""
        if not (a.is_alive and b.is_alive):
            return None
        if not (self.is_fertile(a, state) and self.is_fertile(b, state)):
            return None
        cells = self.free_cells(a, b, state)
        if not cells:
            return None
        rng = state.rng
        pos = cells[int(rng.integers(len(cells)))]

        gift_a, gift_b = endowment(a), endowment(b)
        a.sugar -= gift_a
        b.sugar -= gift_b
        child = Agent(
            id=state.population.new_id(),
            pos=pos,
            sex=Sex.MALE if rng.random() < 0.5 else Sex.FEMALE,
            vision=_pick(rng, a.vision, b.vision),
            metabolism=_pick(rng, a.metabolism, b.metabolism),
            max_age=_pick(rng, a.max_age, b.max_age),
            sugar=gift_a + gift_b,
            initial_sugar=gift_a + gift_b,
            culture=crossover_bits(a.culture, b.culture, rng),
            immunity=crossover_bits(a.immunity, b.immunity, rng),
            born_tick=state.tick,
            parent_ids=(a.id, b.id),
        )
        state.population.add(child)
        a.children.append(child.id)
        b.children.append(child.id)
        state.events.births += 1
        return child
