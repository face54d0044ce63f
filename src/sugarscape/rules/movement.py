"""
Movement rule: greedy welfare-maximizing relocation and foraging.

Each agent looks along its vision, picks the best unoccupied cell (or
stays put), harvests all sugar there, pays its metabolism, ages one tick
and, when pollution is on, leaves pollution behind.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sugarscape.core.decision import (
    DecisionContext,
    note_invalid_decision,
    request_decision,
)
from sugarscape.rules.base import SimulationRule

if TYPE_CHECKING:
    from sugarscape.core.agent import Agent
    from sugarscape.core.state import SimulationState


@dataclass(frozen=True)
class Candidate:
    """A cell an agent may move to, with its value to that agent."""
    pos: tuple[int, int]
    value: float
    distance: float
    occupant_id: int | None = None

    def rank_key(self) -> tuple[float, float, tuple[int, int]]:
        """Highest value, then nearest, then lowest position."""
        return (-self.value, self.distance, self.pos)


def best_candidate(candidates: list[Candidate]) -> Candidate:
    return min(candidates, key=Candidate.rank_key)


class MovementRule(SimulationRule):
    """Rule M: look, move to the best free cell, harvest."""

    @property
    def name(self) -> str:
        return "movement"

    @property
    def description(self) -> str:
        return "Greedy welfare-maximizing movement with foraging and metabolism"

    def run(self, state: SimulationState) -> None:
        for agent in state.population.shuffled(state.rng):
            if not agent.is_alive or agent.id in state.moved_this_tick:
                continue
            self.step_agent(agent, state)

    # ------------------------------------------------------------------
    # Candidate generation
    # ------------------------------------------------------------------

    def visible(self, agent: Agent, state: SimulationState) -> list[tuple[int, int]]:
        config = state.config
        return state.grid.visible_positions(
            agent.pos, agent.vision, config.vision_shape, config.vision_metric,
        )

    def free_candidates(self, agent: Agent, state: SimulationState) -> list[Candidate]:
        """Unoccupied visible cells plus the agent's own cell."""
        grid = state.grid
        polluted = state.config.enable_pollution
        cells = [agent.pos] + [
            p for p in self.visible(agent, state) if state.population.is_empty(p)
        ]
        return [
            Candidate(p, grid.welfare(p, polluted), grid.distance(agent.pos, p))
            for p in cells
        ]

    # ------------------------------------------------------------------
    # Per-agent step
    # ------------------------------------------------------------------

    def step_agent(self, agent: Agent, state: SimulationState) -> None:
        candidates = self.free_candidates(agent, state)
        record = request_decision(
            state, agent, DecisionContext.MOVEMENT,
            lambda: self.situation(agent, candidates, state),
        )
        if record is None:
            target = best_candidate(candidates).pos
        else:
            target = self.validated_target(record.move_target, candidates, agent, state)
        self.relocate(agent, target, state)

    def validated_target(
        self,
        target: tuple[int, int] | None,
        candidates: list[Candidate],
        agent: Agent,
        state: SimulationState,
    ) -> tuple[int, int]:
        """The requested cell if it was offered, otherwise the agent's own cell."""
        if target is None:
            return agent.pos
        target = tuple(target)
        if any(c.pos == target for c in candidates):
            return target
        note_invalid_decision(
            state, agent, DecisionContext.MOVEMENT, f"move_target {target} not offered",
        )
        return agent.pos

    def relocate(self, agent: Agent, pos: tuple[int, int], state: SimulationState) -> float:
        """Move, harvest, metabolize, age and pollute. Returns sugar collected."""
        state.population.move(agent, pos)
        collected = state.grid.harvest(pos)
        agent.sugar += collected - agent.metabolism
        agent.age += 1
        if state.config.enable_pollution:
            state.grid.add_pollution(
                pos,
                state.config.pollution_production_rate * collected
                + state.config.pollution_consumption_rate * agent.metabolism,
            )
        state.events.sugar_collected += collected
        state.moved_this_tick.add(agent.id)
        return collected

    def situation(
        self,
        agent: Agent,
        candidates: list[Candidate],
        state: SimulationState,
    ) -> dict[str, Any]:
        return {
            "tick": state.tick,
            "candidates": [
                {"pos": list(c.pos), "value": c.value, "distance": c.distance}
                for c in candidates
            ],
        }
