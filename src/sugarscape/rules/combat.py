"""
Combat rule: movement that may end in a kill.

Extends the movement rule so agents can also step onto cells held by
poorer members of the other tribe. A target is skipped when the kill would
leave the attacker exposed: some other member of the victim's tribe that
the victim can see is richer than the attacker would be after the kill.
Positions and wealth for that check come from a snapshot taken when the
phase starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sugarscape.core.bits import Tribe
from sugarscape.core.decision import (
    DecisionContext,
    note_invalid_decision,
    request_decision,
)
from sugarscape.core.state import DeathCause
from sugarscape.rules.movement import Candidate, MovementRule, best_candidate

if TYPE_CHECKING:
    from sugarscape.core.agent import Agent
    from sugarscape.core.state import SimulationState


@dataclass(frozen=True)
class _Sighting:
    pos: tuple[int, int]
    sugar: float
    tribe: Tribe


class CombatRule(MovementRule):
    """Rule C: move-or-attack with a retaliation-safety check."""

    enabled_by = "enable_combat"

    def __init__(self) -> None:
        self._snapshot: dict[int, _Sighting] = {}

    @property
    def name(self) -> str:
        return "combat"

    @property
    def description(self) -> str:
        return "Movement into cells of poorer agents of the other tribe, avoiding retaliation"

    def run(self, state: SimulationState) -> None:
        self._snapshot = {
            a.id: _Sighting(a.pos, a.sugar, a.tribe) for a in state.population
        }
        for agent in state.population.shuffled(state.rng):
            if not agent.is_alive or agent.id in state.moved_this_tick:
                continue
            self.step_agent(agent, state)
        self._snapshot = {}

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------

    def combat_candidates(self, agent: Agent, state: SimulationState) -> list[Candidate]:
        """Free cells valued by sugar, plus safely attackable occupied cells."""
        grid = state.grid
        limit = state.config.combat_limit
        tribe = agent.tribe
        candidates = [
            Candidate(agent.pos, grid.sugar_at(agent.pos), 0.0)
        ]
        for pos in self.visible(agent, state):
            occupant = state.population.agent_at(pos)
            distance = grid.distance(agent.pos, pos)
            if occupant is None:
                candidates.append(Candidate(pos, grid.sugar_at(pos), distance))
                continue
            if occupant.tribe == tribe or occupant.sugar >= agent.sugar:
                continue
            reward = grid.sugar_at(pos) + min(limit, max(occupant.sugar, 0.0))
            if self.exposed(agent, occupant, reward, state):
                continue
            candidates.append(Candidate(pos, reward, distance, occupant.id))
        return candidates

    def exposed(
        self,
        attacker: Agent,
        victim: Agent,
        reward: float,
        state: SimulationState,
    ) -> bool:
        """True if a richer member of the victim's tribe is in the victim's sight."""
        config = state.config
        sight = set(state.grid.visible_positions(
            victim.pos, victim.vision, config.vision_shape, config.vision_metric,
        ))
        victim_tribe = victim.tribe
        wealth_after = attacker.sugar + reward
        for agent_id, seen in self._snapshot.items():
            if agent_id in (attacker.id, victim.id) or seen.tribe != victim_tribe:
                continue
            if seen.pos in sight and seen.sugar > wealth_after:
                return True
        return False

    # ------------------------------------------------------------------
    # Per-agent step
    # ------------------------------------------------------------------

    def step_agent(self, agent: Agent, state: SimulationState) -> None:
        candidates = self.combat_candidates(agent, state)
        record = request_decision(
            state, agent, DecisionContext.COMBAT,
            lambda: self.situation(agent, candidates, state),
        )
        if record is None:
            choice = best_candidate(candidates)
        elif record.combat_target is not None:
            choice = next(
                (c for c in candidates if c.occupant_id == record.combat_target), None,
            )
            if choice is None:
                note_invalid_decision(
                    state, agent, DecisionContext.COMBAT,
                    f"combat_target {record.combat_target} not attackable",
                )
                choice = candidates[0]
        else:
            free = [c for c in candidates if c.occupant_id is None]
            target = self.validated_target(record.move_target, free, agent, state)
            choice = next(c for c in free if c.pos == target)

        if choice.occupant_id is None:
            self.relocate(agent, choice.pos, state)
        else:
            self.attack(agent, choice, state)

    def attack(self, agent: Agent, choice: Candidate, state: SimulationState) -> None:
        victim = state.population.get(choice.occupant_id)
        stolen = min(state.config.combat_limit, max(victim.sugar, 0.0))
        victim.sugar -= stolen
        state.bury([(victim, DeathCause.COMBAT)])
        agent.sugar += stolen
        self.relocate(agent, choice.pos, state)
        state.events.combat_kills += 1
        state.events.combat_sugar_stolen += stolen
        state.events.combat_reward += choice.value

    def situation(
        self,
        agent: Agent,
        candidates: list[Candidate],
        state: SimulationState,
    ) -> dict[str, Any]:
        return {
            "tick": state.tick,
            "candidates": [
                {
                    "pos": list(c.pos),
                    "reward": c.value,
                    "distance": c.distance,
                    "occupant_id": c.occupant_id,
                }
                for c in candidates
            ],
        }
