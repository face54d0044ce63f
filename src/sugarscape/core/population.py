"""
Population registry: owns every live agent and the cell occupancy map.

Identifiers are issued monotonically and never reused, so a dead agent's id
can never be confused with a newcomer's.
"""

from __future__ import annotations

from typing import Iterator, Sequence

import numpy as np

from sugarscape.core.agent import Agent, Sex
from sugarscape.core.bits import random_bits
from sugarscape.core.config import SugarscapeConfig


class OccupiedCellError(ValueError):
    """Raised when placing an agent on a cell that already holds one."""


class PopulationRegistry:
    """Live agents keyed by id, plus a position -> id occupancy map."""

    def __init__(self, grid_size: int) -> None:
        self.grid_size = grid_size
        self._agents: dict[int, Agent] = {}
        self._occupancy: dict[tuple[int, int], int] = {}
        self._next_id = 0

    def new_id(self) -> int:
        agent_id = self._next_id
        self._next_id += 1
        return agent_id

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def add(self, agent: Agent) -> None:
        if agent.id in self._agents:
            raise ValueError(f"Agent {agent.id} is already registered")
        if agent.pos in self._occupancy:
            raise OccupiedCellError(
                f"Cell {agent.pos} already holds agent {self._occupancy[agent.pos]}"
            )
        self._agents[agent.id] = agent
        self._occupancy[agent.pos] = agent.id
        self._next_id = max(self._next_id, agent.id + 1)

    def remove(self, agent: Agent) -> None:
        del self._agents[agent.id]
        if self._occupancy.get(agent.pos) == agent.id:
            del self._occupancy[agent.pos]

    def move(self, agent: Agent, pos: tuple[int, int]) -> None:
        """Relocate ``agent`` to ``pos``, which must be empty or its own cell."""
        if pos == agent.pos:
            return
        if pos in self._occupancy:
            raise OccupiedCellError(
                f"Cell {pos} already holds agent {self._occupancy[pos]}"
            )
        del self._occupancy[agent.pos]
        self._occupancy[pos] = agent.id
        agent.pos = pos

    def get(self, agent_id: int) -> Agent | None:
        return self._agents.get(agent_id)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def __iter__(self) -> Iterator[Agent]:
        return iter(list(self._agents.values()))

    def __len__(self) -> int:
        return len(self._agents)

    @property
    def agents(self) -> list[Agent]:
        """Live agents in creation order."""
        return list(self._agents.values())

    # ------------------------------------------------------------------
    # Spatial queries
    # ------------------------------------------------------------------

    def agent_at(self, pos: tuple[int, int]) -> Agent | None:
        agent_id = self._occupancy.get(pos)
        return None if agent_id is None else self._agents[agent_id]

    def is_empty(self, pos: tuple[int, int]) -> bool:
        return pos not in self._occupancy

    def occupants(self, positions: Sequence[tuple[int, int]]) -> list[Agent]:
        """Agents standing on any of ``positions``, in the given order."""
        return [self._agents[self._occupancy[p]] for p in positions if p in self._occupancy]

    def empty_positions(self) -> list[tuple[int, int]]:
        return [
            (x, y)
            for x in range(self.grid_size)
            for y in range(self.grid_size)
            if (x, y) not in self._occupancy
        ]

    def random_empty(self, rng: np.random.Generator) -> tuple[int, int] | None:
        """A uniformly chosen empty cell, or ``None`` when the grid is full."""
        empty = self.empty_positions()
        if not empty:
            return None
        return empty[int(rng.integers(len(empty)))]

    def shuffled(self, rng: np.random.Generator) -> list[Agent]:
        """Live agents in a fresh random order."""
        agents = self.agents
        return [agents[i] for i in rng.permutation(len(agents))]

    def occupancy_consistent(self) -> bool:
        if len(self._occupancy) != len(self._agents):
            return False
        return all(
            self._occupancy.get(a.pos) == a.id for a in self._agents.values()
        )


def random_agent(
    agent_id: int,
    pos: tuple[int, int],
    config: SugarscapeConfig,
    rng: np.random.Generator,
    disease_pool: Sequence[np.ndarray] = (),
    born_tick: int = 0,
) -> Agent:
    """Create an agent with attributes drawn uniformly from the configured ranges."""
    vision = int(rng.integers(config.vision_range[0], config.vision_range[1] + 1))
    metabolism = int(rng.integers(
        config.metabolism_range[0], config.metabolism_range[1] + 1,
    ))
    max_age = int(rng.integers(config.max_age_range[0], config.max_age_range[1] + 1))
    sugar = float(rng.integers(
        config.initial_sugar_range[0], config.initial_sugar_range[1] + 1,
    ))
    sex = Sex.MALE if rng.random() < 0.5 else Sex.FEMALE
    agent = Agent(
        id=agent_id,
        pos=pos,
        sex=sex,
        vision=vision,
        metabolism=metabolism,
        max_age=max_age,
        sugar=sugar,
        initial_sugar=sugar,
        culture=random_bits(rng, config.culture_tag_length),
        immunity=random_bits(rng, config.immunity_length),
        born_tick=born_tick,
    )
    if disease_pool and rng.random() < config.initial_infection_probability:
        agent.infect(disease_pool[int(rng.integers(len(disease_pool)))].copy())
    return agent
