"""
Mutable simulation state threaded through every rule phase.

``SimulationState`` bundles the grid, population registry, loan ledger,
the shared random generator and the per-tick event counters. It also owns
the removal protocol for dying agents (``bury``), so every cause of death
goes through the same inheritance -> loan dispersal -> removal sequence.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

from sugarscape.core.agent import Agent
from sugarscape.core.config import SugarscapeConfig
from sugarscape.core.grid import SugarGrid
from sugarscape.core.ledger import LoanLedger
from sugarscape.core.population import PopulationRegistry

if TYPE_CHECKING:
    from sugarscape.core.decision import DecisionProvider

logger = logging.getLogger(__name__)


class DeathCause(str, Enum):
    STARVATION = "starvation"
    AGE = "age"
    COMBAT = "combat"
    DISEASE = "disease"


class DeathListener(Protocol):
    def on_agent_death(
        self, agent: Agent, state: SimulationState, co_dying: set[int],
    ) -> None: ...


# ---------------------------------------------------------------------------
# Tick event accumulator
# ---------------------------------------------------------------------------

@dataclass
class TickEvents:
    """Counters accumulated over a single tick."""
    births: int = 0
    deaths_starvation: int = 0
    deaths_age: int = 0
    deaths_combat: int = 0
    deaths_disease: int = 0
    replacements: int = 0
    sugar_collected: float = 0.0
    combat_kills: int = 0
    combat_sugar_stolen: float = 0.0
    combat_reward: float = 0.0
    loans_originated: int = 0
    credit_volume: float = 0.0
    loans_repaid: int = 0
    loans_refinanced: int = 0
    loans_forgiven: int = 0
    loans_defaulted: int = 0
    loans_reassigned: int = 0
    inheritances: int = 0
    inheritance_value: float = 0.0
    culture_flips: int = 0
    infections: int = 0
    immune_flips: int = 0
    disease_penalty_paid: float = 0.0
    invalid_decisions: int = 0
    missing_decisions: int = 0

    @property
    def deaths(self) -> int:
        return (
            self.deaths_starvation + self.deaths_age
            + self.deaths_combat + self.deaths_disease
        )

    def record_death(self, cause: DeathCause) -> None:
        attr = f"deaths_{cause.value}"
        setattr(self, attr, getattr(self, attr) + 1)

    def to_events_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["deaths"] = self.deaths
        return d


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class SimulationState:
    """Single owner of everything the rule phases read and write."""

    def __init__(
        self,
        config: SugarscapeConfig,
        grid: SugarGrid,
        population: PopulationRegistry,
        rng: np.random.Generator,
        provider: DecisionProvider | None = None,
        ledger: LoanLedger | None = None,
        disease_pool: list[np.ndarray] | None = None,
    ) -> None:
        if provider is None:
            from sugarscape.core.decision import RuleBasedProvider
            provider = RuleBasedProvider()
        self.config = config
        self.grid = grid
        self.population = population
        self.rng = rng
        self.provider = provider
        self.ledger = ledger or LoanLedger()
        self.disease_pool = disease_pool or []

        self.tick = 0
        self.events = TickEvents()
        # Agents that already relocated this tick (combat winners).
        self.moved_this_tick: set[int] = set()
        # Starvation/age deaths awaiting a replacement agent.
        self.replacement_quota = 0
        self.death_listeners: list[DeathListener] = []
        self.lifespans: dict[DeathCause, list[int]] = defaultdict(list)

    def begin_tick(self) -> None:
        self.events = TickEvents()
        self.moved_this_tick = set()

    def bury(self, dying: list[tuple[Agent, DeathCause]]) -> None:
        """Remove a batch of agents whose death conditions already hold.

        Every listener (inheritance) sees the whole batch first, so
        co-dying children never receive an inheritance. Loans are
        dispersed next, and only then are the agents removed from the
        registry.
        """
        if not dying:
            return
        co_dying = {agent.id for agent, _ in dying}
        for agent, _ in dying:
            for listener in self.death_listeners:
                listener.on_agent_death(agent, self, co_dying)
        for agent, _ in dying:
            result = self.ledger.disperse(agent.id, co_dying)
            self.events.loans_defaulted += len(result.defaulted)
            self.events.loans_forgiven += len(result.forgiven)
            self.events.loans_reassigned += len(result.reassigned)
        for agent, cause in dying:
            self.population.remove(agent)
            agent.is_alive = False
            self.moved_this_tick.discard(agent.id)
            self.events.record_death(cause)
            self.lifespans[cause].append(agent.age)
            logger.debug("Tick %d: agent %d died (%s)", self.tick, agent.id, cause.value)

    def living_children(self, agent: Agent, exclude: set[int] | None = None) -> list[int]:
        exclude = exclude or set()
        return [c for c in agent.children if c in self.population and c not in exclude]
