"""
Tick scheduler for the Sugarscape sandbox.

The engine owns the random generator and the simulation state, places the
founding population, and drives each tick as the ordered phase sequence
named in ``config.rule_sequence``. Rules whose config flag is off are
registered but never enabled, so their phases are skipped and their state
stays frozen.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from sugarscape.core.config import SugarscapeConfig
from sugarscape.core.decision import DecisionProvider
from sugarscape.core.grid import SugarGrid
from sugarscape.core.population import PopulationRegistry, random_agent
from sugarscape.core.state import SimulationState
from sugarscape.metrics.inequality import tribe_counts
from sugarscape.rules import (
    CombatRule,
    CreditRule,
    CultureRule,
    DiseaseRule,
    GrowbackRule,
    InheritanceRule,
    MortalityRule,
    MovementRule,
    PollutionRule,
    ReplacementRule,
    ReproductionRule,
    RuleRegistry,
)
from sugarscape.rules.disease import random_disease

logger = logging.getLogger(__name__)


class InvariantViolation(AssertionError):
    """Raised when state breaks a structural invariant at a tick boundary."""


# ---------------------------------------------------------------------------
# Tick metrics (lightweight snapshot)
# ---------------------------------------------------------------------------
@dataclass
class TickSnapshot:
    """Per-tick summary of the population and the events of the tick."""
    tick: int
    population_size: int
    births: int
    deaths: int
    deaths_by_cause: dict[str, int]

    # Wealth
    total_agent_sugar: float
    mean_sugar: float
    total_grid_sugar: float

    # Demographics and genetics
    mean_age: float
    mean_vision: float
    mean_metabolism: float

    # Culture and credit
    tribe_counts: dict[str, int]
    loans_outstanding: int
    principal_outstanding: float

    # Raw event counters and per-rule metrics
    events: dict[str, Any] = field(default_factory=dict)
    rule_metrics: dict[str, dict[str, Any]] = field(default_factory=dict)


def build_registry(config: SugarscapeConfig) -> RuleRegistry:
    """Register every rule and enable the ones ``config`` switches on."""
    registry = RuleRegistry()
    for rule in (
        CombatRule(),
        MovementRule(),
        MortalityRule(),
        ReplacementRule(),
        ReproductionRule(),
        InheritanceRule(),
        CultureRule(),
        CreditRule(),
        DiseaseRule(),
        GrowbackRule(),
        PollutionRule(),
    ):
        registry.register(rule)
    registry.activate(config)
    return registry


# ---------------------------------------------------------------------------
# Simulation Engine
# ---------------------------------------------------------------------------
class SimulationEngine:
    """
    Main simulation loop.

    Default phases per tick:
    1. Combat (when enabled), then movement and foraging
    2. Mortality (starvation, old age) and replacement
    3. Reproduction
    4. Culture, credit and disease
    5. Growback and pollution diffusion
    """

    def __init__(
        self,
        config: SugarscapeConfig,
        decision_provider: DecisionProvider | None = None,
    ):
        self.config = config
        self.decision_provider = decision_provider
        self.registry = build_registry(config)
        self.rng = np.random.default_rng(config.random_seed)
        self.state: SimulationState | None = None
        self.history: list[TickSnapshot] = []

    def setup(self) -> SimulationState:
        """Build the grid and founding population, then start every rule."""
        config = self.config
        self.rng = np.random.default_rng(config.random_seed)
        grid = SugarGrid.from_config(config)
        population = PopulationRegistry(config.grid_size)
        disease_pool = []
        if config.enable_disease:
            disease_pool = [
                random_disease(self.rng, config.disease_length_range)
                for _ in range(config.disease_pool_size)
            ]
        self.state = SimulationState(
            config, grid, population, self.rng,
            provider=self.decision_provider,
            disease_pool=disease_pool,
        )
        self._create_initial_population()
        for rule in self.registry.get_enabled():
            self.state.death_listeners.append(rule)
            rule.on_simulation_start(self.state)
        for agent in population:
            agent.record_tick()
        self.history = []
        return self.state

    def run(self, ticks: int | None = None) -> list[TickSnapshot]:
        """Run a fresh simulation for ``ticks`` ticks (default from config)."""
        ticks = self.config.ticks_to_run if ticks is None else ticks
        self.setup()
        logger.info(
            "Starting run '%s': %d agents, %d ticks, rules=%s",
            self.config.experiment_name, len(self.state.population), ticks,
            self.registry.enabled_names,
        )
        for _ in range(ticks):
            self.step()
        logger.info(
            "Finished run '%s' at tick %d with %d agents",
            self.config.experiment_name, self.state.tick, len(self.state.population),
        )
        return self.history

    def step(self) -> TickSnapshot:
        """Advance one tick through the scheduled phases."""
        if self.state is None:
            self.setup()
        state = self.state
        state.tick += 1
        state.begin_tick()
        for rule in self.registry.scheduled(self.config.rule_sequence):
            rule.run(state)
        for agent in state.population:
            agent.record_tick()
        if self.config.check_invariants:
            self.check_invariants()
        snapshot = self._build_snapshot()
        self.history.append(snapshot)
        logger.debug(
            "Tick %d: population=%d births=%d deaths=%d",
            snapshot.tick, snapshot.population_size, snapshot.births, snapshot.deaths,
        )
        return snapshot

    # ------------------------------------------------------------------
    # Initial population
    # ------------------------------------------------------------------
    def _create_initial_population(self) -> None:
        """Place the founders on distinct, uniformly chosen cells."""
        state = self.state
        size = self.config.grid_size
        cells = self.rng.choice(size * size, self.config.initial_population, replace=False)
        for cell in cells:
            pos = (int(cell) // size, int(cell) % size)
            state.population.add(random_agent(
                state.population.new_id(), pos, self.config, self.rng, state.disease_pool,
            ))

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------
    def check_invariants(self) -> None:
        """Raise ``InvariantViolation`` if the state breaks a structural rule."""
        state, config = self.state, self.config
        problems: list[str] = []
        if not state.population.occupancy_consistent():
            problems.append("occupancy map out of sync with agent positions")
        positions = [a.pos for a in state.population]
        if len(set(positions)) != len(positions):
            problems.append("two agents share a cell")
        for a in state.population:
            if not state.grid.in_bounds(a.pos):
                problems.append(f"agent {a.id} off grid at {a.pos}")
            if a.age > a.max_age:
                problems.append(f"agent {a.id} age {a.age} exceeds max-age {a.max_age}")
            if not config.max_age_range[0] <= a.max_age <= config.max_age_range[1]:
                problems.append(f"agent {a.id} max-age {a.max_age} out of range")
            if not config.vision_range[0] <= a.vision <= config.vision_range[1]:
                problems.append(f"agent {a.id} vision {a.vision} out of range")
            if not config.metabolism_range[0] <= a.metabolism <= config.metabolism_range[1]:
                problems.append(f"agent {a.id} metabolism {a.metabolism} out of range")
            if len(a.culture) != config.culture_tag_length:
                problems.append(f"agent {a.id} culture tag has length {len(a.culture)}")
            if len(a.immunity) != config.immunity_length:
                problems.append(f"agent {a.id} immunity has length {len(a.immunity)}")
            if any(len(d) >= config.immunity_length for d in a.diseases):
                problems.append(f"agent {a.id} carries an over-long disease")
        for loan in state.ledger:
            if loan.lender_id not in state.population or loan.borrower_id not in state.population:
                problems.append(f"loan {loan.loan_id} references a dead agent")
        if np.any(state.grid.sugar > state.grid.capacity + 1e-9):
            problems.append("cell sugar exceeds capacity")
        if problems:
            logger.error("Invariant check failed at tick %d: %s", state.tick, problems)
            raise InvariantViolation("; ".join(problems))

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    def _build_snapshot(self) -> TickSnapshot:
        state = self.state
        pop = state.population.agents
        events = state.events
        rule_metrics = {
            rule.name: metrics
            for rule in self.registry.get_enabled()
            if (metrics := rule.get_metrics(state))
        }
        deaths_by_cause = {
            "starvation": events.deaths_starvation,
            "age": events.deaths_age,
            "combat": events.deaths_combat,
            "disease": events.deaths_disease,
        }
        sugar = np.array([a.sugar for a in pop], dtype=float)
        return TickSnapshot(
            tick=state.tick,
            population_size=len(pop),
            births=events.births,
            deaths=events.deaths,
            deaths_by_cause=deaths_by_cause,
            total_agent_sugar=float(sugar.sum()),
            mean_sugar=float(sugar.mean()) if pop else 0.0,
            total_grid_sugar=state.grid.total_sugar(),
            mean_age=float(np.mean([a.age for a in pop])) if pop else 0.0,
            mean_vision=float(np.mean([a.vision for a in pop])) if pop else 0.0,
            mean_metabolism=float(np.mean([a.metabolism for a in pop])) if pop else 0.0,
            tribe_counts=tribe_counts(pop),
            loans_outstanding=len(state.ledger),
            principal_outstanding=state.ledger.total_outstanding(),
            events=events.to_events_dict(),
            rule_metrics=rule_metrics,
        )
