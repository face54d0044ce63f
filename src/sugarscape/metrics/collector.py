"""
Metrics Collector: enhanced per-tick statistics.

Extends ``TickSnapshot`` with inequality, spatial, cultural, combat,
credit and disease analytics, plus optional per-agent longitudinal
records. Provides time series extraction and export for visualization.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np

from sugarscape.core.config import SugarscapeConfig
from sugarscape.core.engine import TickSnapshot
from sugarscape.core.state import SimulationState
from sugarscape.metrics.inequality import (
    culture_entropy,
    gini,
    mean_hamming_distance,
    morans_i,
    unique_cultures,
)


@dataclass
class AgentRecord:
    """One agent's state at the end of one tick."""
    tick: int
    agent_id: int
    x: int
    y: int
    sugar: float
    age: int
    vision: int
    metabolism: int
    tribe: str
    n_children: int
    n_diseases: int
    debt: float


@dataclass
class TickMetrics:
    """Extended metrics for a single tick."""

    # Base snapshot data
    tick: int
    population_size: int
    births: int
    deaths: int
    deaths_by_cause: dict[str, int]

    # Wealth
    total_agent_sugar: float
    mean_sugar: float
    gini: float
    morans_i: float

    # Culture
    tribe_counts: dict[str, int]
    tribe_fractions: dict[str, float]
    culture_entropy: float
    unique_cultures: int
    mean_hamming_distance: float
    culture_flips: int

    # Combat
    combat_kills: int
    combat_sugar_stolen: float
    combat_death_rate: float
    mean_combat_reward: float

    # Credit
    loans_originated: int
    credit_volume: float
    loans_outstanding: int
    principal_outstanding: float

    # Disease
    infected: int
    mean_diseases: float
    infections: int

    # Decision downgrades
    invalid_decisions: int
    missing_decisions: int

    # Mean lifespan of agents that died so far, by cause
    mean_lifespan_by_cause: dict[str, float] = field(default_factory=dict)


class MetricsCollector:
    """
    Collects and aggregates metrics across ticks.

    Works alongside the simulation engine to provide richer analytics
    than the base TickSnapshot.
    """

    def __init__(self, config: SugarscapeConfig, record_agents: bool = False):
        self.config = config
        self.record_agents = record_agents
        self.metrics_history: list[TickMetrics] = []
        self.agent_records: list[AgentRecord] = []

    def collect(self, state: SimulationState, snapshot: TickSnapshot) -> TickMetrics:
        """Collect enhanced metrics for a tick."""
        population = state.population.agents
        events = snapshot.events
        size = snapshot.population_size
        total = max(size, 1)

        kills = events.get("combat_kills", 0)
        infected = sum(1 for a in population if a.diseases)
        mean_diseases = (
            sum(len(a.diseases) for a in population) / size if size else 0.0
        )

        metrics = TickMetrics(
            tick=snapshot.tick,
            population_size=size,
            births=snapshot.births,
            deaths=snapshot.deaths,
            deaths_by_cause=snapshot.deaths_by_cause,
            total_agent_sugar=snapshot.total_agent_sugar,
            mean_sugar=snapshot.mean_sugar,
            gini=gini([a.sugar for a in population]),
            morans_i=morans_i(population),
            tribe_counts=snapshot.tribe_counts,
            tribe_fractions={
                name: count / total for name, count in snapshot.tribe_counts.items()
            },
            culture_entropy=culture_entropy(population),
            unique_cultures=unique_cultures(population),
            mean_hamming_distance=mean_hamming_distance(population),
            culture_flips=events.get("culture_flips", 0),
            combat_kills=kills,
            combat_sugar_stolen=events.get("combat_sugar_stolen", 0.0),
            combat_death_rate=self._combat_death_rate(kills, snapshot.deaths_by_cause),
            mean_combat_reward=(events.get("combat_reward", 0.0) / kills) if kills else 0.0,
            loans_originated=events.get("loans_originated", 0),
            credit_volume=events.get("credit_volume", 0.0),
            loans_outstanding=snapshot.loans_outstanding,
            principal_outstanding=snapshot.principal_outstanding,
            infected=infected,
            mean_diseases=mean_diseases,
            infections=events.get("infections", 0),
            invalid_decisions=events.get("invalid_decisions", 0),
            missing_decisions=events.get("missing_decisions", 0),
            mean_lifespan_by_cause={
                cause.value: float(np.mean(ages))
                for cause, ages in state.lifespans.items() if ages
            },
        )

        if self.record_agents:
            self.agent_records.extend(self._agent_records(state))

        self.metrics_history.append(metrics)
        return metrics

    def get_time_series(self, field_name: str) -> list[Any]:
        """Extract a time series for a specific metric field."""
        return [getattr(m, field_name) for m in self.metrics_history]

    def agent_history(self, agent_id: int) -> list[AgentRecord]:
        """Longitudinal records of one agent, oldest first."""
        return [r for r in self.agent_records if r.agent_id == agent_id]

    def export_for_visualization(self) -> list[dict[str, Any]]:
        """Export all metrics as a list of JSON-serializable dicts."""
        return [asdict(m) for m in self.metrics_history]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _combat_death_rate(self, kills: int, deaths_by_cause: dict[str, int]) -> float:
        """Share of the tick's deaths that were combat kills."""
        deaths = sum(deaths_by_cause.values())
        return kills / deaths if deaths else 0.0

    def _agent_records(self, state: SimulationState) -> list[AgentRecord]:
        return [
            AgentRecord(
                tick=state.tick,
                agent_id=a.id,
                x=a.pos[0],
                y=a.pos[1],
                sugar=a.sugar,
                age=a.age,
                vision=a.vision,
                metabolism=a.metabolism,
                tribe=a.tribe.value,
                n_children=len(a.children),
                n_diseases=len(a.diseases),
                debt=state.ledger.principal_owed(a.id),
            )
            for a in state.population
        ]
