"""
Lifecycle and environment rules.

Mortality removes agents that starved or reached their maximum age,
replacement refills the population when reproduction is off, growback
regrows sugar (optionally by season) and pollution spreads by diffusion.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sugarscape.core.population import random_agent
from sugarscape.core.state import DeathCause
from sugarscape.rules.base import SimulationRule

if TYPE_CHECKING:
    from sugarscape.core.config import SugarscapeConfig
    from sugarscape.core.state import SimulationState

logger = logging.getLogger(__name__)


def replaces_the_dead(config: SugarscapeConfig) -> bool:
    """Whether starvation and old-age deaths are refilled with newcomers."""
    return config.enable_replacement and not config.enable_reproduction


class MortalityRule(SimulationRule):
    """Remove agents with no sugar left or past their lifespan."""

    @property
    def name(self) -> str:
        return "mortality"

    @property
    def description(self) -> str:
        return "Death by starvation or old age"

    def run(self, state: SimulationState) -> None:
        dying = []
        for agent in state.population:
            if agent.sugar <= 0:
                dying.append((agent, DeathCause.STARVATION))
            elif agent.age >= agent.max_age:
                dying.append((agent, DeathCause.AGE))
        state.bury(dying)
        if replaces_the_dead(state.config):
            state.replacement_quota += len(dying)


class ReplacementRule(SimulationRule):
    """Rule R: replace each starvation or old-age death with a random newcomer."""

    @property
    def name(self) -> str:
        return "replacement"

    @property
    def description(self) -> str:
        return "Fresh random agents replace the dead when reproduction is off"

    def is_active(self, config: SugarscapeConfig) -> bool:
        return replaces_the_dead(config)

    def run(self, state: SimulationState) -> None:
        quota, state.replacement_quota = state.replacement_quota, 0
        for _ in range(quota):
            pos = state.population.random_empty(state.rng)
            if pos is None:
                logger.warning(
                    "Tick %d: no empty cell for a replacement agent", state.tick,
                )
                return
            agent = random_agent(
                state.population.new_id(), pos, state.config, state.rng,
                state.disease_pool, born_tick=state.tick,
            )
            state.population.add(agent)
            state.events.replacements += 1


class GrowbackRule(SimulationRule):
    """Rule G: sugar regrows toward capacity, seasonally when enabled."""

    @property
    def name(self) -> str:
        return "growback"

    @property
    def description(self) -> str:
        return "Sugar regrowth, uniform or seasonal"

    def run(self, state: SimulationState) -> None:
        config, grid = state.config, state.grid
        if config.enable_seasonality:
            grid.seasonal_growback(config.growback_rate, config.winter_growth_divisor)
            grid.advance_season(config.season_duration)
        else:
            grid.growback(config.growback_rate)

    def get_metrics(self, state: SimulationState) -> dict[str, Any]:
        return {"grid_sugar": state.grid.total_sugar()}


class PollutionRule(SimulationRule):
    """Rule D: pollution diffuses to neighbouring cells at a fixed interval."""

    enabled_by = "enable_pollution"

    @property
    def name(self) -> str:
        return "pollution"

    @property
    def description(self) -> str:
        return "Periodic von Neumann diffusion of pollution"

    def run(self, state: SimulationState) -> None:
        grid = state.grid
        grid.diffusion_clock += 1
        if grid.diffusion_clock >= state.config.pollution_diffusion_interval:
            grid.diffusion_clock = 0
            grid.diffuse_pollution()

    def get_metrics(self, state: SimulationState) -> dict[str, Any]:
        return {"total_pollution": state.grid.total_pollution()}
