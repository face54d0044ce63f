"""
Base class for rule phases.

Every phase of a tick (movement, combat, reproduction, culture, credit,
disease, environment upkeep) implements this ABC. Hook implementations
default to no-ops so rules only override what they need.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sugarscape.core.agent import Agent
    from sugarscape.core.config import SugarscapeConfig
    from sugarscape.core.state import SimulationState


class SimulationRule(ABC):
    """
    Abstract base for one rule of the engine.

    Lifecycle:
        on_simulation_start (once) -> run (once per tick, if scheduled)

    ``on_agent_death`` fires for every agent in a death batch before any
    of them is removed from the registry.
    """

    # Config flag that switches the rule on; None means always active.
    enabled_by: str | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier; matches the phase name in ``rule_sequence``."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description."""

    def get_default_config(self) -> dict[str, Any]:
        """
        Rule metadata. May include a ``"requires"`` key listing rule names
        that must be enabled first.
        """
        return {}

    def is_active(self, config: SugarscapeConfig) -> bool:
        """Whether ``config`` switches this rule on."""
        return self.enabled_by is None or bool(getattr(config, self.enabled_by))

    # --- Lifecycle hooks (no-op by default) ---

    def on_simulation_start(self, state: SimulationState) -> None:
        """Called once after the initial population is placed."""

    def run(self, state: SimulationState) -> None:
        """Apply the rule to the whole population for the current tick."""

    def on_agent_death(
        self, agent: Agent, state: SimulationState, co_dying: set[int],
    ) -> None:
        """Called for each dying agent while it is still registered."""

    # --- Metrics ---

    def get_metrics(self, state: SimulationState) -> dict[str, Any]:
        """Return rule-specific metrics for the current tick."""
        return {}
