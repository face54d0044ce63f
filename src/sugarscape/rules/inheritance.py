"""
Inheritance rule: a dying agent's wealth and loans pass to its children.

Not a scheduled phase. The rule listens for deaths, and when active it also
installs itself on the loan ledger as the heir resolver so loans made by a
dead lender are reassigned to its living children instead of forgiven.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sugarscape.rules.base import SimulationRule

if TYPE_CHECKING:
    from sugarscape.core.agent import Agent
    from sugarscape.core.state import SimulationState


class InheritanceRule(SimulationRule):
    """Rule I: split sugar equally among living children."""

    enabled_by = "enable_inheritance"

    def __init__(self) -> None:
        self._state: SimulationState | None = None
        self._total_bequeathed = 0.0

    @property
    def name(self) -> str:
        return "inheritance"

    @property
    def description(self) -> str:
        return "Equal division of a dead agent's sugar and loans among its living children"

    def get_default_config(self) -> dict[str, Any]:
        return {"requires": ["reproduction"]}

    def on_simulation_start(self, state: SimulationState) -> None:
        self._state = state
        self._total_bequeathed = 0.0
        state.ledger.heir_resolver = self.heirs

    def heirs(self, agent_id: int, co_dying: set[int]) -> list[int]:
        """Living children of ``agent_id`` that are not dying in the same batch."""
        agent = self._state.population.get(agent_id) if self._state else None
        if agent is None:
            return []
        return self._state.living_children(agent, exclude=co_dying)

    def on_agent_death(
        self, agent: Agent, state: SimulationState, co_dying: set[int],
    ) -> None:
        if agent.sugar <= 0:
            return
        children = state.living_children(agent, exclude=co_dying)
        if not children:
            return
        share = float(agent.sugar // len(children))
        for child_id in children:
            child = state.population.get(child_id)
            child.sugar += share
            child.total_inheritance_received += share
        bequeathed = share * len(children)
        agent.sugar -= bequeathed
        self._total_bequeathed += bequeathed
        state.events.inheritances += 1
        state.events.inheritance_value += bequeathed

    def get_metrics(self, state: SimulationState) -> dict[str, Any]:
        return {"total_bequeathed": self._total_bequeathed}
