"""
Decision contract between the rule engine and whoever chooses actions.

Every phase that lets an agent choose (movement, combat, reproduction,
credit) asks the injected ``DecisionProvider`` first. The built-in
``RuleBasedProvider`` declines every request, so the phase applies its own
greedy rule. ``CallbackDecisionProvider`` adapts any external callable (an
LLM wrapper, a scripted policy, a test double) and parses what it returns
into a ``DecisionRecord``.

The engine validates every field of a returned record against the
candidates it offered. Invalid fields become idle/no-op actions and are
counted in ``TickEvents.invalid_decisions``; they are never fatal.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, ConfigDict, ValidationError

if TYPE_CHECKING:
    from sugarscape.core.agent import Agent
    from sugarscape.core.state import SimulationState

logger = logging.getLogger(__name__)


class DecisionContext(str, Enum):
    """Types of decisions agents make."""
    MOVEMENT = "movement"
    COMBAT = "combat"
    REPRODUCTION = "reproduction"
    CREDIT = "credit"


class MissingDecisionError(RuntimeError):
    """Raised when a provider returns nothing where a decision is required."""


class MalformedDecisionError(ValueError):
    """Raised when a provider's output cannot be parsed into a record."""


class DecisionRecord(BaseModel):
    """One agent's choice for one phase. ``None`` fields mean "do nothing"."""

    model_config = ConfigDict(extra="forbid")

    agent_id: int | None = None
    move_target: tuple[int, int] | None = None
    combat_target: int | None = None
    credit_partner: int | None = None
    credit_amount: float | None = None
    reproduction_partners: list[int] | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class DecisionProvider(ABC):
    """Common interface for decision sources."""

    name: str = "provider"
    # What to do when the provider has no answer: 'greedy', 'idle' or 'raise'.
    on_missing: str = "greedy"
    # False when decide() never looks at the situation dict.
    uses_context: bool = True

    @abstractmethod
    def decide(
        self,
        agent: Agent,
        context: DecisionContext,
        situation: dict[str, Any],
    ) -> DecisionRecord | None:
        """Return a record, or ``None`` to defer to the built-in rule."""


class RuleBasedProvider(DecisionProvider):
    """Defers every decision to the phase's greedy rule."""

    name = "rule_based"
    uses_context = False

    def decide(
        self,
        agent: Agent,
        context: DecisionContext,
        situation: dict[str, Any],
    ) -> DecisionRecord | None:
        return None


class CallbackDecisionProvider(DecisionProvider):
    """
    Adapts an external callable into a decision provider.

    The callback receives ``(agent_snapshot, context_name, situation)`` and
    may return a ``DecisionRecord``, a dict, a JSON string, or ``None``.
    Exceptions raised by the callback propagate to the caller.
    """

    name = "callback"

    def __init__(
        self,
        callback: Callable[[dict[str, Any], str, dict[str, Any]], Any],
        on_missing: str = "greedy",
    ) -> None:
        if on_missing not in ("greedy", "idle", "raise"):
            raise ValueError(f"Unknown missing-decision policy '{on_missing}'")
        self.callback = callback
        self.on_missing = on_missing

    def decide(
        self,
        agent: Agent,
        context: DecisionContext,
        situation: dict[str, Any],
    ) -> DecisionRecord | None:
        raw = self.callback(agent.snapshot(), context.value, situation)
        if raw is None:
            raise MissingDecisionError(
                f"No {context.value} decision returned for agent {agent.id}"
            )
        if isinstance(raw, DecisionRecord):
            return raw
        try:
            if isinstance(raw, (str, bytes)):
                return DecisionRecord.model_validate_json(raw)
            return DecisionRecord.model_validate(raw)
        except ValidationError as exc:
            raise MalformedDecisionError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Engine-side helpers
# ---------------------------------------------------------------------------

def request_decision(
    state: SimulationState,
    agent: Agent,
    context: DecisionContext,
    situation: Callable[[], dict[str, Any]],
) -> DecisionRecord | None:
    """
    Ask the state's provider for a decision.

    Parameters
    ----------
    state : SimulationState
        Supplies the provider and the event counters.
    agent : Agent
        The deciding agent.
    context : DecisionContext
        Which phase is asking.
    situation : callable
        Builds the local-context dict; only called if the provider uses it.

    Returns
    -------
    ``None`` when the phase should apply its built-in rule, otherwise a
    record whose fields the phase still has to validate.
    """
    provider = state.provider
    if not provider.uses_context:
        return provider.decide(agent, context, {})
    try:
        return provider.decide(agent, context, situation())
    except MalformedDecisionError as exc:
        note_invalid_decision(state, agent, context, f"malformed record: {exc}")
        return DecisionRecord(agent_id=agent.id)
    except MissingDecisionError:
        state.events.missing_decisions += 1
        if provider.on_missing == "greedy":
            return None
        if provider.on_missing == "idle":
            return DecisionRecord(agent_id=agent.id)
        raise


def note_invalid_decision(
    state: SimulationState,
    agent: Agent,
    context: DecisionContext,
    detail: str,
) -> None:
    """Count and log a decision field that was downgraded to idle."""
    state.events.invalid_decisions += 1
    logger.debug(
        "Tick %d: %s decision for agent %d downgraded to idle (%s)",
        state.tick, context.value, agent.id, detail,
    )
