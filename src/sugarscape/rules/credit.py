"""
Credit rule: lending and borrowing between neighbours.

Each tick the rule first settles loans that fall due, then lets eligible
borrowers take new loans from neighbouring lenders.

Settlement partitions the due loans into conflict-free batches (no
borrower twice in a batch). Inside a batch every settlement is computed
from the borrowers' wealth as it stood before the batch. A borrower who
can cover the amount due pays it and the loan closes; otherwise the
borrower pays half its wealth and the remainder is rolled into a fresh
loan due one loan-duration later.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from sugarscape.core.decision import (
    DecisionContext,
    note_invalid_decision,
    request_decision,
)
from sugarscape.rules.base import SimulationRule

if TYPE_CHECKING:
    from sugarscape.core.agent import Agent
    from sugarscape.core.ledger import Loan
    from sugarscape.core.state import SimulationState


class CreditRule(SimulationRule):
    """Rule L: loan origination, repayment and refinancing."""

    enabled_by = "enable_credit"

    @property
    def name(self) -> str:
        return "credit"

    @property
    def description(self) -> str:
        return "Neighbour lending with simple interest and conflict-free repayment"

    def run(self, state: SimulationState) -> None:
        self.settle_due_loans(state)
        self.originate_loans(state)

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def threshold(self, agent: Agent, state: SimulationState) -> float:
        if state.config.credit_threshold is not None:
            return state.config.credit_threshold
        return agent.initial_sugar

    def lending_capacity(self, agent: Agent, state: SimulationState) -> float:
        """Sugar ``agent`` may lend this phase (0 when it cannot lend)."""
        window = state.config.fertility_window(agent.sex.value)
        if agent.sugar <= 0:
            return 0.0
        if agent.age > window[1]:
            return agent.sugar / 2.0
        if agent.in_fertility_window(window):
            return max(0.0, agent.sugar - self.threshold(agent, state))
        return 0.0

    def amount_required(self, agent: Agent, state: SimulationState) -> float:
        """Sugar ``agent`` needs to reach its threshold, or 0 if it may not borrow."""
        window = state.config.fertility_window(agent.sex.value)
        if not agent.in_fertility_window(window):
            return 0.0
        shortfall = self.threshold(agent, state) - agent.sugar
        if shortfall <= 0:
            return 0.0
        income = agent.sugar - agent.metabolism - state.ledger.principal_owed(agent.id)
        if income <= 0:
            return 0.0
        return shortfall

    # ------------------------------------------------------------------
    # Repayment
    # ------------------------------------------------------------------

    def settle_due_loans(self, state: SimulationState) -> None:
        ledger = state.ledger
        for batch in ledger.conflict_free_batches(ledger.due_at(state.tick)):
            wealth = {
                loan.borrower_id: state.population.get(loan.borrower_id).sugar
                for loan in batch
            }
            for loan in batch:
                self.settle(loan, wealth[loan.borrower_id], state)

    def settle(self, loan: Loan, wealth: float, state: SimulationState) -> None:
        """Settle one due loan against the borrower's pre-batch ``wealth``."""
        borrower = state.population.get(loan.borrower_id)
        lender = state.population.get(loan.lender_id)
        due = loan.amount_due()
        state.ledger.close(loan)
        if wealth >= due:
            payment = due
            state.events.loans_repaid += 1
        else:
            payment = max(wealth, 0.0) / 2.0
            remainder = due - payment
            state.ledger.originate(
                loan.lender_id, loan.borrower_id, remainder,
                state.tick, state.config.loan_duration, state.config.interest_rate,
            )
            state.events.loans_refinanced += 1
        borrower.sugar -= payment
        lender.sugar += payment

    # ------------------------------------------------------------------
    # Origination
    # ------------------------------------------------------------------

    def originate_loans(self, state: SimulationState) -> None:
        remaining: dict[int, float] = {}
        for borrower in state.population.shuffled(state.rng):
            need = self.amount_required(borrower, state)
            if need <= 0:
                continue
            lenders = []
            for neighbour in state.population.occupants(state.grid.von_neumann(borrower.pos)):
                if neighbour.id not in remaining:
                    remaining[neighbour.id] = self.lending_capacity(neighbour, state)
                if remaining[neighbour.id] >= 1:
                    lenders.append(neighbour)
            if not lenders:
                continue

            record = request_decision(
                state, borrower, DecisionContext.CREDIT,
                lambda: {
                    "tick": state.tick,
                    "amount_required": need,
                    "lenders": [
                        {"id": x.id, "capacity": remaining[x.id]} for x in lenders
                    ],
                },
            )
            if record is None:
                for lender in lenders:
                    if need < 1:
                        break
                    need -= self.lend(lender, borrower, need, remaining, state)
                continue

            if record.credit_partner is None:
                continue
            lender = next((x for x in lenders if x.id == record.credit_partner), None)
            amount = need if record.credit_amount is None else min(record.credit_amount, need)
            if lender is None or amount <= 0:
                note_invalid_decision(
                    state, borrower, DecisionContext.CREDIT,
                    f"credit_partner {record.credit_partner} / amount {record.credit_amount}",
                )
                continue
            if self.lend(lender, borrower, amount, remaining, state) == 0:
                note_invalid_decision(
                    state, borrower, DecisionContext.CREDIT,
                    f"credit_amount {amount} is below one whole unit",
                )

    def lend(
        self,
        lender: Agent,
        borrower: Agent,
        wanted: float,
        remaining: dict[int, float],
        state: SimulationState,
    ) -> float:
        """Originate a whole-unit loan of up to ``wanted``. Returns the principal."""
        principal = float(math.floor(min(wanted, remaining[lender.id])))
        if principal <= 0:
            return 0.0
        state.ledger.originate(
            lender.id, borrower.id, principal,
            state.tick, state.config.loan_duration, state.config.interest_rate,
        )
        lender.sugar -= principal
        borrower.sugar += principal
        remaining[lender.id] -= principal
        state.events.loans_originated += 1
        state.events.credit_volume += principal
        return principal

    def get_metrics(self, state: SimulationState) -> dict[str, Any]:
        return {
            "loans_outstanding": len(state.ledger),
            "principal_outstanding": state.ledger.total_outstanding(),
        }
