"""Tests for the loan ledger and the credit rule."""

import numpy as np
import pytest

from sugarscape.core.agent import Agent, Sex
from sugarscape.core.config import SugarscapeConfig
from sugarscape.core.decision import CallbackDecisionProvider
from sugarscape.core.grid import SugarGrid
from sugarscape.core.ledger import LoanLedger
from sugarscape.core.population import PopulationRegistry
from sugarscape.core.state import DeathCause, SimulationState
from sugarscape.rules.credit import CreditRule


def _make_config(**kwargs) -> SugarscapeConfig:
    defaults = dict(
        random_seed=42, grid_size=6, sugar_peaks=((2, 2),), initial_population=0,
        enable_credit=True, interest_rate=0.1, loan_duration=10,
        male_fertility=(12, 50), female_fertility=(12, 40),
    )
    defaults.update(kwargs)
    return SugarscapeConfig(**defaults)


def _make_state(config: SugarscapeConfig | None = None, provider=None) -> SimulationState:
    config = config or _make_config()
    size = config.grid_size
    grid = SugarGrid(np.full((size, size), 4.0))
    state = SimulationState(
        config, grid, PopulationRegistry(size),
        np.random.default_rng(config.random_seed), provider=provider,
    )
    state.tick = 5
    return state


def _make_agent(state: SimulationState, pos, **kwargs) -> Agent:
    defaults = dict(
        id=state.population.new_id(), pos=pos, sex=Sex.MALE, vision=1,
        metabolism=1, max_age=100, age=60, sugar=10.0, initial_sugar=10.0,
        culture=np.zeros(11, dtype=bool), immunity=np.zeros(32, dtype=bool),
    )
    defaults.update(kwargs)
    agent = Agent(**defaults)
    state.population.add(agent)
    return agent


class TestLedger:
    def test_amount_due_is_simple_interest(self):
        ledger = LoanLedger()
        loan = ledger.originate(0, 1, 10.0, tick=3, duration=10, interest_rate=0.1)
        assert loan.due_tick == 13
        assert loan.amount_due() == pytest.approx(20.0)

    def test_self_loan_rejected(self):
        with pytest.raises(ValueError, match="itself"):
            LoanLedger().originate(1, 1, 5.0, 0, 10, 0.1)

    def test_conflict_free_batches(self):
        ledger = LoanLedger()
        l1 = ledger.originate(10, 1, 5.0, 0, 10, 0.1)
        l2 = ledger.originate(11, 1, 5.0, 0, 10, 0.1)
        l3 = ledger.originate(12, 2, 5.0, 0, 10, 0.1)
        l4 = ledger.originate(13, 1, 5.0, 0, 10, 0.1)
        batches = LoanLedger.conflict_free_batches(ledger.due_at(10))
        assert batches == [[l1, l3], [l2], [l4]]
        for batch in batches:
            borrowers = [loan.borrower_id for loan in batch]
            assert len(borrowers) == len(set(borrowers))

    def test_due_at_ignores_future_loans(self):
        ledger = LoanLedger()
        ledger.originate(0, 1, 5.0, 0, 10, 0.1)
        assert ledger.due_at(9) == []
        assert len(ledger.due_at(10)) == 1

    def test_borrower_death_defaults(self):
        ledger = LoanLedger()
        ledger.originate(0, 1, 5.0, 0, 10, 0.1)
        result = ledger.disperse(1)
        assert len(result.defaulted) == 1
        assert len(ledger) == 0

    def test_heir_resolver_never_makes_self_loans(self):
        ledger = LoanLedger()
        ledger.originate(0, 1, 6.0, 0, 10, 0.1)
        ledger.heir_resolver = lambda agent_id, co_dying: [1, 2]
        result = ledger.disperse(0)
        assert [(l.lender_id, l.borrower_id) for l in result.reassigned] == [(2, 1)]
        assert result.reassigned[0].principal == pytest.approx(6.0)


class TestEligibility:
    def test_post_fertile_lends_half(self):
        state = _make_state()
        lender = _make_agent(state, (0, 0), sugar=30.0, age=60)
        assert CreditRule().lending_capacity(lender, state) == pytest.approx(15.0)

    def test_fertile_lends_excess(self):
        state = _make_state()
        lender = _make_agent(state, (0, 0), sugar=25.0, initial_sugar=10.0, age=20)
        assert CreditRule().lending_capacity(lender, state) == pytest.approx(15.0)

    def test_child_cannot_lend(self):
        state = _make_state()
        child = _make_agent(state, (0, 0), sugar=25.0, age=5)
        assert CreditRule().lending_capacity(child, state) == 0.0

    def test_borrower_needs_positive_income(self):
        state = _make_state()
        broke = _make_agent(state, (0, 0), sugar=1.0, metabolism=2, age=20)
        assert CreditRule().amount_required(broke, state) == 0.0

    def test_existing_debt_blocks_borrowing(self):
        state = _make_state()
        borrower = _make_agent(state, (0, 0), sugar=5.0, metabolism=1, age=20)
        other = _make_agent(state, (3, 3))
        state.ledger.originate(other.id, borrower.id, 4.0, 0, 10, 0.1)
        assert CreditRule().amount_required(borrower, state) == 0.0

    def test_explicit_threshold_overrides_initial_sugar(self):
        state = _make_state(_make_config(credit_threshold=20.0))
        borrower = _make_agent(state, (0, 0), sugar=5.0, age=20)
        assert CreditRule().amount_required(borrower, state) == pytest.approx(15.0)


class TestOrigination:
    def test_neighbour_loan_reaches_threshold(self):
        state = _make_state()
        lender = _make_agent(state, (2, 2), sugar=30.0, age=60)
        borrower = _make_agent(
            state, (2, 3), sex=Sex.FEMALE, sugar=2.0, metabolism=1,
            initial_sugar=10.0, age=20,
        )

        CreditRule().run(state)

        loans = list(state.ledger)
        assert len(loans) == 1
        loan = loans[0]
        assert (loan.lender_id, loan.borrower_id) == (lender.id, borrower.id)
        assert loan.principal == 8.0
        assert loan.due_tick == state.tick + state.config.loan_duration
        assert borrower.sugar == pytest.approx(10.0)
        assert lender.sugar == pytest.approx(22.0)
        assert state.events.loans_originated == 1
        assert state.events.credit_volume == pytest.approx(8.0)

    def test_lender_capacity_shared_between_borrowers(self):
        state = _make_state()
        lender = _make_agent(state, (2, 2), sugar=12.0, age=60)  # capacity 6
        for pos in [(2, 3), (2, 1)]:
            _make_agent(state, pos, sex=Sex.FEMALE, sugar=2.0, age=20)
        CreditRule().run(state)
        assert state.events.credit_volume == pytest.approx(6.0)
        assert lender.sugar == pytest.approx(6.0)

    def test_principal_is_whole_units(self):
        state = _make_state()
        _make_agent(state, (2, 2), sugar=30.0, age=60)
        _make_agent(state, (2, 3), sex=Sex.FEMALE, sugar=2.5, age=20)
        CreditRule().run(state)
        (loan,) = list(state.ledger)
        assert loan.principal == 7.0

    def test_lender_must_be_a_neighbour(self):
        state = _make_state()
        _make_agent(state, (0, 0), sugar=30.0, age=60)
        _make_agent(state, (4, 4), sex=Sex.FEMALE, sugar=2.0, age=20)
        CreditRule().run(state)
        assert len(state.ledger) == 0

    def test_external_decision_picks_amount(self):
        provider = CallbackDecisionProvider(
            lambda agent, ctx, situation: {
                "credit_partner": situation["lenders"][0]["id"], "credit_amount": 3,
            },
        )
        state = _make_state(provider=provider)
        _make_agent(state, (2, 2), sugar=30.0, age=60)
        _make_agent(state, (2, 3), sex=Sex.FEMALE, sugar=2.0, age=20)
        CreditRule().run(state)
        (loan,) = list(state.ledger)
        assert loan.principal == 3.0

    def test_unknown_partner_counts_invalid(self):
        provider = CallbackDecisionProvider(
            lambda agent, ctx, situation: {"credit_partner": 4242},
        )
        state = _make_state(provider=provider)
        _make_agent(state, (2, 2), sugar=30.0, age=60)
        _make_agent(state, (2, 3), sex=Sex.FEMALE, sugar=2.0, age=20)
        CreditRule().run(state)
        assert len(state.ledger) == 0
        assert state.events.invalid_decisions == 1

    def test_fractional_amount_counts_invalid(self):
        provider = CallbackDecisionProvider(
            lambda agent, ctx, situation: {
                "credit_partner": situation["lenders"][0]["id"], "credit_amount": 0.5,
            },
        )
        state = _make_state(provider=provider)
        lender = _make_agent(state, (2, 2), sugar=30.0, age=60)
        _make_agent(state, (2, 3), sex=Sex.FEMALE, sugar=2.0, age=20)
        CreditRule().run(state)
        assert len(state.ledger) == 0
        assert lender.sugar == 30.0
        assert state.events.invalid_decisions == 1


class TestRepayment:
    def test_full_then_partial_repayment(self):
        state = _make_state()
        lender_a = _make_agent(state, (0, 0), sugar=0.0)
        lender_b = _make_agent(state, (0, 5), sugar=0.0)
        borrower = _make_agent(state, (5, 5), sugar=30.0)
        first = state.ledger.originate(lender_a.id, borrower.id, 10.0, -5, 10, 0.1)
        second = state.ledger.originate(lender_b.id, borrower.id, 10.0, -5, 10, 0.1)
        assert first.amount_due() + second.amount_due() > borrower.sugar

        CreditRule().run(state)

        # first batch: pays 20 in full; second batch: pays half of the remaining 10
        assert lender_a.sugar == pytest.approx(20.0)
        assert lender_b.sugar == pytest.approx(5.0)
        assert borrower.sugar == pytest.approx(5.0)
        (rolled,) = list(state.ledger)
        assert rolled.lender_id == lender_b.id
        assert rolled.principal == pytest.approx(15.0)
        assert rolled.due_tick == state.tick + 10
        assert state.events.loans_repaid == 1
        assert state.events.loans_refinanced == 1

    def test_batch_settles_against_pre_batch_wealth(self):
        state = _make_state()
        a = _make_agent(state, (0, 0), sugar=5.0)
        b = _make_agent(state, (5, 5), sugar=30.0)
        state.ledger.originate(a.id, b.id, 10.0, -5, 10, 0.1)  # b owes 20
        state.ledger.originate(b.id, a.id, 10.0, -5, 10, 0.1)  # a owes 20

        CreditRule().settle_due_loans(state)

        # a received 20 from b in the same batch but settles on its old wealth of 5
        assert a.sugar == pytest.approx(5.0 + 20.0 - 2.5)
        assert b.sugar == pytest.approx(30.0 - 20.0 + 2.5)
        (rolled,) = list(state.ledger)
        assert rolled.borrower_id == a.id
        assert rolled.principal == pytest.approx(17.5)

    def test_borrower_death_removes_loan(self):
        state = _make_state()
        lender = _make_agent(state, (0, 0), sugar=0.0)
        borrower = _make_agent(state, (5, 5))
        state.ledger.originate(lender.id, borrower.id, 10.0, 0, 10, 0.1)
        state.bury([(borrower, DeathCause.STARVATION)])
        assert len(state.ledger) == 0
        assert lender.sugar == 0.0
        assert state.events.loans_defaulted == 1
