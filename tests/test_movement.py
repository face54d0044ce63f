"""Tests for the movement rule and an end-to-end foraging tick."""

import numpy as np
import pytest

from sugarscape.core.agent import Agent, Sex
from sugarscape.core.config import SugarscapeConfig
from sugarscape.core.decision import CallbackDecisionProvider
from sugarscape.core.engine import SimulationEngine
from sugarscape.core.grid import SugarGrid
from sugarscape.core.population import PopulationRegistry
from sugarscape.core.state import SimulationState
from sugarscape.rules.movement import Candidate, MovementRule, best_candidate


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_config(**kwargs) -> SugarscapeConfig:
    defaults = dict(
        random_seed=42, grid_size=5, sugar_peaks=((2, 2),), initial_population=0,
        vision_shape="cardinal",
    )
    defaults.update(kwargs)
    return SugarscapeConfig(**defaults)


def _make_state(config: SugarscapeConfig | None = None, provider=None) -> SimulationState:
    config = config or _make_config()
    size = config.grid_size
    grid = SugarGrid(np.full((size, size), 4.0), sugar=np.zeros((size, size)))
    return SimulationState(
        config, grid, PopulationRegistry(size),
        np.random.default_rng(config.random_seed), provider=provider,
    )


def _make_agent(state: SimulationState, pos, **kwargs) -> Agent:
    defaults = dict(
        id=state.population.new_id(), pos=pos, sex=Sex.MALE, vision=2,
        metabolism=1, max_age=80, age=20, sugar=10.0, initial_sugar=10.0,
        culture=np.zeros(11, dtype=bool), immunity=np.zeros(32, dtype=bool),
    )
    defaults.update(kwargs)
    agent = Agent(**defaults)
    state.population.add(agent)
    return agent


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestCandidateRanking:
    def test_highest_value_wins(self):
        best = best_candidate([
            Candidate((0, 0), 1.0, 1.0), Candidate((0, 1), 3.0, 2.0),
        ])
        assert best.pos == (0, 1)

    def test_nearest_breaks_value_ties(self):
        best = best_candidate([
            Candidate((0, 2), 3.0, 2.0), Candidate((0, 1), 3.0, 1.0),
        ])
        assert best.pos == (0, 1)

    def test_lexicographic_breaks_remaining_ties(self):
        best = best_candidate([
            Candidate((3, 2), 3.0, 1.0), Candidate((1, 2), 3.0, 1.0),
        ])
        assert best.pos == (1, 2)


class TestMovementRule:
    def test_moves_to_richest_visible_cell(self):
        state = _make_state()
        agent = _make_agent(state, (2, 2))
        state.grid.sugar[2, 4] = 3.0
        state.grid.sugar[4, 2] = 2.0
        MovementRule().run(state)
        assert agent.pos == (2, 4)
        assert agent.sugar == pytest.approx(10.0 + 3.0 - 1.0)
        assert agent.age == 21

    def test_prefers_nearest_among_equal_cells(self):
        state = _make_state()
        agent = _make_agent(state, (2, 2))
        state.grid.sugar[2, 3] = 3.0
        state.grid.sugar[2, 4] = 3.0
        MovementRule().run(state)
        assert agent.pos == (2, 3)

    def test_newly_occupied_cell_is_emptied(self):
        state = _make_state()
        agent = _make_agent(state, (0, 0))
        state.grid.sugar[1, 0] = 4.0
        MovementRule().run(state)
        assert agent.pos == (1, 0)
        assert state.grid.sugar_at((1, 0)) == 0.0

    def test_stays_when_own_cell_is_best(self):
        state = _make_state()
        agent = _make_agent(state, (2, 2))
        state.grid.sugar[2, 2] = 4.0
        state.grid.sugar[2, 3] = 1.0
        MovementRule().run(state)
        assert agent.pos == (2, 2)
        assert agent.sugar == pytest.approx(13.0)

    def test_occupied_cells_are_skipped(self):
        state = _make_state()
        mover = _make_agent(state, (2, 2), vision=1)
        _make_agent(state, (2, 3), vision=1)
        state.grid.sugar[2, 3] = 4.0
        state.grid.sugar[3, 2] = 1.0
        state.moved_this_tick.add(1)  # keep the blocker in place
        MovementRule().run(state)
        assert mover.pos == (3, 2)

    def test_agents_already_moved_are_skipped(self):
        state = _make_state()
        agent = _make_agent(state, (2, 2))
        state.grid.sugar[2, 3] = 4.0
        state.moved_this_tick.add(agent.id)
        MovementRule().run(state)
        assert agent.pos == (2, 2)
        assert agent.age == 20

    def test_pollution_deposited_at_destination(self):
        config = _make_config(
            enable_pollution=True,
            pollution_production_rate=0.5,
            pollution_consumption_rate=2.0,
        )
        state = _make_state(config)
        agent = _make_agent(state, (2, 2), metabolism=1)
        state.grid.sugar[2, 3] = 4.0
        MovementRule().run(state)
        assert agent.pos == (2, 3)
        assert state.grid.pollution[2, 3] == pytest.approx(0.5 * 4.0 + 2.0 * 1.0)


class TestMovementDecisions:
    def test_valid_external_target_is_applied(self):
        provider = CallbackDecisionProvider(lambda agent, ctx, situation: {"move_target": [2, 0]})
        state = _make_state(provider=provider)
        agent = _make_agent(state, (2, 2))
        state.grid.sugar[2, 4] = 4.0
        MovementRule().run(state)
        assert agent.pos == (2, 0)
        assert state.events.invalid_decisions == 0

    def test_invalid_target_downgrades_to_idle(self):
        provider = CallbackDecisionProvider(lambda agent, ctx, situation: {"move_target": [0, 0]})
        state = _make_state(provider=provider)
        agent = _make_agent(state, (2, 2))
        state.grid.sugar[2, 2] = 1.0
        MovementRule().run(state)
        assert agent.pos == (2, 2)
        assert agent.sugar == pytest.approx(10.0)  # harvested 1, paid 1
        assert agent.age == 21
        assert state.events.invalid_decisions == 1


class TestForagingScenario:
    def test_single_movement_tick_conserves_sugar(self):
        config = SugarscapeConfig(
            random_seed=3, grid_size=5, sugar_peaks=((1, 1), (3, 3)),
            max_sugar=4, peak_decay_diameter=1, initial_population=10,
            rule_sequence=("movement",), growback_rate=0.0, check_invariants=True,
        )
        engine = SimulationEngine(config)
        state = engine.setup()
        sugar_before = {a.id: a.sugar for a in state.population}
        grid_before = state.grid.total_sugar()

        engine.step()

        positions = [a.pos for a in state.population]
        assert len(positions) == len(set(positions)) == 10
        gained = sum(a.sugar - sugar_before[a.id] + a.metabolism for a in state.population)
        assert gained == pytest.approx(grid_before - state.grid.total_sugar())
