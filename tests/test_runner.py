"""Tests for the experiment runner and presets."""

import pytest

from sugarscape.core.config import SugarscapeConfig
from sugarscape.experiment.presets import PRESETS, get_preset, list_presets
from sugarscape.experiment.runner import ExperimentRunner


def _small(**kwargs) -> SugarscapeConfig:
    defaults = dict(
        random_seed=11, grid_size=12, sugar_peaks=((3, 8), (8, 3)),
        initial_population=20, ticks_to_run=4,
    )
    defaults.update(kwargs)
    return SugarscapeConfig(**defaults)


class TestExperimentRunner:
    def test_run_experiment(self):
        result = ExperimentRunner().run_experiment(_small())
        assert len(result.history) == 4
        assert len(result.metrics) == 4
        assert result.final_population_size == result.history[-1].population_size
        assert result.final_gini == result.metrics[-1].gini

    def test_run_without_metrics(self):
        result = ExperimentRunner().run_experiment(_small(), ticks=2, collect_metrics=False)
        assert result.metrics == []
        assert result.final_gini == 0.0

    def test_ab_test_reports_config_diff(self):
        comparison = ExperimentRunner().run_ab_test(
            _small(), _small(enable_culture=True), ticks=2,
        )
        assert set(comparison.results) == {"A", "B"}
        assert comparison.config_diffs["A_vs_B"] == {"enable_culture": (False, True)}

    def test_parameter_sweep(self):
        results = ExperimentRunner().run_parameter_sweep(
            _small(), "growback_rate", [0.5, 2.0], ticks=2,
        )
        assert list(results) == ["growback_rate=0.5", "growback_rate=2.0"]
        assert results["growback_rate=2.0"].config.growback_rate == 2.0

    def test_sweep_rejects_invalid_values(self):
        with pytest.raises(ValueError):
            ExperimentRunner().run_parameter_sweep(_small(), "grid_size", [0], ticks=1)

    def test_multi_seed(self):
        results = ExperimentRunner().run_multi_seed(_small(), [1, 2, 3], ticks=2)
        assert [r.config.random_seed for r in results] == [1, 2, 3]


class TestPresets:
    def test_every_preset_builds_a_valid_config(self):
        for name in list_presets():
            config = get_preset(name)
            assert config.experiment_name == name

    def test_unknown_preset(self):
        with pytest.raises(KeyError, match="Unknown preset"):
            get_preset("zombies")

    def test_presets_enable_their_rules(self):
        assert get_preset("culture_combat").enable_combat
        assert get_preset("movement_credit_reproduction").enable_inheritance
        assert set(PRESETS) == set(list_presets())

    def test_preset_runs_briefly(self):
        config = get_preset("disease").replace(
            grid_size=15, sugar_peaks=((4, 10), (10, 4)), initial_population=20,
        )
        result = ExperimentRunner().run_experiment(config, ticks=2)
        assert len(result.history) == 2
