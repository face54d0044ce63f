"""
Experiment Runner: A/B testing, parameter sweeps, and batch execution.

Provides tools for running comparative experiments, sweeping parameters,
and collecting results across multiple simulation runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from sugarscape.core.config import SugarscapeConfig
from sugarscape.core.decision import DecisionProvider
from sugarscape.core.engine import SimulationEngine, TickSnapshot
from sugarscape.metrics.collector import MetricsCollector, TickMetrics


@dataclass
class ExperimentResult:
    """Result of a single experiment run."""
    config: SugarscapeConfig
    history: list[TickSnapshot]
    metrics: list[TickMetrics]
    final_population_size: int
    total_births: int
    total_deaths: int
    final_gini: float
    mean_population: float


@dataclass
class ComparisonResult:
    """Result of comparing two or more experiments."""
    results: dict[str, ExperimentResult]
    config_diffs: dict[str, Any]


class ExperimentRunner:
    """
    Run, compare, and sweep simulation experiments.
    """

    def __init__(self, decision_provider: DecisionProvider | None = None):
        self.decision_provider = decision_provider

    def run_experiment(
        self,
        config: SugarscapeConfig,
        ticks: int | None = None,
        collect_metrics: bool = True,
        record_agents: bool = False,
    ) -> ExperimentResult:
        """Run a single experiment and return results."""
        ticks = config.ticks_to_run if ticks is None else ticks
        engine = SimulationEngine(config, self.decision_provider)
        engine.setup()
        collector = MetricsCollector(config, record_agents=record_agents)

        metrics_list: list[TickMetrics] = []
        for _ in range(ticks):
            snap = engine.step()
            if collect_metrics:
                metrics_list.append(collector.collect(engine.state, snap))

        history = engine.history
        final_gini = metrics_list[-1].gini if metrics_list else 0.0
        sizes = [s.population_size for s in history]

        return ExperimentResult(
            config=config,
            history=history,
            metrics=metrics_list,
            final_population_size=history[-1].population_size if history else len(engine.state.population),
            total_births=sum(s.births for s in history),
            total_deaths=sum(s.deaths for s in history),
            final_gini=final_gini,
            mean_population=float(np.mean(sizes)) if sizes else 0.0,
        )

    def compare_experiments(
        self,
        configs: dict[str, SugarscapeConfig],
        ticks: int | None = None,
        collect_metrics: bool = True,
    ) -> ComparisonResult:
        """Run multiple experiments and compare results."""
        results: dict[str, ExperimentResult] = {}
        for name, config in configs.items():
            results[name] = self.run_experiment(config, ticks, collect_metrics)

        # Diff every config against the first one
        config_names = list(configs.keys())
        diffs: dict[str, Any] = {}
        if len(config_names) >= 2:
            base = configs[config_names[0]]
            for name in config_names[1:]:
                diffs[f"{config_names[0]}_vs_{name}"] = base.diff(configs[name])

        return ComparisonResult(results=results, config_diffs=diffs)

    def run_ab_test(
        self,
        config_a: SugarscapeConfig,
        config_b: SugarscapeConfig,
        label_a: str = "A",
        label_b: str = "B",
        ticks: int | None = None,
        collect_metrics: bool = True,
    ) -> ComparisonResult:
        """Run an A/B test between two configurations."""
        return self.compare_experiments(
            {label_a: config_a, label_b: config_b},
            ticks=ticks,
            collect_metrics=collect_metrics,
        )

    def run_parameter_sweep(
        self,
        base_config: SugarscapeConfig,
        param_name: str,
        values: list[Any],
        ticks: int | None = None,
        collect_metrics: bool = True,
    ) -> dict[str, ExperimentResult]:
        """
        Sweep a single parameter across multiple values.

        Args:
            base_config: Base configuration to modify
            param_name: Name of the parameter to sweep (field of SugarscapeConfig)
            values: List of values to test
            ticks: Ticks per run (default from each config)
            collect_metrics: Whether to collect detailed metrics

        Returns:
            Dict mapping value label -> ExperimentResult
        """
        results: dict[str, ExperimentResult] = {}
        for val in values:
            config = base_config.replace(
                **{param_name: val, "experiment_name": f"sweep_{param_name}={val}"},
            )
            label = f"{param_name}={val}"
            results[label] = self.run_experiment(config, ticks, collect_metrics)
        return results

    def run_multi_seed(
        self,
        config: SugarscapeConfig,
        seeds: list[int],
        ticks: int | None = None,
        collect_metrics: bool = False,
    ) -> list[ExperimentResult]:
        """
        Run the same configuration with multiple random seeds.

        Useful for measuring variance in outcomes.
        """
        results: list[ExperimentResult] = []
        for seed in seeds:
            seed_config = config.replace(
                random_seed=seed,
                experiment_name=f"{config.experiment_name}_seed{seed}",
            )
            results.append(self.run_experiment(seed_config, ticks, collect_metrics))
        return results
