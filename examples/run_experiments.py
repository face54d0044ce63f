"""
Experiment demo: exercises presets, an A/B test and a parameter sweep.

Demonstrates:
1. Running a preset through the metrics collector
2. A/B testing credit on and off with the ExperimentRunner
3. Sweeping the combat limit
"""

from sugarscape.experiment.presets import get_preset, list_presets
from sugarscape.experiment.runner import ExperimentRunner


def demo_presets():
    """List available presets and run one with full metrics."""
    print("=" * 60)
    print("DEMO 1: Presets")
    print("=" * 60)

    print(f"\nAvailable presets: {list_presets()}")

    config = get_preset("disease").replace(ticks_to_run=30, random_seed=42)
    result = ExperimentRunner().run_experiment(config)

    print(f"\n{'Tick':>4} {'Pop':>4} {'Infected':>8} {'Infect.':>7} {'Gini':>6}")
    print("-" * 34)
    for m in result.metrics[::5]:
        print(f"{m.tick:4d} {m.population_size:4d} {m.infected:8d} {m.infections:7d} {m.gini:6.3f}")


def demo_ab_test():
    """Compare a reproducing population with and without credit."""
    print("\n" + "=" * 60)
    print("DEMO 2: A/B Test - Credit Off vs On")
    print("=" * 60)

    base = get_preset("movement_reproduction").replace(ticks_to_run=60, random_seed=42)
    comparison = ExperimentRunner().run_ab_test(
        config_a=base,
        config_b=base.replace(enable_credit=True),
        label_a="NoCredit",
        label_b="Credit",
    )

    print(f"\n{'Metric':<25} {'NoCredit':>10} {'Credit':>10}")
    print("-" * 47)
    for metric_name in ["final_population_size", "total_births", "final_gini", "mean_population"]:
        vals = [getattr(comparison.results[l], metric_name) for l in ["NoCredit", "Credit"]]
        if isinstance(vals[0], float):
            print(f"{metric_name:<25} {vals[0]:>10.4f} {vals[1]:>10.4f}")
        else:
            print(f"{metric_name:<25} {vals[0]:>10d} {vals[1]:>10d}")

    print("\nConfig differences:")
    for key, diffs in comparison.config_diffs.items():
        print(f"  {key}:")
        for param, (v1, v2) in diffs.items():
            print(f"    {param}: {v1} -> {v2}")


def demo_parameter_sweep():
    """Sweep the combat reward limit."""
    print("\n" + "=" * 60)
    print("DEMO 3: Parameter Sweep - Combat Limit")
    print("=" * 60)

    base = get_preset("culture_combat").replace(ticks_to_run=40, random_seed=42)
    results = ExperimentRunner().run_parameter_sweep(base, "combat_limit", [0.0, 5.0, 50.0])

    print(f"\n{'Limit':<20} {'FinalPop':>8} {'Deaths':>7} {'Gini':>7}")
    print("-" * 45)
    for label, result in results.items():
        print(
            f"{label:<20} {result.final_population_size:>8d} "
            f"{result.total_deaths:>7d} {result.final_gini:>7.3f}"
        )


if __name__ == "__main__":
    demo_presets()
    demo_ab_test()
    demo_parameter_sweep()
    print("\n" + "=" * 60)
    print("Experiment demo complete!")
    print("=" * 60)
