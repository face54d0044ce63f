#!/usr/bin/env python3
"""Run a baseline Sugarscape simulation and print results."""

import logging

from sugarscape.core.config import SugarscapeConfig
from sugarscape.core.engine import SimulationEngine


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config = SugarscapeConfig(
        experiment_name="baseline",
        initial_population=250,
        ticks_to_run=50,
        random_seed=42,
        enable_culture=True,
    )

    print(f"=== Sugarscape Sandbox: {config.experiment_name} ===")
    print(f"Grid: {config.grid_size}x{config.grid_size}, peaks at {config.sugar_peaks}")
    print(f"Population: {config.initial_population}")
    print(f"Ticks: {config.ticks_to_run}")
    print()

    engine = SimulationEngine(config)
    history = engine.run()

    print(f"{'Tick':>4} {'Pop':>5} {'Deaths':>6} {'Sugar':>8} {'Mean':>6} "
          f"{'Grid':>8} {'Vis':>5} {'Met':>5} {'Red':>4} {'Blue':>4}")
    print("-" * 64)

    for snap in history:
        tc = snap.tribe_counts
        print(
            f"{snap.tick:4d} {snap.population_size:5d} {snap.deaths:6d} "
            f"{snap.total_agent_sugar:8.1f} {snap.mean_sugar:6.1f} "
            f"{snap.total_grid_sugar:8.1f} {snap.mean_vision:5.2f} "
            f"{snap.mean_metabolism:5.2f} {tc['red']:4d} {tc['blue']:4d}"
        )

    final = history[-1]
    print()
    print(f"=== Final State (Tick {final.tick}) ===")
    print(f"Population: {final.population_size}")
    print(f"Total deaths: {sum(s.deaths for s in history)}")
    print(f"Mean sugar: {final.mean_sugar:.2f}")
    print(f"Mean age: {final.mean_age:.1f}")

    print("\nDeaths by cause:")
    totals: dict[str, int] = {}
    for snap in history:
        for cause, count in snap.deaths_by_cause.items():
            totals[cause] = totals.get(cause, 0) + count
    for cause, count in sorted(totals.items()):
        print(f"  {cause:12s}: {count:4d}")


if __name__ == "__main__":
    main()
