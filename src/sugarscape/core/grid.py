"""
Sugar landscape for the Sugarscape sandbox.

A bounded square lattice with per-cell sugar capacity, current sugar and an
optional pollution accumulator. Positions are zero-based ``(x, y)`` tuples
that index the numpy arrays as ``array[x, y]``.
"""

from __future__ import annotations

import math

import numpy as np

from sugarscape.core.config import SugarscapeConfig

# Order in which von Neumann neighbours are listed: north, south, east, west.
VON_NEUMANN_OFFSETS: tuple[tuple[int, int], ...] = ((0, 1), (0, -1), (1, 0), (-1, 0))


def capacity_landscape(
    size: int,
    peaks: tuple[tuple[int, int], ...],
    max_sugar: int,
    decay_diameter: int,
) -> np.ndarray:
    """Sugar capacities that fall off in rings around the nearest peak.

    Args:
        size: Side length of the square grid.
        peaks: Peak positions.
        max_sugar: Capacity at a peak.
        decay_diameter: Ring width; capacity drops by one per ring.

    Returns:
        A ``(size, size)`` float array of capacities.
    """
    xs, ys = np.meshgrid(np.arange(size), np.arange(size), indexing="ij")
    nearest = np.full((size, size), np.inf)
    for px, py in peaks:
        nearest = np.minimum(nearest, np.hypot(xs - px, ys - py))
    rings = np.rint(nearest).astype(int) // decay_diameter
    return np.maximum(0, max_sugar - rings).astype(float)


class SugarGrid:
    """Per-cell sugar, capacity and pollution, plus seasonal state."""

    def __init__(
        self,
        capacity: np.ndarray,
        sugar: np.ndarray | None = None,
        pollution: np.ndarray | None = None,
    ) -> None:
        if capacity.ndim != 2 or capacity.shape[0] != capacity.shape[1]:
            raise ValueError(f"Grid must be square, got shape {capacity.shape}")
        self.capacity = capacity.astype(float)
        self.sugar = self.capacity.copy() if sugar is None else sugar.astype(float)
        self.pollution = (
            np.zeros_like(self.capacity) if pollution is None
            else pollution.astype(float)
        )
        # Seasons: which half currently enjoys summer, and ticks into the season.
        self.summer_in_top = True
        self.season_clock = 0
        self.diffusion_clock = 0

    @classmethod
    def from_config(cls, config: SugarscapeConfig) -> SugarGrid:
        return cls(capacity_landscape(
            config.grid_size,
            config.sugar_peaks,
            config.max_sugar,
            config.peak_decay_diameter,
        ))

    @property
    def size(self) -> int:
        return self.capacity.shape[0]

    def in_bounds(self, pos: tuple[int, int]) -> bool:
        return 0 <= pos[0] < self.size and 0 <= pos[1] < self.size

    # ------------------------------------------------------------------
    # Neighbourhoods
    # ------------------------------------------------------------------

    def von_neumann(self, pos: tuple[int, int]) -> list[tuple[int, int]]:
        """In-bounds cells sharing an edge with ``pos``."""
        x, y = pos
        cells = [(x + dx, y + dy) for dx, dy in VON_NEUMANN_OFFSETS]
        return [c for c in cells if self.in_bounds(c)]

    def visible_positions(
        self,
        pos: tuple[int, int],
        vision: int,
        shape: str = "full",
        metric: str = "manhattan",
    ) -> list[tuple[int, int]]:
        """Cells an agent at ``pos`` can see, excluding ``pos`` itself.

        Args:
            pos: Observer position.
            vision: Sight radius in cells.
            shape: ``"cardinal"`` for the four lattice directions only, or
                ``"full"`` for every cell within ``vision`` under ``metric``.
            metric: ``"manhattan"``, ``"euclidean"`` or ``"chebyshev"``.

        Returns:
            In-bounds positions in a fixed, deterministic order.
        """
        x, y = pos
        cells: list[tuple[int, int]] = []
        if shape == "cardinal":
            for dx, dy in VON_NEUMANN_OFFSETS:
                for step in range(1, vision + 1):
                    cells.append((x + dx * step, y + dy * step))
        else:
            for dx in range(-vision, vision + 1):
                for dy in range(-vision, vision + 1):
                    if (dx, dy) == (0, 0):
                        continue
                    if _within(dx, dy, vision, metric):
                        cells.append((x + dx, y + dy))
        return [c for c in cells if self.in_bounds(c)]

    @staticmethod
    def distance(a: tuple[int, int], b: tuple[int, int]) -> float:
        """Euclidean distance between two positions."""
        return math.hypot(a[0] - b[0], a[1] - b[1])

    # ------------------------------------------------------------------
    # Sugar and pollution
    # ------------------------------------------------------------------

    def sugar_at(self, pos: tuple[int, int]) -> float:
        return float(self.sugar[pos])

    def welfare(self, pos: tuple[int, int], with_pollution: bool = False) -> float:
        """Sugar at ``pos``, discounted by local pollution when enabled."""
        if with_pollution:
            return float(self.sugar[pos] / (1.0 + self.pollution[pos]))
        return float(self.sugar[pos])

    def harvest(self, pos: tuple[int, int]) -> float:
        """Take all sugar from ``pos`` and return the amount taken."""
        amount = float(self.sugar[pos])
        self.sugar[pos] = 0.0
        return amount

    def add_pollution(self, pos: tuple[int, int], amount: float) -> None:
        self.pollution[pos] += amount

    def growback(self, rate: float) -> None:
        """Regrow every cell by ``rate``, capped at capacity."""
        np.minimum(self.sugar + rate, self.capacity, out=self.sugar)

    def seasonal_growback(self, rate: float, winter_divisor: float) -> None:
        """Regrow the summer half at ``rate`` and the winter half at ``rate / winter_divisor``."""
        half = self.size // 2
        top_rate, bottom_rate = rate, rate / winter_divisor
        if not self.summer_in_top:
            top_rate, bottom_rate = bottom_rate, top_rate
        self.sugar[:, :half] = np.minimum(
            self.sugar[:, :half] + top_rate, self.capacity[:, :half],
        )
        self.sugar[:, half:] = np.minimum(
            self.sugar[:, half:] + bottom_rate, self.capacity[:, half:],
        )

    def advance_season(self, season_duration: int) -> bool:
        """Tick the season clock; returns True when the seasons swap."""
        self.season_clock += 1
        if self.season_clock >= season_duration:
            self.season_clock = 0
            self.summer_in_top = not self.summer_in_top
            return True
        return False

    def diffuse_pollution(self) -> None:
        """Replace each cell's pollution by the mean of its von Neumann neighbours."""
        padded = np.pad(self.pollution, 1)
        ones = np.pad(np.ones_like(self.pollution), 1)
        totals = (
            padded[:-2, 1:-1] + padded[2:, 1:-1]
            + padded[1:-1, :-2] + padded[1:-1, 2:]
        )
        counts = (
            ones[:-2, 1:-1] + ones[2:, 1:-1]
            + ones[1:-1, :-2] + ones[1:-1, 2:]
        )
        self.pollution = np.divide(
            totals, counts, out=np.zeros_like(totals), where=counts > 0,
        )

    def total_sugar(self) -> float:
        return float(self.sugar.sum())

    def total_pollution(self) -> float:
        return float(self.pollution.sum())


def _within(dx: int, dy: int, radius: int, metric: str) -> bool:
    if metric == "manhattan":
        return abs(dx) + abs(dy) <= radius
    if metric == "euclidean":
        return dx * dx + dy * dy <= radius * radius
    return max(abs(dx), abs(dy)) <= radius
