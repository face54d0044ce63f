"""
Population-level statistics: wealth inequality, spatial autocorrelation
and cultural diversity.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from sugarscape.core.agent import Agent
from sugarscape.core.bits import Tribe
from sugarscape.core.grid import VON_NEUMANN_OFFSETS


def gini(values: Sequence[float]) -> float:
    """Gini coefficient: 0 for perfect equality, (n - 1) / n for one holder.

    Uses ``2 * sum(i * w_i) / (n * sum(w)) - (n + 1) / n`` over the values
    sorted ascending with ranks ``i`` starting at 1. An empty population or
    zero total wealth gives 0.
    """
    w = np.sort(np.asarray(values, dtype=float))
    n = len(w)
    total = w.sum()
    if n == 0 or total == 0:
        return 0.0
    ranks = np.arange(1, n + 1)
    return float(2.0 * np.sum(ranks * w) / (n * total) - (n + 1) / n)


def morans_i(agents: Sequence[Agent], attribute: str = "sugar") -> float:
    """Moran's I of ``attribute`` with unit weights between von Neumann neighbours.

    Returns 0 when no agent has a neighbour or the attribute has no variance.
    """
    n = len(agents)
    if n < 2:
        return 0.0
    values = np.array([float(getattr(a, attribute)) for a in agents])
    deviations = values - values.mean()
    denominator = float(np.sum(deviations ** 2))
    if denominator == 0:
        return 0.0
    index = {a.pos: i for i, a in enumerate(agents)}
    weight_sum = 0
    cross = 0.0
    for i, a in enumerate(agents):
        x, y = a.pos
        for dx, dy in VON_NEUMANN_OFFSETS:
            j = index.get((x + dx, y + dy))
            if j is None:
                continue
            weight_sum += 1
            cross += deviations[i] * deviations[j]
    if weight_sum == 0:
        return 0.0
    return float((n / weight_sum) * cross / denominator)


def _tag_matrix(agents: Sequence[Agent]) -> np.ndarray:
    return np.array([a.culture for a in agents], dtype=bool)


def culture_entropy(agents: Sequence[Agent]) -> float:
    """Mean per-bit Shannon entropy (in bits) of the culture tags."""
    if not agents:
        return 0.0
    p = _tag_matrix(agents).mean(axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        h = -(p * np.log2(p) + (1 - p) * np.log2(1 - p))
    return float(np.nan_to_num(h).mean())


def unique_cultures(agents: Sequence[Agent]) -> int:
    return len({a.culture.tobytes() for a in agents})


def mean_hamming_distance(agents: Sequence[Agent]) -> float:
    """Mean pairwise Hamming distance between culture tags."""
    n = len(agents)
    if n < 2:
        return 0.0
    ones = _tag_matrix(agents).sum(axis=0)
    differing_pairs = np.sum(ones * (n - ones))
    return float(differing_pairs / (n * (n - 1) / 2))


def tribe_counts(agents: Sequence[Agent]) -> dict[str, int]:
    counts = {t.value: 0 for t in Tribe}
    for a in agents:
        counts[a.tribe.value] += 1
    return counts
