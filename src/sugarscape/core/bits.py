"""
Bit-sequence primitives shared by culture tags, immune systems and diseases.

All sequences are one-dimensional numpy boolean arrays. Functions that
compare two sequences check their lengths explicitly.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view


class Tribe(str, Enum):
    """Binary cultural affiliation derived from a tag's majority bit."""
    RED = "red"  # majority of ones
    BLUE = "blue"  # majority of zeros


def as_bits(values: Iterable[int | bool]) -> np.ndarray:
    """Coerce an iterable of 0/1 values into a boolean array."""
    return np.asarray(list(values), dtype=bool)


def random_bits(rng: np.random.Generator, length: int) -> np.ndarray:
    """Draw ``length`` independent fair bits."""
    return rng.integers(0, 2, size=length).astype(bool)


def hamming_distance(a: np.ndarray, b: np.ndarray) -> int:
    """Number of positions at which two equal-length sequences differ."""
    if len(a) != len(b):
        raise ValueError(
            f"Hamming distance needs equal lengths, got {len(a)} and {len(b)}"
        )
    return int(np.count_nonzero(a != b))


def _window_distances(needle: np.ndarray, haystack: np.ndarray) -> np.ndarray:
    if len(needle) == 0 or len(needle) > len(haystack):
        raise ValueError(
            f"Cannot fit a {len(needle)}-bit sequence into {len(haystack)} bits"
        )
    windows = sliding_window_view(haystack, len(needle))
    return np.count_nonzero(windows != needle, axis=1)


def is_subsequence(needle: np.ndarray, haystack: np.ndarray) -> bool:
    """True if ``needle`` occurs as a contiguous run inside ``haystack``."""
    return bool((_window_distances(needle, haystack) == 0).any())


def closest_window(needle: np.ndarray, haystack: np.ndarray) -> tuple[int, int]:
    """
    Locate the window of ``haystack`` nearest to ``needle``.

    Returns:
        ``(start, distance)`` of the first window with minimum Hamming
        distance.
    """
    distances = _window_distances(needle, haystack)
    start = int(np.argmin(distances))
    return start, int(distances[start])


def flip_toward(immunity: np.ndarray, disease: np.ndarray) -> int | None:
    """
    Flip the first mismatched bit of the closest window, in place.

    Returns the flipped index in ``immunity``, or ``None`` when the disease
    already occurs in it.
    """
    start, distance = closest_window(disease, immunity)
    if distance == 0:
        return None
    window = immunity[start:start + len(disease)]
    offset = int(np.flatnonzero(window != disease)[0])
    immunity[start + offset] = disease[offset]
    return start + offset


def crossover_bits(
    a: np.ndarray, b: np.ndarray, rng: np.random.Generator,
) -> np.ndarray:
    """Position-wise uniform crossover of two equal-length sequences."""
    if len(a) != len(b):
        raise ValueError(f"Crossover needs equal lengths, got {len(a)} and {len(b)}")
    mask = rng.random(len(a)) < 0.5
    return np.where(mask, a, b)


def tribe_of(tag: np.ndarray) -> Tribe:
    """Majority-bit tribe of a culture tag. Tags must have odd length."""
    if len(tag) % 2 == 0:
        raise ValueError(f"Culture tags must have odd length, got {len(tag)}")
    ones = int(np.count_nonzero(tag))
    zeros = len(tag) - ones
    return Tribe.BLUE if zeros > ones else Tribe.RED


def contains_bits(collection: Iterable[np.ndarray], bits: np.ndarray) -> bool:
    """True if an equal sequence is already present in ``collection``."""
    return any(len(c) == len(bits) and np.array_equal(c, bits) for c in collection)
