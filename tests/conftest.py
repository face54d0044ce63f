"""
Shared test configuration.

Provides a seeded random generator so tests that need raw randomness
stay reproducible.
"""

import numpy as np
import pytest


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)
