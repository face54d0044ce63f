"""
Master configuration for the Sugarscape sandbox.

Every tunable parameter of the rule engine lives here. The config is built
once, validated at construction and never mutated afterwards; use
``replace()`` to derive variants for sweeps and A/B comparisons.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from typing import Any


class ConfigurationError(ValueError):
    """Raised when a configuration value is out of range or inconsistent."""


# Phase names understood by the scheduler, in their default order.
DEFAULT_RULE_SEQUENCE: tuple[str, ...] = (
    "combat",
    "movement",
    "mortality",
    "replacement",
    "reproduction",
    "culture",
    "credit",
    "disease",
    "growback",
    "pollution",
)

VISION_SHAPES = ("full", "cardinal")
VISION_METRICS = ("manhattan", "euclidean", "chebyshev")

# Fields stored as tuples; JSON round-trips hand them back as lists.
_RANGE_FIELDS = (
    "vision_range",
    "metabolism_range",
    "initial_sugar_range",
    "max_age_range",
    "male_fertility",
    "female_fertility",
    "disease_length_range",
)


@dataclass(frozen=True)
class SugarscapeConfig:
    """
    Immutable configuration for one simulation run.

    Ranges are inclusive ``(low, high)`` pairs. Positions are zero-based
    ``(x, y)`` grid coordinates.
    """

    # === Experiment identity ===
    experiment_name: str = "default"
    random_seed: int | None = None
    ticks_to_run: int = 100

    # === Grid / sugar landscape ===
    grid_size: int = 50
    sugar_peaks: tuple[tuple[int, int], ...] = ((14, 39), (34, 9))
    max_sugar: int = 4
    peak_decay_diameter: int = 4
    growback_rate: float = 1.0

    # === Seasons ===
    enable_seasonality: bool = False
    season_duration: int = 20
    winter_growth_divisor: float = 4.0

    # === Pollution ===
    enable_pollution: bool = False
    pollution_production_rate: float = 1.0
    pollution_consumption_rate: float = 1.0
    pollution_diffusion_interval: int = 10

    # === Population ===
    initial_population: int = 100
    vision_range: tuple[int, int] = (1, 6)
    metabolism_range: tuple[int, int] = (1, 4)
    initial_sugar_range: tuple[int, int] = (5, 25)
    max_age_range: tuple[int, int] = (60, 100)
    vision_shape: str = "full"  # 'full' or 'cardinal'
    vision_metric: str = "manhattan"  # metric for the 'full' shape
    enable_replacement: bool = True

    # === Fertility windows (inclusive ages) ===
    male_fertility: tuple[int, int] = (12, 50)
    female_fertility: tuple[int, int] = (12, 40)

    # === Reproduction / inheritance ===
    enable_reproduction: bool = False
    max_partners: int = 4
    enable_inheritance: bool = False

    # === Culture ===
    enable_culture: bool = False
    culture_tag_length: int = 11
    culture_flip_probability: float = 1.0

    # === Combat ===
    enable_combat: bool = False
    combat_limit: float = 50.0

    # === Credit ===
    enable_credit: bool = False
    interest_rate: float = 0.10
    loan_duration: int = 10
    credit_threshold: float | None = None  # None: each agent's initial sugar

    # === Disease ===
    enable_disease: bool = False
    immunity_length: int = 32
    disease_length_range: tuple[int, int] = (2, 10)
    disease_pool_size: int = 10
    initial_infection_probability: float = 0.5
    disease_transmission_probability: float = 1.0
    disease_mutation_probability: float = 0.0
    disease_mortality_probability: float = 0.0
    disease_penalty: float = 1.0
    drop_cured_diseases: bool = False

    # === Scheduling ===
    rule_sequence: tuple[str, ...] = DEFAULT_RULE_SEQUENCE
    check_invariants: bool = False

    def __post_init__(self) -> None:
        for name in _RANGE_FIELDS:
            object.__setattr__(self, name, tuple(getattr(self, name)))
        object.__setattr__(
            self, "sugar_peaks", tuple(tuple(p) for p in self.sugar_peaks),
        )
        object.__setattr__(self, "rule_sequence", tuple(self.rule_sequence))
        self._validate()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        if self.grid_size <= 0:
            raise ConfigurationError(f"grid_size must be positive, got {self.grid_size}")
        if not self.sugar_peaks:
            raise ConfigurationError("sugar_peaks must name at least one peak")
        for peak in self.sugar_peaks:
            if len(peak) != 2 or not all(0 <= c < self.grid_size for c in peak):
                raise ConfigurationError(f"sugar peak {peak} lies outside the grid")
        if self.max_sugar < 0:
            raise ConfigurationError("max_sugar must be non-negative")
        if self.peak_decay_diameter <= 0:
            raise ConfigurationError("peak_decay_diameter must be positive")

        for name in _RANGE_FIELDS:
            low, high = getattr(self, name)
            if low > high:
                raise ConfigurationError(f"{name} is inverted: ({low}, {high})")
        if self.vision_range[0] < 1:
            raise ConfigurationError("vision_range must start at 1 or above")
        if self.metabolism_range[0] < 0:
            raise ConfigurationError("metabolism_range must be non-negative")
        if self.initial_sugar_range[0] <= 0:
            raise ConfigurationError("initial_sugar_range must be positive")
        if self.max_age_range[0] >= self.max_age_range[1]:
            raise ConfigurationError(
                "minimum max-age must be strictly below maximum max-age"
            )

        if self.culture_tag_length <= 0 or self.culture_tag_length % 2 == 0:
            raise ConfigurationError(
                f"culture_tag_length must be a positive odd number, "
                f"got {self.culture_tag_length}"
            )
        if self.immunity_length <= 0:
            raise ConfigurationError("immunity_length must be positive")
        if self.disease_length_range[0] < 1:
            raise ConfigurationError("diseases must be at least one bit long")
        if self.disease_length_range[1] >= self.immunity_length:
            raise ConfigurationError(
                "disease lengths must be strictly shorter than immunity_length"
            )

        for name in (
            "culture_flip_probability",
            "initial_infection_probability",
            "disease_transmission_probability",
            "disease_mutation_probability",
            "disease_mortality_probability",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")

        for name in (
            "growback_rate",
            "pollution_production_rate",
            "pollution_consumption_rate",
            "interest_rate",
            "combat_limit",
            "disease_penalty",
            "disease_pool_size",
        ):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be non-negative")
        for name in (
            "season_duration",
            "pollution_diffusion_interval",
            "loan_duration",
            "max_partners",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.winter_growth_divisor <= 0:
            raise ConfigurationError("winter_growth_divisor must be positive")
        if self.credit_threshold is not None and self.credit_threshold < 0:
            raise ConfigurationError("credit_threshold must be non-negative")

        if self.vision_shape not in VISION_SHAPES:
            raise ConfigurationError(f"Unknown vision_shape '{self.vision_shape}'")
        if self.vision_metric not in VISION_METRICS:
            raise ConfigurationError(f"Unknown vision_metric '{self.vision_metric}'")

        unknown = [r for r in self.rule_sequence if r not in DEFAULT_RULE_SEQUENCE]
        if unknown:
            raise ConfigurationError(f"Unknown rule names in rule_sequence: {unknown}")
        if len(set(self.rule_sequence)) != len(self.rule_sequence):
            raise ConfigurationError("rule_sequence contains duplicates")

        if self.initial_population < 0:
            raise ConfigurationError("initial_population must be non-negative")
        if self.initial_population > self.grid_size * self.grid_size:
            raise ConfigurationError(
                f"initial_population {self.initial_population} does not fit on a "
                f"{self.grid_size}x{self.grid_size} grid"
            )
        if self.enable_inheritance and not self.enable_reproduction:
            raise ConfigurationError("enable_inheritance requires enable_reproduction")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def fertility_window(self, sex: str) -> tuple[int, int]:
        """Inclusive fertile age range for ``sex`` ('male' or 'female')."""
        return self.male_fertility if sex == "male" else self.female_fertility

    def replace(self, **overrides: Any) -> SugarscapeConfig:
        """Return a validated copy with ``overrides`` applied."""
        return dataclasses.replace(self, **overrides)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        d: dict[str, Any] = {}
        for f in dataclasses.fields(self):
            v = getattr(self, f.name)
            if f.name == "sugar_peaks":
                v = [list(p) for p in v]
            elif isinstance(v, tuple):
                v = list(v)
            d[f.name] = v
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SugarscapeConfig:
        """Deserialize from a dict, ignoring private keys."""
        return cls(**{k: v for k, v in d.items() if not k.startswith("_")})

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, s: str) -> SugarscapeConfig:
        return cls.from_dict(json.loads(s))

    def diff(self, other: SugarscapeConfig) -> dict[str, tuple[Any, Any]]:
        """Return parameters that differ between two configs."""
        diffs: dict[str, tuple[Any, Any]] = {}
        for f in dataclasses.fields(self):
            v1 = getattr(self, f.name)
            v2 = getattr(other, f.name)
            if v1 != v2:
                diffs[f.name] = (v1, v2)
        return diffs
