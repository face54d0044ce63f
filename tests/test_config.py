"""Tests for SugarscapeConfig construction, validation and serialization."""

import pytest

from sugarscape.core.config import (
    DEFAULT_RULE_SEQUENCE,
    ConfigurationError,
    SugarscapeConfig,
)


class TestDefaults:
    def test_default_config_is_valid(self):
        config = SugarscapeConfig()
        assert config.grid_size == 50
        assert config.culture_tag_length % 2 == 1
        assert config.rule_sequence == DEFAULT_RULE_SEQUENCE

    def test_config_is_frozen(self):
        config = SugarscapeConfig()
        with pytest.raises(AttributeError):
            config.grid_size = 10

    def test_fertility_window_by_sex(self):
        config = SugarscapeConfig(male_fertility=(12, 60), female_fertility=(12, 40))
        assert config.fertility_window("male") == (12, 60)
        assert config.fertility_window("female") == (12, 40)


class TestValidation:
    @pytest.mark.parametrize("overrides, match", [
        ({"grid_size": 0}, "grid_size"),
        ({"sugar_peaks": ((60, 1),)}, "outside the grid"),
        ({"vision_range": (5, 2)}, "inverted"),
        ({"max_age_range": (70, 70)}, "max-age"),
        ({"culture_tag_length": 10}, "odd"),
        ({"disease_length_range": (2, 32)}, "strictly shorter"),
        ({"culture_flip_probability": 1.5}, r"\[0, 1\]"),
        ({"interest_rate": -0.1}, "non-negative"),
        ({"rule_sequence": ("movement", "teleport")}, "Unknown rule"),
        ({"rule_sequence": ("movement", "movement")}, "duplicates"),
        ({"vision_shape": "hexagon"}, "vision_shape"),
        ({"grid_size": 3, "sugar_peaks": ((1, 1),), "initial_population": 10}, "does not fit"),
        ({"enable_inheritance": True}, "requires enable_reproduction"),
    ])
    def test_invalid_values_raise(self, overrides, match):
        with pytest.raises(ConfigurationError, match=match):
            SugarscapeConfig(**overrides)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            SugarscapeConfig(loan_duration=0)

    def test_replace_revalidates(self):
        config = SugarscapeConfig()
        with pytest.raises(ConfigurationError):
            config.replace(culture_tag_length=4)


class TestSerialization:
    def test_json_roundtrip_restores_tuples(self):
        config = SugarscapeConfig(
            random_seed=7, vision_range=(2, 4), sugar_peaks=((3, 3), (10, 10)),
        )
        restored = SugarscapeConfig.from_json(config.to_json())
        assert restored == config
        assert isinstance(restored.vision_range, tuple)
        assert restored.sugar_peaks == ((3, 3), (10, 10))

    def test_to_dict_is_json_compatible(self):
        d = SugarscapeConfig().to_dict()
        assert isinstance(d["rule_sequence"], list)
        assert d["sugar_peaks"] == [[14, 39], [34, 9]]

    def test_diff_reports_changed_fields(self):
        a = SugarscapeConfig()
        b = a.replace(enable_combat=True, combat_limit=10.0)
        assert a.diff(b) == {
            "enable_combat": (False, True),
            "combat_limit": (50.0, 10.0),
        }
        assert a.diff(a) == {}
