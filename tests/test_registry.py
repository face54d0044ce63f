"""Tests for the rule registry."""

import pytest

from sugarscape.core.config import SugarscapeConfig
from sugarscape.rules import (
    GrowbackRule,
    InheritanceRule,
    MovementRule,
    ReproductionRule,
    RuleRegistry,
)


def _make_config(**kwargs) -> SugarscapeConfig:
    defaults = dict(grid_size=10, sugar_peaks=((3, 3),), initial_population=0)
    defaults.update(kwargs)
    return SugarscapeConfig(**defaults)


@pytest.fixture
def registry() -> RuleRegistry:
    reg = RuleRegistry()
    for rule in (MovementRule(), ReproductionRule(), InheritanceRule(), GrowbackRule()):
        reg.register(rule)
    return reg


def test_registered_rules_start_disabled(registry):
    assert registry.enabled_names == []
    assert registry.get_enabled() == []


def test_duplicate_registration_rejected(registry):
    with pytest.raises(ValueError, match="already registered"):
        registry.register(MovementRule())


def test_enable_unknown_rule(registry):
    with pytest.raises(KeyError):
        registry.enable("teleport")


def test_dependency_must_be_enabled_first(registry):
    with pytest.raises(ValueError, match="requires 'reproduction'"):
        registry.enable("inheritance")
    registry.enable("reproduction")
    registry.enable("inheritance")
    assert registry.is_enabled("inheritance")


def test_activate_follows_config_flags(registry):
    enabled = registry.activate(_make_config())
    assert enabled == ["movement", "growback"]


def test_activate_with_inheritance(registry):
    enabled = registry.activate(
        _make_config(enable_reproduction=True, enable_inheritance=True),
    )
    assert enabled == ["movement", "reproduction", "inheritance", "growback"]


def test_activate_checks_registration_order():
    reg = RuleRegistry()
    reg.register(InheritanceRule())
    reg.register(ReproductionRule())
    with pytest.raises(ValueError, match="requires"):
        reg.activate(_make_config(enable_reproduction=True, enable_inheritance=True))


def test_scheduled_follows_sequence_order(registry):
    registry.enable("movement")
    registry.enable("growback")
    names = [r.name for r in registry.scheduled(["growback", "reproduction", "movement"])]
    assert names == ["growback", "movement"]
