"""
Rule registry: which phases exist, which are switched on, in what order.

Rules register once; ``activate`` then switches on every rule whose
config flag is set, checking each rule's ``requires`` list so a rule can
never run without the rules it builds on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from sugarscape.rules.base import SimulationRule

if TYPE_CHECKING:
    from sugarscape.core.config import SugarscapeConfig


class RuleRegistry:
    """
    Registered rules and the subset enabled for a run.

    Usage::

        registry = RuleRegistry()
        registry.register(ReproductionRule())
        registry.register(InheritanceRule())
        registry.activate(config)   # inheritance only if reproduction is on
        for rule in registry.scheduled(config.rule_sequence):
            rule.run(state)
    """

    def __init__(self) -> None:
        self._rules: dict[str, SimulationRule] = {}
        self._enabled: set[str] = set()

    def register(self, rule: SimulationRule) -> None:
        if rule.name in self._rules:
            raise ValueError(f"Rule '{rule.name}' is already registered")
        self._rules[rule.name] = rule

    def enable(self, name: str) -> None:
        """Enable a registered rule once its dependencies are enabled."""
        if name not in self._rules:
            raise KeyError(f"Rule '{name}' is not registered")
        for dep in self._rules[name].get_default_config().get("requires", []):
            if dep not in self._enabled:
                raise ValueError(f"Rule '{name}' requires '{dep}' to be enabled first")
        self._enabled.add(name)

    def activate(self, config: SugarscapeConfig) -> list[str]:
        """Enable, in registration order, every rule active under ``config``."""
        for name, rule in self._rules.items():
            if rule.is_active(config):
                self.enable(name)
        return self.enabled_names

    def is_enabled(self, name: str) -> bool:
        return name in self._enabled

    def get_enabled(self) -> list[SimulationRule]:
        """Enabled rules in registration order."""
        return [rule for name, rule in self._rules.items() if name in self._enabled]

    def scheduled(self, sequence: Sequence[str]) -> list[SimulationRule]:
        """Enabled rules in the order ``sequence`` names them."""
        return [self._rules[name] for name in sequence if name in self._enabled]

    @property
    def enabled_names(self) -> list[str]:
        return [rule.name for rule in self.get_enabled()]
