# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Achievement rule registry.

This module provides:
- RuleRegistry: Central registry mapping rule keys to rules
- get_rule_registry: Factory function for the default registry

Achievement definitions reference rules by ``rule_key``. Adding an
achievement means seeding a row and, for new behavior, registering a
rule here; the engine itself never changes.

Usage:
    from src.domains.gamification.registry import get_rule_registry

    registry = get_rule_registry()
    rule = registry.get("week_warrior")
"""

import logging
from typing import Iterator

from src.domains.gamification.rules import AchievementRule

logger = logging.getLogger(__name__)


class RuleNotRegisteredError(Exception):
    """Raised when attempting to get an unregistered rule.

    Attributes:
        rule_key: The rule key that was not found.
    """

    def __init__(self, rule_key: str) -> None:
        self.rule_key = rule_key
        super().__init__(f"Rule '{rule_key}' not registered")


class RuleRegistry:
    """Registry for achievement rules.

    Attributes:
        _rules: Dictionary mapping rule keys to rules.

    Example:
        registry = RuleRegistry()
        registry.register(UnlockCountRule("all_star", 10))

        rule = registry.get("all_star")
    """

    def __init__(self, rules: list[AchievementRule] | None = None) -> None:
        """Initialize the registry.

        Args:
            rules: Optional rules to register immediately.

        Raises:
            ValueError: If two rules share a key.
        """
        self._rules: dict[str, AchievementRule] = {}
        for rule in rules or []:
            self.register(rule)

    def register(self, rule: AchievementRule) -> None:
        """Register a rule.

        Args:
            rule: Rule to register.

        Raises:
            ValueError: If a rule with this key already exists.
        """
        if rule.key in self._rules:
            raise ValueError(
                f"Rule '{rule.key}' is already registered. Use replace() to override."
            )

        self._rules[rule.key] = rule
        logger.debug("Registered achievement rule: %s", rule.key)

    def replace(self, rule: AchievementRule) -> None:
        """Register or replace a rule.

        Args:
            rule: Rule to register or replace.
        """
        if rule.key in self._rules:
            logger.info("Replacing achievement rule: %s", rule.key)
        self._rules[rule.key] = rule

    def unregister(self, rule_key: str) -> None:
        """Remove a rule.

        Args:
            rule_key: Key of the rule to remove.

        Raises:
            KeyError: If no rule is registered under this key.
        """
        if rule_key not in self._rules:
            raise KeyError(f"No rule registered for '{rule_key}'")

        del self._rules[rule_key]
        logger.info("Unregistered achievement rule: %s", rule_key)

    def get(self, rule_key: str) -> AchievementRule:
        """Get a rule by key.

        Raises:
            RuleNotRegisteredError: If no rule is registered.
        """
        if rule_key not in self._rules:
            raise RuleNotRegisteredError(rule_key)
        return self._rules[rule_key]

    def get_optional(self, rule_key: str | None) -> AchievementRule | None:
        """Get a rule by key, returning None if not found."""
        if rule_key is None:
            return None
        return self._rules.get(rule_key)

    def has(self, rule_key: str) -> bool:
        """Check if a rule is registered."""
        return rule_key in self._rules

    def list_keys(self) -> list[str]:
        """List all registered rule keys in registration order."""
        return list(self._rules.keys())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_key: str) -> bool:
        return rule_key in self._rules

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"RuleRegistry({len(self._rules)} rules)"


# Global default registry instance (lazy-loaded)
_default_registry: RuleRegistry | None = None


def get_rule_registry() -> RuleRegistry:
    """Get or create the global default rule registry.

    Returns:
        Registry holding every rule of the default catalog.
    """
    global _default_registry

    if _default_registry is None:
        _default_registry = _create_default_registry()

    return _default_registry


def _create_default_registry() -> RuleRegistry:
    from src.domains.gamification.defaults import default_rules

    registry = RuleRegistry(default_rules())
    logger.info("Created default RuleRegistry with %d rules", len(registry))
    return registry


def reset_rule_registry() -> None:
    """Reset the global default rule registry.

    Useful for testing or reconfiguration.
    """
    global _default_registry
    _default_registry = None
