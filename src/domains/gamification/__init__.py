# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gamification domain: achievement rules and unlocks.

This package provides:
- Rule types keyed by stable rule keys
- RuleRegistry with the default achievement catalog
- AchievementEngine for two-pass evaluation and idempotent unlocks
"""

from src.domains.gamification.defaults import (
    DEFAULT_ACHIEVEMENTS,
    AchievementTemplate,
    default_achievement_catalog,
    default_rules,
)
from src.domains.gamification.engine import (
    AchievementEngine,
    UnlockAccumulator,
    UnlockOutcome,
    evaluate_base_rules,
    evaluate_meta_rules,
    unresolved_definitions,
)
from src.domains.gamification.registry import (
    RuleNotRegisteredError,
    RuleRegistry,
    get_rule_registry,
    reset_rule_registry,
)
from src.domains.gamification.rules import (
    AchievementRule,
    AllButRule,
    GradeCompletionRule,
    GradeMasteryRule,
    MetricRule,
    RuleContext,
    RuleEvaluationError,
    UnlockCountRule,
)

__all__ = [
    # Rules
    "AchievementRule",
    "AllButRule",
    "GradeCompletionRule",
    "GradeMasteryRule",
    "MetricRule",
    "RuleContext",
    "RuleEvaluationError",
    "UnlockCountRule",
    # Registry
    "RuleNotRegisteredError",
    "RuleRegistry",
    "get_rule_registry",
    "reset_rule_registry",
    # Defaults
    "DEFAULT_ACHIEVEMENTS",
    "AchievementTemplate",
    "default_achievement_catalog",
    "default_rules",
    # Engine
    "AchievementEngine",
    "UnlockAccumulator",
    "UnlockOutcome",
    "evaluate_base_rules",
    "evaluate_meta_rules",
    "unresolved_definitions",
]
