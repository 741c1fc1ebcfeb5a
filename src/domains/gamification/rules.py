# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Achievement rule types.

Each achievement definition names a rule by its stable ``rule_key``.
A rule is one of a small closed set of variants:

- MetricRule: a predicate over LearnerMetrics
- GradeCompletionRule: every catalog topic of a grade is completed
- GradeMasteryRule: every quiz attempt on a grade's topics scored 90%+
- UnlockCountRule: at least N achievements are unlocked (meta)
- AllButRule: every achievement but N is unlocked (meta)

Meta rules depend on the unlocked count and are therefore evaluated in
a second pass, after the metric-based rules of the same call.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar

from src.domains.analytics.aggregator import HIGH_SCORE
from src.domains.analytics.models import LearnerMetrics


class RuleEvaluationError(Exception):
    """Raised when a rule cannot be evaluated.

    Attributes:
        rule_key: Key of the failing rule.
        original_error: The underlying exception, if any.
    """

    def __init__(self, rule_key: str, message: str, original_error: Exception | None = None) -> None:
        self.rule_key = rule_key
        self.original_error = original_error
        super().__init__(f"Rule '{rule_key}': {message}")


@dataclass(frozen=True)
class RuleContext:
    """State of the current evaluation visible to meta rules.

    Attributes:
        unlocked_count: Achievements unlocked so far, including this call.
        catalog_size: Number of achievements in the catalog.
    """

    unlocked_count: int
    catalog_size: int


class AchievementRule(ABC):
    """Base class for all achievement rules."""

    key: str
    is_meta: ClassVar[bool] = False

    @abstractmethod
    def is_satisfied(self, metrics: LearnerMetrics, context: RuleContext) -> bool:
        """Check whether the rule is satisfied.

        Args:
            metrics: The learner's metrics.
            context: Current evaluation state.

        Returns:
            True if the achievement should unlock.
        """

    def evaluate(self, metrics: LearnerMetrics, context: RuleContext) -> bool:
        """Evaluate the rule, wrapping unexpected failures.

        Raises:
            RuleEvaluationError: If the rule raises.
        """
        try:
            return bool(self.is_satisfied(metrics, context))
        except RuleEvaluationError:
            raise
        except Exception as e:
            raise RuleEvaluationError(self.key, "evaluation failed", e) from e


@dataclass(frozen=True)
class MetricRule(AchievementRule):
    """Unlocks when a predicate over the learner's metrics holds."""

    key: str
    predicate: Callable[[LearnerMetrics], bool]

    def is_satisfied(self, metrics: LearnerMetrics, context: RuleContext) -> bool:
        return self.predicate(metrics)


@dataclass(frozen=True)
class GradeCompletionRule(AchievementRule):
    """Unlocks when every catalog topic of a grade is completed."""

    key: str
    grade: int

    def is_satisfied(self, metrics: LearnerMetrics, context: RuleContext) -> bool:
        total = metrics.total_topics_by_grade.get(self.grade, 0)
        completed = metrics.completed_topics_by_grade.get(self.grade, 0)
        return total > 0 and completed >= total


@dataclass(frozen=True)
class GradeMasteryRule(AchievementRule):
    """Unlocks when every quiz attempt on a grade's topics scored high."""

    key: str
    grade: int

    def is_satisfied(self, metrics: LearnerMetrics, context: RuleContext) -> bool:
        attempts = metrics.quiz_attempts_by_grade.get(self.grade, 0)
        high = metrics.high_score_attempts_by_grade.get(self.grade, 0)
        return attempts > 0 and high >= attempts


@dataclass(frozen=True)
class UnlockCountRule(AchievementRule):
    """Unlocks when at least ``minimum`` achievements are unlocked."""

    key: str
    minimum: int
    is_meta: ClassVar[bool] = True

    def __post_init__(self) -> None:
        if self.minimum < 1:
            raise ValueError(f"Rule '{self.key}': minimum must be positive")

    def is_satisfied(self, metrics: LearnerMetrics, context: RuleContext) -> bool:
        return context.unlocked_count >= self.minimum


@dataclass(frozen=True)
class AllButRule(AchievementRule):
    """Unlocks when all but ``missing`` catalog achievements are unlocked.

    With ``missing=1`` the rule's own achievement is the one left out.
    At least one other achievement is always required.
    """

    key: str
    missing: int = 1
    is_meta: ClassVar[bool] = True

    def is_satisfied(self, metrics: LearnerMetrics, context: RuleContext) -> bool:
        required = max(context.catalog_size - self.missing, 1)
        return context.unlocked_count >= required


def at_least(field: str, minimum: float) -> Callable[[LearnerMetrics], bool]:
    """Build a predicate checking that a numeric metric reaches a minimum."""

    def predicate(metrics: LearnerMetrics) -> bool:
        return getattr(metrics, field) >= minimum

    predicate.__name__ = f"{field}_at_least_{minimum}"
    return predicate


def is_true(field: str) -> Callable[[LearnerMetrics], bool]:
    """Build a predicate checking a boolean metric."""

    def predicate(metrics: LearnerMetrics) -> bool:
        return bool(getattr(metrics, field))

    predicate.__name__ = field
    return predicate


def completed_all_subjects(metrics: LearnerMetrics) -> bool:
    """Every subject that has topics is fully completed."""
    subjects = metrics.subjects_with_topics
    return subjects > 0 and metrics.completed_subject_count >= subjects


def completed_all_topics(metrics: LearnerMetrics) -> bool:
    """Every catalog topic is completed."""
    completed = sum(metrics.completed_topics_by_subject.values())
    return metrics.catalog_topic_count > 0 and completed >= metrics.catalog_topic_count


def lessons_in_all_subjects(metrics: LearnerMetrics) -> bool:
    """At least one lesson completed in every subject."""
    return metrics.subject_count > 0 and metrics.subjects_with_completed_lessons >= metrics.subject_count


def excellent_average(metrics: LearnerMetrics) -> bool:
    """Quiz average of 90%+ over at least five attempts."""
    average = metrics.average_quiz_percentage
    return metrics.quiz_attempt_count >= 5 and average is not None and average >= HIGH_SCORE
