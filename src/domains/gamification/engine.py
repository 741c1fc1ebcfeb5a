# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Achievement evaluation and unlock.

Evaluation runs in two passes:

1. Base pass: every not-yet-unlocked achievement whose rule is not a
   meta rule is checked against the learner's metrics.
2. Meta pass: rules over the unlocked count (All-Star, Hall of Fame,
   Legendary, ...) are checked against the count after pass 1. Each
   meta unlock raises the count seen by the meta rules after it.

Selection is done by pure functions over an immutable UnlockAccumulator.
Persistence happens in AchievementEngine; only unlocks whose write
succeeded count towards the meta pass.

Usage:
    engine = AchievementEngine(store)
    titles = await engine.evaluate_and_unlock(
        learner_id, metrics, catalog.achievements, activity.unlocked_achievement_ids, now
    )
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from src.domains.analytics.models import AchievementDefinition, LearnerMetrics
from src.domains.analytics.store import ActivityStore, StoreWriteError
from src.domains.gamification.registry import RuleRegistry, get_rule_registry
from src.domains.gamification.rules import AchievementRule, RuleContext, RuleEvaluationError

logger = logging.getLogger(__name__)


class UnlockOutcome(str, Enum):
    """Result of persisting one unlock."""

    UNLOCKED = "unlocked"
    ALREADY_UNLOCKED = "already_unlocked"
    FAILED = "failed"


@dataclass(frozen=True)
class UnlockAccumulator:
    """Unlock state threaded through one evaluation.

    Attributes:
        unlocked_ids: Every achievement id known to be unlocked.
        new_titles: Titles unlocked by this evaluation, in unlock order.
    """

    unlocked_ids: frozenset[str] = field(default_factory=frozenset)
    new_titles: tuple[str, ...] = ()

    @property
    def unlocked_count(self) -> int:
        return len(self.unlocked_ids)

    def is_unlocked(self, achievement_id: str) -> bool:
        return achievement_id in self.unlocked_ids

    def record(self, definition: AchievementDefinition, is_new: bool = True) -> "UnlockAccumulator":
        """Return a copy with the achievement counted as unlocked.

        Args:
            definition: The unlocked achievement.
            is_new: Whether this evaluation performed the unlock. Unlocks
                made by a concurrent writer count but are not reported.
        """
        titles = self.new_titles + (definition.title,) if is_new else self.new_titles
        return replace(
            self,
            unlocked_ids=self.unlocked_ids | {definition.id},
            new_titles=titles,
        )


def unresolved_definitions(
    catalog: Iterable[AchievementDefinition],
    registry: RuleRegistry,
) -> list[AchievementDefinition]:
    """List achievements whose rule_key is missing or not registered.

    Such achievements are never unlocked; they are not matched by title.
    """
    return [d for d in catalog if registry.get_optional(d.rule_key) is None]


def _check(
    definition: AchievementDefinition,
    rule: AchievementRule,
    metrics: LearnerMetrics,
    context: RuleContext,
) -> bool:
    """Evaluate one rule, treating a failing rule as unsatisfied."""
    try:
        return rule.evaluate(metrics, context)
    except RuleEvaluationError as e:
        logger.error("Skipping achievement '%s': %s", definition.title, e)
        return False


def evaluate_base_rules(
    metrics: LearnerMetrics,
    catalog: Sequence[AchievementDefinition],
    accumulator: UnlockAccumulator,
    registry: RuleRegistry,
) -> list[AchievementDefinition]:
    """Select the non-meta achievements the learner has earned.

    Args:
        metrics: The learner's metrics.
        catalog: All achievement definitions.
        accumulator: Unlock state before the pass.
        registry: Rule registry.

    Returns:
        Newly earned achievements in catalog order.
    """
    context = RuleContext(unlocked_count=accumulator.unlocked_count, catalog_size=len(catalog))
    earned = []
    for definition in catalog:
        if accumulator.is_unlocked(definition.id):
            continue
        rule = registry.get_optional(definition.rule_key)
        if rule is None or rule.is_meta:
            continue
        if _check(definition, rule, metrics, context):
            earned.append(definition)
    return earned


def evaluate_meta_rules(
    metrics: LearnerMetrics,
    catalog: Sequence[AchievementDefinition],
    accumulator: UnlockAccumulator,
    registry: RuleRegistry,
    candidates: Iterable[AchievementDefinition] | None = None,
) -> list[AchievementDefinition]:
    """Select the meta achievements reachable from the current count.

    Each selected achievement raises the count seen by later candidates,
    so one pass converges: an All-Star earned here can feed Hall of Fame.

    Args:
        metrics: The learner's metrics.
        catalog: All achievement definitions (sets the catalog size).
        accumulator: Unlock state after the base pass.
        registry: Rule registry.
        candidates: Definitions to consider, defaults to the whole catalog.

    Returns:
        Newly earned meta achievements in catalog order.
    """
    catalog_size = len(catalog)
    state = accumulator
    earned = []
    for definition in catalog if candidates is None else candidates:
        if state.is_unlocked(definition.id):
            continue
        rule = registry.get_optional(definition.rule_key)
        if rule is None or not rule.is_meta:
            continue
        context = RuleContext(unlocked_count=state.unlocked_count, catalog_size=catalog_size)
        if _check(definition, rule, metrics, context):
            earned.append(definition)
            state = state.record(definition)
    return earned


class AchievementEngine:
    """Evaluates achievement rules and records unlocks.

    Unlocks are idempotent: the store keeps the first unlock and its
    timestamp, and repeated evaluations report nothing new.

    Attributes:
        _store: Activity store used for unlock writes.
        _registry: Rule registry.
        _write_attempts: Attempts per unlock write before giving up.
    """

    def __init__(
        self,
        store: ActivityStore,
        registry: RuleRegistry | None = None,
        write_attempts: int = 2,
    ) -> None:
        self._store = store
        self._registry = registry if registry is not None else get_rule_registry()
        self._write_attempts = max(write_attempts, 1)

    async def evaluate_and_unlock(
        self,
        learner_id: str,
        metrics: LearnerMetrics,
        catalog: Sequence[AchievementDefinition],
        already_unlocked: Iterable[str],
        now: datetime,
    ) -> list[str]:
        """Evaluate every rule and persist new unlocks.

        A failing rule or a failing write affects only its own
        achievement; the rest of the evaluation continues and a later
        call picks up whatever was missed.

        Args:
            learner_id: Learner identifier.
            metrics: The learner's metrics.
            catalog: All achievement definitions.
            already_unlocked: Ids of achievements unlocked before this call.
            now: Unlock timestamp.

        Returns:
            Titles unlocked by this call, base pass first.
        """
        accumulator = UnlockAccumulator(unlocked_ids=frozenset(already_unlocked))

        for definition in unresolved_definitions(catalog, self._registry):
            logger.warning(
                "Achievement '%s' has no registered rule (rule_key=%s), skipping",
                definition.title,
                definition.rule_key,
            )

        # Pass 1
        for definition in evaluate_base_rules(metrics, catalog, accumulator, self._registry):
            accumulator = await self._unlock(learner_id, definition, now, accumulator)

        # Pass 2: re-select after a failed write so later meta rules see the real count
        pending = list(catalog)
        while True:
            selected = evaluate_meta_rules(metrics, catalog, accumulator, self._registry, pending)
            if not selected:
                break

            failed = False
            for definition in selected:
                pending.remove(definition)
                before = accumulator
                accumulator = await self._unlock(learner_id, definition, now, accumulator)
                if accumulator is before:
                    failed = True
                    break
            if not failed:
                break

        if accumulator.new_titles:
            logger.info(
                "Learner %s unlocked %d achievements: %s",
                learner_id,
                len(accumulator.new_titles),
                ", ".join(accumulator.new_titles),
            )
        return list(accumulator.new_titles)

    async def _unlock(
        self,
        learner_id: str,
        definition: AchievementDefinition,
        now: datetime,
        accumulator: UnlockAccumulator,
    ) -> UnlockAccumulator:
        """Persist one unlock and fold it into the accumulator.

        Returns the same accumulator object when the write failed.
        """
        outcome = await self._persist(learner_id, definition, now)
        if outcome is UnlockOutcome.FAILED:
            return accumulator
        return accumulator.record(definition, is_new=outcome is UnlockOutcome.UNLOCKED)

    async def _persist(
        self,
        learner_id: str,
        definition: AchievementDefinition,
        now: datetime,
    ) -> UnlockOutcome:
        for attempt in range(1, self._write_attempts + 1):
            try:
                created = await self._store.upsert_achievement_unlock(learner_id, definition.id, now)
            except StoreWriteError as e:
                logger.warning(
                    "Unlock write for '%s' failed (attempt %d/%d): %s",
                    definition.title,
                    attempt,
                    self._write_attempts,
                    e,
                )
                continue
            return UnlockOutcome.UNLOCKED if created else UnlockOutcome.ALREADY_UNLOCKED

        logger.error("Giving up on unlock of '%s' for learner %s", definition.title, learner_id)
        return UnlockOutcome.FAILED
