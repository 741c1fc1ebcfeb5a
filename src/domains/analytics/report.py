# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Daily diagnostic report.

This module provides:
- build_daily_report: pure report computation from activity and catalog
- ReportGenerator: the freshness-windowed get-or-create workflow

A report lists struggling topics (mean quiz score below the threshold,
worst first), topics that need work (not started, stale, incomplete,
low score; capped), template recommendations and a one-line summary of
overall performance.

At most one report exists per learner and calendar day. A report newer
than the freshness window is returned as stored; an older one is
deleted and recomputed.

Usage:
    generator = ReportGenerator(store, tz=settings.analytics.tz)
    report = await generator.get_or_create_daily_report(learner_id, utc_now())
"""

import asyncio
import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo

from src.core.config.settings import AnalyticsSettings
from src.domains.analytics.models import (
    ActivitySnapshot,
    CatalogSnapshot,
    DailyReport,
    NeedsWorkItem,
    NeedsWorkReason,
    QuizAttemptRecord,
    StrugglingTopic,
)
from src.domains.analytics.store import (
    ActivityStore,
    StoreWriteError,
    load_activity,
    load_catalog,
)
from src.utils.datetime import ensure_utc, local_date

logger = logging.getLogger(__name__)


FOCUS_RECOMMENDATION = (
    "Focus on reviewing {topic} - your average score is {score}%. "
    "Consider re-reading the lessons and practicing more."
)
NOT_STARTED_RECOMMENDATION = "Start working on: {topics}. These topics haven't been started yet."
STALE_RECOMMENDATION = (
    "You haven't made progress on some topics in over a week. "
    "Consider revisiting them to maintain your learning momentum."
)
ALL_CLEAR_RECOMMENDATION = (
    "Great job! Keep up the consistent studying. "
    "Consider exploring new topics or reviewing completed ones."
)
GETTING_STARTED_RECOMMENDATION = (
    "Welcome! Start with your first lesson to begin your learning journey. "
    "Complete lessons and take quizzes to get personalized recommendations."
)

EXCELLENT_PERFORMANCE = (
    "Excellent! You're making great progress with high completion rates and strong quiz scores."
)
GOOD_PERFORMANCE = (
    "Good progress! You're on track, but there's room for improvement in some areas."
)
STEADY_PERFORMANCE = "Steady progress. Focus on completing more topics and improving quiz scores."
GETTING_STARTED_PERFORMANCE = (
    "Getting started! Focus on building consistent study habits and completing lessons."
)


@dataclass(frozen=True)
class ReportPolicy:
    """Thresholds used when building a report."""

    struggling_threshold: float = 70.0
    stale_progress_days: int = 7
    needs_work_limit: int = 10
    recent_quiz_window: int = 10
    max_not_started_in_recommendation: int = 3
    low_lesson_completion_rate: float = 50.0

    @classmethod
    def from_settings(cls, settings: AnalyticsSettings) -> "ReportPolicy":
        return cls(
            struggling_threshold=settings.struggling_threshold,
            stale_progress_days=settings.stale_progress_days,
            needs_work_limit=settings.needs_work_limit,
            recent_quiz_window=settings.recent_quiz_window,
            max_not_started_in_recommendation=settings.max_not_started_in_recommendation,
            low_lesson_completion_rate=settings.low_lesson_completion_rate,
        )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


# =============================================================================
# Pure computation
# =============================================================================


def find_struggling_topics(
    attempts: list[QuizAttemptRecord],
    catalog: CatalogSnapshot,
    threshold: float = 70.0,
) -> list[StrugglingTopic]:
    """Find topics whose mean quiz percentage is below the threshold.

    Topics missing from the catalog, or whose subject is missing, are
    left out.

    Returns:
        Struggling topics, lowest mean first.
    """
    by_topic: dict[str, list[QuizAttemptRecord]] = defaultdict(list)
    for attempt in attempts:
        by_topic[attempt.topic_id].append(attempt)

    scored: list[tuple[float, StrugglingTopic]] = []
    for topic_id, topic_attempts in by_topic.items():
        mean = sum(a.percentage for a in topic_attempts) / len(topic_attempts)
        if mean >= threshold:
            continue

        topic = catalog.topic(topic_id)
        subject = catalog.subject(topic.subject_id) if topic else None
        if topic is None or subject is None:
            continue

        scored.append((
            mean,
            StrugglingTopic(
                topic_id=topic_id,
                topic_name=topic.name,
                subject_name=subject.name,
                average_score=round_half_up(mean),
                attempts=len(topic_attempts),
                last_attempt_date=max((a.created_at for a in topic_attempts), key=ensure_utc),
            ),
        ))

    scored.sort(key=lambda pair: pair[0])
    return [topic for _, topic in scored]


def find_needs_work(
    activity: ActivitySnapshot,
    catalog: CatalogSnapshot,
    now: datetime,
    policy: ReportPolicy,
    struggling_topic_ids: frozenset[str] = frozenset(),
) -> list[NeedsWorkItem]:
    """Classify catalog topics that need attention.

    Each topic gets at most one reason, the first that matches:
    not started, stale progress, incomplete progress, low lesson
    completion (reported as incomplete) and finally low quiz score.

    Returns:
        Items ordered by reason priority, catalog order within a reason,
        capped at the policy limit.
    """
    progress_by_topic = {p.topic_id: p for p in activity.topic_progress}
    completed_lessons = {lp.lesson_id for lp in activity.lesson_progress if lp.completed}
    stale_before = ensure_utc(now) - timedelta(days=policy.stale_progress_days)

    items: list[NeedsWorkItem] = []
    for topic in catalog.topics:
        subject = catalog.subject(topic.subject_id)
        if subject is None:
            continue

        progress = progress_by_topic.get(topic.id)
        topic_lessons = catalog.lessons_by_topic.get(topic.id, [])
        item = None

        if progress is None or progress.progress == 0:
            item = NeedsWorkItem(
                topic_id=topic.id,
                topic_name=topic.name,
                subject_name=subject.name,
                reason=NeedsWorkReason.NOT_STARTED,
            )
        elif 0 < progress.progress < 100 and not progress.completed:
            is_stale = progress.updated_at is not None and ensure_utc(progress.updated_at) < stale_before
            item = NeedsWorkItem(
                topic_id=topic.id,
                topic_name=topic.name,
                subject_name=subject.name,
                reason=NeedsWorkReason.STALE_PROGRESS if is_stale else NeedsWorkReason.INCOMPLETE,
                progress=progress.progress,
                last_activity=progress.updated_at,
            )
        elif topic_lessons:
            done = sum(1 for lesson_id in topic_lessons if lesson_id in completed_lessons)
            rate = done / len(topic_lessons) * 100
            if rate < policy.low_lesson_completion_rate:
                item = NeedsWorkItem(
                    topic_id=topic.id,
                    topic_name=topic.name,
                    subject_name=subject.name,
                    reason=NeedsWorkReason.INCOMPLETE,
                    progress=round_half_up(rate),
                    last_activity=progress.updated_at,
                )

        if item is None and topic.id in struggling_topic_ids:
            item = NeedsWorkItem(
                topic_id=topic.id,
                topic_name=topic.name,
                subject_name=subject.name,
                reason=NeedsWorkReason.LOW_SCORE,
                progress=progress.progress if progress else None,
                last_activity=progress.updated_at if progress else None,
            )

        if item is not None:
            items.append(item)

    # sorted() is stable, so catalog order holds within a reason
    items = sorted(items, key=lambda i: i.reason.priority)
    return items[: policy.needs_work_limit]


def build_recommendations(
    struggling: list[StrugglingTopic],
    needs_work: list[NeedsWorkItem],
    has_activity: bool,
    policy: ReportPolicy,
) -> str:
    """Assemble the recommendation text from fixed templates."""
    if not has_activity:
        return GETTING_STARTED_RECOMMENDATION

    sentences = []
    if struggling:
        worst = struggling[0]
        sentences.append(FOCUS_RECOMMENDATION.format(topic=worst.topic_name, score=worst.average_score))

    not_started = [i for i in needs_work if i.reason is NeedsWorkReason.NOT_STARTED]
    if not_started:
        names = ", ".join(i.topic_name for i in not_started[: policy.max_not_started_in_recommendation])
        sentences.append(NOT_STARTED_RECOMMENDATION.format(topics=names))

    if any(i.reason is NeedsWorkReason.STALE_PROGRESS for i in needs_work):
        sentences.append(STALE_RECOMMENDATION)

    if not sentences:
        sentences.append(ALL_CLEAR_RECOMMENDATION)

    return " ".join(sentences)


def classify_performance(completion_rate: int, recent_average: int) -> str:
    """Pick the overall-performance summary for the two rates (0-100)."""
    if completion_rate >= 80 and recent_average >= 80:
        return EXCELLENT_PERFORMANCE
    if completion_rate >= 60 and recent_average >= 70:
        return GOOD_PERFORMANCE
    if completion_rate >= 40 or recent_average >= 60:
        return STEADY_PERFORMANCE
    return GETTING_STARTED_PERFORMANCE


def summarize_performance(
    activity: ActivitySnapshot,
    catalog: CatalogSnapshot,
    recent_quiz_window: int = 10,
) -> str:
    """Classify overall performance from completion and recent quiz scores."""
    total_topics = len(catalog.topics)
    completed_topics = sum(1 for p in activity.topic_progress if p.completed)
    completion_rate = round_half_up(completed_topics / total_topics * 100) if total_topics else 0

    newest_first = sorted(activity.quiz_attempts, key=lambda a: ensure_utc(a.created_at), reverse=True)
    recent = newest_first[:recent_quiz_window]
    recent_average = round_half_up(sum(a.percentage for a in recent) / len(recent)) if recent else 0

    return classify_performance(completion_rate, recent_average)


def build_daily_report(
    activity: ActivitySnapshot,
    catalog: CatalogSnapshot,
    now: datetime,
    tz: tzinfo = timezone.utc,
    policy: ReportPolicy | None = None,
) -> DailyReport:
    """Compute a daily report without touching the store.

    Args:
        activity: The learner's activity rows.
        catalog: Shared catalogs.
        now: Current time, also used as the report's created_at.
        tz: Timezone whose calendar defines the report date.
        policy: Report thresholds, defaults to ReportPolicy().

    Returns:
        An unsaved DailyReport.
    """
    policy = policy or ReportPolicy()

    struggling = find_struggling_topics(activity.quiz_attempts, catalog, policy.struggling_threshold)
    needs_work = find_needs_work(
        activity,
        catalog,
        now,
        policy,
        frozenset(t.topic_id for t in struggling),
    )

    return DailyReport(
        learner_id=activity.learner_id,
        report_date=local_date(now, tz),
        struggling_topics=struggling,
        needs_work=needs_work,
        recommendations=build_recommendations(struggling, needs_work, activity.has_activity, policy),
        overall_performance=summarize_performance(activity, catalog, policy.recent_quiz_window),
        created_at=now,
    )


# =============================================================================
# Freshness workflow
# =============================================================================


class ReportGenerator:
    """Gets or creates the daily report of a learner.

    Attributes:
        _store: Activity store.
        _policy: Report thresholds.
        _freshness: How long a stored report is reused.
        _tz: Calendar timezone for report dates.
        _write_attempts: Attempts for the report upsert.
    """

    def __init__(
        self,
        store: ActivityStore,
        policy: ReportPolicy | None = None,
        freshness: timedelta = timedelta(minutes=30),
        tz: tzinfo = timezone.utc,
        write_attempts: int = 2,
    ) -> None:
        self._store = store
        self._policy = policy or ReportPolicy()
        self._freshness = freshness
        self._tz = tz
        self._write_attempts = max(write_attempts, 1)

    async def get_today_report(self, learner_id: str, now: datetime) -> DailyReport | None:
        """Get today's report if it is still fresh, without recomputing."""
        return await self._store.read_fresh_report(
            learner_id,
            local_date(now, self._tz),
            now - self._freshness,
        )

    async def get_or_create_daily_report(
        self,
        learner_id: str,
        now: datetime,
        activity: ActivitySnapshot | None = None,
        catalog: CatalogSnapshot | None = None,
    ) -> DailyReport:
        """Return today's fresh report, or compute and store a new one.

        Args:
            learner_id: Learner identifier.
            now: Current time.
            activity: Already loaded activity, read from the store if None.
            catalog: Already loaded catalogs, read from the store if None.

        Returns:
            The fresh stored report or the newly stored one.

        Raises:
            StoreUnavailableError: If a read fails.
            StoreWriteError: If the report cannot be stored.
        """
        fresh = await self.get_today_report(learner_id, now)
        if fresh is not None:
            logger.debug("Reusing daily report %s for learner %s", fresh.id, learner_id)
            return fresh

        report_date = local_date(now, self._tz)
        try:
            deleted = await self._store.delete_stale_reports(learner_id, report_date, now - self._freshness)
            if deleted:
                logger.debug("Deleted %d stale reports for learner %s", deleted, learner_id)
        except StoreWriteError as e:
            # The upsert below overwrites the same row
            logger.warning("Stale report cleanup failed for learner %s: %s", learner_id, e)

        if activity is None and catalog is None:
            activity, catalog = await asyncio.gather(
                load_activity(self._store, learner_id),
                load_catalog(self._store),
            )
        elif activity is None:
            activity = await load_activity(self._store, learner_id)
        elif catalog is None:
            catalog = await load_catalog(self._store)

        report = build_daily_report(activity, catalog, now, self._tz, self._policy)
        stored = await self._save(report)

        logger.info(
            "Created daily report for learner %s: %d struggling, %d needs work",
            learner_id,
            len(stored.struggling_topics),
            len(stored.needs_work),
        )
        return stored

    async def _save(self, report: DailyReport) -> DailyReport:
        last_error: StoreWriteError | None = None
        for attempt in range(1, self._write_attempts + 1):
            try:
                return await self._store.upsert_daily_report(report)
            except StoreWriteError as e:
                last_error = e
                logger.warning(
                    "Report write for learner %s failed (attempt %d/%d): %s",
                    report.learner_id,
                    attempt,
                    self._write_attempts,
                    e,
                )
        raise last_error
