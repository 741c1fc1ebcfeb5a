# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learner metric aggregation.

This module derives the metrics used by the achievement rules from a
learner's raw activity rows:
- Completion counts (lessons, topics, subjects, grades)
- Quiz statistics (high/perfect scores, runs, assessment results)
- Study time, streaks and time-of-day / weekend flags
- Daily pace (lessons, topics and subjects finished today)

compute_metrics() is a pure function: it never reads the clock and
never touches the store. "Now" and the calendar timezone are inputs.

Usage:
    from src.domains.analytics.aggregator import compute_metrics

    metrics = compute_metrics(activity, catalog, now=utc_now(), tz=settings.analytics.tz)
    print(metrics.study_streak_days)
"""

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone, tzinfo

from src.domains.analytics.models import (
    ActivitySnapshot,
    CatalogSnapshot,
    LearnerMetrics,
    QuizAttemptRecord,
    StudySessionRecord,
)
from src.utils.datetime import is_weekend, local_date, most_recent_saturday, to_local

logger = logging.getLogger(__name__)

HIGH_SCORE = 90
EXCELLENT_SCORE = 95
PERFECT_SCORE = 100
NIGHT_STUDY_HOUR = 20
EARLY_STUDY_HOUR = 8
WEEKENDS_TRACKED = 4


def compute_metrics(
    activity: ActivitySnapshot,
    catalog: CatalogSnapshot,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> LearnerMetrics:
    """Compute all derived metrics for one learner.

    Rows that reference topics, lessons or subjects missing from the
    catalog still count towards plain totals but are left out of the
    grade and subject aggregates.

    Args:
        activity: The learner's activity rows.
        catalog: Shared catalogs.
        now: Current time.
        tz: Timezone whose calendar defines "today".

    Returns:
        LearnerMetrics for the learner.
    """
    today = local_date(now, tz)

    metrics = LearnerMetrics(
        catalog_topic_count=len(catalog.topics),
        subject_count=len(catalog.subjects),
    )
    _apply_topic_metrics(metrics, activity, catalog, today, tz)
    _apply_lesson_metrics(metrics, activity, catalog, today, tz)
    _apply_quiz_metrics(metrics, activity.quiz_attempts, catalog, today, tz)
    _apply_study_metrics(metrics, activity.study_sessions, today, tz)

    logger.debug(
        "Computed metrics for learner %s: lessons=%d topics=%d quizzes=%d streak=%d",
        activity.learner_id,
        metrics.completed_lesson_count,
        metrics.completed_topic_count,
        metrics.quiz_attempt_count,
        metrics.study_streak_days,
    )
    return metrics


def compute_study_streak(session_dates: Iterable[date], today: date) -> int:
    """Count consecutive study days ending today or yesterday.

    Studying yesterday but not yet today keeps the streak alive, so a
    single day of study on either day yields 1. A most recent study day
    older than yesterday breaks the streak.

    Args:
        session_dates: Calendar dates with at least one session (duplicates allowed).
        today: Today's calendar date.

    Returns:
        Streak length in days.
    """
    dates = sorted(set(session_dates), reverse=True)
    if not dates:
        return 0

    yesterday = today - timedelta(days=1)
    if dates[0] not in (today, yesterday):
        return 0

    streak = 0
    expected = dates[0]
    for day in dates:
        if day != expected:
            break
        streak += 1
        expected -= timedelta(days=1)

    return streak


def longest_run(values: Iterable[bool]) -> int:
    """Length of the longest run of consecutive True values."""
    best = current = 0
    for value in values:
        current = current + 1 if value else 0
        best = max(best, current)
    return best


def _apply_topic_metrics(
    metrics: LearnerMetrics,
    activity: ActivitySnapshot,
    catalog: CatalogSnapshot,
    today: date,
    tz: tzinfo,
) -> None:
    """Fill topic completion, progress band and grade/subject totals."""
    completed_by_grade: Counter[int] = Counter()
    completed_by_subject: Counter[str] = Counter()

    for record in activity.topic_progress:
        progress = record.progress

        if record.completed:
            metrics.completed_topic_count += 1
            if record.updated_at is not None and local_date(record.updated_at, tz) == today:
                metrics.topics_completed_today += 1

            topic = catalog.topic(record.topic_id)
            if topic is not None:
                if topic.grade is not None:
                    completed_by_grade[topic.grade] += 1
                completed_by_subject[topic.subject_id] += 1

        if progress == 100:
            metrics.full_progress_topic_count += 1
        if progress > 0:
            metrics.started_topic_count += 1
        if progress >= 75:
            metrics.near_complete_topic_count += 1

        if 25 <= progress < 50:
            metrics.has_progress_quarter = True
        elif 50 <= progress < 75:
            metrics.has_progress_half = True
        elif 75 <= progress < 100:
            metrics.has_progress_three_quarters = True

    total_by_grade: Counter[int] = Counter()
    total_by_subject: Counter[str] = Counter()
    for topic in catalog.topics:
        if topic.grade is not None:
            total_by_grade[topic.grade] += 1
        total_by_subject[topic.subject_id] += 1

    metrics.completed_topics_by_grade = dict(completed_by_grade)
    metrics.completed_topics_by_subject = dict(completed_by_subject)
    metrics.total_topics_by_grade = dict(total_by_grade)
    metrics.total_topics_by_subject = dict(total_by_subject)


def _apply_lesson_metrics(
    metrics: LearnerMetrics,
    activity: ActivitySnapshot,
    catalog: CatalogSnapshot,
    today: date,
    tz: tzinfo,
) -> None:
    """Fill lesson completion counts and per-day subject coverage."""
    subjects_today: set[str] = set()
    subjects_any: set[str] = set()

    for record in activity.lesson_progress:
        if not record.completed:
            continue

        metrics.completed_lesson_count += 1
        subject_id = catalog.subject_of_lesson(record.lesson_id)
        if subject_id is not None:
            subjects_any.add(subject_id)

        if record.updated_at is not None and local_date(record.updated_at, tz) == today:
            metrics.lessons_completed_today += 1
            if subject_id is not None:
                subjects_today.add(subject_id)

    metrics.subjects_studied_today = len(subjects_today)
    metrics.subjects_with_completed_lessons = len(subjects_any)


def _apply_quiz_metrics(
    metrics: LearnerMetrics,
    attempts: list[QuizAttemptRecord],
    catalog: CatalogSnapshot,
    today: date,
    tz: tzinfo,
) -> None:
    """Fill quiz score counts, runs, assessment and per-grade statistics."""
    if not attempts:
        return

    week_start = today - timedelta(days=6)
    month_start = today - timedelta(days=29)
    last_week: list[float] = []
    last_month: list[float] = []
    attempts_by_grade: Counter[int] = Counter()
    high_by_grade: Counter[int] = Counter()

    for attempt in attempts:
        pct = attempt.percentage
        day = local_date(attempt.created_at, tz)

        if pct >= PERFECT_SCORE:
            metrics.perfect_score_count += 1
        if pct >= HIGH_SCORE:
            metrics.high_score_count += 1
        if pct >= EXCELLENT_SCORE:
            metrics.excellent_score_count += 1

        if day == today:
            metrics.quiz_attempts_today += 1
        if week_start <= day <= today:
            last_week.append(pct)
        if month_start <= day <= today:
            last_month.append(pct)

        topic = catalog.topic(attempt.topic_id)
        if topic is None:
            continue

        if topic.is_assessment:
            metrics.assessment_attempts += 1
            if pct >= PERFECT_SCORE:
                metrics.assessment_has_perfect = True
            if pct >= HIGH_SCORE:
                metrics.assessment_high_score_count += 1

        if topic.grade is not None:
            attempts_by_grade[topic.grade] += 1
            if pct >= HIGH_SCORE:
                high_by_grade[topic.grade] += 1

    chronological = sorted(attempts, key=lambda a: a.created_at)
    metrics.quiz_attempt_count = len(attempts)
    metrics.average_quiz_percentage = sum(a.percentage for a in attempts) / len(attempts)
    metrics.longest_high_score_run = longest_run(a.percentage >= HIGH_SCORE for a in chronological)
    metrics.longest_perfect_run = longest_run(a.percentage >= PERFECT_SCORE for a in chronological)
    metrics.quiz_attempts_last_7_days = len(last_week)
    metrics.all_perfect_last_7_days = bool(last_week) and all(p >= PERFECT_SCORE for p in last_week)
    metrics.all_perfect_last_30_days = bool(last_month) and all(p >= PERFECT_SCORE for p in last_month)
    metrics.quiz_attempts_by_grade = dict(attempts_by_grade)
    metrics.high_score_attempts_by_grade = dict(high_by_grade)


def _apply_study_metrics(
    metrics: LearnerMetrics,
    sessions: list[StudySessionRecord],
    today: date,
    tz: tzinfo,
) -> None:
    """Fill study time, streak, time-of-day and weekend metrics."""
    if not sessions:
        return

    study_dates: set[date] = set()
    weekend_days: set[int] = set()

    for session in sessions:
        started = to_local(session.created_at, tz)
        day = started.date()
        study_dates.add(day)
        metrics.total_study_minutes += session.minutes

        if is_weekend(day):
            weekend_days.add(day.weekday())

        if day == today:
            metrics.today_total_minutes += session.minutes
            if started.hour >= NIGHT_STUDY_HOUR:
                metrics.has_night_study = True
            if started.hour < EARLY_STUDY_HOUR:
                metrics.has_early_study = True

    metrics.total_study_hours = metrics.total_study_minutes / 60
    metrics.has_weekend_study = bool(weekend_days)
    metrics.has_both_weekend_days = len(weekend_days) >= 2
    metrics.study_streak_days = compute_study_streak(study_dates, today)

    ordered = sorted(study_dates, reverse=True)
    if ordered[0] == today and len(ordered) > 1:
        metrics.return_gap_days = (ordered[0] - ordered[1]).days

    saturday = most_recent_saturday(today)
    for week in range(WEEKENDS_TRACKED):
        start = saturday - timedelta(weeks=week)
        if start in study_dates or start + timedelta(days=1) in study_dates:
            metrics.recent_weekends_studied += 1
