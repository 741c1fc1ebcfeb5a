# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for learner metric aggregation."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from fakes import days_ago, make_topics, quiz, session
from src.domains.analytics.aggregator import compute_metrics, compute_study_streak, longest_run
from src.domains.analytics.models import (
    ActivitySnapshot,
    CatalogSnapshot,
    LearnerMetrics,
    LessonCatalogEntry,
    LessonProgressRecord,
    SubjectCatalogEntry,
    TopicCatalogEntry,
    TopicProgressRecord,
)

LEARNER = "learner-1"


@pytest.fixture
def catalog() -> CatalogSnapshot:
    topics = make_topics(3, "math", grade=8) + make_topics(2, "science", grade=9)
    topics.append(
        TopicCatalogEntry(id="math-final", subject_id="math", name="Math Final", grade=8, is_assessment=True)
    )
    return CatalogSnapshot(
        topics=topics,
        subjects=[
            SubjectCatalogEntry(id="math", name="Mathematics"),
            SubjectCatalogEntry(id="science", name="Science"),
        ],
        lessons=[
            LessonCatalogEntry(id=f"{topic.id}-lesson-{n}", topic_id=topic.id)
            for topic in topics
            for n in (1, 2)
        ],
    )


class TestComputeStudyStreak:
    """Tests for compute_study_streak."""

    today = date(2025, 6, 11)

    def test_no_sessions(self) -> None:
        """No study days means no streak."""
        assert compute_study_streak([], self.today) == 0

    def test_only_yesterday_counts_as_one(self) -> None:
        """Studying yesterday keeps a one-day streak alive."""
        assert compute_study_streak([self.today - timedelta(days=1)], self.today) == 1

    def test_today_and_yesterday(self) -> None:
        """Two consecutive days ending today give a streak of two."""
        dates = [self.today, self.today - timedelta(days=1)]
        assert compute_study_streak(dates, self.today) == 2

    def test_gap_before_yesterday_stops_the_streak(self) -> None:
        """A gap of two or more days before yesterday is not bridged."""
        dates = [self.today - timedelta(days=1), self.today - timedelta(days=3), self.today - timedelta(days=4)]
        assert compute_study_streak(dates, self.today) == 1

    def test_last_study_two_days_ago_breaks_streak(self) -> None:
        """A most recent study day before yesterday yields zero."""
        dates = [self.today - timedelta(days=2), self.today - timedelta(days=3)]
        assert compute_study_streak(dates, self.today) == 0

    def test_duplicate_days_counted_once(self) -> None:
        """Several sessions on one day count as a single day."""
        dates = [self.today, self.today, self.today - timedelta(days=1)]
        assert compute_study_streak(dates, self.today) == 2

    def test_long_streak(self) -> None:
        """Thirty consecutive days ending yesterday give thirty."""
        dates = [self.today - timedelta(days=d) for d in range(1, 31)]
        assert compute_study_streak(dates, self.today) == 30


class TestLongestRun:
    """Tests for longest_run."""

    def test_empty(self) -> None:
        assert longest_run([]) == 0

    def test_longest_of_several_runs(self) -> None:
        assert longest_run([True, True, False, True, True, True, False]) == 3


class TestComputeMetricsEmpty:
    """Tests for a learner without activity."""

    def test_all_zero_without_catalog(self, fixed_now: datetime) -> None:
        """No activity and no catalog gives the default metrics."""
        metrics = compute_metrics(ActivitySnapshot(learner_id=LEARNER), CatalogSnapshot(), fixed_now)

        assert metrics == LearnerMetrics()

    def test_all_zero_with_catalog(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """Catalog sizes are reported but every activity metric is zero."""
        metrics = compute_metrics(ActivitySnapshot(learner_id=LEARNER), catalog, fixed_now)

        assert metrics.catalog_topic_count == 6
        assert metrics.subject_count == 2
        assert metrics.completed_lesson_count == 0
        assert metrics.completed_topic_count == 0
        assert metrics.quiz_attempt_count == 0
        assert metrics.average_quiz_percentage is None
        assert metrics.study_streak_days == 0
        assert metrics.total_study_hours == 0
        assert metrics.completed_subject_count == 0
        assert metrics.completed_topics_by_grade == {}


class TestTopicAndLessonMetrics:
    """Tests for completion counts and progress bands."""

    def test_completed_topics_and_subjects(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """Completing every topic of a subject completes the subject."""
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            topic_progress=[
                TopicProgressRecord(topic_id=t.id, progress=100, completed=True, updated_at=days_ago(fixed_now, 3))
                for t in catalog.topics
                if t.subject_id == "math"
            ],
        )

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.completed_topic_count == 4
        assert metrics.full_progress_topic_count == 4
        assert metrics.completed_topics_by_subject == {"math": 4}
        assert metrics.completed_subject_count == 1
        assert metrics.completed_topics_by_grade == {8: 4}
        assert metrics.total_topics_by_grade == {8: 4, 9: 2}
        assert metrics.topics_completed_today == 0

    def test_progress_bands_are_exclusive(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """A topic at 60% is in the half band only."""
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            topic_progress=[TopicProgressRecord(topic_id="math-topic-1", progress=60)],
        )

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.has_progress_half is True
        assert metrics.has_progress_quarter is False
        assert metrics.has_progress_three_quarters is False
        assert metrics.started_topic_count == 1
        assert metrics.near_complete_topic_count == 0

    def test_unknown_topic_excluded_from_aggregates(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """Rows for unknown topics count in totals only."""
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            topic_progress=[TopicProgressRecord(topic_id="ghost", progress=100, completed=True)],
        )

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.completed_topic_count == 1
        assert metrics.completed_topics_by_subject == {}
        assert metrics.completed_topics_by_grade == {}

    def test_lessons_today_and_subjects(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """Lessons completed today count towards daily pace and subject coverage."""
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            lesson_progress=[
                LessonProgressRecord(lesson_id="math-topic-1-lesson-1", completed=True, updated_at=fixed_now),
                LessonProgressRecord(lesson_id="science-topic-1-lesson-1", completed=True, updated_at=fixed_now),
                LessonProgressRecord(
                    lesson_id="math-topic-2-lesson-1", completed=True, updated_at=days_ago(fixed_now, 2)
                ),
                LessonProgressRecord(lesson_id="math-topic-2-lesson-2", completed=False, updated_at=fixed_now),
            ],
        )

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.completed_lesson_count == 3
        assert metrics.lessons_completed_today == 2
        assert metrics.subjects_studied_today == 2
        assert metrics.subjects_with_completed_lessons == 2


class TestQuizMetrics:
    """Tests for quiz score statistics."""

    def test_score_counts_and_average(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """High, excellent and perfect scores are counted with inclusive thresholds."""
        attempts = [
            quiz("math-topic-1", 100, days_ago(fixed_now, 1)),
            quiz("math-topic-1", 95, days_ago(fixed_now, 2)),
            quiz("math-topic-2", 90, days_ago(fixed_now, 3)),
            quiz("science-topic-1", 55, days_ago(fixed_now, 4)),
        ]
        activity = ActivitySnapshot(learner_id=LEARNER, quiz_attempts=attempts)

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.quiz_attempt_count == 4
        assert metrics.perfect_score_count == 1
        assert metrics.excellent_score_count == 2
        assert metrics.high_score_count == 3
        assert metrics.average_quiz_percentage == pytest.approx(85.0)
        assert metrics.quiz_attempts_by_grade == {8: 3, 9: 1}
        assert metrics.high_score_attempts_by_grade == {8: 3}

    def test_runs_follow_chronological_order(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """Consecutive-score runs use attempt time, not input order."""
        attempts = [
            quiz("math-topic-1", 100, days_ago(fixed_now, 1)),
            quiz("math-topic-1", 50, days_ago(fixed_now, 5)),
            quiz("math-topic-1", 100, days_ago(fixed_now, 2)),
            quiz("math-topic-1", 92, days_ago(fixed_now, 3)),
        ]
        activity = ActivitySnapshot(learner_id=LEARNER, quiz_attempts=attempts)

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.longest_high_score_run == 3
        assert metrics.longest_perfect_run == 2

    def test_assessment_attempts(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """Attempts on assessment topics are tracked separately."""
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            quiz_attempts=[
                quiz("math-final", 100, days_ago(fixed_now, 1)),
                quiz("math-final", 80, days_ago(fixed_now, 2)),
            ],
        )

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.assessment_attempts == 2
        assert metrics.assessment_has_perfect is True
        assert metrics.assessment_high_score_count == 1

    def test_time_windows(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """The weekly window spans today and the six days before it."""
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            quiz_attempts=[
                quiz("math-topic-1", 100, fixed_now - timedelta(hours=1)),
                quiz("math-topic-1", 100, days_ago(fixed_now, 6)),
                quiz("math-topic-1", 40, days_ago(fixed_now, 7)),
            ],
        )

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.quiz_attempts_today == 1
        assert metrics.quiz_attempts_last_7_days == 2
        assert metrics.all_perfect_last_7_days is True
        assert metrics.all_perfect_last_30_days is False


class TestStudyMetrics:
    """Tests for study time, streak and calendar flags."""

    def test_time_totals_and_streak(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """Minutes add up and today's sessions form the daily total."""
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            study_sessions=[
                session(fixed_now - timedelta(hours=2), minutes=90),
                session(fixed_now - timedelta(hours=1), minutes=45),
                session(days_ago(fixed_now, 1), minutes=45),
            ],
        )

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.total_study_minutes == 180
        assert metrics.total_study_hours == pytest.approx(3.0)
        assert metrics.today_total_minutes == 135
        assert metrics.study_streak_days == 2

    def test_night_and_early_study_today(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """Sessions after 20:00 and before 08:00 today set the flags."""
        midnight = datetime(2025, 6, 11, tzinfo=timezone.utc)
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            study_sessions=[
                session(midnight + timedelta(hours=6)),
                session(midnight + timedelta(hours=21)),
            ],
        )

        metrics = compute_metrics(activity, catalog, midnight + timedelta(hours=23))

        assert metrics.has_early_study is True
        assert metrics.has_night_study is True

    def test_calendar_follows_timezone(self, catalog: CatalogSnapshot) -> None:
        """The same instant can fall on another day and hour elsewhere."""
        now = datetime(2025, 6, 11, 23, 30, tzinfo=timezone.utc)
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            study_sessions=[session(datetime(2025, 6, 11, 22, 30, tzinfo=timezone.utc))],
        )

        in_utc = compute_metrics(activity, catalog, now)
        in_berlin = compute_metrics(activity, catalog, now, ZoneInfo("Europe/Berlin"))

        assert in_utc.has_night_study is True
        assert in_utc.has_early_study is False
        assert in_berlin.has_night_study is False
        assert in_berlin.has_early_study is True

    def test_weekends(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """Each of the last four weekends studied is counted once."""
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            study_sessions=[
                session(datetime(2025, 6, 8, 10, tzinfo=timezone.utc)),   # Sunday
                session(datetime(2025, 5, 31, 10, tzinfo=timezone.utc)),  # Saturday
                session(datetime(2025, 5, 25, 10, tzinfo=timezone.utc)),  # Sunday
                session(datetime(2025, 5, 17, 10, tzinfo=timezone.utc)),  # Saturday
                session(datetime(2025, 5, 10, 10, tzinfo=timezone.utc)),  # Saturday, too old
            ],
        )

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.has_weekend_study is True
        assert metrics.has_both_weekend_days is True
        assert metrics.recent_weekends_studied == 4

    def test_return_gap(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        """Returning today after ten days away records the gap."""
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            study_sessions=[session(fixed_now), session(days_ago(fixed_now, 10))],
        )

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.return_gap_days == 10
        assert metrics.study_streak_days == 1

    def test_no_return_gap_without_study_today(self, catalog: CatalogSnapshot, fixed_now: datetime) -> None:
        activity = ActivitySnapshot(
            learner_id=LEARNER,
            study_sessions=[session(days_ago(fixed_now, 1)), session(days_ago(fixed_now, 20))],
        )

        metrics = compute_metrics(activity, catalog, fixed_now)

        assert metrics.return_gap_days == 0
