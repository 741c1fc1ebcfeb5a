# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data models for the analytics domain.

This module defines Pydantic models and enums for:
- Raw learner activity rows (lesson/topic progress, quiz attempts, study sessions)
- Shared catalog entries (topics, subjects, lessons, achievements)
- Derived learner metrics
- Daily report structures (struggling topics, needs-work items)

Activity and catalog rows are produced outside this package; the
engine only reads them. Achievement unlocks and daily reports are the
only entities it writes.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from functools import cached_property
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Activity Records
# =============================================================================


class LessonProgressRecord(BaseModel):
    """Completion state of one lesson for a learner."""

    model_config = ConfigDict(frozen=True)

    lesson_id: str
    completed: bool = False
    updated_at: datetime | None = Field(
        default=None,
        description="Last change of the row, used as completion time",
    )


class TopicProgressRecord(BaseModel):
    """Progress of a learner through one topic.

    ``completed`` is expected to imply ``progress == 100`` but drift is
    tolerated: every consumer checks the field it actually needs.
    """

    model_config = ConfigDict(frozen=True)

    topic_id: str
    progress: int = Field(default=0, ge=0, le=100)
    completed: bool = False
    updated_at: datetime | None = None


class QuizAttemptRecord(BaseModel):
    """A single quiz attempt (append-only)."""

    model_config = ConfigDict(frozen=True)

    topic_id: str
    percentage: float = Field(ge=0, le=100)
    created_at: datetime


class StudySessionRecord(BaseModel):
    """A study session (append-only)."""

    model_config = ConfigDict(frozen=True)

    created_at: datetime
    minutes: int = Field(default=0, ge=0)


# =============================================================================
# Catalog Entries
# =============================================================================


class TopicCatalogEntry(BaseModel):
    """Static topic reference data shared across learners."""

    model_config = ConfigDict(frozen=True)

    id: str
    subject_id: str
    name: str = ""
    grade: int | None = None
    is_assessment: bool = False


class SubjectCatalogEntry(BaseModel):
    """Static subject reference data."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class LessonCatalogEntry(BaseModel):
    """Static lesson reference data (lesson to topic mapping)."""

    model_config = ConfigDict(frozen=True)

    id: str
    topic_id: str


class AchievementDefinition(BaseModel):
    """An achievement of the catalog.

    ``rule_key`` selects the unlock rule; ``title`` is display text only
    and may be edited freely without changing behavior.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    rule_key: str | None = None
    icon: str | None = None


class AchievementUnlockRecord(BaseModel):
    """Unlock state of one achievement for one learner.

    Write-once: once ``unlocked`` is true it is never unset and
    ``unlocked_at`` never changes.
    """

    model_config = ConfigDict(frozen=True)

    learner_id: str
    achievement_id: str
    unlocked: bool = True
    unlocked_at: datetime | None = None


# =============================================================================
# Snapshots
# =============================================================================


@dataclass
class ActivitySnapshot:
    """Everything recorded for one learner, read in a single fan-out."""

    learner_id: str
    lesson_progress: list[LessonProgressRecord] = field(default_factory=list)
    topic_progress: list[TopicProgressRecord] = field(default_factory=list)
    quiz_attempts: list[QuizAttemptRecord] = field(default_factory=list)
    study_sessions: list[StudySessionRecord] = field(default_factory=list)
    unlocked_achievement_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def has_activity(self) -> bool:
        """Check whether the learner has recorded any learning activity."""
        return bool(
            any(lp.completed for lp in self.lesson_progress)
            or any(tp.progress > 0 or tp.completed for tp in self.topic_progress)
            or self.quiz_attempts
            or self.study_sessions
        )


@dataclass
class CatalogSnapshot:
    """The shared catalogs with lookup helpers.

    Lookups return None for unknown ids; callers exclude such rows from
    their aggregates instead of failing.
    """

    topics: list[TopicCatalogEntry] = field(default_factory=list)
    subjects: list[SubjectCatalogEntry] = field(default_factory=list)
    lessons: list[LessonCatalogEntry] = field(default_factory=list)
    achievements: list[AchievementDefinition] = field(default_factory=list)

    @cached_property
    def topics_by_id(self) -> dict[str, TopicCatalogEntry]:
        return {t.id: t for t in self.topics}

    @cached_property
    def subjects_by_id(self) -> dict[str, SubjectCatalogEntry]:
        return {s.id: s for s in self.subjects}

    @cached_property
    def lessons_by_id(self) -> dict[str, LessonCatalogEntry]:
        return {lesson.id: lesson for lesson in self.lessons}

    @cached_property
    def lessons_by_topic(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {}
        for lesson in self.lessons:
            grouped.setdefault(lesson.topic_id, []).append(lesson.id)
        return grouped

    def topic(self, topic_id: str) -> TopicCatalogEntry | None:
        """Get a topic by id."""
        return self.topics_by_id.get(topic_id)

    def subject(self, subject_id: str) -> SubjectCatalogEntry | None:
        """Get a subject by id."""
        return self.subjects_by_id.get(subject_id)

    def subject_of_lesson(self, lesson_id: str) -> str | None:
        """Resolve a lesson to its subject id through its topic."""
        lesson = self.lessons_by_id.get(lesson_id)
        if lesson is None:
            return None
        topic = self.topic(lesson.topic_id)
        return topic.subject_id if topic else None


# =============================================================================
# Derived Metrics
# =============================================================================


class LearnerMetrics(BaseModel):
    """Metrics derived from one learner's activity.

    A learner without activity gets the all-zero default instance.
    Calendar-based fields use the report timezone.
    """

    # Lessons and topics
    completed_lesson_count: int = 0
    completed_topic_count: int = 0
    full_progress_topic_count: int = 0
    started_topic_count: int = 0
    near_complete_topic_count: int = 0
    has_progress_quarter: bool = False
    has_progress_half: bool = False
    has_progress_three_quarters: bool = False
    catalog_topic_count: int = 0

    # Quizzes
    quiz_attempt_count: int = 0
    perfect_score_count: int = 0
    high_score_count: int = 0
    excellent_score_count: int = 0
    average_quiz_percentage: float | None = None
    assessment_attempts: int = 0
    assessment_has_perfect: bool = False
    assessment_high_score_count: int = 0
    longest_high_score_run: int = 0
    longest_perfect_run: int = 0
    quiz_attempts_today: int = 0
    quiz_attempts_last_7_days: int = 0
    all_perfect_last_7_days: bool = False
    all_perfect_last_30_days: bool = False

    # Study time
    study_streak_days: int = 0
    total_study_minutes: int = 0
    total_study_hours: float = 0.0
    today_total_minutes: int = 0
    has_night_study: bool = False
    has_early_study: bool = False
    has_weekend_study: bool = False
    has_both_weekend_days: bool = False
    recent_weekends_studied: int = 0
    return_gap_days: int = 0

    # Daily pace
    lessons_completed_today: int = 0
    topics_completed_today: int = 0
    subjects_studied_today: int = 0

    # Grade and subject aggregates
    completed_topics_by_grade: dict[int, int] = Field(default_factory=dict)
    total_topics_by_grade: dict[int, int] = Field(default_factory=dict)
    quiz_attempts_by_grade: dict[int, int] = Field(default_factory=dict)
    high_score_attempts_by_grade: dict[int, int] = Field(default_factory=dict)
    completed_topics_by_subject: dict[str, int] = Field(default_factory=dict)
    total_topics_by_subject: dict[str, int] = Field(default_factory=dict)
    subject_count: int = 0
    subjects_with_completed_lessons: int = 0

    @property
    def completed_subject_count(self) -> int:
        """Number of subjects whose every catalog topic is completed."""
        return sum(
            1
            for subject_id, total in self.total_topics_by_subject.items()
            if total > 0 and self.completed_topics_by_subject.get(subject_id, 0) >= total
        )

    @property
    def subjects_with_topics(self) -> int:
        """Number of subjects that have at least one catalog topic."""
        return sum(1 for total in self.total_topics_by_subject.values() if total > 0)


# =============================================================================
# Daily Report
# =============================================================================


class NeedsWorkReason(str, Enum):
    """Why a topic needs attention, in priority order."""

    NOT_STARTED = "not_started"
    STALE_PROGRESS = "stale_progress"
    INCOMPLETE = "incomplete"
    LOW_SCORE = "low_score"

    @property
    def priority(self) -> int:
        """Sort priority (lower comes first)."""
        return _REASON_PRIORITY[self]


_REASON_PRIORITY = {
    NeedsWorkReason.NOT_STARTED: 1,
    NeedsWorkReason.STALE_PROGRESS: 2,
    NeedsWorkReason.INCOMPLETE: 3,
    NeedsWorkReason.LOW_SCORE: 4,
}


class StrugglingTopic(BaseModel):
    """A topic whose mean quiz percentage is below the struggling threshold."""

    topic_id: str
    topic_name: str
    subject_name: str
    average_score: int
    attempts: int
    last_attempt_date: datetime


class NeedsWorkItem(BaseModel):
    """A topic flagged for attention."""

    topic_id: str
    topic_name: str
    subject_name: str
    reason: NeedsWorkReason
    progress: int | None = None
    last_activity: datetime | None = None


class DailyReport(BaseModel):
    """Diagnostic report for one learner and one calendar day.

    At most one row exists per (learner_id, report_date); it is reused
    while fresh and replaced once it ages out.
    """

    id: str | None = None
    learner_id: str
    report_date: date
    struggling_topics: list[StrugglingTopic] = Field(default_factory=list)
    needs_work: list[NeedsWorkItem] = Field(default_factory=list)
    recommendations: str = ""
    overall_performance: str = ""
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")
