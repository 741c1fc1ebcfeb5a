# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Test doubles and builders for domain tests.

Provides an in-memory ActivityStore with the same upsert semantics as
the PostgreSQL adapter, plus small record and catalog builders.
"""

from datetime import date, datetime, timedelta

from src.domains.analytics.models import (
    AchievementDefinition,
    CatalogSnapshot,
    DailyReport,
    LessonCatalogEntry,
    LessonProgressRecord,
    QuizAttemptRecord,
    StudySessionRecord,
    SubjectCatalogEntry,
    TopicCatalogEntry,
    TopicProgressRecord,
)
from src.domains.analytics.store import ActivityStore, StoreUnavailableError, StoreWriteError


class InMemoryActivityStore(ActivityStore):
    """ActivityStore keeping everything in dictionaries.

    Attributes:
        unlocks: (learner_id, achievement_id) -> unlocked_at.
        reports: (learner_id, report_date) -> stored report.
        unlock_failures: Number of upcoming unlock writes that fail.
        failing_ids: Achievement ids whose unlock writes always fail.
        report_failures: Number of upcoming report writes that fail.
        unavailable: Make every read fail.
    """

    def __init__(self) -> None:
        self.lesson_progress: dict[str, list[LessonProgressRecord]] = {}
        self.topic_progress: dict[str, list[TopicProgressRecord]] = {}
        self.quiz_attempts: dict[str, list[QuizAttemptRecord]] = {}
        self.study_sessions: dict[str, list[StudySessionRecord]] = {}
        self.topics: list[TopicCatalogEntry] = []
        self.subjects: list[SubjectCatalogEntry] = []
        self.lessons: list[LessonCatalogEntry] = []
        self.achievements: list[AchievementDefinition] = []
        self.unlocks: dict[tuple[str, str], datetime] = {}
        self.reports: dict[tuple[str, date], DailyReport] = {}
        self.unlock_failures = 0
        self.failing_ids: set[str] = set()
        self.report_failures = 0
        self.unavailable = False
        self.unlock_calls: list[str] = []
        self.report_writes = 0
        self._next_report_id = 1

    def _check_available(self) -> None:
        if self.unavailable:
            raise StoreUnavailableError("store offline")

    async def read_lesson_progress(self, learner_id: str) -> list[LessonProgressRecord]:
        self._check_available()
        return list(self.lesson_progress.get(learner_id, []))

    async def read_topic_progress(self, learner_id: str) -> list[TopicProgressRecord]:
        self._check_available()
        return list(self.topic_progress.get(learner_id, []))

    async def read_quiz_attempts(self, learner_id: str) -> list[QuizAttemptRecord]:
        self._check_available()
        attempts = self.quiz_attempts.get(learner_id, [])
        return sorted(attempts, key=lambda a: a.created_at, reverse=True)

    async def read_study_sessions(self, learner_id: str) -> list[StudySessionRecord]:
        self._check_available()
        sessions = self.study_sessions.get(learner_id, [])
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    async def read_unlocked_achievements(self, learner_id: str) -> set[str]:
        self._check_available()
        return {achievement_id for (lid, achievement_id) in self.unlocks if lid == learner_id}

    async def read_topic_catalog(self) -> list[TopicCatalogEntry]:
        self._check_available()
        return list(self.topics)

    async def read_subject_catalog(self) -> list[SubjectCatalogEntry]:
        self._check_available()
        return list(self.subjects)

    async def read_lesson_catalog(self) -> list[LessonCatalogEntry]:
        self._check_available()
        return list(self.lessons)

    async def read_achievement_catalog(self) -> list[AchievementDefinition]:
        self._check_available()
        return list(self.achievements)

    async def upsert_achievement_unlock(
        self,
        learner_id: str,
        achievement_id: str,
        unlocked_at: datetime,
    ) -> bool:
        self.unlock_calls.append(achievement_id)
        if achievement_id in self.failing_ids:
            raise StoreWriteError("unlock write rejected")
        if self.unlock_failures > 0:
            self.unlock_failures -= 1
            raise StoreWriteError("unlock write failed")

        key = (learner_id, achievement_id)
        if key in self.unlocks:
            return False
        self.unlocks[key] = unlocked_at
        return True

    async def read_fresh_report(
        self,
        learner_id: str,
        report_date: date,
        created_after: datetime,
    ) -> DailyReport | None:
        self._check_available()
        report = self.reports.get((learner_id, report_date))
        if report is not None and report.created_at >= created_after:
            return report
        return None

    async def delete_stale_reports(
        self,
        learner_id: str,
        report_date: date,
        older_than: datetime,
    ) -> int:
        report = self.reports.get((learner_id, report_date))
        if report is not None and report.created_at < older_than:
            del self.reports[(learner_id, report_date)]
            return 1
        return 0

    async def upsert_daily_report(self, report: DailyReport) -> DailyReport:
        if self.report_failures > 0:
            self.report_failures -= 1
            raise StoreWriteError("report write failed")

        self.report_writes += 1
        key = (report.learner_id, report.report_date)
        existing = self.reports.get(key)
        if existing is not None:
            report_id = existing.id
        else:
            report_id = f"report-{self._next_report_id}"
            self._next_report_id += 1
        stored = report.model_copy(update={"id": report_id})
        self.reports[key] = stored
        return stored

    def catalog(self) -> CatalogSnapshot:
        """Build a snapshot of the configured catalogs."""
        return CatalogSnapshot(
            topics=list(self.topics),
            subjects=list(self.subjects),
            lessons=list(self.lessons),
            achievements=list(self.achievements),
        )


def make_topics(count: int, subject_id: str = "math", grade: int | None = None) -> list[TopicCatalogEntry]:
    """Build numbered catalog topics of one subject."""
    return [
        TopicCatalogEntry(
            id=f"{subject_id}-topic-{i}",
            subject_id=subject_id,
            name=f"{subject_id.title()} Topic {i}",
            grade=grade,
        )
        for i in range(1, count + 1)
    ]


def quiz(topic_id: str, percentage: float, at: datetime) -> QuizAttemptRecord:
    return QuizAttemptRecord(topic_id=topic_id, percentage=percentage, created_at=at)


def session(at: datetime, minutes: int = 30) -> StudySessionRecord:
    return StudySessionRecord(created_at=at, minutes=minutes)


def days_ago(now: datetime, days: int, hours: int = 0) -> datetime:
    return now - timedelta(days=days, hours=hours)

