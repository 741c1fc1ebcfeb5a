# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""PostgreSQL implementation of the activity store.

Uses SQLAlchemy 2.0 async API over a single AsyncSession. Unlock and
report writes are PostgreSQL ``INSERT ... ON CONFLICT`` upserts keyed by
the natural composite keys, so concurrent evaluations for the same
learner never duplicate rows and never move an unlock timestamp.

Example:
    from src.infrastructure.database.connection import get_session
    from src.infrastructure.database.sql_store import SQLAlchemyActivityStore

    async with get_session() as session:
        store = SQLAlchemyActivityStore(session)
        sessions = await store.read_study_sessions(learner_id)
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Executable, Result, delete, desc, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.analytics.models import (
    AchievementDefinition,
    DailyReport,
    LessonCatalogEntry,
    LessonProgressRecord,
    NeedsWorkItem,
    QuizAttemptRecord,
    StrugglingTopic,
    StudySessionRecord,
    SubjectCatalogEntry,
    TopicCatalogEntry,
    TopicProgressRecord,
)
from src.domains.analytics.store import (
    ActivityStore,
    StoreUnavailableError,
    StoreWriteError,
)
from src.infrastructure.database.models import (
    Achievement,
    AchievementUnlock,
    DailyReportRow,
    Lesson,
    LessonProgress,
    QuizAttempt,
    StudySession,
    Subject,
    Topic,
    TopicProgress,
)

logger = logging.getLogger(__name__)


class SQLAlchemyActivityStore(ActivityStore):
    """Activity store backed by PostgreSQL.

    An AsyncSession must not run statements concurrently, so statements
    issued through one store instance are serialized with a lock. Fan-out
    reads still overlap their Python-side work and stay correct.

    Attributes:
        _session: Database session.
        _commit_writes: Commit after each write so finished unlocks stand
            even if a later step fails.
    """

    def __init__(self, session: AsyncSession, commit_writes: bool = True) -> None:
        """Initialize the store.

        Args:
            session: Database session.
            commit_writes: Commit after each successful write.
        """
        self._session = session
        self._commit_writes = commit_writes
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Per-learner activity
    # -------------------------------------------------------------------------

    async def read_lesson_progress(self, learner_id: str) -> list[LessonProgressRecord]:
        stmt = select(LessonProgress).where(LessonProgress.learner_id == learner_id)
        rows = (await self._read(stmt)).scalars().all()
        return [
            LessonProgressRecord(
                lesson_id=str(row.lesson_id),
                completed=row.completed,
                updated_at=row.updated_at,
            )
            for row in rows
        ]

    async def read_topic_progress(self, learner_id: str) -> list[TopicProgressRecord]:
        stmt = select(TopicProgress).where(TopicProgress.learner_id == learner_id)
        rows = (await self._read(stmt)).scalars().all()
        return [
            TopicProgressRecord(
                topic_id=str(row.topic_id),
                progress=row.progress,
                completed=row.completed,
                updated_at=row.updated_at,
            )
            for row in rows
        ]

    async def read_quiz_attempts(self, learner_id: str) -> list[QuizAttemptRecord]:
        stmt = (
            select(QuizAttempt)
            .where(QuizAttempt.learner_id == learner_id)
            .order_by(desc(QuizAttempt.created_at))
        )
        rows = (await self._read(stmt)).scalars().all()
        return [
            QuizAttemptRecord(
                topic_id=str(row.topic_id),
                percentage=float(row.percentage),
                created_at=row.created_at,
            )
            for row in rows
        ]

    async def read_study_sessions(self, learner_id: str) -> list[StudySessionRecord]:
        stmt = (
            select(StudySession)
            .where(StudySession.learner_id == learner_id)
            .order_by(desc(StudySession.created_at))
        )
        rows = (await self._read(stmt)).scalars().all()
        return [StudySessionRecord(created_at=row.created_at, minutes=row.minutes) for row in rows]

    async def read_unlocked_achievements(self, learner_id: str) -> set[str]:
        stmt = select(AchievementUnlock.achievement_id).where(
            AchievementUnlock.learner_id == learner_id,
            AchievementUnlock.unlocked.is_(True),
        )
        result = await self._read(stmt)
        return {str(achievement_id) for achievement_id in result.scalars().all()}

    # -------------------------------------------------------------------------
    # Catalogs
    # -------------------------------------------------------------------------

    async def read_topic_catalog(self) -> list[TopicCatalogEntry]:
        stmt = select(Topic).order_by(Topic.sort_order, Topic.name)
        rows = (await self._read(stmt)).scalars().all()
        return [
            TopicCatalogEntry(
                id=str(row.id),
                subject_id=str(row.subject_id),
                name=row.name,
                grade=row.grade,
                is_assessment=row.is_assessment,
            )
            for row in rows
        ]

    async def read_subject_catalog(self) -> list[SubjectCatalogEntry]:
        stmt = select(Subject).order_by(Subject.sort_order, Subject.name)
        rows = (await self._read(stmt)).scalars().all()
        return [SubjectCatalogEntry(id=str(row.id), name=row.name) for row in rows]

    async def read_lesson_catalog(self) -> list[LessonCatalogEntry]:
        stmt = select(Lesson.id, Lesson.topic_id)
        rows = (await self._read(stmt)).all()
        return [LessonCatalogEntry(id=str(lesson_id), topic_id=str(topic_id)) for lesson_id, topic_id in rows]

    async def read_achievement_catalog(self) -> list[AchievementDefinition]:
        stmt = select(Achievement).order_by(Achievement.created_at, Achievement.title)
        rows = (await self._read(stmt)).scalars().all()
        return [
            AchievementDefinition(
                id=str(row.id),
                title=row.title,
                description=row.description,
                rule_key=row.rule_key,
                icon=row.icon,
            )
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def upsert_achievement_unlock(
        self,
        learner_id: str,
        achievement_id: str,
        unlocked_at: datetime,
    ) -> bool:
        stmt = insert(AchievementUnlock).values(
            learner_id=learner_id,
            achievement_id=achievement_id,
            unlocked=True,
            unlocked_at=unlocked_at,
        )
        # Only a row that is not yet unlocked may change
        stmt = stmt.on_conflict_do_update(
            index_elements=[AchievementUnlock.learner_id, AchievementUnlock.achievement_id],
            set_={
                "unlocked": True,
                "unlocked_at": stmt.excluded.unlocked_at,
            },
            where=AchievementUnlock.unlocked.is_(False),
        ).returning(AchievementUnlock.achievement_id)

        result = await self._write(stmt)
        return result.first() is not None

    async def read_fresh_report(
        self,
        learner_id: str,
        report_date: date,
        created_after: datetime,
    ) -> DailyReport | None:
        stmt = (
            select(DailyReportRow)
            .where(
                DailyReportRow.learner_id == learner_id,
                DailyReportRow.report_date == report_date,
                DailyReportRow.created_at >= created_after,
            )
            .order_by(desc(DailyReportRow.created_at))
            .limit(1)
        )
        row = (await self._read(stmt)).scalars().first()
        return _row_to_report(row) if row is not None else None

    async def delete_stale_reports(
        self,
        learner_id: str,
        report_date: date,
        older_than: datetime,
    ) -> int:
        stmt = delete(DailyReportRow).where(
            DailyReportRow.learner_id == learner_id,
            DailyReportRow.report_date == report_date,
            DailyReportRow.created_at < older_than,
        )
        result = await self._write(stmt)
        return result.rowcount or 0

    async def upsert_daily_report(self, report: DailyReport) -> DailyReport:
        payload = _report_payload(report)
        stmt = insert(DailyReportRow).values(
            id=report.id or str(uuid4()),
            learner_id=report.learner_id,
            report_date=report.report_date,
            **payload,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DailyReportRow.learner_id, DailyReportRow.report_date],
            set_=payload,
        ).returning(DailyReportRow.id)

        result = await self._write(stmt)
        report_id = result.scalar_one()
        return report.model_copy(update={"id": str(report_id)})

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _read(self, stmt: Executable) -> Result[Any]:
        """Execute a read statement.

        Raises:
            StoreUnavailableError: If the statement fails.
        """
        async with self._lock:
            try:
                return await self._session.execute(stmt)
            except SQLAlchemyError as e:
                raise StoreUnavailableError("Activity store read failed", e) from e

    async def _write(self, stmt: Executable) -> Result[Any]:
        """Execute a write statement and commit if configured.

        Raises:
            StoreWriteError: If the statement or the commit fails.
        """
        async with self._lock:
            try:
                result = await self._session.execute(stmt)
                if self._commit_writes:
                    await self._session.commit()
                return result
            except SQLAlchemyError as e:
                await self._session.rollback()
                raise StoreWriteError("Activity store write failed", e) from e


def _report_payload(report: DailyReport) -> dict[str, Any]:
    """Build the overwritable columns of a report row."""
    return {
        "struggling_topics": [t.model_dump(mode="json") for t in report.struggling_topics],
        "needs_work": [n.model_dump(mode="json") for n in report.needs_work],
        "recommendations": report.recommendations,
        "overall_performance": report.overall_performance,
        "created_at": report.created_at,
    }


def _row_to_report(row: DailyReportRow) -> DailyReport:
    """Convert a stored report row into a DailyReport."""
    return DailyReport(
        id=str(row.id),
        learner_id=str(row.learner_id),
        report_date=row.report_date,
        struggling_topics=[StrugglingTopic.model_validate(t) for t in row.struggling_topics or []],
        needs_work=[NeedsWorkItem.model_validate(n) for n in row.needs_work or []],
        recommendations=row.recommendations or "",
        overall_performance=row.overall_performance or "",
        created_at=row.created_at,
    )
