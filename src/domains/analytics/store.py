# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Activity store adapter interface.

This module defines the read/write operations the analytics and
gamification domains need from persistence, plus the fan-out loaders
that read a learner's activity and the catalogs concurrently.

Error taxonomy:
- StoreUnavailableError: the store cannot be reached or a read failed.
  Propagated to the caller; nothing is computed from partial data.
- StoreWriteError: a write failed. Callers decide whether to retry.

Implementations:
- SQLAlchemyActivityStore (src.infrastructure.database.sql_store): PostgreSQL

Example:
    store = SQLAlchemyActivityStore(session)
    activity, catalog = await asyncio.gather(
        load_activity(store, learner_id),
        load_catalog(store),
    )
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Optional

from src.domains.analytics.models import (
    AchievementDefinition,
    ActivitySnapshot,
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

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base exception for activity store operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying driver or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the store error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class StoreUnavailableError(StoreError):
    """Raised when the store cannot be reached or a read fails."""


class StoreWriteError(StoreError):
    """Raised when a write to the store fails."""


class ActivityStore(ABC):
    """Abstract access to learner activity, catalogs and derived state.

    Reads are independent of each other and may be issued concurrently.
    Writes are idempotent upserts keyed by natural composite keys.
    """

    # -------------------------------------------------------------------------
    # Per-learner activity
    # -------------------------------------------------------------------------

    @abstractmethod
    async def read_lesson_progress(self, learner_id: str) -> list[LessonProgressRecord]:
        """Read all lesson progress rows of a learner."""

    @abstractmethod
    async def read_topic_progress(self, learner_id: str) -> list[TopicProgressRecord]:
        """Read all topic progress rows of a learner."""

    @abstractmethod
    async def read_quiz_attempts(self, learner_id: str) -> list[QuizAttemptRecord]:
        """Read all quiz attempts of a learner, most recent first."""

    @abstractmethod
    async def read_study_sessions(self, learner_id: str) -> list[StudySessionRecord]:
        """Read all study sessions of a learner, most recent first."""

    @abstractmethod
    async def read_unlocked_achievements(self, learner_id: str) -> set[str]:
        """Read the ids of achievements already unlocked by a learner."""

    # -------------------------------------------------------------------------
    # Catalogs
    # -------------------------------------------------------------------------

    @abstractmethod
    async def read_topic_catalog(self) -> list[TopicCatalogEntry]:
        """Read all topics."""

    @abstractmethod
    async def read_subject_catalog(self) -> list[SubjectCatalogEntry]:
        """Read all subjects."""

    @abstractmethod
    async def read_lesson_catalog(self) -> list[LessonCatalogEntry]:
        """Read the lesson to topic mapping."""

    @abstractmethod
    async def read_achievement_catalog(self) -> list[AchievementDefinition]:
        """Read all achievement definitions."""

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @abstractmethod
    async def upsert_achievement_unlock(
        self,
        learner_id: str,
        achievement_id: str,
        unlocked_at: datetime,
    ) -> bool:
        """Record an unlock; first write wins.

        Args:
            learner_id: Learner identifier.
            achievement_id: Achievement identifier.
            unlocked_at: Unlock timestamp to record on first unlock.

        Returns:
            True if this call unlocked the achievement, False if it was
            already unlocked (the existing row is left untouched).

        Raises:
            StoreWriteError: If the write fails.
        """

    @abstractmethod
    async def read_fresh_report(
        self,
        learner_id: str,
        report_date: date,
        created_after: datetime,
    ) -> DailyReport | None:
        """Read the newest report for the day created at or after a cutoff."""

    @abstractmethod
    async def delete_stale_reports(
        self,
        learner_id: str,
        report_date: date,
        older_than: datetime,
    ) -> int:
        """Delete the day's reports created before a cutoff.

        Returns:
            Number of deleted rows.
        """

    @abstractmethod
    async def upsert_daily_report(self, report: DailyReport) -> DailyReport:
        """Insert or overwrite the report for (learner_id, report_date).

        Returns:
            The stored report.

        Raises:
            StoreWriteError: If the write fails.
        """


async def load_activity(store: ActivityStore, learner_id: str) -> ActivitySnapshot:
    """Read every activity collection of a learner concurrently.

    Args:
        store: Activity store.
        learner_id: Learner identifier.

    Returns:
        ActivitySnapshot with all rows.

    Raises:
        StoreUnavailableError: If any read fails.
    """
    try:
        lessons, topics, attempts, sessions, unlocked = await asyncio.gather(
            store.read_lesson_progress(learner_id),
            store.read_topic_progress(learner_id),
            store.read_quiz_attempts(learner_id),
            store.read_study_sessions(learner_id),
            store.read_unlocked_achievements(learner_id),
        )
    except StoreUnavailableError:
        logger.error("Activity read failed for learner %s", learner_id)
        raise
    except Exception as e:
        logger.error("Activity read failed for learner %s: %s", learner_id, e)
        raise StoreUnavailableError("Failed to read learner activity", e) from e

    return ActivitySnapshot(
        learner_id=learner_id,
        lesson_progress=list(lessons),
        topic_progress=list(topics),
        quiz_attempts=list(attempts),
        study_sessions=list(sessions),
        unlocked_achievement_ids=frozenset(unlocked),
    )


async def load_catalog(store: ActivityStore) -> CatalogSnapshot:
    """Read every catalog collection concurrently.

    Args:
        store: Activity store.

    Returns:
        CatalogSnapshot with all entries.

    Raises:
        StoreUnavailableError: If any read fails.
    """
    try:
        topics, subjects, lessons, achievements = await asyncio.gather(
            store.read_topic_catalog(),
            store.read_subject_catalog(),
            store.read_lesson_catalog(),
            store.read_achievement_catalog(),
        )
    except StoreUnavailableError:
        logger.error("Catalog read failed")
        raise
    except Exception as e:
        logger.error("Catalog read failed: %s", e)
        raise StoreUnavailableError("Failed to read catalogs", e) from e

    return CatalogSnapshot(
        topics=list(topics),
        subjects=list(subjects),
        lessons=list(lessons),
        achievements=list(achievements),
    )
