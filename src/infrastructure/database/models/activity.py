# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-learner activity and derived-state tables.

Activity tables (lesson/topic progress, quiz attempts, study sessions)
are written by the learning UI. Achievement unlocks and daily reports
are written by this package, always through idempotent upserts keyed
by their natural composite keys.
"""

from datetime import date, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin


class LessonProgress(Base):
    """Lesson completion per learner."""

    __tablename__ = "user_lesson_progress"

    learner_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    lesson_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("lessons.id", ondelete="CASCADE"),
        primary_key=True,
    )
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class TopicProgress(Base):
    """Topic progress per learner (one row per learner and topic)."""

    __tablename__ = "user_topic_progress"

    learner_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    topic_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("topics.id", ondelete="CASCADE"),
        primary_key=True,
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class QuizAttempt(TimestampMixin, Base):
    """A quiz attempt (append-only)."""

    __tablename__ = "quiz_attempts"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4()))
    learner_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    topic_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    percentage: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False)


class StudySession(TimestampMixin, Base):
    """A study session (append-only)."""

    __tablename__ = "study_sessions"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4()))
    learner_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AchievementUnlock(Base):
    """Unlock state of an achievement for a learner (write-once)."""

    __tablename__ = "user_achievements"

    learner_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    achievement_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("achievements.id", ondelete="CASCADE"),
        primary_key=True,
    )
    unlocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    unlocked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class DailyReportRow(Base):
    """Stored daily report, unique per learner and calendar day."""

    __tablename__ = "daily_reports"
    __table_args__ = (UniqueConstraint("learner_id", "report_date", name="unique_learner_report_date"),)

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4()))
    learner_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    report_date: Mapped[date] = mapped_column(Date, nullable=False)
    struggling_topics: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    needs_work: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    recommendations: Mapped[str] = mapped_column(Text, nullable=False, default="")
    overall_performance: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
