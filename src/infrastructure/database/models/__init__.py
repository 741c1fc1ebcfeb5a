# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the activity store."""

from src.infrastructure.database.models.activity import (
    AchievementUnlock,
    DailyReportRow,
    LessonProgress,
    QuizAttempt,
    StudySession,
    TopicProgress,
)
from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.catalog import Achievement, Lesson, Subject, Topic

__all__ = [
    "Base",
    "TimestampMixin",
    # Catalog
    "Subject",
    "Topic",
    "Lesson",
    "Achievement",
    # Activity
    "LessonProgress",
    "TopicProgress",
    "QuizAttempt",
    "StudySession",
    # Derived state
    "AchievementUnlock",
    "DailyReportRow",
]
