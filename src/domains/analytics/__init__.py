# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics domain services.

This module provides services for learner progress analytics:
- Activity and catalog models, and the activity store interface
- Metric aggregation (completions, scores, streaks, study time)
- Daily diagnostic reports with a freshness window

Usage:
    from src.domains.analytics import AnalyticsService

    service = AnalyticsService(store)
    metrics = await service.get_metrics(learner_id)
    report = await service.get_or_create_daily_report(learner_id)
"""

from src.domains.analytics.aggregator import compute_metrics, compute_study_streak
from src.domains.analytics.models import (
    AchievementDefinition,
    ActivitySnapshot,
    CatalogSnapshot,
    DailyReport,
    LearnerMetrics,
    LessonCatalogEntry,
    LessonProgressRecord,
    NeedsWorkItem,
    NeedsWorkReason,
    QuizAttemptRecord,
    StrugglingTopic,
    StudySessionRecord,
    SubjectCatalogEntry,
    TopicCatalogEntry,
    TopicProgressRecord,
)
from src.domains.analytics.report import ReportGenerator, ReportPolicy, build_daily_report
from src.domains.analytics.service import AnalyticsService, RefreshResult
from src.domains.analytics.store import (
    ActivityStore,
    StoreError,
    StoreUnavailableError,
    StoreWriteError,
    load_activity,
    load_catalog,
)

__all__ = [
    # Service
    "AnalyticsService",
    "RefreshResult",
    # Aggregation
    "compute_metrics",
    "compute_study_streak",
    # Reports
    "ReportGenerator",
    "ReportPolicy",
    "build_daily_report",
    # Store
    "ActivityStore",
    "StoreError",
    "StoreUnavailableError",
    "StoreWriteError",
    "load_activity",
    "load_catalog",
    # Models
    "AchievementDefinition",
    "ActivitySnapshot",
    "CatalogSnapshot",
    "DailyReport",
    "LearnerMetrics",
    "LessonCatalogEntry",
    "LessonProgressRecord",
    "NeedsWorkItem",
    "NeedsWorkReason",
    "QuizAttemptRecord",
    "StrugglingTopic",
    "StudySessionRecord",
    "SubjectCatalogEntry",
    "TopicCatalogEntry",
    "TopicProgressRecord",
]
