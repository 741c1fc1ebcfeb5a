# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics service module.

This module provides the entry point used by callers (page views and
periodic polls) for learner progress:
- Metrics derived from raw activity
- Achievement evaluation with idempotent unlocks
- The freshness-windowed daily report

Every call re-reads the learner's activity from the store; no state is
kept between calls.

Usage:
    from src.domains.analytics import AnalyticsService

    async with get_session() as session:
        service = AnalyticsService(SQLAlchemyActivityStore(session))

        # New achievements since the last poll
        titles = await service.check_achievements(learner_id)

        # Today's report
        report = await service.get_or_create_daily_report(learner_id)

        # Everything in one poll cycle
        result = await service.refresh(learner_id)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from src.core.config.settings import AnalyticsSettings, get_settings
from src.domains.analytics.aggregator import compute_metrics
from src.domains.analytics.models import (
    ActivitySnapshot,
    CatalogSnapshot,
    DailyReport,
    LearnerMetrics,
)
from src.domains.analytics.report import ReportGenerator, ReportPolicy
from src.domains.analytics.store import ActivityStore, load_activity, load_catalog
from src.domains.gamification.engine import AchievementEngine
from src.domains.gamification.registry import RuleRegistry
from src.utils.datetime import utc_now
from src.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of one poll cycle for a learner."""

    learner_id: str
    metrics: LearnerMetrics
    new_achievements: list[str] = field(default_factory=list)
    report: DailyReport | None = None
    generated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "learner_id": self.learner_id,
            "metrics": self.metrics.model_dump(mode="json"),
            "new_achievements": list(self.new_achievements),
            "report": self.report.to_dict() if self.report else None,
            "generated_at": self.generated_at.isoformat(),
        }


class AnalyticsService:
    """Service for learner metrics, achievements and daily reports.

    Attributes:
        _store: Activity store.
        _settings: Analytics settings.
        _engine: Achievement engine.
        _reports: Daily report generator.
    """

    def __init__(
        self,
        store: ActivityStore,
        settings: AnalyticsSettings | None = None,
        registry: RuleRegistry | None = None,
    ) -> None:
        """Initialize the analytics service.

        Args:
            store: Activity store.
            settings: Analytics settings, defaults to the application settings.
            registry: Rule registry, defaults to the global registry.
        """
        self._store = store
        self._settings = settings or get_settings().analytics
        self._engine = AchievementEngine(
            store,
            registry=registry,
            write_attempts=self._settings.write_attempts,
        )
        self._reports = ReportGenerator(
            store,
            policy=ReportPolicy.from_settings(self._settings),
            freshness=timedelta(minutes=self._settings.report_freshness_minutes),
            tz=self._settings.tz,
            write_attempts=self._settings.write_attempts,
        )

    async def load(self, learner_id: str) -> tuple[ActivitySnapshot, CatalogSnapshot]:
        """Read a learner's activity and the catalogs concurrently.

        Raises:
            StoreUnavailableError: If any read fails.
        """
        activity, catalog = await asyncio.gather(
            load_activity(self._store, learner_id),
            load_catalog(self._store),
        )
        return activity, catalog

    async def get_metrics(self, learner_id: str, now: datetime | None = None) -> LearnerMetrics:
        """Compute a learner's metrics from a fresh read of the store."""
        activity, catalog = await self.load(learner_id)
        return compute_metrics(activity, catalog, now or utc_now(), self._settings.tz)

    async def check_achievements(self, learner_id: str, now: datetime | None = None) -> list[str]:
        """Evaluate achievements and record new unlocks.

        Returns:
            Titles of the achievements unlocked by this call.

        Raises:
            StoreUnavailableError: If the store cannot be read.
        """
        now = now or utc_now()
        activity, catalog = await self.load(learner_id)
        metrics = compute_metrics(activity, catalog, now, self._settings.tz)
        return await self._engine.evaluate_and_unlock(
            learner_id,
            metrics,
            catalog.achievements,
            activity.unlocked_achievement_ids,
            now,
        )

    async def get_or_create_daily_report(self, learner_id: str, now: datetime | None = None) -> DailyReport:
        """Get today's fresh report or build and store a new one."""
        return await self._reports.get_or_create_daily_report(learner_id, now or utc_now())

    async def get_today_report(self, learner_id: str, now: datetime | None = None) -> DailyReport | None:
        """Get today's report if it is still fresh."""
        return await self._reports.get_today_report(learner_id, now or utc_now())

    async def refresh(self, learner_id: str, now: datetime | None = None) -> RefreshResult:
        """Run metrics, achievements and the daily report from one read.

        Raises:
            StoreUnavailableError: If the store cannot be read.
            StoreWriteError: If the report cannot be stored.
        """
        now = now or utc_now()
        bind_context(learner_id=learner_id)
        try:
            activity, catalog = await self.load(learner_id)
            metrics = compute_metrics(activity, catalog, now, self._settings.tz)

            new_achievements = await self._engine.evaluate_and_unlock(
                learner_id,
                metrics,
                catalog.achievements,
                activity.unlocked_achievement_ids,
                now,
            )
            report = await self._reports.get_or_create_daily_report(
                learner_id,
                now,
                activity=activity,
                catalog=catalog,
            )
        finally:
            clear_context()

        logger.debug(
            "Refreshed learner %s: %d new achievements, report %s",
            learner_id,
            len(new_achievements),
            report.id,
        )
        return RefreshResult(
            learner_id=learner_id,
            metrics=metrics,
            new_achievements=new_achievements,
            report=report,
            generated_at=now,
        )
