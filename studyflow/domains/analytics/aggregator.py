# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics aggregation for one user over one time range.

The AnalyticsAggregator:
1. Resolves the date window for the requested time range
2. Fetches sessions, tasks, subjects, flashcard attempts and goals
   concurrently from the repository
3. Narrows rows into typed records, dropping malformed ones
4. Computes the snapshot from pure metric functions

A failing fetch never aborts the call: it is logged and the entity is
treated as empty, so a structurally complete snapshot is always returned.
The aggregator keeps no state between calls.

Usage:
    from studyflow.domains.analytics import AnalyticsAggregator

    aggregator = AnalyticsAggregator(repository, settings.analytics)
    snapshot = await aggregator.fetch_analytics(user_id, "week")
    payload = snapshot.to_dict()
"""

import asyncio
import logging
from collections.abc import Awaitable
from datetime import datetime
from typing import Any

from studyflow.core.config.settings import AnalyticsSettings
from studyflow.domains.analytics import metrics
from studyflow.domains.analytics.insights import StudyInsights, build_insights
from studyflow.domains.analytics.periods import DateWindow, TimeRange, resolve_window
from studyflow.domains.analytics.records import (
    AnalyticsDataset,
    FlashcardAttempt,
    Goal,
    StudySession,
    Subject,
    Task,
    narrow_records,
)
from studyflow.domains.analytics.repository import AnalyticsRepository
from studyflow.domains.analytics.snapshot import AnalyticsSnapshot
from studyflow.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class AnalyticsAggregator:
    """Computes analytics snapshots from repository data.

    Attributes:
        repository: Data access collaborator.
        settings: Analytics settings (timezone, week start, default goal).
    """

    def __init__(
        self,
        repository: AnalyticsRepository,
        settings: AnalyticsSettings | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            repository: Object implementing the AnalyticsRepository contract.
            settings: Analytics settings; defaults are used when omitted.
        """
        self.repository = repository
        self.settings = settings or AnalyticsSettings()

    async def fetch_analytics(
        self,
        user_id: str,
        time_range: TimeRange | str = TimeRange.MONTH,
        now: datetime | None = None,
    ) -> AnalyticsSnapshot:
        """Compute the analytics snapshot for a user.

        Args:
            user_id: User identifier.
            time_range: One of week, month, quarter, year.
            now: Reference instant; captured from the clock when omitted.

        Returns:
            A freshly computed AnalyticsSnapshot.

        Raises:
            InvalidTimeRangeError: If ``time_range`` is not a known range.

        Example:
            >>> snapshot = await aggregator.fetch_analytics("user-1", "week")
            >>> snapshot.study_metrics.streak_days
            3
        """
        time_range = TimeRange.parse(time_range)
        now = ensure_utc(now) if now is not None else utc_now()
        window = resolve_window(
            time_range,
            now,
            self.settings.timezone,
            self.settings.week_starts_on,
        )

        dataset = await self.fetch_dataset(user_id, window)
        snapshot = self.build_snapshot(user_id, time_range, window, dataset)

        logger.info(
            "Computed analytics: user=%s, range=%s, sessions=%d, tasks=%d, failed=%s",
            user_id,
            time_range.value,
            len(dataset.sessions),
            len(dataset.tasks),
            ",".join(dataset.failed) or "none",
        )
        return snapshot

    compute_analytics = fetch_analytics

    async def fetch_insights(
        self,
        user_id: str,
        time_range: TimeRange | str = TimeRange.MONTH,
        now: datetime | None = None,
    ) -> tuple[AnalyticsSnapshot, StudyInsights]:
        """Compute the snapshot and the insights derived from it in one fetch pass.

        Args:
            user_id: User identifier.
            time_range: One of week, month, quarter, year.
            now: Reference instant; captured from the clock when omitted.

        Returns:
            Tuple of (snapshot, insights).

        Raises:
            InvalidTimeRangeError: If ``time_range`` is not a known range.
        """
        time_range = TimeRange.parse(time_range)
        now = ensure_utc(now) if now is not None else utc_now()
        window = resolve_window(
            time_range,
            now,
            self.settings.timezone,
            self.settings.week_starts_on,
        )

        dataset = await self.fetch_dataset(user_id, window)
        snapshot = self.build_snapshot(user_id, time_range, window, dataset)
        insights = build_insights(snapshot, dataset, self.settings.timezone)

        logger.info(
            "Computed insights: user=%s, range=%s, patterns=%d, recommendations=%d",
            user_id,
            time_range.value,
            len(insights.patterns),
            len(insights.recommendations),
        )
        return snapshot, insights

    async def fetch_dataset(self, user_id: str, window: DateWindow) -> AnalyticsDataset:
        """Fetch all entities concurrently, substituting empty lists on failure.

        Args:
            user_id: User identifier.
            window: Date window for time-filtered entities.

        Returns:
            AnalyticsDataset with narrowed records.
        """
        fetches: dict[str, Awaitable[Any]] = {
            "study_sessions": self.repository.fetch_study_sessions(
                user_id, window.start, window.end
            ),
            "tasks": self.repository.fetch_tasks(user_id, window.start, window.end),
            "subjects": self.repository.fetch_subjects(user_id),
            "flashcard_attempts": self.repository.fetch_flashcard_attempts(
                user_id, window.start, window.end
            ),
            "goals": self.repository.fetch_active_goals(user_id),
        }

        results = await asyncio.gather(*fetches.values(), return_exceptions=True)

        rows: dict[str, Any] = {}
        failed: list[str] = []
        for entity, result in zip(fetches, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    # CancelledError and friends must propagate
                    raise result
                failed.append(entity)
                logger.error(
                    "Error fetching %s: user=%s, error=%s",
                    entity,
                    user_id,
                    str(result),
                    exc_info=result,
                )
                rows[entity] = []
            else:
                rows[entity] = result

        return AnalyticsDataset(
            sessions=narrow_records(StudySession, rows["study_sessions"], "study_sessions"),
            tasks=narrow_records(Task, rows["tasks"], "tasks"),
            subjects=narrow_records(Subject, rows["subjects"], "subjects"),
            flashcards=narrow_records(
                FlashcardAttempt, rows["flashcard_attempts"], "flashcard_attempts"
            ),
            goals=narrow_records(Goal, rows["goals"], "goals"),
            failed=failed,
        )

    def build_snapshot(
        self,
        user_id: str,
        time_range: TimeRange,
        window: DateWindow,
        dataset: AnalyticsDataset,
    ) -> AnalyticsSnapshot:
        """Derive every metric from a dataset.

        Pure with respect to ``dataset`` and ``window.end``.
        """
        now = window.end
        tz = self.settings.timezone
        sessions = dataset.sessions

        study_metrics = metrics.calculate_study_metrics(
            sessions,
            dataset.goals,
            now,
            tz=tz,
            week_starts_on=self.settings.week_starts_on,
            default_goal=self.settings.default_weekly_hours_goal,
        )
        completion_rate = metrics.calculate_completion_rate(dataset.tasks)

        return AnalyticsSnapshot(
            user_id=user_id,
            time_range=time_range,
            period_start=window.start,
            period_end=window.end,
            study_metrics=study_metrics,
            study_hours_data=metrics.calculate_daily_study_hours(sessions, time_range, now, tz),
            subject_data=metrics.calculate_subject_distribution(sessions, dataset.subjects, now),
            focus_pattern_data=metrics.calculate_focus_patterns(sessions, now, tz),
            performance_data=metrics.calculate_performance_metrics(
                sessions, dataset.flashcards, now, tz
            ),
            completion_rate=completion_rate,
            productivity_score=metrics.calculate_productivity_score(
                study_metrics, completion_rate
            ),
        )
