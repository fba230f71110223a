# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics domain services.

This module computes study analytics for the StudyFlow dashboard:
- Headline study metrics (hours, sessions, focus, streak, weekly goal)
- Chart series (daily hours, subject distribution, focus by hour)
- A six-axis performance radar and a productivity score
- Rule-based insights and recommendations

Every call fetches fresh data and returns a new snapshot; nothing is
cached between calls.

Usage:
    from studyflow.domains.analytics import (
        AnalyticsAggregator,
        SQLAlchemyAnalyticsRepository,
    )

    repository = SQLAlchemyAnalyticsRepository(get_sessionmaker())
    aggregator = AnalyticsAggregator(repository, settings.analytics)

    snapshot = await aggregator.fetch_analytics(user_id, "month")
    snapshot, insights = await aggregator.fetch_insights(user_id, "week")
"""

from studyflow.domains.analytics.aggregator import AnalyticsAggregator
from studyflow.domains.analytics.insights import (
    GoalProgress,
    InsightSummary,
    NextAction,
    Recommendation,
    StudyInsights,
    StudyPattern,
    build_insights,
)
from studyflow.domains.analytics.periods import (
    DateWindow,
    InvalidTimeRangeError,
    TimeRange,
    resolve_window,
)
from studyflow.domains.analytics.records import (
    AnalyticsDataset,
    FlashcardAttempt,
    Goal,
    GoalType,
    StudySession,
    Subject,
    Task,
    narrow_records,
)
from studyflow.domains.analytics.repository import (
    AnalyticsRepository,
    InMemoryAnalyticsRepository,
    SQLAlchemyAnalyticsRepository,
)
from studyflow.domains.analytics.snapshot import (
    AnalyticsSnapshot,
    ChartPoint,
    FocusPattern,
    PerformanceAxis,
    StudyMetrics,
    SubjectShare,
)

__all__ = [
    # Aggregation
    "AnalyticsAggregator",
    # Periods
    "DateWindow",
    "InvalidTimeRangeError",
    "TimeRange",
    "resolve_window",
    # Records
    "AnalyticsDataset",
    "FlashcardAttempt",
    "Goal",
    "GoalType",
    "StudySession",
    "Subject",
    "Task",
    "narrow_records",
    # Data access
    "AnalyticsRepository",
    "InMemoryAnalyticsRepository",
    "SQLAlchemyAnalyticsRepository",
    # Snapshot
    "AnalyticsSnapshot",
    "ChartPoint",
    "FocusPattern",
    "PerformanceAxis",
    "StudyMetrics",
    "SubjectShare",
    # Insights
    "GoalProgress",
    "InsightSummary",
    "NextAction",
    "Recommendation",
    "StudyInsights",
    "StudyPattern",
    "build_insights",
]
