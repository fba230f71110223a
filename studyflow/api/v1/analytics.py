# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics API endpoints.

This module provides endpoints for study analytics:
- GET /{user_id} - Get the analytics snapshot for a user
- GET /{user_id}/insights - Get rule-based insights for a user

Example:
    GET /api/v1/analytics/5f1c...?time_range=week
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from studyflow.api.dependencies import Aggregator
from studyflow.domains.analytics import TimeRange

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Snapshot Response Models
# ============================================================================


class CamelModel(BaseModel):
    """Response model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudyMetricsResponse(CamelModel):
    """Headline study metrics."""

    total_hours: float = Field(description="Hours studied in the period")
    sessions_completed: int = Field(description="Sessions with an end time")
    average_session_length: int = Field(description="Minutes per completed session")
    weekly_goal_progress: int = Field(ge=0, le=100, description="Weekly hour goal progress")
    focus_score: int = Field(ge=0, le=100, description="Average session focus")
    streak_days: int = Field(ge=0, description="Consecutive study days ending today")


class ChartPointResponse(CamelModel):
    """One day of the study hours series."""

    name: str = Field(description="Bucket label")
    value: float = Field(description="Hours studied")
    sessions: int = Field(description="Sessions started")
    efficiency: int = Field(description="Completed share of sessions")
    focus: int = Field(description="Average focus")


class SubjectShareResponse(CamelModel):
    """Hours spent on one subject."""

    name: str = Field(description="Subject name")
    value: float = Field(description="Hours studied")
    color: str = Field(description="Chart color")


class FocusPatternResponse(CamelModel):
    """Focus for one hour of the day."""

    hour: int = Field(ge=0, le=23, description="Local start hour")
    focus: int = Field(description="Average focus")
    sessions: int = Field(description="Sessions started in this hour")


class PerformanceAxisResponse(CamelModel):
    """One axis of the performance radar."""

    subject: str = Field(description="Axis name")
    current: int = Field(ge=0, le=100, description="Current value")
    target: int = Field(description="Target value")


class AnalyticsResponse(CamelModel):
    """Analytics snapshot response."""

    user_id: str = Field(description="User ID")
    time_range: TimeRange = Field(description="Requested time range")
    period_start: str = Field(description="Window start, ISO 8601")
    period_end: str = Field(description="Window end, ISO 8601")
    generated_at: str = Field(description="Reference instant, ISO 8601")
    study_metrics: StudyMetricsResponse
    study_hours_data: list[ChartPointResponse]
    subject_data: list[SubjectShareResponse]
    focus_pattern_data: list[FocusPatternResponse]
    performance_data: list[PerformanceAxisResponse]
    completion_rate: float = Field(description="Completed share of tasks")
    productivity_score: int = Field(ge=0, le=100, description="Weighted productivity score")


# ============================================================================
# Insights Response Models
# ============================================================================


class InsightSummaryResponse(BaseModel):
    """Headline numbers for the insights panel."""

    total_study_time: int = Field(description="Minutes studied")
    average_session_length: int = Field(description="Minutes per completed session")
    most_productive_times: list[str] = Field(description="Busiest start hours")
    completion_rate: int = Field(description="Completed share of tasks")
    streak_days: int = Field(description="Consecutive study days ending today")


class StudyPatternResponse(BaseModel):
    """An observed study pattern."""

    insight: str
    description: str
    trend: str = Field(description="positive, negative or neutral")
    value: float


class RecommendationResponse(BaseModel):
    """A suggested change in study habits."""

    title: str
    description: str
    priority: str = Field(description="high, medium or low")
    category: str


class GoalProgressResponse(BaseModel):
    """Progress towards one goal."""

    goal_title: str
    progress_percentage: int = Field(ge=0, le=100)
    status: str = Field(description="ahead, on_track or behind")
    suggestion: str


class NextActionResponse(BaseModel):
    """A concrete next step."""

    action: str
    expected_impact: str
    effort_level: str = Field(description="high, medium or low")


class InsightsResponse(BaseModel):
    """Insights response."""

    user_id: str = Field(description="User ID")
    time_range: TimeRange = Field(description="Requested time range")
    generated_at: str = Field(description="Reference instant, ISO 8601")
    summary: InsightSummaryResponse
    patterns: list[StudyPatternResponse]
    recommendations: list[RecommendationResponse]
    goal_progress: list[GoalProgressResponse]
    next_actions: list[NextActionResponse]


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/{user_id}",
    response_model=AnalyticsResponse,
    summary="Get analytics",
    description="Compute the analytics snapshot for a user over a time range.",
)
async def get_analytics(
    user_id: str,
    aggregator: Aggregator,
    time_range: Annotated[TimeRange, Query(description="week, month, quarter or year")] = (
        TimeRange.MONTH
    ),
) -> AnalyticsResponse:
    """Get the analytics snapshot for a user.

    Args:
        user_id: The user ID.
        aggregator: Analytics aggregator.
        time_range: Period to aggregate.

    Returns:
        AnalyticsResponse with metrics and chart series.
    """
    logger.info("Getting analytics: user=%s, range=%s", user_id, time_range.value)

    snapshot = await aggregator.fetch_analytics(user_id, time_range)
    return AnalyticsResponse.model_validate(snapshot.to_dict())


@router.get(
    "/{user_id}/insights",
    response_model=InsightsResponse,
    summary="Get insights",
    description="Derive study patterns, recommendations and next actions for a user.",
)
async def get_insights(
    user_id: str,
    aggregator: Aggregator,
    time_range: Annotated[TimeRange, Query(description="week, month, quarter or year")] = (
        TimeRange.MONTH
    ),
) -> InsightsResponse:
    """Get insights for a user.

    Args:
        user_id: The user ID.
        aggregator: Analytics aggregator.
        time_range: Period to aggregate.

    Returns:
        InsightsResponse with summary, patterns and recommendations.
    """
    logger.info("Getting insights: user=%s, range=%s", user_id, time_range.value)

    _, insights = await aggregator.fetch_insights(user_id, time_range)
    return InsightsResponse.model_validate(insights.to_dict())
