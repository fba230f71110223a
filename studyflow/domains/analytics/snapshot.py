# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics snapshot data structures.

A snapshot is created fresh for every aggregation call and discarded by
the caller. ``to_dict`` produces the camelCase payload the dashboard
charts consume.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from studyflow.domains.analytics.periods import TimeRange
from studyflow.utils.datetime import format_iso

PERFORMANCE_TARGET = 100

PERFORMANCE_AXES = (
    "Focus",
    "Consistency",
    "Efficiency",
    "Retention",
    "Speed",
    "Accuracy",
)


@dataclass(frozen=True)
class StudyMetrics:
    """Headline study metrics."""

    total_hours: float = 0.0
    sessions_completed: int = 0
    average_session_length: int = 0
    weekly_goal_progress: int = 0
    focus_score: int = 0
    streak_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "totalHours": self.total_hours,
            "sessionsCompleted": self.sessions_completed,
            "averageSessionLength": self.average_session_length,
            "weeklyGoalProgress": self.weekly_goal_progress,
            "focusScore": self.focus_score,
            "streakDays": self.streak_days,
        }


@dataclass(frozen=True)
class ChartPoint:
    """One bucket of the study hours series."""

    name: str
    value: float
    sessions: int = 0
    efficiency: int = 0
    focus: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "name": self.name,
            "value": self.value,
            "sessions": self.sessions,
            "efficiency": self.efficiency,
            "focus": self.focus,
        }


@dataclass(frozen=True)
class SubjectShare:
    """Hours spent on one subject."""

    name: str
    value: float
    color: str
    subject_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "name": self.name,
            "value": self.value,
            "color": self.color,
        }


@dataclass(frozen=True)
class FocusPattern:
    """Average focus for sessions started in one hour of the day."""

    hour: int
    focus: int = 0
    sessions: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {"hour": self.hour, "focus": self.focus, "sessions": self.sessions}


@dataclass(frozen=True)
class PerformanceAxis:
    """One axis of the performance radar."""

    subject: str
    current: int
    target: int = PERFORMANCE_TARGET

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {"subject": self.subject, "current": self.current, "target": self.target}


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Complete analytics snapshot for one user and one time range."""

    user_id: str
    time_range: TimeRange
    period_start: datetime
    period_end: datetime
    study_metrics: StudyMetrics
    study_hours_data: list[ChartPoint] = field(default_factory=list)
    subject_data: list[SubjectShare] = field(default_factory=list)
    focus_pattern_data: list[FocusPattern] = field(default_factory=list)
    performance_data: list[PerformanceAxis] = field(default_factory=list)
    completion_rate: float = 100.0
    productivity_score: int = 0

    @property
    def generated_at(self) -> datetime:
        """The reference instant the snapshot was computed for."""
        return self.period_end

    def performance(self, axis: str) -> int:
        """Get the current value of a performance axis by name.

        Raises:
            KeyError: If the axis does not exist.
        """
        for item in self.performance_data:
            if item.subject == axis:
                return item.current
        raise KeyError(axis)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "userId": self.user_id,
            "timeRange": self.time_range.value,
            "periodStart": format_iso(self.period_start),
            "periodEnd": format_iso(self.period_end),
            "generatedAt": format_iso(self.generated_at),
            "studyMetrics": self.study_metrics.to_dict(),
            "studyHoursData": [point.to_dict() for point in self.study_hours_data],
            "subjectData": [share.to_dict() for share in self.subject_data],
            "focusPatternData": [pattern.to_dict() for pattern in self.focus_pattern_data],
            "performanceData": [axis.to_dict() for axis in self.performance_data],
            "completionRate": self.completion_rate,
            "productivityScore": self.productivity_score,
        }
