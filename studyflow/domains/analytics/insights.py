# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rule-based study insights derived from an analytics snapshot.

Insights turn the numbers of a snapshot into short observations and
suggestions for the dashboard. Rules are deterministic thresholds over the
snapshot and the dataset it was computed from; no model is involved.

Example:
    snapshot = aggregator.build_snapshot(user_id, time_range, window, dataset)
    insights = build_insights(snapshot, dataset, tz="Europe/Istanbul")
    payload = insights.to_dict()
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from studyflow.domains.analytics.metrics import (
    local_day,
    round_half_up,
    round_int,
    total_minutes,
)
from studyflow.domains.analytics.records import AnalyticsDataset, Goal, Task
from studyflow.domains.analytics.snapshot import AnalyticsSnapshot, FocusPattern
from studyflow.utils.datetime import format_iso

DEFAULT_PRODUCTIVE_TIMES = ("09:00-11:00",)
MAX_PRODUCTIVE_TIMES = 3

LONG_SESSION_MINUTES = 60
SHORT_SESSION_MINUTES = 25
ROUTINE_SESSION_COUNT = 10
PENDING_TASK_LIMIT = 5
SUBJECT_BALANCE_LIMIT = 3

Trend = Literal["positive", "negative", "neutral"]
Priority = Literal["high", "medium", "low"]
GoalStatus = Literal["ahead", "on_track", "behind"]


@dataclass(frozen=True)
class InsightSummary:
    """Headline numbers for the insights panel."""

    total_study_time: int
    average_session_length: int
    most_productive_times: list[str]
    completion_rate: int
    streak_days: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "total_study_time": self.total_study_time,
            "average_session_length": self.average_session_length,
            "most_productive_times": list(self.most_productive_times),
            "completion_rate": self.completion_rate,
            "streak_days": self.streak_days,
        }


@dataclass(frozen=True)
class StudyPattern:
    """An observed pattern in the user's study behaviour."""

    insight: str
    description: str
    trend: Trend
    value: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "insight": self.insight,
            "description": self.description,
            "trend": self.trend,
            "value": self.value,
        }


@dataclass(frozen=True)
class Recommendation:
    """A suggested change in study habits."""

    title: str
    description: str
    priority: Priority
    category: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "category": self.category,
        }


@dataclass(frozen=True)
class GoalProgress:
    """Progress towards one active goal."""

    goal_title: str
    progress_percentage: int
    status: GoalStatus
    suggestion: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "goal_title": self.goal_title,
            "progress_percentage": self.progress_percentage,
            "status": self.status,
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class NextAction:
    """A concrete next step."""

    action: str
    expected_impact: str
    effort_level: Priority

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "action": self.action,
            "expected_impact": self.expected_impact,
            "effort_level": self.effort_level,
        }


@dataclass(frozen=True)
class StudyInsights:
    """All insights for one user and time range.

    Attributes:
        user_id: User the insights belong to.
        time_range: Time range of the underlying snapshot.
        generated_at: Reference instant of the underlying snapshot.
        summary: Headline numbers.
        patterns: Observed patterns.
        recommendations: Suggested changes.
        goal_progress: Progress per active goal.
        next_actions: Concrete next steps.
    """

    user_id: str
    time_range: str
    generated_at: datetime
    summary: InsightSummary
    patterns: list[StudyPattern] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    goal_progress: list[GoalProgress] = field(default_factory=list)
    next_actions: list[NextAction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "user_id": self.user_id,
            "time_range": self.time_range,
            "generated_at": format_iso(self.generated_at),
            "summary": self.summary.to_dict(),
            "patterns": [p.to_dict() for p in self.patterns],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "goal_progress": [g.to_dict() for g in self.goal_progress],
            "next_actions": [a.to_dict() for a in self.next_actions],
        }


# =============================================================================
# Helpers
# =============================================================================


def _hour_range(hour: int) -> str:
    return f"{hour:02d}:00-{(hour + 1) % 24:02d}:00"


def most_productive_times(focus_patterns: list[FocusPattern]) -> list[str]:
    """Busiest start hours, formatted as ``HH:00-HH:00``.

    Hours are ranked by session count, then average focus, then hour.
    Falls back to a morning default when no session has been recorded.
    """
    active = [p for p in focus_patterns if p.sessions > 0]
    if not active:
        return list(DEFAULT_PRODUCTIVE_TIMES)

    ranked = sorted(active, key=lambda p: (-p.sessions, -p.focus, p.hour))
    return [_hour_range(p.hour) for p in ranked[:MAX_PRODUCTIVE_TIMES]]


def sessions_per_active_day(dataset: AnalyticsDataset, tz: str) -> float:
    """Average number of sessions on days with at least one session."""
    active_days = {local_day(s.start_time, tz) for s in dataset.sessions}
    return len(dataset.sessions) / max(len(active_days), 1)


def task_completion_percent(tasks: list[Task]) -> float | None:
    """Percentage of completed tasks, or None without tasks."""
    if not tasks:
        return None
    return sum(1 for t in tasks if t.completed) / len(tasks) * 100


def goal_ratio(goal: Goal) -> float | None:
    """Current over target value, or None for a non-positive target."""
    if goal.target_value <= 0:
        return None
    return goal.current_value / goal.target_value


# =============================================================================
# Rules
# =============================================================================


def build_summary(snapshot: AnalyticsSnapshot, dataset: AnalyticsDataset) -> InsightSummary:
    """Headline numbers from the snapshot."""
    metrics = snapshot.study_metrics
    return InsightSummary(
        total_study_time=round_int(total_minutes(dataset.sessions, snapshot.period_end)),
        average_session_length=metrics.average_session_length,
        most_productive_times=most_productive_times(snapshot.focus_pattern_data),
        completion_rate=round_int(snapshot.completion_rate),
        streak_days=metrics.streak_days,
    )


def analyze_patterns(
    snapshot: AnalyticsSnapshot,
    dataset: AnalyticsDataset,
    tz: str = "UTC",
) -> list[StudyPattern]:
    """Detect consistency, session length and task completion patterns."""
    patterns: list[StudyPattern] = []

    per_day = sessions_per_active_day(dataset, tz)
    if per_day >= 2:
        patterns.append(
            StudyPattern(
                insight="Excellent Study Consistency",
                description=(
                    f"You maintain {round_half_up(per_day, 1)} study sessions per day on average"
                ),
                trend="positive",
                value=per_day,
            )
        )
    elif per_day < 1:
        patterns.append(
            StudyPattern(
                insight="Inconsistent Study Schedule",
                description="You could benefit from more regular study sessions",
                trend="negative",
                value=per_day,
            )
        )

    average_length = snapshot.study_metrics.average_session_length
    if average_length > LONG_SESSION_MINUTES:
        patterns.append(
            StudyPattern(
                insight="Long Focus Sessions",
                description=f"Your {average_length}-minute sessions show excellent concentration",
                trend="positive",
                value=average_length,
            )
        )
    elif average_length < SHORT_SESSION_MINUTES:
        patterns.append(
            StudyPattern(
                insight="Short Study Bursts",
                description="Consider extending session length for deeper focus",
                trend="neutral",
                value=average_length,
            )
        )

    completion = task_completion_percent(dataset.tasks)
    if completion is not None:
        if completion >= 80:
            patterns.append(
                StudyPattern(
                    insight="High Task Completion Rate",
                    description=(
                        f"{round_int(completion)}% of your tasks are completed - "
                        "excellent productivity!"
                    ),
                    trend="positive",
                    value=completion,
                )
            )
        elif completion < 50:
            patterns.append(
                StudyPattern(
                    insight="Low Task Completion",
                    description="Focus on completing existing tasks before adding new ones",
                    trend="negative",
                    value=completion,
                )
            )

    return patterns


def generate_recommendations(
    snapshot: AnalyticsSnapshot,
    dataset: AnalyticsDataset,
    tz: str = "UTC",
) -> list[Recommendation]:
    """Suggest habit changes from the snapshot and dataset."""
    recommendations: list[Recommendation] = []
    now = snapshot.period_end

    if snapshot.study_metrics.average_session_length < SHORT_SESSION_MINUTES:
        recommendations.append(
            Recommendation(
                title="Extend Study Sessions",
                description=(
                    "Try 25-45 minute focused sessions with 5-10 minute breaks "
                    "for better retention"
                ),
                priority="medium",
                category="focus",
            )
        )

    if sessions_per_active_day(dataset, tz) < 1:
        recommendations.append(
            Recommendation(
                title="Build Daily Study Habit",
                description=(
                    "Aim for at least one focused study session every day to build momentum"
                ),
                priority="high",
                category="consistency",
            )
        )

    overdue = sum(
        1
        for t in dataset.tasks
        if not t.completed and t.due_date is not None and t.due_date < now
    )
    if overdue > 0:
        recommendations.append(
            Recommendation(
                title="Address Overdue Tasks",
                description=f"You have {overdue} overdue tasks. Focus on completing these first",
                priority="high",
                category="task_management",
            )
        )

    if len(dataset.subjects) > SUBJECT_BALANCE_LIMIT:
        recommendations.append(
            Recommendation(
                title="Balance Subject Study Time",
                description="Ensure you're giving adequate attention to all your subjects",
                priority="medium",
                category="subject_balance",
            )
        )

    peak_times = most_productive_times(snapshot.focus_pattern_data)
    recommendations.append(
        Recommendation(
            title="Leverage Peak Hours",
            description=f"Schedule difficult tasks during your peak times: {', '.join(peak_times)}",
            priority="medium",
            category="time_optimization",
        )
    )

    return recommendations


def analyze_goal_progress(goals: list[Goal]) -> list[GoalProgress]:
    """Progress and status for each goal."""
    progress: list[GoalProgress] = []

    for goal in goals:
        ratio = goal_ratio(goal)
        percentage = round_int(ratio * 100) if ratio is not None else 0

        status: GoalStatus
        if percentage >= 100:
            status = "ahead"
            suggestion = "Excellent! Consider setting a more challenging goal."
        elif percentage >= 70:
            status = "on_track"
            suggestion = "Great progress! Keep up the current pace."
        elif percentage >= 40:
            status = "on_track"
            suggestion = "Good start! Stay consistent to reach your goal."
        else:
            status = "behind"
            suggestion = "Consider adjusting your study schedule to catch up."

        progress.append(
            GoalProgress(
                goal_title=goal.title,
                progress_percentage=min(percentage, 100),
                status=status,
                suggestion=suggestion,
            )
        )

    return progress


def generate_next_actions(
    snapshot: AnalyticsSnapshot,
    dataset: AnalyticsDataset,
) -> list[NextAction]:
    """Concrete next steps ordered from routine to focus tracking."""
    actions: list[NextAction] = []

    if len(dataset.sessions) < ROUTINE_SESSION_COUNT:
        actions.append(
            NextAction(
                action="Establish regular study routine",
                expected_impact="Improve consistency and build study momentum",
                effort_level="medium",
            )
        )

    pending = sum(1 for t in dataset.tasks if not t.completed)
    if pending > PENDING_TASK_LIMIT:
        actions.append(
            NextAction(
                action="Break down large tasks into smaller chunks",
                expected_impact="Increase task completion rate by 40%",
                effort_level="low",
            )
        )

    ratios = [goal_ratio(g) for g in dataset.goals]
    if any(r is not None and r < 0.5 for r in ratios):
        actions.append(
            NextAction(
                action="Focus on underperforming goals",
                expected_impact="Get back on track with goal achievement",
                effort_level="high",
            )
        )

    if snapshot.study_metrics.average_session_length > 0:
        actions.append(
            NextAction(
                action="Track focus quality during sessions",
                expected_impact="Identify and eliminate distractions",
                effort_level="low",
            )
        )

    return actions


def build_insights(
    snapshot: AnalyticsSnapshot,
    dataset: AnalyticsDataset,
    tz: str = "UTC",
) -> StudyInsights:
    """Build all insights for a snapshot.

    Args:
        snapshot: Snapshot computed from ``dataset``.
        dataset: Records the snapshot was computed from.
        tz: IANA timezone used for calendar days.

    Returns:
        StudyInsights for the snapshot's user and time range.
    """
    return StudyInsights(
        user_id=snapshot.user_id,
        time_range=snapshot.time_range.value,
        generated_at=snapshot.generated_at,
        summary=build_summary(snapshot, dataset),
        patterns=analyze_patterns(snapshot, dataset, tz),
        recommendations=generate_recommendations(snapshot, dataset, tz),
        goal_progress=analyze_goal_progress(dataset.goals),
        next_actions=generate_next_actions(snapshot, dataset),
    )
