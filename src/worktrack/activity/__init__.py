"""Activity log persistence and reporting."""

from worktrack.activity.log import ActivityLog, LogEntryAccumulator
from worktrack.activity.summary import (
    DaySummary,
    MonthSummary,
    WeekSummary,
    format_hours,
    months_to_report,
    summarize_day,
    summarize_month,
)

__all__ = [
    "ActivityLog",
    "LogEntryAccumulator",
    "DaySummary",
    "WeekSummary",
    "MonthSummary",
    "format_hours",
    "months_to_report",
    "summarize_day",
    "summarize_month",
]
