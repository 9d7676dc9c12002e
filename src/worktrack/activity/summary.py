"""Daily and monthly summaries of the activity log."""

import calendar
import datetime
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from worktrack.models import LogEntry

# During the first days of a month the previous month is reported as well.
PREVIOUS_MONTH_GRACE_DAYS = 7


def format_hours(hours: float) -> str:
    """Format hours as "Xh Ym"."""
    total_minutes = round(hours * 60)
    return f"{total_minutes // 60}h {total_minutes % 60}m"


def week_of_month(day: datetime.date) -> int:
    """1-based week number within the month, weeks starting on Sunday."""
    first_weekday = (day.replace(day=1).weekday() + 1) % 7  # Sunday = 0
    return math.ceil((day.day + first_weekday) / 7)


def week_bounds(day: datetime.date) -> Tuple[datetime.date, datetime.date]:
    """Sunday-to-Saturday week containing day."""
    start = day - datetime.timedelta(days=(day.weekday() + 1) % 7)
    return start, start + datetime.timedelta(days=6)


def hours_by_task(entries: Iterable[LogEntry]) -> List[Tuple[str, float]]:
    """Sum hours per task id, largest first."""
    totals: Dict[str, float] = defaultdict(float)
    for entry in entries:
        totals[entry.task_id] += entry.hours
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))


@dataclass
class DaySummary:
    """Hours logged on a single day."""

    date: datetime.date
    task_hours: List[Tuple[str, float]] = field(default_factory=list)

    @property
    def total_hours(self) -> float:
        return sum(hours for _, hours in self.task_hours)


@dataclass
class WeekSummary:
    """Hours logged within one week of a month."""

    week_number: int
    start: datetime.date
    end: datetime.date
    task_hours: List[Tuple[str, float]] = field(default_factory=list)
    days: List[DaySummary] = field(default_factory=list)

    @property
    def total_hours(self) -> float:
        return sum(hours for _, hours in self.task_hours)


@dataclass
class MonthSummary:
    """Hours logged within one calendar month, broken down by week."""

    year: int
    month: int
    weeks: List[WeekSummary] = field(default_factory=list)
    is_previous: bool = False

    @property
    def name(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    @property
    def total_hours(self) -> float:
        return sum(week.total_hours for week in self.weeks)


def summarize_day(entries: Iterable[LogEntry], day: datetime.date) -> DaySummary:
    return DaySummary(date=day, task_hours=hours_by_task(e for e in entries if e.date == day))


def summarize_month(
    entries: Iterable[LogEntry], year: int, month: int, is_previous: bool = False
) -> MonthSummary:
    """Group a month's entries by week, then by task and by day.

    Args:
        entries: Log entries (any dates; others are ignored)
        year: Year of the month
        month: Month number (1-12)
        is_previous: Whether this is reported as the previous month

    Returns:
        MonthSummary with weeks in chronological order
    """
    by_week: Dict[int, List[LogEntry]] = defaultdict(list)
    for entry in entries:
        if entry.date.year == year and entry.date.month == month:
            by_week[week_of_month(entry.date)].append(entry)

    summary = MonthSummary(year=year, month=month, is_previous=is_previous)
    for week_number in sorted(by_week):
        week_entries = by_week[week_number]
        start, end = week_bounds(week_entries[0].date)
        days = sorted({entry.date for entry in week_entries})
        summary.weeks.append(
            WeekSummary(
                week_number=week_number,
                start=start,
                end=end,
                task_hours=hours_by_task(week_entries),
                days=[summarize_day(week_entries, day) for day in days],
            )
        )
    return summary


def months_to_report(today: datetime.date) -> List[Tuple[int, int, bool]]:
    """Months shown by the monthly summary as (year, month, is_previous)."""
    months = [(today.year, today.month, False)]
    if today.day <= PREVIOUS_MONTH_GRACE_DAYS:
        if today.month == 1:
            months.append((today.year - 1, 12, True))
        else:
            months.append((today.year, today.month - 1, True))
    return months
