"""Unit tests for activity summaries."""

import datetime

import pytest

from worktrack.activity.summary import (
    format_hours,
    hours_by_task,
    months_to_report,
    summarize_day,
    summarize_month,
    week_bounds,
    week_of_month,
)
from worktrack.models import LogEntry


def entry(day, task_id, hours, repository="/r"):
    return LogEntry(date=datetime.date(2026, 10, day), task_id=task_id, repository=repository, hours=hours)


@pytest.mark.parametrize(
    "hours,expected",
    [(0, "0h 0m"), (0.0833, "0h 5m"), (1.5, "1h 30m"), (7.9999, "8h 0m")],
)
def test_format_hours(hours, expected):
    assert format_hours(hours) == expected


@pytest.mark.parametrize(
    "day,week",
    [(1, 1), (3, 1), (4, 2), (17, 3), (18, 4), (19, 4), (31, 5)],
)
def test_week_of_month_starts_on_sunday(day, week):
    # October 1st 2026 is a Thursday
    assert week_of_month(datetime.date(2026, 10, day)) == week


def test_week_bounds():
    assert week_bounds(datetime.date(2026, 10, 19)) == (
        datetime.date(2026, 10, 18),
        datetime.date(2026, 10, 24),
    )
    assert week_bounds(datetime.date(2026, 10, 18))[0] == datetime.date(2026, 10, 18)


def test_hours_by_task_sums_across_repositories():
    totals = hours_by_task(
        [entry(19, "DFO-1", 0.5, "/api"), entry(19, "DFO-1", 0.25, "/web"), entry(19, "DFO-2", 1.0)]
    )
    assert totals == [("DFO-2", 1.0), ("DFO-1", 0.75)]


def test_summarize_day_only_counts_that_day():
    summary = summarize_day([entry(18, "DFO-1", 2.0), entry(19, "DFO-2", 0.5)], datetime.date(2026, 10, 19))

    assert summary.task_hours == [("DFO-2", 0.5)]
    assert summary.total_hours == 0.5


def test_summarize_day_empty():
    summary = summarize_day([], datetime.date(2026, 10, 19))
    assert summary.task_hours == []
    assert summary.total_hours == 0


def test_summarize_month_groups_by_week():
    entries = [
        entry(2, "DFO-1", 1.0),
        entry(19, "DFO-2", 0.5),
        entry(20, "DFO-2", 1.5),
        entry(20, "DFO-3", 0.25),
        LogEntry(date=datetime.date(2026, 9, 30), task_id="DFO-9", repository="/r", hours=4.0),
    ]

    summary = summarize_month(entries, 2026, 10)

    assert summary.name == "October 2026"
    assert summary.total_hours == pytest.approx(3.25)
    assert [week.week_number for week in summary.weeks] == [1, 4]

    week = summary.weeks[1]
    assert (week.start, week.end) == (datetime.date(2026, 10, 18), datetime.date(2026, 10, 24))
    assert week.task_hours == [("DFO-2", 2.0), ("DFO-3", 0.25)]
    assert [day.date.day for day in week.days] == [19, 20]


def test_months_to_report():
    assert months_to_report(datetime.date(2026, 10, 19)) == [(2026, 10, False)]
    assert months_to_report(datetime.date(2026, 10, 7)) == [(2026, 10, False), (2026, 9, True)]
    assert months_to_report(datetime.date(2026, 1, 3)) == [(2026, 1, False), (2025, 12, True)]
