"""Tests for pay period arithmetic and hour aggregation."""
from __future__ import annotations

from datetime import date, datetime

from groomhub.models import TimeEntry
from groomhub.payroll import (daily_breakdown, entry_hours, pay_period_bounds, summarize_entries, week_bounds,
                              week_start)


def make_entry(clock_in: str, clock_out: str | None, employee_id: int = 1) -> TimeEntry:
    return TimeEntry(
        employee_id=employee_id,
        clock_in=datetime.fromisoformat(clock_in),
        clock_out=datetime.fromisoformat(clock_out) if clock_out else None,
    )


def test_week_start_is_sunday_on_or_before() -> None:
    # 2026-03-15 is a Sunday
    assert week_start(date(2026, 3, 15)) == date(2026, 3, 15)
    assert week_start(date(2026, 3, 18)) == date(2026, 3, 15)
    assert week_start(date(2026, 3, 21)) == date(2026, 3, 15)
    assert week_bounds(date(2026, 3, 18)) == (date(2026, 3, 15), date(2026, 3, 21))


def test_pay_period_spans_fourteen_days() -> None:
    assert pay_period_bounds(date(2026, 3, 18)) == (date(2026, 3, 15), date(2026, 3, 28))


def test_entry_hours_truncates_to_whole_hours() -> None:
    assert entry_hours(make_entry("2026-03-16T08:00:00", "2026-03-16T16:59:00")) == 8
    assert entry_hours(make_entry("2026-03-16T08:00:00", "2026-03-16T08:45:00")) == 0
    assert entry_hours(make_entry("2026-03-16T08:00:00", None)) == 0
    assert entry_hours(make_entry("2026-03-16T08:00:00", "2026-03-16T07:00:00")) == 0


def test_summarize_entries_counts_closed_entries_in_range() -> None:
    entries = [
        make_entry("2026-03-16T08:00:00", "2026-03-16T16:30:00"),
        make_entry("2026-03-17T09:00:00", "2026-03-17T12:00:00"),
        make_entry("2026-03-18T09:00:00", None),
        make_entry("2026-03-14T09:00:00", "2026-03-14T17:00:00"),
    ]

    summary = summarize_entries(entries, 1500, date(2026, 3, 15), date(2026, 3, 21))

    assert summary["total_hours"] == 11
    assert summary["gross_pay_cents"] == 16500
    assert [row["hours"] for row in summary["entries"]] == [8, 3]
    assert [row["pay_cents"] for row in summary["entries"]] == [12000, 4500]


def test_daily_breakdown_has_one_row_per_day() -> None:
    entries = [
        make_entry("2026-03-16T08:00:00", "2026-03-16T12:00:00"),
        make_entry("2026-03-16T13:00:00", "2026-03-16T15:00:00"),
    ]

    days = daily_breakdown(entries, 2000, date(2026, 3, 15), date(2026, 3, 28))

    assert len(days) == 14
    monday = days[1]
    assert monday["date"] == "2026-03-16"
    assert monday["hours"] == 6
    assert monday["pay_cents"] == 12000
    assert len(monday["entries"]) == 2
    assert days[0]["hours"] == 0
