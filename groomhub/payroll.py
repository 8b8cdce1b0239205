"""Pay period arithmetic and hour/pay aggregation over time entries.

Hours are counted per entry in whole hours (truncated), and an entry
belongs to the day its ``clock_in`` falls on. Open entries (no
``clock_out``) never count toward pay.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

PAY_PERIOD_DAYS = 14


def week_start(reference: date) -> date:
    """Sunday on or before ``reference``."""
    return reference - timedelta(days=(reference.weekday() + 1) % 7)


def week_bounds(reference: date) -> tuple[date, date]:
    start = week_start(reference)
    return start, start + timedelta(days=6)


def pay_period_bounds(reference: date) -> tuple[date, date]:
    """Two-week pay period: Sunday of ``reference``'s week to the Saturday after next."""
    start = week_start(reference)
    return start, start + timedelta(days=PAY_PERIOD_DAYS - 1)


def entry_hours(entry) -> int:
    if entry.clock_out is None:
        return 0
    seconds = (entry.clock_out - entry.clock_in).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // 3600)


def entries_in_range(entries: Iterable, start: date, end: date, closed_only: bool = True) -> list:
    selected = [
        entry
        for entry in entries
        if start <= entry.clock_in.date() <= end and (entry.clock_out is not None or not closed_only)
    ]
    return sorted(selected, key=lambda entry: entry.clock_in)


def summarize_entries(entries: Iterable, hourly_rate_cents: int, start: date, end: date) -> dict[str, object]:
    """Total hours and gross pay for the closed entries inside ``start``..``end``."""
    selected = entries_in_range(entries, start, end)
    rows = []
    for entry in selected:
        hours = entry_hours(entry)
        rows.append({
            **entry.to_dict(),
            "hours": hours,
            "pay_cents": hours * hourly_rate_cents,
        })

    total_hours = sum(row["hours"] for row in rows)
    return {
        "entries": rows,
        "total_hours": total_hours,
        "gross_pay_cents": total_hours * hourly_rate_cents,
    }


def daily_breakdown(entries: Iterable, hourly_rate_cents: int, start: date, end: date) -> list[dict[str, object]]:
    """One row per calendar day in ``start``..``end`` with that day's hours and pay."""
    selected = entries_in_range(entries, start, end)
    days = []
    current = start
    while current <= end:
        day_entries = [entry for entry in selected if entry.clock_in.date() == current]
        hours = sum(entry_hours(entry) for entry in day_entries)
        days.append({
            "date": current.isoformat(),
            "hours": hours,
            "pay_cents": hours * hourly_rate_cents,
            "entries": [entry.to_dict() for entry in day_entries],
        })
        current += timedelta(days=1)
    return days
