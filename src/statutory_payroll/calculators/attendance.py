"""Attendance aggregation for a payroll month."""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from typing import Mapping

from statutory_payroll.calculators.types import AttendanceInput

# Status -> loss-of-pay weight
LOP_WEIGHTS: dict[str, Decimal] = {
    "PRESENT": Decimal("0"),
    "ON_LEAVE": Decimal("0"),  # approved paid leave
    "HOLIDAY": Decimal("0"),
    "WEEKEND": Decimal("0"),
    "HALF_DAY": Decimal("0.5"),
    "ABSENT": Decimal("1"),
}


def working_days_in_month(month: int, year: int) -> int:
    """Count Monday-Friday days in a month."""
    _, days = calendar.monthrange(year, month)
    return sum(1 for d in range(1, days + 1) if date(year, month, d).weekday() < 5)


def summarize_attendance(
    month: int,
    year: int,
    statuses: Mapping[date, str],
) -> AttendanceInput:
    """Aggregate daily statuses into working, paid and LOP days.

    Days without a status are treated as paid. Statuses on weekends are
    ignored.
    """
    working_days = working_days_in_month(month, year)
    lop = Decimal("0")
    for day, status in statuses.items():
        if day.month != month or day.year != year or day.weekday() >= 5:
            continue
        try:
            lop += LOP_WEIGHTS[status.upper()]
        except KeyError:
            raise ValueError(f"Unknown attendance status {status!r} on {day}") from None

    return AttendanceInput(
        working_days=working_days,
        paid_days=max(Decimal("0"), Decimal(working_days) - lop),
        lop_days=lop,
    )
