"""Statutory compliance deadline catalogue and due-date rules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class DeadlineType(str, Enum):
    PF_PAYMENT = "PF_PAYMENT"
    PF_RETURN = "PF_RETURN"
    ESI_PAYMENT = "ESI_PAYMENT"
    TDS_DEPOSIT = "TDS_DEPOSIT"
    PT_PAYMENT = "PT_PAYMENT"
    TDS_RETURN_24Q = "TDS_RETURN_24Q"
    FORM_16 = "FORM_16"


class DeadlineFrequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUAL = "ANNUAL"


class DeadlineStatus(str, Enum):
    PENDING = "PENDING"
    FILED = "FILED"
    OVERDUE = "OVERDUE"
    NOT_APPLICABLE = "NOT_APPLICABLE"


class AlertSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class DeadlineDefinition:
    deadline_type: DeadlineType
    name: str
    frequency: DeadlineFrequency
    due_day: int


DEADLINE_CATALOGUE: dict[DeadlineType, DeadlineDefinition] = {
    d.deadline_type: d
    for d in (
        DeadlineDefinition(DeadlineType.PF_PAYMENT, "PF contribution payment", DeadlineFrequency.MONTHLY, 15),
        DeadlineDefinition(DeadlineType.PF_RETURN, "PF ECR filing", DeadlineFrequency.MONTHLY, 15),
        DeadlineDefinition(DeadlineType.ESI_PAYMENT, "ESI contribution payment", DeadlineFrequency.MONTHLY, 15),
        DeadlineDefinition(DeadlineType.TDS_DEPOSIT, "TDS deposit", DeadlineFrequency.MONTHLY, 7),
        DeadlineDefinition(DeadlineType.PT_PAYMENT, "Professional Tax payment", DeadlineFrequency.MONTHLY, 20),
        DeadlineDefinition(DeadlineType.TDS_RETURN_24Q, "Form 24Q quarterly return", DeadlineFrequency.QUARTERLY, 31),
        DeadlineDefinition(DeadlineType.FORM_16, "Form 16 issue to employees", DeadlineFrequency.ANNUAL, 15),
    )
}

MONTHLY_DEADLINES = tuple(
    d.deadline_type for d in DEADLINE_CATALOGUE.values() if d.frequency == DeadlineFrequency.MONTHLY
)

QUARTER_END_MONTHS = frozenset({3, 6, 9, 12})

# Upper bound in days of each alert window; see alert_window
ALERT_DAYS = (7, 3, 1)


def _next_month(month: int, year: int) -> tuple[int, int]:
    return (1, year + 1) if month == 12 else (month + 1, year)


def quarter_of(month: int) -> int:
    """Financial-year quarter (Q1 = Apr-Jun) a calendar month belongs to."""
    return ((month - 4) % 12) // 3 + 1


def calculate_due_date(deadline_type: DeadlineType, month: int, year: int) -> date:
    """Due date of the obligation arising from payroll month ``month/year``.

    Monthly obligations fall due in the following month. The 24Q return for
    a quarter falls due at the end of the month after the quarter closes,
    except Q4 which is due on May 31. Form 16 is due on June 15 after the
    financial year ends.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")
    definition = DEADLINE_CATALOGUE[deadline_type]

    if definition.frequency == DeadlineFrequency.MONTHLY:
        due_month, due_year = _next_month(month, year)
        return date(due_year, due_month, definition.due_day)

    if deadline_type == DeadlineType.TDS_RETURN_24Q:
        quarter = quarter_of(month)
        if quarter == 1:
            return date(year, 7, 31)
        if quarter == 2:
            return date(year, 10, 31)
        if quarter == 3:
            return date(year + 1 if month >= 10 else year, 1, 31)
        return date(year, 5, 31)

    # FORM_16: financial year ending in March of ``year`` (or the next March)
    fy_end_year = year if month <= 3 else year + 1
    return date(fy_end_year, 6, definition.due_day)


def deadlines_for_month(month: int, year: int) -> list[DeadlineType]:
    """Obligations created by closing payroll for a month."""
    types = list(MONTHLY_DEADLINES)
    if month in QUARTER_END_MONTHS:
        types.append(DeadlineType.TDS_RETURN_24Q)
    if month == 3:
        types.append(DeadlineType.FORM_16)
    return types


def alert_severity(due_date: date, today: date) -> AlertSeverity:
    days_left = (due_date - today).days
    if days_left <= 1:
        return AlertSeverity.CRITICAL
    if days_left <= 3:
        return AlertSeverity.WARNING
    return AlertSeverity.INFO


def alert_window(days_left: int) -> int | None:
    """Alert raised for ``days_left``: 7 for 4-7 days, 3 for 2-3, 1 for 0-1.

    Windows do not overlap, so a sweep raises at most one alert per deadline.
    """
    if 3 < days_left <= 7:
        return 7
    if 1 < days_left <= 3:
        return 3
    if 0 <= days_left <= 1:
        return 1
    return None
