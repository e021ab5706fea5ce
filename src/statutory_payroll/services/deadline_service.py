"""Statutory compliance deadline tracking."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from statutory_payroll.models import StatutoryDeadline
from statutory_payroll.models.base import utcnow
from statutory_payroll.statutory.deadlines import (
    ALERT_DAYS,
    DEADLINE_CATALOGUE,
    AlertSeverity,
    DeadlineStatus,
    alert_severity,
    alert_window,
    calculate_due_date,
    deadlines_for_month,
)

logger = logging.getLogger(__name__)

OPEN_STATUSES = (DeadlineStatus.PENDING.value, DeadlineStatus.OVERDUE.value)


class DeadlineNotFoundError(Exception):
    def __init__(self, deadline_id: UUID):
        self.deadline_id = deadline_id
        super().__init__(f"Statutory deadline {deadline_id} not found")


class DeadlineClosedError(Exception):
    """Raised when a filed or not-applicable deadline is changed."""

    def __init__(self, deadline_id: UUID, status: str):
        self.deadline_id = deadline_id
        self.status = status
        super().__init__(f"Statutory deadline {deadline_id} is already {status}")


@dataclass
class SweepResult:
    overdue: int = 0
    alerts: dict[int, int] = field(default_factory=lambda: {d: 0 for d in ALERT_DAYS})


@dataclass(frozen=True)
class UpcomingDeadline:
    deadline: StatutoryDeadline
    days_left: int
    severity: AlertSeverity


class DeadlineService:
    """Creates, sweeps and closes statutory deadlines."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_deadline(self, deadline_id: UUID) -> StatutoryDeadline:
        deadline = await self.session.get(StatutoryDeadline, deadline_id)
        if deadline is None:
            raise DeadlineNotFoundError(deadline_id)
        return deadline

    async def list_deadlines(
        self,
        status: str | None = None,
        year: int | None = None,
    ) -> list[StatutoryDeadline]:
        stmt = select(StatutoryDeadline).order_by(StatutoryDeadline.due_date)
        if status:
            stmt = stmt.where(StatutoryDeadline.status == DeadlineStatus(status).value)
        if year is not None:
            stmt = stmt.where(StatutoryDeadline.year == year)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def generate_for_month(self, month: int, year: int) -> list[StatutoryDeadline]:
        """Create the obligations arising from a payroll month.

        Existing rows are kept; a still-PENDING row gets its due date
        refreshed from the catalogue.
        """
        existing = {
            d.deadline_type: d
            for d in (
                await self.session.execute(
                    select(StatutoryDeadline).where(
                        StatutoryDeadline.month == month,
                        StatutoryDeadline.year == year,
                    )
                )
            ).scalars()
        }

        deadlines = []
        created = 0
        for deadline_type in deadlines_for_month(month, year):
            due = calculate_due_date(deadline_type, month, year)
            row = existing.get(deadline_type.value)
            if row is None:
                row = StatutoryDeadline(
                    deadline_type=deadline_type.value,
                    name=DEADLINE_CATALOGUE[deadline_type].name,
                    month=month,
                    year=year,
                    due_date=due,
                    status=DeadlineStatus.PENDING.value,
                )
                self.session.add(row)
                created += 1
            elif row.status == DeadlineStatus.PENDING.value:
                row.due_date = due
            deadlines.append(row)

        await self.session.flush()
        logger.info("Generated deadlines for %02d/%d: %d new", month, year, created)
        return deadlines

    async def sweep(self, today: date) -> SweepResult:
        """Mark overdue deadlines and raise the 7/3/1-day alert for the current window."""
        result = SweepResult()
        rows = (
            await self.session.execute(
                select(StatutoryDeadline).where(
                    StatutoryDeadline.status == DeadlineStatus.PENDING.value
                )
            )
        ).scalars()

        for row in rows:
            days_left = (row.due_date - today).days
            if days_left < 0:
                row.status = DeadlineStatus.OVERDUE.value
                result.overdue += 1
                logger.warning(
                    "Statutory deadline %s (%s %02d/%d) is overdue since %s",
                    row.deadline_id,
                    row.deadline_type,
                    row.month,
                    row.year,
                    row.due_date,
                )
                continue

            window = alert_window(days_left)
            if window is None:
                continue
            flag = f"alert_{window}_sent"
            if not getattr(row, flag):
                setattr(row, flag, True)
                result.alerts[window] += 1
                logger.warning(
                    "Statutory deadline %s (%s) due %s: %d day(s) left",
                    row.deadline_id,
                    row.deadline_type,
                    row.due_date,
                    days_left,
                )

        await self.session.flush()
        logger.info("Deadline sweep on %s: %d overdue, alerts %s", today, result.overdue, result.alerts)
        return result

    async def upcoming(self, today: date, look_ahead_days: int = 30) -> list[UpcomingDeadline]:
        """Open deadlines due within the window, overdue ones included."""
        horizon = today + timedelta(days=look_ahead_days)
        rows = (
            await self.session.execute(
                select(StatutoryDeadline)
                .where(
                    StatutoryDeadline.status.in_(OPEN_STATUSES),
                    StatutoryDeadline.due_date <= horizon,
                )
                .order_by(StatutoryDeadline.due_date)
            )
        ).scalars()
        return [
            UpcomingDeadline(
                deadline=row,
                days_left=(row.due_date - today).days,
                severity=alert_severity(row.due_date, today),
            )
            for row in rows
        ]

    async def mark_filed(
        self,
        deadline_id: UUID,
        filed_by: str,
        filing_reference: str | None = None,
        amount_paid: int | None = None,
    ) -> StatutoryDeadline:
        row = await self._open_deadline(deadline_id)
        row.status = DeadlineStatus.FILED.value
        row.filed_at = utcnow()
        row.filed_by = filed_by
        row.filing_reference = filing_reference
        row.amount_paid = amount_paid
        await self.session.flush()
        logger.info("Statutory deadline %s filed by %s", deadline_id, filed_by)
        return row

    async def mark_not_applicable(self, deadline_id: UUID, notes: str | None = None) -> StatutoryDeadline:
        row = await self._open_deadline(deadline_id)
        row.status = DeadlineStatus.NOT_APPLICABLE.value
        row.notes = notes
        await self.session.flush()
        logger.info("Statutory deadline %s marked not applicable", deadline_id)
        return row

    async def _open_deadline(self, deadline_id: UUID) -> StatutoryDeadline:
        row = await self.get_deadline(deadline_id)
        if row.status not in OPEN_STATUSES:
            raise DeadlineClosedError(deadline_id, row.status)
        return row
