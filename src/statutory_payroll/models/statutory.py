"""Statutory deadline and generated-file audit models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from statutory_payroll.models.base import Base, ImmutableRecordError, TimestampMixin


class StatutoryDeadline(Base, TimestampMixin):
    """A compliance obligation arising from a payroll month."""

    __tablename__ = "statutory_deadline"

    deadline_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    deadline_type: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")

    filed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    filed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    filing_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    amount_paid: Mapped[int | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    alert_7_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    alert_3_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    alert_1_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("deadline_type", "month", "year", name="statutory_deadline_period_unique"),
        CheckConstraint(
            "status IN ('PENDING', 'FILED', 'OVERDUE', 'NOT_APPLICABLE')",
            name="statutory_deadline_status_check",
        ),
        Index("statutory_deadline_status_due_idx", "status", "due_date"),
    )


class StatutoryFile(Base, TimestampMixin):
    """Audit row for a generated submission artifact. Written once."""

    __tablename__ = "statutory_file"

    file_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    file_type: Mapped[str] = mapped_column(String, nullable=False)
    filename: Mapped[str] = mapped_column(String, nullable=False)
    payroll_run_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id"),
        nullable=True,
    )
    month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quarter: Mapped[int | None] = mapped_column(Integer, nullable=True)
    financial_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    record_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[int] = mapped_column(nullable=False)
    content_sha256: Mapped[str] = mapped_column(String(64), nullable=False)
    warnings: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    generated_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "file_type IN ('ECR', 'ESI_CHALLAN', 'FORM_24Q', 'FORM_16')",
            name="statutory_file_type_check",
        ),
    )


@event.listens_for(StatutoryFile, "before_update")
def _reject_file_update(mapper, connection, target: StatutoryFile) -> None:
    raise ImmutableRecordError("statutory_file", target.file_id)
