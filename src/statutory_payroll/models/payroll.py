"""Payroll run, payroll record and Professional Tax slab models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from statutory_payroll.calculators.types import Gender, PTSlab
from statutory_payroll.models.base import Base, ImmutableRecordError, TimestampMixin
from statutory_payroll.models.employee import Employee

# ===== Professional Tax =====


class ProfessionalTaxSlab(Base, TimestampMixin):
    """State Professional Tax slab. Never deleted; deactivated instead."""

    __tablename__ = "professional_tax_slab"

    slab_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    state_code: Mapped[str] = mapped_column(String(2), nullable=False)
    salary_from: Mapped[int] = mapped_column(nullable=False)
    salary_to: Mapped[int | None] = mapped_column(nullable=True)
    tax_amount: Mapped[int] = mapped_column(nullable=False)
    month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    applies_to_gender: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    superseded_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "salary_to IS NULL OR salary_to > salary_from",
            name="pt_slab_range_check",
        ),
        CheckConstraint("month IS NULL OR month BETWEEN 1 AND 12", name="pt_slab_month_check"),
        Index("pt_slab_state_active_idx", "state_code", "is_active"),
    )

    def to_slab(self) -> PTSlab:
        """Convert to the calculator's slab value."""
        return PTSlab(
            slab_id=self.slab_id,
            state_code=self.state_code,
            salary_from=self.salary_from,
            salary_to=self.salary_to,
            tax_amount=self.tax_amount,
            month=self.month,
            applies_to_gender=Gender(self.applies_to_gender) if self.applies_to_gender else None,
            is_active=self.is_active,
        )


# ===== Payroll Run & Immutable Records =====


class PayrollRun(Base, TimestampMixin):
    """Monthly payroll run. At most one non-reverted run per period."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    engine_version: Mapped[str] = mapped_column(String, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reverted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    revert_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    employee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_gross: Mapped[int] = mapped_column(nullable=False, default=0)
    total_deductions: Mapped[int] = mapped_column(nullable=False, default=0)
    total_net: Mapped[int] = mapped_column(nullable=False, default=0)
    errors_json: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_run_month_check"),
        CheckConstraint(
            "status IN ('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED', 'REVERTED')",
            name="payroll_run_status_check",
        ),
        Index(
            "payroll_run_period_active_unique",
            "month",
            "year",
            unique=True,
            postgresql_where=text("status <> 'REVERTED'"),
            sqlite_where=text("status <> 'REVERTED'"),
        ),
    )

    # Relationships
    records: Mapped[list[PayrollRecord]] = relationship(
        back_populates="payroll_run",
        cascade="all, delete-orphan",
    )


class PayrollRecord(Base, TimestampMixin):
    """Immutable per-employee payroll record (one per employee per run)."""

    __tablename__ = "payroll_record"

    payroll_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Input snapshot
    working_days: Mapped[int] = mapped_column(Integer, nullable=False)
    paid_days: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False)
    lop_days: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False)
    inputs_fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)

    # Earnings (after LOP)
    basic: Mapped[int] = mapped_column(nullable=False)
    hra: Mapped[int] = mapped_column(nullable=False)
    special_allowance: Mapped[int] = mapped_column(nullable=False)
    lta: Mapped[int] = mapped_column(nullable=False)
    medical: Mapped[int] = mapped_column(nullable=False)
    conveyance: Mapped[int] = mapped_column(nullable=False)
    other_allowances: Mapped[int] = mapped_column(nullable=False)
    gross_before_lop: Mapped[int] = mapped_column(nullable=False)
    lop_deduction: Mapped[int] = mapped_column(nullable=False)
    gross: Mapped[int] = mapped_column(nullable=False)

    # Deductions
    pf_base: Mapped[int] = mapped_column(nullable=False)
    pf_employee: Mapped[int] = mapped_column(nullable=False)
    pf_employer_epf: Mapped[int] = mapped_column(nullable=False)
    pf_employer_eps: Mapped[int] = mapped_column(nullable=False)
    pf_employer_edli: Mapped[int] = mapped_column(nullable=False)
    pf_admin_charges: Mapped[int] = mapped_column(nullable=False)
    esi_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False)
    esi_employee: Mapped[int] = mapped_column(nullable=False)
    esi_employer: Mapped[int] = mapped_column(nullable=False)
    pt: Mapped[int] = mapped_column(nullable=False)
    pt_slab_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("professional_tax_slab.slab_id"),
        nullable=True,
    )
    tds: Mapped[int] = mapped_column(nullable=False)
    tax_regime: Mapped[str] = mapped_column(String, nullable=False)
    other_deductions: Mapped[int] = mapped_column(nullable=False, default=0)
    reimbursements: Mapped[int] = mapped_column(nullable=False, default=0)

    # Totals
    total_deductions: Mapped[int] = mapped_column(nullable=False)
    net: Mapped[int] = mapped_column(nullable=False)
    employer_cost: Mapped[int] = mapped_column(nullable=False)
    notes: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("payroll_run_id", "employee_id", name="payroll_record_run_employee_unique"),
        Index("payroll_record_employee_period_idx", "employee_id", "year", "month"),
    )

    # Relationships
    payroll_run: Mapped[PayrollRun] = relationship(back_populates="records")
    employee: Mapped[Employee] = relationship()


@event.listens_for(PayrollRecord, "before_update")
def _reject_record_update(mapper, connection, target: PayrollRecord) -> None:
    raise ImmutableRecordError("payroll_record", target.payroll_record_id)
