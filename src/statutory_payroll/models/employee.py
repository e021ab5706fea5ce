"""Employee, salary structure and attendance models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from statutory_payroll.models.base import Base, TimestampMixin


class Employee(Base, TimestampMixin):
    """Employee with the identifiers used on statutory filings."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    gender: Mapped[str | None] = mapped_column(String, nullable=True)
    work_state: Mapped[str] = mapped_column(String(2), nullable=False)
    designation: Mapped[str | None] = mapped_column(String, nullable=True)
    date_of_joining: Mapped[date | None] = mapped_column(Date, nullable=True)
    pan: Mapped[str | None] = mapped_column(String(10), nullable=True)
    uan: Mapped[str | None] = mapped_column(String(12), nullable=True)
    esic_number: Mapped[str | None] = mapped_column(String(17), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "gender IS NULL OR gender IN ('MALE', 'FEMALE', 'OTHER')",
            name="employee_gender_check",
        ),
    )

    # Relationships
    salary_structures: Mapped[list[EmployeeSalaryStructure]] = relationship(
        back_populates="employee"
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}".strip()


class EmployeeSalaryStructure(Base, TimestampMixin):
    """Monthly salary components in paise, effective for a date range."""

    __tablename__ = "salary_structure"

    salary_structure_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    basic: Mapped[int] = mapped_column(nullable=False)
    hra: Mapped[int] = mapped_column(nullable=False, default=0)
    special_allowance: Mapped[int] = mapped_column(nullable=False, default=0)
    lta: Mapped[int] = mapped_column(nullable=False, default=0)
    medical: Mapped[int] = mapped_column(nullable=False, default=0)
    conveyance: Mapped[int] = mapped_column(nullable=False, default=0)
    other_allowances: Mapped[int] = mapped_column(nullable=False, default=0)
    tax_regime: Mapped[str] = mapped_column(String, nullable=False, default="NEW")

    __table_args__ = (
        CheckConstraint("tax_regime IN ('OLD', 'NEW')", name="salary_structure_regime_check"),
        CheckConstraint(
            "effective_to IS NULL OR effective_to >= effective_from",
            name="salary_structure_dates_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="salary_structures")

    def is_active_on(self, as_of_date: date) -> bool:
        """Check if structure is in force on a given date."""
        if self.effective_from > as_of_date:
            return False
        if self.effective_to is not None and self.effective_to < as_of_date:
            return False
        return True


class AttendanceSummary(Base, TimestampMixin):
    """Attendance aggregates and ad hoc adjustments for one employee and month.

    ``other_deductions`` carries loan EMIs and similar recoveries;
    ``reimbursements`` carries approved expense claims paid with salary.
    """

    __tablename__ = "attendance_summary"

    attendance_summary_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    working_days: Mapped[int] = mapped_column(Integer, nullable=False)
    paid_days: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False)
    lop_days: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False, default=Decimal("0"))
    other_deductions: Mapped[int] = mapped_column(nullable=False, default=0)
    reimbursements: Mapped[int] = mapped_column(nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("employee_id", "month", "year", name="attendance_summary_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="attendance_summary_month_check"),
    )
