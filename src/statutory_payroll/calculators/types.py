"""Type definitions for the statutory calculation pipeline.

Every monetary field is an ``int`` in paise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class Gender(str, Enum):
    """Employee gender as used by Professional Tax slabs."""

    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class TaxRegime(str, Enum):
    """Income tax regime chosen by the employee."""

    OLD = "OLD"
    NEW = "NEW"


class PayrollInputError(ValueError):
    """Raised when inputs to a single computation are malformed."""

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        super().__init__(f"{field_name}: {message}")


@dataclass(frozen=True)
class PTSlab:
    """One Professional Tax slab for a state.

    ``salary_to`` is exclusive; ``None`` means unbounded. ``month`` and
    ``applies_to_gender`` are ``None`` when the slab applies to every month
    or every gender.
    """

    slab_id: UUID | None
    state_code: str
    salary_from: int
    salary_to: int | None
    tax_amount: int
    month: int | None = None
    applies_to_gender: Gender | None = None
    is_active: bool = True

    def covers(self, gross: int) -> bool:
        """Check whether a gross salary falls inside this slab's band."""
        if gross < self.salary_from:
            return False
        return self.salary_to is None or gross < self.salary_to

    def applies_to(self, gender: Gender | None) -> bool:
        return self.applies_to_gender is None or self.applies_to_gender == gender


@dataclass(frozen=True)
class SalaryStructure:
    """Monthly salary components before loss-of-pay."""

    basic: int
    hra: int = 0
    special_allowance: int = 0
    lta: int = 0
    medical: int = 0
    conveyance: int = 0
    other_allowances: int = 0
    tax_regime: TaxRegime = TaxRegime.NEW

    COMPONENTS = (
        "basic",
        "hra",
        "special_allowance",
        "lta",
        "medical",
        "conveyance",
        "other_allowances",
    )

    def components(self) -> dict[str, int]:
        """Return components in payslip order."""
        return {name: getattr(self, name) for name in self.COMPONENTS}

    @property
    def gross(self) -> int:
        return sum(self.components().values())


@dataclass(frozen=True)
class AttendanceInput:
    """Attendance aggregates for one employee and month."""

    working_days: int
    paid_days: Decimal
    lop_days: Decimal = Decimal("0")

    @property
    def effective_paid_days(self) -> Decimal:
        """Paid days after loss-of-pay is taken out."""
        return min(Decimal(self.paid_days), Decimal(self.working_days) - Decimal(self.lop_days))


@dataclass
class EmployeePayrollInput:
    """Everything needed to compute one employee's payroll record."""

    employee_id: UUID
    salary: SalaryStructure | None
    attendance: AttendanceInput | None
    work_state: str
    gender: Gender | None = None

    # Prior-period context supplied by the caller
    esi_covered_in_period: bool = False
    ytd_gross: int = 0
    ytd_tds: int = 0

    # Ad hoc adjustments
    other_deductions: int = 0
    reimbursements: int = 0

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "employee_id": str(self.employee_id),
            "salary": (
                {**self.salary.components(), "tax_regime": self.salary.tax_regime.value}
                if self.salary
                else None
            ),
            "attendance": (
                {
                    "working_days": self.attendance.working_days,
                    "paid_days": str(self.attendance.paid_days),
                    "lop_days": str(self.attendance.lop_days),
                }
                if self.attendance
                else None
            ),
            "work_state": self.work_state,
            "gender": self.gender.value if self.gender else None,
            "esi_covered_in_period": self.esi_covered_in_period,
            "ytd_gross": self.ytd_gross,
            "ytd_tds": self.ytd_tds,
            "other_deductions": self.other_deductions,
            "reimbursements": self.reimbursements,
        }


@dataclass(frozen=True)
class ESIResult:
    """ESI contribution outcome."""

    applicable: bool
    employee_contribution: int
    employer_contribution: int
    gross_used: int
    reason: str | None = None


@dataclass(frozen=True)
class PTResult:
    """Professional Tax outcome for one month."""

    tax_amount: int
    slab_id: UUID | None
    is_exempt: bool
    reason: str | None = None


@dataclass(frozen=True)
class EmployerPFBreakdown:
    """Employer's PF contribution split."""

    epf: int = 0
    eps: int = 0
    edli: int = 0
    admin_charges: int = 0

    @property
    def total(self) -> int:
        return self.epf + self.eps + self.edli + self.admin_charges


@dataclass(frozen=True)
class PFResult:
    """PF contribution outcome."""

    pf_base: int
    employee_contribution: int
    employer: EmployerPFBreakdown

    @property
    def employer_total(self) -> int:
        return self.employer.total


@dataclass(frozen=True)
class TDSResult:
    """Monthly TDS projection."""

    monthly_tds: int
    projected_annual_income: int
    taxable_income: int
    projected_annual_tax: int
    regime: TaxRegime
    remaining_months: int


@dataclass
class PayrollRecordResult:
    """A fully computed payroll record for one employee and month."""

    employee_id: UUID
    month: int
    year: int

    # Input snapshot
    working_days: int
    paid_days: Decimal
    lop_days: Decimal

    # Earnings (earned, after LOP)
    earnings: dict[str, int]
    gross_before_lop: int
    lop_deduction: int
    gross: int

    # Deductions
    pf: PFResult
    esi: ESIResult
    pt: PTResult
    tds: TDSResult
    other_deductions: int
    reimbursements: int

    tax_regime: TaxRegime
    inputs_fingerprint: str
    notes: list[str] = field(default_factory=list)

    @property
    def total_deductions(self) -> int:
        return (
            self.pf.employee_contribution
            + self.esi.employee_contribution
            + self.pt.tax_amount
            + self.tds.monthly_tds
            + self.other_deductions
        )

    @property
    def net(self) -> int:
        return self.gross - self.total_deductions + self.reimbursements

    @property
    def employer_cost(self) -> int:
        return self.gross + self.pf.employer_total + self.esi.employer_contribution


@dataclass(frozen=True)
class EmployeeError:
    """A per-employee calculation failure reported in the run summary."""

    employee_id: UUID
    message: str
