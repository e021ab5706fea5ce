"""Form 24Q - quarterly TDS return on salary.

- Annexure I: deductee-wise TDS for the quarter (every quarter)
- Annexure II: annual salary and tax computation per employee (Q4 only)
"""

from __future__ import annotations

import calendar
import json
from dataclasses import dataclass, field
from typing import Any, Iterable
from uuid import UUID

from statutory_payroll.calculators.money import format_rupees
from statutory_payroll.calculators.tds import TDSCalculator, financial_year_of
from statutory_payroll.calculators.types import PayrollInputError, TaxRegime
from statutory_payroll.config import DeductorDetails
from statutory_payroll.statutory.types import FilingRecord

# Quarter -> months, with year offset from the FY start year
QUARTER_MONTHS: dict[int, tuple[tuple[int, int], ...]] = {
    1: ((4, 0), (5, 0), (6, 0)),
    2: ((7, 0), (8, 0), (9, 0)),
    3: ((10, 0), (11, 0), (12, 0)),
    4: ((1, 1), (2, 1), (3, 1)),
}


def quarter_periods(quarter: int, financial_year: int) -> list[tuple[int, int]]:
    """(month, year) pairs of a financial-year quarter."""
    if quarter not in QUARTER_MONTHS:
        raise PayrollInputError("quarter", f"must be 1-4, got {quarter}")
    return [(m, financial_year + offset) for m, offset in QUARTER_MONTHS[quarter]]


def fy_label(financial_year: int) -> str:
    """``2025`` -> ``2025-26``."""
    return f"{financial_year}-{str(financial_year + 1)[-2:]}"


def _last_day(month: int, year: int) -> str:
    return f"{calendar.monthrange(year, month)[1]:02d}/{month:02d}/{year}"


@dataclass
class Deductee:
    """Annexure I line for one employee."""

    employee_id: UUID
    pan: str
    name: str
    designation: str
    date_of_payment: str
    amount_paid: int = 0
    tds_deducted: int = 0
    tds_deposited: int = 0

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "employee_id": str(self.employee_id),
            "pan": self.pan,
            "name": self.name,
            "designation": self.designation,
            "date_of_payment": self.date_of_payment,
            "amount_paid": format_rupees(self.amount_paid),
            "tds_deducted": format_rupees(self.tds_deducted),
            "tds_deposited": format_rupees(self.tds_deposited),
        }


@dataclass
class AnnexureI:
    quarter: int
    financial_year: str
    deductor: DeductorDetails
    deductees: list[Deductee] = field(default_factory=list)

    @property
    def total_amount_paid(self) -> int:
        return sum(d.amount_paid for d in self.deductees)

    @property
    def total_tds_deducted(self) -> int:
        return sum(d.tds_deducted for d in self.deductees)

    @property
    def total_tds_deposited(self) -> int:
        return sum(d.tds_deposited for d in self.deductees)

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "quarter": self.quarter,
            "financial_year": self.financial_year,
            "deductor_tan": self.deductor.tan,
            "deductor_name": self.deductor.name,
            "deductor_pan": self.deductor.pan,
            "deductor_address": self.deductor.address,
            "responsible_person_name": self.deductor.responsible_person,
            "responsible_person_designation": self.deductor.responsible_designation,
            "deductees": [d.to_json_dict() for d in self.deductees],
            "total_amount_paid": format_rupees(self.total_amount_paid),
            "total_tds_deducted": format_rupees(self.total_tds_deducted),
            "total_tds_deposited": format_rupees(self.total_tds_deposited),
        }


@dataclass
class AnnualTaxComputation:
    """Annual salary and tax figures for one employee."""

    gross_salary: int
    allowances_exempt: int
    net_salary: int
    standard_deduction: int
    professional_tax: int
    taxable_income: int
    tax_on_total_income: int
    rebate_87a: int
    surcharge: int
    health_education_cess: int
    total_tax_payable: int
    tds_deducted: int
    tax_regime: TaxRegime

    MONEY_FIELDS = (
        "gross_salary",
        "allowances_exempt",
        "net_salary",
        "standard_deduction",
        "professional_tax",
        "taxable_income",
        "tax_on_total_income",
        "rebate_87a",
        "surcharge",
        "health_education_cess",
        "total_tax_payable",
        "tds_deducted",
    )

    def to_json_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {name: format_rupees(getattr(self, name)) for name in self.MONEY_FIELDS}
        data["tax_regime"] = self.tax_regime.value
        return data


def compute_annual_tax(
    gross_salary: int,
    professional_tax: int,
    tds_deducted: int,
    regime: TaxRegime,
    tds_calculator: TDSCalculator,
) -> AnnualTaxComputation:
    """Annual computation shared by Annexure II and Form 16.

    No HRA or Chapter VI-A exemptions are applied.
    """
    allowances_exempt = 0
    net_salary = gross_salary - allowances_exempt
    standard_deduction = tds_calculator.standard_deduction(regime)
    taxable = max(0, net_salary - standard_deduction - professional_tax)

    tax = tds_calculator.slab_tax(taxable, regime)
    rebate = tds_calculator.rebate(taxable, tax, regime)
    after_rebate = tax - rebate
    cess = tds_calculator.cess(after_rebate, regime)

    return AnnualTaxComputation(
        gross_salary=gross_salary,
        allowances_exempt=allowances_exempt,
        net_salary=net_salary,
        standard_deduction=standard_deduction,
        professional_tax=professional_tax,
        taxable_income=taxable,
        tax_on_total_income=tax,
        rebate_87a=rebate,
        surcharge=0,
        health_education_cess=cess,
        total_tax_payable=after_rebate + cess,
        tds_deducted=tds_deducted,
        tax_regime=regime,
    )


@dataclass
class AnnexureIIEmployee:
    employee_id: UUID
    pan: str
    name: str
    employee_code: str
    computation: AnnualTaxComputation

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "employee_id": str(self.employee_id),
            "pan": self.pan,
            "name": self.name,
            "employee_code": self.employee_code,
            **self.computation.to_json_dict(),
        }


@dataclass
class AnnexureII:
    financial_year: str
    deductor: DeductorDetails
    employees: list[AnnexureIIEmployee] = field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "financial_year": self.financial_year,
            "deductor_tan": self.deductor.tan,
            "deductor_name": self.deductor.name,
            "employees": [e.to_json_dict() for e in self.employees],
        }


@dataclass
class Form24QData:
    annexure_i: AnnexureI
    annexure_ii: AnnexureII | None = None

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "annexure_i": self.annexure_i.to_json_dict(),
            "annexure_ii": self.annexure_ii.to_json_dict() if self.annexure_ii else None,
        }


def build_annexure_i(
    records: Iterable[FilingRecord],
    quarter: int,
    financial_year: int,
    deductor: DeductorDetails,
) -> AnnexureI:
    """Aggregate the quarter's TDS per employee."""
    periods = set(quarter_periods(quarter, financial_year))
    deductees: dict[UUID, Deductee] = {}
    last_paid: dict[UUID, tuple[int, int]] = {}

    for record in sorted(records, key=lambda r: (r.year, r.month)):
        if (record.month, record.year) not in periods or record.tds <= 0:
            continue
        entry = deductees.get(record.employee_id)
        if entry is None:
            entry = Deductee(
                employee_id=record.employee_id,
                pan=record.pan or "",
                name=record.name,
                designation=record.designation or "N/A",
                date_of_payment="",
            )
            deductees[record.employee_id] = entry
        entry.amount_paid += record.gross
        entry.tds_deducted += record.tds
        entry.tds_deposited += record.tds  # deposit assumed with the deduction
        last_paid[record.employee_id] = (record.month, record.year)

    for employee_id, entry in deductees.items():
        entry.date_of_payment = _last_day(*last_paid[employee_id])

    return AnnexureI(
        quarter=quarter,
        financial_year=fy_label(financial_year),
        deductor=deductor,
        deductees=list(deductees.values()),
    )


def build_annexure_ii(
    records: Iterable[FilingRecord],
    financial_year: int,
    deductor: DeductorDetails,
    tds_calculator: TDSCalculator | None = None,
) -> AnnexureII:
    """Annual per-employee salary and tax computation for the financial year."""
    tds_calculator = tds_calculator or TDSCalculator()
    by_employee: dict[UUID, list[FilingRecord]] = {}
    for record in records:
        if financial_year_of(record.month, record.year) != financial_year:
            continue
        by_employee.setdefault(record.employee_id, []).append(record)

    employees = []
    for employee_id, rows in by_employee.items():
        rows.sort(key=lambda r: (r.year, r.month))
        latest = rows[-1]
        computation = compute_annual_tax(
            gross_salary=sum(r.gross for r in rows),
            professional_tax=sum(r.pt for r in rows),
            tds_deducted=sum(r.tds for r in rows),
            regime=latest.tax_regime,
            tds_calculator=tds_calculator,
        )
        employees.append(
            AnnexureIIEmployee(
                employee_id=employee_id,
                pan=latest.pan or "",
                name=latest.name,
                employee_code=latest.employee_code,
                computation=computation,
            )
        )

    return AnnexureII(
        financial_year=fy_label(financial_year),
        deductor=deductor,
        employees=employees,
    )


def generate_form24q(
    records: Iterable[FilingRecord],
    quarter: int,
    financial_year: int,
    deductor: DeductorDetails,
    tds_calculator: TDSCalculator | None = None,
) -> Form24QData:
    """Build Form 24Q data; Annexure II is included only for Q4."""
    rows = list(records)
    annexure_i = build_annexure_i(rows, quarter, financial_year, deductor)
    annexure_ii = None
    if quarter == 4:
        annexure_ii = build_annexure_ii(rows, financial_year, deductor, tds_calculator)
    return Form24QData(annexure_i=annexure_i, annexure_ii=annexure_ii)


def render_form24q_json(data: Form24QData) -> str:
    """Render Form 24Q data as JSON for portal upload preparation."""
    return json.dumps(data.to_json_dict(), indent=2)
