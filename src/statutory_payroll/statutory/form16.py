"""Form 16 - annual TDS certificate for salaried employees."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable
from uuid import UUID

from statutory_payroll.calculators.money import format_rupees
from statutory_payroll.calculators.tds import TDSCalculator, financial_year_of
from statutory_payroll.calculators.types import PayrollInputError
from statutory_payroll.config import DeductorDetails
from statutory_payroll.statutory.form24q import (
    AnnualTaxComputation,
    compute_annual_tax,
    fy_label,
    quarter_periods,
)
from statutory_payroll.statutory.types import FilingRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Form16PartA:
    """Deductor, employee and period details."""

    tan: str
    pan_deductor: str
    deductor_name: str
    deductor_address: str
    financial_year: str
    assessment_year: str
    employee_pan: str
    employee_name: str
    employee_code: str
    period_from: str
    period_to: str


@dataclass(frozen=True)
class QuarterlyTDS:
    quarter: int
    amount_paid: int
    tds_deducted: int


@dataclass
class Form16Data:
    employee_id: UUID
    part_a: Form16PartA
    part_b: AnnualTaxComputation
    quarterly_tds: list[QuarterlyTDS] = field(default_factory=list)

    @property
    def total_tds_deducted(self) -> int:
        return sum(q.tds_deducted for q in self.quarterly_tds)

    @property
    def net_tax_payable(self) -> int:
        # Relief under section 89 is not computed
        return self.part_b.total_tax_payable

    def to_json_dict(self) -> dict[str, Any]:
        a = self.part_a
        b = self.part_b
        after_rebate = b.tax_on_total_income - b.rebate_87a
        return {
            "employee_id": str(self.employee_id),
            "part_a": {
                "tan": a.tan,
                "pan_deductor": a.pan_deductor,
                "deductor_name": a.deductor_name,
                "deductor_address": a.deductor_address,
                "financial_year": a.financial_year,
                "assessment_year": a.assessment_year,
                "employee_pan": a.employee_pan,
                "employee_name": a.employee_name,
                "employee_code": a.employee_code,
                "period_from": a.period_from,
                "period_to": a.period_to,
            },
            "part_b": {
                "gross_salary": format_rupees(b.gross_salary),
                "allowances_exempt": format_rupees(b.allowances_exempt),
                "net_salary": format_rupees(b.net_salary),
                "standard_deduction": format_rupees(b.standard_deduction),
                "entertainment_allowance": format_rupees(0),
                "professional_tax": format_rupees(b.professional_tax),
                "income_chargeable_salary": format_rupees(b.taxable_income),
                "income_other_sources": format_rupees(0),
                "gross_total_income": format_rupees(b.taxable_income),
                "deductions_chapter_via": format_rupees(0),
                "total_income": format_rupees(b.taxable_income),
                "tax_payable_on_total_income": format_rupees(b.tax_on_total_income),
                "rebate_87a": format_rupees(b.rebate_87a),
                "tax_after_rebate": format_rupees(after_rebate),
                "surcharge": format_rupees(b.surcharge),
                "health_education_cess": format_rupees(b.health_education_cess),
                "total_tax_payable": format_rupees(b.total_tax_payable),
                "relief_section_89": format_rupees(0),
                "net_tax_payable": format_rupees(self.net_tax_payable),
                "total_tds_deducted": format_rupees(self.total_tds_deducted),
                "tax_regime": b.tax_regime.value,
            },
            "quarterly_tds": [
                {
                    "quarter": f"Q{q.quarter}",
                    "amount_paid": format_rupees(q.amount_paid),
                    "tds_deducted": format_rupees(q.tds_deducted),
                }
                for q in self.quarterly_tds
            ],
        }


def generate_form16(
    records: Iterable[FilingRecord],
    employee_id: UUID,
    financial_year: int,
    deductor: DeductorDetails,
    tds_calculator: TDSCalculator | None = None,
) -> Form16Data:
    """Build one employee's Form 16 from the financial year's records.

    Raises:
        PayrollInputError: If the employee has no records in the year
    """
    tds_calculator = tds_calculator or TDSCalculator()
    rows = sorted(
        (
            r
            for r in records
            if r.employee_id == employee_id
            and financial_year_of(r.month, r.year) == financial_year
        ),
        key=lambda r: (r.year, r.month),
    )
    if not rows:
        raise PayrollInputError(
            "employee_id", f"no payroll records for {employee_id} in FY {fy_label(financial_year)}"
        )

    latest = rows[-1]
    if not latest.pan:
        logger.warning("Form 16 for %s generated without an employee PAN", employee_id)

    part_a = Form16PartA(
        tan=deductor.tan,
        pan_deductor=deductor.pan,
        deductor_name=deductor.name,
        deductor_address=deductor.address,
        financial_year=fy_label(financial_year),
        assessment_year=fy_label(financial_year + 1),
        employee_pan=latest.pan or "",
        employee_name=latest.name,
        employee_code=latest.employee_code,
        period_from=f"01/04/{financial_year}",
        period_to=f"31/03/{financial_year + 1}",
    )

    part_b = compute_annual_tax(
        gross_salary=sum(r.gross for r in rows),
        professional_tax=sum(r.pt for r in rows),
        tds_deducted=sum(r.tds for r in rows),
        regime=latest.tax_regime,
        tds_calculator=tds_calculator,
    )

    quarterly = []
    for quarter in range(1, 5):
        periods = set(quarter_periods(quarter, financial_year))
        in_quarter = [r for r in rows if (r.month, r.year) in periods]
        quarterly.append(
            QuarterlyTDS(
                quarter=quarter,
                amount_paid=sum(r.gross for r in in_quarter),
                tds_deducted=sum(r.tds for r in in_quarter),
            )
        )

    return Form16Data(
        employee_id=employee_id,
        part_a=part_a,
        part_b=part_b,
        quarterly_tds=quarterly,
    )


def render_form16_json(data: Form16Data) -> str:
    return json.dumps(data.to_json_dict(), indent=2)


def render_form16_text(data: Form16Data) -> str:
    """Render a plain-text certificate."""
    a = data.part_a
    b = data.to_json_dict()["part_b"]
    width = 72
    rule = "=" * width

    def row(label: str, value: str) -> str:
        return f"{label:<52}{value:>20}"

    lines = [
        rule,
        "FORM NO. 16".center(width),
        "Certificate under section 203 of the Income-tax Act, 1961".center(width),
        "for tax deducted at source on salary".center(width),
        rule,
        "PART A",
        f"Name of the deductor   : {a.deductor_name}",
        f"Address of the deductor: {a.deductor_address}",
        f"TAN of the deductor    : {a.tan}",
        f"PAN of the deductor    : {a.pan_deductor}",
        f"Name of the employee   : {a.employee_name} ({a.employee_code})",
        f"PAN of the employee    : {a.employee_pan}",
        f"Financial year         : {a.financial_year}",
        f"Assessment year        : {a.assessment_year}",
        f"Period with employer   : {a.period_from} to {a.period_to}",
        "",
        "Quarter-wise TDS",
        row("Quarter / Amount paid", "TDS deducted"),
    ]
    for q in data.quarterly_tds:
        lines.append(
            row(f"Q{q.quarter} / {format_rupees(q.amount_paid)}", format_rupees(q.tds_deducted))
        )

    lines += [
        "-" * width,
        "PART B",
        row("1. Gross salary", b["gross_salary"]),
        row("2. Less: allowances exempt u/s 10", b["allowances_exempt"]),
        row("3. Net salary", b["net_salary"]),
        row("4a. Standard deduction u/s 16(ia)", b["standard_deduction"]),
        row("4b. Entertainment allowance u/s 16(ii)", b["entertainment_allowance"]),
        row("4c. Professional tax u/s 16(iii)", b["professional_tax"]),
        row("5. Income chargeable under 'Salaries'", b["income_chargeable_salary"]),
        row("6. Income from other sources", b["income_other_sources"]),
        row("7. Gross total income", b["gross_total_income"]),
        row("8. Deductions under Chapter VI-A", b["deductions_chapter_via"]),
        row("9. Total taxable income", b["total_income"]),
        row("10. Tax on total income", b["tax_payable_on_total_income"]),
        row("11. Rebate u/s 87A", b["rebate_87a"]),
        row("12. Tax after rebate", b["tax_after_rebate"]),
        row("13. Surcharge", b["surcharge"]),
        row("14. Health and education cess", b["health_education_cess"]),
        row("15. Tax payable", b["total_tax_payable"]),
        row("16. Relief u/s 89", b["relief_section_89"]),
        row("17. Net tax payable", b["net_tax_payable"]),
        row("18. Total TDS deducted", b["total_tds_deducted"]),
        f"Tax regime: {b['tax_regime']}",
        rule,
    ]
    return "\n".join(lines) + "\n"
