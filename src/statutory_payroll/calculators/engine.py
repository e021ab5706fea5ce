"""Payroll calculation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from statutory_payroll.calculators.esi import ESICalculator
from statutory_payroll.calculators.money import prorate
from statutory_payroll.calculators.pf import PFCalculator
from statutory_payroll.calculators.pt import ProfessionalTaxCalculator, SlabRepository
from statutory_payroll.calculators.rates import DEFAULT_SCHEDULE, RateSchedule, StatutoryRates
from statutory_payroll.calculators.tds import TDSCalculator
from statutory_payroll.calculators.types import (
    AttendanceInput,
    EmployeeError,
    EmployeePayrollInput,
    Gender,
    PayrollInputError,
    PayrollRecordResult,
    SalaryStructure,
)

logger = logging.getLogger(__name__)

CONTINUED_ESI_COVERAGE = "continued coverage for contribution period"


class PayrollRecordBuilder:
    """Builds one employee's payroll record.

    Calculation pipeline (stable order):
    1) Validate inputs
    2) Pro-rate each earning component by paid days / working days
    3) PF on earned basic, capped at the wage ceiling
    4) ESI on gross, honouring continued coverage within the period
    5) PT on gross for the work state, month and gender
    6) TDS from the annual projection
    7) Other deductions and reimbursements
    """

    def __init__(
        self,
        rates: StatutoryRates,
        slabs: SlabRepository,
        tds_calculator: TDSCalculator | None = None,
        default_gender: Gender = Gender.MALE,
    ):
        self.rates = rates
        self.pf_calculator = PFCalculator(rates)
        self.esi_calculator = ESICalculator(rates)
        self.pt_calculator = ProfessionalTaxCalculator(slabs)
        self.tds_calculator = tds_calculator or TDSCalculator()
        self.default_gender = default_gender

    def build(self, inp: EmployeePayrollInput, month: int, year: int) -> PayrollRecordResult:
        """Compute a complete record, raising PayrollInputError on bad inputs."""
        salary, attendance = self._validate(inp, month)

        paid = attendance.effective_paid_days
        earnings = {
            name: prorate(amount, paid, attendance.working_days)
            for name, amount in salary.components().items()
        }
        gross_before_lop = salary.gross
        gross = sum(earnings.values())
        lop_deduction = gross_before_lop - gross

        notes: list[str] = []

        pf = self.pf_calculator.calculate(earnings["basic"])

        esi = self.esi_calculator.calculate(gross)
        if not esi.applicable and inp.esi_covered_in_period:
            esi = self.esi_calculator.contributions(gross, reason=CONTINUED_ESI_COVERAGE)
            notes.append(CONTINUED_ESI_COVERAGE)

        pt = self.pt_calculator.calculate(
            inp.work_state,
            gross,
            month,
            inp.gender or self.default_gender,
        )
        if pt.reason:
            notes.append(pt.reason)

        tds = self.tds_calculator.monthly(
            gross,
            month,
            salary.tax_regime,
            ytd_gross=inp.ytd_gross,
            ytd_tds=inp.ytd_tds,
        )

        record = PayrollRecordResult(
            employee_id=inp.employee_id,
            month=month,
            year=year,
            working_days=attendance.working_days,
            paid_days=Decimal(attendance.paid_days),
            lop_days=Decimal(attendance.lop_days),
            earnings=earnings,
            gross_before_lop=gross_before_lop,
            lop_deduction=lop_deduction,
            gross=gross,
            pf=pf,
            esi=esi,
            pt=pt,
            tds=tds,
            other_deductions=inp.other_deductions,
            reimbursements=inp.reimbursements,
            tax_regime=salary.tax_regime,
            inputs_fingerprint=self.compute_inputs_fingerprint(inp, month, year),
            notes=notes,
        )

        if record.net < 0:
            raise PayrollInputError("net", f"Negative net pay: {record.net}")

        return record

    def _validate(
        self, inp: EmployeePayrollInput, month: int
    ) -> tuple[SalaryStructure, AttendanceInput]:
        """Check inputs and return the salary and attendance they carry."""
        if not 1 <= month <= 12:
            raise PayrollInputError("month", f"must be 1-12, got {month}")
        if inp.salary is None:
            raise PayrollInputError("salary", "no active salary structure")
        if inp.attendance is None:
            raise PayrollInputError("attendance", "no attendance summary for the period")

        for name, amount in inp.salary.components().items():
            if amount < 0:
                raise PayrollInputError(name, "must not be negative")

        att = inp.attendance
        if att.working_days <= 0:
            raise PayrollInputError("working_days", "must be positive")
        if att.paid_days < 0 or att.lop_days < 0:
            raise PayrollInputError("attendance", "paid and LOP days must not be negative")
        if att.paid_days > att.working_days:
            raise PayrollInputError("paid_days", "cannot exceed working days")
        if att.lop_days > att.working_days:
            raise PayrollInputError("lop_days", "cannot exceed working days")

        if inp.other_deductions < 0 or inp.reimbursements < 0:
            raise PayrollInputError("adjustments", "must not be negative")
        if inp.ytd_gross < 0 or inp.ytd_tds < 0:
            raise PayrollInputError("ytd", "must not be negative")

        return inp.salary, att

    @staticmethod
    def compute_inputs_fingerprint(inp: EmployeePayrollInput, month: int, year: int) -> str:
        """Compute deterministic fingerprint of the input snapshot."""
        canonical = {"month": month, "year": year, **inp.to_canonical_dict()}
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()


@dataclass
class PayrollRunCalculationResult:
    """Result of calculating an entire payroll run."""

    month: int
    year: int
    records: dict[UUID, PayrollRecordResult] = field(default_factory=dict)
    errors: list[EmployeeError] = field(default_factory=list)
    failed: bool = False
    failure_reason: str | None = None

    @property
    def employee_count(self) -> int:
        return len(self.records) + len(self.errors)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def total_gross(self) -> int:
        return sum(r.gross for r in self.records.values())

    @property
    def total_deductions(self) -> int:
        return sum(r.total_deductions for r in self.records.values())

    @property
    def total_net(self) -> int:
        return sum(r.net for r in self.records.values())


class PayrollEngine:
    """Computes a payroll run for one (month, year).

    Every employee is computed from its own inputs. A failing employee is
    reported in ``errors`` and does not stop the others. The run as a whole
    fails when it has no employees or when the failed share exceeds
    ``failure_threshold``.
    """

    def __init__(
        self,
        slabs: SlabRepository,
        schedule: RateSchedule = DEFAULT_SCHEDULE,
        failure_threshold: Decimal = Decimal("0.5"),
        tds_calculator: TDSCalculator | None = None,
    ):
        if not Decimal("0") <= failure_threshold <= Decimal("1"):
            raise ValueError("failure_threshold must be between 0 and 1")
        self.slabs = slabs
        self.schedule = schedule
        self.failure_threshold = failure_threshold
        self.tds_calculator = tds_calculator or TDSCalculator()

    def builder_for(self, month: int, year: int) -> PayrollRecordBuilder:
        """Builder bound to the rates in force for the period."""
        return PayrollRecordBuilder(
            self.schedule.rates_for(month, year),
            self.slabs,
            tds_calculator=self.tds_calculator,
        )

    def calculate_run(
        self,
        inputs: Iterable[EmployeePayrollInput],
        month: int,
        year: int,
    ) -> PayrollRunCalculationResult:
        """Calculate records for all employees in the period."""
        builder = self.builder_for(month, year)
        result = PayrollRunCalculationResult(month=month, year=year)

        for inp in inputs:
            try:
                result.records[inp.employee_id] = builder.build(inp, month, year)
            except PayrollInputError as e:
                logger.warning("Payroll record for %s not computed: %s", inp.employee_id, e)
                result.errors.append(EmployeeError(inp.employee_id, str(e)))
            except Exception as e:
                logger.exception("Unexpected error computing payroll for %s", inp.employee_id)
                result.errors.append(EmployeeError(inp.employee_id, f"Unexpected error: {e}"))

        result.failed, result.failure_reason = self._decide_outcome(result)
        return result

    def _decide_outcome(self, result: PayrollRunCalculationResult) -> tuple[bool, str | None]:
        total = result.employee_count
        if total == 0:
            return True, "No employees to process"
        if not result.records:
            return True, f"All {total} employee records failed"

        failed_share = Decimal(result.error_count) / Decimal(total)
        if failed_share > self.failure_threshold:
            return True, (
                f"{result.error_count} of {total} employee records failed "
                f"(threshold {self.failure_threshold})"
            )
        return False, None
