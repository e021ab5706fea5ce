"""Payroll run service - main orchestrator for payroll operations."""

from __future__ import annotations

import calendar
import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from statutory_payroll.calculators.engine import PayrollEngine, PayrollRunCalculationResult
from statutory_payroll.calculators.esi import ESICalculator
from statutory_payroll.calculators.tds import financial_year_of
from statutory_payroll.calculators.types import (
    AttendanceInput,
    EmployeePayrollInput,
    Gender,
    PayrollRecordResult,
    SalaryStructure,
    TaxRegime,
)
from statutory_payroll.config import Settings, get_settings
from statutory_payroll.models import (
    AttendanceSummary,
    Employee,
    EmployeeSalaryStructure,
    PayrollRecord,
    PayrollRun,
)
from statutory_payroll.models.base import utcnow
from statutory_payroll.services.slab_service import SlabService
from statutory_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollRunStateMachine,
    PayrollRunStatus,
)

logger = logging.getLogger(__name__)


class DuplicatePayrollRunError(Exception):
    """Raised when a non-reverted run already exists for the period."""

    def __init__(self, month: int, year: int):
        self.month = month
        self.year = year
        super().__init__(f"A payroll run for {month:02d}/{year} already exists")


class PayrollRunNotFoundError(Exception):
    def __init__(self, payroll_run_id: UUID):
        self.payroll_run_id = payroll_run_id
        super().__init__(f"Payroll run {payroll_run_id} not found")


def _period_end(month: int, year: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _to_salary(structure: EmployeeSalaryStructure) -> SalaryStructure:
    return SalaryStructure(
        basic=structure.basic,
        hra=structure.hra,
        special_allowance=structure.special_allowance,
        lta=structure.lta,
        medical=structure.medical,
        conveyance=structure.conveyance,
        other_allowances=structure.other_allowances,
        tax_regime=TaxRegime(structure.tax_regime),
    )


class PayrollRunService:
    """Service for managing the payroll run lifecycle.

    Operations:
    - start_run: Create a PENDING run for a period (one active run per period)
    - process_run: Compute every employee's record and close the run
    - revert_run: Mark a finished run as reverted, freeing the period
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def get_run(self, payroll_run_id: UUID, load_records: bool = False) -> PayrollRun:
        """Load a run, raising PayrollRunNotFoundError if missing."""
        stmt = select(PayrollRun).where(PayrollRun.payroll_run_id == payroll_run_id)
        if load_records:
            stmt = stmt.options(selectinload(PayrollRun.records))
        result = await self.session.execute(stmt)
        run = result.scalar_one_or_none()
        if run is None:
            raise PayrollRunNotFoundError(payroll_run_id)
        return run

    async def list_runs(self, limit: int = 50, offset: int = 0) -> list[PayrollRun]:
        result = await self.session.execute(
            select(PayrollRun)
            .order_by(PayrollRun.year.desc(), PayrollRun.month.desc(), PayrollRun.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def list_records(self, payroll_run_id: UUID) -> list[PayrollRecord]:
        await self.get_run(payroll_run_id)
        result = await self.session.execute(
            select(PayrollRecord)
            .where(PayrollRecord.payroll_run_id == payroll_run_id)
            .order_by(PayrollRecord.employee_id)
        )
        return list(result.scalars().all())

    async def start_run(self, month: int, year: int, created_by: str | None = None) -> PayrollRun:
        """Create a PENDING run for the period.

        Raises:
            DuplicatePayrollRunError: If a non-reverted run exists for the period
        """
        if not 1 <= month <= 12:
            raise ValueError(f"month must be 1-12, got {month}")

        existing = await self.session.execute(
            select(PayrollRun.payroll_run_id).where(
                PayrollRun.month == month,
                PayrollRun.year == year,
                PayrollRun.status != PayrollRunStatus.REVERTED.value,
            )
        )
        if existing.first() is not None:
            raise DuplicatePayrollRunError(month, year)

        run = PayrollRun(
            month=month,
            year=year,
            status=PayrollRunStatus.PENDING.value,
            engine_version=self.settings.engine_version,
            created_by=created_by,
        )
        self.session.add(run)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost the race against a concurrent start for the same period
            await self.session.rollback()
            raise DuplicatePayrollRunError(month, year) from e

        logger.info("Payroll run %s created for %02d/%d", run.payroll_run_id, month, year)
        return run

    async def process_run(self, payroll_run_id: UUID) -> PayrollRun:
        """Compute and persist all records for a PENDING run."""
        run = await self.get_run(payroll_run_id)
        PayrollRunStateMachine.validate_transition(run.status, PayrollRunStatus.PROCESSING.value)
        run.status = PayrollRunStatus.PROCESSING.value
        run.started_at = utcnow()
        await self.session.flush()

        logger.info("Processing payroll run %s for %02d/%d", run.payroll_run_id, run.month, run.year)

        inputs = await self.load_inputs(run.month, run.year)
        slabs = await SlabService(self.session).load_repository()
        engine = PayrollEngine(slabs, failure_threshold=self.settings.failure_threshold)
        result = engine.calculate_run(inputs, run.month, run.year)

        for record in result.records.values():
            self.session.add(self._record_row(run, record))

        self._apply_summary(run, result)
        to_status = PayrollRunStatus.FAILED if result.failed else PayrollRunStatus.COMPLETED
        errors = PayrollRunStateMachine.validate_run_for_transition(run, to_status.value)
        if errors:
            raise InvalidTransitionError(run.status, to_status.value, "; ".join(errors))
        run.status = to_status.value
        run.completed_at = utcnow()
        await self.session.flush()

        if result.failed:
            logger.error(
                "Payroll run %s failed: %s", run.payroll_run_id, result.failure_reason
            )
        else:
            logger.info(
                "Payroll run %s completed: %d records, %d errors, net %d paise",
                run.payroll_run_id,
                len(result.records),
                result.error_count,
                result.total_net,
            )
        return run

    async def revert_run(self, payroll_run_id: UUID, reason: str) -> PayrollRun:
        """Revert a COMPLETED or FAILED run. Its records stay as history."""
        run = await self.get_run(payroll_run_id)
        if not reason or not reason.strip():
            raise InvalidTransitionError(
                run.status, PayrollRunStatus.REVERTED.value, "Revert requires a reason"
            )
        PayrollRunStateMachine.validate_transition(run.status, PayrollRunStatus.REVERTED.value)

        run.status = PayrollRunStatus.REVERTED.value
        run.reverted_at = utcnow()
        run.revert_reason = reason.strip()
        await self.session.flush()

        logger.info("Payroll run %s reverted: %s", run.payroll_run_id, run.revert_reason)
        return run

    # ===== Input loading =====

    async def load_inputs(self, month: int, year: int) -> list[EmployeePayrollInput]:
        """Assemble calculator inputs for every active employee."""
        employees = (
            await self.session.execute(
                select(Employee)
                .where(Employee.is_active.is_(True))
                .options(selectinload(Employee.salary_structures))
                .order_by(Employee.employee_code)
            )
        ).scalars().all()

        attendance = {
            a.employee_id: a
            for a in (
                await self.session.execute(
                    select(AttendanceSummary).where(
                        AttendanceSummary.month == month,
                        AttendanceSummary.year == year,
                    )
                )
            ).scalars()
        }
        ytd = await self._ytd_totals(month, year)
        esi_covered = await self._esi_covered_employees(month, year)
        as_of = _period_end(month, year)

        inputs = []
        for employee in employees:
            structures = [s for s in employee.salary_structures if s.is_active_on(as_of)]
            structure = max(structures, key=lambda s: s.effective_from, default=None)
            summary = attendance.get(employee.employee_id)
            ytd_gross, ytd_tds = ytd.get(employee.employee_id, (0, 0))

            inputs.append(
                EmployeePayrollInput(
                    employee_id=employee.employee_id,
                    salary=_to_salary(structure) if structure else None,
                    attendance=(
                        AttendanceInput(
                            working_days=summary.working_days,
                            paid_days=Decimal(summary.paid_days),
                            lop_days=Decimal(summary.lop_days),
                        )
                        if summary
                        else None
                    ),
                    work_state=employee.work_state,
                    gender=Gender(employee.gender) if employee.gender else None,
                    esi_covered_in_period=employee.employee_id in esi_covered,
                    ytd_gross=ytd_gross,
                    ytd_tds=ytd_tds,
                    other_deductions=summary.other_deductions if summary else 0,
                    reimbursements=summary.reimbursements if summary else 0,
                )
            )
        return inputs

    async def _ytd_totals(self, month: int, year: int) -> dict[UUID, tuple[int, int]]:
        """Gross and TDS from completed runs earlier in the same financial year."""
        fy = financial_year_of(month, year)
        result = await self.session.execute(
            select(
                PayrollRecord.employee_id,
                PayrollRecord.month,
                PayrollRecord.year,
                PayrollRecord.gross,
                PayrollRecord.tds,
            )
            .join(PayrollRun, PayrollRun.payroll_run_id == PayrollRecord.payroll_run_id)
            .where(
                PayrollRun.status == PayrollRunStatus.COMPLETED.value,
                PayrollRecord.year.in_([fy, fy + 1]),
            )
        )
        totals: dict[UUID, tuple[int, int]] = {}
        for employee_id, rec_month, rec_year, gross, tds in result.all():
            if financial_year_of(rec_month, rec_year) != fy:
                continue
            if (rec_year, rec_month) >= (year, month):
                continue
            gross_sum, tds_sum = totals.get(employee_id, (0, 0))
            totals[employee_id] = (gross_sum + gross, tds_sum + tds)
        return totals

    async def _esi_covered_employees(self, month: int, year: int) -> set[UUID]:
        """Employees with ESI contributions earlier in the current contribution period."""
        period = ESICalculator.contribution_period(month, year)
        result = await self.session.execute(
            select(PayrollRecord.employee_id, PayrollRecord.month, PayrollRecord.year)
            .join(PayrollRun, PayrollRun.payroll_run_id == PayrollRecord.payroll_run_id)
            .where(
                PayrollRun.status == PayrollRunStatus.COMPLETED.value,
                PayrollRecord.esi_applicable.is_(True),
                PayrollRecord.year.in_([period.start_year, period.end_year]),
            )
        )
        return {
            employee_id
            for employee_id, rec_month, rec_year in result.all()
            if period.contains(rec_month, rec_year) and (rec_year, rec_month) < (year, month)
        }

    # ===== Persistence helpers =====

    @staticmethod
    def _record_row(run: PayrollRun, record: PayrollRecordResult) -> PayrollRecord:
        earnings = record.earnings
        return PayrollRecord(
            payroll_run_id=run.payroll_run_id,
            employee_id=record.employee_id,
            month=record.month,
            year=record.year,
            working_days=record.working_days,
            paid_days=record.paid_days,
            lop_days=record.lop_days,
            inputs_fingerprint=record.inputs_fingerprint,
            basic=earnings["basic"],
            hra=earnings["hra"],
            special_allowance=earnings["special_allowance"],
            lta=earnings["lta"],
            medical=earnings["medical"],
            conveyance=earnings["conveyance"],
            other_allowances=earnings["other_allowances"],
            gross_before_lop=record.gross_before_lop,
            lop_deduction=record.lop_deduction,
            gross=record.gross,
            pf_base=record.pf.pf_base,
            pf_employee=record.pf.employee_contribution,
            pf_employer_epf=record.pf.employer.epf,
            pf_employer_eps=record.pf.employer.eps,
            pf_employer_edli=record.pf.employer.edli,
            pf_admin_charges=record.pf.employer.admin_charges,
            esi_applicable=record.esi.applicable,
            esi_employee=record.esi.employee_contribution,
            esi_employer=record.esi.employer_contribution,
            pt=record.pt.tax_amount,
            pt_slab_id=record.pt.slab_id,
            tds=record.tds.monthly_tds,
            tax_regime=record.tax_regime.value,
            other_deductions=record.other_deductions,
            reimbursements=record.reimbursements,
            total_deductions=record.total_deductions,
            net=record.net,
            employer_cost=record.employer_cost,
            notes=list(record.notes),
        )

    @staticmethod
    def _apply_summary(run: PayrollRun, result: PayrollRunCalculationResult) -> None:
        run.employee_count = result.employee_count
        run.error_count = result.error_count
        run.total_gross = result.total_gross
        run.total_deductions = result.total_deductions
        run.total_net = result.total_net
        run.failure_reason = result.failure_reason
        run.errors_json = [
            {"employee_id": str(e.employee_id), "message": e.message} for e in result.errors
        ]
