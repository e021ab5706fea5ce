"""Statutory file generation with an append-only audit trail."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from statutory_payroll.calculators.tds import financial_year_of
from statutory_payroll.calculators.types import TaxRegime
from statutory_payroll.config import Settings, get_settings
from statutory_payroll.models import Employee, PayrollRecord, PayrollRun, StatutoryFile
from statutory_payroll.services.payroll_run_service import PayrollRunService
from statutory_payroll.services.state_machine import PayrollRunStateMachine, PayrollRunStatus
from statutory_payroll.statutory.ecr import generate_ecr
from statutory_payroll.statutory.esi_challan import generate_esi_challan
from statutory_payroll.statutory.form16 import (
    Form16Data,
    generate_form16,
    render_form16_json,
    render_form16_text,
)
from statutory_payroll.statutory.form24q import Form24QData, generate_form24q, render_form24q_json
from statutory_payroll.statutory.types import FilingRecord, GeneratedFile, StatutoryFileType

logger = logging.getLogger(__name__)


class RunNotFinalizedError(Exception):
    """Raised when filings are requested for a run that has not completed."""

    def __init__(self, payroll_run_id: UUID, status: str):
        self.payroll_run_id = payroll_run_id
        self.status = status
        super().__init__(
            f"Payroll run {payroll_run_id} is {status}; statutory files need a COMPLETED run"
        )


@dataclass
class TDSReturn:
    """Rendered TDS document plus its audit row."""

    content: str
    audit: StatutoryFile


def content_digest(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def to_filing_record(record: PayrollRecord, employee: Employee) -> FilingRecord:
    return FilingRecord(
        employee_id=record.employee_id,
        employee_code=employee.employee_code,
        name=employee.full_name,
        month=record.month,
        year=record.year,
        working_days=record.working_days,
        lop_days=record.lop_days,
        gross=record.gross,
        pf_base=record.pf_base,
        pf_employee=record.pf_employee,
        pf_employer_epf=record.pf_employer_epf,
        pf_employer_eps=record.pf_employer_eps,
        pf_employer_edli=record.pf_employer_edli,
        esi_applicable=record.esi_applicable,
        esi_employee=record.esi_employee,
        esi_employer=record.esi_employer,
        pt=record.pt,
        tds=record.tds,
        tax_regime=TaxRegime(record.tax_regime),
        uan=employee.uan,
        esic_number=employee.esic_number,
        pan=employee.pan,
        designation=employee.designation,
    )


class StatutoryFileService:
    """Generates government submission files from finalized payroll records.

    Every generation writes one ``StatutoryFile`` row recording what was
    produced, including the SHA-256 of the content and any skipped records.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def _run_records(self, payroll_run_id: UUID) -> tuple[PayrollRun, list[FilingRecord]]:
        run = await PayrollRunService(self.session, self.settings).get_run(payroll_run_id)
        if not PayrollRunStateMachine.is_finalized(run.status):
            raise RunNotFinalizedError(payroll_run_id, run.status)

        result = await self.session.execute(
            select(PayrollRecord, Employee)
            .join(Employee, Employee.employee_id == PayrollRecord.employee_id)
            .where(PayrollRecord.payroll_run_id == payroll_run_id)
            .order_by(Employee.employee_code)
        )
        return run, [to_filing_record(rec, emp) for rec, emp in result.all()]

    async def _financial_year_records(self, financial_year: int) -> list[FilingRecord]:
        """Records of completed runs in an April-March financial year."""
        result = await self.session.execute(
            select(PayrollRecord, Employee)
            .join(Employee, Employee.employee_id == PayrollRecord.employee_id)
            .join(PayrollRun, PayrollRun.payroll_run_id == PayrollRecord.payroll_run_id)
            .where(
                PayrollRun.status == PayrollRunStatus.COMPLETED.value,
                PayrollRecord.year.in_([financial_year, financial_year + 1]),
            )
            .order_by(Employee.employee_code, PayrollRecord.year, PayrollRecord.month)
        )
        return [
            to_filing_record(rec, emp)
            for rec, emp in result.all()
            if financial_year_of(rec.month, rec.year) == financial_year
        ]

    async def generate_ecr(self, payroll_run_id: UUID, generated_by: str | None = None) -> GeneratedFile:
        run, records = await self._run_records(payroll_run_id)
        generated = generate_ecr(
            records,
            run.month,
            run.year,
            establishment_code=self.settings.establishment_code,
            establishment_name=self.settings.establishment_name,
        )
        await self.record(generated, payroll_run=run, generated_by=generated_by)
        return generated

    async def generate_esi_challan(
        self, payroll_run_id: UUID, generated_by: str | None = None
    ) -> GeneratedFile:
        run, records = await self._run_records(payroll_run_id)
        generated = generate_esi_challan(records, run.month, run.year)
        await self.record(generated, payroll_run=run, generated_by=generated_by)
        return generated

    async def generate_form24q(
        self,
        quarter: int,
        financial_year: int,
        generated_by: str | None = None,
    ) -> tuple[Form24QData, TDSReturn]:
        records = await self._financial_year_records(financial_year)
        data = generate_form24q(records, quarter, financial_year, self.settings.deductor)
        content = render_form24q_json(data)
        generated = GeneratedFile(
            file_type=StatutoryFileType.FORM_24Q,
            filename=f"Form24Q_Q{quarter}_{financial_year}.json",
            content=content,
            record_count=len(data.annexure_i.deductees),
            total_amount=data.annexure_i.total_tds_deducted,
        )
        audit = await self.record(
            generated, quarter=quarter, financial_year=financial_year, generated_by=generated_by
        )
        return data, TDSReturn(content=content, audit=audit)

    async def generate_form16(
        self,
        employee_id: UUID,
        financial_year: int,
        fmt: str = "json",
        generated_by: str | None = None,
    ) -> tuple[Form16Data, TDSReturn]:
        if fmt not in ("json", "text"):
            raise ValueError(f"format must be 'json' or 'text', got {fmt!r}")
        records = await self._financial_year_records(financial_year)
        data = generate_form16(records, employee_id, financial_year, self.settings.deductor)
        content = render_form16_json(data) if fmt == "json" else render_form16_text(data)
        suffix = "json" if fmt == "json" else "txt"
        generated = GeneratedFile(
            file_type=StatutoryFileType.FORM_16,
            filename=f"Form16_{data.part_a.employee_code}_{financial_year}.{suffix}",
            content=content,
            record_count=1,
            total_amount=data.total_tds_deducted,
        )
        audit = await self.record(generated, financial_year=financial_year, generated_by=generated_by)
        return data, TDSReturn(content=content, audit=audit)

    async def record(
        self,
        generated: GeneratedFile,
        payroll_run: PayrollRun | None = None,
        quarter: int | None = None,
        financial_year: int | None = None,
        generated_by: str | None = None,
    ) -> StatutoryFile:
        """Insert the audit row for a generated file."""
        audit = StatutoryFile(
            file_type=generated.file_type.value,
            filename=generated.filename,
            payroll_run_id=payroll_run.payroll_run_id if payroll_run else None,
            month=payroll_run.month if payroll_run else None,
            year=payroll_run.year if payroll_run else None,
            quarter=quarter,
            financial_year=financial_year,
            record_count=generated.record_count,
            total_amount=generated.total_amount,
            content_sha256=content_digest(generated.content),
            warnings=[
                {"employee_id": str(s.employee_id), "reason": s.reason} for s in generated.skipped
            ],
            generated_by=generated_by,
        )
        self.session.add(audit)
        await self.session.flush()
        logger.info(
            "Generated %s %s: %d records, %d skipped",
            generated.file_type.value,
            generated.filename,
            generated.record_count,
            len(generated.skipped),
        )
        return audit

    async def list_files(self, payroll_run_id: UUID | None = None) -> list[StatutoryFile]:
        stmt = select(StatutoryFile).order_by(StatutoryFile.created_at.desc())
        if payroll_run_id is not None:
            stmt = stmt.where(StatutoryFile.payroll_run_id == payroll_run_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
