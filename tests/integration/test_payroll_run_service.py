"""Integration tests for the payroll run lifecycle."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from statutory_payroll.models import PayrollRun
from statutory_payroll.services.payroll_run_service import (
    DuplicatePayrollRunError,
    PayrollRunNotFoundError,
    PayrollRunService,
)
from statutory_payroll.services.state_machine import InvalidTransitionError


@pytest.fixture
def service(session, settings) -> PayrollRunService:
    return PayrollRunService(session, settings)


class TestStartRun:
    """Test one active run per period."""

    async def test_start_creates_pending_run(self, service):
        run = await service.start_run(4, 2025, created_by="hr@acme")

        assert run.status == "PENDING"
        assert run.engine_version == "test"
        assert run.created_by == "hr@acme"
        assert run.employee_count == 0

    async def test_duplicate_period_rejected(self, service):
        await service.start_run(4, 2025)
        with pytest.raises(DuplicatePayrollRunError):
            await service.start_run(4, 2025)

    async def test_other_period_allowed(self, service):
        await service.start_run(4, 2025)
        run = await service.start_run(5, 2025)
        assert run.month == 5

    async def test_partial_unique_index(self, session):
        """Test that the database rejects a second active run even without the service check."""
        session.add(PayrollRun(month=6, year=2025, status="PENDING", engine_version="x"))
        session.add(PayrollRun(month=6, year=2025, status="PENDING", engine_version="x"))
        with pytest.raises(IntegrityError):
            await session.flush()

    async def test_reverted_run_frees_period(self, session):
        session.add(PayrollRun(month=6, year=2025, status="REVERTED", engine_version="x"))
        session.add(PayrollRun(month=6, year=2025, status="REVERTED", engine_version="x"))
        session.add(PayrollRun(month=6, year=2025, status="PENDING", engine_version="x"))
        await session.flush()

        count = await session.scalar(
            select(func.count()).select_from(PayrollRun).where(PayrollRun.month == 6)
        )
        assert count == 3

    @pytest.mark.parametrize("status", ["PROCESSING", "COMPLETED", "FAILED"])
    async def test_unreverted_run_occupies_period(self, session, service, status):
        """Test that every status except REVERTED blocks a new run for the period."""
        session.add(PayrollRun(month=7, year=2025, status=status, engine_version="x"))
        await session.flush()

        with pytest.raises(DuplicatePayrollRunError):
            await service.start_run(7, 2025)

    async def test_invalid_month(self, service):
        with pytest.raises(ValueError):
            await service.start_run(13, 2025)

    async def test_missing_run(self, service):
        with pytest.raises(PayrollRunNotFoundError):
            await service.get_run(uuid4())


class TestProcessRun:
    """Test computing and closing a run."""

    async def test_completed_with_partial_errors(
        self, session, service, make_employee, seed_slabs
    ):
        await seed_slabs(session)
        ok = await make_employee(session)
        missing = await make_employee(session, month=None)

        run = await service.start_run(4, 2025)
        run = await service.process_run(run.payroll_run_id)

        assert run.status == "COMPLETED"
        assert run.started_at is not None
        assert run.completed_at is not None
        assert run.employee_count == 2
        assert run.error_count == 1
        assert run.errors_json[0]["employee_id"] == str(missing.employee_id)
        assert run.errors_json[0]["message"].startswith("attendance:")

        records = await service.list_records(run.payroll_run_id)
        assert len(records) == 1
        record = records[0]
        assert record.employee_id == ok.employee_id
        assert record.gross == 2_500_000
        assert record.pf_employee == 180_000
        assert record.esi_applicable is False
        assert record.pt == 20_000
        assert record.pt_slab_id is not None
        assert record.tds == 0
        assert record.net == 2_300_000
        assert run.total_net == 2_300_000

    async def test_all_failed(self, session, service, make_employee):
        await make_employee(session, with_salary=False)

        run = await service.start_run(4, 2025)
        run = await service.process_run(run.payroll_run_id)

        assert run.status == "FAILED"
        assert run.failure_reason == "All 1 employee records failed"

    async def test_no_employees(self, service):
        run = await service.start_run(4, 2025)
        run = await service.process_run(run.payroll_run_id)

        assert run.status == "FAILED"
        assert run.failure_reason == "No employees to process"

    async def test_cannot_process_twice(self, session, service, make_employee):
        await make_employee(session)
        run = await service.start_run(4, 2025)
        await service.process_run(run.payroll_run_id)

        with pytest.raises(InvalidTransitionError):
            await service.process_run(run.payroll_run_id)


class TestRevertRun:
    """Test reverting a finished run."""

    async def test_revert_and_rerun(self, session, service, make_employee):
        await make_employee(session)
        run = await service.start_run(4, 2025)
        await service.process_run(run.payroll_run_id)

        reverted = await service.revert_run(run.payroll_run_id, "  wrong attendance  ")
        assert reverted.status == "REVERTED"
        assert reverted.revert_reason == "wrong attendance"
        assert reverted.reverted_at is not None

        rerun = await service.start_run(4, 2025)
        assert rerun.payroll_run_id != run.payroll_run_id
        # Records of the reverted run are kept as history
        assert len(await service.list_records(run.payroll_run_id)) == 1

    async def test_revert_requires_reason(self, session, service, make_employee):
        await make_employee(session)
        run = await service.start_run(4, 2025)
        await service.process_run(run.payroll_run_id)

        with pytest.raises(InvalidTransitionError, match="requires a reason"):
            await service.revert_run(run.payroll_run_id, "   ")

    async def test_pending_run_cannot_be_reverted(self, service):
        run = await service.start_run(4, 2025)
        with pytest.raises(InvalidTransitionError):
            await service.revert_run(run.payroll_run_id, "mistake")


class TestInputLoading:
    """Test prior-period context fed into the calculators."""

    async def test_year_to_date_from_completed_runs(
        self, session, service, make_employee, add_attendance
    ):
        employee = await make_employee(session)
        await add_attendance(session, employee, 5, 2025)
        run = await service.start_run(4, 2025)
        await service.process_run(run.payroll_run_id)

        inputs = {i.employee_id: i for i in await service.load_inputs(5, 2025)}
        assert inputs[employee.employee_id].ytd_gross == 2_500_000
        assert inputs[employee.employee_id].ytd_tds == 0

        # A new financial year starts from zero
        next_year = {i.employee_id: i for i in await service.load_inputs(4, 2026)}
        assert next_year[employee.employee_id].ytd_gross == 0

    async def test_reverted_runs_excluded(self, session, service, make_employee):
        employee = await make_employee(session)
        run = await service.start_run(4, 2025)
        await service.process_run(run.payroll_run_id)
        await service.revert_run(run.payroll_run_id, "redo")

        inputs = {i.employee_id: i for i in await service.load_inputs(5, 2025)}
        assert inputs[employee.employee_id].ytd_gross == 0

    async def test_esi_coverage_within_contribution_period(self, session, service, make_employee):
        """Test that ESI coverage carries over inside April-September only."""
        employee = await make_employee(session, basic=1_000_000, hra=500_000, special_allowance=0)
        run = await service.start_run(4, 2025)
        await service.process_run(run.payroll_run_id)

        records = await service.list_records(run.payroll_run_id)
        assert records[0].esi_applicable is True

        may = {i.employee_id: i for i in await service.load_inputs(5, 2025)}
        october = {i.employee_id: i for i in await service.load_inputs(10, 2025)}
        assert may[employee.employee_id].esi_covered_in_period is True
        assert october[employee.employee_id].esi_covered_in_period is False

    async def test_missing_gender_passed_as_none(self, session, service, make_employee):
        employee = await make_employee(session, gender=None)
        inputs = {i.employee_id: i for i in await service.load_inputs(4, 2025)}
        assert inputs[employee.employee_id].gender is None
