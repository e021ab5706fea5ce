"""Integration tests for append-only history rows."""

import pytest

from statutory_payroll.models.base import ImmutableRecordError
from statutory_payroll.services.payroll_run_service import PayrollRunService
from statutory_payroll.services.statutory_file_service import StatutoryFileService


class TestImmutability:
    """Test that persisted records and file audits cannot change."""

    async def test_payroll_record_update_rejected(self, session, settings, make_employee):
        await make_employee(session)
        service = PayrollRunService(session, settings)
        run = await service.start_run(4, 2025)
        await service.process_run(run.payroll_run_id)

        record = (await service.list_records(run.payroll_run_id))[0]
        record.net = 1

        with pytest.raises(ImmutableRecordError) as exc_info:
            await session.flush()
        assert exc_info.value.table == "payroll_record"

    async def test_run_summary_changes_do_not_touch_records(
        self, session, settings, make_employee
    ):
        """Test that reverting a run leaves its records untouched."""
        await make_employee(session)
        service = PayrollRunService(session, settings)
        run = await service.start_run(4, 2025)
        await service.process_run(run.payroll_run_id)

        await service.revert_run(run.payroll_run_id, "redo")
        records = await service.list_records(run.payroll_run_id)
        assert records[0].gross == 2_500_000

    async def test_statutory_file_update_rejected(self, session, settings, make_employee):
        await make_employee(session)
        service = PayrollRunService(session, settings)
        run = await service.start_run(4, 2025)
        await service.process_run(run.payroll_run_id)

        files = StatutoryFileService(session, settings)
        await files.generate_ecr(run.payroll_run_id)
        audit = (await files.list_files(run.payroll_run_id))[0]
        audit.record_count = 99

        with pytest.raises(ImmutableRecordError):
            await session.flush()
