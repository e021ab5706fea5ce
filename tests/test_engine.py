"""Tests for the payroll record builder and run engine."""

from decimal import Decimal
from uuid import uuid4

import pytest

from statutory_payroll.calculators.engine import (
    CONTINUED_ESI_COVERAGE,
    PayrollEngine,
    PayrollRecordBuilder,
)
from statutory_payroll.calculators.rates import DEFAULT_RATES
from statutory_payroll.calculators.types import (
    AttendanceInput,
    EmployeePayrollInput,
    Gender,
    PayrollInputError,
    SalaryStructure,
)

SALARY = SalaryStructure(basic=1_500_000, hra=600_000, special_allowance=400_000)


def make_input(**overrides) -> EmployeePayrollInput:
    fields = dict(
        employee_id=uuid4(),
        salary=SALARY,
        attendance=AttendanceInput(working_days=20, paid_days=Decimal("20")),
        work_state="KA",
        gender=Gender.MALE,
    )
    fields.update(overrides)
    return EmployeePayrollInput(**fields)


@pytest.fixture
def builder(slab_repository) -> PayrollRecordBuilder:
    return PayrollRecordBuilder(DEFAULT_RATES, slab_repository)


class TestPayrollRecordBuilder:
    """Test one employee's record."""

    def test_full_month(self, builder):
        record = builder.build(make_input(), 2, 2025)

        assert record.gross == 2_500_000
        assert record.lop_deduction == 0
        assert record.pf.employee_contribution == 180_000
        assert record.esi.applicable is False
        assert record.esi.employee_contribution == 0
        assert record.pt.tax_amount == 30_000
        # Two months left in the year: 50,000 projected, below standard deduction
        assert record.tds.monthly_tds == 0
        assert record.total_deductions == 210_000
        assert record.net == 2_290_000
        assert record.notes == []

    def test_loss_of_pay(self, builder):
        """Test that LOP pro-rates every component and brings ESI into play."""
        inp = make_input(
            attendance=AttendanceInput(
                working_days=20, paid_days=Decimal("20"), lop_days=Decimal("5")
            )
        )
        record = builder.build(inp, 2, 2025)

        assert record.earnings["basic"] == 1_125_000
        assert record.earnings["hra"] == 450_000
        assert record.earnings["special_allowance"] == 300_000
        assert record.gross == 1_875_000
        assert record.lop_deduction == 625_000
        assert record.pf.pf_base == 1_125_000
        assert record.pf.employee_contribution == 135_000
        assert record.esi.employee_contribution == 14_063
        assert record.esi.employer_contribution == 60_938
        assert record.pt.tax_amount == 30_000
        assert record.total_deductions == 179_063
        assert record.net == 1_695_937

    def test_continued_esi_coverage(self, builder):
        """Test that a covered employee keeps contributing above the ceiling."""
        record = builder.build(make_input(esi_covered_in_period=True), 2, 2025)

        assert record.esi.applicable is True
        assert record.esi.employee_contribution == 18_750
        assert record.esi.employer_contribution == 81_250
        assert CONTINUED_ESI_COVERAGE in record.notes

    def test_missing_gender_defaults_to_male(self, builder):
        record = builder.build(make_input(work_state="MH", gender=None), 6, 2025)
        assert record.pt.tax_amount == 17_500

    def test_adjustments(self, builder):
        record = builder.build(
            make_input(other_deductions=100_000, reimbursements=50_000), 3, 2025
        )
        assert record.total_deductions == 180_000 + 20_000 + 100_000
        assert record.net == 2_500_000 - 300_000 + 50_000
        assert record.employer_cost == 2_500_000 + record.pf.employer_total

    def test_missing_salary(self, builder):
        with pytest.raises(PayrollInputError, match="salary"):
            builder.build(make_input(salary=None), 4, 2025)

    def test_missing_attendance(self, builder):
        with pytest.raises(PayrollInputError, match="attendance"):
            builder.build(make_input(attendance=None), 4, 2025)

    def test_paid_days_exceed_working_days(self, builder):
        inp = make_input(attendance=AttendanceInput(working_days=20, paid_days=Decimal("21")))
        with pytest.raises(PayrollInputError, match="paid_days"):
            builder.build(inp, 4, 2025)

    def test_negative_net_rejected(self, builder):
        with pytest.raises(PayrollInputError, match="Negative net pay"):
            builder.build(make_input(other_deductions=5_000_000), 4, 2025)

    def test_fingerprint_deterministic(self, builder):
        """Test that identical inputs hash identically and any change alters the hash."""
        inp = make_input()
        first = builder.build(inp, 4, 2025).inputs_fingerprint
        second = builder.build(inp, 4, 2025).inputs_fingerprint
        assert first == second
        assert len(first) == 64

        changed = builder.build(make_input(employee_id=inp.employee_id, ytd_gross=1), 4, 2025)
        assert changed.inputs_fingerprint != first


class TestPayrollEngine:
    """Test run-level outcomes."""

    def test_partial_failure_within_threshold(self, slab_repository):
        engine = PayrollEngine(slab_repository)
        inputs = [make_input(), make_input(), make_input(salary=None)]

        result = engine.calculate_run(inputs, 4, 2025)

        assert result.failed is False
        assert result.employee_count == 3
        assert result.error_count == 1
        assert len(result.records) == 2
        assert result.total_gross == 5_000_000
        assert result.total_net == result.total_gross - result.total_deductions
        assert result.errors[0].message.startswith("salary:")

    def test_failure_above_threshold(self, slab_repository):
        engine = PayrollEngine(slab_repository)
        inputs = [make_input(), make_input(salary=None), make_input(attendance=None)]

        result = engine.calculate_run(inputs, 4, 2025)

        assert result.failed is True
        assert "2 of 3" in result.failure_reason

    def test_all_records_failed(self, slab_repository):
        result = PayrollEngine(slab_repository, failure_threshold=Decimal("1")).calculate_run(
            [make_input(salary=None)], 4, 2025
        )
        assert result.failed is True
        assert result.failure_reason == "All 1 employee records failed"

    def test_no_employees(self, slab_repository):
        result = PayrollEngine(slab_repository).calculate_run([], 4, 2025)
        assert result.failed is True
        assert result.failure_reason == "No employees to process"

    def test_invalid_threshold(self, slab_repository):
        with pytest.raises(ValueError):
            PayrollEngine(slab_repository, failure_threshold=Decimal("1.5"))
