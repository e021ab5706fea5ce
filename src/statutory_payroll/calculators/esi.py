"""Employees' State Insurance contribution calculator."""

from __future__ import annotations

from dataclasses import dataclass

from statutory_payroll.calculators.money import apply_rate, format_rupees
from statutory_payroll.calculators.rates import StatutoryRates
from statutory_payroll.calculators.types import ESIResult, PayrollInputError


@dataclass(frozen=True)
class ContributionPeriod:
    """An ESI half-year contribution period (Apr-Sep or Oct-Mar)."""

    start_month: int
    start_year: int
    end_month: int
    end_year: int

    def contains(self, month: int, year: int) -> bool:
        key = year * 12 + month
        return (
            self.start_year * 12 + self.start_month
            <= key
            <= self.end_year * 12 + self.end_month
        )


class ESICalculator:
    """Computes ESI eligibility and contributions on monthly gross.

    Each contribution is rounded on its own; the employer share is never
    derived from the employee share.
    """

    def __init__(self, rates: StatutoryRates):
        self.rates = rates

    def is_applicable(self, gross_salary: int) -> bool:
        """ESI applies when gross is at or below the wage ceiling."""
        return gross_salary <= self.rates.esi_wage_ceiling

    def calculate(self, gross_salary: int) -> ESIResult:
        if gross_salary < 0:
            raise PayrollInputError("gross_salary", "must not be negative")

        if not self.is_applicable(gross_salary):
            return ESIResult(
                applicable=False,
                employee_contribution=0,
                employer_contribution=0,
                gross_used=gross_salary,
                reason=(
                    f"Gross salary Rs.{format_rupees(gross_salary)} exceeds ESI ceiling "
                    f"of Rs.{format_rupees(self.rates.esi_wage_ceiling)}"
                ),
            )

        return self.contributions(gross_salary)

    def contributions(self, gross_salary: int, reason: str | None = None) -> ESIResult:
        """Compute contributions without checking the ceiling.

        Used for employees who stay covered for the rest of a contribution
        period after crossing the ceiling.
        """
        return ESIResult(
            applicable=True,
            employee_contribution=apply_rate(gross_salary, self.rates.esi_employee_rate),
            employer_contribution=apply_rate(gross_salary, self.rates.esi_employer_rate),
            gross_used=gross_salary,
            reason=reason,
        )

    @staticmethod
    def contribution_period(month: int, year: int) -> ContributionPeriod:
        """Return the half-year contribution period enclosing a month."""
        if not 1 <= month <= 12:
            raise PayrollInputError("month", f"must be 1-12, got {month}")

        if 4 <= month <= 9:
            return ContributionPeriod(4, year, 9, year)
        if month >= 10:
            return ContributionPeriod(10, year, 3, year + 1)
        # January-March belong to the period that started last October
        return ContributionPeriod(10, year - 1, 3, year)
