"""Income tax projection for monthly TDS."""

from __future__ import annotations

from decimal import Decimal

from statutory_payroll.calculators.money import apply_rate, prorate, round_paise
from statutory_payroll.calculators.rates import TAX_REGIMES, TaxRegimeTable
from statutory_payroll.calculators.types import PayrollInputError, TaxRegime, TDSResult

FY_START_MONTH = 4


def fy_month_index(month: int) -> int:
    """Position of a calendar month in the April-March financial year (1-12)."""
    if not 1 <= month <= 12:
        raise PayrollInputError("month", f"must be 1-12, got {month}")
    return (month - FY_START_MONTH) % 12 + 1


def financial_year_of(month: int, year: int) -> int:
    """Start year of the financial year a month belongs to."""
    return year if month >= FY_START_MONTH else year - 1


class TDSCalculator:
    """Annual tax and its monthly spread for salary income."""

    def __init__(self, regimes: dict[TaxRegime, TaxRegimeTable] | None = None):
        self.regimes = regimes or TAX_REGIMES

    def slab_tax(self, taxable_income: int, regime: TaxRegime) -> int:
        """Progressive tax before rebate and cess."""
        table = self.regimes[regime]
        tax = Decimal("0")
        for slab in table.slabs:
            if taxable_income <= slab.lower:
                break
            top = taxable_income if slab.upper is None else min(taxable_income, slab.upper)
            tax += Decimal(top - slab.lower) * slab.rate
        return round_paise(tax)

    def rebate(self, taxable_income: int, tax: int, regime: TaxRegime) -> int:
        """Section 87A rebate."""
        table = self.regimes[regime]
        if table.rebate_income_limit is None or taxable_income > table.rebate_income_limit:
            return 0
        return min(tax, table.rebate_cap)

    def cess(self, tax: int, regime: TaxRegime) -> int:
        return apply_rate(tax, self.regimes[regime].cess_rate)

    def annual_tax(self, taxable_income: int, regime: TaxRegime = TaxRegime.NEW) -> int:
        """Total annual tax including rebate and health & education cess."""
        if taxable_income < 0:
            raise PayrollInputError("taxable_income", "must not be negative")
        tax = self.slab_tax(taxable_income, regime)
        tax -= self.rebate(taxable_income, tax, regime)
        return tax + self.cess(tax, regime)

    def standard_deduction(self, regime: TaxRegime) -> int:
        return self.regimes[regime].standard_deduction

    def monthly(
        self,
        gross: int,
        month: int,
        regime: TaxRegime = TaxRegime.NEW,
        ytd_gross: int = 0,
        ytd_tds: int = 0,
    ) -> TDSResult:
        """Project annual income from this month onwards and spread the tax due."""
        if gross < 0:
            raise PayrollInputError("gross", "must not be negative")

        remaining_months = 12 - fy_month_index(month) + 1
        projected = ytd_gross + gross * remaining_months
        taxable = max(0, projected - self.standard_deduction(regime))
        annual = self.annual_tax(taxable, regime)

        remaining_tax = max(0, annual - ytd_tds)
        monthly_tds = prorate(remaining_tax, 1, remaining_months)

        return TDSResult(
            monthly_tds=monthly_tds,
            projected_annual_income=projected,
            taxable_income=taxable,
            projected_annual_tax=annual,
            regime=regime,
            remaining_months=remaining_months,
        )
