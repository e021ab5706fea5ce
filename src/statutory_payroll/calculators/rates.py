"""Statutory rate tables.

Rates are explicit, immutable objects passed into each calculator. A
``RateSchedule`` keeps the history so a period is always computed with the
rates that were in force for it, not the latest ones.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from statutory_payroll.calculators.types import TaxRegime


class RateNotFoundError(Exception):
    """Raised when no rate table is in force for a date."""

    def __init__(self, as_of_date: date):
        self.as_of_date = as_of_date
        super().__init__(f"No statutory rate table in force on {as_of_date}")


@dataclass(frozen=True)
class StatutoryRates:
    """PF and ESI rates and wage ceilings for one validity window."""

    effective_from: date
    effective_to: date | None = None  # None = open-ended

    # Provident Fund (EPFO)
    pf_employee_rate: Decimal = Decimal("0.12")
    pf_employer_epf_rate: Decimal = Decimal("0.0367")
    pf_eps_rate: Decimal = Decimal("0.0833")
    pf_edli_rate: Decimal = Decimal("0.005")
    pf_admin_rate: Decimal = Decimal("0.0051")
    pf_wage_ceiling: int = 1_500_000  # Rs.15,000
    eps_monthly_cap: int = 125_000  # Rs.1,250

    # Employees' State Insurance (ESIC)
    esi_employee_rate: Decimal = Decimal("0.0075")
    esi_employer_rate: Decimal = Decimal("0.0325")
    esi_wage_ceiling: int = 2_100_000  # Rs.21,000

    def is_active_on(self, as_of_date: date) -> bool:
        """Check if this table is in force on a date."""
        if as_of_date < self.effective_from:
            return False
        return self.effective_to is None or as_of_date <= self.effective_to


class RateSchedule:
    """Ordered, non-overlapping history of ``StatutoryRates``."""

    def __init__(self, entries: list[StatutoryRates]):
        ordered = sorted(entries, key=lambda r: r.effective_from)
        for prev, nxt in zip(ordered, ordered[1:]):
            if prev.effective_to is None or prev.effective_to >= nxt.effective_from:
                raise ValueError(
                    f"Rate tables overlap: {prev.effective_from} and {nxt.effective_from}"
                )
        self._entries = ordered

    def rates_on(self, as_of_date: date) -> StatutoryRates:
        for entry in reversed(self._entries):
            if entry.is_active_on(as_of_date):
                return entry
        raise RateNotFoundError(as_of_date)

    def rates_for(self, month: int, year: int) -> StatutoryRates:
        """Rates in force on the first day of a payroll month."""
        return self.rates_on(date(year, month, 1))


DEFAULT_RATES = StatutoryRates(effective_from=date(2017, 1, 1))

DEFAULT_SCHEDULE = RateSchedule([DEFAULT_RATES])


# States that levy no Professional Tax. Policy list, not derived from slabs.
PT_EXEMPT_STATES = frozenset({"DL", "HR", "HP", "JH", "KL", "PB", "RJ", "UP", "UT"})


# ===== Income tax (TDS) =====


@dataclass(frozen=True)
class TaxSlab:
    """One progressive income tax band, bounds in paise."""

    lower: int
    upper: int | None  # None = no upper limit
    rate: Decimal


@dataclass(frozen=True)
class TaxRegimeTable:
    """Slabs and allowances for one tax regime."""

    regime: TaxRegime
    slabs: tuple[TaxSlab, ...]
    standard_deduction: int
    rebate_income_limit: int | None = None  # Section 87A
    rebate_cap: int = 0
    cess_rate: Decimal = Decimal("0.04")


NEW_REGIME = TaxRegimeTable(
    regime=TaxRegime.NEW,
    slabs=(
        TaxSlab(0, 30_000_000, Decimal("0")),
        TaxSlab(30_000_000, 70_000_000, Decimal("0.05")),
        TaxSlab(70_000_000, 100_000_000, Decimal("0.10")),
        TaxSlab(100_000_000, 120_000_000, Decimal("0.15")),
        TaxSlab(120_000_000, 150_000_000, Decimal("0.20")),
        TaxSlab(150_000_000, None, Decimal("0.30")),
    ),
    standard_deduction=7_500_000,
    rebate_income_limit=70_000_000,
    rebate_cap=2_500_000,
)

OLD_REGIME = TaxRegimeTable(
    regime=TaxRegime.OLD,
    slabs=(
        TaxSlab(0, 25_000_000, Decimal("0")),
        TaxSlab(25_000_000, 50_000_000, Decimal("0.05")),
        TaxSlab(50_000_000, 100_000_000, Decimal("0.20")),
        TaxSlab(100_000_000, None, Decimal("0.30")),
    ),
    standard_deduction=5_000_000,
)

TAX_REGIMES: dict[TaxRegime, TaxRegimeTable] = {
    TaxRegime.NEW: NEW_REGIME,
    TaxRegime.OLD: OLD_REGIME,
}
