"""Statutory payroll calculators."""

from statutory_payroll.calculators.engine import (
    PayrollEngine,
    PayrollRecordBuilder,
    PayrollRunCalculationResult,
)
from statutory_payroll.calculators.esi import ContributionPeriod, ESICalculator
from statutory_payroll.calculators.pf import PFCalculator
from statutory_payroll.calculators.pt import (
    InMemorySlabRepository,
    ProfessionalTaxCalculator,
    SlabRepository,
)
from statutory_payroll.calculators.rates import (
    DEFAULT_RATES,
    DEFAULT_SCHEDULE,
    RateNotFoundError,
    RateSchedule,
    StatutoryRates,
)
from statutory_payroll.calculators.tds import TDSCalculator

__all__ = [
    "ContributionPeriod",
    "DEFAULT_RATES",
    "DEFAULT_SCHEDULE",
    "ESICalculator",
    "InMemorySlabRepository",
    "PFCalculator",
    "PayrollEngine",
    "PayrollRecordBuilder",
    "PayrollRunCalculationResult",
    "ProfessionalTaxCalculator",
    "RateNotFoundError",
    "RateSchedule",
    "SlabRepository",
    "StatutoryRates",
    "TDSCalculator",
]
