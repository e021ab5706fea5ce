"""Provident Fund contribution calculator."""

from __future__ import annotations

from statutory_payroll.calculators.money import apply_rate
from statutory_payroll.calculators.rates import StatutoryRates
from statutory_payroll.calculators.types import EmployerPFBreakdown, PFResult


class PFCalculator:
    """Computes employee PF and the employer EPF/EPS/EDLI/admin split.

    The PF base is the basic wage capped at the statutory ceiling. When the
    EPS share would exceed its monthly cap, the excess moves to EPF so the
    employer's 12% stays whole.
    """

    def __init__(self, rates: StatutoryRates):
        self.rates = rates

    def pf_base(self, basic: int) -> int:
        return max(0, min(basic, self.rates.pf_wage_ceiling))

    def is_mandatory(self, basic: int) -> bool:
        """Employees at or above the ceiling cannot opt out."""
        return basic >= self.rates.pf_wage_ceiling

    def calculate(self, basic: int) -> PFResult:
        base = self.pf_base(basic)
        if base == 0:
            return PFResult(pf_base=0, employee_contribution=0, employer=EmployerPFBreakdown())

        return PFResult(
            pf_base=base,
            employee_contribution=apply_rate(base, self.rates.pf_employee_rate),
            employer=self.employer_breakdown(basic),
        )

    def employer_breakdown(self, basic: int) -> EmployerPFBreakdown:
        base = self.pf_base(basic)
        if base == 0:
            return EmployerPFBreakdown()

        eps_uncapped = apply_rate(base, self.rates.pf_eps_rate)
        eps = min(eps_uncapped, self.rates.eps_monthly_cap)
        edli = apply_rate(base, self.rates.pf_edli_rate)

        if eps_uncapped > self.rates.eps_monthly_cap:
            employer_share = apply_rate(base, self.rates.pf_employee_rate)
            epf = employer_share - eps - edli
        else:
            epf = apply_rate(base, self.rates.pf_employer_epf_rate)

        return EmployerPFBreakdown(
            epf=epf,
            eps=eps,
            edli=edli,
            admin_charges=apply_rate(base, self.rates.pf_admin_rate),
        )
