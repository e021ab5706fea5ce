"""Professional Tax calculation with state-specific slabs.

Handles:
- States with no Professional Tax (fixed policy list)
- Month-specific slabs (e.g. a February surcharge) preferred over general ones
- Gender-specific slabs
"""

from __future__ import annotations

from typing import Iterable, Protocol

from statutory_payroll.calculators.rates import PT_EXEMPT_STATES
from statutory_payroll.calculators.types import Gender, PayrollInputError, PTResult, PTSlab


class SlabRepository(Protocol):
    """Source of Professional Tax slabs."""

    def find_slab(
        self,
        state_code: str,
        month: int | None,
        gender: Gender | None,
        gross: int,
    ) -> PTSlab | None:
        """Return the best active slab for an exact month, or general slabs when month is None."""
        ...


class InMemorySlabRepository:
    """Slab lookup over a preloaded list of slabs."""

    def __init__(self, slabs: Iterable[PTSlab] = ()):
        self._by_state: dict[str, list[PTSlab]] = {}
        for slab in slabs:
            self.add(slab)

    def add(self, slab: PTSlab) -> None:
        self._by_state.setdefault(slab.state_code, []).append(slab)

    def states(self) -> list[str]:
        return sorted(
            code for code, slabs in self._by_state.items() if any(s.is_active for s in slabs)
        )

    def slabs_for_state(self, state_code: str) -> list[PTSlab]:
        slabs = [s for s in self._by_state.get(state_code, []) if s.is_active]
        return sorted(slabs, key=lambda s: (s.month or 0, s.salary_from))

    def find_slab(
        self,
        state_code: str,
        month: int | None,
        gender: Gender | None,
        gross: int,
    ) -> PTSlab | None:
        best: PTSlab | None = None
        for slab in self._by_state.get(state_code, []):
            if not slab.is_active or slab.month != month:
                continue
            if not slab.covers(gross) or not slab.applies_to(gender):
                continue
            # Highest salary_from is the most specific band
            if best is None or slab.salary_from > best.salary_from:
                best = slab
        return best


class ProfessionalTaxCalculator:
    """Resolves the applicable slab and returns PT for one month."""

    def __init__(
        self,
        slabs: SlabRepository,
        exempt_states: frozenset[str] = PT_EXEMPT_STATES,
    ):
        self.slabs = slabs
        self.exempt_states = exempt_states

    def calculate(
        self,
        state_code: str,
        gross_salary: int,
        month: int,
        gender: Gender | None,
    ) -> PTResult:
        if gross_salary < 0:
            raise PayrollInputError("gross_salary", "must not be negative")
        if not 1 <= month <= 12:
            raise PayrollInputError("month", f"must be 1-12, got {month}")

        state_code = state_code.upper()
        if state_code in self.exempt_states:
            return PTResult(
                tax_amount=0,
                slab_id=None,
                is_exempt=True,
                reason=f"State {state_code} has no Professional Tax",
            )

        slab = self.slabs.find_slab(state_code, month, gender, gross_salary)
        if slab is None:
            slab = self.slabs.find_slab(state_code, None, gender, gross_salary)

        if slab is None:
            return PTResult(
                tax_amount=0,
                slab_id=None,
                is_exempt=True,
                reason="Salary below PT threshold",
            )

        return PTResult(tax_amount=slab.tax_amount, slab_id=slab.slab_id, is_exempt=False)

    def annual(self, state_code: str, gross_salary: int, gender: Gender | None) -> int:
        """Annual PT liability, each month evaluated on its own."""
        return sum(
            self.calculate(state_code, gross_salary, month, gender).tax_amount
            for month in range(1, 13)
        )
