"""Professional Tax slab administration."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from statutory_payroll.calculators.pt import InMemorySlabRepository
from statutory_payroll.calculators.types import Gender
from statutory_payroll.models import ProfessionalTaxSlab

logger = logging.getLogger(__name__)

_UNSET = object()


class SlabNotFoundError(Exception):
    def __init__(self, slab_id: UUID):
        self.slab_id = slab_id
        super().__init__(f"Professional Tax slab {slab_id} not found")


class SlabOverlapError(Exception):
    """Raised when a slab's band overlaps another active slab in the same scope."""

    def __init__(self, state_code: str, month: int | None, gender: str | None, conflicting_id: UUID):
        self.state_code = state_code
        self.month = month
        self.gender = gender
        self.conflicting_id = conflicting_id
        scope = f"{state_code}, month={month or 'all'}, gender={gender or 'all'}"
        super().__init__(f"Salary range overlaps active slab {conflicting_id} ({scope})")


def _ranges_overlap(a_from: int, a_to: int | None, b_from: int, b_to: int | None) -> bool:
    """Half-open ``[from, to)`` overlap; ``None`` means unbounded."""
    return (b_to is None or a_from < b_to) and (a_to is None or b_from < a_to)


class SlabService:
    """CRUD over Professional Tax slabs.

    Slabs are never updated in place: an update deactivates the old row and
    inserts a replacement, so payroll records keep pointing at the slab that
    produced them.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_slab(self, slab_id: UUID) -> ProfessionalTaxSlab:
        slab = await self.session.get(ProfessionalTaxSlab, slab_id)
        if slab is None:
            raise SlabNotFoundError(slab_id)
        return slab

    async def list_slabs(
        self,
        state_code: str | None = None,
        include_inactive: bool = False,
    ) -> list[ProfessionalTaxSlab]:
        stmt = select(ProfessionalTaxSlab)
        if state_code:
            stmt = stmt.where(ProfessionalTaxSlab.state_code == state_code.upper())
        if not include_inactive:
            stmt = stmt.where(ProfessionalTaxSlab.is_active.is_(True))
        stmt = stmt.order_by(
            ProfessionalTaxSlab.state_code,
            ProfessionalTaxSlab.month,
            ProfessionalTaxSlab.salary_from,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def load_repository(self) -> InMemorySlabRepository:
        """Snapshot of all active slabs for a payroll run."""
        slabs = await self.list_slabs()
        return InMemorySlabRepository([s.to_slab() for s in slabs])

    async def create_slab(
        self,
        state_code: str,
        salary_from: int,
        salary_to: int | None,
        tax_amount: int,
        month: int | None = None,
        applies_to_gender: str | None = None,
    ) -> ProfessionalTaxSlab:
        """Validate and insert a new active slab."""
        state_code, applies_to_gender = self._validate(
            state_code, salary_from, salary_to, tax_amount, month, applies_to_gender
        )
        await self._check_overlap(state_code, salary_from, salary_to, month, applies_to_gender)

        slab = ProfessionalTaxSlab(
            state_code=state_code,
            salary_from=salary_from,
            salary_to=salary_to,
            tax_amount=tax_amount,
            month=month,
            applies_to_gender=applies_to_gender,
            is_active=True,
        )
        self.session.add(slab)
        await self.session.flush()
        logger.info("Created PT slab %s for %s", slab.slab_id, state_code)
        return slab

    async def supersede_slab(
        self,
        slab_id: UUID,
        *,
        salary_from: int | None = None,
        salary_to: int | None | object = _UNSET,
        tax_amount: int | None = None,
        month: int | None | object = _UNSET,
        applies_to_gender: str | None | object = _UNSET,
    ) -> ProfessionalTaxSlab:
        """Deactivate a slab and insert its replacement with the given changes."""
        old = await self.get_slab(slab_id)
        if not old.is_active:
            raise ValueError(f"Slab {slab_id} is inactive and cannot be updated")

        new_from = old.salary_from if salary_from is None else salary_from
        new_to = old.salary_to if salary_to is _UNSET else salary_to
        new_tax = old.tax_amount if tax_amount is None else tax_amount
        new_month = old.month if month is _UNSET else month
        new_gender = old.applies_to_gender if applies_to_gender is _UNSET else applies_to_gender

        state_code, new_gender = self._validate(
            old.state_code, new_from, new_to, new_tax, new_month, new_gender
        )
        await self._check_overlap(
            state_code, new_from, new_to, new_month, new_gender, exclude_id=old.slab_id
        )

        replacement = ProfessionalTaxSlab(
            state_code=state_code,
            salary_from=new_from,
            salary_to=new_to,
            tax_amount=new_tax,
            month=new_month,
            applies_to_gender=new_gender,
            is_active=True,
        )
        old.is_active = False
        self.session.add(replacement)
        await self.session.flush()
        old.superseded_by = replacement.slab_id
        await self.session.flush()

        logger.info("PT slab %s superseded by %s", old.slab_id, replacement.slab_id)
        return replacement

    async def deactivate_slab(self, slab_id: UUID) -> ProfessionalTaxSlab:
        """Soft delete."""
        slab = await self.get_slab(slab_id)
        slab.is_active = False
        await self.session.flush()
        logger.info("PT slab %s deactivated", slab_id)
        return slab

    @staticmethod
    def _validate(
        state_code: str,
        salary_from: int,
        salary_to: int | None,
        tax_amount: int,
        month: int | None,
        applies_to_gender: str | None,
    ) -> tuple[str, str | None]:
        state_code = state_code.strip().upper()
        if len(state_code) != 2 or not state_code.isalpha():
            raise ValueError(f"state_code must be a two-letter code, got {state_code!r}")
        if salary_from < 0:
            raise ValueError("salary_from must not be negative")
        if salary_to is not None and salary_to <= salary_from:
            raise ValueError("salary_to must be greater than salary_from")
        if tax_amount < 0:
            raise ValueError("tax_amount must not be negative")
        if month is not None and not 1 <= month <= 12:
            raise ValueError(f"month must be 1-12, got {month}")
        if applies_to_gender is not None:
            applies_to_gender = Gender(applies_to_gender.upper()).value
        return state_code, applies_to_gender

    async def _check_overlap(
        self,
        state_code: str,
        salary_from: int,
        salary_to: int | None,
        month: int | None,
        applies_to_gender: str | None,
        exclude_id: UUID | None = None,
    ) -> None:
        stmt = select(ProfessionalTaxSlab).where(
            ProfessionalTaxSlab.state_code == state_code,
            ProfessionalTaxSlab.is_active.is_(True),
            (
                ProfessionalTaxSlab.month.is_(None)
                if month is None
                else ProfessionalTaxSlab.month == month
            ),
        )
        # A slab without a gender matches every employee, so it competes
        # with slabs of any gender in the same month scope
        if applies_to_gender is not None:
            stmt = stmt.where(
                or_(
                    ProfessionalTaxSlab.applies_to_gender.is_(None),
                    ProfessionalTaxSlab.applies_to_gender == applies_to_gender,
                )
            )
        if exclude_id is not None:
            stmt = stmt.where(ProfessionalTaxSlab.slab_id != exclude_id)

        for other in (await self.session.execute(stmt)).scalars():
            if _ranges_overlap(salary_from, salary_to, other.salary_from, other.salary_to):
                raise SlabOverlapError(state_code, month, applies_to_gender, other.slab_id)
