"""Seed script for Professional Tax slabs.

Run with:
    python scripts/seed_pt_slabs.py

Creates the monthly PT slabs for Karnataka, Maharashtra, Tamil Nadu and
Telangana. Amounts are paise; ``salary_to`` is exclusive, so adjacent bands
share a boundary.
"""

from __future__ import annotations

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from statutory_payroll.database import get_session
from statutory_payroll.models import ProfessionalTaxSlab
from statutory_payroll.services.slab_service import SlabService

# (state_code, salary_from, salary_to, tax_amount, month, applies_to_gender)
PT_SLABS: list[tuple[str, int, int | None, int, int | None, str | None]] = [
    # Karnataka: Rs.200/month from Rs.15,000, Rs.300 in February
    ("KA", 1_500_000, None, 30_000, 2, None),
    ("KA", 1_500_000, None, 20_000, None, None),
    # Maharashtra: reduced rates for women
    ("MH", 1_000_100, 2_500_100, 17_500, None, "MALE"),
    ("MH", 2_500_100, None, 20_000, None, "MALE"),
    ("MH", 1_000_100, 2_500_100, 15_000, None, "FEMALE"),
    ("MH", 2_500_100, None, 17_500, None, "FEMALE"),
    # Tamil Nadu
    ("TN", 750_100, 1_000_100, 13_500, None, None),
    ("TN", 1_000_100, 1_250_100, 15_000, None, None),
    ("TN", 1_250_100, None, 20_833, None, None),
    # Telangana
    ("TS", 1_500_100, 2_000_100, 15_000, None, None),
    ("TS", 2_000_100, None, 20_000, None, None),
]


async def seed_pt_slabs(session: AsyncSession) -> int:
    """Insert slabs for states that have none yet."""
    service = SlabService(session)
    created = 0
    for state_code in sorted({row[0] for row in PT_SLABS}):
        result = await session.execute(
            select(ProfessionalTaxSlab.slab_id)
            .where(ProfessionalTaxSlab.state_code == state_code)
            .limit(1)
        )
        if result.first() is not None:
            print(f"Skipping {state_code}: slabs already present")
            continue

        for state, salary_from, salary_to, tax_amount, month, gender in PT_SLABS:
            if state != state_code:
                continue
            await service.create_slab(
                state_code=state,
                salary_from=salary_from,
                salary_to=salary_to,
                tax_amount=tax_amount,
                month=month,
                applies_to_gender=gender,
            )
            created += 1
        print(f"Created PT slabs for {state_code}")
    return created


async def main():
    """Run seed script."""
    print("Seeding Professional Tax slabs...")

    async with get_session() as session:
        created = await seed_pt_slabs(session)
        await session.commit()

    print(f"\nDone! {created} PT slabs seeded.")


if __name__ == "__main__":
    asyncio.run(main())
