"""Integration tests for Professional Tax slab administration."""

from uuid import uuid4

import pytest

from statutory_payroll.calculators.types import Gender
from statutory_payroll.services.slab_service import (
    SlabNotFoundError,
    SlabOverlapError,
    SlabService,
)


@pytest.fixture
def service(session) -> SlabService:
    return SlabService(session)


class TestCreateSlab:
    """Test validation and overlap checks."""

    async def test_create(self, service):
        slab = await service.create_slab("ka", 1_500_000, None, 20_000)

        assert slab.state_code == "KA"
        assert slab.is_active is True
        assert [s.slab_id for s in await service.list_slabs("KA")] == [slab.slab_id]

    async def test_overlap_rejected(self, service):
        await service.create_slab("TN", 750_100, 1_000_100, 13_500)
        with pytest.raises(SlabOverlapError) as exc_info:
            await service.create_slab("TN", 900_000, 1_200_000, 15_000)
        assert exc_info.value.state_code == "TN"

    async def test_adjacent_bands_allowed(self, service):
        """Test that bands touching at the exclusive bound do not overlap."""
        await service.create_slab("TN", 750_100, 1_000_100, 13_500)
        await service.create_slab("TN", 1_000_100, 1_250_100, 15_000)
        assert len(await service.list_slabs("TN")) == 2

    async def test_month_and_gender_scopes_are_separate(self, service):
        await service.create_slab("KA", 1_500_000, None, 20_000)
        await service.create_slab("KA", 1_500_000, None, 30_000, month=2)
        await service.create_slab("MH", 1_000_100, None, 17_500, applies_to_gender="male")
        female = await service.create_slab(
            "MH", 1_000_100, None, 15_000, applies_to_gender="FEMALE"
        )

        assert female.applies_to_gender == "FEMALE"
        assert len(await service.list_slabs()) == 4

    async def test_gendered_slab_overlapping_general_slab_rejected(self, service):
        """Test that a MALE slab cannot shadow a general slab's band."""
        general = await service.create_slab("MH", 1_000_100, None, 20_000)

        with pytest.raises(SlabOverlapError) as exc_info:
            await service.create_slab("MH", 1_000_100, None, 17_500, applies_to_gender="MALE")
        assert exc_info.value.conflicting_id == general.slab_id

        repo = await service.load_repository()
        slab = repo.find_slab("MH", None, Gender.MALE, 3_000_000)
        assert slab is not None
        assert slab.tax_amount == 20_000

    async def test_general_slab_overlapping_gendered_slab_rejected(self, service):
        female = await service.create_slab(
            "MH", 1_000_100, 2_500_100, 15_000, applies_to_gender="FEMALE"
        )

        with pytest.raises(SlabOverlapError) as exc_info:
            await service.create_slab("MH", 2_000_000, None, 20_000)
        assert exc_info.value.conflicting_id == female.slab_id

    async def test_general_and_gendered_slabs_in_disjoint_bands(self, service):
        await service.create_slab("MH", 0, 1_000_100, 0)
        await service.create_slab("MH", 1_000_100, None, 17_500, applies_to_gender="MALE")
        await service.create_slab("MH", 1_000_100, None, 15_000, applies_to_gender="FEMALE")

        assert len(await service.list_slabs("MH")) == 3

    @pytest.mark.parametrize(
        "overrides",
        [
            {"state_code": "K1"},
            {"salary_from": -1},
            {"salary_from": 100, "salary_to": 100},
            {"tax_amount": -5},
            {"month": 13},
            {"applies_to_gender": "X"},
        ],
    )
    async def test_invalid_slab(self, service, overrides):
        kwargs = {"state_code": "KA", "salary_from": 0, "salary_to": None, "tax_amount": 0}
        with pytest.raises(ValueError):
            await service.create_slab(**{**kwargs, **overrides})


class TestSupersedeSlab:
    """Test that updates replace rather than modify slabs."""

    async def test_supersede(self, service):
        old = await service.create_slab("KA", 1_500_000, None, 20_000)
        new = await service.supersede_slab(old.slab_id, tax_amount=25_000)

        assert new.slab_id != old.slab_id
        assert new.tax_amount == 25_000
        assert new.salary_from == 1_500_000
        assert old.is_active is False
        assert old.superseded_by == new.slab_id

        active = await service.list_slabs("KA")
        everything = await service.list_slabs("KA", include_inactive=True)
        assert [s.slab_id for s in active] == [new.slab_id]
        assert len(everything) == 2

    async def test_supersede_checks_overlap_against_others(self, service):
        low = await service.create_slab("TN", 750_100, 1_000_100, 13_500)
        await service.create_slab("TN", 1_000_100, None, 15_000)

        with pytest.raises(SlabOverlapError):
            await service.supersede_slab(low.slab_id, salary_to=1_100_000)

    async def test_inactive_slab_cannot_be_superseded(self, service):
        slab = await service.create_slab("KA", 1_500_000, None, 20_000)
        await service.deactivate_slab(slab.slab_id)
        with pytest.raises(ValueError):
            await service.supersede_slab(slab.slab_id, tax_amount=1)

    async def test_missing_slab(self, service):
        with pytest.raises(SlabNotFoundError):
            await service.supersede_slab(uuid4(), tax_amount=1)


class TestRepositorySnapshot:
    async def test_load_repository_uses_active_slabs(self, service):
        old = await service.create_slab("KA", 1_500_000, None, 20_000)
        await service.supersede_slab(old.slab_id, tax_amount=25_000)

        repo = await service.load_repository()
        slab = repo.find_slab("KA", None, Gender.MALE, 2_000_000)
        assert slab is not None
        assert slab.tax_amount == 25_000
