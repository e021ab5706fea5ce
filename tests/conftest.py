"""Pytest fixtures for statutory payroll tests."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from uuid import uuid4

import pytest

from statutory_payroll.calculators.pt import InMemorySlabRepository
from statutory_payroll.calculators.types import Gender, PTSlab
from statutory_payroll.config import DeductorDetails, Settings
from statutory_payroll.statutory.types import FilingRecord

# In-memory SQLite shared across sessions through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def deductor() -> DeductorDetails:
    return DeductorDetails(
        tan="BLRA12345B",
        pan="AAACA1234A",
        name="Acme Software Pvt Ltd",
        address="12 MG Road, Bengaluru 560001",
        responsible_person="R. Iyer",
        responsible_designation="Director",
    )


@pytest.fixture
def settings(deductor: DeductorDetails) -> Settings:
    """Settings for tests, independent of the environment."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        failure_threshold=Decimal("0.5"),
        establishment_code="KABNG0012345000",
        establishment_name="Acme Software Pvt Ltd",
        deductor=deductor,
        deadline_lookahead_days=30,
    )


@pytest.fixture
def pt_slabs() -> list[PTSlab]:
    """Karnataka and Maharashtra slabs in paise."""
    return [
        PTSlab(uuid4(), "KA", 1_500_000, None, 30_000, month=2),
        PTSlab(uuid4(), "KA", 1_500_000, None, 20_000),
        PTSlab(uuid4(), "MH", 1_000_100, 2_500_100, 17_500, applies_to_gender=Gender.MALE),
        PTSlab(uuid4(), "MH", 2_500_100, None, 20_000, applies_to_gender=Gender.MALE),
        PTSlab(uuid4(), "MH", 1_000_100, 2_500_100, 15_000, applies_to_gender=Gender.FEMALE),
        PTSlab(uuid4(), "MH", 2_500_100, None, 17_500, applies_to_gender=Gender.FEMALE),
    ]


@pytest.fixture
def slab_repository(pt_slabs: list[PTSlab]) -> InMemorySlabRepository:
    return InMemorySlabRepository(pt_slabs)


@pytest.fixture
def make_filing_record() -> Callable[..., FilingRecord]:
    """Build filing records with sensible defaults for a covered employee."""

    def _make(**overrides) -> FilingRecord:
        fields = dict(
            employee_id=uuid4(),
            employee_code="EMP001",
            name="Asha Rao",
            month=2,
            year=2025,
            working_days=20,
            lop_days=Decimal("0"),
            gross=1_875_000,
            pf_base=1_125_000,
            pf_employee=135_000,
            pf_employer_epf=41_288,
            pf_employer_eps=93_713,
            pf_employer_edli=5_625,
            esi_applicable=True,
            esi_employee=14_063,
            esi_employer=60_938,
            pt=20_000,
            tds=0,
            uan="100200300400",
            esic_number="3100123456",
            pan="ABCDE1234F",
            designation="Engineer",
        )
        fields.update(overrides)
        return FilingRecord(**fields)

    return _make
