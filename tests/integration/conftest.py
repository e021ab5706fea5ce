"""Fixtures for tests against a database and the HTTP API.

Uses in-memory SQLite through aiosqlite; every test gets a fresh schema.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from statutory_payroll.api.app import create_app
from statutory_payroll.api.dependencies import get_app_settings, get_db_session_factory
from statutory_payroll.calculators.types import PTSlab
from statutory_payroll.database import make_session_factory
from statutory_payroll.models import (
    AttendanceSummary,
    Base,
    Employee,
    EmployeeSalaryStructure,
    ProfessionalTaxSlab,
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Create a fresh test database engine per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def _add_attendance(
    session: AsyncSession,
    employee: Employee,
    month: int,
    year: int,
    working_days: int = 22,
    lop_days: Decimal = Decimal("0"),
) -> AttendanceSummary:
    attendance = AttendanceSummary(
        employee_id=employee.employee_id,
        month=month,
        year=year,
        working_days=working_days,
        paid_days=Decimal(working_days) - lop_days,
        lop_days=lop_days,
    )
    session.add(attendance)
    await session.flush()
    return attendance


@pytest.fixture
def add_attendance() -> Callable[..., Awaitable[AttendanceSummary]]:
    """Record attendance for a further month."""
    return _add_attendance


@pytest.fixture
def make_employee() -> Callable[..., Awaitable[Employee]]:
    """Create an employee with a salary structure and, optionally, attendance."""
    counter = {"n": 0}

    async def _make(
        session: AsyncSession,
        *,
        basic: int = 1_500_000,
        hra: int = 600_000,
        special_allowance: int = 400_000,
        tax_regime: str = "NEW",
        work_state: str = "KA",
        gender: str | None = "MALE",
        month: int | None = 4,
        year: int = 2025,
        with_salary: bool = True,
        uan: str | None = "100200300400",
        esic_number: str | None = "3100123456",
    ) -> Employee:
        counter["n"] += 1
        n = counter["n"]
        employee = Employee(
            employee_code=f"EMP{n:03d}",
            first_name=f"Employee{n}",
            last_name="Test",
            gender=gender,
            work_state=work_state,
            designation="Engineer",
            pan=f"ABCDE{n:04d}F",
            uan=uan,
            esic_number=esic_number,
        )
        session.add(employee)
        await session.flush()

        if with_salary:
            session.add(
                EmployeeSalaryStructure(
                    employee_id=employee.employee_id,
                    effective_from=date(2024, 4, 1),
                    basic=basic,
                    hra=hra,
                    special_allowance=special_allowance,
                    tax_regime=tax_regime,
                )
            )
            await session.flush()
        if month is not None:
            await _add_attendance(session, employee, month, year)
        return employee

    return _make


@pytest.fixture
def seed_slabs(pt_slabs: list[PTSlab]) -> Callable[[AsyncSession], Awaitable[None]]:
    """Persist the shared test slabs."""

    async def _seed(session: AsyncSession) -> None:
        session.add_all(
            ProfessionalTaxSlab(
                slab_id=s.slab_id,
                state_code=s.state_code,
                salary_from=s.salary_from,
                salary_to=s.salary_to,
                tax_amount=s.tax_amount,
                month=s.month,
                applies_to_gender=s.applies_to_gender.value if s.applies_to_gender else None,
            )
            for s in pt_slabs
        )
        await session.flush()

    return _seed


@pytest.fixture
async def client(session_factory, settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the test database."""
    app = create_app()
    app.dependency_overrides[get_db_session_factory] = lambda: session_factory
    app.dependency_overrides[get_app_settings] = lambda: settings

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
