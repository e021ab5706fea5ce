"""Shared types for statutory file generation."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID

from statutory_payroll.calculators.types import TaxRegime


class StatutoryFileType(str, Enum):
    """Government submission artifacts."""

    ECR = "ECR"
    ESI_CHALLAN = "ESI_CHALLAN"
    FORM_24Q = "FORM_24Q"
    FORM_16 = "FORM_16"


@dataclass(frozen=True)
class FilingRecord:
    """Flat view of one finalized payroll record plus employee identifiers."""

    employee_id: UUID
    employee_code: str
    name: str
    month: int
    year: int
    working_days: int
    lop_days: Decimal
    gross: int
    pf_base: int = 0
    pf_employee: int = 0
    pf_employer_epf: int = 0
    pf_employer_eps: int = 0
    pf_employer_edli: int = 0
    esi_applicable: bool = False
    esi_employee: int = 0
    esi_employer: int = 0
    pt: int = 0
    tds: int = 0
    tax_regime: TaxRegime = TaxRegime.NEW
    uan: str | None = None
    esic_number: str | None = None
    pan: str | None = None
    designation: str | None = None


@dataclass(frozen=True)
class SkippedRecord:
    """A record left out of a generated file, and why."""

    employee_id: UUID
    reason: str


@dataclass
class GeneratedFile:
    """Rendered file content with the figures recorded in the audit trail."""

    file_type: StatutoryFileType
    filename: str
    content: str
    record_count: int
    total_amount: int
    skipped: list[SkippedRecord] = field(default_factory=list)


def whole_days(days: Decimal | int) -> int:
    """Round a day count half-up to whole days."""
    return int(Decimal(days).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def period_suffix(month: int, year: int) -> str:
    return f"{month:02d}_{year}"
