"""ECR (Electronic Challan cum Return) file generator for EPFO.

Format: text file, fields separated by ``#~#``.

Member lines, one per employee contributing PF:
    UAN, name, gross wages, EPF wages, EPS wages, EDLI wages,
    EE EPF, ER EPF, ER EPS, ER EDLI, NCP days, refund

Trailing summary line:
    TOTAL, establishment code, establishment name, MM, YYYY,
    member count, total wages, total EE contribution, total ER contribution
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from statutory_payroll.calculators.money import format_rupees, parse_rupees
from statutory_payroll.statutory.types import (
    FilingRecord,
    GeneratedFile,
    SkippedRecord,
    StatutoryFileType,
    period_suffix,
    whole_days,
)

logger = logging.getLogger(__name__)

SEPARATOR = "#~#"
SUMMARY_TAG = "TOTAL"


@dataclass(frozen=True)
class ECRSummary:
    """Totals carried on the ECR summary line."""

    member_count: int
    total_wages: int
    total_employee_contribution: int
    total_employer_contribution: int


def _clean(text: str) -> str:
    """Strip the separator and line breaks from free text."""
    return " ".join(text.replace(SEPARATOR, " ").split())


def member_line(record: FilingRecord) -> str:
    return SEPARATOR.join(
        [
            _clean(record.uan or ""),
            _clean(record.name),
            format_rupees(record.gross),
            format_rupees(record.pf_base),
            format_rupees(record.pf_base),
            format_rupees(record.pf_base),
            format_rupees(record.pf_employee),
            format_rupees(record.pf_employer_epf),
            format_rupees(record.pf_employer_eps),
            format_rupees(record.pf_employer_edli),
            str(whole_days(record.lop_days)),
            format_rupees(0),
        ]
    )


def generate_ecr(
    records: Iterable[FilingRecord],
    month: int,
    year: int,
    establishment_code: str = "",
    establishment_name: str = "",
) -> GeneratedFile:
    """Render the ECR for a month's PF-contributing records."""
    lines: list[str] = []
    skipped: list[SkippedRecord] = []
    wages = employee_total = employer_total = 0

    for record in records:
        if record.pf_employee <= 0:
            continue
        if not record.uan:
            logger.warning("ECR %02d/%d: skipping %s, no UAN", month, year, record.employee_id)
            skipped.append(SkippedRecord(record.employee_id, "missing UAN"))
            continue

        lines.append(member_line(record))
        wages += record.gross
        employee_total += record.pf_employee
        employer_total += record.pf_employer_epf + record.pf_employer_eps + record.pf_employer_edli

    lines.append(
        SEPARATOR.join(
            [
                SUMMARY_TAG,
                _clean(establishment_code),
                _clean(establishment_name),
                f"{month:02d}",
                str(year),
                str(len(lines)),
                format_rupees(wages),
                format_rupees(employee_total),
                format_rupees(employer_total),
            ]
        )
    )

    return GeneratedFile(
        file_type=StatutoryFileType.ECR,
        filename=f"ECR_{period_suffix(month, year)}.txt",
        content="\n".join(lines),
        record_count=len(lines) - 1,
        total_amount=employee_total + employer_total,
        skipped=skipped,
    )


def parse_ecr_summary(content: str) -> ECRSummary:
    """Read the totals back from an ECR file's summary line."""
    last = content.rstrip("\n").split("\n")[-1]
    fields = last.split(SEPARATOR)
    if len(fields) != 9 or fields[0] != SUMMARY_TAG:
        raise ValueError(f"Not an ECR summary line: {last!r}")
    return ECRSummary(
        member_count=int(fields[5]),
        total_wages=parse_rupees(fields[6]),
        total_employee_contribution=parse_rupees(fields[7]),
        total_employer_contribution=parse_rupees(fields[8]),
    )
