"""ESI challan generator for ESIC.

Format: CSV with a header row, one row per insured person, a blank line,
a totals row, a blank line and a ``Month/Year,MM/YYYY`` footer.
"""

from __future__ import annotations

import logging
import re
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

HEADER = (
    "ESIC Number,Employee Name,Gross Wages (Rs),Employee Contribution (Rs),"
    "Employer Contribution (Rs),Total Contribution (Rs),IP Days"
)

_SUMMARY_RE = re.compile(
    r'^"TOTAL \((?P<count>\d+) employees\)",'
    r"(?P<gross>-?\d+\.\d{2}),(?P<ee>-?\d+\.\d{2}),(?P<er>-?\d+\.\d{2}),(?P<total>-?\d+\.\d{2}),$"
)

# Characters that would shift or break CSV columns in an unquoted field
_DELIMITERS_RE = re.compile(r'[,"\s]')


@dataclass(frozen=True)
class ESIChallanSummary:
    """Totals carried on the challan summary row."""

    employee_count: int
    total_gross_wages: int
    total_employee_contribution: int
    total_employer_contribution: int
    total_contribution: int


def quote(text: str) -> str:
    """CSV-quote a free-text field, doubling embedded quotes."""
    flat = " ".join(text.split())
    return '"' + flat.replace('"', '""') + '"'


def clean_identifier(text: str) -> str:
    """Strip separators, quotes and whitespace from an unquoted ID field."""
    return _DELIMITERS_RE.sub("", text)


def generate_esi_challan(
    records: Iterable[FilingRecord],
    month: int,
    year: int,
) -> GeneratedFile:
    """Render the ESI challan for a month's ESI-applicable records."""
    lines = [HEADER]
    skipped: list[SkippedRecord] = []
    count = gross = employee_total = employer_total = 0

    for record in records:
        if not record.esi_applicable:
            continue
        esic_number = clean_identifier(record.esic_number or "")
        if not esic_number:
            logger.warning(
                "ESI challan %02d/%d: skipping %s, no ESIC number",
                month,
                year,
                record.employee_id,
            )
            skipped.append(SkippedRecord(record.employee_id, "missing ESIC number"))
            continue

        ip_days = whole_days(record.working_days - record.lop_days)
        lines.append(
            ",".join(
                [
                    esic_number,
                    quote(record.name),
                    format_rupees(record.gross),
                    format_rupees(record.esi_employee),
                    format_rupees(record.esi_employer),
                    format_rupees(record.esi_employee + record.esi_employer),
                    str(ip_days),
                ]
            )
        )
        count += 1
        gross += record.gross
        employee_total += record.esi_employee
        employer_total += record.esi_employer

    total = employee_total + employer_total
    lines.append("")
    lines.append(
        f'"TOTAL ({count} employees)",{format_rupees(gross)},{format_rupees(employee_total)},'
        f"{format_rupees(employer_total)},{format_rupees(total)},"
    )
    lines.append("")
    lines.append(f"Month/Year,{month:02d}/{year}")

    return GeneratedFile(
        file_type=StatutoryFileType.ESI_CHALLAN,
        filename=f"ESI_Challan_{period_suffix(month, year)}.csv",
        content="\n".join(lines),
        record_count=count,
        total_amount=total,
        skipped=skipped,
    )


def parse_esi_challan_summary(content: str) -> ESIChallanSummary:
    """Read the totals back from a challan's summary row."""
    for line in content.split("\n"):
        match = _SUMMARY_RE.match(line)
        if match:
            return ESIChallanSummary(
                employee_count=int(match["count"]),
                total_gross_wages=parse_rupees(match["gross"]),
                total_employee_contribution=parse_rupees(match["ee"]),
                total_employer_contribution=parse_rupees(match["er"]),
                total_contribution=parse_rupees(match["total"]),
            )
    raise ValueError("ESI challan has no summary row")
