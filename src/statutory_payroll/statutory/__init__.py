"""Government submission file generators and the compliance calendar."""

from statutory_payroll.statutory.ecr import generate_ecr, parse_ecr_summary
from statutory_payroll.statutory.esi_challan import generate_esi_challan, parse_esi_challan_summary
from statutory_payroll.statutory.form16 import generate_form16, render_form16_json, render_form16_text
from statutory_payroll.statutory.form24q import generate_form24q, render_form24q_json
from statutory_payroll.statutory.types import (
    FilingRecord,
    GeneratedFile,
    SkippedRecord,
    StatutoryFileType,
)

__all__ = [
    "FilingRecord",
    "GeneratedFile",
    "SkippedRecord",
    "StatutoryFileType",
    "generate_ecr",
    "generate_esi_challan",
    "generate_form16",
    "generate_form24q",
    "parse_ecr_summary",
    "parse_esi_challan_summary",
    "render_form16_json",
    "render_form16_text",
    "render_form24q_json",
]
