"""Pydantic schemas for API request/response models.

Monetary fields are integer paise.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Common
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None


# ============================================================================
# Payroll Run schemas
# ============================================================================


class PayrollRunCreate(BaseModel):
    """Schema for starting a payroll run."""

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    created_by: str | None = None
    process_now: bool = Field(
        default=True,
        description="Schedule processing in the background right after creation",
    )


class PayrollRunRevert(BaseModel):
    reason: str = Field(min_length=1)


class EmployeeErrorResponse(BaseModel):
    employee_id: UUID
    message: str


class PayrollRunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    month: int
    year: int
    status: str
    engine_version: str
    created_by: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    reverted_at: datetime | None = None
    revert_reason: str | None = None
    failure_reason: str | None = None
    employee_count: int
    error_count: int
    total_gross: int
    total_deductions: int
    total_net: int
    errors: list[EmployeeErrorResponse] = Field(
        default_factory=list, validation_alias="errors_json"
    )
    created_at: datetime


class PayrollRunListResponse(BaseModel):
    """Schema for listing payroll runs."""

    items: list[PayrollRunResponse]
    total: int


# ============================================================================
# Payroll Record schemas
# ============================================================================


class PayrollRecordResponse(BaseModel):
    """One employee's computed payroll record."""

    model_config = ConfigDict(from_attributes=True)

    payroll_record_id: UUID
    payroll_run_id: UUID
    employee_id: UUID
    month: int
    year: int
    working_days: int
    paid_days: Decimal
    lop_days: Decimal
    basic: int
    hra: int
    special_allowance: int
    lta: int
    medical: int
    conveyance: int
    other_allowances: int
    gross_before_lop: int
    lop_deduction: int
    gross: int
    pf_base: int
    pf_employee: int
    pf_employer_epf: int
    pf_employer_eps: int
    pf_employer_edli: int
    pf_admin_charges: int
    esi_applicable: bool
    esi_employee: int
    esi_employer: int
    pt: int
    pt_slab_id: UUID | None = None
    tds: int
    tax_regime: str
    other_deductions: int
    reimbursements: int
    total_deductions: int
    net: int
    employer_cost: int
    inputs_fingerprint: str
    notes: list[str] = Field(default_factory=list)


class PayrollRecordListResponse(BaseModel):
    items: list[PayrollRecordResponse]
    total: int


class SkippedRecordResponse(BaseModel):
    employee_id: UUID
    reason: str


class StatutoryFileResponse(BaseModel):
    """Audit row for one generated statutory file."""

    model_config = ConfigDict(from_attributes=True)

    file_id: UUID
    file_type: str
    filename: str
    payroll_run_id: UUID | None = None
    month: int | None = None
    year: int | None = None
    quarter: int | None = None
    financial_year: int | None = None
    record_count: int
    total_amount: int
    content_sha256: str
    warnings: list[SkippedRecordResponse] = Field(default_factory=list)
    generated_by: str | None = None
    created_at: datetime


class StatutoryFileListResponse(BaseModel):
    items: list[StatutoryFileResponse]
    total: int


# ============================================================================
# Professional Tax slab schemas
# ============================================================================


class PTSlabCreate(BaseModel):
    """Schema for creating a Professional Tax slab."""

    state_code: str = Field(min_length=2, max_length=2)
    salary_from: int = Field(ge=0)
    salary_to: int | None = Field(default=None, gt=0)
    tax_amount: int = Field(ge=0)
    month: int | None = Field(default=None, ge=1, le=12)
    applies_to_gender: Literal["MALE", "FEMALE", "OTHER"] | None = None


class PTSlabUpdate(BaseModel):
    """Changes for a slab update. Omitted fields keep their current value."""

    salary_from: int | None = Field(default=None, ge=0)
    salary_to: int | None = Field(default=None, gt=0)
    tax_amount: int | None = Field(default=None, ge=0)
    month: int | None = Field(default=None, ge=1, le=12)
    applies_to_gender: Literal["MALE", "FEMALE", "OTHER"] | None = None


class PTSlabResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slab_id: UUID
    state_code: str
    salary_from: int
    salary_to: int | None = None
    tax_amount: int
    month: int | None = None
    applies_to_gender: str | None = None
    is_active: bool
    superseded_by: UUID | None = None
    created_at: datetime


class PTSlabListResponse(BaseModel):
    items: list[PTSlabResponse]
    total: int


# ============================================================================
# Statutory deadline schemas
# ============================================================================


class DeadlineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deadline_id: UUID
    deadline_type: str
    name: str
    month: int
    year: int
    due_date: date
    status: str
    filed_at: datetime | None = None
    filed_by: str | None = None
    filing_reference: str | None = None
    amount_paid: int | None = None
    notes: str | None = None


class UpcomingDeadlineResponse(BaseModel):
    deadline: DeadlineResponse
    days_left: int
    severity: str


class DeadlineListResponse(BaseModel):
    items: list[DeadlineResponse]
    total: int


class UpcomingDeadlineListResponse(BaseModel):
    as_of: date
    items: list[UpcomingDeadlineResponse]


class DeadlineGenerateRequest(BaseModel):
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)


class DeadlineSweepRequest(BaseModel):
    today: date | None = None


class DeadlineSweepResponse(BaseModel):
    as_of: date
    overdue: int
    alerts: dict[str, int]


class DeadlineUpdate(BaseModel):
    """Close a deadline as filed or not applicable."""

    status: Literal["FILED", "NOT_APPLICABLE"]
    filed_by: str | None = None
    filing_reference: str | None = None
    amount_paid: int | None = Field(default=None, ge=0)
    notes: str | None = None
