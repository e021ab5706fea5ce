"""Service layer for payroll operations."""

from statutory_payroll.services.deadline_service import (
    DeadlineClosedError,
    DeadlineNotFoundError,
    DeadlineService,
)
from statutory_payroll.services.payroll_run_service import (
    DuplicatePayrollRunError,
    PayrollRunNotFoundError,
    PayrollRunService,
)
from statutory_payroll.services.slab_service import SlabNotFoundError, SlabOverlapError, SlabService
from statutory_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollRunStateMachine,
    PayrollRunStatus,
)
from statutory_payroll.services.statutory_file_service import (
    RunNotFinalizedError,
    StatutoryFileService,
)

__all__ = [
    "DeadlineClosedError",
    "DeadlineNotFoundError",
    "DeadlineService",
    "DuplicatePayrollRunError",
    "InvalidTransitionError",
    "PayrollRunNotFoundError",
    "PayrollRunService",
    "PayrollRunStateMachine",
    "PayrollRunStatus",
    "RunNotFinalizedError",
    "SlabNotFoundError",
    "SlabOverlapError",
    "SlabService",
    "StatutoryFileService",
]
