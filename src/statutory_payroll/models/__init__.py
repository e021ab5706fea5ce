"""SQLAlchemy ORM models for the statutory payroll service."""

from statutory_payroll.models.base import Base, ImmutableRecordError, TimestampMixin
from statutory_payroll.models.employee import (
    AttendanceSummary,
    Employee,
    EmployeeSalaryStructure,
)
from statutory_payroll.models.payroll import PayrollRecord, PayrollRun, ProfessionalTaxSlab
from statutory_payroll.models.statutory import StatutoryDeadline, StatutoryFile

__all__ = [
    "AttendanceSummary",
    "Base",
    "Employee",
    "EmployeeSalaryStructure",
    "ImmutableRecordError",
    "PayrollRecord",
    "PayrollRun",
    "ProfessionalTaxSlab",
    "StatutoryDeadline",
    "StatutoryFile",
    "TimestampMixin",
]
