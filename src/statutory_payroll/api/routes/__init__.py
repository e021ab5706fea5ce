"""API routes."""

from statutory_payroll.api.routes.deadlines import router as deadlines_router
from statutory_payroll.api.routes.health import router as health_router
from statutory_payroll.api.routes.payroll_runs import router as payroll_runs_router
from statutory_payroll.api.routes.pt_slabs import router as pt_slabs_router
from statutory_payroll.api.routes.tds import router as tds_router

__all__ = [
    "deadlines_router",
    "health_router",
    "payroll_runs_router",
    "pt_slabs_router",
    "tds_router",
]
