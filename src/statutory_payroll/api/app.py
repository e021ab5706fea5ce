"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from statutory_payroll import __version__
from statutory_payroll.api.routes import (
    deadlines_router,
    health_router,
    payroll_runs_router,
    pt_slabs_router,
    tds_router,
)
from statutory_payroll.config import configure_logging
from statutory_payroll.database import dispose_db, init_db
from statutory_payroll.models.base import ImmutableRecordError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging()
    init_db()
    logger.info("Statutory payroll API %s starting", __version__)
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Statutory Payroll API",
        description="Indian statutory payroll engine: PF, ESI, PT, TDS and government filings",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ImmutableRecordError)
    async def immutable_record_handler(request: Request, exc: ImmutableRecordError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "code": "IMMUTABLE_RECORD"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_runs_router, prefix="/api/v1")
    app.include_router(tds_router, prefix="/api/v1")
    app.include_router(pt_slabs_router, prefix="/api/v1")
    app.include_router(deadlines_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
