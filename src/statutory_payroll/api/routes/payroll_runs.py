"""Payroll run API endpoints."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, HTTPException, Path, Query, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from statutory_payroll.api.dependencies import AppSettings, DbSession, SessionFactory
from statutory_payroll.api.schemas import (
    ErrorResponse,
    PayrollRecordListResponse,
    PayrollRecordResponse,
    PayrollRunCreate,
    PayrollRunListResponse,
    PayrollRunResponse,
    PayrollRunRevert,
    StatutoryFileListResponse,
    StatutoryFileResponse,
)
from statutory_payroll.config import Settings
from statutory_payroll.services.payroll_run_service import (
    DuplicatePayrollRunError,
    PayrollRunNotFoundError,
    PayrollRunService,
)
from statutory_payroll.services.state_machine import InvalidTransitionError
from statutory_payroll.services.statutory_file_service import (
    RunNotFinalizedError,
    StatutoryFileService,
)
from statutory_payroll.statutory.types import GeneratedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payroll-runs", tags=["payroll-runs"])


async def process_run_in_background(
    factory: async_sessionmaker[AsyncSession],
    payroll_run_id: UUID,
    settings: Settings,
) -> None:
    """Process a run in its own session after the response is sent."""
    async with factory() as session:
        try:
            await PayrollRunService(session, settings).process_run(payroll_run_id)
            await session.commit()
        except Exception:
            await session.rollback()
            # The run stays PENDING and can be processed again via /process
            logger.exception("Background processing of payroll run %s failed", payroll_run_id)


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _conflict(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


# ============================================================================
# Payroll Run CRUD
# ============================================================================


@router.post(
    "",
    response_model=PayrollRunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def create_payroll_run(
    db: DbSession,
    factory: SessionFactory,
    settings: AppSettings,
    payload: PayrollRunCreate,
    background_tasks: BackgroundTasks,
) -> PayrollRunResponse:
    """Start a payroll run for a period and schedule its processing."""
    service = PayrollRunService(db, settings)
    try:
        run = await service.start_run(payload.month, payload.year, created_by=payload.created_by)
        await db.commit()
    except DuplicatePayrollRunError as e:
        raise _conflict(e)

    if payload.process_now:
        background_tasks.add_task(process_run_in_background, factory, run.payroll_run_id, settings)
    return PayrollRunResponse.model_validate(run)


@router.get("", response_model=PayrollRunListResponse)
async def list_payroll_runs(
    db: DbSession,
    settings: AppSettings,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> PayrollRunListResponse:
    """List payroll runs, most recent period first."""
    runs = await PayrollRunService(db, settings).list_runs(limit=limit, offset=offset)
    return PayrollRunListResponse(
        items=[PayrollRunResponse.model_validate(r) for r in runs],
        total=len(runs),
    )


@router.get(
    "/{payroll_run_id}",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_run(
    db: DbSession,
    settings: AppSettings,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunResponse:
    try:
        run = await PayrollRunService(db, settings).get_run(payroll_run_id)
    except PayrollRunNotFoundError as e:
        raise _not_found(e)
    return PayrollRunResponse.model_validate(run)


@router.get(
    "/{payroll_run_id}/records",
    response_model=PayrollRecordListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_payroll_records(
    db: DbSession,
    settings: AppSettings,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRecordListResponse:
    """List the computed records of a run."""
    try:
        records = await PayrollRunService(db, settings).list_records(payroll_run_id)
    except PayrollRunNotFoundError as e:
        raise _not_found(e)
    return PayrollRecordListResponse(
        items=[PayrollRecordResponse.model_validate(r) for r in records],
        total=len(records),
    )


# ============================================================================
# Payroll Run State Transitions
# ============================================================================


@router.post(
    "/{payroll_run_id}/process",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def process_payroll_run(
    db: DbSession,
    settings: AppSettings,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunResponse:
    """Process a PENDING run synchronously."""
    try:
        run = await PayrollRunService(db, settings).process_run(payroll_run_id)
        await db.commit()
    except PayrollRunNotFoundError as e:
        raise _not_found(e)
    except InvalidTransitionError as e:
        raise _conflict(e)
    return PayrollRunResponse.model_validate(run)


@router.post(
    "/{payroll_run_id}/revert",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def revert_payroll_run(
    db: DbSession,
    settings: AppSettings,
    payroll_run_id: Annotated[UUID, Path()],
    payload: PayrollRunRevert,
) -> PayrollRunResponse:
    """Revert a finished run, freeing its period for a new run."""
    try:
        run = await PayrollRunService(db, settings).revert_run(payroll_run_id, payload.reason)
        await db.commit()
    except PayrollRunNotFoundError as e:
        raise _not_found(e)
    except InvalidTransitionError as e:
        raise _conflict(e)
    return PayrollRunResponse.model_validate(run)


# ============================================================================
# Statutory files for a run
# ============================================================================


def _attachment(generated: GeneratedFile, media_type: str) -> PlainTextResponse:
    return PlainTextResponse(
        content=generated.content,
        media_type=media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{generated.filename}"',
            "X-Record-Count": str(generated.record_count),
            "X-Skipped-Records": str(len(generated.skipped)),
        },
    )


@router.get(
    "/{payroll_run_id}/statutory/ecr",
    response_class=PlainTextResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def download_ecr(
    db: DbSession,
    settings: AppSettings,
    payroll_run_id: Annotated[UUID, Path()],
) -> PlainTextResponse:
    """Generate the EPFO ECR file for a completed run."""
    try:
        generated = await StatutoryFileService(db, settings).generate_ecr(payroll_run_id)
        await db.commit()
    except PayrollRunNotFoundError as e:
        raise _not_found(e)
    except RunNotFinalizedError as e:
        raise _conflict(e)
    return _attachment(generated, "text/plain")


@router.get(
    "/{payroll_run_id}/statutory/esi",
    response_class=PlainTextResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def download_esi_challan(
    db: DbSession,
    settings: AppSettings,
    payroll_run_id: Annotated[UUID, Path()],
) -> PlainTextResponse:
    """Generate the ESI challan CSV for a completed run."""
    try:
        generated = await StatutoryFileService(db, settings).generate_esi_challan(payroll_run_id)
        await db.commit()
    except PayrollRunNotFoundError as e:
        raise _not_found(e)
    except RunNotFinalizedError as e:
        raise _conflict(e)
    return _attachment(generated, "text/csv")


@router.get(
    "/{payroll_run_id}/statutory/files",
    response_model=StatutoryFileListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_statutory_files(
    db: DbSession,
    settings: AppSettings,
    payroll_run_id: Annotated[UUID, Path()],
) -> StatutoryFileListResponse:
    """List the audit rows of files generated for a run, newest first."""
    try:
        await PayrollRunService(db, settings).get_run(payroll_run_id)
    except PayrollRunNotFoundError as e:
        raise _not_found(e)
    files = await StatutoryFileService(db, settings).list_files(payroll_run_id)
    return StatutoryFileListResponse(
        items=[StatutoryFileResponse.model_validate(f) for f in files],
        total=len(files),
    )
