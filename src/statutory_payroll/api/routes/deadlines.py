"""Statutory deadline endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from statutory_payroll.api.dependencies import AppSettings, DbSession
from statutory_payroll.api.schemas import (
    DeadlineGenerateRequest,
    DeadlineListResponse,
    DeadlineResponse,
    DeadlineSweepRequest,
    DeadlineSweepResponse,
    DeadlineUpdate,
    ErrorResponse,
    UpcomingDeadlineListResponse,
    UpcomingDeadlineResponse,
)
from statutory_payroll.services.deadline_service import (
    DeadlineClosedError,
    DeadlineNotFoundError,
    DeadlineService,
)

router = APIRouter(prefix="/statutory/deadlines", tags=["deadlines"])


@router.get("", response_model=UpcomingDeadlineListResponse)
async def upcoming_deadlines(
    db: DbSession,
    settings: AppSettings,
    as_of: date | None = None,
    look_ahead_days: Annotated[int | None, Query(ge=0, le=366)] = None,
) -> UpcomingDeadlineListResponse:
    """Open deadlines due within the look-ahead window, with severity."""
    today = as_of or date.today()
    window = settings.deadline_lookahead_days if look_ahead_days is None else look_ahead_days
    upcoming = await DeadlineService(db).upcoming(today, window)
    return UpcomingDeadlineListResponse(
        as_of=today,
        items=[
            UpcomingDeadlineResponse(
                deadline=DeadlineResponse.model_validate(u.deadline),
                days_left=u.days_left,
                severity=u.severity.value,
            )
            for u in upcoming
        ],
    )


@router.post(
    "/generate",
    response_model=DeadlineListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_deadlines(db: DbSession, payload: DeadlineGenerateRequest) -> DeadlineListResponse:
    deadlines = await DeadlineService(db).generate_for_month(payload.month, payload.year)
    await db.commit()
    return DeadlineListResponse(
        items=[DeadlineResponse.model_validate(d) for d in deadlines],
        total=len(deadlines),
    )


@router.post("/sweep", response_model=DeadlineSweepResponse)
async def sweep_deadlines(db: DbSession, payload: DeadlineSweepRequest) -> DeadlineSweepResponse:
    """Mark overdue deadlines and raise due-date alerts."""
    today = payload.today or date.today()
    result = await DeadlineService(db).sweep(today)
    await db.commit()
    return DeadlineSweepResponse(
        as_of=today,
        overdue=result.overdue,
        alerts={f"{days}_day": count for days, count in result.alerts.items()},
    )


@router.patch(
    "/{deadline_id}",
    response_model=DeadlineResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_deadline(
    db: DbSession,
    deadline_id: Annotated[UUID, Path()],
    payload: DeadlineUpdate,
) -> DeadlineResponse:
    """Mark a deadline as filed or not applicable."""
    service = DeadlineService(db)
    try:
        if payload.status == "FILED":
            if not payload.filed_by:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="filed_by is required when marking a deadline filed",
                )
            deadline = await service.mark_filed(
                deadline_id,
                filed_by=payload.filed_by,
                filing_reference=payload.filing_reference,
                amount_paid=payload.amount_paid,
            )
        else:
            deadline = await service.mark_not_applicable(deadline_id, notes=payload.notes)
        await db.commit()
    except DeadlineNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DeadlineClosedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return DeadlineResponse.model_validate(deadline)
